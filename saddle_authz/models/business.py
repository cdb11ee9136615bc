from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from saddle_authz.db.base import Base
from saddle_authz.security.hierarchy import Entity


class Customer(Base):
    __tablename__ = "customers"
    __authz_entity__ = Entity.CUSTOMER

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Scope columns (indexed: every scoped bulk read filters on one of them).
    fitter_id: Mapped[int | None] = mapped_column(ForeignKey("fitters.id"), nullable=True, index=True)
    factory_id: Mapped[int | None] = mapped_column(ForeignKey("factories.id"), nullable=True, index=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    orders: Mapped[list["Order"]] = relationship(back_populates="customer")


class Order(Base):
    __tablename__ = "orders"
    __authz_entity__ = Entity.ORDER

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reference: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("customers.id"), nullable=True, index=True)

    fitter_id: Mapped[int | None] = mapped_column(ForeignKey("fitters.id"), nullable=True, index=True)
    factory_id: Mapped[int | None] = mapped_column(ForeignKey("factories.id"), nullable=True, index=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    status: Mapped[str] = mapped_column(String(30), default="unordered", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    customer: Mapped[Customer | None] = relationship(back_populates="orders")
