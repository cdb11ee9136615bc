from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from saddle_authz.db.base import Base
from saddle_authz.security.hierarchy import Entity


class Credential(Base):
    """Login record; `user_type` holds the Role code."""

    __tablename__ = "credentials"
    __authz_entity__ = Entity.CREDENTIAL

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    user_type: Mapped[int] = mapped_column(Integer, nullable=False)

    blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)


class Fitter(Base):
    __tablename__ = "fitters"
    __authz_entity__ = Entity.FITTER

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("credentials.user_id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Factory(Base):
    __tablename__ = "factories"
    __authz_entity__ = Entity.FACTORY

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("credentials.user_id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    employees: Mapped[list["FactoryEmployee"]] = relationship(back_populates="factory")


class FactoryEmployee(Base):
    __tablename__ = "factory_employees"
    __authz_entity__ = Entity.FACTORY_EMPLOYEE

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    factory_id: Mapped[int] = mapped_column(ForeignKey("factories.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    factory: Mapped[Factory] = relationship(back_populates="employees")
