from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str | None
    fitter_id: int | None
    factory_id: int | None
    created_by: int | None


class CustomerIn(BaseModel):
    name: str
    email: str | None = None
    fitter_id: int | None = None
    factory_id: int | None = None


class CustomerUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    fitter_id: int | None = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reference: str
    customer_id: int | None
    fitter_id: int | None
    factory_id: int | None
    status: str
    created_at: datetime
