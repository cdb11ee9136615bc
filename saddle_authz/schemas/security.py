from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PrincipalOut(BaseModel):
    user_id: int
    role: str
    factory_id: int | None
    fitter_id: int | None


class LogEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    action: str
    entity: str | None
    created_at: datetime
