from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from saddle_authz.db.session import get_db
from saddle_authz.models import LogEntry
from saddle_authz.schemas.security import LogEntryOut
from saddle_authz.security.dependencies import establish_security

router = APIRouter(tags=["logs"], dependencies=[Depends(establish_security)])


@router.get("/logs", response_model=list[LogEntryOut])
def list_logs(db: Session = Depends(get_db)) -> list[LogEntry]:
    return list(db.scalars(select(LogEntry).order_by(LogEntry.id)).all())
