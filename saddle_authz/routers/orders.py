from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from saddle_authz.db.session import get_db
from saddle_authz.models import Order
from saddle_authz.schemas.business import OrderOut
from saddle_authz.security.dependencies import establish_security

router = APIRouter(tags=["orders"], dependencies=[Depends(establish_security)])


@router.get("/orders", response_model=list[OrderOut])
def list_orders(db: Session = Depends(get_db)) -> list[Order]:
    return list(db.scalars(select(Order).order_by(Order.id)).all())
