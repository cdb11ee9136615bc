from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from saddle_authz.db.session import get_db
from saddle_authz.models import Customer
from saddle_authz.schemas.business import CustomerIn, CustomerOut, CustomerUpdate
from saddle_authz.security.dependencies import establish_security, get_principal
from saddle_authz.security.principal import Principal

router = APIRouter(prefix="/customers", tags=["customers"], dependencies=[Depends(establish_security)])


def _get_visible(db: Session, customer_id: int) -> Customer:
    customer = db.scalars(select(Customer).where(Customer.id == customer_id)).first()
    if customer is None:
        # Rows outside your scope are indistinguishable from missing rows.
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer


@router.get("", response_model=list[CustomerOut])
def list_customers(db: Session = Depends(get_db)) -> list[Customer]:
    # Scoping is applied transparently by saddle_authz/db/filters.py.
    return list(db.scalars(select(Customer).order_by(Customer.id)).all())


@router.get("/{id}", response_model=CustomerOut)
def get_customer(id: int, db: Session = Depends(get_db)) -> Customer:
    return _get_visible(db, id)


@router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    body: CustomerIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
) -> Customer:
    customer = Customer(
        name=body.name,
        email=body.email,
        fitter_id=body.fitter_id,
        factory_id=body.factory_id,
        created_by=principal.user_id,
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@router.patch("/{id}", response_model=CustomerOut)
def update_customer(id: int, body: CustomerUpdate, db: Session = Depends(get_db)) -> Customer:
    customer = _get_visible(db, id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(customer, field, value)
    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(id: int, db: Session = Depends(get_db)) -> None:
    customer = _get_visible(db, id)
    db.delete(customer)
    db.commit()
