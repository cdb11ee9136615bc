from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session, sessionmaker

from saddle_authz.db.base import Base
from saddle_authz.models import Credential, Customer, Factory, FactoryEmployee, Fitter, LogEntry, Order
from saddle_authz.security.context import system_session
from saddle_authz.security.principal import Role

logger = logging.getLogger(__name__)


def init_db(bind: Engine, session_factory: sessionmaker[Session]) -> None:
    """
    Create tables + seed demo data.

    Runs as the system principal: this is one of the trusted internal paths
    allowed to bypass row filtering.
    """

    Base.metadata.create_all(bind=bind)

    with system_session(session_factory) as db:
        if _has_seed_data(db):
            return
        seed_demo_data(db)
        logger.info("Seeded demo data")


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(Credential.user_id).limit(1)).first() is not None


def seed_demo_data(db: Session) -> None:
    """Deterministic demo rows. Caller must hold a system session."""

    # Credentials (user_type = Role code)
    db.add_all(
        [
            Credential(user_id=1, email="sam.supervisor@example.com", user_type=Role.SUPERVISOR),
            Credential(user_id=2, email="ada.admin@example.com", user_type=Role.ADMIN),
            Credential(user_id=3, email="fern.fitter@example.com", user_type=Role.FITTER),
            Credential(user_id=4, email="fred.fitter@example.com", user_type=Role.FITTER),
            Credential(user_id=5, email="fay.factory@example.com", user_type=Role.FACTORY),
            Credential(user_id=6, email="uma.user@example.com", user_type=Role.USER),
            Credential(user_id=7, email="cole.saddler@example.com", user_type=Role.CUSTOMSADDLER),
            Credential(user_id=8, email="bob.blocked@example.com", user_type=Role.FITTER, blocked=True),
        ]
    )
    db.flush()

    # Scope tables
    fern = Fitter(user_id=3, name="Fern Fitter")
    fred = Fitter(user_id=4, name="Fred Fitter")
    walsall = Factory(user_id=5, name="Walsall Works")
    db.add_all([fern, fred, walsall])
    db.flush()

    db.add_all(
        [
            FactoryEmployee(factory_id=walsall.id, name="Stitcher One"),
            FactoryEmployee(factory_id=walsall.id, name="Stitcher Two"),
        ]
    )

    c1 = Customer(name="Hilltop Stables", fitter_id=fern.id, created_by=3)
    c2 = Customer(name="Riverside Riding", fitter_id=fred.id, created_by=4)
    c3 = Customer(name="Meadow Farm", created_by=6)
    db.add_all([c1, c2, c3])
    db.flush()

    db.add_all(
        [
            Order(reference="ORD-1001", customer_id=c1.id, fitter_id=fern.id, factory_id=walsall.id, created_by=3),
            Order(reference="ORD-1002", customer_id=c2.id, fitter_id=fred.id, created_by=4),
            Order(reference="ORD-1003", customer_id=c1.id, fitter_id=fern.id, created_by=3, status="ordered"),
        ]
    )

    db.add_all(
        [
            LogEntry(user_id=3, action="login"),
            LogEntry(user_id=4, action="login"),
            LogEntry(user_id=5, action="order.update", entity="order"),
            LogEntry(user_id=6, action="customer.create", entity="customer"),
        ]
    )

    db.commit()
