"""
Scope derivation: fill in the factory/fitter id a principal acts for.

The ids are always resolved from the authoritative tables (`factories.user_id`,
`fitters.user_id`), never taken from a client. A principal already derived in the
same unit of work is returned unchanged, which skips a redundant lookup.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from saddle_authz.models.security import Factory, Fitter
from saddle_authz.security.errors import ScopeDerivationError
from saddle_authz.security.principal import Principal, Role

logger = logging.getLogger(__name__)


def derive_scope(db: Session, principal: Principal) -> Principal:
    if principal.scope_derived:
        return principal

    if principal.role == Role.FACTORY:
        factory_id = _lookup_owned_id(db, Factory, principal.user_id)
        if factory_id is None:
            logger.warning("No active factory for user_id=%s; principal is scoped to nothing", principal.user_id)
        return principal.with_scope(factory_id=factory_id)

    if principal.role == Role.FITTER:
        fitter_id = _lookup_owned_id(db, Fitter, principal.user_id)
        if fitter_id is None:
            logger.warning("No active fitter for user_id=%s; principal is scoped to nothing", principal.user_id)
        return principal.with_scope(fitter_id=fitter_id)

    # Other roles carry no scope id. Any pre-filled value is dropped.
    return principal.with_scope()


def _lookup_owned_id(db: Session, model: type[Factory] | type[Fitter], user_id: int) -> int | None:
    stmt = (
        select(model.id)
        .where(model.user_id == user_id, model.deleted.is_(False))
        .order_by(model.id)
        .limit(1)
    )
    try:
        return db.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise ScopeDerivationError(f"{model.__tablename__} lookup failed for user_id={user_id}") from exc
