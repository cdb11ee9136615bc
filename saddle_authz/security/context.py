"""
Per-unit-of-work authorization context.

The context is passed explicitly: it lives on `request.state.authz` for the request
and on `Session.info["authz"]` for the session that request uses. Sessions are
never shared between units of work, so pooled connections carry no identity.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import logging
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from saddle_authz.security.auth import resolve_principal
from saddle_authz.security.evaluator import Decision, PolicyEvaluator
from saddle_authz.security.hierarchy import Entity, Operation, RoleHierarchy
from saddle_authz.security.principal import Principal, is_system_principal, system_principal
from saddle_authz.security.scope import derive_scope
from saddle_authz.token_util.context import VerifiedCredential

logger = logging.getLogger(__name__)

AUTHZ_INFO_KEY = "authz"


@dataclass(frozen=True)
class AuthzContext:
    principal: Principal
    evaluator: PolicyEvaluator

    @classmethod
    def for_system(cls) -> AuthzContext:
        # The evaluator's bypass gate short-circuits before the hierarchy is consulted.
        return cls(principal=system_principal(), evaluator=PolicyEvaluator(RoleHierarchy.empty()))

    def authorize(self, entity: Entity, operation: Operation, row: Any = None) -> Decision:
        return self.evaluator.authorize(self.principal, entity, operation, row)


def attach_context(db: Session, ctx: AuthzContext) -> None:
    db.info[AUTHZ_INFO_KEY] = ctx


def get_context(db: Session) -> AuthzContext | None:
    return db.info.get(AUTHZ_INFO_KEY)


def establish_context(lookup_db: Session, credential: VerifiedCredential) -> Principal:
    """
    Resolve the principal for one unit of work and derive its scope.

    Raises AuthError when the credential is unknown or revoked. No failure during
    scope derivation is raised, whatever its type: the principal comes back with
    `scope_failed=True`, which the evaluator turns into Deny for every scoped decision.
    """

    principal = resolve_principal(lookup_db, credential)
    try:
        return derive_scope(lookup_db, principal)
    except Exception:
        logger.warning("Scope derivation failed for user_id=%s; failing closed", principal.user_id, exc_info=True)
        return principal.with_failed_scope()


@contextmanager
def system_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Session for trusted internal callers (seeds, migrations, scheduled jobs, auth lookups).

    Never hand one of these to code that handles request input.
    """

    db = session_factory()
    try:
        attach_context(db, AuthzContext.for_system())
        yield db
    finally:
        db.close()


@contextmanager
def principal_session(
    session_factory: sessionmaker[Session],
    principal: Principal,
    evaluator: PolicyEvaluator,
) -> Iterator[Session]:
    """Session scoped to an explicit principal, e.g. a job acting on behalf of a user."""

    if is_system_principal(principal):
        raise ValueError("system work must use system_session()")

    db = session_factory()
    try:
        attach_context(db, AuthzContext(principal=principal, evaluator=evaluator))
        yield db
    finally:
        db.close()
