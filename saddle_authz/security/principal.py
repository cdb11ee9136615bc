"""
Principal model and the system bypass gate.

A Principal is the identity asserted for exactly one unit of work (one request or
one background job). It is built at the authentication boundary, never persisted
and never cached across units of work.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum

SYSTEM_USER_ID = 0


class Role(IntEnum):
    """User types as stored in `credentials.user_type`."""

    FITTER = 1
    ADMIN = 2
    FACTORY = 3
    CUSTOMSADDLER = 4
    SUPERVISOR = 5
    USER = 6


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role

    # Role-specific scope ids; only filled in by scope derivation.
    factory_id: int | None = None
    fitter_id: int | None = None

    # True once the authoritative scope lookup ran for this unit of work.
    scope_derived: bool = False
    # True when the scope lookup failed; every scoped decision is then Deny.
    scope_failed: bool = False

    def with_scope(self, *, factory_id: int | None = None, fitter_id: int | None = None) -> Principal:
        return replace(self, factory_id=factory_id, fitter_id=fitter_id, scope_derived=True, scope_failed=False)

    def with_failed_scope(self) -> Principal:
        return replace(self, factory_id=None, fitter_id=None, scope_derived=True, scope_failed=True)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict (diagnostics and `/me`)."""
        return {
            "user_id": self.user_id,
            "role": self.role.name.lower() if isinstance(self.role, Role) else str(self.role),
            "factory_id": self.factory_id,
            "fitter_id": self.fitter_id,
        }


def system_principal() -> Principal:
    """
    The all-access principal for migrations, seeds and scheduled jobs.

    Only process-internal callers may use this; nothing that parses a request
    builds a principal with `SYSTEM_USER_ID`.
    """

    return Principal(user_id=SYSTEM_USER_ID, role=Role.SUPERVISOR, scope_derived=True)


def is_system_principal(principal: Principal) -> bool:
    return principal.user_id == SYSTEM_USER_ID
