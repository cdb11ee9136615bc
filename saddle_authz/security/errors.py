from __future__ import annotations

from enum import Enum


class AuthErrorKind(str, Enum):
    UNKNOWN = "unknown"
    REVOKED = "revoked"


class AuthError(Exception):
    """
    Raised at the authentication boundary when no principal can be established.

    Both kinds are reported to clients as the same "unauthenticated" response so
    account state is never disclosed.
    """

    def __init__(self, kind: AuthErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


class ScopeDerivationError(Exception):
    """Storage failure while resolving a principal's factory/fitter id."""


class AccessDenied(Exception):
    """Raised by the data layer when a mutation is not authorized for the current principal."""

    def __init__(self, entity: str, operation: str) -> None:
        super().__init__(f"{operation} on {entity} denied")
        self.entity = entity
        self.operation = operation


class RoleHierarchyError(ValueError):
    """Raised when the role hierarchy configuration is invalid."""
