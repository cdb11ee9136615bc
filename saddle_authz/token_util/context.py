"""Result of verifying an access token."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VerifiedCredential:
    """
    The only identity fact taken from a token: who signed in.

    Role and scope ids are absent: they are resolved from the
    database for every unit of work.
    """

    user_id: int
    """User id from the token's `id` claim (or `sub`)."""

    session_id: str | None = None
    """Login session id from the token; for diagnostics only."""
