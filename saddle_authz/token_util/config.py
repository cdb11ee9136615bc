"""Token verification settings. No hardcoded secrets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TokenConfig:
    """
    Settings for verifying the API's own HS256-signed access tokens.

    Built from the application settings (`SADDLE_JWT_*` environment variables):
        SADDLE_JWT_SECRET: Shared signing secret (required).
        SADDLE_JWT_ALGORITHM: Signing algorithm (default HS256).
        SADDLE_JWT_AUDIENCE / SADDLE_JWT_ISSUER: Optional; checked when set.
        SADDLE_CLOCK_SKEW_SECONDS: Tolerance for exp/nbf (default 30).
    """

    secret: str
    algorithm: str = "HS256"
    audience: str | None = None
    issuer: str | None = None
    clock_skew_seconds: int = 30

    @classmethod
    def from_settings(cls, settings: Any) -> TokenConfig:
        if not settings.jwt_secret:
            raise ValueError("SADDLE_JWT_SECRET must be set to verify access tokens")
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            clock_skew_seconds=settings.clock_skew_seconds,
        )
