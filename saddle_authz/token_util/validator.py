"""
Verify a signed JWT access token and extract the user id.

Before anything in the token is used we check:

    1. the **signature** (shared secret, configured algorithm only),
    2. the **expiry** (``exp``, required) and ``nbf``,
    3. the **audience** / **issuer** when configured.

Only the user id claim is read afterwards. A ``role`` claim, if present, is
ignored: roles come from the credentials table.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

from .config import TokenConfig
from .context import VerifiedCredential

logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """Raised when token validation fails. Do not log the token."""

    pass


def _extract_user_id(payload: dict[str, Any]) -> int:
    """
    Read the user id: ``id`` (issued by our login endpoint), falling back to ``sub``.

    Must be a positive integer. Booleans and floats with a fraction are rejected.
    """

    raw = payload.get("id", payload.get("sub"))
    if isinstance(raw, bool) or raw is None:
        raise TokenValidationError("Invalid token: missing user id")
    if isinstance(raw, float) and not raw.is_integer():
        raise TokenValidationError("Invalid token: user id")
    try:
        user_id = int(raw)
    except (TypeError, ValueError) as exc:
        raise TokenValidationError("Invalid token: user id") from exc
    if user_id <= 0:
        raise TokenValidationError("Invalid token: user id")
    return user_id


def _extract_claims(payload: dict[str, Any]) -> VerifiedCredential:
    session_id = payload.get("sessionId")
    return VerifiedCredential(
        user_id=_extract_user_id(payload),
        session_id=str(session_id) if session_id is not None else None,
    )


class TokenValidator:
    """Validates access tokens signed with the configured secret."""

    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    def validate_and_extract(self, token: str) -> VerifiedCredential:
        """
        Validate the access token and return the verified credential.

        Raises TokenValidationError if the signature, lifetime, audience or issuer
        checks fail, or if the token carries no usable user id.
        """
        options = {
            "require": ["exp"],
            "verify_signature": True,
            "verify_exp": True,
            "verify_nbf": True,
            "verify_aud": self._config.audience is not None,
            "verify_iss": self._config.issuer is not None,
        }
        try:
            payload = jwt.decode(
                token,
                self._config.secret,
                algorithms=[self._config.algorithm],
                audience=self._config.audience,
                issuer=self._config.issuer,
                leeway=self._config.clock_skew_seconds,
                options=options,
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Token expired")
            raise TokenValidationError("Token expired") from e
        except jwt.InvalidAudienceError as e:
            logger.info("Token invalid audience")
            raise TokenValidationError("Invalid token: audience") from e
        except jwt.InvalidIssuerError as e:
            logger.info("Token invalid issuer")
            raise TokenValidationError("Invalid token: issuer") from e
        except jwt.InvalidTokenError as e:
            logger.info("Token invalid: %s", type(e).__name__)
            raise TokenValidationError("Invalid token") from e

        return _extract_claims(payload)


def validate_and_extract(token: str, config: TokenConfig) -> VerifiedCredential:
    """Convenience function: validate a bearer token with a throwaway validator."""
    return TokenValidator(config).validate_and_extract(token)
