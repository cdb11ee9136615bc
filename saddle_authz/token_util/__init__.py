"""
Standalone utility to verify bearer tokens and extract the authenticated user id.

This package has no dependency on other saddle_authz packages (db, security, ...).
Use validate_and_extract() with a bearer token string to get a VerifiedCredential.
"""

from .config import TokenConfig
from .context import VerifiedCredential
from .validator import TokenValidationError, TokenValidator, validate_and_extract

__all__ = [
    "TokenConfig",
    "VerifiedCredential",
    "TokenValidator",
    "TokenValidationError",
    "validate_and_extract",
]
