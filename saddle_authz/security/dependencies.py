from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from saddle_authz.db.session import get_session_factory
from saddle_authz.security.context import AuthzContext, establish_context, system_session
from saddle_authz.security.errors import AccessDenied, AuthError
from saddle_authz.security.evaluator import PolicyEvaluator
from saddle_authz.security.principal import Principal
from saddle_authz.token_util import TokenValidationError, TokenValidator

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer"

UNAUTHENTICATED_DETAIL = "Authentication required"
FORBIDDEN_DETAIL = "Forbidden"


def get_evaluator(request: Request) -> PolicyEvaluator:
    evaluator = getattr(request.app.state, "evaluator", None)
    if evaluator is None:
        raise RuntimeError("Role hierarchy not loaded. Did app startup run?")
    return evaluator


def get_token_validator(request: Request) -> TokenValidator:
    validator = getattr(request.app.state, "token_validator", None)
    if validator is None:
        raise RuntimeError("Token validator not configured. Is SADDLE_JWT_SECRET set?")
    return validator


def extract_bearer_token(request: Request) -> str:
    """Return the raw bearer token; 401 when the header is absent or malformed."""

    raw = request.headers.get(AUTHORIZATION_HEADER)
    if not raw:
        logger.info("Missing Authorization header path=%s method=%s", request.url.path, request.method)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHENTICATED_DETAIL)

    prefix = f"{BEARER_PREFIX} "
    token = raw[len(prefix) :].strip() if raw.startswith(prefix) else ""
    if not token:
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHENTICATED_DETAIL)
    return token


def establish_security(
    request: Request,
    evaluator: PolicyEvaluator = Depends(get_evaluator),
    validator: TokenValidator = Depends(get_token_validator),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> AuthzContext:
    """
    Authentication boundary: one call per request.

    Verifies the token, resolves the principal from the credentials table on a
    short-lived internal lookup session, and attaches the resulting context to
    `request.state.authz` (picked up by `get_db`).
    """

    token = extract_bearer_token(request)
    try:
        credential = validator.validate_and_extract(token)
    except TokenValidationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHENTICATED_DETAIL) from exc

    with system_session(session_factory) as lookup_db:
        principal = establish_context(lookup_db, credential)

    ctx = AuthzContext(principal=principal, evaluator=evaluator)
    request.state.authz = ctx
    logger.info("Authenticated user_id=%s role=%s", principal.user_id, principal.role.name.lower())
    return ctx


def get_principal(ctx: AuthzContext = Depends(establish_security)) -> Principal:
    return ctx.principal


async def _auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    # Unknown and revoked look the same to the client.
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": UNAUTHENTICATED_DETAIL})


async def _access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    logger.info("Forbidden %s %s (%s)", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": FORBIDDEN_DETAIL})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, _auth_error_handler)
    app.add_exception_handler(AccessDenied, _access_denied_handler)
