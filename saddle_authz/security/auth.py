from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from saddle_authz.models.security import Credential
from saddle_authz.security.errors import AuthError, AuthErrorKind
from saddle_authz.security.principal import SYSTEM_USER_ID, Principal, Role
from saddle_authz.token_util.context import VerifiedCredential

logger = logging.getLogger(__name__)


def resolve_principal(db: Session, credential: VerifiedCredential) -> Principal:
    """
    Build the Principal for a verified credential.

    - The user id comes from a verified token; role and scope claims in the token are ignored.
    - The role is read from the stored credential, never from the request.
    - `db` must be a process-internal lookup session (see `system_session`).
    """

    user_id = credential.user_id
    if user_id == SYSTEM_USER_ID:
        # The system principal is never reachable through a token.
        logger.warning("Rejected credential carrying the reserved system user id")
        raise AuthError(AuthErrorKind.UNKNOWN)

    record = db.execute(select(Credential).where(Credential.user_id == user_id)).scalar_one_or_none()
    if record is None:
        logger.info("Unknown credential user_id=%s", user_id)
        raise AuthError(AuthErrorKind.UNKNOWN)

    if record.blocked or record.deleted:
        logger.info("Revoked credential user_id=%s blocked=%s deleted=%s", user_id, record.blocked, record.deleted)
        raise AuthError(AuthErrorKind.REVOKED)

    try:
        role = Role(record.user_type)
    except ValueError as exc:
        logger.warning("Credential user_id=%s has unrecognised user_type=%s", user_id, record.user_type)
        raise AuthError(AuthErrorKind.UNKNOWN) from exc

    return Principal(user_id=record.user_id, role=role)
