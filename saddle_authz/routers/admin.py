from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, sessionmaker

from saddle_authz.db.session import get_session_factory
from saddle_authz.security.context import establish_context, principal_session, system_session
from saddle_authz.security.dependencies import FORBIDDEN_DETAIL, get_evaluator, get_principal
from saddle_authz.security.errors import AuthError
from saddle_authz.security.evaluator import PolicyEvaluator
from saddle_authz.security.principal import Principal, Role
from saddle_authz.security.report import policy_matrix, visible_row_counts
from saddle_authz.token_util import VerifiedCredential


def require_supervisor(principal: Principal = Depends(get_principal)) -> Principal:
    if principal.role != Role.SUPERVISOR:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_DETAIL)
    return principal


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_supervisor)])


@router.get("/policy-matrix")
def get_policy_matrix(evaluator: PolicyEvaluator = Depends(get_evaluator)) -> dict[str, dict[str, dict[str, object]]]:
    return policy_matrix(evaluator.hierarchy)


@router.get("/visible-counts/{user_id}")
def get_visible_counts(
    user_id: int,
    evaluator: PolicyEvaluator = Depends(get_evaluator),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> dict[str, object]:
    """Rows of each protected entity the given user would see right now."""

    try:
        with system_session(session_factory) as lookup_db:
            principal = establish_context(lookup_db, VerifiedCredential(user_id=user_id))
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc

    with principal_session(session_factory, principal, evaluator) as db:
        counts = visible_row_counts(db)
    return {"principal": principal.to_dict(), "counts": counts}
