from __future__ import annotations

from fastapi import APIRouter, Depends

from saddle_authz.schemas.security import PrincipalOut
from saddle_authz.security.dependencies import get_principal
from saddle_authz.security.principal import Principal

router = APIRouter(tags=["me"])


@router.get("/me", response_model=PrincipalOut)
def me(principal: Principal = Depends(get_principal)) -> dict[str, object]:
    return principal.to_dict()
