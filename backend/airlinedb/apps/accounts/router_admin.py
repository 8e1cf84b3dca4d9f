# backend/airlinedb/apps/accounts/router_admin.py

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from airlinedb.security import require_role
from . import schemas
from .models import AccountRole
from .router_public import get_read_auth_engine
from .services import AuthEngine

router = APIRouter(prefix="/admin", tags=["accounts_admin"])


# ---------------------------------------------------------------------------
# ACCOUNT LISTING (ADMIN ONLY)
# ---------------------------------------------------------------------------


@router.get(
    "/accounts",
    response_model=List[schemas.AccountRead],
    summary="List every account (admin only)",
)
def list_accounts(
    claims: Dict[str, Any] = Depends(require_role(AccountRole.ADMIN)),
    engine: AuthEngine = Depends(get_read_auth_engine),
):
    """
    Return all accounts, oldest first.

    Password digests and pending codes are never part of the response.
    """
    return [schemas.AccountRead.model_validate(a) for a in engine.list_accounts()]
