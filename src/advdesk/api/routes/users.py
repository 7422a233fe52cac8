"""
User administration routes.
"""

from typing import Any

from fastapi import APIRouter, Depends

from advdesk.api.deps import get_accounts, get_auth
from advdesk.models.api import InviteUserRequest
from advdesk.models.tenant import AuthContext
from advdesk.services.accounts import AccountService

router = APIRouter()


@router.get("/me")
async def current_user(auth: AuthContext = Depends(get_auth)) -> dict[str, Any]:
    return {"uid": auth.uid, "tenant_id": auth.tenant_id, "role": auth.role.value}


@router.get("")
async def list_users(
    auth: AuthContext = Depends(get_auth),
    accounts: AccountService = Depends(get_accounts),
) -> dict[str, Any]:
    users = await accounts.list_users(auth)
    return {"users": [u.model_dump(mode="json") for u in users]}


@router.post("/invite", status_code=201)
async def invite_user(
    request: InviteUserRequest,
    auth: AuthContext = Depends(get_auth),
    accounts: AccountService = Depends(get_accounts),
) -> dict[str, Any]:
    """Create a user in the caller's office (admin only)."""
    profile = await accounts.invite_user(
        auth,
        email=request.email,
        display_name=request.display_name,
        role=request.role,
    )
    return profile.model_dump(mode="json")


@router.post("/{uid}/deactivate")
async def deactivate_user(
    uid: str,
    auth: AuthContext = Depends(get_auth),
    accounts: AccountService = Depends(get_accounts),
) -> dict[str, Any]:
    await accounts.deactivate_user(auth, uid)
    return {"success": True}
