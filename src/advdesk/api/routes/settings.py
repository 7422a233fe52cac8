"""
Tenant settings routes: custom prompt instructions and office identity.
"""

from typing import Any

from fastapi import APIRouter, Depends

from advdesk.api.deps import get_accounts, get_auth
from advdesk.models.tenant import AuthContext, OfficeSettings, PromptSettings
from advdesk.services.accounts import AccountService

router = APIRouter()


@router.get("")
async def get_tenant_settings(
    auth: AuthContext = Depends(get_auth),
    accounts: AccountService = Depends(get_accounts),
) -> dict[str, Any]:
    settings = await accounts.get_tenant_settings(auth)
    return settings.model_dump(mode="json")


@router.put("/prompts")
async def update_prompts(
    request: PromptSettings,
    auth: AuthContext = Depends(get_auth),
    accounts: AccountService = Depends(get_accounts),
) -> dict[str, Any]:
    settings = await accounts.update_prompt_settings(auth, request)
    return settings.model_dump(mode="json")


@router.put("/office")
async def update_office(
    request: OfficeSettings,
    auth: AuthContext = Depends(get_auth),
    accounts: AccountService = Depends(get_accounts),
) -> dict[str, Any]:
    """Office name and OAB number shown in document headers (admin only)."""
    settings = await accounts.update_office_settings(auth, request)
    return settings.model_dump(mode="json")
