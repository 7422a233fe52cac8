"""
Tenant, user and per-tenant settings models.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    ADMIN = "admin"
    LAWYER = "lawyer"
    ASSISTANT = "assistant"


class UserProfile(BaseModel):
    """A user of a tenant (law office)."""

    uid: str
    tenant_id: str
    email: str
    display_name: str = ""
    role: UserRole = UserRole.LAWYER
    active: bool = True


class UserIndexEntry(BaseModel):
    """Global principal → tenant mapping."""

    tenant_id: str


class PromptSettings(BaseModel):
    """Per-tenant custom instructions appended to base prompts."""

    petition_prompt: str | None = None
    judge_prompt: str | None = None
    chat_prompt: str | None = None


class OfficeSettings(BaseModel):
    """Office identity shown on rendered documents."""

    name: str | None = None
    oab_number: str | None = None
    address: str | None = None
    email: str | None = None
    phone: str | None = None


class TenantSettings(BaseModel):
    prompts: PromptSettings = Field(default_factory=PromptSettings)
    office: OfficeSettings = Field(default_factory=OfficeSettings)


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller resolved from a bearer token."""

    uid: str
    tenant_id: str
    role: UserRole = UserRole.LAWYER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def tenant_prefix(self) -> str:
        return f"tenants/{self.tenant_id}/"
