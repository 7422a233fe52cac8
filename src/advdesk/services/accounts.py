"""
Account service: bearer-token verification, principal → tenant resolution
and user administration.
"""

import time
from functools import lru_cache
from uuid import uuid4

import jwt
import structlog

from advdesk.config import Settings, get_settings
from advdesk.errors import InvalidArgument, NotFound, PermissionDenied, Unauthenticated
from advdesk.models.tenant import (
    AuthContext,
    OfficeSettings,
    PromptSettings,
    TenantSettings,
    UserProfile,
    UserRole,
)
from advdesk.storage.repositories import Repository, get_repository

logger = structlog.get_logger(__name__)


def require_admin(auth: AuthContext) -> None:
    if not auth.is_admin:
        raise PermissionDenied("Apenas administradores podem realizar esta ação.")


class AccountService:
    """Resolves authenticated principals and manages tenant users."""

    def __init__(
        self,
        repository: Repository | None = None,
        settings: Settings | None = None,
    ):
        self.repository = repository or get_repository()
        self.settings = settings or get_settings()

    # =========================================================================
    # Tokens
    # =========================================================================

    def issue_token(self, uid: str, ttl: int = 3600) -> str:
        """Sign a short-lived token for `uid` (development and tests)."""
        now = int(time.time())
        claims = {"sub": uid, "iat": now, "exp": now + ttl}
        if self.settings.jwt_audience:
            claims["aud"] = self.settings.jwt_audience
        return jwt.encode(claims, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def decode_token(self, token: str) -> str:
        """Return the principal id carried by a bearer token."""
        try:
            claims = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                audience=self.settings.jwt_audience,
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            logger.info("token_rejected", error=str(e))
            raise Unauthenticated() from e
        return str(claims["sub"])

    # =========================================================================
    # Principal resolution
    # =========================================================================

    async def resolve(self, uid: str) -> AuthContext:
        tenant_id = await self.repository.get_user_tenant(uid)
        if tenant_id is None:
            raise NotFound("Perfil de usuário não encontrado.")
        profile = await self.repository.get_user(tenant_id, uid)
        if profile is None:
            raise NotFound("Perfil de usuário não encontrado.")
        if not profile.active:
            raise PermissionDenied("Usuário desativado.")
        return AuthContext(uid=uid, tenant_id=tenant_id, role=profile.role)

    async def authenticate(self, token: str) -> AuthContext:
        return await self.resolve(self.decode_token(token))

    # =========================================================================
    # User administration
    # =========================================================================

    async def invite_user(
        self,
        auth: AuthContext,
        email: str,
        display_name: str = "",
        role: UserRole = UserRole.LAWYER,
    ) -> UserProfile:
        """Create an active profile in the caller's tenant."""
        require_admin(auth)
        email = email.strip().lower()
        if "@" not in email:
            raise InvalidArgument("E-mail inválido.")

        for user in await self.repository.list_users(auth.tenant_id):
            if user.email == email:
                raise InvalidArgument("Já existe um usuário com este e-mail.")

        profile = UserProfile(
            uid=uuid4().hex,
            tenant_id=auth.tenant_id,
            email=email,
            display_name=display_name or email.split("@")[0],
            role=role,
            active=True,
        )
        await self.repository.save_user(profile)
        logger.info("user_invited", tenant_id=auth.tenant_id, uid=profile.uid, role=role.value)
        return profile

    async def deactivate_user(self, auth: AuthContext, uid: str) -> None:
        require_admin(auth)
        if uid == auth.uid:
            raise InvalidArgument("Não é possível desativar a própria conta.")
        profile = await self.repository.get_user(auth.tenant_id, uid)
        if profile is None:
            raise NotFound("Usuário não encontrado.")
        profile.active = False
        await self.repository.save_user(profile)
        logger.info("user_deactivated", tenant_id=auth.tenant_id, uid=uid)

    async def list_users(self, auth: AuthContext) -> list[UserProfile]:
        return await self.repository.list_users(auth.tenant_id)

    # =========================================================================
    # Tenant settings
    # =========================================================================

    async def get_tenant_settings(self, auth: AuthContext) -> TenantSettings:
        return await self.repository.get_tenant_settings(auth.tenant_id)

    async def update_prompt_settings(
        self, auth: AuthContext, prompts: PromptSettings
    ) -> TenantSettings:
        """Replace the office custom instructions (admin only)."""
        require_admin(auth)
        await self.repository.save_prompt_settings(auth.tenant_id, prompts)
        logger.info("prompt_settings_updated", tenant_id=auth.tenant_id)
        return await self.repository.get_tenant_settings(auth.tenant_id)

    async def update_office_settings(
        self, auth: AuthContext, office: OfficeSettings
    ) -> TenantSettings:
        require_admin(auth)
        await self.repository.save_office_settings(auth.tenant_id, office)
        logger.info("office_settings_updated", tenant_id=auth.tenant_id)
        return await self.repository.get_tenant_settings(auth.tenant_id)


@lru_cache()
def get_account_service() -> AccountService:
    """Get account service instance."""
    return AccountService()
