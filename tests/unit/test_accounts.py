"""Tests for advdesk/services/accounts.py — tokens, principals, users and settings."""

import jwt
import pytest

from advdesk.errors import InvalidArgument, NotFound, PermissionDenied, Unauthenticated
from advdesk.models.tenant import OfficeSettings, PromptSettings, UserRole


class TestTokens:

    def test_round_trip(self, accounts):
        token = accounts.issue_token("lawyer-1")
        assert accounts.decode_token(token) == "lawyer-1"

    def test_expired_token_rejected(self, accounts):
        token = accounts.issue_token("lawyer-1", ttl=-60)
        with pytest.raises(Unauthenticated):
            accounts.decode_token(token)

    def test_foreign_signature_rejected(self, accounts):
        token = jwt.encode({"sub": "lawyer-1", "exp": 9_999_999_999}, "other-secret", algorithm="HS256")
        with pytest.raises(Unauthenticated):
            accounts.decode_token(token)

    def test_garbage_rejected(self, accounts):
        with pytest.raises(Unauthenticated):
            accounts.decode_token("not-a-token")


class TestResolve:

    async def test_authenticate(self, accounts, seeded_users):
        auth = await accounts.authenticate(accounts.issue_token("admin-1"))
        assert auth.tenant_id == "office-a"
        assert auth.role == UserRole.ADMIN

    async def test_unknown_principal(self, accounts, seeded_users):
        with pytest.raises(NotFound):
            await accounts.resolve("ghost")

    async def test_inactive_user(self, accounts, seeded_users, admin_auth):
        await accounts.deactivate_user(admin_auth, "lawyer-1")
        with pytest.raises(PermissionDenied):
            await accounts.authenticate(accounts.issue_token("lawyer-1"))


class TestUserAdministration:

    async def test_invite(self, accounts, seeded_users, admin_auth):
        profile = await accounts.invite_user(admin_auth, "  Nova@A.adv.br ")
        assert profile.email == "nova@a.adv.br"
        assert profile.display_name == "nova"
        assert profile.tenant_id == "office-a"

        auth = await accounts.resolve(profile.uid)
        assert auth.tenant_id == "office-a"
        assert auth.role == UserRole.LAWYER

    async def test_invite_duplicate_email(self, accounts, seeded_users, admin_auth):
        with pytest.raises(InvalidArgument):
            await accounts.invite_user(admin_auth, "LAWYER@a.adv.br")

    async def test_invite_requires_admin(self, accounts, seeded_users, lawyer_auth):
        with pytest.raises(PermissionDenied):
            await accounts.invite_user(lawyer_auth, "x@a.adv.br")

    async def test_invite_invalid_email(self, accounts, seeded_users, admin_auth):
        with pytest.raises(InvalidArgument):
            await accounts.invite_user(admin_auth, "sem-arroba")

    async def test_cannot_deactivate_self(self, accounts, seeded_users, admin_auth):
        with pytest.raises(InvalidArgument):
            await accounts.deactivate_user(admin_auth, "admin-1")

    async def test_deactivate_other_tenant_user(self, accounts, seeded_users, admin_auth):
        with pytest.raises(NotFound):
            await accounts.deactivate_user(admin_auth, "lawyer-2")

    async def test_list_users_scoped_to_tenant(self, accounts, seeded_users, lawyer_auth):
        users = await accounts.list_users(lawyer_auth)
        assert sorted(u.uid for u in users) == ["admin-1", "lawyer-1"]


class TestTenantSettings:

    async def test_defaults(self, accounts, lawyer_auth):
        settings = await accounts.get_tenant_settings(lawyer_auth)
        assert settings.prompts.petition_prompt is None
        assert settings.office.name is None

    async def test_admin_updates(self, accounts, admin_auth, lawyer_auth):
        await accounts.update_prompt_settings(admin_auth, PromptSettings(chat_prompt="Seja breve."))
        updated = await accounts.update_office_settings(
            admin_auth, OfficeSettings(name="Souza Advogados", oab_number="SP 12345")
        )
        assert updated.office.name == "Souza Advogados"
        assert updated.prompts.chat_prompt == "Seja breve."

        seen_by_lawyer = await accounts.get_tenant_settings(lawyer_auth)
        assert seen_by_lawyer.office.oab_number == "SP 12345"

    async def test_lawyer_cannot_update(self, accounts, lawyer_auth):
        with pytest.raises(PermissionDenied):
            await accounts.update_prompt_settings(lawyer_auth, PromptSettings())
        with pytest.raises(PermissionDenied):
            await accounts.update_office_settings(lawyer_auth, OfficeSettings())

    async def test_settings_isolated_per_tenant(self, accounts, admin_auth, other_tenant_auth):
        await accounts.update_office_settings(admin_auth, OfficeSettings(name="Escritório A"))
        other = await accounts.get_tenant_settings(other_tenant_auth)
        assert other.office.name is None
