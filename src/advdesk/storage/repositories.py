"""
Tenant-scoped repositories over the document store.

Every tenant-owned path starts with ``tenants/{tenant_id}/``.
"""

import asyncio
from functools import lru_cache

import structlog

from advdesk.errors import NotFound
from advdesk.models.chat import ChatMessage, ChatSession
from advdesk.models.knowledge import KnowledgeDocument
from advdesk.models.pipeline import PipelineKind, PipelineRecord
from advdesk.models.tenant import (
    OfficeSettings,
    PromptSettings,
    TenantSettings,
    UserIndexEntry,
    UserProfile,
)
from advdesk.storage.documents import DocumentStore, get_document_store

logger = structlog.get_logger(__name__)

RECORD_COLLECTIONS = {
    PipelineKind.PETITION: "petitions",
    PipelineKind.JUDGE_REVIEW: "judgeReviews",
}


def tenant_root(tenant_id: str) -> str:
    return f"tenants/{tenant_id}"


def record_path(tenant_id: str, kind: PipelineKind, record_id: str) -> str:
    return f"{tenant_root(tenant_id)}/{RECORD_COLLECTIONS[kind]}/{record_id}"


def session_path(tenant_id: str, session_id: str) -> str:
    return f"{tenant_root(tenant_id)}/chatSessions/{session_id}"


def knowledge_collection(tenant_id: str) -> str:
    return f"{tenant_root(tenant_id)}/knowledgeBase"


def rate_limit_path(principal_id: str, action: str) -> str:
    return f"rateLimits/{principal_id}_{action}"


class Repository:
    """Typed access to tenant documents."""

    def __init__(self, store: DocumentStore | None = None):
        self.store = store or get_document_store()

    # =========================================================================
    # Pipeline records
    # =========================================================================

    async def get_record(
        self, tenant_id: str, kind: PipelineKind, record_id: str
    ) -> PipelineRecord:
        data = await self.store.get(record_path(tenant_id, kind, record_id))
        if data is None:
            label = "Petição" if kind == PipelineKind.PETITION else "Análise"
            raise NotFound(f"{label} não encontrada.")
        return PipelineRecord.model_validate(data)

    async def save_record(self, record: PipelineRecord) -> PipelineRecord:
        path = record_path(record.tenant_id, record.kind, record.id)
        await self.store.set(path, record.model_dump(mode="json"))
        return record

    async def list_records(self, tenant_id: str, kind: PipelineKind) -> list[PipelineRecord]:
        collection = f"{tenant_root(tenant_id)}/{RECORD_COLLECTIONS[kind]}"
        docs = await self.store.list(collection)
        return [PipelineRecord.model_validate(data) for _, data in docs]

    # =========================================================================
    # Chat
    # =========================================================================

    async def get_session(self, tenant_id: str, session_id: str) -> ChatSession:
        data = await self.store.get(session_path(tenant_id, session_id))
        if data is None:
            raise NotFound("Sessão de chat não encontrada.")
        return ChatSession.model_validate(data)

    async def save_session(self, session: ChatSession) -> ChatSession:
        await self.store.set(
            session_path(session.tenant_id, session.id),
            session.model_dump(mode="json"),
        )
        return session

    async def add_message(self, tenant_id: str, message: ChatMessage) -> ChatMessage:
        path = f"{session_path(tenant_id, message.session_id)}/messages/{message.id}"
        await self.store.set(path, message.model_dump(mode="json"))
        return message

    async def list_messages(self, tenant_id: str, session_id: str) -> list[ChatMessage]:
        docs = await self.store.list(f"{session_path(tenant_id, session_id)}/messages")
        return [ChatMessage.model_validate(data) for _, data in docs]

    # =========================================================================
    # Knowledge base
    # =========================================================================

    async def list_knowledge(self, tenant_id: str) -> list[KnowledgeDocument]:
        docs = await self.store.list(knowledge_collection(tenant_id))
        return [KnowledgeDocument.model_validate(data) for _, data in docs]

    async def get_knowledge(self, tenant_id: str, doc_id: str) -> KnowledgeDocument:
        data = await self.store.get(f"{knowledge_collection(tenant_id)}/{doc_id}")
        if data is None:
            raise NotFound("Documento não encontrado.")
        return KnowledgeDocument.model_validate(data)

    async def save_knowledge(self, doc: KnowledgeDocument) -> KnowledgeDocument:
        await self.store.set(
            f"{knowledge_collection(doc.tenant_id)}/{doc.id}",
            doc.model_dump(mode="json"),
        )
        return doc

    async def delete_knowledge(self, tenant_id: str, doc_id: str) -> None:
        await self.store.delete(f"{knowledge_collection(tenant_id)}/{doc_id}")

    # =========================================================================
    # Tenant settings
    # =========================================================================

    async def get_tenant_settings(self, tenant_id: str) -> TenantSettings:
        """Read prompt overrides and office identity concurrently."""
        root = tenant_root(tenant_id)
        prompts, office = await asyncio.gather(
            self.store.get(f"{root}/settings/prompts"),
            self.store.get(f"{root}/settings/office"),
        )
        return TenantSettings(
            prompts=PromptSettings.model_validate(prompts or {}),
            office=OfficeSettings.model_validate(office or {}),
        )

    async def save_prompt_settings(self, tenant_id: str, prompts: PromptSettings) -> None:
        await self.store.set(
            f"{tenant_root(tenant_id)}/settings/prompts",
            prompts.model_dump(exclude_none=True),
        )

    async def save_office_settings(self, tenant_id: str, office: OfficeSettings) -> None:
        await self.store.set(
            f"{tenant_root(tenant_id)}/settings/office",
            office.model_dump(exclude_none=True),
        )

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user_tenant(self, uid: str) -> str | None:
        data = await self.store.get(f"userIndex/{uid}")
        return UserIndexEntry.model_validate(data).tenant_id if data else None

    async def get_user(self, tenant_id: str, uid: str) -> UserProfile | None:
        data = await self.store.get(f"{tenant_root(tenant_id)}/users/{uid}")
        return UserProfile.model_validate(data) if data else None

    async def save_user(self, profile: UserProfile) -> UserProfile:
        """Write the profile and its index entry."""
        await self.store.set(
            f"{tenant_root(profile.tenant_id)}/users/{profile.uid}",
            profile.model_dump(mode="json"),
        )
        await self.store.set(
            f"userIndex/{profile.uid}",
            UserIndexEntry(tenant_id=profile.tenant_id).model_dump(),
        )
        return profile

    async def list_users(self, tenant_id: str) -> list[UserProfile]:
        docs = await self.store.list(f"{tenant_root(tenant_id)}/users")
        return [UserProfile.model_validate(data) for _, data in docs]


@lru_cache()
def get_repository() -> Repository:
    """Get repository instance."""
    return Repository()
