"""
Knowledge context resolution and knowledge base management.
"""

from functools import lru_cache
from uuid import uuid4

import structlog

from advdesk.config import get_settings
from advdesk.models.knowledge import GENERAL_AREA, KnowledgeCategory, KnowledgeDocument
from advdesk.models.tenant import AuthContext
from advdesk.services.accounts import require_admin
from advdesk.services.attachments import media_type
from advdesk.storage.blobs import BlobStore, clean_segment, get_blob_store
from advdesk.storage.repositories import Repository, get_repository

logger = structlog.get_logger(__name__)


def select_documents(
    docs: list[KnowledgeDocument],
    area: str | None,
    limit: int = 5,
) -> list[KnowledgeDocument]:
    """
    Pick the context documents for an area.

    Tiers, first non-empty wins: documents tagged with the area, documents
    tagged `general`, then the most recent documents. Each tier is ordered
    newest first.
    """
    ordered = sorted(docs, key=lambda d: d.created_at, reverse=True)
    if area:
        tagged = [d for d in ordered if d.covers(area)]
        if tagged:
            return tagged[:limit]
        general = [d for d in ordered if d.covers(GENERAL_AREA)]
        if general:
            return general[:limit]
    return ordered[:limit]


class KnowledgeService:
    """Tenant knowledge base: context resolution plus admin upload/delete."""

    def __init__(
        self,
        repository: Repository | None = None,
        blobs: BlobStore | None = None,
        limit: int | None = None,
    ):
        self.repository = repository or get_repository()
        self.blobs = blobs or get_blob_store()
        self.limit = limit or get_settings().knowledge_context_limit

    async def resolve(self, tenant_id: str, area: str | None = None) -> list[str]:
        """Blob paths of up to `limit` knowledge documents for `area`."""
        docs = await self.repository.list_knowledge(tenant_id)
        selected = select_documents(docs, area, self.limit)
        logger.debug(
            "knowledge_context_resolved",
            tenant_id=tenant_id,
            area=area,
            available=len(docs),
            selected=len(selected),
        )
        return [d.blob_path for d in selected]

    async def list_documents(self, auth: AuthContext) -> list[KnowledgeDocument]:
        docs = await self.repository.list_knowledge(auth.tenant_id)
        return sorted(docs, key=lambda d: d.created_at, reverse=True)

    async def upload_document(
        self,
        auth: AuthContext,
        filename: str,
        data: bytes,
        name: str | None = None,
        category: KnowledgeCategory = KnowledgeCategory.OTHER,
        areas: list[str] | None = None,
    ) -> KnowledgeDocument:
        require_admin(auth)
        doc_id = uuid4().hex
        doc = KnowledgeDocument(
            id=doc_id,
            tenant_id=auth.tenant_id,
            owner_id=auth.uid,
            name=name or filename,
            category=category,
            areas=sorted({a.strip() for a in (areas or []) if a.strip()}),
            blob_path=f"{auth.tenant_prefix}knowledge/{doc_id}/{clean_segment(filename)}",
            size=len(data),
            mime_type=media_type(filename)[0],
        )
        await self.blobs.upload(doc.blob_path, data, doc.mime_type)
        await self.repository.save_knowledge(doc)
        logger.info(
            "knowledge_document_uploaded",
            tenant_id=auth.tenant_id,
            doc_id=doc.id,
            category=doc.category.value,
            areas=doc.areas,
        )
        return doc

    async def delete_document(self, auth: AuthContext, doc_id: str) -> None:
        """Delete the document and its blob."""
        require_admin(auth)
        doc = await self.repository.get_knowledge(auth.tenant_id, doc_id)
        await self.blobs.delete(doc.blob_path)
        await self.repository.delete_knowledge(auth.tenant_id, doc_id)
        logger.info("knowledge_document_deleted", tenant_id=auth.tenant_id, doc_id=doc_id)


@lru_cache()
def get_knowledge_service() -> KnowledgeService:
    """Get knowledge service instance."""
    return KnowledgeService()
