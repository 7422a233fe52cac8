"""
Knowledge base routes.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile

from advdesk.api.deps import get_auth, get_knowledge
from advdesk.errors import InvalidArgument
from advdesk.models.knowledge import KnowledgeCategory
from advdesk.models.tenant import AuthContext
from advdesk.services.knowledge import KnowledgeService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("")
async def list_documents(
    auth: AuthContext = Depends(get_auth),
    knowledge: KnowledgeService = Depends(get_knowledge),
) -> dict[str, Any]:
    docs = await knowledge.list_documents(auth)
    return {"documents": [d.model_dump(mode="json") for d in docs], "total": len(docs)}


@router.post("", status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    name: str = Form(default=""),
    category: KnowledgeCategory = Form(default=KnowledgeCategory.OTHER),
    areas: str = Form(default="", description="Comma-separated area tags"),
    auth: AuthContext = Depends(get_auth),
    knowledge: KnowledgeService = Depends(get_knowledge),
) -> dict[str, Any]:
    """Upload a reference document (admin only)."""
    if not file.filename:
        raise InvalidArgument("Arquivo sem nome.")
    content = await file.read()
    if not content:
        raise InvalidArgument("Arquivo vazio.")

    doc = await knowledge.upload_document(
        auth,
        filename=file.filename,
        data=content,
        name=name or None,
        category=category,
        areas=[a for a in areas.split(",") if a.strip()],
    )
    return doc.model_dump(mode="json")


@router.delete("/{doc_id}")
async def delete_document(
    doc_id: str,
    auth: AuthContext = Depends(get_auth),
    knowledge: KnowledgeService = Depends(get_knowledge),
) -> dict[str, Any]:
    await knowledge.delete_document(auth, doc_id)
    return {"success": True}
