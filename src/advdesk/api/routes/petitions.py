"""
Petition pipeline routes.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from advdesk.api.deps import get_auth, get_orchestrator
from advdesk.models.api import (
    AnalyzeCaseRequest,
    BuildStructureRequest,
    CaseAnalysisResponse,
    CreatePetitionRequest,
    DocumentResponse,
    GenerateDocumentRequest,
)
from advdesk.models.pipeline import PetitionStructure
from advdesk.models.tenant import AuthContext
from advdesk.pipeline.orchestrator import PipelineOrchestrator

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("", status_code=201)
async def create_petition(
    request: CreatePetitionRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Open a new petition draft."""
    record = await orchestrator.create_petition(
        auth,
        title=request.title,
        area=request.area,
        doc_type=request.doc_type,
        facts=request.facts,
        attachment_refs=request.attachment_refs,
    )
    return record.model_dump(mode="json")


@router.get("")
async def list_petitions(
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    records = await orchestrator.list_petitions(auth)
    return {
        "petitions": [r.model_dump(mode="json") for r in records],
        "total": len(records),
    }


@router.get("/{record_id}")
async def get_petition(
    record_id: str,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    record = await orchestrator.get_petition(auth, record_id)
    return record.model_dump(mode="json")


@router.post("/{record_id}/analyze", response_model=CaseAnalysisResponse)
async def analyze_case(
    record_id: str,
    request: AnalyzeCaseRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> CaseAnalysisResponse:
    """
    Analyze facts and case files.

    Returns the case summary, legal theses and the strategic questions the
    lawyer must answer before structuring.
    """
    record = await orchestrator.analyze_case(
        auth,
        record_id,
        facts=request.facts,
        attachment_refs=request.attachment_refs,
        area=request.area,
        doc_type=request.doc_type,
    )
    return CaseAnalysisResponse(
        summary=record.analysis.summary,
        theses=record.analysis.theses,
        questions=record.analysis.questions,
    )


@router.post("/{record_id}/structure", response_model=PetitionStructure)
async def build_structure(
    record_id: str,
    request: BuildStructureRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> PetitionStructure:
    record = await orchestrator.build_structure(
        auth,
        record_id,
        answers=request.answers,
        facts=request.facts,
        area=request.area,
        doc_type=request.doc_type,
    )
    return record.structure


@router.post("/{record_id}/generate", response_model=DocumentResponse)
async def generate_document(
    record_id: str,
    request: GenerateDocumentRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> DocumentResponse:
    """Write the full petition and render it to DOCX."""
    record = await orchestrator.generate_document(
        auth,
        record_id,
        answers=request.answers,
        structure=request.structure,
    )
    return DocumentResponse(
        text=record.generated_text,
        document_url=record.rendered_document.url,
        document_path=record.rendered_document.path,
    )
