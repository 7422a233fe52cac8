"""
Judge review routes.
"""

from typing import Any

from fastapi import APIRouter, Depends

from advdesk.api.deps import get_auth, get_orchestrator
from advdesk.models.api import (
    AnalyzeReviewRequest,
    CreateReviewRequest,
    GenerateReviewRequest,
    ReviewAnalysisResponse,
    ReviewReportResponse,
)
from advdesk.models.tenant import AuthContext
from advdesk.pipeline.orchestrator import PipelineOrchestrator

router = APIRouter()


@router.post("", status_code=201)
async def create_review(
    request: CreateReviewRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    record = await orchestrator.create_review(
        auth,
        description=request.description,
        petition_text=request.petition_text,
        source_petition_id=request.source_petition_id,
        attachment_refs=request.attachment_refs,
        main_file_ref=request.main_file_ref,
        title=request.title,
    )
    return record.model_dump(mode="json")


@router.get("")
async def list_reviews(
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    records = await orchestrator.list_reviews(auth)
    return {
        "reviews": [r.model_dump(mode="json") for r in records],
        "total": len(records),
    }


@router.get("/{record_id}")
async def get_review(
    record_id: str,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    record = await orchestrator.get_review(auth, record_id)
    return record.model_dump(mode="json")


@router.post("/{record_id}/analyze", response_model=ReviewAnalysisResponse)
async def analyze_for_review(
    record_id: str,
    request: AnalyzeReviewRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> ReviewAnalysisResponse:
    record = await orchestrator.analyze_for_review(
        auth,
        record_id,
        description=request.description,
        petition_text=request.petition_text,
        attachment_refs=request.attachment_refs,
        main_file_ref=request.main_file_ref,
    )
    return ReviewAnalysisResponse(
        summary=record.analysis.summary,
        impression=record.analysis.impression or "",
        questions=record.analysis.questions,
    )


@router.post("/{record_id}/generate", response_model=ReviewReportResponse)
async def generate_review(
    record_id: str,
    request: GenerateReviewRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> ReviewReportResponse:
    """Write the judge report and render it to DOCX."""
    record = await orchestrator.generate_review(
        auth,
        record_id,
        answers=request.answers,
        petition_text=request.petition_text,
        description=request.description,
    )
    return ReviewReportResponse(
        report=record.report,
        document_url=record.rendered_document.url,
        document_path=record.rendered_document.path,
    )
