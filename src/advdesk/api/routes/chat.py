"""
Client intake chat routes.
"""

from typing import Any

from fastapi import APIRouter, Depends

from advdesk.api.deps import get_auth, get_orchestrator
from advdesk.models.api import (
    ChatReportRequest,
    ChatReportResponse,
    ChatTurnRequest,
    ChatTurnResponse,
    CreateChatSessionRequest,
)
from advdesk.models.tenant import AuthContext
from advdesk.pipeline.orchestrator import PipelineOrchestrator

router = APIRouter()


@router.post("", status_code=201)
async def create_session(
    request: CreateChatSessionRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    session = await orchestrator.create_chat_session(
        auth,
        client_name=request.client_name,
        area=request.area,
        description=request.description,
    )
    return session.model_dump(mode="json")


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    session = await orchestrator.get_chat_session(auth, session_id)
    return session.model_dump(mode="json")


@router.get("/{session_id}/messages")
async def list_messages(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    messages = await orchestrator.list_chat_messages(auth, session_id)
    return {"messages": [m.model_dump(mode="json") for m in messages]}


@router.post("/{session_id}/close")
async def close_session(
    session_id: str,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    session = await orchestrator.close_chat_session(auth, session_id)
    return session.model_dump(mode="json")


@router.post("/{session_id}/messages", response_model=ChatTurnResponse)
async def send_message(
    session_id: str,
    request: ChatTurnRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> ChatTurnResponse:
    message = await orchestrator.send_chat_turn(
        auth,
        session_id,
        message=request.message,
        history=request.history,
        client_name=request.client_name,
        area=request.area,
        attachment_ref=request.attachment_ref,
    )
    return ChatTurnResponse(response_text=message.content, message_id=message.id)


@router.post("/{session_id}/report", response_model=ChatReportResponse)
async def generate_report(
    session_id: str,
    request: ChatReportRequest,
    auth: AuthContext = Depends(get_auth),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> ChatReportResponse:
    """Summarize the conversation into an intake report and render it to DOCX."""
    session = await orchestrator.generate_chat_report(
        auth,
        session_id,
        client_name=request.client_name,
        area=request.area,
    )
    return ChatReportResponse(
        report=session.report,
        document_url=session.rendered_document.url,
        document_path=session.rendered_document.path,
    )
