"""
API request and response models.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from advdesk.models.chat import ChatTurn
from advdesk.models.knowledge import KnowledgeCategory
from advdesk.models.pipeline import AnswerValue, PetitionStructure, StrategicQuestion
from advdesk.models.reports import ChatReport, JudgeReport
from advdesk.models.tenant import UserRole


# =============================================================================
# Petition Models
# =============================================================================


class CreatePetitionRequest(BaseModel):
    """Request to open a new petition draft."""

    title: str = Field(..., min_length=1)
    area: str = Field(..., min_length=1, description="Legal area tag")
    doc_type: str = Field(..., min_length=1, description="Petition type")
    facts: str = Field(default="", description="Case facts")
    attachment_refs: list[str] = Field(default_factory=list)


class AnalyzeCaseRequest(BaseModel):
    """Request to run the case analysis stage.

    Omitted fields fall back to the values stored on the record.
    """

    facts: str | None = None
    attachment_refs: list[str] | None = None
    area: str | None = None
    doc_type: str | None = None


class CaseAnalysisResponse(BaseModel):
    summary: str
    theses: list[str]
    questions: list[StrategicQuestion]


class BuildStructureRequest(BaseModel):
    """Request to build the petition outline from the answered questions."""

    answers: dict[str, AnswerValue]
    facts: str | None = None
    area: str | None = None
    doc_type: str | None = None


class GenerateDocumentRequest(BaseModel):
    """Request to write the full petition.

    `structure` may carry an outline edited by the lawyer.
    """

    answers: dict[str, AnswerValue] | None = None
    structure: PetitionStructure | None = None


class DocumentResponse(BaseModel):
    text: str
    document_url: str
    document_path: str


# =============================================================================
# Judge Review Models
# =============================================================================


class CreateReviewRequest(BaseModel):
    """Request to open a judge review."""

    title: str = ""
    description: str = Field(..., min_length=1, description="Case description")
    petition_text: str | None = None
    source_petition_id: str | None = None
    attachment_refs: list[str] = Field(default_factory=list)
    main_file_ref: str | None = None


class AnalyzeReviewRequest(BaseModel):
    description: str | None = None
    petition_text: str | None = None
    attachment_refs: list[str] | None = None
    main_file_ref: str | None = None


class ReviewAnalysisResponse(BaseModel):
    summary: str
    impression: str
    questions: list[StrategicQuestion]


class GenerateReviewRequest(BaseModel):
    answers: dict[str, AnswerValue] | None = None
    petition_text: str | None = None
    description: str | None = None


class ReviewReportResponse(BaseModel):
    report: JudgeReport
    document_url: str
    document_path: str


# =============================================================================
# Chat Models
# =============================================================================


class CreateChatSessionRequest(BaseModel):
    client_name: str = Field(..., min_length=1)
    area: str = Field(..., min_length=1)
    description: str | None = None


class ChatTurnRequest(BaseModel):
    """A new user message plus the conversation so far."""

    message: str = Field(..., min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)
    client_name: str | None = None
    area: str | None = None
    attachment_ref: str | None = None


class ChatTurnResponse(BaseModel):
    response_text: str
    message_id: str


class ChatReportRequest(BaseModel):
    client_name: str | None = None
    area: str | None = None


class ChatReportResponse(BaseModel):
    report: ChatReport
    document_url: str
    document_path: str


# =============================================================================
# Accounts, Knowledge and Files
# =============================================================================


class InviteUserRequest(BaseModel):
    email: str = Field(..., min_length=3)
    display_name: str = ""
    role: UserRole = UserRole.LAWYER


class KnowledgeUploadMetadata(BaseModel):
    name: str
    category: KnowledgeCategory = KnowledgeCategory.OTHER
    areas: list[str] = Field(default_factory=list)


class DownloadUrlRequest(BaseModel):
    path: str = Field(..., min_length=1)


class DownloadUrlResponse(BaseModel):
    url: str
    expires_at: datetime


class UploadResponse(BaseModel):
    path: str
    size: int
    mime_type: str
