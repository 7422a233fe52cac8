"""
Pydantic models for ADVDESK.

This module contains all data models used throughout the application:
- Pipeline records for petitions and judge reviews
- Structured reports produced by the generation stage
- Chat sessions and messages
- Knowledge base documents
- Tenant, user and settings models
- API models for request/response schemas
"""

from advdesk.models.pipeline import (
    Analysis,
    AnswerKind,
    PetitionStructure,
    PipelineKind,
    PipelineRecord,
    PipelineStatus,
    RenderedDocument,
    StrategicQuestion,
    StructureSection,
    validate_answers,
)
from advdesk.models.reports import ChatReport, JudgeReport, Suggestion, SuccessProbability
from advdesk.models.chat import ChatMessage, ChatRole, ChatSession, ChatSessionStatus, ChatTurn
from advdesk.models.knowledge import GENERAL_AREA, KnowledgeCategory, KnowledgeDocument
from advdesk.models.tenant import (
    AuthContext,
    OfficeSettings,
    PromptSettings,
    TenantSettings,
    UserProfile,
    UserRole,
)

__all__ = [
    # Pipeline models
    "Analysis",
    "AnswerKind",
    "PetitionStructure",
    "PipelineKind",
    "PipelineRecord",
    "PipelineStatus",
    "RenderedDocument",
    "StrategicQuestion",
    "StructureSection",
    "validate_answers",
    # Report models
    "ChatReport",
    "JudgeReport",
    "Suggestion",
    "SuccessProbability",
    # Chat models
    "ChatMessage",
    "ChatRole",
    "ChatSession",
    "ChatSessionStatus",
    "ChatTurn",
    # Knowledge models
    "GENERAL_AREA",
    "KnowledgeCategory",
    "KnowledgeDocument",
    # Tenant models
    "AuthContext",
    "OfficeSettings",
    "PromptSettings",
    "TenantSettings",
    "UserProfile",
    "UserRole",
]
