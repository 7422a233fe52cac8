"""
Chat intake session models.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from advdesk.models.pipeline import RenderedDocument, utcnow
from advdesk.models.reports import ChatReport


class ChatSessionStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatSession(BaseModel):
    """A client intake conversation."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    tenant_id: str
    owner_id: str
    client_name: str
    area: str
    description: str | None = None
    status: ChatSessionStatus = ChatSessionStatus.ACTIVE
    last_message: str | None = None
    last_message_at: datetime | None = None
    report: ChatReport | None = None
    rendered_document: RenderedDocument | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == ChatSessionStatus.ACTIVE


class ChatMessage(BaseModel):
    """A single persisted message of a chat session."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    session_id: str
    role: ChatRole
    content: str
    attachment_ref: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class ChatTurn(BaseModel):
    """History entry passed by the caller to a chat turn."""

    role: ChatRole
    content: str
