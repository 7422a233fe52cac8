"""
Knowledge base models.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from advdesk.models.pipeline import utcnow

GENERAL_AREA = "general"


class KnowledgeCategory(str, Enum):
    MODELS = "modelos"
    CASE_LAW = "jurisprudencia"
    FEES = "honorarios"
    PROCEDURES = "procedimentos"
    OTHER = "outro"


class KnowledgeDocument(BaseModel):
    """A tenant reference document used as model context."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    tenant_id: str
    owner_id: str
    name: str
    category: KnowledgeCategory = KnowledgeCategory.OTHER
    areas: list[str] = Field(default_factory=list)
    blob_path: str
    size: int = 0
    mime_type: str = "application/octet-stream"
    created_at: datetime = Field(default_factory=utcnow)

    def covers(self, area: str) -> bool:
        return area in self.areas
