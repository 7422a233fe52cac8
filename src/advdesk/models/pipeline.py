"""
Pipeline record models for petitions and judge reviews.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from advdesk.models.reports import JudgeReport


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PipelineKind(str, Enum):
    """Which stage sequence a record follows."""

    PETITION = "petition"
    JUDGE_REVIEW = "judge_review"
    CHAT_REPORT = "chat_report"


class PipelineStatus(str, Enum):
    """Pipeline execution status."""

    DRAFT = "draft"
    ANALYZING = "analyzing"
    QUESTIONS = "questions"
    STRUCTURING = "structuring"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


STAGE_SEQUENCES: dict[PipelineKind, tuple[PipelineStatus, ...]] = {
    PipelineKind.PETITION: (
        PipelineStatus.DRAFT,
        PipelineStatus.ANALYZING,
        PipelineStatus.QUESTIONS,
        PipelineStatus.STRUCTURING,
        PipelineStatus.GENERATING,
        PipelineStatus.COMPLETED,
    ),
    PipelineKind.JUDGE_REVIEW: (
        PipelineStatus.ANALYZING,
        PipelineStatus.QUESTIONS,
        PipelineStatus.GENERATING,
        PipelineStatus.COMPLETED,
    ),
    PipelineKind.CHAT_REPORT: (
        PipelineStatus.GENERATING,
        PipelineStatus.COMPLETED,
    ),
}

TERMINAL_STATUSES = frozenset({PipelineStatus.COMPLETED, PipelineStatus.ERROR})


class AnswerKind(str, Enum):
    FREE_TEXT = "free_text"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"


# Legacy names the models sometimes emit for question kinds
_ANSWER_KIND_ALIASES = {
    "text": AnswerKind.FREE_TEXT,
    "radio": AnswerKind.SINGLE_CHOICE,
    "checkbox": AnswerKind.MULTI_CHOICE,
}


class StrategicQuestion(BaseModel):
    """A clarifying question generated between stages."""

    id: int = Field(..., ge=0)
    prompt: str = Field(..., min_length=1)
    kind: AnswerKind = AnswerKind.FREE_TEXT
    options: list[str] = Field(default_factory=list)

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _ANSWER_KIND_ALIASES.get(v.strip().lower(), v.strip().lower())
        return v

    @model_validator(mode="after")
    def check_options(self) -> "StrategicQuestion":
        if self.kind != AnswerKind.FREE_TEXT and not self.options:
            raise ValueError(f"question {self.id} is {self.kind.value} but has no options")
        return self


class Analysis(BaseModel):
    """Result of an analysis stage (case or review)."""

    summary: str
    theses: list[str] = Field(default_factory=list)
    impression: str | None = None
    questions: list[StrategicQuestion]

    @model_validator(mode="after")
    def check_unique_ids(self) -> "Analysis":
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique")
        return self

    def question_ids(self) -> set[str]:
        return {str(q.id) for q in self.questions}


class StructureSection(BaseModel):
    """One outline unit of a petition."""

    id: str
    title: str = Field(..., min_length=1)
    summary: str = ""
    subpoints: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class PetitionStructure(BaseModel):
    """Document outline produced by the structuring stage."""

    forum: str
    parties: dict[str, str]
    sections: list[StructureSection] = Field(..., min_length=1)
    relief_requested: list[str] = Field(default_factory=list)


class RenderedDocument(BaseModel):
    """Reference to the rendered DOCX artifact."""

    path: str
    url: str


AnswerValue = str | list[str]


class PipelineRecord(BaseModel):
    """
    A petition or judge review workflow instance.

    The model validates the record invariants on construction, so every
    transition goes through `advance` / `fail` which rebuild the record.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    tenant_id: str
    owner_id: str
    kind: PipelineKind
    status: PipelineStatus

    title: str = ""
    area: str | None = None
    doc_type: str | None = None

    input_facts: str = ""
    attachment_refs: list[str] = Field(default_factory=list)

    # Judge review inputs
    petition_text: str | None = None
    main_file_ref: str | None = None
    source_petition_id: str | None = None

    analysis: Analysis | None = None
    answers: dict[str, AnswerValue] = Field(default_factory=dict)
    structure: PetitionStructure | None = None
    generated_text: str | None = None
    report: JudgeReport | None = None
    rendered_document: RenderedDocument | None = None

    last_good_status: PipelineStatus | None = None
    failed_stage: str | None = None
    error_code: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def sequence(self) -> tuple[PipelineStatus, ...]:
        return STAGE_SEQUENCES[self.kind]

    @property
    def effective_status(self) -> PipelineStatus:
        """Status used for transition checks; errors resume from the last good one."""
        if self.status == PipelineStatus.ERROR:
            return self.last_good_status or self.sequence[0]
        return self.status

    def position(self, status: PipelineStatus | None = None) -> int:
        return self.sequence.index(status or self.effective_status)

    def has_reached(self, status: PipelineStatus) -> bool:
        return self.position() >= self.sequence.index(status)

    @property
    def has_output(self) -> bool:
        return self.generated_text is not None or self.report is not None

    @model_validator(mode="after")
    def check_invariants(self) -> "PipelineRecord":
        sequence = STAGE_SEQUENCES[self.kind]
        if self.status != PipelineStatus.ERROR and self.status not in sequence:
            raise ValueError(f"status {self.status.value} is not valid for {self.kind.value}")
        if self.status == PipelineStatus.ERROR:
            if self.last_good_status is not None and self.last_good_status not in sequence:
                raise ValueError("last_good_status is not part of the pipeline")

        reached_questions = (
            PipelineStatus.QUESTIONS in sequence
            and self.position() >= sequence.index(PipelineStatus.QUESTIONS)
        )
        if reached_questions != (self.analysis is not None):
            raise ValueError("analysis must be set exactly when the questions stage is reached")

        if self.analysis is not None and self.answers:
            validate_answers(self.analysis, self.answers, require_complete=False)

        if self.has_output != (self.rendered_document is not None):
            raise ValueError("document output and rendered_document must be set together")
        if self.status == PipelineStatus.COMPLETED and (
            self.rendered_document is None or not self.has_output
        ):
            raise ValueError("completed records require output and rendered_document")
        return self

    def advance(self, status: PipelineStatus, **changes: Any) -> "PipelineRecord":
        """Return a validated copy moved forward to `status`."""
        current = self.position()
        target = self.sequence.index(status)
        if target < current:
            raise ValueError(
                f"cannot move {self.kind.value} record from {self.effective_status.value} "
                f"back to {status.value}"
            )
        data = self.model_dump()
        data.update(changes)
        data.update(
            status=status,
            last_good_status=None,
            failed_stage=None,
            error_code=None,
            updated_at=utcnow(),
        )
        return PipelineRecord.model_validate(data)

    def fail(self, stage: str, error_code: str) -> "PipelineRecord":
        """Return a copy in the error state that remembers where to resume."""
        data = self.model_dump()
        data.update(
            status=PipelineStatus.ERROR,
            last_good_status=self.effective_status,
            failed_stage=stage,
            error_code=error_code,
            updated_at=utcnow(),
        )
        return PipelineRecord.model_validate(data)


def _is_answered(value: AnswerValue) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return any(isinstance(v, str) and v.strip() for v in value)


def validate_answers(
    analysis: Analysis,
    answers: dict[str, AnswerValue],
    require_complete: bool = True,
) -> None:
    """
    Check answers against the analysis questions.

    Raises ValueError naming the first offending question.
    """
    questions = {str(q.id): q for q in analysis.questions}

    for key, value in answers.items():
        question = questions.get(str(key))
        if question is None:
            raise ValueError(f"answer references unknown question {key}")
        if question.kind == AnswerKind.MULTI_CHOICE:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"question {key} expects a list of options")
        elif not isinstance(value, str):
            raise ValueError(f"question {key} expects a single text answer")

    if require_complete:
        missing = [
            qid for qid in questions
            if qid not in answers or not _is_answered(answers[qid])
        ]
        if missing:
            raise ValueError(f"unanswered questions: {', '.join(sorted(missing, key=int))}")
