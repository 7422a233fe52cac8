"""
Structured report models returned by the generation stage.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SuccessProbability(str, Enum):
    """Likelihood of a favourable ruling."""

    HIGH = "Alta"
    MEDIUM = "Média"
    LOW = "Baixa"


_PROBABILITY_ALIASES = {
    "alta": SuccessProbability.HIGH,
    "high": SuccessProbability.HIGH,
    "média": SuccessProbability.MEDIUM,
    "media": SuccessProbability.MEDIUM,
    "medium": SuccessProbability.MEDIUM,
    "baixa": SuccessProbability.LOW,
    "low": SuccessProbability.LOW,
}


class Suggestion(BaseModel):
    """An improvement proposed by the judge review."""

    title: str
    text: str


class JudgeReport(BaseModel):
    """Critique of a petition from a judge's perspective."""

    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    evidence_gaps: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    success_probability: SuccessProbability
    probability_rationale: str = ""
    suggestions: list[Suggestion] = Field(default_factory=list)

    @field_validator("success_probability", mode="before")
    @classmethod
    def normalize_probability(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _PROBABILITY_ALIASES.get(v.strip().lower(), v)
        return v


class ChatReport(BaseModel):
    """Case report produced from a client intake conversation."""

    client_name: str
    area: str
    case_summary: str
    legal_analysis: str
    theses: list[str] = Field(default_factory=list)
    fee_proposal: str | None = None
    next_steps: list[str] = Field(default_factory=list)
