"""
AI capability interfaces and the provider bundle injected into stages.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

from advdesk.services.llm_service import get_llm_service
from advdesk.services.multimodal_service import ContentPart, get_multimodal_service


class MultimodalAnalyzer(Protocol):
    """Structured analysis over mixed text, documents and images."""

    async def generate_json(self, system_instruction: str, parts: list[ContentPart]) -> str: ...
    async def transcribe(self, data: bytes, mime_type: str) -> str: ...
    async def describe(self, data: bytes, mime_type: str, instruction: str) -> str: ...


class TextGenerator(Protocol):
    """Single-shot and multi-turn text generation."""

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
        use_fallback: bool = True,
    ) -> tuple[str, str]: ...

    async def chat(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        model: str | None = None,
    ) -> tuple[str, str]: ...


@dataclass
class AIProviders:
    """The two capabilities every pipeline stage may call."""

    multimodal: MultimodalAnalyzer
    text: TextGenerator


@lru_cache()
def get_ai_providers() -> AIProviders:
    """Get the configured provider bundle."""
    return AIProviders(multimodal=get_multimodal_service(), text=get_llm_service())
