"""
Multimodal document analysis with Gemini.

Takes mixed text and inline file parts (PDF, images) and returns
structured JSON, audio transcriptions or document summaries.
"""

from dataclasses import dataclass
from functools import lru_cache

import structlog
from google import genai
from google.genai import types
from tenacity import retry, stop_after_attempt, wait_exponential

from advdesk.config import get_settings

logger = structlog.get_logger(__name__)

TRANSCRIPTION_PROMPT = (
    "Transcreva este áudio em português brasileiro com fidelidade. "
    "Retorne apenas o texto transcrito, sem comentários adicionais."
)


@dataclass(frozen=True)
class ContentPart:
    """Provider-neutral request part: either text or inline bytes."""

    text: str | None = None
    data: bytes | None = None
    mime_type: str | None = None
    source: str | None = None

    @classmethod
    def from_text(cls, text: str, source: str | None = None) -> "ContentPart":
        return cls(text=text, source=source)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str, source: str | None = None) -> "ContentPart":
        return cls(data=data, mime_type=mime_type, source=source)

    @property
    def is_text(self) -> bool:
        return self.text is not None


class MultimodalService:
    """
    Gemini-backed multimodal analysis service.

    All calls retry with exponential backoff before surfacing the error.
    """

    def __init__(self):
        settings = get_settings()
        self.settings = settings
        self.model = settings.multimodal_model
        self._client: genai.Client | None = None

        if settings.gemini_api_key:
            self._client = genai.Client(api_key=settings.gemini_api_key)

    @property
    def client(self) -> genai.Client:
        if not self._client:
            raise ValueError("Gemini client not configured. Set GEMINI_API_KEY.")
        return self._client

    def health_check(self) -> dict[str, bool]:
        return {"gemini": self._client is not None}

    @staticmethod
    def _to_part(part: ContentPart) -> types.Part:
        if part.is_text:
            return types.Part.from_text(text=part.text)
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(
        self,
        parts: list[ContentPart],
        system_instruction: str | None = None,
        json_output: bool = False,
    ) -> str:
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self.settings.multimodal_temperature,
            response_mime_type="application/json" if json_output else None,
        )
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[self._to_part(p) for p in parts],
            config=config,
        )
        return response.text or ""

    async def generate_json(self, system_instruction: str, parts: list[ContentPart]) -> str:
        """Run a structured request and return the raw JSON text."""
        text = await self._generate(parts, system_instruction=system_instruction, json_output=True)
        logger.info("multimodal_json_generated", model=self.model, parts=len(parts))
        return text

    async def transcribe(self, data: bytes, mime_type: str) -> str:
        """Verbatim Portuguese transcription of an audio file."""
        text = await self._generate(
            [ContentPart.from_bytes(data, mime_type), ContentPart.from_text(TRANSCRIPTION_PROMPT)]
        )
        return text.strip()

    async def describe(self, data: bytes, mime_type: str, instruction: str) -> str:
        """Summarize a document or image following `instruction`."""
        text = await self._generate(
            [ContentPart.from_bytes(data, mime_type), ContentPart.from_text(instruction)]
        )
        return text.strip()


@lru_cache()
def get_multimodal_service() -> MultimodalService:
    """Get multimodal service instance."""
    return MultimodalService()
