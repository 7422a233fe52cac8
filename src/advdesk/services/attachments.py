"""
Attachment preprocessing.

Turns blob paths into request parts for the multimodal analyzer. Audio is
transcribed first; documents and images travel inline with their media type.
A file that cannot be fetched or transcribed is logged and skipped.
"""

from enum import Enum
from pathlib import PurePosixPath

import structlog

from advdesk.errors import AdvdeskError, AttachmentUnavailable
from advdesk.services.multimodal_service import ContentPart
from advdesk.services.providers import MultimodalAnalyzer
from advdesk.storage.blobs import BlobStore

logger = structlog.get_logger(__name__)

DOCUMENT_SUMMARY_PROMPT = "Extraia e resuma o conteúdo deste documento em português:"
KNOWLEDGE_SUMMARY_PROMPT = (
    "Extraia o conteúdo relevante destes documentos da base de conhecimento "
    "do escritório, de forma resumida:"
)


class MediaKind(str, Enum):
    DOCUMENT = "document"
    IMAGE = "image"
    AUDIO = "audio"
    BINARY = "binary"


MEDIA_TYPES: dict[str, tuple[str, MediaKind]] = {
    ".pdf": ("application/pdf", MediaKind.DOCUMENT),
    ".png": ("image/png", MediaKind.IMAGE),
    ".jpg": ("image/jpeg", MediaKind.IMAGE),
    ".jpeg": ("image/jpeg", MediaKind.IMAGE),
    ".webp": ("image/webp", MediaKind.IMAGE),
    ".mp3": ("audio/mpeg", MediaKind.AUDIO),
    ".m4a": ("audio/mp4", MediaKind.AUDIO),
    ".wav": ("audio/wav", MediaKind.AUDIO),
}

BINARY_TYPE = ("application/octet-stream", MediaKind.BINARY)


def media_type(path: str) -> tuple[str, MediaKind]:
    """Infer (mime type, kind) from the file-name suffix."""
    return MEDIA_TYPES.get(PurePosixPath(path).suffix.lower(), BINARY_TYPE)


def is_audio(path: str) -> bool:
    return media_type(path)[1] == MediaKind.AUDIO


class AttachmentPreprocessor:
    """Loads case files and knowledge documents as request parts."""

    def __init__(self, blobs: BlobStore, multimodal: MultimodalAnalyzer):
        self.blobs = blobs
        self.multimodal = multimodal

    async def _fetch(self, path: str) -> bytes:
        try:
            return await self.blobs.download(path)
        except AdvdeskError as e:
            raise AttachmentUnavailable(path, e.message) from e
        except OSError as e:
            raise AttachmentUnavailable(path, str(e)) from e

    async def load_attachment(self, path: str) -> ContentPart:
        """
        Load one file.

        Raises AttachmentUnavailable when the file cannot be fetched or
        transcribed.
        """
        mime_type, kind = media_type(path)
        data = await self._fetch(path)

        if kind == MediaKind.AUDIO:
            try:
                transcript = await self.multimodal.transcribe(data, mime_type)
            except Exception as e:
                raise AttachmentUnavailable(path, f"transcription failed: {e}") from e
            return ContentPart.from_text(f"[Transcrição de áudio]: {transcript}", source=path)

        return ContentPart.from_bytes(data, mime_type, source=path)

    async def load(self, paths: list[str]) -> list[ContentPart]:
        """Load case attachments in order, skipping unavailable files."""
        parts = []
        for path in paths:
            try:
                parts.append(await self.load_attachment(path))
            except AttachmentUnavailable as e:
                logger.warning("attachment_skipped", path=path, reason=e.reason)
        return parts

    async def load_knowledge(self, paths: list[str]) -> list[ContentPart]:
        """Load knowledge documents; audio is never used as context."""
        return await self.load([p for p in paths if not is_audio(p)])

    async def describe_attachment(self, path: str) -> str | None:
        """Transcript for audio, model summary for anything else."""
        mime_type, kind = media_type(path)
        try:
            data = await self._fetch(path)
            if kind == MediaKind.AUDIO:
                return await self.multimodal.transcribe(data, mime_type)
            return await self.multimodal.describe(data, mime_type, DOCUMENT_SUMMARY_PROMPT)
        except AttachmentUnavailable as e:
            logger.warning("attachment_skipped", path=path, reason=e.reason)
        except Exception as e:
            logger.warning("attachment_description_failed", path=path, error=str(e))
        return None

    async def summarize_knowledge(self, paths: list[str]) -> str:
        """Short text digest of knowledge documents for chat context."""
        summaries = []
        for path in paths:
            if is_audio(path):
                continue
            mime_type, _ = media_type(path)
            try:
                data = await self._fetch(path)
                summaries.append(
                    await self.multimodal.describe(data, mime_type, KNOWLEDGE_SUMMARY_PROMPT)
                )
            except AttachmentUnavailable as e:
                logger.warning("knowledge_document_skipped", path=path, reason=e.reason)
            except Exception as e:
                logger.warning("knowledge_summary_failed", path=path, error=str(e))
        return "\n\n".join(s for s in summaries if s)
