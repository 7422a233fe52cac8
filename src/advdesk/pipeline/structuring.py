"""
Structuring stage

Builds the petition outline (forum, parties, sections, relief) from the
analysis and the lawyer's answers, using knowledge documents as formatting
precedent.
"""

import structlog
from pydantic import ValidationError

from advdesk.errors import StructuringFailed
from advdesk.models.pipeline import AnswerValue, Analysis, PetitionStructure
from advdesk.services.attachments import AttachmentPreprocessor
from advdesk.services.multimodal_service import ContentPart
from advdesk.services.prompts import apply_custom_instructions, structure_prompt
from advdesk.services.providers import AIProviders
from advdesk.services.response_parsing import extract_json_object

logger = structlog.get_logger(__name__)


def decode_structure(raw: str) -> PetitionStructure:
    data = extract_json_object(raw, StructuringFailed)
    if not data.get("sections"):
        raise StructuringFailed("A estrutura gerada não contém tópicos.")
    if not isinstance(data.get("parties"), dict):
        raise StructuringFailed("A estrutura gerada não identifica as partes.")
    try:
        return PetitionStructure.model_validate(data)
    except ValidationError as e:
        logger.error("structure_response_invalid", errors=e.errors(include_url=False))
        raise StructuringFailed() from e


class StructuringStage:
    """Petition outline generation."""

    def __init__(self, providers: AIProviders, attachments: AttachmentPreprocessor):
        self.providers = providers
        self.attachments = attachments

    async def build_structure(
        self,
        facts: str,
        area: str,
        doc_type: str,
        analysis: Analysis,
        answers: dict[str, AnswerValue],
        knowledge_refs: list[str],
        custom_instructions: str | None = None,
    ) -> PetitionStructure:
        prompt = structure_prompt(
            facts, area, doc_type, analysis.summary, analysis.theses, answers
        )
        instruction = apply_custom_instructions(prompt, custom_instructions)
        parts = await self.attachments.load_knowledge(knowledge_refs)
        if not parts:
            parts = [ContentPart.from_text("Sem modelos do escritório disponíveis.")]

        try:
            raw = await self.providers.multimodal.generate_json(instruction, parts)
        except Exception as e:
            logger.error("structuring_provider_failed", error=str(e))
            raise StructuringFailed() from e

        structure = decode_structure(raw)
        logger.info(
            "structure_built",
            sections=len(structure.sections),
            relief=len(structure.relief_requested),
        )
        return structure
