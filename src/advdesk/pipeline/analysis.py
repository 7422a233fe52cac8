"""
Analysis stage

Sends facts, case files and knowledge context to the multimodal analyzer and
decodes a summary, theses and strategic questions.
"""

import structlog
from pydantic import ValidationError

from advdesk.errors import AnalysisFailed
from advdesk.models.pipeline import Analysis
from advdesk.services.attachments import AttachmentPreprocessor
from advdesk.services.multimodal_service import ContentPart
from advdesk.services.prompts import (
    CASE_QUESTION_RANGE,
    REVIEW_QUESTION_RANGE,
    apply_custom_instructions,
    case_analysis_prompt,
    review_analysis_prompt,
)
from advdesk.services.providers import AIProviders
from advdesk.services.response_parsing import extract_json_object

logger = structlog.get_logger(__name__)


def decode_analysis(
    raw: str,
    question_range: tuple[int, int],
    require_impression: bool = False,
) -> Analysis:
    """
    Validate an analysis response.

    Questions beyond the maximum are dropped; fewer than the minimum is
    accepted with a warning. Duplicate ids or choice questions without
    options reject the whole response.
    """
    data = extract_json_object(raw, AnalysisFailed)
    low, high = question_range

    questions = data.get("questions")
    if not isinstance(questions, list) or not questions:
        raise AnalysisFailed("A análise não retornou perguntas estratégicas.")
    if len(questions) > high:
        logger.warning("analysis_questions_truncated", returned=len(questions), kept=high)
        questions = questions[:high]
    elif len(questions) < low:
        logger.warning("analysis_questions_below_minimum", returned=len(questions), minimum=low)

    impression = data.get("impression")
    if require_impression and not (isinstance(impression, str) and impression.strip()):
        raise AnalysisFailed("A análise não retornou a impressão inicial.")

    try:
        return Analysis.model_validate(
            {
                "summary": data.get("summary"),
                "theses": data.get("theses") or [],
                "impression": impression if require_impression else None,
                "questions": questions,
            }
        )
    except ValidationError as e:
        logger.error("analysis_response_invalid", errors=e.errors(include_url=False))
        raise AnalysisFailed() from e


class AnalysisStage:
    """
    Case and review analysis.

    Request parts are ordered: knowledge documents, then case files (for
    reviews the main petition file first), then the case text.
    """

    def __init__(self, providers: AIProviders, attachments: AttachmentPreprocessor):
        self.providers = providers
        self.attachments = attachments

    async def _run(self, instruction: str, parts: list[ContentPart]) -> str:
        try:
            return await self.providers.multimodal.generate_json(instruction, parts)
        except Exception as e:
            logger.error("analysis_provider_failed", error=str(e))
            raise AnalysisFailed() from e

    async def analyze_case(
        self,
        facts: str,
        attachment_refs: list[str],
        knowledge_refs: list[str],
        area: str,
        doc_type: str,
        custom_instructions: str | None = None,
    ) -> Analysis:
        parts = await self.attachments.load_knowledge(knowledge_refs)
        parts += await self.attachments.load(attachment_refs)
        parts.append(ContentPart.from_text(f"FATOS DO CASO:\n{facts}"))

        instruction = apply_custom_instructions(
            case_analysis_prompt(area, doc_type), custom_instructions
        )
        raw = await self._run(instruction, parts)
        analysis = decode_analysis(raw, CASE_QUESTION_RANGE)

        logger.info(
            "case_analyzed",
            parts=len(parts),
            theses=len(analysis.theses),
            questions=len(analysis.questions),
        )
        return analysis

    async def analyze_for_review(
        self,
        description: str,
        petition_text: str | None,
        main_file_ref: str | None,
        attachment_refs: list[str],
        knowledge_refs: list[str],
        custom_instructions: str | None = None,
    ) -> Analysis:
        parts = await self.attachments.load_knowledge(knowledge_refs)
        case_refs = ([main_file_ref] if main_file_ref else []) + list(attachment_refs)
        parts += await self.attachments.load(case_refs)
        parts.append(ContentPart.from_text(f"DESCRIÇÃO DO CASO:\n{description}"))

        instruction = apply_custom_instructions(
            review_analysis_prompt(description, petition_text, main_file_ref is not None),
            custom_instructions,
        )
        raw = await self._run(instruction, parts)
        analysis = decode_analysis(raw, REVIEW_QUESTION_RANGE, require_impression=True)

        logger.info("review_analyzed", parts=len(parts), questions=len(analysis.questions))
        return analysis
