"""
Generation stage

Long-form petition drafting, structured judge and chat reports, and chat
replies through the text generator.
"""

import structlog
from pydantic import BaseModel, ValidationError

from advdesk.config import Settings, get_settings
from advdesk.errors import GenerationFailed
from advdesk.models.chat import ChatRole, ChatTurn
from advdesk.models.pipeline import AnswerValue, Analysis, PetitionStructure
from advdesk.models.reports import ChatReport, JudgeReport
from advdesk.services.prompts import (
    CHAT_REPORT_SYSTEM_PROMPT,
    JUDGE_REPORT_SYSTEM_PROMPT,
    apply_custom_instructions,
    chat_report_user_prompt,
    chat_system_prompt,
    judge_report_user_prompt,
    petition_system_prompt,
    petition_user_prompt,
)
from advdesk.services.providers import AIProviders
from advdesk.services.response_parsing import extract_json_object, normalize_petition_text

logger = structlog.get_logger(__name__)


def decode_report(raw: str, model: type[BaseModel]) -> BaseModel:
    data = extract_json_object(raw, GenerationFailed)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error(
            "report_response_invalid",
            report=model.__name__,
            errors=e.errors(include_url=False),
        )
        raise GenerationFailed() from e


def build_chat_messages(
    history: list[ChatTurn],
    message: str,
    limit: int,
) -> list[dict[str, str]]:
    """Trailing `limit` history turns plus the new user message."""
    turns = [{"role": t.role.value, "content": t.content} for t in history[-limit:] if t.content]
    while turns and turns[0]["role"] != ChatRole.USER.value:
        turns.pop(0)
    turns.append({"role": ChatRole.USER.value, "content": message})
    return turns


class GenerationStage:
    """Text generation for every pipeline."""

    def __init__(self, providers: AIProviders, settings: Settings | None = None):
        self.providers = providers
        self.settings = settings or get_settings()

    async def _generate(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        try:
            text, model = await self.providers.text.generate(
                system_prompt, user_prompt, max_tokens=max_tokens
            )
        except Exception as e:
            logger.error("generation_provider_failed", error=str(e))
            raise GenerationFailed() from e
        logger.debug("generation_completed", model=model, chars=len(text))
        return text

    async def generate_petition(
        self,
        facts: str,
        area: str,
        doc_type: str,
        analysis: Analysis,
        answers: dict[str, AnswerValue],
        structure: PetitionStructure,
        custom_instructions: str | None = None,
    ) -> str:
        system_prompt = apply_custom_instructions(
            petition_system_prompt(area, doc_type), custom_instructions
        )
        user_prompt = petition_user_prompt(
            facts, analysis.summary, analysis.theses, answers, structure
        )
        raw = await self._generate(system_prompt, user_prompt, self.settings.petition_max_tokens)
        text = normalize_petition_text(raw)
        logger.info("petition_generated", chars=len(text))
        return text

    async def generate_judge_report(
        self,
        description: str,
        petition_text: str,
        analysis: Analysis,
        answers: dict[str, AnswerValue],
        custom_instructions: str | None = None,
    ) -> JudgeReport:
        system_prompt = apply_custom_instructions(JUDGE_REPORT_SYSTEM_PROMPT, custom_instructions)
        user_prompt = judge_report_user_prompt(
            description,
            analysis.summary,
            analysis.impression or "",
            answers,
            petition_text,
        )
        raw = await self._generate(
            system_prompt, user_prompt, self.settings.judge_report_max_tokens
        )
        report = decode_report(raw, JudgeReport)
        logger.info(
            "judge_report_generated",
            probability=report.success_probability.value,
            suggestions=len(report.suggestions),
        )
        return report

    async def generate_chat_report(
        self,
        client_name: str,
        area: str,
        conversation: list[tuple[str, str]],
    ) -> ChatReport:
        user_prompt = chat_report_user_prompt(client_name, area, conversation)
        raw = await self._generate(
            CHAT_REPORT_SYSTEM_PROMPT, user_prompt, self.settings.chat_report_max_tokens
        )
        report = decode_report(raw, ChatReport)
        logger.info("chat_report_generated", messages=len(conversation))
        return report

    async def chat_reply(
        self,
        system_context: str,
        history: list[ChatTurn],
        message: str,
        attachment_context: str | None = None,
        custom_instructions: str | None = None,
    ) -> str:
        system_prompt = apply_custom_instructions(
            chat_system_prompt(system_context), custom_instructions
        )
        content = message
        if attachment_context:
            content = f"{message}\n\n[Documento anexado]:\n{attachment_context}"
        messages = build_chat_messages(history, content, self.settings.chat_history_limit)

        try:
            text, model = await self.providers.text.chat(
                system_prompt, messages, max_tokens=self.settings.chat_max_tokens
            )
        except Exception as e:
            logger.error("chat_provider_failed", error=str(e))
            raise GenerationFailed("Erro ao processar mensagem. Tente novamente.") from e

        if not text.strip():
            raise GenerationFailed("Erro ao processar mensagem. Tente novamente.")
        logger.debug("chat_reply_generated", model=model, history=len(messages) - 1)
        return text.strip()
