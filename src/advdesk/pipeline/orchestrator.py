"""
Pipeline Orchestrator

Coordinates the petition, judge review and chat report pipelines. It is the
only component that changes a record's persisted status.
"""

import asyncio
from functools import lru_cache
from typing import Awaitable, Callable, TypeVar
from uuid import uuid4

import structlog

from advdesk.config import Settings, get_settings
from advdesk.errors import (
    AdvdeskError,
    InternalError,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    RenderFailed,
    StageTimeout,
)
from advdesk.models.chat import ChatMessage, ChatRole, ChatSession, ChatSessionStatus, ChatTurn
from advdesk.models.pipeline import (
    AnswerValue,
    PetitionStructure,
    PipelineKind,
    PipelineRecord,
    PipelineStatus,
    RenderedDocument,
    utcnow,
    validate_answers,
)
from advdesk.models.tenant import AuthContext, OfficeSettings
from advdesk.pipeline.analysis import AnalysisStage
from advdesk.pipeline.generation import GenerationStage
from advdesk.pipeline.structuring import StructuringStage
from advdesk.services.attachments import AttachmentPreprocessor
from advdesk.services.document_renderer import chat_report_text, judge_report_text, render_docx
from advdesk.services.knowledge import KnowledgeService
from advdesk.services.prompts import area_label, chat_context
from advdesk.services.providers import AIProviders, get_ai_providers
from advdesk.services.rate_limiter import RateLimiter
from advdesk.storage.blobs import BlobStore, clean_segment, get_blob_store
from advdesk.storage.repositories import Repository, get_repository

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ARTIFACT_FOLDERS = {
    PipelineKind.PETITION: ("petitions", "peticao"),
    PipelineKind.JUDGE_REVIEW: ("judge-reports", "relatorio_juiz"),
    PipelineKind.CHAT_REPORT: ("chat-reports", "relatorio_atendimento"),
}


def artifact_path(tenant_id: str, kind: PipelineKind, record_id: str) -> str:
    """Deterministic DOCX location, so a retried render overwrites."""
    folder, name = ARTIFACT_FOLDERS[kind]
    return f"tenants/{tenant_id}/{folder}/{record_id}/{name}_{record_id}.docx"


class PipelineOrchestrator:
    """
    Runs pipeline operations for an authenticated caller.

    Every stage operation follows the same order: rate limit, load record,
    check status and inputs, read knowledge context and tenant settings,
    call the stage under a timeout, render and upload the artifact, then
    persist the result in one update. A failure after the checks leaves the
    record in `error` with the status it can resume from.
    """

    def __init__(
        self,
        repository: Repository | None = None,
        blobs: BlobStore | None = None,
        providers: AIProviders | None = None,
        rate_limiter: RateLimiter | None = None,
        knowledge: KnowledgeService | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository or get_repository()
        self.blobs = blobs or get_blob_store()
        self.providers = providers or get_ai_providers()
        self.rate_limiter = rate_limiter or RateLimiter(
            self.repository.store, self.settings.rate_limits
        )
        self.knowledge = knowledge or KnowledgeService(
            self.repository, self.blobs, self.settings.knowledge_context_limit
        )

        self.attachments = AttachmentPreprocessor(self.blobs, self.providers.multimodal)
        self.analysis = AnalysisStage(self.providers, self.attachments)
        self.structuring = StructuringStage(self.providers, self.attachments)
        self.generation = GenerationStage(self.providers, self.settings)

    # =========================================================================
    # Shared steps
    # =========================================================================

    @staticmethod
    def _check_refs(auth: AuthContext, refs: list[str]) -> None:
        for ref in refs:
            if not ref.startswith(auth.tenant_prefix) or ".." in ref.split("/"):
                raise PermissionDenied("Acesso negado ao arquivo solicitado.")

    @staticmethod
    def _gate(record: PipelineRecord, entry: PipelineStatus, result: PipelineStatus) -> None:
        """Reject records whose effective status is outside [entry, result]."""
        if record.status == PipelineStatus.COMPLETED:
            raise InvalidArgument("Este documento já foi concluído.")
        position = record.position()
        if not record.position(entry) <= position <= record.position(result):
            raise InvalidArgument(
                f"Operação não permitida no status atual ({record.effective_status.value})."
            )

    @staticmethod
    def _answers_or_invalid(record: PipelineRecord, answers: dict[str, AnswerValue]) -> None:
        try:
            validate_answers(record.analysis, answers, require_complete=True)
        except ValueError as e:
            raise InvalidArgument(f"Respostas inválidas: {e}") from e

    async def _context(self, tenant_id: str, area: str | None, knowledge_limit: int | None = None):
        """Knowledge paths and tenant settings, read concurrently."""
        refs, tenant_settings = await asyncio.gather(
            self.knowledge.resolve(tenant_id, area),
            self.repository.get_tenant_settings(tenant_id),
        )
        if knowledge_limit is not None:
            refs = refs[:knowledge_limit]
        return refs, tenant_settings

    async def _mark_failed(
        self,
        record: PipelineRecord,
        operation: str,
        error: AdvdeskError,
    ) -> None:
        try:
            await self.repository.save_record(record.fail(operation, error.code))
        except Exception:
            logger.exception("record_error_state_not_saved", record_id=record.id)
        logger.error(
            "pipeline_stage_failed",
            record_id=record.id,
            tenant_id=record.tenant_id,
            kind=record.kind.value,
            operation=operation,
            resume_status=record.effective_status.value,
            error_code=error.code,
        )

    async def _run(
        self,
        work: Callable[[], Awaitable[T]],
        timeout: float,
        operation: str,
        record: PipelineRecord | None = None,
    ) -> T:
        """Run `work` under a timeout, mapping every failure to a typed error."""
        try:
            return await asyncio.wait_for(work(), timeout=timeout)
        except asyncio.TimeoutError as e:
            error: AdvdeskError = StageTimeout()
            cause: BaseException = e
        except AdvdeskError as e:
            error, cause = e, e
        except Exception as e:
            logger.exception("pipeline_unexpected_error", operation=operation)
            error, cause = InternalError(), e

        if record is not None:
            await self._mark_failed(record, operation, error)
        else:
            logger.error("operation_failed", operation=operation, error_code=error.code)
        if error is cause:
            raise error
        raise error from cause

    async def _publish(
        self,
        tenant_id: str,
        kind: PipelineKind,
        record_id: str,
        text: str,
        title: str,
        subtitle: str,
        office: OfficeSettings,
    ) -> RenderedDocument:
        """Render the DOCX, upload it and sign a download URL."""
        path = artifact_path(tenant_id, kind, record_id)
        try:
            data = await asyncio.to_thread(
                render_docx, text, title, subtitle, office, self.settings.default_office_name
            )
            await self.blobs.upload(path, data, DOCX_MIME)
            url, _ = self.blobs.signed_url(path)
        except Exception as e:
            logger.error("document_render_failed", path=path, error=str(e))
            raise RenderFailed() from e
        logger.info("document_published", path=path, size=len(data))
        return RenderedDocument(path=path, url=url)

    # =========================================================================
    # Petitions
    # =========================================================================

    async def create_petition(
        self,
        auth: AuthContext,
        title: str,
        area: str,
        doc_type: str,
        facts: str = "",
        attachment_refs: list[str] | None = None,
    ) -> PipelineRecord:
        refs = list(attachment_refs or [])
        self._check_refs(auth, refs)
        record = PipelineRecord(
            tenant_id=auth.tenant_id,
            owner_id=auth.uid,
            kind=PipelineKind.PETITION,
            status=PipelineStatus.DRAFT,
            title=title,
            area=area,
            doc_type=doc_type,
            input_facts=facts,
            attachment_refs=refs,
        )
        await self.repository.save_record(record)
        logger.info("petition_created", record_id=record.id, tenant_id=auth.tenant_id)
        return record

    async def get_petition(self, auth: AuthContext, record_id: str) -> PipelineRecord:
        return await self.repository.get_record(auth.tenant_id, PipelineKind.PETITION, record_id)

    async def list_petitions(self, auth: AuthContext) -> list[PipelineRecord]:
        return await self.repository.list_records(auth.tenant_id, PipelineKind.PETITION)

    async def analyze_case(
        self,
        auth: AuthContext,
        record_id: str,
        facts: str | None = None,
        attachment_refs: list[str] | None = None,
        area: str | None = None,
        doc_type: str | None = None,
    ) -> PipelineRecord:
        await self.rate_limiter.check(auth.uid, "petition_analysis")
        record = await self.get_petition(auth, record_id)
        self._gate(record, PipelineStatus.DRAFT, PipelineStatus.QUESTIONS)

        facts = facts if facts is not None else record.input_facts
        refs = list(attachment_refs) if attachment_refs is not None else record.attachment_refs
        area = area or record.area
        doc_type = doc_type or record.doc_type
        if not facts.strip() or not area or not doc_type:
            raise InvalidArgument("Campos obrigatórios ausentes.")
        self._check_refs(auth, refs)

        async def work():
            knowledge_refs, tenant_settings = await self._context(auth.tenant_id, area)
            return await self.analysis.analyze_case(
                facts,
                refs,
                knowledge_refs,
                area,
                doc_type,
                tenant_settings.prompts.petition_prompt,
            )

        analysis = await self._run(work, self.settings.analysis_timeout, "analyze_case", record)
        updated = record.advance(
            PipelineStatus.QUESTIONS,
            input_facts=facts,
            attachment_refs=refs,
            area=area,
            doc_type=doc_type,
            analysis=analysis.model_dump(),
            answers={},
            structure=None,
        )
        await self.repository.save_record(updated)
        logger.info("petition_analyzed", record_id=record.id, questions=len(analysis.questions))
        return updated

    async def build_structure(
        self,
        auth: AuthContext,
        record_id: str,
        answers: dict[str, AnswerValue],
        facts: str | None = None,
        area: str | None = None,
        doc_type: str | None = None,
    ) -> PipelineRecord:
        record = await self.get_petition(auth, record_id)
        self._gate(record, PipelineStatus.QUESTIONS, PipelineStatus.STRUCTURING)
        self._answers_or_invalid(record, answers)

        facts = facts if facts is not None else record.input_facts
        area = area or record.area
        doc_type = doc_type or record.doc_type

        async def work():
            knowledge_refs, tenant_settings = await self._context(auth.tenant_id, area)
            return await self.structuring.build_structure(
                facts,
                area,
                doc_type,
                record.analysis,
                answers,
                knowledge_refs,
                tenant_settings.prompts.petition_prompt,
            )

        structure = await self._run(
            work, self.settings.structuring_timeout, "build_structure", record
        )
        updated = record.advance(
            PipelineStatus.STRUCTURING,
            input_facts=facts,
            area=area,
            doc_type=doc_type,
            answers=answers,
            structure=structure.model_dump(),
        )
        await self.repository.save_record(updated)
        logger.info("petition_structured", record_id=record.id, sections=len(structure.sections))
        return updated

    async def generate_document(
        self,
        auth: AuthContext,
        record_id: str,
        answers: dict[str, AnswerValue] | None = None,
        structure: PetitionStructure | None = None,
    ) -> PipelineRecord:
        await self.rate_limiter.check(auth.uid, "petition_generation")
        record = await self.get_petition(auth, record_id)
        self._gate(record, PipelineStatus.STRUCTURING, PipelineStatus.COMPLETED)

        answers = answers if answers is not None else record.answers
        self._answers_or_invalid(record, answers)
        structure = structure or record.structure
        if structure is None:
            raise InvalidArgument("Estrutura da petição ausente.")

        async def work():
            _, tenant_settings = await self._context(auth.tenant_id, record.area)
            text = await self.generation.generate_petition(
                record.input_facts,
                record.area,
                record.doc_type,
                record.analysis,
                answers,
                structure,
                tenant_settings.prompts.petition_prompt,
            )
            rendered = await self._publish(
                auth.tenant_id,
                PipelineKind.PETITION,
                record.id,
                text,
                title=record.title or f"{record.doc_type} - {area_label(record.area)}",
                subtitle=f"{area_label(record.area)} | {record.doc_type}",
                office=tenant_settings.office,
            )
            return text, rendered

        text, rendered = await self._run(
            work, self.settings.generation_timeout, "generate_document", record
        )

        updated = record.advance(
            PipelineStatus.COMPLETED,
            answers=answers,
            structure=structure.model_dump(),
            generated_text=text,
            rendered_document=rendered.model_dump(),
        )
        await self.repository.save_record(updated)
        logger.info("petition_completed", record_id=record.id, path=rendered.path)
        return updated

    # =========================================================================
    # Judge reviews
    # =========================================================================

    async def create_review(
        self,
        auth: AuthContext,
        description: str,
        petition_text: str | None = None,
        source_petition_id: str | None = None,
        attachment_refs: list[str] | None = None,
        main_file_ref: str | None = None,
        title: str = "",
    ) -> PipelineRecord:
        refs = list(attachment_refs or [])
        self._check_refs(auth, refs + ([main_file_ref] if main_file_ref else []))
        if not description.strip():
            raise InvalidArgument("Campos obrigatórios ausentes.")

        if source_petition_id:
            source = await self.get_petition(auth, source_petition_id)
            if not source.generated_text:
                raise InvalidArgument("A petição de origem ainda não foi gerada.")
            petition_text = petition_text or source.generated_text
        if not (petition_text or main_file_ref):
            raise InvalidArgument("Informe o texto ou o arquivo da petição.")

        record = PipelineRecord(
            tenant_id=auth.tenant_id,
            owner_id=auth.uid,
            kind=PipelineKind.JUDGE_REVIEW,
            status=PipelineStatus.ANALYZING,
            title=title or f"Análise - {description.strip()[:60]}",
            input_facts=description,
            attachment_refs=refs,
            petition_text=petition_text,
            main_file_ref=main_file_ref,
            source_petition_id=source_petition_id,
        )
        await self.repository.save_record(record)
        logger.info("review_created", record_id=record.id, tenant_id=auth.tenant_id)
        return record

    async def get_review(self, auth: AuthContext, record_id: str) -> PipelineRecord:
        return await self.repository.get_record(auth.tenant_id, PipelineKind.JUDGE_REVIEW, record_id)

    async def list_reviews(self, auth: AuthContext) -> list[PipelineRecord]:
        return await self.repository.list_records(auth.tenant_id, PipelineKind.JUDGE_REVIEW)

    async def analyze_for_review(
        self,
        auth: AuthContext,
        record_id: str,
        description: str | None = None,
        petition_text: str | None = None,
        attachment_refs: list[str] | None = None,
        main_file_ref: str | None = None,
    ) -> PipelineRecord:
        await self.rate_limiter.check(auth.uid, "judge_analysis")
        record = await self.get_review(auth, record_id)
        self._gate(record, PipelineStatus.ANALYZING, PipelineStatus.QUESTIONS)

        description = description or record.input_facts
        petition_text = petition_text or record.petition_text
        refs = list(attachment_refs) if attachment_refs is not None else record.attachment_refs
        main_file_ref = main_file_ref or record.main_file_ref
        self._check_refs(auth, refs + ([main_file_ref] if main_file_ref else []))
        if not (petition_text or main_file_ref):
            raise InvalidArgument("Informe o texto ou o arquivo da petição.")

        async def work():
            knowledge_refs, tenant_settings = await self._context(auth.tenant_id, record.area)
            return await self.analysis.analyze_for_review(
                description,
                petition_text,
                main_file_ref,
                refs,
                knowledge_refs,
                tenant_settings.prompts.judge_prompt,
            )

        analysis = await self._run(
            work, self.settings.analysis_timeout, "analyze_for_review", record
        )

        updated = record.advance(
            PipelineStatus.QUESTIONS,
            input_facts=description,
            petition_text=petition_text,
            attachment_refs=refs,
            main_file_ref=main_file_ref,
            analysis=analysis.model_dump(),
            answers={},
        )
        await self.repository.save_record(updated)
        logger.info("review_analyzed", record_id=record.id, questions=len(analysis.questions))
        return updated

    async def generate_review(
        self,
        auth: AuthContext,
        record_id: str,
        answers: dict[str, AnswerValue] | None = None,
        petition_text: str | None = None,
        description: str | None = None,
    ) -> PipelineRecord:
        record = await self.get_review(auth, record_id)
        self._gate(record, PipelineStatus.QUESTIONS, PipelineStatus.COMPLETED)

        answers = answers if answers is not None else record.answers
        self._answers_or_invalid(record, answers)
        petition_text = petition_text or record.petition_text or ""
        description = description or record.input_facts

        async def work():
            _, tenant_settings = await self._context(auth.tenant_id, record.area)
            report = await self.generation.generate_judge_report(
                description,
                petition_text,
                record.analysis,
                answers,
                tenant_settings.prompts.judge_prompt,
            )
            rendered = await self._publish(
                auth.tenant_id,
                PipelineKind.JUDGE_REVIEW,
                record.id,
                judge_report_text(report),
                title="Relatório de Análise Judicial",
                subtitle=record.title,
                office=tenant_settings.office,
            )
            return report, rendered

        report, rendered = await self._run(
            work, self.settings.judge_report_timeout, "generate_review", record
        )

        updated = record.advance(
            PipelineStatus.COMPLETED,
            answers=answers,
            petition_text=petition_text or None,
            input_facts=description,
            report=report.model_dump(),
            rendered_document=rendered.model_dump(),
        )
        await self.repository.save_record(updated)
        logger.info(
            "review_completed",
            record_id=record.id,
            probability=report.success_probability.value,
            path=rendered.path,
        )
        return updated

    # =========================================================================
    # Chat
    # =========================================================================

    async def create_chat_session(
        self,
        auth: AuthContext,
        client_name: str,
        area: str,
        description: str | None = None,
    ) -> ChatSession:
        session = ChatSession(
            tenant_id=auth.tenant_id,
            owner_id=auth.uid,
            client_name=client_name,
            area=area,
            description=description,
        )
        await self.repository.save_session(session)
        logger.info("chat_session_created", session_id=session.id, tenant_id=auth.tenant_id)
        return session

    async def get_chat_session(self, auth: AuthContext, session_id: str) -> ChatSession:
        return await self.repository.get_session(auth.tenant_id, session_id)

    async def list_chat_messages(self, auth: AuthContext, session_id: str) -> list[ChatMessage]:
        await self.get_chat_session(auth, session_id)
        return await self.repository.list_messages(auth.tenant_id, session_id)

    async def close_chat_session(self, auth: AuthContext, session_id: str) -> ChatSession:
        session = await self.get_chat_session(auth, session_id)
        session.status = ChatSessionStatus.CLOSED
        session.updated_at = utcnow()
        await self.repository.save_session(session)
        logger.info("chat_session_closed", session_id=session_id)
        return session

    async def send_chat_turn(
        self,
        auth: AuthContext,
        session_id: str,
        message: str,
        history: list[ChatTurn] | None = None,
        client_name: str | None = None,
        area: str | None = None,
        attachment_ref: str | None = None,
    ) -> ChatMessage:
        """
        Answer one chat message.

        Persists the user message, then the assistant message, then the
        session summary. Returns the assistant message.
        """
        await self.rate_limiter.check(auth.uid, "chat_message")
        session = await self.get_chat_session(auth, session_id)
        if not session.is_active:
            raise InvalidArgument("Esta sessão de atendimento foi encerrada.")
        if not message.strip():
            raise InvalidArgument("Mensagem vazia.")
        if attachment_ref:
            self._check_refs(auth, [attachment_ref])

        client_name = client_name or session.client_name
        area = area or session.area

        async def work():
            knowledge_refs, tenant_settings = await self._context(
                auth.tenant_id, area, self.settings.chat_knowledge_docs
            )
            attachment_context = (
                await self.attachments.describe_attachment(attachment_ref)
                if attachment_ref
                else None
            )
            knowledge_context = await self.attachments.summarize_knowledge(knowledge_refs)
            return await self.generation.chat_reply(
                chat_context(client_name, area, knowledge_context),
                history or [],
                message,
                attachment_context,
                tenant_settings.prompts.chat_prompt,
            )

        reply = await self._run(work, self.settings.chat_turn_timeout, "send_chat_turn")

        await self.repository.add_message(
            auth.tenant_id,
            ChatMessage(
                session_id=session_id,
                role=ChatRole.USER,
                content=message,
                attachment_ref=attachment_ref,
            ),
        )
        assistant = await self.repository.add_message(
            auth.tenant_id,
            ChatMessage(session_id=session_id, role=ChatRole.ASSISTANT, content=reply),
        )
        session.last_message = reply[:100]
        session.last_message_at = assistant.created_at
        session.updated_at = assistant.created_at
        await self.repository.save_session(session)

        logger.info("chat_turn_completed", session_id=session_id, chars=len(reply))
        return assistant

    async def generate_chat_report(
        self,
        auth: AuthContext,
        session_id: str,
        client_name: str | None = None,
        area: str | None = None,
    ) -> ChatSession:
        session = await self.get_chat_session(auth, session_id)
        messages = await self.repository.list_messages(auth.tenant_id, session_id)
        if not messages:
            raise InvalidArgument("A conversa ainda não possui mensagens.")

        client_name = client_name or session.client_name
        area = area or session.area
        conversation = [(m.role.value, m.content) for m in messages]

        async def work():
            tenant_settings = await self.repository.get_tenant_settings(auth.tenant_id)
            report = await self.generation.generate_chat_report(client_name, area, conversation)
            rendered = await self._publish(
                auth.tenant_id,
                PipelineKind.CHAT_REPORT,
                session_id,
                chat_report_text(report),
                title=f"Relatório - {client_name}",
                subtitle=f"{area_label(area)} | Relatório de Atendimento",
                office=tenant_settings.office,
            )
            return report, rendered

        report, rendered = await self._run(
            work, self.settings.chat_report_timeout, "generate_chat_report"
        )

        session.report = report
        session.rendered_document = rendered
        session.updated_at = utcnow()
        await self.repository.save_session(session)
        logger.info("chat_report_completed", session_id=session_id, path=rendered.path)
        return session

    # =========================================================================
    # Files
    # =========================================================================

    async def upload_attachment(
        self,
        auth: AuthContext,
        filename: str,
        data: bytes,
        content_type: str | None = None,
    ) -> str:
        """Store a case file under the caller's tenant and return its path."""
        if not data:
            raise InvalidArgument("Arquivo vazio.")
        path = f"{auth.tenant_prefix}uploads/{uuid4().hex}/{clean_segment(filename)}"
        await self.blobs.upload(path, data, content_type)
        logger.info("attachment_uploaded", tenant_id=auth.tenant_id, path=path, size=len(data))
        return path

    async def get_download_url(self, auth: AuthContext, path: str):
        """Fresh signed URL for a blob of the caller's tenant."""
        self._check_refs(auth, [path])
        if not await self.blobs.exists(path):
            raise NotFound("Arquivo não encontrado.")
        return self.blobs.signed_url(path, self.settings.signed_url_ttl)


@lru_cache()
def get_pipeline_orchestrator() -> PipelineOrchestrator:
    """Get pipeline orchestrator instance."""
    return PipelineOrchestrator()
