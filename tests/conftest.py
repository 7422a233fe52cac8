"""Shared pytest fixtures and fakes for the ADVDESK test suite."""

import json
from types import SimpleNamespace

import pytest

from advdesk.config import Settings
from advdesk.models.tenant import AuthContext, UserProfile, UserRole
from advdesk.pipeline.orchestrator import PipelineOrchestrator
from advdesk.services.accounts import AccountService
from advdesk.services.knowledge import KnowledgeService
from advdesk.services.providers import AIProviders
from advdesk.services.rate_limiter import RateLimiter
from advdesk.storage.blobs import LocalBlobStore
from advdesk.storage.documents import InMemoryDocumentStore
from advdesk.storage.repositories import Repository


# ---------------------------------------------------------------------------
# Singleton cache clearing and environment (autouse)
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point storage at tmp_path, drop provider keys and clear singletons."""
    from advdesk.config import get_settings
    from advdesk.pipeline.orchestrator import get_pipeline_orchestrator
    from advdesk.services.accounts import get_account_service
    from advdesk.services.knowledge import get_knowledge_service
    from advdesk.services.llm_service import get_llm_service
    from advdesk.services.multimodal_service import get_multimodal_service
    from advdesk.services.providers import get_ai_providers
    from advdesk.services.rate_limiter import get_rate_limiter
    from advdesk.storage.blobs import get_blob_store
    from advdesk.storage.documents import get_document_store
    from advdesk.storage.repositories import get_repository

    monkeypatch.setenv("BLOB_ROOT", str(tmp_path / "blobs"))
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    for key in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.delenv(key, raising=False)

    caches = [
        get_settings,
        get_llm_service,
        get_multimodal_service,
        get_ai_providers,
        get_document_store,
        get_repository,
        get_blob_store,
        get_rate_limiter,
        get_knowledge_service,
        get_account_service,
        get_pipeline_orchestrator,
    ]
    for cache in caches:
        cache.cache_clear()
    yield
    for cache in caches:
        cache.cache_clear()


# ---------------------------------------------------------------------------
# Scripted AI providers
# ---------------------------------------------------------------------------

class FakeMultimodal:
    """Multimodal analyzer returning scripted JSON responses in order."""

    def __init__(self):
        self.json_responses: list = []
        self.calls: list = []
        self.transcribed: list[str] = []
        self.described: list[str] = []
        self.fail_transcription = False

    async def generate_json(self, system_instruction, parts):
        self.calls.append((system_instruction, list(parts)))
        if not self.json_responses:
            raise RuntimeError("no scripted multimodal response")
        response = self.json_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def transcribe(self, data, mime_type):
        self.transcribed.append(mime_type)
        if self.fail_transcription:
            raise RuntimeError("transcription unavailable")
        return "cliente relata atraso de salários"

    async def describe(self, data, mime_type, instruction):
        self.described.append(mime_type)
        return f"resumo do documento ({mime_type})"


class FakeTextGenerator:
    """Text generator returning scripted responses in order."""

    def __init__(self):
        self.responses: list = []
        self.chat_responses: list = []
        self.generate_calls: list = []
        self.chat_calls: list = []

    async def generate(self, system_prompt, user_prompt, max_tokens=None, use_fallback=True):
        self.generate_calls.append((system_prompt, user_prompt, max_tokens))
        if not self.responses:
            raise RuntimeError("no scripted text response")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response, "fake-writer"

    async def chat(self, system_prompt, messages, max_tokens=None, model=None):
        self.chat_calls.append((system_prompt, [dict(m) for m in messages]))
        if not self.chat_responses:
            raise RuntimeError("no scripted chat response")
        response = self.chat_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response, "fake-chat"


class FakeClock:
    """Manually advanced clock for the rate limiter."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Scripted model responses
# ---------------------------------------------------------------------------

def case_analysis_json(n_questions: int = 6) -> str:
    """Case analysis with one single-choice, one multi-choice and free-text questions."""
    questions = [
        {
            "id": 1,
            "prompt": "O empregado possui registro em carteira?",
            "kind": "single_choice",
            "options": ["Sim", "Não"],
        },
        {
            "id": 2,
            "prompt": "Quais verbas não foram pagas?",
            "kind": "multi_choice",
            "options": ["Salários", "Férias", "FGTS"],
        },
    ]
    for i in range(3, n_questions + 1):
        questions.append({"id": i, "prompt": f"Pergunta estratégica {i}?", "kind": "free_text"})
    return json.dumps(
        {
            "summary": "Empregado dispensado sem pagamento das verbas rescisórias.",
            "theses": ["Rescisão indireta", "Multa do art. 477 da CLT"],
            "questions": questions[:n_questions],
        },
        ensure_ascii=False,
    )


def review_analysis_json(n_questions: int = 4) -> str:
    return json.dumps(
        {
            "summary": "Ação de cobrança com pedido de tutela de urgência.",
            "impression": "Petição bem estruturada, com lacunas probatórias.",
            "questions": [
                {"id": i, "prompt": f"Questão de revisão {i}?", "kind": "free_text"}
                for i in range(1, n_questions + 1)
            ],
        },
        ensure_ascii=False,
    )


def full_answers(n_questions: int = 6) -> dict:
    """Answers to every question of case_analysis_json(n_questions)."""
    answers = {"1": "Sim", "2": ["Salários", "FGTS"]}
    for i in range(3, n_questions + 1):
        answers[str(i)] = f"Resposta {i}"
    return answers


STRUCTURE_JSON = json.dumps(
    {
        "forum": "Excelentíssimo Senhor Doutor Juiz da Vara do Trabalho de São Paulo",
        "parties": {"autor": "João da Silva", "reu": "Empresa XYZ Ltda."},
        "sections": [
            {"id": 1, "title": "Dos Fatos", "summary": "Narrativa do contrato", "subpoints": []},
            {"id": 2, "title": "Do Direito", "summary": "Fundamentos", "subpoints": ["CLT"]},
            {"id": 3, "title": "Dos Pedidos", "summary": "Pedidos finais", "subpoints": []},
        ],
        "relief_requested": ["Pagamento das verbas rescisórias"],
    },
    ensure_ascii=False,
)

PETITION_TEXT = """# RECLAMAÇÃO TRABALHISTA

## DOS FATOS

O reclamante foi admitido em 2020 e dispensado sem justa causa.

## DO DIREITO

A conduta da reclamada viola o art. 477 da CLT.

## DOS PEDIDOS

1. Pagamento das verbas rescisórias.
2. Multa do art. 477 da CLT."""

JUDGE_REPORT_JSON = json.dumps(
    {
        "strengths": ["Narrativa clara"],
        "weaknesses": ["Fundamentação genérica"],
        "evidence_gaps": ["Ausência de holerites"],
        "risks": ["Prescrição parcial"],
        "success_probability": "Média",
        "probability_rationale": "Depende da prova documental.",
        "suggestions": [{"title": "Juntar holerites", "text": "Anexar os últimos 12 holerites."}],
    },
    ensure_ascii=False,
)

CHAT_REPORT_JSON = json.dumps(
    {
        "client_name": "Maria Souza",
        "area": "trabalhista",
        "case_summary": "Cliente com salários atrasados há três meses.",
        "legal_analysis": "Cabível rescisão indireta.",
        "theses": ["Rescisão indireta"],
        "fee_proposal": "30% do êxito",
        "next_steps": ["Reunir holerites", "Agendar reunião"],
    },
    ensure_ascii=False,
)


@pytest.fixture
def responses():
    """Scripted model outputs shared by the stage, orchestrator and API tests."""
    return SimpleNamespace(
        case_analysis=case_analysis_json,
        review_analysis=review_analysis_json,
        answers=full_answers,
        structure=STRUCTURE_JSON,
        petition=PETITION_TEXT,
        judge_report=JUDGE_REPORT_JSON,
        chat_report=CHAT_REPORT_JSON,
    )


# ---------------------------------------------------------------------------
# Storage and services
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, blob_root=tmp_path / "blobs")


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def repository(store):
    return Repository(store)


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(
        root=tmp_path / "blobs",
        base_url="http://testserver/api/v1/blobs",
        signing_secret="test-signing-secret",
        default_ttl=3600,
    )


@pytest.fixture
def multimodal():
    return FakeMultimodal()


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def providers(multimodal, text_generator):
    return AIProviders(multimodal=multimodal, text=text_generator)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(store, settings, clock):
    return RateLimiter(store, settings.rate_limits, clock=clock)


@pytest.fixture
def knowledge(repository, blobs, settings):
    return KnowledgeService(repository, blobs, settings.knowledge_context_limit)


@pytest.fixture
def accounts(repository, settings):
    return AccountService(repository, settings)


@pytest.fixture
def orchestrator(repository, blobs, providers, rate_limiter, knowledge, settings):
    return PipelineOrchestrator(
        repository=repository,
        blobs=blobs,
        providers=providers,
        rate_limiter=rate_limiter,
        knowledge=knowledge,
        settings=settings,
    )


# ---------------------------------------------------------------------------
# Callers
# ---------------------------------------------------------------------------

@pytest.fixture
def admin_auth():
    return AuthContext(uid="admin-1", tenant_id="office-a", role=UserRole.ADMIN)


@pytest.fixture
def lawyer_auth():
    return AuthContext(uid="lawyer-1", tenant_id="office-a", role=UserRole.LAWYER)


@pytest.fixture
def other_tenant_auth():
    return AuthContext(uid="lawyer-2", tenant_id="office-b", role=UserRole.LAWYER)


@pytest.fixture
async def seeded_users(repository, admin_auth, lawyer_auth, other_tenant_auth):
    """Profiles and index entries for the three callers."""
    profiles = [
        UserProfile(uid=admin_auth.uid, tenant_id="office-a", email="admin@a.adv.br",
                    role=UserRole.ADMIN),
        UserProfile(uid=lawyer_auth.uid, tenant_id="office-a", email="lawyer@a.adv.br"),
        UserProfile(uid=other_tenant_auth.uid, tenant_id="office-b", email="lawyer@b.adv.br"),
    ]
    for profile in profiles:
        await repository.save_user(profile)
    return profiles
