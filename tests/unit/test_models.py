"""Tests for advdesk/models — questions, analysis, records and reports."""

import pytest
from pydantic import ValidationError

from advdesk.models.pipeline import (
    Analysis,
    AnswerKind,
    PipelineKind,
    PipelineRecord,
    PipelineStatus,
    RenderedDocument,
    StrategicQuestion,
    StructureSection,
    validate_answers,
)
from advdesk.models.reports import JudgeReport, SuccessProbability


@pytest.fixture
def analysis():
    return Analysis(
        summary="Resumo",
        theses=["Tese"],
        questions=[
            StrategicQuestion(id=1, prompt="Registro?", kind="single_choice", options=["Sim", "Não"]),
            StrategicQuestion(id=2, prompt="Verbas?", kind="multi_choice", options=["A", "B"]),
            StrategicQuestion(id=3, prompt="Detalhes?"),
        ],
    )


def make_petition(**overrides) -> PipelineRecord:
    data = {
        "tenant_id": "office-a",
        "owner_id": "lawyer-1",
        "kind": PipelineKind.PETITION,
        "status": PipelineStatus.DRAFT,
    }
    data.update(overrides)
    return PipelineRecord(**data)


class TestStrategicQuestion:

    def test_legacy_kind_names(self):
        assert StrategicQuestion(id=1, prompt="p", kind="text").kind == AnswerKind.FREE_TEXT
        q = StrategicQuestion(id=1, prompt="p", kind="checkbox", options=["a"])
        assert q.kind == AnswerKind.MULTI_CHOICE

    def test_choice_requires_options(self):
        with pytest.raises(ValidationError):
            StrategicQuestion(id=1, prompt="p", kind="single_choice")

    def test_negative_id_rejected(self):
        with pytest.raises(ValidationError):
            StrategicQuestion(id=-1, prompt="p")


class TestAnalysis:

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError):
            Analysis(
                summary="s",
                questions=[
                    StrategicQuestion(id=1, prompt="a"),
                    StrategicQuestion(id=1, prompt="b"),
                ],
            )

    def test_question_ids_are_strings(self, analysis):
        assert analysis.question_ids() == {"1", "2", "3"}


class TestValidateAnswers:

    def test_complete_answers(self, analysis):
        validate_answers(analysis, {"1": "Sim", "2": ["A"], "3": "texto"})

    def test_missing_answer(self, analysis):
        with pytest.raises(ValueError, match="unanswered questions: 3"):
            validate_answers(analysis, {"1": "Sim", "2": ["A"]})

    def test_blank_answer_counts_as_missing(self, analysis):
        with pytest.raises(ValueError, match="unanswered"):
            validate_answers(analysis, {"1": "Sim", "2": ["A"], "3": "   "})

    def test_empty_multi_choice_counts_as_missing(self, analysis):
        with pytest.raises(ValueError, match="unanswered questions: 2"):
            validate_answers(analysis, {"1": "Sim", "2": [], "3": "x"})

    def test_unknown_question(self, analysis):
        with pytest.raises(ValueError, match="unknown question 9"):
            validate_answers(analysis, {"9": "x"}, require_complete=False)

    def test_multi_choice_needs_list(self, analysis):
        with pytest.raises(ValueError, match="list of options"):
            validate_answers(analysis, {"2": "A"}, require_complete=False)

    def test_single_answer_must_be_text(self, analysis):
        with pytest.raises(ValueError, match="single text answer"):
            validate_answers(analysis, {"1": ["Sim"]}, require_complete=False)

    def test_partial_answers_allowed_when_not_required(self, analysis):
        validate_answers(analysis, {"1": "Sim"}, require_complete=False)


class TestPipelineRecord:

    def test_draft_has_no_analysis(self, analysis):
        with pytest.raises(ValidationError):
            make_petition(analysis=analysis)

    def test_questions_requires_analysis(self):
        with pytest.raises(ValidationError):
            make_petition(status=PipelineStatus.QUESTIONS)

    def test_status_must_belong_to_kind(self):
        with pytest.raises(ValidationError):
            PipelineRecord(
                tenant_id="t", owner_id="u",
                kind=PipelineKind.JUDGE_REVIEW, status=PipelineStatus.DRAFT,
            )

    def test_completed_requires_rendered_document(self, analysis):
        with pytest.raises(ValidationError):
            make_petition(
                status=PipelineStatus.COMPLETED,
                analysis=analysis,
                generated_text="## FATOS",
            )

    def test_output_and_rendered_document_set_together(self, analysis):
        with pytest.raises(ValidationError):
            make_petition(
                status=PipelineStatus.QUESTIONS,
                analysis=analysis,
                rendered_document=RenderedDocument(path="p", url="u"),
            )

    def test_advance_moves_forward(self, analysis):
        record = make_petition()
        advanced = record.advance(PipelineStatus.QUESTIONS, analysis=analysis.model_dump())
        assert advanced.status == PipelineStatus.QUESTIONS
        assert advanced.analysis.summary == "Resumo"
        assert record.status == PipelineStatus.DRAFT

    def test_advance_refuses_to_go_back(self, analysis):
        record = make_petition(status=PipelineStatus.QUESTIONS, analysis=analysis)
        with pytest.raises(ValueError, match="back to draft"):
            record.advance(PipelineStatus.DRAFT, analysis=None)

    def test_fail_keeps_resume_status(self, analysis):
        record = make_petition(status=PipelineStatus.QUESTIONS, analysis=analysis)
        failed = record.fail("build_structure", "structuring_failed")
        assert failed.status == PipelineStatus.ERROR
        assert failed.last_good_status == PipelineStatus.QUESTIONS
        assert failed.effective_status == PipelineStatus.QUESTIONS
        assert failed.analysis is not None

    def test_advance_clears_error_fields(self, analysis):
        failed = make_petition().fail("analyze_case", "analysis_failed")
        assert failed.effective_status == PipelineStatus.DRAFT
        recovered = failed.advance(PipelineStatus.QUESTIONS, analysis=analysis.model_dump())
        assert recovered.error_code is None
        assert recovered.failed_stage is None
        assert recovered.last_good_status is None

    def test_has_reached(self, analysis):
        record = make_petition(status=PipelineStatus.QUESTIONS, analysis=analysis)
        assert record.has_reached(PipelineStatus.ANALYZING)
        assert not record.has_reached(PipelineStatus.STRUCTURING)


class TestStructureSection:

    def test_integer_id_coerced(self):
        assert StructureSection(id=3, title="Dos Fatos").id == "3"


class TestJudgeReport:

    @pytest.mark.parametrize("value,expected", [
        ("alta", SuccessProbability.HIGH),
        ("Media", SuccessProbability.MEDIUM),
        ("LOW", SuccessProbability.LOW),
    ])
    def test_probability_aliases(self, value, expected):
        assert JudgeReport(success_probability=value).success_probability == expected

    def test_unknown_probability_rejected(self):
        with pytest.raises(ValidationError):
            JudgeReport(success_probability="talvez")
