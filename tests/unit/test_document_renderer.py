"""Tests for advdesk/services/document_renderer.py — marker parsing and DOCX output."""

import io
from datetime import date

import pytest
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH

from advdesk.models.reports import ChatReport, JudgeReport, Suggestion
from advdesk.models.tenant import OfficeSettings
from advdesk.services.document_renderer import (
    chat_report_text,
    judge_report_text,
    parse_sections,
    render_docx,
)


def load(data: bytes):
    return Document(io.BytesIO(data))


def heading_texts(document) -> list[str]:
    return [p.text for p in document.paragraphs if p.style.name.startswith("Heading")]


class TestParseSections:

    def test_two_sections_in_order(self):
        sections = parse_sections("## A\ncorpo a\n\n## B\ncorpo b")
        assert [s.heading for s in sections] == ["A", "B"]
        assert [s.body for s in sections] == ["corpo a", "corpo b"]

    def test_preamble_kept_when_not_blank(self):
        sections = parse_sections("Excelentíssimo Senhor\n\n## DOS FATOS\ntexto")
        assert sections[0].heading is None
        assert sections[0].body == "Excelentíssimo Senhor"

    def test_blank_preamble_dropped(self):
        sections = parse_sections("\n\n## DOS FATOS\ntexto")
        assert len(sections) == 1

    def test_heading_levels(self):
        sections = parse_sections("# TÍTULO\n## SEÇÃO")
        assert [s.level for s in sections] == [1, 2]

    def test_hash_without_space_is_body(self):
        sections = parse_sections("## A\n#hashtag no texto")
        assert sections[0].body == "#hashtag no texto"


class TestRenderDocx:

    def test_headings_follow_markers(self):
        document = load(render_docx("## A\ncorpo a\n\n## B\ncorpo b", "Título"))
        assert heading_texts(document) == ["A", "B"]
        body = [p.text for p in document.paragraphs]
        assert body.index("corpo a") < body.index("B") < body.index("corpo b")

    def test_title_and_subtitle(self):
        document = load(render_docx("## A\nx", "Petição Inicial", subtitle="Trabalhista"))
        texts = [p.text for p in document.paragraphs]
        assert texts[0] == "Petição Inicial"
        assert texts[1] == "Trabalhista"

    def test_page_setup(self):
        section = load(render_docx("## A\nx", "T")).sections[0]
        assert section.page_width.cm == pytest.approx(21.0, abs=0.01)
        assert section.page_height.cm == pytest.approx(29.7, abs=0.01)
        assert section.left_margin.cm == pytest.approx(3.0, abs=0.01)
        assert section.top_margin.cm == pytest.approx(3.0, abs=0.01)

    def test_header_uses_office_identity(self):
        office = OfficeSettings(name="Silva Advogados", oab_number="SP 12345")
        header = load(render_docx("## A\nx", "T", office=office)).sections[0].header
        assert header.paragraphs[0].text == "Silva Advogados | OAB: SP 12345"

    def test_header_falls_back_to_default_name(self):
        header = load(render_docx("## A\nx", "T", default_office_name="ADVDESK")).sections[0].header
        assert header.paragraphs[0].text == "ADVDESK"

    def test_footer_has_page_fields(self):
        footer = load(render_docx("## A\nx", "T")).sections[0].footer
        xml = footer.paragraphs[0]._p.xml
        assert "PAGE" in xml
        assert "NUMPAGES" in xml
        assert footer.paragraphs[0].text.startswith("Página ")

    def test_numbered_items_indented_and_prose_justified(self, responses):
        document = load(render_docx(responses.petition, "T"))
        by_text = {p.text: p for p in document.paragraphs}
        item = by_text["1. Pagamento das verbas rescisórias."]
        assert item.paragraph_format.left_indent is not None
        prose = by_text["A conduta da reclamada viola o art. 477 da CLT."]
        assert prose.alignment == WD_ALIGN_PARAGRAPH.JUSTIFY


class TestReportText:

    def test_judge_report_sections(self):
        report = JudgeReport(
            strengths=["Clareza"],
            weaknesses=["Provas"],
            success_probability="Alta",
            probability_rationale="Boa prova documental.",
            suggestions=[Suggestion(title="Juntar laudo", text="Anexar laudo pericial.")],
        )
        text = judge_report_text(report)
        headings = [s.heading for s in parse_sections(text)]
        assert headings[0] == "RELATÓRIO DE ANÁLISE JUDICIAL"
        assert "PROBABILIDADE DE ÊXITO: ALTA" in headings
        assert "1. Juntar laudo" in text

    @pytest.mark.parametrize("fee,present", [("30% do êxito", True), (None, False)])
    def test_chat_report_fee_section_optional(self, fee, present):
        report = ChatReport(
            client_name="Maria",
            area="trabalhista",
            case_summary="Resumo",
            legal_analysis="Análise",
            fee_proposal=fee,
        )
        text = chat_report_text(report, today=date(2024, 3, 5))
        assert "Data: 05/03/2024" in text
        assert "Área: Trabalhista" in text
        assert ("## PROPOSTA DE HONORÁRIOS" in text) is present
