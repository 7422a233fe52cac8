"""
DOCX rendering of generated documents.

Input text uses ``# `` / ``## `` line markers for headings; everything else is
body text split into paragraphs on blank lines. Numbered items are indented,
other paragraphs are justified.
"""

import io
import re
from dataclasses import dataclass
from datetime import date

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Cm, Inches, Pt, RGBColor

from advdesk.models.reports import ChatReport, JudgeReport
from advdesk.models.tenant import OfficeSettings
from advdesk.services.prompts import area_label, format_numbered

_NUMBERED_RE = re.compile(r"^\d+[.)]\s")
_MUTED = RGBColor(0x66, 0x66, 0x66)
_ACCENT = RGBColor(0x63, 0x66, 0xF1)


@dataclass
class DocumentSection:
    heading: str | None
    body: str
    level: int = 1


def parse_sections(text: str) -> list[DocumentSection]:
    """
    Split marker text into sections.

    Text before the first heading becomes a section without heading, and
    only when it is not blank.
    """
    sections: list[DocumentSection] = []
    heading: str | None = None
    level = 1
    lines: list[str] = []

    def flush() -> None:
        body = "\n".join(lines).strip()
        if heading is not None or body:
            sections.append(DocumentSection(heading=heading, body=body, level=level))

    for line in text.splitlines():
        if line.startswith("## ") or line.startswith("# "):
            flush()
            marker, _, title = line.partition(" ")
            heading = title.strip()
            level = len(marker)
            lines = []
        else:
            lines.append(line)
    flush()
    return sections


# =============================================================================
# DOCX
# =============================================================================


def _add_field(paragraph, instruction: str) -> None:
    """Append a Word field (PAGE, NUMPAGES) to a paragraph."""
    run = paragraph.add_run()
    run.font.size = Pt(9)
    run.font.color.rgb = _MUTED

    begin = OxmlElement("w:fldChar")
    begin.set(qn("w:fldCharType"), "begin")
    instr = OxmlElement("w:instrText")
    instr.set(qn("xml:space"), "preserve")
    instr.text = instruction
    separate = OxmlElement("w:fldChar")
    separate.set(qn("w:fldCharType"), "separate")
    placeholder = OxmlElement("w:t")
    placeholder.text = "1"
    end = OxmlElement("w:fldChar")
    end.set(qn("w:fldCharType"), "end")

    for element in (begin, instr, separate, placeholder, end):
        run._r.append(element)


def _muted_run(paragraph, text: str) -> None:
    run = paragraph.add_run(text)
    run.font.size = Pt(9)
    run.font.color.rgb = _MUTED


def _add_body(document, body: str) -> None:
    for block in re.split(r"\n\s*\n", body):
        block = block.strip()
        if not block:
            continue
        lines = [line.strip() for line in block.splitlines() if line.strip()]
        if all(_NUMBERED_RE.match(line) for line in lines):
            for line in lines:
                paragraph = document.add_paragraph(line)
                paragraph.paragraph_format.left_indent = Inches(0.5)
                paragraph.paragraph_format.space_after = Pt(6)
            continue
        paragraph = document.add_paragraph(block)
        paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
        paragraph.paragraph_format.space_after = Pt(10)
        paragraph.paragraph_format.line_spacing = 1.5


def render_docx(
    text: str,
    title: str,
    subtitle: str = "",
    office: OfficeSettings | None = None,
    default_office_name: str = "ADVDESK",
) -> bytes:
    """Render marker text to DOCX bytes (A4, 3 cm margins)."""
    document = Document()

    style = document.styles["Normal"]
    style.font.name = "Arial"
    style.font.size = Pt(12)

    section = document.sections[0]
    section.orientation = WD_ORIENT.PORTRAIT
    section.page_width = Cm(21.0)
    section.page_height = Cm(29.7)
    for side in ("top_margin", "bottom_margin", "left_margin", "right_margin"):
        setattr(section, side, Cm(3))

    # Header: office identity
    header = section.header.paragraphs[0]
    header.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    office_run = header.add_run((office and office.name) or default_office_name)
    office_run.bold = True
    office_run.font.size = Pt(9)
    office_run.font.color.rgb = _ACCENT
    if office and office.oab_number:
        _muted_run(header, f" | OAB: {office.oab_number}")

    # Footer: page X of Y
    footer = section.footer.paragraphs[0]
    footer.alignment = WD_ALIGN_PARAGRAPH.CENTER
    _muted_run(footer, "Página ")
    _add_field(footer, "PAGE")
    _muted_run(footer, " de ")
    _add_field(footer, "NUMPAGES")

    heading = document.add_heading(title, level=0)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
    if subtitle:
        sub = document.add_paragraph()
        sub.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = sub.add_run(subtitle)
        run.font.size = Pt(11)
        run.font.color.rgb = _MUTED

    for part in parse_sections(text):
        if part.heading:
            document.add_heading(part.heading.upper(), level=min(part.level, 2))
        if part.body:
            _add_body(document, part.body)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


# =============================================================================
# Report text
# =============================================================================


def judge_report_text(report: JudgeReport) -> str:
    """Marker text for a judge review report."""
    blocks = [
        "# RELATÓRIO DE ANÁLISE JUDICIAL",
        f"## PROBABILIDADE DE ÊXITO: {report.success_probability.value.upper()}",
        report.probability_rationale,
        "## PONTOS FORTES",
        format_numbered(report.strengths),
        "## PONTOS FRACOS",
        format_numbered(report.weaknesses),
        "## LACUNAS PROBATÓRIAS",
        format_numbered(report.evidence_gaps),
        "## RISCOS",
        format_numbered(report.risks),
        "## SUGESTÕES DE MELHORIA",
    ]
    for i, suggestion in enumerate(report.suggestions, 1):
        blocks.append(f"{i}. {suggestion.title}")
        blocks.append(suggestion.text)
    return "\n\n".join(b for b in blocks if b)


def chat_report_text(report: ChatReport, today: date | None = None) -> str:
    """Marker text for a client intake report."""
    today = today or date.today()
    blocks = [
        "# RELATÓRIO DE ATENDIMENTO",
        f"Cliente: {report.client_name}\nÁrea: {area_label(report.area)}\n"
        f"Data: {today.strftime('%d/%m/%Y')}",
        "## RESUMO DO CASO",
        report.case_summary,
        "## ANÁLISE JURÍDICA PRELIMINAR",
        report.legal_analysis,
        "## TESES IDENTIFICADAS",
        format_numbered(report.theses),
    ]
    if report.fee_proposal:
        blocks += ["## PROPOSTA DE HONORÁRIOS", report.fee_proposal]
    blocks += ["## PRÓXIMOS PASSOS", format_numbered(report.next_steps)]
    return "\n\n".join(b for b in blocks if b)
