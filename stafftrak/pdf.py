"""
stafftrak/pdf.py
Summative evaluation PDF export.

build_summative_pdf() lays out a fixed Letter-size document with fpdf2 and
returns the bytes, ready for st.download_button.  Layout:
  header → employee information → overall score → domain scores →
  evaluator feedback (non-empty sections only) → employee comments (if any)
  → signatures → footer
"""

import re
from datetime import date

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from stafftrak.db import _get_secret
from stafftrak.evaluations import NARRATIVE_FIELDS
from stafftrak.scoring import format_score, rating_for_score
from stafftrak.status import signature_text

NAVY   = (44, 62, 126)
GREY   = (102, 102, 102)
LIGHT  = (240, 244, 248)
ORANGE = (243, 132, 62)
TEXT   = (51, 51, 51)
RULE   = (224, 224, 224)

ACKNOWLEDGEMENT = (
    "Employee signature acknowledges receipt and review of this evaluation. "
    "It does not necessarily indicate agreement with the evaluation."
)


def _latin1(text) -> str:
    """Core PDF fonts are Latin-1 only; replace anything outside it."""
    if text is None:
        return ""
    return str(text).encode("latin-1", errors="replace").decode("latin-1")


def pdf_filename(staff: dict | None, year: int | None = None) -> str:
    """Summative_Evaluation_<Name_With_Underscores>_<year>.pdf"""
    name = (staff or {}).get("full_name") or ""
    name = re.sub(r"\s+", "_", name.strip()) or "Staff"
    return f"Summative_Evaluation_{name}_{year or date.today().year}.pdf"


class _SummativePDF(FPDF):
    def footer(self):
        self.set_y(-15)
        self.set_draw_color(*RULE)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_font("Helvetica", size=9)
        self.set_text_color(153, 153, 153)
        self.cell(
            0, 8,
            _latin1(f"Generated by StaffTrak - {date.today().strftime('%m/%d/%Y')} - ScholarPath Systems"),
            align="C",
        )

    # ── Building blocks ──────────────────────────────────────────────────────

    def section_title(self, text: str) -> None:
        self.ln(3)
        self.set_font("Helvetica", style="B", size=13)
        self.set_text_color(*NAVY)
        self.set_fill_color(*LIGHT)
        self.cell(0, 8, _latin1(text), fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(2)

    def label_row(self, label: str, value) -> None:
        width = self.w - self.l_margin - self.r_margin
        self.set_font("Helvetica", size=11)
        self.set_text_color(*GREY)
        self.cell(width * 0.35, 6, _latin1(label))
        self.set_font("Helvetica", style="B", size=11)
        self.set_text_color(*TEXT)
        self.cell(width * 0.65, 6, _latin1(value or "N/A"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def feedback_box(self, label: str, text: str, accent=NAVY) -> None:
        self.set_draw_color(*accent)
        top = self.get_y()
        self.set_x(self.l_margin + 3)
        self.set_font("Helvetica", style="B", size=10)
        self.set_text_color(*NAVY)
        self.cell(0, 5, _latin1(label), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_x(self.l_margin + 3)
        self.set_font("Helvetica", size=10)
        self.set_text_color(*TEXT)
        self.multi_cell(0, 5, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_line_width(0.8)
        self.line(self.l_margin, top, self.l_margin, self.get_y())
        self.set_line_width(0.2)
        self.ln(3)


def build_summative_pdf(
    evaluation: dict,
    staff: dict | None,
    evaluator: dict | None,
    domains: list[dict] | None,
    school_name: str | None = None,
    school_year: str | None = None,
    compress: bool = True,
) -> bytes:
    """
    Render a summative evaluation as PDF bytes.

    compress=False leaves page content streams as plain text.
    """
    evaluation = evaluation or {}
    staff = staff or {}
    evaluator = evaluator or {}
    domain_scores = evaluation.get("domain_scores") or {}
    school_name = school_name or _get_secret("SCHOOL_NAME", "StaffTrak") or "StaffTrak"
    school_year = school_year or _get_secret("SCHOOL_YEAR", "2025-2026") or "2025-2026"

    pdf = _SummativePDF(format="letter")
    pdf.set_compression(compress)
    pdf.set_margins(14, 14, 14)
    pdf.set_auto_page_break(auto=True, margin=22)
    pdf.add_page()
    width = pdf.w - pdf.l_margin - pdf.r_margin

    # ── Header ───────────────────────────────────────────────────────────────
    pdf.set_font("Helvetica", style="B", size=14)
    pdf.set_text_color(*TEXT)
    pdf.cell(0, 8, _latin1(school_name), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", style="B", size=20)
    pdf.set_text_color(*NAVY)
    pdf.cell(0, 10, "Summative Evaluation", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", size=12)
    pdf.set_text_color(*GREY)
    pdf.cell(0, 6, _latin1(f"School Year {school_year}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*NAVY)
    pdf.set_line_width(0.7)
    pdf.line(pdf.l_margin, pdf.get_y() + 3, pdf.w - pdf.r_margin, pdf.get_y() + 3)
    pdf.set_line_width(0.2)
    pdf.ln(6)

    # ── Employee information ─────────────────────────────────────────────────
    pdf.section_title("Employee Information")
    pdf.label_row("Employee Name:", staff.get("full_name"))
    pdf.label_row("Position:", staff.get("position_type"))
    pdf.label_row("Staff Type:", staff.get("staff_type"))
    pdf.label_row("Evaluator:", evaluator.get("full_name"))

    # ── Overall score ────────────────────────────────────────────────────────
    pdf.ln(4)
    pdf.set_fill_color(*LIGHT)
    pdf.set_font("Helvetica", style="B", size=28)
    pdf.set_text_color(*NAVY)
    pdf.cell(width * 0.4, 16, _latin1(format_score(evaluation.get("overall_score"), "N/A")),
             align="C", fill=True)
    pdf.set_font("Helvetica", style="B", size=16)
    pdf.set_text_color(*TEXT)
    pdf.cell(width * 0.6, 16, _latin1(evaluation.get("overall_rating") or "N/A"),
             fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", size=9)
    pdf.set_text_color(*GREY)
    pdf.cell(0, 5, "Overall Rating", align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    # ── Domain scores ────────────────────────────────────────────────────────
    pdf.section_title("Domain Scores")
    for domain in domains or []:
        entry = domain_scores.get(str(domain.get("id"))) or domain_scores.get(domain.get("id")) or {}
        score = entry.get("score")
        pdf.set_font("Helvetica", size=11)
        pdf.set_text_color(*TEXT)
        pdf.cell(width * 0.62, 7, _latin1(domain.get("name")))
        pdf.set_font("Helvetica", style="B", size=11)
        pdf.cell(width * 0.13, 7, _latin1(format_score(score)), align="C")
        pdf.set_font("Helvetica", size=9)
        pdf.cell(width * 0.25, 7, _latin1(rating_for_score(score)), align="R",
                 new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        if entry.get("feedback"):
            pdf.set_x(pdf.l_margin + 4)
            pdf.set_font("Helvetica", style="I", size=9)
            pdf.set_text_color(*GREY)
            pdf.multi_cell(0, 4.5, _latin1(entry["feedback"]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_draw_color(*RULE)
        pdf.line(pdf.l_margin, pdf.get_y() + 1, pdf.w - pdf.r_margin, pdf.get_y() + 1)
        pdf.ln(2)

    # ── Evaluator feedback ───────────────────────────────────────────────────
    pdf.section_title("Evaluator Feedback")
    for key, label in NARRATIVE_FIELDS:
        text = (evaluation.get(key) or "").strip()
        if text:
            pdf.feedback_box(label, text)

    staff_comments = (evaluation.get("staff_comments") or "").strip()
    if staff_comments:
        pdf.section_title("Employee Comments")
        pdf.feedback_box("Employee Comments", staff_comments, accent=ORANGE)

    # ── Signatures ───────────────────────────────────────────────────────────
    pdf.section_title("Signatures")
    for label, person, signed_at in (
        ("Evaluator:", evaluator, evaluation.get("evaluator_signature_at")),
        ("Employee:", staff, evaluation.get("staff_signature_at")),
    ):
        pdf.set_font("Helvetica", size=11)
        pdf.set_text_color(*GREY)
        pdf.cell(width * 0.25, 7, label)
        pdf.set_text_color(*TEXT)
        pdf.cell(width * 0.40, 7, _latin1(person.get("full_name") or "N/A"))
        pdf.set_font("Helvetica", size=9)
        pdf.set_text_color(*GREY)
        pdf.cell(width * 0.35, 7, _latin1(signature_text(signed_at)), align="R",
                 new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.ln(3)
    pdf.set_font("Helvetica", style="I", size=9)
    pdf.multi_cell(0, 4.5, ACKNOWLEDGEMENT, new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    return bytes(pdf.output())
