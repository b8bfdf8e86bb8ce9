"""PDF exports for aging reports and account statements using fpdf2."""
from __future__ import annotations

import io
import logging
from pathlib import Path

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from dashboard.app.core.config import settings
from dashboard.app.schemas.aging import AgingReportOut
from dashboard.app.schemas.statement import StatementOut
from dashboard.app.services.export_i18n import t

logger = logging.getLogger(__name__)

# ── Shared helpers ──────────────────────────────────────────────────────────

_COL_BG = (31, 78, 121)   # dark blue header
_SEC_BG = (214, 228, 240)  # light blue section
_OVERDUE_RGB = (192, 0, 0)
_LINE_H = 7

_ARABIC_FONT = "NotoSansArabic"

_BUCKET_KEYS = ["current", "days_1_to_30", "days_31_to_60", "days_61_to_90", "over_90", "total"]
_TOTAL_KEYS = [
    "total_current",
    "total_1_to_30",
    "total_31_to_60",
    "total_61_to_90",
    "total_over_90",
    "grand_total",
]


def _setup_font(pdf: FPDF, lang: str) -> tuple[str, str]:
    """Register the font for *lang*. Returns (font family, effective lang).

    Arabic needs a Unicode font; without ``PDF_FONT_DIR`` the export is
    rendered with English labels.
    """
    if lang == "ar":
        if settings.PDF_FONT_DIR:
            font_dir = Path(settings.PDF_FONT_DIR)
            pdf.add_font(_ARABIC_FONT, "", str(font_dir / "NotoSansArabic-Regular.ttf"))
            pdf.add_font(_ARABIC_FONT, "B", str(font_dir / "NotoSansArabic-Bold.ttf"))
            return _ARABIC_FONT, "ar"
        logger.info("PDF_FONT_DIR not set; rendering PDF export in English")
    return "Helvetica", "en"


def _new_pdf(orientation: str = "P") -> FPDF:
    pdf = FPDF(orientation=orientation)
    pdf.add_page()
    pdf.set_auto_page_break(auto=True, margin=15)
    return pdf


def _title(pdf: FPDF, font: str, title: str, subtitle: str) -> None:
    pdf.set_font(font, "B", 16)
    pdf.cell(0, 10, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font(font, "", 9)
    pdf.cell(0, 6, subtitle, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)


def _header_row(pdf: FPDF, headers: list[str], widths: list[int], font: str) -> None:
    """Draw a colored header row."""
    pdf.set_fill_color(*_COL_BG)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(font, "B", 9)
    for i, (h, w) in enumerate(zip(headers, widths)):
        pdf.cell(w, _LINE_H, h, border=1, fill=True, align="R" if i > 0 else "L")
    pdf.ln()
    pdf.set_text_color(0, 0, 0)


def _data_row(
    pdf: FPDF,
    values: list[str],
    widths: list[int],
    font: str,
    bold: bool = False,
    left_cols: int = 1,
) -> None:
    pdf.set_font(font, "B" if bold else "", 8)
    for i, (v, w) in enumerate(zip(values, widths)):
        pdf.cell(w, _LINE_H, v, border="B", align="L" if i < left_cols else "R")
    pdf.ln()


def _fmt(value: str) -> str:
    """Format a two-decimal money string with thousands separators."""
    return f"{float(value):,.2f}"


def _safe_text(text: str, lang: str) -> str:
    """Replace non-latin-1 characters for the built-in fonts."""
    if lang == "ar":
        return text
    return text.encode("latin-1", errors="replace").decode("latin-1")


def _to_bytes(pdf: FPDF) -> io.BytesIO:
    buf = io.BytesIO(bytes(pdf.output()))
    buf.seek(0)
    return buf


# ── Aging ──────────────────────────────────────────────────────────────────


def export_aging_pdf(report: AgingReportOut, lang: str = "en") -> io.BytesIO:
    pdf = _new_pdf(orientation="L")
    font, lang = _setup_font(pdf, lang)
    title_key = f"{report.report_type}_aging"
    _title(
        pdf, font, t(lang, title_key),
        f"{t(lang, 'as_of')} {report.as_of_date} ({settings.CURRENCY})",
    )

    widths = [75, 30, 30, 30, 30, 30, 32]
    account_label = "customer" if report.report_type == "receivables" else "supplier"
    _header_row(pdf, [t(lang, account_label)] + [t(lang, k) for k in _BUCKET_KEYS], widths, font)

    if not report.details:
        pdf.set_font(font, "", 9)
        pdf.cell(sum(widths), _LINE_H, t(lang, "no_outstanding"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    for detail in report.details:
        values = detail.model_dump()
        pdf.set_font(font, "", 8)
        pdf.cell(widths[0], _LINE_H, _safe_text(detail.account_name, lang), border="B")
        for w, key in zip(widths[1:], _BUCKET_KEYS):
            if key == "over_90" and float(values[key]) > 0:
                pdf.set_text_color(*_OVERDUE_RGB)
            pdf.cell(w, _LINE_H, _fmt(values[key]), border="B", align="R")
            pdf.set_text_color(0, 0, 0)
        pdf.ln()

    totals = report.model_dump()
    _data_row(
        pdf,
        [t(lang, "total")] + [_fmt(totals[k]) for k in _TOTAL_KEYS],
        widths, font, bold=True,
    )
    pdf.ln(3)
    pdf.set_fill_color(*_SEC_BG)
    pdf.set_font(font, "B", 9)
    pdf.cell(widths[0], _LINE_H, t(lang, "total_overdue"), fill=True)
    pdf.cell(widths[1], _LINE_H, _fmt(report.total_overdue), fill=True, align="R")

    return _to_bytes(pdf)


# ── Account statement ───────────────────────────────────────────────────────


def export_statement_pdf(
    statement: StatementOut, side: str = "receivables", lang: str = "en"
) -> io.BytesIO:
    pdf = _new_pdf()
    font, lang = _setup_font(pdf, lang)
    title_key = "customer_statement" if side == "receivables" else "supplier_statement"
    name = statement.account_name or f"#{statement.account_id}"
    period = f"{statement.from_date or '-'} {t(lang, 'to')} {statement.to_date or '-'}"
    _title(
        pdf, font, _safe_text(f"{t(lang, title_key)}: {name}", lang),
        f"{t(lang, 'period')}: {period} ({settings.CURRENCY})",
    )

    widths = [28, 52, 34, 38, 38]
    _header_row(
        pdf,
        [t(lang, "date"), t(lang, "reference"), t(lang, "type"), t(lang, "amount"), t(lang, "balance")],
        widths, font,
    )
    _data_row(
        pdf,
        [t(lang, "opening_balance"), "", "", "", _fmt(statement.opening_balance)],
        widths, font, bold=True,
    )
    for line in statement.rows:
        _data_row(
            pdf,
            [
                line.date,
                _safe_text(line.reference, lang),
                t(lang, line.kind),
                _fmt(line.amount),
                _fmt(line.running_balance),
            ],
            widths, font, left_cols=3,
        )
    _data_row(
        pdf,
        [t(lang, "closing_balance"), "", "", "", _fmt(statement.closing_balance)],
        widths, font, bold=True,
    )
    pdf.ln(3)
    _data_row(pdf, [t(lang, "total_debits"), _fmt(statement.total_debits)], [80, 38], font)
    _data_row(pdf, [t(lang, "total_credits"), _fmt(statement.total_credits)], [80, 38], font)

    return _to_bytes(pdf)
