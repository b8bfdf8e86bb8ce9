"""Excel exports for aging reports and account statements using openpyxl."""
from __future__ import annotations

import io
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from dashboard.app.core.config import settings
from dashboard.app.schemas.aging import AgingReportOut
from dashboard.app.schemas.statement import StatementOut
from dashboard.app.services.export_i18n import t

# ── Shared styling constants ────────────────────────────────────────────────

_HEADER_FONT = Font(name="Calibri", bold=True, color="FFFFFF", size=11)
_HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
_SECTION_FONT = Font(name="Calibri", bold=True, size=11)
_TOTAL_FONT = Font(name="Calibri", bold=True, size=11)
_TOTAL_BORDER = Border(
    top=Side(style="thin"),
    bottom=Side(style="double"),
)
_OVERDUE_FONT = Font(name="Calibri", color="C00000")
_CURRENCY_FMT = '#,##0.00'
_RIGHT = Alignment(horizontal="right")
_LEFT = Alignment(horizontal="left")

_BUCKET_KEYS = ["current", "days_1_to_30", "days_31_to_60", "days_61_to_90", "over_90", "total"]
_TOTAL_KEYS = [
    "total_current",
    "total_1_to_30",
    "total_31_to_60",
    "total_61_to_90",
    "total_over_90",
    "grand_total",
]


def _auto_width(ws: Any) -> None:
    """Auto-fit column widths based on content."""
    for col_idx in range(1, ws.max_column + 1):
        max_len = 0
        col_letter = get_column_letter(col_idx)
        for row in ws.iter_rows(min_col=col_idx, max_col=col_idx, values_only=True):
            if row[0] is not None:
                max_len = max(max_len, len(str(row[0])))
        ws.column_dimensions[col_letter].width = min(max_len + 4, 40)


def _write_header_row(ws: Any, row: int, values: list[str]) -> None:
    for col, val in enumerate(values, 1):
        cell = ws.cell(row=row, column=col, value=val)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _RIGHT if col > 1 else _LEFT


def _write_title(ws: Any, title: str, subtitle: str) -> int:
    """Write report title and subtitle, return next available row."""
    ws.cell(row=1, column=1, value=title).font = Font(name="Calibri", bold=True, size=14)
    ws.cell(row=2, column=1, value=subtitle).font = Font(name="Calibri", size=10, italic=True)
    return 4


def _money_cell(ws: Any, row: int, column: int, value: str, font: Font | None = None) -> Any:
    c = ws.cell(row=row, column=column, value=float(value))
    c.number_format = _CURRENCY_FMT
    c.alignment = _RIGHT
    if font is not None:
        c.font = font
    return c


def _to_workbook(ws: Any, wb: Workbook) -> io.BytesIO:
    _auto_width(ws)
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


# ── Aging ──────────────────────────────────────────────────────────────────


def export_aging_excel(report: AgingReportOut, lang: str = "en") -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    title_key = f"{report.report_type}_aging"
    ws.title = t(lang, title_key)[:31]

    row = _write_title(
        ws, t(lang, title_key), f"{t(lang, 'as_of')} {report.as_of_date} ({settings.CURRENCY})"
    )

    account_label = "customer" if report.report_type == "receivables" else "supplier"
    _write_header_row(ws, row, [t(lang, account_label)] + [t(lang, k) for k in _BUCKET_KEYS])
    row += 1

    if not report.details:
        ws.cell(row=row, column=1, value=t(lang, "no_outstanding")).font = Font(
            name="Calibri", italic=True
        )
        row += 1

    for detail in report.details:
        values = detail.model_dump()
        ws.cell(row=row, column=1, value=detail.account_name)
        for col, key in enumerate(_BUCKET_KEYS, 2):
            c = _money_cell(ws, row, col, values[key])
            if key == "over_90" and float(values[key]) > 0:
                c.font = _OVERDUE_FONT
        row += 1

    # Totals
    totals = report.model_dump()
    ws.cell(row=row, column=1, value=t(lang, "total")).font = _TOTAL_FONT
    for col, key in enumerate(_TOTAL_KEYS, 2):
        c = _money_cell(ws, row, col, totals[key], font=_TOTAL_FONT)
        c.border = _TOTAL_BORDER
    row += 2

    ws.cell(row=row, column=1, value=t(lang, "total_overdue")).font = _SECTION_FONT
    _money_cell(ws, row, 2, report.total_overdue, font=_SECTION_FONT)

    return _to_workbook(ws, wb)


# ── Account statement ───────────────────────────────────────────────────────


def export_statement_excel(
    statement: StatementOut, side: str = "receivables", lang: str = "en"
) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    title_key = "customer_statement" if side == "receivables" else "supplier_statement"
    ws.title = t(lang, title_key)[:31]

    period = f"{statement.from_date or '-'} {t(lang, 'to')} {statement.to_date or '-'}"
    name = statement.account_name or f"#{statement.account_id}"
    row = _write_title(
        ws, f"{t(lang, title_key)}: {name}", f"{t(lang, 'period')}: {period} ({settings.CURRENCY})"
    )

    _write_header_row(
        ws, row,
        [t(lang, "date"), t(lang, "reference"), t(lang, "type"), t(lang, "amount"), t(lang, "balance")],
    )
    row += 1

    ws.cell(row=row, column=1, value=t(lang, "opening_balance")).font = _SECTION_FONT
    _money_cell(ws, row, 5, statement.opening_balance, font=_SECTION_FONT)
    row += 1

    for line in statement.rows:
        ws.cell(row=row, column=1, value=line.date)
        ws.cell(row=row, column=2, value=line.reference)
        ws.cell(row=row, column=3, value=t(lang, line.kind))
        _money_cell(ws, row, 4, line.amount)
        _money_cell(ws, row, 5, line.running_balance)
        row += 1

    ws.cell(row=row, column=1, value=t(lang, "closing_balance")).font = _TOTAL_FONT
    c = _money_cell(ws, row, 5, statement.closing_balance, font=_TOTAL_FONT)
    c.border = _TOTAL_BORDER
    row += 2

    ws.cell(row=row, column=1, value=t(lang, "total_debits")).font = _SECTION_FONT
    _money_cell(ws, row, 4, statement.total_debits)
    row += 1
    ws.cell(row=row, column=1, value=t(lang, "total_credits")).font = _SECTION_FONT
    _money_cell(ws, row, 4, statement.total_credits)

    return _to_workbook(ws, wb)
