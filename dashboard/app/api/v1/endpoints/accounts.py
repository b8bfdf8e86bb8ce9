from __future__ import annotations

import calendar
import logging
from datetime import date

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse

from dashboard.app.api.deps import get_backend_client
from dashboard.app.core.config import settings
from dashboard.app.core.errors import IncompleteDataError, ReportError
from dashboard.app.schemas.aging import AgingComputeRequest, AgingReportOut
from dashboard.app.schemas.statement import StatementComputeRequest, StatementOut
from dashboard.app.schemas.transactions import LedgerSide
from dashboard.app.services.aging import get_aging_report
from dashboard.app.services.api_client import (
    ApiSession,
    BackendApiError,
    BackendClient,
    SessionExpiredError,
)
from dashboard.app.services.export_excel import export_aging_excel, export_statement_excel
from dashboard.app.services.export_pdf import export_aging_pdf, export_statement_pdf
from dashboard.app.services.ledger_sources import fetch_aging_report, fetch_statement
from dashboard.app.services.statement import get_statement

logger = logging.getLogger(__name__)

router = APIRouter()

_XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
_PDF_MIME = "application/pdf"


def _months_before(day: date, months: int) -> date:
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    return day.replace(
        year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1])
    )


def _default_statement_dates(
    from_date: date | None, to_date: date | None,
) -> tuple[date, date]:
    if to_date is None:
        to_date = date.today()
    if from_date is None:
        from_date = _months_before(to_date, settings.STATEMENT_DEFAULT_MONTHS)
    return from_date, to_date


def _http_error(exc: Exception) -> HTTPException:
    """Translate report and backend failures into HTTP errors."""
    if isinstance(exc, SessionExpiredError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(exc, IncompleteDataError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, BackendApiError):
        if exc.status_code in (401, 403, 404):
            return HTTPException(status_code=exc.status_code, detail=str(exc))
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    if isinstance(exc, httpx.HTTPError):
        logger.error("Backend request failed: %s", exc)
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Backend API unavailable"
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _echo_tokens(response: Response, session: ApiSession) -> None:
    """Hand refreshed tokens back to the caller."""
    if session.refreshed and session.access_token and session.refresh_token:
        response.headers["X-Access-Token"] = session.access_token
        response.headers["X-Refresh-Token"] = session.refresh_token


def _export_response(
    buf: object, filename: str, session: ApiSession, media_type: str = _XLSX_MIME
) -> StreamingResponse:
    response = StreamingResponse(
        buf,  # type: ignore[arg-type]
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
    _echo_tokens(response, session)
    return response


async def _aging(client: BackendClient, side: LedgerSide, as_of_date: date | None) -> AgingReportOut:
    try:
        report = await fetch_aging_report(client, side, as_of_date or date.today())
    except (ReportError, BackendApiError, httpx.HTTPError) as e:
        raise _http_error(e)
    return AgingReportOut.from_report(report)


async def _statement(
    client: BackendClient,
    side: LedgerSide,
    account_id: int,
    from_date: date | None,
    to_date: date | None,
) -> StatementOut:
    fd, td = _default_statement_dates(from_date, to_date)
    try:
        statement = await fetch_statement(client, side, account_id, fd, td)
    except (ReportError, BackendApiError, httpx.HTTPError) as e:
        raise _http_error(e)
    return StatementOut.from_statement(statement)


# ── Aging ───────────────────────────────────────────────────────────────────


@router.get("/aging/receivables", response_model=AgingReportOut)
async def receivables_aging(
    response: Response,
    as_of_date: date | None = Query(None),
    client: BackendClient = Depends(get_backend_client),
) -> AgingReportOut:
    result = await _aging(client, LedgerSide.RECEIVABLES, as_of_date)
    _echo_tokens(response, client.session)
    return result


@router.get("/aging/payables", response_model=AgingReportOut)
async def payables_aging(
    response: Response,
    as_of_date: date | None = Query(None),
    client: BackendClient = Depends(get_backend_client),
) -> AgingReportOut:
    result = await _aging(client, LedgerSide.PAYABLES, as_of_date)
    _echo_tokens(response, client.session)
    return result


@router.get("/aging/receivables/export/excel")
async def receivables_aging_export_excel(
    as_of_date: date | None = Query(None),
    lang: str = Query("en"),
    client: BackendClient = Depends(get_backend_client),
) -> StreamingResponse:
    result = await _aging(client, LedgerSide.RECEIVABLES, as_of_date)
    buf = export_aging_excel(result, lang=lang)
    return _export_response(buf, "receivables-aging.xlsx", client.session)


@router.get("/aging/payables/export/excel")
async def payables_aging_export_excel(
    as_of_date: date | None = Query(None),
    lang: str = Query("en"),
    client: BackendClient = Depends(get_backend_client),
) -> StreamingResponse:
    result = await _aging(client, LedgerSide.PAYABLES, as_of_date)
    buf = export_aging_excel(result, lang=lang)
    return _export_response(buf, "payables-aging.xlsx", client.session)


@router.get("/aging/receivables/export/pdf")
async def receivables_aging_export_pdf(
    as_of_date: date | None = Query(None),
    lang: str = Query("en"),
    client: BackendClient = Depends(get_backend_client),
) -> StreamingResponse:
    result = await _aging(client, LedgerSide.RECEIVABLES, as_of_date)
    buf = export_aging_pdf(result, lang=lang)
    return _export_response(buf, "receivables-aging.pdf", client.session, _PDF_MIME)


@router.get("/aging/payables/export/pdf")
async def payables_aging_export_pdf(
    as_of_date: date | None = Query(None),
    lang: str = Query("en"),
    client: BackendClient = Depends(get_backend_client),
) -> StreamingResponse:
    result = await _aging(client, LedgerSide.PAYABLES, as_of_date)
    buf = export_aging_pdf(result, lang=lang)
    return _export_response(buf, "payables-aging.pdf", client.session, _PDF_MIME)


@router.post("/aging/compute", response_model=AgingReportOut)
def compute_aging(body: AgingComputeRequest) -> AgingReportOut:
    """Age records the caller already holds, without touching the backend."""
    report = get_aging_report(
        body.records, as_of_date=body.as_of_date, report_type=body.report_type
    )
    return AgingReportOut.from_report(report)


# ── Statements ──────────────────────────────────────────────────────────────


@router.get("/customer/{account_id}/statement", response_model=StatementOut)
async def customer_statement(
    account_id: int,
    response: Response,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    client: BackendClient = Depends(get_backend_client),
) -> StatementOut:
    result = await _statement(client, LedgerSide.RECEIVABLES, account_id, from_date, to_date)
    _echo_tokens(response, client.session)
    return result


@router.get("/supplier/{account_id}/statement", response_model=StatementOut)
async def supplier_statement(
    account_id: int,
    response: Response,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    client: BackendClient = Depends(get_backend_client),
) -> StatementOut:
    result = await _statement(client, LedgerSide.PAYABLES, account_id, from_date, to_date)
    _echo_tokens(response, client.session)
    return result


@router.get("/customer/{account_id}/statement/export/excel")
async def customer_statement_export_excel(
    account_id: int,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    lang: str = Query("en"),
    client: BackendClient = Depends(get_backend_client),
) -> StreamingResponse:
    result = await _statement(client, LedgerSide.RECEIVABLES, account_id, from_date, to_date)
    buf = export_statement_excel(result, side=LedgerSide.RECEIVABLES.value, lang=lang)
    return _export_response(buf, f"customer-statement-{account_id}.xlsx", client.session)


@router.get("/supplier/{account_id}/statement/export/excel")
async def supplier_statement_export_excel(
    account_id: int,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    lang: str = Query("en"),
    client: BackendClient = Depends(get_backend_client),
) -> StreamingResponse:
    result = await _statement(client, LedgerSide.PAYABLES, account_id, from_date, to_date)
    buf = export_statement_excel(result, side=LedgerSide.PAYABLES.value, lang=lang)
    return _export_response(buf, f"supplier-statement-{account_id}.xlsx", client.session)


@router.get("/customer/{account_id}/statement/export/pdf")
async def customer_statement_export_pdf(
    account_id: int,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    lang: str = Query("en"),
    client: BackendClient = Depends(get_backend_client),
) -> StreamingResponse:
    result = await _statement(client, LedgerSide.RECEIVABLES, account_id, from_date, to_date)
    buf = export_statement_pdf(result, side=LedgerSide.RECEIVABLES.value, lang=lang)
    return _export_response(
        buf, f"customer-statement-{account_id}.pdf", client.session, _PDF_MIME
    )


@router.get("/supplier/{account_id}/statement/export/pdf")
async def supplier_statement_export_pdf(
    account_id: int,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    lang: str = Query("en"),
    client: BackendClient = Depends(get_backend_client),
) -> StreamingResponse:
    result = await _statement(client, LedgerSide.PAYABLES, account_id, from_date, to_date)
    buf = export_statement_pdf(result, side=LedgerSide.PAYABLES.value, lang=lang)
    return _export_response(
        buf, f"supplier-statement-{account_id}.pdf", client.session, _PDF_MIME
    )


@router.post("/statement/compute", response_model=StatementOut)
def compute_statement(body: StatementComputeRequest) -> StatementOut:
    """Render a statement from records the caller already holds."""
    try:
        statement = get_statement(
            body.records,
            body.account_id,
            body.opening_balance,
            from_date=body.from_date,
            to_date=body.to_date,
            account_name=body.account_name,
        )
    except IncompleteDataError as e:
        raise _http_error(e)
    return StatementOut.from_statement(statement)
