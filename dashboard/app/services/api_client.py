"""HTTP client for the pharmacy backend REST API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from datetime import date
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dashboard.app.core.config import settings
from dashboard.app.schemas.backend import (
    AccountStatementDto,
    AgingReportDto,
    ApiEnvelope,
    CreditDebitNoteDto,
    LedgerEntryDto,
    LoginResponse,
    PagedResult,
    PaymentDto,
    PurchaseOrderDto,
    SaleDto,
)
from dashboard.app.schemas.transactions import RecordError

logger = logging.getLogger(__name__)

REFRESH_PATH = "/api/auth/refresh-token"

DtoT = TypeVar("DtoT", bound=BaseModel)
DtoBatch = tuple[list[DtoT], list[RecordError]]


def validate_items(
    items: list[dict[str, Any]],
    model: type[DtoT],
    kind: str,
    reference_key: str,
) -> DtoBatch[DtoT]:
    """Validate listing rows one by one, reporting the rows that fail."""
    valid: list[DtoT] = []
    errors: list[RecordError] = []
    for index, item in enumerate(items):
        try:
            valid.append(model.model_validate(item))
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            reference = item.get(reference_key) if isinstance(item, dict) else None
            logger.warning(
                "Skipping malformed %s row %s (#%d): %s",
                kind, reference or "-", index, first["msg"],
            )
            errors.append(
                RecordError(
                    index=index,
                    kind=kind,
                    reference=str(reference) if reference is not None else None,
                    field=".".join(str(part) for part in first["loc"]) or None,
                    message=first["msg"],
                )
            )
    return valid, errors


class BackendApiError(Exception):
    """Backend answered with ``success: false`` or an unreadable body."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        self.status_code = status_code
        self.errors = errors
        super().__init__(message)


class SessionExpiredError(BackendApiError):
    """The access token was rejected and could not be refreshed."""

    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(401, message)


class ApiSession:
    """Access/refresh token pair for one caller.

    Passed explicitly to the client; a successful refresh updates it in
    place so the caller can hand the new tokens back to the UI. Concurrent
    requests sharing a session refresh it under ``lock`` so a rotating
    refresh token is spent only once.
    """

    def __init__(self, access_token: str | None = None, refresh_token: str | None = None) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.refreshed = False
        self.lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def update(self, access_token: str, refresh_token: str) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.refreshed = True

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None


class BackendClient:
    """Thin wrapper mapping backend endpoints to coroutines."""

    def __init__(
        self,
        session: ApiSession,
        base_url: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self.base_url = (base_url or settings.BACKEND_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.BACKEND_TIMEOUT_SECONDS
        self.page_size = page_size or settings.BACKEND_PAGE_SIZE
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.session.access_token:
            headers["Authorization"] = f"Bearer {self.session.access_token}"
        return headers

    @staticmethod
    def _clean_params(params: dict[str, Any] | None) -> dict[str, str]:
        """Drop empty query values and stringify the rest."""
        cleaned: dict[str, str] = {}
        for key, value in (params or {}).items():
            if value is None or value == "":
                continue
            if isinstance(value, bool):
                cleaned[key] = "true" if value else "false"
            elif isinstance(value, date):
                cleaned[key] = value.isoformat()
            else:
                cleaned[key] = str(value)
        return cleaned

    @staticmethod
    def _unwrap(resp: httpx.Response) -> Any:
        """Return the envelope's ``data`` or raise on a failed envelope.

        5xx responses are raised as ``httpx.HTTPStatusError``.
        """
        if resp.status_code >= 500:
            resp.raise_for_status()

        try:
            payload = resp.json()
        except ValueError:
            raise BackendApiError(
                status_code=resp.status_code,
                message=f"Non-JSON response: {resp.text[:200] if resp.text else '(empty)'}",
            )

        try:
            envelope = ApiEnvelope.model_validate(payload)
        except PydanticValidationError:
            raise BackendApiError(
                status_code=resp.status_code,
                message="Response is not an API envelope",
            )
        if not envelope.success:
            raise BackendApiError(
                status_code=resp.status_code,
                message=envelope.message or f"HTTP {resp.status_code}",
                errors=envelope.errors,
            )
        return envelope.data

    async def refresh_session(self, client: httpx.AsyncClient | None = None) -> bool:
        """Exchange the token pair for a new one; ``False`` when refused."""
        if not self.session.access_token or not self.session.refresh_token:
            return False
        payload = {
            "token": self.session.access_token,
            "refreshToken": self.session.refresh_token,
        }
        try:
            if client is None:
                async with self._client() as own_client:
                    resp = await own_client.post(REFRESH_PATH, json=payload)
            else:
                resp = await client.post(REFRESH_PATH, json=payload)
            if resp.status_code != 200:
                return False
            envelope = ApiEnvelope.model_validate(resp.json())
            if not envelope.success or not envelope.data:
                return False
            tokens = LoginResponse.model_validate(envelope.data)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Token refresh failed: %s", exc)
            return False

        self.session.update(tokens.token, tokens.refresh_token)
        logger.info("Access token refreshed")
        return True

    async def _recover_session(self, client: httpx.AsyncClient, rejected_token: str) -> bool:
        """Get a usable token after *rejected_token* drew a 401.

        Only the first of several concurrent callers spends the refresh
        token; the rest reuse the pair it stored. The session is cleared
        only when the backend refuses a refresh.
        """
        async with self.session.lock:
            current = self.session.access_token
            if current is None:
                return False
            if current != rejected_token:
                return True
            if not self.session.refresh_token:
                return False
            if await self.refresh_session(client):
                return True
            self.session.clear()
            return False

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request, refreshing the session once on a 401."""
        query = self._clean_params(params)
        sent_token = self.session.access_token
        async with self._client() as client:
            resp = await client.request(
                method, path, params=query, json=json, headers=self._headers()
            )
            if resp.status_code == 401 and sent_token:
                if not await self._recover_session(client, sent_token):
                    raise SessionExpiredError()
                logger.info("Retrying %s %s with refreshed token", method, path)
                resp = await client.request(
                    method, path, params=query, json=json, headers=self._headers()
                )
        return self._unwrap(resp)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, json=body)

    async def iter_pages(
        self, path: str, params: dict[str, Any] | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield every item of a paged listing, page by page."""
        page = 1
        while True:
            data = await self.get(
                path, params={**(params or {}), "page": page, "pageSize": self.page_size}
            )
            result = PagedResult.model_validate(data)
            for item in result.items:
                yield item
            if not result.has_next_page:
                break
            page += 1

    async def fetch_all(
        self, path: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return [item async for item in self.iter_pages(path, params)]

    # ── Auth ────────────────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> LoginResponse:
        data = await self.post("/api/auth/login", {"email": email, "password": password})
        result = LoginResponse.model_validate(data)
        self.session.access_token = result.token
        self.session.refresh_token = result.refresh_token
        return result

    # ── Accounts ────────────────────────────────────────────────────────────

    async def customer_statement(
        self, customer_id: int, from_date: date | None = None, to_date: date | None = None
    ) -> AccountStatementDto:
        data = await self.get(
            f"/api/accounts/customer/{customer_id}/statement",
            params={"fromDate": from_date, "toDate": to_date},
        )
        return AccountStatementDto.model_validate(data)

    async def supplier_statement(
        self, supplier_id: int, from_date: date | None = None, to_date: date | None = None
    ) -> AccountStatementDto:
        data = await self.get(
            f"/api/accounts/supplier/{supplier_id}/statement",
            params={"fromDate": from_date, "toDate": to_date},
        )
        return AccountStatementDto.model_validate(data)

    async def receivables_aging(self) -> AgingReportDto:
        data = await self.get("/api/accounts/aging/receivables")
        return AgingReportDto.model_validate(data)

    async def payables_aging(self) -> AgingReportDto:
        data = await self.get("/api/accounts/aging/payables")
        return AgingReportDto.model_validate(data)

    # ── Ledger documents ────────────────────────────────────────────────────
    # Listings validate row by row; a malformed row is reported, not fatal.

    async def list_sales(self, customer_id: int | None = None) -> DtoBatch[SaleDto]:
        items = await self.fetch_all("/api/sales", {"customerId": customer_id})
        return validate_items(items, SaleDto, "Sale", "saleNumber")

    async def list_purchase_orders(
        self, supplier_id: int | None = None
    ) -> DtoBatch[PurchaseOrderDto]:
        items = await self.fetch_all("/api/purchase-orders", {"supplierId": supplier_id})
        return validate_items(items, PurchaseOrderDto, "PurchaseOrder", "orderNumber")

    async def list_payments(
        self, customer_id: int | None = None, supplier_id: int | None = None
    ) -> DtoBatch[PaymentDto]:
        items = await self.fetch_all(
            "/api/payments", {"customerId": customer_id, "supplierId": supplier_id}
        )
        return validate_items(items, PaymentDto, "Payment", "receiptNumber")

    async def list_credit_debit_notes(
        self, customer_id: int | None = None, supplier_id: int | None = None
    ) -> DtoBatch[CreditDebitNoteDto]:
        items = await self.fetch_all(
            "/api/credit-debit-notes", {"customerId": customer_id, "supplierId": supplier_id}
        )
        return validate_items(items, CreditDebitNoteDto, "CreditDebitNote", "noteNumber")

    async def list_ledger(
        self, customer_id: int | None = None, supplier_id: int | None = None
    ) -> DtoBatch[LedgerEntryDto]:
        items = await self.fetch_all(
            "/api/ledger", {"customerId": customer_id, "supplierId": supplier_id}
        )
        return validate_items(items, LedgerEntryDto, "LedgerEntry", "description")
