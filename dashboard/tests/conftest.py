"""Shared test fixtures.

Backend calls never leave the process: every BackendClient under test is
wired to an ``httpx.MockTransport`` that serves canned API envelopes by
method and path.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from typing import Any, Union

import httpx
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from dashboard.app.api.deps import get_api_session, get_backend_client
from dashboard.app.main import app
from dashboard.app.schemas.transactions import (
    InvoiceRecord,
    LedgerRecord,
    PaymentRecord,
)
from dashboard.app.services.api_client import REFRESH_PATH, ApiSession, BackendClient

BACKEND_URL = "http://backend.test"

Handler = Callable[[httpx.Request], httpx.Response]
Route = Union[Handler, tuple[int, Any]]


# ─── Envelope helpers ─────────────────────────────────────────────────────────


def envelope(data: Any, success: bool = True, message: str | None = None) -> dict[str, Any]:
    return {"success": success, "message": message, "data": data, "errors": None}


def paged(items: list[dict[str, Any]], page: int = 1, has_next: bool = False) -> dict[str, Any]:
    return {
        "items": items,
        "totalCount": len(items),
        "page": page,
        "pageSize": 100,
        "totalPages": page + 1 if has_next else page,
        "hasNextPage": has_next,
        "hasPreviousPage": page > 1,
    }


def auth(token: str = "access-1", refresh: str | None = "refresh-1") -> dict[str, str]:
    """Return the headers the dashboard UI forwards."""
    headers = {"Authorization": f"Bearer {token}"}
    if refresh:
        headers["X-Refresh-Token"] = refresh
    return headers


class FakeBackend:
    """In-process stand-in for the pharmacy backend."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, route: Route) -> None:
        self.routes[(method.upper(), path)] = route

    def ok(self, method: str, path: str, data: Any) -> None:
        self.add(method, path, (200, envelope(data)))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json=envelope(None, success=False, message="Not found"))
        if callable(route):
            return route(request)
        status_code, body = route
        return httpx.Response(status_code, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RotatingTokenBackend:
    """Backend whose refresh tokens are single use, answering with a delay.

    Every request made with a stale bearer gets a 401, and each refresh token
    can be exchanged once; a second exchange of the same token is refused.
    GET listings answer with an empty page.
    """

    def __init__(self, delay: float = 0.01) -> None:
        self.delay = delay
        self.generation = 1
        self.spent: set[str] = set()
        self.refresh_calls = 0
        self.calls: list[httpx.Request] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        await asyncio.sleep(self.delay)
        if request.url.path == REFRESH_PATH:
            self.refresh_calls += 1
            refresh_token = json.loads(request.content)["refreshToken"]
            if refresh_token in self.spent or refresh_token != f"refresh-{self.generation}":
                return httpx.Response(
                    400, json=envelope(None, success=False, message="Invalid refresh token")
                )
            self.spent.add(refresh_token)
            self.generation += 1
            return httpx.Response(
                200,
                json=envelope(
                    {
                        "token": f"access-{self.generation}",
                        "refreshToken": f"refresh-{self.generation}",
                    }
                ),
            )
        if request.headers.get("Authorization") != f"Bearer access-{self.generation}":
            return httpx.Response(401, json=envelope(None, success=False, message="Unauthorized"))
        return httpx.Response(200, json=envelope(paged([])))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


# ─── Backend fixtures ─────────────────────────────────────────────────────────


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def session() -> ApiSession:
    return ApiSession(access_token="access-1", refresh_token="refresh-1")


@pytest.fixture()
def backend_client(backend: FakeBackend, session: ApiSession) -> BackendClient:
    return BackendClient(session, base_url=BACKEND_URL, transport=backend.transport)


@pytest.fixture()
def client(backend: FakeBackend) -> Generator[TestClient, None, None]:
    """FastAPI TestClient whose backend calls hit the FakeBackend."""

    def _override_get_backend_client(
        session: ApiSession = Depends(get_api_session),
    ) -> BackendClient:
        return BackendClient(session, base_url=BACKEND_URL, transport=backend.transport)

    app.dependency_overrides[get_backend_client] = _override_get_backend_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Ledger fixtures ─────────────────────────────────────────────────────────


@pytest.fixture()
def example_records() -> list[LedgerRecord]:
    """Two invoices and a payment for one customer, early 2024."""
    return [
        InvoiceRecord(
            account_id=7,
            account_name="Al Noor Pharmacy",
            entry_date=date(2024, 1, 1),
            amount=Decimal("500.00"),
            reference="INV-001",
        ),
        PaymentRecord(
            account_id=7,
            account_name="Al Noor Pharmacy",
            entry_date=date(2024, 1, 15),
            amount=Decimal("200.00"),
            reference="RCT-001",
        ),
        InvoiceRecord(
            account_id=7,
            account_name="Al Noor Pharmacy",
            entry_date=date(2024, 2, 1),
            amount=Decimal("150.00"),
            reference="INV-002",
        ),
    ]
