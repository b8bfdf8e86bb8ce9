"""Tests for backend document adapters and report assembly."""
from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from dashboard.app.core.errors import IncompleteDataError, ValidationError
from dashboard.app.schemas.backend import (
    AccountStatementDto,
    AccountStatementLineDto,
    CreditDebitNoteDto,
    LedgerEntryDto,
    PaymentDto,
    PurchaseOrderDto,
    SaleDto,
)
from dashboard.app.schemas.transactions import (
    CreditNoteRecord,
    DebitNoteRecord,
    InvoiceRecord,
    LedgerSide,
    ManualEntryRecord,
    PaymentRecord,
)
from dashboard.app.services.api_client import ApiSession, BackendClient
from dashboard.app.services.ledger_sources import (
    collect_records,
    fetch_aging_report,
    fetch_statement,
    ledger_entry_to_record,
    note_to_record,
    payment_to_record,
    purchase_order_to_record,
    sale_to_record,
    statement_from_dto,
    statement_line_to_record,
)

from conftest import BACKEND_URL, FakeBackend, RotatingTokenBackend, paged

RECEIVABLES = LedgerSide.RECEIVABLES
PAYABLES = LedgerSide.PAYABLES


def _sale(**overrides: object) -> SaleDto:
    data = {
        "id": 1,
        "saleNumber": "S-001",
        "customerId": 7,
        "customerName": "Al Noor Pharmacy",
        "saleDate": "2024-01-01T10:15:00",
        "totalAmount": "500.00",
        "paymentMethod": "Credit",
        "status": "Completed",
    }
    data.update(overrides)
    return SaleDto.model_validate(data)


# ─── Document adapters ──────────────────────────────────────────────────────


class TestSaleAdapter:
    def test_credit_sale_becomes_invoice(self) -> None:
        record = sale_to_record(_sale(dueDate="2024-01-31"))
        assert isinstance(record, InvoiceRecord)
        assert record.account_id == 7
        assert record.entry_date == date(2024, 1, 1)
        assert record.due_date == date(2024, 1, 31)
        assert record.amount == Decimal("500.00")
        assert record.reference == "S-001"

    def test_cash_sale_skipped(self) -> None:
        assert sale_to_record(_sale(paymentMethod="Cash")) is None

    def test_voided_sale_skipped(self) -> None:
        assert sale_to_record(_sale(status="Cancelled")) is None

    def test_returns_reduce_amount(self) -> None:
        record = sale_to_record(_sale(returnedAmount="120.00"))
        assert record is not None
        assert record.amount == Decimal("380.00")
        assert sale_to_record(_sale(returnedAmount="500.00")) is None


class TestPurchaseOrderAdapter:
    def test_received_amount_is_payable(self) -> None:
        order = PurchaseOrderDto.model_validate(
            {
                "id": 3,
                "supplierId": 12,
                "supplierName": "Gulf Medical Supply",
                "orderNumber": "PO-9",
                "orderDate": "2024-02-01",
                "status": "PartiallyReceived",
                "totalAmount": "1000",
                "receivedAmount": "600",
            }
        )
        record = purchase_order_to_record(order)
        assert isinstance(record, InvoiceRecord)
        assert record.account_id == 12
        assert record.amount == Decimal("600")

    def test_nothing_received_skipped(self) -> None:
        order = PurchaseOrderDto.model_validate({"id": 3, "supplierId": 12, "totalAmount": "1000"})
        assert purchase_order_to_record(order) is None


class TestPaymentAndNoteAdapters:
    def test_payment_follows_side(self) -> None:
        payment = PaymentDto.model_validate(
            {
                "id": 5,
                "receiptNumber": "RCT-5",
                "customerId": 7,
                "paymentDate": "2024-01-15",
                "amount": "200",
            }
        )
        record = payment_to_record(payment, RECEIVABLES)
        assert isinstance(record, PaymentRecord)
        assert record.account_id == 7
        assert payment_to_record(payment, PAYABLES) is None

    def test_note_types(self) -> None:
        base = {"id": 1, "supplierId": 12, "noteDate": "2024-02-10", "amount": "50"}
        credit = note_to_record(
            CreditDebitNoteDto.model_validate({**base, "noteType": "CreditNote"}), PAYABLES
        )
        debit = note_to_record(
            CreditDebitNoteDto.model_validate({**base, "noteType": "Debit Note"}), PAYABLES
        )
        assert isinstance(credit, CreditNoteRecord)
        assert isinstance(debit, DebitNoteRecord)
        assert credit.account_id == 12

    def test_unknown_note_type_raises(self) -> None:
        note = CreditDebitNoteDto.model_validate(
            {"id": 1, "noteNumber": "N-1", "customerId": 7, "noteType": "Refund", "amount": "5"}
        )
        with pytest.raises(ValidationError, match="Unknown note type"):
            note_to_record(note, RECEIVABLES)


class TestLedgerEntryAdapter:
    def _entry(self, **overrides: object) -> LedgerEntryDto:
        data = {
            "id": 44,
            "entryDate": "2024-02-20",
            "customerId": 7,
            "supplierId": 12,
            "referenceType": "Manual",
            "debitAmount": "30",
            "creditAmount": "0",
        }
        data.update(overrides)
        return LedgerEntryDto.model_validate(data)

    def test_manual_entry_sign_per_side(self) -> None:
        entry = self._entry()
        receivable = ledger_entry_to_record(entry, RECEIVABLES)
        payable = ledger_entry_to_record(entry, PAYABLES)
        assert isinstance(receivable, ManualEntryRecord)
        assert receivable.amount == Decimal("30")
        assert payable is not None
        assert payable.amount == Decimal("-30")
        assert receivable.reference == "LE-44"

    def test_document_entries_skipped(self) -> None:
        assert ledger_entry_to_record(self._entry(referenceType="Sale"), RECEIVABLES) is None


class TestStatementLineAdapter:
    def _line(self, **overrides: object) -> AccountStatementLineDto:
        data = {"id": 1, "entryDate": "2024-01-01", "referenceType": "Sale", "referenceId": 9}
        data.update(overrides)
        return AccountStatementLineDto.model_validate(data)

    def test_kind_kept_when_sign_agrees(self) -> None:
        record = statement_line_to_record(
            self._line(debitAmount="100"), 7, "Al Noor Pharmacy", RECEIVABLES
        )
        assert isinstance(record, InvoiceRecord)
        assert record.amount == Decimal("100")
        assert record.reference == "Sale-9"

    def test_payment_line(self) -> None:
        record = statement_line_to_record(
            self._line(referenceType="Payment", creditAmount="40", description="RCT-2"),
            7, None, RECEIVABLES,
        )
        assert isinstance(record, PaymentRecord)
        assert record.amount == Decimal("40")
        assert record.reference == "RCT-2"

    def test_contradicting_sign_becomes_manual_entry(self) -> None:
        record = statement_line_to_record(self._line(creditAmount="25"), 7, None, RECEIVABLES)
        assert isinstance(record, ManualEntryRecord)
        assert record.amount == Decimal("-25")

    def test_supplier_side(self) -> None:
        record = statement_line_to_record(
            self._line(referenceType="PurchaseOrder", creditAmount="300"), 12, None, PAYABLES
        )
        assert isinstance(record, InvoiceRecord)
        assert record.amount == Decimal("300")


# ─── Statement assembly ─────────────────────────────────────────────────────


def _statement_payload(**overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "accountId": 7,
        "accountName": "Al Noor Pharmacy",
        "accountType": "Customer",
        "fromDate": "2024-01-01T00:00:00",
        "toDate": "2024-03-31T00:00:00",
        "openingBalance": 0,
        "closingBalance": 450,
        "lines": [
            {"id": 1, "entryDate": "2024-01-01", "referenceType": "Sale", "referenceId": 1,
             "description": "INV-001", "debitAmount": 500, "creditAmount": 0},
            {"id": 2, "entryDate": "2024-01-15", "referenceType": "Payment", "referenceId": 1,
             "description": "RCT-001", "debitAmount": 0, "creditAmount": 200},
            {"id": 3, "entryDate": "2024-02-01", "referenceType": "Sale", "referenceId": 2,
             "description": "INV-002", "debitAmount": 150, "creditAmount": 0},
        ],
    }
    data.update(overrides)
    return data


class TestStatementFromDto:
    def test_rerenders_lines(self) -> None:
        dto = AccountStatementDto.model_validate(_statement_payload())
        statement = statement_from_dto(dto, RECEIVABLES)
        assert [r.running_balance for r in statement.rows] == [
            Decimal("500.00"),
            Decimal("300.00"),
            Decimal("450.00"),
        ]
        assert statement.from_date == date(2024, 1, 1)
        assert statement.to_date == date(2024, 3, 31)
        assert statement.account_name == "Al Noor Pharmacy"

    def test_missing_opening_balance(self) -> None:
        dto = AccountStatementDto.model_validate(_statement_payload(openingBalance=None))
        with pytest.raises(IncompleteDataError):
            statement_from_dto(dto, RECEIVABLES)

    def test_closing_mismatch_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        dto = AccountStatementDto.model_validate(_statement_payload(closingBalance=999))
        with caplog.at_level("WARNING"):
            statement = statement_from_dto(dto, RECEIVABLES)
        assert statement.closing_balance == Decimal("450.00")
        assert "Closing balance mismatch" in caplog.text


# ─── Fetching from the backend ──────────────────────────────────────────────


def _seed_receivables(backend: FakeBackend) -> None:
    backend.ok(
        "GET",
        "/api/sales",
        paged(
            [
                {"id": 1, "saleNumber": "INV-001", "customerId": 7, "customerName": "Al Noor Pharmacy",
                 "saleDate": "2024-01-01", "totalAmount": 500, "paymentMethod": "Credit"},
                {"id": 2, "saleNumber": "INV-002", "customerId": 7, "customerName": "Al Noor Pharmacy",
                 "saleDate": "2024-02-01", "totalAmount": 150, "paymentMethod": "Credit"},
                {"id": 3, "saleNumber": "CASH-1", "customerId": 8, "customerName": "Walk-in",
                 "saleDate": "2024-02-01", "totalAmount": 75, "paymentMethod": "Cash"},
            ]
        ),
    )
    backend.ok(
        "GET",
        "/api/payments",
        paged(
            [
                {"id": 1, "receiptNumber": "RCT-001", "customerId": 7, "paymentDate": "2024-01-15",
                 "amount": 200},
                {"id": 2, "receiptNumber": "PAY-9", "supplierId": 12, "paymentDate": "2024-01-20",
                 "amount": 80},
            ]
        ),
    )
    backend.ok(
        "GET",
        "/api/credit-debit-notes",
        paged(
            [
                {"id": 1, "noteNumber": "N-1", "customerId": 9, "noteType": "Mystery",
                 "noteDate": "2024-02-01", "amount": 10},
            ]
        ),
    )
    backend.ok("GET", "/api/ledger", paged([]))


class TestFetchReports:
    def test_collect_receivable_records(
        self, backend: FakeBackend, backend_client: BackendClient
    ) -> None:
        _seed_receivables(backend)
        records, errors = asyncio.run(collect_records(backend_client, RECEIVABLES))

        assert sorted(r.reference for r in records) == ["INV-001", "INV-002", "RCT-001"]
        assert len(errors) == 1
        assert errors[0].reference == "N-1"
        assert errors[0].field == "note_type"

    def test_receivables_aging(self, backend: FakeBackend, backend_client: BackendClient) -> None:
        _seed_receivables(backend)
        report = asyncio.run(fetch_aging_report(backend_client, RECEIVABLES, date(2024, 3, 1)))

        assert [d.account_id for d in report.details] == [7]
        b = report.details[0].buckets
        assert b.days_1_to_30 == Decimal("150.00")
        assert b.days_31_to_60 == Decimal("300.00")
        assert b.total == Decimal("450.00")
        assert len(report.errors) == 1

    def test_payables_aging(self, backend: FakeBackend, backend_client: BackendClient) -> None:
        backend.ok(
            "GET",
            "/api/purchase-orders",
            paged(
                [
                    {"id": 1, "supplierId": 12, "supplierName": "Gulf Medical Supply",
                     "orderNumber": "PO-1", "orderDate": "2023-10-01", "receivedAmount": 1000},
                ]
            ),
        )
        backend.ok(
            "GET",
            "/api/payments",
            paged([{"id": 2, "supplierId": 12, "paymentDate": "2024-01-20", "amount": 400}]),
        )
        backend.ok("GET", "/api/credit-debit-notes", paged([]))
        backend.ok(
            "GET",
            "/api/ledger",
            paged(
                [
                    {"id": 5, "entryDate": "2024-02-25", "supplierId": 12, "referenceType": "Manual",
                     "debitAmount": 0, "creditAmount": 50, "description": "Freight"},
                ]
            ),
        )

        report = asyncio.run(fetch_aging_report(backend_client, PAYABLES, date(2024, 3, 1)))

        assert report.report_type is PAYABLES
        b = report.totals
        assert b.over_90 == Decimal("600.00")
        assert b.days_1_to_30 == Decimal("50.00")
        assert b.total == Decimal("650.00")
        assert report.details[0].account_name == "Gulf Medical Supply"

    def test_fetch_supplier_statement(
        self, backend: FakeBackend, backend_client: BackendClient
    ) -> None:
        backend.ok(
            "GET",
            "/api/accounts/supplier/12/statement",
            {
                "accountId": 12,
                "accountName": "Gulf Medical Supply",
                "openingBalance": 100,
                "lines": [
                    {"id": 1, "entryDate": "2024-02-01", "referenceType": "PurchaseOrder",
                     "referenceId": 1, "debitAmount": 0, "creditAmount": 250},
                ],
            },
        )
        statement = asyncio.run(
            fetch_statement(backend_client, PAYABLES, 12, date(2024, 1, 1), date(2024, 3, 31))
        )
        assert statement.closing_balance == Decimal("350.00")
        assert backend.calls[0].url.params["fromDate"] == "2024-01-01"

    def test_malformed_listing_row_reported(
        self, backend: FakeBackend, backend_client: BackendClient
    ) -> None:
        _seed_receivables(backend)
        backend.ok(
            "GET",
            "/api/sales",
            paged(
                [
                    {"id": 1, "saleNumber": "INV-001", "customerId": 7, "saleDate": "2024-01-01",
                     "totalAmount": 500, "paymentMethod": "Credit"},
                    {"id": 2, "saleNumber": "INV-002", "customerId": 7, "saleDate": "2024-02-01",
                     "totalAmount": None, "paymentMethod": "Credit"},
                ]
            ),
        )
        records, errors = asyncio.run(collect_records(backend_client, RECEIVABLES))

        assert sorted(r.reference for r in records) == ["INV-001", "RCT-001"]
        assert [(e.kind, e.reference, e.field) for e in errors] == [
            ("Sale", "INV-002", "totalAmount"),
            (None, "N-1", "note_type"),
        ]

    def test_concurrent_listings_share_one_refresh(self) -> None:
        backend = RotatingTokenBackend()
        session = ApiSession(access_token="access-1", refresh_token="refresh-1")
        client = BackendClient(session, base_url=BACKEND_URL, transport=backend.transport)

        records, errors = asyncio.run(collect_records(client, RECEIVABLES))

        assert records == []
        assert errors == []
        assert backend.refresh_calls == 1
        assert session.access_token == "access-2"
        assert session.refresh_token == "refresh-2"


class TestStatementLines:
    def test_malformed_line_reported(self) -> None:
        payload = _statement_payload()
        payload["lines"] = [
            *payload["lines"],  # type: ignore[misc]
            {"id": 4, "entryDate": "2024-02-10", "referenceType": "Sale",
             "description": "INV-003", "debitAmount": "n/a", "creditAmount": 0},
        ]
        dto = AccountStatementDto.model_validate(payload)
        statement = statement_from_dto(dto, RECEIVABLES)

        assert statement.closing_balance == Decimal("450.00")
        assert len(statement.errors) == 1
        error = statement.errors[0]
        assert (error.index, error.kind, error.reference, error.field) == (
            3, "StatementLine", "INV-003", "debitAmount"
        )
