"""DTOs returned by the pharmacy backend REST API (camelCase on the wire).

Dates are kept as the raw ISO strings the backend sends; they are parsed
during normalization so a missing or malformed date is reported per record
instead of failing the whole response. Listing rows and statement lines are
validated one at a time for the same reason.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BackendModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ─── Envelope ────────────────────────────────────────────────────────────────


class ApiEnvelope(BackendModel):
    success: bool
    message: str | None = None
    data: Any = None
    errors: dict[str, list[str]] | None = None


class PagedResult(BackendModel):
    items: list[dict[str, Any]]
    total_count: int = Field(0, alias="totalCount")
    page: int = 1
    page_size: int = Field(0, alias="pageSize")
    total_pages: int = Field(0, alias="totalPages")
    has_next_page: bool = Field(False, alias="hasNextPage")
    has_previous_page: bool = Field(False, alias="hasPreviousPage")


# ─── Auth ────────────────────────────────────────────────────────────────────


class LoginResponse(BackendModel):
    token: str
    refresh_token: str = Field(alias="refreshToken")
    expiration: str | None = None
    user: dict[str, Any] | None = None


# ─── Ledger documents ────────────────────────────────────────────────────────


class SaleDto(BackendModel):
    id: int
    sale_number: str = Field("", alias="saleNumber")
    customer_id: int | None = Field(None, alias="customerId")
    customer_name: str | None = Field(None, alias="customerName")
    sale_date: str | None = Field(None, alias="saleDate")
    due_date: str | None = Field(None, alias="dueDate")
    total_amount: Decimal = Field(Decimal("0"), alias="totalAmount")
    returned_amount: Decimal = Field(Decimal("0"), alias="returnedAmount")
    payment_method: str = Field("", alias="paymentMethod")
    status: str = ""


class PurchaseOrderDto(BackendModel):
    id: int
    supplier_id: int | None = Field(None, alias="supplierId")
    supplier_name: str | None = Field(None, alias="supplierName")
    order_number: str = Field("", alias="orderNumber")
    order_date: str | None = Field(None, alias="orderDate")
    due_date: str | None = Field(None, alias="dueDate")
    status: str = ""
    total_amount: Decimal = Field(Decimal("0"), alias="totalAmount")
    received_amount: Decimal = Field(Decimal("0"), alias="receivedAmount")


class PaymentDto(BackendModel):
    id: int
    receipt_number: str = Field("", alias="receiptNumber")
    payment_type: str = Field("", alias="paymentType")
    customer_id: int | None = Field(None, alias="customerId")
    customer_name: str | None = Field(None, alias="customerName")
    supplier_id: int | None = Field(None, alias="supplierId")
    supplier_name: str | None = Field(None, alias="supplierName")
    payment_date: str | None = Field(None, alias="paymentDate")
    amount: Decimal = Decimal("0")
    payment_method: str = Field("", alias="paymentMethod")


class CreditDebitNoteDto(BackendModel):
    id: int
    note_number: str = Field("", alias="noteNumber")
    note_type: str = Field("", alias="noteType")  # CreditNote / DebitNote
    account_type: str = Field("", alias="accountType")
    customer_id: int | None = Field(None, alias="customerId")
    customer_name: str | None = Field(None, alias="customerName")
    supplier_id: int | None = Field(None, alias="supplierId")
    supplier_name: str | None = Field(None, alias="supplierName")
    note_date: str | None = Field(None, alias="noteDate")
    amount: Decimal = Decimal("0")
    reason: str = ""


class LedgerEntryDto(BackendModel):
    id: int
    entry_date: str | None = Field(None, alias="entryDate")
    account_type: str = Field("", alias="accountType")
    customer_id: int | None = Field(None, alias="customerId")
    customer_name: str | None = Field(None, alias="customerName")
    supplier_id: int | None = Field(None, alias="supplierId")
    supplier_name: str | None = Field(None, alias="supplierName")
    reference_type: str = Field("", alias="referenceType")
    reference_id: int | None = Field(None, alias="referenceId")
    description: str = ""
    debit_amount: Decimal = Field(Decimal("0"), alias="debitAmount")
    credit_amount: Decimal = Field(Decimal("0"), alias="creditAmount")
    is_reversed: bool = Field(False, alias="isReversed")


# ─── Account statements & aging (server-side aggregates) ─────────────────────


class AccountStatementLineDto(BackendModel):
    id: int
    entry_date: str | None = Field(None, alias="entryDate")
    reference_type: str = Field("", alias="referenceType")
    reference_id: int | None = Field(None, alias="referenceId")
    description: str = ""
    debit_amount: Decimal = Field(Decimal("0"), alias="debitAmount")
    credit_amount: Decimal = Field(Decimal("0"), alias="creditAmount")
    running_balance: Decimal | None = Field(None, alias="runningBalance")


class AccountStatementDto(BackendModel):
    account_id: int = Field(alias="accountId")
    account_name: str | None = Field(None, alias="accountName")
    account_type: str = Field("", alias="accountType")
    from_date: str | None = Field(None, alias="fromDate")
    to_date: str | None = Field(None, alias="toDate")
    opening_balance: Decimal | None = Field(None, alias="openingBalance")
    total_debits: Decimal | None = Field(None, alias="totalDebits")
    total_credits: Decimal | None = Field(None, alias="totalCredits")
    closing_balance: Decimal | None = Field(None, alias="closingBalance")
    # Validated line by line by the statement builder
    lines: list[dict[str, Any]] = []


class AgingReportDetailDto(BackendModel):
    account_id: int = Field(alias="accountId")
    account_name: str = Field("", alias="accountName")
    current: Decimal = Decimal("0")
    days_1_to_30: Decimal = Field(Decimal("0"), alias="days1To30")
    days_31_to_60: Decimal = Field(Decimal("0"), alias="days31To60")
    days_61_to_90: Decimal = Field(Decimal("0"), alias="days61To90")
    over_90: Decimal = Field(Decimal("0"), alias="over90Days")
    total: Decimal = Decimal("0")


class AgingReportDto(BackendModel):
    report_type: str = Field("", alias="reportType")
    as_of_date: str | None = Field(None, alias="asOfDate")
    total_current: Decimal = Field(Decimal("0"), alias="totalCurrent")
    total_1_to_30: Decimal = Field(Decimal("0"), alias="total1To30")
    total_31_to_60: Decimal = Field(Decimal("0"), alias="total31To60")
    total_61_to_90: Decimal = Field(Decimal("0"), alias="total61To90")
    total_over_90: Decimal = Field(Decimal("0"), alias="totalOver90")
    grand_total: Decimal = Field(Decimal("0"), alias="grandTotal")
    details: list[AgingReportDetailDto] = []
