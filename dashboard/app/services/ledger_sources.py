"""Turn backend documents into ledger records and feed the report engine.

Receivables are built from credit sales, customer receipts, customer
credit/debit notes and manual customer ledger entries; payables from
received purchase orders, supplier payments, supplier notes and manual
supplier ledger entries.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from decimal import Decimal

from dashboard.app.core.errors import ValidationError
from dashboard.app.schemas.aging import AgingReport
from dashboard.app.schemas.backend import (
    AccountStatementDto,
    AccountStatementLineDto,
    CreditDebitNoteDto,
    LedgerEntryDto,
    PaymentDto,
    PurchaseOrderDto,
    SaleDto,
)
from dashboard.app.schemas.statement import Statement
from dashboard.app.schemas.transactions import (
    CreditNoteRecord,
    DebitNoteRecord,
    InvoiceRecord,
    LedgerRecord,
    LedgerSide,
    ManualEntryRecord,
    PaymentRecord,
    RecordError,
    TransactionKind,
)
from dashboard.app.services.aging import get_aging_report
from dashboard.app.services.api_client import BackendClient, validate_items
from dashboard.app.services.statement import get_statement, verify_closing_balance
from dashboard.app.services.transactions import parse_date

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CREDIT_PAYMENT_METHOD = "credit"
VOID_STATUSES = {"cancelled", "canceled", "voided", "void"}
MANUAL_REFERENCE_TYPES = {"manual", "manualentry"}

_REFERENCE_KINDS: dict[str, TransactionKind] = {
    "sale": TransactionKind.INVOICE,
    "purchaseorder": TransactionKind.INVOICE,
    "payment": TransactionKind.PAYMENT,
    "customerpayment": TransactionKind.PAYMENT,
    "supplierpayment": TransactionKind.PAYMENT,
    "creditnote": TransactionKind.CREDIT_NOTE,
    "debitnote": TransactionKind.DEBIT_NOTE,
}


def _token(value: str) -> str:
    """Normalize enum-ish backend strings ("Credit Note" → "creditnote")."""
    return value.replace(" ", "").replace("_", "").lower()


# ─── Document adapters ───────────────────────────────────────────────────────


def sale_to_record(sale: SaleDto) -> InvoiceRecord | None:
    """Credit sales become receivable invoices; cash sales settle on the spot."""
    if _token(sale.payment_method) != CREDIT_PAYMENT_METHOD:
        return None
    if _token(sale.status) in VOID_STATUSES:
        return None
    net = sale.total_amount - sale.returned_amount
    if net <= ZERO:
        return None
    return InvoiceRecord(
        account_id=sale.customer_id,
        account_name=sale.customer_name,
        entry_date=parse_date(sale.sale_date),
        due_date=parse_date(sale.due_date),
        amount=net,
        reference=sale.sale_number,
    )


def purchase_order_to_record(order: PurchaseOrderDto) -> InvoiceRecord | None:
    """Only the received portion of a purchase order is payable."""
    if _token(order.status) in VOID_STATUSES or order.received_amount <= ZERO:
        return None
    return InvoiceRecord(
        account_id=order.supplier_id,
        account_name=order.supplier_name,
        entry_date=parse_date(order.order_date),
        due_date=parse_date(order.due_date),
        amount=order.received_amount,
        reference=order.order_number,
    )


def payment_to_record(payment: PaymentDto, side: LedgerSide) -> PaymentRecord | None:
    if side is LedgerSide.RECEIVABLES:
        account_id, account_name = payment.customer_id, payment.customer_name
    else:
        account_id, account_name = payment.supplier_id, payment.supplier_name
    if account_id is None:
        return None
    return PaymentRecord(
        account_id=account_id,
        account_name=account_name,
        entry_date=parse_date(payment.payment_date),
        amount=payment.amount,
        reference=payment.receipt_number,
    )


def note_to_record(
    note: CreditDebitNoteDto, side: LedgerSide
) -> CreditNoteRecord | DebitNoteRecord | None:
    if side is LedgerSide.RECEIVABLES:
        account_id, account_name = note.customer_id, note.customer_name
    else:
        account_id, account_name = note.supplier_id, note.supplier_name
    if account_id is None:
        return None

    fields = dict(
        account_id=account_id,
        account_name=account_name,
        entry_date=parse_date(note.note_date),
        amount=note.amount,
        reference=note.note_number,
    )
    note_type = _token(note.note_type)
    if note_type == "creditnote":
        return CreditNoteRecord(**fields)
    if note_type == "debitnote":
        return DebitNoteRecord(**fields)
    raise ValidationError(
        f"Unknown note type {note.note_type!r}",
        field="note_type",
        reference=note.note_number,
    )


def _side_signed(debit: Decimal, credit: Decimal, side: LedgerSide) -> Decimal:
    """Receivables grow with debits, payables with credits."""
    return debit - credit if side is LedgerSide.RECEIVABLES else credit - debit


def ledger_entry_to_record(entry: LedgerEntryDto, side: LedgerSide) -> ManualEntryRecord | None:
    """Manual adjustments only; other entries mirror documents fetched directly."""
    if _token(entry.reference_type) not in MANUAL_REFERENCE_TYPES:
        return None
    if side is LedgerSide.RECEIVABLES:
        account_id, account_name = entry.customer_id, entry.customer_name
    else:
        account_id, account_name = entry.supplier_id, entry.supplier_name
    if account_id is None:
        return None
    return ManualEntryRecord(
        account_id=account_id,
        account_name=account_name,
        entry_date=parse_date(entry.entry_date),
        amount=_side_signed(entry.debit_amount, entry.credit_amount, side),
        reference=entry.description or f"LE-{entry.id}",
    )


def statement_line_to_record(
    line: AccountStatementLineDto,
    account_id: int,
    account_name: str | None,
    side: LedgerSide,
) -> LedgerRecord:
    """Map a backend statement line, keeping its kind when the sign agrees.

    A line whose net direction contradicts its document kind (a sale
    reversal, say) is carried as a manual entry with its own sign.
    """
    amount = _side_signed(line.debit_amount, line.credit_amount, side)
    reference = line.description or f"{line.reference_type}-{line.reference_id}"
    fields = dict(
        account_id=account_id,
        account_name=account_name,
        entry_date=parse_date(line.entry_date),
        reference=reference,
    )
    kind = _REFERENCE_KINDS.get(_token(line.reference_type), TransactionKind.MANUAL_ENTRY)
    if kind in (TransactionKind.INVOICE, TransactionKind.DEBIT_NOTE) and amount > ZERO:
        record_cls = InvoiceRecord if kind is TransactionKind.INVOICE else DebitNoteRecord
        return record_cls(amount=amount, **fields)
    if kind in (TransactionKind.PAYMENT, TransactionKind.CREDIT_NOTE) and amount < ZERO:
        record_cls = PaymentRecord if kind is TransactionKind.PAYMENT else CreditNoteRecord
        return record_cls(amount=-amount, **fields)
    return ManualEntryRecord(amount=amount, **fields)


# ─── Collection ──────────────────────────────────────────────────────────────


async def collect_records(
    client: BackendClient, side: LedgerSide
) -> tuple[list[LedgerRecord], list[RecordError]]:
    """Fetch every document affecting *side* and adapt it to records."""
    if side is LedgerSide.RECEIVABLES:
        (sales, sale_errors), payment_batch, note_batch, entry_batch = await asyncio.gather(
            client.list_sales(),
            client.list_payments(),
            client.list_credit_debit_notes(),
            client.list_ledger(),
        )
        invoices = [sale_to_record(sale) for sale in sales]
        errors = list(sale_errors)
    else:
        (orders, order_errors), payment_batch, note_batch, entry_batch = await asyncio.gather(
            client.list_purchase_orders(),
            client.list_payments(),
            client.list_credit_debit_notes(),
            client.list_ledger(),
        )
        invoices = [purchase_order_to_record(order) for order in orders]
        errors = list(order_errors)

    payments, payment_errors = payment_batch
    notes, note_errors = note_batch
    entries, entry_errors = entry_batch
    errors.extend([*payment_errors, *note_errors, *entry_errors])

    records: list[LedgerRecord] = [r for r in invoices if r is not None]
    for note in notes:
        try:
            record = note_to_record(note, side)
        except ValidationError as exc:
            logger.warning("Skipping note %s: %s", note.note_number or note.id, exc)
            errors.append(RecordError(**exc.as_dict()))
            continue
        if record is not None:
            records.append(record)
    for payment in payments:
        record = payment_to_record(payment, side)
        if record is not None:
            records.append(record)
    for entry in entries:
        record = ledger_entry_to_record(entry, side)
        if record is not None:
            records.append(record)
    return records, errors


async def fetch_aging_report(
    client: BackendClient, side: LedgerSide, as_of_date: date | None = None
) -> AgingReport:
    records, errors = await collect_records(client, side)
    return get_aging_report(records, as_of_date=as_of_date, report_type=side, errors=errors)


def statement_from_dto(
    dto: AccountStatementDto,
    side: LedgerSide,
    from_date: date | None = None,
    to_date: date | None = None,
) -> Statement:
    """Re-render a backend statement and cross-check its closing balance."""
    lines, line_errors = validate_items(
        dto.lines, AccountStatementLineDto, "StatementLine", "description"
    )
    records = [
        statement_line_to_record(line, dto.account_id, dto.account_name, side)
        for line in lines
    ]
    statement = get_statement(
        records,
        dto.account_id,
        dto.opening_balance,
        from_date=from_date or parse_date(dto.from_date),
        to_date=to_date or parse_date(dto.to_date),
        account_name=dto.account_name,
        errors=line_errors,
    )
    verify_closing_balance(statement, dto.closing_balance)
    return statement


async def fetch_statement(
    client: BackendClient,
    side: LedgerSide,
    account_id: int,
    from_date: date | None = None,
    to_date: date | None = None,
) -> Statement:
    if side is LedgerSide.RECEIVABLES:
        dto = await client.customer_statement(account_id, from_date, to_date)
    else:
        dto = await client.supplier_statement(account_id, from_date, to_date)
    return statement_from_dto(dto, side, from_date, to_date)
