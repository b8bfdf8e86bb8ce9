"""Normalize ledger records into signed, two-decimal transactions."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from dashboard.app.core.errors import ValidationError
from dashboard.app.schemas.transactions import (
    CreditNoteRecord,
    DebitNoteRecord,
    InvoiceRecord,
    LedgerRecord,
    ManualEntryRecord,
    PaymentRecord,
    RecordError,
    Transaction,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_record_adapter: TypeAdapter[LedgerRecord] = TypeAdapter(LedgerRecord)

# A typed record, or a raw `{"kind": ...}` mapping still to be validated
RawOrRecord = Union[LedgerRecord, Mapping[str, Any]]


@dataclass
class NormalizationResult:
    transactions: list[Transaction] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    def error_records(self) -> list[RecordError]:
        return [RecordError(**err.as_dict()) for err in self.errors]


def quantize_money(value: Decimal | int | float | str) -> Decimal:
    """Round a monetary value to cents (half-up)."""
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}", field="amount")


def parse_date(value: str | date | None) -> date | None:
    """Parse a backend ISO date or datetime string; ``None`` when absent."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_record(raw: Mapping[str, Any]) -> LedgerRecord:
    """Validate one raw record, raising ValidationError when it is malformed."""
    try:
        return _record_adapter.validate_python(raw)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        kind = raw.get("kind")
        loc = [str(part) for part in first["loc"]]
        if loc and loc[0] == kind:
            loc = loc[1:]
        reference = raw.get("reference")
        raise ValidationError(
            first["msg"],
            field=".".join(loc) or "kind",
            kind=str(kind) if kind is not None else None,
            reference=str(reference) if reference else None,
        ) from exc


def signed_amount(record: LedgerRecord) -> Decimal:
    """Apply the sign convention for the record's kind.

    Invoices and debit notes raise the outstanding balance, payments and
    credit notes lower it, manual entries keep the sign they were given.
    """
    if record.amount is None:
        raise ValidationError(
            "Record has no amount",
            field="amount",
            kind=record.kind.value,
            reference=record.reference,
        )
    amount = quantize_money(record.amount)
    if isinstance(record, (InvoiceRecord, DebitNoteRecord)):
        return abs(amount)
    if isinstance(record, (PaymentRecord, CreditNoteRecord)):
        return -abs(amount)
    if isinstance(record, ManualEntryRecord):
        return amount
    raise TypeError(f"Unsupported ledger record: {type(record).__name__}")


def normalize(record: LedgerRecord, sequence: int = 0) -> Transaction:
    """Convert one record into a Transaction, raising ValidationError if malformed."""
    kind = record.kind.value
    if record.entry_date is None:
        raise ValidationError(
            "Record has no date", field="entry_date", kind=kind, reference=record.reference
        )
    if record.account_id is None:
        raise ValidationError(
            "Record has no account", field="account_id", kind=kind, reference=record.reference
        )

    amount = signed_amount(record)
    if amount == ZERO:
        raise ValidationError(
            "Record amount is zero", field="amount", kind=kind, reference=record.reference
        )

    due_date = record.entry_date
    if isinstance(record, InvoiceRecord) and record.due_date is not None:
        due_date = record.due_date

    return Transaction(
        account_id=record.account_id,
        account_name=record.account_name,
        entry_date=record.entry_date,
        due_date=due_date,
        amount=amount,
        kind=record.kind,
        reference=record.reference,
        sequence=sequence,
    )


def normalize_batch(records: Iterable[RawOrRecord]) -> NormalizationResult:
    """Normalize a batch; malformed records are skipped and reported.

    Raw mappings are validated one at a time, so a record with a bad field
    is reported at its index instead of rejecting the batch.
    """
    result = NormalizationResult()
    for index, item in enumerate(records):
        try:
            record = parse_record(item) if isinstance(item, Mapping) else item
            result.transactions.append(normalize(record, sequence=index))
        except ValidationError as exc:
            exc.index = index
            if exc.kind is None and not isinstance(item, Mapping):
                exc.kind = item.kind.value
                exc.reference = item.reference
            logger.warning(
                "Skipping %s record %s (#%d): %s", exc.kind, exc.reference or "-", index, exc
            )
            result.errors.append(exc)
    return result
