from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TransactionKind(str, enum.Enum):
    INVOICE = "Invoice"
    PAYMENT = "Payment"
    CREDIT_NOTE = "CreditNote"
    DEBIT_NOTE = "DebitNote"
    MANUAL_ENTRY = "ManualEntry"


class LedgerSide(str, enum.Enum):
    RECEIVABLES = "receivables"  # customer accounts
    PAYABLES = "payables"  # supplier accounts


# ─── Source records (one model per document kind) ────────────────────────────


class _LedgerRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: int | None = None
    account_name: str | None = None
    entry_date: date | None = None
    amount: Decimal | None = None
    reference: str = ""


class InvoiceRecord(_LedgerRecord):
    """Sale on credit (receivables) or received purchase order (payables)."""

    kind: Literal[TransactionKind.INVOICE] = TransactionKind.INVOICE
    due_date: date | None = None


class PaymentRecord(_LedgerRecord):
    kind: Literal[TransactionKind.PAYMENT] = TransactionKind.PAYMENT


class CreditNoteRecord(_LedgerRecord):
    kind: Literal[TransactionKind.CREDIT_NOTE] = TransactionKind.CREDIT_NOTE


class DebitNoteRecord(_LedgerRecord):
    kind: Literal[TransactionKind.DEBIT_NOTE] = TransactionKind.DEBIT_NOTE


class ManualEntryRecord(_LedgerRecord):
    """Manual ledger adjustment; ``amount`` carries its own sign."""

    kind: Literal[TransactionKind.MANUAL_ENTRY] = TransactionKind.MANUAL_ENTRY


LedgerRecord = Annotated[
    Union[
        InvoiceRecord,
        PaymentRecord,
        CreditNoteRecord,
        DebitNoteRecord,
        ManualEntryRecord,
    ],
    Field(discriminator="kind"),
]


# ─── Normalized transaction ──────────────────────────────────────────────────


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: int
    account_name: str | None = None
    entry_date: date
    due_date: date
    amount: Decimal  # signed; positive raises the outstanding balance
    kind: TransactionKind
    reference: str = ""
    sequence: int = 0


class RecordError(BaseModel):
    """Serializable form of a skipped record."""

    index: int | None = None
    kind: str | None = None
    reference: str | None = None
    field: str | None = None
    message: str
