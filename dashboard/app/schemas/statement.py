from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from dashboard.app.schemas.aging import money
from dashboard.app.schemas.transactions import RecordError, Transaction


class StatementRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    running_balance: Decimal


class Statement(BaseModel):
    account_id: int
    account_name: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    opening_balance: Decimal
    rows: list[StatementRow]
    total_debits: Decimal
    total_credits: Decimal
    closing_balance: Decimal
    errors: list[RecordError] = []


# ─── Response Models ─────────────────────────────────────────────────────────


class StatementRowOut(BaseModel):
    date: str
    reference: str
    kind: str
    amount: str
    running_balance: str


class StatementOut(BaseModel):
    account_id: int
    account_name: str | None
    from_date: str | None
    to_date: str | None
    opening_balance: str
    rows: list[StatementRowOut]
    total_debits: str
    total_credits: str
    closing_balance: str
    errors: list[RecordError]

    @classmethod
    def from_statement(cls, statement: Statement) -> StatementOut:
        return cls(
            account_id=statement.account_id,
            account_name=statement.account_name,
            from_date=statement.from_date.isoformat() if statement.from_date else None,
            to_date=statement.to_date.isoformat() if statement.to_date else None,
            opening_balance=money(statement.opening_balance),
            rows=[
                StatementRowOut(
                    date=row.transaction.entry_date.isoformat(),
                    reference=row.transaction.reference,
                    kind=row.transaction.kind.value,
                    amount=money(row.transaction.amount),
                    running_balance=money(row.running_balance),
                )
                for row in statement.rows
            ],
            total_debits=money(statement.total_debits),
            total_credits=money(statement.total_credits),
            closing_balance=money(statement.closing_balance),
            errors=statement.errors,
        )


class StatementComputeRequest(BaseModel):
    account_id: int
    account_name: str | None = None
    opening_balance: Decimal | None = None
    from_date: date | None = None
    to_date: date | None = None
    records: list[dict[str, Any]]
