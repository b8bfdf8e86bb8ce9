from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from dashboard.app.core.errors import IncompleteDataError
from dashboard.app.schemas.statement import Statement, StatementRow
from dashboard.app.schemas.transactions import RecordError, Transaction
from dashboard.app.services.transactions import RawOrRecord, normalize_batch, quantize_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _in_range(value: date, from_date: date | None, to_date: date | None) -> bool:
    if from_date is not None and value < from_date:
        return False
    if to_date is not None and value > to_date:
        return False
    return True


def render_statement(
    transactions: Iterable[Transaction],
    account_id: int,
    opening_balance: Decimal | None,
    from_date: date | None = None,
    to_date: date | None = None,
    account_name: str | None = None,
    errors: Sequence[RecordError] = (),
) -> Statement:
    """Build the running-balance ledger for one account.

    *opening_balance* is the balance immediately before *from_date* as
    reported by the backend; it is never assumed to be zero.
    """
    if opening_balance is None:
        raise IncompleteDataError(
            f"Opening balance unavailable for account {account_id}"
        )

    selected = [
        t for t in transactions
        if t.account_id == account_id and _in_range(t.entry_date, from_date, to_date)
    ]
    # Same-day entries keep their recorded order
    selected.sort(key=lambda t: (t.entry_date, t.sequence))

    opening = quantize_money(opening_balance)
    running = opening
    total_debits = ZERO
    total_credits = ZERO
    rows: list[StatementRow] = []
    for txn in selected:
        running += txn.amount
        if txn.amount > ZERO:
            total_debits += txn.amount
        else:
            total_credits -= txn.amount
        rows.append(StatementRow(transaction=txn, running_balance=running))

    if account_name is None:
        account_name = next((t.account_name for t in selected if t.account_name), None)

    return Statement(
        account_id=account_id,
        account_name=account_name,
        from_date=from_date,
        to_date=to_date,
        opening_balance=opening,
        rows=rows,
        total_debits=total_debits,
        total_credits=total_credits,
        closing_balance=running,
        errors=list(errors),
    )


def get_statement(
    records: Iterable[RawOrRecord],
    account_id: int,
    opening_balance: Decimal | None,
    from_date: date | None = None,
    to_date: date | None = None,
    account_name: str | None = None,
    errors: Sequence[RecordError] = (),
) -> Statement:
    """Normalize raw ledger records and render the statement."""
    normalized = normalize_batch(records)
    return render_statement(
        normalized.transactions,
        account_id,
        opening_balance,
        from_date=from_date,
        to_date=to_date,
        account_name=account_name,
        errors=[*errors, *normalized.error_records()],
    )


def verify_closing_balance(statement: Statement, reported: Decimal | None) -> bool:
    """Cross-check the rendered closing balance against the backend figure."""
    if reported is None:
        return True
    expected = quantize_money(reported)
    if statement.closing_balance != expected:
        logger.warning(
            "Closing balance mismatch for account %s: rendered %s, backend %s",
            statement.account_id, statement.closing_balance, expected,
        )
        return False
    return True
