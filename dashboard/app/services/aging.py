from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from dashboard.app.schemas.aging import AgingBucketSet, AgingDetail, AgingReport
from dashboard.app.schemas.transactions import (
    LedgerSide,
    RecordError,
    Transaction,
)
from dashboard.app.services.transactions import RawOrRecord, normalize_batch

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
BUCKETS = ("current", "days_1_to_30", "days_31_to_60", "days_61_to_90", "over_90")


def bucket(age_days: int) -> str:
    """Assign an aging bucket based on days past the due date."""
    if age_days <= 0:
        return "current"
    elif age_days <= 30:
        return "days_1_to_30"
    elif age_days <= 60:
        return "days_31_to_60"
    elif age_days <= 90:
        return "days_61_to_90"
    else:
        return "over_90"


def empty_buckets() -> dict[str, Decimal]:
    return {name: ZERO for name in BUCKETS}


def age_in_days(due_date: date, as_of_date: date) -> int:
    return (as_of_date - due_date).days


def outstanding_items(
    transactions: Sequence[Transaction],
) -> tuple[list[tuple[Transaction, Decimal]], Decimal]:
    """Apply credits FIFO against the oldest debits of one account.

    Returns the debits that still carry an open residual, paired with that
    residual, plus any credit left over once every debit is settled.
    """
    debits = sorted(
        (t for t in transactions if t.amount > ZERO),
        key=lambda t: (t.entry_date, t.sequence),
    )
    credit = sum((-t.amount for t in transactions if t.amount < ZERO), ZERO)

    items: list[tuple[Transaction, Decimal]] = []
    for txn in debits:
        applied = min(txn.amount, credit)
        credit -= applied
        residual = txn.amount - applied
        if residual > ZERO:
            items.append((txn, residual))
    return items, credit


def age_account(transactions: Sequence[Transaction], as_of_date: date) -> AgingBucketSet:
    """Bucket one account's outstanding balance as of *as_of_date*."""
    buckets = empty_buckets()
    items, unapplied = outstanding_items(transactions)
    for txn, residual in items:
        buckets[bucket(age_in_days(txn.due_date, as_of_date))] += residual

    if unapplied > ZERO and transactions:
        logger.info(
            "Account %s has %s unapplied credit as of %s",
            transactions[0].account_id, unapplied, as_of_date,
        )
    return AgingBucketSet(**buckets)


def build_aging_report(
    transactions: Iterable[Transaction],
    as_of_date: date | None = None,
    report_type: LedgerSide = LedgerSide.RECEIVABLES,
    errors: Sequence[RecordError] = (),
) -> AgingReport:
    """Compute per-account buckets and their grand totals.

    Transactions dated after *as_of_date* are ignored so point-in-time
    reports only see what had been recorded by then. Accounts with nothing
    outstanding are left out of the details.
    """
    if as_of_date is None:
        as_of_date = date.today()

    by_account: dict[int, list[Transaction]] = {}
    names: dict[int, str] = {}
    for txn in transactions:
        if txn.entry_date > as_of_date:
            continue
        by_account.setdefault(txn.account_id, []).append(txn)
        if txn.account_name and txn.account_id not in names:
            names[txn.account_id] = txn.account_name

    details: list[AgingDetail] = []
    for account_id, account_txns in by_account.items():
        buckets = age_account(account_txns, as_of_date)
        if buckets.total == ZERO:
            continue
        details.append(
            AgingDetail(
                account_id=account_id,
                account_name=names.get(account_id, f"#{account_id}"),
                buckets=buckets,
            )
        )
    details.sort(key=lambda d: (d.account_name.lower(), d.account_id))

    grand_buckets = empty_buckets()
    for detail in details:
        for k in grand_buckets:
            grand_buckets[k] += getattr(detail.buckets, k)

    return AgingReport(
        report_type=report_type,
        as_of_date=as_of_date,
        details=details,
        totals=AgingBucketSet(**grand_buckets),
        errors=list(errors),
    )


def get_aging_report(
    records: Iterable[RawOrRecord],
    as_of_date: date | None = None,
    report_type: LedgerSide = LedgerSide.RECEIVABLES,
    errors: Sequence[RecordError] = (),
) -> AgingReport:
    """Normalize raw ledger records and age them in one pass."""
    normalized = normalize_batch(records)
    return build_aging_report(
        normalized.transactions,
        as_of_date=as_of_date,
        report_type=report_type,
        errors=[*errors, *normalized.error_records()],
    )
