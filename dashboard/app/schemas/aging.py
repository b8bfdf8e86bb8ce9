from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field

from dashboard.app.schemas.transactions import LedgerSide, RecordError

ZERO = Decimal("0.00")
NO_OUTSTANDING = "No outstanding balances"


def money(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.01")))


# ─── Engine models ───────────────────────────────────────────────────────────


class AgingBucketSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: Decimal = ZERO
    days_1_to_30: Decimal = ZERO
    days_31_to_60: Decimal = ZERO
    days_61_to_90: Decimal = ZERO
    over_90: Decimal = ZERO

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> Decimal:
        return (
            self.current
            + self.days_1_to_30
            + self.days_31_to_60
            + self.days_61_to_90
            + self.over_90
        )


class AgingDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: int
    account_name: str
    buckets: AgingBucketSet


class AgingReport(BaseModel):
    report_type: LedgerSide
    as_of_date: date
    details: list[AgingDetail]
    totals: AgingBucketSet
    errors: list[RecordError] = []

    @property
    def is_empty(self) -> bool:
        return not self.details

    @property
    def total_overdue(self) -> Decimal:
        return self.totals.total - self.totals.current


# ─── Response Models ─────────────────────────────────────────────────────────


class AgingDetailOut(BaseModel):
    account_id: int
    account_name: str
    current: str
    days_1_to_30: str
    days_31_to_60: str
    days_61_to_90: str
    over_90: str
    total: str


class AgingReportOut(BaseModel):
    report_type: str
    as_of_date: str
    details: list[AgingDetailOut]
    total_current: str
    total_1_to_30: str
    total_31_to_60: str
    total_61_to_90: str
    total_over_90: str
    grand_total: str
    total_overdue: str
    message: str | None = None
    errors: list[RecordError]

    @classmethod
    def from_report(cls, report: AgingReport) -> AgingReportOut:
        details = []
        for detail in report.details:
            b = detail.buckets
            details.append(
                AgingDetailOut(
                    account_id=detail.account_id,
                    account_name=detail.account_name,
                    current=money(b.current),
                    days_1_to_30=money(b.days_1_to_30),
                    days_31_to_60=money(b.days_31_to_60),
                    days_61_to_90=money(b.days_61_to_90),
                    over_90=money(b.over_90),
                    total=money(b.total),
                )
            )
        totals = report.totals
        return cls(
            report_type=report.report_type.value,
            as_of_date=report.as_of_date.isoformat(),
            details=details,
            total_current=money(totals.current),
            total_1_to_30=money(totals.days_1_to_30),
            total_31_to_60=money(totals.days_31_to_60),
            total_61_to_90=money(totals.days_61_to_90),
            total_over_90=money(totals.over_90),
            grand_total=money(totals.total),
            total_overdue=money(report.total_overdue),
            message=NO_OUTSTANDING if report.is_empty else None,
            errors=report.errors,
        )


# ─── Requests ────────────────────────────────────────────────────────────────


class AgingComputeRequest(BaseModel):
    report_type: LedgerSide = LedgerSide.RECEIVABLES
    as_of_date: date | None = None
    # Raw `{"kind": ...}` records, validated one by one during normalization
    records: list[dict[str, Any]]
