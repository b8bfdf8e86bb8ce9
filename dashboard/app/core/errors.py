"""Error taxonomy for the aging and statement reports."""

from __future__ import annotations

from typing import Any


class ReportError(Exception):
    """Base class for report computation errors."""


class ValidationError(ReportError):
    """A single ledger record is malformed.

    Raised per record and collected by the caller, so the rest of the batch
    still produces a (partial) report.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        kind: str | None = None,
        reference: str | None = None,
        index: int | None = None,
    ) -> None:
        self.field = field
        self.kind = kind
        self.reference = reference
        self.index = index
        super().__init__(message)

    def as_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "kind": self.kind,
            "reference": self.reference,
            "field": self.field,
            "message": str(self),
        }


class IncompleteDataError(ReportError):
    """A prerequisite aggregate (e.g. opening balance) is unavailable."""
