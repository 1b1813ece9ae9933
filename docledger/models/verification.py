"""Verification models -- per-entry outcomes, batch jobs, and batch reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from docledger.models.document_record import DocumentRecord


class VerificationStatus(Enum):
    """Tri-state result of checking one fingerprint."""

    VALID = "valid"
    INVALID = "invalid"
    ERROR = "error"

    @property
    def symbol(self) -> str:
        return {"valid": "✔", "invalid": "✘", "error": "!"}[self.value]


class AggregateStatus(Enum):
    """Overall status of a batch run."""

    ALL_VALID = "all_valid"
    SOME_INVALID = "some_invalid"


@dataclass
class VerificationOutcome:
    """Result of one logical check (verify, then details when valid).

    Attributes:
        raw: The input exactly as supplied by the user or spreadsheet.
        fingerprint: Canonical fingerprint string, or the best-effort
            coerced candidate when normalization failed.
        status: VALID, INVALID or ERROR.
        label: Optional label (spreadsheet name column).
        record: The fetched DocumentRecord (only when VALID).
        error: Short description of what went wrong (ERROR outcomes, and
            INVALID outcomes caused by a verify/details race).
        checked_at: UTC timestamp of the check.
    """

    raw: str
    fingerprint: str
    status: VerificationStatus
    label: str | None = None
    record: DocumentRecord | None = None
    error: str | None = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_valid(self) -> bool:
        return self.status is VerificationStatus.VALID

    @property
    def display_name(self) -> str:
        """Label when present, otherwise the fingerprint (or raw input)."""
        return self.label or self.fingerprint or self.raw or "(empty)"

    @property
    def status_message(self) -> str:
        """Short human-readable status line for this entry."""
        if self.status is VerificationStatus.VALID:
            holder = self.record.display_label if self.record else ""
            return f"VALID -- {holder}" if holder else "VALID"
        if self.status is VerificationStatus.INVALID:
            return f"INVALID -- {self.error}" if self.error else "INVALID"
        return f"ERROR -- {self.error or 'check failed'}"


@dataclass(frozen=True)
class BatchEntry:
    """One raw fingerprint input plus an optional label."""

    raw: str
    label: str | None = None


@dataclass
class BatchJob:
    """An ordered sequence of raw fingerprint inputs.

    Attributes:
        entries: Entries in input order; outcomes are reported in this order.
        source: Where the entries came from ("manual", or a spreadsheet path).
    """

    entries: list[BatchEntry] = field(default_factory=list)
    source: str = "manual"

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def from_values(cls, values: Iterable[str], source: str = "manual") -> BatchJob:
        """Build a job from unlabeled raw strings."""
        return cls([BatchEntry(raw=str(v)) for v in values], source=source)

    @classmethod
    def from_rows(cls, rows: Iterable[tuple[str, str]], source: str = "spreadsheet") -> BatchJob:
        """Build a job from ``(label, raw_fingerprint)`` pairs."""
        return cls(
            [BatchEntry(raw=raw, label=label or None) for label, raw in rows],
            source=source,
        )


@dataclass
class BatchStats:
    """Statistics for a batch verification run."""

    total: int = 0
    valid: int = 0
    invalid: int = 0
    errors: int = 0
    skipped: int = 0


@dataclass
class BatchReport:
    """Complete result of a batch verification run.

    Attributes:
        outcomes: One outcome per input entry, in input order.
        stats: Aggregate counts.
        source: Source of the job ("manual" or a spreadsheet path).
        cancelled: True when the run was cancelled before every entry was checked.
        started_at: UTC start time.
        completed_at: UTC completion time.
    """

    outcomes: list[VerificationOutcome] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)
    source: str = "manual"
    cancelled: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None

    @property
    def aggregate_status(self) -> AggregateStatus:
        """ALL_VALID only if there is at least one entry and every entry is VALID."""
        if self.outcomes and all(o.is_valid for o in self.outcomes):
            return AggregateStatus.ALL_VALID
        return AggregateStatus.SOME_INVALID

    @property
    def status_message(self) -> str:
        if not self.outcomes:
            return "Nothing to verify"
        if self.aggregate_status is AggregateStatus.ALL_VALID:
            return f"All valid ({self.stats.valid} of {self.stats.total})"
        bad = self.stats.total - self.stats.valid
        suffix = " -- cancelled" if self.cancelled else ""
        return f"Some invalid ({bad} of {self.stats.total}){suffix}"
