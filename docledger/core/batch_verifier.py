"""Batch verifier -- checks many fingerprints against the registry.

Entries come from a manually typed list or from spreadsheet rows; both go
through the same ``run_batch`` contract. Each entry is processed
independently: one malformed string or failed call never affects another.
"""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator

from docledger.core.errors import NormalizationError
from docledger.core.hash_normalizer import clean, normalize, split_manual_input
from docledger.core.registry_client import RegistryClient
from docledger.core.spreadsheet_importer import load_batch_job
from docledger.models.fingerprint import Fingerprint
from docledger.models.verification import (
    BatchEntry,
    BatchJob,
    BatchReport,
    BatchStats,
    VerificationOutcome,
    VerificationStatus,
)
from docledger.utils.constants import (
    DEFAULT_MAX_CONCURRENT_VERIFICATIONS,
    MAX_CONCURRENT_VERIFICATIONS_LIMIT,
)
from docledger.utils.logger import get_logger

logger = get_logger("core.batch_verifier")

CANCELLED_MESSAGE = "Cancelled before check"

# Callback type: (completed, total, outcome)
ProgressCallback = Callable[[int, int, VerificationOutcome], None]


class BatchVerifier:
    """Verifies a BatchJob with bounded concurrency and ordered output.

    Pipeline per entry:
    1. Normalize: malformed input becomes an ERROR outcome at once, with no
       registry call.
    2. Check: ``RegistryClient.check`` (verify, then details when valid).

    At most ``max_workers`` checks are in flight. Outcomes are always
    reported in input order, whatever order the checks complete in.
    """

    def __init__(
        self,
        client: RegistryClient,
        max_workers: int = DEFAULT_MAX_CONCURRENT_VERIFICATIONS,
        progress_callback: ProgressCallback | None = None,
        cancel_check: Callable[[], bool] | None = None,
    ) -> None:
        """Initialize the batch verifier.

        Args:
            client: RegistryClient used for every check.
            max_workers: Registry checks in flight at once (clamped to 1-16).
            progress_callback: Optional ``(completed, total, outcome)``
                callback invoked as each entry finishes.
            cancel_check: Optional callable returning True when the run
                should stop issuing new checks.
        """
        self._client = client
        self._max_workers = max(1, min(max_workers, MAX_CONCURRENT_VERIFICATIONS_LIMIT))
        self._progress_callback = progress_callback
        self._cancel_check = cancel_check
        self._cancelled = False

    def cancel(self) -> None:
        """Stop issuing new checks; in-flight checks are allowed to finish."""
        self._cancelled = True
        logger.info("Batch verification cancelled")

    def verify_manual(self, text: str) -> BatchReport:
        """Verify fingerprints typed or pasted as one string (whitespace/comma separated)."""
        return self.run_batch(BatchJob.from_values(split_manual_input(text), source="manual"))

    def verify_spreadsheet(self, path: Path | str) -> BatchReport:
        """Verify the label + fingerprint rows of a spreadsheet.

        Raises:
            InputReadError: The spreadsheet itself cannot be read.
        """
        return self.run_batch(load_batch_job(path))

    def run_batch(self, job: BatchJob) -> BatchReport:
        """Verify every entry of a job.

        Args:
            job: Entries to verify.

        Returns:
            BatchReport with exactly one outcome per entry, in input order.
        """
        self._cancelled = False
        report = BatchReport(source=job.source)
        total = len(job.entries)
        outcomes: list[VerificationOutcome | None] = [None] * total
        completed = 0

        logger.info(
            "Verifying %d entr%s from %s with %d worker(s)",
            total, "y" if total == 1 else "ies", job.source, self._max_workers,
        )

        def _finish(index: int, outcome: VerificationOutcome) -> None:
            nonlocal completed
            outcomes[index] = outcome
            completed += 1
            if self._progress_callback:
                try:
                    self._progress_callback(completed, total, outcome)
                except Exception as e:
                    logger.warning("Progress callback failed: %s", e)

        # --- Phase 1: local normalization (no network) ---
        pending: list[tuple[int, BatchEntry, Fingerprint]] = []
        for index, entry in enumerate(job.entries):
            try:
                fingerprint = normalize(entry.raw)
            except NormalizationError as e:
                logger.debug("Entry %d is malformed: %s", index + 1, e)
                _finish(index, VerificationOutcome(
                    raw=entry.raw,
                    fingerprint=e.candidate,
                    status=VerificationStatus.ERROR,
                    label=entry.label,
                    error=e.message,
                ))
                continue
            pending.append((index, entry, fingerprint))

        # --- Phase 2: registry checks (bounded concurrency) ---
        if pending:
            self._check_all(pending, _finish)

        # --- Phase 3: entries never checked because of cancellation ---
        for index, entry in enumerate(job.entries):
            if outcomes[index] is None:
                report.cancelled = True
                outcomes[index] = VerificationOutcome(
                    raw=entry.raw,
                    fingerprint=clean(entry.raw),
                    status=VerificationStatus.ERROR,
                    label=entry.label,
                    error=CANCELLED_MESSAGE,
                )

        report.outcomes = [o for o in outcomes if o is not None]
        report.stats = _build_stats(report.outcomes)
        report.completed_at = datetime.now(timezone.utc)

        logger.info(
            "Batch complete: %d total, %d valid, %d invalid, %d errors%s",
            report.stats.total, report.stats.valid, report.stats.invalid,
            report.stats.errors, " (cancelled)" if report.cancelled else "",
        )
        return report

    # --- Private ---

    def _should_stop(self) -> bool:
        if self._cancelled:
            return True
        if self._cancel_check is not None and self._cancel_check():
            return True
        return False

    def _check_one(self, entry: BatchEntry, fingerprint: Fingerprint) -> VerificationOutcome:
        """Check a single entry (runs inside a worker thread)."""
        return self._client.check(fingerprint, raw=entry.raw, label=entry.label)

    def _check_all(
        self,
        pending: list[tuple[int, BatchEntry, Fingerprint]],
        finish: Callable[[int, VerificationOutcome], None],
    ) -> None:
        work: Iterator[tuple[int, BatchEntry, Fingerprint]] = iter(pending)
        in_flight: dict[Future[VerificationOutcome], tuple[int, BatchEntry, Fingerprint]] = {}

        def _submit_next(pool: ThreadPoolExecutor) -> bool:
            if self._should_stop():
                return False
            item = next(work, None)
            if item is None:
                return False
            _, entry, fingerprint = item
            in_flight[pool.submit(self._check_one, entry, fingerprint)] = item
            return True

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            while len(in_flight) < self._max_workers and _submit_next(pool):
                pass

            while in_flight:
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    index, entry, fingerprint = in_flight.pop(future)
                    try:
                        outcome = future.result()
                    except Exception as e:
                        logger.error("Check failed for entry %d: %s", index + 1, e)
                        outcome = VerificationOutcome(
                            raw=entry.raw,
                            fingerprint=fingerprint.value,
                            status=VerificationStatus.ERROR,
                            label=entry.label,
                            error=str(e) or type(e).__name__,
                        )
                    finish(index, outcome)

                while len(in_flight) < self._max_workers and _submit_next(pool):
                    pass


def _build_stats(outcomes: list[VerificationOutcome]) -> BatchStats:
    stats = BatchStats(total=len(outcomes))
    for outcome in outcomes:
        if outcome.status is VerificationStatus.VALID:
            stats.valid += 1
        elif outcome.status is VerificationStatus.INVALID:
            stats.invalid += 1
        elif outcome.error == CANCELLED_MESSAGE:
            stats.skipped += 1
        else:
            stats.errors += 1
    return stats
