"""Tests for BatchVerifier -- ordering, isolation, concurrency and cancellation."""

from __future__ import annotations

import threading
import time
from pathlib import Path

from docledger.core.batch_verifier import CANCELLED_MESSAGE, BatchVerifier
from docledger.core.hash_engine import compute_fingerprint
from docledger.core.network_selector import NetworkSelector
from docledger.core.registry_client import RegistryClient
from docledger.core.signing_agent import AgentRequestError, AgentTransportError
from docledger.models.document_record import DocumentRecord
from docledger.models.verification import AggregateStatus, BatchEntry, BatchJob, VerificationStatus
from docledger.utils.constants import (
    REGISTRY_DETAILS_FUNCTION,
    REGISTRY_VERIFY_FUNCTION,
    RPC_EXECUTION_REVERTED,
)

from conftest import FakeAgent


def register(ledger, data: bytes, name: str) -> str:
    fp = compute_fingerprint(data).value
    ledger.records[fp] = DocumentRecord(full_name=name, phone="9876543210").as_registry_args()
    return fp


class TestRunBatch:
    def test_malformed_entry_isolated_and_ordered(self, client, agent, ledger):
        valid1 = register(ledger, b"doc one", "Asha")
        valid2 = register(ledger, b"doc two", "Ravi")
        job = BatchJob.from_values([valid1, "not-a-hash", valid2])

        report = BatchVerifier(client, max_workers=2).run_batch(job)

        statuses = [o.status for o in report.outcomes]
        assert statuses == [VerificationStatus.VALID, VerificationStatus.ERROR, VerificationStatus.VALID]
        assert report.outcomes[0].record.full_name == "Asha"
        assert report.outcomes[2].record.full_name == "Ravi"
        assert report.outcomes[1].raw == "not-a-hash"
        assert agent.calls[REGISTRY_VERIFY_FUNCTION] == 2
        assert agent.calls[REGISTRY_DETAILS_FUNCTION] == 2
        assert report.aggregate_status is AggregateStatus.SOME_INVALID
        assert report.stats.valid == 2
        assert report.stats.errors == 1

    def test_short_hex_never_reaches_registry(self, client, agent):
        report = BatchVerifier(client).run_batch(BatchJob.from_values(["0xabc"]))

        outcome = report.outcomes[0]
        assert outcome.status is VerificationStatus.ERROR
        assert outcome.fingerprint == "0xabc"
        assert agent.calls[REGISTRY_VERIFY_FUNCTION] == 0
        assert report.aggregate_status is AggregateStatus.SOME_INVALID

    def test_all_valid(self, client, ledger):
        fps = [register(ledger, f"doc {i}".encode(), f"Holder {i}") for i in range(6)]
        report = BatchVerifier(client).run_batch(BatchJob.from_values(fps))
        assert report.aggregate_status is AggregateStatus.ALL_VALID
        assert report.status_message == "All valid (6 of 6)"

    def test_unregistered_is_invalid(self, client, agent, ledger):
        valid = register(ledger, b"registered", "Asha")
        missing = compute_fingerprint(b"never registered").value
        report = BatchVerifier(client).run_batch(BatchJob.from_values([valid, missing]))
        assert [o.status for o in report.outcomes] == [VerificationStatus.VALID, VerificationStatus.INVALID]
        assert agent.calls[REGISTRY_DETAILS_FUNCTION] == 1

    def test_empty_batch(self, client):
        report = BatchVerifier(client).run_batch(BatchJob())
        assert report.outcomes == []
        assert report.aggregate_status is AggregateStatus.SOME_INVALID
        assert report.status_message == "Nothing to verify"

    def test_mixed_encodings_of_same_fingerprint(self, client, agent, ledger):
        fp = register(ledger, b"spreadsheet mangled", "Asha")
        decimal = str(int(fp[2:], 16))
        job = BatchJob.from_values([fp, fp.upper(), fp[2:], decimal])

        report = BatchVerifier(client).run_batch(job)

        assert all(o.status is VerificationStatus.VALID for o in report.outcomes)
        assert {o.fingerprint for o in report.outcomes} == {fp}
        assert [o.raw for o in report.outcomes] == [fp, fp.upper(), fp[2:], decimal]

    def test_progress_callback(self, client, ledger):
        fps = [register(ledger, f"p{i}".encode(), "P") for i in range(3)]
        seen = []
        verifier = BatchVerifier(client, progress_callback=lambda done, total, o: seen.append((done, total)))
        verifier.run_batch(BatchJob.from_values(fps + ["bad"]))
        assert sorted(seen) == [(1, 4), (2, 4), (3, 4), (4, 4)]

    def test_workers_clamped(self, client):
        assert BatchVerifier(client, max_workers=100)._max_workers == 16
        assert BatchVerifier(client, max_workers=0)._max_workers == 1


class SlowFirstAgent(FakeAgent):
    """Delays verification of one fingerprint and tracks calls in flight."""

    def __init__(self, ledger, slow_fingerprint: str) -> None:
        super().__init__(ledger)
        self.slow_fingerprint = slow_fingerprint
        self.in_flight = 0
        self.max_in_flight = 0
        self._flight_lock = threading.Lock()

    def call(self, address, function, args):
        with self._flight_lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if function == REGISTRY_VERIFY_FUNCTION:
                time.sleep(0.2 if args[0] == self.slow_fingerprint else 0.01)
            return super().call(address, function, args)
        finally:
            with self._flight_lock:
                self.in_flight -= 1


class PartiallyUnreachableAgent(FakeAgent):
    """Fails every registry read for one fingerprint with a transport error."""

    def __init__(self, ledger, broken_fingerprint: str) -> None:
        super().__init__(ledger)
        self.broken_fingerprint = broken_fingerprint

    def call(self, address, function, args):
        if args[0] == self.broken_fingerprint:
            self._count(function)
            raise AgentTransportError("connection reset by peer")
        return super().call(address, function, args)


class TestRegistryFailureIsolation:
    def test_failed_entry_does_not_stop_batch(self, ledger):
        fps = [register(ledger, f"iso{i}".encode(), f"Holder {i}") for i in range(3)]
        agent = PartiallyUnreachableAgent(ledger, fps[1])
        client = RegistryClient(agent, NetworkSelector(agent), retry_backoff=0, receipt_poll_interval=0)

        report = BatchVerifier(client, max_workers=2).run_batch(BatchJob.from_values(fps))

        assert [o.fingerprint for o in report.outcomes] == fps
        assert [o.status for o in report.outcomes] == [
            VerificationStatus.VALID,
            VerificationStatus.ERROR,
            VerificationStatus.VALID,
        ]
        assert report.outcomes[1].error
        assert report.stats.errors == 1
        assert report.aggregate_status is AggregateStatus.SOME_INVALID
        assert agent.calls[REGISTRY_DETAILS_FUNCTION] == 2

    def test_revert_on_verify_is_entry_error(self, client, agent, ledger, monkeypatch):
        good = register(ledger, b"good", "Asha")
        bad = compute_fingerprint(b"reverts").value
        original_call = agent.call

        def _call(address, function, args):
            if args[0] == bad:
                raise AgentRequestError(RPC_EXECUTION_REVERTED, "execution reverted")
            return original_call(address, function, args)

        monkeypatch.setattr(agent, "call", _call)
        report = BatchVerifier(client).run_batch(BatchJob.from_values([good, bad, good]))

        assert [o.status for o in report.outcomes] == [
            VerificationStatus.VALID,
            VerificationStatus.ERROR,
            VerificationStatus.VALID,
        ]


class TestConcurrency:
    def _client(self, agent):
        return RegistryClient(agent, NetworkSelector(agent), retry_backoff=0, receipt_poll_interval=0)

    def test_output_order_independent_of_completion_order(self, ledger):
        fps = [register(ledger, f"c{i}".encode(), f"Holder {i}") for i in range(5)]
        agent = SlowFirstAgent(ledger, fps[0])

        report = BatchVerifier(self._client(agent), max_workers=4).run_batch(BatchJob.from_values(fps))

        assert [o.fingerprint for o in report.outcomes] == fps
        assert [o.record.full_name for o in report.outcomes] == [f"Holder {i}" for i in range(5)]

    def test_in_flight_bounded(self, ledger):
        fps = [register(ledger, f"b{i}".encode(), "B") for i in range(12)]
        agent = SlowFirstAgent(ledger, fps[0])

        BatchVerifier(self._client(agent), max_workers=3).run_batch(BatchJob.from_values(fps))

        assert agent.max_in_flight <= 3


class TestCancellation:
    def test_cancel_stops_new_checks(self, client, agent, ledger):
        fps = [register(ledger, f"x{i}".encode(), "X") for i in range(5)]
        verifier = BatchVerifier(client, max_workers=1)
        verifier._progress_callback = lambda done, total, outcome: verifier.cancel()

        report = verifier.run_batch(BatchJob.from_values(fps))

        assert len(report.outcomes) == 5
        assert report.outcomes[0].status is VerificationStatus.VALID
        for outcome in report.outcomes[1:]:
            assert outcome.status is VerificationStatus.ERROR
            assert outcome.error == CANCELLED_MESSAGE
        assert report.cancelled is True
        assert report.stats.skipped == 4
        assert report.stats.errors == 0
        assert agent.calls[REGISTRY_VERIFY_FUNCTION] == 1
        assert report.status_message.endswith("cancelled")

    def test_cancel_check_before_start(self, client, agent, ledger):
        fps = [register(ledger, f"y{i}".encode(), "Y") for i in range(3)]
        report = BatchVerifier(client, cancel_check=lambda: True).run_batch(BatchJob.from_values(fps))
        assert [o.error for o in report.outcomes] == [CANCELLED_MESSAGE] * 3
        assert [o.fingerprint for o in report.outcomes] == fps
        assert agent.calls[REGISTRY_VERIFY_FUNCTION] == 0

    def test_new_run_resets_cancel(self, client, ledger):
        fp = register(ledger, b"again", "A")
        verifier = BatchVerifier(client)
        verifier.cancel()
        report = verifier.run_batch(BatchJob.from_values([fp]))
        assert report.cancelled is False
        assert report.outcomes[0].is_valid


class TestSpreadsheetBatch:
    def test_empty_hash_cell_is_labeled_error(self, client, agent, ledger, tmp_path: Path):
        fp = register(ledger, b"sheet doc", "Alice")
        sheet = tmp_path / "batch.csv"
        sheet.write_text(f"Name,Hash\nAlice,{fp}\nBob,\n", encoding="utf-8")

        report = BatchVerifier(client).verify_spreadsheet(sheet)

        assert [o.label for o in report.outcomes] == ["Alice", "Bob"]
        assert report.outcomes[0].status is VerificationStatus.VALID
        assert report.outcomes[1].status is VerificationStatus.ERROR
        assert agent.calls[REGISTRY_VERIFY_FUNCTION] == 1
        assert report.source == str(sheet)

    def test_manual_text(self, client, ledger):
        fp = register(ledger, b"manual", "M")
        report = BatchVerifier(client).verify_manual(f"{fp}, junk\n")
        assert [o.status for o in report.outcomes] == [VerificationStatus.VALID, VerificationStatus.ERROR]
        assert report.source == "manual"

    def test_labels_survive_entries(self):
        job = BatchJob.from_rows([("Alice", "0x1"), ("", "0x2")])
        assert job.entries == [BatchEntry("0x1", "Alice"), BatchEntry("0x2", None)]
