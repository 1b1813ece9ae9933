"""Tests for RegistryClient -- add / verify / getDetails against a fake ledger."""

from __future__ import annotations

import pytest

from docledger.core.errors import (
    NetworkFailure,
    RecordValidationError,
    RejectedByRegistry,
    SwitchRejected,
)
from docledger.core.hash_engine import compute_fingerprint
from docledger.core.registry_client import RegistryClient
from docledger.core.signing_agent import AgentRequestError, AgentTransportError
from docledger.models.document_record import RECORD_FIELDS, DocumentRecord
from docledger.models.fingerprint import Fingerprint
from docledger.models.verification import VerificationStatus
from docledger.utils.constants import (
    AGENT_USER_REJECTED,
    REGISTRY_DETAILS_FUNCTION,
    REGISTRY_VERIFY_FUNCTION,
    RPC_EXECUTION_REVERTED,
)

ZERO = Fingerprint("0x" + "0" * 64)


def jane_doe(**overrides) -> DocumentRecord:
    record = DocumentRecord(
        full_name="Jane Doe",
        dob="1990-04-12",
        gender="Female",
        address="12 MG Road, Pune",
        phone="9876543210",
        email="jane.doe@example.com",
        pan="abcde1234f",
    )
    return record.with_updates(**overrides)


class TestAddAndVerify:
    def test_register_then_verify(self, client, agent):
        fp = compute_fingerprint(b"%PDF-1.7 degree certificate for Jane Doe")

        receipt = client.add(fp, jane_doe())

        assert receipt.fingerprint == fp.value
        assert receipt.block_number == 16
        assert receipt.status == 1
        assert client.verify(fp) is True

        outcome = client.check(fp)
        assert outcome.status is VerificationStatus.VALID
        assert outcome.record.full_name == "Jane Doe"
        assert outcome.record.email == "jane.doe@example.com"

    def test_id_codes_uppercased_before_sending(self, client, ledger):
        fp = compute_fingerprint(b"pan card")
        client.add(fp, jane_doe())
        stored = ledger.records[fp.value]
        assert stored[RECORD_FIELDS.index("pan")] == "ABCDE1234F"

    def test_arguments_follow_contract_order(self, client, ledger):
        fp = compute_fingerprint(b"order")
        record = jane_doe()
        client.add(fp, record)
        stored = ledger.records[fp.value]
        assert stored[0] == "Jane Doe"
        assert stored[1] == "1990-04-12"
        assert len(stored) == len(RECORD_FIELDS)

    def test_duplicate_rejected(self, client, agent):
        fp = compute_fingerprint(b"once only")
        client.add(fp, jane_doe())
        with pytest.raises(RejectedByRegistry, match="already registered"):
            client.add(fp, jane_doe(full_name="Someone Else"))
        assert agent.calls["send_transaction"] == 1

    def test_invalid_record_makes_no_network_call(self, client, agent):
        fp = compute_fingerprint(b"bad record")
        with pytest.raises(RecordValidationError) as exc_info:
            client.add(fp, jane_doe(phone="", email="not-an-email"))
        assert set(exc_info.value.errors) == {"phone", "email"}
        assert sum(agent.calls.values()) == 0

    def test_revert_is_rejection(self, client, agent, monkeypatch):
        def _revert(address, function, args):
            raise AgentRequestError(RPC_EXECUTION_REVERTED, "execution reverted")

        monkeypatch.setattr(agent, "send_transaction", _revert)
        with pytest.raises(RejectedByRegistry):
            client.add(compute_fingerprint(b"x"), jane_doe())

    def test_signer_declined(self, client, agent, monkeypatch):
        def _declined(address, function, args):
            raise AgentRequestError(AGENT_USER_REJECTED, "User denied transaction signature")

        monkeypatch.setattr(agent, "send_transaction", _declined)
        with pytest.raises(RejectedByRegistry, match="declined"):
            client.add(compute_fingerprint(b"x"), jane_doe())

    def test_transport_failure_on_submit(self, client, agent, monkeypatch):
        def _down(address, function, args):
            raise AgentTransportError("connection reset")

        monkeypatch.setattr(agent, "send_transaction", _down)
        with pytest.raises(NetworkFailure):
            client.add(compute_fingerprint(b"x"), jane_doe())

    def test_failed_receipt(self, client, agent, monkeypatch):
        monkeypatch.setattr(agent, "get_transaction_receipt", lambda tx: {"status": "0x0"})
        with pytest.raises(RejectedByRegistry, match="reverted"):
            client.add(compute_fingerprint(b"x"), jane_doe())

    def test_receipt_timeout(self, agent, selector, monkeypatch):
        client = RegistryClient(agent, selector, receipt_timeout=0, receipt_poll_interval=0)
        monkeypatch.setattr(agent, "get_transaction_receipt", lambda tx: None)
        with pytest.raises(NetworkFailure, match="not confirmed"):
            client.add(compute_fingerprint(b"x"), jane_doe())

    def test_switch_rejected_blocks_add(self, client, agent):
        agent.chain = "0x1"
        agent.reject_switch = True
        with pytest.raises(SwitchRejected):
            client.add(compute_fingerprint(b"x"), jane_doe())
        assert agent.calls["send_transaction"] == 0


class TestCheck:
    def test_unregistered_is_invalid_without_details(self, client, agent):
        assert client.verify(ZERO) is False

        outcome = client.check(ZERO)

        assert outcome.status is VerificationStatus.INVALID
        assert outcome.record is None
        assert agent.calls[REGISTRY_DETAILS_FUNCTION] == 0

    def test_keeps_raw_and_label(self, client):
        outcome = client.check(ZERO, raw="0", label="Row 7")
        assert outcome.raw == "0"
        assert outcome.fingerprint == ZERO.value
        assert outcome.label == "Row 7"

    def test_record_vanished_after_verify(self, client, ledger, monkeypatch):
        fp = compute_fingerprint(b"vanishing")
        client.add(fp, jane_doe())

        def _gone(fingerprint):
            raise AgentRequestError(RPC_EXECUTION_REVERTED, "execution reverted")

        monkeypatch.setattr(ledger, "details", _gone)
        outcome = client.check(fp)
        assert outcome.status is VerificationStatus.INVALID
        assert outcome.error == "Record not found"

    def test_network_error_becomes_error_outcome(self, client, agent):
        agent.transient_failures = 10
        outcome = client.check(ZERO)
        assert outcome.status is VerificationStatus.ERROR
        assert outcome.error

    def test_switch_rejection_becomes_error_outcome(self, client, agent):
        agent.chain = "0x1"
        agent.reject_switch = True
        outcome = client.check(ZERO)
        assert outcome.status is VerificationStatus.ERROR
        assert agent.calls[REGISTRY_VERIFY_FUNCTION] == 0


class TestRetry:
    def test_transient_failures_retried(self, client, agent):
        agent.transient_failures = 2
        assert client.verify(ZERO) is False
        assert agent.calls[REGISTRY_VERIFY_FUNCTION] == 3

    def test_gives_up_after_max_retries(self, client, agent):
        agent.transient_failures = 3
        with pytest.raises(NetworkFailure):
            client.verify(ZERO)
        assert agent.calls[REGISTRY_VERIFY_FUNCTION] == 3

    def test_declined_read_not_retried(self, client, agent, monkeypatch):
        calls = []

        def _declined(address, function, args):
            calls.append(function)
            raise AgentRequestError(AGENT_USER_REJECTED, "denied")

        monkeypatch.setattr(agent, "call", _declined)
        with pytest.raises(RejectedByRegistry):
            client.verify(ZERO)
        assert len(calls) == 1
