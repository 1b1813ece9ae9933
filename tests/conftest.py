"""Shared fixtures: an in-memory registry ledger and a scriptable signing agent."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Any

import pytest

from docledger.core.network_selector import NetworkSelector
from docledger.core.registry_client import RegistryClient
from docledger.core.signing_agent import AgentRequestError, AgentTransportError, SigningAgent
from docledger.utils.constants import (
    AGENT_UNRECOGNIZED_CHAIN,
    AGENT_USER_REJECTED,
    DEFAULT_CHAIN_ID,
    DEFAULT_CONTRACT_ADDRESS,
    REGISTRY_ADD_FUNCTION,
    REGISTRY_DETAILS_FUNCTION,
    REGISTRY_VERIFY_FUNCTION,
    RPC_EXECUTION_REVERTED,
)


class FakeLedger:
    """Append-only fingerprint -> record store, like the registry contract."""

    def __init__(self) -> None:
        self.records: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def add(self, fingerprint: str, values: list[str]) -> None:
        with self._lock:
            if fingerprint in self.records:
                raise AgentRequestError(RPC_EXECUTION_REVERTED, "execution reverted: Document already exists")
            self.records[fingerprint] = list(values)

    def exists(self, fingerprint: str) -> bool:
        with self._lock:
            return fingerprint in self.records

    def details(self, fingerprint: str) -> list[str]:
        with self._lock:
            if fingerprint not in self.records:
                raise AgentRequestError(RPC_EXECUTION_REVERTED, "execution reverted: Document not found")
            return list(self.records[fingerprint])


class FakeAgent(SigningAgent):
    """Signing agent backed by a FakeLedger.

    Counts every call, and can be told to start on another chain, to not
    know the expected chain, to decline switching, or to fail the next N
    reads with a transport error.
    """

    def __init__(self, ledger: FakeLedger | None = None, chain: str = DEFAULT_CHAIN_ID) -> None:
        self.ledger = ledger or FakeLedger()
        self.chain = chain
        self.known_chains = {DEFAULT_CHAIN_ID, "0x1"}
        self.reject_switch = False
        self.transient_failures = 0
        self.switch_delay: threading.Event | None = None
        self.calls: Counter[str] = Counter()
        self.verify_results: dict[str, bool] = {}
        self._lock = threading.Lock()
        self._tx = 0

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    def request_accounts(self) -> list[str]:
        self._count("request_accounts")
        return ["0x" + "ab" * 20]

    def chain_id(self) -> str:
        self._count("chain_id")
        return self.chain

    def switch_chain(self, chain_id: str) -> None:
        self._count("switch_chain")
        if self.switch_delay is not None:
            self.switch_delay.wait(timeout=5)
        if self.reject_switch:
            raise AgentRequestError(AGENT_USER_REJECTED, "User rejected the request.")
        if chain_id not in self.known_chains:
            raise AgentRequestError(AGENT_UNRECOGNIZED_CHAIN, f"Unrecognized chain ID {chain_id}")
        self.chain = chain_id

    def add_chain(self, chain_id: str, chain_name: str, rpc_url: str) -> None:
        self._count("add_chain")
        self.known_chains.add(chain_id)

    def call(self, address: str, function: str, args: list[Any]) -> Any:
        self._count(function)
        with self._lock:
            if self.transient_failures > 0:
                self.transient_failures -= 1
                raise AgentTransportError("connection reset")
        fingerprint = args[0]
        if function == REGISTRY_VERIFY_FUNCTION:
            exists = self.ledger.exists(fingerprint)
            with self._lock:
                self.verify_results[fingerprint] = exists
            return exists
        if function == REGISTRY_DETAILS_FUNCTION:
            with self._lock:
                seen = self.verify_results.get(fingerprint)
            if seen is False:
                pytest.fail(f"getStudentDetails called for {fingerprint} after verify returned False")
            return self.ledger.details(fingerprint)
        raise AgentRequestError(-32601, f"Unknown function {function}")

    def send_transaction(self, address: str, function: str, args: list[Any]) -> str:
        self._count("send_transaction")
        assert function == REGISTRY_ADD_FUNCTION
        self.ledger.add(args[0], args[1:])
        with self._lock:
            self._tx += 1
            return "0x" + format(self._tx, "064x")

    def get_transaction_receipt(self, transaction_hash: str) -> dict | None:
        self._count("get_transaction_receipt")
        return {"transactionHash": transaction_hash, "blockNumber": "0x10", "status": "0x1"}


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def agent(ledger: FakeLedger) -> FakeAgent:
    return FakeAgent(ledger)


@pytest.fixture
def selector(agent: FakeAgent) -> NetworkSelector:
    return NetworkSelector(agent)


@pytest.fixture
def client(agent: FakeAgent, selector: NetworkSelector) -> RegistryClient:
    return RegistryClient(
        agent,
        selector,
        contract_address=DEFAULT_CONTRACT_ADDRESS,
        retry_backoff=0,
        receipt_poll_interval=0,
    )
