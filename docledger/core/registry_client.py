"""Registry client -- add / verify / getDetails against the document registry."""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from docledger.core.errors import (
    DocLedgerError,
    NetworkFailure,
    NotFound,
    RegistryError,
    RejectedByRegistry,
)
from docledger.core.network_selector import NetworkSelector
from docledger.core.record_validator import ensure_valid
from docledger.core.signing_agent import AgentError, AgentRequestError, SigningAgent
from docledger.models.activity import ReceiptHandle
from docledger.models.document_record import DocumentRecord
from docledger.models.fingerprint import Fingerprint
from docledger.models.verification import VerificationOutcome, VerificationStatus
from docledger.utils.constants import (
    AGENT_UNAUTHORIZED,
    AGENT_USER_REJECTED,
    API_MAX_RETRIES,
    API_RETRY_BACKOFF_SECONDS,
    DEFAULT_CONTRACT_ADDRESS,
    RECEIPT_POLL_INTERVAL_SECONDS,
    RECEIPT_TIMEOUT_SECONDS,
    REGISTRY_ADD_FUNCTION,
    REGISTRY_DETAILS_FUNCTION,
    REGISTRY_VERIFY_FUNCTION,
    RPC_EXECUTION_REVERTED,
    RPC_SERVER_ERROR,
)
from docledger.utils.logger import get_logger

logger = get_logger("core.registry_client")

T = TypeVar("T")

_DECLINED_CODES = frozenset({AGENT_USER_REJECTED, AGENT_UNAUTHORIZED})


def _is_revert(error: AgentRequestError) -> bool:
    """True if the agent reports that the contract call reverted."""
    if error.code == RPC_EXECUTION_REVERTED:
        return True
    return error.code == RPC_SERVER_ERROR and "revert" in error.message.lower()


def _retry(
    func: Callable[[], T],
    operation: str,
    max_retries: int = API_MAX_RETRIES,
    backoff: float = API_RETRY_BACKOFF_SECONDS,
) -> T:
    """Retry a read-only registry call on ``NetworkFailure`` with linear backoff.

    Terminal errors propagate immediately; the last ``NetworkFailure`` is
    re-raised once the attempts are exhausted.
    """
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except NetworkFailure as e:
            if attempt >= attempts:
                logger.error("%s failed after %d attempts: %s", operation, attempts, e)
                raise
            wait_time = backoff * attempt
            logger.warning(
                "%s failed (attempt %d/%d): %s -- retrying in %.1fs",
                operation, attempt, attempts, e, wait_time,
            )
            time.sleep(wait_time)
    raise AssertionError("unreachable")


class RegistryClient:
    """Wraps the three registry operations exposed by the ledger contract.

    Every operation first runs ``NetworkSelector.ensure_expected_network()``.
    ``add`` is the only mutating operation; it is never retried
    automatically. ``verify`` and ``get_details`` are pure queries and are
    retried on ``NetworkFailure``.
    """

    def __init__(
        self,
        agent: SigningAgent,
        selector: NetworkSelector,
        contract_address: str = DEFAULT_CONTRACT_ADDRESS,
        max_retries: int = API_MAX_RETRIES,
        retry_backoff: float = API_RETRY_BACKOFF_SECONDS,
        receipt_timeout: float = RECEIPT_TIMEOUT_SECONDS,
        receipt_poll_interval: float = RECEIPT_POLL_INTERVAL_SECONDS,
    ) -> None:
        """Initialize the registry client.

        Args:
            agent: Injected signing agent used for every call.
            selector: NetworkSelector bound to the same agent.
            contract_address: Address of the registry contract.
            max_retries: Attempts for read-only calls.
            retry_backoff: Base seconds between retries (multiplied by attempt).
            receipt_timeout: Max seconds to wait for an add to be mined.
            receipt_poll_interval: Seconds between receipt polls.
        """
        self._agent = agent
        self._selector = selector
        self._address = contract_address
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._receipt_timeout = receipt_timeout
        self._receipt_poll_interval = receipt_poll_interval

    # --- Write ---

    def add(self, fingerprint: Fingerprint, record: DocumentRecord) -> ReceiptHandle:
        """Register a fingerprint with its identity record.

        The record is validated before any network call. Returns only once
        the transaction is mined.

        Raises:
            RecordValidationError: The record failed client-side validation.
            RejectedByRegistry: Duplicate fingerprint, revert, or signer declined.
            NetworkFailure: The call could not complete (may be retried by the caller).
            NetworkError: The agent could not be bound to the expected chain.
        """
        record = ensure_valid(record)
        self._selector.ensure_expected_network()

        if self._verify_once(fingerprint):
            raise RejectedByRegistry(f"Fingerprint {fingerprint.short} is already registered")

        args = [fingerprint.value, *record.as_registry_args()]
        logger.info("Registering %s for %s", fingerprint.short, record.display_label)
        try:
            tx_hash = self._agent.send_transaction(self._address, REGISTRY_ADD_FUNCTION, args)
        except AgentRequestError as e:
            if e.code in _DECLINED_CODES:
                raise RejectedByRegistry(f"Signer declined the transaction: {e.message}") from e
            if _is_revert(e):
                raise RejectedByRegistry(f"Registry rejected the record: {e.message}") from e
            raise NetworkFailure(f"Transaction could not be submitted: {e.message}") from e
        except AgentError as e:
            raise NetworkFailure(f"Transaction could not be submitted: {e}") from e

        receipt = self._wait_for_receipt(tx_hash)
        status = _as_int(receipt.get("status"), default=1)
        if status != 1:
            raise RejectedByRegistry(f"Transaction {tx_hash} reverted")

        handle = ReceiptHandle(
            fingerprint=fingerprint.value,
            transaction_hash=tx_hash,
            block_number=_as_int(receipt.get("blockNumber"), default=None),
            status=status,
        )
        logger.info("Registered %s in block %s", fingerprint.short, handle.block_number)
        return handle

    # --- Read ---

    def verify(self, fingerprint: Fingerprint) -> bool:
        """Return True if the fingerprint is registered.

        Raises:
            NetworkFailure: All attempts failed.
            NetworkError: The agent could not be bound to the expected chain.
        """
        self._selector.ensure_expected_network()
        return _retry(
            lambda: self._verify_once(fingerprint),
            f"verify {fingerprint.short}",
            self._max_retries,
            self._retry_backoff,
        )

    def get_details(self, fingerprint: Fingerprint) -> DocumentRecord:
        """Fetch the record registered for a fingerprint.

        Only call this after ``verify`` returned True for the same
        fingerprint; ``check`` enforces that ordering.

        Raises:
            NotFound: The record is missing (e.g. removed between verify and fetch).
            NetworkFailure: All attempts failed.
            NetworkError: The agent could not be bound to the expected chain.
        """
        self._selector.ensure_expected_network()
        return _retry(
            lambda: self._details_once(fingerprint),
            f"getDetails {fingerprint.short}",
            self._max_retries,
            self._retry_backoff,
        )

    def check(self, fingerprint: Fingerprint, raw: str | None = None, label: str | None = None) -> VerificationOutcome:
        """Run one logical check: verify, then fetch details only if valid.

        Never raises for registry or network errors; they become an ERROR
        outcome. A record that disappears between verify and fetch yields
        INVALID.
        """
        raw = fingerprint.value if raw is None else raw
        try:
            if not self.verify(fingerprint):
                return VerificationOutcome(
                    raw=raw, fingerprint=fingerprint.value,
                    status=VerificationStatus.INVALID, label=label,
                )
            record = self.get_details(fingerprint)
        except NotFound as e:
            logger.warning("Record for %s vanished after verify: %s", fingerprint.short, e)
            return VerificationOutcome(
                raw=raw, fingerprint=fingerprint.value,
                status=VerificationStatus.INVALID, label=label, error=e.status_message,
            )
        except DocLedgerError as e:
            logger.error("Check failed for %s: %s", fingerprint.short, e)
            return VerificationOutcome(
                raw=raw, fingerprint=fingerprint.value,
                status=VerificationStatus.ERROR, label=label, error=e.message,
            )

        return VerificationOutcome(
            raw=raw, fingerprint=fingerprint.value,
            status=VerificationStatus.VALID, label=label, record=record,
        )

    # --- Single attempts ---

    def _verify_once(self, fingerprint: Fingerprint) -> bool:
        try:
            result = self._agent.call(self._address, REGISTRY_VERIFY_FUNCTION, [fingerprint.value])
        except AgentError as e:
            raise self._classify_read_error(e, "verifyDocument") from e
        return _as_bool(result)

    def _details_once(self, fingerprint: Fingerprint) -> DocumentRecord:
        try:
            result = self._agent.call(self._address, REGISTRY_DETAILS_FUNCTION, [fingerprint.value])
        except AgentRequestError as e:
            if _is_revert(e):
                raise NotFound(f"No record for {fingerprint.short}") from e
            raise self._classify_read_error(e, "getStudentDetails") from e
        except AgentError as e:
            raise self._classify_read_error(e, "getStudentDetails") from e

        if not isinstance(result, (list, tuple)):
            raise NotFound(f"No record for {fingerprint.short}")
        record = DocumentRecord.from_registry_tuple(result)
        if record.is_empty:
            raise NotFound(f"No record for {fingerprint.short}")
        return record

    @staticmethod
    def _classify_read_error(error: AgentError, operation: str) -> RegistryError:
        if isinstance(error, AgentRequestError):
            if error.code in _DECLINED_CODES:
                return RejectedByRegistry(f"{operation} declined: {error.message}")
            return NetworkFailure(f"{operation} failed: {error.message}")
        # Transport errors are transient by definition
        return NetworkFailure(f"{operation} failed: {error}")

    def _wait_for_receipt(self, tx_hash: str) -> dict:
        """Poll for the receipt until it is mined or the timeout elapses."""
        deadline = time.monotonic() + self._receipt_timeout
        while True:
            try:
                receipt = self._agent.get_transaction_receipt(tx_hash)
            except AgentError as e:
                raise NetworkFailure(f"Could not confirm transaction {tx_hash}: {e}") from e
            if receipt is not None:
                return receipt
            if time.monotonic() >= deadline:
                raise NetworkFailure(
                    f"Transaction {tx_hash} not confirmed within {self._receipt_timeout:.0f}s"
                )
            time.sleep(self._receipt_poll_interval)


def _as_int(value: object, default: int | None) -> int | None:
    """Read an int from a JSON-RPC field (``"0x1"``, ``1`` or ``None``)."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        text = str(value)
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError:
        return default


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "0x1"}
    return bool(value)
