"""Typed configuration model for DocLedger.

All configuration values have explicit types, defaults, and documentation.
Loaded from ``config/config.yaml`` (see ``docledger.main.load_config``).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from docledger.utils.constants import (
    API_MAX_RETRIES,
    API_RETRY_BACKOFF_SECONDS,
    API_TIMEOUT_SECONDS,
    DEFAULT_AGENT_URL,
    DEFAULT_CHAIN_ID,
    DEFAULT_CHAIN_NAME,
    DEFAULT_CONTRACT_ADDRESS,
    DEFAULT_DB_FILENAME,
    DEFAULT_MAX_CONCURRENT_VERIFICATIONS,
    DEFAULT_RPC_URL,
    DEFAULT_VERIFY_BASE_URL,
    RECEIPT_POLL_INTERVAL_SECONDS,
    RECEIPT_TIMEOUT_SECONDS,
    RECENT_ACTIVITY_CAPACITY,
)


@dataclass
class AppConfig:
    """Strongly-typed configuration for DocLedger.

    Attributes:
        agent_url: JSON-RPC endpoint of the signing agent (wallet bridge).
        rpc_url: Public RPC URL of the ledger, offered to the agent when it
            does not know the expected chain yet.
        chain_id: Expected chain identity as a ``0x`` hex string.
        chain_name: Display name supplied when registering the chain.
        contract_address: Address of the registry contract.
        verify_base_url: Base URL used to build ``/verify?hash=`` links.
        max_concurrent_verifications: Registry checks in flight during a batch.
        request_timeout: Seconds before an agent HTTP request times out.
        max_retries: Attempts for read-only registry calls.
        retry_backoff: Base seconds between retries (multiplied by attempt).
        receipt_timeout: Max seconds to wait for an add to be mined.
        receipt_poll_interval: Seconds between receipt polls.
        db_path: SQLite database for recent activity and run history.
        recent_capacity: Number of recent adds remembered locally.
        report_dir: Directory for batch reports (empty = no report).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file (None = console only).
    """

    # --- Ledger ---
    agent_url: str = DEFAULT_AGENT_URL
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: str = DEFAULT_CHAIN_ID
    chain_name: str = DEFAULT_CHAIN_NAME
    contract_address: str = DEFAULT_CONTRACT_ADDRESS

    # --- Links ---
    verify_base_url: str = DEFAULT_VERIFY_BASE_URL

    # --- Processing ---
    max_concurrent_verifications: int = DEFAULT_MAX_CONCURRENT_VERIFICATIONS

    # --- Retry / Timeout ---
    request_timeout: float = API_TIMEOUT_SECONDS
    max_retries: int = API_MAX_RETRIES
    retry_backoff: float = API_RETRY_BACKOFF_SECONDS
    receipt_timeout: float = RECEIPT_TIMEOUT_SECONDS
    receipt_poll_interval: float = RECEIPT_POLL_INTERVAL_SECONDS

    # --- Local Storage ---
    db_path: str = DEFAULT_DB_FILENAME
    recent_capacity: int = RECENT_ACTIVITY_CAPACITY
    report_dir: str = ""

    # --- Logging ---
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> AppConfig:
        """Create an AppConfig from a raw dictionary (e.g., from YAML).

        Unknown keys are ignored so YAML files with future keys don't break
        older code.

        Args:
            data: Dictionary of configuration values.

        Returns:
            Populated AppConfig instance.
        """
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known_fields and v is not None}
        return cls(**filtered)

    def to_dict(self) -> dict:
        """Serialize the config to a dictionary."""
        from dataclasses import asdict
        return asdict(self)

    @property
    def db_path_resolved(self) -> Path:
        return Path(self.db_path).expanduser().resolve()

    @property
    def report_dir_resolved(self) -> Path | None:
        """Return report_dir as a resolved Path, or None if not set."""
        if not self.report_dir:
            return None
        return Path(self.report_dir).expanduser().resolve()
