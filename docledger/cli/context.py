from __future__ import annotations

from dataclasses import dataclass, field

from rich.console import Console

from docledger.core.batch_verifier import BatchVerifier
from docledger.core.network_selector import NetworkSelector
from docledger.core.record_cache import RecordCache
from docledger.core.registry_client import RegistryClient
from docledger.core.signing_agent import JsonRpcSigningAgent, SigningAgent
from docledger.db.database import Database
from docledger.models.config import AppConfig


@dataclass
class CLIContext:
    """Shared state for one CLI invocation. Services are built on first use."""

    config: AppConfig
    console: Console
    agent: SigningAgent | None = None
    _client: RegistryClient | None = field(default=None, repr=False)
    _database: Database | None = field(default=None, repr=False)

    def signing_agent(self) -> SigningAgent:
        if self.agent is None:
            self.agent = JsonRpcSigningAgent(
                self.config.agent_url,
                timeout=self.config.request_timeout,
            )
        return self.agent

    def registry_client(self) -> RegistryClient:
        if self._client is None:
            agent = self.signing_agent()
            selector = NetworkSelector(
                agent,
                chain_id=self.config.chain_id,
                chain_name=self.config.chain_name,
                rpc_url=self.config.rpc_url,
            )
            self._client = RegistryClient(
                agent,
                selector,
                contract_address=self.config.contract_address,
                max_retries=self.config.max_retries,
                retry_backoff=self.config.retry_backoff,
                receipt_timeout=self.config.receipt_timeout,
                receipt_poll_interval=self.config.receipt_poll_interval,
            )
        return self._client

    def batch_verifier(self, max_workers: int | None = None) -> BatchVerifier:
        return BatchVerifier(
            self.registry_client(),
            max_workers=max_workers or self.config.max_concurrent_verifications,
        )

    def database(self) -> Database:
        if self._database is None:
            self._database = Database(self.config.db_path_resolved)
        return self._database

    def record_cache(self) -> RecordCache:
        return RecordCache(self.database(), capacity=self.config.recent_capacity)

    def close(self) -> None:
        if self._database is not None:
            self._database.close()
