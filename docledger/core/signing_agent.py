"""Signing agent capability.

The signing agent is the wallet that holds the user's key and talks to the
ledger on their behalf. It is always injected explicitly into
``NetworkSelector`` and ``RegistryClient``; nothing looks it up from global
state.

``JsonRpcSigningAgent`` speaks JSON-RPC 2.0 over HTTP to a wallet bridge
using the EIP-1193 method names, plus two bridge methods for contract
access (``registry_call`` and ``registry_sendTransaction``).
"""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from typing import Any

import requests

from docledger.utils.constants import API_TIMEOUT_SECONDS, APP_NAME, APP_VERSION
from docledger.utils.logger import get_logger

logger = get_logger("core.signing_agent")


class AgentError(Exception):
    """Base class for failures reported by a signing agent."""


class AgentRequestError(AgentError):
    """The agent answered with an error (EIP-1193 / JSON-RPC error object).

    Attributes:
        code: Numeric error code (4001 = user rejected, 4902 = unknown chain).
        data: Optional extra payload from the agent.
    """

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.data = data


class AgentTransportError(AgentError):
    """The request never produced an answer (connection, timeout, bad payload)."""


class SigningAgent(ABC):
    """Abstract signing agent. Every method may block on network I/O or on
    the user confirming a prompt."""

    @abstractmethod
    def request_accounts(self) -> list[str]:
        """Ask the agent to expose (and unlock) the user's accounts."""

    @abstractmethod
    def chain_id(self) -> str:
        """Return the chain the agent is currently attached to (``0x`` hex)."""

    @abstractmethod
    def switch_chain(self, chain_id: str) -> None:
        """Attach the agent to ``chain_id``. Raises code 4902 if unknown."""

    @abstractmethod
    def add_chain(self, chain_id: str, chain_name: str, rpc_url: str) -> None:
        """Register a chain the agent does not know yet."""

    @abstractmethod
    def call(self, address: str, function: str, args: list[Any]) -> Any:
        """Run a read-only contract function and return its decoded result."""

    @abstractmethod
    def send_transaction(self, address: str, function: str, args: list[Any]) -> str:
        """Sign and submit a contract transaction; return its hash."""

    @abstractmethod
    def get_transaction_receipt(self, transaction_hash: str) -> dict | None:
        """Return the receipt of a mined transaction, or None while pending."""


class JsonRpcSigningAgent(SigningAgent):
    """Signing agent reached over HTTP JSON-RPC 2.0.

    Typical usage::

        agent = JsonRpcSigningAgent("http://127.0.0.1:8545")
        agent.request_accounts()
    """

    def __init__(
        self,
        url: str,
        timeout: float = API_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the agent client.

        Args:
            url: JSON-RPC endpoint of the wallet bridge.
            timeout: Seconds before a request times out.
            session: Optional ``requests.Session`` (injected in tests).
        """
        self._url = url
        self._timeout = timeout
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()
        # Persistent HTTP session -- reuses the connection across calls
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": f"{APP_NAME}/{APP_VERSION}",
            "Content-Type": "application/json",
        })

    @property
    def url(self) -> str:
        return self._url

    # --- EIP-1193 wallet methods ---

    def request_accounts(self) -> list[str]:
        return list(self._request("eth_requestAccounts") or [])

    def chain_id(self) -> str:
        return str(self._request("eth_chainId"))

    def switch_chain(self, chain_id: str) -> None:
        self._request("wallet_switchEthereumChain", [{"chainId": chain_id}])

    def add_chain(self, chain_id: str, chain_name: str, rpc_url: str) -> None:
        self._request(
            "wallet_addEthereumChain",
            [{"chainId": chain_id, "chainName": chain_name, "rpcUrls": [rpc_url]}],
        )

    # --- Contract access ---

    def call(self, address: str, function: str, args: list[Any]) -> Any:
        return self._request(
            "registry_call",
            [{"to": address, "function": function, "args": list(args)}],
        )

    def send_transaction(self, address: str, function: str, args: list[Any]) -> str:
        result = self._request(
            "registry_sendTransaction",
            [{"to": address, "function": function, "args": list(args)}],
        )
        if not isinstance(result, str) or not result:
            raise AgentTransportError(f"Agent returned no transaction hash for {function}")
        return result

    def get_transaction_receipt(self, transaction_hash: str) -> dict | None:
        result = self._request("eth_getTransactionReceipt", [transaction_hash])
        return result if isinstance(result, dict) else None

    # --- Transport ---

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def _request(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one JSON-RPC request and return its ``result``.

        Raises:
            AgentRequestError: The agent answered with an error object.
            AgentTransportError: No usable answer was received.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params or [],
        }
        logger.debug("JSON-RPC -> %s", method)

        try:
            resp = self._session.post(self._url, json=payload, timeout=self._timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as e:
            raise AgentTransportError(f"{method} request failed: {e}") from e
        except ValueError as e:
            raise AgentTransportError(f"{method} returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise AgentTransportError(f"{method} returned an unexpected payload")

        error = body.get("error")
        if error:
            code = error.get("code", 0) if isinstance(error, dict) else 0
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            data = error.get("data") if isinstance(error, dict) else None
            logger.debug("JSON-RPC <- %s error %s: %s", method, code, message)
            raise AgentRequestError(int(code), str(message), data)

        return body.get("result")
