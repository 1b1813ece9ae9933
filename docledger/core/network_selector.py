"""Network selection -- binds the signing agent to the expected ledger."""

from __future__ import annotations

import threading
from concurrent.futures import Future

from docledger.core.errors import (
    NetworkError,
    SwitchFailed,
    SwitchRejected,
    UnsupportedAgent,
)
from docledger.core.signing_agent import AgentError, AgentRequestError, SigningAgent
from docledger.utils.constants import (
    AGENT_UNAUTHORIZED,
    AGENT_UNRECOGNIZED_CHAIN,
    AGENT_USER_REJECTED,
    DEFAULT_CHAIN_ID,
    DEFAULT_CHAIN_NAME,
    DEFAULT_RPC_URL,
)
from docledger.utils.logger import get_logger

logger = get_logger("core.network_selector")

_DECLINED_CODES = frozenset({AGENT_USER_REJECTED, AGENT_UNAUTHORIZED})


def _same_chain(a: str, b: str) -> bool:
    """Compare chain ids numerically (``0x7A69`` == ``0x7a69``)."""
    try:
        return int(str(a), 16) == int(str(b), 16)
    except (TypeError, ValueError):
        return str(a).lower() == str(b).lower()


class NetworkSelector:
    """Ensures the signing agent is attached to the expected chain.

    ``ensure_expected_network`` is idempotent and safe to call before every
    registry operation, from any number of threads. While one negotiation
    is in flight, other callers wait for its result rather than issuing a
    duplicate switch request.
    """

    def __init__(
        self,
        agent: SigningAgent | None,
        chain_id: str = DEFAULT_CHAIN_ID,
        chain_name: str = DEFAULT_CHAIN_NAME,
        rpc_url: str = DEFAULT_RPC_URL,
    ) -> None:
        """Initialize the selector.

        Args:
            agent: The injected signing agent, or None when none is available.
            chain_id: Expected chain identity (``0x`` hex).
            chain_name: Display name used when registering the chain.
            rpc_url: Endpoint URL used when registering the chain.
        """
        self._agent = agent
        self._chain_id = chain_id
        self._chain_name = chain_name
        self._rpc_url = rpc_url
        self._lock = threading.Lock()
        self._in_flight: Future[None] | None = None

    @property
    def expected_chain_id(self) -> str:
        return self._chain_id

    def ensure_expected_network(self) -> None:
        """Make sure the agent is on the expected chain, switching if needed.

        Raises:
            UnsupportedAgent: No signing agent is available.
            SwitchRejected: The user or agent declined.
            SwitchFailed: Any other negotiation failure.
        """
        with self._lock:
            pending = self._in_flight
            if pending is None:
                pending = Future()
                self._in_flight = pending
                owner = True
            else:
                owner = False

        if not owner:
            logger.debug("Network negotiation in progress; waiting for it")
            pending.result()
            return

        try:
            self._negotiate()
        except NetworkError as e:
            pending.set_exception(e)
            raise
        except Exception as e:
            failure = SwitchFailed(f"Network negotiation failed: {e}")
            pending.set_exception(failure)
            raise failure from e
        except BaseException as e:
            # Waiters get a normal error; the interrupt stays with this thread.
            pending.set_exception(SwitchFailed(f"Network negotiation interrupted: {e!r}"))
            raise
        else:
            pending.set_result(None)
        finally:
            with self._lock:
                self._in_flight = None

    def _negotiate(self) -> None:
        agent = self._agent
        if agent is None:
            raise UnsupportedAgent("No signing agent available. Install or start a wallet.")

        try:
            agent.request_accounts()
            current = agent.chain_id()
        except AgentRequestError as e:
            if e.code in _DECLINED_CODES:
                raise SwitchRejected(f"Account access declined: {e.message}") from e
            raise SwitchFailed(f"Could not read the current network: {e.message}") from e
        except AgentError as e:
            raise SwitchFailed(f"Could not reach the signing agent: {e}") from e

        if _same_chain(current, self._chain_id):
            return

        logger.info("Agent is on chain %s; switching to %s", current, self._chain_id)
        self._switch()

        try:
            current = agent.chain_id()
        except AgentError as e:
            raise SwitchFailed(f"Could not confirm the network switch: {e}") from e
        if not _same_chain(current, self._chain_id):
            raise SwitchFailed(
                f"Agent is still on chain {current} after switching to {self._chain_id}"
            )
        logger.info("Switched to chain %s (%s)", self._chain_id, self._chain_name)

    def _switch(self) -> None:
        agent = self._agent
        assert agent is not None
        try:
            agent.switch_chain(self._chain_id)
            return
        except AgentRequestError as e:
            if e.code in _DECLINED_CODES:
                raise SwitchRejected(f"Network switch declined: {e.message}") from e
            if e.code != AGENT_UNRECOGNIZED_CHAIN:
                raise SwitchFailed(f"Network switch failed: {e.message}") from e
        except AgentError as e:
            raise SwitchFailed(f"Network switch failed: {e}") from e

        # The agent does not know the chain yet: register it, then switch.
        logger.info("Registering chain %s (%s) with the agent", self._chain_id, self._chain_name)
        try:
            agent.add_chain(self._chain_id, self._chain_name, self._rpc_url)
            agent.switch_chain(self._chain_id)
        except AgentRequestError as e:
            if e.code in _DECLINED_CODES:
                raise SwitchRejected(f"Adding network declined: {e.message}") from e
            raise SwitchFailed(f"Adding network failed: {e.message}") from e
        except AgentError as e:
            raise SwitchFailed(f"Adding network failed: {e}") from e
