"""DocLedger -- configuration loading, validation, and entry point."""

from __future__ import annotations

import re
import sys
from pathlib import Path
from urllib.parse import urlsplit

import yaml

from docledger.core.errors import InputReadError
from docledger.utils.constants import (
    API_MAX_RETRIES,
    API_RETRY_BACKOFF_SECONDS,
    API_TIMEOUT_SECONDS,
    DEFAULT_AGENT_URL,
    DEFAULT_CHAIN_ID,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONTRACT_ADDRESS,
    DEFAULT_MAX_CONCURRENT_VERIFICATIONS,
    DEFAULT_RPC_URL,
    DEFAULT_VERIFY_BASE_URL,
    MAX_CONCURRENT_VERIFICATIONS_LIMIT,
    RECEIPT_TIMEOUT_SECONDS,
    RECENT_ACTIVITY_CAPACITY,
)

_CHAIN_ID_RE = re.compile(r"^0x[0-9a-fA-F]+$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

_URL_DEFAULTS = {
    "agent_url": DEFAULT_AGENT_URL,
    "rpc_url": DEFAULT_RPC_URL,
    "verify_base_url": DEFAULT_VERIFY_BASE_URL,
}

# key -> (default, minimum, allow equality with minimum)
_POSITIVE_NUMBERS = {
    "request_timeout": (API_TIMEOUT_SECONDS, 0, False),
    "receipt_timeout": (RECEIPT_TIMEOUT_SECONDS, 0, False),
    "retry_backoff": (API_RETRY_BACKOFF_SECONDS, 0, True),
}

_POSITIVE_INTS = {
    "max_retries": API_MAX_RETRIES,
    "recent_capacity": RECENT_ACTIVITY_CAPACITY,
}


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: dict) -> list[str]:
    """Validate configuration values and return a list of warnings.

    Invalid values are replaced in ``config`` with their defaults (or
    clamped), so the dict can be passed to ``AppConfig.from_dict`` afterwards.

    Checks:
    - chain_id is a ``0x`` hex string (integers are converted)
    - contract_address is a 20-byte hex address
    - URLs use http or https
    - worker count, retries, timeouts and capacity are in range

    Args:
        config: Configuration dictionary.

    Returns:
        List of human-readable warning strings. Empty if all checks pass.
    """
    warnings: list[str] = []

    chain_id = config.get("chain_id", DEFAULT_CHAIN_ID)
    if isinstance(chain_id, int) and not isinstance(chain_id, bool) and chain_id > 0:
        config["chain_id"] = hex(chain_id)
    elif not isinstance(chain_id, str) or not _CHAIN_ID_RE.match(chain_id):
        warnings.append(
            f"chain_id must be a 0x-prefixed hex string, got {chain_id!r}. "
            f"Using default ({DEFAULT_CHAIN_ID})."
        )
        config["chain_id"] = DEFAULT_CHAIN_ID

    address = config.get("contract_address", DEFAULT_CONTRACT_ADDRESS)
    if not isinstance(address, str) or not _ADDRESS_RE.match(address):
        warnings.append(
            f"contract_address must be 0x followed by 40 hex characters, got {address!r}. "
            f"Using default ({DEFAULT_CONTRACT_ADDRESS})."
        )
        config["contract_address"] = DEFAULT_CONTRACT_ADDRESS

    for key, default in _URL_DEFAULTS.items():
        url = config.get(key, default)
        scheme = urlsplit(url).scheme if isinstance(url, str) else ""
        if scheme not in ("http", "https"):
            warnings.append(f"{key} must be an http(s) URL, got {url!r}. Using default ({default}).")
            config[key] = default

    workers = config.get("max_concurrent_verifications", DEFAULT_MAX_CONCURRENT_VERIFICATIONS)
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        warnings.append(
            f"max_concurrent_verifications must be a positive integer, got {workers!r}. "
            f"Using default ({DEFAULT_MAX_CONCURRENT_VERIFICATIONS})."
        )
        config["max_concurrent_verifications"] = DEFAULT_MAX_CONCURRENT_VERIFICATIONS
    elif workers > MAX_CONCURRENT_VERIFICATIONS_LIMIT:
        warnings.append(
            f"max_concurrent_verifications ({workers}) exceeds {MAX_CONCURRENT_VERIFICATIONS_LIMIT}. "
            f"Clamping to bound load on the registry."
        )
        config["max_concurrent_verifications"] = MAX_CONCURRENT_VERIFICATIONS_LIMIT

    for key, (default, minimum, inclusive) in _POSITIVE_NUMBERS.items():
        value = config.get(key, default)
        ok = _is_number(value) and (value >= minimum if inclusive else value > minimum)
        if not ok:
            warnings.append(f"{key} must be a number > {minimum}, got {value!r}. Using default ({default}).")
            config[key] = default

    for key, default in _POSITIVE_INTS.items():
        value = config.get(key, default)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            warnings.append(f"{key} must be a positive integer, got {value!r}. Using default ({default}).")
            config[key] = default

    return warnings


def default_config_path() -> Path:
    return Path.cwd() / "config" / DEFAULT_CONFIG_FILENAME


def load_config(path: Path | str | None = None) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Explicit config file. If None, ``config/config.yaml`` under the
            working directory is used when it exists.

    Returns:
        Configuration dictionary (suitable for ``AppConfig.from_dict()``).

    Raises:
        InputReadError: An explicit path is missing, or the YAML is invalid.
    """
    if path is None:
        config_path = default_config_path()
        if not config_path.exists():
            return {}
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise InputReadError(f"Config file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise InputReadError(f"Could not read config {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise InputReadError(f"Config {config_path} must be a mapping of keys to values")
    return config


def main() -> None:
    """Console entry point."""
    from docledger.cli.main import main as cli_main

    sys.exit(cli_main())


if __name__ == "__main__":
    main()
