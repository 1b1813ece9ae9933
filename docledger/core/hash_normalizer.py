"""Fingerprint string normalization.

Users paste fingerprints from many places. Spreadsheets in particular turn
long hex-like values into decimal or scientific notation and drop leading
zeros. ``normalize`` reconciles these encodings into the canonical
``0x`` + 64 lowercase hex form:

1. ``0x`` + 64 hex digits -> lowercased
2. 64 bare hex digits   -> marker prepended
3. decimal / scientific -> parsed as an integer, rendered as 64 hex digits

Anything else raises ``NormalizationError``, which keeps the raw input and a
best-effort candidate so the caller can still report the entry.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from docledger.core.errors import NormalizationError
from docledger.models.fingerprint import Fingerprint
from docledger.utils.constants import (
    FINGERPRINT_HEX_LENGTH,
    FINGERPRINT_PREFIX,
    MAX_FINGERPRINT_VALUE,
)

_PREFIXED_HEX_RE = re.compile(rf"^0[xX]([0-9a-fA-F]{{{FINGERPRINT_HEX_LENGTH}}})$")
_BARE_HEX_RE = re.compile(rf"^[0-9a-fA-F]{{{FINGERPRINT_HEX_LENGTH}}}$")
_NUMERIC_RE = re.compile(r"^\+?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_MANUAL_SEPARATOR_RE = re.compile(r"[\s,]+")

# 2**256 has 78 decimal digits, so its adjusted exponent is 77.
_MAX_ADJUSTED_EXPONENT = len(str(MAX_FINGERPRINT_VALUE)) - 1


def normalize(raw: object) -> Fingerprint:
    """Coerce a raw fingerprint string into canonical form.

    Args:
        raw: The value as typed, pasted, scanned or read from a spreadsheet
            cell. Non-string values are converted with ``str()``; ``None``
            is treated as empty.

    Returns:
        The canonical Fingerprint.

    Raises:
        NormalizationError: If no reconciliation rule applies.
    """
    text = "" if raw is None else str(raw)
    value = text.strip()

    if not value:
        raise NormalizationError(text, "", "Empty fingerprint")

    match = _PREFIXED_HEX_RE.match(value)
    if match:
        return Fingerprint(FINGERPRINT_PREFIX + match.group(1).lower())

    if _BARE_HEX_RE.match(value):
        return Fingerprint(FINGERPRINT_PREFIX + value.lower())

    if _NUMERIC_RE.match(value):
        number = _parse_integer(value)
        if number is not None:
            return Fingerprint(FINGERPRINT_PREFIX + format(number, "x").rjust(FINGERPRINT_HEX_LENGTH, "0"))
        raise NormalizationError(
            text, value, f"Numeric value is not a 256-bit integer: {value!r}"
        )

    raise NormalizationError(text, value)


def clean(raw: object) -> str:
    """Best-effort coercion that never raises.

    Returns the canonical string when ``normalize`` succeeds, otherwise the
    trimmed input (what the user should see next to an error).
    """
    try:
        return normalize(raw).value
    except NormalizationError as e:
        return e.candidate


def split_manual_input(text: str) -> list[str]:
    """Split a manually typed or pasted list on whitespace and commas."""
    if not text:
        return []
    return [token for token in _MANUAL_SEPARATOR_RE.split(text) if token]


def _parse_integer(value: str) -> int | None:
    """Parse a decimal or scientific-notation string as an exact integer.

    Returns None when the value is fractional or outside the 256-bit range.
    """
    try:
        number = Decimal(value)
    except InvalidOperation:
        return None

    if not number.is_finite() or number.is_signed():
        return None
    if number != 0 and number.adjusted() > _MAX_ADJUSTED_EXPONENT:
        return None
    if number != number.to_integral_value():
        return None

    result = int(number)
    if result >= MAX_FINGERPRINT_VALUE:
        return None
    return result
