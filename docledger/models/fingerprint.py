"""Fingerprint model -- the canonical rendering of a document's content digest."""

from __future__ import annotations

import re
from dataclasses import dataclass

from docledger.utils.constants import (
    FINGERPRINT_DIGEST_SIZE,
    FINGERPRINT_HEX_LENGTH,
    FINGERPRINT_PREFIX,
)

CANONICAL_FINGERPRINT_RE = re.compile(
    rf"^{FINGERPRINT_PREFIX}[0-9a-f]{{{FINGERPRINT_HEX_LENGTH}}}$"
)


@dataclass(frozen=True)
class Fingerprint:
    """A 32-byte digest rendered as ``0x`` + 64 lowercase hex characters.

    Instances are immutable and always canonical; use
    ``docledger.core.hash_normalizer.normalize`` to build one from
    untrusted text.

    Attributes:
        value: The 66-character canonical string.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not CANONICAL_FINGERPRINT_RE.match(self.value):
            raise ValueError(f"Not a canonical fingerprint: {self.value!r}")

    def __str__(self) -> str:
        return self.value

    @property
    def hex_digits(self) -> str:
        """The 64 hex digits without the marker."""
        return self.value[len(FINGERPRINT_PREFIX):]

    @property
    def digest(self) -> bytes:
        """The raw 32-byte digest."""
        return bytes.fromhex(self.hex_digits)

    @property
    def short(self) -> str:
        """Abbreviated form for log lines and tables (``0x1234abcd...9f00``)."""
        return f"{self.value[:10]}...{self.value[-4:]}"

    @classmethod
    def from_digest(cls, digest: bytes) -> Fingerprint:
        """Build a Fingerprint from a raw 32-byte digest."""
        if len(digest) != FINGERPRINT_DIGEST_SIZE:
            raise ValueError(
                f"Digest must be {FINGERPRINT_DIGEST_SIZE} bytes, got {len(digest)}"
            )
        return cls(FINGERPRINT_PREFIX + digest.hex())
