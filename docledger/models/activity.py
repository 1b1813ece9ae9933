"""Local-only models: recent-activity entries and registry receipts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RecentActivityEntry:
    """A successful add, remembered locally for user recall.

    Never sourced from or written back to the registry.
    """

    fingerprint: str
    label: str
    created_at: datetime


@dataclass(frozen=True)
class ReceiptHandle:
    """Confirmation of a mined ``addDocumentHash`` transaction.

    Attributes:
        fingerprint: The registered fingerprint.
        transaction_hash: Hash of the confirmed transaction.
        block_number: Block the transaction was included in, if reported.
        status: Receipt status (1 = success).
    """

    fingerprint: str
    transaction_hash: str
    block_number: int | None = None
    status: int = 1
