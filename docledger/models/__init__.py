"""Data models for DocLedger."""

from docledger.models.fingerprint import Fingerprint
from docledger.models.document_record import DocumentRecord, RECORD_FIELDS
from docledger.models.verification import (
    AggregateStatus,
    BatchEntry,
    BatchJob,
    BatchReport,
    BatchStats,
    VerificationOutcome,
    VerificationStatus,
)
from docledger.models.activity import ReceiptHandle, RecentActivityEntry
from docledger.models.config import AppConfig

__all__ = [
    "Fingerprint",
    "DocumentRecord",
    "RECORD_FIELDS",
    "AggregateStatus",
    "BatchEntry",
    "BatchJob",
    "BatchReport",
    "BatchStats",
    "VerificationOutcome",
    "VerificationStatus",
    "ReceiptHandle",
    "RecentActivityEntry",
    "AppConfig",
]
