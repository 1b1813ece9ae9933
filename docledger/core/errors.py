"""Exception hierarchy for DocLedger.

Every error carries a short, human-readable ``status_message`` that the CLI
and batch reports show to the user.
"""

from __future__ import annotations


class DocLedgerError(Exception):
    """Base class for all DocLedger errors."""

    status_message = "Operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.status_message)
        self.message = message or self.status_message


# --- Local input errors (never reach the network layer) ---


class InputReadError(DocLedgerError):
    """The source bytes of a document or spreadsheet could not be read."""

    status_message = "Could not read input"


class NormalizationError(DocLedgerError):
    """A raw string could not be coerced into a canonical fingerprint.

    Attributes:
        raw: The string exactly as supplied.
        candidate: The best-effort coerced form, kept so callers can still
            display or report the entry.
    """

    status_message = "Malformed fingerprint"

    def __init__(self, raw: str, candidate: str = "", message: str | None = None) -> None:
        super().__init__(message or f"Malformed fingerprint: {raw!r}")
        self.raw = raw
        self.candidate = candidate


# --- Network / signing-agent negotiation ---


class NetworkError(DocLedgerError):
    """The signing agent could not be bound to the expected ledger."""

    status_message = "Network negotiation failed"


class UnsupportedAgent(NetworkError):
    status_message = "No signing agent available"


class SwitchRejected(NetworkError):
    status_message = "Network switch rejected"


class SwitchFailed(NetworkError):
    status_message = "Network switch failed"


# --- Registry protocol ---


class RegistryError(DocLedgerError):
    """A registry operation failed."""

    status_message = "Registry error"
    retryable = False


class RejectedByRegistry(RegistryError):
    """A write was declined (duplicate, malformed record, or signer declined)."""

    status_message = "Rejected by registry"


class RecordValidationError(RejectedByRegistry):
    """A DocumentRecord failed client-side validation before any network call.

    Attributes:
        errors: Mapping of field name to a validation message.
    """

    status_message = "Invalid record"

    def __init__(self, errors: dict[str, str]) -> None:
        detail = "; ".join(f"{name}: {msg}" for name, msg in errors.items())
        super().__init__(f"Invalid record ({detail})")
        self.errors = dict(errors)


class NetworkFailure(RegistryError):
    """The call could not complete (transport error, timeout). Retryable."""

    status_message = "Network failure"
    retryable = True


class NotFound(RegistryError):
    """No record exists for the fingerprint (treated as Invalid, not fatal)."""

    status_message = "Record not found"
