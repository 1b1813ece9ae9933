"""Client-side validation of DocumentRecord fields before registration."""

from __future__ import annotations

import re

from docledger.core.errors import RecordValidationError
from docledger.models.document_record import DocumentRecord

RE_PHONE = re.compile(r"^[6-9][0-9]{9}$")
RE_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
RE_AADHAAR = re.compile(r"^[2-9][0-9]{3}\s?[0-9]{4}\s?[0-9]{4}$")
RE_PAN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
RE_PASSPORT = re.compile(r"^[A-Z][0-9]{7}$")
RE_DRIVING_LICENSE = re.compile(r"^[A-Z]{2}[-\s]?[0-9]{2}[-\s]?(?:19|20)[0-9]{2}[-\s]?[0-9]{7}$")
RE_VOTER_ID = re.compile(r"^[A-Z]{3}[0-9]{7}$")

REQUIRED_FIELDS: dict[str, str] = {
    "full_name": "Full name required",
    "dob": "Date of birth required",
    "phone": "Phone required",
    "email": "Email required",
}

# field -> (pattern, message). Codes are matched upper-cased.
FIELD_PATTERNS: dict[str, tuple[re.Pattern[str], str]] = {
    "phone": (RE_PHONE, "Invalid phone"),
    "email": (RE_EMAIL, "Invalid email"),
    "aadhaar": (RE_AADHAAR, "Invalid Aadhaar"),
    "pan": (RE_PAN, "Invalid PAN"),
    "passport": (RE_PASSPORT, "Invalid passport"),
    "driving_license": (RE_DRIVING_LICENSE, "Invalid driving licence"),
    "voter_id": (RE_VOTER_ID, "Invalid voter ID"),
}

_UPPERCASE_FIELDS = frozenset({"pan", "passport", "driving_license", "voter_id"})


def clean_record(record: DocumentRecord) -> DocumentRecord:
    """Return a copy with every field trimmed and ID codes upper-cased."""
    changes: dict[str, str] = {}
    for name, value in record.to_dict().items():
        cleaned = value.strip()
        if name in _UPPERCASE_FIELDS:
            cleaned = cleaned.upper()
        changes[name] = cleaned
    return record.with_updates(**changes)


def validate_record(record: DocumentRecord) -> dict[str, str]:
    """Validate a record.

    Required fields must be non-empty; every patterned field that is
    non-empty must match its pattern.

    Returns:
        Mapping of field name to error message. Empty if the record is valid.
    """
    cleaned = clean_record(record)
    errors: dict[str, str] = {}

    for name, message in REQUIRED_FIELDS.items():
        if not getattr(cleaned, name):
            errors[name] = message

    for name, (pattern, message) in FIELD_PATTERNS.items():
        if name in errors:
            continue
        value = getattr(cleaned, name)
        if value and not pattern.match(value):
            errors[name] = message

    return errors


def ensure_valid(record: DocumentRecord) -> DocumentRecord:
    """Validate and return the cleaned record.

    Raises:
        RecordValidationError: If any field is invalid.
    """
    errors = validate_record(record)
    if errors:
        raise RecordValidationError(errors)
    return clean_record(record)
