"""Document record model -- identity attributes bound to a fingerprint."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Sequence

# Registry argument order. Fixed by the contract; never reorder.
RECORD_FIELDS: tuple[str, ...] = (
    "full_name",
    "dob",
    "gender",
    "address",
    "phone",
    "email",
    "aadhaar",
    "pan",
    "passport",
    "driving_license",
    "voter_id",
)

FIELD_LABELS: dict[str, str] = {
    "full_name": "Full name",
    "dob": "Date of birth",
    "gender": "Gender",
    "address": "Address",
    "phone": "Phone",
    "email": "Email",
    "aadhaar": "Aadhaar",
    "pan": "PAN",
    "passport": "Passport",
    "driving_license": "Driving licence",
    "voter_id": "Voter ID",
}


@dataclass(frozen=True)
class DocumentRecord:
    """Identity and metadata registered alongside a fingerprint.

    The registry owns the record; clients only ever hold a read-through copy.
    Empty strings mean "not supplied".

    Attributes:
        full_name: Holder's full name.
        dob: Date of birth as entered (free-form string).
        gender: Gender as entered.
        address: Postal address.
        phone: 10-digit mobile number.
        email: Contact email.
        aadhaar: 12-digit Aadhaar number (optionally grouped 4-4-4).
        pan: PAN code (5 letters, 4 digits, 1 letter).
        passport: Passport number (1 letter, 7 digits).
        driving_license: Driving licence number.
        voter_id: Voter ID (3 letters, 7 digits).
    """

    full_name: str = ""
    dob: str = ""
    gender: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    aadhaar: str = ""
    pan: str = ""
    passport: str = ""
    driving_license: str = ""
    voter_id: str = ""

    def as_registry_args(self) -> list[str]:
        """Return the field values in registry argument order."""
        return [getattr(self, name) for name in RECORD_FIELDS]

    @classmethod
    def from_registry_tuple(cls, values: Sequence[object]) -> DocumentRecord:
        """Build a record from the ordered tuple returned by the registry.

        Missing trailing values and ``None`` are read as empty strings.
        """
        padded = list(values)[: len(RECORD_FIELDS)]
        padded += [""] * (len(RECORD_FIELDS) - len(padded))
        return cls(*("" if v is None else str(v) for v in padded))

    @classmethod
    def from_dict(cls, data: dict) -> DocumentRecord:
        """Create a record from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: ("" if v is None else str(v)) for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    def with_updates(self, **changes: str) -> DocumentRecord:
        return replace(self, **changes)

    @property
    def is_empty(self) -> bool:
        """True when no field carries a value (what a missing record reads as)."""
        return not any(v.strip() for v in self.as_registry_args())

    @property
    def display_label(self) -> str:
        """Human-readable label for tables and recent-activity entries."""
        return self.full_name or "(Unnamed)"
