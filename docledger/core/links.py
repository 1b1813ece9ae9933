"""Verification links -- the ``<base-url>/verify?hash=<fingerprint>`` payload
encoded in QR codes."""

from __future__ import annotations

from urllib.parse import parse_qs, urlencode, urlsplit

from docledger.core.errors import NormalizationError
from docledger.models.fingerprint import Fingerprint

VERIFY_PATH = "/verify"
HASH_PARAM = "hash"


def build_verify_link(base_url: str, fingerprint: Fingerprint | str) -> str:
    """Build the verification link for a registered fingerprint."""
    base = base_url.rstrip("/")
    return f"{base}{VERIFY_PATH}?{urlencode({HASH_PARAM: str(fingerprint)})}"


def parse_verify_link(url: str) -> str:
    """Extract the raw ``hash`` query value from a verification link.

    The value is returned unchanged; callers run it through
    ``hash_normalizer.normalize`` before handing it to the registry.

    Raises:
        NormalizationError: If the link carries no ``hash`` parameter.
    """
    query = parse_qs(urlsplit(url.strip()).query)
    values = query.get(HASH_PARAM) or []
    if not values or not values[0].strip():
        raise NormalizationError(url, "", "Link has no hash parameter")
    return values[0]
