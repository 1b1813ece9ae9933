"""Content fingerprinting -- SHA-256 over document bytes."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO, Union

from docledger.core.errors import InputReadError
from docledger.models.fingerprint import Fingerprint
from docledger.utils.constants import HASH_CHUNK_SIZE
from docledger.utils.logger import get_logger

logger = get_logger("core.hash_engine")

HashSource = Union[bytes, bytearray, memoryview, BinaryIO, Path, str]


def compute_fingerprint(source: HashSource, chunk_size: int = HASH_CHUNK_SIZE) -> Fingerprint:
    """Compute the fingerprint of a document.

    Pure function of the input bytes. Streams files and file-like objects in
    ``chunk_size`` pieces so large documents are never buffered whole.

    Args:
        source: Raw bytes, a readable binary file object, or a path
            (``Path`` or ``str``) to a file on disk.
        chunk_size: Bytes read per chunk when streaming.

    Returns:
        The document's Fingerprint.

    Raises:
        InputReadError: If the source cannot be read in full.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return Fingerprint.from_digest(hashlib.sha256(source).digest())

    if isinstance(source, (str, Path)):
        return fingerprint_file(source, chunk_size=chunk_size)

    if not hasattr(source, "read"):
        raise InputReadError(f"Unsupported input type: {type(source).__name__}")

    return _hash_stream(source, chunk_size, name=getattr(source, "name", "<stream>"))


def fingerprint_file(path: Path | str, chunk_size: int = HASH_CHUNK_SIZE) -> Fingerprint:
    """Compute the fingerprint of a file on disk.

    Raises:
        InputReadError: If the file is missing or cannot be read.
    """
    path = Path(path)
    if not path.is_file():
        raise InputReadError(f"File not found: {path}")

    try:
        with open(path, "rb") as handle:
            fingerprint = _hash_stream(handle, chunk_size, name=path.name)
    except OSError as e:
        logger.error("Could not read %s: %s", path, e)
        raise InputReadError(f"Could not read {path.name}: {e}") from e

    logger.debug("Fingerprinted %s -> %s", path.name, fingerprint.short)
    return fingerprint


def _hash_stream(stream: BinaryIO, chunk_size: int, name: str) -> Fingerprint:
    hasher = hashlib.sha256()
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            if isinstance(chunk, str):
                raise InputReadError(f"{name} was opened in text mode; binary input is required")
            hasher.update(chunk)
    except OSError as e:
        raise InputReadError(f"Could not read {name}: {e}") from e
    return Fingerprint.from_digest(hasher.digest())
