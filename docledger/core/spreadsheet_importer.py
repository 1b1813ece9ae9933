"""Spreadsheet import -- label + fingerprint rows for batch verification.

Format: the first row is a header and is discarded. Column 0 holds the label
(e.g. the holder's name), column 1 the raw fingerprint. Empty or missing
cells read as ``""``; they are never dropped, so a row with a name but no
hash still produces an entry (which the batch reports as an error).
"""

from __future__ import annotations

import csv
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import openpyxl

from docledger.core.errors import InputReadError
from docledger.models.verification import BatchJob
from docledger.utils.constants import (
    LEGACY_SPREADSHEET_EXTENSIONS,
    SPREADSHEET_EXTENSIONS,
    SPREADSHEET_HASH_COLUMN,
    SPREADSHEET_LABEL_COLUMN,
)
from docledger.utils.logger import get_logger

logger = get_logger("core.spreadsheet_importer")


def load_rows(path: Path | str) -> list[tuple[str, str]]:
    """Read ``(label, raw_fingerprint)`` rows from a spreadsheet.

    Supports ``.xlsx`` / ``.xlsm`` (first worksheet) and ``.csv``.

    Args:
        path: Path to the spreadsheet.

    Returns:
        Rows in sheet order, header excluded, fully blank rows skipped.

    Raises:
        InputReadError: Missing file, unsupported extension, or unreadable content.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in LEGACY_SPREADSHEET_EXTENSIONS:
        raise InputReadError(
            f"Legacy '{suffix}' workbooks are not supported. "
            "Re-save the file as .xlsx or .csv and try again."
        )
    if suffix not in SPREADSHEET_EXTENSIONS:
        raise InputReadError(
            f"Unsupported spreadsheet type '{suffix or path.name}'. "
            f"Use one of: {', '.join(sorted(SPREADSHEET_EXTENSIONS))}"
        )
    if not path.is_file():
        raise InputReadError(f"Spreadsheet not found: {path}")

    if suffix == ".csv":
        raw_rows = _read_csv(path)
    else:
        raw_rows = _read_workbook(path)

    rows: list[tuple[str, str]] = []
    for row in raw_rows[1:]:  # first row is the header
        label = _cell_text(row, SPREADSHEET_LABEL_COLUMN)
        raw_hash = _cell_text(row, SPREADSHEET_HASH_COLUMN)
        if not label and not raw_hash:
            continue
        rows.append((label, raw_hash))

    logger.info("Loaded %d row(s) from %s", len(rows), path.name)
    return rows


def load_batch_job(path: Path | str) -> BatchJob:
    """Read a spreadsheet into a labeled BatchJob."""
    path = Path(path)
    return BatchJob.from_rows(load_rows(path), source=str(path))


def _read_csv(path: Path) -> list[list[object]]:
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return [list(row) for row in csv.reader(handle)]
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise InputReadError(f"Could not read {path.name}: {e}") from e


def _read_workbook(path: Path) -> list[list[object]]:
    try:
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as e:
        # openpyxl raises a mix of zipfile, KeyError and its own errors for bad files
        raise InputReadError(f"Could not open workbook {path.name}: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    except IndexError as e:
        raise InputReadError(f"Workbook {path.name} has no worksheets") from e
    finally:
        workbook.close()


def _cell_text(row: list[object], index: int) -> str:
    """Render a cell as text; missing and empty cells become ``""``."""
    if index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        # Integral floats come from auto-formatted long numbers; keep every digit
        if value.is_integer():
            return str(int(Decimal(value)))
        return repr(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()
