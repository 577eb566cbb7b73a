"""
adapters/master_list.py
──────────────────────────────────────────────────────────────────────────────
Reads the master occupancy list from a file.

Two formats are accepted:
  .txt  one code per line; a leading "-" bullet is stripped, blank lines and
        "#" comments are skipped
  .csv  the first column of every row after the header

The returned list keeps source order with duplicates removed (first
occurrence wins).  The registry inserts codes one at a time, so a duplicate
that slipped through would only be skipped by the store anyway.
"""
from __future__ import annotations

import csv
import logging
from pathlib import Path

from occupancy_translator.domain.exceptions import InitializationError

logger = logging.getLogger(__name__)


class FileMasterListSource:
    """Callable master-list source bound to one file path."""

    def __init__(self, path: Path | None) -> None:
        self._path = Path(path) if path else None

    def __call__(self) -> list[str]:
        if self._path is None:
            raise InitializationError("No master list path configured")
        return load_master_list(self._path)


def load_master_list(path: Path) -> list[str]:
    """Load and de-duplicate occupancy codes from ``path``.

    Raises:
        InitializationError: If the file is missing or unreadable.
    """
    try:
        # utf-8-sig drops the BOM that spreadsheet exports prepend
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise InitializationError(f"Cannot read master list {path}: {exc}") from exc

    if path.suffix.lower() == ".csv":
        raw = _codes_from_csv(text)
    else:
        raw = _codes_from_lines(text)

    codes = list(dict.fromkeys(c for c in raw if c))
    logger.info(
        "Master list loaded from %s: %d codes (%d duplicates dropped)",
        path, len(codes), len(raw) - len(codes),
    )
    return codes


def _codes_from_lines(text: str) -> list[str]:
    codes = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("-"):
            line = line[1:].strip()
        codes.append(line)
    return codes


def _codes_from_csv(text: str) -> list[str]:
    rows = list(csv.reader(text.splitlines()))
    return [row[0].strip().strip("\"'") for row in rows[1:] if row and row[0].strip()]
