"""
adapters/training_corpus.py
──────────────────────────────────────────────────────────────────────────────
Loads historical (business description → correct occupancy) pairs from CSV.

Expected columns:
  business_description            free text typed by an agent
  correct_occupancies_simplified  "<code> ~ Based on '<evidence>'" or just "<code>"
  data_source_type                optional provenance label

The corpus is read once at start-up and handed to ExampleRetriever.  A
missing or unreadable file yields an empty corpus (retrieval then returns no
examples) rather than an exception.
"""
from __future__ import annotations

import csv
import logging
from pathlib import Path

from occupancy_translator.domain.models import TrainingExample

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_CHARS = 10
MIN_OCCUPANCY_CHARS = 5
_EXPLANATION_SEPARATOR = " ~ "


def extract_occupancy_code(simplified: str) -> str:
    """Strip the trailing explanation from a simplified occupancy cell.

    >>> extract_occupancy_code("Welders ~ Based on 'welding work'")
    'Welders'
    """
    if not simplified:
        return ""
    return simplified.split(_EXPLANATION_SEPARATOR)[0].strip()


def load_training_corpus(path: Path | None) -> list[TrainingExample]:
    """Read the training CSV into TrainingExample objects (empty on failure)."""
    if path is None or not Path(path).exists():
        logger.warning("training corpus not found: %s — examples disabled", path)
        return []

    examples: list[TrainingExample] = []
    try:
        with Path(path).open(encoding="utf-8-sig", newline="") as fh:
            for row in csv.DictReader(fh):
                description = (row.get("business_description") or "").strip()
                simplified = (row.get("correct_occupancies_simplified") or "").strip()
                if len(description) <= MIN_DESCRIPTION_CHARS:
                    continue
                if len(simplified) <= MIN_OCCUPANCY_CHARS:
                    continue
                source = (row.get("data_source_type") or "").strip() or "training data"
                examples.append(
                    TrainingExample(
                        business_description=description,
                        correct_occupancy=extract_occupancy_code(simplified),
                        reason=f"Historical example from {source}",
                    )
                )
    except (OSError, csv.Error, UnicodeDecodeError) as exc:
        logger.error("Failed to load training corpus %s: %s", path, exc)
        return []

    logger.info("Loaded %d training examples from %s", len(examples), path)
    return examples
