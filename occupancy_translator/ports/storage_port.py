"""
ports/storage_port.py
──────────────────────────────────────────────────────────────────────────────
Abstract interface for the persistent store.

The port separates the three record families:
  1. occupancy codes — seeded reference data, unique on ``code``
  2. analyses        — one row per classification call, never updated
  3. feedback        — append-only agent verdicts, never updated or deleted

No update or delete operation exists on analyses or feedback; the
"learning" loop is re-reading the feedback log on every new request.

Current implementations: PostgresStorageAdapter (psycopg2) and
InMemoryStorageAdapter.  To swap: write a new adapter implementing this
Protocol and change ONE line in services/container.py.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from occupancy_translator.domain.models import (
    Analysis,
    Feedback,
    FeedbackType,
    OccupancyCode,
    Suggestion,
)


@runtime_checkable
class StoragePort(Protocol):
    """Contract for the durable store of codes, analyses and feedback."""

    # ── Occupancy codes ────────────────────────────────────────────────────

    def list_occupancy_codes(self) -> list[OccupancyCode]:
        """Return every stored code in insertion order."""
        ...

    def insert_occupancy_code(self, code: str, description: str) -> bool:
        """Insert a code.

        Returns:
            True if inserted, False if the code already exists (uniqueness
            collision is not an error).

        Raises:
            StorageError: On connection or query failure.
        """
        ...

    # ── Analyses ───────────────────────────────────────────────────────────

    def create_analysis(
        self,
        business_description: str,
        suggestions: list[Suggestion],
        overall_reasoning: str,
        processing_ms: int | None = None,
    ) -> Analysis:
        """Persist a new Analysis and return it with its generated id."""
        ...

    def get_analysis(self, analysis_id: str) -> Analysis | None:
        """Fetch one Analysis, or None if it does not exist."""
        ...

    def list_analyses(self, limit: int | None = None) -> list[Analysis]:
        """Return analyses newest first, at most ``limit`` (all if None)."""
        ...

    # ── Feedback ───────────────────────────────────────────────────────────

    def create_feedback(
        self,
        analysis_id: str,
        suggestion_index: int,
        occupancy_code: str,
        feedback_type: FeedbackType,
        correction_code: str | None = None,
        correction_reason: str | None = None,
    ) -> Feedback:
        """Append a new Feedback row and return it with its generated id."""
        ...

    def list_feedback(
        self,
        feedback_type: FeedbackType | None = None,
        limit: int | None = None,
    ) -> list[Feedback]:
        """Return feedback newest first, optionally filtered by type."""
        ...

    def feedback_for_analysis(self, analysis_id: str) -> list[Feedback]:
        """Return every feedback row that references ``analysis_id``."""
        ...
