"""
adapters/memory_store.py
──────────────────────────────────────────────────────────────────────────────
Implements StoragePort entirely in process memory.

Used for local runs without PostgreSQL (STORAGE_PROVIDER=memory) and as the
store behind the unit / e2e test suites.  Data is lost when the process exits.

Ordering contract matches PostgresStorageAdapter:
  - occupancy codes come back in insertion order
  - analyses and feedback come back newest first (ties broken by insertion)

Thread-safe: a single threading.Lock guards every read and write so FastAPI
worker threads can share one instance.
"""
from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone

from occupancy_translator.domain.models import (
    Analysis,
    Feedback,
    FeedbackType,
    OccupancyCode,
    Suggestion,
)

logger = logging.getLogger(__name__)


class InMemoryStorageAdapter:
    """Dict/list-backed implementation of StoragePort."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._codes: dict[str, OccupancyCode] = {}
        self._analyses: list[Analysis] = []
        self._feedback: list[Feedback] = []
        logger.debug("InMemoryStorageAdapter ready")

    # ── Occupancy codes ────────────────────────────────────────────────────

    def list_occupancy_codes(self) -> list[OccupancyCode]:
        with self._lock:
            return list(self._codes.values())

    def insert_occupancy_code(self, code: str, description: str) -> bool:
        with self._lock:
            if code in self._codes:
                return False
            self._codes[code] = OccupancyCode(
                id=str(uuid.uuid4()),
                code=code,
                description=description,
                created_at=datetime.now(timezone.utc),
            )
            return True

    # ── Analyses ───────────────────────────────────────────────────────────

    def create_analysis(
        self,
        business_description: str,
        suggestions: list[Suggestion],
        overall_reasoning: str,
        processing_ms: int | None = None,
    ) -> Analysis:
        analysis = Analysis(
            id=str(uuid.uuid4()),
            business_description=business_description,
            suggestions=list(suggestions),
            overall_reasoning=overall_reasoning,
            processing_ms=processing_ms,
        )
        with self._lock:
            self._analyses.append(analysis)
        return analysis

    def get_analysis(self, analysis_id: str) -> Analysis | None:
        with self._lock:
            return next((a for a in self._analyses if a.id == analysis_id), None)

    def list_analyses(self, limit: int | None = None) -> list[Analysis]:
        with self._lock:
            rows = _newest_first(self._analyses)
        return rows if limit is None else rows[:limit]

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
        feedback = Feedback(
            id=str(uuid.uuid4()),
            analysis_id=analysis_id,
            suggestion_index=suggestion_index,
            occupancy_code=occupancy_code,
            feedback_type=feedback_type,
            correction_code=correction_code,
            correction_reason=correction_reason,
        )
        with self._lock:
            self._feedback.append(feedback)
        return feedback

    def list_feedback(
        self,
        feedback_type: FeedbackType | None = None,
        limit: int | None = None,
    ) -> list[Feedback]:
        with self._lock:
            rows = _newest_first(self._feedback)
        if feedback_type is not None:
            rows = [f for f in rows if f.feedback_type == feedback_type]
        return rows if limit is None else rows[:limit]

    def feedback_for_analysis(self, analysis_id: str) -> list[Feedback]:
        with self._lock:
            return [f for f in self._feedback if f.analysis_id == analysis_id]


def _newest_first(rows: list) -> list:
    """Sort by created_at descending; later insertions win ties."""
    indexed = list(enumerate(rows))
    indexed.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
    return [row for _, row in indexed]
