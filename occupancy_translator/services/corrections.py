"""
services/corrections.py
──────────────────────────────────────────────────────────────────────────────
Correction Log: the append-only record of agent feedback, read back as
"most recent corrections" for the sidebar and for prompt conditioning.

There is no update or delete path.  Repeated corrections of the same mistake
are NOT de-duplicated: each one appears in the prompt, so frequent mistakes
carry more weight.
"""
from __future__ import annotations

import logging

from occupancy_translator.domain.models import Feedback, FeedbackRequest, FeedbackType
from occupancy_translator.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)


class CorrectionLog:
    """Thin query/append surface over the feedback part of the store."""

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage

    def record_correction(self, request: FeedbackRequest) -> Feedback:
        """Append one feedback row (positive or negative) and return it."""
        feedback = self._storage.create_feedback(
            analysis_id=request.analysis_id,
            suggestion_index=request.suggestion_index,
            occupancy_code=request.occupancy_code,
            feedback_type=request.feedback_type,
            correction_code=request.correction_code,
            correction_reason=request.correction_reason,
        )
        logger.info(
            "Feedback stored | id=%s type=%s code=%r correction=%r",
            feedback.id,
            feedback.feedback_type.value,
            feedback.occupancy_code,
            feedback.correction_code,
        )
        return feedback

    def recent_corrections(self, limit: int) -> list[Feedback]:
        """Negative feedback only, most recent first, at most ``limit``."""
        if limit <= 0:
            return []
        return self._storage.list_feedback(
            feedback_type=FeedbackType.NEGATIVE, limit=limit
        )
