"""
services/feedback.py
──────────────────────────────────────────────────────────────────────────────
Feedback Recorder: persists agent verdicts and, for corrections, asks the
LLM for a short conversational acknowledgment.

Ordering guarantee:
  The Feedback row is written (and has an id) BEFORE any acknowledgment is
  generated.  A failing acknowledgment call is replaced by ACK_FALLBACK and
  never rolls back or hides the stored row.

Negative feedback without a correction code is accepted and stored; it just
cannot condition future prompts, so no acknowledgment call is made for it.
"""
from __future__ import annotations

import logging

from occupancy_translator.config.prompts import (
    ACK_FALLBACK,
    ACK_NEGATIVE_NO_CORRECTION,
    ACK_POSITIVE,
    build_correction_prompt,
)
from occupancy_translator.domain.models import (
    Feedback,
    FeedbackReceipt,
    FeedbackRequest,
    FeedbackType,
)
from occupancy_translator.ports.llm_port import LLMPort
from occupancy_translator.ports.storage_port import StoragePort
from occupancy_translator.services.corrections import CorrectionLog

logger = logging.getLogger(__name__)


class FeedbackRecorder:
    """Stores feedback, then produces the acknowledgment text.

    Args:
        corrections: CorrectionLog used to append the row.
        storage:     StoragePort used to look up the owning Analysis.
        llm:         LLMPort used for the acknowledgment call.
    """

    def __init__(
        self,
        corrections: CorrectionLog,
        storage: StoragePort,
        llm: LLMPort,
    ) -> None:
        self._corrections = corrections
        self._storage = storage
        self._llm = llm

    def record_feedback(self, request: FeedbackRequest) -> FeedbackReceipt:
        """Persist ``request`` and return its id plus acknowledgment text.

        Raises:
            StorageError: If the feedback row cannot be stored.
        """
        feedback = self._corrections.record_correction(request)

        if feedback.feedback_type == FeedbackType.POSITIVE:
            acknowledgment = ACK_POSITIVE
        elif not feedback.correction_code:
            acknowledgment = ACK_NEGATIVE_NO_CORRECTION
        else:
            acknowledgment = self._acknowledge(feedback)

        return FeedbackReceipt(feedback_id=feedback.id, acknowledgment=acknowledgment)

    def _acknowledge(self, feedback: Feedback) -> str:
        """Ask the LLM to acknowledge a correction; fall back on any failure."""
        try:
            analysis = self._storage.get_analysis(feedback.analysis_id)
            if analysis is None:
                logger.info(
                    "Analysis %s not found; using fallback acknowledgment",
                    feedback.analysis_id,
                )
                return ACK_FALLBACK

            prompt = build_correction_prompt(
                description=analysis.business_description,
                wrong=feedback.occupancy_code,
                correct=feedback.correction_code or "",
                reason=feedback.correction_reason,
            )
            text = self._llm.generate_text(prompt)
        except Exception as exc:  # acknowledgment is cosmetic; the row is already stored
            logger.warning("Correction acknowledgment failed: %s", exc)
            return ACK_FALLBACK

        if not text or not text.strip():
            logger.warning("Correction acknowledgment was empty; using fallback")
            return ACK_FALLBACK
        return text.strip()
