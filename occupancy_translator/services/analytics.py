"""
services/analytics.py
──────────────────────────────────────────────────────────────────────────────
Read-only aggregates over analyses and feedback for the dashboard views.

  stats()      → GET /api/stats       (header counters)
  analytics()  → GET /api/analytics   (overview, confidence, trends, top corrections)

All arithmetic lives in pure module-level helpers; the service only fetches
rows from the store and hands them over.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone

from occupancy_translator.domain.models import (
    Analysis,
    Analytics,
    AnalyticsOverview,
    ConfidenceBreakdown,
    CorrectionFrequency,
    Feedback,
    FeedbackTrends,
    FeedbackType,
    RecentMetrics,
    Stats,
)
from occupancy_translator.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)

TOP_CORRECTIONS = 5


def accuracy_rate(feedback: list[Feedback]) -> int:
    """Percentage of positive feedback, rounded; 0 when there is none."""
    if not feedback:
        return 0
    positive = sum(1 for f in feedback if f.feedback_type == FeedbackType.POSITIVE)
    return round(positive * 100 / len(feedback))


def average_processing(analyses: list[Analysis]) -> str:
    """Mean processing time formatted like ``"2.3s"``."""
    timings = [a.processing_ms for a in analyses if a.processing_ms is not None]
    if not timings:
        return "0.0s"
    return f"{sum(timings) / len(timings) / 1000:.1f}s"


def confidence_breakdown(analyses: list[Analysis]) -> ConfidenceBreakdown:
    counts = Counter(
        s.display_confidence.value for a in analyses for s in a.suggestions
    )
    return ConfidenceBreakdown(
        high=counts["high"], medium=counts["medium"], low=counts["low"]
    )


def top_corrections(feedback: list[Feedback], limit: int = TOP_CORRECTIONS) -> list[CorrectionFrequency]:
    counts = Counter(
        (f.occupancy_code, f.correction_code) for f in feedback if f.is_correction
    )
    # most_common keeps first-seen order for ties
    return [
        CorrectionFrequency(original_code=wrong, corrected_code=right, frequency=n)
        for (wrong, right), n in counts.most_common(limit)
    ]


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class AnalyticsService:
    """Dashboard aggregates over the store."""

    def __init__(self, storage: StoragePort, stats_window: int = 100) -> None:
        self._storage = storage
        self._stats_window = stats_window

    def stats(self, now: datetime | None = None) -> Stats:
        """Counters over the most recent ``stats_window`` analyses."""
        now = _as_utc(now or datetime.now(timezone.utc))
        recent = self._storage.list_analyses(limit=self._stats_window)
        today = [a for a in recent if _as_utc(a.created_at).date() == now.date()]

        feedback: list[Feedback] = []
        for analysis in recent:
            feedback.extend(self._storage.feedback_for_analysis(analysis.id))

        return Stats(
            analyses_today=len(today),
            accuracy_rate=accuracy_rate(feedback),
            avg_processing=average_processing(recent),
        )

    def analytics(self, now: datetime | None = None) -> Analytics:
        """Full dashboard payload over every stored analysis and feedback row."""
        now = _as_utc(now or datetime.now(timezone.utc))
        analyses = self._storage.list_analyses()
        feedback = self._storage.list_feedback()

        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)
        last_week = [f for f in feedback if _as_utc(f.created_at) >= week_ago]
        earlier = [
            f for f in feedback
            if month_ago <= _as_utc(f.created_at) < week_ago
        ]
        improvement = accuracy_rate(last_week) - accuracy_rate(earlier)

        positive = sum(1 for f in feedback if f.feedback_type == FeedbackType.POSITIVE)
        negative = len(feedback) - positive
        correction_rate = round(negative * 100 / len(feedback)) if feedback else 0

        logger.debug(
            "analytics | analyses=%d feedback=%d", len(analyses), len(feedback)
        )
        return Analytics(
            overview=AnalyticsOverview(
                total_analyses=len(analyses),
                accuracy_rate=accuracy_rate(feedback),
                avg_processing_time=average_processing(analyses),
                total_corrections=sum(1 for f in feedback if f.is_correction),
            ),
            confidence_breakdown=confidence_breakdown(analyses),
            feedback_trends=FeedbackTrends(
                positive=positive,
                negative=negative,
                correction_rate=correction_rate,
            ),
            recent_metrics=RecentMetrics(
                last7_days=sum(1 for a in analyses if _as_utc(a.created_at) >= week_ago),
                last30_days=sum(1 for a in analyses if _as_utc(a.created_at) >= month_ago),
                improvement=improvement,
            ),
            top_corrections=top_corrections(feedback),
        )
