"""
tests/unit/test_analytics.py
──────────────────────────────────────────────────────────────────────────────
Unit tests for the dashboard aggregates in AnalyticsService.

A fixed-clock stub store is used so time-window maths is deterministic.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from occupancy_translator.domain.models import (
    Analysis,
    Confidence,
    Feedback,
    FeedbackType,
    Suggestion,
)
from occupancy_translator.services.analytics import (
    AnalyticsService,
    accuracy_rate,
    average_processing,
    top_corrections,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


class StubStorage:
    """Read-only StoragePort stand-in with preset rows (newest first)."""

    def __init__(self, analyses: list[Analysis], feedback: list[Feedback]) -> None:
        self._analyses = sorted(analyses, key=lambda a: a.created_at, reverse=True)
        self._feedback = sorted(feedback, key=lambda f: f.created_at, reverse=True)

    def list_analyses(self, limit=None):
        return self._analyses if limit is None else self._analyses[:limit]

    def list_feedback(self, feedback_type=None, limit=None):
        rows = [f for f in self._feedback if feedback_type in (None, f.feedback_type)]
        return rows if limit is None else rows[:limit]

    def feedback_for_analysis(self, analysis_id):
        return [f for f in self._feedback if f.analysis_id == analysis_id]


def _analysis(aid: str, age: timedelta, ms: int | None = 1000, confidences=("high",)) -> Analysis:
    return Analysis(
        id=aid,
        business_description="desc",
        suggestions=[
            Suggestion(occupancy="Welders", reason="r", confidence=c) for c in confidences
        ],
        overall_reasoning="r",
        processing_ms=ms,
        created_at=NOW - age,
    )


_counter = iter(range(10_000))


def _feedback(
    aid: str,
    kind: FeedbackType,
    age: timedelta = timedelta(hours=1),
    code: str = "Welders",
    correction: str | None = None,
) -> Feedback:
    return Feedback(
        id=f"f-{next(_counter)}",
        analysis_id=aid,
        suggestion_index=0,
        occupancy_code=code,
        feedback_type=kind,
        correction_code=correction,
        created_at=NOW - age,
    )


POS, NEG = FeedbackType.POSITIVE, FeedbackType.NEGATIVE


class TestHelpers:
    def test_accuracy_rate_empty(self):
        assert accuracy_rate([]) == 0

    def test_accuracy_rate_rounds(self):
        rows = [_feedback("a", POS), _feedback("a", POS), _feedback("a", NEG)]
        assert accuracy_rate(rows) == 67

    def test_average_processing_format(self):
        rows = [_analysis("a", timedelta(0), ms=1200), _analysis("b", timedelta(0), ms=3400)]
        assert average_processing(rows) == "2.3s"

    def test_average_processing_empty(self):
        assert average_processing([]) == "0.0s"

    def test_average_processing_ignores_missing_timings(self):
        rows = [_analysis("a", timedelta(0), ms=None), _analysis("b", timedelta(0), ms=500)]
        assert average_processing(rows) == "0.5s"

    def test_top_corrections_counts_pairs(self):
        rows = [
            _feedback("a", NEG, code="X", correction="Y"),
            _feedback("a", NEG, code="X", correction="Y"),
            _feedback("a", NEG, code="P", correction="Q"),
            _feedback("a", NEG, code="X"),  # no correction code
            _feedback("a", POS, code="X"),
        ]
        result = top_corrections(rows)
        assert [(c.original_code, c.corrected_code, c.frequency) for c in result] == [
            ("X", "Y", 2),
            ("P", "Q", 1),
        ]

    def test_top_corrections_capped_at_five(self):
        rows = [_feedback("a", NEG, code=f"c{i}", correction="Z") for i in range(8)]
        assert len(top_corrections(rows)) == 5


class TestStats:
    def test_empty_store(self):
        stats = AnalyticsService(StubStorage([], [])).stats(now=NOW)
        assert stats.model_dump(by_alias=True) == {
            "analysesToday": 0,
            "accuracyRate": 0,
            "avgProcessing": "0.0s",
        }

    def test_counts_today_only(self):
        analyses = [
            _analysis("a", timedelta(hours=1)),
            _analysis("b", timedelta(hours=3)),
            _analysis("c", timedelta(days=1)),
        ]
        stats = AnalyticsService(StubStorage(analyses, [])).stats(now=NOW)
        assert stats.analyses_today == 2

    def test_accuracy_over_window_feedback(self):
        analyses = [_analysis("a", timedelta(hours=1)), _analysis("b", timedelta(hours=2))]
        feedback = [
            _feedback("a", POS),
            _feedback("a", POS),
            _feedback("b", POS),
            _feedback("b", NEG),
            _feedback("outside", NEG),
        ]
        stats = AnalyticsService(StubStorage(analyses, feedback)).stats(now=NOW)
        assert stats.accuracy_rate == 75

    def test_window_limits_analyses(self):
        analyses = [
            _analysis("new", timedelta(hours=1), ms=1000),
            _analysis("old", timedelta(hours=2), ms=9000),
        ]
        stats = AnalyticsService(StubStorage(analyses, []), stats_window=1).stats(now=NOW)
        assert stats.avg_processing == "1.0s"


class TestAnalytics:
    @pytest.fixture
    def report(self):
        analyses = [
            _analysis("a", timedelta(days=1), confidences=("high", None)),
            _analysis("b", timedelta(days=10), confidences=("low",)),
            _analysis("c", timedelta(days=40), confidences=("medium", "high")),
        ]
        feedback = [
            _feedback("a", POS, age=timedelta(days=1)),
            _feedback("a", NEG, age=timedelta(days=2), code="X", correction="Y"),
            _feedback("b", POS, age=timedelta(days=10)),
            _feedback("b", POS, age=timedelta(days=12)),
            _feedback("c", NEG, age=timedelta(days=40), code="X", correction="Y"),
        ]
        return AnalyticsService(StubStorage(analyses, feedback)).analytics(now=NOW)

    def test_overview(self, report):
        assert report.overview.total_analyses == 3
        assert report.overview.accuracy_rate == 60
        assert report.overview.avg_processing_time == "1.0s"
        assert report.overview.total_corrections == 2

    def test_confidence_breakdown_counts_unset_as_medium(self, report):
        assert report.confidence_breakdown.model_dump() == {
            "high": 2,
            "medium": 2,
            "low": 1,
        }

    def test_feedback_trends(self, report):
        assert report.feedback_trends.positive == 3
        assert report.feedback_trends.negative == 2
        assert report.feedback_trends.correction_rate == 40

    def test_recent_metrics(self, report):
        assert report.recent_metrics.last7_days == 1
        assert report.recent_metrics.last30_days == 2
        # last 7 days: 1 of 2 positive (50); days 8-30: 2 of 2 positive (100)
        assert report.recent_metrics.improvement == -50

    def test_top_corrections(self, report):
        top = report.top_corrections
        assert len(top) == 1
        assert (top[0].original_code, top[0].corrected_code, top[0].frequency) == ("X", "Y", 2)

    def test_json_shape(self, report):
        data = report.model_dump(mode="json", by_alias=True)
        assert set(data) == {
            "overview",
            "confidenceBreakdown",
            "feedbackTrends",
            "recentMetrics",
            "topCorrections",
        }
        assert set(data["recentMetrics"]) == {"last7Days", "last30Days", "improvement"}
        assert data["topCorrections"][0] == {
            "originalCode": "X",
            "correctedCode": "Y",
            "frequency": 2,
        }
