"""
tests/unit/test_models.py
──────────────────────────────────────────────────────────────────────────────
Unit tests for domain models (validation, aliases, derived properties).
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from occupancy_translator.domain.models import (
    Analysis,
    AnalysisRequest,
    AnalyzeResponse,
    Confidence,
    Feedback,
    FeedbackRequest,
    FeedbackType,
    LLMClassification,
    LLMSuggestion,
    RecentMetrics,
    Suggestion,
)


class TestLLMSuggestion:
    def test_confidence_is_lowercased(self):
        s = LLMSuggestion(occupancy="Welders", reason="welding", confidence="HIGH")
        assert s.confidence == Confidence.HIGH

    def test_blank_confidence_becomes_none(self):
        s = LLMSuggestion(occupancy="Welders", reason="welding", confidence="  ")
        assert s.confidence is None

    def test_confidence_is_optional(self):
        s = LLMSuggestion(occupancy="Welders", reason="welding")
        assert s.confidence is None

    def test_unknown_confidence_rejected(self):
        with pytest.raises(ValidationError):
            LLMSuggestion(occupancy="Welders", reason="welding", confidence="certain")

    def test_reason_is_required(self):
        with pytest.raises(ValidationError):
            LLMSuggestion(occupancy="Welders")


class TestLLMClassification:
    def test_missing_suggestions_rejected(self):
        with pytest.raises(ValidationError):
            LLMClassification.model_validate({"overall_reasoning": "none"})

    def test_overall_reasoning_optional(self):
        parsed = LLMClassification.model_validate({"suggested_occupancies": []})
        assert parsed.overall_reasoning is None
        assert parsed.suggested_occupancies == []


class TestSuggestion:
    def test_display_confidence_defaults_to_medium(self):
        assert Suggestion(occupancy="Dairies", reason="milk").display_confidence == Confidence.MEDIUM

    def test_display_confidence_keeps_explicit_value(self):
        s = Suggestion(occupancy="Dairies", reason="milk", confidence=Confidence.LOW)
        assert s.display_confidence == Confidence.LOW


class TestAnalysisRequest:
    def test_accepts_camel_case_key(self):
        req = AnalysisRequest.model_validate({"businessDescription": "Bakery"})
        assert req.business_description == "Bakery"

    def test_empty_description_rejected(self):
        with pytest.raises(ValidationError):
            AnalysisRequest.model_validate({"businessDescription": ""})

    def test_long_description_accepted(self):
        req = AnalysisRequest.model_validate({"businessDescription": "welding " * 850})
        assert len(req.business_description) == 6800


class TestFeedbackRequest:
    def test_parses_camel_case_body(self):
        req = FeedbackRequest.model_validate({
            "analysisId": "a-1",
            "suggestionIndex": 0,
            "occupancyCode": "Welders",
            "feedbackType": "negative",
            "correctionCode": "Dairies",
        })
        assert req.feedback_type == FeedbackType.NEGATIVE
        assert req.correction_code == "Dairies"
        assert req.correction_reason is None

    def test_blank_correction_becomes_none(self):
        req = FeedbackRequest(
            analysis_id="a-1",
            suggestion_index=0,
            occupancy_code="Welders",
            feedback_type=FeedbackType.NEGATIVE,
            correction_code="   ",
            correction_reason="",
        )
        assert req.correction_code is None
        assert req.correction_reason is None

    def test_unknown_feedback_type_rejected(self):
        with pytest.raises(ValidationError):
            FeedbackRequest.model_validate({
                "analysisId": "a-1",
                "suggestionIndex": 0,
                "occupancyCode": "Welders",
                "feedbackType": "neutral",
            })


class TestFeedback:
    def _feedback(self, **overrides) -> Feedback:
        data = dict(
            id="f-1",
            analysis_id="a-1",
            suggestion_index=0,
            occupancy_code="Welders",
            feedback_type=FeedbackType.NEGATIVE,
            correction_code="Dairies",
        )
        data.update(overrides)
        return Feedback(**data)

    def test_negative_with_code_is_correction(self):
        assert self._feedback().is_correction

    def test_negative_without_code_is_not_correction(self):
        assert not self._feedback(correction_code=None).is_correction

    def test_positive_is_not_correction(self):
        assert not self._feedback(feedback_type=FeedbackType.POSITIVE).is_correction

    def test_serialises_camel_case(self):
        data = self._feedback().model_dump(by_alias=True)
        assert data["occupancyCode"] == "Welders"
        assert data["correctionCode"] == "Dairies"
        assert "createdAt" in data


class TestResponses:
    def test_analyze_response_shape(self):
        analysis = Analysis(
            id="a-1",
            business_description="Dairy farm",
            suggestions=[Suggestion(occupancy="Dairies", reason="milk", confidence="high")],
            overall_reasoning="Dairy",
            created_at=datetime(2026, 1, 2, tzinfo=timezone.utc),
        )
        data = AnalyzeResponse.from_analysis(analysis).model_dump(mode="json", by_alias=True)
        assert set(data) == {"id", "suggested_occupancies", "overall_reasoning", "createdAt"}
        assert data["suggested_occupancies"][0]["occupancy"] == "Dairies"

    def test_recent_metrics_aliases(self):
        metrics = RecentMetrics(last7_days=1, last30_days=4, improvement=-5)
        assert metrics.model_dump(by_alias=True) == {
            "last7Days": 1,
            "last30Days": 4,
            "improvement": -5,
        }
