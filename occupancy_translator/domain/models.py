"""
domain/models.py
──────────────────────────────────────────────────────────────────────────────
Pure domain objects — Pydantic models with no imports from adapters or ports.

These models are the lingua franca of the entire system:
  • adapters produce and consume them
  • services orchestrate them
  • interfaces (FastAPI, CLI) serialise them

Persisted records (OccupancyCode, Analysis, Feedback) serialise with camelCase
keys, which is the JSON shape of the HTTP surface.  Field names in Python stay
snake_case; ``populate_by_name`` lets both spellings construct a model.

The LLM payload models (LLMSuggestion, LLMClassification) describe the
untrusted JSON returned by the model.  Nothing in that payload is trusted until
it has passed ``LLMClassification.model_validate``.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ──────────────────────────────────────────────────────────────────────

class Confidence(str, Enum):
    """Per-suggestion confidence reported by the model."""
    HIGH   = "high"
    MEDIUM = "medium"
    LOW    = "low"


class FeedbackType(str, Enum):
    """Agent verdict on a single suggestion."""
    POSITIVE = "positive"
    NEGATIVE = "negative"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Reference data ─────────────────────────────────────────────────────────────

class OccupancyCode(_CamelModel):
    """One entry of the master occupancy list.  Seeded once, never mutated."""

    id:          str
    code:        str
    description: str
    created_at:  Optional[datetime] = None


class TrainingExample(BaseModel):
    """A historical (description → correct code) pair used only to guide prompts."""

    business_description: str
    correct_occupancy:    str
    reason:               str = ""


# ── Classification ─────────────────────────────────────────────────────────────

class Suggestion(BaseModel):
    """One validated occupancy suggestion, embedded in an Analysis."""

    occupancy:  str
    reason:     str
    confidence: Optional[Confidence] = None

    @property
    def display_confidence(self) -> Confidence:
        """Presentation fallback: an unset confidence is shown as medium."""
        return self.confidence or Confidence.MEDIUM


class LLMSuggestion(BaseModel):
    """A suggestion exactly as returned by the model (not yet validated
    against the master list)."""

    occupancy:  str
    reason:     str
    confidence: Optional[Confidence] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def lower_confidence(cls, v):
        if isinstance(v, str):
            return v.strip().lower() or None
        return v


class LLMClassification(BaseModel):
    """Schema the classification response must satisfy before it is trusted."""

    suggested_occupancies: list[LLMSuggestion]
    overall_reasoning:     Optional[str] = None


class FlexibilityReport(BaseModel):
    """Advisory output of the flexibility guard.  Never blocks a request."""

    is_flexible:     bool
    concerns:        list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class ClassificationResult(BaseModel):
    """Validated outcome of one LLM classification call."""

    suggestions:       list[Suggestion]
    overall_reasoning: str
    flexibility:       Optional[FlexibilityReport] = None


class Analysis(_CamelModel):
    """Stored record of one classification request.  Immutable once created."""

    id:                   str
    business_description: str
    suggestions:          list[Suggestion]
    overall_reasoning:    str
    processing_ms:        Optional[int] = None
    created_at:           datetime = Field(default_factory=_utcnow)


# ── Feedback ───────────────────────────────────────────────────────────────────

class Feedback(_CamelModel):
    """Append-only record of an agent accepting or rejecting a suggestion."""

    id:                str
    analysis_id:       str
    suggestion_index:  int
    occupancy_code:    str
    feedback_type:     FeedbackType
    correction_code:   Optional[str] = None
    correction_reason: Optional[str] = None
    created_at:        datetime = Field(default_factory=_utcnow)

    @property
    def is_correction(self) -> bool:
        """True when this entry can condition future prompts."""
        return self.feedback_type == FeedbackType.NEGATIVE and bool(self.correction_code)


class FeedbackReceipt(BaseModel):
    """Returned by FeedbackRecorder.record_feedback()."""

    feedback_id:    str
    acknowledgment: str


# ── HTTP request bodies ────────────────────────────────────────────────────────

class AnalysisRequest(_CamelModel):
    """Body of POST /api/analyze."""

    business_description: str = Field(..., min_length=1, description="Free-text business description")


class FeedbackRequest(_CamelModel):
    """Body of POST /api/feedback."""

    analysis_id:       str
    suggestion_index:  int
    occupancy_code:    str
    feedback_type:     FeedbackType
    correction_code:   Optional[str] = None
    correction_reason: Optional[str] = None

    @field_validator("correction_code", "correction_reason")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


# ── HTTP responses ─────────────────────────────────────────────────────────────

class AnalyzeResponse(BaseModel):
    """Body returned by POST /api/analyze."""

    model_config = ConfigDict(populate_by_name=True)

    id:                    str
    suggested_occupancies: list[Suggestion]
    overall_reasoning:     str
    created_at:            datetime = Field(..., alias="createdAt")

    @classmethod
    def from_analysis(cls, analysis: Analysis) -> "AnalyzeResponse":
        return cls(
            id=analysis.id,
            suggested_occupancies=analysis.suggestions,
            overall_reasoning=analysis.overall_reasoning,
            created_at=analysis.created_at,
        )


class FeedbackResponse(_CamelModel):
    """Body returned by POST /api/feedback."""

    success:     bool
    message:     str
    feedback_id: str


class ReloadSummary(_CamelModel):
    """Outcome of a master-list (re)seed."""

    message:     str
    total_codes: int
    inserted:    int = 0
    skipped:     int = 0


class Stats(_CamelModel):
    """Body returned by GET /api/stats."""

    analyses_today: int
    accuracy_rate:  int
    avg_processing: str


class AnalyticsOverview(_CamelModel):
    total_analyses:      int
    accuracy_rate:       int
    avg_processing_time: str
    total_corrections:   int


class ConfidenceBreakdown(_CamelModel):
    high:   int = 0
    medium: int = 0
    low:    int = 0


class FeedbackTrends(_CamelModel):
    positive:        int
    negative:        int
    correction_rate: int


class RecentMetrics(_CamelModel):
    last7_days:  int = Field(..., alias="last7Days")
    last30_days: int = Field(..., alias="last30Days")
    improvement: int


class CorrectionFrequency(_CamelModel):
    original_code:  str
    corrected_code: str
    frequency:      int


class Analytics(_CamelModel):
    """Body returned by GET /api/analytics."""

    overview:             AnalyticsOverview
    confidence_breakdown: ConfidenceBreakdown
    feedback_trends:      FeedbackTrends
    recent_metrics:       RecentMetrics
    top_corrections:      list[CorrectionFrequency]
