"""
services/classifier.py
──────────────────────────────────────────────────────────────────────────────
Classification orchestrator: one classify(description) → Analysis call.

Steps:
  1. Fetch the full master list from the registry (may be empty).
  2. Retrieve up to ``max_examples`` guiding examples and up to
     ``max_corrections`` recent corrections.
  3. Build flexibility guidance and assemble the system prompt.
  4. Call the LLMPort with the fixed response schema.
  5. Parse the JSON, validate it against LLMClassification, and silently drop
     every suggestion whose code is not an exact master-list member.
  6. Default a missing overall_reasoning to a placeholder.
  7. Persist the validated result as a new Analysis and return it.

Failure policy:
  Transport failure, an empty body, invalid JSON or a schema violation raise
  UpstreamModelError.  Nothing is persisted in that case and nothing is
  retried; the caller resubmits.  Invalid codes are never an error: they are
  filtered out so every code a caller sees is valid.

This module knows nothing about infrastructure — it only speaks in domain
objects and ports.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Callable

from pydantic import ValidationError

from occupancy_translator.config.prompts import (
    CLASSIFICATION_RESPONSE_SCHEMA,
    build_system_prompt,
    build_user_message,
)
from occupancy_translator.config.settings import Settings
from occupancy_translator.domain.exceptions import AnalysisNotFoundError, UpstreamModelError
from occupancy_translator.domain.models import (
    Analysis,
    ClassificationResult,
    LLMClassification,
    Suggestion,
)
from occupancy_translator.ports.llm_port import LLMPort
from occupancy_translator.ports.storage_port import StoragePort
from occupancy_translator.services.corrections import CorrectionLog
from occupancy_translator.services.flexibility import (
    assess_flexibility,
    build_prompt_additions,
)
from occupancy_translator.services.registry import MasterCodeRegistry
from occupancy_translator.services.retriever import ExampleRetriever

logger = logging.getLogger(__name__)

DEFAULT_OVERALL_REASONING = "Analysis completed"


class OccupancyClassifier:
    """Retrieval-conditioned LLM classifier for business descriptions.

    Inject via services/container.py — do not instantiate directly in
    application code.

    Args:
        llm:         Any object satisfying LLMPort.
        storage:     Any object satisfying StoragePort (analyses are written here).
        registry:    MasterCodeRegistry (authoritative code list).
        retriever:   ExampleRetriever over the training corpus.
        corrections: CorrectionLog (recent negative feedback).
        settings:    Shared application settings.
    """

    def __init__(
        self,
        llm: LLMPort,
        storage: StoragePort,
        registry: MasterCodeRegistry,
        retriever: ExampleRetriever,
        corrections: CorrectionLog,
        settings: Settings,
    ) -> None:
        self._llm = llm
        self._storage = storage
        self._registry = registry
        self._retriever = retriever
        self._corrections = corrections
        self._settings = settings

    @property
    def model_name(self) -> str:
        return self._llm.model_name

    # ── Public API ─────────────────────────────────────────────────────────

    def classify(self, description: str) -> Analysis:
        """Classify a business description and persist the validated result.

        Args:
            description: Free-text business description (English/Hindi/Hinglish).

        Returns:
            The stored Analysis, including its generated id.

        Raises:
            UpstreamModelError: If the LLM call fails or its output is invalid.
        """
        logger.info("classify | description=%r", description[:80])
        started = time.perf_counter()

        result = self.suggest(description)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        analysis = self._storage.create_analysis(
            business_description=description,
            suggestions=result.suggestions,
            overall_reasoning=result.overall_reasoning,
            processing_ms=elapsed_ms,
        )
        logger.info(
            "classify complete | analysis=%s suggestions=%d elapsed_ms=%d",
            analysis.id, len(analysis.suggestions), elapsed_ms,
        )
        return analysis

    def get_analysis(self, analysis_id: str) -> Analysis:
        """Fetch a stored analysis.

        Raises:
            AnalysisNotFoundError: If no analysis has this id.
        """
        analysis = self._storage.get_analysis(analysis_id)
        if analysis is None:
            raise AnalysisNotFoundError(f"Analysis {analysis_id} not found")
        return analysis

    def suggest(self, description: str) -> ClassificationResult:
        """Run the LLM classification without persisting anything."""
        master_list = self._registry.list_codes()
        if not master_list:
            logger.warning("Master occupancy list is empty; no suggestion can validate")

        examples = self._retriever.retrieve(description, self._settings.max_examples)
        corrections = self._corrections.recent_corrections(self._settings.max_corrections)

        system_prompt = build_system_prompt(
            master_list=master_list,
            examples=examples,
            corrections=corrections,
            flexibility_additions=build_prompt_additions(description, examples),
        )
        logger.debug(
            "prompt built | codes=%d examples=%d corrections=%d chars=%d",
            len(master_list), len(examples), len(corrections), len(system_prompt),
        )

        try:
            raw = self._llm.generate_json(
                system_prompt,
                build_user_message(description),
                CLASSIFICATION_RESPONSE_SCHEMA,
            )
        except UpstreamModelError:
            raise
        except Exception as exc:
            raise UpstreamModelError(f"LLM call failed: {exc}") from exc

        parsed = parse_classification(raw)
        suggestions = filter_valid_suggestions(parsed, self._registry.is_valid)

        report = assess_flexibility(description, examples, suggestions)
        if not report.is_flexible:
            logger.warning(
                "Flexibility concerns for %r: %s", description[:80], report.concerns
            )
        elif report.recommendations:
            logger.info("Flexibility recommendations: %s", report.recommendations)

        return ClassificationResult(
            suggestions=suggestions,
            overall_reasoning=parsed.overall_reasoning or DEFAULT_OVERALL_REASONING,
            flexibility=report,
        )


# ── Pure helpers ───────────────────────────────────────────────────────────

def parse_classification(raw: str | None) -> LLMClassification:
    """Parse and schema-validate the raw LLM response.

    The model occasionally wraps JSON in markdown fences even in JSON mode;
    those are stripped before parsing.

    Raises:
        UpstreamModelError: On empty, non-JSON or schema-invalid output.
    """
    if not raw or not raw.strip():
        raise UpstreamModelError("Empty response from model")

    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]

    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.error("Failed to parse classification JSON: %.200s", raw)
        raise UpstreamModelError(f"Model returned invalid JSON: {exc}") from exc

    try:
        return LLMClassification.model_validate(payload)
    except ValidationError as exc:
        logger.error("Classification JSON failed schema validation: %s", exc)
        raise UpstreamModelError(
            f"Model response does not match the required schema: {exc}"
        ) from exc


def filter_valid_suggestions(
    parsed: LLMClassification,
    is_valid: Callable[[str], bool],
) -> list[Suggestion]:
    """Keep only suggestions for which ``is_valid(code)`` holds.

    Model order is preserved; no re-sorting is applied.
    """
    kept: list[Suggestion] = []
    for item in parsed.suggested_occupancies:
        if is_valid(item.occupancy):
            kept.append(Suggestion(**item.model_dump()))
        else:
            logger.warning("Dropping suggestion outside master list: %r", item.occupancy)
    return kept
