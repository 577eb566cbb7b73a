"""
services/flexibility.py
──────────────────────────────────────────────────────────────────────────────
Flexibility Guard: heuristics that watch for the model copying the nearest
training example instead of reasoning about the actual input.

Purely advisory.  Nothing here blocks a request; it produces
  • assess_flexibility()      → FlexibilityReport for logging / observability
  • build_prompt_additions()  → extra instructions appended to the system prompt

Every threshold is a named module constant so it can be tuned and tested on
its own.
"""
from __future__ import annotations

import logging
from typing import Iterable, Protocol

from occupancy_translator.config import prompts
from occupancy_translator.domain.models import FlexibilityReport, TrainingExample
from occupancy_translator.services.retriever import tokenize

logger = logging.getLogger(__name__)

# Characters of an example description that must re-appear in the query
# before a matching label counts as a copy.
COPY_PREFIX_CHARS = 20
# Queries longer than this many whitespace tokens likely describe several activities.
MULTI_ACTIVITY_TOKENS = 8
# Overlap ratio below which a query is "novel" for the starvation check.
NOVELTY_ASSESS_THRESHOLD = 0.3
# Overlap ratio below which the prompt switches to general-reasoning guidance.
NOVELTY_PROMPT_THRESHOLD = 0.2

KEYWORD_MARKER = "matches"
BUSINESS_SEMANTIC_WORDS: tuple[str, ...] = ("business", "activity", "work")

# Wider than the retriever list: generic business words carry no signal here.
NOVELTY_STOP_WORDS: frozenset[str] = frozenset({
    "and", "or", "the", "a", "an", "is", "are", "was", "were", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might", "must",
    "can", "to", "of", "in", "on", "at", "by", "for", "with", "about", "work", "kaam",
    "hai", "ka", "ke", "ki", "ko", "mein", "se", "pe", "par", "aur", "company", "business",
    "our", "run", "doing", "hum", "hamara", "hamari", "karte", "karta",
})

CONCERN_COPYING = "Potential exact training example copying detected"
CONCERN_KEYWORD_REASONING = (
    "Reasoning appears keyword-focused rather than business-logic focused"
)
CONCERN_NOVEL_STARVED = (
    "Novel business type resulted in no suggestions - the model may be "
    "over-constrained by training data"
)
RECOMMEND_ADAPT = "Encourage more creative reasoning and adaptation"
RECOMMEND_BUSINESS_LOGIC = (
    "Emphasize business activity understanding over keyword matching"
)
RECOMMEND_MULTIPLE = (
    "Consider multiple occupancy suggestions for complex business descriptions"
)
RECOMMEND_GENERAL_KNOWLEDGE = (
    "Encourage creative reasoning for new business types using general business knowledge"
)


class _SuggestionLike(Protocol):
    occupancy: str
    reason: str


# ── Keyword overlap ────────────────────────────────────────────────────────

def extract_business_keywords(text: str) -> set[str]:
    return set(tokenize(text, stop_words=NOVELTY_STOP_WORDS))


def keyword_overlap(text_a: str, text_b: str) -> float:
    """Jaccard overlap |A ∩ B| / |A ∪ B| of the two keyword sets (0.0 if both empty)."""
    words_a = extract_business_keywords(text_a)
    words_b = extract_business_keywords(text_b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def is_novel(
    query: str,
    examples: Iterable[TrainingExample],
    threshold: float,
) -> bool:
    """True when no example reaches ``threshold`` keyword overlap with the query."""
    return not any(
        keyword_overlap(query, ex.business_description) >= threshold
        for ex in examples
    )


# ── Assessment ─────────────────────────────────────────────────────────────

def assess_flexibility(
    query: str,
    examples: list[TrainingExample],
    suggestions: list[_SuggestionLike],
) -> FlexibilityReport:
    """Run every heuristic and collect concerns and recommendations in order."""
    concerns: list[str] = []
    recommendations: list[str] = []
    query_lower = query.lower()

    copied = [
        ex for ex in examples
        if any(s.occupancy == ex.correct_occupancy for s in suggestions)
        and ex.business_description.lower()[:COPY_PREFIX_CHARS] in query_lower
    ]
    if copied:
        concerns.append(CONCERN_COPYING)
        recommendations.append(RECOMMEND_ADAPT)

    keyword_only = [
        s for s in suggestions
        if KEYWORD_MARKER in s.reason.lower()
        and not any(word in s.reason.lower() for word in BUSINESS_SEMANTIC_WORDS)
    ]
    if keyword_only:
        concerns.append(CONCERN_KEYWORD_REASONING)
        recommendations.append(RECOMMEND_BUSINESS_LOGIC)

    if len(query.split()) > MULTI_ACTIVITY_TOKENS and len(suggestions) == 1:
        recommendations.append(RECOMMEND_MULTIPLE)

    if not suggestions and is_novel(query, examples, NOVELTY_ASSESS_THRESHOLD):
        concerns.append(CONCERN_NOVEL_STARVED)
        recommendations.append(RECOMMEND_GENERAL_KNOWLEDGE)

    return FlexibilityReport(
        is_flexible=not concerns,
        concerns=concerns,
        recommendations=recommendations,
    )


def build_prompt_additions(query: str, examples: list[TrainingExample]) -> str:
    """Guidance text appended verbatim to the classification system prompt."""
    if is_novel(query, examples, NOVELTY_PROMPT_THRESHOLD):
        lines = prompts.FLEXIBILITY_NOVEL_LINES
    else:
        lines = prompts.FLEXIBILITY_KNOWN_LINES
    body = "\n".join((*lines, *prompts.FLEXIBILITY_COMMON_LINES))
    return f"{prompts.FLEXIBILITY_HEADER}\n{body}"
