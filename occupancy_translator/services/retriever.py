"""
services/retriever.py
──────────────────────────────────────────────────────────────────────────────
Example Retriever: picks the historical training examples most lexically
similar to a new business description.

Architecture:
  • The corpus is loaded once and injected at construction.
  • extract_key_terms(), score_example() and min_relevance_score() are pure
    module-level functions — no I/O, easily unit-tested.
  • ExampleRetriever.retrieve() is the single public entry point.

Scoring:
  score(example) = Σ len(term)   for every query term that occurs as a
                                 substring of the example description

Relevance floor:
  floor(query) = max(3, 0.1 × len(query))

Examples scoring below the floor are never returned, so longer, more specific
queries need proportionally more overlap before an example is used.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from occupancy_translator.domain.models import TrainingExample

logger = logging.getLogger(__name__)

MIN_TERM_LENGTH = 3
MAX_KEY_TERMS = 10
MIN_RELEVANCE_FLOOR = 3.0
RELEVANCE_PER_QUERY_CHAR = 0.1
DEFAULT_MAX_EXAMPLES = 3

GUIDANCE_SUFFIX = " (Similarity guidance - adapt logic, don't copy)"

# English function words plus common Hindi / Hinglish ones.
STOP_WORDS: frozenset[str] = frozenset({
    "and", "or", "the", "a", "an", "is", "are", "was", "were", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might", "must",
    "can", "to", "of", "in", "on", "at", "by", "for", "with", "about", "into", "through",
    "during", "before", "after", "above", "below", "up", "down", "out", "off", "over",
    "under", "again", "further", "then", "once", "here", "there", "when", "where",
    "why", "how", "all", "any", "both", "each", "few", "more", "most", "other",
    "some", "such", "no", "nor", "not", "only", "own", "same", "so", "than", "too",
    "very", "s", "t", "just", "now", "also", "its", "my", "our", "their", "his", "her",
    "hai", "ka", "ke", "ki", "ko", "mein", "se", "pe", "par", "aur", "ya", "yah", "wah",
    "h", "hota", "hoti", "hain", "tha", "thi", "karna", "karte", "kar", "kaam",
})

# Whitespace, ASCII punctuation, the danda marks and typographic quotes and
# dashes. Devanagari combining marks must stay inside their words.
_TOKEN_SPLIT = re.compile(
    r"[\s,.;:!?()\[\]{}\"'/\\|&+*=<>_\-"
    r"\u0964\u0965\u2018\u2019\u201c\u201d\u2013\u2014\u2026]+"
)
_NUMERIC = re.compile(r"^\d+$")


def tokenize(
    text: str,
    stop_words: frozenset[str] = STOP_WORDS,
    min_length: int = MIN_TERM_LENGTH,
) -> list[str]:
    """Lower-case and split ``text``; drop short, numeric and stop-word tokens."""
    return [
        term
        for term in _TOKEN_SPLIT.split(text.lower())
        if len(term) >= min_length
        and term not in stop_words
        and not _NUMERIC.match(term)
    ]


def extract_key_terms(text: str) -> list[str]:
    """Key terms of a query, first MAX_KEY_TERMS only.

    >>> extract_key_terms("We run a welding and fabrication workshop")
    ['run', 'welding', 'fabrication', 'workshop']
    """
    return tokenize(text)[:MAX_KEY_TERMS]


def score_example(terms: list[str], description: str) -> int:
    """Sum of term lengths for terms found inside ``description``."""
    haystack = description.lower()
    return sum(len(term) for term in terms if term in haystack)


def min_relevance_score(query: str) -> float:
    """Relevance floor for ``query``: max(3, 0.1 × len(query))."""
    return max(MIN_RELEVANCE_FLOOR, RELEVANCE_PER_QUERY_CHAR * len(query))


@dataclass(frozen=True)
class _ScoredExample:
    example: TrainingExample
    score: int


class ExampleRetriever:
    """Lexical-overlap retriever over an in-memory training corpus.

    Args:
        corpus: Read-only sequence of TrainingExample objects.
    """

    def __init__(self, corpus: list[TrainingExample]) -> None:
        self._corpus = list(corpus)
        logger.debug("ExampleRetriever init | corpus=%d", len(self._corpus))

    @property
    def corpus(self) -> list[TrainingExample]:
        return list(self._corpus)

    def retrieve(
        self,
        query: str,
        max_examples: int = DEFAULT_MAX_EXAMPLES,
    ) -> list[TrainingExample]:
        """Return up to ``max_examples`` relevant examples, best first.

        Each returned example's ``reason`` carries GUIDANCE_SUFFIX so the
        model treats it as a reasoning pattern rather than a template.
        """
        if not self._corpus or max_examples <= 0:
            return []

        terms = extract_key_terms(query)
        floor = min_relevance_score(query.lower())

        scored = [
            _ScoredExample(example=ex, score=score_example(terms, ex.business_description))
            for ex in self._corpus
        ]
        relevant = [s for s in scored if s.score >= floor]
        # sorted() is stable: equal scores keep corpus order
        relevant = sorted(relevant, key=lambda s: s.score, reverse=True)[:max_examples]

        logger.debug(
            "Example retrieval | terms=%s floor=%.1f relevant=%d",
            terms, floor, len(relevant),
        )
        return [
            s.example.model_copy(update={"reason": s.example.reason + GUIDANCE_SUFFIX})
            for s in relevant
        ]
