"""
tests/unit/test_retriever.py
──────────────────────────────────────────────────────────────────────────────
Unit tests for the lexical ExampleRetriever.

Verifies:
  • key-term extraction drops stop words, short and numeric tokens
  • the relevance floor max(3, 0.1 × len(query)) is never undercut
  • results are ordered by score, capped, and carry the guidance suffix
"""
from __future__ import annotations

import pytest

from occupancy_translator.domain.models import TrainingExample
from occupancy_translator.services.retriever import (
    GUIDANCE_SUFFIX,
    MAX_KEY_TERMS,
    ExampleRetriever,
    extract_key_terms,
    min_relevance_score,
    score_example,
)


def _example(description: str, code: str = "Welders") -> TrainingExample:
    return TrainingExample(
        business_description=description,
        correct_occupancy=code,
        reason="Historical example from training data",
    )


class TestExtractKeyTerms:
    def test_drops_stop_words_short_and_numeric(self):
        terms = extract_key_terms("We run a welding and fabrication workshop, 12 meters")
        assert terms == ["run", "welding", "fabrication", "workshop", "meters"]

    def test_drops_hinglish_stop_words(self):
        terms = extract_key_terms("Hamari bakery hai aur kaam biscuit ka")
        assert "hai" not in terms
        assert "aur" not in terms
        assert "kaam" not in terms
        assert "bakery" in terms
        assert "biscuit" in terms

    def test_caps_number_of_terms(self):
        query = " ".join(f"term{chr(97 + i)}" for i in range(15))
        assert len(extract_key_terms(query)) == MAX_KEY_TERMS

    def test_keeps_devanagari_words_whole(self):
        terms = extract_key_terms("बेकरी दुकान")
        assert terms == ["बेकरी", "दुकान"]

    def test_splits_on_danda(self):
        assert extract_key_terms("हमारी दुकान। बेकरी॥") == ["हमारी", "दुकान", "बेकरी"]

    def test_splits_on_typographic_punctuation(self):
        terms = extract_key_terms("“Bakery”—biscuits–cakes… owner’s shop")
        assert terms == ["bakery", "biscuits", "cakes", "owner", "shop"]

    def test_hindi_sentence_retrieves_matching_example(self):
        retriever = ExampleRetriever([_example("कपड़े की दुकान", code="Shops")])
        results = retriever.retrieve("हमारी दुकान।")
        assert [r.correct_occupancy for r in results] == ["Shops"]


class TestScoring:
    def test_score_sums_matching_term_lengths(self):
        assert score_example(["welding", "shop"], "Welding shop in Pune") == 11

    def test_score_is_substring_based(self):
        assert score_example(["weld"], "Welders and fabricators") == 4

    def test_no_overlap_scores_zero(self):
        assert score_example(["bakery"], "Welding shop") == 0

    @pytest.mark.parametrize("query, expected", [
        ("", 3.0),
        ("short", 3.0),
        ("x" * 30, 3.0),
        ("x" * 60, 6.0),
    ])
    def test_min_relevance_score(self, query, expected):
        assert min_relevance_score(query) == pytest.approx(expected)


class TestRelevanceFloor:
    def test_single_short_overlap_excluded_for_long_query(self):
        # Only "tea" (3 chars) overlaps; the floor for this query is above 6.
        query = "Our family sells tea leaves wholesale to hotels across the state"
        retriever = ExampleRetriever([_example("Roadside tea stall")])
        assert min_relevance_score(query) > 3
        assert retriever.retrieve(query) == []

    def test_same_overlap_included_for_short_query(self):
        retriever = ExampleRetriever([_example("Roadside tea stall")])
        assert len(retriever.retrieve("tea")) == 1

    def test_two_character_overlap_never_counts(self):
        retriever = ExampleRetriever([_example("IT consultancy office")])
        assert retriever.retrieve("IT firm") == []

    def test_no_returned_example_below_floor(self):
        corpus = [
            _example("Welding and fabrication workshop with 12 meter high roof"),
            _example("Roadside tea stall"),
            _example("Welding shop"),
        ]
        query = "We run a welding and fabrication workshop, ceiling height 12 meters"
        terms = extract_key_terms(query)
        floor = min_relevance_score(query)
        for ex in ExampleRetriever(corpus).retrieve(query, max_examples=10):
            assert score_example(terms, ex.business_description) >= floor


class TestRetrieve:
    def test_best_match_first(self):
        corpus = [
            _example("Welding shop", code="Welders"),
            _example("Welding and fabrication workshop", code="Engineering workshop"),
        ]
        results = ExampleRetriever(corpus).retrieve("welding and fabrication workshop")
        assert [r.correct_occupancy for r in results] == ["Engineering workshop", "Welders"]

    def test_ties_keep_corpus_order(self):
        corpus = [_example("Dairy farm", code="A"), _example("Dairy shop", code="B")]
        results = ExampleRetriever(corpus).retrieve("dairy")
        assert [r.correct_occupancy for r in results] == ["A", "B"]

    def test_respects_max_examples(self):
        corpus = [_example(f"Dairy unit {i}") for i in range(6)]
        assert len(ExampleRetriever(corpus).retrieve("dairy", max_examples=2)) == 2

    def test_zero_max_examples_returns_nothing(self):
        assert ExampleRetriever([_example("Dairy farm")]).retrieve("dairy", max_examples=0) == []

    def test_reason_carries_guidance_suffix(self):
        result = ExampleRetriever([_example("Dairy farm")]).retrieve("dairy")[0]
        assert result.reason.endswith(GUIDANCE_SUFFIX)

    def test_corpus_is_not_mutated(self):
        corpus = [_example("Dairy farm")]
        retriever = ExampleRetriever(corpus)
        retriever.retrieve("dairy")
        retriever.retrieve("dairy")
        assert not retriever.corpus[0].reason.endswith(GUIDANCE_SUFFIX)

    def test_empty_corpus(self):
        assert ExampleRetriever([]).retrieve("anything at all") == []
