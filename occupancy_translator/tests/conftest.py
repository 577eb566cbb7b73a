"""
tests/conftest.py
──────────────────────────────────────────────────────────────────────────────
Shared pytest fixtures and mock adapter implementations.

Mock adapters implement the Port Protocols via structural subtyping — they do
NOT inherit from any base class.  pytest uses them to test service logic
without any real LLM or database connections.

Fixture hierarchy:
  settings     → Settings pointed at the in-memory store and bundled data
  storage      → InMemoryStorageAdapter (fresh per test)
  registry     → MasterCodeRegistry seeded with MASTER_CODES
  retriever    → ExampleRetriever over CORPUS
  mock_llm     → implements LLMPort (returns pre-baked classification JSON)
  classifier   → OccupancyClassifier wired with the mocks
  recorder     → FeedbackRecorder wired with the mocks
  services     → ServiceContainer holding all of the above
  client       → FastAPI TestClient over create_app(services)
"""
from __future__ import annotations

import json

import pytest

from occupancy_translator.adapters.memory_store import InMemoryStorageAdapter
from occupancy_translator.config.settings import Settings
from occupancy_translator.domain.models import TrainingExample
from occupancy_translator.services.analytics import AnalyticsService
from occupancy_translator.services.classifier import OccupancyClassifier
from occupancy_translator.services.container import ServiceContainer
from occupancy_translator.services.corrections import CorrectionLog
from occupancy_translator.services.feedback import FeedbackRecorder
from occupancy_translator.services.registry import MasterCodeRegistry
from occupancy_translator.services.retriever import ExampleRetriever

WELDING_CODE = "Engineering workshop & fabrication works (above 9 meters)"

MASTER_CODES = [
    WELDING_CODE,
    "Welders",
    "Bakeries and biscuit factories",
    "Indoor clerical works",
    "Dairies",
]

CORPUS = [
    TrainingExample(
        business_description="Welding and fabrication workshop with 12 meter high roof",
        correct_occupancy=WELDING_CODE,
        reason="Historical example from agent corrections",
    ),
    TrainingExample(
        business_description="Bakery making bread, cakes and biscuits for retail shops",
        correct_occupancy="Bakeries and biscuit factories",
        reason="Historical example from training data",
    ),
    TrainingExample(
        business_description="Small office doing accounting and clerical paperwork",
        correct_occupancy="Indoor clerical works",
        reason="Historical example from training data",
    ),
]


# ── Settings fixture ───────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def settings() -> Settings:
    """Return a Settings instance with sane test defaults."""
    return Settings(
        llm_provider="gemini",
        storage_provider="memory",
        gemini_api_key="test-key",
        gemini_model="gemini-test",
        gemini_ack_model="gemini-ack-test",
        gcp_project_id="test-project",
        gcp_location_id="us-central1",
        gcloud_path="/usr/bin/gcloud",
        openai_api_key="",
        https_proxy="",
        db_dsn="dbname=occupancy_test",
        max_examples=3,
        max_corrections=10,
        sidebar_corrections=5,
        stats_window=100,
        llm_timeout=5,
        llm_retries=1,
    )


# ── Mock adapters ──────────────────────────────────────────────────────────

class MockLLMAdapter:
    """Returns a pre-baked classification with one code outside the master list."""

    model_name = "mock-llm"

    RESPONSE = json.dumps(
        {
            "suggested_occupancies": [
                {
                    "occupancy": WELDING_CODE,
                    "reason": "Welding and fabrication business in a 12 meter tall workshop",
                    "confidence": "high",
                },
                {
                    "occupancy": "Welders",
                    "reason": "Welding is the core business activity",
                    "confidence": "Medium",
                },
                {
                    "occupancy": "Rocket assembly hangar",
                    "reason": "Not a real master-list code",
                    "confidence": "low",
                },
            ],
            "overall_reasoning": "Metal fabrication workshop above 9 meters in height.",
        }
    )
    ACK = "Thanks, noted: that one should have been the corrected occupancy."

    def __init__(self, response: str | None = None, ack: str | None = None) -> None:
        self._response = self.RESPONSE if response is None else response
        self._ack = self.ACK if ack is None else ack
        self.json_calls: list[tuple[str, str, dict | None]] = []
        self.text_calls: list[str] = []

    def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        response_schema: dict | None = None,
    ) -> str | None:
        self.json_calls.append((system_prompt, user_message, response_schema))
        return self._response

    def generate_text(self, prompt: str) -> str | None:
        self.text_calls.append(prompt)
        return self._ack


class FailingLLMAdapter:
    """Every call raises, as a dropped connection would."""

    model_name = "mock-llm-failing"

    def __init__(self) -> None:
        self.text_calls: list[str] = []

    def generate_json(self, system_prompt, user_message, response_schema=None):
        raise ConnectionError("upstream reset")

    def generate_text(self, prompt: str) -> str | None:
        self.text_calls.append(prompt)
        raise ConnectionError("upstream reset")


class SilentLLMAdapter:
    """Transport swallowed the failure and returned nothing."""

    model_name = "mock-llm-silent"

    def generate_json(self, system_prompt, user_message, response_schema=None):
        return None

    def generate_text(self, prompt: str) -> str | None:
        return None


# ── pytest fixtures ────────────────────────────────────────────────────────

@pytest.fixture
def master_codes():
    return list(MASTER_CODES)


@pytest.fixture
def welding_code():
    return WELDING_CODE


@pytest.fixture
def storage():
    return InMemoryStorageAdapter()


@pytest.fixture
def registry(storage):
    reg = MasterCodeRegistry(storage=storage, source=lambda: list(MASTER_CODES))
    reg.initialize()
    return reg


@pytest.fixture
def retriever():
    return ExampleRetriever(CORPUS)


@pytest.fixture
def corrections(storage):
    return CorrectionLog(storage)


@pytest.fixture
def mock_llm():
    return MockLLMAdapter()


@pytest.fixture
def failing_llm():
    return FailingLLMAdapter()


@pytest.fixture
def silent_llm():
    return SilentLLMAdapter()


@pytest.fixture
def llm_returning():
    """Factory: a MockLLMAdapter with a custom classification body or ack text."""
    return MockLLMAdapter


@pytest.fixture
def make_classifier(storage, registry, retriever, corrections, settings):
    """Factory: an OccupancyClassifier around the given LLM and shared mocks."""
    def _make(llm):
        return OccupancyClassifier(
            llm=llm,
            storage=storage,
            registry=registry,
            retriever=retriever,
            corrections=corrections,
            settings=settings,
        )
    return _make


@pytest.fixture
def classifier(make_classifier, mock_llm):
    return make_classifier(mock_llm)


@pytest.fixture
def recorder(mock_llm, storage, corrections):
    return FeedbackRecorder(corrections=corrections, storage=storage, llm=mock_llm)


@pytest.fixture
def services(settings, storage, registry, corrections, classifier, recorder):
    return ServiceContainer(
        settings=settings,
        registry=registry,
        corrections=corrections,
        classifier=classifier,
        recorder=recorder,
        analytics=AnalyticsService(storage, stats_window=settings.stats_window),
    )


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient

    from occupancy_translator.interfaces.api import create_app

    with TestClient(create_app(services)) as test_client:
        yield test_client
