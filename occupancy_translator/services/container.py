"""
services/container.py
──────────────────────────────────────────────────────────────────────────────
Dependency Injection container.

THIS IS THE ONLY FILE THAT NAMES CONCRETE ADAPTER CLASSES.

Provider selection is driven entirely by environment variables:

  LLM_PROVIDER=gemini   (default) → GeminiLLMAdapter (Developer API key)
  LLM_PROVIDER=vertex             → GeminiLLMAdapter + GCPAuthManager
  LLM_PROVIDER=openai             → OpenAILLMAdapter

  STORAGE_PROVIDER=postgres (default) → PostgresStorageAdapter
  STORAGE_PROVIDER=memory             → InMemoryStorageAdapter

GCPAuthManager is only instantiated for the Vertex AI provider.

Thread safety:
  @lru_cache(maxsize=1) makes get_container() return the same instance across
  calls.  With multiple uvicorn workers each process builds its own container
  (one psycopg2 connection per process).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from occupancy_translator.adapters.master_list import FileMasterListSource
from occupancy_translator.adapters.training_corpus import load_training_corpus
from occupancy_translator.config.settings import Settings, get_settings
from occupancy_translator.domain.exceptions import ConfigurationError
from occupancy_translator.ports.llm_port import LLMPort
from occupancy_translator.ports.storage_port import StoragePort
from occupancy_translator.services.analytics import AnalyticsService
from occupancy_translator.services.classifier import OccupancyClassifier
from occupancy_translator.services.corrections import CorrectionLog
from occupancy_translator.services.feedback import FeedbackRecorder
from occupancy_translator.services.registry import MasterCodeRegistry
from occupancy_translator.services.retriever import ExampleRetriever

logger = logging.getLogger(__name__)


def _build_llm(settings: Settings) -> LLMPort:
    """Instantiate the correct LLMPort adapter based on LLM_PROVIDER."""
    provider = settings.llm_provider.lower()
    if provider == "gemini":
        from occupancy_translator.adapters.gemini_llm import GeminiLLMAdapter
        logger.info("LLM provider: Gemini API (%s)", settings.gemini_model)
        return GeminiLLMAdapter(settings)
    if provider == "vertex":
        from occupancy_translator.adapters.gcp_auth import GCPAuthManager
        from occupancy_translator.adapters.gemini_llm import GeminiLLMAdapter
        logger.info("LLM provider: Vertex AI Gemini (%s)", settings.gemini_model)
        return GeminiLLMAdapter(settings, auth=GCPAuthManager(settings))
    if provider == "openai":
        from occupancy_translator.adapters.openai_llm import OpenAILLMAdapter
        logger.info("LLM provider: OpenAI (%s)", settings.openai_llm_model)
        return OpenAILLMAdapter(settings)
    raise ConfigurationError(
        f"Unknown LLM_PROVIDER '{settings.llm_provider}'. "
        "Valid values: 'gemini', 'vertex', 'openai'."
    )


def _build_storage(settings: Settings) -> StoragePort:
    """Instantiate the correct StoragePort adapter based on STORAGE_PROVIDER."""
    provider = settings.storage_provider.lower()
    if provider == "postgres":
        from occupancy_translator.adapters.postgres_store import PostgresStorageAdapter
        logger.info("Storage provider: PostgreSQL")
        store = PostgresStorageAdapter(settings)
        store.ensure_schema()
        return store
    if provider == "memory":
        from occupancy_translator.adapters.memory_store import InMemoryStorageAdapter
        logger.info("Storage provider: in-memory (data is not persisted)")
        return InMemoryStorageAdapter()
    raise ConfigurationError(
        f"Unknown STORAGE_PROVIDER '{settings.storage_provider}'. "
        "Valid values: 'postgres', 'memory'."
    )


@dataclass(frozen=True)
class ServiceContainer:
    """Every service the interfaces need, wired against one store and one LLM."""

    settings:    Settings
    registry:    MasterCodeRegistry
    corrections: CorrectionLog
    classifier:  OccupancyClassifier
    recorder:    FeedbackRecorder
    analytics:   AnalyticsService


def build_container(
    settings: Settings,
    llm: LLMPort,
    storage: StoragePort,
) -> ServiceContainer:
    """Wire services around already-built adapters.

    Used by get_container() and by tests that inject mock adapters.
    """
    registry = MasterCodeRegistry(
        storage=storage,
        source=FileMasterListSource(settings.master_list_path),
    )
    retriever = ExampleRetriever(load_training_corpus(settings.training_corpus_path))
    corrections = CorrectionLog(storage)

    classifier = OccupancyClassifier(
        llm=llm,
        storage=storage,
        registry=registry,
        retriever=retriever,
        corrections=corrections,
        settings=settings,
    )
    return ServiceContainer(
        settings=settings,
        registry=registry,
        corrections=corrections,
        classifier=classifier,
        recorder=FeedbackRecorder(corrections=corrections, storage=storage, llm=llm),
        analytics=AnalyticsService(storage, stats_window=settings.stats_window),
    )


@lru_cache(maxsize=1)
def get_container() -> ServiceContainer:
    """Build and return the fully wired ServiceContainer singleton.

    Seeds the master code registry on first build.  A seeding failure is
    logged by the registry and does not prevent start-up.

    Raises:
        ConfigurationError: If an unknown provider name is given.
        AuthenticationError: If required API keys / credentials are missing.
        StorageError: If the database cannot be reached to create the schema.
    """
    settings = get_settings()
    logger.info(
        "Building ServiceContainer | llm_provider=%s storage_provider=%s",
        settings.llm_provider,
        settings.storage_provider,
    )

    llm = _build_llm(settings)
    storage = _build_storage(settings)
    container = build_container(settings, llm, storage)

    summary = container.registry.initialize()
    logger.info(
        "ServiceContainer ready | llm=%s codes=%d (%s)",
        llm.model_name, summary.total_codes, summary.message,
    )
    return container
