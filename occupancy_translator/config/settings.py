"""
config/settings.py
──────────────────────────────────────────────────────────────────────────────
Single source of truth for all tuneable parameters.

All values can be overridden via environment variables or a .env file placed
at the project root.  The frozen dataclass ensures settings are never mutated
at runtime; services receive the instance explicitly instead of reading the
environment themselves.

To swap providers, change the relevant env var — no code edits required:
  LLM_PROVIDER      → gemini | vertex | openai
  STORAGE_PROVIDER  → postgres | memory
  DB_DSN            → swap database
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
load_dotenv(Path(__file__).parent.parent.parent / ".env")

_DATA_DIR = Path(__file__).parent.parent / "data"


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


def _env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _env_path(key: str, default: Path | None) -> Path | None:
    value = os.getenv(key)
    if value:
        return Path(value)
    return default


@dataclass(frozen=True)
class Settings:
    """Immutable application settings loaded from environment variables."""

    # ── Provider selection ──────────────────────────────────────────────────
    # Valid values: "gemini" | "vertex" | "openai"
    llm_provider: str = field(
        default_factory=lambda: _env("LLM_PROVIDER", "gemini")
    )
    # Valid values: "postgres" | "memory"
    storage_provider: str = field(
        default_factory=lambda: _env("STORAGE_PROVIDER", "postgres")
    )

    # ── Gemini Developer API ───────────────────────────────────────────────
    gemini_api_key: str = field(
        default_factory=lambda: _env("GEMINI_API_KEY", "")
    )
    gemini_model: str = field(
        default_factory=lambda: _env("GEMINI_MODEL", "gemini-2.5-pro")
    )
    # Smaller model used for the conversational correction acknowledgment.
    gemini_ack_model: str = field(
        default_factory=lambda: _env("GEMINI_ACK_MODEL", "gemini-2.5-flash")
    )

    # ── GCP / Vertex AI ────────────────────────────────────────────────────
    gcp_project_id: str = field(
        default_factory=lambda: _env("GCP_PROJECT_ID", "")
    )
    gcp_location_id: str = field(
        default_factory=lambda: _env("GCP_LOCATION_ID", "asia-south1")
    )
    gcloud_path: str = field(
        default_factory=lambda: _env("GCLOUD_PATH", "gcloud")
    )

    # ── OpenAI ─────────────────────────────────────────────────────────────
    openai_api_key: str = field(
        default_factory=lambda: _env("OPENAI_API_KEY", "")
    )
    openai_llm_model: str = field(
        default_factory=lambda: _env("OPENAI_LLM_MODEL", "gpt-4o")
    )

    # ── Network ────────────────────────────────────────────────────────────
    https_proxy: str = field(
        default_factory=lambda: _env("HTTPS_PROXY", "")
    )

    # ── Database ───────────────────────────────────────────────────────────
    db_dsn: str = field(
        default_factory=lambda: _env("DB_DSN", "dbname=occupancy_db")
    )

    # ── Data paths ─────────────────────────────────────────────────────────
    master_list_path: Path | None = field(
        default_factory=lambda: _env_path(
            "MASTER_LIST_PATH", _DATA_DIR / "occupancy_master.txt"
        )
    )
    training_corpus_path: Path | None = field(
        default_factory=lambda: _env_path(
            "TRAINING_CORPUS_PATH", _DATA_DIR / "business_descriptions.csv"
        )
    )

    # ── Prompt conditioning ────────────────────────────────────────────────
    max_examples: int = field(
        default_factory=lambda: _env_int("MAX_EXAMPLES", 3)
    )
    max_corrections: int = field(
        default_factory=lambda: _env_int("MAX_CORRECTIONS", 10)
    )

    # ── Read-side views ────────────────────────────────────────────────────
    sidebar_corrections: int = field(
        default_factory=lambda: _env_int("SIDEBAR_CORRECTIONS", 5)
    )
    stats_window: int = field(
        default_factory=lambda: _env_int("STATS_WINDOW", 100)
    )

    # ── HTTP timeouts (seconds) / attempts ─────────────────────────────────
    llm_timeout: int = field(default_factory=lambda: _env_int("LLM_TIMEOUT", 90))
    # 1 = a single attempt; failed classifications are resubmitted by the user.
    llm_retries: int = field(default_factory=lambda: _env_int("LLM_RETRIES", 1))

    # ── Service ────────────────────────────────────────────────────────────
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))
    api_host: str = field(default_factory=lambda: _env("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: _env_int("API_PORT", 5000))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Returns a cached singleton Settings instance.

    Use this everywhere instead of instantiating Settings() directly —
    it guarantees a single object is shared across the entire process.
    """
    return Settings()
