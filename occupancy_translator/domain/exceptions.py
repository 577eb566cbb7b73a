"""
domain/exceptions.py
──────────────────────────────────────────────────────────────────────────────
Custom exception hierarchy.

All exceptions are rooted at OccupancyTranslatorError so callers can catch
broadly (except OccupancyTranslatorError) or narrowly (except StorageError).

HTTP mapping used by interfaces/api.py:
  ValidationError       → 400 (pydantic request-body validation)
  AnalysisNotFoundError → 404
  UpstreamModelError    → 500
  StorageError          → 500
  anything else         → 500 with a generic message

Two failure kinds are deliberately NOT exceptions:
  • a suggested code outside the master list is filtered out of the result
  • a failed correction acknowledgment is replaced by a fixed fallback string
"""
from __future__ import annotations


class OccupancyTranslatorError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(OccupancyTranslatorError):
    """Raised when required configuration is missing or invalid."""


class AuthenticationError(OccupancyTranslatorError):
    """Raised when an API key is missing or a GCP token cannot be acquired."""


class UpstreamModelError(OccupancyTranslatorError):
    """Raised when the LLM call fails, times out, or returns output that does
    not parse as the required response schema."""


class StorageError(OccupancyTranslatorError):
    """Raised when a persistent store operation fails."""


class InitializationError(OccupancyTranslatorError):
    """Raised when the master occupancy list source cannot be read."""


class AnalysisNotFoundError(OccupancyTranslatorError):
    """Raised when an Analysis id does not exist in the store."""
