"""
adapters/openai_llm.py
──────────────────────────────────────────────────────────────────────────────
Implements LLMPort using the OpenAI Chat Completions API.

Key behaviour:
  - Uses /v1/chat/completions via raw requests (no openai SDK dependency)
  - generate_json requests JSON output via response_format={"type": "json_object"};
    the response schema is already spelled out in the system prompt, so it is
    not forwarded (OpenAI's strict json_schema mode rejects optional fields)
  - generate_text sends a single user message with no response_format
  - Back-off on 429 / 500 / 503 only within settings.llm_retries attempts
  - Returns the raw content string (caller parses); None on recoverable failure

Required env vars:
  OPENAI_API_KEY     — your OpenAI secret key  (sk-...)
  OPENAI_LLM_MODEL   — default: gpt-4o

To enable:
  Set LLM_PROVIDER=openai in your .env file.
"""
from __future__ import annotations

import logging
import time
from typing import Any

import requests

from occupancy_translator.config.settings import Settings
from occupancy_translator.domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class OpenAILLMAdapter:
    """OpenAI GPT chat completions adapter.

    Injected via services/container.py when ``LLM_PROVIDER=openai`` is set.

    .. note::
        OpenAI's JSON mode requires the word "JSON" to appear somewhere in
        the prompt.  ``build_system_prompt()`` in ``config/prompts.py``
        already includes it.
    """

    def __init__(self, settings: Settings) -> None:
        if not settings.openai_api_key:
            raise AuthenticationError(
                "OPENAI_API_KEY is not set. "
                "Add it to your .env file or environment."
            )
        self._settings = settings
        self._headers = {
            "Authorization": f"Bearer {settings.openai_api_key}",
            "Content-Type": "application/json",
        }
        logger.debug("OpenAILLMAdapter ready | model=%s", settings.openai_llm_model)

    # ── LLMPort implementation ─────────────────────────────────────────────

    @property
    def model_name(self) -> str:
        """Name of the underlying OpenAI chat model."""
        return self._settings.openai_llm_model

    def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        response_schema: dict[str, Any] | None = None,
    ) -> str | None:
        """Send a prompt and return the raw JSON response string.

        Returns:
            Raw JSON string from the model, or ``None`` on recoverable failure.

        Raises:
            AuthenticationError: If OpenAI rejects the API key.
        """
        payload = {
            "model": self._settings.openai_llm_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "temperature": 0.1,
            "response_format": {"type": "json_object"},
        }
        return self._post_with_retry(payload)

    def generate_text(self, prompt: str) -> str | None:
        """Send a single free-text prompt and return the reply."""
        payload = {
            "model": self._settings.openai_llm_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.7,
        }
        return self._post_with_retry(payload)

    # ── Private helpers ────────────────────────────────────────────────────

    def _post_with_retry(self, payload: dict) -> str | None:
        """POST to the OpenAI API with back-off on 429 / 500 / 503."""
        retries = max(1, self._settings.llm_retries)
        delay = 2.0

        for attempt in range(1, retries + 1):
            try:
                resp = requests.post(
                    _OPENAI_CHAT_URL,
                    headers=self._headers,
                    json=payload,
                    timeout=self._settings.llm_timeout,
                )
            except requests.RequestException as exc:
                logger.warning(
                    "OpenAI LLM request error (attempt %d/%d): %s",
                    attempt, retries, exc,
                )
                if attempt < retries:
                    time.sleep(delay)
                    delay *= 2
                continue

            if resp.status_code == 401:
                raise AuthenticationError(
                    "OpenAI returned 401 Unauthorised. "
                    "Check that OPENAI_API_KEY is valid."
                )

            if resp.status_code in (429, 500, 503):
                logger.warning(
                    "OpenAI LLM %d (attempt %d/%d) — back-off %.1fs",
                    resp.status_code, attempt, retries, delay,
                )
                if attempt < retries:
                    time.sleep(delay)
                    delay *= 2
                continue

            if not resp.ok:
                logger.error(
                    "OpenAI LLM HTTP %d: %s",
                    resp.status_code, resp.text[:300],
                )
                return None

            return self._extract_text(resp.json())

        logger.error("OpenAI LLM failed after %d attempt(s)", retries)
        return None

    def _extract_text(self, response_json: dict) -> str | None:
        """Pull the content string out of the chat completions response."""
        try:
            choices = response_json.get("choices", [])
            if not choices:
                logger.warning("OpenAI response contained no choices")
                return None
            content = (choices[0].get("message", {}).get("content") or "").strip()
            return content if content else None
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            logger.error("Failed to parse OpenAI response structure: %s", exc)
            return None
