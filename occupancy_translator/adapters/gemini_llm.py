"""
adapters/gemini_llm.py
──────────────────────────────────────────────────────────────────────────────
Implements LLMPort using Gemini generateContent over REST.

Two endpoints share one payload format:
  - Gemini Developer API (LLM_PROVIDER=gemini) — authenticates with
    GEMINI_API_KEY sent as the x-goog-api-key header
  - Vertex AI (LLM_PROVIDER=vertex) — authenticates with a gcloud bearer
    token from GCPAuthManager; a 401 invalidates the token

Key behaviour:
  - Classification calls send systemInstruction + contents and request
    responseMimeType=application/json constrained by responseSchema
  - Acknowledgment calls send one free-text prompt to the smaller
    GEMINI_ACK_MODEL
  - Back-off on 429/503 only within settings.llm_retries attempts
  - Returns raw text (caller parses); None on recoverable failure
"""
from __future__ import annotations

import logging
import time
from typing import Any

import requests

from occupancy_translator.adapters.gcp_auth import GCPAuthManager
from occupancy_translator.config.settings import Settings
from occupancy_translator.domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_DEVELOPER_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


def _build_gemini_url(settings: Settings, model: str, vertex: bool) -> str:
    if not vertex:
        return f"{_DEVELOPER_API_BASE}/{model}:generateContent"
    return (
        f"https://{settings.gcp_location_id}-aiplatform.googleapis.com"
        f"/v1/projects/{settings.gcp_project_id}"
        f"/locations/{settings.gcp_location_id}"
        f"/publishers/google/models/{model}:generateContent"
    )


class GeminiLLMAdapter:
    """Gemini adapter for both the Developer API and Vertex AI.

    Pass ``auth`` to talk to Vertex AI; omit it to use GEMINI_API_KEY.
    Injected into the services via services/container.py.
    """

    def __init__(self, settings: Settings, auth: GCPAuthManager | None = None) -> None:
        if auth is None and not settings.gemini_api_key:
            raise AuthenticationError(
                "GEMINI_API_KEY is not set. "
                "Add it to your .env file or set LLM_PROVIDER=vertex."
            )
        self._settings = settings
        self._auth = auth
        self._vertex = auth is not None
        self._proxies = (
            {"https": f"http://{settings.https_proxy}"}
            if settings.https_proxy
            else {}
        )
        logger.debug(
            "GeminiLLMAdapter ready | model=%s vertex=%s",
            settings.gemini_model, self._vertex,
        )

    # ── LLMPort implementation ─────────────────────────────────────────────

    @property
    def model_name(self) -> str:
        return self._settings.gemini_model

    def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        response_schema: dict[str, Any] | None = None,
    ) -> str | None:
        """Send a classification prompt and return the raw JSON response string.

        Raises:
            AuthenticationError: On missing or rejected credentials.
        """
        generation_config: dict[str, Any] = {
            "temperature": 0.1,
            "responseMimeType": "application/json",
        }
        if response_schema:
            generation_config["responseSchema"] = response_schema
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_message}]}],
            "generationConfig": generation_config,
        }
        return self._post_with_retry(self._settings.gemini_model, payload)

    def generate_text(self, prompt: str) -> str | None:
        """Send a free-text prompt to the acknowledgment model."""
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.7},
        }
        return self._post_with_retry(self._settings.gemini_ack_model, payload)

    # ── Private helpers ────────────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth is not None:
            headers["Authorization"] = f"Bearer {self._auth.get_token()}"
        else:
            headers["x-goog-api-key"] = self._settings.gemini_api_key
        return headers

    def _post_with_retry(self, model: str, payload: dict) -> str | None:
        """POST to Gemini; back-off on 429/503, token refresh on Vertex 401.

        A Vertex 401/403 invalidates the cached token and re-sends once with a
        fresh one; that re-send does not count against ``llm_retries``.
        """
        url = _build_gemini_url(self._settings, model, self._vertex)
        retries = max(1, self._settings.llm_retries)
        delay = 2.0
        attempt = 0
        token_refreshed = False

        while attempt < retries:
            attempt += 1
            try:
                resp = requests.post(
                    url,
                    headers=self._headers(),
                    json=payload,
                    proxies=self._proxies,
                    timeout=self._settings.llm_timeout,
                )
            except requests.RequestException as exc:
                logger.warning("Gemini HTTP error (attempt %d/%d): %s", attempt, retries, exc)
                if attempt < retries:
                    time.sleep(delay)
                    delay *= 2
                continue

            if resp.status_code in (401, 403):
                if self._auth is not None and not token_refreshed:
                    logger.warning("Gemini %d — refreshing token and re-sending", resp.status_code)
                    self._auth.invalidate()
                    token_refreshed = True
                    attempt -= 1
                    continue
                raise AuthenticationError(
                    f"Gemini returned {resp.status_code}. Check that GEMINI_API_KEY is valid "
                    "or that gcloud auth has access to Vertex AI."
                )

            if resp.status_code in (429, 503):
                logger.warning(
                    "Gemini %d (attempt %d/%d) — back-off %.1fs",
                    resp.status_code, attempt, retries, delay,
                )
                if attempt < retries:
                    time.sleep(delay)
                    delay *= 2
                continue

            if not resp.ok:
                logger.error("Gemini HTTP %d: %s", resp.status_code, resp.text[:300])
                return None

            return self._extract_text(resp.json())

        logger.error("Gemini failed after %d attempt(s)", retries)
        return None

    def _extract_text(self, response_json: dict) -> str | None:
        """Pull the text content out of the generateContent response."""
        try:
            candidates = response_json.get("candidates", [])
            if not candidates:
                logger.warning("Gemini response contained no candidates")
                return None
            parts = candidates[0].get("content", {}).get("parts", [])
            if not parts:
                logger.warning("Gemini candidate contained no parts")
                return None
            text = "".join(p.get("text", "") for p in parts).strip()
            return text if text else None
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            logger.error("Failed to parse Gemini response structure: %s", exc)
            return None
