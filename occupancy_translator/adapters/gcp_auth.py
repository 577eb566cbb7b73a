"""
adapters/gcp_auth.py
──────────────────────────────────────────────────────────────────────────────
GCP access-token provider for the Vertex AI flavour of GeminiLLMAdapter.

Only used when LLM_PROVIDER=vertex.  The Gemini Developer API flavour
authenticates with GEMINI_API_KEY instead and never touches this module.

Wraps `gcloud auth print-access-token`, caches the token in memory and
refreshes it when it is within TOKEN_REFRESH_MARGIN seconds of expiry.
A threading.Lock serialises refreshes across FastAPI worker threads.
"""
from __future__ import annotations

import logging
import subprocess
import threading
import time

from occupancy_translator.config.settings import Settings
from occupancy_translator.domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_REFRESH_MARGIN: int = 120
# GCP access tokens expire after one hour.
TOKEN_TTL_SECONDS: int = 3600


class GCPAuthManager:
    """Caches a gcloud access token and hands it to the Vertex AI adapter."""

    def __init__(self, settings: Settings) -> None:
        self._gcloud_path = settings.gcloud_path
        self._token = ""
        self._expires_at = 0.0
        self._lock = threading.Lock()
        logger.debug("GCPAuthManager initialised | gcloud=%s", self._gcloud_path)

    def get_token(self) -> str:
        """Return a valid bearer token, refreshing if necessary.

        Raises:
            AuthenticationError: If gcloud fails or returns nothing.
        """
        with self._lock:
            if not self._token or self._expires_at <= time.time() + TOKEN_REFRESH_MARGIN:
                self._token = self._fetch_token()
                self._expires_at = time.time() + TOKEN_TTL_SECONDS
            return self._token

    def invalidate(self) -> None:
        """Force the next get_token() call to fetch a fresh token."""
        with self._lock:
            self._expires_at = 0.0
            logger.debug("GCPAuthManager: token invalidated")

    def _fetch_token(self) -> str:
        logger.info("GCPAuthManager: refreshing access token")
        try:
            result = subprocess.run(
                [self._gcloud_path, "auth", "print-access-token"],
                capture_output=True,
                text=True,
                timeout=30,
                check=True,
            )
        except subprocess.TimeoutExpired as exc:
            raise AuthenticationError("gcloud timed out fetching access token") from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.strip() if exc.stderr else "(no stderr)"
            raise AuthenticationError(
                f"gcloud auth print-access-token failed: {stderr}"
            ) from exc
        except FileNotFoundError as exc:
            raise AuthenticationError(
                f"gcloud not found at '{self._gcloud_path}'. "
                "Set the GCLOUD_PATH environment variable."
            ) from exc

        token = result.stdout.strip()
        if not token:
            raise AuthenticationError("gcloud returned an empty access token")
        return token
