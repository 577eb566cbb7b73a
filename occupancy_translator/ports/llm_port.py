"""
ports/llm_port.py
──────────────────────────────────────────────────────────────────────────────
Abstract interface for LLM (large language model) providers.

Current implementations: GeminiLLMAdapter (Gemini Developer API or Vertex AI)
and OpenAILLMAdapter.  To swap: write an adapter implementing this Protocol,
then change ONE line in services/container.py.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LLMPort(Protocol):
    """Contract for an LLM provider used for classification and acknowledgments."""

    @property
    def model_name(self) -> str:
        """Identifier of the underlying LLM."""
        ...

    def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        response_schema: dict[str, Any] | None = None,
    ) -> str | None:
        """Send a prompt to the LLM and return its JSON response as a string.

        The caller is responsible for parsing and validating the returned
        string.  Adapters request JSON-mode output and, where the provider
        supports it, constrain the output to ``response_schema``.

        Args:
            system_prompt:   System-level instruction.
            user_message:    User-turn content.
            response_schema: JSON schema (OpenAPI subset) the output must match.

        Returns:
            Raw JSON string, or None if the call failed.

        Raises:
            AuthenticationError: On missing or rejected credentials.
        """
        ...

    def generate_text(self, prompt: str) -> str | None:
        """Send a single free-text prompt and return the plain-text reply.

        Returns:
            Reply text, or None if the call failed.
        """
        ...
