"""Anthropic Messages API client used by the model-assisted PII detector.

Wraps ``POST {base_url}/v1/messages`` with:

- **Explicit credentials**: the API key is a constructor argument.  A client
  without a key refuses to exist (``LLMCredentialsError``); nothing inside
  ``complete()`` reads process state.
- **Typed failures**: transport problems surface as ``LLMConnectionError``
  or ``LLMTimeoutError``, unusable payloads as ``LLMResponseError``.
- **Latency tracking**: wall-clock time is measured per request.

The client uses ``httpx`` for synchronous HTTP calls.  There is no retry
policy at this layer; callers decide whether to retry or fail open.
"""
from __future__ import annotations

import logging
import time

import httpx

from qtiguard.core.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_MODEL = "claude-3-haiku-20240307"
ANTHROPIC_VERSION = "2023-06-01"

# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------


class LLMCredentialsError(RuntimeError):
    """Raised when the client is built without an API key."""


class LLMConnectionError(ConnectionError):
    """Raised when the API is unreachable or answers with an HTTP error."""


class LLMTimeoutError(TimeoutError):
    """Raised when the request exceeds the configured timeout."""


class LLMResponseError(ValueError):
    """Raised when the API answers 2xx but the body carries no usable text."""


# ---------------------------------------------------------------------------
# AnthropicClient
# ---------------------------------------------------------------------------


class AnthropicClient:
    """Synchronous client for the Anthropic Messages API.

    Parameters
    ----------
    api_key:
        API credential.  Empty or ``None`` raises ``LLMCredentialsError``.
    base_url:
        API base URL, without the ``/v1/messages`` suffix.
    model:
        Model identifier.
    timeout_s:
        Request timeout in seconds.
    max_tokens:
        Upper bound on generated tokens per request.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout_s: float = 30.0,
        max_tokens: int = 1024,
    ) -> None:
        if not api_key or not api_key.strip():
            raise LLMCredentialsError(
                "No API key configured for the model-assisted detector "
                "(ANTHROPIC_API_KEY).  Refusing to operate without credentials."
            )
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_s = timeout_s
        self.max_tokens = max_tokens
        self._last_latency_ms: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> AnthropicClient:
        """Build a client from application settings (composition root only)."""
        return cls(
            api_key=settings.anthropic_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            timeout_s=settings.llm_timeout_s,
            max_tokens=settings.llm_max_tokens,
        )

    # -- public API ---------------------------------------------------------

    def complete(self, prompt: str, system: str | None = None) -> str:
        """Send a single-turn prompt and return the concatenated text reply.

        Raises
        ------
        LLMConnectionError
            If the API is unreachable or returns a non-2xx status.
        LLMTimeoutError
            If the request exceeds ``timeout_s``.
        LLMResponseError
            If the body is not JSON or holds no text content block.
        """
        payload: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system is not None:
            payload["system"] = system

        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

        start = time.monotonic()
        try:
            response = httpx.post(
                f"{self.base_url}/v1/messages",
                json=payload,
                headers=headers,
                timeout=self.timeout_s,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            self._last_latency_ms = int((time.monotonic() - start) * 1000)
            raise LLMTimeoutError(
                f"LLM request timed out after {self.timeout_s}s"
            ) from exc
        except httpx.ConnectError as exc:
            self._last_latency_ms = int((time.monotonic() - start) * 1000)
            raise LLMConnectionError(
                f"Cannot connect to LLM API at {self.base_url}"
            ) from exc
        except httpx.HTTPError as exc:
            self._last_latency_ms = int((time.monotonic() - start) * 1000)
            raise LLMConnectionError(f"LLM HTTP error: {exc}") from exc

        self._last_latency_ms = int((time.monotonic() - start) * 1000)

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMResponseError("LLM response body is not JSON") from exc

        text = _extract_text(data)
        if text is None:
            raise LLMResponseError("LLM response carries no text content block")

        usage = data.get("usage")
        logger.debug(
            "LLM call: model=%s latency_ms=%d output_tokens=%s",
            self.model,
            self._last_latency_ms,
            usage.get("output_tokens") if isinstance(usage, dict) else None,
        )
        return text

    @property
    def last_latency_ms(self) -> int | None:
        """Wall-clock latency of the most recent ``complete()`` call (ms)."""
        return self._last_latency_ms


def _extract_text(data: object) -> str | None:
    """Join the ``text`` blocks of a Messages API body; None when there are none."""
    if not isinstance(data, dict):
        return None
    content = data.get("content")
    if not isinstance(content, list):
        return None
    parts = [
        block["text"] for block in content
        if isinstance(block, dict)
        and block.get("type") == "text"
        and isinstance(block.get("text"), str)
    ]
    if not parts:
        return None
    return "".join(parts)
