"""
LLM client for OpenAI-compatible chat completion APIs (Groq by default).

Features:
  - Retry with exponential backoff + jitter (handles 429, 500, 502, 503, 504)
  - Reusable httpx client (connection pooling), owned by whoever builds it
  - Structured logging of latency and token usage
"""

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional, Protocol

import httpx

from ..core.exceptions import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)


class ChatProvider(Protocol):
    """What the answer composer needs from an LLM backend."""

    async def complete_chat(
        self,
        model: str,
        messages: list[dict],
        max_tokens: int,
        temperature: float,
    ) -> str:
        ...


# ── Retry logic ──────────────────────────────────────────────────────

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
MAX_RETRIES = 3
BASE_DELAY = 1.0
MAX_DELAY = 16.0


def _backoff(attempt: int) -> float:
    return min(MAX_DELAY, BASE_DELAY * (2 ** attempt) + random.uniform(0, 1))


def _retry_after_delay(value: Optional[str], attempt: int) -> float:
    """Delay from a Retry-After header (seconds or HTTP-date), capped at MAX_DELAY."""
    if not value:
        return _backoff(attempt)
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return _backoff(attempt)
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        seconds = (when - datetime.now(timezone.utc)).total_seconds()
    return min(MAX_DELAY, max(0.0, seconds))


class LLMClient:
    """Chat completions over HTTP. One instance per process."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = MAX_RETRIES,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_retries = max_retries
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )

    async def aclose(self) -> None:
        """Close the HTTP client. Call on shutdown."""
        if not self._client.is_closed:
            await self._client.aclose()

    async def _post(self, path: str, payload: dict) -> httpx.Response:
        """POST with exponential backoff + jitter on retryable failures."""
        if not self.api_key:
            raise ConfigurationError(
                "LLM API key not configured",
                detail="Set GROQ_API_KEY or OPENAI_API_KEY.",
            )

        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        last_exc: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                resp = await self._client.post(url, json=payload, headers=headers)
            except httpx.TimeoutException as e:
                last_exc = e
                if attempt < self.max_retries:
                    delay = _backoff(attempt)
                    logger.warning(
                        "LLM timeout (attempt %d/%d), retrying in %.1fs",
                        attempt + 1, self.max_retries + 1, delay,
                    )
                    await asyncio.sleep(delay)
                continue
            except httpx.HTTPError as e:
                raise ProviderError("LLM request failed", detail=str(e)) from e

            if resp.status_code in RETRYABLE_STATUS:
                last_exc = ProviderError(f"LLM API returned {resp.status_code}", detail=resp.text[:500])
                if attempt < self.max_retries:
                    delay = _retry_after_delay(resp.headers.get("retry-after"), attempt)
                    logger.warning(
                        "LLM %d (attempt %d/%d), retrying in %.1fs",
                        resp.status_code, attempt + 1, self.max_retries + 1, delay,
                    )
                    await asyncio.sleep(delay)
                continue

            if resp.status_code >= 400:
                logger.error("LLM API error %d: %s", resp.status_code, resp.text[:500])
                raise ProviderError(f"LLM API returned {resp.status_code}", detail=resp.text[:500])

            return resp

        if isinstance(last_exc, ProviderError):
            raise last_exc
        raise ProviderError("LLM request failed after retries", detail=str(last_exc)) from last_exc

    async def complete_chat(
        self,
        model: str,
        messages: list[dict],
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Send a chat completion. Returns the first choice's text ("" if none)."""
        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        start = time.monotonic()
        resp = await self._post("/chat/completions", payload)
        data = resp.json()
        elapsed = time.monotonic() - start

        usage = data.get("usage") or {}
        logger.info(
            "LLM chat: %dms | in=%d out=%d tokens | model=%s",
            int(elapsed * 1000),
            usage.get("prompt_tokens", 0),
            usage.get("completion_tokens", 0),
            model,
        )

        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""

    async def create_embedding(self, model: str, text: str) -> list[float]:
        """OpenAI-compatible /embeddings call for a single input."""
        resp = await self._post("/embeddings", {"model": model, "input": text})
        data = resp.json().get("data") or []
        if not data:
            raise ProviderError("Embedding API returned no data")
        return [float(x) for x in data[0].get("embedding", [])]
