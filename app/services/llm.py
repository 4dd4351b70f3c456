"""
LLM client for the onboarding helpers.

Features:
  - Retry with exponential backoff + jitter (handles 429, 500, 502, 503, 504)
  - Provider selection (gemini via its OpenAI-compatible endpoint, or openai)
  - Reusable client (connection pooling)
"""

import asyncio
import logging
import random
import time
from typing import Any, Optional

import httpx

from ..core.config import get_settings
from ..core.errors import LLMUnavailableError
from ..core.flags import get_flags

logger = logging.getLogger(__name__)

# ── Reusable client (connection pool) ────────────────────────────────

_client: Optional[httpx.AsyncClient] = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(connect=10, read=60, write=30, pool=10),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )
    return _client


async def close_client():
    """Close the shared HTTP client. Call on app shutdown."""
    global _client
    if _client and not _client.is_closed:
        await _client.aclose()
        _client = None


# ── Provider config ──────────────────────────────────────────────────

def _get_provider_config(provider: Optional[str] = None) -> tuple[str, str, str]:
    """Returns (base_url, api_key, default_model) for a provider."""
    settings = get_settings()
    p = (provider or get_flags().llm_provider).lower()

    if p == "gemini":
        return (
            "https://generativelanguage.googleapis.com/v1beta/openai",
            settings.gemini_api_key,
            settings.default_llm_model,
        )
    return settings.openai_base_url, settings.openai_api_key, settings.default_llm_model


# ── Retry logic ──────────────────────────────────────────────────────

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
MAX_RETRIES = 2
BASE_DELAY = 1.0
MAX_DELAY = 8.0


def _backoff(attempt: int) -> float:
    return min(MAX_DELAY, BASE_DELAY * (2 ** attempt) + random.uniform(0, 1))


async def _retry_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs,
) -> httpx.Response:
    """Execute request with exponential backoff + jitter."""
    last_exc: Optional[Exception] = None

    for attempt in range(MAX_RETRIES + 1):
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            last_exc = e
            if attempt == MAX_RETRIES:
                break
            delay = _backoff(attempt)
            logger.warning(
                "LLM timeout (attempt %d/%d), retrying in %.1fs",
                attempt + 1, MAX_RETRIES + 1, delay,
            )
            await asyncio.sleep(delay)
            continue

        if resp.status_code not in RETRYABLE_STATUS:
            if resp.status_code >= 400:
                logger.error("LLM API error %d: %s", resp.status_code, resp.text[:500])
            resp.raise_for_status()
            return resp

        last_exc = httpx.HTTPStatusError(
            f"{resp.status_code}", request=resp.request, response=resp
        )
        if attempt == MAX_RETRIES:
            break
        retry_after = resp.headers.get("retry-after")
        delay = float(retry_after) if retry_after else _backoff(attempt)
        logger.warning(
            "LLM %d (attempt %d/%d), retrying in %.1fs",
            resp.status_code, attempt + 1, MAX_RETRIES + 1, delay,
        )
        await asyncio.sleep(delay)

    raise last_exc or RuntimeError("LLM request failed after retries")


# ── Chat ─────────────────────────────────────────────────────────────

async def chat(
    messages: list[dict],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    response_format: Optional[dict] = None,
    provider: Optional[str] = None,
) -> dict:
    """
    Chat completion with retry. Returns the full API response as dict.
    """
    if not get_flags().use_llm:
        raise LLMUnavailableError("LLM helpers are disabled (FF_USE_LLM=false)")

    settings = get_settings()
    active_provider = (provider or get_flags().llm_provider).lower()
    base_url, api_key, default_model = _get_provider_config(provider)

    if not api_key:
        raise LLMUnavailableError(
            f"No API key for LLM provider '{active_provider}'. "
            "Set GEMINI_API_KEY or OPENAI_API_KEY."
        )

    payload: dict[str, Any] = {
        "model": model or default_model,
        "messages": messages,
        "temperature": temperature if temperature is not None else settings.default_llm_temperature,
        "max_tokens": max_tokens or settings.default_llm_max_tokens,
    }
    if response_format:
        payload["response_format"] = response_format

    url = f"{base_url.rstrip('/')}/chat/completions"
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    start = time.monotonic()
    try:
        resp = await _retry_request(_get_client(), "POST", url, json=payload, headers=headers)
    except Exception as e:
        logger.error("LLM failed after %.1fs: %s", time.monotonic() - start, e)
        raise

    data = resp.json()
    usage = data.get("usage", {})
    logger.info(
        "LLM chat: %dms | in=%d out=%d tokens | model=%s",
        int((time.monotonic() - start) * 1000),
        usage.get("prompt_tokens", 0),
        usage.get("completion_tokens", 0),
        payload["model"],
    )
    return data


async def chat_simple(
    prompt: str,
    system: str = "",
    model: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = 1024,
    json_mode: bool = False,
) -> str:
    """Send a prompt, get a string back."""
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    response = await chat(
        messages=messages, model=model,
        temperature=temperature, max_tokens=max_tokens,
        response_format={"type": "json_object"} if json_mode else None,
    )
    return response["choices"][0]["message"]["content"] or ""
