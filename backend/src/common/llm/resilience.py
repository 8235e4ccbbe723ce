"""
Vendor call guard for litellm

Every completion in the refiner and script pipelines goes through
resilient_llm_call(), which:
    - caps concurrent vendor calls with a semaphore (LLM_MAX_CONCURRENCY)
    - retries rate limits, 5xx, timeouts and dropped connections with capped exponential backoff
    - drops to a single concurrent call ("safe mode") once 429s keep coming back to back
    - returns None instead of raising when a model is exhausted, so the caller can try the next one

State lives in LLMResilienceState; client.py keeps one per process.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import litellm

from backend.src.common.config import LLM_CONFIG


logger = logging.getLogger(__name__)

MAX_GLOBAL_LLM_CONCURRENCY = LLM_CONFIG["max_concurrency"]
BACKOFF_BASE_DELAY_SEC = LLM_CONFIG["retry_base_delay_sec"]
BACKOFF_MAX_DELAY_SEC = LLM_CONFIG["retry_max_delay_sec"]
MAX_RETRIES_PER_CALL = LLM_CONFIG["max_retries"] + 1
SAFE_MODE_THRESHOLD = LLM_CONFIG["safe_mode_threshold"]

RATE_LIMIT_MARKERS = ("429", "rate limit", "ratelimit", "rate_limit", "quota", "too many requests")
TRANSIENT_MARKERS = ("500", "502", "503", "504", "timeout", "timed out", "connection", "overloaded")


@dataclass
class LLMResilienceState:
    consecutive_429_count: int = 0
    total_429_count: int = 0
    total_calls: int = 0
    total_retries: int = 0
    safe_mode: bool = False
    safe_mode_activated_at: float | None = None
    last_error: str | None = None
    _semaphore: asyncio.Semaphore = field(default_factory=lambda: asyncio.Semaphore(MAX_GLOBAL_LLM_CONCURRENCY))
    _safe_semaphore: asyncio.Semaphore = field(default_factory=lambda: asyncio.Semaphore(1))

    @property
    def current_semaphore(self) -> asyncio.Semaphore:
        return self._safe_semaphore if self.safe_mode else self._semaphore

    @property
    def concurrency(self) -> int:
        return 1 if self.safe_mode else MAX_GLOBAL_LLM_CONCURRENCY

    def record_429(self) -> None:
        self.consecutive_429_count += 1
        self.total_429_count += 1
        if self.safe_mode or self.consecutive_429_count < SAFE_MODE_THRESHOLD:
            return

        # one-way switch: the process stays throttled until restart
        self.safe_mode = True
        self.safe_mode_activated_at = time.time()
        logger.warning(
            f"🛡️ [Resilience] {self.consecutive_429_count} rate limits in a row, "
            f"safe mode on (concurrency {MAX_GLOBAL_LLM_CONCURRENCY} -> 1)"
        )

    def record_success(self) -> None:
        self.consecutive_429_count = 0

    def record_failure(self, error: Exception) -> None:
        self.last_error = f"{type(error).__name__}: {error}"

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_calls": self.total_calls,
            "total_retries": self.total_retries,
            "total_429_count": self.total_429_count,
            "safe_mode_activated": self.safe_mode,
            "safe_mode_activated_at": self.safe_mode_activated_at,
            "max_concurrency": self.concurrency,
            "last_error": self.last_error,
        }


# ============================================================
# Error classification
# ============================================================
def _describe(error: Exception) -> str:
    """Exception class name + message, lowercased for marker matching."""
    return f"{type(error).__name__} {error}".lower()


def _is_429_error(error: Exception) -> bool:
    """litellm raises RateLimitError; other providers only mention 429 / quota in the message."""
    description = _describe(error)
    if any(marker in description for marker in RATE_LIMIT_MARKERS):
        return True
    return "exceeded" in description and "limit" in description


def _is_retryable_error(error: Exception) -> bool:
    if _is_429_error(error):
        return True
    description = _describe(error)
    return any(marker in description for marker in TRANSIENT_MARKERS)


def _backoff_delay(attempt: int) -> float:
    """1s, 2s, 4s ... capped at LLM_RETRY_MAX_DELAY_SEC."""
    return min(BACKOFF_BASE_DELAY_SEC * 2 ** (attempt - 1), BACKOFF_MAX_DELAY_SEC)


def _completion_kwargs(
    model: str,
    messages: list[dict[str, str]],
    *,
    temperature: float,
    max_tokens: int,
    api_key: str | None,
    response_format: dict[str, str] | None,
    timeout: float | None,
    extra_params: dict[str, Any] | None,
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
        **(extra_params or {}),
    }
    optional = {"api_key": api_key, "response_format": response_format, "timeout": timeout}
    kwargs.update({key: value for key, value in optional.items() if value})
    return kwargs


async def _complete(kwargs: dict[str, Any], semaphore: asyncio.Semaphore) -> str:
    """One blocking litellm.completion in the default executor, under the semaphore."""
    async with semaphore:
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, lambda: litellm.completion(**kwargs))

    content = response.choices[0].message.content
    if not content:
        raise ValueError("LLM returned an empty response")
    return content


# ============================================================
# Public API
# ============================================================
async def resilient_llm_call(
    model: str,
    messages: list[dict[str, str]],
    api_key: str | None = None,
    state: LLMResilienceState | None = None,
    temperature: float = 0.1,
    max_tokens: int = 2048,
    response_format: dict[str, str] | None = None,
    max_retries: int = MAX_RETRIES_PER_CALL,
    timeout: float | None = None,
    extra_params: dict[str, Any] | None = None,
) -> str | None:
    """
    Call one model with the guard applied.

    Args:
        model: litellm model id ("gpt-4o", "anthropic/claude-3-5-sonnet-20241022", ...)
        messages: chat messages
        api_key: vendor key, None lets litellm read the environment
        state: shared counters, a throwaway state is used when None
        max_retries: total attempts for this model
        timeout: per-attempt timeout in seconds
        extra_params: forwarded to litellm.completion as-is (top_p, stop, ...)

    Returns:
        Response text, or None when every attempt failed (state.last_error says why)
    """
    state = state or LLMResilienceState()
    state.total_calls += 1

    kwargs = _completion_kwargs(
        model,
        messages,
        temperature=temperature,
        max_tokens=max_tokens,
        api_key=api_key,
        response_format=response_format,
        timeout=timeout,
        extra_params=extra_params,
    )

    for attempt in range(1, max_retries + 1):
        try:
            content = await _complete(kwargs, state.current_semaphore)
        except Exception as e:
            state.record_failure(e)
            if _is_429_error(e):
                state.record_429()

            if not _is_retryable_error(e):
                logger.error(f"🛡️ [Resilience] {model} failed with a non-retryable error: {state.last_error}")
                break
            if attempt == max_retries:
                logger.error(f"🛡️ [Resilience] {model} still failing after {max_retries} attempts: {state.last_error[:200]}")
                break

            delay = _backoff_delay(attempt)
            state.total_retries += 1
            logger.warning(
                f"🛡️ [Resilience] {model} attempt {attempt}/{max_retries} failed "
                f"({type(e).__name__}), retrying in {delay:.1f}s (safe_mode={state.safe_mode})"
            )
            await asyncio.sleep(delay)
            continue

        state.record_success()
        return content

    logger.warning(f"🛡️ [Resilience] Giving up on {model} (total_429={state.total_429_count}, safe_mode={state.safe_mode})")
    return None
