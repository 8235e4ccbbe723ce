"""
Unified LLM client (shared infrastructure)

Role:
    - One entry point for every hosted-model text completion (litellm underneath)
    - Primary model (Claude 3.5 Haiku) with automatic fallback (GPT-4o-mini)
    - Explicit model cascades (script enhancer) and whole-call retries with backoff
    - Parameter range validation, cost estimation, health probe

Vendor failures never raise from call_llm(): they come back as LLMResult(success=False).
Only caller mistakes (out-of-range parameters) raise LLMParameterError.

Usage:
    from backend.src.common.llm.client import call_llm

    result = await call_llm("Return a JSON object ...", max_tokens=512)
    if result.success:
        print(result.text, result.model_used)
"""

import asyncio
import json
import logging
import re
import time
from typing import Any

from pydantic import BaseModel

from backend.src.common.config import AI_CONFIG, LLM_CONFIG, LLM_PRICING
from backend.src.common.llm.resilience import LLMResilienceState, resilient_llm_call


logger = logging.getLogger(__name__)

PRIMARY_ALIASES = ("auto", "claude", "claude-3.5-haiku", "claude-3-haiku")
LARGE_OUTPUT_MODELS = ("gpt-5", "gpt-4o")
HEALTH_CHECK_PROMPT = 'Generate a simple JSON object with a "test" field set to true.'

_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*")
_CODE_FENCE_END = re.compile(r"\s*```$")


class LLMClientError(Exception):
    """Base exception for LLM calls."""


class LLMParameterError(LLMClientError):
    """Completion parameters out of range."""


class LLMTimeoutError(LLMClientError):
    """The model did not answer within the overall deadline."""


class LLMResult(BaseModel):
    success: bool
    text: str = ""
    model_used: str
    processing_time_ms: int = 0
    retry_count: int = 0
    error: str | None = None


# ============================================================
# Shared resilience state
# ============================================================
_state: LLMResilienceState | None = None


def get_resilience_state() -> LLMResilienceState:
    """Process-wide resilience state (created on first use)."""
    global _state
    if _state is None:
        _state = LLMResilienceState()
    return _state


def reset_resilience_state() -> None:
    global _state
    _state = None


# ============================================================
# Helpers
# ============================================================
def _is_claude(model: str) -> bool:
    return "claude" in model.lower()


def _api_key_for(model: str) -> str | None:
    if _is_claude(model):
        return AI_CONFIG["anthropic_api_key"]
    return AI_CONFIG["openai_api_key"]


def validate_completion_params(
    model: str,
    max_tokens: int | None = None,
    temperature: float | None = None,
    top_p: float | None = None,
    top_k: int | None = None,
    frequency_penalty: float | None = None,
    presence_penalty: float | None = None,
) -> None:
    """
    Check completion parameters against the vendor ranges.

    Raises:
        LLMParameterError: On the first out-of-range value
    """
    is_claude = _is_claude(model)
    token_limit = 16384 if model in LARGE_OUTPUT_MODELS else 4096

    if max_tokens is not None and not 1 <= max_tokens <= token_limit:
        raise LLMParameterError(f"max_tokens must be between 1 and {token_limit} for {model}")

    if temperature is not None:
        temperature_limit = 1.0 if is_claude else 2.0
        if not 0.0 <= temperature <= temperature_limit:
            raise LLMParameterError(f"temperature must be between 0 and {temperature_limit} for {model}")

    if top_p is not None and not 0.0 <= top_p <= 1.0:
        raise LLMParameterError("top_p must be between 0 and 1")

    if top_k is not None and not 1 <= top_k <= 100:
        raise LLMParameterError("top_k must be between 1 and 100")

    if not is_claude:
        for name, value in (("frequency_penalty", frequency_penalty), ("presence_penalty", presence_penalty)):
            if value is not None and not -2.0 <= value <= 2.0:
                raise LLMParameterError(f"{name} must be between -2 and 2")


def resolve_model_chain(model: str = "auto", use_fallback: bool = True) -> list[str]:
    """
    Ordered list of litellm model ids to try.

        auto / claude      -> [primary, fallback]
        gpt-4o-mini        -> [fallback]
        any other model id -> [model, fallback]

    The fallback is dropped when use_fallback is False.
    """
    primary = AI_CONFIG["primary_model"]
    fallback = AI_CONFIG["fallback_model"]

    if model in PRIMARY_ALIASES:
        chain = [primary]
    elif model == fallback:
        return [fallback]
    else:
        chain = [model]

    if use_fallback and fallback not in chain:
        chain.append(fallback)
    return chain


def _build_messages(prompt: str | None, messages: list[dict[str, str]] | None, system_prompt: str | None) -> list[dict[str, str]]:
    if messages:
        built = list(messages)
    elif prompt is not None:
        built = [{"role": "user", "content": prompt}]
    else:
        raise LLMParameterError("Either prompt or messages is required")

    if system_prompt and not any(m.get("role") == "system" for m in built):
        built.insert(0, {"role": "system", "content": system_prompt})
    return built


def _extra_params_for(model: str, top_p: float) -> dict[str, Any]:
    params: dict[str, Any] = {"top_p": top_p, "stop": LLM_CONFIG["stop_sequences"]}
    if not _is_claude(model):
        params.update({"frequency_penalty": 0.0, "presence_penalty": 0.0})
    return params


async def _call_model(
    model: str,
    messages: list[dict[str, str]],
    max_tokens: int,
    temperature: float,
    timeout_sec: float,
    retries: int,
    extra_params: dict[str, Any] | None,
) -> str:
    """Single model through the resilience layer. Raises LLMClientError on failure."""
    state = get_resilience_state()
    # every attempt may take timeout_sec, plus the backoff sleeps in between
    deadline = timeout_sec * (retries + 1) + LLM_CONFIG["retry_max_delay_sec"] * retries

    try:
        text = await asyncio.wait_for(
            resilient_llm_call(
                model=model,
                messages=messages,
                api_key=_api_key_for(model),
                state=state,
                temperature=temperature,
                max_tokens=max_tokens,
                max_retries=retries + 1,
                timeout=timeout_sec,
                extra_params=extra_params,
            ),
            timeout=deadline,
        )
    except asyncio.TimeoutError as e:
        raise LLMTimeoutError(f"{model} timed out after {deadline:.0f}s") from e

    if text is None:
        raise LLMClientError(state.last_error or f"{model} returned no response")
    return text


# ============================================================
# Public API
# ============================================================
async def call_llm(
    prompt: str | None = None,
    *,
    messages: list[dict[str, str]] | None = None,
    model: str = "auto",
    max_tokens: int | None = None,
    temperature: float | None = None,
    use_fallback: bool = True,
    timeout_sec: float | None = None,
    retries: int | None = None,
    system_prompt: str | None = None,
) -> LLMResult:
    """
    Call the primary model, falling back to the next model of the chain on failure.

    Args:
        prompt: User prompt (ignored when messages is given)
        messages: Full chat messages
        model: 'auto', 'claude', 'gpt-4o-mini' or any litellm model id
        max_tokens: Max output tokens (default LLM_CONFIG)
        temperature: Sampling temperature (default LLM_CONFIG)
        use_fallback: Try the fallback model when the first one fails
        timeout_sec: Per-attempt timeout
        retries: Vendor-level retries per model (forwarded to the resilience layer)
        system_prompt: Prepended as a system message

    Returns:
        LLMResult. success=False carries the last vendor error message.

    Raises:
        LLMParameterError: Out-of-range parameters
    """
    max_tokens = max_tokens if max_tokens is not None else LLM_CONFIG["max_tokens"]
    temperature = temperature if temperature is not None else LLM_CONFIG["temperature"]
    timeout_sec = timeout_sec if timeout_sec is not None else LLM_CONFIG["timeout_sec"]
    retries = retries if retries is not None else LLM_CONFIG["max_retries"]

    chain = resolve_model_chain(model, use_fallback)
    for candidate in chain:
        validate_completion_params(candidate, max_tokens=max_tokens, temperature=temperature, top_p=LLM_CONFIG["top_p"])

    chat = _build_messages(prompt, messages, system_prompt)
    start_time = time.time()
    last_error: str | None = None

    for index, candidate in enumerate(chain):
        try:
            text = await _call_model(
                candidate,
                chat,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout_sec=timeout_sec,
                retries=retries,
                extra_params=_extra_params_for(candidate, LLM_CONFIG["top_p"]),
            )
            return LLMResult(
                success=True,
                text=text,
                model_used=candidate,
                processing_time_ms=int((time.time() - start_time) * 1000),
                retry_count=index,
            )
        except LLMClientError as e:
            last_error = str(e)
            logger.warning(f"[LLM] {candidate} failed: {last_error}")

    logger.error(f"[LLM] All models failed ({', '.join(chain)}): {last_error}")
    return LLMResult(
        success=False,
        model_used=chain[-1],
        processing_time_ms=int((time.time() - start_time) * 1000),
        retry_count=len(chain) - 1,
        error=last_error or "No valid model configuration",
    )


async def call_llm_cascade(
    messages: list[dict[str, str]],
    models: list[str],
    max_tokens: int | None = None,
    temperature: float | None = None,
    timeout_sec: float | None = None,
    retries: int = 0,
) -> LLMResult:
    """
    Try each model of an explicit cascade in order; the first non-empty answer wins.

    Parameters are checked per model and a model whose ranges do not fit is skipped.
    """
    max_tokens = max_tokens if max_tokens is not None else LLM_CONFIG["max_tokens"]
    temperature = temperature if temperature is not None else LLM_CONFIG["temperature"]
    timeout_sec = timeout_sec if timeout_sec is not None else LLM_CONFIG["timeout_sec"]

    start_time = time.time()
    last_error: str | None = None

    for index, model in enumerate(models):
        try:
            validate_completion_params(model, max_tokens=max_tokens, temperature=temperature)
            logger.info(f"[LLM] Cascade attempt {index + 1}/{len(models)}: {model}")
            text = await _call_model(
                model,
                messages,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout_sec=timeout_sec,
                retries=retries,
                extra_params=None,
            )
            return LLMResult(
                success=True,
                text=text,
                model_used=model,
                processing_time_ms=int((time.time() - start_time) * 1000),
                retry_count=index,
            )
        except LLMClientError as e:
            last_error = str(e)
            logger.warning(f"[LLM] Cascade model {model} failed: {last_error}")

    return LLMResult(
        success=False,
        model_used=models[-1] if models else "none",
        processing_time_ms=int((time.time() - start_time) * 1000),
        retry_count=max(len(models) - 1, 0),
        error=last_error or "Empty model cascade",
    )


async def call_llm_with_retry(prompt: str, retries: int | None = None, **options: Any) -> LLMResult:
    """
    Retry the whole call_llm() (primary + fallback) with exponential backoff.

    Backoff between attempts: min(base * 2**attempt, cap) seconds.
    """
    max_retries = retries if retries is not None else LLM_CONFIG["max_retries"]
    last_error: str | None = None

    for attempt in range(max_retries + 1):
        result = await call_llm(prompt, retries=0, **options)
        if result.success:
            return result.model_copy(update={"retry_count": attempt})

        last_error = result.error
        if attempt < max_retries:
            delay = min(LLM_CONFIG["retry_base_delay_sec"] * (2**attempt), LLM_CONFIG["retry_max_delay_sec"])
            logger.warning(f"[LLM] Attempt {attempt + 1}/{max_retries + 1} failed, retrying in {delay:.1f}s")
            await asyncio.sleep(delay)

    return LLMResult(
        success=False,
        model_used=AI_CONFIG["primary_model"],
        retry_count=max_retries,
        error=last_error or "Max retries exceeded",
    )


def validate_llm_json(text: str) -> tuple[Any | None, str | None]:
    """Strip a surrounding markdown code fence and parse. Returns (data, error)."""
    clean_text = (text or "").strip()
    if clean_text.startswith("```"):
        clean_text = _CODE_FENCE_END.sub("", _CODE_FENCE_START.sub("", clean_text))

    try:
        return json.loads(clean_text), None
    except json.JSONDecodeError as e:
        return None, e.msg


def estimate_llm_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """USD cost of a call. Unknown models are priced like the fallback model."""
    if model in PRIMARY_ALIASES:
        model = AI_CONFIG["primary_model"]
    pricing = LLM_PRICING.get(model) or LLM_PRICING.get(AI_CONFIG["fallback_model"], {"input": 0.15, "output": 0.60})
    return (input_tokens / 1_000_000) * pricing["input"] + (output_tokens / 1_000_000) * pricing["output"]


async def llm_health_check() -> dict[str, Any]:
    """Probe the primary and the fallback model separately; healthy if either answers."""
    models = [AI_CONFIG["primary_model"], AI_CONFIG["fallback_model"]]

    results = await asyncio.gather(
        *(call_llm(HEALTH_CHECK_PROMPT, model=m, max_tokens=100, use_fallback=False, retries=0) for m in models),
        return_exceptions=True,
    )

    status: dict[str, bool] = {}
    errors: list[str] = []
    for model, result in zip(models, results):
        if isinstance(result, BaseException):
            status[model] = False
            errors.append(f"{model} health check failed: {result}")
        else:
            status[model] = result.success
            if not result.success:
                errors.append(f"{model} health check failed: {result.error}")

    return {"healthy": any(status.values()), "models": status, "errors": errors}
