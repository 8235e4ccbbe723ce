"""
Unified LLM client unit tests

The resilience layer is mocked: these tests only cover model routing, fallback,
cascades, parameter validation and the small helpers.
"""

from unittest.mock import AsyncMock, patch

import pytest

from backend.src.common.config import AI_CONFIG, LLM_PRICING
from backend.src.common.llm import client as llm_client
from backend.src.common.llm.client import (
    LLMParameterError,
    call_llm,
    call_llm_cascade,
    call_llm_with_retry,
    estimate_llm_cost,
    llm_health_check,
    resolve_model_chain,
    validate_completion_params,
    validate_llm_json,
)


PRIMARY = AI_CONFIG["primary_model"]
FALLBACK = AI_CONFIG["fallback_model"]


@pytest.fixture(autouse=True)
def fresh_state():
    llm_client.reset_resilience_state()
    yield
    llm_client.reset_resilience_state()


# ============================================================
# 1. Routing & parameters
# ============================================================
class TestModelRouting:
    def test_auto_uses_primary_then_fallback(self):
        assert resolve_model_chain("auto") == [PRIMARY, FALLBACK]

    def test_claude_alias(self):
        assert resolve_model_chain("claude")[0] == PRIMARY

    def test_fallback_model_alone(self):
        assert resolve_model_chain(FALLBACK) == [FALLBACK]

    def test_explicit_model_without_fallback(self):
        assert resolve_model_chain("gpt-4o", use_fallback=False) == ["gpt-4o"]

    def test_explicit_model_with_fallback(self):
        assert resolve_model_chain("gpt-4o") == ["gpt-4o", FALLBACK]


class TestCompletionParams:
    def test_valid_params(self):
        validate_completion_params("gpt-4o-mini", max_tokens=2048, temperature=0.1, top_p=0.9)

    def test_large_output_models_accept_more_tokens(self):
        validate_completion_params("gpt-5", max_tokens=16000)
        with pytest.raises(LLMParameterError, match="max_tokens"):
            validate_completion_params("gpt-4o-mini", max_tokens=16000)

    def test_claude_temperature_limit(self):
        with pytest.raises(LLMParameterError, match="temperature"):
            validate_completion_params("anthropic/claude-3-5-haiku-20241022", temperature=1.5)
        validate_completion_params("gpt-4o-mini", temperature=1.5)

    def test_top_p_range(self):
        with pytest.raises(LLMParameterError, match="top_p"):
            validate_completion_params("gpt-4o-mini", top_p=1.5)

    def test_penalties_only_checked_for_openai(self):
        with pytest.raises(LLMParameterError, match="frequency_penalty"):
            validate_completion_params("gpt-4o-mini", frequency_penalty=3.0)
        validate_completion_params("anthropic/claude-3-5-haiku-20241022", frequency_penalty=3.0)


# ============================================================
# 2. Helpers
# ============================================================
class TestHelpers:
    def test_validate_llm_json_strips_fence(self):
        data, error = validate_llm_json('```json\n{"test": true}\n```')
        assert error is None
        assert data == {"test": True}

    def test_validate_llm_json_error(self):
        data, error = validate_llm_json("{oops")
        assert data is None
        assert error

    def test_estimate_cost_known_model(self):
        cost = estimate_llm_cost("gpt-4o-mini", 1_000_000, 1_000_000)
        assert cost == pytest.approx(LLM_PRICING["gpt-4o-mini"]["input"] + LLM_PRICING["gpt-4o-mini"]["output"])

    def test_estimate_cost_unknown_model_uses_fallback_pricing(self):
        assert estimate_llm_cost("some-new-model", 1000, 1000) == estimate_llm_cost(FALLBACK, 1000, 1000)


# ============================================================
# 3. call_llm / cascade (resilience layer mocked)
# ============================================================
class TestCallLLM:
    async def test_primary_success(self):
        with patch.object(llm_client, "resilient_llm_call", new=AsyncMock(return_value='{"ok": true}')) as mock_call:
            result = await call_llm("prompt")

        assert result.success is True
        assert result.text == '{"ok": true}'
        assert result.model_used == PRIMARY
        assert result.retry_count == 0
        assert mock_call.await_args.kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    async def test_falls_back_when_primary_fails(self):
        with patch.object(llm_client, "resilient_llm_call", new=AsyncMock(side_effect=[None, "fallback text"])):
            result = await call_llm("prompt")

        assert result.success is True
        assert result.model_used == FALLBACK
        assert result.retry_count == 1

    async def test_all_models_fail(self):
        with patch.object(llm_client, "resilient_llm_call", new=AsyncMock(return_value=None)):
            result = await call_llm("prompt")

        assert result.success is False
        assert result.error
        assert result.model_used == FALLBACK

    async def test_system_prompt_prepended(self):
        with patch.object(llm_client, "resilient_llm_call", new=AsyncMock(return_value="ok")) as mock_call:
            await call_llm("prompt", system_prompt="be strict", use_fallback=False)

        messages = mock_call.await_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "be strict"}

    async def test_missing_prompt_raises(self):
        with pytest.raises(LLMParameterError):
            await call_llm()

    async def test_out_of_range_params_raise(self):
        with pytest.raises(LLMParameterError):
            await call_llm("prompt", max_tokens=0)


class TestCascade:
    async def test_first_answer_wins(self):
        with patch.object(llm_client, "resilient_llm_call", new=AsyncMock(side_effect=[None, "second"])):
            result = await call_llm_cascade([{"role": "user", "content": "x"}], models=["gpt-5", "gpt-4o"])

        assert result.success is True
        assert result.text == "second"
        assert result.model_used == "gpt-4o"
        assert result.retry_count == 1

    async def test_models_with_unfit_params_are_skipped(self):
        """Claude cannot take 4000+ tokens, so the cascade moves on without calling it."""
        with patch.object(llm_client, "resilient_llm_call", new=AsyncMock(return_value="ok")) as mock_call:
            result = await call_llm_cascade(
                [{"role": "user", "content": "x"}],
                models=["anthropic/claude-3-5-haiku-20241022", "gpt-4o"],
                max_tokens=8000,
            )

        assert result.model_used == "gpt-4o"
        assert mock_call.await_count == 1

    async def test_empty_cascade(self):
        result = await call_llm_cascade([{"role": "user", "content": "x"}], models=[])
        assert result.success is False
        assert result.error == "Empty model cascade"


class TestRetryAndHealth:
    async def test_call_llm_with_retry_recovers(self):
        failed = llm_client.LLMResult(success=False, model_used=FALLBACK, error="boom")
        ok = llm_client.LLMResult(success=True, text="ok", model_used=PRIMARY)

        with patch.object(llm_client, "call_llm", new=AsyncMock(side_effect=[failed, ok])), patch.object(
            llm_client.asyncio, "sleep", new=AsyncMock()
        ):
            result = await call_llm_with_retry("prompt", retries=2)

        assert result.success is True
        assert result.retry_count == 1

    async def test_health_check_healthy_if_any_model_answers(self):
        ok = llm_client.LLMResult(success=True, text="{}", model_used=PRIMARY)
        failed = llm_client.LLMResult(success=False, model_used=FALLBACK, error="down")

        with patch.object(llm_client, "call_llm", new=AsyncMock(side_effect=[ok, failed])):
            health = await llm_health_check()

        assert health["healthy"] is True
        assert health["models"][PRIMARY] is True
        assert health["models"][FALLBACK] is False
        assert len(health["errors"]) == 1
