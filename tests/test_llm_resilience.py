"""
LLM resilience layer unit tests

Test strategy:
- LLMResilienceState: 429 counters and safe mode switching
- Error classification: rate limit vs retryable vs fatal
- resilient_llm_call: backoff, safe mode and graceful degradation (litellm mocked)
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from backend.src.common.llm.resilience import (
    SAFE_MODE_THRESHOLD,
    LLMResilienceState,
    _is_429_error,
    _is_retryable_error,
    resilient_llm_call,
)


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class RateLimitError(Exception):
    pass


# ============================================================
# 1. LLMResilienceState
# ============================================================
class TestLLMResilienceState:
    def test_initial_state(self):
        """A fresh state is out of safe mode with zeroed counters."""
        state = LLMResilienceState()
        assert state.safe_mode is False
        assert state.consecutive_429_count == 0
        assert state.total_calls == 0
        assert state.last_error is None

    def test_success_clears_rate_limit_streak(self):
        state = LLMResilienceState()
        state.consecutive_429_count = 2
        state.record_success()
        assert state.consecutive_429_count == 0

    def test_threshold_switches_to_single_slot(self):
        """Reaching the threshold of consecutive 429s enables safe mode."""
        state = LLMResilienceState()
        for _ in range(SAFE_MODE_THRESHOLD):
            state.record_429()
        assert state.safe_mode is True
        assert state.safe_mode_activated_at is not None
        assert state.current_semaphore is state._safe_semaphore

    def test_streak_below_threshold_keeps_full_concurrency(self):
        state = LLMResilienceState()
        for _ in range(SAFE_MODE_THRESHOLD - 1):
            state.record_429()
        assert state.safe_mode is False

    def test_safe_mode_survives_success(self):
        """Safe mode stays on for the rest of the session."""
        state = LLMResilienceState()
        for _ in range(SAFE_MODE_THRESHOLD):
            state.record_429()
        state.record_success()
        assert state.consecutive_429_count == 0
        assert state.safe_mode is True

    def test_get_stats(self):
        state = LLMResilienceState()
        state.total_calls = 10
        state.total_retries = 3
        stats = state.get_stats()
        assert stats["total_calls"] == 10
        assert stats["total_retries"] == 3
        assert stats["safe_mode_activated"] is False


# ============================================================
# 2. Error classification
# ============================================================
class TestErrorDetection:
    def test_rate_limit_type(self):
        assert _is_429_error(RateLimitError("slow down"))

    def test_quota_message(self):
        assert _is_429_error(Exception("You exceeded your current quota"))

    def test_status_code_in_message(self):
        assert _is_429_error(Exception("Error code: 429"))

    def test_plain_error_is_not_429(self):
        assert not _is_429_error(ValueError("invalid input"))

    @pytest.mark.parametrize(
        "error",
        [
            Exception("Internal Server Error 500"),
            Exception("502 Bad Gateway"),
            Exception("request timeout"),
            Exception("connection reset by peer"),
            Exception("overloaded_error: Overloaded"),
        ],
    )
    def test_retryable_errors(self, error):
        assert _is_retryable_error(error)

    def test_bad_request_is_not_retryable(self):
        assert not _is_retryable_error(ValueError("invalid JSON schema"))


# ============================================================
# 3. resilient_llm_call (litellm mocked)
# ============================================================
class TestResilientLLMCall:
    async def test_successful_call(self):
        with patch("backend.src.common.llm.resilience.litellm") as mock_litellm:
            mock_litellm.completion.return_value = _completion('{"result": "success"}')

            result = await resilient_llm_call(model="gpt-4o-mini", messages=[{"role": "user", "content": "hi"}])

        assert result == '{"result": "success"}'

    async def test_completion_kwargs(self):
        """api_key, timeout and extra params are forwarded to litellm."""
        with patch("backend.src.common.llm.resilience.litellm") as mock_litellm:
            mock_litellm.completion.return_value = _completion("ok")

            await resilient_llm_call(
                model="gpt-4o-mini",
                messages=[{"role": "user", "content": "hi"}],
                api_key="sk-test",
                timeout=12.0,
                extra_params={"top_p": 0.9},
            )

        kwargs = mock_litellm.completion.call_args.kwargs
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["timeout"] == 12.0
        assert kwargs["top_p"] == 0.9

    async def test_429_triggers_retry(self):
        with patch("backend.src.common.llm.resilience.litellm") as mock_litellm:
            mock_litellm.completion.side_effect = [RateLimitError("429 rate limit"), _completion("recovered")]
            state = LLMResilienceState()

            with patch("backend.src.common.llm.resilience.asyncio.sleep", new_callable=AsyncMock):
                result = await resilient_llm_call(
                    model="gpt-4o", messages=[{"role": "user", "content": "hi"}], state=state, max_retries=3
                )

        assert result == "recovered"
        assert state.total_429_count == 1
        assert state.total_retries == 1
        assert state.consecutive_429_count == 0

    async def test_exhausted_retries_return_none(self):
        with patch("backend.src.common.llm.resilience.litellm") as mock_litellm:
            mock_litellm.completion.side_effect = RateLimitError("429 rate limit")
            state = LLMResilienceState()

            with patch("backend.src.common.llm.resilience.asyncio.sleep", new_callable=AsyncMock):
                result = await resilient_llm_call(
                    model="gpt-4o", messages=[{"role": "user", "content": "hi"}], state=state, max_retries=2
                )

        assert result is None
        assert mock_litellm.completion.call_count == 2
        assert "RateLimitError" in state.last_error

    async def test_safe_mode_activation_via_repeated_429(self):
        with patch("backend.src.common.llm.resilience.litellm") as mock_litellm:
            mock_litellm.completion.side_effect = [RateLimitError("429")] * SAFE_MODE_THRESHOLD + [_completion("ok")]
            state = LLMResilienceState()

            with patch("backend.src.common.llm.resilience.asyncio.sleep", new_callable=AsyncMock):
                result = await resilient_llm_call(
                    model="gpt-4o",
                    messages=[{"role": "user", "content": "hi"}],
                    state=state,
                    max_retries=SAFE_MODE_THRESHOLD + 1,
                )

        assert result == "ok"
        assert state.safe_mode is True

    async def test_bad_request_is_not_retried(self):
        with patch("backend.src.common.llm.resilience.litellm") as mock_litellm:
            mock_litellm.completion.side_effect = ValueError("invalid request body")

            result = await resilient_llm_call(
                model="gpt-4o", messages=[{"role": "user", "content": "hi"}], max_retries=3
            )

        assert result is None
        assert mock_litellm.completion.call_count == 1

    async def test_empty_response_degrades(self):
        """An empty completion is treated as a failed call."""
        with patch("backend.src.common.llm.resilience.litellm") as mock_litellm:
            mock_litellm.completion.return_value = _completion(None)
            state = LLMResilienceState()

            result = await resilient_llm_call(
                model="gpt-4o", messages=[{"role": "user", "content": "hi"}], state=state, max_retries=2
            )

        assert result is None
        assert "empty response" in state.last_error
