"""
ScriptEnhancerService tests

Test strategy:
- call_llm_cascade (script generation) and call_llm (JSON repair) are patched where the service imports them
- The repository is a mock; storage failures must not fail the request
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from backend.src.common.config import AI_CONFIG
from backend.src.common.enums import ErrorType
from backend.src.common.repositories.base_repository import RepositoryException
from backend.src.script.engine.prompts import build_example_script
from backend.src.script.schemas.script import ScriptEnhancerInput
from backend.src.script.services.script_service import ScriptEnhancerError, ScriptEnhancerService
from tests.conftest import llm_failed, llm_ok


CASCADE = "backend.src.script.services.script_service.call_llm_cascade"
CALL_LLM = "backend.src.script.services.script_service.call_llm"


def _script_answer(script_input: dict) -> str:
    example = build_example_script(ScriptEnhancerInput.model_validate(script_input))
    return f"=== SCRIPT TITLE ===\nCompound Interest 101\n\n<json>{json.dumps(example)}</json>"


# ============================================================
# 1. Generated script
# ============================================================
class TestEnhance:
    async def test_happy_path(self, script_repo, script_input):
        """Human-readable part and JSON are split, validated, assessed and stored."""
        service = ScriptEnhancerService(script_repo)

        with patch(CASCADE, new=AsyncMock(return_value=llm_ok(_script_answer(script_input), model="gpt-5"))):
            result = await service.enhance(script_input)

        assert result["success"] is True
        assert result["human_readable_script"] == "=== SCRIPT TITLE ===\nCompound Interest 101"
        assert result["script"]["human_readable_script"] == result["human_readable_script"]
        assert "human_readable_script" not in result["production_json"]
        assert len(result["script"]["scenes"]) == 2

        metadata = result["metadata"]
        assert metadata["profile"] == "educational_explainer"
        assert metadata["modelUsed"] == "gpt-5"
        assert metadata["fallback"] is False
        assert metadata["stored"] is True
        assert metadata["scriptId"].startswith("script_")

        record = script_repo.create.await_args.args[0]
        assert record["id"] == metadata["scriptId"]
        assert record["profile_id"] == "educational_explainer"
        assert record["duration_seconds"] == 30
        assert record["is_fallback"] is False

    async def test_cascade_receives_script_models(self, script_repo, script_input):
        service = ScriptEnhancerService(script_repo)
        cascade = AsyncMock(return_value=llm_ok(_script_answer(script_input)))

        with patch(CASCADE, new=cascade):
            await service.enhance(script_input, persist=False)

        assert cascade.await_args.kwargs["models"] == AI_CONFIG["script_models"]
        messages = cascade.await_args.args[0]
        assert messages[0]["role"] == "system"
        assert "CREATIVE PROFILE: educational_explainer" in messages[1]["content"]
        script_repo.create.assert_not_awaited()

    async def test_unrecoverable_json_uses_fallback(self, script_repo, script_input):
        """When neither local nor LLM repair recovers the JSON, a fallback script is synthesized."""
        service = ScriptEnhancerService(script_repo)
        repair = AsyncMock(return_value=llm_failed())

        with patch(CASCADE, new=AsyncMock(return_value=llm_ok("Sorry, here is a story instead."))), patch(
            CALL_LLM, new=repair
        ):
            result = await service.enhance(script_input)

        assert result["metadata"]["fallback"] is True
        assert result["human_readable_script"] == "Human-readable script not available"
        assert len(result["script"]["scenes"]) == 12
        assert repair.await_args.kwargs["model"] == AI_CONFIG["repair_model"]
        assert script_repo.create.await_args.args[0]["is_fallback"] is True

    async def test_storage_failure_does_not_fail_request(self, script_repo, script_input):
        script_repo.create.side_effect = RepositoryException("disk full")
        service = ScriptEnhancerService(script_repo)

        with patch(CASCADE, new=AsyncMock(return_value=llm_ok(_script_answer(script_input)))):
            result = await service.enhance(script_input)

        assert result["success"] is True
        assert result["metadata"]["stored"] is False
        script_repo.session.rollback.assert_awaited_once()


# ============================================================
# 2. Failures
# ============================================================
class TestEnhanceErrors:
    async def test_invalid_input(self, script_repo):
        service = ScriptEnhancerService(script_repo)
        cascade = AsyncMock()

        with patch(CASCADE, new=cascade), pytest.raises(ScriptEnhancerError) as exc_info:
            await service.enhance({"userPrompt": "coffee", "options": {"durationSeconds": -5}})

        assert exc_info.value.error_type == ErrorType.VALIDATION
        assert exc_info.value.message == "Invalid script enhancer input"
        assert exc_info.value.details[0]["path"] == "user_request.duration_seconds"
        cascade.assert_not_awaited()

    async def test_llm_failure(self, script_repo, script_input):
        service = ScriptEnhancerService(script_repo)

        with patch(CASCADE, new=AsyncMock(return_value=llm_failed())), pytest.raises(ScriptEnhancerError) as exc_info:
            await service.enhance(script_input)

        assert exc_info.value.error_type == ErrorType.LLM
        assert exc_info.value.message == "LLM call failed: RateLimitError: 429"

    async def test_get_result_wraps_repository_errors(self, script_repo):
        script_repo.get.side_effect = RepositoryException("boom")

        with pytest.raises(ScriptEnhancerError) as exc_info:
            await ScriptEnhancerService(script_repo).get_result("script_1")

        assert exc_info.value.error_type == ErrorType.STORAGE
