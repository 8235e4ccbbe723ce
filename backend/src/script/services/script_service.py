"""
Script Enhancer Service (Step 3: studio-grade script)

Role:
    - Turn a refined document into a production-ready script (scenes, voiceover, music, consistency)
    - Recover the script JSON from the LLM answer, or synthesize a fallback script when it cannot be recovered
    - Assess script quality and store every script

Flow:
    adapt legacy body → validate → prompt → model cascade → split human-readable / <json>
    → JSON repair (repair LLM) → backfill presets → validate → quality → persist
    (JSON repair failure → synthesized fallback script → backfill → validate → quality → persist)
"""

import logging
import time
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.src.common.config import AI_CONFIG, JSON_REPAIR_CONFIG, SCRIPT_CONFIG
from backend.src.common.enums import ErrorType
from backend.src.common.llm.client import LLMResult, call_llm, call_llm_cascade
from backend.src.common.llm.json_repair import validate_and_repair_json
from backend.src.common.repositories.base_repository import RepositoryException
from backend.src.script.engine.fallback import backfill_script_fields, create_fallback_script
from backend.src.script.engine.prompts import (
    SCRIPT_SYSTEM_PROMPT,
    build_script_prompt,
    resolve_profile_id,
    split_script_response,
)
from backend.src.script.engine.quality import assess_script_quality
from backend.src.script.models.script_result import ScriptResult, generate_script_id
from backend.src.script.repositories.script_result_repository import ScriptResultRepository
from backend.src.script.schemas.script import Script, ScriptEnhancerInput, adapt_request_format, validate_script


logger = logging.getLogger(__name__)

JSON_REPAIR_SYSTEM_PROMPT = (
    "You are a JSON repair assistant. Fix broken JSON and return only valid JSON wrapped in <json>...</json> tags."
)

SCRIPT_SCHEMA_HINT = (
    "- Top-level keys: script_metadata, scenes, global_voiceover, music_plan, asset_integration, "
    "quality_assurance, consistency, scene_enrichment\n"
    "- Every scene needs scene_id, duration, narration, visual_anchor, suggested_effects, music_cue, "
    "subtitles, scene_purpose, emotional_tone"
)

MISSING_HUMAN_READABLE = "Human-readable script not available"


def _error_details(error: ValidationError) -> list[dict[str, Any]]:
    return [{"path": ".".join(str(part) for part in item["loc"]), "message": item["msg"]} for item in error.errors()]


class ScriptEnhancerError(Exception):
    """Script generation failure with the category reported to API clients."""

    def __init__(self, message: str, error_type: ErrorType = ErrorType.ANALYSIS, details: Any = None):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details


class ScriptEnhancerService:
    def __init__(self, result_repo: ScriptResultRepository):
        self.repo = result_repo

    @classmethod
    def from_session(cls, session: AsyncSession) -> "ScriptEnhancerService":
        return cls(ScriptResultRepository(session))

    # ============================================================
    # Public API
    # ============================================================
    async def enhance(self, payload: dict[str, Any], persist: bool | None = None) -> dict[str, Any]:
        """
        Generate a script for one refined document.

        Args:
            payload: refined document (ScriptEnhancerInput shape) or the legacy loose body
            persist: override SCRIPT_PERSIST_RESULTS

        Returns:
            {"success", "script", "production_json", "human_readable_script",
             "quality_assessment", "metadata"}

        Raises:
            ScriptEnhancerError: validation (400) or llm / schema / analysis (500)
        """
        try:
            return await self._enhance(payload, persist)
        except ScriptEnhancerError:
            raise
        except Exception as e:
            logger.exception(f"🎬 [ScriptEnhancer] Unexpected error: {e}")
            raise ScriptEnhancerError("Unexpected error during script generation", details=str(e)) from e

    async def get_result(self, script_id: str) -> ScriptResult | None:
        try:
            return await self.repo.get(script_id)
        except RepositoryException as e:
            raise ScriptEnhancerError("Database operation failed", ErrorType.STORAGE, details=str(e)) from e

    # ============================================================
    # Pipeline
    # ============================================================
    async def _enhance(self, payload: dict[str, Any], persist: bool | None) -> dict[str, Any]:
        start_time = time.time()
        logger.info(f"🎬 [ScriptEnhancer] Starting script generation (keys={list(payload)[:10]})")

        data = self._validate_input(payload)
        profile_id = resolve_profile_id(data)

        prompt = build_script_prompt(data)
        llm_result = await self._call_script_llm(prompt)

        human_readable, json_text = split_script_response(llm_result.text)
        if human_readable:
            logger.info(f"🎬 [ScriptEnhancer] Human-readable script extracted ({len(human_readable)} chars)")
        else:
            logger.info("🎬 [ScriptEnhancer] JSON-only response detected")

        repair = await validate_and_repair_json(
            json_text, repair_call=self._repair_call, schema_hint=SCRIPT_SCHEMA_HINT
        )
        logger.info(
            f"🎬 [ScriptEnhancer] JSON validation: valid={repair.valid}, "
            f"repaired={repair.repaired}, stage={repair.stage}"
        )

        is_fallback = not repair.valid or not isinstance(repair.data, dict)
        if is_fallback:
            logger.warning(f"🎬 [ScriptEnhancer] Unrecoverable JSON ({repair.error}), synthesizing fallback script")
            script = self._build_fallback(data, profile_id, repair.error)
        else:
            script = self._build_script(repair.data, profile_id, human_readable)

        quality = assess_script_quality(script, data)
        logger.info(f"🎬 [ScriptEnhancer] Quality assessment: {quality.to_summary()}")

        processing_time_ms = int((time.time() - start_time) * 1000)
        script_id = generate_script_id()
        script_data = script.model_dump(mode="json", exclude_none=True)
        quality_data = quality.model_dump(mode="json")

        should_persist = persist if persist is not None else SCRIPT_CONFIG["persist_results"]
        stored = False
        if should_persist:
            stored = await self._persist(
                {
                    "id": script_id,
                    "user_prompt": data.user_request.original_prompt,
                    "profile_id": data.profile_id or "general",
                    "duration_seconds": data.user_request.duration_seconds,
                    "script_data": script_data,
                    "quality_assessment": quality_data,
                    "processing_time_ms": processing_time_ms,
                    "is_fallback": is_fallback,
                }
            )

        logger.info(f"🎬 [ScriptEnhancer] Script generation completed in {processing_time_ms}ms")
        return {
            "success": True,
            "script": script_data,
            "production_json": {k: v for k, v in script_data.items() if k != "human_readable_script"},
            "human_readable_script": script.human_readable_script,
            "quality_assessment": quality_data,
            "metadata": {
                "scriptId": script_id,
                "profile": data.profile_id or "general",
                "modelUsed": llm_result.model_used,
                "processingTimeMs": processing_time_ms,
                "timestamp": datetime.now(UTC).isoformat(),
                "fallback": is_fallback,
                "stored": stored,
            },
        }

    @staticmethod
    def _validate_input(payload: dict[str, Any]) -> ScriptEnhancerInput:
        try:
            adapted = adapt_request_format(payload)
        except (AttributeError, TypeError) as e:
            raise ScriptEnhancerError(f"Failed to adapt request format: {e}", ErrorType.VALIDATION) from e

        try:
            data = ScriptEnhancerInput.model_validate(adapted)
        except ValidationError as e:
            logger.warning(f"🎬 [ScriptEnhancer] Invalid input: {e.error_count()} errors")
            raise ScriptEnhancerError(
                "Invalid script enhancer input",
                ErrorType.VALIDATION,
                details=_error_details(e),
            ) from e
        logger.info("🎬 [ScriptEnhancer] Input validation successful")
        return data

    async def _call_script_llm(self, prompt: str) -> LLMResult:
        messages = [
            {"role": "system", "content": SCRIPT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        result = await call_llm_cascade(
            messages,
            models=AI_CONFIG["script_models"],
            max_tokens=SCRIPT_CONFIG["max_tokens"],
            temperature=SCRIPT_CONFIG["temperature"],
        )
        if not result.success:
            logger.error(f"🎬 [ScriptEnhancer] LLM call failed: {result.error}")
            raise ScriptEnhancerError(f"LLM call failed: {result.error}", ErrorType.LLM, details=result.error)

        logger.info(f"🎬 [ScriptEnhancer] Success with model: {result.model_used}")
        return result

    @staticmethod
    async def _repair_call(prompt: str) -> str | None:
        """JSON repair on the dedicated repair model."""
        result = await call_llm(
            messages=[
                {"role": "system", "content": JSON_REPAIR_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            model=AI_CONFIG["repair_model"],
            max_tokens=JSON_REPAIR_CONFIG["repair_max_tokens"],
            temperature=JSON_REPAIR_CONFIG["repair_temperature"],
            use_fallback=False,
            retries=0,
        )
        return result.text if result.success else None

    @staticmethod
    def _build_script(document: dict[str, Any], profile_id: str, human_readable: str) -> Script:
        backfilled = backfill_script_fields(document, profile_id)
        backfilled["human_readable_script"] = human_readable or MISSING_HUMAN_READABLE
        try:
            return validate_script(backfilled)
        except ValidationError as e:
            logger.error(f"🎬 [ScriptEnhancer] Script validation failed: {e.error_count()} errors")
            raise ScriptEnhancerError(
                f"Script JSON validation failed: {e.error_count()} errors",
                ErrorType.SCHEMA,
                details=_error_details(e),
            ) from e

    @staticmethod
    def _build_fallback(data: ScriptEnhancerInput, profile_id: str, repair_error: str | None) -> Script:
        backfilled = backfill_script_fields(create_fallback_script(data), profile_id)
        backfilled["human_readable_script"] = MISSING_HUMAN_READABLE
        try:
            script = validate_script(backfilled)
        except ValidationError as e:
            logger.error(f"🎬 [ScriptEnhancer] Fallback script creation failed: {e}")
            raise ScriptEnhancerError(
                f"JSON parsing failed and fallback creation failed: {repair_error}", ErrorType.SCHEMA
            ) from e
        logger.info("🎬 [ScriptEnhancer] Fallback script created successfully")
        return script

    async def _persist(self, record: dict[str, Any]) -> bool:
        """Store the script; a storage failure is logged and does not fail the request."""
        try:
            await self.repo.create(record)
        except RepositoryException as e:
            logger.warning(f"🎬 [ScriptEnhancer] Storage failed: {e}")
            await self.repo.session.rollback()
            return False
        logger.info(f"🎬 [ScriptEnhancer] Stored script {record['id']}")
        return True


