"""
Refiner Service (Step 2a: polished JSON upgrade)

Role:
    - Upgrade a raw analyzer document into a validated, production-ready refiner document
    - Run the deterministic analyses around the LLM call (content type fixes, asset utilization,
      creative profile, quality assessment)
    - Persist every refinement and return it with a `_metadata` block

Flow:
    validate input → normalize content type → asset utilization / session mode → profile detection
    → prompt → LLM (primary + fallback) → JSON repair → fill refiner_extensions → utilization levels
    → normalize + validate output (one auto-fix pass) → apply profile → quality → persist
"""

import json
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.src.common.config import AI_CONFIG, JSON_REPAIR_CONFIG, REFINER_CONFIG
from backend.src.common.enums import ErrorType, SessionMode
from backend.src.common.fanout import gather_settled
from backend.src.common.llm.client import (
    LLMParameterError,
    LLMResult,
    call_llm,
    estimate_llm_cost,
    llm_health_check,
)
from backend.src.common.llm.json_repair import validate_and_repair_json
from backend.src.common.repositories.base_repository import RepositoryException
from backend.src.refiner.engine.analysis import (
    AssetUtilizationAnalysis,
    ContentTypeNormalization,
    analyze_asset_utilization,
    apply_content_type_normalization,
    auto_fix_schema_issues,
    build_refiner_extensions,
    detect_session_mode,
    normalize_utilization_levels,
)
from backend.src.refiner.engine.profiles import (
    ProfileDetectionResult,
    apply_creative_profile,
    detect_creative_profile,
)
from backend.src.refiner.engine.prompts import generate_refiner_prompt, get_prompt_stats
from backend.src.refiner.engine.quality import QualityValidation, validate_refiner_quality
from backend.src.refiner.models.refiner_result import RefinerResult, generate_refiner_id
from backend.src.refiner.repositories.refiner_result_repository import RefinerResultRepository
from backend.src.refiner.schemas.normalization import normalize_refiner_output
from backend.src.refiner.schemas.refiner import (
    RefineOptions,
    format_validation_errors,
    validate_analyzer_input,
    validate_refiner_output,
)


logger = logging.getLogger(__name__)

REFINER_SCHEMA_HINT = (
    "- Top-level keys: user_request, prompt_analysis, assets, global_analysis, refiner_extensions, "
    "creative_options, creative_direction, production_pipeline, quality_metrics, challenges, recommendations\n"
    "- Keep every key the original JSON already contains; do not invent new keys."
)


class RefinerError(Exception):
    """Refinement failure with the category reported to API clients."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.ANALYSIS,
        details: Any = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details
        self.recoverable = recoverable


@dataclass
class RefinementOutcome:
    """A finished refinement waiting to be stored."""

    document: dict[str, Any]
    record: dict[str, Any] = field(default_factory=dict)


class RefinerService:
    """
    Refiner domain service.

    The LLM layer is stateless; the only dependency is the result repository.
    """

    def __init__(self, result_repo: RefinerResultRepository):
        self.repo = result_repo

    @classmethod
    def from_session(cls, session: AsyncSession) -> "RefinerService":
        """Build the service from an AsyncSession (router dependency)."""
        return cls(RefinerResultRepository(session))

    # ============================================================
    # Public API
    # ============================================================
    async def refine(self, analyzer_output: dict[str, Any], options: RefineOptions | None = None) -> dict[str, Any]:
        """
        Refine one analyzer document.

        Args:
            analyzer_output: Raw analyzer JSON
            options: Model / retry / persistence options

        Returns:
            Refined document with a `_metadata` block

        Raises:
            RefinerError: validation (400) or llm / schema / storage / analysis (500)
        """
        options = options or RefineOptions()
        outcome = await self._run_refinement(analyzer_output, options)
        if self._should_persist(options):
            await self._persist(outcome)
        return outcome.document

    async def batch_refine(
        self, analyzer_outputs: list[dict[str, Any]], options: RefineOptions | None = None
    ) -> list[dict[str, Any]]:
        """
        Refine many documents concurrently with all-settled semantics.

        Refinements run in parallel; results are stored one by one afterwards because
        they share one database session. Each insert runs in its own savepoint, so a
        storage failure only fails that item and rows already stored stay stored.
        """
        options = options or RefineOptions()
        settled = await gather_settled(self._run_refinement(payload, options) for payload in analyzer_outputs)

        results: list[dict[str, Any]] = []
        for item in settled:
            if not item.ok:
                results.append({"success": False, "error": item.error})
                continue
            try:
                if self._should_persist(options):
                    await self._persist(item.value, savepoint=True)
            except RefinerError as e:
                results.append({"success": False, "error": e.message})
                continue
            results.append({"success": True, "data": item.value.document})

        succeeded = sum(1 for result in results if result["success"])
        logger.info(f"[Refiner] Batch refinement completed: {succeeded}/{len(results)} successful")
        return results

    async def get_result(self, refiner_id: str) -> RefinerResult | None:
        try:
            return await self.repo.get(refiner_id)
        except RepositoryException as e:
            raise RefinerError("Database operation failed", ErrorType.STORAGE, details=str(e), recoverable=True) from e

    @staticmethod
    def estimate_refiner_cost(analyzer_output: dict[str, Any], model: str = "auto") -> float:
        """
        Rough USD cost of refining a document.

        Input tokens ≈ len(compact JSON) / 4; the refined document is about 2.5x the input.
        """
        input_tokens = math.ceil(len(json.dumps(analyzer_output, separators=(",", ":"), ensure_ascii=False)) / 4)
        output_tokens = int(input_tokens * 2.5)
        return estimate_llm_cost(model, input_tokens, output_tokens)

    @staticmethod
    def get_stats() -> dict[str, Any]:
        return {
            "supportedModels": [AI_CONFIG["primary_model"], AI_CONFIG["fallback_model"]],
            "primaryModel": AI_CONFIG["primary_model"],
            "fallbackModel": AI_CONFIG["fallback_model"],
            "maxRetries": REFINER_CONFIG["max_retries"],
            "defaultTimeout": REFINER_CONFIG["timeout_sec"],
        }

    @staticmethod
    async def health_check() -> dict[str, Any]:
        return await llm_health_check()

    # ============================================================
    # Pipeline
    # ============================================================
    async def _run_refinement(self, analyzer_output: dict[str, Any], options: RefineOptions) -> RefinementOutcome:
        try:
            return await self._refine_document(analyzer_output, options)
        except RefinerError:
            raise
        except Exception as e:
            logger.exception(f"[Refiner] Unexpected error: {e}")
            raise RefinerError("Unexpected error during refinement", ErrorType.ANALYSIS, details=str(e)) from e

    async def _refine_document(self, analyzer_output: dict[str, Any], options: RefineOptions) -> RefinementOutcome:
        start_time = time.time()

        # 1. Input validation
        try:
            analyzer = validate_analyzer_input(analyzer_output)
        except ValidationError as e:
            logger.warning(f"[Refiner] Invalid analyzer input: {e.error_count()} errors")
            raise RefinerError(
                "Invalid analyzer input format", ErrorType.VALIDATION, details=format_validation_errors(e)
            ) from e

        analyzer_data = analyzer.model_dump(mode="json", exclude_none=True)

        # 2. Deterministic pre-analysis
        analyzer_data, content_type = apply_content_type_normalization(analyzer_data)
        if content_type.contradictions:
            logger.info(f"[Refiner] Content type contradictions fixed: {content_type.contradictions}")

        utilization = analyze_asset_utilization(analyzer_data)
        session_mode = detect_session_mode(analyzer_data)
        logger.info(
            f"[Refiner] Session mode: {session_mode.value}, "
            f"utilization rate: {utilization.utilization_rate:.2f}, primary assets: {len(utilization.primary_assets)}"
        )
        if utilization.needs_elevation:
            logger.info(f"[Refiner] Asset elevation suggestions: {utilization.elevation_suggestions}")

        detection = detect_creative_profile(analyzer_data)
        profile = detection.profile
        if profile:
            logger.info(
                f"🎨 [Refiner] Creative profile: {profile.name} "
                f"(confidence={detection.confidence:.2f}, method={detection.detection_method})"
            )

        prompt, asset_mix, template_used = generate_refiner_prompt(analyzer_data)
        prompt_stats = get_prompt_stats(analyzer_data)

        # 3. LLM
        llm_result = await self._call_refiner_llm(prompt, options)

        # 4. JSON recovery
        repair = await validate_and_repair_json(
            llm_result.text, repair_call=self._repair_call, schema_hint=REFINER_SCHEMA_HINT
        )
        if not repair.valid:
            raise RefinerError(f"Invalid JSON from LLM: {repair.error}", ErrorType.LLM, details=repair.error)
        if not isinstance(repair.data, dict):
            raise RefinerError("Invalid JSON from LLM: expected a JSON object", ErrorType.LLM)
        if repair.repaired:
            logger.info(f"[Refiner] LLM output recovered at stage {repair.stage}")

        # 5. Deterministic fill-ins
        document = self._complete_document(repair.data, analyzer_data, session_mode, utilization, detection)

        # 6. Output validation
        refined = self._validate_output(document)

        # 7. Profile + quality
        if profile:
            refined = apply_creative_profile(refined, profile)
        quality = validate_refiner_quality(analyzer_data, refined)
        report = quality.report
        logger.info(
            f"[Refiner] Quality: score={report.overall_score:.2f}, grade={report.grade}, "
            f"issues={len(report.issues)}, valid={quality.is_valid}"
        )

        refiner_id = generate_refiner_id()
        processing_time_ms = int((time.time() - start_time) * 1000)

        record = {
            "id": refiner_id,
            "analyzer_id": analyzer_data.get("id"),
            "payload": refined,
            "model_used": llm_result.model_used,
            "processing_time_ms": processing_time_ms,
            "retry_count": llm_result.retry_count,
            "template_used": template_used,
            "asset_mix": {"asset_types": asset_mix.asset_types},
            "complexity": prompt_stats["complexity"],
            "creative_profile": profile.id if profile else None,
            "profile_detection": (
                {
                    "profile_id": profile.id,
                    "confidence": detection.confidence,
                    "detection_method": detection.detection_method,
                    "matched_factors_count": len(detection.matched_factors),
                    "alternative_profiles_count": len(detection.alternative_profiles),
                }
                if profile
                else None
            ),
        }

        metadata = {
            "refinerId": refiner_id,
            "processingTimeMs": processing_time_ms,
            "modelUsed": llm_result.model_used,
            "templateUsed": template_used,
            "jsonRepairStage": repair.stage.value,
            "creativeProfile": profile.id if profile else None,
            "profileDetection": self._profile_metadata(detection),
            "qualityAssessment": self._quality_metadata(
                quality, utilization, session_mode, content_type
            ),
        }
        return RefinementOutcome(document={**refined, "_metadata": metadata}, record=record)

    async def _call_refiner_llm(self, prompt: str, options: RefineOptions) -> LLMResult:
        try:
            result = await call_llm(
                prompt,
                model=options.model,
                max_tokens=REFINER_CONFIG["max_tokens"],
                temperature=REFINER_CONFIG["temperature"],
                use_fallback=options.use_fallback,
                timeout_sec=options.timeout_sec or REFINER_CONFIG["timeout_sec"],
                retries=options.max_retries if options.max_retries is not None else REFINER_CONFIG["max_retries"],
            )
        except LLMParameterError as e:
            raise RefinerError(str(e), ErrorType.VALIDATION) from e

        if not result.success:
            logger.error(f"[Refiner] LLM processing failed: {result.error}")
            raise RefinerError(
                f"LLM processing failed: {result.error}", ErrorType.LLM, details=result.error, recoverable=True
            )

        logger.info(
            f"[Refiner] LLM answered with {result.model_used} in {result.processing_time_ms}ms "
            f"(retry_count={result.retry_count})"
        )
        return result

    @staticmethod
    async def _repair_call(prompt: str) -> str | None:
        """Second-chance JSON repair on the fallback model."""
        result = await call_llm(
            prompt,
            model=AI_CONFIG["fallback_model"],
            max_tokens=JSON_REPAIR_CONFIG["repair_max_tokens"],
            temperature=JSON_REPAIR_CONFIG["repair_temperature"],
            use_fallback=False,
            retries=0,
        )
        return result.text if result.success else None

    @staticmethod
    def _complete_document(
        document: dict[str, Any],
        analyzer_data: dict[str, Any],
        session_mode: SessionMode,
        utilization: AssetUtilizationAnalysis,
        detection: ProfileDetectionResult,
    ) -> dict[str, Any]:
        """Fill what models tend to omit: refiner_extensions, utilization levels, utilization score."""
        if not document.get("refiner_extensions"):
            logger.info("[Refiner] Adding missing refiner_extensions...")
            document["refiner_extensions"] = build_refiner_extensions(
                analyzer_data, session_mode, utilization, detection.profile.id if detection.profile else None
            )

        if isinstance(document.get("assets"), list):
            document["assets"] = normalize_utilization_levels(
                [asset for asset in document["assets"] if isinstance(asset, dict)], utilization
            )

        quality_metrics = document.get("quality_metrics")
        if isinstance(quality_metrics, dict) and "asset_utilization_score" not in quality_metrics:
            quality_metrics["asset_utilization_score"] = utilization.utilization_rate

        return document

    @staticmethod
    def _validate_output(document: dict[str, Any]) -> dict[str, Any]:
        """Normalize multilingual enums and validate; one auto-fix pass for the usual enum mistakes."""
        normalized = normalize_refiner_output(document)
        try:
            return validate_refiner_output(normalized).model_dump(mode="json", exclude_none=True)
        except ValidationError as first_error:
            logger.warning(f"[Refiner] Schema validation failed ({first_error.error_count()} errors)")
            locations = [tuple(error["loc"]) for error in first_error.errors()]
            if not auto_fix_schema_issues(normalized, locations):
                logger.error("[Refiner] No automatic fixes available for these issues")
                raise RefinerError(
                    "Schema validation failed", ErrorType.SCHEMA, details=format_validation_errors(first_error)
                ) from first_error

        logger.info("🔧 [Refiner] Retrying validation with fixed JSON")
        try:
            return validate_refiner_output(normalized).model_dump(mode="json", exclude_none=True)
        except ValidationError as second_error:
            logger.error("[Refiner] Schema validation still failed after fixes")
            raise RefinerError(
                "Schema validation failed even after attempted fixes",
                ErrorType.SCHEMA,
                details=format_validation_errors(second_error),
            ) from second_error

    # ============================================================
    # Persistence
    # ============================================================
    @staticmethod
    def _should_persist(options: RefineOptions) -> bool:
        return options.persist if options.persist is not None else REFINER_CONFIG["persist_results"]

    async def _persist(self, outcome: RefinementOutcome, savepoint: bool = False) -> None:
        """
        Store one refinement.

        savepoint=True (batch items) wraps the insert in SAVEPOINT so a failure rolls back
        only this row; otherwise the whole session is rolled back.
        """
        try:
            if savepoint:
                async with self.repo.session.begin_nested():
                    await self.repo.create(outcome.record)
            else:
                await self.repo.create(outcome.record)
        except (RepositoryException, SQLAlchemyError) as e:
            logger.error(f"[Refiner] Database operation failed: {e}")
            if not savepoint:
                await self.repo.session.rollback()
            raise RefinerError("Database operation failed", ErrorType.STORAGE, details=str(e), recoverable=True) from e
        logger.info(f"[Refiner] Stored refinement {outcome.record['id']}")

    # ============================================================
    # Metadata
    # ============================================================
    @staticmethod
    def _profile_metadata(detection: ProfileDetectionResult) -> dict[str, Any] | None:
        if not detection.profile:
            return None
        return {
            "profileId": detection.profile.id,
            "profileName": detection.profile.name,
            "confidence": detection.confidence,
            "detectionMethod": detection.detection_method,
            "matchedFactors": detection.matched_factors[:5],
            "alternativeProfiles": [
                {"id": alt.profile.id, "name": alt.profile.name, "confidence": alt.confidence}
                for alt in detection.alternative_profiles
            ],
        }

    @staticmethod
    def _quality_metadata(
        quality: QualityValidation,
        utilization: AssetUtilizationAnalysis,
        session_mode: SessionMode,
        content_type: ContentTypeNormalization,
    ) -> dict[str, Any]:
        report = quality.report
        return {
            "overallScore": report.overall_score,
            "grade": report.grade.value,
            "issuesCount": len(report.issues),
            "recommendationsCount": len(report.recommendations),
            "hasIssues": bool(report.issues),
            "confidenceGap": report.metrics.confidence_gap,
            "hasPlaceholder": report.metrics.has_placeholders,
            "assetIntegrationScore": report.metrics.asset_integration_score,
            "assetUtilizationScore": utilization.utilization_rate,
            "sessionMode": session_mode.value,
            "utilizationRate": utilization.utilization_rate,
            "primaryAssetsCount": len(utilization.primary_assets),
            "referenceOnlyAssetsCount": len(utilization.reference_only_assets),
            "contentTypeCorrected": content_type.needs_correction,
            "isValid": quality.is_valid,
            "detailedIssues": [
                {
                    "type": issue.type.value,
                    "severity": issue.severity.value,
                    "message": issue.message,
                    "suggestion": issue.suggestion,
                }
                for issue in report.issues
            ],
        }
