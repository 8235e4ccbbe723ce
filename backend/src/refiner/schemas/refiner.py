"""
Refiner Pydantic Schemas

AnalyzerInput: what the refiner receives from the query analyzer (lenient, extra keys kept).
RefinerOutput: the polished, production-ready document the refiner must return (strict).
RefineRequest / BatchRefineRequest: HTTP request bodies.
"""

from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError

from backend.src.common.enums import AssetType, SessionMode, UtilizationLevel
from backend.src.refiner.schemas.normalization import (
    COMPLETION_STATUS_INPUT,
    COMPLEXITY_MAP,
    IMPACT_MAP,
    PRIORITY_MAP,
    WORKLOAD_MAP,
)


def _one_of(allowed: set[str]) -> AfterValidator:
    """Case-insensitive membership check for multilingual enum values."""

    def check(value: str) -> str:
        if value.lower() not in allowed:
            raise ValueError(f"unsupported value '{value}'")
        return value

    return AfterValidator(check)


Complexity = Annotated[str, _one_of(set(COMPLEXITY_MAP))]
Workload = Annotated[str, _one_of(set(WORKLOAD_MAP))]
CompletionStatus = Annotated[str, _one_of(COMPLETION_STATUS_INPUT)]
Impact = Annotated[str, _one_of(set(IMPACT_MAP))]
Priority = Annotated[str, _one_of(set(PRIORITY_MAP))]


# ============================================================
# Analyzer input (lenient)
# ============================================================
class UserRequestInput(BaseModel):
    original_prompt: str = Field(..., description="User's original request text")
    intent: Literal["image", "video", "audio", "mixed"] | None = None
    duration_seconds: float | None = None
    aspect_ratio: str | None = None
    platform: str | None = None
    image_count: int | None = None


class ContentTypeAnalysisInput(BaseModel):
    needs_explanation: bool | None = None
    needs_charts: bool | None = None
    needs_diagrams: bool | None = None
    needs_educational_content: bool | None = None
    content_complexity: Complexity | None = None
    requires_visual_aids: bool | None = None
    is_instructional: bool | None = None
    needs_data_visualization: bool | None = None
    requires_interactive_elements: bool | None = None
    content_category: str | None = None


class PromptAnalysisInput(BaseModel):
    user_intent_description: str | None = None
    reformulated_prompt: str | None = None
    clarity_score: float | None = Field(None, ge=1, le=10)
    suggested_improvements: list[str] | None = None
    content_type_analysis: ContentTypeAnalysisInput | None = None


class AssetInput(BaseModel):
    id: str
    type: AssetType
    user_description: str | None = None
    ai_caption: str | None = None
    objects_detected: list[str] | None = None
    style: str | None = None
    mood: str | None = None
    quality_score: float | None = Field(None, ge=0, le=1)
    role: str | None = None
    recommended_edits: list[str] | None = None


class GlobalAnalysisInput(BaseModel):
    goal: str | None = None
    constraints: dict[str, Any] | None = None
    asset_roles: dict[str, str] | None = None
    conflicts: list[Any] | None = None


class CreativeOptionInput(BaseModel):
    id: str
    title: str
    short: str | None = None
    reasons: list[str] | None = None
    estimatedWorkload: Workload | None = None


class CreativeDirectionInput(BaseModel):
    core_concept: str | None = None
    visual_approach: str | None = None
    style_direction: str | None = None
    mood_atmosphere: str | None = None


class ProductionPipelineInput(BaseModel):
    workflow_steps: list[str] | None = None
    estimated_time: str | None = None
    success_probability: float | None = Field(None, ge=0, le=1)
    quality_targets: dict[str, Any] | None = None


class QualityMetricsInput(BaseModel):
    overall_confidence: float | None = Field(None, ge=0, le=1)
    analysis_quality: float | None = Field(None, ge=1, le=10)
    completion_status: CompletionStatus | None = None
    feasibility_score: float | None = Field(None, ge=0, le=1)


class ChallengeInput(BaseModel):
    type: str
    description: str
    impact: Impact | None = None


class RecommendationInput(BaseModel):
    type: str
    recommendation: str
    priority: Priority | None = None


class AnalyzerInput(BaseModel):
    """Analyzer document. Unknown top-level keys from the pipeline are preserved."""

    id: str | None = Field(None, description="Analyzer result id (links the refiner result back)")
    user_request: UserRequestInput
    prompt_analysis: PromptAnalysisInput | None = None
    assets: list[AssetInput] | None = None
    global_analysis: GlobalAnalysisInput | None = None
    creative_options: list[CreativeOptionInput] | None = None
    creative_direction: CreativeDirectionInput | None = None
    production_pipeline: ProductionPipelineInput | None = None
    quality_metrics: QualityMetricsInput | None = None
    challenges: list[ChallengeInput] | None = None
    recommendations: list[RecommendationInput] | None = None

    model_config = ConfigDict(extra="allow")


# ============================================================
# Refiner output (strict)
# ============================================================
class UserRequestOutput(BaseModel):
    original_prompt: str
    intent: Literal["image", "video", "audio"]
    duration_seconds: float | None = None
    aspect_ratio: str
    platform: str
    image_count: int | None = None


class ContentTypeAnalysisOutput(BaseModel):
    needs_explanation: bool
    needs_charts: bool
    needs_diagrams: bool
    needs_educational_content: bool
    content_complexity: Literal["very_simple", "simple", "moderate", "complex"]
    requires_visual_aids: bool
    is_instructional: bool
    needs_data_visualization: bool
    requires_interactive_elements: bool
    content_category: str


class PromptAnalysisOutput(BaseModel):
    user_intent_description: str
    reformulated_prompt: str
    clarity_score: float = Field(..., ge=1, le=10)
    suggested_improvements: list[str]
    content_type_analysis: ContentTypeAnalysisOutput


class RecommendedEdit(BaseModel):
    action: str
    priority: Literal["required", "recommended"]


class AssetOutput(BaseModel):
    id: str
    type: AssetType
    user_description: str
    ai_caption: str
    objects_detected: list[str]
    style: str
    mood: str
    quality_score: float = Field(..., ge=0, le=1)
    role: str
    utilization_level: UtilizationLevel | None = None
    recommended_edits: list[str | RecommendedEdit] | None = None


class Conflict(BaseModel):
    issue: str | None = None
    resolution: str | None = None
    severity: Literal["minor", "moderate", "critical"] | None = None


class Constraints(BaseModel):
    duration_seconds: float | None = None
    aspect_ratio: str | None = None
    platform: str | None = None


class GlobalAnalysisOutput(BaseModel):
    goal: str
    constraints: Constraints | None = None
    asset_roles: dict[str, str] | None = None
    conflicts: list[Conflict] | None = None


class NarrativeSpine(BaseModel):
    intro: str
    core: list[str]
    outro: str


class AssetUtilizationSummary(BaseModel):
    total_assets: int
    utilized_assets: int
    utilization_rate: float = Field(..., ge=0, le=1)
    primary_assets: list[str]
    reference_only_assets: list[str]
    utilization_rationale: str


class ElevationRuleConditions(BaseModel):
    min_quality_score: float = Field(..., ge=0, le=1)


class ElevationRule(BaseModel):
    match_on: str
    keywords: list[str]
    action: str
    conditions: ElevationRuleConditions
    reason: str


class AssetRoleElevationRules(BaseModel):
    rules: list[ElevationRule]
    default_behavior: str


class ElevationApplied(BaseModel):
    asset_id: str
    original_role: str
    elevated_role: str
    elevation_reason: str
    user_description: str
    confidence: float = Field(..., ge=0, le=1)
    quality_threshold: float = Field(..., ge=0, le=1)


class RefinerExtensions(BaseModel):
    session_mode: SessionMode
    narrative_spine: NarrativeSpine
    default_scaffolding: dict[str, NarrativeSpine] | None = None
    asset_utilization_summary: AssetUtilizationSummary
    asset_role_elevation: AssetRoleElevationRules | None = None
    elevation_applied: list[ElevationApplied] | None = None


class CreativeOptionOutput(BaseModel):
    id: str
    title: str
    short: str | None = None
    reasons: list[str] | None = None
    estimatedWorkload: Literal["low", "medium", "high"] | None = None


class CreativeDirectionOutput(BaseModel):
    core_concept: str
    visual_approach: str | None = None
    style_direction: str | None = None
    mood_atmosphere: str | None = None


class QualityTargets(BaseModel):
    technical_quality_target: str | None = None
    creative_quality_target: str | None = None
    consistency_target: str | None = None
    polish_level_target: str | None = None


class ProductionPipelineOutput(BaseModel):
    workflow_steps: list[str] | None = None
    estimated_time: str | None = None
    success_probability: float | None = Field(None, ge=0, le=1)
    quality_targets: QualityTargets | None = None


class QualityMetricsOutput(BaseModel):
    overall_confidence: float | None = Field(None, ge=0, le=1)
    analysis_quality: float | None = Field(None, ge=1, le=10)
    completion_status: Literal["partial", "complete"] | None = None
    feasibility_score: float | None = Field(None, ge=0, le=1)
    asset_utilization_score: float | None = Field(None, ge=0, le=1)


class ChallengeOutput(BaseModel):
    type: str
    description: str
    impact: Literal["minor", "moderate", "major"] | None = None


class RecommendationOutput(BaseModel):
    type: str
    recommendation: str
    priority: Literal["required", "recommended"] | None = None


class RefinerOutput(BaseModel):
    """Refined document. Validated after multilingual normalisation."""

    user_request: UserRequestOutput
    prompt_analysis: PromptAnalysisOutput
    assets: list[AssetOutput]
    global_analysis: GlobalAnalysisOutput
    refiner_extensions: RefinerExtensions
    creative_options: list[CreativeOptionOutput] | None = None
    creative_direction: CreativeDirectionOutput
    production_pipeline: ProductionPipelineOutput
    quality_metrics: QualityMetricsOutput
    challenges: list[ChallengeOutput] | None = None
    recommendations: list[RecommendationOutput] | None = None


def validate_analyzer_input(data: Any) -> AnalyzerInput:
    return AnalyzerInput.model_validate(data)


def validate_refiner_output(data: Any) -> RefinerOutput:
    return RefinerOutput.model_validate(data)


def format_validation_errors(error: ValidationError) -> list[dict[str, Any]]:
    """Compact error list for API envelopes: [{"path": "a.b.0", "message": "..."}]."""
    return [
        {"path": ".".join(str(part) for part in item["loc"]), "message": item["msg"]}
        for item in error.errors()
    ]


# ============================================================
# HTTP request bodies
# ============================================================
class RefineOptions(BaseModel):
    model: str = Field("auto", description="'auto', 'claude', 'gpt-4o-mini' or a litellm model id")
    max_retries: int | None = Field(None, ge=0, le=5, alias="maxRetries")
    timeout_sec: float | None = Field(None, gt=0, le=300)
    use_fallback: bool = Field(True, alias="useFallback")
    persist: bool | None = Field(None, description="Override REFINER_PERSIST_RESULTS")

    model_config = ConfigDict(populate_by_name=True)


class RefineRequest(BaseModel):
    """
    Either {"analyzerOutput": {...}, "options": {...}} or the analyzer document itself.
    """

    analyzer_output: dict[str, Any] = Field(..., alias="analyzerOutput")
    options: RefineOptions = Field(default_factory=RefineOptions)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "analyzerOutput": {
                    "user_request": {"original_prompt": "Explain compound interest with my chart", "intent": "video"},
                    "assets": [{"id": "ast_01", "type": "image", "user_description": "main chart", "quality_score": 0.8}],
                },
                "options": {"model": "auto", "maxRetries": 2},
            }
        },
    )


class BatchRefineRequest(BaseModel):
    analyzer_outputs: list[dict[str, Any]] = Field(..., alias="analyzerOutputs", min_length=1)
    options: RefineOptions = Field(default_factory=RefineOptions)

    model_config = ConfigDict(populate_by_name=True)
