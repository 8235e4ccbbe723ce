"""
Script Enhancer Pydantic Schemas

ScriptEnhancerInput: refined document the enhancer receives (refiner output + creative profile).
Script: studio-grade script returned to the client (scenes, voiceover, music, consistency).
adapt_request_format: converts the legacy loose request body into ScriptEnhancerInput shape.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from backend.src.common.config import SCRIPT_CONFIG


logger = logging.getLogger(__name__)


# ============================================================
# Input (refined document)
# ============================================================
class ScriptUserRequest(BaseModel):
    original_prompt: str
    intent: str
    duration_seconds: float = Field(..., gt=0)
    aspect_ratio: str
    platform: str
    image_count: int | None = None


class ScriptContentTypeAnalysis(BaseModel):
    needs_explanation: bool = False
    needs_charts: bool = False
    needs_diagrams: bool = False
    needs_educational_content: bool = False
    content_complexity: str = "simple"
    requires_visual_aids: bool = False
    is_instructional: bool = False
    needs_data_visualization: bool = False
    requires_interactive_elements: bool = False
    content_category: str = "general"


class ScriptPromptAnalysis(BaseModel):
    user_intent_description: str
    reformulated_prompt: str
    clarity_score: float
    suggested_improvements: list[str] = Field(default_factory=list)
    content_type_analysis: ScriptContentTypeAnalysis = Field(default_factory=ScriptContentTypeAnalysis)


class ScriptAsset(BaseModel):
    id: str
    type: str
    url: str | None = None
    user_description: str | None = None
    ai_caption: str | None = None
    objects_detected: list[str] | None = None
    quality_score: float | None = None

    model_config = ConfigDict(extra="ignore")


class ScriptConstraints(BaseModel):
    duration_seconds: float | None = None
    aspect_ratio: str | None = None
    platform: str | None = None


class ScriptConflict(BaseModel):
    issue: str | None = None
    resolution: str | None = None


class ScriptGlobalAnalysis(BaseModel):
    goal: str
    constraints: ScriptConstraints | None = None
    asset_roles: dict[str, str] | None = None
    conflicts: list[ScriptConflict] | None = None


class ScriptCreativeOption(BaseModel):
    id: str
    title: str
    short: str | None = None
    reasons: list[str] = Field(default_factory=list)
    estimatedWorkload: str | None = None


class ScriptCreativeDirection(BaseModel):
    core_concept: str
    visual_approach: str | None = None
    style_direction: str | None = None
    mood_atmosphere: str = "professional"


class ScriptQualityTargets(BaseModel):
    technical_quality_target: str | None = None
    creative_quality_target: str | None = None
    consistency_target: str | None = None
    polish_level_target: str | None = None


class ScriptProductionPipeline(BaseModel):
    workflow_steps: list[str] = Field(default_factory=list)
    estimated_time: str | None = None
    success_probability: float | None = None
    quality_targets: ScriptQualityTargets | None = None


class ScriptQualityMetrics(BaseModel):
    overall_confidence: float | None = None
    analysis_quality: float | None = None
    completion_status: str | None = None
    feasibility_score: float | None = None


class ScriptChallenge(BaseModel):
    type: str
    description: str
    impact: str | None = None


class ScriptRecommendation(BaseModel):
    type: str
    recommendation: str
    priority: str | None = None


class CreativeProfileRef(BaseModel):
    """Creative profile as handed over by the refiner (camelCase keys)."""

    profileId: str
    profileName: str
    goal: str
    confidence: str
    detectionMethod: str
    matchedFactors: list[str] = Field(default_factory=list)


class ScriptRefinerExtensions(BaseModel):
    creative_profile: CreativeProfileRef | None = None

    model_config = ConfigDict(extra="ignore")


class ScriptEnhancerInput(BaseModel):
    user_request: ScriptUserRequest
    prompt_analysis: ScriptPromptAnalysis
    assets: list[ScriptAsset] = Field(default_factory=list)
    global_analysis: ScriptGlobalAnalysis | None = None
    creative_options: list[ScriptCreativeOption] = Field(default_factory=list)
    creative_direction: ScriptCreativeDirection
    production_pipeline: ScriptProductionPipeline | None = None
    quality_metrics: ScriptQualityMetrics | None = None
    challenges: list[ScriptChallenge] = Field(default_factory=list)
    recommendations: list[ScriptRecommendation] = Field(default_factory=list)
    refiner_extensions: ScriptRefinerExtensions | None = None

    model_config = ConfigDict(extra="ignore")

    @property
    def profile_id(self) -> str | None:
        """Creative profile chosen by the refiner, if any."""
        if self.refiner_extensions and self.refiner_extensions.creative_profile:
            return self.refiner_extensions.creative_profile.profileId
        return None


# ============================================================
# Output (script)
# ============================================================
class ScriptMetadata(BaseModel):
    profile: str
    duration_seconds: float
    orientation: str
    language: str
    total_scenes: int
    estimated_word_count: int
    pacing_style: str


class SceneEffect(BaseModel):
    type: str
    params: dict[str, Any] | None = None


class VisualTreatment(BaseModel):
    role: str
    visual_type: str
    camera_angle: str
    lighting: str
    composition: str
    treatment_note: str | None = None


class Scene(BaseModel):
    scene_id: str
    duration: float
    narration: str
    visual_anchor: str
    suggested_effects: list[str | SceneEffect] = Field(default_factory=list)
    music_cue: str
    subtitles: str
    scene_purpose: str
    emotional_tone: str
    visual_treatment: VisualTreatment | None = None


class VoiceSettings(BaseModel):
    stability: float | None = None
    similarity_boost: float | None = None
    style: float | None = None
    use_speaker_boost: bool | None = None


class Voice(BaseModel):
    id: str
    style: str
    gender: str
    age_range: str | None = None
    accent: str | None = None
    elevenlabs_voice_id: str | None = None
    voice_settings: VoiceSettings | None = None


class AudioBalance(BaseModel):
    voice_volume: str
    music_volume: str
    effects_volume: str
    ducking_enabled: bool | None = None


class TimingControl(BaseModel):
    pause_between_sentences: str
    emphasis_timing: str
    breathing_room: str
    sync_with_music: bool | None = None


class GlobalVoiceover(BaseModel):
    voices: list[Voice]
    narration_style: str
    pacing_notes: str
    audio_balance: AudioBalance | None = None
    timing_control: TimingControl | None = None


class MusicArcs(BaseModel):
    intro: str
    development: str
    climax: str
    outro: str


class MusicCue(BaseModel):
    segment: str
    duration: str
    style: str
    intensity: str
    instrumentation: str
    emotion: str | None = None
    tempo: str | None = None


class MusicPlan(BaseModel):
    style: str
    transitions: list[str]
    mood_progression: list[str]
    sound_effects: list[str] | None = None
    music_arcs: MusicArcs | None = None
    music_cues: list[MusicCue] | None = None
    audio_engine: str | None = None
    emotion_tracking: bool | None = None


class AssetIntegration(BaseModel):
    user_assets_used: list[str]
    generated_content_needed: list[str]
    visual_flow: list[str]


class QualityAssurance(BaseModel):
    duration_compliance: bool
    asset_utilization: str
    narrative_coherence: str
    profile_alignment: str


class ConsistencyRules(BaseModel):
    character_faces: str
    voice_style: str
    tone: str
    visual_continuity: str
    brand_consistency: str
    color_palette: str | None = None
    font_consistency: str | None = None
    logo_usage: str | None = None
    style_continuity: str | None = None


class Consistency(BaseModel):
    character_faces: str
    voice_style: str
    tone: str
    visual_continuity: str
    brand_consistency: str
    consistency_rules: ConsistencyRules | None = None


class ProgressionStep(BaseModel):
    role: str
    visual: str
    asset: str
    treatment: str
    note: str | None = None


class SceneEnrichment(BaseModel):
    progression: list[ProgressionStep]
    visual_variety_required: bool
    distinct_treatment_per_scene: bool
    complementary_generation_allowed: bool
    narrative_flow: str | None = None


class Script(BaseModel):
    script_metadata: ScriptMetadata
    scenes: list[Scene]
    global_voiceover: GlobalVoiceover
    music_plan: MusicPlan
    asset_integration: AssetIntegration
    quality_assurance: QualityAssurance
    consistency: Consistency | None = None
    scene_enrichment: SceneEnrichment | None = None
    human_readable_script: str = "Human-readable script not available"

    model_config = ConfigDict(extra="ignore")


def validate_script(data: Any) -> Script:
    return Script.model_validate(data)


# ============================================================
# Legacy request adaptation
# ============================================================
def _first(*values: Any, default: Any = None) -> Any:
    """First truthy value, JS `a || b || c` style."""
    for value in values:
        if value:
            return value
    return default


def adapt_request_format(body: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a loose request body into the ScriptEnhancerInput shape.

    Bodies that already carry `user_request` and `prompt_analysis` pass through untouched.
    Otherwise the legacy shape is read: `options` (durationSeconds, aspectRatio, platform,
    imageCount), `creative_profile`, `final_analysis`, `userPrompt`, `warnings`,
    `recommendedPipeline` and `creativeOptions`.
    """
    if body.get("user_request") and body.get("prompt_analysis"):
        return body

    logger.info("[ScriptEnhancer] 🎬 Adapting legacy request format")

    options = body.get("options") or {}
    duration = _first(options.get("durationSeconds"), options.get("duration_seconds"), default=30)
    aspect_ratio = _first(options.get("aspectRatio"), options.get("aspect_ratio"), default="16:9")
    platform = options.get("platform") or "social"

    final_analysis = body.get("final_analysis") or {}
    creative_profile = body.get("creative_profile") or {}
    fa_profile = final_analysis.get("creative_profile") or {}
    unified = (final_analysis.get("global_understanding") or {}).get("unified_creative_direction") or {}
    insights = final_analysis.get("processing_insights") or {}
    intent_analysis = final_analysis.get("intent_analysis") or {}
    content_analysis = final_analysis.get("content_analysis") or {}
    fa_direction = final_analysis.get("creative_direction") or {}
    analysis_meta = final_analysis.get("analysis_metadata") or {}
    pipeline = body.get("recommendedPipeline") or body.get("recommended_pipeline") or {}
    warnings = body.get("warnings") or []
    user_prompt = body.get("userPrompt") or body.get("user_prompt") or ""

    return {
        "user_request": {
            "original_prompt": user_prompt,
            "intent": body.get("intent") or "video",
            "duration_seconds": duration,
            "aspect_ratio": aspect_ratio,
            "platform": platform,
            "image_count": _first(options.get("imageCount"), options.get("image_count"), default=1),
        },
        "prompt_analysis": {
            "user_intent_description": _first(
                insights.get("intent_description"), intent_analysis.get("user_intent"), default="Create content"
            ),
            "reformulated_prompt": _first(
                insights.get("reformulated_prompt"), intent_analysis.get("refined_prompt"), user_prompt, default=""
            ),
            "clarity_score": _first(insights.get("clarity_score"), intent_analysis.get("clarity_score"), default=7),
            "suggested_improvements": warnings,
            "content_type_analysis": {
                "needs_explanation": bool(insights.get("needs_explanation")),
                "needs_charts": bool(insights.get("needs_charts")),
                "needs_diagrams": bool(insights.get("needs_diagrams")),
                "needs_educational_content": bool(insights.get("needs_educational_content")),
                "content_complexity": _first(
                    insights.get("content_complexity"), content_analysis.get("complexity"), default="simple"
                ),
                "requires_visual_aids": bool(insights.get("requires_visual_aids")),
                "is_instructional": bool(insights.get("is_instructional")),
                "needs_data_visualization": bool(insights.get("needs_data_visualization")),
                "requires_interactive_elements": bool(insights.get("requires_interactive_elements")),
                "content_category": _first(
                    insights.get("content_category"), content_analysis.get("category"), default="general"
                ),
            },
        },
        "assets": body.get("assets") or [],
        "global_analysis": {
            "goal": _first(unified.get("core_concept"), final_analysis.get("goal"), default="Create high-quality content"),
            "constraints": {"duration_seconds": duration, "aspect_ratio": aspect_ratio, "platform": platform},
            "asset_roles": final_analysis.get("asset_roles") or {},
            "conflicts": [{"issue": w, "resolution": "Addressed in script"} for w in warnings],
        },
        "creative_options": _first(
            body.get("creativeOptions"),
            body.get("creative_options"),
            default=[
                {
                    "id": "default_option",
                    "title": "Default Option",
                    "short": "Default creative approach",
                    "reasons": ["Best match for content type"],
                    "estimatedWorkload": "medium",
                }
            ],
        ),
        "creative_direction": {
            "core_concept": _first(
                unified.get("core_concept"), fa_direction.get("core_concept"), default="Create engaging content"
            ),
            "visual_approach": _first(
                unified.get("visual_approach"), fa_direction.get("visual_approach"), default="Professional style"
            ),
            "style_direction": _first(
                unified.get("style_direction"), fa_direction.get("style"), default="Clean and modern"
            ),
            "mood_atmosphere": _first(unified.get("mood"), fa_direction.get("mood"), default="Professional"),
        },
        "production_pipeline": {
            "workflow_steps": pipeline.get("steps") or ["Plan", "Create", "Review", "Publish"],
            "estimated_time": pipeline.get("estimated_time") or "30-45 minutes",
            "success_probability": pipeline.get("success_probability") or 0.9,
            "quality_targets": pipeline.get("quality_targets") or {
                "technical_quality_target": "high",
                "creative_quality_target": "appealing",
                "consistency_target": "good",
                "polish_level_target": "refined",
            },
        },
        "quality_metrics": {
            "overall_confidence": _first(
                insights.get("overall_confidence"),
                (insights.get("confidence_breakdown") or {}).get("overall_confidence"),
                default=0.8,
            ),
            "analysis_quality": _first(
                insights.get("analysis_quality"), analysis_meta.get("quality_score"), default=8
            ),
            "completion_status": _first(
                insights.get("completion_status"), analysis_meta.get("completion_status"), default="complete"
            ),
            "feasibility_score": _first(
                insights.get("feasibility_score"), analysis_meta.get("feasibility_score"), default=0.85
            ),
        },
        "challenges": [{"type": "content", "description": w, "impact": "moderate"} for w in warnings],
        "recommendations": [
            {"type": "quality", "recommendation": rec, "priority": "recommended"}
            for rec in insights.get("recommendations") or []
        ],
        "refiner_extensions": {
            "creative_profile": {
                "profileId": _first(
                    creative_profile.get("id"), fa_profile.get("id"), default=SCRIPT_CONFIG["default_profile"]
                ),
                "profileName": _first(
                    creative_profile.get("name"), fa_profile.get("name"), default="Educational Explainer"
                ),
                "goal": creative_profile.get("goal") or "Create engaging content",
                "confidence": str(creative_profile.get("confidence") or "0.95"),
                "detectionMethod": creative_profile.get("detection_method") or "multi-factor",
                "matchedFactors": creative_profile.get("matched_factors") or ["intent: video"],
            }
        },
    }
