"""
Script quality assessment

Role:
    - Score a validated script against the refined document it came from
    - Start at 1.0 and deduct per missing production element (duration, assets,
      narrative arc, narration density, audio integration, consistency, visuals)
    - Grade on the studio scale A+ ... D
"""

from typing import Any

from pydantic import BaseModel, Field

from backend.src.common.config import SCRIPT_CONFIG
from backend.src.script.schemas.script import SceneEffect, Script, ScriptEnhancerInput


DURATION_TOLERANCE_SEC = 1.0

GRADE_THRESHOLDS = (
    (0.95, "A+"),
    (0.9, "A"),
    (0.85, "A-"),
    (0.8, "B+"),
    (0.75, "B"),
    (0.7, "B-"),
    (0.65, "C+"),
    (0.6, "C"),
)


class ScriptQualityReport(BaseModel):
    overall_score: float = Field(..., ge=0)
    grade: str
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    def to_summary(self) -> dict[str, Any]:
        return {
            "overallScore": self.overall_score,
            "grade": self.grade,
            "issuesCount": len(self.issues),
            "recommendationsCount": len(self.recommendations),
        }


def determine_script_grade(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "D"


# ============================================================
# Checks
# ============================================================
def _has_cinematic_effect(effects: list[str | SceneEffect]) -> bool:
    return any(isinstance(effect, SceneEffect) and effect.type and effect.params is not None for effect in effects)


def _has_music_arcs(script: Script) -> bool:
    arcs = script.music_plan.music_arcs
    return bool(arcs and arcs.intro and arcs.development and arcs.climax and arcs.outro)


def _has_structured_music_cues(script: Script) -> bool:
    cues = script.music_plan.music_cues or []
    return len(cues) >= 4 and all(
        cue.segment and cue.duration and cue.style and cue.intensity and cue.instrumentation for cue in cues
    )


def _has_elevenlabs_voiceover(script: Script) -> bool:
    return all(voice.elevenlabs_voice_id and voice.voice_settings for voice in script.global_voiceover.voices)


def _has_audio_balance(script: Script) -> bool:
    balance = script.global_voiceover.audio_balance
    return bool(balance and balance.voice_volume == "primary" and balance.ducking_enabled is True)


def _has_timing_control(script: Script) -> bool:
    timing = script.global_voiceover.timing_control
    return bool(timing and timing.pause_between_sentences and timing.sync_with_music is True)


def _has_detailed_consistency_rules(script: Script) -> bool:
    rules = script.consistency.consistency_rules if script.consistency else None
    return bool(
        rules
        and rules.character_faces
        and rules.voice_style
        and rules.tone
        and rules.visual_continuity
        and rules.brand_consistency
    )


def _has_scene_enrichment(script: Script) -> bool:
    enrichment = script.scene_enrichment
    return bool(
        enrichment
        and enrichment.visual_variety_required
        and enrichment.distinct_treatment_per_scene
        and enrichment.complementary_generation_allowed
    )


def _has_visual_treatment(script: Script) -> bool:
    return all(
        scene.visual_treatment
        and scene.visual_treatment.role
        and scene.visual_treatment.visual_type
        and scene.visual_treatment.camera_angle
        and scene.visual_treatment.lighting
        and scene.visual_treatment.composition
        for scene in script.scenes
    )


def _has_visual_progression(script: Script) -> bool:
    roles = {scene.visual_treatment.role for scene in script.scenes if scene.visual_treatment}
    return len(script.scenes) >= 3 and {"opening", "main", "closing"} <= roles


# ============================================================
# Public API
# ============================================================
def assess_script_quality(script: Script, data: ScriptEnhancerInput) -> ScriptQualityReport:
    """
    Studio-grade quality report for a script.

    Args:
        script: validated Script
        data: refined document the script was written for

    Returns:
        ScriptQualityReport (score floored at 0)
    """
    issues: list[str] = []
    recommendations: list[str] = []
    score = 1.0
    scenes = script.scenes
    duration = data.user_request.duration_seconds

    def deduct(message: str, amount: float) -> None:
        nonlocal score
        issues.append(message)
        score -= amount

    total_duration = sum(scene.duration for scene in scenes)
    if abs(total_duration - duration) > DURATION_TOLERANCE_SEC:
        deduct(f"Duration mismatch: {total_duration:g}s vs {duration:g}s (tolerance: ±1s)", 0.25)

    if data.assets:
        utilization = len(script.asset_integration.user_assets_used) / len(data.assets)
        if utilization < 1.0:
            deduct(
                f"Incomplete asset utilization: {round(utilization * 100)}% of assets used (required: 100%)",
                0.2,
            )

    if len(scenes) < 3:
        deduct("Insufficient scenes for professional narrative structure (minimum: 3 scenes)", 0.2)

    if not any("1" in scene.scene_id or "hook" in scene.narration.lower() for scene in scenes):
        deduct("Missing compelling hook in opening scene", 0.1)
    if not any("climax" in scene.scene_id or "climax" in scene.narration.lower() for scene in scenes):
        deduct("Missing emotional climax or key moment", 0.1)

    if scenes:
        avg_words = sum(len(scene.narration.split(" ")) for scene in scenes) / len(scenes)
        expected_words = duration * SCRIPT_CONFIG["words_per_second"] / len(scenes)
        if avg_words < expected_words * 0.8:
            deduct("Narration too brief for professional voiceover pacing (minimum 5 words/second)", 0.15)

    if not all(scene.subtitles for scene in scenes):
        deduct("Missing subtitle text for accessibility compliance", 0.1)

    if not all(scene.visual_anchor and ("user_" in scene.visual_anchor or len(scene.visual_anchor) > 10) for scene in scenes):
        deduct("Visual anchors too generic for production planning", 0.1)

    has_cinematic_effects = all(_has_cinematic_effect(scene.suggested_effects) for scene in scenes)
    has_structured_cues = _has_structured_music_cues(script)
    has_elevenlabs_voiceover = _has_elevenlabs_voiceover(script)
    has_audio_balance = _has_audio_balance(script)
    has_timing_control = _has_timing_control(script)

    if not all(scene.music_cue for scene in scenes):
        deduct("Missing music cues for production planning", 0.05)
    if not all(scene.suggested_effects for scene in scenes):
        deduct("Missing visual effects suggestions", 0.05)
    if not has_cinematic_effects:
        deduct("Missing cinematic effects with Shotstack-compatible parameters", 0.15)
    if not _has_music_arcs(script):
        deduct("Missing structured music arcs for professional production", 0.1)
    if not has_structured_cues:
        deduct("Missing ElevenLabs 2025-compatible structured music cues", 0.15)
    if not (script.music_plan.audio_engine == "elevenlabs" and script.music_plan.emotion_tracking is True):
        deduct("Missing ElevenLabs audio engine and emotion tracking configuration", 0.1)
    if not has_elevenlabs_voiceover:
        deduct("Missing ElevenLabs voiceover integration with voice IDs and settings", 0.15)
    if not has_audio_balance:
        deduct("Missing proper audio balance with voice priority and ducking", 0.1)
    if not has_timing_control:
        deduct("Missing timing control for voiceover-music synchronization", 0.1)

    consistency = script.consistency
    has_detailed_rules = _has_detailed_consistency_rules(script)
    has_enrichment = _has_scene_enrichment(script)
    has_treatment = _has_visual_treatment(script)
    has_progression = _has_visual_progression(script)

    if not (consistency and consistency.character_faces and consistency.voice_style and consistency.tone):
        deduct("Missing consistency rules for character faces, voice style, and tone", 0.1)
    if not has_detailed_rules:
        deduct("Missing detailed consistency rules for studio-grade quality", 0.15)
    if not has_enrichment:
        deduct("Missing scene enrichment with visual variety and progression requirements", 0.15)
    if not has_treatment:
        deduct(
            "Missing visual treatment details for each scene (role, visual_type, camera_angle, lighting, composition)",
            0.15,
        )
    if not has_progression:
        deduct("Missing proper visual progression (opening → main → closing)", 0.1)

    if len(scenes) < 4:
        recommendations.append("Add more scenes for richer narrative development")
    if not script.asset_integration.user_assets_used and data.assets:
        recommendations.append("Integrate all user assets with explicit visual descriptions")
    if len(script.global_voiceover.voices) == 1 and len(scenes) > 4:
        recommendations.append("Consider multiple character voices for longer content")
    if len(script.music_plan.transitions) < 3:
        recommendations.append("Add more music transition cues for smoother production")
    if not has_cinematic_effects:
        recommendations.append(
            "Upgrade to cinematic effects with Shotstack-compatible parameters for professional quality"
        )
    if not has_structured_cues:
        recommendations.append(
            "Implement ElevenLabs 2025-compatible structured music cues for advanced audio production"
        )
    if not has_detailed_rules:
        recommendations.append("Add detailed consistency rules for studio-grade character, voice, and brand consistency")
    if not has_elevenlabs_voiceover:
        recommendations.append(
            "Integrate ElevenLabs voiceover with professional voice IDs and settings for clear narration"
        )
    if not has_audio_balance:
        recommendations.append("Implement proper audio balance with voice priority and music ducking for clarity")
    if not has_timing_control:
        recommendations.append("Add precise timing control for voiceover-music synchronization and breathing room")
    if not has_enrichment:
        recommendations.append("Implement scene enrichment with visual variety and progression for cinematic polish")
    if not has_treatment:
        recommendations.append(
            "Add detailed visual treatment for each scene with role, camera angle, lighting, and composition"
        )
    if not has_progression:
        recommendations.append(
            "Create proper visual progression from opening to main to closing for engaging narrative flow"
        )

    return ScriptQualityReport(
        overall_score=max(0.0, score),
        grade=determine_script_grade(score),
        issues=issues,
        recommendations=recommendations,
    )
