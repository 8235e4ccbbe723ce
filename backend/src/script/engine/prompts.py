"""
Script enhancer prompt builder

Role:
    - Turn a refined document into the studio-grade script prompt
    - Inject per-profile presets (voiceover, music cues, consistency, scene enrichment)
    - Split the LLM answer into the human-readable script and the <json> payload

Scene plan:
    scenes = max(2, ceil(duration / 2.5)), words per scene = ceil(duration * 5 / scenes)
"""

import json
import math
from dataclasses import dataclass
from typing import Any

from backend.src.common.config import SCRIPT_CONFIG
from backend.src.script.engine.library import (
    CINEMATIC_EFFECTS_LIBRARY,
    FALLBACK_PROFILE_ID,
    get_consistency_rules,
    get_music_cues,
    get_profile_template,
    get_scene_enrichment,
    get_voiceover_preset,
)
from backend.src.script.schemas.script import ScriptEnhancerInput


SCRIPT_SYSTEM_PROMPT = (
    "You are a professional script writer creating studio-quality, human-readable scripts for video "
    "production. You excel at creating engaging, cinematic scripts that creative teams can immediately use."
)

HUMAN_READABLE_FORMAT = """
HUMAN-READABLE SCRIPT FORMAT:
Create a professional script with this structure:

=== SCRIPT TITLE ===
[Brief description of the video content]

=== SCRIPT METADATA ===
Profile: [creative profile name]
Duration: [X seconds]
Orientation: [aspect ratio]
Language: [language]
Total Scenes: [number]
Estimated Word Count: [number]
Pacing Style: [style description]

=== SCENES ===

Scene 1 | Duration: [X]s | Purpose: [scene purpose]
Narration: "[exact narration text]"
Visuals: [visual anchor description]
Effects: [suggested effects list]
Music: [music cue description]
Pacing: [pacing notes]
Mood: [emotional tone]
Consistency: [consistency notes]

Scene 2 | Duration: [X]s | Purpose: [scene purpose]
[Continue pattern...]

=== VOICEOVER GUIDANCE ===
Narration Style: [style description]
Pacing Notes: [detailed pacing guidance]
Voice Characteristics: [voice details]

=== MUSIC & AUDIO PLAN ===
Style: [music style]
Transitions: [transition types]
Mood Progression: [emotional arc]

=== PRODUCTION NOTES ===
Asset Integration: [how user assets are used]
Visual Flow: [scene progression]
Quality Assurance: [compliance notes]

RESPOND WITH BOTH HUMAN-READABLE SCRIPT AND JSON:
First the human-readable script in the format above,
then the JSON data between <json> and </json> tags:
<json>
{ "your": "json", "here": "exactly", "matching": "schema" }
</json>
"""

SCRIPT_TITLE_MARKER = "=== SCRIPT TITLE ==="
JSON_OPEN_TAG = "<json>"
JSON_CLOSE_TAG = "</json>"


@dataclass
class ScenePlan:
    estimated_scenes: int
    scene_duration: int
    words_per_scene: int


def _js_round(value: float) -> int:
    """Half-up rounding (round() would use banker's rounding)."""
    return math.floor(value + 0.5)


def plan_scenes(duration: float) -> ScenePlan:
    estimated = max(2, math.ceil(duration / 2.5))
    return ScenePlan(
        estimated_scenes=estimated,
        scene_duration=_js_round(duration / estimated),
        words_per_scene=math.ceil(duration * SCRIPT_CONFIG["words_per_second"] / estimated),
    )


def resolve_orientation(aspect_ratio: str) -> str:
    """
    Map an aspect ratio label to portrait / square / landscape.

    "Smart Auto" is treated as portrait (short-form default).
    """
    label = (aspect_ratio or "").strip().lower()
    if label == "smart auto" or "portrait" in label or label in ("9:16", "4:5", "3:4"):
        return "portrait"
    if "square" in label or label == "1:1":
        return "square"
    return "landscape"


def resolve_profile_id(data: ScriptEnhancerInput) -> str:
    return data.profile_id or FALLBACK_PROFILE_ID


def _describe_asset(asset: Any) -> str:
    objects = ", ".join(asset.objects_detected or []) or "none"
    quality = asset.quality_score if asset.quality_score is not None else "unknown"
    return (
        f'- {asset.id}: {asset.type} (User: "{asset.user_description or "No description"}", '
        f'AI: "{asset.ai_caption or "No caption"}", Objects: [{objects}], Quality: {quality})'
    )


def build_example_script(data: ScriptEnhancerInput) -> dict[str, Any]:
    """Two-scene JSON example pre-filled with the profile presets."""
    profile_id = resolve_profile_id(data)
    template = get_profile_template(profile_id)
    plan = plan_scenes(data.user_request.duration_seconds)
    duration = data.user_request.duration_seconds
    mood = data.creative_direction.mood_atmosphere
    assets = data.assets
    effects = template["effects"]
    arcs = template["music_arcs"]

    return {
        "script_metadata": {
            "profile": profile_id,
            "duration_seconds": duration,
            "orientation": resolve_orientation(data.user_request.aspect_ratio),
            "language": "english",
            "total_scenes": plan.estimated_scenes,
            "estimated_word_count": int(duration * SCRIPT_CONFIG["words_per_second"]),
            "pacing_style": template["pacing"],
        },
        "scenes": [
            {
                "scene_id": "s1",
                "duration": plan.scene_duration,
                "narration": f"Hook narration that grabs attention with {profile_id} style...",
                "subtitles": "Hook subtitle text...",
                "visual_anchor": assets[0].id if assets else "generated_opening_visual",
                "suggested_effects": [
                    effects[0] if effects else CINEMATIC_EFFECTS_LIBRARY["cinematic_zoom"],
                    CINEMATIC_EFFECTS_LIBRARY["overlay_text"],
                ],
                "music_cue": "opening_theme",
                "scene_purpose": "Hook the audience and establish the main topic",
                "emotional_tone": mood,
                "visual_treatment": {
                    "role": "opening",
                    "visual_type": "wide_establishing_shot",
                    "camera_angle": "wide",
                    "lighting": "professional",
                    "composition": "rule_of_thirds",
                    "treatment_note": "Establish authority and context with cinematic wide shot",
                },
            },
            {
                "scene_id": "s2",
                "duration": plan.scene_duration,
                "narration": f"Main content narration with rich detail and {profile_id} style...",
                "subtitles": "Main content subtitle...",
                "visual_anchor": assets[1].id if len(assets) > 1 else "generated_main_content",
                "suggested_effects": [
                    effects[1] if len(effects) > 1 else CINEMATIC_EFFECTS_LIBRARY["slow_pan"],
                    CINEMATIC_EFFECTS_LIBRARY["parallax_scroll"],
                    CINEMATIC_EFFECTS_LIBRARY["bokeh_transition"],
                ],
                "music_cue": "main_theme",
                "scene_purpose": "Deliver core message with visual impact",
                "emotional_tone": mood,
                "visual_treatment": {
                    "role": "main",
                    "visual_type": "medium_focus_shot",
                    "camera_angle": "medium",
                    "lighting": "enhanced",
                    "composition": "centered",
                    "treatment_note": "Enhanced with complementary visual elements and data emphasis",
                },
            },
        ],
        "global_voiceover": get_voiceover_preset(profile_id),
        "music_plan": {
            "style": template["music"],
            "transitions": template["transitions"],
            "mood_progression": arcs,
            "sound_effects": [effect["type"] for effect in effects],
            "music_arcs": dict(zip(("intro", "development", "climax", "outro"), arcs, strict=False)),
            "music_cues": get_music_cues(profile_id),
            "audio_engine": "elevenlabs",
            "emotion_tracking": True,
        },
        "asset_integration": {
            "user_assets_used": [asset.id for asset in assets],
            "generated_content_needed": ["background_music", "transition_effects"],
            "visual_flow": ["opening_shot", "main_content", "closing_shot"],
        },
        "quality_assurance": {
            "duration_compliance": True,
            "asset_utilization": "All user assets integrated appropriately",
            "narrative_coherence": "Clear story arc with proper pacing",
            "profile_alignment": f"Matches {profile_id} style and requirements",
        },
        "consistency": {
            "character_faces": "locked",
            "voice_style": "consistent",
            "tone": mood,
            "visual_continuity": "maintained",
            "brand_consistency": "enforced",
            "consistency_rules": get_consistency_rules(profile_id),
        },
        "scene_enrichment": get_scene_enrichment(profile_id),
    }


def build_script_prompt(data: ScriptEnhancerInput) -> str:
    """
    Studio-grade script prompt for one refined document.

    Args:
        data: validated ScriptEnhancerInput

    Returns:
        Prompt asking for the human-readable script followed by <json>...</json>
    """
    request = data.user_request
    profile = data.refiner_extensions.creative_profile if data.refiner_extensions else None
    profile_id = resolve_profile_id(data)
    profile_name = profile.profileName if profile else "General"
    template = get_profile_template(profile_id)
    plan = plan_scenes(request.duration_seconds)
    duration = request.duration_seconds
    mood = data.creative_direction.mood_atmosphere
    assets = data.assets

    asset_lines = "\n".join(_describe_asset(asset) for asset in assets)
    if assets:
        asset_rules = (
            f"- MUST mention each user asset: {', '.join(asset.id for asset in assets)}\n"
            "- Describe how each asset appears in the story using user descriptions\n"
            "- Use asset descriptions to inform visual anchors and scene context\n"
            "- Create visual variety: don't repeat the same asset in every scene\n"
            "- Propose complementary generated scenes when needed for narrative flow"
        )
    else:
        asset_rules = "- No user assets provided - will use generated content and stock imagery"

    example_json = json.dumps(build_example_script(data), indent=2, ensure_ascii=False)

    return f"""🎬 SCRIPT ENHANCER: STUDIO-GRADE SYSTEM PROMPT

ROLE
You are the Script Enhancer, a specialized agent in the Dreamcut pipeline.
Turn raw intent + assets into a polished, professional script, structured for voiceover, subtitles and scene planning.

OBJECTIVES
- Always deliver a narrative-ready script, even if the user gave no script
- Integrate Analyzer + Refiner data (intent, profiles, assets, recommendations)
- Respect user duration, orientation and platform constraints
- Guarantee voiceover lines, subtitles and music cues
- Make scripts cinematic and production-ready

INPUTS RECEIVED
user_request: "{request.original_prompt}" ({request.intent}, {duration}s, {request.aspect_ratio}, {request.platform})
prompt_analysis: clarity {data.prompt_analysis.clarity_score}/10, reformulated: "{data.prompt_analysis.reformulated_prompt}"
assets: {len(assets)} assets with descriptions and quality scores
creative_direction: {profile_name} profile, tone: {mood}
recommendations: {len(data.recommendations)} pipeline actions

STORY FRAMEWORK:
- Build Hook → Body → Climax → Outro
- Ensure pacing matches {duration} seconds exactly
- Create {plan.estimated_scenes} scenes with proper timing

SCENE BREAKDOWN:
- Assign each scene a duration slice ({plan.scene_duration}s each)
- Write narration lines (voiceover text, ~{plan.words_per_scene} words per scene)
- Write matching subtitles (shorter, synced to narration)
- Attach visual anchors: use uploaded assets first, propose generated assets when missing

VOICEOVER PLAN (ELEVENLABS INTEGRATION):
- Always at least one narrator with ElevenLabs voice ID and settings
- Multiple characters get distinct voices with unique voice IDs
- Ensure voice clarity: stability 0.75+, similarity_boost 0.85+, use_speaker_boost: true
- Audio balance: voice_volume "primary", music_volume "background", ducking_enabled: true
- Timing control: pauses of 0.3-0.7s between sentences, emphasis timing 1.1-1.5x, sync with music

MUSIC + SFX (ELEVENLABS 2025-READY):
- Structured music cues with intro → development → climax → outro progression
- Each segment specifies duration, style, intensity, instrumentation, emotion, tempo
- audio_engine: "elevenlabs" and emotion_tracking: true

SUBTITLES:
- Always present, matching narration timing, accessibility-ready

CONSISTENCY ENFORCEMENT:
- Character faces locked, voice style consistent, visual continuity maintained
- Tone maintained: {mood}
- Brand consistency enforced (colors, fonts, logo usage) for {profile_id}

THINGS TO AVOID
- Do not ignore user assets (must reference them explicitly)
- Do not exceed duration budget ({duration}s total)
- Do not produce generic "advertising" copy; always reflect the {profile_id} profile
- Do not leave empty fields

AVAILABLE ASSETS ({len(assets)}):
{asset_lines}

CREATIVE PROFILE: {profile_id}
- Style: {template["style"]}
- Pacing: {template["pacing"]}
- Music: {template["music"]}
- Effects: {", ".join(effect["type"] for effect in template["effects"])}
- Transitions: {", ".join(template["transitions"])}

NARRATIVE STRUCTURE REQUIRED:
- Hook (0-3s): Grab attention immediately with {profile_id} style
- Body (3s-{duration - 5}s): Core message with asset integration
- Climax ({duration - 5}s-{duration - 2}s): Emotional peak or key moment
- Outro ({duration - 2}s-{duration}s): Call-to-action or conclusion

ASSET INTEGRATION RULES:
{asset_rules}

SCENE ENRICHMENT REQUIREMENTS:
- Each scene has a distinct visual treatment and purpose; never repeat a visual anchor
- Visual progression opening → main → closing (wide_establishing_shot → medium_focus_shot → closeup)
- Each scene needs visual_treatment with role, visual_type, camera_angle, lighting, composition
- Use Shotstack-compatible cinematic effects with full type + params

Generate a complete, production-ready script that transforms "{request.original_prompt}" into a professional {profile.profileName if profile else "content"} script.

CRITICAL: You must generate {plan.estimated_scenes} scenes (not just 1) and include ALL required fields.

JSON SCHEMA (pre-filled example):
{example_json}
{HUMAN_READABLE_FORMAT}"""


def split_script_response(text: str) -> tuple[str, str]:
    """
    Split an LLM answer into (human_readable_script, json_text).

    Only answers that contain both the script title marker and a complete <json>...</json>
    block are split; anything else is treated as JSON only.
    """
    if SCRIPT_TITLE_MARKER in text and JSON_OPEN_TAG in text:
        start = text.find(JSON_OPEN_TAG)
        end = text.find(JSON_CLOSE_TAG, start)
        if end != -1:
            return text[:start].strip(), text[start + len(JSON_OPEN_TAG):end].strip()
    return "", text
