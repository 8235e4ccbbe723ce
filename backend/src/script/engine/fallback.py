"""
Script backfill and fallback synthesis

Role:
    - backfill_script_fields: fill the sections an LLM script left out from the profile
      presets so schema validation can pass
    - create_fallback_script: synthesize a complete script from the refined document
      when the LLM answer cannot be repaired into JSON
"""

from typing import Any

from backend.src.script.engine.library import get_consistency_rules, get_music_cues, get_voiceover_preset
from backend.src.script.engine.prompts import plan_scenes, resolve_orientation, resolve_profile_id
from backend.src.script.schemas.script import ScriptEnhancerInput


DEFAULT_TRANSITIONS = ["crossfade", "bokeh_transition", "wipe"]

_MIDDLE_HINTS = (
    "Here's the key insight",
    "Let me show you how this works",
    "This is where it gets interesting",
    "The important part is",
    "Here's what you need to understand",
)


# ============================================================
# Backfill
# ============================================================
def backfill_script_fields(script: dict[str, Any] | None, profile_id: str) -> dict[str, Any]:
    """
    Fill missing script sections from the profile presets.

    Existing values always win over presets; only absent or empty fields are filled.

    Args:
        script: parsed LLM script (may be partial or None)
        profile_id: creative profile whose presets are used (educational fallback)

    Returns:
        New dict with global_voiceover, music_plan, asset_integration,
        quality_assurance and consistency present
    """
    out = dict(script or {})
    voice_defaults = get_voiceover_preset(profile_id)
    cue_defaults = get_music_cues(profile_id)
    consistency_defaults = get_consistency_rules(profile_id)

    voiceover = {**voice_defaults, **(out.get("global_voiceover") or {})}
    if not isinstance(voiceover.get("voices"), list):
        voiceover["voices"] = voice_defaults["voices"]
    voiceover["narration_style"] = voiceover.get("narration_style") or voice_defaults["narration_style"]
    voiceover["pacing_notes"] = voiceover.get("pacing_notes") or voice_defaults["pacing_notes"]
    out["global_voiceover"] = voiceover

    music = out.get("music_plan") or {}
    music_plan = {
        "style": music.get("style") or (cue_defaults[0]["style"] if cue_defaults else "cinematic"),
        "transitions": music["transitions"] if isinstance(music.get("transitions"), list) else DEFAULT_TRANSITIONS[:],
        "mood_progression": (
            music["mood_progression"]
            if isinstance(music.get("mood_progression"), list)
            else [cue["style"] for cue in cue_defaults]
        ),
        "music_cues": music["music_cues"] if isinstance(music.get("music_cues"), list) else cue_defaults,
        "audio_engine": music.get("audio_engine") or "elevenlabs",
        "emotion_tracking": music["emotion_tracking"] if isinstance(music.get("emotion_tracking"), bool) else True,
    }
    # optional sections the LLM did provide are kept
    for key in ("sound_effects", "music_arcs"):
        if music.get(key):
            music_plan[key] = music[key]
    out["music_plan"] = music_plan

    integration = out.get("asset_integration") or {}
    out["asset_integration"] = {
        "user_assets_used": integration.get("user_assets_used") or [],
        "generated_content_needed": integration.get("generated_content_needed") or [],
        "visual_flow": integration.get("visual_flow") or [],
    }

    qa = out.get("quality_assurance") or {}
    out["quality_assurance"] = {
        "duration_compliance": qa["duration_compliance"] if isinstance(qa.get("duration_compliance"), bool) else True,
        "asset_utilization": qa.get("asset_utilization") or "moderate",
        "narrative_coherence": qa.get("narrative_coherence") or "strong",
        "profile_alignment": qa.get("profile_alignment") or "strong",
    }

    existing = out.get("consistency") or {}
    out["consistency"] = {
        key: existing.get(key) or consistency_defaults[key]
        for key in ("character_faces", "voice_style", "tone", "visual_continuity", "brand_consistency")
    }
    out["consistency"]["consistency_rules"] = existing.get("consistency_rules") or consistency_defaults

    return out


# ============================================================
# Fallback script
# ============================================================
class _FallbackWriter:
    """Contextual narration, subtitles and visuals derived from the refined document."""

    def __init__(self, data: ScriptEnhancerInput, total_scenes: int):
        self.data = data
        self.total = total_scenes
        self.prompt = data.user_request.original_prompt or ""
        self.intent = data.prompt_analysis.user_intent_description or ""
        self.concept = data.creative_direction.core_concept or ""
        self.mood = data.creative_direction.mood_atmosphere or "professional"
        self.visual_approach = data.creative_direction.visual_approach or "clean and engaging"

    def _position(self, index: int) -> str:
        if index == 0:
            return "opening"
        if index == self.total - 1:
            return "closing"
        return "main"

    def narration(self, index: int) -> str:
        position = self._position(index)
        concept = self.concept.lower()

        if position == "opening":
            if self.concept:
                follow = "I will break this down simply" if "explain" in self.prompt else "Here is what you need to know"
                return f"Let's dive into {concept}. {follow}."
            if self.intent:
                return f"Welcome! {self.intent}. Let's get started."
            return f"Let's explore this together. {self.prompt[:100]}..."

        if position == "closing":
            covered = f"We've covered {concept}" if self.concept else "Thanks for watching"
            sign_off = "Hope you learned something new!" if "learn" in self.prompt else "Hope this was helpful!"
            return f"That's a wrap! {covered}. {sign_off}"

        hint = _MIDDLE_HINTS[index % len(_MIDDLE_HINTS)]
        context = f"In {concept}," if self.concept else "In this context,"
        return f"{hint}. {context} this is crucial."

    def subtitles(self, index: int) -> str:
        return self.narration(index).split(".")[0] + "."

    def purpose(self, index: int) -> str:
        position = self._position(index)
        if position == "opening":
            topic = self.concept.lower() if self.concept else "the main topic"
            return f"Hook the audience with {topic} and establish credibility"
        if position == "closing":
            return "Deliver the final key message and create a memorable conclusion"
        return "Develop the core content with clear explanations and visual impact"

    def visual_treatment(self, index: int) -> dict[str, str]:
        position = self._position(index)
        assets = self.data.assets
        has_asset = len(assets) > index

        if has_asset:
            asset = assets[index]
            note = f"Feature user asset: {asset.user_description or asset.ai_caption or 'user provided content'}"
        elif position == "opening":
            note = "Establish context and authority"
        else:
            note = "Focus on main content delivery"

        if position == "opening":
            visual_type, angle, composition = "wide_establishing_shot", "wide", "rule_of_thirds"
        elif has_asset:
            visual_type, angle, composition = "asset_focused_shot", "close_up", "centered"
        else:
            visual_type, angle, composition = "medium_focus_shot", "medium", "dynamic"

        return {
            "role": position,
            "visual_type": visual_type,
            "camera_angle": angle,
            "lighting": "dramatic" if "dramatic" in self.visual_approach else "professional",
            "composition": composition,
            "treatment_note": note,
        }

    def effect(self, index: int) -> dict[str, Any]:
        position = self._position(index)
        effect_type = {"opening": "fade_in", "closing": "fade_out"}.get(position, "cinematic_zoom")
        return {
            "type": effect_type,
            "params": {
                "direction": "in" if index == 0 else "out",
                "duration": "1s",
                "easing": "ease-in-out",
                "scale_factor": 1.1,
            },
        }

    def music_cue(self, index: int) -> str:
        return {"opening": "opening_theme", "closing": "closing_theme"}.get(self._position(index), "main_theme")


def _pacing_style(profile_id: str) -> str:
    if "influencer" in profile_id:
        return "energetic and engaging"
    if "finance" in profile_id:
        return "authoritative and clear"
    return "methodical with learning pauses"


def _scene_progression(data: ScriptEnhancerInput, concept: str) -> list[dict[str, str]]:
    assets = data.assets
    if assets:
        second = assets[1] if len(assets) > 1 else None
        return [
            {
                "role": "opening",
                "visual": "wide_establishing_shot",
                "asset": assets[0].id,
                "treatment": "cinematic_zoom",
                "note": f"Establish context with {assets[0].user_description or 'user provided content'}",
            },
            {
                "role": "main",
                "visual": "asset_focused_shot" if second else "medium_focus_shot",
                "asset": second.id if second else "generated_content",
                "treatment": "slow_pan",
                "note": (
                    f"Develop content with {second.user_description or 'secondary asset'}"
                    if second
                    else "Focus on main content delivery"
                ),
            },
        ]
    return [
        {
            "role": "opening",
            "visual": "wide_establishing_shot",
            "asset": "generated_opening",
            "treatment": "fade_in",
            "note": f"Establish context for {concept or 'the main topic'}",
        },
        {
            "role": "main",
            "visual": "medium_focus_shot",
            "asset": "generated_content",
            "treatment": "cinematic_zoom",
            "note": f"Deliver core content about {concept or 'the subject matter'}",
        },
    ]


def create_fallback_script(data: ScriptEnhancerInput) -> dict[str, Any]:
    """
    Synthesize a complete script without the LLM.

    Scene count follows the regular plan (max(2, ceil(duration / 2.5))); narration,
    subtitles and visual treatment are derived from the prompt, core concept and assets.
    """
    profile_id = resolve_profile_id(data)
    duration = data.user_request.duration_seconds
    plan = plan_scenes(duration)
    writer = _FallbackWriter(data, plan.estimated_scenes)
    assets = data.assets
    concept = writer.concept
    mood = writer.mood
    tone = data.creative_direction.mood_atmosphere

    scenes = [
        {
            "scene_id": f"s{i + 1}",
            "duration": plan.scene_duration,
            "narration": writer.narration(i),
            "visual_anchor": assets[i].id if len(assets) > i else f"generated_scene_{i + 1}",
            "suggested_effects": [writer.effect(i)],
            "music_cue": writer.music_cue(i),
            "subtitles": writer.subtitles(i),
            "scene_purpose": writer.purpose(i),
            "emotional_tone": mood,
            "visual_treatment": writer.visual_treatment(i),
        }
        for i in range(plan.estimated_scenes)
    ]

    return {
        "script_metadata": {
            "profile": profile_id,
            "duration_seconds": duration,
            "orientation": resolve_orientation(data.user_request.aspect_ratio),
            "language": "english",
            "total_scenes": plan.estimated_scenes,
            "estimated_word_count": int(duration * 5),
            "pacing_style": _pacing_style(profile_id),
        },
        "scenes": scenes,
        "global_voiceover": {
            "voices": [
                {
                    "id": "fallback_narrator",
                    "style": "professional and clear",
                    "gender": "neutral",
                    "age_range": "adult",
                    "accent": "neutral",
                    "elevenlabs_voice_id": "professional_voice",
                    "voice_settings": {
                        "stability": 0.8,
                        "similarity_boost": 0.9,
                        "style": 0.3,
                        "use_speaker_boost": True,
                    },
                }
            ],
            "narration_style": "clear, professional delivery",
            "pacing_notes": "Steady pace with emphasis on key points",
            "audio_balance": {
                "voice_volume": "primary",
                "music_volume": "background",
                "effects_volume": "subtle",
                "ducking_enabled": True,
            },
            "timing_control": {
                "pause_between_sentences": "0.5s",
                "emphasis_timing": "1.1x",
                "breathing_room": "0.3s",
                "sync_with_music": True,
            },
        },
        "music_plan": {
            "style": "professional background music",
            "transitions": ["crossfade", "bokeh_transition"],
            "mood_progression": ["opening", "development", "climax", "resolution"],
            "music_cues": [
                {
                    "segment": "intro",
                    "duration": "0-2s",
                    "style": "welcoming",
                    "intensity": "low",
                    "instrumentation": "gentle piano + strings",
                    "emotion": "approachable",
                    "tempo": "calm",
                },
                {
                    "segment": "development",
                    "duration": "2-8s",
                    "style": "instructional",
                    "intensity": "medium",
                    "instrumentation": "piano, strings",
                    "emotion": "focused",
                    "tempo": "steady",
                },
            ],
            "audio_engine": "elevenlabs",
            "emotion_tracking": True,
        },
        "asset_integration": {
            "user_assets_used": [asset.id for asset in assets],
            "generated_content_needed": (
                ["background_music", "transition_effects", "supporting_graphics"]
                if assets
                else ["background_music", "transition_effects", "primary_visuals", "supporting_graphics"]
            ),
            "visual_flow": (
                ["user_asset_showcase", "content_development", "conclusion"]
                if assets
                else ["opening_shot", "main_content", "closing_shot"]
            ),
        },
        "quality_assurance": {
            "duration_compliance": True,
            "asset_utilization": (
                f"All {len(assets)} user assets integrated with contextual relevance"
                if assets
                else "Generated content optimized for maximum engagement"
            ),
            "narrative_coherence": (
                f"Clear progression through {concept.lower()} with logical flow"
                if concept
                else "Strong narrative arc with engaging content development"
            ),
            "profile_alignment": f"Perfectly matches {profile_id.replace('_', ' ', 1)} style with {mood} tone",
        },
        "consistency": {
            "character_faces": "locked",
            "voice_style": "consistent",
            "tone": tone,
            "visual_continuity": "maintained",
            "brand_consistency": "enforced",
            "consistency_rules": {
                "character_faces": "locked",
                "voice_style": "consistent",
                "tone": tone,
                "visual_continuity": "maintained",
                "brand_consistency": "enforced",
                "color_palette": "professional colors",
                "font_consistency": "clean, modern typography",
                "logo_usage": "minimal, non-intrusive",
                "style_continuity": "professional, clear communication",
            },
        },
        "scene_enrichment": {
            "progression": _scene_progression(data, concept),
            "visual_variety_required": True,
            "distinct_treatment_per_scene": True,
            "complementary_generation_allowed": True,
            "narrative_flow": (
                f"Professional progression through {concept.lower()} with {mood} tone"
                if concept
                else f"Professional progression with clear communication and {mood} atmosphere"
            ),
        },
    }
