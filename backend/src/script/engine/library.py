"""
Script production library

Role:
    - Per-profile production presets used by the prompt builder and the backfill step
    - Scene enrichment progressions, ElevenLabs voiceover presets, music cues,
      consistency rules and Shotstack-compatible cinematic effects
    - Unknown profiles fall back to the educational explainer presets

Lookups return deep copies so callers can merge into them freely.
"""

import copy
from typing import Any


FALLBACK_PROFILE_ID = "educational_explainer"

_SCENE_FLAGS = {
    "visual_variety_required": True,
    "distinct_treatment_per_scene": True,
    "complementary_generation_allowed": True,
}


def _step(role: str, visual: str, asset: str, treatment: str, note: str) -> dict[str, str]:
    return {"role": role, "visual": visual, "asset": asset, "treatment": treatment, "note": note}


# ============================================================
# Scene enrichment (opening -> main -> closing)
# ============================================================
SCENE_ENRICHMENT_LIBRARY: dict[str, dict[str, Any]] = {
    "finance_explainer": {
        "progression": [
            _step("opening", "wide_establishing_shot", "user_asset_primary", "cinematic_zoom",
                  "Establish authority and context with wide shot"),
            _step("main", "medium_focus_shot", "generated_alt01", "split_screen_overlay",
                  "Derived from user asset but enriched with data visualization background"),
            _step("closing", "closeup", "generated_alt02", "bokeh_transition",
                  "Reinforces main subject with emotional resolution and call-to-action"),
        ],
        **_SCENE_FLAGS,
        "narrative_flow": "authoritative progression with data emphasis",
    },
    "educational_explainer": {
        "progression": [
            _step("opening", "welcoming_wide_shot", "user_asset_primary", "slow_pan",
                  "Create welcoming, approachable atmosphere"),
            _step("main", "instructional_medium_shot", "generated_alt01", "overlay_text",
                  "Enhanced with educational elements and clear visual hierarchy"),
            _step("closing", "inspiring_closeup", "generated_alt02", "crossfade",
                  "Motivational conclusion with inspiring visual treatment"),
        ],
        **_SCENE_FLAGS,
        "narrative_flow": "educational progression with learning emphasis",
    },
    "ugc_influencer": {
        "progression": [
            _step("opening", "energetic_hook_shot", "user_asset_primary", "cinematic_zoom",
                  "High-energy opening to grab attention immediately"),
            _step("main", "dynamic_medium_shot", "generated_alt01", "parallax_scroll",
                  "Viral-style treatment with trendy visual elements"),
            _step("closing", "memorable_closeup", "generated_alt02", "logo_reveal",
                  "Brand-focused conclusion with viral potential"),
        ],
        **_SCENE_FLAGS,
        "narrative_flow": "viral progression with high engagement",
    },
    "presentation_corporate": {
        "progression": [
            _step("opening", "professional_establishing_shot", "user_asset_primary", "cinematic_zoom",
                  "Professional authority and credibility establishment"),
            _step("main", "executive_medium_shot", "generated_alt01", "split_screen",
                  "Business-focused with corporate visual elements"),
            _step("closing", "authoritative_closeup", "generated_alt02", "bokeh_transition",
                  "Confident conclusion with executive presence"),
        ],
        **_SCENE_FLAGS,
        "narrative_flow": "executive progression with professional authority",
    },
}


# ============================================================
# ElevenLabs voiceover presets
# ============================================================
def _voiceover(
    voice_id: str,
    style: str,
    age_range: str,
    elevenlabs_voice_id: str,
    settings: tuple[float, float, float],
    narration_style: str,
    pacing_notes: str,
    volumes: tuple[str, str, str, bool],
    timing: tuple[str, str, str],
) -> dict[str, Any]:
    stability, similarity_boost, style_weight = settings
    voice_volume, music_volume, effects_volume, ducking = volumes
    pause, emphasis, breathing = timing
    return {
        "voices": [
            {
                "id": voice_id,
                "style": style,
                "gender": "neutral",
                "age_range": age_range,
                "accent": "neutral",
                "elevenlabs_voice_id": elevenlabs_voice_id,
                "voice_settings": {
                    "stability": stability,
                    "similarity_boost": similarity_boost,
                    "style": style_weight,
                    "use_speaker_boost": True,
                },
            }
        ],
        "narration_style": narration_style,
        "pacing_notes": pacing_notes,
        "audio_balance": {
            "voice_volume": voice_volume,
            "music_volume": music_volume,
            "effects_volume": effects_volume,
            "ducking_enabled": ducking,
        },
        "timing_control": {
            "pause_between_sentences": pause,
            "emphasis_timing": emphasis,
            "breathing_room": breathing,
            "sync_with_music": True,
        },
    }


VOICEOVER_LIBRARY: dict[str, dict[str, Any]] = {
    "finance_explainer": _voiceover(
        "finance_narrator", "authoritative and trustworthy", "adult", "professional_finance_voice",
        (0.75, 0.85, 0.3),
        "clear, confident, data-driven delivery",
        "Steady pace with emphasis on key statistics and insights",
        ("primary", "background", "subtle", True),
        ("0.5s", "1.2x", "0.3s"),
    ),
    "educational_explainer": _voiceover(
        "educational_narrator", "inspiring and motivational", "adult", "educational_inspirational_voice",
        (0.8, 0.9, 0.4),
        "warm, encouraging, instructional delivery",
        "Methodical with learning pauses and emphasis on key concepts",
        ("primary", "supporting", "enhancing", True),
        ("0.7s", "1.1x", "0.4s"),
    ),
    "ugc_influencer": _voiceover(
        "influencer_narrator", "energetic and engaging", "young_adult", "viral_influencer_voice",
        (0.6, 0.8, 0.7),
        "casual, punchy, first-person engaging delivery",
        "Fast-paced with energy peaks and viral hooks",
        ("primary", "energetic", "dynamic", False),
        ("0.2s", "1.5x", "0.1s"),
    ),
    "presentation_corporate": _voiceover(
        "corporate_narrator", "professional and confident", "adult", "executive_corporate_voice",
        (0.85, 0.9, 0.2),
        "authoritative, business-focused, executive delivery",
        "Steady, confident pace with strategic pauses for impact",
        ("primary", "professional", "minimal", True),
        ("0.6s", "1.1x", "0.4s"),
    ),
}


# ============================================================
# ElevenLabs music cues (intro / development / climax / outro)
# ============================================================
def _cue(segment: str, duration: str, style: str, intensity: str, instrumentation: str, emotion: str, tempo: str):
    return {
        "segment": segment,
        "duration": duration,
        "style": style,
        "intensity": intensity,
        "instrumentation": instrumentation,
        "emotion": emotion,
        "tempo": tempo,
    }


MUSIC_CUES_LIBRARY: dict[str, list[dict[str, str]]] = {
    "finance_explainer": [
        _cue("intro", "0-2s", "authoritative", "low", "soft piano + subtle strings", "confident", "moderate"),
        _cue("development", "2-8s", "motivational", "medium", "piano, strings, light percussion", "inspiring", "building"),
        _cue("climax", "8-12s", "epic", "high", "orchestral build + percussion + synth pads", "triumphant", "peak"),
        _cue("outro", "12-15s", "resolving", "low", "piano fade-out + soft strings", "satisfied", "settling"),
    ],
    "educational_explainer": [
        _cue("intro", "0-2s", "welcoming", "low", "gentle piano + warm strings", "approachable", "calm"),
        _cue("development", "2-8s", "instructional", "medium", "piano, strings, light bells", "focused", "steady"),
        _cue("climax", "8-12s", "inspiring", "medium-high", "strings crescendo + piano + light percussion", "motivated", "building"),
        _cue("outro", "12-15s", "encouraging", "low", "piano + soft strings fade", "hopeful", "gentle"),
    ],
    "ugc_influencer": [
        _cue("intro", "0-1s", "energetic", "high", "upbeat synth + drums", "excited", "fast"),
        _cue("development", "1-6s", "trendy", "medium-high", "synth, bass, electronic elements", "engaging", "vibrant"),
        _cue("climax", "6-10s", "viral", "high", "full electronic mix + vocal chops", "hyped", "peak"),
        _cue("outro", "10-12s", "catchy", "medium", "synth fade + beat drop", "satisfied", "memorable"),
    ],
    "presentation_corporate": [
        _cue("intro", "0-3s", "professional", "low", "clean piano + corporate strings", "confident", "steady"),
        _cue("development", "3-10s", "authoritative", "medium", "piano, strings, subtle percussion", "trustworthy", "building"),
        _cue("climax", "10-15s", "impactful", "high", "orchestral peak + corporate brass", "convincing", "powerful"),
        _cue("outro", "15-18s", "conclusive", "low", "piano resolution + strings", "accomplished", "resolved"),
    ],
}


# ============================================================
# Consistency rules
# ============================================================
def _rules(tone: str, color_palette: str, font_consistency: str, logo_usage: str, style_continuity: str):
    return {
        "character_faces": "locked",
        "voice_style": "consistent",
        "tone": tone,
        "visual_continuity": "maintained",
        "brand_consistency": "enforced",
        "color_palette": color_palette,
        "font_consistency": font_consistency,
        "logo_usage": logo_usage,
        "style_continuity": style_continuity,
    }


CONSISTENCY_RULES_LIBRARY: dict[str, dict[str, str]] = {
    "finance_explainer": _rules(
        "authoritative and trustworthy", "professional blues and grays", "clean, modern sans-serif",
        "subtle, bottom-right placement", "corporate, data-driven aesthetic",
    ),
    "educational_explainer": _rules(
        "inspiring and motivational", "warm, approachable colors", "readable, friendly typography",
        "minimal, non-intrusive", "educational, clear communication",
    ),
    "ugc_influencer": _rules(
        "energetic and engaging", "vibrant, trendy colors", "bold, attention-grabbing",
        "prominent, brand-focused", "social media optimized",
    ),
    "presentation_corporate": _rules(
        "professional and confident", "corporate brand colors", "professional, branded typography",
        "strategic, brand reinforcement", "executive presentation quality",
    ),
    "pleasure_relaxation": _rules(
        "calm and soothing", "soft, natural tones", "gentle, flowing typography",
        "minimal, peaceful placement", "zen, wellness-focused",
    ),
    "ads_commercial": _rules(
        "persuasive and compelling", "brand-specific, high-contrast", "bold, commercial typography",
        "prominent, call-to-action focused", "advertising, conversion-optimized",
    ),
    "demo_product_showcase": _rules(
        "demonstrative and feature-focused", "tech-focused, modern colors", "clean, technical typography",
        "product-focused, feature highlighting", "tech demo, innovation showcase",
    ),
    "funny_meme_style": _rules(
        "humorous and meme-worthy", "vibrant, meme-appropriate colors", "fun, viral typography",
        "meme-integrated, viral potential", "social media, shareable content",
    ),
    "documentary_storytelling": _rules(
        "narrative and documentary-style", "cinematic, story-appropriate", "documentary, narrative typography",
        "subtle, story-supporting", "cinematic, documentary quality",
    ),
}


# ============================================================
# Shotstack-compatible cinematic effects
# ============================================================
CINEMATIC_EFFECTS_LIBRARY: dict[str, dict[str, Any]] = {
    # camera movement
    "cinematic_zoom": {
        "type": "cinematic_zoom",
        "params": {"direction": "in", "duration": "1s", "easing": "ease-in-out", "scale_factor": 1.2},
    },
    "cinematic_zoom_out": {
        "type": "cinematic_zoom",
        "params": {"direction": "out", "duration": "1.2s", "easing": "ease-out", "scale_factor": 0.8},
    },
    "slow_pan": {
        "type": "slow_pan",
        "params": {"direction": "right", "duration": "2s", "easing": "linear", "distance": "20%"},
    },
    "parallax_scroll": {
        "type": "parallax_scroll",
        "params": {"layers": 3, "speed_variance": 0.3, "direction": "up", "duration": "1.5s"},
    },
    # transitions
    "bokeh_transition": {
        "type": "bokeh_transition",
        "params": {"blur_intensity": "medium", "duration": "0.7s", "easing": "ease-in-out"},
    },
    "split_screen": {
        "type": "split_screen",
        "params": {"orientation": "vertical", "transition": "wipe", "ratio": "50:50", "duration": "1s"},
    },
    "crossfade": {"type": "crossfade", "params": {"duration": "0.8s", "easing": "ease-in-out"}},
    # text and overlays
    "overlay_text": {
        "type": "overlay_text",
        "params": {
            "style": "bold",
            "position": "bottom_center",
            "animation": "fade_in",
            "duration": "1s",
            "font_size": "large",
        },
    },
    "text_reveal": {
        "type": "text_reveal",
        "params": {"animation": "typewriter", "duration": "1.5s", "position": "center", "style": "modern"},
    },
    "logo_reveal": {
        "type": "logo_reveal",
        "params": {"style": "light_glow", "duration": "1.2s", "animation": "scale_fade", "glow_intensity": "medium"},
    },
    # enhancement
    "lens_flare": {"type": "lens_flare", "params": {"intensity": "medium", "duration": "0.5s", "position": "top_right"}},
    "motion_blur": {"type": "motion_blur", "params": {"intensity": "low", "duration": "0.3s", "direction": "horizontal"}},
    "color_grade": {"type": "color_grade", "params": {"style": "cinematic", "intensity": "medium", "temperature": "warm"}},
    # professional
    "data_highlight": {
        "type": "data_highlight",
        "params": {"animation": "pulse", "duration": "1s", "color": "accent", "intensity": "medium"},
    },
    "chart_animation": {
        "type": "chart_animation",
        "params": {"animation": "draw_in", "duration": "2s", "easing": "ease-out", "style": "professional"},
    },
    "product_highlight": {
        "type": "product_highlight",
        "params": {"glow": "soft", "duration": "1.5s", "animation": "scale_glow", "intensity": "medium"},
    },
}


# ============================================================
# Creative profile script templates
# ============================================================
def _template(style: str, pacing: str, transitions: list[str], effects: list[str], music: str, music_arcs: list[str]):
    return {
        "style": style,
        "pacing": pacing,
        "transitions": transitions,
        "effects": effects,
        "music": music,
        "music_arcs": music_arcs,
    }


CREATIVE_PROFILE_SCRIPTS: dict[str, dict[str, Any]] = {
    "anime_mode": _template(
        "dramatic dialogue with inner monologue and action sounds",
        "dynamic with emotional peaks",
        ["dramatic_fade", "action_cut", "emotional_zoom"],
        ["lens_flare", "motion_blur", "cinematic_zoom", "parallax_scroll", "text_reveal", "color_grade"],
        "orchestral anime theme with emotional crescendos",
        ["epic_intro", "emotional_buildup", "climactic_peak", "triumphant_outro"],
    ),
    "finance_explainer": _template(
        "structured narration with data callouts",
        "steady and authoritative",
        ["professional_fade", "data_reveal", "chart_transition"],
        ["overlay_text", "data_highlight", "chart_animation", "cinematic_zoom", "split_screen", "bokeh_transition"],
        "corporate background with subtle emphasis",
        ["authoritative_intro", "steady_development", "data_emphasis", "confident_outro"],
    ),
    "educational_explainer": _template(
        "clear, instructional narration",
        "methodical with learning pauses",
        ["educational_fade", "step_transition", "concept_reveal"],
        ["overlay_text", "text_reveal", "cinematic_zoom", "slow_pan", "crossfade", "data_highlight"],
        "neutral background with learning emphasis",
        ["welcoming_intro", "educational_flow", "concept_emphasis", "inspiring_outro"],
    ),
    "ugc_influencer": _template(
        "casual, punchy, first-person style",
        "energetic and engaging",
        ["quick_cut", "energy_boost", "trendy_transition"],
        ["cinematic_zoom", "parallax_scroll", "logo_reveal", "text_reveal", "motion_blur", "color_grade"],
        "trendy, upbeat with viral potential",
        ["viral_hook", "energetic_flow", "trendy_peak", "engaging_outro"],
    ),
    "presentation_corporate": _template(
        "professional, confident narration",
        "steady and business-focused",
        ["corporate_fade", "slide_transition", "professional_cut"],
        ["overlay_text", "data_highlight", "cinematic_zoom", "split_screen", "bokeh_transition", "logo_reveal"],
        "corporate background with professional tone",
        ["professional_intro", "confident_development", "key_insight_emphasis", "authoritative_outro"],
    ),
    "pleasure_relaxation": _template(
        "calm, soothing narration",
        "relaxed and peaceful",
        ["gentle_fade", "soft_transition", "calm_dissolve"],
        ["slow_pan", "bokeh_transition", "overlay_text", "crossfade", "color_grade", "cinematic_zoom_out"],
        "ambient, relaxing with nature sounds",
        ["calm_intro", "peaceful_flow", "serene_peak", "tranquil_outro"],
    ),
    "ads_commercial": _template(
        "persuasive, compelling narration",
        "dynamic with call-to-action",
        ["commercial_cut", "product_reveal", "cta_emphasis"],
        ["product_highlight", "logo_reveal", "parallax_scroll", "cinematic_zoom", "text_reveal", "lens_flare"],
        "commercial background with brand emphasis",
        ["attention_grabber", "product_showcase", "persuasive_peak", "call_to_action"],
    ),
    "demo_product_showcase": _template(
        "demonstrative, feature-focused narration",
        "clear with feature emphasis",
        ["feature_reveal", "demo_transition", "product_showcase"],
        ["product_highlight", "cinematic_zoom", "split_screen", "logo_reveal", "text_reveal", "motion_blur"],
        "tech-focused background with feature emphasis",
        ["tech_intro", "feature_showcase", "demo_emphasis", "innovation_outro"],
    ),
    "funny_meme_style": _template(
        "humorous, meme-style narration",
        "quick and punchy",
        ["meme_cut", "joke_transition", "punchline_emphasis"],
        ["cinematic_zoom", "parallax_scroll", "logo_reveal", "text_reveal", "motion_blur", "color_grade"],
        "funny, meme-worthy with comedic timing",
        ["comedy_hook", "joke_buildup", "punchline_peak", "viral_outro"],
    ),
    "documentary_storytelling": _template(
        "narrative, documentary-style narration",
        "cinematic with story beats",
        ["cinematic_fade", "story_transition", "documentary_cut"],
        ["slow_pan", "bokeh_transition", "overlay_text", "cinematic_zoom", "crossfade", "color_grade"],
        "cinematic score with narrative emphasis",
        ["narrative_intro", "story_development", "emotional_peak", "satisfying_outro"],
    ),
}


# ============================================================
# Lookups (educational fallback)
# ============================================================
def _lookup(library: dict[str, Any], profile_id: str | None) -> Any:
    return copy.deepcopy(library.get(profile_id or "") or library[FALLBACK_PROFILE_ID])


def get_scene_enrichment(profile_id: str | None) -> dict[str, Any]:
    return _lookup(SCENE_ENRICHMENT_LIBRARY, profile_id)


def get_voiceover_preset(profile_id: str | None) -> dict[str, Any]:
    return _lookup(VOICEOVER_LIBRARY, profile_id)


def get_music_cues(profile_id: str | None) -> list[dict[str, str]]:
    return _lookup(MUSIC_CUES_LIBRARY, profile_id)


def get_consistency_rules(profile_id: str | None) -> dict[str, str]:
    return _lookup(CONSISTENCY_RULES_LIBRARY, profile_id)


def get_profile_template(profile_id: str | None) -> dict[str, Any]:
    """Script template with its effect names resolved to full effect definitions."""
    template = _lookup(CREATIVE_PROFILE_SCRIPTS, profile_id)
    template["effects"] = [copy.deepcopy(CINEMATIC_EFFECTS_LIBRARY[name]) for name in template["effects"]]
    return template
