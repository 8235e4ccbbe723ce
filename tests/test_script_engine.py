"""
Script engine tests (library lookups, scene planning, prompt, backfill, fallback, quality)

No LLM involved: every function under test is deterministic.
"""

import pytest

from backend.src.script.engine.fallback import DEFAULT_TRANSITIONS, backfill_script_fields, create_fallback_script
from backend.src.script.engine.library import (
    CREATIVE_PROFILE_SCRIPTS,
    get_consistency_rules,
    get_profile_template,
    get_voiceover_preset,
)
from backend.src.script.engine.prompts import (
    build_example_script,
    build_script_prompt,
    plan_scenes,
    resolve_orientation,
    split_script_response,
)
from backend.src.script.engine.quality import assess_script_quality, determine_script_grade
from backend.src.script.schemas.script import ScriptEnhancerInput, adapt_request_format, validate_script


@pytest.fixture
def data(script_input) -> ScriptEnhancerInput:
    return ScriptEnhancerInput.model_validate(script_input)


# ============================================================
# 1. Library
# ============================================================
class TestLibrary:
    def test_unknown_profile_falls_back_to_educational(self):
        assert get_voiceover_preset("anime_mode")["voices"][0]["id"] == "educational_narrator"
        assert get_voiceover_preset(None) == get_voiceover_preset("educational_explainer")

    def test_lookups_are_copies(self):
        rules = get_consistency_rules("finance_explainer")
        rules["tone"] = "changed"
        assert get_consistency_rules("finance_explainer")["tone"] == "authoritative and trustworthy"

    def test_template_effects_are_resolved(self):
        template = get_profile_template("anime_mode")
        assert template["effects"][0] == {
            "type": "lens_flare",
            "params": {"intensity": "medium", "duration": "0.5s", "position": "top_right"},
        }
        # the stored template still holds effect names
        assert CREATIVE_PROFILE_SCRIPTS["anime_mode"]["effects"][0] == "lens_flare"


# ============================================================
# 2. Planning / parsing
# ============================================================
class TestPlanning:
    def test_plan_scenes(self):
        plan = plan_scenes(30)
        assert (plan.estimated_scenes, plan.scene_duration, plan.words_per_scene) == (12, 3, 13)

    def test_short_duration_keeps_two_scenes(self):
        plan = plan_scenes(3)
        assert plan.estimated_scenes == 2
        assert plan.scene_duration == 2

    @pytest.mark.parametrize(
        "aspect_ratio, orientation",
        [("9:16", "portrait"), ("Smart Auto", "portrait"), ("1:1", "square"), ("Square", "square"), ("16:9", "landscape"), ("", "landscape")],
    )
    def test_orientation(self, aspect_ratio, orientation):
        assert resolve_orientation(aspect_ratio) == orientation

    def test_split_response(self):
        text = '=== SCRIPT TITLE ===\nCompound Interest\n\n<json>{"scenes": []}</json>'
        assert split_script_response(text) == ("=== SCRIPT TITLE ===\nCompound Interest", '{"scenes": []}')

    def test_json_only_response(self):
        text = '<json>{"scenes": []}</json>'
        assert split_script_response(text) == ("", text)


# ============================================================
# 3. Prompt
# ============================================================
class TestPrompt:
    def test_prompt_content(self, data):
        prompt = build_script_prompt(data)

        assert "Create 12 scenes with proper timing" in prompt
        assert '- ast_chart: image (User: "main chart of savings growth"' in prompt
        assert "- MUST mention each user asset: ast_chart" in prompt
        assert "CREATIVE PROFILE: educational_explainer" in prompt
        assert "- Effects: overlay_text, text_reveal, cinematic_zoom, slow_pan, crossfade, data_highlight" in prompt
        assert "=== SCRIPT TITLE ===" in prompt

    def test_example_script_is_valid(self, data):
        example = build_example_script(data)

        assert example["script_metadata"]["total_scenes"] == 12
        assert example["script_metadata"]["orientation"] == "landscape"
        assert example["scenes"][0]["visual_anchor"] == "ast_chart"
        assert example["scenes"][1]["visual_anchor"] == "generated_main_content"
        assert example["music_plan"]["music_arcs"]["intro"] == "welcoming_intro"
        validate_script(example)


# ============================================================
# 4. Backfill / fallback
# ============================================================
class TestBackfill:
    def test_empty_script_gets_presets(self):
        script = backfill_script_fields(None, "unknown_profile")

        assert script["global_voiceover"]["voices"][0]["id"] == "educational_narrator"
        assert script["music_plan"]["style"] == "welcoming"
        assert script["music_plan"]["transitions"] == DEFAULT_TRANSITIONS
        assert script["asset_integration"] == {"user_assets_used": [], "generated_content_needed": [], "visual_flow": []}
        assert script["consistency"]["tone"] == "inspiring and motivational"

    def test_existing_values_win(self):
        script = backfill_script_fields(
            {
                "global_voiceover": {"narration_style": "whispered"},
                "music_plan": {"style": "jazz", "transitions": ["cut"]},
            },
            "finance_explainer",
        )

        assert script["global_voiceover"]["narration_style"] == "whispered"
        assert script["global_voiceover"]["voices"][0]["id"] == "finance_narrator"
        assert script["music_plan"]["style"] == "jazz"
        assert script["music_plan"]["transitions"] == ["cut"]
        assert script["music_plan"]["music_cues"][0]["style"] == "authoritative"


class TestFallbackScript:
    def test_fallback_covers_duration_plan(self, data):
        script = validate_script(backfill_script_fields(create_fallback_script(data), "educational_explainer"))

        assert len(script.scenes) == 12
        assert script.scenes[0].visual_anchor == "ast_chart"
        assert script.scenes[1].visual_anchor == "generated_scene_2"
        assert script.scenes[0].narration.startswith("Let's dive into create visual content")
        assert script.scenes[-1].narration.endswith("Hope this was helpful!")
        assert script.scenes[0].visual_treatment.role == "opening"
        assert script.scenes[-1].visual_treatment.role == "closing"
        assert script.asset_integration.user_assets_used == ["ast_chart"]

    def test_fallback_without_assets(self, script_input):
        script_input["assets"] = []
        data = ScriptEnhancerInput.model_validate(script_input)

        script = create_fallback_script(data)

        assert script["scenes"][0]["visual_anchor"] == "generated_scene_1"
        assert script["scene_enrichment"]["progression"][0]["asset"] == "generated_opening"


# ============================================================
# 5. Quality
# ============================================================
class TestScriptQuality:
    @pytest.mark.parametrize("score, grade", [(0.96, "A+"), (0.9, "A"), (0.72, "B-"), (0.62, "C"), (0.1, "D")])
    def test_grades(self, score, grade):
        assert determine_script_grade(score) == grade

    def test_duration_mismatch_is_reported(self, data):
        script = validate_script(backfill_script_fields(create_fallback_script(data), "educational_explainer"))

        report = assess_script_quality(script, data)

        assert "Duration mismatch: 36s vs 30s (tolerance: ±1s)" in report.issues
        assert report.overall_score >= 0

    def test_missing_scenes(self, data):
        partial = {
            "scenes": [],
            "script_metadata": {
                "profile": "educational_explainer",
                "duration_seconds": 30,
                "orientation": "landscape",
                "language": "english",
                "total_scenes": 0,
                "estimated_word_count": 0,
                "pacing_style": "steady",
            },
        }
        script = validate_script(backfill_script_fields(partial, "educational_explainer"))

        report = assess_script_quality(script, data)

        assert "Insufficient scenes for professional narrative structure (minimum: 3 scenes)" in report.issues
        assert "Incomplete asset utilization: 0% of assets used (required: 100%)" in report.issues


# ============================================================
# 6. Legacy request format
# ============================================================
class TestAdaptRequestFormat:
    def test_refined_document_passes_through(self, script_input):
        assert adapt_request_format(script_input) is script_input

    def test_legacy_body(self):
        adapted = adapt_request_format(
            {
                "userPrompt": "Make a video about coffee",
                "options": {"durationSeconds": 15, "aspectRatio": "9:16"},
                "warnings": ["Low light footage"],
            }
        )

        assert adapted["user_request"]["duration_seconds"] == 15
        assert adapted["user_request"]["aspect_ratio"] == "9:16"
        assert adapted["user_request"]["platform"] == "social"
        assert adapted["global_analysis"]["conflicts"] == [{"issue": "Low light footage", "resolution": "Addressed in script"}]
        assert adapted["refiner_extensions"]["creative_profile"]["profileId"] == "educational_explainer"

        data = ScriptEnhancerInput.model_validate(adapted)
        assert data.prompt_analysis.reformulated_prompt == "Make a video about coffee"
