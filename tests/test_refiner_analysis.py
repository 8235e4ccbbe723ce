"""
Refiner analysis unit tests

Pre-LLM analysis (content type normalisation, asset utilization, session mode),
deterministic fill-ins (narrative spine, refiner_extensions, utilization levels)
and the one-shot schema auto-fix.
"""

from backend.src.common.enums import SessionMode, UtilizationLevel
from backend.src.refiner.engine.analysis import (
    GENERIC_SCAFFOLDING,
    analyze_asset_integration,
    analyze_asset_utilization,
    analyze_confidence_levels,
    analyze_core_concept,
    analyze_user_description_for_role_elevation,
    apply_content_type_normalization,
    auto_fix_schema_issues,
    build_refiner_extensions,
    detect_session_mode,
    generate_narrative_spine,
    get_default_scaffolding,
    normalize_content_type_analysis,
    normalize_utilization_levels,
)


def _asset(asset_id: str, quality: float, description: str = "", caption: str = "", type_: str = "image") -> dict:
    return {
        "id": asset_id,
        "type": type_,
        "quality_score": quality,
        "user_description": description,
        "ai_caption": caption,
    }


# ============================================================
# 1. Content type normalisation
# ============================================================
class TestContentTypeNormalization:
    def test_explainer_becomes_educational(self, analyzer_document):
        result = normalize_content_type_analysis(analyzer_document)

        assert result.needs_correction is True
        assert result.normalized_analysis["needs_educational_content"] is True
        assert "Explainer content should be educational" in result.contradictions

    def test_fills_missing_complexity_from_asset_count(self):
        data = {
            "user_request": {"original_prompt": "make a video"},
            "assets": [_asset(f"a{i}", 0.8) for i in range(3)],
        }
        result = normalize_content_type_analysis(data)
        assert result.normalized_analysis["content_complexity"] == "moderate"
        assert result.normalized_analysis["content_category"] == "general"

    def test_category_from_prompt(self):
        data = {"user_request": {"original_prompt": "A funny meme about cats"}}
        result = normalize_content_type_analysis(data)
        assert result.normalized_analysis["content_category"] == "entertainment"
        assert result.normalized_analysis["content_complexity"] == "simple"

    def test_consistent_input_is_left_alone(self):
        data = {
            "user_request": {"original_prompt": "x"},
            "prompt_analysis": {
                "content_type_analysis": {"content_complexity": "simple", "content_category": "general"}
            },
        }
        corrected, result = apply_content_type_normalization(data)
        assert result.needs_correction is False
        assert corrected is data

    def test_apply_returns_corrected_copy(self, analyzer_document):
        corrected, _ = apply_content_type_normalization(analyzer_document)

        assert corrected["prompt_analysis"]["content_type_analysis"]["needs_educational_content"] is True
        assert analyzer_document["prompt_analysis"]["content_type_analysis"]["needs_educational_content"] is False


# ============================================================
# 2. Asset utilization & session mode
# ============================================================
class TestAssetUtilization:
    def test_no_assets_is_asset_free(self):
        result = analyze_asset_utilization({"assets": []})
        assert result.session_mode == SessionMode.ASSET_FREE
        assert result.utilization_rate == 0.0
        assert "scaffolding" in result.utilization_rationale

    def test_every_asset_is_used(self):
        data = {
            "assets": [
                _asset("good", 0.9, caption="a bright product photo on white"),
                _asset("okay", 0.55),
                _asset("weak", 0.2),
            ]
        }
        result = analyze_asset_utilization(data)

        assert result.primary_assets == ["good", "okay"]
        assert result.reference_only_assets == ["weak"]
        assert result.utilization_rate == 1.0
        assert result.needs_elevation is True
        assert "Use weak as seed for generation or supporting element" in result.elevation_suggestions

    def test_user_described_main_character_is_primary_even_when_low_quality(self):
        data = {"assets": [_asset("hero", 0.1, description="This is the main character of my story")]}
        result = analyze_asset_utilization(data)

        assert result.primary_assets == ["hero"]
        assert len(result.asset_role_elevations) == 1
        assert "quality enhancement needed" in result.elevation_suggestions[0]

    def test_logo_becomes_branding(self):
        result = analyze_asset_utilization({"assets": [_asset("logo", 0.6, description="our company logo")]})
        assert result.primary_assets == ["logo"]
        assert result.asset_role_elevations[0].elevated_role == "branding"

    def test_background_is_reference_only(self):
        result = analyze_asset_utilization({"assets": [_asset("bg", 0.9, description="beach backdrop")]})
        assert result.reference_only_assets == ["bg"]
        assert result.primary_assets == []
        assert result.utilization_rationale.startswith("Assets will be used as generation seeds")

    def test_role_elevation_needs_description(self):
        assert analyze_user_description_for_role_elevation(_asset("x", 0.9), 0.9) is None

    def test_first_matching_rule_wins(self):
        elevation = analyze_user_description_for_role_elevation(
            _asset("x", 0.9, description="hero product shot"), 0.9
        )
        assert elevation.elevated_role == "primary"
        assert elevation.quality_threshold == 0.3

    def test_session_mode(self):
        assert detect_session_mode({"assets": [_asset("a", 0.1)]}) == SessionMode.ASSET_FREE
        assert detect_session_mode({"assets": [_asset("a", 0.1, caption="a red car")]}) == SessionMode.ASSET_DRIVEN
        assert detect_session_mode({}) == SessionMode.ASSET_FREE


# ============================================================
# 3. Narrative spine & refiner_extensions
# ============================================================
class TestNarrativeSpine:
    def test_asset_free_uses_profile_scaffolding(self):
        spine = generate_narrative_spine({}, SessionMode.ASSET_FREE, "finance_explainer")
        assert spine["intro"] == "Market headline with ticker animation"

    def test_unknown_profile_uses_generic_scaffolding(self):
        assert get_default_scaffolding("unknown") == GENERIC_SCAFFOLDING
        assert get_default_scaffolding("unknown") is not GENERIC_SCAFFOLDING

    def test_asset_driven_opens_on_best_asset(self, analyzer_document):
        spine = generate_narrative_spine(analyzer_document, SessionMode.ASSET_DRIVEN)

        assert spine["intro"] == "Open with image showcasing main chart of savings growth"
        assert spine["core"][0] == "Feature image as primary content: main chart of savings growth"
        # a single asset gets two generic beats appended
        assert len(spine["core"]) == 3

    def test_extensions_for_asset_free_session(self):
        utilization = analyze_asset_utilization({"assets": []})
        extensions = build_refiner_extensions({}, SessionMode.ASSET_FREE, utilization)

        assert extensions["session_mode"] == "asset_free"
        assert "general" in extensions["default_scaffolding"]
        assert extensions["asset_utilization_summary"]["total_assets"] == 0
        assert len(extensions["asset_role_elevation"]["rules"]) == 3
        assert extensions["asset_role_elevation"]["default_behavior"] == "reference_only"

    def test_extensions_for_asset_driven_session(self, analyzer_document):
        utilization = analyze_asset_utilization(analyzer_document)
        extensions = build_refiner_extensions(
            analyzer_document, SessionMode.ASSET_DRIVEN, utilization, "educational_explainer"
        )

        assert "default_scaffolding" not in extensions
        assert extensions["asset_utilization_summary"]["primary_assets"] == ["ast_chart"]
        assert extensions["asset_utilization_summary"]["utilization_rate"] == 1.0


# ============================================================
# 4. Utilization levels & auto-fix
# ============================================================
class TestUtilizationLevels:
    def test_missing_levels_are_derived(self):
        utilization = analyze_asset_utilization(
            {"assets": [_asset("clip", 0.9, caption="drone footage of a city", type_="video"), _asset("seed", 0.1)]}
        )
        assets = normalize_utilization_levels(
            [{"id": "clip", "type": "video"}, {"id": "seed", "type": "image"}, {"id": "extra", "type": "image"}],
            utilization,
        )

        assert [a["utilization_level"] for a in assets] == [
            UtilizationLevel.PRIMARY_FOOTAGE,
            UtilizationLevel.SEED_FOR_GENERATION,
            UtilizationLevel.SUPPORTING_VISUAL,
        ]

    def test_legacy_alias_becomes_primary_subject(self):
        utilization = analyze_asset_utilization({"assets": []})
        assets = normalize_utilization_levels([{"id": "a", "utilization_level": "main_visual_anchor"}], utilization)
        assert assets[0]["utilization_level"] == "primary_subject"

    def test_auto_fix_schema_issues(self):
        document = {
            "assets": [{"id": "a", "type": "video", "utilization_level": "hero"}],
            "recommendations": [{"type": "audio", "recommendation": "x", "priority": "REQUIRED"}],
        }
        fixed = auto_fix_schema_issues(
            document, [("assets", 0, "utilization_level"), ("recommendations", 0, "priority")]
        )

        assert fixed is True
        assert document["assets"][0]["utilization_level"] == "primary_footage"
        assert document["recommendations"][0]["priority"] == "required"

    def test_auto_fix_ignores_other_errors(self):
        assert auto_fix_schema_issues({"assets": []}, [("user_request", "intent"), ("assets", 3, "type")]) is False


# ============================================================
# 5. Post-LLM checks
# ============================================================
class TestPostChecks:
    def test_confidence_defaults(self):
        result = analyze_confidence_levels({}, {})
        assert result.analyzer_confidence == 0.5
        assert result.refiner_confidence == 0.75
        assert result.needs_normalization is True
        assert result.is_over_corrected is False

    def test_over_correction(self):
        result = analyze_confidence_levels(
            {"quality_metrics": {"overall_confidence": 0.4}}, {"quality_metrics": {"overall_confidence": 0.95}}
        )
        assert result.is_over_corrected is True

    def test_placeholder_concept(self):
        result = analyze_core_concept({"core_concept": "**TBD**"})
        assert result.has_placeholder is True
        assert result.needs_enhancement is True

    def test_strong_concept(self):
        concept = "Create content " + "with a detailed and specific visual plan " * 3
        result = analyze_core_concept({"core_concept": concept})
        assert result.concept_strength == "strong"

    def test_asset_integration(self, analyzer_document, refined_document):
        result = analyze_asset_integration(analyzer_document, refined_document)
        assert result.meaningful_integration is True
        assert result.asset_context_embedded is True
        assert result.role_clarity == "clear"
        assert result.integration_score == 1.0
