"""Creative profile registry, detection and application tests."""

from backend.src.refiner.engine.profiles import (
    CREATIVE_PROFILES,
    apply_creative_profile,
    detect_creative_profile,
    get_profile_by_id,
    get_profiles_by_category,
)


class TestProfileRegistry:
    def test_ten_unique_profiles(self):
        ids = [profile.id for profile in CREATIVE_PROFILES]
        assert len(ids) == 10
        assert len(set(ids)) == 10

    def test_lookup_by_id(self):
        assert get_profile_by_id("anime_mode").name == "Anime Mode"
        assert get_profile_by_id("missing") is None

    def test_lookup_by_category(self):
        ids = {profile.id for profile in get_profiles_by_category("educational")}
        assert ids == {"educational_explainer", "documentary_storytelling"}


class TestProfileDetection:
    def test_educational_document(self, analyzer_document):
        result = detect_creative_profile(analyzer_document)

        assert result.profile.id == "educational_explainer"
        assert result.detection_method == "multi-factor"
        assert result.confidence == 0.95
        assert "keywords_primary: explain" in result.matched_factors
        assert "educational_asset_content" in result.matched_factors
        assert "explanation_needs" in result.matched_factors
        assert len(result.alternative_profiles) == 2

    def test_anime_prompt(self):
        result = detect_creative_profile(
            {
                "user_request": {
                    "original_prompt": "Anime fight scene with kawaii characters",
                    "intent": "video",
                    "platform": "TikTok",
                }
            }
        )
        assert result.profile.id == "anime_mode"
        assert "keywords_primary: anime, kawaii" in result.matched_factors
        assert "platform: tiktok" in result.matched_factors

    def test_alternatives_are_capped(self, analyzer_document):
        result = detect_creative_profile(analyzer_document)
        assert all(alt.confidence <= 0.9 for alt in result.alternative_profiles)
        assert result.profile not in [alt.profile for alt in result.alternative_profiles]


class TestApplyProfile:
    def test_overlay_keeps_input_untouched(self, refined_document):
        profile = get_profile_by_id("educational_explainer")
        applied = apply_creative_profile(refined_document, profile)

        assert applied["creative_direction"]["core_concept"] == profile.creative_direction["core_concept"]
        assert applied["production_pipeline"]["workflow_steps"] == list(profile.workflow_steps)
        assert applied["production_pipeline"]["estimated_time"] == "30 minutes"
        assert len(applied["recommendations"]) == 1 + len(profile.recommendations)
        assert refined_document["creative_direction"]["core_concept"].startswith("Create visual content")
