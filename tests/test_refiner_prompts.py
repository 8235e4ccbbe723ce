"""Refiner prompt template selection tests."""

import pytest

from backend.src.refiner.engine.prompts import (
    AUDIO_ONLY_PROMPT,
    BASE_REFINER_PROMPT,
    IMAGE_ONLY_PROMPT,
    MIXED_MEDIA_PROMPT,
    VIDEO_PROMPT,
    AssetMix,
    analyze_asset_mix,
    generate_refiner_prompt,
    get_prompt_stats,
    get_template_name,
    select_prompt_template,
    validate_prompt_selection,
)


def _doc(*types: str) -> dict:
    return {"assets": [{"id": f"a{i}", "type": t} for i, t in enumerate(types)]}


class TestAssetMix:
    def test_types_are_deduplicated_in_order(self):
        mix = analyze_asset_mix(_doc("video", "image", "video"))
        assert mix.asset_types == ["video", "image"]
        assert mix.total_assets == 3
        assert mix.has_video and mix.has_images and not mix.has_audio


class TestTemplateSelection:
    @pytest.mark.parametrize(
        "types, addendum, name",
        [
            (("image", "video", "audio"), MIXED_MEDIA_PROMPT, "Mixed Media (Image + Video + Audio)"),
            (("image", "video"), VIDEO_PROMPT, "Image + Video"),
            (("image", "audio"), MIXED_MEDIA_PROMPT, "Image + Audio"),
            (("video", "audio"), VIDEO_PROMPT, "Video + Audio"),
            (("video",), VIDEO_PROMPT, "Video Only"),
            (("audio",), AUDIO_ONLY_PROMPT, "Audio Only"),
            (("image",), IMAGE_ONLY_PROMPT, "Image Only"),
            ((), MIXED_MEDIA_PROMPT, "Unknown/Empty"),
        ],
    )
    def test_mix_to_template(self, types, addendum, name):
        mix = analyze_asset_mix(_doc(*types))
        assert select_prompt_template(mix) == BASE_REFINER_PROMPT + addendum
        assert get_template_name(mix) == name
        assert validate_prompt_selection(mix, name)

    def test_validate_rejects_wrong_template(self):
        assert validate_prompt_selection(AssetMix(has_images=True), "Video Only") is False

    def test_prompt_embeds_analyzer_json(self, analyzer_document):
        prompt, mix, name = generate_refiner_prompt(analyzer_document)

        assert "{ANALYZER_JSON}" not in prompt
        assert '"original_prompt": "Explain compound interest for beginners using my chart"' in prompt
        assert name == "Image Only"
        assert mix.total_assets == 1


class TestPromptStats:
    def test_complexity(self):
        assert get_prompt_stats(_doc("image"))["complexity"] == "simple"
        assert get_prompt_stats(_doc("image", "image", "image", "image"))["complexity"] == "moderate"
        assert get_prompt_stats(_doc("image", "video", "audio"))["complexity"] == "complex"

    def test_estimated_time(self):
        stats = get_prompt_stats(_doc("image"))
        assert stats["estimated_processing_time"] == "15-30 seconds"
        assert stats["template_used"] == "Image Only"
