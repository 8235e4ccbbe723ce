"""
JSON recovery unit tests

Covers extraction (<json> tags, unclosed tags, code fences), local repair of truncated
output and the LLM repair stage with a mocked repair call.
"""

from unittest.mock import AsyncMock

from backend.src.common.enums import RepairStage
from backend.src.common.llm.json_repair import (
    extract_json,
    generate_repair_prompt,
    safe_parse_json,
    truncate_for_repair,
    validate_and_repair_json,
)


# ============================================================
# 1. Extraction
# ============================================================
class TestExtractJson:
    def test_complete_tag(self):
        text = 'Sure!\n<json>{"a": 1}</json>\nDone.'
        assert extract_json(text) == '{"a": 1}'

    def test_first_complete_tag_wins(self):
        text = '<json>{"a": 1}</json> and <json>{"b": 2}</json>'
        assert extract_json(text) == '{"a": 1}'

    def test_unclosed_tag_cuts_trailing_prose(self):
        text = '<json>{"a": 1, "b": [1, 2\n\nNote: output was cut'
        assert extract_json(text) == '{"a": 1, "b": [1, 2'

    def test_longest_code_fence(self):
        text = '```json\n{"a": 1}\n```\ntext\n```json\n{"a": 1, "b": 2}\n```'
        assert extract_json(text) == '{"a": 1, "b": 2}'

    def test_no_marker(self):
        assert extract_json('{"a": 1}') is None
        assert extract_json("") is None


# ============================================================
# 2. Local repair
# ============================================================
class TestSafeParseJson:
    def test_valid_json(self):
        data, error = safe_parse_json('{"a": [1, 2]}')
        assert data == {"a": [1, 2]}
        assert error is None

    def test_missing_closers(self):
        data, error = safe_parse_json('{"a": {"b": [1, 2')
        assert error is None
        assert data == {"a": {"b": [1, 2]}}

    def test_unterminated_string(self):
        data, error = safe_parse_json('{"title": "Hello wor')
        assert error is None
        assert data == {"title": "Hello wor"}

    def test_braces_inside_strings_are_ignored(self):
        data, error = safe_parse_json('{"note": "use { and [ freely", "n": 1')
        assert error is None
        assert data == {"note": "use { and [ freely", "n": 1}

    def test_dangling_key(self):
        data, error = safe_parse_json('{"a": 1, "b"')
        assert error is None
        assert data == {"a": 1}

    def test_partial_literal(self):
        data, error = safe_parse_json('{"ok": tru')
        assert error is None
        assert data == {"ok": None}

    def test_partial_literal_in_array(self):
        data, error = safe_parse_json('{"a": [1, tr')
        assert error is None
        assert data == {"a": [1, None]}

    def test_dangling_minus(self):
        data, error = safe_parse_json('{"b": -')
        assert error is None
        assert data == {"b": None}

    def test_cut_unicode_escape(self):
        """A half-written unicode escape is dropped before the string is closed."""
        data, error = safe_parse_json(r'{"s": "x\u12')
        assert error is None
        assert data == {"s": "x"}

    def test_escaped_backslash_before_u_is_kept(self):
        data, error = safe_parse_json(r'{"s": "a\\u12')
        assert error is None
        assert data == {"s": r"a\u12"}

    def test_trailing_comma(self):
        data, error = safe_parse_json('{"items": [1, 2,], "x": 3,')
        assert error is None
        assert data == {"items": [1, 2], "x": 3}

    def test_unrecoverable(self):
        data, error = safe_parse_json("definitely not json")
        assert data is None
        assert error


# ============================================================
# 3. Repair prompt
# ============================================================
class TestRepairPrompt:
    def test_truncate_keeps_tail(self):
        assert truncate_for_repair("abcdef", max_length=3) == "def"
        assert truncate_for_repair("abc", max_length=10) == "abc"

    def test_prompt_embeds_json_and_hint(self):
        prompt = generate_repair_prompt('{"a": ', schema_hint="- Top-level keys: a")
        assert '{"a": ' in prompt
        assert "- Top-level keys: a" in prompt
        assert "<json>...</json>" in prompt


# ============================================================
# 4. validate_and_repair_json
# ============================================================
class TestValidateAndRepairJson:
    async def test_parsed_as_is(self):
        result = await validate_and_repair_json('<json>{"a": 1}</json>')
        assert result.valid is True
        assert result.repaired is False
        assert result.stage == RepairStage.PARSED
        assert result.data == {"a": 1}

    async def test_local_repair(self):
        """Truncated output is patched locally; the repair model is never called."""
        repair_call = AsyncMock(return_value='<json>{"unused": true}</json>')

        result = await validate_and_repair_json(
            '<json>{"scenes": [{"id": "s1"}, {"id": "s2"', repair_call=repair_call
        )

        assert result.valid is True
        assert result.repaired is True
        assert result.stage == RepairStage.LOCAL_REPAIR
        assert result.data == {"scenes": [{"id": "s1"}, {"id": "s2"}]}
        repair_call.assert_not_awaited()

    async def test_surrounding_prose_is_stripped(self):
        repair_call = AsyncMock()

        result = await validate_and_repair_json(
            'Here is the result:\n{"a": 1}\n\nHope this helps', repair_call=repair_call
        )

        assert result.valid is True
        assert result.stage == RepairStage.LOCAL_REPAIR
        assert result.data == {"a": 1}
        repair_call.assert_not_awaited()

    async def test_trailing_junk_is_cut_at_last_closer(self):
        """Only cutting after the last closing brace recovers this answer."""
        repair_call = AsyncMock()

        result = await validate_and_repair_json('{"a": 1} trailing junk xyz', repair_call=repair_call)

        assert result.valid is True
        assert result.stage == RepairStage.LOCAL_REPAIR
        assert result.data == {"a": 1}
        repair_call.assert_not_awaited()

    async def test_failure_without_repair_call(self):
        result = await validate_and_repair_json("no json here")
        assert result.valid is False
        assert result.stage == RepairStage.FAILED
        assert result.error.startswith("Local repair failed")

    async def test_llm_repair(self):
        repair_call = AsyncMock(return_value='<json>{"fixed": true}</json>')

        result = await validate_and_repair_json("broken :: output", repair_call=repair_call, schema_hint="- hint")

        assert result.valid is True
        assert result.stage == RepairStage.LLM_REPAIR
        assert result.data == {"fixed": True}
        prompt = repair_call.await_args.args[0]
        assert "broken :: output" in prompt
        assert "- hint" in prompt

    async def test_repair_call_returns_nothing(self):
        result = await validate_and_repair_json("broken", repair_call=AsyncMock(return_value=None))
        assert result.valid is False
        assert "no text" in result.error

    async def test_repair_call_raises(self):
        result = await validate_and_repair_json("broken", repair_call=AsyncMock(side_effect=RuntimeError("down")))
        assert result.valid is False
        assert result.error == "Repair attempt failed: down"

    async def test_repair_output_still_invalid(self):
        result = await validate_and_repair_json("broken", repair_call=AsyncMock(return_value="still broken"))
        assert result.valid is False
        assert result.error.startswith("LLM repair failed")
