"""
LLM JSON recovery utilities

Role:
    - Pull the JSON payload out of an LLM response (<json> tags, markdown code fences).
    - Patch truncated output locally (unterminated strings, dangling keys, missing closers).
    - When local patching fails, ask a second LLM call to repair its own output.
    - Report the outcome as a JsonRepairResult instead of raising.

Usage:
    result = await validate_and_repair_json(llm_text, repair_call)
    if result.valid:
        payload = result.data

`repair_call` is any async callable that takes the repair prompt and returns the
model's text (or None when the vendor call failed).
"""

import json
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

from backend.src.common.config import JSON_REPAIR_CONFIG
from backend.src.common.enums import RepairStage


logger = logging.getLogger(__name__)

RepairCall = Callable[[str], Awaitable[str | None]]

_JSON_TAG_PATTERN = re.compile(r"<json>(.*?)</json>", re.DOTALL)
_OPEN_TAG_PATTERN = re.compile(r"<json>(.*)", re.DOTALL)
_TAG_TAIL_PATTERN = re.compile(r"^(.*?)(?:\n\n|\n[A-Z]|\Z)", re.DOTALL)
_CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_TRAILING_PROSE_PATTERN = re.compile(r"^(.*?)(?:\n\n[A-Z]|\n[A-Z][a-z]|\Z)", re.DOTALL)

_DANGLING_KEY_PATTERN = re.compile(r'([{,])\s*"(?:[^"\\]|\\.)*"\s*\Z')
_PARTIAL_VALUE_PATTERN = re.compile(r"([:,\[])\s*(?:t|tr|tru|f|fa|fal|fals|n|nu|nul|-)\Z")
_PARTIAL_UNICODE_PATTERN = re.compile(r"(\\+)u[0-9a-fA-F]{0,3}\Z")
_PARTIAL_NUMBER_PATTERN = re.compile(r"(\d)[.eE][+-]?\Z")
_DANGLING_COLON_PATTERN = re.compile(r":\s*\Z")
_DANGLING_COMMA_PATTERN = re.compile(r",\s*\Z")
_TRAILING_COMMA_PATTERN = re.compile(r",(\s*[}\]])")

DEFAULT_SCHEMA_HINT = "- Keep every key the original JSON already contains; do not invent new keys."


class JsonRepairResult(BaseModel):
    """Outcome of validate_and_repair_json()."""

    valid: bool
    data: Any | None = None
    error: str | None = None
    repaired: bool = False
    stage: RepairStage = Field(default=RepairStage.FAILED)


# ============================================================
# Extraction
# ============================================================
def extract_json(llm_text: str) -> str | None:
    """
    Extract the JSON payload from an LLM response.

    Lookup order:
        1. First complete <json>...</json> block
        2. Unclosed <json> tag: everything after it, cut at trailing prose
        3. Longest markdown code fence (```json ... ```)

    Returns:
        The extracted text, or None when the response carries no marker at all.
    """
    if not llm_text:
        return None

    complete = _JSON_TAG_PATTERN.search(llm_text)
    if complete:
        return complete.group(1).strip()

    open_tag = _OPEN_TAG_PATTERN.search(llm_text)
    if open_tag:
        extracted = open_tag.group(1).strip()
        tail = _TAG_TAIL_PATTERN.match(extracted)
        return tail.group(1).strip() if tail else extracted

    code_blocks = _CODE_BLOCK_PATTERN.findall(llm_text)
    if code_blocks:
        return max(code_blocks, key=len).strip()

    return None


# ============================================================
# Local repair
# ============================================================
def _scan_structure(text: str) -> tuple[list[str], bool, bool]:
    """Return (stack of unclosed openers, ends inside a string, ends on a backslash)."""
    stack: list[str] = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in "{[":
            stack.append(char)
        elif char in "}]" and stack:
            stack.pop()

    return stack, in_string, escaped


def _close_truncated_json(raw: str) -> str:
    """Apply the local repair substitutions to a truncated JSON document."""
    fixed = raw.strip()
    stack, in_string, escaped = _scan_structure(fixed)

    if in_string:
        # an odd run of backslashes means the \uXXXX escape itself was cut off
        partial_escape = _PARTIAL_UNICODE_PATTERN.search(fixed)
        if partial_escape and len(partial_escape.group(1)) % 2 == 1:
            fixed = fixed[: partial_escape.end(1) - 1]
        elif escaped:
            fixed = fixed[:-1]
        fixed += '"'

    # "key" with no value inside an object
    if stack and stack[-1] == "{":
        fixed = _DANGLING_KEY_PATTERN.sub(r"\1", fixed)

    # half-written true/false/null or a lone minus, as an object value or array item
    partial = _PARTIAL_VALUE_PATTERN.search(fixed)
    if partial and (partial.group(1) == ":" or (stack and stack[-1] == "[")):
        fixed = fixed[: partial.start()] + partial.group(1) + " null"
    fixed = _PARTIAL_NUMBER_PATTERN.sub(r"\1", fixed)
    fixed = _DANGLING_COLON_PATTERN.sub(": null", fixed)
    fixed = _DANGLING_COMMA_PATTERN.sub("", fixed)
    fixed = _TRAILING_COMMA_PATTERN.sub(r"\1", fixed)

    closers = "".join("}" if opener == "{" else "]" for opener in reversed(stack))
    return fixed + closers


def safe_parse_json(raw: str) -> tuple[Any | None, str | None]:
    """
    Parse JSON, patching truncated output when the first attempt fails.

    Returns:
        (data, None) on success
        (None, error_message) on failure
    """
    try:
        return json.loads(raw), None
    except (json.JSONDecodeError, TypeError):
        pass

    try:
        return json.loads(_close_truncated_json(raw or "")), None
    except json.JSONDecodeError as e:
        return None, f"{e.msg} (line {e.lineno}, column {e.colno})"


def _strip_surrounding_prose(text: str) -> str:
    """Drop explanation text before the first opener and after the JSON body."""
    openers = [index for index in (text.find("{"), text.find("[")) if index != -1]
    if openers and min(openers) > 0:
        text = text[min(openers):]

    match = _TRAILING_PROSE_PATTERN.match(text)
    return match.group(1).strip() if match else text.strip()


def _truncate_to_last_structure(text: str) -> str:
    """Cut everything after the last closing brace/bracket."""
    last_complete = max(text.rfind("}"), text.rfind("]"))
    return text[: last_complete + 1] if last_complete > 0 else text


# ============================================================
# LLM repair
# ============================================================
def truncate_for_repair(raw: str, max_length: int | None = None) -> str:
    """Keep only the tail of a huge response so the repair prompt stays small."""
    limit = max_length or JSON_REPAIR_CONFIG["max_repair_length"]
    return raw[-limit:] if len(raw) > limit else raw


def generate_repair_prompt(broken_json: str, schema_hint: str | None = None) -> str:
    """Build the prompt that asks an LLM to repair broken JSON."""
    return f"""You are a strict JSON repair assistant.
Repair the following broken JSON into VALID JSON.
Return ONLY valid JSON, no explanations, wrapped in <json>...</json>.

Broken JSON:
<json>
{truncate_for_repair(broken_json)}
</json>

REPAIR RULES:
1. Fix any unclosed braces, brackets, or strings
2. Complete any incomplete property values
3. Ensure the JSON structure is complete and valid
4. Add missing closing braces/brackets if needed
5. Fix any trailing commas or syntax errors
6. Return ONLY the repaired JSON between <json> and </json> tags
7. Do not add explanations, comments, or extra text

REQUIRED STRUCTURE:
{schema_hint or DEFAULT_SCHEMA_HINT}

Repaired JSON:"""


async def validate_and_repair_json(
    llm_text: str,
    repair_call: RepairCall | None = None,
    schema_hint: str | None = None,
) -> JsonRepairResult:
    """
    Recover a JSON document from an LLM response.

    Stages:
        1. Extract (<json> tags / code fence, falling back to the raw text) and parse as-is
        2. Local repair: patch truncation, strip surrounding prose, cut to the last complete structure
        3. Ask `repair_call` to repair the extracted text, then extract and parse its answer

    Args:
        llm_text: Raw LLM response
        repair_call: Async callable receiving the repair prompt, returning text or None
        schema_hint: Structure description embedded in the repair prompt

    Returns:
        JsonRepairResult. Never raises for malformed input.
    """
    logger.info(
        f"[JSON Repair] Starting validation (length={len(llm_text or '')}, "
        f"has_open_tag={'<json>' in (llm_text or '')}, has_close_tag={'</json>' in (llm_text or '')})"
    )

    extracted = extract_json(llm_text)
    if extracted is None:
        logger.info("[JSON Repair] No <json> block or code fence found, using raw text")
        extracted = (llm_text or "").strip()

    # 1. As-is
    try:
        return JsonRepairResult(valid=True, data=json.loads(extracted), stage=RepairStage.PARSED)
    except json.JSONDecodeError as e:
        logger.info(f"[JSON Repair] Direct parse failed: {e.msg}")

    # 2. Local repair
    candidates = [extracted]
    stripped = _strip_surrounding_prose(extracted)
    candidates.append(stripped)
    candidates.append(_truncate_to_last_structure(stripped))

    last_error: str | None = None
    for candidate in candidates:
        data, last_error = safe_parse_json(candidate)
        if last_error is None:
            logger.info("[JSON Repair] Local repair succeeded")
            return JsonRepairResult(valid=True, data=data, repaired=True, stage=RepairStage.LOCAL_REPAIR)

    logger.warning(f"[JSON Repair] Local repair failed: {last_error}")

    if repair_call is None:
        return JsonRepairResult(valid=False, error=f"Local repair failed: {last_error}", stage=RepairStage.FAILED)

    # 3. LLM repair
    logger.warning("[JSON Repair] Retrying with LLM repair...")
    try:
        repaired_text = await repair_call(generate_repair_prompt(extracted, schema_hint))
    except Exception as e:
        logger.error(f"[JSON Repair] Repair call raised: {type(e).__name__}: {e}")
        return JsonRepairResult(valid=False, error=f"Repair attempt failed: {e}", stage=RepairStage.FAILED)

    if not repaired_text:
        return JsonRepairResult(
            valid=False, error="LLM repair failed: repair call returned no text", stage=RepairStage.FAILED
        )

    repaired_extracted = extract_json(repaired_text) or repaired_text.strip()
    data, error = safe_parse_json(repaired_extracted)
    if error is None:
        logger.info("[JSON Repair] LLM repair succeeded")
        return JsonRepairResult(valid=True, data=data, repaired=True, stage=RepairStage.LLM_REPAIR)

    logger.error(f"[JSON Repair] LLM repair output still invalid: {error}")
    return JsonRepairResult(valid=False, error=f"LLM repair failed: {error}", stage=RepairStage.FAILED)
