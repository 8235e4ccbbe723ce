"""
Refiner analysis

Role:
    - Pre-LLM analysis of the analyzer document (content type fixes, asset utilization,
      session mode, user-described role elevation)
    - Post-LLM analysis of the refined document (confidence gap, core concept,
      asset integration)
    - Deterministic fill-ins when the model omits refiner_extensions
      (narrative spine, default scaffolding, utilization levels)

All functions take plain dicts (the JSON dumps of the pydantic models) so they can run
both on validated input and on raw model output.
"""

import copy
from dataclasses import dataclass, field
from typing import Any

from backend.src.common.enums import SessionMode, UtilizationLevel


# ============================================================
# Result types
# ============================================================
@dataclass
class ConfidenceAnalysis:
    analyzer_confidence: float
    refiner_confidence: float
    confidence_gap: float
    is_over_corrected: bool
    needs_normalization: bool


@dataclass
class CoreConceptAnalysis:
    has_placeholder: bool
    placeholder_value: str | None
    concept_strength: str  # weak | moderate | strong
    needs_enhancement: bool


@dataclass
class ContentTypeNormalization:
    original_analysis: dict[str, Any]
    normalized_analysis: dict[str, Any]
    contradictions: list[str] = field(default_factory=list)
    needs_correction: bool = False


@dataclass
class AssetIntegrationAnalysis:
    meaningful_integration: bool
    asset_context_embedded: bool
    role_clarity: str  # clear | unclear | missing
    integration_score: float
    issues: list[str] = field(default_factory=list)


@dataclass
class AssetRoleElevation:
    asset_id: str
    original_role: str
    elevated_role: str  # primary | branding | background | reference
    elevation_reason: str
    user_description: str
    confidence: float
    quality_threshold: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "original_role": self.original_role,
            "elevated_role": self.elevated_role,
            "elevation_reason": self.elevation_reason,
            "user_description": self.user_description,
            "confidence": self.confidence,
            "quality_threshold": self.quality_threshold,
        }


@dataclass
class AssetUtilizationAnalysis:
    session_mode: SessionMode
    utilization_rate: float
    primary_assets: list[str] = field(default_factory=list)
    reference_only_assets: list[str] = field(default_factory=list)
    utilization_rationale: str = ""
    needs_elevation: bool = False
    elevation_suggestions: list[str] = field(default_factory=list)
    asset_role_elevations: list[AssetRoleElevation] = field(default_factory=list)


# ============================================================
# Role elevation rules
# ============================================================
@dataclass(frozen=True)
class RoleElevationRule:
    keywords: tuple[str, ...]
    elevated_role: str
    action: str
    quality_threshold: float
    reason: str


# first matching rule wins
ROLE_ELEVATION_RULES: tuple[RoleElevationRule, ...] = (
    RoleElevationRule(
        keywords=("main character", "protagonist", "hero", "central figure", "main subject",
                  "primary character", "lead character"),
        elevated_role="primary",
        action="elevate_to_primary",
        quality_threshold=0.3,
        reason="User explicitly defined narrative role as main character",
    ),
    RoleElevationRule(
        keywords=("logo", "brand mark", "watermark", "branding", "company logo", "brand identity"),
        elevated_role="branding",
        action="elevate_to_branding",
        quality_threshold=0.2,
        reason="User explicitly defined narrative role as branding asset",
    ),
    RoleElevationRule(
        keywords=("background", "scenery", "environment", "scene", "setting", "backdrop"),
        elevated_role="background",
        action="assign_as_background",
        quality_threshold=0.2,
        reason="User explicitly defined role as background scene",
    ),
    RoleElevationRule(
        keywords=("product", "item", "object", "feature", "showcase", "highlight"),
        elevated_role="primary",
        action="elevate_to_primary",
        quality_threshold=0.4,
        reason="User explicitly defined as primary product/object to showcase",
    ),
    RoleElevationRule(
        keywords=("reference", "style", "inspiration", "mood", "aesthetic"),
        elevated_role="reference",
        action="keep_as_reference",
        quality_threshold=0.3,
        reason="User explicitly defined as style/mood reference",
    ),
)

# rules advertised in refiner_extensions.asset_role_elevation
ADVERTISED_ELEVATION_RULES = ROLE_ELEVATION_RULES[:3]

STANDARD_UTILIZATION_LEVELS = {level.value for level in UtilizationLevel}

DEFAULT_INTRO = "Create engaging opening that introduces the main concept"
DEFAULT_OUTRO = "Conclude with strong call-to-action or summary that reinforces the main message"


# ============================================================
# Post-LLM checks
# ============================================================
def analyze_confidence_levels(analyzer_data: dict[str, Any], refiner_data: dict[str, Any]) -> ConfidenceAnalysis:
    """Compare the analyzer's and the refiner's overall_confidence (defaults 0.5 / 0.75)."""
    analyzer_confidence = (analyzer_data.get("quality_metrics") or {}).get("overall_confidence") or 0.5
    refiner_confidence = (refiner_data.get("quality_metrics") or {}).get("overall_confidence") or 0.75
    gap = abs(refiner_confidence - analyzer_confidence)

    return ConfidenceAnalysis(
        analyzer_confidence=analyzer_confidence,
        refiner_confidence=refiner_confidence,
        confidence_gap=gap,
        is_over_corrected=refiner_confidence > analyzer_confidence + 0.3,
        needs_normalization=gap > 0.2,
    )


def analyze_core_concept(creative_direction: dict[str, Any] | None) -> CoreConceptAnalysis:
    core_concept = (creative_direction or {}).get("core_concept") or ""
    has_placeholder = "**" in core_concept or not core_concept.strip() or len(core_concept) < 10

    strength = "weak"
    if len(core_concept) > 50 and not has_placeholder:
        strength = "moderate"
    if len(core_concept) > 100 and not has_placeholder and "content" in core_concept:
        strength = "strong"

    return CoreConceptAnalysis(
        has_placeholder=has_placeholder,
        placeholder_value=core_concept if has_placeholder else None,
        concept_strength=strength,
        needs_enhancement=has_placeholder or strength == "weak",
    )


def analyze_asset_integration(analyzer_data: dict[str, Any], refiner_data: dict[str, Any]) -> AssetIntegrationAnalysis:
    """
    Check that the refined prompt actually uses the uploaded assets.

    Score: 0.3 meaningful integration + 0.4 context embedded + 0.3 clear roles.
    """
    assets = analyzer_data.get("assets") or []
    reformulated = ((refiner_data.get("prompt_analysis") or {}).get("reformulated_prompt") or "").lower()
    issues: list[str] = []
    score = 0.0

    meaningful = bool(assets) and len(reformulated) > 50
    if meaningful:
        score += 0.3
    else:
        issues.append("Assets not meaningfully integrated into reformulated prompt")

    def _embedded(asset: dict[str, Any]) -> bool:
        description = (asset.get("user_description") or "").lower()
        return (asset.get("type") or "") in reformulated or bool(description and description in reformulated)

    embedded = any(_embedded(asset) for asset in assets)
    if embedded:
        score += 0.4
    else:
        issues.append("Asset context not embedded in reformulated prompt")

    with_roles = [asset for asset in assets if len(asset.get("role") or "") > 5]
    if not with_roles:
        role_clarity = "missing"
        issues.append("Asset roles not clearly defined")
    elif len(with_roles) < len(assets) * 0.7:
        role_clarity = "unclear"
        issues.append("Some asset roles unclear or missing")
    else:
        role_clarity = "clear"
        score += 0.3

    return AssetIntegrationAnalysis(
        meaningful_integration=meaningful,
        asset_context_embedded=embedded,
        role_clarity=role_clarity,
        integration_score=round(score, 4),
        issues=issues,
    )


# ============================================================
# Pre-LLM analysis
# ============================================================
def normalize_content_type_analysis(analyzer_data: dict[str, Any]) -> ContentTypeNormalization:
    """Fix contradictory flags and fill complexity / category when the analyzer left them out."""
    original = (analyzer_data.get("prompt_analysis") or {}).get("content_type_analysis") or {}
    normalized = dict(original)
    result = ContentTypeNormalization(original_analysis=original, normalized_analysis=normalized)

    if original.get("needs_explanation") is True and original.get("needs_educational_content") is False:
        normalized["needs_educational_content"] = True
        result.contradictions.append("Explainer content should be educational")
        result.needs_correction = True

    if not normalized.get("content_complexity"):
        asset_count = len(analyzer_data.get("assets") or [])
        if asset_count <= 2:
            normalized["content_complexity"] = "simple"
        elif asset_count <= 5:
            normalized["content_complexity"] = "moderate"
        else:
            normalized["content_complexity"] = "complex"
        result.needs_correction = True

    if not normalized.get("content_category"):
        prompt = ((analyzer_data.get("user_request") or {}).get("original_prompt") or "").lower()
        if "explain" in prompt or "teach" in prompt:
            normalized["content_category"] = "educational"
        elif "funny" in prompt or "meme" in prompt:
            normalized["content_category"] = "entertainment"
        else:
            normalized["content_category"] = "general"
        result.needs_correction = True

    return result


def apply_content_type_normalization(analyzer_data: dict[str, Any]) -> tuple[dict[str, Any], ContentTypeNormalization]:
    """Return a copy of the analyzer document with the normalized content_type_analysis applied."""
    normalization = normalize_content_type_analysis(analyzer_data)
    if not normalization.needs_correction:
        return analyzer_data, normalization

    corrected = copy.deepcopy(analyzer_data)
    prompt_analysis = corrected.setdefault("prompt_analysis", {})
    prompt_analysis["content_type_analysis"] = dict(normalization.normalized_analysis)
    return corrected, normalization


def analyze_user_description_for_role_elevation(asset: dict[str, Any], quality_score: float) -> AssetRoleElevation | None:
    """Match the user's own description of an asset against the elevation rules."""
    description = (asset.get("user_description") or "").lower().strip()
    if not description:
        return None

    for rule in ROLE_ELEVATION_RULES:
        if any(keyword in description for keyword in rule.keywords):
            return AssetRoleElevation(
                asset_id=asset.get("id", ""),
                original_role="reference material",
                elevated_role=rule.elevated_role,
                elevation_reason=rule.reason,
                user_description=asset.get("user_description") or "",
                confidence=0.9,
                quality_threshold=rule.quality_threshold,
            )
    return None


def analyze_asset_utilization(analyzer_data: dict[str, Any]) -> AssetUtilizationAnalysis:
    """
    Decide which assets become primary content and which become generation seeds.

    Every asset ends up in one of the two lists, so user uploads are never dropped.
    User-described roles take precedence over quality scores.
    """
    assets = analyzer_data.get("assets") or []
    if not assets:
        return AssetUtilizationAnalysis(
            session_mode=SessionMode.ASSET_FREE,
            utilization_rate=0.0,
            utilization_rationale="No assets provided - will use profile default scaffolding",
        )

    result = AssetUtilizationAnalysis(session_mode=SessionMode.ASSET_DRIVEN, utilization_rate=0.0)

    for asset in assets:
        asset_id = asset.get("id", "")
        quality = asset.get("quality_score") or 0
        good_description = len(asset.get("user_description") or "") > 10
        good_caption = len(asset.get("ai_caption") or "") > 10

        elevation = analyze_user_description_for_role_elevation(asset, quality)
        if elevation:
            result.asset_role_elevations.append(elevation)
            if elevation.elevated_role == "primary":
                result.primary_assets.append(asset_id)
                if quality >= elevation.quality_threshold:
                    result.elevation_suggestions.append(
                        f"Elevated {asset_id} to primary role: {elevation.elevation_reason}"
                    )
                else:
                    result.elevation_suggestions.append(
                        f"Elevated {asset_id} to primary role ({elevation.elevation_reason}) with quality enhancement needed"
                    )
            elif elevation.elevated_role == "branding":
                result.primary_assets.append(asset_id)
                result.elevation_suggestions.append(f"Elevated {asset_id} to branding role: {elevation.elevation_reason}")
            elif elevation.elevated_role == "background":
                result.reference_only_assets.append(asset_id)
                result.elevation_suggestions.append(f"Assigned {asset_id} as background: {elevation.elevation_reason}")
            else:
                result.reference_only_assets.append(asset_id)
            continue

        if quality >= 0.7 and (good_description or good_caption):
            result.primary_assets.append(asset_id)
        elif quality >= 0.5:
            result.primary_assets.append(asset_id)
            result.elevation_suggestions.append(f"Elevate {asset_id} to primary use with quality enhancement")
        else:
            result.reference_only_assets.append(asset_id)
            result.elevation_suggestions.append(f"Use {asset_id} as seed for generation or supporting element")

    total = len(assets)
    primary_count = len(result.primary_assets)
    result.utilization_rate = (primary_count + len(result.reference_only_assets)) / total

    if primary_count == total:
        result.utilization_rationale = "All assets are high quality and will be used as primary content"
    elif primary_count > 0:
        result.utilization_rationale = (
            f"{primary_count} assets will be primary content, "
            f"{len(result.reference_only_assets)} will be supporting elements or generation seeds"
        )
    else:
        result.utilization_rationale = (
            "Assets will be used as generation seeds and supporting elements to ensure user contribution matters"
        )

    result.needs_elevation = bool(result.reference_only_assets or result.elevation_suggestions)
    return result


def detect_session_mode(analyzer_data: dict[str, Any]) -> SessionMode:
    """asset_driven when at least one asset is usable (quality > 0.3 or a meaningful description / caption)."""
    assets = analyzer_data.get("assets") or []

    def _usable(asset: dict[str, Any]) -> bool:
        return (
            (asset.get("quality_score") or 0) > 0.3
            or len(asset.get("user_description") or "") > 5
            or len(asset.get("ai_caption") or "") > 5
        )

    if any(_usable(asset) for asset in assets):
        return SessionMode.ASSET_DRIVEN
    return SessionMode.ASSET_FREE


# ============================================================
# Narrative spine / scaffolding
# ============================================================
DEFAULT_SCAFFOLDING: dict[str, dict[str, Any]] = {
    "educational_explainer": {
        "intro": "Start with clear title and learning objective",
        "core": [
            "Present key concepts with visual aids",
            "Use step-by-step explanations",
            "Include examples and demonstrations",
            "Add interactive elements or questions",
        ],
        "outro": "Summarize key points and provide next steps",
    },
    "finance_explainer": {
        "intro": "Market headline with ticker animation",
        "core": [
            "Data chart visualization",
            "Expert voice-over explaining insights",
            "Relevant stock footage (trading floor, skyline)",
            "Key statistics and trends",
        ],
        "outro": "Summary call-to-action (subscribe, follow, learn more)",
    },
    "anime_mode": {
        "intro": "Dynamic stylized opening frame",
        "core": [
            "Character spotlight with expressive pose",
            "Dialogue bubbles synced with TTS",
            "Energetic background music",
            "Action sequences with effects",
        ],
        "outro": "Flashy anime-style outro card",
    },
    "ugc_influencer": {
        "intro": "Personal introduction with authentic feel",
        "core": [
            "Day-in-the-life content",
            "Product reviews or recommendations",
            "Behind-the-scenes moments",
            "Interactive Q&A or challenges",
        ],
        "outro": "Call-to-action for engagement (like, follow, comment)",
    },
    "ads_commercial": {
        "intro": "Attention-grabbing hook",
        "core": [
            "Product benefits and features",
            "Social proof or testimonials",
            "Clear value proposition",
            "Urgency or scarcity elements",
        ],
        "outro": "Strong call-to-action with clear next steps",
    },
}

GENERIC_SCAFFOLDING: dict[str, Any] = {
    "intro": "Create engaging opening that captures attention",
    "core": [
        "Present main content with clear structure",
        "Use supporting visuals and effects",
        "Maintain consistent pacing and style",
    ],
    "outro": "End with memorable conclusion and call-to-action",
}


def get_default_scaffolding(profile_id: str) -> dict[str, Any]:
    return copy.deepcopy(DEFAULT_SCAFFOLDING.get(profile_id, GENERIC_SCAFFOLDING))


def generate_narrative_spine(
    analyzer_data: dict[str, Any],
    session_mode: SessionMode,
    profile_id: str | None = None,
) -> dict[str, Any]:
    """
    intro / core / outro outline.

    asset_free sessions get the profile scaffolding; asset_driven sessions open on the
    best asset (first with quality >= 0.7, else the first one) and feature every asset.
    """
    if session_mode == SessionMode.ASSET_FREE:
        return get_default_scaffolding(profile_id or "general")

    assets = analyzer_data.get("assets") or []
    lead = next((a for a in assets if (a.get("quality_score") or 0) >= 0.7), assets[0] if assets else None)
    if lead:
        intro = f"Open with {lead.get('type')} showcasing {lead.get('user_description') or lead.get('ai_caption')}"
    else:
        intro = DEFAULT_INTRO

    core: list[str] = []
    for asset in assets:
        if (asset.get("quality_score") or 0) >= 0.7:
            core.append(
                f"Feature {asset.get('type')} as primary content: "
                f"{asset.get('user_description') or asset.get('ai_caption')}"
            )
        else:
            core.append(
                f"Use {asset.get('type')} as supporting element or generation seed for "
                f"{asset.get('user_description') or 'visual enhancement'}"
            )

    if len(core) < 2:
        core.append("Add complementary visuals to support the narrative")
        core.append("Include engaging transitions and effects")

    return {"intro": intro, "core": core, "outro": DEFAULT_OUTRO}


# ============================================================
# Deterministic fill-ins for the refined document
# ============================================================
def build_refiner_extensions(
    analyzer_data: dict[str, Any],
    session_mode: SessionMode,
    utilization: AssetUtilizationAnalysis,
    profile_id: str | None = None,
) -> dict[str, Any]:
    """refiner_extensions block used when the model did not produce one."""
    scaffold_key = profile_id or "general"
    extensions: dict[str, Any] = {
        "session_mode": session_mode.value,
        "narrative_spine": generate_narrative_spine(analyzer_data, session_mode, profile_id),
        "asset_utilization_summary": {
            "total_assets": len(analyzer_data.get("assets") or []),
            "utilized_assets": len(utilization.primary_assets) + len(utilization.reference_only_assets),
            "utilization_rate": utilization.utilization_rate,
            "primary_assets": list(utilization.primary_assets),
            "reference_only_assets": list(utilization.reference_only_assets),
            "utilization_rationale": utilization.utilization_rationale,
        },
        "asset_role_elevation": {
            "rules": [
                {
                    "match_on": "user_description",
                    "keywords": list(rule.keywords),
                    "action": rule.action,
                    "conditions": {"min_quality_score": rule.quality_threshold},
                    "reason": rule.reason,
                }
                for rule in ADVERTISED_ELEVATION_RULES
            ],
            "default_behavior": "reference_only",
        },
        "elevation_applied": [elevation.to_dict() for elevation in utilization.asset_role_elevations],
    }
    if session_mode == SessionMode.ASSET_FREE:
        extensions["default_scaffolding"] = {scaffold_key: get_default_scaffolding(scaffold_key)}
    return extensions


def _primary_level_for(asset_type: str | None) -> str:
    if asset_type == "video":
        return UtilizationLevel.PRIMARY_FOOTAGE.value
    return UtilizationLevel.PRIMARY_SUBJECT.value


def normalize_utilization_levels(
    assets: list[dict[str, Any]],
    utilization: AssetUtilizationAnalysis,
) -> list[dict[str, Any]]:
    """
    Give every asset a standard utilization_level.

    Missing or unknown values are derived from the utilization analysis;
    the legacy aliases primary_visual / main_visual_anchor become primary_subject.
    """
    normalized = []
    for asset in assets:
        level = asset.get("utilization_level")
        if not level or level not in STANDARD_UTILIZATION_LEVELS:
            asset_id = asset.get("id")
            if asset_id in utilization.primary_assets:
                level = _primary_level_for(asset.get("type"))
            elif asset_id in utilization.reference_only_assets:
                level = UtilizationLevel.SEED_FOR_GENERATION.value
            else:
                level = UtilizationLevel.SUPPORTING_VISUAL.value

        if level in (UtilizationLevel.PRIMARY_VISUAL, UtilizationLevel.MAIN_VISUAL_ANCHOR):
            level = UtilizationLevel.PRIMARY_SUBJECT.value

        normalized.append({**asset, "utilization_level": level})
    return normalized


def auto_fix_schema_issues(document: dict[str, Any], error_locations: list[tuple[Any, ...]]) -> bool:
    """
    One-shot repair of the schema errors models commonly produce.

    Fixes invalid asset utilization_level values and upper-cased recommendation
    priorities in place. Returns True when anything was changed.
    """
    fixed = False
    assets = document.get("assets") if isinstance(document.get("assets"), list) else []
    recommendations = document.get("recommendations") if isinstance(document.get("recommendations"), list) else []

    for loc in error_locations:
        if len(loc) < 3 or not isinstance(loc[1], int):
            continue
        section, index, field_name = loc[0], loc[1], loc[2]

        if section == "assets" and field_name == "utilization_level" and index < len(assets):
            asset = assets[index]
            if asset.get("type") == "image":
                asset["utilization_level"] = UtilizationLevel.PRIMARY_SUBJECT.value
            elif asset.get("type") == "video":
                asset["utilization_level"] = UtilizationLevel.PRIMARY_FOOTAGE.value
            else:
                asset["utilization_level"] = UtilizationLevel.SUPPORTING_VISUAL.value
            fixed = True

        elif section == "recommendations" and field_name == "priority" and index < len(recommendations):
            priority = recommendations[index].get("priority")
            if isinstance(priority, str) and priority != priority.lower():
                recommendations[index]["priority"] = priority.lower()
                fixed = True

    return fixed
