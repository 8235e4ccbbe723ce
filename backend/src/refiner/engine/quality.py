"""
Refiner quality assessment

Role:
    - Score a refined document against its analyzer input (0-1 plus A-F grade)
    - Report concrete issues with severity and a fix suggestion
    - Decide whether the refinement is acceptable (no F grade, no critical issue)

Overall score:
    0.8 - 0.3*confidence_gap - 0.3*(placeholders) + 0.15*integration + 0.15*utilization
        + 0.1*consistency + 0.2*concept_strength, clamped to [0, 1]
"""

from typing import Any

from pydantic import BaseModel, Field

from backend.src.common.enums import IssueSeverity, IssueType, QualityGrade


class QualityIssue(BaseModel):
    type: IssueType
    severity: IssueSeverity
    message: str
    suggestion: str


class QualityMetrics(BaseModel):
    confidence_gap: float
    has_placeholders: bool
    asset_integration_score: float
    asset_utilization_score: float
    content_type_consistency: float
    core_concept_strength: float


class RefinerQualityReport(BaseModel):
    overall_score: float = Field(..., ge=0, le=1)
    grade: QualityGrade
    issues: list[QualityIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    metrics: QualityMetrics


class QualityValidation(BaseModel):
    is_valid: bool
    report: RefinerQualityReport


# ============================================================
# Metrics
# ============================================================
def _confidence_gap(analyzer_data: dict[str, Any], refiner_data: dict[str, Any]) -> float:
    analyzer_confidence = (analyzer_data.get("quality_metrics") or {}).get("overall_confidence") or 0.5
    refiner_confidence = (refiner_data.get("quality_metrics") or {}).get("overall_confidence") or 0.75
    return abs(refiner_confidence - analyzer_confidence)


def _core_concept(refiner_data: dict[str, Any]) -> str:
    return (refiner_data.get("creative_direction") or {}).get("core_concept") or ""


def _has_placeholders(refiner_data: dict[str, Any]) -> bool:
    concept = _core_concept(refiner_data)
    return "**" in concept or not concept.strip() or len(concept) < 10 or "placeholder" in concept.lower()


def _asset_integration_score(analyzer_data: dict[str, Any], refiner_data: dict[str, Any]) -> float:
    assets = analyzer_data.get("assets") or []
    if not assets:
        return 1.0

    prompt = ((refiner_data.get("prompt_analysis") or {}).get("reformulated_prompt") or "")
    lowered = prompt.lower()

    def _referenced(asset: dict[str, Any]) -> bool:
        description = (asset.get("user_description") or "").lower()
        return (asset.get("type") or "") in lowered or bool(description and description in lowered)

    referenced = sum(1 for asset in assets if _referenced(asset))
    meaningful_roles = sum(
        1 for asset in assets if len(asset.get("role") or "") > 10 and "**" not in (asset.get("role") or "")
    )

    score = referenced / len(assets) * 0.4 + meaningful_roles / len(assets) * 0.3
    if len(prompt) > 50:
        score += 0.3
    return score


def _asset_utilization_score(analyzer_data: dict[str, Any], refiner_data: dict[str, Any]) -> float:
    assets = analyzer_data.get("assets") or []
    if not assets:
        return 1.0

    extensions = refiner_data.get("refiner_extensions") or {}
    summary = extensions.get("asset_utilization_summary") or {}
    score = 0.0

    if extensions.get("session_mode") == "asset_driven":
        score += 0.3

    score += (summary.get("utilization_rate") or 0) * 0.4
    # partial credit while some assets stay reference-only
    score += 0.1 if summary.get("reference_only_assets") else 0.3

    spine = extensions.get("narrative_spine") or {}
    if spine.get("intro") and spine.get("core") and spine.get("outro"):
        score += 0.2

    return min(1.0, score)


def _content_type_consistency(analyzer_data: dict[str, Any], refiner_data: dict[str, Any]) -> float:
    original = (analyzer_data.get("prompt_analysis") or {}).get("content_type_analysis") or {}
    refined = (refiner_data.get("prompt_analysis") or {}).get("content_type_analysis") or {}

    consistency = 1.0
    if original.get("needs_explanation") is True and original.get("needs_educational_content") is False:
        consistency -= 0.3
    if refined.get("needs_explanation") is True and refined.get("needs_educational_content") is True:
        consistency += 0.1
    if original.get("content_category") and original.get("content_category") == refined.get("content_category"):
        consistency += 0.1

    return max(0.0, min(1.0, consistency))


def _core_concept_strength(refiner_data: dict[str, Any]) -> float:
    concept = _core_concept(refiner_data)
    if len(concept) < 10:
        return 0.0
    if "**" in concept:
        return 0.1

    strength = 0.5
    if len(concept) > 50:
        strength += 0.2
    if len(concept) > 100:
        strength += 0.1
    if "content" in concept or "create" in concept:
        strength += 0.1
    if "visual" in concept or "style" in concept:
        strength += 0.1
    return min(1.0, strength)


def calculate_overall_score(metrics: QualityMetrics) -> float:
    score = 0.8
    score -= metrics.confidence_gap * 0.3
    if metrics.has_placeholders:
        score -= 0.3
    score += metrics.asset_integration_score * 0.15
    score += metrics.asset_utilization_score * 0.15
    score += metrics.content_type_consistency * 0.1
    score += metrics.core_concept_strength * 0.2
    return max(0.0, min(1.0, score))


def determine_grade(score: float) -> QualityGrade:
    if score >= 0.9:
        return QualityGrade.A
    if score >= 0.8:
        return QualityGrade.B
    if score >= 0.7:
        return QualityGrade.C
    if score >= 0.6:
        return QualityGrade.D
    return QualityGrade.F


# ============================================================
# Public API
# ============================================================
def assess_refiner_quality(analyzer_data: dict[str, Any], refiner_data: dict[str, Any]) -> RefinerQualityReport:
    """
    Full quality report of a refined document.

    Args:
        analyzer_data: analyzer document (dict) the refinement started from
        refiner_data: refined document (dict)

    Returns:
        RefinerQualityReport
    """
    metrics = QualityMetrics(
        confidence_gap=_confidence_gap(analyzer_data, refiner_data),
        has_placeholders=_has_placeholders(refiner_data),
        asset_integration_score=_asset_integration_score(analyzer_data, refiner_data),
        asset_utilization_score=_asset_utilization_score(analyzer_data, refiner_data),
        content_type_consistency=_content_type_consistency(analyzer_data, refiner_data),
        core_concept_strength=_core_concept_strength(refiner_data),
    )
    issues: list[QualityIssue] = []

    if metrics.confidence_gap > 0.3:
        issues.append(QualityIssue(
            type=IssueType.CONFIDENCE,
            severity=IssueSeverity.HIGH if metrics.confidence_gap > 0.5 else IssueSeverity.MEDIUM,
            message=f"Large confidence gap detected: {metrics.confidence_gap:.2f}",
            suggestion="Adjust refiner confidence to better match analyzer confidence",
        ))
    if metrics.has_placeholders:
        issues.append(QualityIssue(
            type=IssueType.PLACEHOLDER,
            severity=IssueSeverity.CRITICAL,
            message="Placeholders detected in core concept",
            suggestion="Replace placeholders with specific, meaningful content",
        ))
    if metrics.asset_integration_score < 0.6:
        issues.append(QualityIssue(
            type=IssueType.INTEGRATION,
            severity=IssueSeverity.HIGH if metrics.asset_integration_score < 0.3 else IssueSeverity.MEDIUM,
            message="Poor asset integration detected",
            suggestion="Improve asset context embedding in reformulated prompt",
        ))
    if metrics.asset_utilization_score < 0.7:
        issues.append(QualityIssue(
            type=IssueType.UTILIZATION,
            severity=IssueSeverity.HIGH if metrics.asset_utilization_score < 0.4 else IssueSeverity.MEDIUM,
            message="Poor asset utilization detected",
            suggestion="Elevate assets from reference-only to meaningful roles",
        ))
    if metrics.content_type_consistency < 0.8:
        issues.append(QualityIssue(
            type=IssueType.CONSISTENCY,
            severity=IssueSeverity.MEDIUM,
            message="Content type analysis inconsistencies detected",
            suggestion="Normalize contradictory content type flags",
        ))
    if metrics.core_concept_strength < 0.7:
        issues.append(QualityIssue(
            type=IssueType.CONCEPT,
            severity=IssueSeverity.HIGH if metrics.core_concept_strength < 0.4 else IssueSeverity.MEDIUM,
            message="Weak core concept detected",
            suggestion="Enhance core concept with more specific and descriptive content",
        ))

    recommendations: list[str] = []
    if metrics.confidence_gap > 0.2:
        recommendations.append("Implement confidence normalization to prevent over-correction")
    if metrics.has_placeholders:
        recommendations.append("Add placeholder detection and replacement logic")
    if metrics.asset_integration_score < 0.7:
        recommendations.append("Enhance asset integration validation")
    if metrics.asset_utilization_score < 0.7:
        recommendations.append("Improve asset utilization to prevent reference-only classification")
    if metrics.content_type_consistency < 0.9:
        recommendations.append("Add content type consistency checks")

    overall = calculate_overall_score(metrics)
    return RefinerQualityReport(
        overall_score=overall,
        grade=determine_grade(overall),
        issues=issues,
        recommendations=recommendations,
        metrics=metrics,
    )


def generate_quality_improvements(report: RefinerQualityReport) -> list[str]:
    """Engineering follow-ups suggested by a report."""
    metrics = report.metrics
    improvements: list[str] = []

    if metrics.confidence_gap > 0.3:
        improvements.append("Implement confidence normalization to prevent over-correction")
    if metrics.has_placeholders:
        improvements.append("Add placeholder detection and replacement in core concept generation")
    if metrics.asset_integration_score < 0.7:
        improvements.append("Enhance asset integration validation and context embedding")
    if metrics.content_type_consistency < 0.9:
        improvements.append("Add content type consistency validation and normalization")
    if metrics.core_concept_strength < 0.7:
        improvements.append("Strengthen core concept extraction and generation")

    return improvements


def validate_refiner_quality(analyzer_data: dict[str, Any], refiner_data: dict[str, Any]) -> QualityValidation:
    report = assess_refiner_quality(analyzer_data, refiner_data)
    has_critical = any(issue.severity == IssueSeverity.CRITICAL for issue in report.issues)
    return QualityValidation(is_valid=report.grade != QualityGrade.F and not has_critical, report=report)
