"""
Refiner quality assessment and multilingual normalisation tests
"""

import pytest

from backend.src.common.enums import IssueSeverity, IssueType, QualityGrade
from backend.src.refiner.engine.quality import (
    QualityMetrics,
    assess_refiner_quality,
    calculate_overall_score,
    determine_grade,
    generate_quality_improvements,
    validate_refiner_quality,
)
from backend.src.refiner.schemas.normalization import (
    normalize_completion_status_value,
    normalize_impact_value,
    normalize_refiner_output,
)


# ============================================================
# 1. Scoring
# ============================================================
class TestScoring:
    @pytest.mark.parametrize(
        "score, grade",
        [(0.95, QualityGrade.A), (0.85, QualityGrade.B), (0.75, QualityGrade.C), (0.65, QualityGrade.D), (0.2, QualityGrade.F)],
    )
    def test_grades(self, score, grade):
        assert determine_grade(score) == grade

    def test_overall_score_is_clamped(self):
        perfect = QualityMetrics(
            confidence_gap=0.0,
            has_placeholders=False,
            asset_integration_score=1.0,
            asset_utilization_score=1.0,
            content_type_consistency=1.0,
            core_concept_strength=1.0,
        )
        broken = QualityMetrics(
            confidence_gap=1.0,
            has_placeholders=True,
            asset_integration_score=0.0,
            asset_utilization_score=0.0,
            content_type_consistency=0.0,
            core_concept_strength=0.0,
        )
        assert calculate_overall_score(perfect) == 1.0
        assert calculate_overall_score(broken) == pytest.approx(0.2)


# ============================================================
# 2. Reports
# ============================================================
class TestAssessment:
    def test_placeholder_concept_is_critical(self, analyzer_document, refined_document):
        refined_document["creative_direction"]["core_concept"] = "**concept**"

        validation = validate_refiner_quality(analyzer_document, refined_document)

        assert validation.is_valid is False
        placeholder = [i for i in validation.report.issues if i.type == IssueType.PLACEHOLDER]
        assert placeholder and placeholder[0].severity == IssueSeverity.CRITICAL
        assert "Add placeholder detection and replacement logic" in validation.report.recommendations

    def test_no_assets_scores_full_integration(self, refined_document):
        report = assess_refiner_quality({"user_request": {"original_prompt": "x"}}, refined_document)
        assert report.metrics.asset_integration_score == 1.0
        assert report.metrics.asset_utilization_score == 1.0

    def test_confidence_gap_issue(self, analyzer_document, refined_document):
        analyzer_document["quality_metrics"]["overall_confidence"] = 0.2
        refined_document["quality_metrics"]["overall_confidence"] = 0.95

        report = assess_refiner_quality(analyzer_document, refined_document)

        confidence = [i for i in report.issues if i.type == IssueType.CONFIDENCE]
        assert confidence[0].severity == IssueSeverity.HIGH
        assert "Large confidence gap detected: 0.75" == confidence[0].message

    def test_improvements(self, analyzer_document, refined_document):
        refined_document["creative_direction"]["core_concept"] = "short"
        report = assess_refiner_quality(analyzer_document, refined_document)

        improvements = generate_quality_improvements(report)
        assert "Add placeholder detection and replacement in core concept generation" in improvements
        assert "Strengthen core concept extraction and generation" in improvements


# ============================================================
# 3. Multilingual normalisation
# ============================================================
class TestNormalization:
    def test_enum_values_are_translated(self):
        document = {
            "prompt_analysis": {"content_type_analysis": {"content_complexity": "Modéré"}},
            "creative_options": [{"id": "o1", "title": "t", "estimatedWorkload": "élevé"}],
            "quality_metrics": {"completion_status": "vollständig"},
            "challenges": [{"type": "t", "description": "d", "impact": "MAJEUR"}],
            "recommendations": [{"type": "t", "recommendation": "r", "priority": "Recomendado"}],
            "assets": [{"id": "a", "recommended_edits": [{"action": "upscale", "priority": "erforderlich"}]}],
        }

        normalized = normalize_refiner_output(document)

        assert normalized["prompt_analysis"]["content_type_analysis"]["content_complexity"] == "moderate"
        assert normalized["creative_options"][0]["estimatedWorkload"] == "high"
        assert normalized["quality_metrics"]["completion_status"] == "complete"
        assert normalized["challenges"][0]["impact"] == "major"
        assert normalized["recommendations"][0]["priority"] == "recommended"
        assert normalized["assets"][0]["recommended_edits"][0]["priority"] == "required"
        # input untouched
        assert document["challenges"][0]["impact"] == "MAJEUR"

    def test_unknown_values_fall_back(self):
        assert normalize_impact_value("catastrophic") == "moderate"
        assert normalize_completion_status_value("failed") == "complete"
