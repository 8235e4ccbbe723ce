from enum import StrEnum


# ============================================================
# Asset & Session Domain
# ============================================================

class AssetType(StrEnum):
    """Media type of a user-uploaded asset"""
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class SessionMode(StrEnum):
    ASSET_DRIVEN = "asset_driven"  # narrative anchored on uploaded assets
    ASSET_FREE = "asset_free"      # profile scaffolding only


class UtilizationLevel(StrEnum):
    """How an asset is used in the refined plan"""
    PRIMARY_SUBJECT = "primary_subject"
    PRIMARY_FOOTAGE = "primary_footage"
    SEED_FOR_GENERATION = "seed_for_generation"
    SUPPORTING_VISUAL = "supporting_visual"
    BACKGROUND_ELEMENT = "background_element"
    REFERENCE_ONLY = "reference_only"
    # legacy aliases still emitted by some models
    PRIMARY_VISUAL = "primary_visual"
    MAIN_VISUAL_ANCHOR = "main_visual_anchor"


# ============================================================
# Quality Domain
# ============================================================

class QualityGrade(StrEnum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class IssueSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IssueType(StrEnum):
    CONFIDENCE = "confidence"
    PLACEHOLDER = "placeholder"
    INTEGRATION = "integration"
    CONSISTENCY = "consistency"
    CONCEPT = "concept"
    UTILIZATION = "utilization"


# ============================================================
# Error Domain
# ============================================================

class ErrorType(StrEnum):
    """Failure category reported in API error envelopes"""
    VALIDATION = "validation"
    LLM = "llm"
    SCHEMA = "schema"
    STORAGE = "storage"
    ANALYSIS = "analysis"


class RepairStage(StrEnum):
    """Stage at which JSON recovery succeeded (or failed)"""
    PARSED = "parsed"
    LOCAL_REPAIR = "local_repair"
    LLM_REPAIR = "llm_repair"
    FAILED = "failed"
