"""
Multilingual enum normalisation (FR / ES / DE / IT / PT -> EN)

Models answer in the user's language, so enum-like fields come back as
"modéré", "RECOMENDADO", "vollständig"... Lookups are case-insensitive and
unknown values fall back to a neutral default.
"""

import copy
from typing import Any


IMPACT_MAP = {
    "minor": "minor", "moderate": "moderate", "major": "major",
    "mineur": "minor", "modéré": "moderate", "majeur": "major",
    "menor": "minor", "moderado": "moderate", "mayor": "major",
    "gering": "minor", "mäßig": "moderate", "groß": "major",
    "minore": "minor", "moderato": "moderate", "maggiore": "major",
    "maior": "major",
}

PRIORITY_MAP = {
    "required": "required", "recommended": "recommended",
    "requis": "required", "recommandé": "recommended",
    "requerido": "required", "recomendado": "recommended",
    "erforderlich": "required", "empfohlen": "recommended",
    "richiesto": "required", "richiesta": "required", "raccomandato": "recommended",
    "necessário": "required",
}

COMPLEXITY_MAP = {
    "very_simple": "very_simple", "simple": "simple", "moderate": "moderate", "complex": "complex",
    "très_simple": "very_simple", "modéré": "moderate", "complexe": "complex",
    "muy_simple": "very_simple", "moderado": "moderate", "complejo": "complex",
    "sehr_einfach": "very_simple", "einfach": "simple", "mäßig": "moderate", "komplex": "complex",
    "molto_semplice": "very_simple", "semplice": "simple", "moderato": "moderate", "complesso": "complex",
    "muito_simples": "very_simple", "simples": "simple", "complexo": "complex",
}

WORKLOAD_MAP = {
    "low": "low", "medium": "medium", "high": "high",
    "faible": "low", "moyen": "medium", "élevé": "high",
    "bajo": "low", "medio": "medium", "alto": "high",
    "niedrig": "low", "mittel": "medium", "hoch": "high",
    "basso": "low",
    "baixo": "low", "médio": "medium",
}

COMPLETION_STATUS_MAP = {
    "partial": "partial", "complete": "complete",
    "partiel": "partial", "complet": "complete",
    "parcial": "partial", "completo": "complete",
    "teilweise": "partial", "vollständig": "complete",
    "parziale": "partial",
}

# values accepted on input before normalisation
COMPLETION_STATUS_INPUT = set(COMPLETION_STATUS_MAP) | {"failed", "échoué", "fallido", "fehlgeschlagen", "fallito", "falhou"}


def _lookup(mapping: dict[str, str], value: str, default: str) -> str:
    return mapping.get(str(value).lower(), default)


def normalize_impact_value(impact: str) -> str:
    return _lookup(IMPACT_MAP, impact, "moderate")


def normalize_priority_value(priority: str) -> str:
    return _lookup(PRIORITY_MAP, priority, "recommended")


def normalize_content_complexity_value(complexity: str) -> str:
    return _lookup(COMPLEXITY_MAP, complexity, "moderate")


def normalize_workload_value(workload: str) -> str:
    return _lookup(WORKLOAD_MAP, workload, "medium")


def normalize_completion_status_value(status: str) -> str:
    return _lookup(COMPLETION_STATUS_MAP, status, "complete")


def normalize_refiner_output(refiner_data: dict[str, Any]) -> dict[str, Any]:
    """
    Translate every multilingual enum of a refiner document to English.

    Returns a new document; the input is left untouched.
    """
    normalized = copy.deepcopy(refiner_data)

    content_type = (normalized.get("prompt_analysis") or {}).get("content_type_analysis") or {}
    if content_type.get("content_complexity"):
        content_type["content_complexity"] = normalize_content_complexity_value(content_type["content_complexity"])

    for option in normalized.get("creative_options") or []:
        if isinstance(option, dict) and option.get("estimatedWorkload"):
            option["estimatedWorkload"] = normalize_workload_value(option["estimatedWorkload"])

    quality_metrics = normalized.get("quality_metrics") or {}
    if quality_metrics.get("completion_status"):
        quality_metrics["completion_status"] = normalize_completion_status_value(quality_metrics["completion_status"])

    for challenge in normalized.get("challenges") or []:
        if isinstance(challenge, dict) and challenge.get("impact"):
            challenge["impact"] = normalize_impact_value(challenge["impact"])

    for recommendation in normalized.get("recommendations") or []:
        if isinstance(recommendation, dict) and recommendation.get("priority"):
            recommendation["priority"] = normalize_priority_value(recommendation["priority"])

    for asset in normalized.get("assets") or []:
        if not isinstance(asset, dict):
            continue
        for edit in asset.get("recommended_edits") or []:
            if isinstance(edit, dict) and edit.get("priority"):
                edit["priority"] = normalize_priority_value(edit["priority"])

    return normalized
