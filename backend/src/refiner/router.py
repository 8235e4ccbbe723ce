"""
Refiner API router (Step 2a)

Upgrades analyzer JSON into the polished refiner format, in single or batch mode,
and serves stored refinements.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.src.common.config import AI_CONFIG
from backend.src.common.database.connection import AsyncDatabaseEngine
from backend.src.refiner.schemas.refiner import BatchRefineRequest, RefineRequest
from backend.src.refiner.services.refiner_service import RefinerService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dreamcut", tags=["refiner"])


# ============================================================
# Dependencies
# ============================================================
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Session for FastAPI Depends."""
    db_engine = AsyncDatabaseEngine()
    async with db_engine.get_session() as session:
        yield session


async def get_refiner_service(session: AsyncSession = Depends(get_session)) -> RefinerService:
    """RefinerService factory."""
    return RefinerService.from_session(session)


# ============================================================
# Endpoints
# ============================================================
@router.post("/refiner")
async def refine(
    body: dict[str, Any] = Body(...),
    service: RefinerService = Depends(get_refiner_service),
) -> dict[str, Any]:
    """
    Refine one analyzer document.

    Accepts {"analyzerOutput": {...}, "options": {...}} or the analyzer document itself.
    """
    request = RefineRequest.model_validate(body if "analyzerOutput" in body else {"analyzerOutput": body})
    return await service.refine(request.analyzer_output, request.options)


@router.post("/refiner/batch")
async def refine_batch(
    request: BatchRefineRequest,
    service: RefinerService = Depends(get_refiner_service),
) -> dict[str, Any]:
    """All-settled batch refinement; failed items are reported next to successful ones."""
    results = await service.batch_refine(request.analyzer_outputs, request.options)
    succeeded = sum(1 for item in results if item["success"])
    return {
        "success": True,
        "data": {
            "results": results,
            "total": len(results),
            "successful": succeeded,
            "failed": len(results) - succeeded,
        },
    }


@router.get("/refiner")
async def refiner_info() -> dict[str, Any]:
    return {
        "name": "DreamCut Refiner API - Step 2a: Polished JSON Upgrade",
        "description": "Upgrades raw analyzer JSON into polished, production-ready JSON format",
        "version": "1.0.0",
        "features": [
            "Claude 3.5 Haiku primary model for fast JSON generation",
            "GPT-4o-mini fallback for reliability",
            "Local and LLM-assisted JSON repair",
            "Pydantic validation for JSON safety",
            "PostgreSQL storage of every refinement",
            "Batch processing support",
            "Health check endpoints",
        ],
        "expectedInput": {
            "analyzerOutput": "Analyzer JSON (or send the analyzer document directly as the body)",
            "options": {
                "model": "string (optional) - 'auto', 'claude', 'gpt-4o-mini' or a litellm model id",
                "useFallback": "boolean (optional) - fall back to GPT-4o-mini on failure",
                "maxRetries": "number (optional) - max retry attempts",
                "timeout_sec": "number (optional) - per-attempt timeout in seconds",
                "persist": "boolean (optional) - store the result",
            },
        },
        "outputFormat": "Polished Refiner JSON with enhanced confidence and structure",
        "models": {
            "primary": AI_CONFIG["primary_model"],
            "fallback": AI_CONFIG["fallback_model"],
        },
        "validation": "Pydantic schema validation for both input and output",
        "storage": "PostgreSQL table dreamcut_refiner",
    }


@router.head("/refiner")
async def refiner_health() -> Response:
    """200 when at least one model answers, 503 otherwise."""
    try:
        health = await RefinerService.health_check()
    except Exception as e:
        logger.warning(f"[Refiner] Health check failed: {e}")
        return Response(status_code=503)
    return Response(status_code=200 if health["healthy"] else 503)


@router.get("/refiner/{refiner_id}")
async def get_refinement(
    refiner_id: str,
    service: RefinerService = Depends(get_refiner_service),
) -> dict[str, Any]:
    result = await service.get_result(refiner_id)
    if not result:
        raise HTTPException(status_code=404, detail=f"Refinement {refiner_id} not found")
    return {"success": True, "data": result.to_dict()}
