"""
Script Enhancer API router (Step 3)

Turns refined documents into studio-grade scripts and serves stored scripts.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.src.common.config import AI_CONFIG
from backend.src.common.database.connection import AsyncDatabaseEngine
from backend.src.script.engine.library import CREATIVE_PROFILE_SCRIPTS
from backend.src.script.services.script_service import ScriptEnhancerService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dreamcut", tags=["script-enhancer"])


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    db_engine = AsyncDatabaseEngine()
    async with db_engine.get_session() as session:
        yield session


async def get_script_service(session: AsyncSession = Depends(get_session)) -> ScriptEnhancerService:
    return ScriptEnhancerService.from_session(session)


@router.post("/script-enhancer")
async def enhance_script(
    body: dict[str, Any] = Body(...),
    persist: bool | None = Query(None, description="Override SCRIPT_PERSIST_RESULTS"),
    service: ScriptEnhancerService = Depends(get_script_service),
) -> dict[str, Any]:
    """
    Generate a script from a refined document.

    The legacy loose body (userPrompt / options / final_analysis) is adapted automatically.
    """
    return await service.enhance(body, persist=persist)


@router.get("/script-enhancer")
async def script_enhancer_info() -> dict[str, Any]:
    return {
        "name": "DreamCut Script Enhancer API - Step 3: Studio-Grade Scripts",
        "description": "Turns refined analysis into production-ready scripts with voiceover, music and scene plans",
        "version": "1.0.0",
        "features": [
            "Human-readable script plus structured production JSON",
            "Model cascade with JSON repair",
            "Synthesized fallback script when the model output cannot be recovered",
            "Per-profile voiceover, music cue and consistency presets",
            "Studio-grade quality assessment (A+ to D)",
        ],
        "models": AI_CONFIG["script_models"],
        "supportedProfiles": sorted(CREATIVE_PROFILE_SCRIPTS),
        "storage": "PostgreSQL table script_enhancer_results",
    }


@router.get("/script-enhancer/{script_id}")
async def get_script(
    script_id: str,
    service: ScriptEnhancerService = Depends(get_script_service),
) -> dict[str, Any]:
    result = await service.get_result(script_id)
    if not result:
        raise HTTPException(status_code=404, detail=f"Script {script_id} not found")
    return {"success": True, "data": result.to_dict()}
