"""
Shared pytest fixtures

Test strategy:
- The LLM layer is always mocked (no vendor calls, no API keys needed)
- Repositories are replaced by mocks so the suite runs without PostgreSQL
- API tests go through httpx AsyncClient + ASGITransport with dependency overrides
"""

import copy
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Use litellm's bundled model cost map instead of fetching it over the network at import
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from backend.main import app
from backend.src.common.llm.client import LLMResult


# ============================================================
# 1. Analyzer / refiner documents
# ============================================================
ANALYZER_DOCUMENT: dict[str, Any] = {
    "id": "anl_test_001",
    "user_request": {
        "original_prompt": "Explain compound interest for beginners using my chart",
        "intent": "video",
        "duration_seconds": 30,
        "aspect_ratio": "16:9",
        "platform": "youtube",
    },
    "prompt_analysis": {
        "user_intent_description": "Teach compound interest basics",
        "reformulated_prompt": "Create a 30 second explainer video on compound interest built around the user's chart",
        "clarity_score": 8,
        "content_type_analysis": {
            "needs_explanation": True,
            "needs_charts": True,
            "needs_educational_content": False,
            "content_complexity": "simple",
            "content_category": "educational",
        },
    },
    "assets": [
        {
            "id": "ast_chart",
            "type": "image",
            "user_description": "main chart of savings growth",
            "ai_caption": "line chart showing exponential growth",
            "quality_score": 0.85,
            "role": "primary visual",
        }
    ],
    "quality_metrics": {"overall_confidence": 0.7, "completion_status": "complete"},
}


REFINED_DOCUMENT: dict[str, Any] = {
    "user_request": {
        "original_prompt": "Explain compound interest for beginners using my chart",
        "intent": "video",
        "duration_seconds": 30,
        "aspect_ratio": "16:9",
        "platform": "youtube",
    },
    "prompt_analysis": {
        "user_intent_description": "Teach compound interest basics",
        "reformulated_prompt": (
            "Create a 30 second educational video explaining compound interest, "
            "featuring the user's image chart of savings growth as the primary visual"
        ),
        "clarity_score": 8,
        "suggested_improvements": ["Mention the time horizon"],
        "content_type_analysis": {
            "needs_explanation": True,
            "needs_charts": True,
            "needs_diagrams": False,
            "needs_educational_content": True,
            "content_complexity": "simple",
            "requires_visual_aids": True,
            "is_instructional": True,
            "needs_data_visualization": True,
            "requires_interactive_elements": False,
            "content_category": "educational",
        },
    },
    "assets": [
        {
            "id": "ast_chart",
            "type": "image",
            "user_description": "main chart of savings growth",
            "ai_caption": "line chart showing exponential growth",
            "objects_detected": ["chart", "axis"],
            "style": "flat infographic",
            "mood": "optimistic",
            "quality_score": 0.85,
            "role": "primary visual anchor for the explanation",
        }
    ],
    "global_analysis": {
        "goal": "Teach compound interest in 30 seconds",
        "constraints": {"duration_seconds": 30, "aspect_ratio": "16:9", "platform": "youtube"},
    },
    "creative_direction": {
        "core_concept": (
            "Create visual content that shows how small savings grow through compound interest, "
            "anchored on the user's chart with a clean style"
        ),
        "visual_approach": "Clean infographic style with animated chart reveals",
        "style_direction": "Minimal and bright",
        "mood_atmosphere": "Encouraging",
    },
    "production_pipeline": {"workflow_steps": ["Animate chart", "Record narration"], "estimated_time": "30 minutes"},
    "quality_metrics": {"overall_confidence": 0.8, "completion_status": "complete", "feasibility_score": 0.9},
    "recommendations": [{"type": "audio", "recommendation": "Add calm narration", "priority": "recommended"}],
}


SCRIPT_INPUT: dict[str, Any] = {
    **copy.deepcopy(REFINED_DOCUMENT),
    "refiner_extensions": {
        "creative_profile": {
            "profileId": "educational_explainer",
            "profileName": "Educational Explainer",
            "goal": "Create clear, educational content that maximizes learning impact",
            "confidence": "0.92",
            "detectionMethod": "multi-factor",
            "matchedFactors": ["keywords_primary: explain"],
        }
    },
}


@pytest.fixture
def analyzer_document() -> dict[str, Any]:
    return copy.deepcopy(ANALYZER_DOCUMENT)


@pytest.fixture
def refined_document() -> dict[str, Any]:
    return copy.deepcopy(REFINED_DOCUMENT)


@pytest.fixture
def script_input() -> dict[str, Any]:
    return copy.deepcopy(SCRIPT_INPUT)


# ============================================================
# 2. LLM result helpers
# ============================================================
def llm_ok(text: str, model: str = "anthropic/claude-3-5-haiku-20241022") -> LLMResult:
    return LLMResult(success=True, text=text, model_used=model, processing_time_ms=12)


def llm_failed(error: str = "RateLimitError: 429", model: str = "gpt-4o-mini") -> LLMResult:
    return LLMResult(success=False, model_used=model, retry_count=1, error=error)


# ============================================================
# 3. Repository mocks (no database)
# ============================================================
class SessionDouble:
    """AsyncSession stand-in: flushed rows sit in `rows` until a rollback removes them."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.rollback = AsyncMock(side_effect=self._rollback)

    async def _rollback(self) -> None:
        self.rows.clear()

    @asynccontextmanager
    async def begin_nested(self):
        mark = len(self.rows)
        try:
            yield self
        except Exception:
            del self.rows[mark:]
            raise


def make_repo_mock() -> MagicMock:
    """Repository double: create records the row in the session, get returns None."""
    repo = MagicMock()
    repo.session = SessionDouble()

    async def create(record: dict[str, Any]) -> dict[str, Any]:
        repo.session.rows.append(record)
        return record

    repo.create = AsyncMock(side_effect=create)
    repo.get = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def refiner_repo() -> MagicMock:
    return make_repo_mock()


@pytest.fixture
def script_repo() -> MagicMock:
    return make_repo_mock()


# ============================================================
# 4. FastAPI AsyncClient (service dependencies overridden)
# ============================================================
@pytest_asyncio.fixture
async def client(refiner_repo: MagicMock, script_repo: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient bound to the app.

    The router service factories are swapped for services built on the repository mocks,
    so no request ever opens a database session.
    """
    from backend.src.refiner.router import get_refiner_service
    from backend.src.refiner.services.refiner_service import RefinerService
    from backend.src.script.router import get_script_service
    from backend.src.script.services.script_service import ScriptEnhancerService

    app.dependency_overrides[get_refiner_service] = lambda: RefinerService(refiner_repo)
    app.dependency_overrides[get_script_service] = lambda: ScriptEnhancerService(script_repo)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
