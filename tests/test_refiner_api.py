"""
Refiner HTTP API tests (httpx AsyncClient + ASGITransport, repositories mocked)
"""

import json
from unittest.mock import AsyncMock, patch

from backend.src.refiner.models.refiner_result import RefinerResult
from tests.conftest import llm_failed, llm_ok


CALL_LLM = "backend.src.refiner.services.refiner_service.call_llm"


def _answer(document: dict) -> str:
    return f"<json>{json.dumps(document)}</json>"


class TestRefineEndpoint:
    async def test_wrapped_body(self, client, analyzer_document, refined_document):
        """{"analyzerOutput", "options"} body."""
        with patch(CALL_LLM, new=AsyncMock(return_value=llm_ok(_answer(refined_document)))):
            response = await client.post(
                "/api/dreamcut/refiner",
                json={"analyzerOutput": analyzer_document, "options": {"persist": False}},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["_metadata"]["templateUsed"] == "Image Only"
        assert body["user_request"]["original_prompt"] == analyzer_document["user_request"]["original_prompt"]

    async def test_bare_document_body(self, client, refiner_repo, analyzer_document, refined_document):
        """The analyzer document can be posted directly."""
        with patch(CALL_LLM, new=AsyncMock(return_value=llm_ok(_answer(refined_document)))):
            response = await client.post("/api/dreamcut/refiner", json=analyzer_document)

        assert response.status_code == 200
        refiner_repo.create.assert_awaited_once()

    async def test_invalid_document_is_400(self, client):
        response = await client.post("/api/dreamcut/refiner", json={"analyzerOutput": {"assets": []}})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Invalid analyzer input format"
        assert body["type"] == "validation"
        assert "timestamp" in body

    async def test_llm_failure_is_500(self, client, analyzer_document):
        with patch(CALL_LLM, new=AsyncMock(return_value=llm_failed())):
            response = await client.post("/api/dreamcut/refiner", json=analyzer_document)

        assert response.status_code == 500
        assert response.json()["type"] == "llm"


class TestBatchEndpoint:
    async def test_mixed_results(self, client, analyzer_document, refined_document):
        with patch(CALL_LLM, new=AsyncMock(return_value=llm_ok(_answer(refined_document)))):
            response = await client.post(
                "/api/dreamcut/refiner/batch",
                json={"analyzerOutputs": [analyzer_document, {"foo": "bar"}], "options": {"persist": False}},
            )

        assert response.status_code == 200
        data = response.json()["data"]
        assert (data["total"], data["successful"], data["failed"]) == (2, 1, 1)
        assert data["results"][1]["success"] is False

    async def test_empty_batch_is_400(self, client):
        response = await client.post("/api/dreamcut/refiner/batch", json={"analyzerOutputs": []})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request format"


class TestInfoAndLookup:
    async def test_info(self, client):
        response = await client.get("/api/dreamcut/refiner")

        assert response.status_code == 200
        assert response.json()["storage"] == "PostgreSQL table dreamcut_refiner"

    async def test_head_health(self, client):
        health = AsyncMock(return_value={"healthy": False, "models": {}, "errors": ["down"]})
        with patch("backend.src.refiner.services.refiner_service.llm_health_check", new=health):
            response = await client.head("/api/dreamcut/refiner")

        assert response.status_code == 503

    async def test_get_missing_is_404(self, client):
        response = await client.get("/api/dreamcut/refiner/ref_unknown")

        assert response.status_code == 404
        assert response.json()["error"] == "Refinement ref_unknown not found"

    async def test_get_stored(self, client, refiner_repo, refined_document):
        refiner_repo.get.return_value = RefinerResult(
            id="ref_abc", payload=refined_document, model_used="gpt-4o-mini", processing_time_ms=10, retry_count=0
        )

        response = await client.get("/api/dreamcut/refiner/ref_abc")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == "ref_abc"
        assert data["payload"]["creative_direction"] == refined_document["creative_direction"]
