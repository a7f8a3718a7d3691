"""
Tests for the FastAPI endpoints.
"""

import json
import logging

import httpx
import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

from nodeflow.config import settings
from nodeflow.errors import EmptyGenerationError, UpstreamError
from nodeflow.llm.client import GeminiClient
from nodeflow.main import app, execution_limiter
from nodeflow.storage.cache import ResponseCache

from conftest import INVALID_KEY_BODY, make_workflow


class TestRootEndpoints:
    """Tests for root endpoints."""
    
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        
        data = response.json()
        assert data["name"] == settings.APP_NAME
        assert "endpoints" in data
    
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        
        data = response.json()
        assert data["status"] == "OK"
        assert data["hasGoogleApiKey"] is True
        assert data["cacheEntries"] == 0
    
    def test_cors_echo(self, client):
        response = client.get("/test", headers={"Origin": "http://localhost:3000"})
        assert response.status_code == 200
        assert response.json()["origin"] == "http://localhost:3000"
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    
    def test_unknown_endpoint(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Endpoint not found", "path": "/nope"}


def test_lifespan_wires_components():
    with TestClient(app) as client:
        assert isinstance(app.state.cache, ResponseCache)
        assert isinstance(app.state.client, GeminiClient)
        assert client.get("/health").status_code == 200


class TestPipelineParse:
    """Tests for POST /pipelines/parse."""
    
    def parse(self, client, graph):
        return client.post("/pipelines/parse", json={"pipeline": json.dumps(graph)})
    
    def test_dag(self, client):
        graph = {
            "nodes": [{"id": "a", "type": "customInput"}, {"id": "b", "type": "llm"}, {"id": "c", "type": "customOutput"}],
            "edges": [{"source": "a", "target": "b"}, {"source": "b", "target": "c"}],
        }
        response = self.parse(client, graph)
        assert response.status_code == 200
        assert response.json() == {"num_nodes": 3, "num_edges": 2, "is_dag": True, "success": True}
    
    def test_cycle(self, client):
        graph = {
            "nodes": [{"id": "a", "type": "llm"}, {"id": "b", "type": "llm"}],
            "edges": [{"source": "a", "target": "b"}, {"source": "b", "target": "a"}],
        }
        response = self.parse(client, graph)
        assert response.status_code == 200
        assert response.json()["is_dag"] is False
    
    def test_invalid_json(self, client):
        response = client.post("/pipelines/parse", json={"pipeline": "{not json"})
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"]
    
    def test_wrong_shape(self, client):
        response = self.parse(client, {"edges": []})
        assert response.status_code == 400
        assert response.json()["success"] is False
    
    def test_missing_pipeline(self, client):
        response = client.post("/pipelines/parse", json={})
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestRunWorkflow:
    """Tests for POST /run-workflow."""
    
    def test_success(self, client, generator):
        generator.text = "Dogs are loyal."
        body = make_workflow(
            outputs=("out1", "out2"),
            llm_config={"system": "You know {{topic}}", "prompt": "Describe {{topic}} in {{style}}"},
        )
        
        response = client.post("/run-workflow", json=body)
        
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["outputs"] == {"out1": "Dogs are loyal.", "out2": "Dogs are loyal."}
        assert data["metadata"]["model"] == settings.DEFAULT_MODEL
        assert data["metadata"]["approximateTokenCount"] == len("Dogs are loyal.")
        assert data["metadata"]["tokensUsed"] == len("Dogs are loyal.")
        assert generator.calls[0]["system"] == "You know dogs"
        assert generator.calls[0]["api_key"] == "server-key"
    
    def test_second_identical_request_is_cached(self, client, generator):
        body = make_workflow()
        first = client.post("/run-workflow", json=body).json()
        second = client.post("/run-workflow", json=body).json()
        
        assert first["outputs"] == second["outputs"]
        assert second["metadata"]["cached"] is True
        assert len(generator.calls) == 1
    
    def test_missing_input_node(self, client, generator):
        response = client.post("/run-workflow", json=make_workflow(with_input=False))
        
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No input nodes found in workflow"}
        assert generator.calls == []
    
    def test_missing_output_node(self, client):
        response = client.post("/run-workflow", json=make_workflow(outputs=()))
        assert response.status_code == 400
    
    def test_nodes_not_a_list(self, client, generator):
        response = client.post("/run-workflow", json={"nodes": "oops"})
        
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert data["details"][0]["field"] == "nodes"
        assert generator.calls == []
    
    def test_node_without_id(self, client):
        body = make_workflow()
        body["nodes"][0]["id"] = ""
        response = client.post("/run-workflow", json=body)
        assert response.status_code == 400
    
    def test_empty_api_key_rejected(self, client):
        response = client.post("/run-workflow", json=make_workflow(llm_config={"apiKey": "   "}))
        assert response.status_code == 400
    
    def test_no_api_key(self, client, generator, monkeypatch):
        monkeypatch.setattr(settings, "GOOGLE_API_KEY", None)
        
        response = client.post("/run-workflow", json=make_workflow())
        
        assert response.status_code == 401
        assert response.json()["success"] is False
        assert generator.calls == []
    
    def test_user_api_key(self, client, generator, monkeypatch):
        monkeypatch.setattr(settings, "GOOGLE_API_KEY", None)
        
        response = client.post("/run-workflow", json=make_workflow(llm_config={"apiKey": "mine"}))
        
        assert response.status_code == 200
        assert generator.calls[0]["api_key"] == "mine"
    
    def test_upstream_failure(self, client, generator):
        generator.error = UpstreamError("Gemini API error: overloaded", upstream_status=503)
        
        response = client.post("/run-workflow", json=make_workflow())
        
        assert response.status_code == 502
        data = response.json()
        assert data["success"] is False
        assert "try again" in data["error"]
        assert data["details"] == "Gemini API error: overloaded"
    
    def test_invalid_key_from_backend_is_unauthorized(self, client, wired_app):
        def backend(request):
            return httpx.Response(400, json=INVALID_KEY_BODY)
        
        wired_app.state.client = GeminiClient(
            base_url="https://gemini.test/v1beta",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(backend)),
            on_api_call=None,
        )
        
        response = client.post("/run-workflow", json=make_workflow(llm_config={"apiKey": "bad-key"}))
        
        assert response.status_code == 401
        assert response.json()["success"] is False
        assert len(wired_app.state.cache) == 0
    
    def test_upstream_failure_hides_details_in_production(self, client, generator, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        generator.error = EmptyGenerationError("No response generated from Gemini API")
        
        response = client.post("/run-workflow", json=make_workflow())
        
        assert response.status_code == 502
        assert "details" not in response.json()
    
    def test_failures_logged_with_traceback_in_development(self, client, generator, caplog):
        generator.error = UpstreamError("Gemini API error: overloaded", upstream_status=503)
        
        with caplog.at_level(logging.WARNING, logger="nodeflow.main"):
            client.post("/run-workflow", json=make_workflow())
            client.post("/run-workflow", json=make_workflow(with_input=False))
        
        records = [r for r in caplog.records if r.name == "nodeflow.main"]
        assert len(records) == 2
        assert all(r.exc_info is not None for r in records)
    
    def test_failures_logged_without_traceback_in_production(self, client, generator, caplog, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        generator.error = UpstreamError("Gemini API error: overloaded", upstream_status=503)
        
        with caplog.at_level(logging.WARNING, logger="nodeflow.main"):
            client.post("/run-workflow", json=make_workflow())
        
        records = [r for r in caplog.records if r.name == "nodeflow.main"]
        assert len(records) == 1
        assert records[0].exc_info is None
    
    def test_unexpected_failure(self, client, generator):
        generator.error = RuntimeError("boom")
        
        response = client.post("/run-workflow", json=make_workflow())
        
        assert response.status_code == 500
        assert response.json()["success"] is False
    
    def test_rate_limited(self, client, monkeypatch):
        monkeypatch.setattr(execution_limiter, "max_requests", 2)
        
        statuses = [client.post("/run-workflow", json=make_workflow()).status_code for _ in range(3)]
        
        assert statuses == [200, 200, 429]
        response = client.post("/run-workflow", json=make_workflow())
        assert response.json()["success"] is False
        assert int(response.headers["retry-after"]) >= 1
        # Other endpoints still answer
        assert client.get("/").status_code == 200


@pytest.mark.asyncio
async def test_run_workflow_async_client(wired_app, generator):
    """The endpoint works over a plain ASGI transport as well."""
    transport = ASGITransport(app=wired_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/run-workflow", json=make_workflow(inputs={"in1": 42}))
    
    assert response.status_code == 200
    assert generator.calls[0]["prompt"] == "42"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
