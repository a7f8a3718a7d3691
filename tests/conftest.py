"""
Shared fixtures.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ.pop("GOOGLE_API_KEY", None)

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from nodeflow.config import settings
from nodeflow.errors import UpstreamError
from nodeflow.main import app, execution_limiter, general_limiter
from nodeflow.storage.cache import ResponseCache


# Gemini's answer to an unknown API key
INVALID_KEY_BODY = {
    "error": {
        "code": 400,
        "message": "API key not valid. Please pass a valid API key.",
        "status": "INVALID_ARGUMENT",
        "details": [
            {
                "@type": "type.googleapis.com/google.rpc.ErrorInfo",
                "reason": "API_KEY_INVALID",
                "domain": "googleapis.com",
            }
        ],
    }
}


class FakeGenerator:
    """Stands in for GeminiClient; records every call."""
    
    def __init__(self, text: str = "generated text", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[dict] = []
    
    async def generate(self, model, system_prompt, user_prompt, api_key):
        self.calls.append({
            "model": model,
            "system": system_prompt,
            "prompt": user_prompt,
            "api_key": api_key,
        })
        if self.error is not None:
            raise self.error
        return self.text
    
    async def aclose(self):
        pass


class FakeClock:
    """Manually advanced monotonic clock."""
    
    def __init__(self, now: float = 1000.0):
        self.now = now
    
    def __call__(self) -> float:
        return self.now
    
    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_workflow(inputs=None, llm_config=None, outputs=("out1",), with_input=True):
    """Build a /run-workflow body: one input, one LLM node, N outputs."""
    nodes = []
    edges = []
    if with_input:
        nodes.append({"id": "in1", "type": "customInput", "data": {"inputName": "topic"}})
        edges.append({"id": "e-in", "source": "in1", "target": "llm1"})
    nodes.append({"id": "llm1", "type": "llm", "data": {}})
    for out in outputs:
        nodes.append({"id": out, "type": "customOutput", "data": {}})
        edges.append({"id": f"e-{out}", "source": "llm1", "target": out})
    
    body = {
        "nodes": nodes,
        "edges": edges,
        "inputs": inputs if inputs is not None else {"in1": "dogs"},
    }
    if llm_config is not None:
        body["llmConfig"] = llm_config
    return body


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def wired_app(generator, monkeypatch):
    """The app with a fresh cache and a fake generator, limiters reset."""
    monkeypatch.setattr(settings, "GOOGLE_API_KEY", "server-key")
    general_limiter.reset()
    execution_limiter.reset()
    app.state.cache = ResponseCache(ttl_seconds=300, max_entries=1000)
    app.state.client = generator
    yield app
    del app.state.cache
    del app.state.client
    general_limiter.reset()
    execution_limiter.reset()


@pytest.fixture
def client(wired_app):
    # No context manager: the lifespan would replace the fakes
    return TestClient(wired_app, raise_server_exceptions=False)
