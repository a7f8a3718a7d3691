"""
Request dependencies.

Components live on ``app.state`` (created in the application lifespan)
so tests can swap them with ``app.dependency_overrides``.
"""

from fastapi import Request

from nodeflow.config import settings
from nodeflow.engine.executor import WorkflowExecutor
from nodeflow.llm.client import GeminiClient
from nodeflow.storage.cache import ResponseCache


def get_cache(request: Request) -> ResponseCache:
    return request.app.state.cache


def get_client(request: Request) -> GeminiClient:
    return request.app.state.client


def get_executor(request: Request) -> WorkflowExecutor:
    """Build an executor around the app-scoped cache and client."""
    return WorkflowExecutor(
        generator=get_client(request),
        cache=get_cache(request),
        default_api_key=settings.GOOGLE_API_KEY,
        default_model=settings.DEFAULT_MODEL,
        default_system_prompt=settings.DEFAULT_SYSTEM_PROMPT,
    )
