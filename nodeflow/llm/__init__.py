"""
LLM package - upstream generation client and call telemetry.
"""

from nodeflow.llm.client import GeminiClient
from nodeflow.llm.telemetry import ApiCallRecord, log_api_call

__all__ = ["GeminiClient", "ApiCallRecord", "log_api_call"]
