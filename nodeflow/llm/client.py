"""
Gemini generation client.

Wraps the ``generateContent`` REST endpoint with a bounded retry loop:
rate-limit (429) and server faults (5xx) are retried with a fixed delay,
everything else fails on the first attempt.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
import asyncio
import logging
import time

import httpx

from nodeflow.errors import EmptyGenerationError, UpstreamError
from nodeflow.llm.telemetry import ApiCallRecord, ApiCallReporter, log_api_call, safe_report


logger = logging.getLogger(__name__)


PROVIDER = "google-gemini"

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 2048,
}


def build_payload(system_prompt: str, user_prompt: str) -> Dict[str, Any]:
    """System and user prompt are sent as one text part separated by a blank line."""
    return {
        "contents": [
            {"parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}
        ],
        "generationConfig": dict(GENERATION_CONFIG),
    }


def extract_text(data: Dict[str, Any]) -> str:
    """Return the first text part of the first candidate."""
    candidates = data.get("candidates") or []
    if candidates:
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if parts and isinstance(parts[0].get("text"), str):
            return parts[0]["text"]
    
    reason = (data.get("promptFeedback") or {}).get("blockReason")
    message = "No response generated from Gemini API"
    if reason:
        message = f"{message} (blocked: {reason})"
    raise EmptyGenerationError(message, upstream_status=200)


def _parse_error(response: httpx.Response) -> Tuple[str, List[str]]:
    """
    Pull ``error.message`` and any ``error.details[].reason`` out of an
    error body. The message falls back to the reason phrase.
    """
    try:
        body = response.json()
    except ValueError:
        body = None
    
    message = response.reason_phrase or f"HTTP {response.status_code}"
    reasons: List[str] = []
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        if error.get("message"):
            message = error["message"]
        for detail in error.get("details") or []:
            if isinstance(detail, dict) and isinstance(detail.get("reason"), str):
                reasons.append(detail["reason"])
    return message, reasons


class GeminiClient:
    """
    Async client for the Gemini ``generateContent`` API.
    
    Usage:
        client = GeminiClient()
        text = await client.generate("gemini-2.0-flash-exp", system, prompt, api_key)
        await client.aclose()
    
    A shared ``httpx.AsyncClient`` may be passed in (tests use one with a
    ``MockTransport``); otherwise the client owns and closes its own.
    """
    
    def __init__(
        self,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        http_client: Optional[httpx.AsyncClient] = None,
        on_api_call: Optional[ApiCallReporter] = log_api_call,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.on_api_call = on_api_call
        self._sleep = sleep
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
    
    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        api_key: str,
    ) -> str:
        """
        Generate text, retrying transient failures.
        
        Raises:
            UpstreamError: The backend failed (after retries, if transient)
            EmptyGenerationError: The backend returned no candidate text
        """
        payload = build_payload(system_prompt, user_prompt)
        attempt = 0
        
        while True:
            attempt += 1
            try:
                return await self._attempt(model, payload, api_key, attempt)
            except UpstreamError as e:
                if not e.is_transient or attempt > self.max_retries:
                    raise
                logger.warning(
                    f"Gemini attempt {attempt} failed ({e.upstream_status}): {e.message}; "
                    f"retrying in {self.retry_delay}s"
                )
                await self._sleep(self.retry_delay)
    
    async def _attempt(
        self,
        model: str,
        payload: Dict[str, Any],
        api_key: str,
        attempt: int,
    ) -> str:
        url = f"{self.base_url}/models/{model}:generateContent"
        started = time.perf_counter()
        status_code: Optional[int] = None
        success = False
        
        try:
            try:
                response = await self._http.post(url, params={"key": api_key}, json=payload)
            except httpx.TimeoutException as e:
                raise UpstreamError(f"Gemini API timed out: {e}") from e
            except httpx.RequestError as e:
                raise UpstreamError(f"Could not reach Gemini API: {e}") from e
            
            status_code = response.status_code
            if not response.is_success:
                message, reasons = _parse_error(response)
                raise UpstreamError(
                    f"Gemini API error: {message}",
                    upstream_status=status_code,
                    reasons=reasons,
                )
            
            try:
                data = response.json()
            except ValueError as e:
                raise UpstreamError(
                    "Gemini API returned a non-JSON body",
                    upstream_status=status_code,
                ) from e
            
            text = extract_text(data)
            success = True
            return text
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            safe_report(
                self.on_api_call,
                ApiCallRecord(
                    provider=PROVIDER,
                    model=model,
                    duration_ms=duration_ms,
                    success=success,
                    attempt=attempt,
                    status_code=status_code,
                ),
            )
    
    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
