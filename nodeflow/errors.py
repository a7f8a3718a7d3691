"""
Error taxonomy for workflow execution.

Every failure that crosses the service boundary is one of these, and
each carries the HTTP status it is answered with.
"""

from typing import Any, Optional, Sequence


class WorkflowError(Exception):
    """Base class for errors converted into ``{success: false, ...}`` responses."""
    
    status_code: int = 500
    
    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(WorkflowError):
    """Malformed or incomplete request. Never retried."""
    status_code = 400


class AuthError(WorkflowError):
    """Missing or rejected API key. Never retried."""
    status_code = 401


class UpstreamError(WorkflowError):
    """
    The generation backend failed.
    
    ``upstream_status`` is the HTTP status the backend answered with, or
    None when no response was received at all. ``reasons`` holds the
    machine-readable error reasons from the body (e.g. ``API_KEY_INVALID``).
    """
    status_code = 502
    
    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        details: Optional[Any] = None,
        reasons: Sequence[str] = (),
    ):
        super().__init__(message, details)
        self.upstream_status = upstream_status
        self.reasons = tuple(reasons)
    
    @property
    def is_auth_failure(self) -> bool:
        """The backend rejected the credential rather than the request."""
        if self.upstream_status in (401, 403):
            return True
        return "API_KEY_INVALID" in self.reasons
    
    @property
    def is_transient(self) -> bool:
        """Rate-limited, server faults and transport failures may succeed on retry."""
        if self.upstream_status is None:
            return True
        return self.upstream_status == 429 or self.upstream_status >= 500


class EmptyGenerationError(UpstreamError):
    """The backend answered successfully but produced no candidate text."""
    
    @property
    def is_transient(self) -> bool:
        return False


class InternalError(WorkflowError):
    """Unexpected fault."""
    status_code = 500
