"""
Telemetry for calls to external generation APIs.

One record is emitted per HTTP attempt, successful or not.
"""

from dataclasses import asdict, dataclass
from typing import Callable, Optional
import logging


logger = logging.getLogger(__name__)


@dataclass
class ApiCallRecord:
    """Outcome of a single upstream attempt."""
    provider: str
    model: str
    duration_ms: float
    success: bool
    attempt: int = 1
    status_code: Optional[int] = None


ApiCallReporter = Callable[[ApiCallRecord], None]


def log_api_call(record: ApiCallRecord) -> None:
    """Default reporter: write the record to the log."""
    logger.info(
        f"External API call: provider={record.provider} model={record.model} "
        f"duration={record.duration_ms:.1f}ms success={record.success} "
        f"status={record.status_code} attempt={record.attempt}",
        extra={"api_call": asdict(record)},
    )


def safe_report(reporter: Optional[ApiCallReporter], record: ApiCallRecord) -> None:
    """Invoke a reporter without letting its failures reach the caller."""
    if reporter is None:
        return
    try:
        reporter(record)
    except Exception as e:
        logger.warning(f"Telemetry reporter failed: {e}")
