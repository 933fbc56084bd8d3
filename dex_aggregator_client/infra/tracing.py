"""
Operation tracing

Every public client operation runs inside an OperationContext. The
context stores a correlation id in a ContextVar, so transport and chain
log lines emitted while the operation runs (in any task it awaits) can be
tied back to it.
"""

import contextvars
import logging
import uuid
from typing import Optional

logger = logging.getLogger(__name__)

# Task-local under asyncio; copied into asyncio.to_thread workers
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation id; returns the token for reset"""
    return _correlation_id.set(correlation_id)


class OperationContext:
    """
    Scope a correlation id to one client operation.

    Usage:
        with OperationContext("get_rate") as cid:
            logger.info(f"[{cid}] Fetching rate")
    """

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        self.correlation_id = f"{operation_name}_{generate_correlation_id()}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)
            self._token = None


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the current correlation id ("-" outside operations)"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id() or "-"
        return True


def log_with_correlation(
    level: int,
    message: str,
    operation_name: Optional[str] = None,
    **extra
):
    """
    Log ``message`` prefixed with the correlation id and operation name.

    Keyword arguments end up as attributes on the log record.
    """
    cid = get_correlation_id()
    prefix = "".join(f"[{part}]" for part in (cid, operation_name) if part)

    logger.log(
        level,
        f"{prefix} {message}" if prefix else message,
        extra={"correlation_id": cid, "operation": operation_name, **extra},
    )
