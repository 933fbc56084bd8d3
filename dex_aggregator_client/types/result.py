"""
Result type definitions for client operations
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class APIError:
    """
    Normalized error returned by every public client operation

    Attributes:
        message: Human-readable message, the server's ``error`` field when present
        status: HTTP status of the failed response, if any
        data: Decoded response body, if any
    """
    message: str
    status: Optional[int] = None
    data: Any = None

    def __str__(self) -> str:
        if self.status is not None:
            return f"APIError({self.status}, {self.message})"
        return f"APIError({self.message})"


def is_api_error(value: Any) -> bool:
    """Check whether a client result is an APIError"""
    return isinstance(value, APIError)
