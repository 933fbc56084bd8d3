"""
Conversion of raised errors into the APIError value returned by the client
"""

from collections.abc import Mapping
from typing import Any

from ..types.result import APIError
from .exceptions import ConfigurationError, DexAggregatorError, TransportError


def _is_data_with_error(data: Any) -> bool:
    return isinstance(data, Mapping) and isinstance(data.get("error"), str)


def handle_api_error(error: BaseException) -> APIError:
    """
    Normalize any raised error into an APIError.

    Server-supplied ``error`` fields take precedence over the transport
    message. Errors outside the client taxonomy keep their text behind an
    ``Unknown error:`` prefix.

    Raises:
        ConfigurationError: passed through unchanged
    """
    if isinstance(error, ConfigurationError):
        raise error

    if isinstance(error, TransportError):
        if error.response is None:
            return APIError(message=error.message)

        status = error.response.status
        data = error.response.data
        return APIError(
            message=data["error"] if _is_data_with_error(data) else error.message,
            status=status,
            data=data,
        )

    if isinstance(error, DexAggregatorError):
        return APIError(message=error.message)

    return APIError(message=f"Unknown error: {error}")
