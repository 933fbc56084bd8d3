"""
Error definitions for DEX Aggregator Client
"""

from .exceptions import (
    ErrorCode,
    DexAggregatorError,
    FetcherResponse,
    TransportError,
    AmountMismatchError,
    InvalidRouteError,
    InvalidDexListError,
    InvalidPriceRouteError,
    TokenNotFoundError,
    ChainSubmissionError,
    SignerError,
    ConfigurationError,
)
from .normalizer import handle_api_error

__all__ = [
    "ErrorCode",
    "DexAggregatorError",
    "FetcherResponse",
    "TransportError",
    "AmountMismatchError",
    "InvalidRouteError",
    "InvalidDexListError",
    "InvalidPriceRouteError",
    "TokenNotFoundError",
    "ChainSubmissionError",
    "SignerError",
    "ConfigurationError",
    "handle_api_error",
]
