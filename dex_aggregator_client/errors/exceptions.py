"""
Exception definitions for DEX Aggregator Client
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """
    Unified error codes for client operations

    1xxx - Transport errors
    2xxx - Chain submission errors
    3xxx - Request validation errors
    6xxx - Signer errors
    9xxx - Configuration errors
    """
    # Transport errors
    TRANSPORT_HTTP_STATUS = "1001"
    TRANSPORT_NETWORK = "1002"
    TRANSPORT_ABORTED = "1003"

    # Chain submission errors
    TX_SEND_FAILED = "2002"

    # Request validation errors
    AMOUNT_MISMATCH = "3001"
    INVALID_ROUTE = "3002"
    INVALID_DEX_LIST = "3003"
    TOKEN_NOT_FOUND = "3004"
    INVALID_PRICE_ROUTE = "3005"

    # Signer errors
    SIGNER_NOT_CONFIGURED = "6001"
    SIGNER_FAILED = "6002"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class DexAggregatorError(Exception):
    """
    Base exception for all client errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        original_error: Optional[BaseException] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


@dataclass
class FetcherResponse:
    """Status and decoded body of a failed HTTP exchange"""
    status: int
    data: Any = None


class TransportError(DexAggregatorError):
    """
    HTTP transport errors

    Raised when:
    - The server answers with a non-2xx status (response is set)
    - The request never completes: connection, timeout (response is None)
    - The caller aborts the request
    """

    def __init__(
        self,
        message: str,
        response: Optional[FetcherResponse] = None,
        code: Optional[ErrorCode] = None,
        original_error: Optional[BaseException] = None,
        url: Optional[str] = None,
    ):
        if code is None:
            code = ErrorCode.TRANSPORT_HTTP_STATUS if response is not None else ErrorCode.TRANSPORT_NETWORK
        super().__init__(
            message,
            code,
            original_error=original_error,
            details={"url": url} if url else None,
        )
        self.response = response
        self.url = url

    @classmethod
    def http_status(cls, status: int, data: Any, url: Optional[str] = None) -> "TransportError":
        return cls(
            f"Request failed with status code {status}",
            response=FetcherResponse(status=status, data=data),
            url=url,
        )

    @classmethod
    def network(cls, error: BaseException, url: Optional[str] = None) -> "TransportError":
        return cls(str(error) or error.__class__.__name__, original_error=error, url=url)

    @classmethod
    def aborted(cls, url: Optional[str] = None) -> "TransportError":
        return cls("Request aborted", code=ErrorCode.TRANSPORT_ABORTED, url=url)


class AmountMismatchError(DexAggregatorError):
    """
    Build request amount disagrees with the quote it was built from
    """

    def __init__(self, message: str, expected: Any = None, actual: Any = None):
        super().__init__(
            message,
            ErrorCode.AMOUNT_MISMATCH,
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual

    @classmethod
    def source(cls, expected: Any, actual: Any) -> "AmountMismatchError":
        return cls("Source Amount Mismatch", expected=expected, actual=actual)

    @classmethod
    def destination(cls, expected: Any, actual: Any) -> "AmountMismatchError":
        return cls("Destination Amount Mismatch", expected=expected, actual=actual)


class InvalidRouteError(DexAggregatorError):
    """Explicit route with fewer than two hops"""

    def __init__(self, message: str = "Invalid Route", route: Optional[list] = None):
        super().__init__(message, ErrorCode.INVALID_ROUTE, details={"route": route})
        self.route = route


class InvalidDexListError(DexAggregatorError):
    """DEX include/exclude option that is not a list of names"""

    def __init__(self, message: str = "Invalid DEX list", option: Optional[str] = None):
        super().__init__(message, ErrorCode.INVALID_DEX_LIST, details={"option": option})
        self.option = option


class InvalidPriceRouteError(DexAggregatorError):
    """Quote handed to build_tx lacks a usable side"""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message, ErrorCode.INVALID_PRICE_ROUTE, details={"field": field_name})
        self.field_name = field_name

    @classmethod
    def missing_side(cls) -> "InvalidPriceRouteError":
        return cls("Invalid price route: missing side", field_name="side")

    @classmethod
    def invalid_side(cls, side: Any) -> "InvalidPriceRouteError":
        return cls(f"Invalid price route: unknown side {side!r}", field_name="side")


class TokenNotFoundError(DexAggregatorError):
    """Token missing from the balances returned for a user"""

    def __init__(self, message: str, token: Optional[str] = None):
        super().__init__(message, ErrorCode.TOKEN_NOT_FOUND, details={"token": token})
        self.token = token

    @classmethod
    def balance(cls, token: str, user_address: str) -> "TokenNotFoundError":
        return cls(f"No balance found for token {token} of {user_address}", token=token)


class ChainSubmissionError(DexAggregatorError):
    """
    On-chain submission errors

    Raised when:
    - The signer or node rejects the transaction
    - Broadcasting the signed transaction fails
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        payload: Any = None,
    ):
        super().__init__(
            message,
            ErrorCode.TX_SEND_FAILED,
            original_error=original_error,
            details={"payload": payload} if payload is not None else None,
        )
        self.payload = payload

    @classmethod
    def send_failed(cls, error: BaseException) -> "ChainSubmissionError":
        return cls(f"Failed to send transaction: {error}", original_error=error)

    @classmethod
    def from_payload(cls, payload: Any) -> "ChainSubmissionError":
        return cls(f"Transaction error: {payload}", payload=payload)


class SignerError(DexAggregatorError):
    """
    Signing-related errors

    Raised when:
    - No signer configured
    - Signing operation fails
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SIGNER_FAILED,
    ):
        super().__init__(message, code)

    @classmethod
    def not_configured(cls) -> "SignerError":
        return cls(
            "No signer configured. Provide a private key or keystore.",
            ErrorCode.SIGNER_NOT_CONFIGURED,
        )

    @classmethod
    def failed(cls, reason: str) -> "SignerError":
        return cls(f"Signing failed: {reason}", ErrorCode.SIGNER_FAILED)


class ConfigurationError(DexAggregatorError):
    """
    Configuration-related errors

    Never normalized: the client instance is unusable when raised.

    Raised when:
    - No transport backend was supplied
    - An operation needs a backend that was not configured
    - Backend objects have an unrecognized shape
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code)

    @classmethod
    def missing(cls, param: str, hint: Optional[str] = None) -> "ConfigurationError":
        message = f"Missing required configuration: {param}"
        if hint:
            message = f"{message}. {hint}"
        return cls(message, ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)
