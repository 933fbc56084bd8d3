"""
Type definitions for DEX Aggregator Client
"""

from .common import (
    Address,
    AddressOrSymbol,
    PriceString,
    OptimalRate,
    SwapSide,
    TransactionParams,
    TxSendOverrides,
    Token,
    Allowance,
)
from .result import APIError, is_api_error

__all__ = [
    "Address",
    "AddressOrSymbol",
    "PriceString",
    "OptimalRate",
    "SwapSide",
    "TransactionParams",
    "TxSendOverrides",
    "Token",
    "Allowance",
    "APIError",
    "is_api_error",
]
