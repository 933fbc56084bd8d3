"""
DEX Aggregator Client - Unified interface for a swap aggregator API

Provides:
- Quotes: optimal rate for a token pair or an explicit route
- Transaction building for a quoted route
- Token list, adapters, spender, balances and allowances
- ERC20 approvals through a web3 provider or a local signer

Transport backends: httpx.AsyncClient or requests.Session
Chain-call backends: Web3 (node account), Web3 + EVMSigner, AsyncWeb3 + EVMSigner
"""

from .client import SwapClient
from .sdk import CapabilitySet, compose_capabilities, rebuild_chain_capabilities
from .types import (
    APIError,
    is_api_error,
    Allowance,
    SwapSide,
    Token,
    TransactionParams,
    TxSendOverrides,
)
from .errors import (
    DexAggregatorError,
    TransportError,
    AmountMismatchError,
    InvalidRouteError,
    InvalidDexListError,
    InvalidPriceRouteError,
    TokenNotFoundError,
    ChainSubmissionError,
    SignerError,
    ConfigurationError,
    ErrorCode,
    handle_api_error,
)
from .modules import BuildOptions, BuildTxInput, RateOptions

# Chain-call infrastructure
from .infra.evm_signer import EVMSigner, create_web3, create_evm_signer
from .infra.tx_response import extract_hash

__all__ = [
    # Client
    "SwapClient",
    "CapabilitySet",
    "compose_capabilities",
    "rebuild_chain_capabilities",
    # Types
    "APIError",
    "is_api_error",
    "Allowance",
    "SwapSide",
    "Token",
    "TransactionParams",
    "TxSendOverrides",
    "RateOptions",
    "BuildOptions",
    "BuildTxInput",
    # Errors
    "DexAggregatorError",
    "TransportError",
    "AmountMismatchError",
    "InvalidRouteError",
    "InvalidDexListError",
    "InvalidPriceRouteError",
    "TokenNotFoundError",
    "ChainSubmissionError",
    "SignerError",
    "ConfigurationError",
    "ErrorCode",
    "handle_api_error",
    # Chain-call infrastructure
    "EVMSigner",
    "create_web3",
    "create_evm_signer",
    "extract_hash",
]

__version__ = "1.0.0"
