"""
Infrastructure layer for DEX Aggregator Client

Provides:
- Fetchers: httpx / requests transport backends
- Contract callers: web3 / signer chain-call backends for approvals
- Pending transaction handles and hash resolution
- EVMSigner: local transaction signing using web3.py
- Operation tracing with correlation IDs
"""

from .fetchers import (
    Fetcher,
    FetcherRequest,
    HttpxFetcher,
    RequestsFetcher,
    TransportKind,
    construct_fetcher,
)
from .contract_callers import (
    ChainBackendKind,
    ContractCaller,
    Web3ContractCaller,
    LegacySignerContractCaller,
    AsyncSignerContractCaller,
    construct_contract_caller,
)
from .tx_response import (
    TxEventEmitter,
    TxResponse,
    EventPendingTx,
    AwaitablePendingTx,
    PendingTransaction,
    extract_hash,
)
from .evm_signer import (
    EVMSigner,
    NonceManager,
    create_web3,
    create_evm_signer,
)
from .tracing import OperationContext, get_correlation_id

__all__ = [
    # Transport
    "Fetcher",
    "FetcherRequest",
    "HttpxFetcher",
    "RequestsFetcher",
    "TransportKind",
    "construct_fetcher",
    # Chain calls
    "ChainBackendKind",
    "ContractCaller",
    "Web3ContractCaller",
    "LegacySignerContractCaller",
    "AsyncSignerContractCaller",
    "construct_contract_caller",
    # Pending transactions
    "TxEventEmitter",
    "TxResponse",
    "EventPendingTx",
    "AwaitablePendingTx",
    "PendingTransaction",
    "extract_hash",
    # Signing
    "EVMSigner",
    "NonceManager",
    "create_web3",
    "create_evm_signer",
    # Tracing
    "OperationContext",
    "get_correlation_id",
]
