"""
Chain-call backends for token approvals

Three mutually exclusive backends submit ERC20 approve transactions:

- Web3ContractCaller: sync Web3 with a node-managed account. Reports
  progress through events (EventPendingTx).
- LegacySignerContractCaller: signer deps carrying a sync ``web3``,
  optionally signing locally with an EVMSigner. Returns AwaitablePendingTx.
- AsyncSignerContractCaller: signer deps carrying an ``async_web3``
  (AsyncWeb3), optionally signing locally. Returns AwaitablePendingTx.

construct_contract_caller() chooses one of them once; nothing branches on
the backend afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from web3 import AsyncWeb3, Web3

from ..errors import ChainSubmissionError, ConfigurationError
from ..types import Address, PriceString, TxSendOverrides
from .evm_signer import EVMSigner
from .tx_response import (
    AwaitablePendingTx,
    EventPendingTx,
    PendingTransaction,
    TxEventEmitter,
    TxResponse,
    ERROR_EVENT,
    TRANSACTION_HASH_EVENT,
)

logger = logging.getLogger(__name__)

ERC20_APPROVE_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "_spender", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    }
]

# Marker keys that tell the two signer deps shapes apart
SIGNER_DEPS_CURRENT_KEY = "async_web3"
SIGNER_DEPS_LEGACY_KEY = "web3"


class ChainBackendKind(Enum):
    """Supported chain-call backends"""
    WEB3 = "web3"
    SIGNER_LEGACY = "signer_legacy"
    SIGNER_CURRENT = "signer_current"


def _tx_params(from_address: Optional[str], overrides: Optional[TxSendOverrides]) -> Dict[str, Any]:
    params: Dict[str, Any] = dict(overrides or {})
    params.pop("from", None)
    if from_address:
        params["from"] = Web3.to_checksum_address(from_address)
    return params


class ContractCaller:
    """Base class for chain-call backends"""

    kind: ChainBackendKind

    def __init__(self, account: Optional[Address] = None):
        self._account = account

    @property
    def account(self) -> Optional[Address]:
        return self._account

    def approve(
        self,
        token_address: Address,
        spender: Address,
        amount: PriceString,
        overrides: Optional[TxSendOverrides] = None,
    ) -> PendingTransaction:
        """
        Submit an ERC20 approve(spender, amount) transaction

        Must be called from a running event loop: submission starts
        immediately and the returned handle tracks it.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(account={self._account})"


class Web3ContractCaller(ContractCaller):
    """Approvals through a sync Web3 provider and a node-managed account"""

    kind = ChainBackendKind.WEB3

    def __init__(self, web3: Web3, account: Optional[Address] = None):
        super().__init__(account)
        self._web3 = web3

    @property
    def web3(self) -> Web3:
        return self._web3

    def _transact(self, token_address: Address, spender: Address, amount: PriceString, params: Dict[str, Any]):
        contract = self._web3.eth.contract(
            address=Web3.to_checksum_address(token_address),
            abi=ERC20_APPROVE_ABI,
        )
        return contract.functions.approve(
            Web3.to_checksum_address(spender), int(amount)
        ).transact(params)

    async def _submit(self, emitter: TxEventEmitter, token_address, spender, amount, params) -> None:
        try:
            tx_hash = await asyncio.to_thread(self._transact, token_address, spender, amount, params)
        except Exception as e:
            logger.error(f"Approve {token_address} failed: {e}")
            emitter.emit(ERROR_EVENT, ChainSubmissionError.send_failed(e))
            return

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Approve {token_address} submitted: {tx_hash_hex}")
        emitter.emit(TRANSACTION_HASH_EVENT, tx_hash_hex)

    def approve(self, token_address, spender, amount, overrides=None) -> EventPendingTx:
        emitter = TxEventEmitter()
        params = _tx_params(self._account, overrides)
        emitter.task = asyncio.get_running_loop().create_task(
            self._submit(emitter, token_address, spender, amount, params)
        )
        return EventPendingTx(emitter)


class LegacySignerContractCaller(ContractCaller):
    """
    Approvals through a sync Web3 instance

    With an EVMSigner the transaction is built, signed locally and
    broadcast with nonce tracking; without one the node signs for
    ``account``.
    """

    kind = ChainBackendKind.SIGNER_LEGACY

    def __init__(self, web3: Web3, signer: Optional[EVMSigner] = None, account: Optional[Address] = None):
        super().__init__(account)
        self._web3 = web3
        self._signer = signer

    @property
    def from_address(self) -> Optional[Address]:
        return self._signer.address if self._signer is not None else self._account

    def _send(self, token_address, spender, amount, overrides) -> TxResponse:
        params = _tx_params(self.from_address, overrides)
        contract = self._web3.eth.contract(
            address=Web3.to_checksum_address(token_address),
            abi=ERC20_APPROVE_ABI,
        )
        function = contract.functions.approve(Web3.to_checksum_address(spender), int(amount))

        try:
            if self._signer is None:
                tx_hash = function.transact(params)
                return TxResponse(hash=Web3.to_hex(tx_hash), from_address=self.from_address)

            tx_dict = function.build_transaction(params)
        except Exception as e:
            logger.error(f"Approve {token_address} failed: {e}")
            raise ChainSubmissionError.send_failed(e) from e

        return self._signer.send_transaction(self._web3, tx_dict)

    def approve(self, token_address, spender, amount, overrides=None) -> AwaitablePendingTx:
        task = asyncio.get_running_loop().create_task(
            asyncio.to_thread(self._send, token_address, spender, amount, overrides)
        )
        return AwaitablePendingTx(task)


class AsyncSignerContractCaller(ContractCaller):
    """
    Approvals through AsyncWeb3

    Local signing fetches the pending nonce and broadcasts under one lock,
    so concurrent approvals from this caller get consecutive nonces.
    """

    kind = ChainBackendKind.SIGNER_CURRENT

    def __init__(self, async_web3: AsyncWeb3, signer: Optional[EVMSigner] = None, account: Optional[Address] = None):
        super().__init__(account)
        self._web3 = async_web3
        self._signer = signer
        self._nonce_lock = asyncio.Lock()

    @property
    def from_address(self) -> Optional[Address]:
        return self._signer.address if self._signer is not None else self._account

    async def _send(self, token_address, spender, amount, overrides) -> TxResponse:
        params = _tx_params(self.from_address, overrides)
        contract = self._web3.eth.contract(
            address=Web3.to_checksum_address(token_address),
            abi=ERC20_APPROVE_ABI,
        )
        function = contract.functions.approve(Web3.to_checksum_address(spender), int(amount))

        try:
            if self._signer is None:
                tx_hash = await function.transact(params)
                return TxResponse(hash=Web3.to_hex(tx_hash), from_address=self.from_address)

            tx_dict = await function.build_transaction(params)
            async with self._nonce_lock:
                if "nonce" not in tx_dict:
                    tx_dict["nonce"] = await self._web3.eth.get_transaction_count(
                        self._signer.address, "pending"
                    )
                raw_tx, _ = self._signer.sign_transaction(tx_dict)
                tx_hash = await self._web3.eth.send_raw_transaction(raw_tx)
        except Exception as e:
            logger.error(f"Approve {token_address} failed: {e}")
            raise ChainSubmissionError.send_failed(e) from e

        return TxResponse(
            hash=Web3.to_hex(tx_hash),
            from_address=self.from_address,
            nonce=tx_dict["nonce"],
        )

    def approve(self, token_address, spender, amount, overrides=None) -> AwaitablePendingTx:
        task = asyncio.get_running_loop().create_task(
            self._send(token_address, spender, amount, overrides)
        )
        return AwaitablePendingTx(task)


def construct_signer_contract_caller(
    signer_deps: Mapping[str, Any],
    account: Optional[Address] = None,
) -> ContractCaller:
    """
    Choose the signer backend by the marker key present in ``signer_deps``

    Raises:
        ConfigurationError: If neither marker key is present
    """
    signer = signer_deps.get("signer")
    if SIGNER_DEPS_CURRENT_KEY in signer_deps:
        return AsyncSignerContractCaller(signer_deps[SIGNER_DEPS_CURRENT_KEY], signer=signer, account=account)
    if SIGNER_DEPS_LEGACY_KEY in signer_deps:
        return LegacySignerContractCaller(signer_deps[SIGNER_DEPS_LEGACY_KEY], signer=signer, account=account)
    raise ConfigurationError.invalid(
        "signer_deps",
        f"expected a '{SIGNER_DEPS_CURRENT_KEY}' or '{SIGNER_DEPS_LEGACY_KEY}' entry",
    )


def construct_contract_caller(
    web3_provider: Optional[Web3] = None,
    signer_deps: Optional[Mapping[str, Any]] = None,
    account: Optional[Address] = None,
) -> Optional[ContractCaller]:
    """
    Resolve the chain-call backend, or None when no provider was supplied

    Signer deps take precedence over a web3 provider.
    """
    if signer_deps is not None:
        return construct_signer_contract_caller(signer_deps, account)
    if web3_provider is not None:
        return Web3ContractCaller(web3_provider, account)
    return None
