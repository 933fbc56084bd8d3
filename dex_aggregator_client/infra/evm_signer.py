"""
EVM Transaction Signer using web3.py

Local private-key signing for the signer-style chain backends. Nonces for
transactions broadcast through a sync Web3 are reserved from a process-wide
NonceManager, so approvals running in parallel worker threads never reuse
one.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set, Tuple

from web3 import Web3, HTTPProvider
from web3.middleware import ExtraDataToPOAMiddleware
from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..config import config as global_config
from ..errors import ChainSubmissionError, ConfigurationError, SignerError
from .tx_response import TxResponse

logger = logging.getLogger(__name__)

# BSC mainnet/testnet blocks carry PoA extra data
POA_CHAIN_IDS = (56, 97)

# Node errors raised before the transaction entered the mempool; its nonce is free again
PRE_BROADCAST_ERRORS = (
    "nonce too low",
    "replacement transaction",
    "insufficient funds",
    "gas too low",
    "intrinsic gas",
    "invalid sender",
)


@dataclass
class _NonceState:
    next_nonce: int
    in_flight: Set[int] = field(default_factory=set)


class NonceManager:
    """
    Thread-safe nonce reservations per sender address.

    Usage:
        nonce = nonces.reserve(web3, address)
        try:
            ...broadcast...
            nonces.commit(address, nonce)
        except Exception:
            nonces.release(address, nonce)
            raise
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._states: Dict[str, _NonceState] = {}

    def reserve(self, web3: Web3, address: str) -> int:
        """
        Next nonce for ``address``: the pending count on chain, or the
        next locally reserved one if that is higher.
        """
        key = address.lower()
        with self._lock:
            on_chain = web3.eth.get_transaction_count(Web3.to_checksum_address(address), "pending")
            state = self._states.setdefault(key, _NonceState(next_nonce=on_chain))
            nonce = max(on_chain, state.next_nonce)
            state.next_nonce = nonce + 1
            state.in_flight.add(nonce)
            logger.debug(f"Reserved nonce {nonce} for {key[:10]}... (chain={on_chain})")
            return nonce

    def commit(self, address: str, nonce: int) -> None:
        """The transaction with ``nonce`` was broadcast"""
        with self._lock:
            state = self._states.get(address.lower())
            if state is not None:
                state.in_flight.discard(nonce)

    def release(self, address: str, nonce: int) -> None:
        """
        The transaction with ``nonce`` never reached the node.

        Only the most recent reservation can be handed out again; releasing
        an older one leaves a gap that the chain count fills on the next
        reserve().
        """
        with self._lock:
            state = self._states.get(address.lower())
            if state is None:
                return
            state.in_flight.discard(nonce)
            if state.next_nonce == nonce + 1:
                state.next_nonce = nonce
                logger.debug(f"Released nonce {nonce} for {address[:10]}...")

    def in_flight(self, address: str) -> Set[int]:
        with self._lock:
            state = self._states.get(address.lower())
            return set(state.in_flight) if state else set()

    def reset(self, address: Optional[str] = None) -> None:
        """Forget reservations (for one address, or all) and re-sync from chain"""
        with self._lock:
            if address is None:
                self._states.clear()
            else:
                self._states.pop(address.lower(), None)


# Shared by every signer created without its own manager
_nonce_manager = NonceManager()


class EVMSigner:
    """
    Local EVM signer

    Usage:
        signer = EVMSigner.from_private_key("0x...")
        client.set_signer_provider({"web3": web3, "signer": signer})
    """

    def __init__(self, account: LocalAccount, nonce_manager: Optional[NonceManager] = None):
        self._account = account
        self._nonces = nonce_manager or _nonce_manager

    @property
    def address(self) -> str:
        """Checksummed sender address"""
        return self._account.address

    def sign_transaction(self, tx_dict: Dict[str, Any]) -> Tuple[bytes, str]:
        """
        Sign a fully populated transaction

        Returns:
            (raw_tx_bytes, 0x-prefixed tx hash)

        Raises:
            SignerError: If the transaction dict cannot be signed
        """
        try:
            signed = self._account.sign_transaction(tx_dict)
        except (TypeError, ValueError) as e:
            raise SignerError.failed(str(e)) from e
        return signed.raw_transaction, Web3.to_hex(signed.hash)

    def send_transaction(self, web3: Web3, tx_dict: Dict[str, Any]) -> TxResponse:
        """
        Sign and broadcast through a sync Web3, reserving a nonce when the
        transaction has none.

        Raises:
            ChainSubmissionError: If signing or broadcasting fails
        """
        tx = dict(tx_dict)
        reserved = "nonce" not in tx
        if reserved:
            tx["nonce"] = self._nonces.reserve(web3, self.address)
        nonce = tx["nonce"]

        try:
            tx.setdefault("chainId", web3.eth.chain_id)
            raw_tx, _ = self.sign_transaction(tx)
            tx_hash = web3.eth.send_raw_transaction(raw_tx)
        except Exception as e:
            if reserved and (
                isinstance(e, SignerError)
                or any(marker in str(e).lower() for marker in PRE_BROADCAST_ERRORS)
            ):
                self._nonces.release(self.address, nonce)
            logger.error(f"Broadcast from {self.address} with nonce {nonce} failed: {e}")
            raise ChainSubmissionError.send_failed(e) from e

        if reserved:
            self._nonces.commit(self.address, nonce)

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Broadcast {tx_hash_hex} from {self.address} nonce={nonce}")
        return TxResponse(hash=tx_hash_hex, from_address=self.address, nonce=nonce)

    @classmethod
    def from_private_key(cls, private_key: str) -> "EVMSigner":
        """Create from a hex private key, with or without 0x prefix"""
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        return cls(Account.from_key(private_key))

    @classmethod
    def from_env(cls, env_var: Optional[str] = None) -> "EVMSigner":
        """
        Create from the private key held in ``env_var``
        (EVM_PRIVATE_KEY unless EVM_PRIVATE_KEY_ENV names another variable)

        Raises:
            SignerError: If the variable is not set
        """
        private_key = os.getenv(env_var or global_config.evm.private_key_env, "")
        if not private_key:
            raise SignerError.not_configured()
        return cls.from_private_key(private_key)

    @classmethod
    def from_keystore(cls, keystore_path: str, password: str) -> "EVMSigner":
        """Create from an encrypted JSON keystore file"""
        with open(keystore_path, "r") as f:
            private_key = Account.decrypt(f.read(), password)
        return cls(Account.from_key(private_key))

    def __repr__(self) -> str:
        return f"EVMSigner(address={self.address})"


def create_web3(
    rpc_url: Optional[str] = None,
    chain_id: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Web3:
    """
    Sync Web3 over HTTP for the web3 and legacy signer backends

    Args:
        rpc_url: Node URL (defaults to EVM_RPC_URL)
        chain_id: Known chain id; queried from the node when None
        timeout: Request timeout in seconds (defaults to EVM_RPC_TIMEOUT)

    Raises:
        ConfigurationError: If no URL is passed or configured
    """
    rpc_url = rpc_url or global_config.evm.rpc_url
    if not rpc_url:
        raise ConfigurationError.missing("rpc_url", "pass rpc_url or set EVM_RPC_URL")

    web3 = Web3(HTTPProvider(
        rpc_url,
        request_kwargs={"timeout": timeout or global_config.evm.rpc_timeout},
    ))

    if chain_id is None:
        chain_id = web3.eth.chain_id

    if chain_id in POA_CHAIN_IDS:
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    logger.debug(f"Web3 ready: chain={chain_id} url={rpc_url}")
    return web3


def create_evm_signer(
    private_key: Optional[str] = None,
    keystore_path: Optional[str] = None,
    keystore_password: Optional[str] = None,
) -> EVMSigner:
    """
    Create a signer from the first available source:
    private_key, then keystore_path + keystore_password, then the environment.

    Raises:
        SignerError: If none is available
    """
    if private_key is not None:
        return EVMSigner.from_private_key(private_key)

    if keystore_path is not None and keystore_password is not None:
        return EVMSigner.from_keystore(keystore_path, keystore_password)

    return EVMSigner.from_env()
