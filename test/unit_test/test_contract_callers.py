"""
Chain-call Backend Unit Tests

Tests approval submission through each backend with mocked Web3 / AsyncWeb3
objects, and backend selection from the supplied providers.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from eth_account import Account

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dex_aggregator_client.errors import ChainSubmissionError, ConfigurationError
from dex_aggregator_client.infra.evm_signer import EVMSigner, NonceManager
from dex_aggregator_client.infra.contract_callers import (
    ERC20_APPROVE_ABI,
    AsyncSignerContractCaller,
    ChainBackendKind,
    LegacySignerContractCaller,
    Web3ContractCaller,
    construct_contract_caller,
    construct_signer_contract_caller,
)
from dex_aggregator_client.infra.tx_response import AwaitablePendingTx, EventPendingTx, extract_hash

ACCOUNT = "0x1111111111111111111111111111111111111111"
SPENDER = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
TX_HASH = bytes.fromhex("ab" * 32)

# Well-known test key - DO NOT use in production
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


def _built_tx():
    """What build_transaction returns for approve() on a legacy-gas chain"""
    return {
        "to": TOKEN,
        "data": "0x095ea7b3",
        "value": 0,
        "gas": 60000,
        "gasPrice": 1_000_000_000,
        "chainId": 1,
    }


def _mock_web3(function=None):
    """Web3 mock whose contract(...).functions.approve(...) returns ``function``"""
    web3 = MagicMock()
    function = function or MagicMock()
    web3.eth.contract.return_value.functions.approve.return_value = function
    return web3, function


# =============================================================================
# Backend selection
# =============================================================================

def test_construct_contract_caller_none():
    """No provider means no chain backend"""
    assert construct_contract_caller() is None


def test_construct_contract_caller_web3():
    web3, _ = _mock_web3()
    caller = construct_contract_caller(web3_provider=web3, account=ACCOUNT)

    assert isinstance(caller, Web3ContractCaller)
    assert caller.kind == ChainBackendKind.WEB3
    assert caller.account == ACCOUNT


def test_construct_signer_by_marker_key():
    """async_web3 selects the current signer backend, web3 the legacy one"""
    current = construct_signer_contract_caller({"async_web3": MagicMock(), "signer": None})
    legacy = construct_signer_contract_caller({"web3": MagicMock()})

    assert isinstance(current, AsyncSignerContractCaller)
    assert current.kind == ChainBackendKind.SIGNER_CURRENT
    assert isinstance(legacy, LegacySignerContractCaller)
    assert legacy.kind == ChainBackendKind.SIGNER_LEGACY


def test_construct_signer_without_marker_key():
    with pytest.raises(ConfigurationError):
        construct_signer_contract_caller({"signer": Mock()})


def test_signer_deps_take_precedence():
    web3, _ = _mock_web3()
    caller = construct_contract_caller(web3_provider=web3, signer_deps={"web3": web3})

    assert caller.kind == ChainBackendKind.SIGNER_LEGACY


# =============================================================================
# Web3ContractCaller
# =============================================================================

class TestWeb3ContractCaller:

    @pytest.mark.asyncio
    async def test_approve_emits_hash(self):
        web3, function = _mock_web3()
        function.transact.return_value = TX_HASH

        caller = Web3ContractCaller(web3, ACCOUNT)
        pending = caller.approve(TOKEN, SPENDER, "1000", {"gas": 60000, "from": "0xignored"})

        assert isinstance(pending, EventPendingTx)
        assert await extract_hash(pending) == "0x" + "ab" * 32

        web3.eth.contract.assert_called_once_with(address=TOKEN, abi=ERC20_APPROVE_ABI)
        web3.eth.contract.return_value.functions.approve.assert_called_once_with(SPENDER, 1000)
        function.transact.assert_called_once_with({"gas": 60000, "from": ACCOUNT})

    @pytest.mark.asyncio
    async def test_approve_emits_error(self):
        web3, function = _mock_web3()
        function.transact.side_effect = ValueError("User denied transaction signature")

        caller = Web3ContractCaller(web3, ACCOUNT)
        pending = caller.approve(TOKEN, SPENDER, "1000")

        with pytest.raises(ChainSubmissionError) as exc_info:
            await extract_hash(pending)
        assert exc_info.value.message == "Failed to send transaction: User denied transaction signature"


# =============================================================================
# LegacySignerContractCaller
# =============================================================================

class TestLegacySignerContractCaller:

    @pytest.mark.asyncio
    async def test_node_account_transact(self):
        web3, function = _mock_web3()
        function.transact.return_value = TX_HASH

        caller = LegacySignerContractCaller(web3, account=ACCOUNT)
        pending = caller.approve(TOKEN, SPENDER, "5")

        assert isinstance(pending, AwaitablePendingTx)
        assert await extract_hash(pending) == "0x" + "ab" * 32
        function.transact.assert_called_once_with({"from": ACCOUNT})

    @pytest.mark.asyncio
    async def test_local_signer(self):
        web3, function = _mock_web3()
        function.build_transaction.return_value = _built_tx()
        web3.eth.get_transaction_count.return_value = 3
        web3.eth.send_raw_transaction.return_value = bytes.fromhex("de" * 32)
        signer = EVMSigner(Account.from_key(TEST_PRIVATE_KEY), nonce_manager=NonceManager())

        caller = LegacySignerContractCaller(web3, signer=signer)
        response = await caller.approve(TOKEN, SPENDER, "5").response

        assert response.hash == "0x" + "de" * 32
        assert response.nonce == 3
        assert response.from_address == signer.address
        function.build_transaction.assert_called_once_with({"from": signer.address})
        web3.eth.send_raw_transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_local_signer_failure_releases_nonce(self):
        web3, function = _mock_web3()
        function.build_transaction.return_value = _built_tx()
        web3.eth.get_transaction_count.return_value = 3
        web3.eth.send_raw_transaction.side_effect = ValueError("insufficient funds for gas * price + value")
        nonces = NonceManager()
        signer = EVMSigner(Account.from_key(TEST_PRIVATE_KEY), nonce_manager=nonces)

        caller = LegacySignerContractCaller(web3, signer=signer)

        with pytest.raises(ChainSubmissionError) as exc_info:
            await extract_hash(caller.approve(TOKEN, SPENDER, "5"))
        assert "insufficient funds" in exc_info.value.message
        assert nonces.in_flight(signer.address) == set()
        assert nonces.reserve(web3, signer.address) == 3


# =============================================================================
# AsyncSignerContractCaller
# =============================================================================

class TestAsyncSignerContractCaller:

    @pytest.mark.asyncio
    async def test_node_account_transact(self):
        function = MagicMock()
        function.transact = AsyncMock(return_value=TX_HASH)
        async_web3, _ = _mock_web3(function)

        caller = AsyncSignerContractCaller(async_web3, account=ACCOUNT)
        assert await extract_hash(caller.approve(TOKEN, SPENDER, "7")) == "0x" + "ab" * 32
        function.transact.assert_awaited_once_with({"from": ACCOUNT})

    @pytest.mark.asyncio
    async def test_local_signer_assigns_pending_nonce(self):
        function = MagicMock()
        function.build_transaction = AsyncMock(return_value={"to": TOKEN, "data": "0x095ea7b3"})
        async_web3, _ = _mock_web3(function)
        async_web3.eth.get_transaction_count = AsyncMock(return_value=7)
        async_web3.eth.send_raw_transaction = AsyncMock(return_value=bytes.fromhex("cd" * 32))

        signer = Mock()
        signer.address = ACCOUNT
        signer.sign_transaction.return_value = (b"raw", "0x" + "cd" * 32)

        caller = AsyncSignerContractCaller(async_web3, signer=signer)
        response = await caller.approve(TOKEN, SPENDER, "7").response

        assert response.hash == "0x" + "cd" * 32
        assert response.nonce == 7
        async_web3.eth.get_transaction_count.assert_awaited_once_with(ACCOUNT, "pending")
        signer.sign_transaction.assert_called_once_with({"to": TOKEN, "data": "0x095ea7b3", "nonce": 7})
        async_web3.eth.send_raw_transaction.assert_awaited_once_with(b"raw")

    @pytest.mark.asyncio
    async def test_broadcast_failure(self):
        function = MagicMock()
        function.build_transaction = AsyncMock(return_value={"to": TOKEN, "nonce": 1})
        async_web3, _ = _mock_web3(function)
        async_web3.eth.send_raw_transaction = AsyncMock(side_effect=ValueError("nonce too low"))

        signer = Mock()
        signer.address = ACCOUNT
        signer.sign_transaction.return_value = (b"raw", "0x00")

        caller = AsyncSignerContractCaller(async_web3, signer=signer)

        with pytest.raises(ChainSubmissionError) as exc_info:
            await extract_hash(caller.approve(TOKEN, SPENDER, "7"))
        assert exc_info.value.message == "Failed to send transaction: nonce too low"
