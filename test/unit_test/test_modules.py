"""
API Module Unit Tests

Tests rates, transaction building, catalog, balances and approvals against
an httpx.MockTransport. Checks request shapes and the validations that
must happen before any request is sent.
"""

import sys
import json
from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dex_aggregator_client.errors import (
    AmountMismatchError,
    ErrorCode,
    InvalidDexListError,
    InvalidPriceRouteError,
    InvalidRouteError,
    TokenNotFoundError,
)
from dex_aggregator_client.infra.fetchers import HttpxFetcher
from dex_aggregator_client.infra.tx_response import AwaitablePendingTx, TxResponse
from dex_aggregator_client.modules import (
    ApproveModule,
    BalancesModule,
    BuildOptions,
    BuildTxInput,
    CatalogModule,
    FetchContext,
    RateOptions,
    RatesModule,
    TransactionModule,
    construct_search_string,
)
from dex_aggregator_client.types import SwapSide, Token

API_URL = "https://api.example.com"
USER = "0x1111111111111111111111111111111111111111"
SPENDER = "0x2222222222222222222222222222222222222222"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"


class Recorder:
    """MockTransport handler that records requests and replies per path"""

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.routes[request.url.path]
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, json=body)


def _context(recorder: Recorder, chain_id: int = 1) -> FetchContext:
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return FetchContext(
        fetcher=HttpxFetcher(client, owns_client=True),
        api_url=API_URL,
        chain_id=chain_id,
        version="5",
    )


def _price_route(side: str = "SELL") -> Dict[str, Any]:
    return {
        "side": side,
        "srcToken": USDC,
        "destToken": DAI,
        "srcAmount": "1000000",
        "destAmount": "999500000000000000",
        "bestRoute": [],
    }


# =============================================================================
# construct_search_string
# =============================================================================

def test_construct_search_string():
    print("Testing construct_search_string...")

    assert construct_search_string({}) == ""
    assert construct_search_string({"a": None}) == ""
    assert construct_search_string({"side": SwapSide.BUY, "simple": True}) == "?side=BUY&simple=true"
    assert construct_search_string({"tokens": ["0xa", "0xb"]}) == "?tokens=0xa,0xb"

    print("  construct_search_string: PASSED")


def test_rate_options_dex_lists():
    """DEX lists must be lists of names"""
    query = RateOptions(include_dexs=["UniswapV2", "Curve"], partner="me").to_query()
    assert query["includeDEXS"] == ["UniswapV2", "Curve"]
    assert query["partner"] == "me"

    with pytest.raises(InvalidDexListError):
        RateOptions(include_dexs="UniswapV2").to_query()
    with pytest.raises(InvalidDexListError):
        RateOptions(exclude_dexs=["UniswapV2", 3]).to_query()


# =============================================================================
# RatesModule
# =============================================================================

class TestRatesModule:

    @pytest.mark.asyncio
    async def test_get_rate(self):
        recorder = Recorder({"/prices": {"priceRoute": _price_route()}})
        rates = RatesModule(_context(recorder))

        route = await rates.get_rate(
            USDC, DAI, "1000000",
            user_address=USER,
            options=RateOptions(exclude_dexs=["Balancer"]),
            src_decimals=6,
        )

        assert route == _price_route()
        params = recorder.requests[0].url.params
        assert recorder.requests[0].method == "GET"
        assert params["srcToken"] == USDC
        assert params["destToken"] == DAI
        assert params["amount"] == "1000000"
        assert params["side"] == "SELL"
        assert params["network"] == "1"
        assert params["version"] == "5"
        assert params["userAddress"] == USER
        assert params["srcDecimals"] == "6"
        assert params["excludeDEXS"] == "Balancer"
        assert "destDecimals" not in params

    @pytest.mark.asyncio
    async def test_get_rate_by_route(self):
        recorder = Recorder({"/prices": {"priceRoute": _price_route("BUY")}})
        rates = RatesModule(_context(recorder))

        await rates.get_rate_by_route(["ETH", "USDC", "DAI"], "5", side=SwapSide.BUY)

        params = recorder.requests[0].url.params
        assert params["route"] == "ETH-USDC-DAI"
        assert params["srcToken"] == "ETH"
        assert params["destToken"] == "DAI"
        assert params["side"] == "BUY"

    @pytest.mark.asyncio
    async def test_get_rate_by_route_too_short(self):
        """A one-hop route fails before any request"""
        recorder = Recorder({})
        rates = RatesModule(_context(recorder))

        with pytest.raises(InvalidRouteError) as exc_info:
            await rates.get_rate_by_route(["ETH"], "1")

        assert exc_info.value.message == "Invalid Route"
        assert recorder.requests == []


# =============================================================================
# TransactionModule
# =============================================================================

class TestTransactionModule:

    @pytest.mark.asyncio
    async def test_build_tx(self):
        tx = {"from": USER, "to": SPENDER, "value": "0", "data": "0x", "chainId": 1}
        recorder = Recorder({"/transactions/1": tx})
        transactions = TransactionModule(_context(recorder))

        params = BuildTxInput(
            src_token=USDC,
            dest_token=DAI,
            src_amount="1000000",
            dest_amount="999000000000000000",
            price_route=_price_route(),
            user_address=USER,
            partner="me",
        )
        result = await transactions.build_tx(params, BuildOptions(ignore_checks=True))

        assert result == tx
        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/transactions/1"
        assert request.url.params["ignoreChecks"] == "true"

        body = json.loads(request.content)
        assert body["srcAmount"] == "1000000"
        assert body["priceRoute"] == _price_route()
        assert body["partner"] == "me"
        assert "receiver" not in body

    @pytest.mark.asyncio
    async def test_build_tx_sell_amount_mismatch(self):
        recorder = Recorder({})
        transactions = TransactionModule(_context(recorder))

        params = BuildTxInput(
            src_token=USDC, dest_token=DAI,
            src_amount="999999", dest_amount="1",
            price_route=_price_route("SELL"), user_address=USER,
        )
        with pytest.raises(AmountMismatchError) as exc_info:
            await transactions.build_tx(params)

        assert exc_info.value.message == "Source Amount Mismatch"
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_build_tx_buy_amount_mismatch(self):
        recorder = Recorder({})
        transactions = TransactionModule(_context(recorder))

        params = BuildTxInput(
            src_token=USDC, dest_token=DAI,
            src_amount="1000000", dest_amount="1",
            price_route=_price_route("BUY"), user_address=USER,
        )
        with pytest.raises(AmountMismatchError) as exc_info:
            await transactions.build_tx(params)

        assert exc_info.value.message == "Destination Amount Mismatch"
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_build_tx_buy_ignores_src_amount(self):
        """On BUY only destAmount has to match"""
        recorder = Recorder({"/transactions/1": {"to": SPENDER}})
        transactions = TransactionModule(_context(recorder))

        params = BuildTxInput(
            src_token=USDC, dest_token=DAI,
            src_amount="1010000", dest_amount="999500000000000000",
            price_route=_price_route("BUY"), user_address=USER,
        )
        assert await transactions.build_tx(params) == {"to": SPENDER}

    @pytest.mark.asyncio
    async def test_build_tx_route_without_side(self):
        recorder = Recorder({})
        transactions = TransactionModule(_context(recorder))

        price_route = _price_route()
        del price_route["side"]
        params = BuildTxInput(
            src_token=USDC, dest_token=DAI,
            src_amount="1000000", dest_amount="1",
            price_route=price_route, user_address=USER,
        )
        with pytest.raises(InvalidPriceRouteError) as exc_info:
            await transactions.build_tx(params)

        assert exc_info.value.message == "Invalid price route: missing side"
        assert exc_info.value.code == ErrorCode.INVALID_PRICE_ROUTE
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_build_tx_route_with_unknown_side(self):
        recorder = Recorder({})
        transactions = TransactionModule(_context(recorder))

        params = BuildTxInput(
            src_token=USDC, dest_token=DAI,
            src_amount="1000000", dest_amount="1",
            price_route=_price_route("SIDEWAYS"), user_address=USER,
        )
        with pytest.raises(InvalidPriceRouteError):
            await transactions.build_tx(params)
        assert recorder.requests == []


# =============================================================================
# CatalogModule / BalancesModule
# =============================================================================

class TestCatalogAndBalances:

    @pytest.mark.asyncio
    async def test_get_tokens(self):
        recorder = Recorder({
            "/tokens/56": {"tokens": [
                {"symbol": "USDC", "address": USDC, "decimals": 6, "tokenType": "ERC20"},
            ]},
        })
        catalog = CatalogModule(_context(recorder, chain_id=56))

        tokens = await catalog.get_tokens()

        assert tokens == [Token(address=USDC, decimals=6, symbol="USDC")]

    @pytest.mark.asyncio
    async def test_get_adapters_and_spender(self):
        recorder = Recorder({
            "/adapters/1": ["UniswapV2", "Curve"],
            "/users/spender/1": {"spender": SPENDER},
        })
        catalog = CatalogModule(_context(recorder))

        assert await catalog.get_adapters() == ["UniswapV2", "Curve"]
        assert await catalog.get_spender() == SPENDER

    @pytest.mark.asyncio
    async def test_get_balance(self):
        recorder = Recorder({
            f"/users/tokens/1/{USER}": {"tokens": [
                {"symbol": "USDC", "address": USDC, "decimals": 6, "balance": "25"},
                {"symbol": "DAI", "address": DAI, "decimals": 18, "balance": "7"},
            ]},
        })
        balances = BalancesModule(_context(recorder))

        by_symbol = await balances.get_balance(USER, "DAI")
        by_address = await balances.get_balance(USER, USDC.lower())

        assert by_symbol.balance == "7"
        assert by_address.symbol == "USDC"

        with pytest.raises(TokenNotFoundError):
            await balances.get_balance(USER, "WBTC")

    @pytest.mark.asyncio
    async def test_get_allowances(self):
        recorder = Recorder({
            f"/users/allowances/1/{USER}": {"allowances": [
                {"tokenAddress": USDC, "allowance": "0"},
                {"tokenAddress": DAI, "allowance": 100},
            ]},
        })
        balances = BalancesModule(_context(recorder))

        allowances = await balances.get_allowances(USER, [USDC, DAI])

        assert recorder.requests[0].url.params["tokens"] == f"{USDC},{DAI}"
        assert [a.allowance for a in allowances] == ["0", "100"]

        single = await balances.get_allowance(USER, USDC)
        assert single.token_address == USDC


# =============================================================================
# ApproveModule
# =============================================================================

class RecordingCaller:
    """Contract caller stand-in returning resolved pending transactions"""

    def __init__(self):
        self.calls = []

    def approve(self, token_address, spender, amount, overrides=None):
        self.calls.append((token_address, spender, amount, overrides))

        async def send():
            return TxResponse(hash=f"0x{token_address[-4:].lower()}")

        return AwaitablePendingTx(send())


class TestApproveModule:

    @pytest.mark.asyncio
    async def test_approve_token(self):
        recorder = Recorder({"/users/spender/1": {"spender": SPENDER}})
        caller = RecordingCaller()
        approve = ApproveModule(_context(recorder), caller)

        pending = await approve.approve_token("1000", USDC, {"gas": 60000})

        assert caller.calls == [(USDC, SPENDER, "1000", {"gas": 60000})]
        assert (await pending.response).hash == "0xeb48"

    @pytest.mark.asyncio
    async def test_approve_token_bulk_single_spender_lookup(self):
        recorder = Recorder({"/users/spender/1": {"spender": SPENDER}})
        caller = RecordingCaller()
        approve = ApproveModule(_context(recorder), caller)

        pendings = await approve.approve_token_bulk("1000", [USDC, DAI])

        assert len(recorder.requests) == 1
        assert [call[0] for call in caller.calls] == [USDC, DAI]
        assert len(pendings) == 2
        for pending in pendings:
            await pending.response
