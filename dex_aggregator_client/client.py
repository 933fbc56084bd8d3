"""
SwapClient - Unified entry point for aggregator operations

Quotes, transaction building and balance lookups go through the HTTP
transport; token approvals go through whichever chain-call backend the
caller configured. Every public operation returns either its result or
an APIError value.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, Union

import httpx
import requests
from web3 import Web3

from .config import config as global_config, SUPPORTED_API_VERSIONS
from .errors import ConfigurationError, handle_api_error
from .infra.contract_callers import ContractCaller, Web3ContractCaller, construct_signer_contract_caller, construct_contract_caller
from .infra.fetchers import Fetcher, construct_fetcher
from .infra.tracing import OperationContext, log_with_correlation
from .infra.tx_response import extract_hash
from .modules import BuildOptions, BuildTxInput, FetchContext, RateOptions
from .sdk import CapabilitySet, compose_capabilities, rebuild_chain_capabilities
from .types import (
    APIError,
    Address,
    AddressOrSymbol,
    Allowance,
    OptimalRate,
    PriceString,
    SwapSide,
    Token,
    TransactionParams,
    TxSendOverrides,
)

logger = logging.getLogger(__name__)


class SwapClient:
    """
    Aggregator client facade

    Usage:
        # Read-only client
        async with httpx.AsyncClient() as http:
            client = SwapClient(chain_id=1, httpx_client=http)
            rate = await client.get_rate("ETH", "DAI", "1000000000000000000")
            if is_api_error(rate):
                ...

        # With a web3 provider for approvals
        client = SwapClient(httpx_client=http, web3_provider=web3, account="0x...")
        tx_hash = await client.approve_token("1000000", usdc_address)

        # With a local signer on AsyncWeb3
        client.set_signer_provider({"async_web3": async_web3, "signer": signer})
    """

    def __init__(
        self,
        chain_id: Optional[int] = None,
        api_url: Optional[str] = None,
        version: Optional[str] = None,
        api_key: Optional[str] = None,
        web3_provider: Optional[Web3] = None,
        signer_deps: Optional[Mapping[str, Any]] = None,
        account: Optional[Address] = None,
        httpx_client: Optional[httpx.AsyncClient] = None,
        requests_session: Optional[requests.Session] = None,
        close_transport: bool = False,
    ):
        """
        Initialize SwapClient

        Args:
            chain_id: Network id (defaults to AGGREGATOR_CHAIN_ID)
            api_url: Pricing service base URL (defaults to AGGREGATOR_API_URL)
            version: API version tag (defaults to AGGREGATOR_API_VERSION)
            api_key: Key attached to every request (defaults to AGGREGATOR_API_KEY)
            web3_provider: Sync Web3 with a node-managed account
            signer_deps: {"web3" | "async_web3": ..., "signer": EVMSigner (optional)}
            account: Sender address for approvals
            httpx_client: httpx.AsyncClient transport
            requests_session: requests.Session transport
            close_transport: Close the supplied client or session in aclose()

        Raises:
            ConfigurationError: If no transport was supplied or a backend is malformed
        """
        api_config = global_config.api
        self._chain_id = chain_id if chain_id is not None else api_config.chain_id
        self._api_url = (api_url or api_config.api_url).rstrip("/")
        self._version = version or api_config.version
        if self._version not in SUPPORTED_API_VERSIONS:
            raise ConfigurationError.invalid(
                "version", f"{self._version} (supported: {', '.join(SUPPORTED_API_VERSIONS)})"
            )

        fetcher = construct_fetcher(
            httpx_client=httpx_client,
            requests_session=requests_session,
            api_key=api_key if api_key is not None else api_config.api_key,
            close_transport=close_transport,
        )
        self._context = FetchContext(
            fetcher=fetcher,
            api_url=self._api_url,
            chain_id=self._chain_id,
            version=self._version,
        )

        self._account = account
        self._contract_caller = construct_contract_caller(
            web3_provider=web3_provider,
            signer_deps=signer_deps,
            account=account,
        )
        self._capabilities = compose_capabilities(self._context, self._contract_caller)

        logger.info(
            f"SwapClient ready: chain={self._chain_id} api={self._api_url} "
            f"transport={fetcher.kind.value} "
            f"chain_backend={self._contract_caller.kind.value if self._contract_caller else None}"
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def version(self) -> str:
        return self._version

    @property
    def account(self) -> Optional[Address]:
        return self._account

    @property
    def fetcher(self) -> Fetcher:
        return self._context.fetcher

    @property
    def contract_caller(self) -> Optional[ContractCaller]:
        return self._contract_caller

    @property
    def capabilities(self) -> CapabilitySet:
        """Current capability set; replaced, never mutated, on reconfiguration"""
        return self._capabilities

    def _use_contract_caller(self, contract_caller: ContractCaller, account: Optional[Address]) -> "SwapClient":
        capabilities = rebuild_chain_capabilities(self._capabilities, self._context, contract_caller)
        self._contract_caller = contract_caller
        self._account = account
        self._capabilities = capabilities
        logger.info(f"Chain backend switched to {contract_caller.kind.value}")
        return self

    def set_web3_provider(self, web3_provider: Web3, account: Optional[Address] = None) -> "SwapClient":
        """Route approvals through a sync Web3 provider from now on"""
        return self._use_contract_caller(Web3ContractCaller(web3_provider, account), account)

    def set_signer_provider(self, signer_deps: Mapping[str, Any], account: Optional[Address] = None) -> "SwapClient":
        """
        Route approvals through signer deps from now on

        ``signer_deps`` carries either an ``async_web3`` or a ``web3`` entry,
        plus an optional ``signer``.
        """
        return self._use_contract_caller(construct_signer_contract_caller(signer_deps, account), account)

    # ------------------------------------------------------------------
    # Error boundary
    # ------------------------------------------------------------------

    async def _guarded(self, name: str, call: Callable[[], Awaitable[Any]]) -> Any:
        with OperationContext(name):
            log_with_correlation(logging.DEBUG, "start", name)
            try:
                return await call()
            except ConfigurationError:
                raise
            except Exception as e:
                error = handle_api_error(e)
                log_with_correlation(
                    logging.WARNING,
                    f"failed: {error.message}",
                    name,
                    status=error.status,
                )
                return error

    async def _call(self, name: str, *args, **kwargs) -> Any:
        operation = self._capabilities.require(name)
        return await self._guarded(name, lambda: operation(*args, **kwargs))

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def get_tokens(self) -> Union[List[Token], APIError]:
        return await self._call("get_tokens")

    async def get_adapters(self) -> Union[List[str], APIError]:
        return await self._call("get_adapters")

    async def get_market_names(self) -> Union[List[str], APIError]:
        return await self._call("get_adapters")

    async def get_rate(
        self,
        src_token: AddressOrSymbol,
        dest_token: AddressOrSymbol,
        amount: PriceString,
        user_address: Optional[Address] = None,
        side: SwapSide = SwapSide.SELL,
        options: Optional[RateOptions] = None,
        src_decimals: Optional[int] = None,
        dest_decimals: Optional[int] = None,
        signal: Optional[asyncio.Event] = None,
    ) -> Union[OptimalRate, APIError]:
        return await self._call(
            "get_rate",
            src_token,
            dest_token,
            amount,
            user_address=user_address,
            side=side,
            options=options,
            src_decimals=src_decimals,
            dest_decimals=dest_decimals,
            signal=signal,
        )

    async def get_rate_by_route(
        self,
        route: Sequence[AddressOrSymbol],
        amount: PriceString,
        user_address: Optional[Address] = None,
        side: SwapSide = SwapSide.SELL,
        options: Optional[RateOptions] = None,
        src_decimals: Optional[int] = None,
        dest_decimals: Optional[int] = None,
        signal: Optional[asyncio.Event] = None,
    ) -> Union[OptimalRate, APIError]:
        """Rate along an explicit route; routes shorter than two hops return APIError("Invalid Route")"""
        return await self._call(
            "get_rate_by_route",
            list(route),
            amount,
            user_address=user_address,
            side=side,
            options=options,
            src_decimals=src_decimals,
            dest_decimals=dest_decimals,
            signal=signal,
        )

    async def build_tx(
        self,
        src_token: Address,
        dest_token: Address,
        src_amount: PriceString,
        dest_amount: PriceString,
        price_route: OptimalRate,
        user_address: Address,
        partner: Optional[str] = None,
        partner_address: Optional[Address] = None,
        partner_fee_bps: Optional[int] = None,
        receiver: Optional[Address] = None,
        options: Optional[BuildOptions] = None,
        src_decimals: Optional[int] = None,
        dest_decimals: Optional[int] = None,
        permit: Optional[str] = None,
        deadline: Optional[str] = None,
        signal: Optional[asyncio.Event] = None,
    ) -> Union[TransactionParams, APIError]:
        params = BuildTxInput(
            src_token=src_token,
            dest_token=dest_token,
            src_amount=src_amount,
            dest_amount=dest_amount,
            price_route=price_route,
            user_address=user_address,
            partner=partner,
            partner_address=partner_address,
            partner_fee_bps=partner_fee_bps,
            receiver=receiver,
            src_decimals=src_decimals,
            dest_decimals=dest_decimals,
            permit=permit,
            deadline=deadline,
        )
        return await self._call("build_tx", params, options, signal=signal)

    async def get_spender(self) -> Union[Address, APIError]:
        return await self._call("get_spender")

    async def get_token_transfer_proxy(self) -> Union[Address, APIError]:
        return await self._call("get_spender")

    async def get_balances(self, user_address: Address) -> Union[List[Token], APIError]:
        return await self._call("get_balances", user_address)

    async def get_balance(self, user_address: Address, token: AddressOrSymbol) -> Union[Token, APIError]:
        return await self._call("get_balance", user_address, token)

    # ------------------------------------------------------------------
    # Chain operations
    # ------------------------------------------------------------------

    async def get_allowances(
        self,
        user_address: Address,
        token_addresses: Sequence[Address],
    ) -> Union[List[Allowance], APIError]:
        return await self._call("get_allowances", user_address, list(token_addresses))

    async def get_allowance(self, user_address: Address, token_address: Address) -> Union[Allowance, APIError]:
        return await self._call("get_allowance", user_address, token_address)

    async def approve_token(
        self,
        amount: PriceString,
        token_address: Address,
        overrides: Optional[TxSendOverrides] = None,
    ) -> Union[str, APIError]:
        """
        Approve the spender for ``amount`` of one token

        Returns:
            Transaction hash, or APIError
        """
        operation = self._capabilities.require("approve_token")

        async def submit_and_resolve() -> str:
            pending = await operation(amount, token_address, overrides)
            return await extract_hash(pending)

        return await self._guarded("approve_token", submit_and_resolve)

    async def approve_token_bulk(
        self,
        amount: PriceString,
        token_addresses: Sequence[Address],
        overrides: Optional[TxSendOverrides] = None,
    ) -> Union[List[str], APIError]:
        """
        Approve the spender for several tokens

        Returns:
            Transaction hashes in the order of ``token_addresses``, or APIError
        """
        operation = self._capabilities.require("approve_token_bulk")

        async def submit_and_resolve() -> List[str]:
            pendings = await operation(amount, list(token_addresses), overrides)
            # Wait for every submission so no failure goes unretrieved
            results = await asyncio.gather(
                *(extract_hash(pending) for pending in pendings),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            return list(results)

        return await self._guarded("approve_token_bulk", submit_and_resolve)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """
        Release the transport when the client was built with close_transport

        Caller-supplied clients and sessions are left open otherwise.
        """
        await self._context.fetcher.aclose()

    async def __aenter__(self) -> "SwapClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def __repr__(self) -> str:
        return f"SwapClient(chain_id={self._chain_id}, capabilities={self._capabilities!r})"
