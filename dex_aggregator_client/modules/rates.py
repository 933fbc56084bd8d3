"""
Rates Module

Fetches the optimal swap route (priceRoute) from the pricing endpoint,
either for a token pair or for an explicit multi-hop route.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..errors import InvalidDexListError, InvalidRouteError
from ..types import Address, AddressOrSymbol, OptimalRate, PriceString, SwapSide
from .base import ApiModule, construct_search_string

logger = logging.getLogger(__name__)


@dataclass
class RateOptions:
    """
    Optional pricing parameters

    Attributes:
        exclude_dexs: DEX names to leave out of routing
        include_dexs: Only route through these DEX names
        exclude_pools: Pool addresses to leave out
        exclude_contract_methods: Router methods to avoid
        include_contract_methods: Only use these router methods
        partner: Partner name for attribution
        max_impact: Max acceptable price impact in percent
        other_exchange_prices: Also return per-exchange prices
    """
    exclude_dexs: Optional[Sequence[str]] = None
    include_dexs: Optional[Sequence[str]] = None
    exclude_pools: Optional[Sequence[str]] = None
    exclude_contract_methods: Optional[Sequence[str]] = None
    include_contract_methods: Optional[Sequence[str]] = None
    partner: Optional[str] = None
    max_impact: Optional[float] = None
    other_exchange_prices: Optional[bool] = None

    def to_query(self) -> Dict[str, Any]:
        for option in ("exclude_dexs", "include_dexs"):
            value = getattr(self, option)
            if value is not None and (
                isinstance(value, str) or not all(isinstance(name, str) for name in value)
            ):
                raise InvalidDexListError(option=option)

        return {
            "excludeDEXS": self.exclude_dexs,
            "includeDEXS": self.include_dexs,
            "excludePools": self.exclude_pools,
            "excludeContractMethods": self.exclude_contract_methods,
            "includeContractMethods": self.include_contract_methods,
            "partner": self.partner,
            "maxImpact": self.max_impact,
            "otherExchangePrices": self.other_exchange_prices,
        }


class RatesModule(ApiModule):
    """
    Quote service

    Usage:
        rate = await rates.get_rate("ETH", "DAI", "1000000000000000000")
        rate = await rates.get_rate_by_route(["ETH", "USDC", "DAI"], "1000000000000000000")
    """

    def _base_query(
        self,
        amount: PriceString,
        user_address: Optional[Address],
        side: SwapSide,
        options: Optional[RateOptions],
        src_decimals: Optional[int],
        dest_decimals: Optional[int],
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {
            "amount": str(amount),
            "side": SwapSide(side),
            "network": self._context.chain_id,
            "version": self._context.version,
            "userAddress": user_address,
            "srcDecimals": src_decimals,
            "destDecimals": dest_decimals,
        }
        if options is not None:
            query.update(options.to_query())
        return query

    async def _fetch_rate(self, query: Dict[str, Any], signal) -> OptimalRate:
        url = self._url("prices", construct_search_string(query))
        data = await self._context.get(url, signal=signal)
        return data["priceRoute"]

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
        signal=None,
    ) -> OptimalRate:
        """
        Get the optimal route for a token pair

        Args:
            src_token: Source token address or symbol
            dest_token: Destination token address or symbol
            amount: Amount in smallest units; input for SELL, output for BUY
            user_address: Address the swap will be built for
            side: SELL or BUY
            options: Routing options
            src_decimals: Source token decimals, when the server cannot know them
            dest_decimals: Destination token decimals
            signal: Abort signal

        Returns:
            priceRoute object, unmodified
        """
        query = {
            "srcToken": src_token,
            "destToken": dest_token,
            **self._base_query(amount, user_address, side, options, src_decimals, dest_decimals),
        }
        logger.debug(f"get_rate {src_token} -> {dest_token} amount={amount} side={side}")
        return await self._fetch_rate(query, signal)

    async def get_rate_by_route(
        self,
        route: List[AddressOrSymbol],
        amount: PriceString,
        user_address: Optional[Address] = None,
        side: SwapSide = SwapSide.SELL,
        options: Optional[RateOptions] = None,
        src_decimals: Optional[int] = None,
        dest_decimals: Optional[int] = None,
        signal=None,
    ) -> OptimalRate:
        """
        Get the optimal rate along an explicit route

        Raises:
            InvalidRouteError: Route has fewer than two hops (no request is made)
        """
        if len(route) < 2:
            raise InvalidRouteError(route=list(route))

        query = {
            "route": "-".join(route),
            "srcToken": route[0],
            "destToken": route[-1],
            **self._base_query(amount, user_address, side, options, src_decimals, dest_decimals),
        }
        logger.debug(f"get_rate_by_route {'-'.join(route)} amount={amount} side={side}")
        return await self._fetch_rate(query, signal)
