"""
Transaction Module

Posts a quote to the build endpoint and returns the executable
transaction. The request amounts are checked against the quote before
anything is sent; the server's answer is trusted as-is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import AmountMismatchError, InvalidPriceRouteError
from ..types import Address, OptimalRate, PriceString, SwapSide, TransactionParams
from .base import ApiModule, construct_search_string

logger = logging.getLogger(__name__)


@dataclass
class BuildTxInput:
    """
    Build request body

    Attributes:
        src_token: Source token address
        dest_token: Destination token address
        src_amount: Input amount; must equal priceRoute.srcAmount on SELL
        dest_amount: Output amount; must equal priceRoute.destAmount on BUY
        price_route: Quote from get_rate, passed through unmodified
        user_address: Sender address
        partner: Partner name
        partner_address: Address receiving partner fees
        partner_fee_bps: Partner fee in basis points
        receiver: Recipient of the output tokens, if not the sender
        src_decimals: Source token decimals
        dest_decimals: Destination token decimals
        permit: Encoded permit for gasless approval
        deadline: Unix timestamp after which the swap reverts
    """
    src_token: Address
    dest_token: Address
    src_amount: PriceString
    dest_amount: PriceString
    price_route: OptimalRate
    user_address: Address
    partner: Optional[str] = None
    partner_address: Optional[Address] = None
    partner_fee_bps: Optional[int] = None
    receiver: Optional[Address] = None
    src_decimals: Optional[int] = None
    dest_decimals: Optional[int] = None
    permit: Optional[str] = None
    deadline: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "srcToken": self.src_token,
            "destToken": self.dest_token,
            "srcAmount": str(self.src_amount),
            "destAmount": str(self.dest_amount),
            "priceRoute": self.price_route,
            "userAddress": self.user_address,
            "partner": self.partner,
            "partnerAddress": self.partner_address,
            "partnerFeeBps": self.partner_fee_bps,
            "receiver": self.receiver,
            "srcDecimals": self.src_decimals,
            "destDecimals": self.dest_decimals,
            "permit": self.permit,
            "deadline": self.deadline,
        }
        return {key: value for key, value in payload.items() if value is not None}


@dataclass
class BuildOptions:
    """
    Query options for the build endpoint

    Set either gas_price or the max_fee_per_gas pair, not both.
    """
    ignore_checks: Optional[bool] = None
    ignore_gas_estimate: Optional[bool] = None
    only_params: Optional[bool] = None
    simple: Optional[bool] = None
    gas_price: Optional[PriceString] = None
    max_fee_per_gas: Optional[PriceString] = None
    max_priority_fee_per_gas: Optional[PriceString] = None

    def to_query(self) -> Dict[str, Any]:
        return {
            "ignoreChecks": self.ignore_checks,
            "ignoreGasEstimate": self.ignore_gas_estimate,
            "onlyParams": self.only_params,
            "simple": self.simple,
            "gasPrice": self.gas_price,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
        }


def check_amounts(params: BuildTxInput) -> None:
    """
    Raise AmountMismatchError unless the side's fixed amount matches the quote

    Raises InvalidPriceRouteError when the quote has no valid side.

    SELL fixes srcAmount, BUY fixes destAmount. Amounts compare by their
    decimal string form.
    """
    price_route = params.price_route
    if "side" not in price_route:
        raise InvalidPriceRouteError.missing_side()
    try:
        side = SwapSide(price_route["side"])
    except ValueError as e:
        raise InvalidPriceRouteError.invalid_side(price_route["side"]) from e

    if side == SwapSide.SELL:
        expected, actual = price_route["srcAmount"], params.src_amount
        if str(actual) != str(expected):
            raise AmountMismatchError.source(expected, actual)
    else:
        expected, actual = price_route["destAmount"], params.dest_amount
        if str(actual) != str(expected):
            raise AmountMismatchError.destination(expected, actual)


class TransactionModule(ApiModule):
    """Transaction builder"""

    async def build_tx(
        self,
        params: BuildTxInput,
        options: Optional[BuildOptions] = None,
        signal=None,
    ) -> TransactionParams:
        """
        Build an executable swap transaction from a quote

        Raises:
            AmountMismatchError: Before any request, when amounts disagree with the quote
            InvalidPriceRouteError: Before any request, when the quote has no valid side
        """
        check_amounts(params)

        search = construct_search_string((options or BuildOptions()).to_query())
        url = self._url(f"transactions/{self._context.chain_id}", search)

        logger.debug(
            f"build_tx {params.src_token} -> {params.dest_token} "
            f"side={params.price_route['side']} user={params.user_address}"
        )
        return await self._context.post(url, params.to_payload(), signal=signal)
