"""
Approve Module

Submits ERC20 approvals of the aggregator spender through the configured
chain-call backend. Returns pending transactions; resolving them to
hashes is left to the caller (see infra.tx_response.extract_hash).
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..infra.contract_callers import ContractCaller
from ..infra.tx_response import PendingTransaction
from ..types import Address, PriceString, TxSendOverrides
from .base import FetchContext
from .catalog import CatalogModule

logger = logging.getLogger(__name__)


class ApproveModule:
    """
    Approval submission

    Usage:
        pending = await approve.approve_token("1000000", usdc_address)
        pendings = await approve.approve_token_bulk("1000000", [usdc, dai])
    """

    def __init__(self, context: FetchContext, contract_caller: ContractCaller):
        self._catalog = CatalogModule(context)
        self._contract_caller = contract_caller

    @property
    def contract_caller(self) -> ContractCaller:
        return self._contract_caller

    async def approve_token(
        self,
        amount: PriceString,
        token_address: Address,
        overrides: Optional[TxSendOverrides] = None,
        signal=None,
    ) -> PendingTransaction:
        spender = await self._catalog.get_spender(signal=signal)
        logger.info(f"Approving {amount} of {token_address} for spender {spender}")
        return self._contract_caller.approve(token_address, spender, amount, overrides)

    async def approve_token_bulk(
        self,
        amount: PriceString,
        token_addresses: Sequence[Address],
        overrides: Optional[TxSendOverrides] = None,
        signal=None,
    ) -> List[PendingTransaction]:
        """
        Submit one approval per token, in input order

        The spender is resolved once. Every submission is started before
        any of them is awaited; the result list is positional.
        """
        spender = await self._catalog.get_spender(signal=signal)
        logger.info(f"Approving {amount} of {len(token_addresses)} tokens for spender {spender}")
        return [
            self._contract_caller.approve(token_address, spender, amount, overrides)
            for token_address in token_addresses
        ]
