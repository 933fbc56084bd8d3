"""
Balances Module

Balance and allowance queries for a user address.
"""

from __future__ import annotations

from typing import List, Sequence

from ..errors import TokenNotFoundError
from ..types import Address, AddressOrSymbol, Allowance, Token
from .base import ApiModule, construct_search_string


class BalancesModule(ApiModule):

    async def get_balances(self, user_address: Address, signal=None) -> List[Token]:
        url = self._url(f"users/tokens/{self._context.chain_id}/{user_address}")
        data = await self._context.get(url, signal=signal)
        return [Token.from_api(item) for item in data["tokens"]]

    async def get_balance(self, user_address: Address, token: AddressOrSymbol, signal=None) -> Token:
        """
        Balance of one token, matched by address or symbol

        Raises:
            TokenNotFoundError: If the token is absent from the user's balances
        """
        for item in await self.get_balances(user_address, signal=signal):
            if item.matches(token):
                return item
        raise TokenNotFoundError.balance(token, user_address)

    async def get_allowances(
        self,
        user_address: Address,
        token_addresses: Sequence[Address],
        signal=None,
    ) -> List[Allowance]:
        search = construct_search_string({"tokens": list(token_addresses)})
        url = self._url(f"users/allowances/{self._context.chain_id}/{user_address}", search)
        data = await self._context.get(url, signal=signal)
        return [Allowance.from_api(item) for item in data["allowances"]]

    async def get_allowance(self, user_address: Address, token_address: Address, signal=None) -> Allowance:
        allowances = await self.get_allowances(user_address, [token_address], signal=signal)
        if not allowances:
            raise TokenNotFoundError(f"No allowance returned for token {token_address}", token=token_address)
        return allowances[0]
