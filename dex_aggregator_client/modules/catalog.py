"""
Catalog Module

Read-only lookups that do not depend on a user: supported tokens,
available adapters (market names) and the spender contract that
approvals must target.
"""

from __future__ import annotations

from typing import List

from ..types import Address, Token
from .base import ApiModule


class CatalogModule(ApiModule):

    async def get_tokens(self, signal=None) -> List[Token]:
        data = await self._context.get(self._url(f"tokens/{self._context.chain_id}"), signal=signal)
        return [Token.from_api(item) for item in data["tokens"]]

    async def get_adapters(self, signal=None) -> List[str]:
        """Market (DEX adapter) names available on the chain"""
        return await self._context.get(self._url(f"adapters/{self._context.chain_id}"), signal=signal)

    async def get_spender(self, signal=None) -> Address:
        """Address of the contract users approve before swapping"""
        data = await self._context.get(self._url(f"users/spender/{self._context.chain_id}"), signal=signal)
        return data["spender"]
