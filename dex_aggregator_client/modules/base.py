"""
Shared plumbing for the API operation modules
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from ..infra.fetchers import Fetcher, FetcherRequest


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(item) for item in value)
    return str(value)


def construct_search_string(params: Mapping[str, Any]) -> str:
    """
    Build ``?key=value&...`` from params, skipping None values

    Booleans serialize as true/false, sequences comma-joined. Returns an
    empty string when nothing is left.
    """
    query = {key: _query_value(value) for key, value in params.items() if value is not None}
    if not query:
        return ""
    return f"?{urlencode(query, safe=',')}"


@dataclass(frozen=True)
class FetchContext:
    """
    What every API module needs to reach the pricing service

    Attributes:
        fetcher: Transport backend
        api_url: Base URL without trailing slash
        chain_id: Network the client operates on
        version: API version tag sent with pricing requests
    """
    fetcher: Fetcher
    api_url: str
    chain_id: int
    version: str

    async def get(self, url: str, signal=None) -> Any:
        return await self.fetcher(FetcherRequest(url=url, method="GET", signal=signal))

    async def post(self, url: str, data: Any, signal=None) -> Any:
        return await self.fetcher(FetcherRequest(url=url, method="POST", data=data, signal=signal))


class ApiModule:
    """Base for modules bound to a FetchContext"""

    def __init__(self, context: FetchContext):
        self._context = context

    @property
    def context(self) -> FetchContext:
        return self._context

    def _url(self, path: str, search: Optional[str] = "") -> str:
        return f"{self._context.api_url.rstrip('/')}/{path}{search or ''}"
