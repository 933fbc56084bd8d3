"""
HTTP transport backends

Wraps either an httpx.AsyncClient or a requests.Session behind one async
callable:

    body = await fetcher(FetcherRequest(url=..., method="POST", data=...))

Any non-2xx status, network failure, or abort surfaces as TransportError.
Nothing here retries.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import requests

from ..config import config as global_config
from ..errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-KEY"


class TransportKind(Enum):
    """Supported HTTP client libraries"""
    HTTPX = "httpx"
    REQUESTS = "requests"


@dataclass(frozen=True)
class FetcherRequest:
    """
    One outgoing request

    Attributes:
        url: Absolute URL including any query string
        method: GET or POST
        data: JSON body for POST
        signal: Abort signal; setting the event abandons the request
    """
    url: str
    method: str = "GET"
    data: Any = None
    signal: Optional[asyncio.Event] = None


def _decode_body(text: str, json_loader: Callable[[], Any]) -> Any:
    """Decoded JSON body, or the raw text when the body is not JSON"""
    if not text:
        return None
    try:
        return json_loader()
    except ValueError:
        return text


async def _race_abort(awaitable: Awaitable[Any], signal: Optional[asyncio.Event], url: str) -> Any:
    """Await the request unless the abort signal fires first"""
    if signal is None:
        return await awaitable

    if signal.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise TransportError.aborted(url)

    request_task = asyncio.ensure_future(awaitable)
    abort_task = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait(
            {request_task, abort_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        request_task.cancel()
        raise
    finally:
        abort_task.cancel()

    if request_task in done:
        return request_task.result()

    request_task.cancel()
    logger.debug(f"Request aborted by caller: {url}")
    raise TransportError.aborted(url)


class Fetcher:
    """Base class for transport backends"""

    kind: TransportKind

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers[API_KEY_HEADER] = self._api_key
        return headers

    async def _send(self, request: FetcherRequest) -> Any:
        raise NotImplementedError

    async def __call__(self, request: FetcherRequest) -> Any:
        logger.debug(f"{self.kind.value} {request.method} {request.url}")
        return await _race_abort(self._send(request), request.signal, request.url)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(api_key={'set' if self._api_key else 'none'})"


class HttpxFetcher(Fetcher):
    """
    Transport backed by httpx.AsyncClient

    The client is owned by the caller unless ``owns_client`` is set, in which
    case ``aclose()`` closes it.
    """

    kind = TransportKind.HTTPX

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str] = None,
        owns_client: bool = False,
    ):
        super().__init__(api_key)
        self._client = client
        self._owns_client = owns_client

    async def _send(self, request: FetcherRequest) -> Any:
        try:
            response = await self._client.request(
                request.method.upper(),
                request.url,
                json=request.data if request.method.upper() != "GET" else None,
                headers=self._headers(),
            )
        except httpx.RequestError as e:
            logger.warning(f"httpx request error for {request.url}: {e}")
            raise TransportError.network(e, request.url) from e

        if not response.is_success:
            body = _decode_body(response.text, response.json)
            logger.warning(f"HTTP {response.status_code} from {request.url}")
            raise TransportError.http_status(response.status_code, body, request.url)

        return _decode_body(response.text, response.json)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class RequestsFetcher(Fetcher):
    """
    Transport backed by a blocking requests.Session

    Each call runs in a worker thread. An abort stops waiting for the
    thread; the underlying socket is left to finish on its own. The session
    is owned by the caller unless ``owns_session`` is set.
    """

    kind = TransportKind.REQUESTS

    def __init__(
        self,
        session: requests.Session,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        owns_session: bool = False,
    ):
        super().__init__(api_key)
        self._session = session
        self._timeout = timeout or global_config.api.timeout
        self._owns_session = owns_session

    def _send_sync(self, request: FetcherRequest) -> Any:
        try:
            response = self._session.request(
                request.method.upper(),
                request.url,
                json=request.data if request.method.upper() != "GET" else None,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"requests error for {request.url}: {e}")
            raise TransportError.network(e, request.url) from e

        if not 200 <= response.status_code < 300:
            body = _decode_body(response.text, response.json)
            logger.warning(f"HTTP {response.status_code} from {request.url}")
            raise TransportError.http_status(response.status_code, body, request.url)

        return _decode_body(response.text, response.json)

    async def _send(self, request: FetcherRequest) -> Any:
        return await asyncio.to_thread(self._send_sync, request)

    async def aclose(self) -> None:
        if self._owns_session:
            await asyncio.to_thread(self._session.close)


def construct_fetcher(
    httpx_client: Optional[httpx.AsyncClient] = None,
    requests_session: Optional[requests.Session] = None,
    api_key: Optional[str] = None,
    close_transport: bool = False,
) -> Fetcher:
    """
    Pick the transport backend

    httpx wins when both are supplied. With ``close_transport`` the
    fetcher's aclose() also closes the supplied client or session.

    Raises:
        ConfigurationError: If neither client is supplied
    """
    if httpx_client is not None:
        return HttpxFetcher(httpx_client, api_key=api_key, owns_client=close_transport)
    if requests_session is not None:
        return RequestsFetcher(requests_session, api_key=api_key, owns_session=close_transport)
    raise ConfigurationError.missing(
        "fetcher",
        "at least one fetcher is needed: pass httpx_client or requests_session",
    )
