"""
Pending transaction handles and hash resolution

Chain-call backends report a submitted transaction in one of two shapes:

- EventPendingTx: an emitter that fires "transactionHash" or "error"
- AwaitablePendingTx: an awaitable resolving to a TxResponse carrying the hash

extract_hash() turns either into the transaction hash string.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..errors import ChainSubmissionError

logger = logging.getLogger(__name__)

TRANSACTION_HASH_EVENT = "transactionHash"
ERROR_EVENT = "error"


class TxEventEmitter:
    """
    Minimal one-shot event emitter for transaction progress

    Callbacks run synchronously in emit(). An event that already fired is
    replayed to late ``once`` subscribers, so subscribing after submission
    never misses the hash.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable[[Any], None]]] = defaultdict(list)
        self._fired: Dict[str, Any] = {}
        # Keeps the submission task referenced while it runs
        self.task: Optional[asyncio.Task] = None

    def once(self, event: str, callback: Callable[[Any], None]) -> "TxEventEmitter":
        if event in self._fired:
            callback(self._fired[event])
        else:
            self._listeners[event].append(callback)
        return self

    def emit(self, event: str, payload: Any = None) -> None:
        self._fired[event] = payload
        listeners = self._listeners.pop(event, [])
        for callback in listeners:
            callback(payload)

    def has_fired(self, event: str) -> bool:
        return event in self._fired


@dataclass(frozen=True)
class TxResponse:
    """
    Submitted transaction as reported by signer-style backends

    Attributes:
        hash: 0x-prefixed transaction hash
        from_address: Sender address
        nonce: Nonce the transaction was sent with, if known
    """
    hash: str
    from_address: Optional[str] = None
    nonce: Optional[int] = None


@dataclass(frozen=True)
class EventPendingTx:
    """Event-reporting pending transaction"""
    emitter: TxEventEmitter


@dataclass(frozen=True)
class AwaitablePendingTx:
    """Awaitable pending transaction resolving to a TxResponse"""
    response: Awaitable[TxResponse]


PendingTransaction = Union[EventPendingTx, AwaitablePendingTx]


def _resolve_from_events(emitter: TxEventEmitter) -> "asyncio.Future[str]":
    future: asyncio.Future[str] = asyncio.get_running_loop().create_future()

    def on_hash(tx_hash: Any) -> None:
        if not future.done():
            future.set_result(tx_hash)

    def on_error(payload: Any) -> None:
        if future.done():
            return
        if isinstance(payload, BaseException):
            future.set_exception(payload)
        else:
            future.set_exception(ChainSubmissionError.from_payload(payload))

    emitter.once(TRANSACTION_HASH_EVENT, on_hash)
    emitter.once(ERROR_EVENT, on_error)
    return future


async def extract_hash(pending: PendingTransaction) -> str:
    """
    Resolve a pending transaction to its hash

    No timeout is applied: an emitter that never fires either event keeps
    this coroutine waiting. Wrap with asyncio.wait_for() when a deadline is
    needed.

    Raises:
        ChainSubmissionError: Or the exception carried by an "error" event
        TypeError: For objects that are not a PendingTransaction
    """
    if isinstance(pending, EventPendingTx):
        return await _resolve_from_events(pending.emitter)

    if isinstance(pending, AwaitablePendingTx):
        response = await pending.response
        return response.hash

    raise TypeError(f"Unsupported pending transaction: {pending!r}")
