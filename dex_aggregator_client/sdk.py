"""
Capability composition

A CapabilitySet maps operation names to callables. Which names are
present depends only on the backends supplied:

- read operations: always (a transport backend is mandatory)
- chain operations (approvals, allowances): only with a chain-call backend

Capability sets are immutable. Switching the chain backend produces a new
set that shares the read callables of the old one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

from .errors import ConfigurationError
from .infra.contract_callers import ChainBackendKind, ContractCaller
from .infra.fetchers import TransportKind
from .modules import (
    ApproveModule,
    BalancesModule,
    CatalogModule,
    FetchContext,
    RatesModule,
    TransactionModule,
)

logger = logging.getLogger(__name__)

READ_OPERATIONS = (
    "get_tokens",
    "get_adapters",
    "get_rate",
    "get_rate_by_route",
    "build_tx",
    "get_spender",
    "get_balance",
    "get_balances",
)

CHAIN_OPERATIONS = (
    "approve_token",
    "approve_token_bulk",
    "get_allowance",
    "get_allowances",
)

WRITE_OPERATIONS = (
    "approve_token",
    "approve_token_bulk",
)


@dataclass(frozen=True)
class CapabilitySet:
    """
    Immutable operation table for one backend configuration

    Attributes:
        operations: Read-only mapping of operation name to async callable
        transport_kind: Transport backend the read operations use
        chain_kind: Chain-call backend, None for a read-only set
    """
    operations: Mapping[str, Callable[..., Any]]
    transport_kind: TransportKind
    chain_kind: Optional[ChainBackendKind] = None

    def __contains__(self, name: object) -> bool:
        return name in self.operations

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self.operations[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def get(self, name: str) -> Optional[Callable[..., Any]]:
        return self.operations.get(name)

    def require(self, name: str) -> Callable[..., Any]:
        """
        Operation callable, or ConfigurationError when the backend it needs is absent
        """
        operation = self.operations.get(name)
        if operation is None:
            needed = "a chain provider" if name in CHAIN_OPERATIONS else "a fetcher"
            raise ConfigurationError.missing(
                name, f"client must be initialized with {needed}"
            )
        return operation

    @property
    def is_read_only(self) -> bool:
        return self.chain_kind is None

    @property
    def read_operations(self) -> Dict[str, Callable[..., Any]]:
        return {name: op for name, op in self.operations.items() if name in READ_OPERATIONS}

    @property
    def chain_operations(self) -> Dict[str, Callable[..., Any]]:
        return {name: op for name, op in self.operations.items() if name in CHAIN_OPERATIONS}

    def __repr__(self) -> str:
        return (
            f"CapabilitySet(transport={self.transport_kind.value}, "
            f"chain={self.chain_kind.value if self.chain_kind else None}, "
            f"operations={len(self.operations)})"
        )


def construct_read_operations(context: FetchContext) -> Dict[str, Callable[..., Any]]:
    """Bind every transport-only operation to ``context``"""
    rates = RatesModule(context)
    transactions = TransactionModule(context)
    catalog = CatalogModule(context)
    balances = BalancesModule(context)

    return {
        "get_tokens": catalog.get_tokens,
        "get_adapters": catalog.get_adapters,
        "get_rate": rates.get_rate,
        "get_rate_by_route": rates.get_rate_by_route,
        "build_tx": transactions.build_tx,
        "get_spender": catalog.get_spender,
        "get_balance": balances.get_balance,
        "get_balances": balances.get_balances,
    }


def construct_chain_operations(
    context: FetchContext,
    contract_caller: ContractCaller,
) -> Dict[str, Callable[..., Any]]:
    """Bind approval and allowance operations to ``contract_caller``"""
    approve = ApproveModule(context, contract_caller)
    balances = BalancesModule(context)

    return {
        "approve_token": approve.approve_token,
        "approve_token_bulk": approve.approve_token_bulk,
        "get_allowance": balances.get_allowance,
        "get_allowances": balances.get_allowances,
    }


def compose_capabilities(
    context: FetchContext,
    contract_caller: Optional[ContractCaller] = None,
) -> CapabilitySet:
    """
    Build the capability set for a transport and an optional chain backend

    Without a chain backend the set is read-only, which is a valid
    configuration.
    """
    operations = construct_read_operations(context)
    chain_kind = None

    if contract_caller is not None:
        operations.update(construct_chain_operations(context, contract_caller))
        chain_kind = contract_caller.kind

    capabilities = CapabilitySet(
        operations=MappingProxyType(operations),
        transport_kind=context.fetcher.kind,
        chain_kind=chain_kind,
    )
    logger.debug(f"Composed {capabilities!r}")
    return capabilities


def rebuild_chain_capabilities(
    capabilities: CapabilitySet,
    context: FetchContext,
    contract_caller: ContractCaller,
) -> CapabilitySet:
    """
    New capability set with chain operations bound to ``contract_caller``

    Read operations are carried over as the very same callables; the old
    set is left untouched for calls already holding it.
    """
    operations = dict(capabilities.read_operations)
    operations.update(construct_chain_operations(context, contract_caller))

    rebuilt = CapabilitySet(
        operations=MappingProxyType(operations),
        transport_kind=capabilities.transport_kind,
        chain_kind=contract_caller.kind,
    )
    logger.debug(f"Rebuilt chain operations: {rebuilt!r}")
    return rebuilt
