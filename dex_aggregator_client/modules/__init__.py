"""
API operation modules

Provides:
- RatesModule: Optimal route quotes
- TransactionModule: Swap transaction building
- CatalogModule: Tokens, adapters, spender
- BalancesModule: Balances and allowances
- ApproveModule: Token approvals through a chain-call backend
"""

from .base import FetchContext, construct_search_string
from .rates import RatesModule, RateOptions
from .transaction import TransactionModule, BuildTxInput, BuildOptions, check_amounts
from .catalog import CatalogModule
from .balances import BalancesModule
from .approve import ApproveModule

__all__ = [
    "FetchContext",
    "construct_search_string",
    "RatesModule",
    "RateOptions",
    "TransactionModule",
    "BuildTxInput",
    "BuildOptions",
    "check_amounts",
    "CatalogModule",
    "BalancesModule",
    "ApproveModule",
]
