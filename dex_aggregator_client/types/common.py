"""
Common type definitions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, TypedDict


Address = str
AddressOrSymbol = str
# Amounts travel as decimal strings in the smallest token unit
PriceString = str

# Server-computed route; opaque apart from side/srcAmount/destAmount
OptimalRate = Dict[str, Any]


class SwapSide(str, Enum):
    """Direction of a swap: SELL fixes the input amount, BUY the output amount"""
    SELL = "SELL"
    BUY = "BUY"

    def __str__(self) -> str:
        return self.value


# Executable transaction returned by the build endpoint ("from" is a keyword)
TransactionParams = TypedDict(
    "TransactionParams",
    {
        "to": str,
        "from": str,
        "value": str,
        "data": str,
        "gasPrice": str,
        "gas": str,
        "chainId": int,
    },
    total=False,
)


class TxSendOverrides(TypedDict, total=False):
    """Send options merged into approval transactions"""
    gas: int
    gasPrice: int
    maxFeePerGas: int
    maxPriorityFeePerGas: int
    nonce: int
    value: int


@dataclass(frozen=True)
class Token:
    """
    Token descriptor as returned by the tokens and balances endpoints

    Attributes:
        address: Token contract address
        decimals: Number of decimal places
        symbol: Token symbol
        token_type: Token standard (e.g. "ERC20", "ETH")
        balance: Raw balance, only set on balance queries
        allowance: Raw allowance towards the spender, only set on balance queries
        img: Logo URL
        network: Chain id
    """
    address: Address
    decimals: int
    symbol: str = ""
    token_type: str = "ERC20"
    balance: Optional[PriceString] = None
    allowance: Optional[PriceString] = None
    img: Optional[str] = None
    network: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Token":
        return cls(
            address=data["address"],
            decimals=int(data.get("decimals", 18)),
            symbol=data.get("symbol", ""),
            token_type=data.get("tokenType", "ERC20"),
            balance=data.get("balance"),
            allowance=data.get("allowance"),
            img=data.get("img"),
            network=data.get("network"),
            raw=dict(data),
        )

    def matches(self, address_or_symbol: AddressOrSymbol) -> bool:
        """Match by address (case-insensitive) or exact symbol"""
        return (
            self.address.lower() == address_or_symbol.lower()
            or self.symbol == address_or_symbol
        )

    def __str__(self) -> str:
        return self.symbol or self.address


@dataclass(frozen=True)
class Allowance:
    """Allowance granted by a user to the aggregator spender"""
    token_address: Address
    allowance: PriceString

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Allowance":
        return cls(
            token_address=data["tokenAddress"],
            allowance=str(data["allowance"]),
        )
