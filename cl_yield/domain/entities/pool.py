from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Token:
    address: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class Pool:
    id: str
    token0: Token
    token1: Token
    tick: int
    liquidity: Decimal
    fees_token0: Decimal
    fees_token1: Decimal
    token0_price: Decimal
    total_value_locked_usd: Decimal
    total_value_locked_token0: Decimal = Decimal("0")
    total_value_locked_token1: Decimal = Decimal("0")
    volume_usd: Decimal = Decimal("0")
    fees_usd: Decimal = Decimal("0")

    @property
    def symbol(self) -> str:
        return f"{self.token0.symbol}-{self.token1.symbol}"


@dataclass(frozen=True)
class PoolFeeSnapshot:
    pool_id: str
    fees_token0: Decimal
    fees_token1: Decimal
    token0_price: Decimal


@dataclass(frozen=True)
class Position:
    id: str
    owner: str
    pool_id: str
    tick_lower: int
    tick_upper: int
    liquidity: Decimal
    deposited_token0: Decimal
    deposited_token1: Decimal
    token0_decimals: int
    token1_decimals: int


@dataclass(frozen=True)
class HistoricalCheckpoint:
    block_number: int
    timestamp: int | None
    is_fallback: bool = False


@dataclass(frozen=True)
class PoolReserves:
    pool_id: str
    reserve0: Decimal
    reserve1: Decimal
