from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from cl_yield.domain.entities.pool import Pool, PoolFeeSnapshot, Position, Token


def _dec(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def _nested(row: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    return row.get(key) or {}


def map_row_to_token(row: Mapping[str, Any]) -> Token:
    return Token(
        address=str(row.get("id") or "").lower(),
        symbol=str(row.get("symbol") or ""),
        decimals=int(row.get("decimals") or 0),
    )


def map_row_to_pool(row: Mapping[str, Any]) -> Pool:
    return Pool(
        id=str(row["id"]).lower(),
        token0=map_row_to_token(_nested(row, "token0")),
        token1=map_row_to_token(_nested(row, "token1")),
        tick=int(row["tick"]) if row.get("tick") is not None else 0,
        liquidity=_dec(row.get("liquidity")),
        fees_token0=_dec(row.get("feesToken0")),
        fees_token1=_dec(row.get("feesToken1")),
        token0_price=_dec(row.get("token0Price")),
        total_value_locked_usd=_dec(row.get("totalValueLockedUSD")),
        total_value_locked_token0=_dec(row.get("totalValueLockedToken0")),
        total_value_locked_token1=_dec(row.get("totalValueLockedToken1")),
        volume_usd=_dec(row.get("volumeUSD")),
        fees_usd=_dec(row.get("feesUSD")),
    )


def map_row_to_pool_fee_snapshot(row: Mapping[str, Any]) -> PoolFeeSnapshot:
    return PoolFeeSnapshot(
        pool_id=str(row["id"]).lower(),
        fees_token0=_dec(row.get("feesToken0")),
        fees_token1=_dec(row.get("feesToken1")),
        token0_price=_dec(row.get("token0Price")),
    )


def map_row_to_position(row: Mapping[str, Any]) -> Position:
    return Position(
        id=str(row["id"]),
        owner=str(row.get("owner") or "").lower(),
        pool_id=str(_nested(row, "pool").get("id") or "").lower(),
        tick_lower=int(_nested(row, "tickLower")["tickIdx"]),
        tick_upper=int(_nested(row, "tickUpper")["tickIdx"]),
        liquidity=_dec(row.get("liquidity")),
        deposited_token0=_dec(row.get("depositedToken0")),
        deposited_token1=_dec(row.get("depositedToken1")),
        token0_decimals=int(_nested(row, "token0").get("decimals") or 0),
        token1_decimals=int(_nested(row, "token1").get("decimals") or 0),
    )
