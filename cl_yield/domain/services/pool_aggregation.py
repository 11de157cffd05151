from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from cl_yield.domain.entities.pool import Pool, PoolFeeSnapshot, PoolReserves, Position
from cl_yield.domain.services.univ3_math import amounts_for_liquidity


logger = logging.getLogger(__name__)


def fees_in_token0(fees_token0: Decimal, fees_token1: Decimal, token0_price: Decimal) -> Decimal:
    return fees_token0 + fees_token1 * token0_price


def fee_delta(current: Pool, prior: PoolFeeSnapshot | None) -> Decimal:
    """Token0-equivalent fees accrued since the prior snapshot.

    A pool without a prior snapshot counts from zero. Counter resets can
    make the result negative; it is returned as is.
    """
    current_fees = fees_in_token0(current.fees_token0, current.fees_token1, current.token0_price)
    if prior is None:
        return current_fees
    prior_fees = fees_in_token0(prior.fees_token0, prior.fees_token1, prior.token0_price)
    return current_fees - prior_fees


def position_value_in_token0(position: Position, current_tick: int, token0_price: Decimal) -> Decimal:
    amount0, amount1 = amounts_for_liquidity(
        position.liquidity,
        position.tick_lower,
        position.tick_upper,
        current_tick,
    )
    adjusted0 = amount0 / (Decimal(10) ** position.token0_decimals)
    adjusted1 = amount1 / (Decimal(10) ** position.token1_decimals)
    return adjusted0 + adjusted1 * token0_price


def pool_tvl_in_token0(pool: Pool, positions: Iterable[Position]) -> Decimal:
    """Sum of the open positions of `pool`, valued in token0 at the current tick."""
    total = Decimal("0")
    seen: set[str] = set()
    skipped = 0
    for position in positions:
        if position.pool_id != pool.id or position.liquidity <= 0 or position.id in seen:
            skipped += 1
            continue
        seen.add(position.id)
        total += position_value_in_token0(position, pool.tick, pool.token0_price)

    if skipped:
        logger.debug(
            "pool_aggregation: skipped_positions pool=%s skipped=%s counted=%s",
            pool.id,
            skipped,
            len(seen),
        )
    return total


def reserves_value_in_token0(reserves: PoolReserves, token0_price: Decimal) -> Decimal:
    return reserves.reserve0 + reserves.reserve1 * token0_price


def relative_deviation(estimate: Decimal, reference: Decimal) -> Decimal | None:
    if reference <= 0:
        return None
    return abs(estimate - reference) / reference
