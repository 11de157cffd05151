from __future__ import annotations

from decimal import Decimal, localcontext

from cl_yield.domain.exceptions import InvalidPositionError


TICK_BASE = Decimal("1.0001")
# 1.0001 ** 887272 has 39 integer digits; keep a margin for the reciprocals.
WORKING_PRECISION = 50
ZERO = Decimal("0")
ONE = Decimal("1")


def tick_to_sqrt_price(tick: int) -> Decimal:
    """sqrt(1.0001 ** tick), computed in decimal arithmetic."""
    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        return (TICK_BASE ** int(tick)).sqrt()


def amounts_for_liquidity(
    liquidity: Decimal,
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
) -> tuple[Decimal, Decimal]:
    """Token amounts (raw units) held by `liquidity` over [tick_lower, tick_upper].

    Below the range the position is all token0, above it all token1, and
    inside it holds both. Amounts are not scaled by token decimals.
    """
    if liquidity < 0:
        raise InvalidPositionError("liquidity must be non-negative.")
    if tick_lower > tick_upper:
        raise InvalidPositionError(
            f"tick_lower ({tick_lower}) must not exceed tick_upper ({tick_upper})."
        )

    lower = tick_to_sqrt_price(tick_lower)
    upper = tick_to_sqrt_price(tick_upper)
    current = tick_to_sqrt_price(current_tick)

    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        if current < lower:
            amount0 = liquidity * (ONE / lower - ONE / upper)
            amount1 = ZERO
        elif current <= upper:
            amount0 = liquidity * (ONE / current - ONE / upper)
            amount1 = liquidity * (current - lower)
        else:
            amount0 = ZERO
            amount1 = liquidity * (upper - lower)
    return amount0, amount1
