from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, DivisionByZero, InvalidOperation, Overflow

from cl_yield.domain.entities.yield_record import APY_SOURCE_FEES, APY_SOURCE_REWARD


DAYS_PER_YEAR = Decimal("365")
HUNDRED = Decimal("100")
ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass(frozen=True)
class AprProjection:
    apr: Decimal
    apy: Decimal


def _finite_or_zero(value: Decimal) -> Decimal:
    return value if value.is_finite() else ZERO


def compound_apy(apr: Decimal) -> Decimal:
    """Daily-compounded APY (percent) for a simple APR given in percent."""
    if not apr.is_finite():
        return ZERO
    try:
        apy = ((ONE + apr / DAYS_PER_YEAR / HUNDRED) ** 365 - ONE) * HUNDRED
    except (InvalidOperation, Overflow):
        return ZERO
    return _finite_or_zero(apy)


def project_fee_apr(fee_delta: Decimal, tvl: Decimal) -> AprProjection:
    """Annualize one day of fees over `tvl` (same unit) into APR and APY percents."""
    if not fee_delta.is_finite() or not tvl.is_finite() or tvl <= 0:
        return AprProjection(apr=ZERO, apy=ZERO)
    try:
        apr = fee_delta * DAYS_PER_YEAR / tvl * HUNDRED
    except (InvalidOperation, Overflow, DivisionByZero):
        return AprProjection(apr=ZERO, apy=ZERO)
    apr = _finite_or_zero(apr)
    return AprProjection(apr=apr, apy=compound_apy(apr))


def select_base_yield(
    fee_projection: AprProjection,
    reward_apr: Decimal | None,
    source: str,
) -> tuple[Decimal, str]:
    if source == APY_SOURCE_REWARD and reward_apr is not None:
        return compound_apy(reward_apr), APY_SOURCE_REWARD
    return fee_projection.apy, APY_SOURCE_FEES
