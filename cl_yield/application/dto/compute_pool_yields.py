from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from cl_yield.domain.entities.yield_record import APY_SOURCE_FEES, YieldRecord


@dataclass(frozen=True)
class ComputePoolYieldsSettings:
    chain: str
    project: str
    pool_url_template: str
    apr_window_seconds: int = 86400
    checkpoint_tolerance_seconds: int = 60
    fallback_block_number: int = 0
    pool_concurrency: int = 4
    apy_base_source: str = APY_SOURCE_FEES
    tvl_cross_check_tolerance: Decimal = Decimal("0.25")


@dataclass(frozen=True)
class ComputePoolYieldsInput:
    timestamp: int | None = None


@dataclass(frozen=True)
class ComputePoolYieldsMeta:
    prior_block_number: int
    prior_block_is_fallback: bool
    current_block_number: int | None
    pools_total: int
    records_dropped: int
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ComputePoolYieldsOutput:
    records: list[YieldRecord]
    meta: ComputePoolYieldsMeta
