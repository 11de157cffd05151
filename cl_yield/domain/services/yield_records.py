from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from cl_yield.domain.entities.pool import Pool
from cl_yield.domain.entities.yield_record import YieldRecord
from cl_yield.domain.services.apr_projection import AprProjection


logger = logging.getLogger(__name__)


def build_yield_record(
    *,
    pool: Pool,
    chain: str,
    project: str,
    url_template: str,
    fee_projection: AprProjection,
    apy_base: Decimal,
    apy_base_source: str,
    apr_reward: Decimal | None,
    tvl_token0: Decimal,
    fee_delta_token0: Decimal,
) -> YieldRecord:
    return YieldRecord(
        pool=pool.id,
        chain=chain,
        project=project,
        symbol=pool.symbol,
        tvl_usd=pool.total_value_locked_usd,
        apy_base=apy_base,
        apy_base_source=apy_base_source,
        apr_fees=fee_projection.apr,
        apy_fees=fee_projection.apy,
        apr_reward=apr_reward,
        tvl_token0=tvl_token0,
        fee_delta_token0=fee_delta_token0,
        underlying_tokens=[pool.token0.address, pool.token1.address],
        url=url_template.format(token0=pool.token0.address, token1=pool.token1.address),
    )


def is_complete_record(record: YieldRecord) -> bool:
    return bool(
        record.pool
        and record.chain
        and record.project
        and record.symbol
        and record.underlying_tokens
        and all(record.underlying_tokens)
        and record.url
    )


def has_finite_numbers(record: YieldRecord) -> bool:
    values = [
        record.tvl_usd,
        record.apy_base,
        record.apr_fees,
        record.apy_fees,
        record.tvl_token0,
        record.fee_delta_token0,
    ]
    if record.apr_reward is not None:
        values.append(record.apr_reward)
    return all(value is not None and value.is_finite() for value in values)


def filter_yield_records(records: Iterable[YieldRecord]) -> list[YieldRecord]:
    kept: list[YieldRecord] = []
    for record in records:
        if is_complete_record(record) and has_finite_numbers(record):
            kept.append(record)
        else:
            logger.debug("yield_records: dropped_record pool=%s", record.pool)
    return kept
