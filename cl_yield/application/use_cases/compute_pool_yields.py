from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal
from time import perf_counter

from cl_yield.application.dto.compute_pool_yields import (
    ComputePoolYieldsInput,
    ComputePoolYieldsMeta,
    ComputePoolYieldsOutput,
    ComputePoolYieldsSettings,
)
from cl_yield.application.dto.token_balances import BalanceCall
from cl_yield.application.ports.pool_data_port import PoolDataPort
from cl_yield.application.ports.reward_apr_port import RewardAprPort
from cl_yield.application.ports.token_balance_port import TokenBalancePort
from cl_yield.domain.entities.pool import Pool, PoolFeeSnapshot, PoolReserves
from cl_yield.domain.entities.yield_record import APY_SOURCES, YieldRecord
from cl_yield.domain.exceptions import InvalidPositionError
from cl_yield.domain.services.apr_projection import project_fee_apr, select_base_yield
from cl_yield.domain.services.pool_aggregation import (
    fee_delta,
    pool_tvl_in_token0,
    relative_deviation,
    reserves_value_in_token0,
)
from cl_yield.domain.services.yield_records import build_yield_record, filter_yield_records


logger = logging.getLogger(__name__)


class ComputePoolYieldsUseCase:
    def __init__(
        self,
        *,
        pool_data_port: PoolDataPort,
        settings: ComputePoolYieldsSettings,
        reward_apr_port: RewardAprPort | None = None,
        token_balance_port: TokenBalancePort | None = None,
    ):
        if settings.apy_base_source not in APY_SOURCES:
            raise ValueError(
                f"apy_base_source must be one of {sorted(APY_SOURCES)}, got '{settings.apy_base_source}'."
            )
        self._pool_data_port = pool_data_port
        self._settings = settings
        self._reward_apr_port = reward_apr_port
        self._token_balance_port = token_balance_port

    async def execute(self, command: ComputePoolYieldsInput) -> ComputePoolYieldsOutput:
        started = perf_counter()
        settings = self._settings
        warnings: list[str] = []
        now = int(command.timestamp) if command.timestamp is not None else int(time.time())

        reward_aprs = await self._fetch_reward_aprs()

        current_block: int | None = None
        if command.timestamp is not None:
            current = await self._pool_data_port.resolve_checkpoint(
                target_age_seconds=0,
                tolerance_seconds=settings.checkpoint_tolerance_seconds,
                fallback_block=settings.fallback_block_number,
                now=now,
            )
            if current.is_fallback:
                # latest state: the fee window must end now, not at the requested instant
                now = int(time.time())
                logger.warning(
                    "compute_pool_yields: timestamp_unresolved requested=%s window_end=%s",
                    command.timestamp,
                    now,
                )
                warnings.append(
                    f"No block found for timestamp {command.timestamp}; using the latest snapshot "
                    f"and a fee window ending at {now}."
                )
            else:
                current_block = current.block_number

        prior = await self._pool_data_port.resolve_checkpoint(
            target_age_seconds=settings.apr_window_seconds,
            tolerance_seconds=settings.checkpoint_tolerance_seconds,
            fallback_block=settings.fallback_block_number,
            now=now,
        )
        if prior.is_fallback:
            warnings.append(f"No block found in the fee window; using fallback block {prior.block_number}.")

        prior_snapshots = {
            snapshot.pool_id: snapshot
            for snapshot in await self._pool_data_port.fetch_pool_fee_snapshots(block_number=prior.block_number)
        }
        pools = await self._pool_data_port.fetch_pools(block_number=current_block)
        reserves = await self._fetch_reserves(pools)

        semaphore = asyncio.Semaphore(max(1, settings.pool_concurrency))

        async def run(pool: Pool) -> YieldRecord | None:
            async with semaphore:
                return await self._compute_pool(
                    pool=pool,
                    prior=prior_snapshots.get(pool.id),
                    reward_apr=reward_aprs.get(pool.id),
                    reserves=reserves.get(pool.id),
                    block_number=current_block,
                )

        tasks = [asyncio.ensure_future(run(pool)) for pool in pools]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        records = filter_yield_records(record for record in results if record is not None)
        dropped = len(pools) - len(records)
        logger.info(
            "compute_pool_yields: done pools=%s records=%s dropped=%s prior_block=%s fallback=%s current_block=%s elapsed_ms=%.1f",
            len(pools),
            len(records),
            dropped,
            prior.block_number,
            prior.is_fallback,
            current_block if current_block is not None else "latest",
            (perf_counter() - started) * 1000,
        )
        return ComputePoolYieldsOutput(
            records=records,
            meta=ComputePoolYieldsMeta(
                prior_block_number=prior.block_number,
                prior_block_is_fallback=prior.is_fallback,
                current_block_number=current_block,
                pools_total=len(pools),
                records_dropped=dropped,
                warnings=warnings,
            ),
        )

    async def _compute_pool(
        self,
        *,
        pool: Pool,
        prior: PoolFeeSnapshot | None,
        reward_apr: Decimal | None,
        reserves: PoolReserves | None,
        block_number: int | None,
    ) -> YieldRecord | None:
        settings = self._settings
        delta = fee_delta(pool, prior)
        positions = await self._pool_data_port.list_open_positions(
            pool_id=pool.id,
            block_number=block_number,
        )
        try:
            tvl_token0 = pool_tvl_in_token0(pool, positions)
        except InvalidPositionError as exc:
            logger.warning(
                "compute_pool_yields: invalid_position pool=%s positions=%s error=%s",
                pool.id,
                len(positions),
                exc,
            )
            return None

        if reserves is not None:
            self._cross_check_tvl(pool=pool, tvl_token0=tvl_token0, reserves=reserves)

        projection = project_fee_apr(delta, tvl_token0)
        apy_base, apy_base_source = select_base_yield(projection, reward_apr, settings.apy_base_source)
        logger.debug(
            "compute_pool_yields: pool=%s positions=%s fee_delta=%s tvl_token0=%s apr=%s apy=%s source=%s",
            pool.id,
            len(positions),
            delta,
            tvl_token0,
            projection.apr,
            apy_base,
            apy_base_source,
        )
        return build_yield_record(
            pool=pool,
            chain=settings.chain,
            project=settings.project,
            url_template=settings.pool_url_template,
            fee_projection=projection,
            apy_base=apy_base,
            apy_base_source=apy_base_source,
            apr_reward=reward_apr,
            tvl_token0=tvl_token0,
            fee_delta_token0=delta,
        )

    def _cross_check_tvl(self, *, pool: Pool, tvl_token0: Decimal, reserves: PoolReserves) -> None:
        reserve_tvl = reserves_value_in_token0(reserves, pool.token0_price)
        deviation = relative_deviation(tvl_token0, reserve_tvl)
        if deviation is not None and deviation > self._settings.tvl_cross_check_tolerance:
            logger.warning(
                "compute_pool_yields: tvl_cross_check_mismatch pool=%s positions_tvl=%s reserves_tvl=%s deviation=%s",
                pool.id,
                tvl_token0,
                reserve_tvl,
                deviation,
            )

    async def _fetch_reward_aprs(self) -> dict[str, Decimal]:
        if self._reward_apr_port is None:
            return {}
        return await self._reward_apr_port.fetch_reward_aprs()

    async def _fetch_reserves(self, pools: list[Pool]) -> dict[str, PoolReserves]:
        if self._token_balance_port is None or not pools:
            return {}

        calls: list[BalanceCall] = []
        for pool in pools:
            calls.append(BalanceCall(target=pool.token0.address, owner=pool.id))
            calls.append(BalanceCall(target=pool.token1.address, owner=pool.id))
        balances = await self._token_balance_port.fetch_balances(calls=calls, chain=self._settings.chain)

        reserves: dict[str, PoolReserves] = {}
        for idx, pool in enumerate(pools):
            balance0 = balances[2 * idx] if 2 * idx < len(balances) else None
            balance1 = balances[2 * idx + 1] if 2 * idx + 1 < len(balances) else None
            reserves[pool.id] = PoolReserves(
                pool_id=pool.id,
                reserve0=Decimal(balance0 or 0) / (Decimal(10) ** pool.token0.decimals),
                reserve1=Decimal(balance1 or 0) / (Decimal(10) ** pool.token1.decimals),
            )
        return reserves
