from __future__ import annotations

from typing import Protocol

from cl_yield.domain.entities.pool import HistoricalCheckpoint, Pool, PoolFeeSnapshot, Position


class PoolDataPort(Protocol):
    async def fetch_pools(self, *, block_number: int | None = None) -> list[Pool]:
        ...

    async def fetch_pool_fee_snapshots(self, *, block_number: int) -> list[PoolFeeSnapshot]:
        ...

    async def resolve_checkpoint(
        self,
        *,
        target_age_seconds: int,
        tolerance_seconds: int,
        fallback_block: int,
        now: int | None = None,
    ) -> HistoricalCheckpoint:
        ...

    async def list_open_positions(
        self,
        *,
        pool_id: str,
        block_number: int | None = None,
    ) -> list[Position]:
        ...
