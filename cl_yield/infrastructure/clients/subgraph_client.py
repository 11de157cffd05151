from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from cl_yield.domain.entities.pool import HistoricalCheckpoint, Pool, PoolFeeSnapshot, Position
from cl_yield.infrastructure.clients.pagination import PagedQuery
from cl_yield.infrastructure.mappers.subgraph_mapper import (
    map_row_to_pool,
    map_row_to_pool_fee_snapshot,
    map_row_to_position,
)


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class SubgraphQueryError(RuntimeError):
    """The subgraph answered with GraphQL errors or without a data object."""


@dataclass(frozen=True)
class SubgraphClientSettings:
    pools_url: str
    snapshots_url: str
    blocks_url: str
    positions_url: str
    timeout_seconds: float
    max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    pools_page_size: int = 1000
    positions_page_size: int = 1000


POOL_FIELDS = """
    id
    volumeUSD
    token0 { id symbol decimals }
    token1 { id symbol decimals }
    totalValueLockedToken0
    totalValueLockedToken1
    totalValueLockedUSD
    feesUSD
    feesToken0
    feesToken1
    token0Price
    token1Price
    tick
    liquidity
"""

POOL_FEE_FIELDS = """
    id
    feesToken0
    feesToken1
    token0Price
"""

POSITION_FIELDS = """
    id
    owner
    tickLower { tickIdx }
    tickUpper { tickIdx }
    liquidity
    depositedToken0
    depositedToken1
    token0 { decimals }
    token1 { decimals }
    pool { id token0Price }
"""

BLOCK_IN_WINDOW_QUERY = """
query BlockInWindow($from: BigInt!, $to: BigInt!) {
  blocks(
    first: 1,
    orderBy: timestamp,
    orderDirection: desc,
    where: { timestamp_gt: $from, timestamp_lt: $to }
  ) {
    number
    timestamp
  }
}
"""


def _block_clause(block_number: int | None) -> tuple[str, str]:
    if block_number is None:
        return "", ""
    return ", $block: Int!", ", block: { number: $block }"


def _pools_query(*, fields: str, order_by: str, order_direction: str, block_number: int | None) -> str:
    block_var, block_arg = _block_clause(block_number)
    return f"""
    query Pools($first: Int!, $skip: Int!{block_var}) {{
      pools(first: $first, skip: $skip, orderBy: {order_by}, orderDirection: {order_direction}{block_arg}) {{
        {fields}
      }}
    }}
    """


def _positions_query(block_number: int | None) -> str:
    block_var, block_arg = _block_clause(block_number)
    return f"""
    query OpenPositions($pool: String!, $first: Int!, $skip: Int!{block_var}) {{
      positions(first: $first, skip: $skip, where: {{ liquidity_gt: 0, pool: $pool }}{block_arg}) {{
        {POSITION_FIELDS}
      }}
    }}
    """


class SubgraphClient:
    def __init__(
        self,
        settings: SubgraphClientSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._settings = settings
        self._http_client = http_client
        self._sleep = sleep

    async def fetch(self, endpoint: str, query: str, variables: dict | None = None) -> dict:
        """Run a GraphQL query, retrying transient failures with linear backoff.

        After failed attempt `n` the client waits `n * retry_base_delay_seconds`.
        The error of the last attempt is re-raised unchanged.
        """
        attempts = max(1, self._settings.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await self._post_graphql(url=endpoint, query=query, variables=variables or {})
            except (httpx.HTTPError, SubgraphQueryError) as exc:
                logger.warning(
                    "subgraph_client: graphql_attempt_failed attempt=%s/%s url=%s error=%s",
                    attempt,
                    attempts,
                    endpoint,
                    exc,
                )
                if attempt == attempts:
                    raise
                await self._sleep(attempt * self._settings.retry_base_delay_seconds)
        raise RuntimeError("GraphQL retry loop exited without a result.")

    async def resolve_checkpoint(
        self,
        *,
        target_age_seconds: int,
        tolerance_seconds: int,
        fallback_block: int,
        now: int | None = None,
    ) -> HistoricalCheckpoint:
        now_ts = int(now) if now is not None else int(time.time())
        target = now_ts - int(target_age_seconds)
        data = await self.fetch(
            self._settings.blocks_url,
            BLOCK_IN_WINDOW_QUERY,
            {"from": str(target - int(tolerance_seconds)), "to": str(target)},
        )
        rows = data.get("blocks") or []
        number = rows[0].get("number") if rows else None
        if number is None:
            logger.info(
                "subgraph_client: checkpoint_fallback target_ts=%s tolerance=%s fallback_block=%s",
                target,
                tolerance_seconds,
                fallback_block,
            )
            return HistoricalCheckpoint(block_number=int(fallback_block), timestamp=None, is_fallback=True)

        timestamp = rows[0].get("timestamp")
        return HistoricalCheckpoint(
            block_number=int(number),
            timestamp=int(timestamp) if timestamp is not None else None,
        )

    async def fetch_pools(self, *, block_number: int | None = None) -> list[Pool]:
        query = _pools_query(
            fields=POOL_FIELDS,
            order_by="totalValueLockedUSD",
            order_direction="desc",
            block_number=block_number,
        )
        rows = await self._collect_pages(
            url=self._settings.pools_url,
            query=query,
            entity="pools",
            variables=self._block_variables(block_number),
            page_size=self._settings.pools_page_size,
        )
        pools = [map_row_to_pool(row) for row in rows]
        logger.info(
            "subgraph_client: fetched_pools count=%s block=%s",
            len(pools),
            block_number if block_number is not None else "latest",
        )
        return pools

    async def fetch_pool_fee_snapshots(self, *, block_number: int) -> list[PoolFeeSnapshot]:
        query = _pools_query(
            fields=POOL_FEE_FIELDS,
            order_by="id",
            order_direction="asc",
            block_number=block_number,
        )
        rows = await self._collect_pages(
            url=self._settings.snapshots_url,
            query=query,
            entity="pools",
            variables=self._block_variables(block_number),
            page_size=self._settings.pools_page_size,
        )
        snapshots = [map_row_to_pool_fee_snapshot(row) for row in rows]
        logger.info(
            "subgraph_client: fetched_pool_fee_snapshots count=%s block=%s",
            len(snapshots),
            block_number,
        )
        return snapshots

    def position_pages(self, *, pool_id: str, block_number: int | None = None) -> PagedQuery[Position]:
        query = _positions_query(block_number)
        variables = {"pool": pool_id.lower(), **self._block_variables(block_number)}

        async def fetch_page(first: int, skip: int) -> list[Position]:
            data = await self.fetch(
                self._settings.positions_url,
                query,
                {**variables, "first": first, "skip": skip},
            )
            return [map_row_to_position(row) for row in data.get("positions") or []]

        return PagedQuery(fetch_page, page_size=self._settings.positions_page_size)

    async def list_open_positions(self, *, pool_id: str, block_number: int | None = None) -> list[Position]:
        positions = await self.position_pages(pool_id=pool_id, block_number=block_number).collect()
        logger.debug(
            "subgraph_client: fetched_positions pool=%s count=%s",
            pool_id,
            len(positions),
        )
        return positions

    async def _collect_pages(
        self,
        *,
        url: str,
        query: str,
        entity: str,
        variables: dict,
        page_size: int,
    ) -> list[dict]:
        async def fetch_page(first: int, skip: int) -> list[dict]:
            data = await self.fetch(url, query, {**variables, "first": first, "skip": skip})
            return list(data.get(entity) or [])

        return await PagedQuery(fetch_page, page_size=page_size).collect()

    @staticmethod
    def _block_variables(block_number: int | None) -> dict:
        return {} if block_number is None else {"block": int(block_number)}

    async def _post_graphql(self, *, url: str, query: str, variables: dict) -> dict:
        async with self._http() as client:
            response = await client.post(url, json={"query": query, "variables": variables})
            response.raise_for_status()
            try:
                payload = response.json()
            except ValueError as exc:
                raise SubgraphQueryError(f"Malformed GraphQL response: {exc}") from exc

        if not isinstance(payload, dict):
            raise SubgraphQueryError("Unexpected GraphQL payload.")
        errors = payload.get("errors") or []
        if errors:
            message = " | ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
            )
            raise SubgraphQueryError(message)
        data = payload.get("data")
        if data is None:
            raise SubgraphQueryError("GraphQL payload has no data.")
        return data

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
            yield client
