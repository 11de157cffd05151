from __future__ import annotations

from functools import lru_cache

from cl_yield.application.dto.compute_pool_yields import ComputePoolYieldsSettings
from cl_yield.application.use_cases.compute_pool_yields import ComputePoolYieldsUseCase
from cl_yield.infrastructure.clients.reward_apr_client import RewardAprClient
from cl_yield.infrastructure.clients.subgraph_client import SubgraphClient, SubgraphClientSettings
from cl_yield.infrastructure.clients.token_balance_client import TokenBalanceClient
from cl_yield.shared.config import get_settings


@lru_cache(maxsize=1)
def _get_subgraph_client() -> SubgraphClient:
    settings = get_settings()
    return SubgraphClient(
        SubgraphClientSettings(
            pools_url=settings.pools_subgraph_url,
            snapshots_url=settings.snapshots_subgraph_url,
            blocks_url=settings.blocks_subgraph_url,
            positions_url=settings.positions_subgraph_url,
            timeout_seconds=settings.graph_request_timeout_seconds,
            max_attempts=settings.graph_max_attempts,
            retry_base_delay_seconds=settings.graph_retry_base_delay_seconds,
            pools_page_size=settings.pools_page_size,
            positions_page_size=settings.positions_page_size,
        )
    )


@lru_cache(maxsize=1)
def _get_reward_apr_client() -> RewardAprClient | None:
    settings = get_settings()
    if not settings.reward_apr_url:
        return None
    return RewardAprClient(
        url=settings.reward_apr_url,
        timeout_seconds=settings.graph_request_timeout_seconds,
    )


@lru_cache(maxsize=1)
def _get_token_balance_client() -> TokenBalanceClient | None:
    settings = get_settings()
    if not settings.rpc_url:
        return None
    return TokenBalanceClient(
        rpc_urls={settings.chain: settings.rpc_url},
        timeout_seconds=settings.graph_request_timeout_seconds,
    )


def get_compute_pool_yields_use_case() -> ComputePoolYieldsUseCase:
    settings = get_settings()
    return ComputePoolYieldsUseCase(
        pool_data_port=_get_subgraph_client(),
        reward_apr_port=_get_reward_apr_client(),
        token_balance_port=_get_token_balance_client(),
        settings=ComputePoolYieldsSettings(
            chain=settings.chain,
            project=settings.project,
            pool_url_template=settings.pool_url_template,
            apr_window_seconds=settings.apr_window_seconds,
            checkpoint_tolerance_seconds=settings.checkpoint_tolerance_seconds,
            fallback_block_number=settings.fallback_block_number,
            pool_concurrency=settings.pool_concurrency,
            apy_base_source=settings.apy_base_source,
            tvl_cross_check_tolerance=settings.tvl_cross_check_tolerance,
        ),
    )
