from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    pools_subgraph_url: str
    snapshots_subgraph_url: str
    blocks_subgraph_url: str
    positions_subgraph_url: str
    reward_apr_url: str
    rpc_url: str
    chain: str
    project: str
    pool_url_template: str
    graph_request_timeout_seconds: float
    graph_max_attempts: int
    graph_retry_base_delay_seconds: float
    apr_window_seconds: int
    checkpoint_tolerance_seconds: int
    fallback_block_number: int
    positions_page_size: int
    pools_page_size: int
    pool_concurrency: int
    apy_base_source: str
    tvl_cross_check_tolerance: Decimal
    log_level: str


def get_settings() -> Settings:
    conliq_url = _env(
        "CONLIQ_SUBGRAPH_URL",
        "https://api.thegraph.com/subgraphs/name/stellaswap/pulsar",
    )
    return Settings(
        pools_subgraph_url=_env(
            "POOLS_SUBGRAPH_URL",
            "https://api.studio.thegraph.com/proxy/78672/pulsar/v0.0.1/",
        ),
        snapshots_subgraph_url=_env("SNAPSHOTS_SUBGRAPH_URL", conliq_url),
        blocks_subgraph_url=_env(
            "BLOCKS_SUBGRAPH_URL",
            "https://api.thegraph.com/subgraphs/name/stellaswap/pulsar-blocks",
        ),
        positions_subgraph_url=_env("POSITIONS_SUBGRAPH_URL", conliq_url),
        reward_apr_url=_env("REWARD_APR_URL", "https://apr-api.stellaswap.com/api/v1/eternalAPR"),
        rpc_url=_env("RPC_URL", ""),
        chain=_env("CHAIN", "moonbeam"),
        project=_env("PROJECT", "stellaswap-v3"),
        pool_url_template=_env(
            "POOL_URL_TEMPLATE",
            "https://app.stellaswap.com/pulsar/add/{token0}/{token1}",
        ),
        graph_request_timeout_seconds=float(_env("GRAPH_REQUEST_TIMEOUT_SECONDS", "15")),
        graph_max_attempts=int(_env("GRAPH_MAX_ATTEMPTS", "3")),
        graph_retry_base_delay_seconds=float(_env("GRAPH_RETRY_BASE_DELAY_SECONDS", "1")),
        apr_window_seconds=int(_env("APR_WINDOW_SECONDS", "86400")),
        checkpoint_tolerance_seconds=int(_env("CHECKPOINT_TOLERANCE_SECONDS", "60")),
        fallback_block_number=int(_env("FALLBACK_BLOCK_NUMBER", "2649799")),
        positions_page_size=int(_env("POSITIONS_PAGE_SIZE", "1000")),
        pools_page_size=int(_env("POOLS_PAGE_SIZE", "1000")),
        pool_concurrency=int(_env("POOL_CONCURRENCY", "4")),
        apy_base_source=_env("APY_BASE_SOURCE", "fees"),
        tvl_cross_check_tolerance=Decimal(_env("TVL_CROSS_CHECK_TOLERANCE", "0.25")),
        log_level=_env("LOG_LEVEL", "INFO"),
    )
