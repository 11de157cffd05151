from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


APY_SOURCE_FEES = "fees"
APY_SOURCE_REWARD = "reward"
APY_SOURCES = {APY_SOURCE_FEES, APY_SOURCE_REWARD}


@dataclass(frozen=True)
class YieldRecord:
    pool: str
    chain: str
    project: str
    symbol: str
    tvl_usd: Decimal
    apy_base: Decimal
    apy_base_source: str
    apr_fees: Decimal
    apy_fees: Decimal
    apr_reward: Decimal | None
    tvl_token0: Decimal
    fee_delta_token0: Decimal
    underlying_tokens: list[str]
    url: str
