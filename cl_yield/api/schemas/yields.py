from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class YieldRecordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pool: str = Field(..., description="Pool address.")
    chain: str = Field(..., description="Chain tag.")
    project: str = Field(..., description="Project tag.")
    symbol: str = Field(..., description="token0Symbol-token1Symbol.")
    tvl_usd: float = Field(..., alias="tvlUsd", description="Pool TVL in USD as reported by the subgraph.")
    apy_base: float = Field(..., alias="apyBase", description="Base APY in percent.")
    apy_base_source: str = Field(..., alias="apyBaseSource", description="fees|reward: where apyBase comes from.")
    apr: float = Field(..., description="Fee APR in percent (fee delta over position TVL).")
    apy_fees: float = Field(..., alias="apyFees", description="Daily-compounded fee APR in percent.")
    apr_reward: float | None = Field(None, alias="aprReward", description="Oracle reward APR in percent.")
    tvl_token0: float = Field(..., alias="tvlToken0", description="Open-position TVL in token0 units.")
    fee_delta_token0: float = Field(
        ...,
        alias="feeDeltaToken0",
        description="Fees accrued over the window in token0 units.",
    )
    underlying_tokens: list[str] = Field(..., alias="underlyingTokens")
    url: str


class YieldsMetaResponse(BaseModel):
    prior_block_number: int
    prior_block_is_fallback: bool
    current_block_number: int | None
    pools_total: int
    records_dropped: int
    warnings: list[str]


class YieldsResponse(BaseModel):
    data: list[YieldRecordResponse]
    meta: YieldsMetaResponse
