from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from cl_yield.api.deps import get_compute_pool_yields_use_case
from cl_yield.api.schemas.yields import YieldRecordResponse, YieldsMetaResponse, YieldsResponse
from cl_yield.application.dto.compute_pool_yields import ComputePoolYieldsInput
from cl_yield.application.use_cases.compute_pool_yields import ComputePoolYieldsUseCase
from cl_yield.infrastructure.clients.subgraph_client import SubgraphQueryError
from cl_yield.infrastructure.clients.token_balance_client import UnsupportedChainError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/v1/yields", response_model=YieldsResponse)
async def list_yields(
    timestamp: int | None = Query(None, gt=0, description="Unix timestamp of the refresh instant."),
    use_case: ComputePoolYieldsUseCase = Depends(get_compute_pool_yields_use_case),
):
    try:
        result = await use_case.execute(ComputePoolYieldsInput(timestamp=timestamp))
    except (httpx.HTTPError, SubgraphQueryError) as exc:
        logger.warning("yields_router: upstream_failed timestamp=%s detail=%s", timestamp, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except UnsupportedChainError as exc:
        logger.error("yields_router: misconfigured detail=%s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return YieldsResponse(
        data=[
            YieldRecordResponse(
                pool=record.pool,
                chain=record.chain,
                project=record.project,
                symbol=record.symbol,
                tvl_usd=float(record.tvl_usd),
                apy_base=float(record.apy_base),
                apy_base_source=record.apy_base_source,
                apr=float(record.apr_fees),
                apy_fees=float(record.apy_fees),
                apr_reward=float(record.apr_reward) if record.apr_reward is not None else None,
                tvl_token0=float(record.tvl_token0),
                fee_delta_token0=float(record.fee_delta_token0),
                underlying_tokens=record.underlying_tokens,
                url=record.url,
            )
            for record in result.records
        ],
        meta=YieldsMetaResponse(
            prior_block_number=result.meta.prior_block_number,
            prior_block_is_fallback=result.meta.prior_block_is_fallback,
            current_block_number=result.meta.current_block_number,
            pools_total=result.meta.pools_total,
            records_dropped=result.meta.records_dropped,
            warnings=result.meta.warnings,
        ),
    )
