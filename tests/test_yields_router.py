from __future__ import annotations

from decimal import Decimal

import httpx
from fastapi.testclient import TestClient

from cl_yield.api.deps import get_compute_pool_yields_use_case
from cl_yield.application.dto.compute_pool_yields import (
    ComputePoolYieldsMeta,
    ComputePoolYieldsOutput,
    ComputePoolYieldsSettings,
)
from cl_yield.application.use_cases.compute_pool_yields import ComputePoolYieldsUseCase
from cl_yield.domain.entities.yield_record import YieldRecord
from cl_yield.infrastructure.clients.subgraph_client import SubgraphClient, SubgraphClientSettings
from cl_yield.main import app


class FakeComputePoolYieldsUseCase:
    def __init__(self):
        self.commands = []

    async def execute(self, command):
        self.commands.append(command)
        return ComputePoolYieldsOutput(
            records=[
                YieldRecord(
                    pool="0xpool",
                    chain="moonbeam",
                    project="stellaswap-v3",
                    symbol="WGLMR-USDC",
                    tvl_usd=Decimal("2500.5"),
                    apy_base=Decimal("12.75"),
                    apy_base_source="fees",
                    apr_fees=Decimal("12"),
                    apy_fees=Decimal("12.75"),
                    apr_reward=None,
                    tvl_token0=Decimal("900"),
                    fee_delta_token0=Decimal("0.25"),
                    underlying_tokens=["0xt0", "0xt1"],
                    url="https://app.stellaswap.com/pulsar/add/0xt0/0xt1",
                )
            ],
            meta=ComputePoolYieldsMeta(
                prior_block_number=1002,
                prior_block_is_fallback=False,
                current_block_number=1001,
                pools_total=2,
                records_dropped=1,
                warnings=["warn"],
            ),
        )


class FailingComputePoolYieldsUseCase:
    async def execute(self, command):
        request = httpx.Request("POST", "https://subgraph.test")
        raise httpx.ConnectError("connection refused", request=request)


def test_router_returns_records_with_meta():
    fake = FakeComputePoolYieldsUseCase()
    app.dependency_overrides[get_compute_pool_yields_use_case] = lambda: fake

    client = TestClient(app)
    response = client.get("/v1/yields", params={"timestamp": 1700000000})

    assert response.status_code == 200
    payload = response.json()
    record = payload["data"][0]
    assert record["pool"] == "0xpool"
    assert record["tvlUsd"] == 2500.5
    assert record["apyBase"] == 12.75
    assert record["apyBaseSource"] == "fees"
    assert record["apr"] == 12.0
    assert record["aprReward"] is None
    assert record["underlyingTokens"] == ["0xt0", "0xt1"]
    assert payload["meta"]["prior_block_number"] == 1002
    assert payload["meta"]["records_dropped"] == 1
    assert fake.commands[0].timestamp == 1700000000

    app.dependency_overrides.clear()


def test_router_rejects_non_positive_timestamp():
    app.dependency_overrides[get_compute_pool_yields_use_case] = lambda: FakeComputePoolYieldsUseCase()

    client = TestClient(app)
    response = client.get("/v1/yields", params={"timestamp": 0})

    assert response.status_code == 422

    app.dependency_overrides.clear()


def test_router_maps_upstream_failure_to_bad_gateway():
    app.dependency_overrides[get_compute_pool_yields_use_case] = lambda: FailingComputePoolYieldsUseCase()

    client = TestClient(app)
    response = client.get("/v1/yields")

    assert response.status_code == 502

    app.dependency_overrides.clear()


async def _no_sleep(_seconds: float) -> None:
    return None


def test_router_maps_malformed_subgraph_response_to_bad_gateway():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>gateway</html>")

    subgraph = SubgraphClient(
        SubgraphClientSettings(
            pools_url="https://subgraph.test/pools",
            snapshots_url="https://subgraph.test/snapshots",
            blocks_url="https://subgraph.test/blocks",
            positions_url="https://subgraph.test/positions",
            timeout_seconds=5,
        ),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        sleep=_no_sleep,
    )
    use_case = ComputePoolYieldsUseCase(
        pool_data_port=subgraph,
        settings=ComputePoolYieldsSettings(
            chain="moonbeam",
            project="stellaswap-v3",
            pool_url_template="https://app.stellaswap.com/pulsar/add/{token0}/{token1}",
        ),
    )
    app.dependency_overrides[get_compute_pool_yields_use_case] = lambda: use_case

    client = TestClient(app)
    response = client.get("/v1/yields")

    assert response.status_code == 502
    assert "Malformed GraphQL response" in response.json()["detail"]

    app.dependency_overrides.clear()
