from __future__ import annotations

import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from cl_yield.application.dto.token_balances import BalanceCall
from cl_yield.infrastructure.clients.reward_apr_client import RewardAprClient
from cl_yield.infrastructure.clients.token_balance_client import (
    TokenBalanceClient,
    UnsupportedChainError,
    decode_uint,
    encode_balance_of,
)


APR_URL = "https://apr.test/api/v1/eternalAPR"
RPC_URL = "https://rpc.test"


def _fetch_aprs(handler) -> dict[str, Decimal]:
    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = RewardAprClient(url=APR_URL, timeout_seconds=5, http_client=http)
            return await client.fetch_reward_aprs()

    return asyncio.run(main())


def _fetch_balances(handler, calls: list[BalanceCall], chain: str = "moonbeam") -> list[int | None]:
    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = TokenBalanceClient(rpc_urls={"moonbeam": RPC_URL}, timeout_seconds=5, http_client=http)
            return await client.fetch_balances(calls=calls, chain=chain)

    return asyncio.run(main())


class TestRewardAprClient:
    def test_converts_fractions_to_percent_keyed_by_pool(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "result": {
                        "farmPools": {
                            "0xABC": {"lastApr": 0.125},
                            "0xdef": {"lastApr": "0.5"},
                            "0xnone": {},
                        }
                    }
                },
            )

        aprs = _fetch_aprs(handler)

        assert aprs == {"0xabc": Decimal("12.500"), "0xdef": Decimal("50.0")}

    def test_failure_yields_empty_mapping(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        assert _fetch_aprs(handler) == {}

    def test_unexpected_payload_yields_empty_mapping(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"result": None})

        assert _fetch_aprs(handler) == {}

    def test_blank_url_skips_request(self):
        client = RewardAprClient(url="", timeout_seconds=5)
        assert asyncio.run(client.fetch_reward_aprs()) == {}


class TestTokenBalanceClient:
    def test_encodes_balance_of_calldata(self):
        data = encode_balance_of("0xC36442b4a4522E871399CD717aBDD847Ab11FE88")
        assert data == "0x70a08231000000000000000000000000c36442b4a4522e871399cd717abdd847ab11fe88"

    def test_decode_uint(self):
        assert decode_uint("0x" + "0" * 62 + "ff") == 255

    def test_batch_tolerates_individual_failures(self):
        calls = [
            BalanceCall(target="0xt0", owner="0xpool"),
            BalanceCall(target="0xt1", owner="0xpool"),
            BalanceCall(target="0xt2", owner="0xpool"),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            batch = json.loads(request.content)
            assert [item["method"] for item in batch] == ["eth_call"] * 3
            assert batch[0]["params"][0]["to"] == "0xt0"
            # answers out of order on purpose
            return httpx.Response(
                200,
                json=[
                    {"jsonrpc": "2.0", "id": 2, "result": "0x"},
                    {"jsonrpc": "2.0", "id": 0, "result": "0x" + format(10**18, "064x")},
                    {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "execution reverted"}},
                ],
            )

        assert _fetch_balances(handler, calls) == [10**18, None, None]

    def test_empty_batch_skips_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert _fetch_balances(handler, []) == []

    def test_unknown_chain_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(UnsupportedChainError):
            _fetch_balances(handler, [BalanceCall(target="0xt0", owner="0xpool")], chain="ethereum")
