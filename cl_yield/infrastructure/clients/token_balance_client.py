from __future__ import annotations

import logging

import httpx

from cl_yield.application.dto.token_balances import BalanceCall


logger = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)
ABI_WORD_HEX = 64


class UnsupportedChainError(RuntimeError):
    pass


def encode_balance_of(owner: str) -> str:
    return BALANCE_OF_SELECTOR + owner.lower().replace("0x", "").zfill(ABI_WORD_HEX)


def decode_uint(hex_data: str) -> int:
    raw = hex_data[2:] if hex_data.startswith("0x") else hex_data
    return int(raw[:ABI_WORD_HEX], 16)


class TokenBalanceClient:
    """ERC-20 `balanceOf` reads sent as one JSON-RPC batch of `eth_call`s.

    Calls that fail individually come back as `None`; a failure of the
    whole batch request propagates.
    """

    def __init__(
        self,
        *,
        rpc_urls: dict[str, str],
        timeout_seconds: float,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._rpc_urls = rpc_urls
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    async def fetch_balances(self, *, calls: list[BalanceCall], chain: str) -> list[int | None]:
        if not calls:
            return []
        rpc_url = str(self._rpc_urls.get(chain) or "").strip()
        if not rpc_url:
            raise UnsupportedChainError(f"Missing RPC url for chain '{chain}'.")

        payload = [
            {
                "jsonrpc": "2.0",
                "id": idx,
                "method": "eth_call",
                "params": [{"to": call.target, "data": encode_balance_of(call.owner)}, "latest"],
            }
            for idx, call in enumerate(calls)
        ]
        responses = await self._post(rpc_url, payload)
        if isinstance(responses, dict):
            responses = [responses]

        by_id = {item.get("id"): item for item in responses if isinstance(item, dict)}
        balances: list[int | None] = []
        failed = 0
        for idx in range(len(calls)):
            balance = self._parse_result(by_id.get(idx))
            if balance is None:
                failed += 1
            balances.append(balance)

        logger.info(
            "token_balance_client: fetched_balances chain=%s requested=%s failed=%s",
            chain,
            len(calls),
            failed,
        )
        return balances

    @staticmethod
    def _parse_result(item: dict | None) -> int | None:
        if not item or "error" in item:
            return None
        raw = item.get("result")
        if not isinstance(raw, str) or len(raw) <= 2:
            return None
        try:
            return decode_uint(raw)
        except ValueError:
            return None

    async def _post(self, url: str, payload: list[dict]) -> list | dict:
        if self._http_client is not None:
            response = await self._http_client.post(url, json=payload)
            response.raise_for_status()
            return response.json()
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            return response.json()
