from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

import httpx


logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class RewardAprClient:
    """Reads farming APRs published by the protocol's APR API.

    The API answers `{"result": {"farmPools": {<pool>: {"lastApr": <fraction>}}}}`.
    Rates are returned in percent, keyed by lower-cased pool id. Any failure
    yields an empty mapping: reward APRs are optional.
    """

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    async def fetch_reward_aprs(self) -> dict[str, Decimal]:
        if not self._url:
            return {}
        try:
            payload = await self._get()
            farm_pools = ((payload or {}).get("result") or {}).get("farmPools") or {}
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("reward_apr_client: fetch_failed url=%s error=%s", self._url, exc)
            return {}

        aprs: dict[str, Decimal] = {}
        for pool_id, entry in farm_pools.items():
            raw = entry.get("lastApr") if isinstance(entry, dict) else None
            if raw is None:
                continue
            try:
                value = Decimal(str(raw))
            except InvalidOperation:
                logger.debug("reward_apr_client: invalid_apr pool=%s value=%s", pool_id, raw)
                continue
            if not value.is_finite():
                continue
            aprs[str(pool_id).lower()] = value * HUNDRED

        logger.info("reward_apr_client: fetched_reward_aprs count=%s", len(aprs))
        return aprs

    async def _get(self) -> dict:
        if self._http_client is not None:
            response = await self._http_client.get(self._url)
            response.raise_for_status()
            return response.json()
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            response = await client.get(self._url)
            response.raise_for_status()
            return response.json()
