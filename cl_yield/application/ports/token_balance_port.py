from __future__ import annotations

from typing import Protocol

from cl_yield.application.dto.token_balances import BalanceCall


class TokenBalancePort(Protocol):
    async def fetch_balances(self, *, calls: list[BalanceCall], chain: str) -> list[int | None]:
        ...
