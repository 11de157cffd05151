from __future__ import annotations

from decimal import Decimal
from typing import Protocol


class RewardAprPort(Protocol):
    async def fetch_reward_aprs(self) -> dict[str, Decimal]:
        ...
