from __future__ import annotations

from typing import List

from src.operator_console.domain.models.stats import CallHistory, SkillStat, StatsSummary, SystemStats
from src.operator_console.infra.http.gateway import GatewayClient


class StatsService:
    """Read-only call history and statistics views."""

    def __init__(self, gateway: GatewayClient) -> None:
        self._gateway = gateway

    async def history(self, operator_id: int) -> CallHistory:
        data = await self._gateway.get("/ai/history", params={"operator_id": operator_id})
        return CallHistory.model_validate(data)

    async def skills(self, operator_id: int) -> List[SkillStat]:
        data = await self._gateway.get("/ai/stats/skills", params={"operator_id": operator_id})
        return [SkillStat.model_validate(item) for item in data]

    async def summary(self, operator_id: int) -> StatsSummary:
        data = await self._gateway.get("/ai/stats/summary", params={"operator_id": operator_id})
        return StatsSummary.model_validate(data)

    async def system(self) -> SystemStats:
        return SystemStats.model_validate(await self._gateway.get("/stats/system"))
