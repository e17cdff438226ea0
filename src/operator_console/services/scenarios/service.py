from __future__ import annotations

from typing import List

from src.operator_console.domain.models.catalog import ScenarioPayload, ScenarioResponse
from src.operator_console.infra.http.gateway import GatewayClient


class ScenariosService:
    def __init__(self, gateway: GatewayClient) -> None:
        self._gateway = gateway

    async def list(self) -> List[ScenarioResponse]:
        data = await self._gateway.get("/ai/scenarios")
        return [ScenarioResponse.model_validate(item) for item in data]

    async def get(self, scenario_id: str) -> ScenarioResponse:
        return ScenarioResponse.model_validate(await self._gateway.get(f"/ai/scenarios/{scenario_id}"))

    async def create(self, payload: ScenarioPayload) -> ScenarioResponse:
        data = await self._gateway.post(
            "/ai/scenarios/create",
            payload.model_dump(mode="json", exclude_none=True),
        )
        return ScenarioResponse.model_validate(data)

    async def update(self, scenario_id: str, payload: ScenarioPayload) -> ScenarioResponse:
        data = await self._gateway.put(
            f"/ai/scenarios/{scenario_id}",
            payload.model_dump(mode="json", exclude_none=True),
        )
        return ScenarioResponse.model_validate(data)

    async def delete(self, scenario_id: str) -> None:
        await self._gateway.delete(f"/ai/scenarios/{scenario_id}")
