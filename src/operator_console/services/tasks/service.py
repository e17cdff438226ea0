from __future__ import annotations

from typing import List

from src.operator_console.domain.models.catalog import (
    TaskDashboard,
    TaskPayload,
    TaskResponse,
    TaskStartResponse,
)
from src.operator_console.infra.http.gateway import GatewayClient


class TasksService:
    """Training tasks assigned to operators, plus the operator's dashboard."""

    def __init__(self, gateway: GatewayClient) -> None:
        self._gateway = gateway

    async def list(self) -> List[TaskResponse]:
        data = await self._gateway.get("/ai/tasks")
        return [TaskResponse.model_validate(item) for item in data]

    async def dashboard(self, operator_id: int) -> TaskDashboard:
        data = await self._gateway.get("/ai/tasks/dashboard", params={"operator_id": operator_id})
        return TaskDashboard.model_validate(data)

    async def create(self, payload: TaskPayload) -> TaskResponse:
        data = await self._gateway.post(
            "/ai/tasks/create",
            payload.model_dump(by_alias=True, exclude_none=True),
        )
        return TaskResponse.model_validate(data)

    async def update(self, task_id: str, payload: TaskPayload) -> TaskResponse:
        data = await self._gateway.put(
            f"/ai/tasks/{task_id}",
            payload.model_dump(by_alias=True, exclude_none=True),
        )
        return TaskResponse.model_validate(data)

    async def delete(self, task_id: str) -> None:
        await self._gateway.delete(f"/ai/tasks/{task_id}")

    async def start(self, task_id: str, operator_id: int) -> TaskStartResponse:
        data = await self._gateway.post(
            f"/ai/tasks/{task_id}/start",
            {},
            params={"operator_id": operator_id},
        )
        return TaskStartResponse.model_validate(data)
