from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from src.operator_console.domain.models.catalog import SystemSettings
from src.operator_console.infra.http.gateway import GatewayClient


class SettingsService:
    def __init__(self, gateway: GatewayClient) -> None:
        self._gateway = gateway

    async def get(self) -> SystemSettings:
        return SystemSettings.model_validate(await self._gateway.get("/api/settings"))

    async def update(self, settings: SystemSettings) -> str:
        data = await self._gateway.put("/api/settings", settings.model_dump(exclude_none=True))
        return data.get("message", "")

    async def test_email(self) -> str:
        data = await self._gateway.post("/api/settings/test-email", {})
        return data.get("message", "")

    async def clear_data(self) -> str:
        data = await self._gateway.post("/admin/clear-all", {})
        return data.get("message", "")

    async def reset(self) -> Tuple[str, Optional[SystemSettings]]:
        """Restore defaults; returns the message and the new settings if sent."""

        data: Dict[str, Any] = await self._gateway.post("/api/settings/reset", {})
        restored = data.get("settings")
        return data.get("message", ""), SystemSettings.model_validate(restored) if restored else None
