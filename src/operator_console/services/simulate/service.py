from __future__ import annotations

import logging
from typing import Any, Dict

from src.operator_console.domain.models.session import (
    AppendMessageResponse,
    ChatResponse,
    EvaluationResult,
    FormUpdateResponse,
    StartSessionRequest,
    StartSessionResponse,
)
from src.operator_console.infra.http.gateway import GatewayClient

logger = logging.getLogger("simulate")


class SimulateService:
    """Calls into the gateway's AI call-simulation endpoints.

    The gateway owns the conversation, scoring and persistence; this service
    only shapes requests and validates responses.
    """

    def __init__(self, gateway: GatewayClient) -> None:
        self._gateway = gateway

    async def start(self, request: StartSessionRequest) -> StartSessionResponse:
        """Start a new attempt or resume the operator's unfinished one."""

        data = await self._gateway.post("/ai/simulate/start", {}, params=request.to_query_params())
        response = StartSessionResponse.model_validate(data)
        logger.info(
            "Simulation %s: session=%s attempt=%s",
            response.mode,
            response.session_id,
            response.attempt_id,
        )
        return response

    async def chat(self, session_id: str, message: str) -> ChatResponse:
        """Text-only turn: send the operator's line, receive the caller's reply."""

        data = await self._gateway.post(
            "/ai/simulate/chat",
            {},
            params={"session_id": session_id, "message": message},
        )
        return ChatResponse.model_validate(data)

    async def append_message(self, session_id: str, role: str, content: str) -> AppendMessageResponse:
        """Store a dialogue turn without asking the model for a reply."""

        data = await self._gateway.post(
            "/ai/simulate/append_message",
            {"session_id": session_id, "role": role, "content": content},
        )
        return AppendMessageResponse.model_validate(data)

    async def end(self, session_id: str) -> EvaluationResult:
        """Close the simulation and return the gateway's evaluation."""

        data = await self._gateway.post("/ai/simulate/end", {}, params={"session_id": session_id})
        return EvaluationResult.model_validate(data)

    async def update_form(self, session_id: str, form: Dict[str, Any]) -> FormUpdateResponse:
        data = await self._gateway.post("/ai/simulate/form", form, params={"session_id": session_id})
        return FormUpdateResponse.model_validate(data)
