from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from src.operator_console.domain.models.session import (
    AppendMessageResponse,
    EvaluationResult,
    FormUpdateResponse,
    StartSessionResponse,
)
from src.operator_console.domain.models.user import UserResponse
from src.operator_console.infra.auth.token_store import InMemoryTokenStore
from src.operator_console.infra.http.gateway import GatewayClient, GatewayConfig, GatewayError
from src.operator_console.session.guard import SessionGuard

START_RESPONSE: Dict[str, Any] = {
    "session_id": "sess-1",
    "attempt_id": "att-1",
    "task_id": "task-1",
    "attempt_number": 1,
    "training": "Chest pain",
    "dialogue": [],
    "mode": "new",
}

END_RESPONSE: Dict[str, Any] = {
    "session_id": "sess-1",
    "attempt_id": "att-1",
    "score": 82,
    "status": "completed",
    "evaluation": {"operator_empathy": 90},
}

OPERATOR: Dict[str, Any] = {
    "id": 7,
    "email": "jana@example.com",
    "first_name": "Jana",
    "last_name": "Kovac",
    "role": "OPERATOR",
    "phone": "+421900111222",
}


class GatewayState:
    """What the fake gateway received and how it should answer."""

    def __init__(self) -> None:
        self.requests: List[Dict[str, Any]] = []
        self.responses: Dict[str, Any] = {
            "start": dict(START_RESPONSE),
            "end": dict(END_RESPONSE),
            "login": {"access_token": "fresh-token", "token_type": "bearer"},
            "me": dict(OPERATOR),
        }
        self.failures: Dict[str, int] = {}
        self.details: Dict[str, str] = {}
        # Endpoint name -> non-JSON body sent with a 200 instead of the usual reply.
        self.raw_bodies: Dict[str, str] = {}

    def record(self, name: str, request: Request, body: Any = None) -> None:
        self.requests.append(
            {
                "name": name,
                "path": request.url.path,
                "params": dict(request.query_params),
                "headers": dict(request.headers),
                "body": body,
            }
        )
        status = self.failures.get(name)
        if status:
            raise HTTPException(status_code=status, detail=self.details.get(name, f"{name} rejected"))

    def reply(self, name: str, payload: Any) -> Any:
        if name in self.raw_bodies:
            return PlainTextResponse(self.raw_bodies[name])
        return payload

    def named(self, name: str) -> List[Dict[str, Any]]:
        return [item for item in self.requests if item["name"] == name]


def build_gateway(state: GatewayState) -> FastAPI:
    app = FastAPI()

    @app.post("/ai/simulate/start")
    async def start(request: Request):
        state.record("start", request)
        return state.reply("start", state.responses["start"])

    @app.post("/ai/simulate/chat")
    async def chat(request: Request):
        state.record("chat", request)
        message = request.query_params["message"]
        return {
            "reply": "Please hurry",
            "session_id": request.query_params["session_id"],
            "attempt_id": "att-1",
            "dialogue_append": [
                {"role": "operator", "message": message, "timestamp": "t1"},
                {"role": "caller", "message": "Please hurry", "timestamp": "t2"},
            ],
        }

    @app.post("/ai/simulate/append_message")
    async def append_message(request: Request, payload: Dict[str, Any] = Body(...)):
        state.record("append", request, payload)
        return {
            "status": "ok",
            "appended": {"role": payload["role"], "message": payload["content"], "timestamp": "t"},
        }

    @app.post("/ai/simulate/end")
    async def end(request: Request):
        state.record("end", request)
        return state.reply("end", state.responses["end"])

    @app.post("/ai/simulate/form")
    async def form(request: Request, payload: Dict[str, Any] = Body(...)):
        state.record("form", request, payload)
        return state.reply("form", {"ok": True, "form": payload})

    @app.post("/api/auth/login")
    async def login(request: Request, payload: Dict[str, Any] = Body(...)):
        state.record("login", request, payload)
        return state.responses["login"]

    @app.post("/api/auth/verify-2fa")
    async def verify_2fa(request: Request, payload: Dict[str, Any] = Body(...)):
        state.record("verify-2fa", request, payload)
        return {"access_token": "2fa-token", "token_type": "bearer"}

    @app.post("/api/auth/resend-2fa")
    async def resend_2fa(request: Request, payload: Dict[str, Any] = Body(...)):
        state.record("resend-2fa", request, payload)
        return {"message": "sent"}

    @app.get("/api/auth/me")
    async def me(request: Request):
        state.record("me", request)
        return state.responses["me"]

    @app.post("/api/auth/validate-reset-token")
    async def validate_reset_token(request: Request, payload: Dict[str, Any] = Body(...)):
        state.record("validate-reset-token", request, payload)
        return {"valid": payload["token"] == "good"}

    @app.get("/users/overview")
    async def users_overview(request: Request):
        state.record("users", request)
        return [OPERATOR]

    @app.put("/api/users/{user_id}")
    async def update_user(user_id: int, request: Request, payload: Dict[str, Any] = Body(...)):
        state.record("update-user", request, payload)
        return {**OPERATOR, "id": user_id, **payload}

    @app.delete("/api/users/{user_id}")
    async def delete_user(user_id: int, request: Request):
        state.record("delete-user", request)
        return {}

    @app.get("/ai/scenarios/{scenario_id}")
    async def get_scenario(scenario_id: str, request: Request):
        state.record("scenario", request)
        return {
            "id": scenario_id,
            "title": "Chest pain",
            "caller": "Wife",
            "age": 64,
            "duration": "5 min",
            "symptoms": ["chest pain"],
            "severity": "CRITICAL",
            "status": "ACTIVE",
        }

    @app.post("/ai/tasks/create")
    async def create_task(request: Request, payload: Dict[str, Any] = Body(...)):
        state.record("create-task", request, payload)
        return {"id": "task-9", "progress": {"completed": 0, "total": 1}, **payload}

    @app.get("/ai/tasks/dashboard")
    async def dashboard(request: Request):
        state.record("dashboard", request)
        return {
            "stats": {"pending": 1, "completed": 2, "successRate": "67%"},
            "tasks": [
                {
                    "id": "task-1",
                    "title": "Chest pain",
                    "status": "pending",
                    "statusLabel": "Pending",
                    "daysLeft": 3,
                    "attempts": {"current": 0, "total": 3, "remaining": 3},
                }
            ],
        }

    @app.get("/ai/history")
    async def history(request: Request):
        state.record("history", request)
        return {
            "stats": {"totalCalls": 1, "averageScore": 82, "lastCallDate": "2026-10-01"},
            "calls": [
                {
                    "id": "c1",
                    "name": "Chest pain",
                    "severity": "critical",
                    "date": "2026-10-01",
                    "time": "10:00",
                    "duration": "04:12",
                    "score": 82,
                    "operator_id": 7,
                }
            ],
        }

    @app.get("/api/settings")
    async def get_settings(request: Request):
        state.record("settings", request)
        return {"training": {"min_passing_score": 70}}

    @app.post("/api/settings/reset")
    async def reset_settings(request: Request):
        state.record("settings-reset", request)
        return {"message": "reset", "settings": {"training": {"min_passing_score": 60}}}

    return app


@pytest.fixture
def gateway_state() -> GatewayState:
    return GatewayState()


@pytest.fixture
async def gateway(gateway_state: GatewayState):
    client = GatewayClient(
        GatewayConfig(base_url="http://gateway", timeout_seconds=5),
        token_store=InMemoryTokenStore("test-token"),
        transport=httpx.ASGITransport(app=build_gateway(gateway_state)),
    )
    try:
        yield client
    finally:
        await client.aclose()


@pytest.fixture
def operator() -> UserResponse:
    return UserResponse.model_validate(OPERATOR)


@pytest.fixture
def guard() -> SessionGuard:
    # A private guard per test so claims never leak between tests.
    return SessionGuard()


class FakeSimulate:
    """In-process stand-in for SimulateService with controllable outcomes.

    ``hold_start`` / ``hold_end`` keep the corresponding call pending until the
    event is set, which lets tests fire triggers while a call is in flight.
    """

    def __init__(self) -> None:
        self.start_calls: List[Any] = []
        self.end_calls: List[str] = []
        self.append_calls: List[tuple] = []
        self.form_calls: List[tuple] = []
        self.start_response: Dict[str, Any] = dict(START_RESPONSE)
        self.end_response: Dict[str, Any] = dict(END_RESPONSE)
        self.fail_start = False
        self.fail_end = False
        self.fail_append = False
        self.fail_form = False
        self.hold_start: Optional[asyncio.Event] = None
        self.hold_end: Optional[asyncio.Event] = None

    async def start(self, request):
        self.start_calls.append(request)
        if self.hold_start is not None:
            await self.hold_start.wait()
        if self.fail_start:
            raise GatewayError("POST", "/ai/simulate/start", 500)
        return StartSessionResponse.model_validate(self.start_response)

    async def end(self, session_id: str):
        self.end_calls.append(session_id)
        if self.hold_end is not None:
            await self.hold_end.wait()
        if self.fail_end:
            raise GatewayError("POST", "/ai/simulate/end", 502)
        return EvaluationResult.model_validate(self.end_response)

    async def append_message(self, session_id: str, role: str, content: str):
        self.append_calls.append((session_id, role, content))
        if self.fail_append:
            raise GatewayError("POST", "/ai/simulate/append_message", 500)
        return AppendMessageResponse.model_validate(
            {"status": "ok", "appended": {"role": role, "message": content, "timestamp": "t"}}
        )

    async def update_form(self, session_id: str, form: Dict[str, Any]):
        self.form_calls.append((session_id, form))
        if self.fail_form:
            raise GatewayError("POST", "/ai/simulate/form", 500)
        return FormUpdateResponse(ok=True, form=form)


@pytest.fixture
def simulate() -> FakeSimulate:
    return FakeSimulate()


class FakeConnection:
    """Scripted voice-agent socket. Feed frames, then drop or fail it."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.closed = False
        self._frames: asyncio.Queue = asyncio.Queue()

    def __aiter__(self) -> "FakeConnection":
        return self

    async def __anext__(self) -> str:
        item = await self._frames.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item

    def send(self, payload: Dict[str, Any]) -> None:
        self._frames.put_nowait(json.dumps(payload))

    def send_raw(self, raw: str) -> None:
        self._frames.put_nowait(raw)

    def drop(self) -> None:
        self._frames.put_nowait(None)

    def fail(self, exc: Exception) -> None:
        self._frames.put_nowait(exc)

    async def close(self) -> None:
        self.closed = True


class FakeConnector:
    def __init__(self) -> None:
        self.connections: List[FakeConnection] = []

    async def __call__(self, url: str) -> FakeConnection:
        connection = FakeConnection(url)
        self.connections.append(connection)
        return connection

    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


async def settle(rounds: int = 20) -> None:
    """Let already-scheduled callbacks and tasks run."""

    for _ in range(rounds):
        await asyncio.sleep(0)
