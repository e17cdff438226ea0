import httpx
import pytest

from src.operator_console.config import _optional_timeout
from src.operator_console.infra.http.gateway import GatewayClient, GatewayConfig, GatewayError
from src.operator_console.services.auth.service import AuthService


async def test_requests_carry_bearer_token(gateway, gateway_state):
    await AuthService(gateway).me()

    assert gateway_state.named("me")[0]["headers"]["authorization"] == "Bearer test-token"


async def test_no_authorization_header_without_token(gateway, gateway_state):
    gateway.token_store.clear()

    await gateway.get("/api/auth/me")

    assert "authorization" not in gateway_state.named("me")[0]["headers"]


async def test_post_error_surfaces_server_detail(gateway, gateway_state):
    gateway_state.failures["login"] = 401
    gateway_state.details["login"] = "Invalid credentials"

    with pytest.raises(GatewayError) as excinfo:
        await gateway.post("/api/auth/login", {"email": "a@b.c", "password": "x"})

    assert excinfo.value.status_code == 401
    assert str(excinfo.value) == "Invalid credentials"


async def test_get_error_reports_method_path_and_status(gateway, gateway_state):
    gateway_state.failures["me"] = 500

    with pytest.raises(GatewayError) as excinfo:
        await gateway.get("/api/auth/me")

    assert excinfo.value.detail is None
    assert str(excinfo.value) == "API GET /api/auth/me failed with 500"


async def test_network_failure_has_no_status():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = GatewayClient(GatewayConfig(base_url="http://gateway", timeout_seconds=1), transport=httpx.MockTransport(refuse))
    async with client:
        with pytest.raises(GatewayError) as excinfo:
            await client.get("/ai/tasks")

    assert excinfo.value.status_code is None
    assert str(excinfo.value) == "API GET /ai/tasks failed: no response"


async def test_post_without_data_sends_empty_object():
    seen = []

    def handler(request):
        seen.append(request.content)
        return httpx.Response(200, json={"ok": True})

    client = GatewayClient(GatewayConfig(base_url="http://gateway", timeout_seconds=1), transport=httpx.MockTransport(handler))
    async with client:
        assert await client.post("/admin/clear-all") == {"ok": True}

    assert seen == [b"{}"]


def test_timeout_setting_parsing():
    assert _optional_timeout(None) == 30.0
    assert _optional_timeout("12.5") == 12.5
    assert _optional_timeout("0") is None
    assert _optional_timeout("none") is None


async def test_non_json_success_body_is_a_gateway_error():
    def handler(request):
        return httpx.Response(200, text="<html>bad gateway page</html>")

    client = GatewayClient(GatewayConfig(base_url="http://gateway", timeout_seconds=1), transport=httpx.MockTransport(handler))
    async with client:
        with pytest.raises(GatewayError) as excinfo:
            await client.post("/ai/simulate/start")

    assert excinfo.value.status_code == 200
    assert str(excinfo.value) == "invalid JSON response"
