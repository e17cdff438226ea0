from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from src.operator_console.config import settings
from src.operator_console.infra.auth.token_store import TokenStore, get_token_store_from_env

logger = logging.getLogger("gateway")


class GatewayError(Exception):
    """A gateway call failed, either on the network or with a non-2xx status.

    ``status_code`` is ``None`` when no response was received at all.
    """

    def __init__(
        self,
        method: str,
        path: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.detail = detail
        if detail:
            message = detail
        elif status_code is None:
            message = f"API {method} {path} failed: no response"
        else:
            message = f"API {method} {path} failed with {status_code}"
        super().__init__(message)


@dataclass
class GatewayConfig:
    base_url: str
    timeout_seconds: Optional[float]

    @classmethod
    def from_settings(cls) -> "GatewayConfig":
        return cls(
            base_url=settings.gateway_url,
            timeout_seconds=settings.gateway_timeout_seconds,
        )


class GatewayClient:
    """Thin JSON client for the training gateway.

    Every request carries ``Authorization: Bearer <token>`` when the token
    store holds a token. Cookies set by the gateway are kept on the underlying
    ``httpx.AsyncClient`` and sent back on later calls.

    Only POST errors surface the server's ``detail`` message; the other verbs
    report the method, path and status code.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        *,
        token_store: Optional[TokenStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or GatewayConfig.from_settings()
        self.token_store: TokenStore = token_store or get_token_store_from_env()
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=httpx.Timeout(self._config.timeout_seconds),
            transport=transport,
        )

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, *, json_body: bool = False) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if json_body:
            headers["Content-Type"] = "application/json"
        token = self.token_store.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        has_body = method in {"POST", "PUT"}
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json if has_body else None,
                headers=self._headers(json_body=has_body),
            )
        except httpx.HTTPError as exc:
            logger.error("Gateway %s %s failed: %s", method, path, exc)
            raise GatewayError(method, path) from exc

        if response.is_success:
            return response

        detail: Optional[str] = None
        if method == "POST":
            try:
                body = response.json()
            except ValueError:
                body = {}
            if isinstance(body, dict) and isinstance(body.get("detail"), str):
                detail = body["detail"]
        logger.warning("Gateway %s %s returned %s", method, path, response.status_code)
        raise GatewayError(method, path, response.status_code, detail)

    @staticmethod
    def _json(method: str, path: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Gateway %s %s returned a non-JSON body", method, path)
            raise GatewayError(method, path, response.status_code, "invalid JSON response") from exc

    async def get(self, path: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = await self._request("GET", path, params=params)
        return self._json("GET", path, response)

    async def post(
        self,
        path: str,
        data: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        response = await self._request("POST", path, params=params, json={} if data is None else data)
        return self._json("POST", path, response)

    async def put(self, path: str, data: Any = None) -> Any:
        response = await self._request("PUT", path, json={} if data is None else data)
        return self._json("PUT", path, response)

    async def delete(self, path: str) -> None:
        await self._request("DELETE", path)
