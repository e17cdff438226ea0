from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from src.operator_console.domain.models.user import UserResponse
from src.operator_console.infra.http.gateway import GatewayClient, GatewayError

logger = logging.getLogger("auth")

ADMIN_HOME = "/dashboard"
OPERATOR_HOME = "/operatorBoard"
TWO_FACTOR_DETAIL = "2fa_required"


class AuthError(Exception):
    """The gateway answered a login step with something unusable."""


class TwoFactorRequired(Exception):
    """Login succeeded on password but a second factor is still needed."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Two-factor verification required for {email}")


class AuthService:
    """Login, two-factor and password-reset flows against the gateway.

    A successful login or 2FA verification stores the access token in the
    gateway's token store, so every later call is authenticated.
    """

    def __init__(self, gateway: GatewayClient) -> None:
        self._gateway = gateway
        # Email waiting for a 2FA code between login() and verify_2fa().
        self.pending_2fa_email: Optional[str] = None

    def _store_token(self, data: Any) -> str:
        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthError("Missing access token in server response")
        self._gateway.token_store.set_token(token)
        return token

    async def login(self, email: str, password: str) -> str:
        try:
            data = await self._gateway.post("/api/auth/login", {"email": email, "password": password})
        except GatewayError as exc:
            # Some gateway versions signal the second factor with a 4xx.
            if exc.detail != TWO_FACTOR_DETAIL:
                raise
            data = {"detail": exc.detail}
        if isinstance(data, dict) and data.get("detail") == TWO_FACTOR_DETAIL:
            self.pending_2fa_email = email
            logger.info("Two-factor verification required for %s", email)
            raise TwoFactorRequired(email)
        return self._store_token(data)

    async def verify_2fa(self, code: str, email: Optional[str] = None) -> str:
        email = email or self.pending_2fa_email
        if not email:
            raise AuthError("No login is waiting for a two-factor code")
        data = await self._gateway.post("/api/auth/verify-2fa", {"email": email, "code": code})
        token = self._store_token(data)
        self.pending_2fa_email = None
        return token

    async def resend_2fa(self, email: Optional[str] = None) -> Dict[str, Any]:
        email = email or self.pending_2fa_email
        if not email:
            raise AuthError("No login is waiting for a two-factor code")
        return await self._gateway.post("/api/auth/resend-2fa", {"email": email})

    async def me(self) -> UserResponse:
        return UserResponse.model_validate(await self._gateway.get("/api/auth/me"))

    async def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        organization: str,
    ) -> UserResponse:
        data = await self._gateway.post(
            "/api/auth/register",
            {
                "email": email,
                "password": password,
                "first_name": first_name,
                "last_name": last_name,
                "organization": organization,
            },
        )
        return UserResponse.model_validate(data)

    async def request_password_reset(self, email: str) -> Dict[str, Any]:
        return await self._gateway.post("/api/auth/forgot_password", {"email": email})

    async def reset_password(self, token: str, new_password: str) -> Dict[str, Any]:
        return await self._gateway.post(
            "/api/auth/reset_password",
            {"token": token, "new_password": new_password},
        )

    async def validate_reset_token(self, token: str) -> bool:
        data = await self._gateway.post("/api/auth/validate-reset-token", {"token": token})
        return bool(isinstance(data, dict) and data.get("valid"))

    def logout(self) -> None:
        self._gateway.token_store.clear()

    @staticmethod
    def home_route(user: UserResponse) -> str:
        return ADMIN_HOME if user.is_admin else OPERATOR_HOME
