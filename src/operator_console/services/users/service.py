from __future__ import annotations

from typing import Any, Dict, List, Optional

from src.operator_console.domain.models.user import UserResponse, UserRole
from src.operator_console.infra.http.gateway import GatewayClient


class UsersService:
    """Administration of operator and admin accounts."""

    def __init__(self, gateway: GatewayClient) -> None:
        self._gateway = gateway

    async def list(self) -> List[UserResponse]:
        data = await self._gateway.get("/users/overview")
        return [UserResponse.model_validate(item) for item in data]

    async def create(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        organization: str,
        role: UserRole = UserRole.OPERATOR,
        phone: Optional[str] = None,
    ) -> UserResponse:
        payload: Dict[str, Any] = {
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
            "organization": organization,
            "role": UserRole(role).value,
        }
        if phone:
            payload["phone"] = phone
        return UserResponse.model_validate(await self._gateway.post("/api/users", payload))

    async def update(self, user_id: int, **changes: Any) -> UserResponse:
        """Partial update; only the keyword arguments given are sent."""

        if isinstance(changes.get("role"), UserRole):
            changes["role"] = changes["role"].value
        return UserResponse.model_validate(await self._gateway.put(f"/api/users/{user_id}", changes))

    async def delete(self, user_id: int) -> None:
        await self._gateway.delete(f"/api/users/{user_id}")

    async def approve(self, user_id: int) -> UserResponse:
        return UserResponse.model_validate(await self._gateway.put(f"/api/users/{user_id}/approve", {}))

    async def reject(self, user_id: int) -> None:
        # Pending registrations are rejected by deleting them.
        await self.delete(user_id)

    async def deactivate(self, user_id: int) -> UserResponse:
        return UserResponse.model_validate(await self._gateway.put(f"/api/users/{user_id}/deactivate", {}))

    async def change_password(
        self,
        user_id: int,
        new_password: str,
        current_password: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"new_password": new_password}
        if current_password is not None:
            payload["current_password"] = current_password
        return await self._gateway.post(f"/api/users/{user_id}/change-password", payload)

    async def toggle_2fa(self, user_id: int, enable: bool) -> UserResponse:
        data = await self._gateway.post(f"/api/users/{user_id}/2fa", {"enable": enable})
        return UserResponse.model_validate(data)

    async def upload_profile_picture(self, user_id: int, profile_picture: str) -> UserResponse:
        data = await self._gateway.post(
            f"/api/users/{user_id}/profile-picture",
            {"profile_picture": profile_picture},
        )
        return UserResponse.model_validate(data)
