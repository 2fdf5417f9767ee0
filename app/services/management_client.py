import logging
from typing import Any, Dict, List

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import ConnectivityError, ManagementAPIError
from app.schemas.admin import CreateUserPayload, ManagedUser, ManagementResult

logger = logging.getLogger(__name__)


class ManagementClient:
    """Client for the remote user-management API.

    Every call carries the shared secret and the requester's role and tenant;
    the remote side decides whether the action is allowed.
    """

    def __init__(
        self,
        list_users_url: str = None,
        create_user_url: str = None,
        delete_user_url: str = None,
        timeout: float = None,
    ):
        self.list_users_url = list_users_url or settings.MANAGEMENT_LIST_USERS_URL
        self.create_user_url = create_user_url or settings.MANAGEMENT_CREATE_USER_URL
        self.delete_user_url = delete_user_url or settings.MANAGEMENT_DELETE_USER_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.headers = {"Content-Type": "application/json"}

    async def _post(self, url: str, body: Dict[str, Any], action: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(url, headers=self.headers, json=body, timeout=self.timeout)
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Management API {action} failed: {str(e)}")
            raise ConnectivityError("Connection failed to backend") from e

        if not isinstance(data, dict):
            logger.error(f"Management API {action} returned a non-object body")
            raise ConnectivityError("Connection failed to backend")
        return data

    @staticmethod
    def _result(data: Dict[str, Any], action: str, fallback: str) -> ManagementResult:
        result = ManagementResult(status=str(data.get("status", "error")), message=data.get("message"))
        if not result.ok:
            logger.warning(f"Management API refused {action}: {result.message}")
            raise ManagementAPIError(result.message or fallback)
        return result

    async def list_users(self, admin_secret: str, requester_role: str, requester_client_id: str) -> List[ManagedUser]:
        data = await self._post(
            self.list_users_url,
            {
                "admin_secret": admin_secret,
                "requester_role": requester_role,
                "requester_client_id": requester_client_id,
            },
            "list users",
        )
        self._result(data, "list users", "Failed to load users")
        try:
            return [ManagedUser(**u) for u in data.get("users") or []]
        except (TypeError, ValidationError) as e:
            logger.error(f"Management API returned malformed users: {e}")
            raise ManagementAPIError("Received malformed user list") from e

    async def create_user(self, payload: CreateUserPayload) -> ManagementResult:
        data = await self._post(self.create_user_url, payload.model_dump(mode="json"), "create user")
        return self._result(data, "create user", "Failed to create user")

    async def delete_user(
        self,
        admin_secret: str,
        requester_role: str,
        requester_client_id: str,
        target_user_id: str,
    ) -> ManagementResult:
        data = await self._post(
            self.delete_user_url,
            {
                "admin_secret": admin_secret,
                "requester_role": requester_role,
                "requester_client_id": requester_client_id,
                "target_user_id": target_user_id,
            },
            "delete user",
        )
        return self._result(data, "delete user", "Failed to delete user")
