"""HTTP client for the remote store. Every failure surfaces as SyncError."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from smartlist.core.config import settings
from smartlist.core.errors import SyncError
from smartlist.models.user import (
    CreateUserRequest,
    CreateUserResponse,
    LeaderboardEntry,
    UpdateUserRequest,
    UserRecord,
)

logger = logging.getLogger("smartlist")


def _error_code(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("code") if isinstance(body, dict) else None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text[:200]


class RemoteStoreClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.SYNC_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RemoteStoreClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def create_user(self, request: CreateUserRequest, token: str) -> CreateUserResponse:
        body = await self._request(
            "POST",
            "/users",
            token=token,
            json=request.model_dump(by_alias=True, exclude_none=True),
        )
        return self._parse(CreateUserResponse, body, "create user")

    async def get_user(self, user_id: str, token: str) -> UserRecord:
        body = await self._request("GET", f"/users/{user_id}", token=token)
        return self._parse(UserRecord, body, "fetch user")

    async def update_user(self, user_id: str, token: str, snapshot: UpdateUserRequest) -> None:
        await self._request(
            "PUT",
            f"/users/{user_id}",
            token=token,
            json=snapshot.model_dump(by_alias=True, exclude_none=True),
        )

    async def leaderboard(self, limit: Optional[int] = None, offset: int = 0) -> List[LeaderboardEntry]:
        params = {"offset": offset}
        if limit is not None:
            params["limit"] = limit
        body = await self._request("GET", "/leaderboard", params=params)
        if not isinstance(body, list):
            raise SyncError("Leaderboard response was not a list")
        return [self._parse(LeaderboardEntry, item, "read leaderboard") for item in body]

    async def _request(self, method: str, path: str, *, token: Optional[str] = None, **kwargs) -> Any:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Remote store %s %s failed: %s", method, path, exc)
            raise SyncError(f"Remote store unreachable: {exc}") from exc

        if response.status_code >= 400:
            code = _error_code(response)
            message = _error_message(response)
            logger.warning("Remote store %s %s -> %s %s", method, path, response.status_code, code)
            raise SyncError(
                f"Remote store responded with {response.status_code}: {message}",
                code=code,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise SyncError(f"Remote store returned invalid JSON for {method} {path}") from exc

    @staticmethod
    def _parse(model, body: Any, action: str):
        try:
            return model.model_validate(body)
        except PydanticValidationError as exc:
            raise SyncError(f"Unexpected response while trying to {action}") from exc
