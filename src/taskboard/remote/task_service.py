"""Client for the remote task service REST API."""

import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from taskboard.api.models import (
    AuthResult,
    ProfileUpdate,
    StatsSnapshot,
    Task,
    TaskDraft,
    TaskPatch,
    UserProfile,
)
from taskboard.errors import (
    AuthFailure,
    NetworkFailure,
    NotFoundFailure,
    ServerFailure,
    TaskboardError,
    ValidationFailure,
)
from taskboard.session.credential_store import CredentialStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TaskService(Protocol):
    """Protocol for the remote auth and task endpoints."""

    async def login(self, email: str, password: str) -> AuthResult:
        """POST /auth/login."""
        ...

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        """POST /auth/register."""
        ...

    async def me(self) -> UserProfile:
        """GET /auth/me."""
        ...

    async def update_profile(self, fields: ProfileUpdate) -> UserProfile:
        """PUT /auth/profile."""
        ...

    async def change_password(self, current_password: str, new_password: str) -> str | None:
        """PUT /auth/change-password, returns the replacement token if any."""
        ...

    async def list_tasks(self, params: dict[str, str]) -> list[Task]:
        """GET /tasks with search/filter/sort params."""
        ...

    async def get_stats(self) -> StatsSnapshot:
        """GET /tasks/stats."""
        ...

    async def create_task(self, draft: TaskDraft) -> Task:
        """POST /tasks."""
        ...

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task:
        """PUT /tasks/:id."""
        ...

    async def delete_task(self, task_id: str) -> None:
        """DELETE /tasks/:id."""
        ...


class HttpTaskService:
    """TaskService over HTTP using httpx.

    The bearer token is read from the credential store on every request, so
    token changes (login, logout, password change) apply immediately.
    """

    def __init__(
        self,
        base_url: str,
        credential_store: CredentialStore,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize service.

        Args:
            base_url: Root of the REST API (e.g. http://localhost:5000/api)
            credential_store: Source of the bearer token
            timeout: Per-request timeout in seconds
            client: Optional preconfigured client (tests inject a MockTransport)
        """
        self._credentials = credential_store
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._timeout = timeout

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def login(self, email: str, password: str) -> AuthResult:
        data = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )
        return _auth_result(data)

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        data = await self._request(
            "POST",
            "/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        return _auth_result(data)

    async def me(self) -> UserProfile:
        data = await self._request("GET", "/auth/me")
        return _validate(UserProfile, data.get("user"))

    async def update_profile(self, fields: ProfileUpdate) -> UserProfile:
        data = await self._request("PUT", "/auth/profile", json=fields.to_wire())
        return _validate(UserProfile, data.get("user"))

    async def change_password(self, current_password: str, new_password: str) -> str | None:
        data = await self._request(
            "PUT",
            "/auth/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )
        return data.get("token") or None

    async def list_tasks(self, params: dict[str, str]) -> list[Task]:
        data = await self._request("GET", "/tasks", params=params)
        return [_validate(Task, item) for item in data.get("tasks") or []]

    async def get_stats(self) -> StatsSnapshot:
        data = await self._request("GET", "/tasks/stats")
        return _validate(StatsSnapshot, data.get("stats") or {})

    async def create_task(self, draft: TaskDraft) -> Task:
        data = await self._request("POST", "/tasks", json=draft.to_wire())
        return _validate(Task, data.get("task"))

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task:
        data = await self._request("PUT", f"/tasks/{task_id}", json=patch.to_wire())
        return _validate(Task, data.get("task"))

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send a request and map failures onto the error taxonomy.

        Returns:
            Decoded JSON body ({} for empty responses)

        Raises:
            NetworkFailure: No response (connection error or timeout)
            AuthFailure: 401/403
            ValidationFailure: 400/422
            NotFoundFailure: 404
            ServerFailure: 5xx
            TaskboardError: Any other non-success status
        """
        headers: dict[str, str] = {}
        token = self._credentials.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(
                method, path, json=json, params=params, headers=headers, timeout=self._timeout
            )
        except httpx.TimeoutException as e:
            logger.warning(f"[TaskService] {method} {path} timed out")
            raise NetworkFailure("Request timed out") from e
        except httpx.TransportError as e:
            logger.warning(f"[TaskService] {method} {path} failed: {e}")
            raise NetworkFailure() from e

        body = _decode(response)
        if response.is_success:
            return body

        logger.debug(f"[TaskService] {method} {path} -> {response.status_code}")
        raise _error_for(response.status_code, body)


def _auth_result(data: dict[str, Any]) -> AuthResult:
    token = data.get("token")
    if not isinstance(token, str) or not token:
        raise ServerFailure("Unexpected response from server")
    return AuthResult(token=token, user=_validate(UserProfile, data.get("user")))


def _validate(model: type[ModelT], value: Any) -> ModelT:
    """Parse a response payload; malformed payloads count as server failures."""
    try:
        return model.model_validate(value)
    except PydanticValidationError as e:
        logger.warning(f"[TaskService] Malformed {model.__name__} in response: {e}")
        raise ServerFailure("Unexpected response from server") from e


def _decode(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body, tolerating empty or non-JSON bodies."""
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _field_errors(body: dict[str, Any]) -> dict[str, str]:
    """Extract field errors from express-validator style or mapping bodies.

    Accepts `{"errors": [{"path"|"param"|"field": ..., "msg"|"message": ...}]}`
    and `{"errors": {"field": "message"}}`.
    """
    errors = body.get("errors")
    if isinstance(errors, dict):
        return {str(k): str(v) for k, v in errors.items()}

    result: dict[str, str] = {}
    if isinstance(errors, list):
        for item in errors:
            if not isinstance(item, dict):
                continue
            name = item.get("path") or item.get("param") or item.get("field")
            message = item.get("msg") or item.get("message")
            if name and message and name not in result:
                result[str(name)] = str(message)
    return result


def _error_for(status_code: int, body: dict[str, Any]) -> TaskboardError:
    message = body.get("message") if isinstance(body.get("message"), str) else None

    if status_code in (401, 403):
        return AuthFailure(message, status_code=status_code)
    if status_code in (400, 422):
        return ValidationFailure(message, _field_errors(body), status_code=status_code)
    if status_code == 404:
        return NotFoundFailure(message, status_code=status_code)
    if status_code >= 500:
        return ServerFailure(message, status_code=status_code)
    return TaskboardError(message, status_code=status_code)
