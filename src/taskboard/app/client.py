"""Async client for the upstream to-do REST API."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from .core.config import Settings
from .core.context import correlation_headers
from .errors import AuthenticationError, UpstreamAPIError, UpstreamUnavailableError
from .schemas import (
    LoginResponse,
    Todo,
    TodoCreate,
    TodoQuery,
    TodoUpdate,
    UserData,
    UserUpdate,
)

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login/"
SIGNUP_PATH = "/users/signup/"
CURRENT_USER_PATH = "/users/me/"
TODOS_PATH = "/todos/"

# Endpoints that must never carry a bearer token.
_ANONYMOUS_PATHS = (LOGIN_PATH, SIGNUP_PATH)

FileField = tuple[str, bytes, str]
ModelT = TypeVar("ModelT", bound=BaseModel)

UNREADABLE_RESPONSE_MESSAGE = "The to-do service returned an unreadable response."


def _todo_path(todo_id: int | str) -> str:
    return f"{TODOS_PATH}{todo_id}/"


def _error_message(response: httpx.Response) -> str | None:
    """Pull ``message`` (then ``detail``) out of an error body, if it is JSON."""

    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    for key in ("message", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _validated(model: type[ModelT], payload: Any) -> ModelT:
    try:
        return model.model_validate(payload)
    except SchemaValidationError as exc:
        logger.warning(
            "Upstream payload did not match schema",
            extra={"schema": model.__name__, "error_count": exc.error_count()},
        )
        raise UpstreamAPIError(UNREADABLE_RESPONSE_MESSAGE) from exc


def _extract_todos(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("results", "todos"):
            items = payload.get(key)
            if isinstance(items, list):
                return items
    return []


class TodoApiClient:
    """Thin wrapper around the upstream REST API.

    One instance (and one pooled ``httpx.AsyncClient``) is shared by the whole
    application. Every call is stateless: the caller passes the access token
    taken from the browser session.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "TodoApiClient":
        return cls(
            settings.todo_api_base_url,
            timeout=settings.todo_api_timeout_seconds,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: list[tuple[str, str]] | None = None,
        data: Mapping[str, str] | None = None,
        files: Mapping[str, FileField] | None = None,
    ) -> Any:
        headers = correlation_headers()
        if token and path not in _ANONYMOUS_PATHS:
            headers["Authorization"] = f"Bearer {token}"

        started = time.perf_counter()
        try:
            response = await self._http.request(
                method,
                path,
                params=params or None,
                data=dict(data) if data is not None else None,
                files=dict(files) if files else None,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Upstream request failed",
                extra={
                    "upstream_method": method,
                    "upstream_path": path,
                    "upstream_error": exc.__class__.__name__,
                },
            )
            raise UpstreamUnavailableError() from exc

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            "Upstream request",
            extra={
                "upstream_method": method,
                "upstream_path": path,
                "upstream_status": response.status_code,
                "upstream_elapsed_ms": elapsed_ms,
            },
        )

        if response.is_error:
            upstream_message = _error_message(response)
            if response.status_code == 401:
                raise AuthenticationError(
                    upstream_message or "Authentication failed.",
                    upstream_message=upstream_message,
                )
            raise UpstreamAPIError(
                upstream_message or "Request failed.",
                upstream_status=response.status_code,
                upstream_message=upstream_message,
            )

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamAPIError(
                UNREADABLE_RESPONSE_MESSAGE,
                upstream_status=response.status_code,
            ) from exc

    # ---- auth ----

    async def login(self, email: str, password: str) -> LoginResponse:
        payload = await self._request(
            "POST",
            LOGIN_PATH,
            data={"email": email, "password": password},
        )
        return _validated(LoginResponse, payload)

    async def signup(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
    ) -> Any:
        return await self._request(
            "POST",
            SIGNUP_PATH,
            data={
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "password": password,
            },
        )

    # ---- users ----

    async def get_current_user(self, token: str) -> UserData:
        payload = await self._request("GET", CURRENT_USER_PATH, token=token)
        return _validated(UserData, payload)

    async def update_user(self, token: str, update: UserUpdate) -> UserData:
        files: dict[str, FileField] | None = None
        if update.profile_image is not None:
            image = update.profile_image
            files = {"profile_image": (image.filename, image.content, image.content_type)}
        payload = await self._request(
            "PATCH",
            CURRENT_USER_PATH,
            token=token,
            data=update.form_fields(),
            files=files,
        )
        return _validated(UserData, payload)

    # ---- todos ----

    async def list_todos(self, token: str, query: TodoQuery | None = None) -> list[Todo]:
        params = query.query_params() if query is not None else []
        payload = await self._request("GET", TODOS_PATH, token=token, params=params)
        return [_validated(Todo, item) for item in _extract_todos(payload)]

    async def create_todo(self, token: str, todo: TodoCreate) -> Todo:
        payload = await self._request("POST", TODOS_PATH, token=token, data=todo.form_fields())
        return _validated(Todo, payload)

    async def update_todo(self, token: str, todo_id: int | str, update: TodoUpdate) -> Todo:
        payload = await self._request(
            "PATCH",
            _todo_path(todo_id),
            token=token,
            data=update.form_fields(),
        )
        return _validated(Todo, payload)

    async def delete_todo(self, token: str, todo_id: int | str) -> None:
        await self._request("DELETE", _todo_path(todo_id), token=token)


__all__ = ["UNREADABLE_RESPONSE_MESSAGE", "TodoApiClient"]
