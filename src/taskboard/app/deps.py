"""Reusable FastAPI dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from .client import TodoApiClient
from .core.config import Settings, get_settings
from .core.session import get_access_token
from .errors import LoginRequiredError, ServerError
from .services import AccountService, AuthService, TodoService


def get_request_settings(request: Request) -> Settings:
    """Settings the running application was built with."""

    settings = getattr(request.app.state, "settings", None)
    return settings if isinstance(settings, Settings) else get_settings()


SettingsDependency = Annotated[Settings, Depends(get_request_settings)]


def get_todo_api(request: Request) -> TodoApiClient:
    client = getattr(request.app.state, "todo_api", None)
    if client is None:  # pragma: no cover - startup always installs one
        raise ServerError("The to-do API client is not initialised.")
    return client


TodoApiDependency = Annotated[TodoApiClient, Depends(get_todo_api)]


def get_optional_access_token(request: Request, settings: SettingsDependency) -> str | None:
    return get_access_token(request.session, short_max_age=settings.session_short_max_age)


def require_access_token(
    token: Annotated[str | None, Depends(get_optional_access_token)],
) -> str:
    """Return the session's access token or send the browser to the login page."""

    if token is None:
        raise LoginRequiredError()
    return token


OptionalAccessTokenDependency = Annotated[str | None, Depends(get_optional_access_token)]
AccessTokenDependency = Annotated[str, Depends(require_access_token)]


def get_auth_service(client: TodoApiDependency) -> AuthService:
    return AuthService(client)


def get_todo_service(client: TodoApiDependency, token: AccessTokenDependency) -> TodoService:
    return TodoService(client, token)


def get_account_service(client: TodoApiDependency, token: AccessTokenDependency) -> AccountService:
    return AccountService(client, token)


AuthServiceDependency = Annotated[AuthService, Depends(get_auth_service)]
TodoServiceDependency = Annotated[TodoService, Depends(get_todo_service)]
AccountServiceDependency = Annotated[AccountService, Depends(get_account_service)]


__all__ = [
    "AccessTokenDependency",
    "AccountServiceDependency",
    "AuthServiceDependency",
    "OptionalAccessTokenDependency",
    "SettingsDependency",
    "TodoApiDependency",
    "TodoServiceDependency",
    "get_request_settings",
    "get_todo_api",
    "require_access_token",
]
