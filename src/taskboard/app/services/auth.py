"""Authentication workflows delegated to the upstream API."""

from __future__ import annotations

import logging
from typing import Any

from ..client import TodoApiClient
from ..errors import AuthenticationError, TodoApiError
from ..presentation import display_name
from ..schemas import LoginResponse, UserData

logger = logging.getLogger(__name__)


class AuthService:
    """Sign-in, sign-up and current-user lookups."""

    def __init__(self, client: TodoApiClient) -> None:
        self._client = client

    async def login(self, email: str, password: str) -> LoginResponse:
        return await self._client.login(email.strip(), password)

    async def signup(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
    ) -> Any:
        return await self._client.signup(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email.strip(),
            password=password,
        )

    async def current_user(self, token: str) -> UserData:
        return await self._client.get_current_user(token)

    async def current_user_or_none(self, token: str) -> UserData | None:
        """Like :meth:`current_user`, but a failed lookup yields ``None``.

        A rejected token still raises :class:`AuthenticationError` so the
        session is signed out.
        """

        try:
            return await self._client.get_current_user(token)
        except AuthenticationError:
            raise
        except TodoApiError as exc:
            logger.warning("Could not load the current user", extra={"code": exc.code})
            return None


__all__ = ["AuthService", "display_name"]
