from __future__ import annotations

import secrets
import time
from typing import Any, MutableMapping

SESSION_ACCESS_TOKEN_KEY = "access_token"
SESSION_REFRESH_TOKEN_KEY = "refresh_token"
SESSION_REMEMBER_KEY = "remember_me"
SESSION_ISSUED_AT_KEY = "tokens_issued_at"
SESSION_CSRF_KEY = "csrf_token"
SESSION_FLASH_KEY = "flash_messages"

_TOKEN_KEYS = (
    SESSION_ACCESS_TOKEN_KEY,
    SESSION_REFRESH_TOKEN_KEY,
    SESSION_REMEMBER_KEY,
    SESSION_ISSUED_AT_KEY,
)


def store_tokens(
    session: MutableMapping[str, Any],
    access_token: str,
    refresh_token: str,
    *,
    remember: bool = False,
    now: float | None = None,
) -> None:
    """Persist the upstream token pair in the signed session."""

    session[SESSION_ACCESS_TOKEN_KEY] = access_token
    session[SESSION_REFRESH_TOKEN_KEY] = refresh_token
    session[SESSION_REMEMBER_KEY] = bool(remember)
    session[SESSION_ISSUED_AT_KEY] = float(now if now is not None else time.time())


def clear_tokens(session: MutableMapping[str, Any]) -> None:
    """Forget the stored token pair."""

    for key in _TOKEN_KEYS:
        session.pop(key, None)


def get_access_token(
    session: MutableMapping[str, Any],
    *,
    short_max_age: int | None = None,
    now: float | None = None,
) -> str | None:
    """Return the stored access token, or ``None`` when absent or expired.

    Sessions created without "remember me" only keep their tokens for
    ``short_max_age`` seconds; remembered sessions last as long as the cookie.
    Expired tokens are cleared as a side effect.
    """

    token = session.get(SESSION_ACCESS_TOKEN_KEY)
    if not isinstance(token, str) or not token:
        return None

    if short_max_age and not session.get(SESSION_REMEMBER_KEY):
        issued_at = session.get(SESSION_ISSUED_AT_KEY)
        current = now if now is not None else time.time()
        try:
            expired = current - float(issued_at) > short_max_age
        except (TypeError, ValueError):
            expired = True
        if expired:
            clear_tokens(session)
            return None

    return token


def ensure_csrf_token(session: MutableMapping[str, Any]) -> str:
    """Return a CSRF token, generating one if necessary."""

    token = session.get(SESSION_CSRF_KEY)
    if isinstance(token, str) and token:
        return token
    token = secrets.token_urlsafe(32)
    session[SESSION_CSRF_KEY] = token
    return token


def validate_csrf_token(session: MutableMapping[str, Any], provided: object) -> bool:
    """Validate a CSRF token against the value stored in the session."""

    expected = session.get(SESSION_CSRF_KEY)
    if not expected or not isinstance(provided, str) or not provided:
        return False
    return secrets.compare_digest(str(expected), provided)


def add_flash_message(session: MutableMapping[str, Any], category: str, message: str) -> None:
    """Queue a one-time message for the next rendered page."""

    payload = {"category": category, "message": message}
    existing = session.get(SESSION_FLASH_KEY)
    if isinstance(existing, list):
        session[SESSION_FLASH_KEY] = [*existing, payload]
        return
    session[SESSION_FLASH_KEY] = [payload]


def pop_flash_messages(session: MutableMapping[str, Any]) -> list[dict[str, str]]:
    """Retrieve and clear any queued flash messages."""

    messages = session.pop(SESSION_FLASH_KEY, [])
    if not isinstance(messages, list):
        return []
    cleaned: list[dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            continue
        message = str(item.get("message", ""))
        if not message:
            continue
        cleaned.append({"category": str(item.get("category", "info")), "message": message})
    return cleaned


__all__ = [
    "SESSION_ACCESS_TOKEN_KEY",
    "SESSION_CSRF_KEY",
    "SESSION_FLASH_KEY",
    "SESSION_REFRESH_TOKEN_KEY",
    "add_flash_message",
    "clear_tokens",
    "ensure_csrf_token",
    "get_access_token",
    "pop_flash_messages",
    "store_tokens",
    "validate_csrf_token",
]
