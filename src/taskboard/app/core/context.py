"""Request-scoped correlation identifiers shared by logging and the upstream client."""

from __future__ import annotations

from contextvars import ContextVar, Token

REQUEST_ID_HEADER = "X-Request-ID"
_UNBOUND = "-"

_request_id_ctx_var: ContextVar[str] = ContextVar("request_id", default=_UNBOUND)


def get_request_id() -> str:
    """Return the request identifier for the current execution context."""

    return _request_id_ctx_var.get()


def bind_request_id(request_id: str) -> Token[str]:
    return _request_id_ctx_var.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    _request_id_ctx_var.reset(token)


def correlation_headers() -> dict[str, str]:
    """Headers that propagate the current request id to upstream services."""

    request_id = get_request_id()
    if request_id == _UNBOUND:
        return {}
    return {REQUEST_ID_HEADER: request_id}


__all__ = [
    "REQUEST_ID_HEADER",
    "bind_request_id",
    "correlation_headers",
    "get_request_id",
    "reset_request_id",
]
