"""Application-level exception hierarchy and handlers."""

from __future__ import annotations

import logging
from contextvars import Token
from http import HTTPStatus
from typing import Any, Mapping

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from .core.context import REQUEST_ID_HEADER, bind_request_id, reset_request_id
from .core.session import add_flash_message, clear_tokens
from .core.templates import is_htmx_request, partial_response, template_response
from .schemas.system import ErrorResponse

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please sign in again."
NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."


class ApplicationError(Exception):
    """Base class for domain-specific errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "application_error",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class NotFoundError(ApplicationError):
    def __init__(
        self,
        message: str = "Resource not found.",
        *,
        code: str = "not_found",
        details: Any | None = None,
    ) -> None:
        super().__init__(message, code=code, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(ApplicationError):
    def __init__(
        self,
        message: str = "Validation failed.",
        *,
        code: str = "validation_error",
        details: Any | None = None,
    ) -> None:
        super().__init__(message, code=code, status_code=422, details=details)


class ServerError(ApplicationError):
    def __init__(
        self,
        message: str = "Internal server error.",
        *,
        code: str = "server_error",
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


class TodoApiError(ApplicationError):
    """Base class for failures talking to the upstream to-do API.

    ``upstream_message`` holds the ``message``/``detail`` string from the
    upstream response body when there was one, so forms can prefer their own
    wording when the upstream said nothing useful.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "upstream_error",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        upstream_status: int | None = None,
        upstream_message: str | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message, code=code, status_code=status_code, details=details)
        self.upstream_status = upstream_status
        self.upstream_message = upstream_message


class UpstreamAPIError(TodoApiError):
    """The upstream answered with a non-2xx status other than 401."""

    def __init__(
        self,
        message: str = "Request failed.",
        *,
        upstream_status: int | None = None,
        upstream_message: str | None = None,
    ) -> None:
        status_code = status.HTTP_502_BAD_GATEWAY
        if upstream_status is not None and 400 <= upstream_status < 500:
            status_code = upstream_status
        super().__init__(
            message,
            code="upstream_error",
            status_code=status_code,
            upstream_status=upstream_status,
            upstream_message=upstream_message,
            details={"upstream_status": upstream_status} if upstream_status is not None else None,
        )


class UpstreamUnavailableError(TodoApiError):
    """The upstream could not be reached."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE) -> None:
        super().__init__(
            message,
            code="upstream_unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


class AuthenticationError(TodoApiError):
    """The upstream rejected our credentials (HTTP 401)."""

    def __init__(
        self,
        message: str = "Authentication failed.",
        *,
        upstream_message: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code="unauthorized",
            status_code=status.HTTP_401_UNAUTHORIZED,
            upstream_status=status.HTTP_401_UNAUTHORIZED,
            upstream_message=upstream_message,
        )


class LoginRequiredError(AuthenticationError):
    """No usable access token is stored in the session."""

    def __init__(self) -> None:
        super().__init__("Please sign in to continue.")


_HTTP_STATUS_CODE_MAP: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_429_TOO_MANY_REQUESTS: "rate_limited",
}


def _bind_request_context(request: Request) -> Token[str] | None:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        return None
    return bind_request_id(request_id)


def _reset_request_context(token: Token[str] | None) -> None:
    if token is not None:
        reset_request_id(token)


def _wants_html(request: Request) -> bool:
    if is_htmx_request(request):
        return True
    accept = request.headers.get("accept", "")
    return "text/html" in accept.lower()


def _merge_details_with_request(request: Request, details: Any | None) -> Any | None:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        return details
    if details is None:
        return {"request_id": request_id}
    if isinstance(details, dict):
        if "request_id" not in details:
            return {**details, "request_id": request_id}
        return details
    return {"request_id": request_id, "detail": details}


def _error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    headers: Mapping[str, str] | None = None,
) -> Response:
    response: Response
    if _wants_html(request):
        context = {"title": _status_phrase(status_code), "error": message, "status_code": status_code}
        if is_htmx_request(request):
            response = partial_response(request, "partials/_alert.html", context, status_code=status_code)
        else:
            response = template_response(request, "errors/error.html", context, status_code=status_code)
    else:
        payload = ErrorResponse(
            code=code,
            message=message,
            details=_merge_details_with_request(request, details),
        )
        response = JSONResponse(status_code=status_code, content=payload.model_dump())
    if headers:
        response.headers.update(headers)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


def redirect_to_login(request: Request) -> Response:
    """Send the browser to the login page, honouring HTMX requests."""

    login_url = str(request.url_for("auth:login"))
    if is_htmx_request(request):
        return Response(status_code=status.HTTP_200_OK, headers={"HX-Redirect": login_url})
    return RedirectResponse(login_url, status_code=status.HTTP_303_SEE_OTHER)


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _http_exception_details(status_code: int, detail: Any) -> tuple[str, Any | None]:
    if isinstance(detail, str):
        return detail, None
    status_phrase = _status_phrase(status_code)
    if detail is None:
        return status_phrase, None
    if isinstance(detail, list):
        return status_phrase, {"errors": detail}
    return status_phrase, detail


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the provided FastAPI app."""

    @app.exception_handler(AuthenticationError)
    async def _handle_authentication_error(request: Request, exc: AuthenticationError) -> Response:
        token = _bind_request_context(request)
        try:
            clear_tokens(request.session)
            if not isinstance(exc, LoginRequiredError):
                logger.info("Upstream rejected the session token; signing out.")
                add_flash_message(request.session, "error", SESSION_EXPIRED_MESSAGE)
            if request.url.path.startswith("/api/"):
                return _error_response(
                    request,
                    status_code=exc.status_code,
                    code=exc.code,
                    message=exc.message,
                )
            return redirect_to_login(request)
        finally:
            _reset_request_context(token)

    @app.exception_handler(ApplicationError)
    async def _handle_application_error(request: Request, exc: ApplicationError) -> Response:
        token = _bind_request_context(request)
        try:
            log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
            log(
                "Application error encountered",
                extra={"code": exc.code, "status_code": exc.status_code},
            )
            return _error_response(
                request,
                status_code=exc.status_code,
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> Response:
        token = _bind_request_context(request)
        try:
            logger.warning("Request validation failed", extra={"errors": exc.errors()})
            return _error_response(
                request,
                status_code=422,
                code="validation_error",
                message="Request validation failed.",
                details={"errors": exc.errors()},
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> Response:
        token = _bind_request_context(request)
        try:
            code = _HTTP_STATUS_CODE_MAP.get(exc.status_code, "http_error")
            message, extra_details = _http_exception_details(exc.status_code, exc.detail)
            log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
            log(
                "HTTP exception raised",
                extra={"code": code, "status_code": exc.status_code, "path": str(request.url.path)},
            )
            return _error_response(
                request,
                status_code=exc.status_code,
                code=code,
                message=message,
                details=extra_details,
                headers=exc.headers or None,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(Exception)
    async def _handle_unhandled_exception(request: Request, exc: Exception) -> Response:
        token = _bind_request_context(request)
        try:
            logger.exception("Unhandled application error.")
            return _error_response(
                request,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                code="server_error",
                message="Internal server error.",
            )
        finally:
            _reset_request_context(token)


__all__ = [
    "ApplicationError",
    "AuthenticationError",
    "LoginRequiredError",
    "NETWORK_ERROR_MESSAGE",
    "NotFoundError",
    "SESSION_EXPIRED_MESSAGE",
    "ServerError",
    "TodoApiError",
    "UpstreamAPIError",
    "UpstreamUnavailableError",
    "ValidationError",
    "redirect_to_login",
    "register_exception_handlers",
]
