from __future__ import annotations

import logging

from fastapi import APIRouter, Request, status
from starlette.datastructures import FormData
from starlette.responses import RedirectResponse

from ..core.session import add_flash_message, clear_tokens, store_tokens, validate_csrf_token
from ..core.templates import template_response
from ..deps import AuthServiceDependency, OptionalAccessTokenDependency
from ..errors import TodoApiError, UpstreamUnavailableError
from ..validation import validate_login, validate_signup

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Invalid email or password. Please try again."
SIGNUP_FAILED_MESSAGE = "Something went wrong. Please try again."
FORM_EXPIRED_MESSAGE = "The form has expired. Please try again."


def _clean_text(raw: object) -> str:
    return str(raw or "").strip()


def _upstream_failure(exc: TodoApiError, fallback: str) -> str:
    if isinstance(exc, UpstreamUnavailableError):
        return exc.message
    return exc.upstream_message or fallback


def _login_form(form: FormData | None = None) -> dict[str, object]:
    if form is None:
        return {"email": "", "remember_me": False}
    return {
        "email": _clean_text(form.get("email")),
        "remember_me": form.get("remember_me") in {"on", "true", "1"},
    }


def _signup_form(form: FormData | None = None) -> dict[str, str]:
    fields = ("first_name", "last_name", "email")
    if form is None:
        return {field: "" for field in fields}
    return {field: _clean_text(form.get(field)) for field in fields}


def _render_login(
    request: Request,
    form: dict[str, object],
    errors: dict[str, str],
    *,
    status_code: int = status.HTTP_200_OK,
) -> object:
    return template_response(
        request,
        "auth/login.html",
        {"title": "Log in", "form": form, "errors": errors},
        status_code=status_code,
    )


def _render_signup(
    request: Request,
    form: dict[str, str],
    errors: dict[str, str],
    *,
    status_code: int = status.HTTP_200_OK,
) -> object:
    return template_response(
        request,
        "auth/signup.html",
        {"title": "Sign up", "form": form, "errors": errors},
        status_code=status_code,
    )


def _redirect_to_dashboard(request: Request) -> RedirectResponse:
    return RedirectResponse(request.url_for("dashboard:index"), status_code=status.HTTP_303_SEE_OTHER)


@router.get("/login", name="auth:login")
async def login_form(request: Request, token: OptionalAccessTokenDependency) -> object:
    """Render the login form."""

    if token is not None:
        return _redirect_to_dashboard(request)
    return _render_login(request, _login_form(), {})


@router.post("/login", name="auth:login:submit")
async def login_submit(request: Request, auth_service: AuthServiceDependency) -> object:
    """Exchange credentials for an upstream token pair."""

    form = await request.form()
    payload = _login_form(form)
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        return _render_login(
            request,
            payload,
            {"general": FORM_EXPIRED_MESSAGE},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    password = str(form.get("password") or "")
    errors = validate_login(str(payload["email"]), password)
    if errors:
        return _render_login(request, payload, errors, status_code=status.HTTP_400_BAD_REQUEST)

    try:
        tokens = await auth_service.login(str(payload["email"]), password)
    except TodoApiError as exc:
        logger.info("Login rejected", extra={"upstream_status": exc.upstream_status})
        return _render_login(
            request,
            payload,
            {"general": _upstream_failure(exc, LOGIN_FAILED_MESSAGE)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    store_tokens(
        request.session,
        tokens.access,
        tokens.refresh,
        remember=bool(payload["remember_me"]),
    )
    return _redirect_to_dashboard(request)


@router.get("/signup", name="auth:signup")
async def signup_form(request: Request, token: OptionalAccessTokenDependency) -> object:
    """Render the registration form."""

    if token is not None:
        return _redirect_to_dashboard(request)
    return _render_signup(request, _signup_form(), {})


@router.post("/signup", name="auth:signup:submit")
async def signup_submit(request: Request, auth_service: AuthServiceDependency) -> object:
    """Create an upstream account, then send the user to the login page."""

    form = await request.form()
    payload = _signup_form(form)
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        return _render_signup(
            request,
            payload,
            {"general": FORM_EXPIRED_MESSAGE},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    password = str(form.get("password") or "")
    errors = validate_signup(
        first_name=payload["first_name"],
        last_name=payload["last_name"],
        email=payload["email"],
        password=password,
        confirm_password=str(form.get("confirm_password") or ""),
    )
    if errors:
        return _render_signup(request, payload, errors, status_code=status.HTTP_400_BAD_REQUEST)

    try:
        await auth_service.signup(
            first_name=payload["first_name"],
            last_name=payload["last_name"],
            email=payload["email"],
            password=password,
        )
    except TodoApiError as exc:
        logger.info("Signup rejected", extra={"upstream_status": exc.upstream_status})
        return _render_signup(
            request,
            payload,
            {"general": _upstream_failure(exc, SIGNUP_FAILED_MESSAGE)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    add_flash_message(request.session, "success", "Your account has been created. Please log in.")
    return RedirectResponse(request.url_for("auth:login"), status_code=status.HTTP_303_SEE_OTHER)


@router.post("/logout", name="auth:logout")
async def logout(request: Request) -> RedirectResponse:
    """Forget the stored tokens."""

    form = await request.form()
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        add_flash_message(request.session, "error", "Invalid sign out request.")
        return _redirect_to_dashboard(request)

    clear_tokens(request.session)
    add_flash_message(request.session, "info", "You have been signed out.")
    return RedirectResponse(request.url_for("auth:login"), status_code=status.HTTP_303_SEE_OTHER)
