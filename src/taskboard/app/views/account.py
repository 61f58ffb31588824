from __future__ import annotations

from fastapi import APIRouter, Request, status
from starlette.datastructures import FormData, UploadFile
from starlette.responses import RedirectResponse, Response

from ..core.session import add_flash_message, validate_csrf_token
from ..core.templates import template_response
from ..deps import AccountServiceDependency
from ..errors import ApplicationError, AuthenticationError
from ..schemas import ProfileImage, UserData
from ..services.account import ACCOUNT_FORM_FIELDS

router = APIRouter(tags=["account"])

PROFILE_UPDATED_MESSAGE = "Profile updated successfully!"


def _submitted_form(form: FormData) -> dict[str, str]:
    submitted: dict[str, str] = {}
    for field in ACCOUNT_FORM_FIELDS:
        value = form.get(field)
        submitted[field] = value.strip() if isinstance(value, str) else ""
    return submitted


async def _profile_image(form: FormData) -> ProfileImage | None:
    upload = form.get("profile_image")
    if not isinstance(upload, UploadFile) or not upload.filename:
        return None
    content = await upload.read()
    if not content:
        return None
    return ProfileImage(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )


def _render_account(
    request: Request,
    user: UserData | None,
    form: dict[str, str],
    *,
    error: str | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    return template_response(
        request,
        "account/index.html",
        {
            "title": "Account Information",
            "current_user": user,
            "form": form,
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/account", name="account:index")
async def account_page(request: Request, service: AccountServiceDependency) -> Response:
    """Show the profile form pre-filled from the upstream user."""

    try:
        user, form = await service.load()
    except AuthenticationError:
        raise
    except ApplicationError as exc:
        empty = {field: "" for field in ACCOUNT_FORM_FIELDS}
        return _render_account(request, None, empty, error=exc.message, status_code=exc.status_code)
    return _render_account(request, user, form)


@router.post("/account", name="account:update")
async def account_update(request: Request, service: AccountServiceDependency) -> Response:
    """Save profile edits, including an optional new profile picture."""

    form = await request.form()
    submitted = _submitted_form(form)
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        add_flash_message(request.session, "error", "The form has expired. Please try again.")
        return RedirectResponse(request.url_for("account:index"), status_code=status.HTTP_303_SEE_OTHER)

    image = await _profile_image(form)
    try:
        await service.save(submitted, image)
    except AuthenticationError:
        raise
    except ApplicationError as exc:
        return _render_account(request, None, submitted, error=exc.message, status_code=exc.status_code)

    add_flash_message(request.session, "success", PROFILE_UPDATED_MESSAGE)
    return RedirectResponse(request.url_for("account:index"), status_code=status.HTTP_303_SEE_OTHER)
