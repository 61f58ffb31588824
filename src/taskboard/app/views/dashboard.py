from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from starlette.datastructures import FormData
from starlette.responses import RedirectResponse, Response

from ..core.session import add_flash_message, validate_csrf_token
from ..core.templates import is_htmx_request, partial_response, template_response
from ..deps import (
    AccessTokenDependency,
    AuthServiceDependency,
    OptionalAccessTokenDependency,
    TodoApiDependency,
    TodoServiceDependency,
)
from ..errors import AuthenticationError, TodoApiError
from ..presentation import map_priority
from ..schemas import Todo, TodoCreate, TodoPriority, TodoUpdate, UserData
from ..services import AuthService, TodoService
from ..services.todos import DUE_FILTERS, TaskCard, build_query, to_task_card
from ..validation import validate_todo

router = APIRouter(tags=["dashboard"])
logger = logging.getLogger(__name__)

PRIORITY_OPTIONS = tuple(member.value for member in TodoPriority)
_EMPTY_TODO_FORM = {"title": "", "description": "", "priority": "", "todo_date": ""}


def _clean_text(raw: object) -> str:
    return str(raw or "").strip()


def _parse_completed(raw: str | None) -> bool | None:
    lowered = (raw or "").strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def _list_filters(request: Request) -> dict[str, Any]:
    params = request.query_params
    return {
        "search": params.get("search", ""),
        "filters": params.getlist("filter"),
        "priority": params.get("priority", ""),
        "completed": params.get("completed", ""),
    }


def _todo_form(form: FormData) -> dict[str, str]:
    return {
        "title": _clean_text(form.get("title")),
        "description": _clean_text(form.get("description")),
        "priority": _clean_text(form.get("priority")).lower(),
        "todo_date": _clean_text(form.get("todo_date")),
    }


def _edit_form(todo: Todo) -> dict[str, str]:
    priority = todo.priority.strip().lower()
    if priority not in PRIORITY_OPTIONS:
        priority = map_priority(todo.priority).value.lower()
    card = to_task_card(todo)
    return {
        "title": todo.title,
        "description": todo.description,
        "priority": priority,
        "todo_date": card.todo_date,
    }


def _redirect_to_dashboard(request: Request) -> RedirectResponse:
    return RedirectResponse(request.url_for("dashboard:index"), status_code=status.HTTP_303_SEE_OTHER)


def _require_csrf(request: Request, form: FormData) -> None:
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid CSRF token.")


async def _load_cards(
    service: TodoService,
    filters: dict[str, Any],
) -> tuple[list[TaskCard], str | None]:
    query = build_query(
        filters["search"],
        filters["filters"],
        filters["priority"],
        _parse_completed(filters["completed"]),
        today=date.today(),
    )
    try:
        return await service.list_cards(query), None
    except AuthenticationError:
        raise
    except TodoApiError as exc:
        logger.warning("Could not load tasks", extra={"code": exc.code})
        return [], exc.message


async def _render_dashboard(
    request: Request,
    service: TodoService,
    current_user: UserData | None,
    *,
    form: dict[str, str] | None = None,
    errors: dict[str, str] | None = None,
    error: str | None = None,
    show_add_form: bool = False,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    filters = _list_filters(request)
    cards, list_error = await _load_cards(service, filters)
    return template_response(
        request,
        "dashboard/index.html",
        {
            "title": "Dashboard",
            "current_user": current_user,
            "cards": cards,
            "list_error": list_error,
            "filters": filters,
            "due_filters": DUE_FILTERS,
            "priority_options": PRIORITY_OPTIONS,
            "form": form or dict(_EMPTY_TODO_FORM),
            "errors": errors or {},
            "error": error,
            "show_add_form": show_add_form,
        },
        status_code=status_code,
    )


async def _render_edit(
    request: Request,
    auth_service: AuthService,
    token: str,
    todo_id: int,
    form: dict[str, str],
    *,
    errors: dict[str, str] | None = None,
    error: str | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    current_user = await auth_service.current_user_or_none(token)
    return template_response(
        request,
        "dashboard/edit.html",
        {
            "title": "Edit Task",
            "current_user": current_user,
            "todo_id": todo_id,
            "priority_options": PRIORITY_OPTIONS,
            "form": form,
            "errors": errors or {},
            "error": error,
        },
        status_code=status_code,
    )


@router.get("/", name="dashboard:index")
async def index(
    request: Request,
    token: OptionalAccessTokenDependency,
    client: TodoApiDependency,
    auth_service: AuthServiceDependency,
) -> Response:
    """Render the signed-in user's task dashboard."""

    if token is None:
        return RedirectResponse(request.url_for("auth:login"), status_code=status.HTTP_303_SEE_OTHER)
    current_user = await auth_service.current_user_or_none(token)
    service = TodoService(client, token)
    return await _render_dashboard(request, service, current_user)


@router.get("/todos", name="dashboard:list_todos")
async def list_todos(request: Request, service: TodoServiceDependency) -> Response:
    """Task list fragment refreshed by the search box and filters."""

    if not is_htmx_request(request):
        target = request.url_for("dashboard:index").replace(query=request.url.query)
        return RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)

    filters = _list_filters(request)
    cards, list_error = await _load_cards(service, filters)
    context = {"cards": cards, "list_error": list_error, "filters": filters}
    return partial_response(request, "dashboard/_task_list.html", context)


@router.post("/todos", name="dashboard:create_todo")
async def create_todo(
    request: Request,
    token: AccessTokenDependency,
    service: TodoServiceDependency,
    auth_service: AuthServiceDependency,
) -> Response:
    """Create a task from the add-task form."""

    form = await request.form()
    if not validate_csrf_token(request.session, form.get("csrf_token")):
        add_flash_message(request.session, "error", "The form has expired. Please try again.")
        return _redirect_to_dashboard(request)

    payload = _todo_form(form)
    errors = validate_todo(
        title=payload["title"],
        priority=payload["priority"],
        todo_date=payload["todo_date"],
    )
    if errors:
        current_user = await auth_service.current_user_or_none(token)
        return await _render_dashboard(
            request,
            service,
            current_user,
            form=payload,
            errors=errors,
            show_add_form=True,
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    try:
        await service.create(
            TodoCreate(
                title=payload["title"],
                description=payload["description"],
                priority=TodoPriority(payload["priority"]),
                todo_date=date.fromisoformat(payload["todo_date"]),
            )
        )
    except AuthenticationError:
        raise
    except TodoApiError as exc:
        current_user = await auth_service.current_user_or_none(token)
        return await _render_dashboard(
            request,
            service,
            current_user,
            form=payload,
            error=exc.message,
            show_add_form=True,
            status_code=exc.status_code,
        )

    add_flash_message(request.session, "success", "Task created successfully.")
    return _redirect_to_dashboard(request)


@router.get("/todos/{todo_id}/edit", name="dashboard:edit_todo")
async def edit_todo(
    todo_id: int,
    request: Request,
    token: AccessTokenDependency,
    service: TodoServiceDependency,
    auth_service: AuthServiceDependency,
) -> Response:
    """Render the edit form for a single task."""

    todo = await service.get(todo_id)
    return await _render_edit(request, auth_service, token, todo_id, _edit_form(todo))


@router.post("/todos/{todo_id}", name="dashboard:update_todo")
async def update_todo(
    todo_id: int,
    request: Request,
    token: AccessTokenDependency,
    service: TodoServiceDependency,
    auth_service: AuthServiceDependency,
) -> Response:
    """Persist edits made on the edit form."""

    form = await request.form()
    _require_csrf(request, form)

    payload = _todo_form(form)
    errors = validate_todo(
        title=payload["title"],
        priority=payload["priority"],
        todo_date=payload["todo_date"],
    )
    if errors:
        return await _render_edit(
            request,
            auth_service,
            token,
            todo_id,
            payload,
            errors=errors,
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    update = TodoUpdate(
        title=payload["title"],
        description=payload["description"],
        priority=TodoPriority(payload["priority"]),
        todo_date=date.fromisoformat(payload["todo_date"]),
    )
    try:
        await service.update(todo_id, update)
    except AuthenticationError:
        raise
    except TodoApiError as exc:
        return await _render_edit(
            request,
            auth_service,
            token,
            todo_id,
            payload,
            error=exc.message,
            status_code=exc.status_code,
        )

    add_flash_message(request.session, "success", "Task updated successfully.")
    return _redirect_to_dashboard(request)


@router.post("/todos/{todo_id}/toggle", name="dashboard:toggle_todo")
async def toggle_todo(todo_id: int, request: Request, service: TodoServiceDependency) -> Response:
    """Flip a task between open and completed."""

    form = await request.form()
    _require_csrf(request, form)

    todo = await service.toggle(todo_id)
    if is_htmx_request(request):
        return partial_response(request, "dashboard/_task_card.html", {"card": to_task_card(todo)})

    add_flash_message(request.session, "success", "Task updated.")
    return _redirect_to_dashboard(request)


@router.post("/todos/{todo_id}/delete", name="dashboard:delete_todo")
async def delete_todo(todo_id: int, request: Request, service: TodoServiceDependency) -> Response:
    """Remove a task."""

    form = await request.form()
    _require_csrf(request, form)

    await service.delete(todo_id)
    if is_htmx_request(request):
        # An empty body lets HTMX swap the card out of the list.
        return Response(status_code=status.HTTP_200_OK)

    add_flash_message(request.session, "success", "Task deleted.")
    return _redirect_to_dashboard(request)
