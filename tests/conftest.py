from __future__ import annotations

import os
import re
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any
from urllib.parse import parse_qs

os.environ.setdefault("TASKBOARD_ENVIRONMENT", "test")

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from taskboard.app.client import TodoApiClient
from taskboard.app.core.config import Settings
from taskboard.app.main import create_app

UPSTREAM_BASE_URL = "https://upstream.test/api"
USER_EMAIL = "jane@example.com"
USER_PASSWORD = "secret-pass"

_CSRF_PATTERN = re.compile(r'name="csrf_token" value="([^"]+)"')
_MULTIPART_FIELD = re.compile(
    rb'name="(?P<name>[^"]+)"(?:; filename="(?P<filename>[^"]*)")?\r\n'
    rb"(?:Content-Type: [^\r\n]+\r\n)?\r\n(?P<value>.*?)\r\n--",
    re.S,
)


def _json(status_code: int, payload: Any) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


def form_fields(request: httpx.Request) -> dict[str, str]:
    """Decode an urlencoded or multipart request body into text fields."""

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        fields: dict[str, str] = {}
        for match in _MULTIPART_FIELD.finditer(request.content):
            name = match.group("name").decode()
            if match.group("filename") is not None:
                fields[name] = match.group("filename").decode()
            else:
                fields[name] = match.group("value").decode()
        return fields
    parsed = parse_qs(request.content.decode(), keep_blank_values=True)
    return {key: values[-1] for key, values in parsed.items()}


class FakeTodoApi:
    """In-memory stand-in for the upstream to-do REST API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], httpx.Response] = {}
        self.list_shape = "array"
        self.user: dict[str, Any] = {
            "id": 1,
            "email": USER_EMAIL,
            "first_name": "Jane",
            "last_name": "Doe",
            "address": "12 Main Street",
            "contact_number": "555-0100",
            "birthday": "1990-04-02",
            "profile_image": None,
            "bio": "",
        }
        self.password = USER_PASSWORD
        self.valid_tokens: set[str] = set()
        self.signups: list[dict[str, str]] = []
        self.todos: dict[int, dict[str, Any]] = {}
        self._next_id = 1
        self._issued = 0

    # ---- helpers used by tests ----

    def add_todo(self, **fields: Any) -> dict[str, Any]:
        todo = {
            "id": self._next_id,
            "title": "Task",
            "description": "",
            "priority": "low",
            "is_completed": False,
            "position": self._next_id,
            "todo_date": "2025-01-05",
            "created_at": "2025-01-01T00:00:00Z",
            "updated_at": "2025-01-01T00:00:00Z",
        }
        todo.update(fields)
        self.todos[todo["id"]] = todo
        self._next_id = max(self._next_id, todo["id"]) + 1
        return todo

    def fail(self, method: str, path: str, status_code: int, payload: Any | None = None) -> None:
        if payload is None:
            response = httpx.Response(status_code, text="upstream exploded")
        else:
            response = _json(status_code, payload)
        self.failures[(method, path)] = response

    def revoke_tokens(self) -> None:
        self.valid_tokens.clear()

    def last_request(self, method: str, path: str) -> httpx.Request:
        for request in reversed(self.requests):
            if request.method == method and request.url.path == path:
                return request
        raise AssertionError(f"No {method} {path} request was made")

    # ---- transport ----

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        failure = self.failures.get((request.method, path))
        if failure is not None:
            return failure

        if request.method == "POST" and path == "/api/auth/login/":
            return self._login(request)
        if request.method == "POST" and path == "/api/users/signup/":
            return self._signup(request)

        auth = request.headers.get("authorization", "")
        if not auth.startswith("Bearer ") or auth.removeprefix("Bearer ") not in self.valid_tokens:
            return _json(401, {"detail": "Given token not valid for any token type"})

        if path == "/api/users/me/":
            if request.method == "GET":
                return _json(200, self.user)
            if request.method == "PATCH":
                return self._update_user(request)
        if path == "/api/todos/":
            if request.method == "GET":
                return self._list_todos(request)
            if request.method == "POST":
                return self._create_todo(request)
        match = re.fullmatch(r"/api/todos/(\d+)/", path)
        if match:
            return self._todo_item(request, int(match.group(1)))
        return _json(404, {"detail": "Not found."})

    def _login(self, request: httpx.Request) -> httpx.Response:
        fields = form_fields(request)
        if fields.get("email") != self.user["email"] or fields.get("password") != self.password:
            return _json(401, {"detail": "No active account found with the given credentials"})
        self._issued += 1
        access = f"access-{self._issued}"
        self.valid_tokens.add(access)
        return _json(200, {"access": access, "refresh": f"refresh-{self._issued}"})

    def _signup(self, request: httpx.Request) -> httpx.Response:
        fields = form_fields(request)
        if fields.get("email") == self.user["email"]:
            return _json(400, {"message": "A user with that email already exists."})
        self.signups.append(fields)
        return _json(201, {"id": 2, "email": fields.get("email")})

    def _update_user(self, request: httpx.Request) -> httpx.Response:
        fields = form_fields(request)
        for key, value in fields.items():
            if key == "profile_image":
                self.user["profile_image"] = f"https://cdn.test/{value}"
            elif key in self.user:
                self.user[key] = value
        return _json(200, self.user)

    def _list_todos(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        items = list(self.todos.values())
        search = params.get("search")
        if search:
            items = [todo for todo in items if search.lower() in todo["title"].lower()]
        if params.get("todo_date"):
            items = [todo for todo in items if todo["todo_date"] == params["todo_date"]]
        if params.get("priority"):
            items = [todo for todo in items if todo["priority"] == params["priority"]]
        if params.get("is_completed"):
            wanted = params["is_completed"] == "true"
            items = [todo for todo in items if todo["is_completed"] is wanted]
        if self.list_shape == "results":
            return _json(200, {"count": len(items), "results": items})
        if self.list_shape == "todos":
            return _json(200, {"todos": items})
        return _json(200, items)

    def _create_todo(self, request: httpx.Request) -> httpx.Response:
        fields = form_fields(request)
        todo = self.add_todo(
            title=fields["title"],
            description=fields.get("description", ""),
            priority=fields["priority"],
            todo_date=fields["todo_date"],
        )
        return _json(201, todo)

    def _todo_item(self, request: httpx.Request, todo_id: int) -> httpx.Response:
        todo = self.todos.get(todo_id)
        if todo is None:
            return _json(404, {"detail": "Not found."})
        if request.method == "DELETE":
            del self.todos[todo_id]
            return httpx.Response(204)
        if request.method == "PATCH":
            for key, value in form_fields(request).items():
                if key == "is_completed":
                    todo[key] = value == "true"
                elif key == "position":
                    todo[key] = int(value)
                else:
                    todo[key] = value
            return _json(200, todo)
        return _json(405, {"detail": "Method not allowed."})


def extract_csrf(html: str) -> str:
    match = _CSRF_PATTERN.search(html)
    assert match is not None, "Expected a CSRF token in the rendered page"
    return match.group(1)


@pytest.fixture()
def fake_api() -> FakeTodoApi:
    return FakeTodoApi()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        environment="test",
        todo_api_base_url=UPSTREAM_BASE_URL,
        session_secret_key="test-session-secret",
    )


@pytest.fixture()
async def todo_api(fake_api: FakeTodoApi, settings: Settings) -> AsyncIterator[TodoApiClient]:
    client = TodoApiClient.from_settings(settings, transport=httpx.MockTransport(fake_api.handle))
    try:
        yield client
    finally:
        await client.aclose()


@pytest.fixture()
def app(settings: Settings, todo_api: TodoApiClient) -> FastAPI:
    application = create_app(settings)
    # ASGITransport does not run startup hooks, so install the client directly.
    application.state.todo_api = todo_api
    return application


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://testserver",
        headers={"Accept": "text/html"},
    ) as http_client:
        yield http_client


@pytest.fixture()
def csrf(client: AsyncClient) -> Callable[..., Awaitable[str]]:
    """Fetch a page and return the CSRF token rendered into it."""

    async def _fetch(path: str = "/login") -> str:
        response = await client.get(path)
        return extract_csrf(response.text)

    return _fetch


@pytest.fixture()
async def signed_in(client: AsyncClient, csrf: Callable[..., Awaitable[str]]) -> AsyncClient:
    token = await csrf("/login")
    response = await client.post(
        "/login",
        data={"email": USER_EMAIL, "password": USER_PASSWORD, "csrf_token": token},
    )
    assert response.status_code == 303, response.text
    return client
