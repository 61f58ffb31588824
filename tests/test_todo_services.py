from __future__ import annotations

from datetime import date

import pytest

from taskboard.app.client import TodoApiClient
from taskboard.app.errors import NotFoundError
from taskboard.app.presentation import PriorityLabel
from taskboard.app.schemas import Todo, TodoPriority
from taskboard.app.services import AccountService, AuthService, TodoService
from taskboard.app.services.todos import build_query, resolve_due_date, to_task_card

from conftest import USER_EMAIL, USER_PASSWORD, FakeTodoApi

TODAY = date(2025, 1, 1)


def test_only_first_selected_due_filter_is_applied() -> None:
    assert resolve_due_date(["30days", "5days"], TODAY) == date(2025, 1, 6)
    assert resolve_due_date(["today", "10days"], TODAY) == TODAY
    assert resolve_due_date(["30days"], TODAY) == date(2025, 1, 31)
    assert resolve_due_date(["tomorrow"], TODAY) is None
    assert resolve_due_date([], TODAY) is None


def test_build_query() -> None:
    query = build_query("  milk ", ["10days"], "Extreme", False, today=TODAY)

    assert query.search == "milk"
    assert query.todo_date == date(2025, 1, 11)
    assert query.priority is TodoPriority.EXTREME
    assert query.is_completed is False
    assert build_query("", [], "whatever", today=TODAY).query_params() == []


def test_task_card_defaults() -> None:
    card = to_task_card(Todo(id=4, title="  ", priority="HIGH", todo_date=None))

    assert card.title == "Untitled Task"
    assert card.priority_label is PriorityLabel.EXTREME
    assert card.due_label == "No due date"
    assert card.todo_date == ""


@pytest.fixture()
async def token(todo_api: TodoApiClient) -> str:
    tokens = await AuthService(todo_api).login(f"  {USER_EMAIL} ", USER_PASSWORD)
    return tokens.access


async def test_todo_service_toggle_and_get(todo_api: TodoApiClient, fake_api: FakeTodoApi, token: str) -> None:
    todo = fake_api.add_todo(title="Stretch", is_completed=False)
    service = TodoService(todo_api, token)

    toggled = await service.toggle(todo["id"])
    assert toggled.is_completed is True
    toggled_back = await service.toggle(todo["id"])
    assert toggled_back.is_completed is False

    with pytest.raises(NotFoundError):
        await service.get(999)


async def test_todo_service_lists_cards(todo_api: TodoApiClient, fake_api: FakeTodoApi, token: str) -> None:
    fake_api.add_todo(title="Plan trip", priority="moderate", todo_date="2025-03-09")
    service = TodoService(todo_api, token)

    cards = await service.list_cards()

    assert len(cards) == 1
    assert cards[0].priority_label is PriorityLabel.MODERATE
    assert cards[0].due_label == "Mar 9, 2025"


async def test_current_user_or_none_swallows_upstream_failures(
    todo_api: TodoApiClient,
    fake_api: FakeTodoApi,
    token: str,
) -> None:
    fake_api.fail("GET", "/api/users/me/", 500)

    assert await AuthService(todo_api).current_user_or_none(token) is None


async def test_account_service_load_normalises_birthday(
    todo_api: TodoApiClient,
    fake_api: FakeTodoApi,
    token: str,
) -> None:
    fake_api.user["birthday"] = "1990-04-02T00:00:00Z"

    user, form = await AccountService(todo_api, token).load()

    assert user.email == USER_EMAIL
    assert form["birthday"] == "1990-04-02"
    assert form["first_name"] == "Jane"
