"""Service layer for the dashboard task list."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from ..client import TodoApiClient
from ..errors import NotFoundError
from ..presentation import (
    UNTITLED_TASK_LABEL,
    PriorityLabel,
    format_due_date,
    format_form_date,
    map_priority,
)
from ..schemas import Todo, TodoCreate, TodoPriority, TodoQuery, TodoUpdate


@dataclass(frozen=True, slots=True)
class DueFilter:
    """A dashboard filter that narrows the list to one due date."""

    id: str
    label: str
    days: int


DUE_FILTERS: tuple[DueFilter, ...] = (
    DueFilter("today", "Deadline Today", 0),
    DueFilter("5days", "Expires in 5 days", 5),
    DueFilter("10days", "Expires in 10 days", 10),
    DueFilter("30days", "Expires in 30 days", 30),
)


def resolve_due_date(selected: Iterable[str], today: date) -> date | None:
    """Translate the selected filters into a single due date.

    The upstream accepts one ``todo_date``, so only the first selected filter
    (in the order the options are listed) is applied. Unknown ids are ignored.
    """

    chosen = set(selected)
    for due_filter in DUE_FILTERS:
        if due_filter.id in chosen:
            return today + timedelta(days=due_filter.days)
    return None


def _parse_priority(raw: str | None) -> TodoPriority | None:
    try:
        return TodoPriority((raw or "").strip().lower())
    except ValueError:
        return None


def build_query(
    search: str | None = None,
    filters: Iterable[str] = (),
    priority: str | None = None,
    completed: bool | None = None,
    *,
    today: date | None = None,
) -> TodoQuery:
    return TodoQuery(
        search=(search or "").strip() or None,
        todo_date=resolve_due_date(filters, today or date.today()),
        priority=_parse_priority(priority),
        is_completed=completed,
    )


@dataclass(slots=True)
class TaskCard:
    """Presentation view of one todo on the dashboard."""

    id: int
    title: str
    description: str
    priority_label: PriorityLabel
    due_label: str
    is_completed: bool
    todo_date: str = ""


def to_task_card(todo: Todo) -> TaskCard:
    return TaskCard(
        id=todo.id,
        title=todo.title.strip() or UNTITLED_TASK_LABEL,
        description=todo.description,
        priority_label=map_priority(todo.priority),
        due_label=format_due_date(todo.todo_date),
        is_completed=todo.is_completed,
        todo_date=format_form_date(todo.todo_date),
    )


class TodoService:
    """Task workflows for a signed-in user, backed by the upstream API."""

    def __init__(self, client: TodoApiClient, token: str) -> None:
        self._client = client
        self._token = token

    async def list_todos(self, query: TodoQuery | None = None) -> list[Todo]:
        return await self._client.list_todos(self._token, query)

    async def list_cards(self, query: TodoQuery | None = None) -> list[TaskCard]:
        """Return the task cards shown on the dashboard."""
        todos = await self.list_todos(query)
        return [to_task_card(todo) for todo in todos]

    async def get(self, todo_id: int) -> Todo:
        """Look a todo up by id; the upstream offers no single-item read."""
        for todo in await self.list_todos():
            if todo.id == todo_id:
                return todo
        raise NotFoundError("Task not found.")

    async def create(self, payload: TodoCreate) -> Todo:
        return await self._client.create_todo(self._token, payload)

    async def update(self, todo_id: int, payload: TodoUpdate) -> Todo:
        return await self._client.update_todo(self._token, todo_id, payload)

    async def toggle(self, todo_id: int) -> Todo:
        """Flip the completion flag of a todo."""
        todo = await self.get(todo_id)
        return await self.update(todo_id, TodoUpdate(is_completed=not todo.is_completed))

    async def delete(self, todo_id: int) -> None:
        await self._client.delete_todo(self._token, todo_id)


__all__ = [
    "DUE_FILTERS",
    "DueFilter",
    "TaskCard",
    "TodoService",
    "build_query",
    "resolve_due_date",
    "to_task_card",
]
