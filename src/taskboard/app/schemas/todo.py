"""Todo-related Pydantic schemas."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TODO_EXAMPLE = {
    "id": 7,
    "title": "Draft product documentation",
    "description": "Outline sections for the public API guide.",
    "priority": "moderate",
    "is_completed": False,
    "position": 1,
    "todo_date": "2025-01-05",
    "created_at": "2025-01-01T12:00:00Z",
    "updated_at": "2025-01-02T08:30:00Z",
}


class TodoPriority(str, Enum):
    """Priority values accepted by the upstream API."""

    EXTREME = "extreme"
    MODERATE = "moderate"
    LOW = "low"


class Todo(BaseModel):
    """A to-do item as returned by the upstream API."""

    model_config = ConfigDict(extra="ignore", json_schema_extra={"example": TODO_EXAMPLE})

    id: int
    title: str = ""
    description: str = ""
    priority: str = ""
    is_completed: bool = False
    position: int = 0
    todo_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("title", "description", "priority", mode="before")
    @classmethod
    def _none_as_blank(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("position", mode="before")
    @classmethod
    def _none_as_zero(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("is_completed", mode="before")
    @classmethod
    def _none_as_open(cls, value: object) -> object:
        return False if value is None else value

    @model_validator(mode="before")
    @classmethod
    def _pk_as_id(cls, data: object) -> object:
        # Some upstream deployments serialise the primary key as ``pk``.
        if isinstance(data, dict) and data.get("id") is None and data.get("pk") is not None:
            return {**data, "id": data["pk"]}
        return data


class TodoCreate(BaseModel):
    """Payload for ``POST /todos/``."""

    title: str = Field(min_length=1)
    description: str = ""
    priority: TodoPriority
    todo_date: date

    def form_fields(self) -> dict[str, str]:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "todo_date": self.todo_date.isoformat(),
        }


class TodoUpdate(BaseModel):
    """Partial update for ``PATCH /todos/{id}/``; ``None`` fields are left untouched."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    priority: TodoPriority | None = None
    todo_date: date | None = None
    position: int | None = None
    is_completed: bool | None = None

    @model_validator(mode="after")
    def _ensure_payload_not_empty(self) -> "TodoUpdate":
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field must be provided for update.")
        return self

    def form_fields(self) -> dict[str, str]:
        fields: dict[str, str] = {}
        if self.title is not None:
            fields["title"] = self.title
        if self.description is not None:
            fields["description"] = self.description
        if self.priority is not None:
            fields["priority"] = self.priority.value
        if self.todo_date is not None:
            fields["todo_date"] = self.todo_date.isoformat()
        if self.position is not None:
            fields["position"] = str(self.position)
        if self.is_completed is not None:
            fields["is_completed"] = "true" if self.is_completed else "false"
        return fields


class TodoQuery(BaseModel):
    """Filters for ``GET /todos/``."""

    search: str | None = None
    todo_date: date | None = None
    priority: TodoPriority | None = None
    is_completed: bool | None = None

    def query_params(self) -> list[tuple[str, str]]:
        """Query parameters in the order the upstream documents them."""

        params: list[tuple[str, str]] = []
        search = (self.search or "").strip()
        if search:
            params.append(("search", search))
        if self.todo_date is not None:
            params.append(("todo_date", self.todo_date.isoformat()))
        if self.priority is not None:
            params.append(("priority", self.priority.value))
        if self.is_completed is not None:
            params.append(("is_completed", "true" if self.is_completed else "false"))
        return params


__all__ = [
    "Todo",
    "TodoCreate",
    "TodoPriority",
    "TodoQuery",
    "TodoUpdate",
]
