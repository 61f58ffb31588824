"""Pydantic schemas for the upstream API and the public JSON routes."""

from __future__ import annotations

from .auth import LoginResponse
from .system import ErrorResponse, HealthCheckResponse, MetadataResponse
from .todo import Todo, TodoCreate, TodoPriority, TodoQuery, TodoUpdate
from .user import ProfileImage, UserData, UserUpdate

__all__ = [
    "ErrorResponse",
    "HealthCheckResponse",
    "LoginResponse",
    "MetadataResponse",
    "ProfileImage",
    "Todo",
    "TodoCreate",
    "TodoPriority",
    "TodoQuery",
    "TodoUpdate",
    "UserData",
    "UserUpdate",
]
