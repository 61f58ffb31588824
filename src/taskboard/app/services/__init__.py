"""Domain service layer package."""

from __future__ import annotations

from .account import AccountService
from .auth import AuthService
from .todos import TodoService

__all__ = ["AccountService", "AuthService", "TodoService"]
