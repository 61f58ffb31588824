"""Server-side form validation.

Each validator returns a mapping of field name to message; an empty mapping
means the submission is valid.
"""

from __future__ import annotations

import re
from datetime import date

from .schemas import TodoPriority

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_PATTERN = re.compile(r"^[a-zA-Z\s'-]+$")
MIN_PASSWORD_LENGTH = 4
FORM_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


def _validate_email(email: str) -> str | None:
    if not email.strip():
        return "Email is required."
    if not EMAIL_PATTERN.match(email):
        return "Please enter a valid email address."
    return None


def _validate_name(name: str) -> str | None:
    if not name.strip() or not NAME_PATTERN.match(name):
        return "Please enter a valid name format."
    return None


def _validate_password(password: str) -> str | None:
    if not password:
        return "Password is required."
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"{MIN_PASSWORD_LENGTH} characters minimum."
    return None


def validate_login(email: str, password: str) -> dict[str, str]:
    errors: dict[str, str] = {}
    email_error = _validate_email(email)
    if email_error:
        errors["email"] = email_error
    if not password:
        errors["password"] = "Password is required."
    return errors


def validate_signup(
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    confirm_password: str,
) -> dict[str, str]:
    errors: dict[str, str] = {}
    for field, value in (("first_name", first_name), ("last_name", last_name)):
        name_error = _validate_name(value)
        if name_error:
            errors[field] = name_error
    email_error = _validate_email(email)
    if email_error:
        errors["email"] = email_error
    password_error = _validate_password(password)
    if password_error:
        errors["password"] = password_error
    if password != confirm_password:
        errors["confirm_password"] = "Passwords do not match."
    return errors


def parse_form_date(raw: str) -> date | None:
    """Parse an ``<input type="date">`` value, returning ``None`` when invalid."""

    value = raw.strip()
    # fromisoformat also takes basic and week dates, which a date input never sends.
    if not FORM_DATE_PATTERN.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def validate_todo(*, title: str, priority: str, todo_date: str) -> dict[str, str]:
    """Validate the add/edit task form."""

    errors: dict[str, str] = {}
    if not title.strip():
        errors["title"] = "Title is required"
    if priority.strip().lower() not in {member.value for member in TodoPriority}:
        errors["priority"] = "Please select a priority"
    if not todo_date.strip():
        errors["todo_date"] = "Date is required"
    elif parse_form_date(todo_date) is None:
        errors["todo_date"] = "Please enter a valid date"
    return errors


__all__ = [
    "EMAIL_PATTERN",
    "FORM_DATE_PATTERN",
    "MIN_PASSWORD_LENGTH",
    "NAME_PATTERN",
    "parse_form_date",
    "validate_login",
    "validate_signup",
    "validate_todo",
]
