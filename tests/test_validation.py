from __future__ import annotations

from datetime import date

from taskboard.app.validation import parse_form_date, validate_login, validate_signup, validate_todo


def _signup(**overrides: str) -> dict[str, str]:
    payload = {
        "first_name": "Jane",
        "last_name": "O'Neil-Smith",
        "email": "jane@example.com",
        "password": "abcd",
        "confirm_password": "abcd",
    }
    payload.update(overrides)
    return validate_signup(**payload)


def test_login_requires_valid_email_and_password() -> None:
    assert validate_login("jane@example.com", "x") == {}
    assert validate_login("", "") == {
        "email": "Email is required.",
        "password": "Password is required.",
    }
    assert validate_login("jane@example", "x") == {"email": "Please enter a valid email address."}
    assert validate_login("jane @example.com", "x") == {"email": "Please enter a valid email address."}


def test_signup_accepts_valid_payload() -> None:
    assert _signup() == {}


def test_signup_rejects_bad_names() -> None:
    errors = _signup(first_name="   ", last_name="R2-D2")
    assert errors == {
        "first_name": "Please enter a valid name format.",
        "last_name": "Please enter a valid name format.",
    }


def test_signup_password_rules() -> None:
    assert _signup(password="", confirm_password="")["password"] == "Password is required."
    assert _signup(password="abc", confirm_password="abc")["password"] == "4 characters minimum."


def test_password_mismatch_blocks_signup() -> None:
    assert _signup(confirm_password="abce") == {"confirm_password": "Passwords do not match."}
    assert _signup(confirm_password="") == {"confirm_password": "Passwords do not match."}


def test_todo_requires_title_priority_and_date() -> None:
    assert validate_todo(title="Write", priority="Moderate", todo_date="2025-01-05") == {}
    assert validate_todo(title="   ", priority="", todo_date="") == {
        "title": "Title is required",
        "priority": "Please select a priority",
        "todo_date": "Date is required",
    }
    assert validate_todo(title="Write", priority="urgent", todo_date="05/01/2025") == {
        "priority": "Please select a priority",
        "todo_date": "Please enter a valid date",
    }


def test_todo_date_must_be_calendar_date_form() -> None:
    for value in ("20250105", "2025-W01-1", "2025-13-01"):
        assert validate_todo(title="Write", priority="low", todo_date=value) == {
            "todo_date": "Please enter a valid date"
        }
    assert parse_form_date(" 2025-01-05 ") == date(2025, 1, 5)
