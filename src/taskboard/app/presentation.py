"""Display helpers shared by services and Jinja templates."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from .schemas.user import UserData

NO_DUE_DATE_LABEL = "No due date"
UNTITLED_TASK_LABEL = "Untitled Task"


class PriorityLabel(str, Enum):
    """Badge shown on a task card."""

    EXTREME = "Extreme"
    MODERATE = "Moderate"
    LOW = "Low"

    @property
    def css_class(self) -> str:
        return f"priority-{self.value.lower()}"


def map_priority(raw: str | None) -> PriorityLabel:
    """Collapse free-form upstream priorities onto the three badges."""

    lowered = (raw or "").lower()
    if "extreme" in lowered or "high" in lowered:
        return PriorityLabel.EXTREME
    if "moderate" in lowered or "medium" in lowered:
        return PriorityLabel.MODERATE
    return PriorityLabel.LOW


def parse_api_date(raw: str | None) -> date | None:
    """Parse a ``YYYY-MM-DD`` value, tolerating a trailing time component."""

    if not raw:
        return None
    text = raw.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_due_date(raw: str | None) -> str:
    """``"2025-01-05"`` becomes ``"Jan 5, 2025"``; unparseable input is returned as-is."""

    if not raw:
        return NO_DUE_DATE_LABEL
    parsed = parse_api_date(raw)
    if parsed is None:
        return raw
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def format_form_date(raw: str | None) -> str:
    """Value for an ``<input type="date">``: ``YYYY-MM-DD`` or blank."""

    parsed = parse_api_date(raw)
    return parsed.isoformat() if parsed is not None else ""


def display_name(user: UserData | None) -> str:
    if user is None:
        return "User"
    full_name = f"{user.first_name or ''} {user.last_name or ''}".strip()
    if full_name:
        return full_name
    return user.email.split("@")[0] or "User"


def header_date(today: date) -> dict[str, str]:
    """Weekday and ``MM/DD/YYYY`` strings shown in the dashboard header."""

    return {"weekday": f"{today:%A}", "date": f"{today:%m/%d/%Y}"}


__all__ = [
    "NO_DUE_DATE_LABEL",
    "PriorityLabel",
    "UNTITLED_TASK_LABEL",
    "display_name",
    "format_due_date",
    "format_form_date",
    "header_date",
    "map_priority",
    "parse_api_date",
]
