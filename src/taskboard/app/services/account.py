from __future__ import annotations

from collections.abc import Mapping

from ..client import TodoApiClient
from ..errors import ValidationError
from ..presentation import format_form_date
from ..schemas import ProfileImage, UserData, UserUpdate
from ..validation import parse_form_date

ACCOUNT_FORM_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "address",
    "contact_number",
    "birthday",
    "bio",
)


def account_form(user: UserData) -> dict[str, str]:
    """Form state for the account page, with the birthday as ``YYYY-MM-DD``."""

    return {
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "address": user.address,
        "contact_number": user.contact_number,
        "birthday": format_form_date(user.birthday),
        "bio": user.bio,
    }


class AccountService:
    """Read and update the signed-in user's profile."""

    def __init__(self, client: TodoApiClient, token: str) -> None:
        self._client = client
        self._token = token

    async def load(self) -> tuple[UserData, dict[str, str]]:
        user = await self._client.get_current_user(self._token)
        return user, account_form(user)

    async def save(
        self,
        form: Mapping[str, str],
        image: ProfileImage | None = None,
    ) -> UserData:
        """Send the edited profile upstream; a blank birthday is left untouched."""

        raw_birthday = form.get("birthday", "").strip()
        birthday = None
        if raw_birthday:
            birthday = parse_form_date(raw_birthday)
            if birthday is None:
                raise ValidationError(
                    "Please enter a valid birthday.",
                    details={"field": "birthday"},
                )

        update = UserUpdate(
            first_name=form.get("first_name", "").strip(),
            last_name=form.get("last_name", "").strip(),
            address=form.get("address", "").strip(),
            contact_number=form.get("contact_number", "").strip(),
            birthday=birthday,
            bio=form.get("bio", "").strip() or None,
            profile_image=image,
        )
        return await self._client.update_user(self._token, update)


__all__ = ["ACCOUNT_FORM_FIELDS", "AccountService", "account_form"]
