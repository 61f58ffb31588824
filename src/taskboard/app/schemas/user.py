"""Schemas mirroring the upstream user resource."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserData(BaseModel):
    """The signed-in user as returned by ``GET /users/me/``."""

    model_config = ConfigDict(extra="ignore")

    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    address: str = ""
    contact_number: str = ""
    birthday: str | None = None
    profile_image: str | None = None
    bio: str = ""

    @field_validator("first_name", "last_name", "address", "contact_number", "bio", mode="before")
    @classmethod
    def _none_as_blank(cls, value: object) -> object:
        return "" if value is None else value


class ProfileImage(BaseModel):
    """An uploaded profile picture forwarded to the upstream API."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class UserUpdate(BaseModel):
    """Editable account fields sent with ``PATCH /users/me/``."""

    first_name: str = ""
    last_name: str = ""
    address: str = ""
    contact_number: str = ""
    birthday: date | None = None
    bio: str | None = None
    profile_image: ProfileImage | None = Field(default=None, exclude=True)

    def form_fields(self) -> dict[str, str]:
        """Text fields to send; blank name and contact fields are sent so they can be cleared."""

        fields = {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "address": self.address,
            "contact_number": self.contact_number,
        }
        if self.birthday is not None:
            fields["birthday"] = self.birthday.isoformat()
        if self.bio:
            fields["bio"] = self.bio
        return fields


__all__ = ["ProfileImage", "UserData", "UserUpdate"]
