"""Schemas describing the upstream authentication payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class LoginResponse(BaseModel):
    """Token pair issued by ``POST /auth/login/``."""

    model_config = ConfigDict(extra="ignore")

    access: str
    refresh: str


__all__ = ["LoginResponse"]
