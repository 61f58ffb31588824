from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Literal, Sequence

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ... import __version__ as package_version


def _resolve_project_dirs() -> tuple[Path, Path]:
    """Locate the package directory and the repository root."""

    current = Path(__file__).resolve()
    package_dir = current.parents[2]
    for parent in current.parents:
        if (parent / "pyproject.toml").exists():
            return package_dir, parent
    return package_dir, Path.cwd()


PACKAGE_DIR, REPOSITORY_ROOT = _resolve_project_dirs()

DEFAULT_TODO_API_BASE_URL = "https://todo-app.pioneeralpha.com/api"

EnvironmentName = Literal["development", "test", "ci"]
CommaSeparatedList = Annotated[list[str], NoDecode]

_ENVIRONMENT_ALIASES: dict[str, EnvironmentName] = {
    "development": "development",
    "dev": "development",
    "test": "test",
    "testing": "test",
    "ci": "ci",
}

_ENVIRONMENT_PROFILES: dict[EnvironmentName, dict[str, Any]] = {
    "development": {
        "log_level": "DEBUG",
        "reload": True,
        "session_https_only": False,
    },
    "test": {
        "log_level": "WARNING",
        "reload": False,
        "session_https_only": False,
    },
    "ci": {
        "log_level": "INFO",
        "reload": False,
        "session_https_only": True,
    },
}


class Settings(BaseSettings):
    """Runtime configuration for the Taskboard web client."""

    model_config = SettingsConfigDict(
        env_prefix="TASKBOARD_",
        env_file=(PACKAGE_DIR / ".env", REPOSITORY_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_name: str = "Taskboard"
    environment: EnvironmentName = "development"
    version: str = package_version
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    reload: bool = True

    todo_api_base_url: str = DEFAULT_TODO_API_BASE_URL
    todo_api_timeout_seconds: float = 10.0
    search_debounce_ms: int = 500

    cors_allow_origins: CommaSeparatedList = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
    )
    cors_allow_credentials: bool = True
    cors_allow_methods: CommaSeparatedList = Field(default_factory=lambda: ["*"])
    cors_allow_headers: CommaSeparatedList = Field(default_factory=lambda: ["*"])

    session_secret_key: str = "change-me-session"
    session_cookie_name: str = "taskboard_session"
    session_max_age: int | None = 60 * 60 * 24 * 14
    session_short_max_age: int = 60 * 60 * 12
    session_https_only: bool = True
    session_same_site: str = "lax"

    @field_validator("environment", mode="before")
    @classmethod
    def _normalise_environment(cls, value: object) -> EnvironmentName:
        if isinstance(value, str):
            normalized = value.strip().lower()
        else:
            normalized = ""
        if not normalized:
            normalized = "development"
        mapped = _ENVIRONMENT_ALIASES.get(normalized)
        if mapped is not None:
            return mapped
        return "development"

    @field_validator("todo_api_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            return DEFAULT_TODO_API_BASE_URL
        return value.strip().rstrip("/")

    @field_validator("todo_api_timeout_seconds", mode="before")
    @classmethod
    def _ensure_positive_timeout(cls, value: object) -> float:
        try:
            timeout = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 10.0
        return timeout if timeout > 0 else 10.0

    @field_validator("search_debounce_ms", "session_short_max_age", mode="before")
    @classmethod
    def _ensure_non_negative(cls, value: object) -> int:
        try:
            parsed = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0
        return max(parsed, 0)

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _coerce_comma_separated(cls, value: object) -> list[str]:
        """Allow comma separated strings for CORS configuration."""

        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Sequence):
            return [str(item) for item in value if str(item).strip()]
        return []

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        if not isinstance(value, str):
            return "INFO"
        return value.upper()

    @field_validator("session_same_site", mode="before")
    @classmethod
    def _normalize_same_site(cls, value: object) -> str:
        if not isinstance(value, str):
            return "lax"
        normalized = value.lower()
        if normalized not in {"lax", "strict", "none"}:
            return "lax"
        return normalized

    @model_validator(mode="after")
    def _apply_environment_profile(self) -> "Settings":
        profile = _ENVIRONMENT_PROFILES[self.environment]
        fields_set = set(getattr(self, "model_fields_set", set()))
        for field_name, value in profile.items():
            if field_name not in fields_set:
                setattr(self, field_name, value)
        return self


@lru_cache()
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    return Settings()
