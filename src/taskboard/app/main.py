"""Entry point for the Taskboard web application."""

from __future__ import annotations

from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from .api.routers import health_router, metadata_router
from .client import TodoApiClient
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .core.middleware import CorrelationIdMiddleware
from .errors import register_exception_handlers
from .views import router as views_router

STATIC_DIR = Path(__file__).resolve().parent / "static"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Instantiate and configure the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings)

    application = FastAPI(
        title=settings.project_name,
        version=settings.version,
        summary="Server-rendered task manager backed by a remote to-do API.",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    application.state.settings = settings
    application.state.todo_api = None

    application.add_middleware(CorrelationIdMiddleware)
    application.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age,
        https_only=settings.session_https_only,
        same_site=settings.session_same_site,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    if STATIC_DIR.exists():
        application.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    application.include_router(views_router)
    application.include_router(metadata_router)
    application.include_router(health_router)

    register_exception_handlers(application)

    @application.on_event("startup")
    async def _open_todo_api() -> None:
        if application.state.todo_api is None:
            application.state.todo_api = TodoApiClient.from_settings(settings)

    @application.on_event("shutdown")
    async def _close_todo_api() -> None:
        client = application.state.todo_api
        if client is not None:
            await client.aclose()
            application.state.todo_api = None

    return application


app = create_app()


def run() -> None:
    """Convenience entry point for the ``taskboard`` console script."""

    settings: Settings = get_settings()
    uvicorn.run(
        "taskboard.app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.reload,
        log_config=None,
    )
