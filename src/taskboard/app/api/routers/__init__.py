"""Router registrations for the JSON endpoints."""

from __future__ import annotations

from .health import router as health_router
from .metadata import router as metadata_router

__all__ = ["health_router", "metadata_router"]
