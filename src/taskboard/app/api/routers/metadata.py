from __future__ import annotations

from fastapi import APIRouter

from ...deps import SettingsDependency
from ...schemas.system import MetadataResponse

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/metadata", response_model=MetadataResponse, summary="Service metadata")
async def read_api_metadata(settings: SettingsDependency) -> MetadataResponse:
    """Expose minimal service metadata for API clients."""

    return MetadataResponse(
        name=settings.project_name,
        environment=settings.environment,
        version=settings.version,
        todo_api_base_url=settings.todo_api_base_url,
    )
