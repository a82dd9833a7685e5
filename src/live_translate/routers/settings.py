"""API routes for managing pipeline settings."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..schemas.pipeline_settings import PipelineSettings, PipelineSettingsUpdate
from ..services.pipeline_settings import PipelineSettingsService

router = APIRouter(prefix="/api/settings", tags=["settings"])


def get_pipeline_settings_service(request: Request) -> PipelineSettingsService:
    service = getattr(request.app.state, "pipeline_settings_service", None)
    if service is None:  # pragma: no cover
        raise RuntimeError("Pipeline settings service is not configured")
    return service


@router.get("/pipeline", response_model=PipelineSettings)
async def read_pipeline_settings(
    service: PipelineSettingsService = Depends(get_pipeline_settings_service),
) -> PipelineSettings:
    """Get current pipeline settings."""
    return service.get_settings()


@router.put("/pipeline", response_model=PipelineSettings)
async def update_pipeline_settings(
    update: PipelineSettingsUpdate,
    service: PipelineSettingsService = Depends(get_pipeline_settings_service),
) -> PipelineSettings:
    """Update pipeline settings. Applied on the next session start."""
    return service.update_settings(update)


@router.post("/pipeline/reset", response_model=PipelineSettings)
async def reset_pipeline_settings(
    service: PipelineSettingsService = Depends(get_pipeline_settings_service),
) -> PipelineSettings:
    """Reset pipeline settings to defaults."""
    return service.reset_to_defaults()


__all__ = ["router", "get_pipeline_settings_service"]
