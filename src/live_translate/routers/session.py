"""API routes for starting, stopping and observing the live translation session."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from ..pipeline.controller import SessionController
from ..pipeline.errors import (
    AuthenticationError,
    PipelineError,
    SessionStateError,
    TranscriptSourceError,
    UnsupportedLanguageError,
)
from ..pipeline.languages import SUPPORTED_LANGUAGES
from ..schemas.session import LanguageInfo, SessionSnapshot, StartSessionRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/session", tags=["session"])


def get_session_controller(request: Request) -> SessionController:
    controller = getattr(request.app.state, "session_controller", None)
    if controller is None:  # pragma: no cover
        raise RuntimeError("Session controller is not configured")
    return controller


def error_status(exc: PipelineError) -> int:
    """HTTP status code for a pipeline error raised while starting a session."""
    if isinstance(exc, SessionStateError):
        return 409
    if isinstance(exc, UnsupportedLanguageError):
        return 422
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, TranscriptSourceError):
        return 503
    return 500


@router.post("/start", response_model=SessionSnapshot)
async def start_session(
    payload: StartSessionRequest,
    controller: SessionController = Depends(get_session_controller),
) -> SessionSnapshot:
    try:
        return await controller.start(payload.source_language, payload.transcript_source)
    except PipelineError as exc:
        status = error_status(exc)
        logger.warning(f"Session start rejected ({status}): {exc}")
        raise HTTPException(status_code=status, detail=str(exc))


@router.post("/stop", response_model=SessionSnapshot)
async def stop_session(
    controller: SessionController = Depends(get_session_controller),
) -> SessionSnapshot:
    stopped = await controller.stop()
    if not stopped:
        logger.debug("Stop requested with no active session")
    return controller.snapshot()


@router.get("", response_model=SessionSnapshot)
async def read_session(
    controller: SessionController = Depends(get_session_controller),
) -> SessionSnapshot:
    return controller.snapshot()


@router.get("/languages", response_model=list[LanguageInfo])
async def list_languages() -> list[LanguageInfo]:
    return [LanguageInfo(code=lang.code, name=lang.name) for lang in SUPPORTED_LANGUAGES]


__all__ = ["router", "get_session_controller", "error_status"]
