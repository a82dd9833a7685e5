"""Schemas for session lifecycle requests and observable pipeline state."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..pipeline.types import SessionState, StageState
from .pipeline_settings import TranscriptSourceKind


class StartSessionRequest(BaseModel):
    source_language: str = Field(..., min_length=2, max_length=8)
    transcript_source: TranscriptSourceKind | None = Field(
        default=None,
        description="Overrides the configured transcript source for this session.",
    )


class SessionSnapshot(BaseModel):
    """Everything a presentation layer needs to render the session."""

    state: SessionState
    source_language: str | None = None
    transcript_source: TranscriptSourceKind | None = None
    phrase_queue: list[str] = Field(default_factory=list)
    translated_queue: list[str] = Field(default_factory=list)
    current_display: str = ""
    recent_translations: list[str] = Field(default_factory=list)
    auth_error: str | None = None
    translation_state: StageState = StageState.IDLE
    playback_state: StageState = StageState.IDLE
    ledger: str = ""


class LanguageInfo(BaseModel):
    code: str
    name: str
