"""Pipeline settings schema for segmentation, playback and recognizer restarts."""

from typing import Literal

from pydantic import BaseModel, Field


TranscriptSourceKind = Literal["deepgram", "scribe"]


class VoiceSettings(BaseModel):
    """Voice handed to the speech-playback provider with every utterance."""

    locale: str = Field(
        default="en-US",
        min_length=2,
        description="BCP-47 locale the translated text is spoken in.",
    )
    rate: float = Field(default=1.0, ge=0.1, le=10.0)
    pitch: float = Field(default=1.0, ge=0.0, le=2.0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)


class PipelineSettings(BaseModel):
    """Settings read by the session controller on every start."""

    phrase_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Words per phrase sent to translation (7-10 works well).",
    )

    playback_timeout_seconds: float = Field(
        default=15.0,
        ge=1.0,
        le=120.0,
        description="Maximum wait for a playback completion signal before advancing.",
    )

    target_language: str = Field(
        default="en",
        min_length=2,
        max_length=8,
        description="Language code translations are produced in.",
    )

    voice: VoiceSettings = Field(default_factory=VoiceSettings)

    transcript_source: TranscriptSourceKind = Field(
        default="deepgram",
        description="'deepgram' (continuous recognizer) or 'scribe' (token-authenticated service).",
    )

    recognizer_max_restarts: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Consecutive transparent restarts allowed after the source ends unexpectedly.",
    )

    recognizer_restart_backoff_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=30.0,
        description="Initial restart delay, doubled per consecutive attempt.",
    )


class PipelineSettingsUpdate(BaseModel):
    """Partial update schema - all fields optional."""

    phrase_size: int | None = Field(default=None, ge=1, le=50)
    playback_timeout_seconds: float | None = Field(default=None, ge=1.0, le=120.0)
    target_language: str | None = Field(default=None, min_length=2, max_length=8)
    voice: VoiceSettings | None = None
    transcript_source: TranscriptSourceKind | None = None
    recognizer_max_restarts: int | None = Field(default=None, ge=0, le=50)
    recognizer_restart_backoff_seconds: float | None = Field(default=None, ge=0.0, le=30.0)
