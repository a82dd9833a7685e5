"""Transcript sources feeding the live translation pipeline."""

from __future__ import annotations

from ..config import Settings
from .base import TranscriptSource
from .deepgram import DeepgramTranscriptSource
from .scribe import ScribeTranscriptSource


def build_transcript_source(kind: str, settings: Settings) -> TranscriptSource:
    """Create the transcript source named by kind ('deepgram' or 'scribe')."""
    if kind == "deepgram":
        api_key = (
            settings.deepgram_api_key.get_secret_value()
            if settings.deepgram_api_key else None
        )
        return DeepgramTranscriptSource(
            api_key,
            model=settings.deepgram_model,
            sample_rate=settings.audio_sample_rate,
        )
    if kind == "scribe":
        return ScribeTranscriptSource(
            url=settings.scribe_realtime_url,
            model_id=settings.scribe_model_id,
            sample_rate=settings.audio_sample_rate,
        )
    raise ValueError(f"Unknown transcript source: {kind!r}")


__all__ = [
    "DeepgramTranscriptSource",
    "ScribeTranscriptSource",
    "TranscriptSource",
    "build_transcript_source",
]
