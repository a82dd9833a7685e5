"""Exception hierarchy for the translation pipeline and its collaborators."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for errors raised by the live translation pipeline."""


class SessionStateError(PipelineError):
    """Raised when a lifecycle call does not fit the current session state."""


class UnsupportedLanguageError(PipelineError):
    """Raised when a session is started for a language we cannot transcribe."""


class AuthenticationError(PipelineError):
    """Raised when a transcription token cannot be obtained.

    Unlike the other pipeline faults this one blocks the session start and is
    surfaced to the caller.
    """


class TranscriptSourceError(PipelineError):
    """Raised when a transcript source cannot connect."""


class TranslationError(PipelineError):
    """Raised by translation providers for any non-success outcome."""


class PlaybackError(PipelineError):
    """Raised by speech players when an utterance fails."""


__all__ = [
    "AuthenticationError",
    "PipelineError",
    "PlaybackError",
    "SessionStateError",
    "TranscriptSourceError",
    "TranslationError",
    "UnsupportedLanguageError",
]
