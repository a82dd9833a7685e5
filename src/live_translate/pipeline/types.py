"""Value types shared by the live translation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class StageState(str, Enum):
    """Drain state of a serialized stage; DRAINING means a call is in flight."""

    IDLE = "idle"
    DRAINING = "draining"


class PlaybackOutcome(str, Enum):
    COMPLETED = "completed"
    ERRORED = "errored"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class TranscriptRevision:
    """One update from a transcript source.

    Finals are authoritative; partials are a provisional preview of the next
    final and may be superseded.
    """

    is_final: bool
    text: str

    @classmethod
    def partial(cls, text: str) -> "TranscriptRevision":
        return cls(is_final=False, text=text)

    @classmethod
    def final(cls, text: str) -> "TranscriptRevision":
        return cls(is_final=True, text=text)


@dataclass(frozen=True)
class Phrase:
    """A group of words in speech order, the unit of translation."""

    index: int
    words: tuple[str, ...]

    @property
    def text(self) -> str:
        return " ".join(self.words)

    def __len__(self) -> int:
        return len(self.words)


@dataclass(frozen=True)
class TranslatedPhrase:
    source: Phrase
    text: str
    locale: str


__all__ = [
    "Phrase",
    "PlaybackOutcome",
    "SessionState",
    "StageState",
    "TranscriptRevision",
    "TranslatedPhrase",
]
