"""Transcript source contract shared by the recognizer integrations."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from ..pipeline.types import TranscriptRevision

RevisionCallback = Callable[[TranscriptRevision], None]
EndCallback = Callable[[], None]


class TranscriptSource(Protocol):
    """
    Emits partial and final revisions for streamed audio.

    Callbacks are always invoked on the event loop that called start().
    on_end fires only when the stream ends without stop() having been called.
    """

    name: str
    requires_token: bool
    cumulative_finals: bool

    async def start(
        self,
        language: str,
        on_revision: RevisionCallback,
        on_end: EndCallback,
        token: Optional[str] = None,
    ) -> None:
        ...

    async def send_audio(self, chunk: bytes) -> None:
        ...

    async def stop(self) -> None:
        ...


__all__ = ["EndCallback", "RevisionCallback", "TranscriptSource"]
