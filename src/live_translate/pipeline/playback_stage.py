"""
Playback Stage: serialized speech playback of translated phrases.

Architecture:
    translated queue → PlaybackStage → SpeechPlayer → listeners

Speech providers signal completion, signal an error, or sometimes never
signal at all. Each utterance therefore races a hard timeout; whichever
finishes first wins, the other is cancelled, and the queue advances.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol

from ..schemas.pipeline_settings import VoiceSettings
from .stage import SerializedStage
from .types import PlaybackOutcome, TranslatedPhrase

logger = logging.getLogger(__name__)

DEFAULT_PLAYBACK_TIMEOUT = 15.0


class SpeechPlayer(Protocol):
    async def speak(self, text: str, voice: VoiceSettings) -> None:
        ...


class PlaybackStage(SerializedStage[TranslatedPhrase]):
    """
    Drains the translated queue one utterance at a time.

    Attributes:
        player: Speech-playback provider.
        timeout: Seconds to wait for a completion or error signal.
        current_display: Text of the utterance most recently started.
    """

    name = "playback"

    def __init__(
        self,
        player: SpeechPlayer,
        *,
        timeout: float = DEFAULT_PLAYBACK_TIMEOUT,
        voice: Optional[VoiceSettings] = None,
        on_started: Optional[Callable[[TranslatedPhrase], None]] = None,
        on_finished: Optional[Callable[[TranslatedPhrase, PlaybackOutcome], None]] = None,
    ):
        super().__init__()
        self.player = player
        self.timeout = timeout
        self.voice = voice or VoiceSettings()
        self.on_started = on_started
        self.on_finished = on_finished
        self.current_display = ""

    def configure(self, voice: VoiceSettings, timeout: float) -> None:
        self.voice = voice
        self.timeout = timeout

    async def _process(self, item: TranslatedPhrase) -> None:
        self.current_display = item.text
        if self.on_started:
            self.on_started(item)

        voice = self.voice.model_copy(update={"locale": item.locale})
        started = time.monotonic()
        try:
            await asyncio.wait_for(self.player.speak(item.text, voice), timeout=self.timeout)
            outcome = PlaybackOutcome.COMPLETED
        except asyncio.TimeoutError:
            logger.warning(
                f"No playback signal for phrase #{item.source.index} after {self.timeout:.1f}s; advancing"
            )
            outcome = PlaybackOutcome.TIMED_OUT
        except Exception as exc:
            logger.warning(f"Playback failed for phrase #{item.source.index}: {exc}")
            outcome = PlaybackOutcome.ERRORED

        elapsed = (time.monotonic() - started) * 1000
        logger.info(f"Playback of phrase #{item.source.index} {outcome.value} in {elapsed:.0f}ms")
        if self.on_finished:
            self.on_finished(item, outcome)

    def reset(self) -> None:
        super().reset()
        self.current_display = ""


__all__ = ["DEFAULT_PLAYBACK_TIMEOUT", "PlaybackStage", "SpeechPlayer"]
