"""
Session Controller: lifecycle of the live translation pipeline.

Owns the single live session (IDLE ⇄ ACTIVE), wires the transcript source
into the segmenter and the two serialized stages, and publishes every
observable change as a plain dict event.

Stopping ends capture, not delivery: queued phrases keep translating and
speaking after stop(). Starting a new session resets every queue, counter
and in-flight stage, abandoning whatever the previous session left behind.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Deque, Optional, Protocol

from ..schemas.pipeline_settings import PipelineSettings
from ..schemas.session import SessionSnapshot
from ..sources.base import TranscriptSource
from .errors import (
    AuthenticationError,
    SessionStateError,
    TranscriptSourceError,
    UnsupportedLanguageError,
)
from .languages import get_language
from .playback_stage import PlaybackStage, SpeechPlayer
from .segmenter import PhraseSegmenter
from .translation_stage import TranslationStage, Translator
from .types import (
    Phrase,
    PlaybackOutcome,
    SessionState,
    TranscriptRevision,
    TranslatedPhrase,
)

logger = logging.getLogger(__name__)

RECENT_TRANSLATIONS = 3
MAX_RESTART_DELAY = 8.0

Event = dict[str, Any]


class TokenProvider(Protocol):
    async def fetch_token(self) -> str:
        ...


class SessionController:
    """
    Runs one translation session at a time.

    Attributes:
        state: IDLE or ACTIVE.
        segmenter: Phrase segmenter for the current session.
        translation: Translation stage (phrase queue owner).
        playback: Playback stage (translated queue owner).
        recent_translations: The last few successful translations.
        auth_error: Message of the last credential failure, if any.
    """

    def __init__(
        self,
        translator: Translator,
        player: SpeechPlayer,
        *,
        source_factory: Callable[[str], TranscriptSource],
        settings_provider: Callable[[], PipelineSettings] = PipelineSettings,
        token_provider: Optional[TokenProvider] = None,
        publish: Optional[Callable[[Event], None]] = None,
    ):
        self._source_factory = source_factory
        self._settings_provider = settings_provider
        self._token_provider = token_provider
        self._publish_fn = publish

        self.translation = TranslationStage(
            translator,
            on_translated=self._on_translated,
            on_dropped=self._on_dropped,
        )
        self.playback = PlaybackStage(
            player,
            on_started=self._on_playback_started,
            on_finished=self._on_playback_finished,
        )
        self.segmenter = PhraseSegmenter()

        self.state = SessionState.IDLE
        self.source_language: Optional[str] = None
        self.transcript_source: Optional[str] = None
        self.auth_error: Optional[str] = None
        self.recent_translations: Deque[str] = deque(maxlen=RECENT_TRANSLATIONS)

        self._settings = PipelineSettings()
        self._source: Optional[TranscriptSource] = None
        self._lifecycle_lock = asyncio.Lock()
        self._restart_task: Optional[asyncio.Task] = None
        self._restart_attempts = 0
        self._ended_while_restarting = False

    # -- lifecycle ---------------------------------------------------------

    async def start(
        self, source_language: str, transcript_source: Optional[str] = None
    ) -> SessionSnapshot:
        """
        Start capturing and translating speech in source_language.

        Raises:
            SessionStateError: A session is already active.
            UnsupportedLanguageError: The language is not supported.
            AuthenticationError: No transcription token could be obtained.
            TranscriptSourceError: The transcript source failed to connect.
        """
        async with self._lifecycle_lock:
            if self.state is SessionState.ACTIVE:
                raise SessionStateError("A session is already active")

            language = get_language(source_language)
            if language is None:
                raise UnsupportedLanguageError(
                    f"Unsupported source language: {source_language!r}"
                )

            settings = self._settings_provider()
            kind = transcript_source or settings.transcript_source
            self._reset(settings)

            source = self._source_factory(kind)
            self.segmenter = PhraseSegmenter(
                settings.phrase_size, match_ledger=source.cumulative_finals
            )
            self.source_language = language.code
            self.transcript_source = kind
            self.translation.configure(
                language.code, settings.target_language, settings.voice.locale
            )
            self.playback.configure(settings.voice, settings.playback_timeout_seconds)

            await self._connect(source)
            self.state = SessionState.ACTIVE

        logger.info(
            f"Session started: language={language.code} source={kind} "
            f"phrase_size={settings.phrase_size} target={settings.target_language}"
        )
        self._publish({"type": "state", "state": self.state.value, "source_language": language.code})
        return self.snapshot()

    async def stop(self) -> bool:
        """
        Stop capturing speech. Returns False when no session was active.

        Words heard but not yet grouped are flushed as a final short phrase;
        queued phrases continue through translation and playback.
        """
        self._cancel_restart()
        async with self._lifecycle_lock:
            if self.state is SessionState.IDLE:
                return False

            self.state = SessionState.IDLE
            source, self._source = self._source, None
            if source is not None:
                try:
                    await source.stop()
                except Exception as exc:
                    logger.warning(f"Error stopping transcript source {source.name}: {exc}")

            for phrase in self.segmenter.flush():
                self._enqueue_phrase(phrase)

        logger.info(
            f"Session stopped; {len(self.translation)} phrase(s) awaiting translation, "
            f"{len(self.playback)} awaiting playback"
        )
        self._publish({"type": "state", "state": self.state.value})
        return True

    async def shutdown(self) -> None:
        """Stop capture and abandon any delivery still in flight."""
        await self.stop()
        self.translation.reset()
        self.playback.reset()

    async def wait_drained(self) -> None:
        """Wait until both stages have nothing in flight."""
        await self.translation.join()
        await self.playback.join()

    def _reset(self, settings: PipelineSettings) -> None:
        self._settings = settings
        self.translation.reset()
        self.playback.reset()
        self.segmenter.reset()
        self.recent_translations.clear()
        self.auth_error = None
        self._restart_attempts = 0
        self._ended_while_restarting = False

    async def _connect(self, source: TranscriptSource) -> None:
        token = await self._fetch_token() if source.requires_token else None
        self._source = source
        try:
            await source.start(
                self.source_language or "",
                lambda revision: self._on_source_revision(source, revision),
                lambda: self._on_source_end(source),
                token=token,
            )
        except TranscriptSourceError:
            self._source = None
            raise
        except Exception as exc:
            self._source = None
            raise TranscriptSourceError(f"{source.name} failed to start: {exc}") from exc

    async def _fetch_token(self) -> str:
        try:
            if self._token_provider is None:
                raise AuthenticationError("No credential provider is configured")
            return await self._token_provider.fetch_token()
        except AuthenticationError as exc:
            self.auth_error = str(exc)
            logger.error(f"Transcription token request failed: {exc}")
            self._publish({"type": "auth_error", "message": self.auth_error})
            raise

    # -- audio and revisions -----------------------------------------------

    async def feed_audio(self, chunk: bytes) -> None:
        source = self._source
        if self.state is not SessionState.ACTIVE or source is None or self._restarting:
            return
        await source.send_audio(chunk)

    def handle_revision(self, revision: TranscriptRevision) -> None:
        if self.state is not SessionState.ACTIVE:
            return
        self._restart_attempts = 0
        for phrase in self.segmenter.on_revision(revision):
            self._enqueue_phrase(phrase)

    def _on_source_revision(self, source: TranscriptSource, revision: TranscriptRevision) -> None:
        if source is self._source:
            self.handle_revision(revision)

    def _enqueue_phrase(self, phrase: Phrase) -> None:
        self.translation.enqueue(phrase)
        self._publish({"type": "phrase_queued", "index": phrase.index, "text": phrase.text})

    # -- transparent restarts ----------------------------------------------

    @property
    def _restarting(self) -> bool:
        return self._restart_task is not None and not self._restart_task.done()

    def _on_source_end(self, source: TranscriptSource) -> None:
        if self.state is not SessionState.ACTIVE or source is not self._source:
            return
        if self._restarting:
            self._ended_while_restarting = True
            return
        logger.warning(f"Transcript source {source.name} ended unexpectedly; restarting")
        for phrase in self.segmenter.interrupt():
            self._enqueue_phrase(phrase)
        self._restart_task = asyncio.get_running_loop().create_task(
            self._restart_source(source), name="transcript-source-restart"
        )

    async def _restart_source(self, source: TranscriptSource) -> None:
        settings = self._settings
        give_up: Optional[str] = None

        while self.state is SessionState.ACTIVE and self._source is source:
            if self._restart_attempts >= settings.recognizer_max_restarts:
                give_up = (
                    f"{source.name} ended {self._restart_attempts + 1} time(s) in a row; "
                    "giving up"
                )
                break

            self._restart_attempts += 1
            delay = min(
                settings.recognizer_restart_backoff_seconds * 2 ** (self._restart_attempts - 1),
                MAX_RESTART_DELAY,
            )
            self._publish({
                "type": "source_restarting",
                "attempt": self._restart_attempts,
                "delay": delay,
            })
            await asyncio.sleep(delay)

            async with self._lifecycle_lock:
                if self.state is not SessionState.ACTIVE or self._source is not source:
                    return
                self._ended_while_restarting = False
                try:
                    await self._connect(source)
                except AuthenticationError as exc:
                    give_up = f"Could not re-authenticate {source.name}: {exc}"
                except TranscriptSourceError as exc:
                    logger.warning(f"Restart attempt {self._restart_attempts} failed: {exc}")
                    self._source = source
                    continue
                else:
                    if self._ended_while_restarting:
                        logger.warning(f"Transcript source {source.name} ended again during restart")
                        for phrase in self.segmenter.interrupt():
                            self._enqueue_phrase(phrase)
                        continue
                    logger.info(f"Transcript source {source.name} restarted (attempt {self._restart_attempts})")
                    return
            break

        if give_up is not None:
            logger.error(give_up)
            self._publish({"type": "source_error", "message": give_up})
            await self.stop()

    def _cancel_restart(self) -> None:
        task, self._restart_task = self._restart_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # -- stage callbacks ---------------------------------------------------

    def _on_translated(self, item: TranslatedPhrase) -> None:
        self.recent_translations.append(item.text)
        self.playback.enqueue(item)
        self._publish({
            "type": "translation",
            "index": item.source.index,
            "source_text": item.source.text,
            "text": item.text,
        })

    def _on_dropped(self, phrase: Phrase, reason: str) -> None:
        self._publish({
            "type": "translation_dropped",
            "index": phrase.index,
            "text": phrase.text,
            "reason": reason,
        })

    def _on_playback_started(self, item: TranslatedPhrase) -> None:
        self._publish({"type": "playback_started", "index": item.source.index, "text": item.text})

    def _on_playback_finished(self, item: TranslatedPhrase, outcome: PlaybackOutcome) -> None:
        self._publish({
            "type": "playback_finished",
            "index": item.source.index,
            "outcome": outcome.value,
        })

    # -- observation -------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            source_language=self.source_language,
            transcript_source=self.transcript_source,
            phrase_queue=[phrase.text for phrase in self.translation.pending()],
            translated_queue=[item.text for item in self.playback.pending()],
            current_display=self.playback.current_display,
            recent_translations=list(self.recent_translations),
            auth_error=self.auth_error,
            translation_state=self.translation.state,
            playback_state=self.playback.state,
            ledger=self.segmenter.ledger,
        )

    def _publish(self, event: Event) -> None:
        if self._publish_fn is None:
            return
        try:
            self._publish_fn(event)
        except Exception as exc:
            logger.error(f"Failed to publish {event.get('type')} event: {exc}")


__all__ = ["SessionController", "TokenProvider"]
