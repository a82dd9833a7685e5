"""
Deepgram continuous recognizer using the synchronous SDK pattern with threading.

The SDK's listener runs in a daemon thread. Every event is handed back to the
event loop that started the source with call_soon_threadsafe(), so pipeline
state is only ever touched from the loop.
"""
import asyncio
import logging
import threading
from typing import Callable, Optional

from deepgram import DeepgramClient
from deepgram.core.events import EventType

from ..pipeline.errors import TranscriptSourceError
from ..pipeline.types import TranscriptRevision
from .base import EndCallback, RevisionCallback

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10.0


class DeepgramConnection:
    """Manages a single Deepgram live connection using the SDK v5 sync pattern."""

    def __init__(
        self,
        api_key: str,
        language: str,
        on_revision: Callable[[TranscriptRevision], None],
        on_closed: Callable[[], None],
        *,
        model: str = "nova-3",
        sample_rate: int = 16000,
    ):
        self.language = language
        self.model = model
        self.sample_rate = sample_rate
        self.on_revision = on_revision
        self.on_closed = on_closed

        self._client = DeepgramClient(api_key=api_key)
        self._context_manager = None
        self._socket = None
        self._ready = threading.Event()
        self._running = False
        self._listening_thread: Optional[threading.Thread] = None

    def _handle_message(self, result):
        """Translate Deepgram results into transcript revisions."""
        try:
            channel = getattr(result, "channel", None)
            alternatives = getattr(channel, "alternatives", None) if channel else None
            if not alternatives:
                return

            text = (alternatives[0].transcript or "").strip()
            is_final = bool(getattr(result, "is_final", False))
            # Empty interims are silence; empty finals still close the utterance
            if not text and not is_final:
                return

            logger.debug(f"Deepgram {'final' if is_final else 'partial'}: '{text}'")
            self.on_revision(TranscriptRevision(is_final=is_final, text=text))
        except Exception as e:
            logger.error(f"Error processing Deepgram result: {e}", exc_info=True)

    def _on_open(self, _):
        logger.info(f"Deepgram connected (language={self.language})")
        self._ready.set()

    def _on_close(self, _):
        logger.info("Deepgram disconnected")
        self._ready.clear()
        if self._running:
            self._running = False
            self.on_closed()

    def _on_error(self, error):
        logger.error(f"Deepgram error: {error}")

    def connect(self) -> None:
        """Open the live connection and block until it is ready."""
        params = {
            "model": self.model,
            "language": self.language,
            "encoding": "linear16",
            "sample_rate": str(self.sample_rate),
            "channels": "1",
            "interim_results": "true",
            "punctuate": "true",
            "smart_format": "true",
        }

        logger.info(f"Connecting to Deepgram {self.model} for language={self.language}")

        try:
            self._context_manager = self._client.listen.v1.connect(**params)
            self._socket = self._context_manager.__enter__()

            self._socket.on(EventType.OPEN, self._on_open)
            self._socket.on(EventType.MESSAGE, self._handle_message)
            self._socket.on(EventType.ERROR, self._on_error)
            self._socket.on(EventType.CLOSE, self._on_close)

            def listen_loop():
                try:
                    self._socket.start_listening()
                except Exception as e:
                    if self._running:
                        logger.error(f"Deepgram listen error: {e}")
                        self._running = False
                        self.on_closed()

            self._running = True
            self._listening_thread = threading.Thread(target=listen_loop, daemon=True)
            self._listening_thread.start()

            if not self._ready.wait(timeout=CONNECT_TIMEOUT):
                raise TranscriptSourceError("Timed out connecting to Deepgram")
        except Exception:
            self.close()
            raise

    def send_audio(self, data: bytes) -> None:
        if self._socket and self._ready.is_set():
            try:
                self._socket.send_media(data)
            except Exception as e:
                logger.error(f"Error sending audio to Deepgram: {e}")

    def close(self) -> None:
        self._running = False
        self._ready.clear()
        if self._context_manager:
            try:
                self._context_manager.__exit__(None, None, None)
            except Exception as e:
                logger.warning(f"Error closing Deepgram connection: {e}")
            self._context_manager = None
            self._socket = None
        logger.info("Deepgram connection closed")


class DeepgramTranscriptSource:
    """
    Continuous recognizer backed by Deepgram streaming STT.

    Deepgram finalizes one utterance at a time, so finals are not cumulative.
    """

    name = "deepgram"
    requires_token = False
    cumulative_finals = False

    def __init__(self, api_key: Optional[str], *, model: str = "nova-3", sample_rate: int = 16000):
        self.api_key = api_key
        self.model = model
        self.sample_rate = sample_rate
        self._connection: Optional[DeepgramConnection] = None

    async def start(
        self,
        language: str,
        on_revision: RevisionCallback,
        on_end: EndCallback,
        token: Optional[str] = None,
    ) -> None:
        if not self.api_key:
            raise TranscriptSourceError("DEEPGRAM_API_KEY is not set")

        await self.stop()

        # The listener thread has no event loop of its own; capture ours here
        # and marshal every callback onto it.
        loop = asyncio.get_running_loop()
        connection = DeepgramConnection(
            self.api_key,
            language,
            on_revision=lambda revision: loop.call_soon_threadsafe(on_revision, revision),
            on_closed=lambda: loop.call_soon_threadsafe(on_end),
            model=self.model,
            sample_rate=self.sample_rate,
        )

        try:
            await loop.run_in_executor(None, connection.connect)
        except TranscriptSourceError:
            raise
        except Exception as e:
            raise TranscriptSourceError(f"Failed to connect to Deepgram: {e}") from e

        self._connection = connection

    async def send_audio(self, chunk: bytes) -> None:
        connection = self._connection
        if connection is None:
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, connection.send_audio, chunk)

    async def stop(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, connection.close)


__all__ = ["DeepgramConnection", "DeepgramTranscriptSource"]
