"""
ElevenLabs Scribe realtime transcription over a token-authenticated websocket.

Each connection is authorised with a single-use token; the session controller
fetches a fresh one for every start and every transparent restart.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Optional
from urllib.parse import urlencode

import websockets

from ..pipeline.errors import TranscriptSourceError
from ..pipeline.types import TranscriptRevision
from .base import EndCallback, RevisionCallback

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10.0

_PARTIAL_TYPES = {"partial_transcript"}
_FINAL_TYPES = {"committed_transcript"}
_IGNORED_TYPES = {"session_started", "committed_transcript_with_timestamps"}


def parse_scribe_message(raw: str | bytes) -> Optional[TranscriptRevision]:
    """Map one Scribe server message to a revision, or None if it carries none."""
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError:
        logger.error("Invalid JSON received from Scribe")
        return None
    if not isinstance(data, dict):
        return None

    message_type = data.get("message_type")
    if message_type in _PARTIAL_TYPES or message_type in _FINAL_TYPES:
        text = str(data.get("text") or "").strip()
        is_final = message_type in _FINAL_TYPES
        if not text and not is_final:
            return None
        return TranscriptRevision(is_final=is_final, text=text)

    if message_type in _IGNORED_TYPES:
        return None

    error = data.get("error") or data.get("message")
    if error:
        logger.error(f"Scribe reported {message_type}: {error}")
    else:
        logger.debug(f"Ignoring Scribe message type: {message_type}")
    return None


class ScribeTranscriptSource:
    """Token-authenticated remote streaming transcription."""

    name = "scribe"
    requires_token = True
    cumulative_finals = False

    def __init__(
        self,
        *,
        url: str = "wss://api.elevenlabs.io/v1/speech-to-text/realtime",
        model_id: str = "scribe_v2_realtime",
        sample_rate: int = 16000,
    ):
        self.url = url
        self.model_id = model_id
        self.sample_rate = sample_rate
        self._ws: Optional[Any] = None
        self._receiver: Optional[asyncio.Task] = None

    def _connection_url(self, language: str, token: str) -> str:
        query = urlencode({
            "model_id": self.model_id,
            "language_code": language,
            "audio_format": f"pcm_{self.sample_rate}",
            "commit_strategy": "vad",
            "token": token,
        })
        return f"{self.url}?{query}"

    async def start(
        self,
        language: str,
        on_revision: RevisionCallback,
        on_end: EndCallback,
        token: Optional[str] = None,
    ) -> None:
        if not token:
            raise TranscriptSourceError("Scribe requires a single-use token")

        await self.stop()

        try:
            ws = await asyncio.wait_for(
                websockets.connect(
                    self._connection_url(language, token),
                    max_size=None,
                    ping_interval=20,
                    ping_timeout=20,
                    close_timeout=5,
                ),
                timeout=CONNECT_TIMEOUT,
            )
        except asyncio.TimeoutError as e:
            raise TranscriptSourceError("Timed out connecting to Scribe") from e
        except (OSError, websockets.WebSocketException) as e:
            raise TranscriptSourceError(f"Failed to connect to Scribe: {e}") from e

        logger.info(f"Scribe connected (model={self.model_id}, language={language})")
        self._ws = ws
        self._receiver = asyncio.get_running_loop().create_task(
            self._receive(ws, on_revision, on_end), name="scribe-receive"
        )

    async def _receive(self, ws: Any, on_revision: RevisionCallback, on_end: EndCallback) -> None:
        try:
            async for message in ws:
                revision = parse_scribe_message(message)
                if revision is not None:
                    on_revision(revision)
        except websockets.ConnectionClosed as e:
            logger.warning(f"Scribe connection closed: {e}")
        finally:
            # stop() clears _ws first, so only unsolicited endings reach on_end
            if self._ws is ws:
                self._ws = None
                self._receiver = None
                on_end()

    async def send_audio(self, chunk: bytes) -> None:
        ws = self._ws
        if ws is None:
            return
        payload = {
            "message_type": "input_audio_chunk",
            "audio_base_64": base64.b64encode(chunk).decode("utf-8"),
            "commit": False,
            "sample_rate": self.sample_rate,
        }
        try:
            await ws.send(json.dumps(payload))
        except websockets.ConnectionClosed:
            logger.debug("Dropped audio chunk; Scribe connection is closed")

    async def stop(self) -> None:
        ws, self._ws = self._ws, None
        receiver, self._receiver = self._receiver, None
        if receiver is not None and not receiver.done():
            receiver.cancel()
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"Error closing Scribe connection: {e}")
            logger.info("Scribe connection closed")


__all__ = ["ScribeTranscriptSource", "parse_scribe_message"]
