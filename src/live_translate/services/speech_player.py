"""
Speech player that delegates audible playback to connected listeners.

Each utterance is announced with a ``speak`` event carrying an utterance id.
Clients report back with ``playback_end`` or ``playback_error`` for that id,
which completes the pending utterance. When server-side TTS is enabled the
synthesized PCM is streamed alongside as ``tts_audio_start`` /
``tts_audio_chunk`` / ``tts_audio_end`` events.

Completion is only ever signalled by a client; the playback stage bounds the
wait with its own timeout.
"""

import asyncio
import base64
import logging
import uuid
from typing import Dict, Optional

from ..pipeline.errors import PlaybackError
from ..schemas.pipeline_settings import VoiceSettings
from .connection_manager import ConnectionManager
from .tts_service import TTSService

logger = logging.getLogger(__name__)


class BroadcastSpeechPlayer:
    """Speak translated phrases through every listening websocket client."""

    def __init__(self, manager: ConnectionManager, tts_service: Optional[TTSService] = None):
        self.manager = manager
        self.tts_service = tts_service
        self._pending: Dict[str, asyncio.Future] = {}

    async def speak(self, text: str, voice: VoiceSettings) -> None:
        if self.manager.listener_count == 0:
            raise PlaybackError("No listeners are connected")

        utterance_id = uuid.uuid4().hex
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[utterance_id] = future
        try:
            self.manager.publish({
                "type": "speak",
                "utterance_id": utterance_id,
                "text": text,
                "locale": voice.locale,
                "rate": voice.rate,
                "pitch": voice.pitch,
                "volume": voice.volume,
            })
            if self.tts_service is not None and self.tts_service.enabled:
                await self._stream_audio(utterance_id, text)
            await future
        finally:
            self._pending.pop(utterance_id, None)

    def resolve(self, utterance_id: str, error: Optional[str] = None) -> bool:
        """Complete an utterance from a client signal. Returns False if unknown."""
        future = self._pending.get(utterance_id)
        if future is None or future.done():
            logger.debug(f"Ignoring playback signal for unknown utterance {utterance_id}")
            return False
        if error is None:
            future.set_result(None)
        else:
            future.set_exception(PlaybackError(error))
        return True

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def _stream_audio(self, utterance_id: str, text: str) -> None:
        sample_rate, stream = await self.tts_service.stream_synthesize(text)
        self.manager.publish({
            "type": "tts_audio_start",
            "utterance_id": utterance_id,
            "sample_rate": sample_rate,
            "encoding": "linear16",
            "channels": 1,
        })
        chunk_count = 0
        async for chunk in stream:
            chunk_count += 1
            self.manager.publish({
                "type": "tts_audio_chunk",
                "utterance_id": utterance_id,
                "data": base64.b64encode(chunk).decode("ascii"),
            })
        self.manager.publish({"type": "tts_audio_end", "utterance_id": utterance_id})
        logger.debug(f"Streamed {chunk_count} TTS chunk(s) for utterance {utterance_id}")


__all__ = ["BroadcastSpeechPlayer"]
