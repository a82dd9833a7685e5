import logging
from typing import AsyncIterator, Optional, Tuple

import httpx

from ..config import Settings
from ..pipeline.errors import PlaybackError

logger = logging.getLogger(__name__)

DEFAULT_VOICES = {
    "deepgram": "aura-asteria-en",
    "elevenlabs": "21m00Tcm4TlvDq8ikWAM",  # Rachel
}


class TTSService:
    """
    Server-side speech synthesis for translated phrases.

    Supports Deepgram Aura and ElevenLabs (multilingual). Uses a singleton
    httpx.AsyncClient for connection pooling across utterances.

    stream_synthesize() returns the sample rate and an async iterator of raw
    16-bit PCM chunks; the first chunk is yielded as soon as it arrives.
    Provider failures raise PlaybackError so the playback stage can advance.
    """

    # Singleton HTTP client for connection pooling
    _http_client: Optional[httpx.AsyncClient] = None

    def __init__(self, settings: Settings):
        self.provider = settings.tts_provider
        self.voice = settings.tts_voice or DEFAULT_VOICES.get(self.provider, "")
        self.sample_rate = settings.tts_sample_rate

        self.deepgram_api_key = (
            settings.deepgram_api_key.get_secret_value()
            if settings.deepgram_api_key else None
        )
        self.deepgram_base_url = "https://api.deepgram.com/v1/speak"

        self.elevenlabs_api_key = (
            settings.elevenlabs_api_key.get_secret_value()
            if settings.elevenlabs_api_key else None
        )
        self.elevenlabs_base_url = "https://api.elevenlabs.io/v1/text-to-speech"

        if self.enabled:
            logger.info(f"Server-side TTS enabled: provider={self.provider} voice={self.voice}")
        else:
            logger.info("Server-side TTS disabled; clients synthesize speech themselves")

    @property
    def enabled(self) -> bool:
        return self.provider in ("deepgram", "elevenlabs")

    @classmethod
    def get_http_client(cls) -> httpx.AsyncClient:
        """Get singleton HTTP client for connection pooling."""
        if cls._http_client is None:
            cls._http_client = httpx.AsyncClient(timeout=30.0)
            logger.info("Created singleton httpx.AsyncClient for TTS")
        return cls._http_client

    @classmethod
    async def close_http_client(cls) -> None:
        """Close the singleton HTTP client. Call on app shutdown."""
        if cls._http_client is not None:
            await cls._http_client.aclose()
            cls._http_client = None
            logger.info("Closed TTS HTTP client")

    async def stream_synthesize(self, text: str) -> Tuple[int, AsyncIterator[bytes]]:
        """Return sample_rate and a buffered async iterator of PCM chunks."""
        if self.provider == "elevenlabs":
            sample_rate, stream = self._stream_elevenlabs(text)
        elif self.provider == "deepgram":
            sample_rate, stream = self._stream_deepgram(text)
        else:
            raise PlaybackError("Server-side TTS is disabled")

        return sample_rate, self._buffered_stream(stream)

    async def _buffered_stream(
        self,
        stream: AsyncIterator[bytes],
        target_size: int = 16 * 1024  # 16KB default
    ) -> AsyncIterator[bytes]:
        """
        Buffer small chunks into larger ones for websocket transmission.
        Yields the first chunk immediately to start audio playback ASAP.
        All yielded chunks are multiples of 2 bytes for 16-bit PCM alignment.
        """
        buffer = bytearray()
        first_chunk_sent = False

        async for chunk in stream:
            buffer.extend(chunk)

            if not first_chunk_sent and len(buffer) >= 2:
                send_len = len(buffer) - (len(buffer) % 2)
                yield bytes(buffer[:send_len])
                buffer = buffer[send_len:]
                first_chunk_sent = True

            while len(buffer) >= target_size:
                yield bytes(buffer[:target_size])
                buffer = buffer[target_size:]

        if len(buffer) % 2 != 0:
            logger.warning("Dropping 1 byte from end of TTS stream to maintain 16-bit alignment")
            buffer = buffer[:-1]
        if buffer:
            yield bytes(buffer)

    async def _post_stream(
        self, url: str, *, headers: dict, payload: dict, params: Optional[dict] = None
    ) -> AsyncIterator[bytes]:
        client = self.get_http_client()
        try:
            async with client.stream(
                "POST",
                url,
                params=params,
                headers=headers,
                json=payload,
                timeout=30.0,
            ) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    if chunk:
                        yield chunk
        except httpx.HTTPStatusError as exc:
            raise PlaybackError(
                f"{self.provider} TTS failed ({exc.response.status_code})"
            ) from exc
        except httpx.HTTPError as exc:
            raise PlaybackError(f"{self.provider} TTS error: {exc}") from exc

    def _stream_deepgram(self, text: str) -> Tuple[int, AsyncIterator[bytes]]:
        """Stream Deepgram Aura TTS audio."""
        if not self.deepgram_api_key:
            raise PlaybackError("Deepgram API key not configured for TTS")

        params = {
            "model": self.voice,
            "encoding": "linear16",
            "sample_rate": str(self.sample_rate),
            "container": "none",
        }
        headers = {
            "Authorization": f"Token {self.deepgram_api_key}",
            "Content-Type": "application/json",
        }
        stream = self._post_stream(
            self.deepgram_base_url, headers=headers, payload={"text": text}, params=params
        )
        return self.sample_rate, stream

    def _stream_elevenlabs(self, text: str) -> Tuple[int, AsyncIterator[bytes]]:
        """Stream ElevenLabs TTS audio."""
        if not self.elevenlabs_api_key:
            raise PlaybackError("ElevenLabs API key not configured for TTS")

        # ElevenLabs supports: pcm_16000, pcm_22050, pcm_24000, pcm_44100
        if self.sample_rate <= 16000:
            actual_rate = 16000
        elif self.sample_rate <= 22050:
            actual_rate = 22050
        elif self.sample_rate <= 24000:
            actual_rate = 24000
        else:
            actual_rate = 44100

        headers = {
            "xi-api-key": self.elevenlabs_api_key,
            "Content-Type": "application/json",
        }
        payload = {
            "text": text,
            "model_id": "eleven_multilingual_v2",
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.75,
                "style": 0.0,
                "use_speaker_boost": True,
            },
        }
        stream = self._post_stream(
            f"{self.elevenlabs_base_url}/{self.voice}/stream",
            headers=headers,
            payload=payload,
            params={"output_format": f"pcm_{actual_rate}"},
        )
        return actual_rate, stream


__all__ = ["TTSService"]
