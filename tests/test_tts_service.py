"""Tests for server-side speech synthesis."""

from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr

from live_translate.pipeline.errors import PlaybackError
from live_translate.services.tts_service import TTSService


def _make_settings(provider="deepgram", deepgram_key="dg-key", elevenlabs_key=None):
    settings = MagicMock()
    settings.tts_provider = provider
    settings.tts_voice = None
    settings.tts_sample_rate = 22000
    settings.deepgram_api_key = SecretStr(deepgram_key) if deepgram_key else None
    settings.elevenlabs_api_key = SecretStr(elevenlabs_key) if elevenlabs_key else None
    return settings


async def _chunks(*parts):
    for part in parts:
        yield part


async def _collect(stream):
    return [chunk async for chunk in stream]


@pytest.mark.asyncio
async def test_buffered_stream_keeps_16_bit_alignment():
    service = TTSService(_make_settings())

    chunks = await _collect(
        service._buffered_stream(_chunks(b"\x01\x02\x03", b"\x04\x05", b"\x06\x07"), target_size=4)
    )

    assert chunks[0] == b"\x01\x02"
    assert all(len(chunk) % 2 == 0 for chunk in chunks)
    # Trailing odd byte is dropped
    assert b"".join(chunks) == b"\x01\x02\x03\x04\x05\x06"


def test_client_provider_disables_server_tts():
    service = TTSService(_make_settings(provider="client"))

    assert service.enabled is False


@pytest.mark.asyncio
async def test_disabled_provider_raises_playback_error():
    service = TTSService(_make_settings(provider="client"))

    with pytest.raises(PlaybackError):
        await service.stream_synthesize("Hello")


@pytest.mark.asyncio
async def test_missing_key_raises_playback_error():
    service = TTSService(_make_settings(provider="elevenlabs", elevenlabs_key=None))

    with pytest.raises(PlaybackError, match="ElevenLabs API key"):
        await service.stream_synthesize("Hello")


def test_default_voice_per_provider():
    assert TTSService(_make_settings(provider="deepgram")).voice == "aura-asteria-en"
    assert TTSService(_make_settings(provider="elevenlabs", elevenlabs_key="xi")).voice
