"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    pipeline_settings_path: Path = Field(
        default_factory=lambda: Path("data/pipeline_settings.json"),
        validation_alias=AliasChoices("PIPELINE_SETTINGS_PATH", "pipeline_settings_path"),
    )
    logging_settings_path: Path = Field(
        default_factory=lambda: Path("logging_settings.conf"),
        validation_alias=AliasChoices("LOGGING_SETTINGS_PATH", "logging_settings_path"),
    )
    pipeline_log_dir: Path = Field(
        default_factory=lambda: Path("logs/pipeline"),
        validation_alias=AliasChoices("PIPELINE_LOG_DIR", "pipeline_log_dir"),
    )

    # Microphone audio streamed by clients (16-bit mono PCM)
    audio_sample_rate: int = Field(
        default=16000,
        ge=8000,
        le=48000,
        validation_alias=AliasChoices("AUDIO_SAMPLE_RATE", "audio_sample_rate"),
    )

    # Deepgram continuous recognizer
    deepgram_api_key: SecretStr | None = Field(
        default=None, validation_alias=AliasChoices("DEEPGRAM_API_KEY")
    )
    deepgram_model: str = Field(
        default="nova-3",
        validation_alias=AliasChoices("DEEPGRAM_MODEL", "deepgram_model"),
    )

    # ElevenLabs Scribe realtime transcription
    elevenlabs_api_key: SecretStr | None = Field(
        default=None, validation_alias=AliasChoices("ELEVENLABS_API_KEY", "XI_API_KEY")
    )
    scribe_model_id: str = Field(
        default="scribe_v2_realtime",
        validation_alias=AliasChoices("SCRIBE_MODEL_ID", "scribe_model_id"),
    )
    scribe_realtime_url: str = Field(
        default="wss://api.elevenlabs.io/v1/speech-to-text/realtime",
        validation_alias=AliasChoices("SCRIBE_REALTIME_URL", "scribe_realtime_url"),
    )
    scribe_token_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl(
            "https://api.elevenlabs.io/v1/single-use-token/realtime_scribe"
        ),
        validation_alias=AliasChoices("SCRIBE_TOKEN_URL", "scribe_token_url"),
    )
    scribe_access_password: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("SCRIBE_ACCESS_PASSWORD", "scribe_access_password"),
    )

    # Translation provider
    translate_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://translate.googleapis.com/translate_a/single"),
        validation_alias=AliasChoices("TRANSLATE_BASE_URL", "translate_base_url"),
    )
    translate_timeout: float = Field(
        default=10.0,
        ge=0.5,
        le=120.0,
        validation_alias=AliasChoices("TRANSLATE_TIMEOUT", "translate_timeout"),
    )

    # Speech playback. "client" leaves synthesis to the listening client.
    tts_provider: Literal["client", "deepgram", "elevenlabs"] = Field(
        default="client",
        validation_alias=AliasChoices("TTS_PROVIDER", "tts_provider"),
    )
    tts_voice: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TTS_VOICE", "tts_voice"),
        description="Deepgram Aura model or ElevenLabs voice id.",
    )
    tts_sample_rate: int = Field(
        default=16000,
        validation_alias=AliasChoices("TTS_SAMPLE_RATE", "tts_sample_rate"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["PROJECT_ROOT", "Settings", "get_settings"]
