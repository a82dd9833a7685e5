"""Application factory for the FastAPI service."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import PROJECT_ROOT, Settings, get_settings
from .logging_handlers import DateStampedFileHandler, cleanup_old_logs, resolve_timezone
from .logging_settings import LoggingSettings, parse_logging_settings
from .pipeline.controller import SessionController
from .routers.live import router as live_router
from .routers.session import router as session_router
from .routers.settings import router as settings_router
from .routers.stt import router as stt_router
from .services.connection_manager import ConnectionManager
from .services.pipeline_settings import PipelineSettingsService
from .services.speech_player import BroadcastSpeechPlayer
from .services.token_provider import ScribeTokenProvider
from .services.translation_service import GoogleTranslateService
from .services.tts_service import TTSService
from .sources import build_transcript_source

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _configure_logging(logging_settings: LoggingSettings) -> None:
    """Configure logging from LOG_LEVEL / LOG_FILE and the logging settings file."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    env_level = os.getenv("LOG_LEVEL")
    if env_level:
        log_level = getattr(logging, env_level.upper(), logging.INFO)
    else:
        log_level = logging_settings.terminal_level or logging.INFO

    handlers: list[logging.Handler] = []
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT)

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if env_level or logging_settings.terminal_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(log_level)
        handlers.append(console_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers or [logging.NullHandler()],
        force=True,  # Override any existing configuration
    )

    logging.getLogger("live_translate").setLevel(log_level)

    # Also capture uvicorn logs
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Quiet down noisy third-party libraries
    noisy = ("httpx", "httpcore", "websockets", "deepgram")
    for name in noisy:
        logging.getLogger(name).setLevel(log_level)
    if log_level > logging.DEBUG:
        for name in noisy:
            logging.getLogger(name).setLevel(logging.WARNING)


def _configure_pipeline_log(logging_settings: LoggingSettings, log_dir: Path) -> None:
    """Write this run's pipeline log under a date-stamped folder and prune old runs."""
    logger = logging.getLogger("live_translate")
    tz = resolve_timezone(logging_settings.timezone)

    cleanup_old_logs([log_dir], logging_settings.retention_hours, logger=logger)

    if logging_settings.pipeline_level is None:
        return

    handler = DateStampedFileHandler(log_dir, prefix="pipeline", tz=tz)
    handler.setLevel(logging_settings.pipeline_level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
    logger.addHandler(handler)
    if logger.level > logging_settings.pipeline_level:
        logger.setLevel(logging_settings.pipeline_level)
    logger.info(f"Pipeline log: {handler.log_path}")


def _resolve_under(base: Path, p: Path) -> Path:
    # Allow absolute paths as-is (useful for tests and external mounts).
    if p.is_absolute():
        return p.resolve()
    resolved = (base / p).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(f"Configured path {resolved} escapes project root {base}")
    return resolved


def build_controller(
    settings: Settings,
    settings_service: PipelineSettingsService,
    manager: ConnectionManager,
    tts_service: TTSService,
) -> tuple[SessionController, BroadcastSpeechPlayer]:
    """Wire the providers into a session controller."""
    player = BroadcastSpeechPlayer(manager, tts_service if tts_service.enabled else None)
    controller = SessionController(
        GoogleTranslateService.from_settings(settings),
        player,
        source_factory=lambda kind: build_transcript_source(kind, settings),
        settings_provider=settings_service.get_settings,
        token_provider=ScribeTokenProvider.from_settings(settings),
        publish=manager.publish,
    )
    return controller, player


def create_app() -> FastAPI:
    settings = get_settings()
    logging_settings = parse_logging_settings(
        _resolve_under(PROJECT_ROOT, settings.logging_settings_path)
    )

    # Configure logging first thing
    _configure_logging(logging_settings)
    _configure_pipeline_log(
        logging_settings, _resolve_under(PROJECT_ROOT, settings.pipeline_log_dir)
    )

    settings_service = PipelineSettingsService(
        _resolve_under(PROJECT_ROOT, settings.pipeline_settings_path)
    )
    manager = ConnectionManager()
    tts_service = TTSService(settings)
    controller, player = build_controller(settings, settings_service, manager, tts_service)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            # Add timeout to prevent hanging during shutdown (especially in tests)
            try:
                await asyncio.wait_for(controller.shutdown(), timeout=10.0)
            except asyncio.TimeoutError:
                logging.warning("Session shutdown timed out after 10s")
            except Exception as exc:
                logging.warning("Error during session shutdown: %s", exc)
            await manager.close_all()
            await TTSService.close_http_client()

    app = FastAPI(
        title="Live Translation Backend",
        version="0.1.0",
        description="Streaming speech translation: transcribe, segment, translate, speak.",
        lifespan=lifespan,
    )

    app.state.pipeline_settings_service = settings_service
    app.state.connection_manager = manager
    app.state.speech_player = player
    app.state.session_controller = controller
    app.state.tts_service = tts_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(session_router)
    app.include_router(settings_router)
    app.include_router(stt_router)
    app.include_router(live_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str | int | None]:
        snapshot = controller.snapshot()
        return {
            "status": "ok",
            "session": snapshot.state.value,
            "source_language": snapshot.source_language,
            "listeners": manager.listener_count,
        }

    return app


__all__ = ["create_app", "build_controller"]
