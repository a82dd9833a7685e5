"""Pipeline settings service for persisting segmentation and playback configuration."""

import json
import logging
from pathlib import Path
from typing import Optional

from ..schemas.pipeline_settings import PipelineSettings, PipelineSettingsUpdate

logger = logging.getLogger(__name__)

# Default storage path
_DATA_DIR = Path(__file__).parent.parent / "data"
_SETTINGS_FILE = _DATA_DIR / "pipeline_settings.json"


class PipelineSettingsService:
    """Service for managing pipeline settings persistence.

    Changes take effect on the next session start; a running session keeps
    the settings it started with.
    """

    def __init__(self, settings_path: Optional[Path] = None):
        self._path = settings_path or _SETTINGS_FILE
        self._cached: Optional[PipelineSettings] = None

    def _ensure_data_dir(self) -> None:
        """Ensure the data directory exists."""
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_settings(self) -> PipelineSettings:
        """Load settings from file or return defaults."""
        if self._cached is not None:
            return self._cached

        if self._path.exists():
            try:
                data = json.loads(self._path.read_text())
                self._cached = PipelineSettings.model_validate(data)
                logger.info(f"Loaded pipeline settings from {self._path}")
            except Exception as e:
                logger.warning(f"Failed to load pipeline settings: {e}, using defaults")
                self._cached = PipelineSettings()
        else:
            self._cached = PipelineSettings()
            logger.info("Using default pipeline settings")

        return self._cached

    def update_settings(self, update: PipelineSettingsUpdate) -> PipelineSettings:
        """Update settings with partial data and persist to file."""
        current = self.get_settings()

        # Apply non-None updates; validate so nested models are rebuilt
        merged_data = current.model_dump()
        merged_data.update(update.model_dump(exclude_none=True))
        merged = PipelineSettings.model_validate(merged_data)

        self._save(merged)
        return merged

    def reset_to_defaults(self) -> PipelineSettings:
        """Reset settings to defaults."""
        defaults = PipelineSettings()
        self._save(defaults)
        return defaults

    def _save(self, settings: PipelineSettings) -> None:
        """Persist settings to file."""
        self._ensure_data_dir()
        self._path.write_text(settings.model_dump_json(indent=2))
        self._cached = settings
        logger.info(f"Saved pipeline settings to {self._path}")


__all__ = ["PipelineSettingsService"]
