"""Custom logging handler utilities."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Return the named zone, or None (local time) when unset or unknown."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logging.getLogger(__name__).warning(f"Unknown log timezone {name!r}; using local time")
        return None


class DateStampedFileHandler(logging.FileHandler):
    """File handler that stores one log per run under date-stamped directories.

    Files land in ``<directory>/<YYYY-MM-DD>/<prefix>_<YYYY-MM-DD_HH-MM-SS>_<TZ>.log``.
    """

    def __init__(
        self,
        directory: str | Path = "logs/pipeline",
        *,
        prefix: str = "pipeline",
        tz: tzinfo | None = None,
        encoding: str | None = "utf-8",
        mode: str = "a",
        delay: bool = False,
        errors: Optional[str] = None,
        current_time: datetime | None = None,
    ) -> None:
        timestamp = current_time or datetime.now(timezone.utc)
        local_time = timestamp.astimezone(tz)
        tz_abbr = (local_time.tzname() or "local").replace(" ", "")
        date_folder = local_time.strftime("%Y-%m-%d")
        human_time = local_time.strftime("%Y-%m-%d_%H-%M-%S")
        file_name = f"{prefix}_{human_time}_{tz_abbr}.log"
        log_path = (Path(directory).resolve() / date_folder / file_name).resolve()

        log_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_path = log_path
        super().__init__(
            log_path,
            mode=mode,
            encoding=encoding,
            delay=delay,
            errors=errors,
        )


def cleanup_old_logs(
    log_directories: list[str | Path],
    retention_hours: int,
    logger: logging.Logger | None = None,
) -> tuple[int, int]:
    """
    Delete log files older than the specified retention period.

    Args:
        log_directories: Directories to clean (e.g., ['logs/pipeline'])
        retention_hours: Files older than this many hours will be deleted (0 = disabled)
        logger: Optional logger for reporting cleanup activity

    Returns:
        Tuple of (files_deleted, errors_encountered)
    """
    if retention_hours <= 0:
        return (0, 0)

    cutoff_time = datetime.now(timezone.utc) - timedelta(hours=retention_hours)
    files_deleted = 0
    errors = 0

    for directory in log_directories:
        dir_path = Path(directory).resolve()
        if not dir_path.exists():
            continue

        try:
            for log_file in dir_path.rglob("*.log"):
                try:
                    mtime = datetime.fromtimestamp(
                        log_file.stat().st_mtime, tz=timezone.utc
                    )

                    if mtime < cutoff_time:
                        log_file.unlink()
                        files_deleted += 1
                        if logger:
                            logger.debug(f"Deleted old log file: {log_file}")
                except OSError as e:
                    errors += 1
                    if logger:
                        logger.warning(f"Failed to delete {log_file}: {e}")

            # Empty date folders
            for date_dir in dir_path.iterdir():
                if date_dir.is_dir() and not any(date_dir.iterdir()):
                    try:
                        date_dir.rmdir()
                    except OSError as e:
                        if logger:
                            logger.debug(f"Could not remove {date_dir}: {e}")

        except OSError as e:
            errors += 1
            if logger:
                logger.error(f"Error cleaning logs in {dir_path}: {e}")

    if logger and files_deleted > 0:
        logger.info(
            f"Log cleanup complete: {files_deleted} file(s) deleted, "
            f"{errors} error(s) encountered"
        )

    return (files_deleted, errors)


__all__ = ["DateStampedFileHandler", "cleanup_old_logs", "resolve_timezone"]
