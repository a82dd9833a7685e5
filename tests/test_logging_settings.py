"""Tests for logging settings parsing."""

from pathlib import Path

from live_translate.logging_settings import parse_logging_settings


def test_parse_logging_settings_with_retention(tmp_path: Path) -> None:
    """Test parsing logging settings with retention_hours."""
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text(
        """
# Test config
terminal = warning
pipeline = debug
retention_hours = 72
timezone = Europe/Riga
"""
    )

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level == 30  # WARNING
    assert settings.pipeline_level == 10  # DEBUG
    assert settings.retention_hours == 72
    assert settings.timezone == "Europe/Riga"


def test_parse_logging_settings_defaults(tmp_path: Path) -> None:
    """Test default values when config file doesn't exist."""
    config_file = tmp_path / "nonexistent.conf"

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level == 20  # Default INFO
    assert settings.pipeline_level == 20  # Default INFO
    assert settings.retention_hours == 48  # Default retention
    assert settings.timezone is None


def test_parse_logging_settings_invalid_retention(tmp_path: Path) -> None:
    """Test parsing with invalid retention value falls back to default."""
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text(
        """
terminal = info
retention_hours = invalid
"""
    )

    settings = parse_logging_settings(config_file)

    assert settings.retention_hours == 48  # Falls back to default


def test_parse_logging_settings_negative_retention(tmp_path: Path) -> None:
    """Test parsing with negative retention value clamps to 0."""
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text("retention_hours = -10\n")

    settings = parse_logging_settings(config_file)

    assert settings.retention_hours == 0  # Clamped to 0


def test_parse_logging_settings_off_and_unknown_levels(tmp_path: Path) -> None:
    """Test 'off' disables a sink and unknown levels fall back to info."""
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text(
        """
terminal = off
pipeline = loud
ignored line without equals
"""
    )

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level is None
    assert settings.pipeline_level == 20  # INFO
