#!/usr/bin/env python3
"""Tests for settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from garage.config import Settings, load_settings


class TestLoadSettings:
    """Tests for load_settings."""

    @pytest.fixture(autouse=True)
    def clean_environment(self, monkeypatch):
        for name in (
            "GARAGE_CONFIG",
            "GARAGE_DATA_FILE",
            "GARAGE_DEFAULTS_FILE",
            "GARAGE_LOG_LEVEL",
            "GARAGE_ODOMETER_REMINDER_DAYS",
            "GARAGE_ODOMETER_JUMP_THRESHOLD",
            "GARAGE_TOP_CATEGORIES",
            "GARAGE_SECRET_KEY",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        settings = load_settings()
        assert settings == Settings()
        assert settings.data_file == Path("garage.yaml")
        assert settings.defaults_file is None
        assert settings.odometer_reminder_days == 14
        assert settings.odometer_jump_threshold == 5000
        assert settings.top_categories == 5

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("""
dataFile: /srv/garage/data.yaml
logLevel: info
odometerReminderDays: 30
""")
        settings = load_settings(path)
        assert settings.data_file == Path("/srv/garage/data.yaml")
        assert settings.log_level == "INFO"
        assert settings.odometer_reminder_days == 30

    def test_config_file_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("topCategories: 3\n")
        monkeypatch.setenv("GARAGE_CONFIG", str(path))
        settings = load_settings()
        assert settings.top_categories == 3

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("odometerJumpThreshold: 8000\n")
        monkeypatch.setenv("GARAGE_ODOMETER_JUMP_THRESHOLD", "10000")
        settings = load_settings(path)
        assert settings.odometer_jump_threshold == 10000

    def test_environment_log_level_is_upper_cased(self, monkeypatch):
        monkeypatch.setenv("GARAGE_LOG_LEVEL", "debug")
        assert load_settings().log_level == "DEBUG"

    def test_non_numeric_environment_value_rejected(self, monkeypatch):
        monkeypatch.setenv("GARAGE_TOP_CATEGORIES", "abc")
        with pytest.raises(ValidationError) as exc_info:
            load_settings()
        assert "top_categories" in str(exc_info.value)

    def test_non_numeric_file_value_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("odometerReminderDays: soon\n")
        with pytest.raises(ValidationError):
            load_settings(path)

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("colour: red\n")
        with pytest.raises(ValidationError):
            load_settings(path)

    def test_settings_are_immutable(self):
        settings = load_settings()
        with pytest.raises(ValidationError):
            settings.log_level = "DEBUG"
