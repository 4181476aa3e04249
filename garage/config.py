"""
Process-wide settings.

Loaded once from an optional YAML file named by GARAGE_CONFIG, with
GARAGE_* environment variables taking precedence. The Settings object is
immutable; pass it around instead of re-reading the environment.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .engine import ODOMETER_REMINDER_DAYS
from .units import ODOMETER_JUMP_THRESHOLD

ENV_PREFIX = "GARAGE_"


class Settings(BaseSettings):
    data_file: Path = Path("garage.yaml")
    defaults_file: Optional[Path] = None
    log_level: str = "WARNING"
    odometer_reminder_days: int = ODOMETER_REMINDER_DAYS
    odometer_jump_threshold: int = ODOMETER_JUMP_THRESHOLD
    top_categories: int = 5
    secret_key: str = "dev-secret-key-change-in-prod"

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True, extra="forbid")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        # Environment beats the config file values passed in as init kwargs.
        return env_settings, init_settings


# YAML keys are camelCase like the data files.
_YAML_KEYS = {
    "dataFile": "data_file",
    "defaultsFile": "defaults_file",
    "logLevel": "log_level",
    "odometerReminderDays": "odometer_reminder_days",
    "odometerJumpThreshold": "odometer_jump_threshold",
    "topCategories": "top_categories",
    "secretKey": "secret_key",
}


def _read_config_file(path: Path) -> Dict[str, Any]:
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    # Unknown keys pass through untouched so the model rejects them.
    return {_YAML_KEYS.get(key, key): value for key, value in raw.items()}


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """Build settings from a YAML file and GARAGE_* environment overrides."""
    config_file = config_file or os.environ.get(f"{ENV_PREFIX}CONFIG")
    values = _read_config_file(Path(config_file)) if config_file else {}
    return Settings(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process, loaded on first use."""
    return load_settings()
