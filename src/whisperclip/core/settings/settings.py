"""
Settings management with JSON persistence.

Handles loading, saving, and validating the user's persisted choices.
Uses platformdirs for cross-platform directory resolution.
"""

import json
from pathlib import Path
from typing import Optional

from platformdirs import user_config_path, user_data_path
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...utils.logger import get_logger
from ..errors import StorageError

logger = get_logger(__name__)

APP_NAME = "whisperclip"
SETTINGS_FILE = "settings.json"

TRANSCRIPTION_MODES = ("api", "local")


def get_config_dir() -> Path:
    return user_config_path(APP_NAME, appauthor=False, ensure_exists=True)


def get_data_dir() -> Path:
    return user_data_path(APP_NAME, appauthor=False, ensure_exists=True)


def get_models_dir() -> Path:
    return get_data_dir() / "models"


class HotkeyConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    modifiers: list[str] = Field(default_factory=lambda: ["ctrl", "alt"])
    key: str = "space"

    @field_validator("modifiers")
    @classmethod
    def modifiers_not_empty(cls, v):
        if not v or not all(isinstance(m, str) and m.strip() for m in v):
            raise ValueError("modifiers must be a non-empty list of non-empty strings")
        return v

    @field_validator("key")
    @classmethod
    def key_not_empty(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("key must be a non-empty string")
        return v

    def to_display_string(self) -> str:
        parts = [mod.capitalize() for mod in self.modifiers]
        parts.append(self.key.capitalize())
        return " + ".join(parts)


class Settings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    # None until the user picks a backend; the configured default applies.
    transcription_mode: Optional[str] = None
    input_device: Optional[str] = None

    hotkey_enabled: bool = True
    hotkey: HotkeyConfig = Field(default_factory=HotkeyConfig)

    @field_validator("transcription_mode")
    @classmethod
    def mode_known(cls, v):
        if v is not None and v not in TRANSCRIPTION_MODES:
            raise ValueError(f"transcription_mode must be one of {TRANSCRIPTION_MODES}")
        return v

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "Settings":
        config_file = config_file or get_config_dir() / SETTINGS_FILE

        if not config_file.exists():
            return cls()

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")

            valid_keys = cls.model_fields.keys()
            filtered_data = {k: v for k, v in data.items() if k in valid_keys}

            if "hotkey" in filtered_data:
                try:
                    filtered_data["hotkey"] = HotkeyConfig.model_validate(
                        filtered_data["hotkey"]
                    )
                except ValidationError:
                    logger.warning("Invalid hotkey configuration, resetting to default")
                    filtered_data["hotkey"] = HotkeyConfig()

            return cls._load_with_fallbacks(filtered_data)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Could not load settings: {e}. Using defaults.", exc_info=True)
            return cls()

    @classmethod
    def _load_with_fallbacks(cls, data: dict) -> "Settings":
        """Load settings with field-level fallback to defaults on validation errors."""
        defaults = cls()
        result_data = {}

        for field_name in cls.model_fields:
            if field_name not in data:
                result_data[field_name] = getattr(defaults, field_name)
                continue

            value = data[field_name]
            if isinstance(value, BaseModel):
                result_data[field_name] = value
                continue

            try:
                cls.model_validate({**defaults.model_dump(), field_name: value})
                result_data[field_name] = value
            except ValidationError:
                default_val = getattr(defaults, field_name)
                logger.warning(
                    f"Invalid {field_name} {value!r}, resetting to {default_val}"
                )
                result_data[field_name] = default_val

        return cls.model_construct(**result_data)

    def save(self, config_file: Optional[Path] = None) -> None:
        config_file = config_file or get_config_dir() / SETTINGS_FILE
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(), f, indent=2)


class SettingsStore:
    """
    Key/value view over ``Settings`` that writes through on every change.

    An unreadable settings file means defaults; writes raise ``StorageError``
    for unknown keys, invalid values, and file I/O failures.
    """

    def __init__(self, config_file: Optional[Path] = None):
        self._config_file = config_file or get_config_dir() / SETTINGS_FILE
        try:
            self._settings = Settings.load(self._config_file)
        except OSError as e:
            logger.error(f"Could not read settings from {self._config_file}: {e}")
            self._settings = Settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    def get(self, key: str) -> Optional[str]:
        if key not in Settings.model_fields:
            raise StorageError(f"Unknown setting: {key}")
        value = getattr(self._settings, key)
        return None if value is None else str(value)

    def set(self, key: str, value: Optional[str]) -> None:
        if key not in Settings.model_fields:
            raise StorageError(f"Unknown setting: {key}")

        try:
            updated = Settings.model_validate(
                {**self._settings.model_dump(), key: value}
            )
        except ValidationError as e:
            raise StorageError(f"Invalid value for {key}: {value!r}") from e

        try:
            updated.save(self._config_file)
        except OSError as e:
            raise StorageError(f"Could not save settings: {e}") from e

        self._settings = updated
        logger.debug(f"Setting {key} = {value!r}")
