from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jsonschema import Draft7Validator

logger = logging.getLogger(__name__)

_NULLABLE_STRING = {"type": ["string", "null"]}
_NON_NEGATIVE_INT = {"type": "integer", "minimum": 0}

SETTINGS_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "save": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"directory": _NULLABLE_STRING},
        },
        "backup": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "directory": _NULLABLE_STRING,
                "folder_name": {"type": "string", "minLength": 1},
            },
        },
        "reference": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"database": _NULLABLE_STRING},
        },
        "presets": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "gold": _NON_NEGATIVE_INT,
                "bei": _NON_NEGATIVE_INT,
                "artisans_flame": _NON_NEGATIVE_INT,
                "follower_count": _NON_NEGATIVE_INT,
            },
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
                "to_file": {"type": "boolean"},
                "directory": _NULLABLE_STRING,
            },
        },
    },
}


class ConfigError(Exception):
    """Raised when a settings file cannot be read or fails validation."""


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value).expanduser() if value else None


@dataclass
class SaveSettings:
    directory: Optional[Path] = None


@dataclass
class BackupSettings:
    directory: Optional[Path] = None
    folder_name: str = "DaveSaveEd_Backups"


@dataclass
class ReferenceSettings:
    database: Optional[Path] = None


@dataclass
class PresetSettings:
    gold: int = 999_999_999
    bei: int = 999_999_999
    artisans_flame: int = 999_999
    follower_count: int = 99_999


@dataclass
class LoggingSettings:
    level: str = "INFO"
    to_file: bool = False
    directory: Optional[Path] = None


@dataclass
class Settings:
    save: SaveSettings = field(default_factory=SaveSettings)
    backup: BackupSettings = field(default_factory=BackupSettings)
    reference: ReferenceSettings = field(default_factory=ReferenceSettings)
    presets: PresetSettings = field(default_factory=PresetSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read settings file {path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping at the top level")
        return data

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @staticmethod
    def validate(data: dict, source: str = "<settings>") -> None:
        errors = sorted(Draft7Validator(SETTINGS_SCHEMA).iter_errors(data), key=lambda e: list(e.path))
        if errors:
            lines = [f"Invalid settings in {source}:"]
            for e in errors:
                where = "/".join(str(p) for p in e.path) or "<root>"
                lines.append(f" - at {where}: {e.message}")
            raise ConfigError("\n".join(lines))

    @classmethod
    def _from_dict(cls, data: dict) -> "Settings":
        save = data.get("save", {})
        backup = data.get("backup", {})
        reference = data.get("reference", {})
        logging_ = data.get("logging", {})
        return cls(
            save=SaveSettings(directory=_optional_path(save.get("directory"))),
            backup=BackupSettings(
                directory=_optional_path(backup.get("directory")),
                folder_name=backup.get("folder_name", BackupSettings.folder_name),
            ),
            reference=ReferenceSettings(database=_optional_path(reference.get("database"))),
            presets=PresetSettings(**data.get("presets", {})),
            logging=LoggingSettings(
                level=logging_.get("level", LoggingSettings.level),
                to_file=bool(logging_.get("to_file", False)),
                directory=_optional_path(logging_.get("directory")),
            ),
        )

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "Settings":
        """Load settings from built-in defaults and an optional user override file.

        If user_path is provided and exists, overlay values onto defaults. A
        missing user file is reported and ignored; an unreadable or invalid
        one raises :class:`ConfigError`.
        """
        try:
            with resources.files("davesaveed.config").joinpath("default_settings.yaml").open("r", encoding="utf-8") as f:
                default_data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to dataclass defaults.")
            default_data = {}

        user_data = {}
        if user_path is not None:
            user_path = Path(user_path)
            if user_path.exists():
                user_data = cls._load_yaml(user_path)
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)

        merged = cls._deep_merge(default_data, user_data)
        cls.validate(merged, source=str(user_path) if user_data else "default settings")
        settings = cls._from_dict(merged)
        logger.debug("Settings merged: %s", settings)
        return settings

    def to_dict(self) -> Dict[str, Any]:
        def plain(value: Any) -> Any:
            return str(value) if isinstance(value, Path) else value

        return {
            name: {k: plain(v) for k, v in dataclasses.asdict(getattr(self, name)).items()}
            for name in ("save", "backup", "reference", "presets", "logging")
        }

    def save_to(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        logger.info("Saved settings to %s", path)
