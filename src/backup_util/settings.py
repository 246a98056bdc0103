"""User settings for the backup-util command line."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .configuration import CONFIG_FILE_NAME

_TRUE_VALUES = frozenset({"true", "yes", "on", "1"})


def parse_bool(value: Any, default: bool) -> bool:
    """Interpret a YAML scalar as a boolean.

    Args:
        value: Raw value (bool, int, str or None).
        default: Returned when value is None.

    Returns:
        Parsed boolean. Unrecognized strings are False.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


def _default_config_home() -> Path:
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"


@dataclass
class BackupSettings:
    """Settings for logging and the defaults of tree operations."""

    # Logging
    log_file: Path = field(default_factory=lambda: Path.home() / ".local/state/backup-util/backup-util.log")
    log_level: str = "INFO"

    # Tree operations
    digest_algorithm: str = "sha256"
    replace_existing: bool = False
    copy_attributes: bool = True

    # Name of the configuration file kept at the root of each volume
    config_file_name: str = CONFIG_FILE_NAME

    def __post_init__(self) -> None:
        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            msg = f"Unknown log level: {self.log_level}"
            raise ValueError(msg)

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default settings file path."""
        return _default_config_home() / "backup-util" / "config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> BackupSettings:
        """Load settings from a YAML file.

        Args:
            config_path: Path to the settings file. Uses default if None.

        Returns:
            Loaded settings; defaults for anything the file leaves out.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> BackupSettings:
        """Create settings from dictionary."""
        settings = cls()

        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if "file" in logging_cfg:
                settings.log_file = Path(os.path.expanduser(logging_cfg["file"]))
            if "level" in logging_cfg:
                settings.log_level = str(logging_cfg["level"])

        if "digest_algorithm" in data:
            settings.digest_algorithm = str(data["digest_algorithm"])
        if "config_file_name" in data:
            settings.config_file_name = str(data["config_file_name"])

        if "copy" in data:
            copy_cfg = data["copy"] or {}
            settings.replace_existing = parse_bool(copy_cfg.get("replace_existing"), settings.replace_existing)
            settings.copy_attributes = parse_bool(copy_cfg.get("copy_attributes"), settings.copy_attributes)

        settings.__post_init__()
        return settings

    def save(self, config_path: Path | None = None) -> None:
        """Save settings to a YAML file.

        Args:
            config_path: Path to save settings. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "digest_algorithm": self.digest_algorithm,
            "config_file_name": self.config_file_name,
            "copy": {
                "replace_existing": self.replace_existing,
                "copy_attributes": self.copy_attributes,
            },
            "logging": {
                "file": str(self.log_file),
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
