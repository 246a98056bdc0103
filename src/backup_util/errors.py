"""Error hierarchy for backup scope and directory tree operations."""

from __future__ import annotations

from pathlib import Path


class BackupError(Exception):
    """Base exception for backup-util failures."""


class DirectoryNotFoundError(BackupError, FileNotFoundError):
    """Raised when a directory that must exist is missing."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"{path} does not exist")


class NotADirectoryPathError(BackupError, NotADirectoryError):
    """Raised when a path exists but is not a directory."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"{path} is not a directory")


class OutsideRootError(BackupError, ValueError):
    """Raised when a directory is neither the root nor below it."""

    def __init__(self, path: Path, root: Path) -> None:
        self.path = path
        self.root = root
        super().__init__(f"{path} is not a subdirectory of {root}")


class ConfigurationDecodeError(BackupError, ValueError):
    """Raised when a persisted backup configuration is malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed backup configuration {path}: {reason}")


__all__ = [
    "BackupError",
    "ConfigurationDecodeError",
    "DirectoryNotFoundError",
    "NotADirectoryPathError",
    "OutsideRootError",
]
