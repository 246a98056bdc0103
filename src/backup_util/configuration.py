"""Backup configuration of a storage volume."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from .codec import ConfigurationCodec, TextConfigurationCodec
from .locator import MountPointLocator, RootLocator
from .scope import BackupScope

logger = logging.getLogger("backup-util")

CONFIG_FILE_NAME = ".backupconf"


class BackupConfiguration:
    """Identifier and backup scope stored at the root of a volume.

    Two configurations are equal when their identifiers are equal, whatever
    their scopes contain. Changes are only persisted by an explicit save().
    """

    def __init__(
        self,
        volume: Path,
        root: Path,
        identifier: uuid.UUID,
        directories: list[Path] | None = None,
        *,
        codec: ConfigurationCodec | None = None,
        file_name: str = CONFIG_FILE_NAME,
    ) -> None:
        self.volume = volume
        self.scope = BackupScope(root, directories or [])
        self._id = identifier
        self._codec = codec or TextConfigurationCodec()
        self._file_name = file_name

    @classmethod
    def load(
        cls,
        volume: Path | str,
        locator: RootLocator | None = None,
        codec: ConfigurationCodec | None = None,
        file_name: str = CONFIG_FILE_NAME,
    ) -> BackupConfiguration:
        """Load the configuration of a volume, or start a fresh one.

        Args:
            volume: Any path on the storage volume.
            locator: Finds the volume's root. Defaults to its mount point.
            codec: Persistence format. Defaults to the text format.
            file_name: Name of the configuration file inside the root.

        Returns:
            The stored configuration, or a new one with a random identifier
            and an empty scope when nothing is stored yet.

        Raises:
            ConfigurationDecodeError: If the stored configuration is malformed.

        """
        volume = Path(volume)
        root = (locator or MountPointLocator()).root_location(volume)
        codec = codec or TextConfigurationCodec()

        stored = codec.load(Path(root) / file_name)
        if stored is None:
            identifier, directories = uuid.uuid4(), []
            logger.debug("No backup configuration under %s, created %s", root, identifier)
        else:
            identifier, directories = stored
            logger.debug("Loaded backup configuration %s from %s", identifier, root)

        return cls(volume, Path(root), identifier, directories, codec=codec, file_name=file_name)

    @property
    def root(self) -> Path:
        return self.scope.root

    @property
    def id(self) -> uuid.UUID:
        return self._id

    @property
    def config_path(self) -> Path:
        return self.root / self._file_name

    @property
    def directories_to_backup(self) -> tuple[Path, ...]:
        """Scope entries relative to the root, in path order."""
        return self.scope.entries

    def add_directory(self, directory: Path | str) -> bool:
        return self.scope.add(directory)

    def remove_directory(self, directory: Path | str) -> bool:
        return self.scope.remove(directory)

    def save(self) -> None:
        self._codec.save(self.config_path, self._id, self.scope.entries)
        logger.info("Saved backup configuration to %s", self.config_path)

    def delete(self) -> None:
        """Remove the persisted configuration; a missing file is fine."""
        self.config_path.unlink(missing_ok=True)
        logger.info("Deleted backup configuration %s", self.config_path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BackupConfiguration):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        dirs = [p.as_posix() for p in self.scope]
        return f"BackupConfiguration(root={self.root}, id={self._id}, dirs={dirs})"
