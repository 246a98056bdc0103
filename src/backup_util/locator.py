"""Resolve the root location that holds a volume's backup configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from .errors import DirectoryNotFoundError


@runtime_checkable
class RootLocator(Protocol):
    """Maps a storage volume descriptor to its root directory."""

    def root_location(self, volume: Path) -> Path:
        """Return the absolute root directory for ``volume``.

        Raises:
            OSError: If the volume is not accessible.

        """
        ...


class MountPointLocator:
    """Uses the mount point containing the volume path as the root."""

    def root_location(self, volume: Path) -> Path:
        path = Path(os.path.abspath(volume))
        if not path.exists():
            raise DirectoryNotFoundError(path)

        while not os.path.ismount(path) and path != path.parent:
            path = path.parent
        return path


class FixedRootLocator:
    """Always answers with the same root, whatever the volume."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(os.path.abspath(root))

    def root_location(self, volume: Path) -> Path:
        return self.root
