"""Handle to an existing directory and the paths beneath it."""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from .errors import DirectoryNotFoundError, NotADirectoryPathError
from .visitor import DO_NOTHING, PathVisitor, walk_tree


def _raise(exc: OSError) -> None:
    raise exc


@dataclass(frozen=True)
class Directory:
    """Non-owning reference to a directory; every enumeration re-reads the filesystem."""

    path: Path

    @classmethod
    def get(cls, path: Path | str) -> Directory:
        """Create a handle for an existing directory.

        Args:
            path: Directory location, absolute or relative to the cwd.

        Returns:
            Handle over the absolute directory path.

        Raises:
            DirectoryNotFoundError: If nothing exists at ``path``.
            NotADirectoryPathError: If ``path`` is not a directory.

        """
        path = Path(os.path.abspath(path))
        if not path.exists():
            raise DirectoryNotFoundError(path)
        if not path.is_dir():
            raise NotADirectoryPathError(path)
        return cls(path)

    def __iter__(self) -> Iterator[Path]:
        """Yield every file and subdirectory below the root (root excluded)."""
        for dirpath, dirnames, filenames in os.walk(self.path, onerror=_raise):
            base = Path(dirpath)
            for name in dirnames:
                yield base / name
            for name in filenames:
                yield base / name

    def relativize(self, path: Path) -> Path:
        """Return ``path`` relative to this directory."""
        return Path(path).relative_to(self.path)

    def resolve(self, relative: Path | str) -> Path:
        """Return the location of ``relative`` beneath this directory."""
        return self.path / relative

    def walk(self, visitor: PathVisitor = DO_NOTHING) -> None:
        walk_tree(self.path, visitor)

    def __str__(self) -> str:
        return str(self.path)
