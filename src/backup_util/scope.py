"""Minimal covering set of directories to back up under a root."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from .errors import DirectoryNotFoundError, NotADirectoryPathError, OutsideRootError

logger = logging.getLogger("backup-util")


def _is_within(path: Path, ancestor: Path) -> bool:
    """True if ``ancestor`` is ``path`` itself or one of its ancestors."""
    return path.parts[: len(ancestor.parts)] == ancestor.parts


class BackupScope:
    """Set of root-relative directories in which no entry contains another.

    Entries are kept as relative paths and iterate in component order.
    """

    def __init__(self, root: Path, entries: Iterable[Path | str] = ()) -> None:
        self.root = Path(os.path.abspath(root))
        self._entries: set[Path] = set()
        for entry in entries:
            self._absorb(Path(entry))

    @property
    def entries(self) -> tuple[Path, ...]:
        return tuple(self)

    def __iter__(self) -> Iterator[Path]:
        return iter(sorted(self._entries, key=lambda p: p.parts))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, (str, Path)) and Path(item) in self._entries

    def __repr__(self) -> str:
        return f"BackupScope(root={self.root}, entries={[p.as_posix() for p in self]})"

    def covers(self, relative: Path) -> bool:
        """Check whether ``relative`` is an entry or lies below one."""
        return any(_is_within(relative, entry) for entry in self._entries)

    def _locate(self, candidate: Path) -> tuple[Path, Path]:
        """Return the normalized (absolute, relative) forms of a candidate."""
        absolute = candidate if candidate.is_absolute() else self.root / candidate
        absolute = Path(os.path.normpath(absolute))
        if not _is_within(absolute, self.root):
            return absolute, Path(os.path.relpath(absolute, self.root))
        return absolute, absolute.relative_to(self.root)

    def _absorb(self, relative: Path) -> bool:
        if self.covers(relative):
            return False
        subsumed = {entry for entry in self._entries if _is_within(entry, relative)}
        self._entries -= subsumed
        self._entries.add(relative)
        if subsumed:
            logger.debug("%s replaces %s", relative, sorted(p.as_posix() for p in subsumed))
        return True

    def add(self, candidate: Path | str) -> bool:
        """Add a directory, keeping the set free of nested entries.

        Args:
            candidate: Directory to back up, absolute or relative to the root.

        Returns:
            True if the scope changed, False if the directory was already covered.

        Raises:
            DirectoryNotFoundError: If the directory does not exist.
            NotADirectoryPathError: If the path is not a directory.
            OutsideRootError: If the directory is neither the root nor below it.

        """
        absolute, relative = self._locate(Path(candidate))

        if not absolute.exists():
            raise DirectoryNotFoundError(absolute)
        if not absolute.is_dir():
            raise NotADirectoryPathError(absolute)
        if not _is_within(absolute, self.root):
            raise OutsideRootError(absolute, self.root)

        added = self._absorb(relative)
        if added:
            logger.info("Added %s to backup scope", relative)
        else:
            logger.info("%s is already covered by the backup scope", relative)
        return added

    def remove(self, path: Path | str) -> bool:
        """Remove exactly ``path`` from the scope.

        Entries that an earlier add absorbed are not restored.

        Returns:
            True if the entry was present.

        """
        path = Path(path)
        if path.is_absolute():
            _, path = self._locate(path)
        if path not in self._entries:
            return False
        self._entries.discard(path)
        logger.info("Removed %s from backup scope", path)
        return True

    def clear(self) -> None:
        self._entries.clear()
