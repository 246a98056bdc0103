"""Progress visitor protocol and the tree walk that drives it."""

from __future__ import annotations

import logging
import os
import stat
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger("backup-util")


class VisitResult(Enum):
    """Traversal control returned from every visitor hook."""

    CONTINUE = "continue"
    SKIP_SUBTREE = "skip_subtree"
    SKIP_SIBLINGS = "skip_siblings"
    TERMINATE = "terminate"


@runtime_checkable
class PathVisitor(Protocol):
    """Hooks invoked as a tree operation progresses."""

    def pre_visit_directory(self, path: Path, attrs: os.stat_result) -> VisitResult:
        """Called for a directory before its entries are visited.

        Args:
            path: Directory about to be visited.
            attrs: Attributes of the directory (symlinks not followed).

        Returns:
            SKIP_SUBTREE or SKIP_SIBLINGS to prune the walk, TERMINATE to stop it.

        """
        ...

    def visit_file(self, path: Path, attrs: os.stat_result) -> VisitResult:
        """Called for every non-directory entry."""
        ...

    def visit_file_failed(self, path: Path, exc: OSError) -> VisitResult:
        """Called when an entry could not be read or processed.

        Args:
            path: Entry that failed.
            exc: The underlying error.

        Returns:
            CONTINUE to tolerate the failure; raise to abort the walk.

        """
        ...

    def post_visit_directory(self, path: Path, exc: OSError | None) -> VisitResult:
        """Called for a directory after all of its entries were visited.

        Args:
            path: Directory that was visited.
            exc: Error raised while listing the directory, None if listing succeeded.

        """
        ...


class SimplePathVisitor:
    """Visitor that continues everywhere and re-raises every failure it is handed."""

    def pre_visit_directory(self, path: Path, attrs: os.stat_result) -> VisitResult:
        return VisitResult.CONTINUE

    def visit_file(self, path: Path, attrs: os.stat_result) -> VisitResult:
        return VisitResult.CONTINUE

    def visit_file_failed(self, path: Path, exc: OSError) -> VisitResult:
        raise exc

    def post_visit_directory(self, path: Path, exc: OSError | None) -> VisitResult:
        if exc is not None:
            raise exc
        return VisitResult.CONTINUE


DO_NOTHING: PathVisitor = SimplePathVisitor()


class ProgressVisitor(SimplePathVisitor):
    """Counts visited entries and logs each step at DEBUG level.

    Attributes:
        action: Verb used in log messages (e.g. "copied", "deleted").
        files: Number of files visited.
        directories: Number of directories completed.
        bytes: Total size of visited files.
        failures: Entries handed to visit_file_failed and tolerated.

    """

    def __init__(self, action: str = "visited", *, tolerate_failures: bool = False) -> None:
        self.action = action
        self.tolerate_failures = tolerate_failures
        self.files = 0
        self.directories = 0
        self.bytes = 0
        self.failures: list[tuple[Path, OSError]] = []

    def visit_file(self, path: Path, attrs: os.stat_result) -> VisitResult:
        self.files += 1
        self.bytes += attrs.st_size
        logger.debug("%s file: %s", self.action.capitalize(), path)
        return VisitResult.CONTINUE

    def visit_file_failed(self, path: Path, exc: OSError) -> VisitResult:
        if not self.tolerate_failures:
            raise exc
        logger.warning("Failed on %s: %s", path, exc)
        self.failures.append((path, exc))
        return VisitResult.CONTINUE

    def post_visit_directory(self, path: Path, exc: OSError | None) -> VisitResult:
        result = super().post_visit_directory(path, exc)
        self.directories += 1
        logger.debug("%s directory: %s", self.action.capitalize(), path)
        return result


def walk_tree(start: Path, visitor: PathVisitor) -> None:
    """Walk a file tree depth-first, driving the visitor hooks.

    Entries of each directory are visited in sorted name order. Symbolic
    links are reported as files and never followed.

    Args:
        start: Root of the walk. A non-directory start is visited as a single file.
        visitor: Hooks to invoke; their results prune or stop the walk.

    """
    _visit(Path(start), visitor)


def _visit(path: Path, visitor: PathVisitor) -> VisitResult:
    """Visit one entry and return the result its parent should act on."""
    try:
        attrs = path.lstat()
    except OSError as e:
        return visitor.visit_file_failed(path, e)

    if not stat.S_ISDIR(attrs.st_mode):
        return visitor.visit_file(path, attrs)

    try:
        scanner = os.scandir(path)
    except OSError as e:
        return visitor.visit_file_failed(path, e)

    with scanner:
        result = visitor.pre_visit_directory(path, attrs)
        if result is VisitResult.SKIP_SUBTREE:
            return VisitResult.CONTINUE
        if result is not VisitResult.CONTINUE:
            return result

        listing_error: OSError | None = None
        try:
            children = sorted(path / entry.name for entry in scanner)
        except OSError as e:
            children = []
            listing_error = e

    for child in children:
        result = _visit(child, visitor)
        if result is VisitResult.TERMINATE:
            return result
        if result is VisitResult.SKIP_SIBLINGS:
            break

    result = visitor.post_visit_directory(path, listing_error)
    if result is VisitResult.SKIP_SUBTREE:
        return VisitResult.CONTINUE
    return result
