"""Copy, delete, compare and digest whole directory trees."""

from __future__ import annotations

import errno
import hashlib
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol

from .directory import Directory
from .visitor import DO_NOTHING, PathVisitor, VisitResult, walk_tree

logger = logging.getLogger("backup-util")

DEFAULT_ALGORITHM = "sha256"
CHUNK_SIZE = 64 * 1024


class HashObject(Protocol):
    """The part of the hashlib object interface used for digesting."""

    def update(self, data: bytes, /) -> None: ...

    def digest(self) -> bytes: ...


@dataclass(frozen=True)
class CopyOptions:
    """Policy handed to the file-copy primitive.

    Attributes:
        replace_existing: Overwrite files already present in the target.
            When False an existing target file raises FileExistsError.
        copy_attributes: Preserve timestamps and permission bits (shutil.copy2).
        follow_symlinks: Copy the content a symlink points to rather than the link.

    """

    replace_existing: bool = False
    copy_attributes: bool = False
    follow_symlinks: bool = True


def _as_path(tree: Directory | Path | str) -> Path:
    if isinstance(tree, Directory):
        return tree.path
    return Path(os.path.abspath(tree))


def _as_directory(tree: Directory | Path | str) -> Directory:
    if isinstance(tree, Directory):
        return tree
    return Directory.get(tree)


class _DeletingVisitor:
    """Removes entries post-order, reporting each removal to the monitor."""

    def __init__(self, monitor: PathVisitor) -> None:
        self.monitor = monitor

    def pre_visit_directory(self, path: Path, attrs: os.stat_result) -> VisitResult:
        return self.monitor.pre_visit_directory(path, attrs)

    def visit_file(self, path: Path, attrs: os.stat_result) -> VisitResult:
        try:
            path.unlink()
        except OSError as e:
            return self.monitor.visit_file_failed(path, e)
        return self.monitor.visit_file(path, attrs)

    def visit_file_failed(self, path: Path, exc: OSError) -> VisitResult:
        return self.monitor.visit_file_failed(path, exc)

    def post_visit_directory(self, path: Path, exc: OSError | None) -> VisitResult:
        if exc is not None:
            raise exc
        path.rmdir()
        return self.monitor.post_visit_directory(path, exc)


def delete(tree: Directory | Path | str, visitor: PathVisitor = DO_NOTHING) -> None:
    """Recursively delete a directory tree, children before their parent.

    A missing root is not an error. A file that cannot be removed is handed
    to ``visitor.visit_file_failed``; a directory that cannot be removed
    raises.

    Args:
        tree: Root of the tree to delete.
        visitor: Progress monitor, notified after each successful removal.

    Raises:
        OSError: If a directory cannot be removed, or the visitor re-raises a file failure.

    """
    root = _as_path(tree)
    if not os.path.lexists(root):
        logger.debug("Nothing to delete at %s", root)
        return

    walk_tree(root, _DeletingVisitor(visitor))
    logger.info("Deleted %s", root)


def _copy_file(source: Path, target: Path, options: CopyOptions) -> None:
    if options.follow_symlinks and source.is_symlink() and source.is_dir():
        # Links to directories are copied as empty directories
        target.mkdir(exist_ok=True)
        return

    if os.path.lexists(target):
        if not options.replace_existing:
            raise FileExistsError(errno.EEXIST, "Target file already exists", str(target))
        if not target.is_dir() or target.is_symlink():
            target.unlink()

    if options.copy_attributes:
        shutil.copy2(source, target, follow_symlinks=options.follow_symlinks)
    else:
        shutil.copyfile(source, target, follow_symlinks=options.follow_symlinks)


class _CopyingVisitor:
    """Mirrors each visited entry of ``source`` into ``target``, pre-order."""

    def __init__(self, source: Directory, target: Path, monitor: PathVisitor, options: CopyOptions) -> None:
        self.source = source
        self.target = target
        self.monitor = monitor
        self.options = options

    def _destination(self, path: Path) -> Path:
        return self.target / self.source.relativize(path)

    def pre_visit_directory(self, path: Path, attrs: os.stat_result) -> VisitResult:
        self._destination(path).mkdir(parents=True, exist_ok=True)
        return self.monitor.pre_visit_directory(path, attrs)

    def visit_file(self, path: Path, attrs: os.stat_result) -> VisitResult:
        _copy_file(path, self._destination(path), self.options)
        return self.monitor.visit_file(path, attrs)

    def visit_file_failed(self, path: Path, exc: OSError) -> VisitResult:
        return self.monitor.visit_file_failed(path, exc)

    def post_visit_directory(self, path: Path, exc: OSError | None) -> VisitResult:
        return self.monitor.post_visit_directory(path, exc)


def copy(
    source: Directory | Path | str,
    target: Directory | Path | str,
    visitor: PathVisitor = DO_NOTHING,
    options: CopyOptions | None = None,
) -> None:
    """Recursively mirror ``source`` into ``target``.

    Directories are created (with any missing parents) before their children
    are copied. An interrupted copy leaves already copied entries in place.

    Args:
        source: Existing directory to copy.
        target: Destination directory; created if missing.
        visitor: Progress monitor, notified after each directory creation and file copy.
        options: Copy policy; defaults to ``CopyOptions()``.

    Raises:
        DirectoryNotFoundError: If ``source`` does not exist.
        ValueError: If ``target`` lies inside ``source``.
        OSError: If a directory or file cannot be created.

    """
    source_dir = _as_directory(source)
    target_path = _as_path(target)
    if target_path == source_dir.path or source_dir.path in target_path.parents:
        msg = f"Cannot copy {source_dir.path} into itself ({target_path})"
        raise ValueError(msg)

    walk_tree(source_dir.path, _CopyingVisitor(source_dir, target_path, visitor, options or CopyOptions()))
    logger.info("Copied %s -> %s", source_dir.path, target_path)


class _CollectingVisitor:
    """Records every entry below the root while deferring control to the monitor."""

    def __init__(self, root: Path, monitor: PathVisitor) -> None:
        self.root = root
        self.monitor = monitor
        self.paths: list[Path] = []

    def pre_visit_directory(self, path: Path, attrs: os.stat_result) -> VisitResult:
        if path != self.root:
            self.paths.append(path)
        return self.monitor.pre_visit_directory(path, attrs)

    def visit_file(self, path: Path, attrs: os.stat_result) -> VisitResult:
        self.paths.append(path)
        return self.monitor.visit_file(path, attrs)

    def visit_file_failed(self, path: Path, exc: OSError) -> VisitResult:
        return self.monitor.visit_file_failed(path, exc)

    def post_visit_directory(self, path: Path, exc: OSError | None) -> VisitResult:
        return self.monitor.post_visit_directory(path, exc)


def _collect(directory: Directory, visitor: PathVisitor) -> list[Path]:
    collector = _CollectingVisitor(directory.path, visitor)
    walk_tree(directory.path, collector)
    return collector.paths


def is_structure_same(
    a: Directory | Path | str,
    b: Directory | Path | str,
    visitor: PathVisitor = DO_NOTHING,
) -> bool:
    """Check whether two trees contain the same relative paths.

    Only names and nesting are compared, not file contents or sizes. The
    visitor sees both enumerations and may prune either with SKIP_SUBTREE.

    """
    first = _as_directory(a)
    second = _as_directory(b)
    first_paths = {first.relativize(p) for p in _collect(first, visitor)}
    second_paths = {second.relativize(p) for p in _collect(second, visitor)}
    return first_paths == second_paths


def _new_hash(algorithm: str | HashObject) -> HashObject:
    if isinstance(algorithm, str):
        return hashlib.new(algorithm)
    return algorithm


def _update(hasher: HashObject, stream: BinaryIO, chunk_size: int) -> None:
    for chunk in iter(lambda: stream.read(chunk_size), b""):
        hasher.update(chunk)


def _path_bytes(path: Path) -> bytes:
    return path.as_posix().encode("utf-8", "surrogateescape")


def digest(
    tree: Directory | Path | str,
    algorithm: str | HashObject = DEFAULT_ALGORITHM,
    visitor: PathVisitor = DO_NOTHING,
) -> bytes:
    """Hash a tree's paths and file contents into a single digest.

    Absolute paths are sorted by their components. For each path its POSIX
    string is hashed, followed by the file's bytes when it is a regular
    file. The result does not depend on directory enumeration order.

    Args:
        tree: Root of the tree.
        algorithm: hashlib algorithm name, or a fresh hash object to feed.
        visitor: Observes (and may prune) the enumeration.

    Returns:
        The finalized digest bytes.

    """
    directory = _as_directory(tree)
    hasher = _new_hash(algorithm)

    for path in sorted(_collect(directory, visitor), key=lambda p: p.parts):
        hasher.update(_path_bytes(path))
        if path.is_file():
            with path.open("rb") as handle:
                _update(hasher, handle, CHUNK_SIZE)

    return hasher.digest()


def digest_stream(
    stream: BinaryIO,
    algorithm: str | HashObject = DEFAULT_ALGORITHM,
    chunk_size: int = CHUNK_SIZE,
) -> bytes:
    """Hash a byte stream to exhaustion; the stream is closed afterwards."""
    hasher = _new_hash(algorithm)
    with stream:
        _update(hasher, stream, chunk_size)
    return hasher.digest()
