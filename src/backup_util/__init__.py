"""Backup scope tracking and directory tree operations."""

from .configuration import BackupConfiguration
from .directory import Directory
from .errors import (
    BackupError,
    ConfigurationDecodeError,
    DirectoryNotFoundError,
    NotADirectoryPathError,
    OutsideRootError,
)
from .scope import BackupScope
from .tree import CopyOptions, copy, delete, digest, digest_stream, is_structure_same
from .visitor import DO_NOTHING, PathVisitor, ProgressVisitor, SimplePathVisitor, VisitResult

__all__ = [
    "DO_NOTHING",
    "BackupConfiguration",
    "BackupError",
    "BackupScope",
    "ConfigurationDecodeError",
    "CopyOptions",
    "Directory",
    "DirectoryNotFoundError",
    "NotADirectoryPathError",
    "OutsideRootError",
    "PathVisitor",
    "ProgressVisitor",
    "SimplePathVisitor",
    "VisitResult",
    "copy",
    "delete",
    "digest",
    "digest_stream",
    "is_structure_same",
]
