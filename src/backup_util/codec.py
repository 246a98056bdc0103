"""On-disk encoding of a backup configuration."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from .errors import ConfigurationDecodeError

ID_HEX_LENGTH = 32


@runtime_checkable
class ConfigurationCodec(Protocol):
    """Reads and writes an identifier plus a list of relative directories."""

    def load(self, path: Path) -> tuple[uuid.UUID, list[Path]] | None:
        """Decode the configuration stored at ``path``.

        Returns:
            (identifier, directories), or None if nothing is stored there.

        Raises:
            ConfigurationDecodeError: If the stored data is malformed.

        """
        ...

    def save(self, path: Path, identifier: uuid.UUID, directories: Iterable[Path]) -> None:
        ...


class TextConfigurationCodec:
    """Line-oriented text format.

    The first line holds the identifier as 32 uppercase hex digits; every
    following line holds one root-relative directory with ``/`` separators.
    """

    encoding = "utf-8"

    def load(self, path: Path) -> tuple[uuid.UUID, list[Path]] | None:
        if not path.exists():
            return None

        try:
            with path.open(encoding=self.encoding) as f:
                lines = f.read().splitlines()
        except UnicodeDecodeError as e:
            raise ConfigurationDecodeError(path, "not valid UTF-8") from e

        if not lines:
            raise ConfigurationDecodeError(path, "missing identifier line")

        header = lines[0].strip()
        if len(header) != ID_HEX_LENGTH:
            raise ConfigurationDecodeError(path, f"identifier must be {ID_HEX_LENGTH} hex digits, got {header!r}")
        try:
            identifier = uuid.UUID(bytes=bytes.fromhex(header))
        except ValueError as e:
            raise ConfigurationDecodeError(path, f"invalid identifier {header!r}") from e

        directories: list[Path] = []
        for line in lines[1:]:
            if not line.strip():
                continue
            entry = PurePosixPath(line)
            if entry.is_absolute():
                raise ConfigurationDecodeError(path, f"directory entry {line!r} is not relative")
            directories.append(Path(*entry.parts))

        return identifier, directories

    def save(self, path: Path, identifier: uuid.UUID, directories: Iterable[Path]) -> None:
        lines = [identifier.hex.upper()]
        lines.extend(Path(d).as_posix() for d in directories)

        with path.open("w", encoding=self.encoding) as f:
            f.write("\n".join(lines) + "\n")
