"""Abstract storage interfaces and default repository layout."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Iterator


class BlobType(str, Enum):
    """Kinds of objects stored in a repository."""

    DATA = "data"
    KEY = "key"
    LOCK = "lock"
    SNAPSHOT = "snapshot"
    INDEX = "index"
    CONFIG = "config"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RepositoryPaths:
    """Directory and file names used by file-based backends."""

    data: str = "data"
    snapshots: str = "snapshots"
    index: str = "index"
    locks: str = "locks"
    keys: str = "keys"
    temp: str = "tmp"
    config: str = "config"


@dataclass(frozen=True)
class RepositoryModes:
    """Permission bits used by file-based backends."""

    dir: int = 0o700
    file: int = 0o600


PATHS = RepositoryPaths()
MODES = RepositoryModes()


def repository_dirs(base: str) -> list[str]:
    """Return the directories a file-based repository at base must contain."""
    return [
        base,
        os.path.join(base, PATHS.data),
        os.path.join(base, PATHS.snapshots),
        os.path.join(base, PATHS.index),
        os.path.join(base, PATHS.locks),
        os.path.join(base, PATHS.keys),
        os.path.join(base, PATHS.temp),
    ]


class Lister(ABC):
    """Something that can enumerate stored names."""

    @abstractmethod
    def list(self, t: BlobType) -> Iterator[str]:
        """Yield the names of all blobs of type t in lexicographic order."""


class Deleter(ABC):
    """Something that can remove a whole repository."""

    @abstractmethod
    def delete(self) -> None:
        """Delete the complete repository."""


class Blob(ABC):
    """A blob being written; its data becomes visible after finalize()."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Append data and return the number of bytes written."""

    @abstractmethod
    def finalize(self, t: BlobType, name: str) -> None:
        """Move the written data to its final location for type and name."""

    @abstractmethod
    def size(self) -> int:
        """Return the number of bytes written so far."""


class Backend(Lister):
    """Storage for repository data."""

    @abstractmethod
    def location(self) -> str:
        """Return a string describing where the repository lives."""

    @abstractmethod
    def create(self) -> Blob:
        """Start a new blob."""

    @abstractmethod
    def get(self, t: BlobType, name: str) -> BinaryIO:
        """Open the blob of type t with the given name for reading."""

    @abstractmethod
    def get_reader(self, t: BlobType, name: str, offset: int, length: int) -> BinaryIO:
        """Open a reader at offset limited to length bytes (0 means to the end)."""

    @abstractmethod
    def test(self, t: BlobType, name: str) -> bool:
        """Return whether a blob of type t with the given name exists."""

    @abstractmethod
    def remove(self, t: BlobType, name: str) -> None:
        """Remove the blob of type t with the given name."""

    @abstractmethod
    def close(self) -> None:
        """Release all resources held by the backend."""

    def __enter__(self) -> Backend:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()