"""Helpers shared by all backends: hashing, prefix search, limited readers."""

from __future__ import annotations

import hashlib
from typing import BinaryIO

from .ids import ID, ID_SIZE
from .interface import BlobType, Lister

MIN_PREFIX_LENGTH = 8


class NoIDPrefixFoundError(LookupError):
    """No stored name starts with the requested prefix."""

    def __init__(self, message: str = "no ID found") -> None:
        super().__init__(message)


class MultipleIDMatchesError(LookupError):
    """More than one stored name starts with the requested prefix."""

    def __init__(self, message: str = "multiple IDs with prefix found") -> None:
        super().__init__(message)


def hash_data(data: bytes) -> ID:
    """Return the ID for data."""
    return ID(hashlib.sha256(data).digest())


def find(lister: Lister, t: BlobType, prefix: str) -> str:
    """Return the single name of type t that starts with prefix."""
    match = ""
    for name in lister.list(t):
        if name.startswith(prefix):
            if match:
                raise MultipleIDMatchesError()
            match = name
    if not match:
        raise NoIDPrefixFoundError()
    return match


def prefix_length(lister: Lister, t: BlobType) -> int:
    """Return the prefix length needed so that all names of type t are unique."""
    names = list(lister.list(t))
    for length in range(MIN_PREFIX_LENGTH, ID_SIZE):
        prefixes = [name[:length] for name in names]
        if all(a != b for a, b in zip(prefixes, prefixes[1:])):
            return length
    return ID_SIZE


class BlobReader:
    """Reads at most a given number of bytes, closing the source at the end."""

    def __init__(self, reader: BinaryIO, limit: int) -> None:
        self._reader = reader
        self._remaining = limit
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, size: int | None = -1) -> bytes:
        """Read up to size bytes (all remaining if negative)."""
        if self._closed:
            return b""
        read_all = size is None or size < 0
        if size == 0:
            return b""
        if self._remaining <= 0:
            data = b""
        else:
            want = self._remaining if read_all else min(size, self._remaining)
            data = self._reader.read(want)
            self._remaining -= len(data)
        if read_all or not data:
            self.close()
        return data

    def close(self) -> None:
        """Close the underlying reader once."""
        if not self._closed:
            self._closed = True
            self._reader.close()

    def __enter__(self) -> BlobReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def limit_read_closer(reader: BinaryIO, n: int) -> BlobReader:
    """Wrap reader so that at most n bytes are read from it."""
    return BlobReader(reader, n)