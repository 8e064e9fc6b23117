"""Readers and writers that hash the data passing through them."""

from __future__ import annotations

import hashlib
from typing import Any, BinaryIO


def _default_hasher(hasher: Any) -> Any:
    return hasher if hasher is not None else hashlib.sha256()


class HashAppendReader:
    """Yields the data of a reader followed by its digest."""

    def __init__(self, reader: BinaryIO, hasher: Any = None) -> None:
        self._reader = reader
        self._hasher = _default_hasher(hasher)
        self._sum = b""
        self._closed = False

    def read(self, size: int | None = -1) -> bytes:
        """Read up to size bytes; the digest follows once the source is exhausted."""
        if size == 0:
            return b""
        read_all = size is None or size < 0
        data = b""
        if not self._closed:
            data = self._reader.read(-1 if read_all else size)
            self._hasher.update(data)
            if read_all or not data:
                self._closed = True
                self._sum = self._hasher.digest()
        if self._closed:
            room = len(self._sum) if read_all else size - len(data)
            if room > 0:
                data += self._sum[:room]
                self._sum = self._sum[room:]
        return data


class HashingReader:
    """Passes data through unchanged while hashing it."""

    def __init__(self, reader: BinaryIO, hasher: Any = None) -> None:
        self._reader = reader
        self._hasher = _default_hasher(hasher)

    def read(self, size: int | None = -1) -> bytes:
        data = self._reader.read(size)
        self._hasher.update(data)
        return data

    def sum(self) -> bytes:
        """Return the digest of everything read so far."""
        return self._hasher.digest()


class HashAppendWriter:
    """Writes data through and appends its digest on close."""

    def __init__(self, writer: BinaryIO, hasher: Any = None) -> None:
        self._writer = writer
        self._hasher = _default_hasher(hasher)
        self._closed = False

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write called on closed HashAppendWriter")
        self._writer.write(data)
        self._hasher.update(data)
        return len(data)

    def close(self) -> None:
        """Write the digest; later calls do nothing."""
        if not self._closed:
            self._closed = True
            self._writer.write(self._hasher.digest())

    def __enter__(self) -> HashAppendWriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class HashingWriter:
    """Writes data through while hashing it and counting bytes."""

    def __init__(self, writer: BinaryIO, hasher: Any = None) -> None:
        self._writer = writer
        self._hasher = _default_hasher(hasher)
        self._size = 0

    def write(self, data: bytes) -> int:
        written = self._writer.write(data)
        n = len(data) if written is None else written
        self._hasher.update(data[:n])
        self._size += n
        return n

    def sum(self) -> bytes:
        """Return the digest of everything written so far."""
        return self._hasher.digest()

    def size(self) -> int:
        """Return the number of bytes written so far."""
        return self._size