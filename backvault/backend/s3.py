"""Repository storage in an S3 bucket."""

from __future__ import annotations

import io
import threading
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Protocol

from .generic import BlobReader, limit_read_closer
from .interface import Backend, Blob, BlobType, Deleter

MAX_KEYS_IN_LIST = 1000
CONN_LIMIT = 10
BACKEND_PREFIX = "backvault"

_CONTENT_TYPE = "binary/octet-stream"
_ACL = "private"


def s3_path(t: BlobType | str, name: str) -> str:
    """Return the object key for the blob of type t with the given name."""
    t = BlobType(t)
    if t is BlobType.CONFIG:
        return f"{BACKEND_PREFIX}/{t.value}"
    return f"{BACKEND_PREFIX}/{t.value}/{name}"


@dataclass
class ListResponse:
    """One page of a bucket listing."""

    keys: list[str] = field(default_factory=list)
    is_truncated: bool = False
    next_marker: str = ""


class Bucket(Protocol):
    """The operations an S3 bucket client must provide."""

    def get_reader(self, path: str) -> BinaryIO:
        """Open the object at path; raise if it does not exist."""

    def put_reader(
        self, path: str, reader: BinaryIO, length: int, content_type: str, acl: str
    ) -> None:
        """Store length bytes from reader at path."""

    def delete(self, path: str) -> None:
        """Remove the object at path."""

    def list(
        self, prefix: str, delimiter: str, marker: str, max_keys: int
    ) -> ListResponse:
        """List keys below prefix after marker, at most max_keys of them."""


class S3Blob(Blob):
    """A blob buffered in memory and uploaded on finalize."""

    def __init__(self, backend: S3Backend) -> None:
        self._backend = backend
        self._buffer = io.BytesIO()
        self._final = False

    def write(self, data: bytes) -> int:
        if self._final:
            raise ValueError("blob already closed")
        return self._buffer.write(data)

    def size(self) -> int:
        return len(self._buffer.getbuffer())

    def close(self) -> None:
        """Discard the buffered data."""
        self._final = True
        self._buffer = io.BytesIO()

    def finalize(self, t: BlobType | str, name: str) -> None:
        if self._final:
            raise ValueError("already finalized")
        self._final = True

        path = s3_path(t, name)
        if self._backend._exists(path):
            raise FileExistsError("key already exists!")

        data = self._buffer.getvalue()
        try:
            with self._backend._connections:
                self._backend._bucket.put_reader(
                    path, io.BytesIO(data), len(data), _CONTENT_TYPE, _ACL
                )
        finally:
            self._buffer = io.BytesIO()


class S3Backend(Backend, Deleter):
    """A backend storing a repository in an S3 bucket."""

    def __init__(self, bucket: Bucket, bucket_name: str) -> None:
        self._bucket = bucket
        self._name = bucket_name
        self._connections = threading.BoundedSemaphore(CONN_LIMIT)

    def _exists(self, path: str) -> bool:
        try:
            reader = self._bucket.get_reader(path)
        except Exception:
            # Any failure to fetch the object counts as "not there".
            return False
        close = getattr(reader, "close", None)
        if close is not None:
            close()
        return True

    def location(self) -> str:
        return self._name

    def create(self) -> S3Blob:
        return S3Blob(self)

    def get(self, t: BlobType | str, name: str) -> BinaryIO:
        return self._bucket.get_reader(s3_path(t, name))

    def get_reader(
        self, t: BlobType | str, name: str, offset: int, length: int
    ) -> BinaryIO | BlobReader:
        reader = self.get(t, name)
        skipped = 0
        while skipped < offset:
            chunk = reader.read(min(offset - skipped, 1 << 16))
            if not chunk:
                break
            skipped += len(chunk)
        if skipped != offset:
            reader.close()
            raise EOFError(
                f"less bytes read than expected, read: {skipped}, expected: {offset}"
            )
        if length == 0:
            return reader
        return limit_read_closer(reader, length)

    def test(self, t: BlobType | str, name: str) -> bool:
        return self._exists(s3_path(t, name))

    def remove(self, t: BlobType | str, name: str) -> None:
        self._bucket.delete(s3_path(t, name))

    def list(self, t: BlobType | str) -> Iterator[str]:
        prefix = s3_path(t, "")
        names: list[str] = []
        marker = ""
        try:
            while True:
                response = self._bucket.list(prefix, "/", marker, MAX_KEYS_IN_LIST)
                names.extend(key[len(prefix):] if key.startswith(prefix) else key
                             for key in response.keys)
                if not response.is_truncated:
                    break
                marker = response.next_marker
        except Exception:
            # A failed listing yields nothing, like an empty bucket.
            return iter(())
        return iter([name for name in names if name])

    def delete(self) -> None:
        """Remove every object of this repository from the bucket."""
        for t in (
            BlobType.DATA,
            BlobType.KEY,
            BlobType.LOCK,
            BlobType.SNAPSHOT,
            BlobType.INDEX,
        ):
            for name in list(self.list(t)):
                self.remove(t, name)
        if self.test(BlobType.CONFIG, ""):
            self.remove(BlobType.CONFIG, "")

    def close(self) -> None:
        """Nothing to release."""