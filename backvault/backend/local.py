"""Repository storage in a directory on the local filesystem."""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import threading
from typing import BinaryIO, Iterator

from .generic import BlobReader, limit_read_closer
from .interface import MODES, PATHS, Backend, Blob, BlobType, Deleter, repository_dirs

_TYPE_DIRS = {
    BlobType.DATA: PATHS.data,
    BlobType.SNAPSHOT: PATHS.snapshots,
    BlobType.INDEX: PATHS.index,
    BlobType.LOCK: PATHS.locks,
    BlobType.KEY: PATHS.keys,
}


def dirname(base: str, t: BlobType | str, name: str) -> str:
    """Return the directory holding blobs of type t with the given name."""
    t = BlobType(t)
    sub = _TYPE_DIRS.get(t, "")
    if t is BlobType.DATA and len(name) > 2:
        sub = os.path.join(sub, name[:2])
    return os.path.join(base, sub) if sub else base


def filename(base: str, t: BlobType | str, name: str) -> str:
    """Return the path of the blob of type t with the given name."""
    t = BlobType(t)
    if t is BlobType.CONFIG:
        return os.path.join(base, PATHS.config)
    return os.path.join(dirname(base, t, name), name)


def _set_read_only(path: str) -> None:
    # Read-only files cannot be deleted on Windows, so the mode is left alone there.
    if sys.platform == "win32":
        return
    mode = os.stat(path).st_mode
    os.chmod(path, mode & ~0o222)


def _scan_names(path: str) -> list[os.DirEntry]:
    try:
        with os.scandir(path) as entries:
            return list(entries)
    except (FileNotFoundError, NotADirectoryError):
        return []


class LocalBlob(Blob):
    """A blob written to a temporary file and moved into place on finalize."""

    def __init__(self, file: BinaryIO, temp_path: str, basedir: str) -> None:
        self._file = file
        self._temp_path = temp_path
        self._basedir = basedir
        self._size = 0
        self._final = False

    def write(self, data: bytes) -> int:
        if self._final:
            raise ValueError("blob already closed")
        written = self._file.write(data)
        n = len(data) if written is None else written
        self._size += n
        return n

    def size(self) -> int:
        return self._size

    def finalize(self, t: BlobType | str, name: str) -> None:
        if self._final:
            raise ValueError("already finalized")
        self._final = True

        try:
            self._file.close()
        except OSError as exc:
            raise OSError(f"local: file.close: {exc}") from exc

        target = filename(self._basedir, t, name)

        if BlobType(t) is BlobType.DATA:
            try:
                os.makedirs(os.path.dirname(target), MODES.dir, exist_ok=True)
            except OSError:
                pass

        if os.path.exists(target):
            raise FileExistsError(f"file {target} already exists")

        os.rename(self._temp_path, target)
        _set_read_only(target)


class Local(Backend, Deleter):
    """A backend storing a repository in a local directory."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._open: dict[str, list[BinaryIO]] = {}

    def _track(self, key: str, file: BinaryIO) -> None:
        with self._lock:
            self._open.setdefault(key, []).append(file)

    def location(self) -> str:
        return self._path

    def create(self) -> LocalBlob:
        fd, temp_path = tempfile.mkstemp(
            prefix="temp-", dir=os.path.join(self._path, PATHS.temp)
        )
        file = os.fdopen(fd, "wb")
        self._track("blobs", file)
        return LocalBlob(file, temp_path, self._path)

    def get(self, t: BlobType | str, name: str) -> BinaryIO:
        path = filename(self._path, t, name)
        file = open(path, "rb")
        self._track(path, file)
        return file

    def get_reader(
        self, t: BlobType | str, name: str, offset: int, length: int
    ) -> BinaryIO | BlobReader:
        path = filename(self._path, t, name)
        file = open(path, "rb")
        self._track(path, file)
        file.seek(offset)
        if length == 0:
            return file
        return limit_read_closer(file, length)

    def test(self, t: BlobType | str, name: str) -> bool:
        try:
            os.stat(filename(self._path, t, name))
        except FileNotFoundError:
            return False
        return True

    def remove(self, t: BlobType | str, name: str) -> None:
        path = filename(self._path, t, name)
        with self._lock:
            for file in self._open.pop(path, []):
                file.close()
        os.chmod(path, 0o666)
        os.remove(path)

    def list(self, t: BlobType | str) -> Iterator[str]:
        t = BlobType(t)
        base = dirname(self._path, t, "")
        if t is BlobType.DATA:
            names = [
                inner.name
                for outer in _scan_names(base)
                if outer.is_dir()
                for inner in _scan_names(outer.path)
            ]
        else:
            names = [entry.name for entry in _scan_names(base)]
        return iter(sorted(name for name in names if name))

    def delete(self) -> None:
        self.close()
        shutil.rmtree(self._path)

    def close(self) -> None:
        with self._lock:
            for files in self._open.values():
                for file in files:
                    try:
                        file.close()
                    except OSError:
                        pass
            self._open = {}


def open_backend(directory: str) -> Local:
    """Open the local backend at directory; all repository dirs must exist."""
    for path in repository_dirs(directory):
        if not os.path.exists(path):
            raise FileNotFoundError(f"{path} does not exist")
    return Local(directory)


def create_backend(directory: str) -> Local:
    """Create the directory layout of a new local backend and open it."""
    if os.path.lexists(os.path.join(directory, PATHS.config)):
        raise FileExistsError("config file already exists")
    for path in repository_dirs(directory):
        os.makedirs(path, MODES.dir, exist_ok=True)
    return open_backend(directory)