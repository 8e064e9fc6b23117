"""Repository storage in a directory on a remote server via SFTP."""

from __future__ import annotations

import os
import posixpath
import secrets
import stat
import subprocess
from typing import Any, BinaryIO, Iterator

import paramiko

from .generic import BlobReader, limit_read_closer
from .interface import MODES, PATHS, Backend, Blob, BlobType

TEMPFILE_RANDOM_SUFFIX_LENGTH = 10

_TYPE_DIRS = {
    BlobType.DATA: PATHS.data,
    BlobType.SNAPSHOT: PATHS.snapshots,
    BlobType.INDEX: PATHS.index,
    BlobType.LOCK: PATHS.locks,
    BlobType.KEY: PATHS.keys,
}


def _remote_dirs(base: str) -> list[str]:
    return [
        base,
        posixpath.join(base, PATHS.data),
        posixpath.join(base, PATHS.snapshots),
        posixpath.join(base, PATHS.index),
        posixpath.join(base, PATHS.locks),
        posixpath.join(base, PATHS.keys),
        posixpath.join(base, PATHS.temp),
    ]


class _PipeChannel:
    """Presents a child process's stdin/stdout as a channel for the SFTP client."""

    def __init__(self, process: subprocess.Popen, name: str) -> None:
        self._process = process
        self._name = name

    def send(self, data: bytes) -> int:
        return os.write(self._process.stdin.fileno(), data)

    def recv(self, size: int) -> bytes:
        return os.read(self._process.stdout.fileno(), size)

    def close(self) -> None:
        for pipe in (self._process.stdin, self._process.stdout):
            try:
                pipe.close()
            except OSError:
                pass

    def get_name(self) -> str:
        return self._name


def _start_client(program: str, *args: str) -> tuple[paramiko.SFTPClient, subprocess.Popen]:
    # The child runs in its own session so that signals such as SIGINT sent to
    # this process do not reach it.
    process = subprocess.Popen(
        [program, *args],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        bufsize=0,
        start_new_session=os.name != "nt",
    )
    channel = _PipeChannel(process, program)
    try:
        client = paramiko.SFTPClient(channel)
    except BaseException:
        channel.close()
        process.kill()
        process.wait()
        raise
    return client, process


class SFTPBlob(Blob):
    """A blob written to a remote temporary file and renamed on finalize."""

    def __init__(self, file: Any, tempname: str, backend: SFTP) -> None:
        self._file = file
        self._tempname = tempname
        self._backend = backend
        self._size = 0
        self._closed = False

    def write(self, data: bytes) -> int:
        written = self._file.write(data)
        n = len(data) if written is None else written
        self._size += n
        return n

    def size(self) -> int:
        return self._size

    def finalize(self, t: BlobType | str, name: str) -> None:
        if self._closed:
            raise ValueError("finalize called on closed file")
        self._closed = True

        try:
            self._file.close()
        except OSError as exc:
            raise OSError(f"sftp: file.close: {exc}") from exc

        try:
            self._backend._rename_file(self._tempname, t, name)
        except OSError as exc:
            raise OSError(f"sftp: rename_file: {exc}") from exc


class SFTP(Backend):
    """A backend storing a repository on a server reached over SFTP."""

    def __init__(self, client: Any, process: Any, path: str = "") -> None:
        self._client = client
        self._process = process
        self._path = path

    def location(self) -> str:
        return self._path

    def _exists(self, path: str) -> bool:
        try:
            self._client.lstat(path)
        except OSError:
            return False
        return True

    def _is_dir(self, path: str) -> bool | None:
        try:
            attrs = self._client.lstat(path)
        except OSError:
            return None
        return stat.S_ISDIR(attrs.st_mode or 0)

    def _tempfile(self) -> tuple[str, Any]:
        suffix = secrets.token_bytes(TEMPFILE_RANDOM_SUFFIX_LENGTH).hex()
        name = posixpath.join(self._path, PATHS.temp, "temp-" + suffix)
        try:
            file = self._client.open(name, "wb")
        except OSError as exc:
            raise OSError(f"creating tempfile {name!r} failed: {exc}") from exc
        return name, file

    def _mkdir_all(self, directory: str, mode: int) -> None:
        is_dir = self._is_dir(directory)
        if is_dir is not None:
            if is_dir:
                return
            raise NotADirectoryError(
                f"mkdir_all({directory}): entry exists but is not a directory"
            )

        parent = posixpath.dirname(directory) or "."
        parent_error: OSError | None = None
        mkdir_error: OSError | None = None
        if parent != directory:
            try:
                self._mkdir_all(parent, MODES.dir)
            except OSError as exc:
                parent_error = exc
        try:
            self._client.mkdir(directory)
        except OSError as exc:
            mkdir_error = exc

        is_dir = self._is_dir(directory)
        if is_dir is None:
            raise OSError(
                f"mkdir_all({directory}): unable to create directories: "
                f"{parent_error}, {mkdir_error}"
            )
        if not is_dir:
            raise NotADirectoryError(
                f"mkdir_all({directory}): entry exists but is not a directory"
            )
        self._client.chmod(directory, mode)

    def _dirname(self, t: BlobType | str, name: str) -> str:
        t = BlobType(t)
        sub = _TYPE_DIRS.get(t, "")
        if t is BlobType.DATA and len(name) > 2:
            sub = posixpath.join(sub, name[:2])
        return posixpath.join(self._path, sub) if sub else self._path

    def _filename(self, t: BlobType | str, name: str) -> str:
        t = BlobType(t)
        if t is BlobType.CONFIG:
            return posixpath.join(self._path, PATHS.config)
        return posixpath.join(self._dirname(t, name), name)

    def _rename_file(self, oldname: str, t: BlobType | str, name: str) -> None:
        target = self._filename(t, name)
        if BlobType(t) is BlobType.DATA:
            self._mkdir_all(posixpath.dirname(target), MODES.dir)
        if self._exists(target):
            raise FileExistsError(f"file {target} already exists")
        self._client.rename(oldname, target)
        mode = self._client.lstat(target).st_mode or 0
        self._client.chmod(target, stat.S_IMODE(mode) & ~0o222)

    def create(self) -> SFTPBlob:
        name, file = self._tempfile()
        return SFTPBlob(file, name, self)

    def get(self, t: BlobType | str, name: str) -> BinaryIO:
        return self._client.open(self._filename(t, name), "rb")

    def get_reader(
        self, t: BlobType | str, name: str, offset: int, length: int
    ) -> BinaryIO | BlobReader:
        file = self._client.open(self._filename(t, name), "rb")
        file.seek(offset)
        if length == 0:
            return file
        return limit_read_closer(file, length)

    def test(self, t: BlobType | str, name: str) -> bool:
        return self._exists(self._filename(t, name))

    def remove(self, t: BlobType | str, name: str) -> None:
        self._client.remove(self._filename(t, name))

    def _sorted_names(self, directory: str) -> list[str] | None:
        try:
            return sorted(self._client.listdir(directory))
        except OSError:
            return None

    def list(self, t: BlobType | str) -> Iterator[str]:
        t = BlobType(t)
        base = self._dirname(t, "")
        if t is BlobType.DATA:
            for sub in self._sorted_names(base) or []:
                yield from self._sorted_names(posixpath.join(base, sub)) or []
        else:
            yield from self._sorted_names(base) or []

    def _shutdown(self) -> None:
        self._client.close()
        self._process.wait()

    def close(self) -> None:
        """Close the connection and terminate the server process."""
        self._client.close()
        self._process.kill()
        self._process.wait()


def open_sftp(directory: str, program: str, *args: str) -> SFTP:
    """Start program, speak SFTP over its stdio and open the repository at directory."""
    client, process = _start_client(program, *args)
    backend = SFTP(client, process, directory)
    for path in _remote_dirs(directory):
        if not backend._exists(path):
            backend.close()
            raise FileNotFoundError(f"{path} does not exist")
    return backend


def create_sftp(directory: str, program: str, *args: str) -> SFTP:
    """Create the layout of a new repository at directory, then open it."""
    client, process = _start_client(program, *args)
    backend = SFTP(client, process, directory)
    if backend._exists(posixpath.join(directory, PATHS.config)):
        backend.close()
        raise FileExistsError("config file already exists")
    try:
        for path in _remote_dirs(directory):
            backend._mkdir_all(path, MODES.dir)
    except BaseException:
        backend.close()
        raise
    backend._shutdown()
    return open_sftp(directory, program, *args)