"""A local cache for items loaded from a repository."""

from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass
from typing import BinaryIO

from .backend.ids import ID, parse_id
from .backend.interface import Backend, BlobType

CACHE_ENV = "BACKVAULT_CACHE"
_APP_DIR = "backvault"


@dataclass(frozen=True)
class CacheEntry:
    """An item in the cache: an ID with an optional subtype."""

    id: ID
    subtype: str = ""

    def __str__(self) -> str:
        if self.subtype:
            return f"{self.id.short()}.{self.subtype}"
        return self.id.short()


def _ensure_dir(path: str) -> str:
    if not os.path.exists(path):
        os.makedirs(path, 0o700, exist_ok=True)
    if not os.path.isdir(path):
        raise NotADirectoryError(f"cache dir {path} is not a directory")
    return path


def _windows_cache_dir() -> str:
    base = os.environ.get("APPDATA") or tempfile.gettempdir()
    return _ensure_dir(os.path.join(base, _APP_DIR))


def _xdg_cache_dir() -> str:
    xdg_cache = os.environ.get("XDG_CACHE_HOME", "")
    home = os.environ.get("HOME", "")
    if not xdg_cache and not home:
        raise RuntimeError(
            "unable to locate cache directory (XDG_CACHE_HOME and HOME unset)"
        )
    if xdg_cache:
        path = os.path.join(xdg_cache, _APP_DIR)
    else:
        path = os.path.join(home, ".cache", _APP_DIR)
    return _ensure_dir(path)


def get_cache_dir() -> str:
    """Return the default cache directory, creating it if necessary."""
    override = os.environ.get(CACHE_ENV, "")
    if override:
        return override
    if sys.platform == "win32":
        return _windows_cache_dir()
    return _xdg_cache_dir()


def _check_type(t: BlobType | str) -> BlobType:
    t = BlobType(t)
    if t is not BlobType.SNAPSHOT:
        raise ValueError(f"cache not supported for type {t}")
    return t


class Cache:
    """Caches repository items below a per-repository directory."""

    def __init__(self, repository_id: str, cache_dir: str | None = None) -> None:
        if not cache_dir:
            cache_dir = get_cache_dir()
        self.base = os.path.join(cache_dir, repository_id)

    def _filename(self, t: BlobType | str, subtype: str, id: ID) -> str:
        _check_type(t)
        name = str(id)
        if subtype:
            name += "." + subtype
        return os.path.join(self.base, "snapshots", name)

    def has(self, t: BlobType | str, subtype: str, id: ID) -> bool:
        """Return whether the cache holds the item."""
        path = self._filename(t, subtype, id)
        try:
            with open(path, "rb"):
                return True
        except FileNotFoundError:
            return False

    def store(self, t: BlobType | str, subtype: str, id: ID) -> BinaryIO:
        """Return a writable file for a new cache item; the caller closes it."""
        path = self._filename(t, subtype, id)
        os.makedirs(os.path.dirname(path), 0o700, exist_ok=True)
        return open(path, "wb")

    def load(self, t: BlobType | str, subtype: str, id: ID) -> BinaryIO:
        """Open a cached item for reading; the caller closes it."""
        return open(self._filename(t, subtype, id), "rb")

    def _purge(self, t: BlobType | str, subtype: str, id: ID) -> None:
        try:
            os.remove(self._filename(t, subtype, id))
        except FileNotFoundError:
            pass

    def clear(self, backend: Backend) -> None:
        """Remove cached snapshots that no longer exist in the backend."""
        for entry in self.entries(BlobType.SNAPSHOT):
            try:
                present = backend.test(BlobType.SNAPSHOT, str(entry.id))
            except OSError:
                present = False
            if not present:
                self._purge(BlobType.SNAPSHOT, entry.subtype, entry.id)

    def entries(self, t: BlobType | str) -> list[CacheEntry]:
        """Return the cached items of type t; unparsable names are ignored."""
        _check_type(t)
        directory = os.path.join(self.base, "snapshots")
        try:
            names = sorted(os.listdir(directory))
        except FileNotFoundError:
            return []

        result = []
        for name in names:
            id_part, _, subtype = name.partition(".")
            try:
                id = parse_id(id_part)
            except ValueError:
                continue
            result.append(CacheEntry(id, subtype))
        return result