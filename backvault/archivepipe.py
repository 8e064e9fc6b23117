"""Merging of the previous snapshot's tree walk with a fresh filesystem walk.

Both streams must yield jobs in the same order the walkers produce them:
depth-first, with a directory's entries sorted and the directory itself
after its entries. Old jobs carry ``path`` and ``node``. New jobs carry
``path``, ``fullpath`` and ``info``, where ``info`` is an ``os.stat_result``
or None. A new job that is matched with an unchanged old file gets a
``node`` attribute holding the old node.
"""

from __future__ import annotations

import os
import stat
from copy import copy as _shallow_copy
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

_END = object()


def is_regular_file(info: os.stat_result | None) -> bool:
    """Return True if info describes a regular file."""
    if info is None:
        return False
    return stat.S_ISREG(info.st_mode)


def _parent(path: str) -> str:
    return os.path.dirname(path) or "."


@dataclass
class ArchiveJob:
    """A new job, optionally paired with the old job for the same path."""

    new: Any
    old: Any = None

    @property
    def has_old(self) -> bool:
        return self.old is not None

    def copy(self) -> Any:
        """Return the job to process: the new job, annotated with old data if usable."""
        if not self.has_old:
            return self.new

        if not is_regular_file(self.new.info):
            return self.new

        old_node = self.old.node
        if old_node is None:
            return self.new

        if old_node.is_newer(self.new.fullpath, self.new.info):
            return self.new

        annotated = _shallow_copy(self.new)
        annotated.node = old_node
        return annotated


def compare(old_jobs: Iterable[Any], new_jobs: Iterable[Any]) -> Iterator[Any]:
    """Yield the new jobs, each annotated with old data where paths match."""
    old_iter = iter(old_jobs)
    new_iter = iter(new_jobs)

    load_old = load_new = True
    old_job: Any = None
    new_job: Any = None

    while True:
        if load_old:
            old_job = next(old_iter, _END)
            if old_job is _END:
                # No more old entries: everything left in the new walk is new.
                if not load_new:
                    yield ArchiveJob(new=new_job).copy()
                yield from new_iter
                return
            load_old = False

        if load_new:
            new_job = next(new_iter, _END)
            if new_job is _END:
                return
            load_new = False

        file1 = old_job.path
        file2 = new_job.path
        dir1 = _parent(file1)
        dir2 = _parent(file2)

        if file1 == file2:
            yield ArchiveJob(new=new_job, old=old_job).copy()
            load_old = load_new = True
        elif dir1 < dir2:
            # file was added
            load_new = True
            yield ArchiveJob(new=new_job).copy()
        elif dir1 == dir2:
            if file1 < file2:
                # file was removed
                load_old = True
            else:
                # file was added
                load_new = True
                yield ArchiveJob(new=new_job).copy()
        else:
            # file was removed
            load_old = True