# backvault

Building blocks for a deduplicating backup repository: content IDs, storage
backends that hold named blobs, hashing readers and writers, a local
snapshot cache, and the pipeline step that matches a new directory walk
against the tree of an earlier snapshot.

## Install

    pip install backvault

For the test suite:

    pip install "backvault[test]"
    pytest

## IDs

Every piece of content is named by the SHA-256 hash of its bytes
(`backvault.backend.ids`).

```python
from backvault.backend.ids import parse_id, id_from_data, id_from_json, short_str

blob_id = id_from_data(b"foobar")
print(str(blob_id))           # full hex form
print(blob_id.short())        # first four bytes as hex, "[null]" for the zero ID
same = parse_id(str(blob_id)) # ValueError on bad hex or wrong length
text = blob_id.to_json()      # the hex string, quoted as JSON
assert id_from_json(text) == blob_id
print(short_str(None))        # "[nil]"
```

IDs are frozen dataclasses, hashable and ordered bytewise.
`ID.equal_string(hex)` compares with a hex string and `ID.compare(other)`
returns -1, 0 or 1.

## Backends

`backvault.backend.interface` defines the abstract `Backend`, `Blob`,
`Lister` and `Deleter` classes, the `BlobType` enum (`DATA`, `KEY`, `LOCK`,
`SNAPSHOT`, `INDEX`, `CONFIG`) and `repository_dirs(base)`, the list of
directories a file-based repository must contain.

A backend stores blobs by type and name. A new blob is written first and
becomes visible only once it is finalized; finalizing onto a name that
already exists raises `FileExistsError`.

### Local directory

```python
from backvault.backend.interface import BlobType
from backvault.backend.local import create_backend, open_backend

be = create_backend("/tmp/repo")      # FileExistsError if a config file is there
blob = be.create()
blob.write(b"foobar")
blob.finalize(BlobType.DATA, name)

with be.get(BlobType.DATA, name) as rd:
    data = rd.read()

part = be.get_reader(BlobType.DATA, name, 1, 4)  # offset 1, at most 4 bytes
print(be.test(BlobType.DATA, name))              # True
print(list(be.list(BlobType.DATA)))              # names, sorted
be.remove(BlobType.DATA, name)
be.close()
```

`open_backend` opens a directory that already holds a repository and raises
`FileNotFoundError` if part of its layout is missing. Data blobs are spread
over subdirectories named by the first two characters of their name, and
finalized files are made read-only (except on Windows). `Local.delete()`
closes all open files and removes the whole repository directory. A length
of 0 passed to `get_reader` reads to the end of the blob.

### S3

`backvault.backend.s3.S3Backend(bucket, bucket_name)` stores objects under
keys built by `s3_path(t, name)`, i.e. `backvault/<type>/<name>`, and
`backvault/config` for the config blob. Blobs are buffered in memory and
uploaded on `finalize`, with at most ten uploads running at once. The
package does not include an S3 client: `bucket` is any object that provides
`get_reader`, `put_reader`, `delete` and `list` as described by the `Bucket`
protocol in that module, with `list` returning `ListResponse` pages.

### SFTP

`backvault.backend.sftp` starts a program that speaks SFTP on its standard
input and output, for example an `ssh` command or a local `sftp-server`, and
talks to it with paramiko. The child is started in its own session so that
an interrupt sent to your process does not reach it.

```python
from backvault.backend.sftp import create_sftp, open_sftp

be = create_sftp("/srv/repo", "/usr/lib/openssh/sftp-server")
be.close()
be = open_sftp("/srv/repo", "ssh", "backup@example.com", "-s", "sftp")
```

`SFTP.close()` closes the connection and kills the child process.

### Looking up IDs by prefix

```python
from backvault.backend.generic import find, prefix_length

name = find(be, BlobType.SNAPSHOT, "c3ab8ff1")
shortest = prefix_length(be, BlobType.SNAPSHOT)
```

`find` raises `NoIDPrefixFoundError` or `MultipleIDMatchesError` when the
prefix does not pick out exactly one name. `prefix_length` returns the
smallest length, from 8 upward, at which the sorted names no longer share a
prefix. `hash_data(data)` returns the ID of some bytes and
`limit_read_closer(reader, n)` wraps a reader in a `BlobReader` that stops
after `n` bytes and closes the source when it is used up.

## Hashing streams

`backvault.backend.hashio` holds `HashingReader` and `HashingWriter`, which
pass data through while hashing it (SHA-256 unless another hasher is
given), and `HashAppendReader` and `HashAppendWriter`, which also append
the final digest to the stream. `HashingWriter.size()` counts the bytes
written; writing to a closed `HashAppendWriter` raises `ValueError`.

## Cache

```python
from backvault.cache import Cache

cache = Cache("repository-id")        # or Cache("repository-id", "/some/dir")
with cache.store(BlobType.SNAPSHOT, "", snapshot_id) as f:
    f.write(data)
print(cache.has(BlobType.SNAPSHOT, "", snapshot_id))
cache.clear(be)                       # drop snapshots the backend no longer has
```

Only snapshots can be cached; other types raise `ValueError`. The default
location, from `get_cache_dir()`, is `$BACKVAULT_CACHE` if set, otherwise
`%APPDATA%\backvault` (or a temp directory) on Windows, and
`$XDG_CACHE_HOME/backvault` or `~/.cache/backvault` elsewhere.
`Cache.entries(t)` lists the cached items as `CacheEntry` values.

## Comparing with a previous snapshot

`backvault.archivepipe.compare(old_jobs, new_jobs)` walks both job streams
in step. Both must be in walker order: depth first, entries sorted, each
directory after its entries. It yields every new job; when a regular file
has a matching old job whose node says it is not newer, it yields a copy of
the new job with the old node attached as `node`, so its content need not
be read again. `is_regular_file(info)` tests an `os.stat_result`.

## What this package does not do

There is no command-line tool. The package does not chunk, encrypt or pack
file content, keeps no repository index or keys, and does not build,
save or restore snapshots; it provides the storage, ID, hashing, cache and
comparison pieces such a program would be built on. It also ships no S3
client of its own.