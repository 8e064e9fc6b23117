import io
import os

import pytest

from backvault.backend.ids import parse_id
from backvault.backend.interface import BlobType
from backvault.backend.local import (
    create_backend,
    dirname,
    filename,
    open_backend,
)

TEST_STRINGS = [
    ("c3ab8ff13720e8ad9047dd39466b3c8974e592c2fa383d4a3960714caef0c4f2", "foobar"),
    (
        "248d6a61d20638b8e5c026930c3e6039a33ce45964ff2167f6ecedd419db06c1",
        "abcdbcdecdefdefgefghfghighijhijkijkljklmklmnlmnomnopnopq",
    ),
    ("cc5d46bdb4991c6eae3eb739c9c8a7a46fe9654fab79c47b4fe48383b5b25e1c", "foo/bar"),
    ("4e54d2c721cbdb730f01b10b62dec622962b36966ec685880effa63d71c808f2", "foo/../../baz"),
]

TYPES = [BlobType.DATA, BlobType.KEY, BlobType.LOCK, BlobType.SNAPSHOT, BlobType.INDEX]


@pytest.fixture
def backend(tmp_path):
    b = create_backend(str(tmp_path / "repo"))
    yield b
    b.delete()


def _store(backend, t, name, data):
    blob = backend.create()
    blob.write(data)
    blob.finalize(t, name)


def test_open_invalid_repository_fails(tmp_path):
    with pytest.raises(FileNotFoundError):
        open_backend(str(tmp_path / "invalid-test"))


def test_create_twice_fails(backend):
    blob = backend.create()
    blob.write(b"config\n")
    blob.finalize(BlobType.CONFIG, "")
    with pytest.raises(FileExistsError):
        create_backend(backend.location())


def test_open_after_create(backend):
    reopened = open_backend(backend.location())
    assert reopened.location() == backend.location()


@pytest.mark.parametrize("t", TYPES)
def test_missing_blobs(backend, t):
    for hex_id, _ in TEST_STRINGS:
        name = str(parse_id(hex_id))
        assert backend.test(t, name) is False
        with pytest.raises(FileNotFoundError):
            backend.get(t, name)
        with pytest.raises(FileNotFoundError):
            backend.get_reader(t, name, 0, 1)
        assert backend.test(t, name) is False


@pytest.mark.parametrize("t", TYPES)
def test_backend_roundtrip(backend, t):
    for hex_id, text in TEST_STRINGS:
        data = text.encode()
        _store(backend, t, hex_id, data)

        rd = backend.get(t, hex_id)

        reader = backend.get_reader(t, hex_id, 0, len(data))
        assert reader.read(len(data)) == data

        reader_off = backend.get_reader(t, hex_id, 1, len(data) - 2)
        assert reader_off.read(len(data) - 2) == data[1:-1]

        assert rd.read() == data

    # adding the first blob again must fail
    hex_id, text = TEST_STRINGS[0]
    blob = backend.create()
    blob.write(text.encode())
    with pytest.raises(FileExistsError):
        blob.finalize(t, hex_id)

    # remove and recreate
    backend.remove(t, hex_id)
    blob = backend.create()
    blob.write(text.encode())
    blob.finalize(t, hex_id)

    expected = sorted(parse_id(h) for h, _ in TEST_STRINGS)
    assert list(backend.list(t)) == [str(i) for i in expected]

    for h, _ in TEST_STRINGS:
        name = str(parse_id(h))
        assert backend.test(t, name) is True
        backend.remove(t, name)
        assert backend.test(t, name) is False
    assert list(backend.list(t)) == []


def test_get_reader_zero_length_reads_to_end(backend):
    hex_id, text = TEST_STRINGS[1]
    _store(backend, BlobType.SNAPSHOT, hex_id, text.encode())
    reader = backend.get_reader(BlobType.SNAPSHOT, hex_id, 3, 0)
    assert reader.read() == text.encode()[3:]


def test_blob_size_and_errors(backend):
    blob = backend.create()
    blob.write(b"abc")
    blob.write(b"defg")
    assert blob.size() == 7
    blob.finalize(BlobType.KEY, TEST_STRINGS[0][0])
    with pytest.raises(ValueError):
        blob.write(b"x")
    with pytest.raises(ValueError):
        blob.finalize(BlobType.KEY, TEST_STRINGS[1][0])


def test_data_blob_stored_in_prefix_dir(backend):
    hex_id = TEST_STRINGS[0][0]
    _store(backend, BlobType.DATA, hex_id, b"foobar")
    expected = os.path.join(backend.location(), "data", hex_id[:2], hex_id)
    assert filename(backend.location(), BlobType.DATA, hex_id) == expected
    assert os.path.isfile(expected)
    assert backend.test(BlobType.DATA, hex_id) is True
    with backend.get(BlobType.DATA, hex_id) as rd:
        assert rd.read() == b"foobar"


def test_remove_missing_raises(backend):
    with pytest.raises(FileNotFoundError):
        backend.remove(BlobType.INDEX, TEST_STRINGS[0][0])


def test_close_closes_open_readers(backend):
    hex_id = TEST_STRINGS[0][0]
    _store(backend, BlobType.LOCK, hex_id, b"foobar")
    rd = backend.get(BlobType.LOCK, hex_id)
    backend.close()
    assert rd.closed


def test_remove_closes_open_readers(backend):
    hex_id = TEST_STRINGS[2][0]
    _store(backend, BlobType.INDEX, hex_id, b"foo/bar")
    rd = backend.get(BlobType.INDEX, hex_id)
    backend.remove(BlobType.INDEX, hex_id)
    assert rd.closed


def test_filename_layout():
    base = os.path.join("base")
    assert filename(base, BlobType.CONFIG, "") == os.path.join(base, "config")
    assert filename(base, BlobType.DATA, "abcdef") == os.path.join(base, "data", "ab", "abcdef")
    assert filename(base, BlobType.SNAPSHOT, "x1") == os.path.join(base, "snapshots", "x1")
    assert filename(base, "lock", "y") == os.path.join(base, "locks", "y")


def test_dirname_layout():
    base = os.path.join("base")
    assert dirname(base, BlobType.DATA, "") == os.path.join(base, "data")
    assert dirname(base, BlobType.DATA, "ab") == os.path.join(base, "data")
    assert dirname(base, BlobType.KEY, "k") == os.path.join(base, "keys")
    assert dirname(base, BlobType.INDEX, "i") == os.path.join(base, "index")


def test_stream_copy_into_blob(backend):
    hex_id, text = TEST_STRINGS[3]
    blob = backend.create()
    source = io.BytesIO(text.encode())
    for chunk in iter(lambda: source.read(4), b""):
        blob.write(chunk)
    blob.finalize(BlobType.SNAPSHOT, hex_id)
    with backend.get(BlobType.SNAPSHOT, hex_id) as rd:
        assert rd.read() == text.encode()