import hashlib

import pytest

from backvault.backend.ids import (
    ID,
    ID_SIZE,
    id_from_data,
    id_from_json,
    parse_id,
    short_str,
)

TEST_STRINGS = [
    ("c3ab8ff13720e8ad9047dd39466b3c8974e592c2fa383d4a3960714caef0c4f2", b"foobar"),
    (
        "248d6a61d20638b8e5c026930c3e6039a33ce45964ff2167f6ecedd419db06c1",
        b"abcdbcdecdefdefgefghfghighijhijkijkljklmklmnlmnomnopnopq",
    ),
    ("cc5d46bdb4991c6eae3eb739c9c8a7a46fe9654fab79c47b4fe48383b5b25e1c", b"foo/bar"),
    ("4e54d2c721cbdb730f01b10b62dec622962b36966ec685880effa63d71c808f2", b"foo/../../baz"),
]


@pytest.mark.parametrize("hex_id,data", TEST_STRINGS)
def test_id_parse_equal_and_json(hex_id, data):
    first = parse_id(hex_id)
    second = parse_id(hex_id)
    assert first == second
    assert first.equal_string(hex_id)

    encoded = first.to_json()
    assert encoded == '"' + hex_id + '"'
    assert id_from_json(encoded) == first


@pytest.mark.parametrize("hex_id,data", TEST_STRINGS)
def test_id_from_data_matches_known_digest(hex_id, data):
    assert str(id_from_data(data)) == hex_id


def test_null_id_short_form():
    assert ID().short() == "[null]"
    assert ID().is_null()


def test_missing_id_short_form():
    assert short_str(None) == "[nil]"


def test_short_form_of_real_id():
    id_ = parse_id(TEST_STRINGS[0][0])
    assert id_.short() == TEST_STRINGS[0][0][:8]
    assert short_str(id_) == TEST_STRINGS[0][0][:8]
    assert not id_.is_null()


def test_parse_rejects_wrong_length():
    with pytest.raises(ValueError, match="invalid length"):
        parse_id("c3ab8ff1")


def test_parse_rejects_bad_hex():
    with pytest.raises(ValueError):
        parse_id("zz" * ID_SIZE)


def test_id_requires_full_size():
    with pytest.raises(ValueError):
        ID(b"\x01\x02")


def test_equal_string_false_for_other_id():
    id_ = parse_id(TEST_STRINGS[0][0])
    assert not id_.equal_string(TEST_STRINGS[1][0])


def test_compare_is_reversed_bytewise():
    low = parse_id("00" * ID_SIZE)
    high = parse_id("ff" * ID_SIZE)
    assert low.compare(high) == 1
    assert high.compare(low) == -1
    assert low.compare(low) == 0


def test_sorting_is_bytewise():
    ids = [parse_id(h) for h, _ in TEST_STRINGS]
    assert [str(i) for i in sorted(ids)] == sorted(h for h, _ in TEST_STRINGS)


def test_id_from_json_rejects_non_string():
    with pytest.raises(ValueError):
        id_from_json("42")


def test_id_usable_as_dict_key():
    digest = hashlib.sha256(b"foobar").digest()
    mapping = {ID(digest): "x"}
    assert mapping[parse_id(TEST_STRINGS[0][0])] == "x"