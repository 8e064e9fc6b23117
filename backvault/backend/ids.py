"""Content identifiers: SHA-256 digests that address data in a repository."""

from __future__ import annotations

import binascii
import hashlib
import json
from dataclasses import dataclass

ID_SIZE = hashlib.sha256().digest_size
_SHORT_BYTES = 4


def _decode_hex(text: str) -> bytes:
    """Decode a strict hexadecimal string, raising ValueError on bad input."""
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, TypeError) as exc:
        raise ValueError(f"invalid hex string {text!r}: {exc}") from exc


@dataclass(frozen=True, order=True)
class ID:
    """An identifier made of exactly ID_SIZE bytes; ordering is bytewise."""

    raw: bytes = bytes(ID_SIZE)

    def __post_init__(self) -> None:
        raw = bytes(self.raw)
        if len(raw) != ID_SIZE:
            raise ValueError(f"an ID needs {ID_SIZE} bytes, got {len(raw)}")
        object.__setattr__(self, "raw", raw)

    def __str__(self) -> str:
        return self.raw.hex()

    def __bytes__(self) -> bytes:
        return self.raw

    def short(self) -> str:
        """Return the shortened hex form, or "[null]" for the all-zero ID."""
        if self.is_null():
            return "[null]"
        return self.raw[:_SHORT_BYTES].hex()

    def is_null(self) -> bool:
        """Return True if the ID consists only of null bytes."""
        return not any(self.raw)

    def equal_string(self, other: str) -> bool:
        """Compare with an ID given as a hex string."""
        decoded = _decode_hex(other)[:ID_SIZE].ljust(ID_SIZE, b"\0")
        return self.raw == decoded

    def compare(self, other: ID) -> int:
        """Compare other against this ID bytewise, returning -1, 0 or 1."""
        return (other.raw > self.raw) - (other.raw < self.raw)

    def to_json(self) -> str:
        """Encode the ID as a JSON string holding its hex form."""
        return json.dumps(str(self))


def parse_id(s: str) -> ID:
    """Convert a hex string into an ID."""
    raw = _decode_hex(s)
    if len(raw) != ID_SIZE:
        raise ValueError("invalid length for hash")
    return ID(raw)


def id_from_data(data: bytes) -> ID:
    """Return the ID (SHA-256 digest) of data."""
    return ID(hashlib.sha256(data).digest())


def short_str(id: ID | None) -> str:
    """Return the shortened form of id, or "[nil]" when there is none."""
    if id is None:
        return "[nil]"
    return id.short()


def id_from_json(data: str | bytes) -> ID:
    """Decode an ID from its JSON representation."""
    value = json.loads(data)
    if not isinstance(value, str):
        raise ValueError(f"expected a JSON string, got {type(value).__name__}")
    raw = _decode_hex(value)
    if len(raw) > ID_SIZE:
        raise ValueError("invalid length for hash")
    return ID(raw.ljust(ID_SIZE, b"\0"))