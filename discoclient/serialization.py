"""Content types and the JSON and versioned binary encodings."""

from __future__ import annotations

import dataclasses
import enum
import json
import struct
from typing import Any

import msgpack

_PREFIX = struct.Struct("<HH")


class ContentType(enum.Enum):
    """Content types the server understands."""

    JSON = "json"
    BINARY = "binary"

    @property
    def mime(self) -> str:
        """The MIME type sent for this content type."""
        if self is ContentType.JSON:
            return "application/json"
        return "application/octet-stream"


@dataclasses.dataclass(frozen=True)
class Version:
    """A wire-format version, written in front of every binary message."""

    major: int
    minor: int

    def __post_init__(self) -> None:
        for part in (self.major, self.minor):
            if not 0 <= part <= 0xFFFF:
                raise ValueError(f"version component {part} out of range")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


def _to_plain(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, enum.Enum):
        return obj.value
    raise TypeError(f"cannot serialize object of type {type(obj).__name__}")


def serialize_binary(value: Any, version: Version) -> bytes:
    """Encode ``value`` as a version prefix followed by its binary encoding."""
    try:
        payload = msgpack.packb(value, default=_to_plain, use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"binary serialization failed: {exc}") from exc
    return _PREFIX.pack(version.major, version.minor) + payload


def deserialize_binary(data: bytes, version: Version) -> Any:
    """Decode a message made by :func:`serialize_binary` with the same version."""
    data = bytes(data)
    if len(data) < _PREFIX.size:
        raise ValueError("binary message too short to hold a version")
    major, minor = _PREFIX.unpack_from(data)
    if (major, minor) != (version.major, version.minor):
        raise ValueError(f"version mismatch: expected {version}, got {major}.{minor}")
    try:
        return msgpack.unpackb(data[_PREFIX.size:], raw=False, strict_map_key=False)
    except (ValueError, TypeError, msgpack.UnpackException) as exc:
        raise ValueError(f"invalid binary: {exc}") from exc


def serialize_json(value: Any) -> str:
    """Encode ``value`` as JSON text."""
    try:
        return json.dumps(value, default=_to_plain)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"JSON serialization failed: {exc}") from exc


def deserialize_json(data: bytes | str) -> Any:
    """Decode JSON text or UTF-8 bytes."""
    try:
        return json.loads(data)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc