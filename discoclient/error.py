"""The error type raised by client requests."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class ClientError(Exception):
    """An error carrying an HTTP status code and a human-readable message."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(int(status), message)
        self.status = int(status)
        self.message = message

    @classmethod
    def catch_all(cls, status: int, message: str) -> "ClientError":
        """Build an error from any status code and message."""
        return cls(int(status), str(message))

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation of this error."""
        return {"status": self.status, "message": self.message}

    @classmethod
    def from_dict(cls, data: Any) -> "ClientError":
        """Rebuild an error from its wire representation.

        Raises ValueError if ``data`` does not describe an error.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        try:
            status = data["status"]
            message = data["message"]
        except KeyError as exc:
            raise ValueError(f"missing field {exc.args[0]!r}") from None
        if isinstance(status, bool) or not isinstance(status, int):
            raise ValueError(f"invalid status {status!r}")
        if not 100 <= status <= 999:
            raise ValueError(f"status {status} out of range")
        if not isinstance(message, str):
            raise ValueError(f"invalid message {message!r}")
        return cls(status, message)

    def __str__(self) -> str:
        return f"Error {self.status}: {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status!r}, message={self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClientError):
            return NotImplemented
        return (self.status, self.message) == (other.status, other.message)

    def __hash__(self) -> int:
        return hash((self.status, self.message))