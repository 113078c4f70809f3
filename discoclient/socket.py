"""WebSocket connections to streaming and bidirectional endpoints."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from websockets.asyncio.client import ClientConnection
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedOK,
    InvalidStatus,
    WebSocketException,
)

from .error import ClientError
from .serialization import (
    ContentType,
    Version,
    deserialize_binary,
    deserialize_json,
    serialize_binary,
    serialize_json,
)

_log = logging.getLogger(__name__)

_REDIRECT_STATUSES = range(301, 309)


def socket_scheme(scheme: str) -> str:
    """Return the WebSocket counterpart of an HTTP scheme.

    ``http`` becomes ``ws`` and ``https`` becomes ``wss``; any other scheme is
    returned unchanged.
    """
    return {"http": "ws", "https": "wss"}.get(scheme, scheme)


def _message_of(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class SocketRequest:
    """A WebSocket connection request being built."""

    def __init__(
        self,
        url: str,
        content_type: ContentType = ContentType.BINARY,
        *,
        version: Version,
        error_type: type[ClientError] = ClientError,
    ) -> None:
        parts = urlsplit(str(url))
        self._url = urlunsplit(parts._replace(scheme=socket_scheme(parts.scheme)))
        self._content_type = content_type
        self._version = version
        self._error_type = error_type
        self._headers: dict[str, list[str]] = {}

    @property
    def url(self) -> str:
        return self._url

    @property
    def content_type(self) -> ContentType:
        return self._content_type

    @property
    def headers(self) -> dict[str, list[str]]:
        return {name: list(values) for name, values in self._headers.items()}

    def header(self, key: str, *values: Any) -> "SocketRequest":
        """Add one header line per value."""
        self._headers.setdefault(str(key), []).extend(str(value) for value in values)
        return self

    async def connect(self) -> "Connection":
        """Perform the WebSocket handshake, following redirects."""
        return await self._open(can_send=True)

    async def subscribe(self) -> "Connection":
        """Open a connection that only receives messages from the server."""
        return await self._open(can_send=False)

    async def _open(self, *, can_send: bool) -> "Connection":
        catch_all = self._error_type.catch_all
        while True:
            headers = [
                (name, value) for name, values in self._headers.items() for value in values
            ]
            try:
                ws = await ws_connect(self._url, additional_headers=headers)
            except InvalidStatus as exc:
                response = exc.response
                location = response.headers.get("Location")
                if response.status_code in _REDIRECT_STATUSES and location:
                    _log.info(
                        "WS handshake following redirect from %s to %s", self._url, location
                    )
                    self._url = urlunsplit(urlsplit(self._url)._replace(path=location))
                    continue
                raise catch_all(HTTPStatus.BAD_REQUEST, _message_of(exc)) from exc
            except (WebSocketException, OSError, TimeoutError, ValueError) as exc:
                raise catch_all(HTTPStatus.BAD_REQUEST, _message_of(exc)) from exc
            return Connection(
                ws,
                self._content_type,
                version=self._version,
                error_type=self._error_type,
                can_send=can_send,
            )


class Connection:
    """An open WebSocket connection that encodes and decodes messages."""

    def __init__(
        self,
        ws: ClientConnection,
        content_type: ContentType,
        *,
        version: Version,
        error_type: type[ClientError] = ClientError,
        can_send: bool = True,
    ) -> None:
        self._ws = ws
        self._content_type = content_type
        self._version = version
        self._error_type = error_type
        self._can_send = can_send
        self._finished = False

    @property
    def content_type(self) -> ContentType:
        return self._content_type

    async def send(self, item: Any) -> None:
        """Encode ``item`` in the connection's content type and send it."""
        if not self._can_send:
            raise TypeError("this connection does not accept messages to the server")
        catch_all = self._error_type.catch_all
        message: str | bytes
        try:
            if self._content_type is ContentType.BINARY:
                message = serialize_binary(item, self._version)
            else:
                message = serialize_json(item)
        except ValueError as exc:
            kind = "binary" if self._content_type is ContentType.BINARY else "JSON"
            cause = exc.__cause__ or exc
            raise catch_all(
                HTTPStatus.BAD_REQUEST, f"invalid {kind} serialization: {cause}"
            ) from exc
        try:
            await self._ws.send(message)
        except (WebSocketException, OSError) as exc:
            raise catch_all(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                f"error sending WebSocket message: {_message_of(exc)}",
            ) from exc

    async def receive(self) -> Any:
        """Receive and decode the next message.

        Raises EOFError once the connection has been closed.
        """
        if self._finished:
            raise EOFError("connection closed")
        try:
            message = await self._ws.recv()
        except ConnectionClosed as exc:
            self._finished = True
            if isinstance(exc, ConnectionClosedOK) or exc.rcvd is not None:
                raise EOFError("connection closed") from None
            raise self._error_type.catch_all(
                HTTPStatus.INTERNAL_SERVER_ERROR, _message_of(exc)
            ) from exc
        return self._decode(message)

    def _decode(self, message: str | bytes) -> Any:
        catch_all = self._error_type.catch_all
        if isinstance(message, (bytes, bytearray, memoryview)):
            data = bytes(message)
            try:
                return deserialize_binary(data, self._version)
            except ValueError as exc:
                cause = exc.__cause__ or exc
                raise catch_all(
                    HTTPStatus.INTERNAL_SERVER_ERROR, f"invalid binary: {cause}\n{data!r}"
                ) from exc
        if isinstance(message, str):
            try:
                return deserialize_json(message)
            except ValueError as exc:
                cause = exc.__cause__ or exc
                raise catch_all(
                    HTTPStatus.INTERNAL_SERVER_ERROR, f"invalid JSON: {cause}\n{message}"
                ) from exc
        raise catch_all(HTTPStatus.UNSUPPORTED_MEDIA_TYPE, "unsupported WebSocket message")

    async def close(self) -> None:
        """Close the connection."""
        self._finished = True
        try:
            await self._ws.close()
        except (WebSocketException, OSError) as exc:
            raise self._error_type.catch_all(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                f"error in WebSocket connection: {_message_of(exc)}",
            ) from exc

    def __aiter__(self) -> "Connection":
        return self

    async def __anext__(self) -> Any:
        try:
            return await self.receive()
        except EOFError:
            raise StopAsyncIteration from None

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()