"""HTTP requests against a server and decoding of their responses."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

import httpx

from .error import ClientError
from .serialization import (
    ContentType,
    Version,
    deserialize_binary,
    deserialize_json,
    serialize_binary,
    serialize_json,
)

_JSON = ContentType.JSON.mime
_BINARY = ContentType.BINARY.mime


def _status_text(status: int) -> str:
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return str(status)


def _transport_error_message(exc: BaseException) -> str:
    message = str(exc) or type(exc).__name__
    cause = exc.__cause__
    if cause is not None and str(cause) and str(cause) != message:
        return f"{message}: {cause}"
    return message


def _describe_body(body: bytes) -> str:
    try:
        return f"body: {body.decode('utf-8')}"
    except UnicodeDecodeError:
        return f"body: {body.hex()}"


class Request:
    """A request being built; ``send`` or ``bytes`` performs it."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        method: str,
        url: str | httpx.URL,
        *,
        version: Version,
        error_type: type[ClientError] = ClientError,
    ) -> None:
        self._http = http
        self._method = str(method).upper()
        self._url = httpx.URL(str(url))
        self._version = version
        self._error_type = error_type
        self._headers: list[tuple[str, str]] = []
        self._content: bytes | None = None

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> httpx.URL:
        return self._url

    @property
    def headers(self) -> list[tuple[str, str]]:
        return list(self._headers)

    @property
    def content(self) -> bytes | None:
        return self._content

    def header(self, key: str, *values: Any) -> "Request":
        """Add one header line per value."""
        for value in values:
            self._headers.append((str(key), str(value)))
        return self

    def body_json(self, body: Any) -> "Request":
        """Set a JSON body and the matching ``Content-Type``."""
        self.header("Content-Type", _JSON)
        try:
            self._content = serialize_json(body).encode("utf-8")
        except ValueError as exc:
            raise self._error_type.catch_all(HTTPStatus.BAD_REQUEST, str(exc)) from exc
        return self

    def body_binary(self, body: Any) -> "Request":
        """Set a versioned binary body and the matching ``Content-Type``."""
        self.header("Content-Type", _BINARY)
        try:
            self._content = serialize_binary(body, self._version)
        except ValueError as exc:
            raise self._error_type.catch_all(HTTPStatus.BAD_REQUEST, str(exc)) from exc
        return self

    async def _dispatch(self) -> httpx.Response:
        try:
            return await self._http.request(
                self._method, self._url, headers=self._headers, content=self._content
            )
        except httpx.HTTPError as exc:
            raise self._error_type.catch_all(
                HTTPStatus.INTERNAL_SERVER_ERROR, _transport_error_message(exc)
            ) from exc

    async def send(self) -> Any:
        """Perform the request and decode the body of a ``200 OK`` response.

        The body is decoded according to the response's ``Content-Type``.
        Any other status raises an error built from the response body.
        """
        response = await self._dispatch()
        status = response.status_code
        content_type = response.headers.get("content-type")
        body = response.content
        if status == HTTPStatus.OK:
            return self._decode_success(content_type, body)
        raise self._failure(status, content_type, body)

    def _decode_success(self, content_type: str | None, body: bytes) -> Any:
        catch_all = self._error_type.catch_all
        if content_type is None:
            raise catch_all(
                HTTPStatus.UNSUPPORTED_MEDIA_TYPE, "unspecified content type in response"
            )
        if content_type == _JSON:
            try:
                return deserialize_json(body)
            except ValueError as exc:
                raise catch_all(HTTPStatus.INTERNAL_SERVER_ERROR, str(exc)) from exc
        if content_type == _BINARY:
            try:
                return deserialize_binary(body, self._version)
            except ValueError as exc:
                raise catch_all(HTTPStatus.BAD_REQUEST, str(exc)) from exc
        raise catch_all(
            HTTPStatus.UNSUPPORTED_MEDIA_TYPE,
            f"unsupported content type {content_type!r} {_describe_body(body)}",
        )

    def _failure(self, status: int, content_type: str | None, body: bytes) -> ClientError:
        decoders = {
            _JSON: deserialize_json,
            _BINARY: lambda data: deserialize_binary(data, self._version),
        }
        decode = decoders.get(content_type) if content_type is not None else None
        if decode is not None:
            try:
                return self._error_type.from_dict(decode(body))
            except ValueError:
                pass
        try:
            return self._error_type.catch_all(status, body.decode("utf-8"))
        except UnicodeDecodeError:
            pass
        return self._error_type.catch_all(
            status,
            f"Request terminated with error {_status_text(status)}. "
            f"Content-Type: {content_type or 'unspecified'}. Body: 0x{body.hex()}",
        )

    async def bytes(self) -> bytes:
        """Perform the request and return the raw body of a successful response."""
        response = await self._dispatch()
        status = response.status_code
        body = response.content
        if response.is_success:
            return body
        try:
            raise self._error_type.catch_all(status, body.decode("utf-8"))
        except UnicodeDecodeError:
            pass
        content_type = response.headers.get("content-type") or "unspecified"
        raise self._error_type.catch_all(
            status,
            f"Request failed with status {_status_text(status)}. "
            f"Content-Type: {content_type}. Body: 0x{body.hex()}",
        )