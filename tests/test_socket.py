import contextlib
import socket as pysocket
from http import HTTPStatus

import pytest
from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed

from discoclient.error import ClientError
from discoclient.serialization import (
    ContentType,
    Version,
    serialize_binary,
    serialize_json,
)
from discoclient.socket import SocketRequest, socket_scheme

VERSION = Version(0, 1)


def _encode(accept, value):
    if accept == "application/json":
        return serialize_json(value)
    return serialize_binary(value, VERSION)


async def _handler(ws):
    path = ws.request.path
    accept = ws.request.headers.get("Accept", "application/octet-stream")
    try:
        if path == "/mod/subscribe":
            for _ in range(5):
                await ws.send(_encode(accept, "response"))
            await ws.wait_closed()
        elif path == "/mod/echo":
            async for message in ws:
                await ws.send(message)
        elif path.startswith("/mod/naturals/"):
            count = int(path.rsplit("/", 1)[1])
            for n in range(count):
                await ws.send(_encode(accept, n))
        elif path == "/mod/headers":
            await ws.send(_encode(accept, ws.request.headers.get_all("X-Test")))
            await ws.wait_closed()
        elif path == "/mod/garbage":
            await ws.send("not json")
            await ws.send(serialize_binary("x", Version(0, 2)))
            await ws.wait_closed()
    except ConnectionClosed:
        pass


def _process_request(connection, request):
    if request.path == "/old":
        response = connection.respond(HTTPStatus.FOUND, "")
        response.headers["Location"] = "/mod/echo"
        return response
    return None


def _unchanged(request):
    return request


@contextlib.asynccontextmanager
async def _connection(route, content_type=ContentType.JSON, *, subscribe=False, prepare=_unchanged):
    """Start a test server and open a connection to `route` on it."""
    async with serve(_handler, "127.0.0.1", 0, process_request=_process_request) as server:
        port = server.sockets[0].getsockname()[1]
        request = SocketRequest(
            f"http://127.0.0.1:{port}/{route}", content_type, version=VERSION
        ).header("Accept", content_type.mime)
        request = prepare(request)
        conn = await (request.subscribe() if subscribe else request.connect())
        async with conn:
            yield conn


@pytest.mark.parametrize(
    "scheme, expected",
    [("http", "ws"), ("https", "wss"), ("ws", "ws"), ("custom", "custom")],
)
def test_socket_scheme(scheme, expected):
    assert socket_scheme(scheme) == expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://localhost:1/mod", "ws://localhost:1/mod"),
        ("https://localhost/a", "wss://localhost/a"),
    ],
)
def test_request_converts_url_scheme(url, expected):
    assert SocketRequest(url, version=VERSION).url == expected


def test_header_accumulates_values():
    req = SocketRequest("http://localhost/", version=VERSION)
    req.header("X-Test", "a", "b").header("X-Test", "c").header("Accept", "application/json")
    assert req.headers == {"X-Test": ["a", "b", "c"], "Accept": ["application/json"]}


@pytest.mark.asyncio
@pytest.mark.parametrize("content_type", [ContentType.JSON, ContentType.BINARY])
async def test_socket_accept(content_type):
    async with _connection("mod/subscribe", content_type, subscribe=True) as conn:
        assert [await conn.receive(), await conn.receive()] == ["response", "response"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "route, content_type",
    [
        ("mod/echo", ContentType.JSON),
        ("mod/echo", ContentType.BINARY),
        pytest.param("old", ContentType.JSON, id="redirect"),
    ],
)
async def test_echo(route, content_type):
    async with _connection(route, content_type) as conn:
        for word in ("foo", "bar"):
            await conn.send(word)
            assert await conn.receive() == word


@pytest.mark.asyncio
@pytest.mark.parametrize("content_type", [ContentType.JSON, ContentType.BINARY])
async def test_naturals_stream(content_type):
    async with _connection("mod/naturals/10", content_type, subscribe=True) as conn:
        assert [item async for item in conn] == list(range(10))
        with pytest.raises(EOFError):
            await conn.receive()


@pytest.mark.asyncio
async def test_headers_are_sent():
    async with _connection(
        "mod/headers", subscribe=True, prepare=lambda r: r.header("X-Test", "one", "two")
    ) as conn:
        assert await conn.receive() == ["one", "two"]


@pytest.mark.asyncio
async def test_subscribe_cannot_send():
    async with _connection("mod/echo", subscribe=True) as conn:
        with pytest.raises(TypeError):
            await conn.send("foo")


@pytest.mark.asyncio
async def test_invalid_messages_raise():
    async with _connection("mod/garbage", subscribe=True) as conn:
        errors = []
        for _ in range(2):
            with pytest.raises(ClientError) as info:
                await conn.receive()
            errors.append(info.value)
    assert [err.status for err in errors] == [500, 500]
    assert errors[0].message.startswith("invalid JSON")
    assert errors[0].message.endswith("not json")
    assert "version mismatch" in errors[1].message


@pytest.mark.asyncio
async def test_connect_refused_raises_bad_request():
    with pysocket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    req = SocketRequest(f"http://127.0.0.1:{port}/mod/echo", version=VERSION)
    with pytest.raises(ClientError) as info:
        await req.connect()
    assert info.value.status == 400


@pytest.mark.asyncio
async def test_unserializable_item_raises_bad_request():
    async with _connection("mod/echo") as conn:
        with pytest.raises(ClientError) as info:
            await conn.send(object())
    assert info.value.status == 400
    assert info.value.message.startswith("invalid JSON serialization")