# discoclient

An asynchronous client for HTTP applications whose routes answer in JSON or in a
versioned binary format. It builds and sends HTTP requests, opens WebSocket
connections to streaming and bidirectional routes, polls a `/healthcheck` endpoint,
and turns error responses into a raised `ClientError`.

## Installation

```
pip install discoclient
```

## Quick start

```python
import asyncio
from discoclient.client import Client
from discoclient.serialization import ContentType

async def main():
    async with Client("http://localhost:50000", content_type=ContentType.JSON) as client:
        # Wait up to 30 seconds for GET /healthcheck to answer 200 OK.
        if not await client.connect(timeout=30):
            raise SystemExit("server did not come up")

        text = await client.get("app/route").send()
        reply = await client.post("app/echo").body_json("hello").send()

asyncio.run(main())
```

## The client

`discoclient.client.Client(base_url, *, version=Version(0, 1), content_type=ContentType.BINARY,
timeout=60.0, retry_interval=10.0, error_type=ClientError, http=None)`

- The path of `base_url` is always treated as a directory. A trailing slash is added
  when it is missing, and routes are resolved relative to it.
- `content_type` selects the `Accept` header sent with every request:
  `application/json` for `ContentType.JSON` and `application/octet-stream` for
  `ContentType.BINARY`. It also sets the encoding used for WebSocket messages.
- `timeout` is the request timeout in seconds for the underlying `httpx.AsyncClient`.
  Pass `None` to disable it. If you pass your own client as `http`, it is used as is.
- `client.get(route)`, `client.post(route)` and `client.request(method, route)` return a
  `Request`.
- `client.socket(route)` returns a `SocketRequest`.
- `client.module(prefix)` returns a client rooted at the sub-path that shares the same
  connection pool. It raises `ValueError` if the prefix cannot be joined onto the base URL.
- `await client.aclose()` closes the connection pool. The client is also an async context
  manager.

The module-level helpers `get(url)` and `post(url)` build a request for the root of
`url`. `await connect(url, timeout)` waits for the server at `url` to become available.

## Requests

`discoclient.request.Request`:

- `header(key, *values)` adds one header line for each value.
- `body_json(body)` sets a JSON body with `Content-Type: application/json`.
- `body_binary(body)` sets a binary body with `Content-Type: application/octet-stream`.
- `await send()` performs the request. A `200 OK` response is decoded according to its
  `Content-Type`. A missing or unknown content type raises a `415` error.
- `await bytes()` performs the request and returns the raw body of any `2xx` response.

## Encodings

`discoclient.serialization` provides `ContentType`, `Version`, `serialize_json`,
`deserialize_json`, `serialize_binary` and `deserialize_binary`. A binary message is the
version, written as two little-endian 16-bit integers (major, minor), followed by the
MessagePack encoding of the value. Decoding checks that the version matches. Objects with
a `to_dict()` method, dataclasses and enums are converted to plain values before they are
encoded.

## Errors

`discoclient.error.ClientError` carries an HTTP `status` and a `message`. It can be
converted with `to_dict()` and rebuilt with `from_dict()`. Request and connection failures
raise it:

- On a non-`200` response, `send()` first tries to decode the body as an error using the
  response's content type, and raises that error if decoding succeeds.
- Otherwise a UTF-8 body becomes the message.
- Otherwise the message names the status, the content type and the body in hex.
- Transport failures raise a `500` error, and body encoding failures raise a `400` error.

Pass your own subclass as `error_type` to have it raised instead.

## Health checks

- `await client.connect(timeout)` retries `GET /healthcheck` every `retry_interval`
  seconds until it returns `200 OK`. It returns `False` once `timeout` seconds have
  passed. With `None` it waits forever.
- `await client.healthcheck()` returns the decoded response of the `healthcheck` route
  below the base URL.
- `await client.wait_for_health(predicate, timeout)` polls the health check until
  `predicate` accepts the response, and returns that response. It returns `None` on
  timeout.

## Streaming

```python
async with await client.socket("mod/echo").connect() as conn:
    await conn.send("foo")
    print(await conn.receive())

async with await client.socket("mod/naturals/10").subscribe() as stream:
    async for value in stream:
        print(value)
```

- An `http` URL becomes `ws` for sockets and `https` becomes `wss`. Other schemes are
  kept as they are.
- Redirects (301–308) received during the handshake are followed. A failed handshake
  raises a `400` error.
- `Connection.receive()` raises `EOFError` after the connection has closed, and iteration
  simply ends.
- A connection opened with `subscribe()` only receives. Calling `send()` on it raises
  `TypeError`.

## What this package does not do

It is a client only. It contains no server, no route definitions and no command-line
program.

## Running the tests

```
pip install -e .[test]
pytest
```