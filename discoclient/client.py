"""A client for an HTTP application, with health checks and sub-module clients."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from .error import ClientError
from .request import Request
from .serialization import ContentType, Version
from .socket import SocketRequest

_log = logging.getLogger(__name__)

DEFAULT_VERSION = Version(0, 1)
DEFAULT_TIMEOUT = 60.0
DEFAULT_RETRY_INTERVAL = 10.0


def _join(base: httpx.URL, route: str) -> httpx.URL:
    try:
        return base.join(route)
    except httpx.InvalidURL as exc:
        raise ValueError(f"cannot join {route!r} onto {base}: {exc}") from exc


class Client:
    """A client of a server application rooted at ``base_url``.

    The path of ``base_url`` is always treated as a directory: a trailing
    slash is added if it is missing, so that routes are resolved below it.
    """

    def __init__(
        self,
        base_url: str | httpx.URL,
        *,
        version: Version = DEFAULT_VERSION,
        content_type: ContentType = ContentType.BINARY,
        timeout: float | None = DEFAULT_TIMEOUT,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        error_type: type[ClientError] = ClientError,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        url = httpx.URL(str(base_url))
        if not url.path.endswith("/"):
            url = url.copy_with(path=url.path + "/")
        self._base_url = url
        self._version = version
        self._accept = content_type
        self._retry_interval = retry_interval
        self._error_type = error_type
        self._http = http if http is not None else httpx.AsyncClient(timeout=timeout)

    @classmethod
    def _derived(cls, parent: "Client", base_url: httpx.URL) -> "Client":
        client = cls.__new__(cls)
        client._base_url = base_url
        client._version = parent._version
        client._accept = parent._accept
        client._retry_interval = parent._retry_interval
        client._error_type = parent._error_type
        client._http = parent._http
        return client

    @property
    def base_url(self) -> str:
        return str(self._base_url)

    @property
    def content_type(self) -> ContentType:
        return self._accept

    @property
    def version(self) -> Version:
        return self._version

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(base_url={self.base_url!r}, "
            f"content_type={self._accept}, version={self._version})"
        )

    async def connect(self, timeout: float | None = None) -> bool:
        """Wait until the server answers ``GET /healthcheck`` with ``200 OK``.

        Retries until ``timeout`` seconds have passed, or forever if it is
        ``None``. Returns whether the server became available.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        url = _join(self._base_url, "/healthcheck")
        while deadline is None or time.monotonic() < deadline:
            try:
                response = await self._http.get(url)
            except httpx.HTTPError as exc:
                _log.info(
                    "waiting for server to become ready: url=%s err=%s",
                    self._base_url,
                    str(exc) or type(exc).__name__,
                )
            else:
                if response.status_code == 200:
                    return True
                _log.info(
                    "waiting for server to become ready: url=%s status=%s",
                    self._base_url,
                    response.status_code,
                )
            await asyncio.sleep(self._retry_interval)
        return False

    async def wait_for_health(
        self, healthy: Callable[[Any], bool], timeout: float | None = None
    ) -> Any | None:
        """Poll the health check until ``healthy`` accepts its response.

        Returns that response, or ``None`` if ``timeout`` seconds pass first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while deadline is None or time.monotonic() < deadline:
            try:
                health = await self.healthcheck()
            except ClientError:
                pass
            else:
                if healthy(health):
                    return health
            await asyncio.sleep(self._retry_interval)
        return None

    def get(self, route: str) -> Request:
        """Build a ``GET`` request."""
        return self.request("GET", route)

    def post(self, route: str) -> Request:
        """Build a ``POST`` request."""
        return self.request("POST", route)

    async def healthcheck(self) -> Any:
        """Query the health check endpoint below the base URL."""
        return await self.get("healthcheck").send()

    def request(self, method: str, route: str) -> Request:
        """Build a request with the given method."""
        return Request(
            self._http,
            method,
            _join(self._base_url, route),
            version=self._version,
            error_type=self._error_type,
        ).header("Accept", self._accept.mime)

    def socket(self, route: str) -> SocketRequest:
        """Build a WebSocket connection request."""
        return SocketRequest(
            str(_join(self._base_url, route)),
            self._accept,
            version=self._version,
            error_type=self._error_type,
        ).header("Accept", self._accept.mime)

    def module(self, prefix: str) -> "Client":
        """Return a client for a sub-module, sharing this client's connection pool.

        Raises ValueError if ``prefix`` cannot be joined onto the base URL.
        """
        return Client._derived(self, _join(self._base_url, prefix))

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()


def get(url: str | httpx.URL) -> Request:
    """Build a ``GET`` request for ``url``."""
    return Client(url).get("/")


def post(url: str | httpx.URL) -> Request:
    """Build a ``POST`` request for ``url``."""
    return Client(url).post("/")


async def connect(url: str | httpx.URL, timeout: float | None = None) -> bool:
    """Wait for the server at ``url`` to become available."""
    async with Client(url) as client:
        return await client.connect(timeout)