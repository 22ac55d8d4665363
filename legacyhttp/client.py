"""An HTTP client that keeps idle connections in a pool and reuses them."""

from __future__ import annotations

import asyncio
import datetime
import logging
import ssl
import sys
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Hashable, Optional, Union

from legacyhttp.config import Config, PoolConfig, Ver
from legacyhttp.errors import ClientError, ErrorKind
from legacyhttp.messages import Method, Request, Response, Version
from legacyhttp.pool import IdlePool, PoolableService
from legacyhttp.uri import (
    PoolKey,
    Uri,
    absolute_form,
    authority_form,
    domain_as_uri,
    extract_domain,
    get_non_default_port,
    origin_form,
)

logger = logging.getLogger(__name__)

#: Request extension key: a callable given the ConnectInfo of the connection used.
CAPTURE_CONNECTION = "capture_connection"

_MIN_BUF_SIZE = 8192
_DEFAULT_MAX_BUF_SIZE = 400 * 1024
_U32_MAX = 2**32 - 1


@dataclass
class ConnectInfo:
    """What a connector reports about an established connection.

    Copies made with ``dataclasses.replace`` share the poisoned flag.
    """

    is_proxied: bool = False
    alpn_h2: bool = False
    extra: dict = field(default_factory=dict)
    _poisoned: list = field(default_factory=lambda: [False], repr=False, compare=False)

    def poison(self) -> None:
        """Mark the connection unusable so the pool will not hand it out again."""
        self._poisoned[0] = True

    def is_poisoned(self) -> bool:
        """True once :meth:`poison` was called on this or a sharing copy."""
        return self._poisoned[0]


@dataclass
class _H1Options:
    read_buf_exact_size: Optional[int] = None
    max_buf_size: int = _DEFAULT_MAX_BUF_SIZE
    title_case_headers: bool = False
    max_headers: int = 100
    http09_responses: bool = False

    @property
    def buffer_limit(self) -> int:
        return self.read_buf_exact_size or self.max_buf_size


class _Retryable(Exception):
    def __init__(self, error: ClientError, reused: bool) -> None:
        super().__init__(error)
        self.error = error
        self.reused = reused


_EMPTY_LINES = (b"\r\n", b"\n", b"")


class _Http1Connection:
    """An HTTP/1.x connection over a pair of asyncio streams."""

    def __init__(self, reader, writer, info: ConnectInfo, options: _H1Options) -> None:
        self._reader = reader
        self._writer = writer
        self._info = info
        self._options = options
        self._open = True
        self._busy = False

    def connected(self) -> ConnectInfo:
        return self._info

    def is_ready(self) -> bool:
        return self._open and not self._busy

    def close(self) -> None:
        if self._open:
            self._open = False
            self._writer.close()

    def _header_name(self, name: str) -> str:
        if self._options.title_case_headers:
            return "-".join(part.capitalize() for part in name.split("-"))
        return name

    def _encode(self, req: Request) -> bytes:
        version = "HTTP/1.0" if req.version is Version.HTTP_10 else "HTTP/1.1"
        lines = [f"{req.method.value} {req.uri} {version}"]
        headers = dict(req.headers)
        if req.body and req.header("content-length") is None:
            headers["content-length"] = str(len(req.body))
        lines.extend(f"{self._header_name(k)}: {v}" for k, v in headers.items())
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("latin-1") + req.body

    async def send_request(self, req: Request) -> Response:
        if not self._open:
            raise ClientError(ErrorKind.CANCELED, "connection closed")
        self._busy = True
        try:
            self._writer.write(self._encode(req))
            await self._writer.drain()
            response, keep_alive = await self._read_response(req)
        except BaseException:
            self.close()
            raise
        finally:
            self._busy = False
        if not keep_alive:
            self.close()
        return response

    async def _read_response(self, req: Request) -> tuple[Response, bool]:
        reader = self._reader
        line = await reader.readline()
        if not line:
            raise ClientError(ErrorKind.CANCELED, "connection closed before message completed")
        if not line.startswith(b"HTTP/"):
            if self._options.http09_responses:
                body = line + await reader.read()
                return Response(200, Version.HTTP_09, body=body), False
            raise ValueError("invalid HTTP status line")
        parts = line.decode("latin-1").rstrip("\r\n").split(" ", 2)
        versions = {"HTTP/1.0": Version.HTTP_10, "HTTP/1.1": Version.HTTP_11}
        if parts[0] not in versions or len(parts) < 2 or not parts[1].isdigit():
            raise ValueError(f"invalid HTTP status line: {line!r}")
        version, status = versions[parts[0]], int(parts[1])

        headers: dict[str, str] = {}
        count = 0
        while (raw := await reader.readline()) not in _EMPTY_LINES:
            count += 1
            if count > self._options.max_headers:
                raise ValueError("message header too large")
            name, sep, value = raw.decode("latin-1").partition(":")
            if not sep or not name.strip():
                raise ValueError(f"invalid header line: {raw!r}")
            name, value = name.strip().lower(), value.strip()
            headers[name] = f"{headers[name]}, {value}" if name in headers else value

        connection = headers.get("connection", "").lower()
        keep_alive = "close" not in connection and (
            version is Version.HTTP_11 or "keep-alive" in connection
        )
        if req.method is Method.HEAD or 100 <= status < 200 or status in (204, 304):
            body = b""
            if status == 101:
                keep_alive = False
        elif "chunked" in headers.get("transfer-encoding", "").lower():
            body = await self._read_chunked()
        elif "content-length" in headers:
            body = await reader.readexactly(int(headers["content-length"]))
        else:
            body = await reader.read()
            keep_alive = False
        return Response(status, version, headers, body), keep_alive

    async def _read_chunked(self) -> bytes:
        chunks = []
        while True:
            size_line = await self._reader.readline()
            if not size_line:
                raise ConnectionError("unexpected end of chunked body")
            size = int(size_line.split(b";")[0].strip(), 16)
            if size == 0:
                while await self._reader.readline() not in _EMPTY_LINES:
                    pass
                return b"".join(chunks)
            chunks.append(await self._reader.readexactly(size))
            await self._reader.readline()


async def _tcp_connect(dst: Uri, options: _H1Options) -> _Http1Connection:
    host = (dst.host or "").strip("[]")
    secure = dst.scheme == "https"
    port = dst.port_number() or (443 if secure else 80)
    context = ssl.create_default_context() if secure else None
    reader, writer = await asyncio.open_connection(
        host, port, ssl=context, limit=options.buffer_limit
    )
    return _Http1Connection(reader, writer, ConnectInfo(), options)


Connector = Callable[[Uri], Awaitable[Any]]


class Client:
    """Sends requests, reusing pooled connections per scheme and authority.

    A connector is an async callable given the origin URI. It returns either
    a connection object (with ``connected()``, async ``send_request(req)``
    and optionally ``is_ready()`` and ``close()``), or a ``(reader, writer)``
    or ``(reader, writer, ConnectInfo)`` tuple of asyncio streams.
    """

    def __init__(
        self,
        connector: Optional[Connector] = None,
        *,
        config: Optional[Config] = None,
        pool_config: Optional[PoolConfig] = None,
        h1_options: Optional[_H1Options] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._connector = connector
        self._config = config or Config()
        self._h1 = h1_options or _H1Options()
        self._pool = IdlePool(pool_config or PoolConfig(), clock)
        self._conns: set = set()

    @staticmethod
    def builder() -> "Builder":
        """Create a builder to configure a new client."""
        return Builder()

    def __repr__(self) -> str:
        return "Client()"

    async def get(self, uri: Union[Uri, str]) -> Response:
        """Send a GET request with an empty body."""
        return await self.request(Request(uri=uri))

    async def request(self, req: Request) -> Response:
        """Send a request and return its response; raises ClientError."""
        is_connect = req.method is Method.CONNECT
        if req.version is Version.HTTP_10 and is_connect:
            logger.warning("CONNECT is not allowed for HTTP/1.0")
            raise ClientError(ErrorKind.USER_UNSUPPORTED_REQUEST_METHOD)
        if req.version not in (Version.HTTP_10, Version.HTTP_11, Version.HTTP_2):
            logger.warning('Request has unsupported version "%s"', req.version)
            raise ClientError(ErrorKind.USER_UNSUPPORTED_VERSION)
        try:
            key, uri = extract_domain(req.uri, is_connect)
        except ValueError as err:
            raise ClientError(ErrorKind.USER_ABSOLUTE_URI_REQUIRED) from err
        if uri is not req.uri:
            req = replace(req, uri=uri)
        while True:
            try:
                return await self._try_send(req, key)
            except _Retryable as retry:
                if not self._config.retry_canceled_requests or not retry.reused:
                    raise retry.error from None
                logger.debug(
                    "unstarted request canceled, trying again (reason=%r)", retry.error
                )

    def close(self) -> None:
        """Close every connection the client opened."""
        for conn in list(self._conns):
            self._close_conn(conn)

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()

    def _is_h2(self, info: ConnectInfo) -> bool:
        return self._config.ver is Ver.HTTP2 or info.alpn_h2

    def _close_conn(self, conn: Any) -> None:
        self._conns.discard(conn)
        closer = getattr(conn, "close", None)
        if closer is not None:
            closer()

    async def _connect(self, key: PoolKey) -> Any:
        dst = domain_as_uri(key)
        try:
            if self._connector is None:
                return await _tcp_connect(dst, self._h1)
            got = await self._connector(dst)
        except ClientError:
            raise
        except Exception as err:
            raise ClientError(ErrorKind.CONNECT, err) from err
        if isinstance(got, tuple):
            reader, writer, *rest = got
            info = rest[0] if rest else ConnectInfo()
            return _Http1Connection(reader, writer, info, self._h1)
        return got

    async def _connection_for(self, key: PoolKey) -> tuple[PoolableService, bool]:
        if self._pool.is_enabled():
            pooled = self._pool.checkout(key)
            if pooled is not None:
                return pooled, True
        conn = await self._connect(key)
        self._conns.add(conn)
        info = conn.connected()
        pooled = PoolableService(
            conn,
            shared=self._is_h2(info),
            ready=getattr(conn, "is_ready", None),
            connect_info=info,
        )
        return pooled, False

    def _release(self, key: Hashable, pooled: PoolableService) -> None:
        if not self._pool.put(key, pooled) and not pooled.can_share():
            self._close_conn(pooled.service)

    def _prepare_http1(self, req: Request, info: ConnectInfo) -> Request:
        headers = dict(req.headers)
        uri = req.uri
        if self._config.set_host and req.header("host") is None:
            port = get_non_default_port(uri)
            headers["host"] = f"{uri.host}:{port}" if port is not None else str(uri.host)
        if req.method is Method.CONNECT:
            uri = authority_form(uri)
        elif info.is_proxied:
            uri = absolute_form(uri)
        else:
            uri = origin_form(uri)
        return replace(req, uri=uri, headers=headers)

    async def _try_send(self, req: Request, key: PoolKey) -> Response:
        pooled, reused = await self._connection_for(key)
        conn, info = pooled.service, pooled.connect_info
        capture = req.extensions.get(CAPTURE_CONNECTION)
        if callable(capture):
            capture(info)

        if not pooled.can_share():
            if req.version is Version.HTTP_2:
                logger.warning("Connection is HTTP/1, but request requires HTTP/2")
                self._release(key, pooled)
                raise ClientError(ErrorKind.USER_UNSUPPORTED_VERSION).with_connect_info(info)
            req = self._prepare_http1(req, info)

        try:
            response = await conn.send_request(req)
        except ClientError as err:
            if not pooled.can_share():
                self._close_conn(conn)
            if err.is_canceled():
                raise _Retryable(err.with_connect_info(info), reused) from err
            raise err.with_connect_info(info) from err
        except Exception as err:
            if not pooled.can_share():
                self._close_conn(conn)
            raise ClientError(ErrorKind.SEND_REQUEST, err).with_connect_info(info) from err

        response.extensions.update(info.extra)
        self._release(key, pooled)
        return response


def _seconds(val: Union[float, datetime.timedelta, None]) -> Optional[float]:
    if isinstance(val, datetime.timedelta):
        return val.total_seconds()
    return None if val is None else float(val)


class Builder:
    """Configures and builds a :class:`Client`."""

    def __init__(self) -> None:
        self._config = Config()
        self._pool_config = PoolConfig()
        self._h1 = _H1Options()
        self.http2_max_send_buf = 1024 * 1024

    def __repr__(self) -> str:
        return f"Builder(client_config={self._config!r}, pool_config={self._pool_config!r})"

    def pool_idle_timeout(self, val) -> "Builder":
        """Set how long idle connections are kept (seconds or timedelta); None disables."""
        self._pool_config = replace(self._pool_config, idle_timeout=_seconds(val))
        return self

    def pool_max_idle_per_host(self, max_idle: int) -> "Builder":
        """Set the most idle connections kept per host; 0 disables pooling."""
        self._pool_config = replace(self._pool_config, max_idle_per_host=max_idle)
        return self

    def http1_read_buf_exact_size(self, sz: int) -> "Builder":
        """Always use a read buffer of exactly this size."""
        self._h1.read_buf_exact_size = sz
        return self

    def http1_max_buf_size(self, max_size: int) -> "Builder":
        """Set the maximum read buffer size; at least 8192."""
        if max_size < _MIN_BUF_SIZE:
            raise ValueError(f"the minimum buffer size is {_MIN_BUF_SIZE}")
        self._h1.max_buf_size = max_size
        self._h1.read_buf_exact_size = None
        return self

    def http1_title_case_headers(self, val: bool) -> "Builder":
        """Write header names in title case."""
        self._h1.title_case_headers = val
        return self

    def http1_max_headers(self, val: int) -> "Builder":
        """Set the maximum number of response headers."""
        self._h1.max_headers = val
        return self

    def http09_responses(self, val: bool) -> "Builder":
        """Tolerate HTTP/0.9 responses."""
        self._h1.http09_responses = val
        return self

    def http2_only(self, val: bool) -> "Builder":
        """Require HTTP/2 for every connection."""
        self._config = replace(self._config, ver=Ver.HTTP2 if val else Ver.AUTO)
        return self

    def http2_max_send_buf_size(self, max_size: int) -> "Builder":
        """Set the HTTP/2 per-stream write buffer limit; at most 2**32 - 1."""
        if max_size > _U32_MAX:
            raise ValueError("max send buffer size must fit in 32 bits")
        self.http2_max_send_buf = max_size
        return self

    def retry_canceled_requests(self, val: bool) -> "Builder":
        """Retry requests canceled on a reused connection before starting."""
        self._config = replace(self._config, retry_canceled_requests=val)
        return self

    def set_host(self, val: bool) -> "Builder":
        """Add a Host header derived from the URI when missing."""
        self._config = replace(self._config, set_host=val)
        return self

    def build(self, connector: Optional[Connector] = None) -> Client:
        """Build a client; without a connector, plain TCP (and TLS for https) is used."""
        return Client(
            connector,
            config=self._config,
            pool_config=self._pool_config,
            h1_options=replace(self._h1),
        )


_ = sys  # keep stdlib import list stable for platform checks