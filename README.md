# legacyhttp

An asyncio HTTP client core. It handles what sits between a request and a
connection:

- checking the request's version and method: CONNECT is refused on HTTP/1.0,
  and only HTTP/1.0, HTTP/1.1 and HTTP/2 requests are accepted;
- working out the pool key, a scheme and authority pair, from an
  absolute-form URI, or from a bare authority for CONNECT (port 443 means
  `https`, any other port means `http`);
- rewriting the request target into origin-form, absolute-form (for proxied
  connections) or authority-form (for CONNECT);
- adding a `Host` header, leaving out the port when it is the default for the
  scheme;
- keeping idle connections per key so they can be used again, with a limit on
  idle connections per host and an idle timeout;
- retrying a request that was canceled on a reused connection.

It has no dependencies outside the standard library.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Using it

A `Client` (in `legacyhttp.client`) is made with a `Builder`:

```python
from legacyhttp.client import Client
from legacyhttp.messages import Request, Method

builder = Client.builder()
builder.pool_idle_timeout(30.0)        # seconds, a timedelta, or None
builder.pool_max_idle_per_host(4)      # 0 turns pooling off
client = builder.build()

async with client:
    response = await client.get("http://localhost:8080/a")
    print(response.status, response.header("content-type"), response.body)

    response = await client.request(
        Request(uri="http://localhost:8080/b", method=Method.POST, body=b"hello")
    )
```

`build()` with no connector opens plain TCP connections, with TLS for `https`,
and speaks HTTP/1.x over them. Responses are read whole: `Response.body` holds
the full body, whether it was sent with `Content-Length`, chunked, or until the
connection closed. `Client.close()` (or leaving `async with`) closes every
connection the client opened.

The builder's other settings are `http1_read_buf_exact_size`,
`http1_max_buf_size` (at least 8192), `http1_title_case_headers`,
`http1_max_headers` (100 by default), `http09_responses`, `http2_only`,
`http2_max_send_buf_size` (at most 2**32 - 1), `retry_canceled_requests` and
`set_host`. By default idle connections time out after 90 seconds, there is no
limit on idle connections per host, the `Host` header is added, and canceled
requests are retried.

### Connectors

`build(connector)` takes an async callable that is given the origin URI
(`scheme://authority/`). It may return:

- a `(reader, writer)` or `(reader, writer, ConnectInfo)` tuple of asyncio
  streams, which the client then drives as HTTP/1.x; or
- a connection object with `connected()` returning a `ConnectInfo`, an async
  `send_request(req)` returning a `Response`, and optionally `is_ready()` and
  `close()`.

`ConnectInfo` tells the client whether the connection goes through a proxy
(`is_proxied`, so requests are sent in absolute-form) and whether it is HTTP/2
(`alpn_h2`, so one pooled connection is shared by many requests). Its `extra`
mapping is copied into each response's `extensions`.

To see which connection a request used, put a callable under the
`CAPTURE_CONNECTION` key of `Request.extensions`; it is called with the
connection's `ConnectInfo`. Calling `ConnectInfo.poison()` keeps the connection
from being handed out of the pool again, so the next request opens a new one.

### URI helpers

`legacyhttp.uri` holds the request-target functions and can be used alone:

```python
from legacyhttp.uri import parse_uri, extract_domain, origin_form, get_non_default_port

uri = parse_uri("http://localhost:8080/foo/bar?x=1")
key, target_uri = extract_domain(uri, False)   # PoolKey("http", "localhost:8080"), uri
target = origin_form(uri)                      # Uri for /foo/bar?x=1
port = get_non_default_port(uri)               # 8080
```

`authority_form`, `absolute_form`, `domain_as_uri`, `set_scheme` and
`is_schema_secure` are in the same module.

### Pool and configuration

`legacyhttp.pool.IdlePool` keeps `PoolableService` entries per key, drops
expired or closed ones on `checkout`, and keeps a copy of a shared connection
in the pool when it hands one out. `legacyhttp.config` holds the `Config` and
`PoolConfig` dataclasses the builder fills in.

### Errors

Failures raise `legacyhttp.errors.ClientError`. Its `kind` is an `ErrorKind`;
`is_connect()` tells you whether the connector failed and `is_canceled()`
whether the request was canceled before it started. When the error came from a
connection, `connect_info` describes that connection.

## What it does not do

- It does not speak HTTP/2 itself. `http2_only` and `alpn_h2` only make the
  client treat connections as shared; the HTTP/2 connection object has to come
  from your connector. `http2_max_send_buf_size` is checked and stored but not
  used by the built-in connection.
- Request and response bodies are whole `bytes`; nothing is streamed.
- Protocol upgrades are not handed back to the caller: a `101` response ends
  the connection's reuse.
- There is no command-line program.