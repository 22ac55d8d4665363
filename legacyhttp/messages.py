"""HTTP request and response messages used by the client."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from legacyhttp.uri import Uri, parse_uri


class Version(enum.Enum):
    """HTTP protocol versions."""

    HTTP_09 = "HTTP/0.9"
    HTTP_10 = "HTTP/1.0"
    HTTP_11 = "HTTP/1.1"
    HTTP_2 = "HTTP/2.0"
    HTTP_3 = "HTTP/3.0"

    def __str__(self) -> str:
        return self.value


class Method(str, enum.Enum):
    """Standard HTTP request methods."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"

    def __str__(self) -> str:
        return self.value


def _lookup_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    wanted = name.lower()
    return next(
        (value for key, value in headers.items() if key.lower() == wanted),
        None,
    )


@dataclass
class Request:
    """An outgoing HTTP request."""

    uri: Union[Uri, str] = field(default_factory=Uri)
    method: Union[Method, str] = Method.GET
    version: Version = Version.HTTP_11
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    extensions: dict[Any, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.uri, str):
            self.uri = parse_uri(self.uri)
        if not isinstance(self.method, Method):
            self.method = Method(str(self.method).upper())

    def header(self, name: str) -> Optional[str]:
        """Return the value of a header, matched case-insensitively, or None."""
        return _lookup_header(self.headers, name)


@dataclass
class Response:
    """An HTTP response."""

    status: int = 200
    version: Version = Version.HTTP_11
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    extensions: dict[Any, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 100 <= self.status <= 999:
            raise ValueError(f"invalid status code: {self.status}")

    def header(self, name: str) -> Optional[str]:
        """Return the value of a header, matched case-insensitively, or None."""
        return _lookup_header(self.headers, name)