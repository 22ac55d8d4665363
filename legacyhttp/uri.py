"""URI model and the request-target forms used when sending requests."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*\Z")
_FORBIDDEN_AUTHORITY_CHARS = set('"<>\\^`{|}/?#')


def _split_host_port(authority: str) -> tuple[str, Optional[str]]:
    hostport = authority.rpartition("@")[2]
    if hostport.startswith("["):
        close = hostport.find("]")
        if close == -1:
            raise ValueError(f"invalid IPv6 authority: {authority!r}")
        host, rest = hostport[: close + 1], hostport[close + 1 :]
        if not rest:
            return host, None
        if not rest.startswith(":"):
            raise ValueError(f"invalid authority: {authority!r}")
        return host, rest[1:] or None
    host, sep, port = hostport.rpartition(":")
    if not sep:
        return hostport, None
    return host, port or None


def _validate_authority(authority: str) -> None:
    if not authority:
        raise ValueError("empty authority")
    if any(c in _FORBIDDEN_AUTHORITY_CHARS for c in authority):
        raise ValueError(f"invalid character in authority: {authority!r}")
    host, port = _split_host_port(authority)
    if not host:
        raise ValueError(f"missing host in authority: {authority!r}")
    if port is not None:
        if not port.isdigit() or not port.isascii():
            raise ValueError(f"invalid port in authority: {authority!r}")
        if int(port) > 65535:
            raise ValueError(f"port out of range in authority: {authority!r}")


@dataclass(frozen=True)
class Uri:
    """A request URI split into scheme, authority and path-and-query."""

    scheme: Optional[str] = None
    authority: Optional[str] = None
    path_and_query: Optional[str] = "/"

    @property
    def host(self) -> Optional[str]:
        """The host part of the authority, if there is one."""
        if self.authority is None:
            return None
        return _split_host_port(self.authority)[0]

    @property
    def path(self) -> str:
        """The path without the query string."""
        if not self.path_and_query:
            return "/" if self.scheme else ""
        return self.path_and_query.partition("?")[0]

    def port_number(self) -> Optional[int]:
        """The explicit port of the authority as an integer, or None."""
        if self.authority is None:
            return None
        port = _split_host_port(self.authority)[1]
        return int(port) if port is not None else None

    def __str__(self) -> str:
        out = ""
        if self.scheme:
            out += f"{self.scheme}://"
        if self.authority:
            out += self.authority
        if self.path_and_query:
            out += self.path_and_query
        return out


class PoolKey(NamedTuple):
    """Identifies a pool of connections to one origin."""

    scheme: str
    authority: str


def parse_uri(text: str) -> Uri:
    """Parse a URI in origin, absolute or authority form."""
    if not text:
        raise ValueError("empty URI")
    if any(c.isspace() or ord(c) < 0x20 or ord(c) == 0x7F for c in text):
        raise ValueError(f"invalid character in URI: {text!r}")
    text = text.partition("#")[0]
    if not text:
        raise ValueError("empty URI")
    if text == "*":
        return Uri(path_and_query="*")
    if text.startswith("/"):
        return Uri(path_and_query=text)

    scheme, sep, rest = text.partition("://")
    if sep:
        if not _SCHEME_RE.match(scheme):
            raise ValueError(f"invalid scheme: {scheme!r}")
        match = re.search(r"[/?]", rest)
        end = match.start() if match else len(rest)
        authority, path_and_query = rest[:end], rest[end:]
        _validate_authority(authority)
        if not path_and_query:
            path_and_query = "/"
        elif path_and_query.startswith("?"):
            path_and_query = "/" + path_and_query
        return Uri(scheme.lower(), authority, path_and_query)

    _validate_authority(text)
    return Uri(authority=text, path_and_query=None)


def origin_form(uri: Uri) -> Uri:
    """Reduce a URI to its path and query only."""
    if uri.path_and_query and uri.path_and_query != "/":
        return Uri(path_and_query=uri.path_and_query)
    return Uri()


def absolute_form(uri: Uri) -> Uri:
    """Keep the absolute form, except for HTTPS, which is sent in origin form."""
    if uri.scheme is None:
        raise ValueError("absolute_form needs a scheme")
    if uri.authority is None:
        raise ValueError("absolute_form needs an authority")
    # A proxy for HTTPS should have tunneled, so absolute-form is not sent.
    if uri.scheme == "https":
        return origin_form(uri)
    return uri


def authority_form(uri: Uri) -> Uri:
    """Reduce a URI to its authority, as used by CONNECT."""
    if uri.path_and_query is not None and uri.path_and_query != "/":
        logger.warning(
            "HTTP/1.1 CONNECT request stripping path: %r", uri.path_and_query
        )
    if uri.authority is None:
        raise ValueError("authority_form with relative uri")
    return Uri(authority=uri.authority, path_and_query=None)


def set_scheme(uri: Uri, scheme: str) -> Uri:
    """Give a scheme-less URI a scheme and a root path."""
    if uri.scheme is not None:
        raise ValueError("set_scheme expects no existing scheme")
    return Uri(scheme, uri.authority, "/")


def extract_domain(uri: Uri, is_http_connect: bool) -> tuple[PoolKey, Uri]:
    """Return the pool key for a URI and the URI to send.

    A CONNECT request may give only an authority; its scheme is then
    chosen from the port and set on the returned URI.
    """
    if uri.scheme is not None and uri.authority is not None:
        return PoolKey(uri.scheme, uri.authority), uri
    if uri.scheme is None and uri.authority is not None and is_http_connect:
        scheme = "https" if uri.port_number() == 443 else "http"
        return PoolKey(scheme, uri.authority), set_scheme(uri, scheme)
    logger.debug("Client requires absolute-form URIs, received: %r", uri)
    raise ValueError(f"client requires absolute-form URIs, received: {uri}")


def domain_as_uri(pool_key: PoolKey) -> Uri:
    """Build the root URI of a pool key's origin."""
    scheme, authority = pool_key
    return Uri(scheme, authority, "/")


def is_schema_secure(uri: Uri) -> bool:
    """True if the scheme is https or wss."""
    return uri.scheme in ("https", "wss")


def get_non_default_port(uri: Uri) -> Optional[int]:
    """Return the port unless it is the default one for the scheme."""
    port = uri.port_number()
    secure = is_schema_secure(uri)
    if (port == 443 and secure) or (port == 80 and not secure):
        return None
    return port