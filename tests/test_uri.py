import pytest

from legacyhttp.uri import (
    PoolKey,
    Uri,
    absolute_form,
    authority_form,
    domain_as_uri,
    extract_domain,
    get_non_default_port,
    is_schema_secure,
    origin_form,
    parse_uri,
    set_scheme,
)

ADDR = "127.0.0.1:3000"


def test_parse_absolute_uri():
    uri = parse_uri(f"http://{ADDR}/foo/bar")
    assert uri.scheme == "http"
    assert uri.authority == ADDR
    assert uri.path_and_query == "/foo/bar"
    assert uri.host == "127.0.0.1"
    assert uri.port_number() == 3000
    assert str(uri) == f"http://{ADDR}/foo/bar"


def test_parse_absolute_without_path_gets_slash():
    uri = parse_uri("https://hyper.rs")
    assert uri.path_and_query == "/"
    assert uri.port_number() is None
    assert str(uri) == "https://hyper.rs/"


def test_parse_authority_form():
    uri = parse_uri("hyper.rs:443")
    assert uri.scheme is None
    assert uri.authority == "hyper.rs:443"
    assert uri.port_number() == 443
    assert str(uri) == "hyper.rs:443"


def test_parse_origin_form():
    uri = parse_uri("/a")
    assert uri == Uri(path_and_query="/a")
    assert uri.host is None


def test_parse_ipv6_host():
    uri = parse_uri("http://[::1]:8080/up")
    assert uri.host == "[::1]"
    assert uri.port_number() == 8080


def test_parse_strips_fragment_and_keeps_query():
    uri = parse_uri("http://hyper.rs/a?x=1#frag")
    assert uri.path_and_query == "/a?x=1"


@pytest.mark.parametrize(
    "text",
    ["", "http://", "http://host:99999/", "http://host:abc/", "ht tp://x", "1http://x/"],
)
def test_parse_invalid(text):
    with pytest.raises(ValueError):
        parse_uri(text)


def test_default_uri_is_slash():
    assert str(Uri()) == "/"


def test_origin_form():
    assert origin_form(parse_uri(f"http://{ADDR}/b")) == parse_uri("/b")
    assert str(origin_form(parse_uri(f"http://{ADDR}/b"))) == "/b"
    assert origin_form(parse_uri(f"http://{ADDR}/")) == Uri()
    assert str(origin_form(parse_uri(f"http://{ADDR}/a?x=1"))) == "/a?x=1"


def test_absolute_form_keeps_http():
    uri = parse_uri(f"http://{ADDR}/foo/bar")
    assert str(absolute_form(uri)) == f"http://{ADDR}/foo/bar"


def test_absolute_form_https_uses_origin():
    assert str(absolute_form(parse_uri("https://hyper.rs/foo"))) == "/foo"


def test_absolute_form_requires_absolute():
    with pytest.raises(ValueError):
        absolute_form(parse_uri("/foo"))


def test_authority_form_strips_path():
    uri = parse_uri(f"http://{ADDR}/useless/path")
    result = authority_form(uri)
    assert str(result) == ADDR
    assert result.path_and_query is None


def test_authority_form_relative_raises():
    with pytest.raises(ValueError):
        authority_form(parse_uri("/useless"))


def test_extract_domain_absolute():
    uri = parse_uri(f"http://{ADDR}/a")
    key, out = extract_domain(uri, False)
    assert key == PoolKey("http", ADDR)
    assert out == uri


def test_extract_domain_connect_443_is_https():
    key, out = extract_domain(parse_uri("hyper.rs:443"), True)
    assert key == PoolKey("https", "hyper.rs:443")
    assert str(out) == "https://hyper.rs:443/"


def test_extract_domain_connect_other_port_is_http():
    key, out = extract_domain(parse_uri(ADDR), True)
    assert key == PoolKey("http", ADDR)
    assert out.scheme == "http"


def test_extract_domain_requires_absolute():
    with pytest.raises(ValueError):
        extract_domain(parse_uri(ADDR), False)
    with pytest.raises(ValueError):
        extract_domain(parse_uri("/a"), True)


def test_domain_as_uri_roundtrip():
    key = PoolKey("https", "hyper.rs:443")
    uri = domain_as_uri(key)
    assert str(uri) == "https://hyper.rs:443/"
    assert extract_domain(uri, False)[0] == key


def test_set_scheme():
    assert str(set_scheme(parse_uri("hyper.rs:443"), "https")) == "https://hyper.rs:443/"
    with pytest.raises(ValueError):
        set_scheme(parse_uri("http://hyper.rs/"), "https")


@pytest.mark.parametrize(
    "text,expected",
    [
        ("https://hyper.rs:443/", None),
        ("http://hyper.rs:80/", None),
        ("wss://hyper.rs:443/", None),
        ("http://hyper.rs:443/", 443),
        ("https://hyper.rs:80/", 80),
        ("http://127.0.0.1:3000/", 3000),
        ("http://hyper.rs/", None),
    ],
)
def test_get_non_default_port(text, expected):
    assert get_non_default_port(parse_uri(text)) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("https://hyper.rs/", True),
        ("wss://hyper.rs/", True),
        ("http://hyper.rs/", False),
        ("ws://hyper.rs/", False),
        ("/a", False),
    ],
)
def test_is_schema_secure(text, expected):
    assert is_schema_secure(parse_uri(text)) is expected