import pytest

from legacyhttp.messages import Method, Request, Response, Version
from legacyhttp.uri import Uri, parse_uri


def test_request_defaults():
    req = Request()
    assert req.method is Method.GET
    assert req.version is Version.HTTP_11
    assert req.uri == Uri()
    assert req.headers == {}
    assert req.body == b""


def test_request_parses_string_uri():
    req = Request(uri="http://127.0.0.1:3000/a")
    assert req.uri == parse_uri("http://127.0.0.1:3000/a")
    assert req.uri.path_and_query == "/a"


def test_request_coerces_method_string():
    req = Request(method="connect")
    assert req.method is Method.CONNECT
    assert Request(method="HEAD").method is Method.HEAD


def test_request_rejects_unknown_method():
    with pytest.raises(ValueError):
        Request(method="FROB")


def test_request_rejects_bad_uri():
    with pytest.raises(ValueError):
        Request(uri="")


def test_request_header_case_insensitive():
    req = Request(headers={"Host": "hyper.rs"})
    assert req.header("host") == "hyper.rs"
    assert req.header("HOST") == "hyper.rs"
    assert req.header("content-length") is None


def test_response_header_and_status():
    res = Response(status=101, headers={"Upgrade": "foobar"})
    assert res.status == 101
    assert res.header("upgrade") == "foobar"
    assert res.header("missing") is None


@pytest.mark.parametrize("status", [0, 99, 1000])
def test_response_rejects_invalid_status(status):
    with pytest.raises(ValueError):
        Response(status=status)


def test_version_wire_strings():
    assert str(Request(version=Version.HTTP_11).version) == "HTTP/1.1"
    assert str(Request(version=Version.HTTP_10).version) == "HTTP/1.0"


def test_method_string_roundtrip():
    for method in Method:
        assert Method(str(method)) is method