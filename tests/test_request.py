"""Tests for the transport request context."""

import pytest

from patternroute import RequestContext, Router
from patternroute.core.request import base_path_from_script, normalize_header_name


@pytest.mark.parametrize(
    "key, expected",
    [
        ("HTTP_HOST", "Host"),
        ("HTTP_X_FORWARDED_FOR", "X-Forwarded-For"),
        ("HTTP_ACCEPT_LANGUAGE", "Accept-Language"),
        ("CONTENT_TYPE", "Content-Type"),
        ("HTTP_X_HTTP_METHOD_OVERRIDE", "X-HTTP-Method-Override"),
    ],
)
def test_normalize_header_name(key, expected):
    assert normalize_header_name(key) == expected


@pytest.mark.parametrize(
    "script, expected",
    [
        ("/index.py", "/"),
        ("/shop/index.py", "/shop/"),
        ("/a/b/app.wsgi", "/a/b/"),
        ("", "/"),
    ],
)
def test_base_path_from_script(script, expected):
    assert base_path_from_script(script) == expected


def test_from_environ_uses_path_info_under_mount_point():
    environ = {
        "REQUEST_METHOD": "POST",
        "REQUEST_URI": "/shop/cart?item=3",
        "PATH_INFO": "/cart",
        "QUERY_STRING": "item=3",
        "SCRIPT_NAME": "/shop",
        "SERVER_PROTOCOL": "HTTP/1.0",
        "HTTP_HOST": "example.org",
        "HTTP_X_REQUESTED_WITH": "XMLHttpRequest",
        "CONTENT_TYPE": "application/json",
        "CONTENT_LENGTH": "12",
        "wsgi.url_scheme": "http",
    }

    request = RequestContext.from_environ(environ)

    assert request.method == "POST"
    assert request.uri == "/cart?item=3"
    assert request.protocol == "HTTP/1.0"
    assert request.headers == {
        "Host": "example.org",
        "X-Requested-With": "XMLHttpRequest",
        "Content-Type": "application/json",
        "Content-Length": "12",
    }
    assert request.status is None


def test_mounted_app_matches_routes_relative_to_mount_point():
    seen = []
    router = Router()
    router.get("/foo", lambda: seen.append("foo"))

    request = RequestContext.from_environ(
        {
            "REQUEST_METHOD": "GET",
            "REQUEST_URI": "/app/foo",
            "SCRIPT_NAME": "/app",
            "PATH_INFO": "/foo",
        }
    )

    assert router.run(request) is True
    assert seen == ["foo"]
    assert request.status is None


def test_from_environ_falls_back_to_request_uri():
    request = RequestContext.from_environ(
        {"REQUEST_METHOD": "GET", "REQUEST_URI": "/shop/products/8?ref=nav"}
    )

    assert request.uri == "/shop/products/8?ref=nav"


def test_from_environ_rebuilds_uri_from_path_info():
    request = RequestContext.from_environ(
        {"REQUEST_METHOD": "GET", "PATH_INFO": "/users/4", "QUERY_STRING": "full=1"}
    )

    assert request.uri == "/users/4?full=1"
    assert request.protocol == "HTTP/1.1"
    assert request.headers == {}


def test_from_environ_defaults():
    request = RequestContext.from_environ({})

    assert request.method == "GET"
    assert request.uri == "/"


def test_signal_not_found_uses_request_protocol():
    request = RequestContext(method="GET", uri="/", protocol="HTTP/2")

    assert request.not_found is False
    request.signal_not_found()

    assert request.status == "HTTP/2 404 Not Found"
    assert request.not_found is True


def test_router_runs_environ_request():
    seen = []
    router = Router(script_name="/shop/index.py")
    router.get("/products/[i]", lambda ident: seen.append(ident))

    request = RequestContext.from_environ(
        {
            "REQUEST_METHOD": "GET",
            "REQUEST_URI": "/shop/products/8?ref=nav",
            "SCRIPT_NAME": "/shop/index.py",
        }
    )

    assert router.run(request) is True
    assert seen == ["8"]
    assert request.status is None
