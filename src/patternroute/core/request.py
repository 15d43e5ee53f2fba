"""Request context handed to the router by the transport.

The router never reads a server environment by itself: the transport builds a
``RequestContext`` (directly or from a WSGI environ) and passes it to
``Router.run()``. ``uri`` is the path as seen by the application: under WSGI
that is ``PATH_INFO``, already relative to the mount point in ``SCRIPT_NAME``;
front-controller setups that only provide ``REQUEST_URI`` configure the router
with ``script_name``/``server_base_path`` instead.

When nothing matched and no not-found handler is set, the router calls
``signal_not_found()`` and the transport reads ``status``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

__all__ = ["RequestContext", "base_path_from_script", "normalize_header_name"]

_EXTRA_HEADER_KEYS = ("CONTENT_TYPE", "CONTENT_LENGTH")


def normalize_header_name(key: str) -> str:
    """``HTTP_X_FORWARDED_FOR`` → ``X-Forwarded-For``; ``Http`` stays ``HTTP``."""
    if key.startswith("HTTP_"):
        key = key[5:]
    words = key.replace("_", " ").lower().title().split(" ")
    return "-".join("HTTP" if word == "Http" else word for word in words)


def base_path_from_script(script_name: str) -> str:
    """Directory of the front script followed by a slash (``/app/index.py`` → ``/app/``)."""
    return "/".join(script_name.split("/")[:-1]) + "/"


@dataclass
class RequestContext:
    method: str
    uri: str
    headers: Dict[str, str] = field(default_factory=dict)
    protocol: str = "HTTP/1.1"
    status: Optional[str] = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "RequestContext":
        """Build a context from a WSGI/CGI style environ mapping."""
        if "PATH_INFO" in environ:
            uri = str(environ["PATH_INFO"])
            query = environ.get("QUERY_STRING")
            if query:
                uri = f"{uri}?{query}"
        else:
            uri = str(environ.get("REQUEST_URI", ""))
        headers: Dict[str, str] = {}
        for key, value in environ.items():
            if key.startswith("HTTP_") or key in _EXTRA_HEADER_KEYS:
                headers[normalize_header_name(key)] = str(value)
        return cls(
            method=str(environ.get("REQUEST_METHOD", "GET")),
            uri=uri or "/",
            headers=headers,
            protocol=str(environ.get("SERVER_PROTOCOL", "HTTP/1.1")),
        )

    def signal_not_found(self) -> None:
        self.status = f"{self.protocol} 404 Not Found"

    @property
    def not_found(self) -> bool:
        return self.status is not None and self.status.endswith("404 Not Found")
