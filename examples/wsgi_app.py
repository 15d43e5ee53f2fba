"""
Example showing how to serve PatternRoute routes from a WSGI application.

Run with ``python examples/wsgi_app.py`` and open http://localhost:8000/.
"""

from __future__ import annotations

import logging
from wsgiref.simple_server import make_server

from patternroute import RequestContext, Router, controller, route

BODY: list[str] = []


@controller()
class ProductController:
    @route("GET", "/products/[i]", name="product")
    def show(self, ident):
        BODY.append(f"product #{ident}")

    @route("POST|PUT", "/products/[i]", logging_before=False)
    def save(self, ident):
        BODY.append(f"saved #{ident}")


def build_router() -> Router:
    router = Router("shop").plug("logging")
    router.before("GET|POST", "/admin/[**]", lambda rest: BODY.append(f"auth check for {rest}"))
    router.get("/", lambda: BODY.append("home"))
    router.get("/category(/[a])?", lambda name=None, *_: BODY.append(f"category {name or 'all'}"))

    def admin_routes():
        router.get("/", lambda: BODY.append("dashboard"))
        router.get("/users/[i]", lambda ident: BODY.append(f"admin user {ident}"))

    router.group("/admin", admin_routes)
    router.add_controller(ProductController)
    router.set_not_found(lambda: BODY.append("nothing here"))
    return router


ROUTER = build_router()


def application(environ, start_response):
    BODY.clear()
    request = RequestContext.from_environ(environ)
    found = ROUTER.run(request)
    status = "200 OK" if found else "404 Not Found"
    start_response(status, [("Content-Type", "text/plain; charset=utf-8")])
    return ["\n".join(BODY).encode("utf-8")]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    with make_server("", 8000, application) as server:
        server.serve_forever()
