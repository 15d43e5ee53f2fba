"""Plugin-free router runtime (source of truth).

If this file vanished, rebuild it from this description. The module exposes
:class:`BaseRouter`, which owns the route tables, registers routes under the
current group prefix and dispatches requests. Subclasses add middleware but
must preserve these semantics.

Constructor and settings
------------------------
Constructor signature::

    BaseRouter(name=None, *, base_route=None, server_base_path=None,
               script_name=None, subpatterns=None, controllers=None)

- Settings that are not ``None`` are merged over ``DEFAULT_SETTINGS`` with
  ``SmartOptions``.
- ``subpatterns`` replaces the shorthand table wholesale.
- ``server_base_path`` defaults to the directory of ``script_name`` plus a
  trailing slash. It is computed here, once, and never changes.
- ``controllers`` is the ``ControllerRegistry`` used for ``"Controller@method"``
  handlers (default: the process-wide ``default_registry``).

Registration
------------
``before(methods, pattern, handler, *, name=None, **options)`` and
``match(...)`` compile ``pattern`` against the active group prefix, split
``methods`` on ``|`` and append one ``RouteEntry`` per method token to the
before/main table. Tokens are used verbatim. ``get``/``post``/``put``/``delete``
register a single method, ``any`` registers ``GET|POST|PUT|DELETE``.

- ``handler`` is a callable, a ``HandlerRef`` or a ``"Controller@method"``
  string; other values raise ``TypeError``, malformed references ``ValueError``.
- ``options`` shaped ``<plugin>_<key>`` for a registered plugin are collected
  under ``metadata["plugin_config"][plugin][key]``; the rest is plain metadata.
- Entry names default to ``"<METHOD> <compiled pattern>"`` and need not be
  unique.
- ``group(prefix, fn)`` appends ``prefix`` to the group prefix, calls ``fn()``
  and restores the previous prefix even when ``fn`` raises. ``prefixed(prefix)``
  is the same scope as a context manager.
- ``set_not_found(handler)`` stores the fallback; last write wins.
- ``add_controller(cls, name=None)`` registers ``cls`` in the controller
  registry, then registers every method marked with ``@route`` (reversed MRO,
  first occurrence wins) as a ``"Name@method"`` handler.
- ``freeze()`` replaces the tables with read-only snapshots; registering after
  it raises ``RuntimeError``.

Dispatch
--------
``dispatch(method, path, *, request=None)``:

1. ``normalize_path``: drop the query string, drop the server base path, trim
   slashes and prepend one (``"/"`` for the root).
2. Run every before entry of ``method`` whose ``^pattern$`` matches.
3. Run every matching main entry and count them.
4. Nothing counted: call the not-found handler when it is callable, else call
   ``request.signal_not_found()`` (when a request is given). Return ``NotFound``.
5. Otherwise return ``Dispatched(count)``.

Captured groups become positional parameters, slash-trimmed, ``None`` when the
group did not participate. An entry whose pattern does not compile is logged
and skipped. Handlers are resolved before they run: an entry whose controller
cannot be resolved is logged, not counted, and the walk continues; after both
tables the dispatcher raises one ``HandlerResolutionError`` carrying all such
failures (the not-found step is skipped in that case). Exceptions raised by a
running handler, including a ``HandlerResolutionError`` of its own, propagate
unchanged.

``run(request)`` dispatches ``request.method`` / ``request.uri`` and returns
``True`` when a main route ran.

Hooks for subclasses
--------------------
- ``_wrap_handler(entry, call_next)``: wrap the ``call_next(params)`` callable.
- ``_after_entry_registered(entry)``: invoked for a new entry before it is
  added to its table; raising aborts the registration.
- ``_describe_entry_extra(entry, info)``: extend ``members()`` output.

Default implementations are no-ops/passthrough.
"""

from __future__ import annotations

import inspect
import logging
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from smartseeds import SmartOptions
from smartseeds.dict_utils import dictExtract

from patternroute.plugins._base_plugin import RouteEntry

from .controllers import ControllerRegistry, default_registry
from .errors import HandlerResolutionError, PatternCompilationFailure
from .handlers import ControllerHandler, FunctionHandler, HandlerRef, parse_reference
from .outcome import Dispatched, MatchOutcome, NotFound
from .patterns import DEFAULT_SUBPATTERNS, compile_pattern, extract_params
from .request import RequestContext, base_path_from_script

__all__ = ["BaseRouter", "DEFAULT_SETTINGS", "ANY_METHODS", "TARGET_ATTR_NAME"]

TARGET_ATTR_NAME = "__patternroute_targets__"
ANY_METHODS = "GET|POST|PUT|DELETE"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "base_route": "",
    "server_base_path": None,
    "script_name": "",
    "subpatterns": DEFAULT_SUBPATTERNS,
}

logger = logging.getLogger("patternroute")


class BaseRouter:
    """Plugin-free router: route tables, group prefixes and dispatch.

    Responsibilities:
    - compile and store before/main routes per HTTP method
    - scope registrations under group prefixes
    - match normalized paths and invoke handlers in registration order
    - expose route tables for introspection
    """

    __slots__ = (
        "name",
        "_base_route",
        "_server_base_path",
        "_subpatterns",
        "_controllers",
        "_before_routes",
        "_routes",
        "_handlers",
        "_not_found",
        "_frozen",
    )

    def __init__(
        self,
        name: Optional[str] = None,
        *,
        base_route: Optional[str] = None,
        server_base_path: Optional[str] = None,
        script_name: Optional[str] = None,
        subpatterns: Optional[Mapping[str, str]] = None,
        controllers: Optional[ControllerRegistry] = None,
    ) -> None:
        incoming = {
            "base_route": base_route,
            "server_base_path": server_base_path,
            "script_name": script_name,
            "subpatterns": subpatterns,
        }
        opts = SmartOptions(incoming, defaults=DEFAULT_SETTINGS, ignore_none=True)
        self.name = name
        self._base_route: str = opts.base_route or ""
        self._subpatterns: Dict[str, str] = dict(opts.subpatterns)
        base_path = opts.server_base_path
        if base_path is None:
            base_path = base_path_from_script(opts.script_name or "")
        self._server_base_path: str = base_path
        self._controllers = controllers if controllers is not None else default_registry
        self._before_routes: Dict[str, List[RouteEntry]] = {}
        self._routes: Dict[str, List[RouteEntry]] = {}
        self._handlers: Dict[RouteEntry, Callable] = {}
        self._not_found: Optional[Callable] = None
        self._frozen = False

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    @property
    def base_route(self) -> str:
        """Group prefix applied to routes registered right now."""
        return self._base_route

    @property
    def server_base_path(self) -> str:
        return self._server_base_path

    @property
    def subpatterns(self) -> Dict[str, str]:
        return dict(self._subpatterns)

    @property
    def controllers(self) -> ControllerRegistry:
        return self._controllers

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def before(
        self, methods: str, pattern: str, handler: Any, *, name: Optional[str] = None, **options: Any
    ) -> "BaseRouter":
        """Register middleware run before the main routes of matching requests."""
        self._register("before", methods, pattern, handler, name=name, options=options)
        return self

    def match(
        self, methods: str, pattern: str, handler: Any, *, name: Optional[str] = None, **options: Any
    ) -> "BaseRouter":
        """Register a main route for one or more ``|``-separated methods."""
        self._register("main", methods, pattern, handler, name=name, options=options)
        return self

    def any(self, pattern: str, handler: Any, **options: Any) -> "BaseRouter":
        return self.match(ANY_METHODS, pattern, handler, **options)

    def get(self, pattern: str, handler: Any, **options: Any) -> "BaseRouter":
        return self.match("GET", pattern, handler, **options)

    def post(self, pattern: str, handler: Any, **options: Any) -> "BaseRouter":
        return self.match("POST", pattern, handler, **options)

    def put(self, pattern: str, handler: Any, **options: Any) -> "BaseRouter":
        return self.match("PUT", pattern, handler, **options)

    def delete(self, pattern: str, handler: Any, **options: Any) -> "BaseRouter":
        return self.match("DELETE", pattern, handler, **options)

    def group(self, prefix: str, fn: Callable[[], Any]) -> "BaseRouter":
        """Register the routes created by ``fn()`` under ``prefix``."""
        with self.prefixed(prefix):
            fn()
        return self

    @contextmanager
    def prefixed(self, prefix: str) -> Iterator["BaseRouter"]:
        previous = self._base_route
        self._base_route = previous + prefix
        try:
            yield self
        finally:
            self._base_route = previous

    def set_not_found(self, handler: Optional[Callable]) -> "BaseRouter":
        """Set the function called when no main route matches."""
        self._not_found = handler
        return self

    @property
    def not_found_handler(self) -> Optional[Callable]:
        return self._not_found

    def add_controller(self, controller_class: type, name: Optional[str] = None) -> "BaseRouter":
        """Register ``controller_class`` and the routes marked on its methods."""
        key = name or controller_class.__name__
        self._controllers.register(controller_class, key)
        for func, marker in self._iter_marked_methods(controller_class):
            kind = "before" if marker.pop("before", False) else "main"
            methods = marker.pop("methods")
            pattern = marker.pop("pattern")
            entry_name = marker.pop("entry_name", None)
            self._register(
                kind, methods, pattern, f"{key}@{func.__name__}", name=entry_name, options=marker
            )
        return self

    def freeze(self) -> "BaseRouter":
        """Turn the route tables into read-only snapshots."""
        if self._frozen:
            return self
        self._before_routes = MappingProxyType(
            {method: tuple(entries) for method, entries in self._before_routes.items()}
        )  # type: ignore[assignment]
        self._routes = MappingProxyType(
            {method: tuple(entries) for method, entries in self._routes.items()}
        )  # type: ignore[assignment]
        self._frozen = True
        return self

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("Router is frozen: routes can no longer be registered")

    def _register(
        self,
        kind: str,
        methods: str,
        pattern: str,
        handler: Any,
        *,
        name: Optional[str],
        options: Dict[str, Any],
    ) -> None:
        self._ensure_mutable()
        handler_ref = self._coerce_handler(handler)
        compiled = compile_pattern(pattern, self._base_route, self._subpatterns)
        metadata, plugin_options = self._split_plugin_options(options)
        if plugin_options:
            metadata["plugin_config"] = plugin_options
        table = self._before_routes if kind == "before" else self._routes
        for method in methods.split("|"):
            entry = RouteEntry(
                name=name or f"{method} {compiled}",
                method=method,
                kind=kind,
                raw_pattern=pattern,
                pattern=compiled,
                handler=handler_ref,
                router=self,
                metadata=dict(metadata),
            )
            self._after_entry_registered(entry)
            self._handlers[entry] = self._wrap_handler(entry, entry.handler.invoke)
            table.setdefault(method, []).append(entry)

    def _coerce_handler(self, handler: Any) -> HandlerRef:
        if isinstance(handler, HandlerRef):
            return handler
        if isinstance(handler, str):
            if "@" not in handler:
                raise TypeError(
                    f"String handlers must be 'Controller@method' references, got {handler!r}"
                )
            controller, action = parse_reference(handler)
            return ControllerHandler(controller, action, self._controllers)
        if callable(handler):
            return FunctionHandler(handler)
        raise TypeError(f"Unsupported route handler: {handler!r}")

    def _split_plugin_options(
        self, options: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], Dict[str, Dict[str, Any]]]:
        """Separate ``<plugin>_<key>`` options of registered plugins from plain metadata."""
        from patternroute.core.router import Router

        remaining = dict(options)
        plugin_options: Dict[str, Dict[str, Any]] = {}
        for code in Router.available_plugins():
            extracted = dictExtract(remaining, f"{code}_", pop=True)
            if extracted:
                plugin_options[code] = extracted
        return remaining, plugin_options

    @staticmethod
    def _iter_marked_methods(cls: type) -> Iterator[Tuple[Callable, Dict[str, Any]]]:
        seen: set[int] = set()
        for base in reversed(cls.__mro__):
            for value in vars(base).values():
                if not inspect.isfunction(value) or id(value) in seen:
                    continue
                seen.add(id(value))
                for marker in getattr(value, TARGET_ATTR_NAME, None) or []:
                    yield value, dict(marker)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def normalize_path(self, path: str) -> str:
        """Canonical request path: ``/`` or ``/segment...`` without trailing slash."""
        path = path.split("?", 1)[0]
        base = self._server_base_path
        if base and f"{path}/".startswith(base):
            path = path[len(base) :]
        return "/" + path.strip("/")

    def dispatch(
        self, method: str, path: str, *, request: Optional[RequestContext] = None
    ) -> MatchOutcome:
        """Run matching before routes, then matching main routes, for a request."""
        uri = self.normalize_path(path)
        errors: List[HandlerResolutionError] = []

        before_entries = self._before_routes.get(method)
        if before_entries:
            self._process(before_entries, uri, errors)

        matched = 0
        main_entries = self._routes.get(method)
        if main_entries:
            matched = self._process(main_entries, uri, errors)

        if errors:
            raise HandlerResolutionError(
                f"{len(errors)} handler(s) could not be resolved for {method} {uri}",
                errors=errors,
                matched=matched,
            )

        if matched == 0:
            self._handle_not_found(method, uri, request)
            return NotFound()
        return Dispatched(matched)

    def run(self, request: RequestContext) -> bool:
        """Dispatch a transport request; ``True`` when a main route ran."""
        return bool(self.dispatch(request.method, request.uri, request=request))

    def _process(
        self, entries: Sequence[RouteEntry], uri: str, errors: List[HandlerResolutionError]
    ) -> int:
        processed = 0
        for entry in entries:
            params = self._match_entry(entry, uri)
            if params is None:
                continue
            logger.debug("%s route %r matched %s", entry.kind, entry.name, uri)
            try:
                entry.handler.resolve()
            except HandlerResolutionError as exc:
                logger.error("Cannot resolve handler %s: %s", entry.handler.describe(), exc)
                errors.append(exc)
                continue
            self._handlers[entry](params)
            processed += 1
        return processed

    def _match_entry(self, entry: RouteEntry, uri: str) -> Optional[List[Optional[str]]]:
        try:
            regex = entry.regex
        except PatternCompilationFailure as exc:
            logger.warning("Skipping route %r: %s", entry.name, exc)
            return None
        found = regex.match(uri)
        if found is None:
            return None
        return extract_params(found)

    def _handle_not_found(
        self, method: str, uri: str, request: Optional[RequestContext]
    ) -> None:
        logger.debug("No route matched %s %s", method, uri)
        handler = self._not_found
        if handler is not None and callable(handler):
            handler()
        elif request is not None:
            request.signal_not_found()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def entries(self, kind: str = "main") -> Tuple[RouteEntry, ...]:
        """Registered entries of one table, grouped by method in insertion order."""
        table = self._before_routes if kind == "before" else self._routes
        return tuple(entry for method_entries in table.values() for entry in method_entries)

    def routes(self, kind: str = "main") -> List[Tuple[str, str, str]]:
        """``(method, compiled pattern, name)`` triples of one table."""
        return [(entry.method, entry.pattern, entry.name) for entry in self.entries(kind)]

    def members(self) -> Dict[str, Any]:
        """Describe both tables as ``{"before": {method: [...]}, "routes": {...}}``."""
        return {
            "name": self.name,
            "router": self,
            "before": self._describe_table("before"),
            "routes": self._describe_table("main"),
        }

    def _describe_table(self, kind: str) -> Dict[str, List[Dict[str, Any]]]:
        described: Dict[str, List[Dict[str, Any]]] = {}
        for entry in self.entries(kind):
            info = {
                "name": entry.name,
                "pattern": entry.pattern,
                "raw_pattern": entry.raw_pattern,
                "handler": entry.handler.describe(),
                "metadata": entry.metadata,
            }
            info.update(self._describe_entry_extra(entry, info))
            described.setdefault(entry.method, []).append(info)
        return described

    # ------------------------------------------------------------------
    # Hooks (no-op for BaseRouter)
    # ------------------------------------------------------------------
    def iter_plugins(self) -> List[Any]:  # pragma: no cover - base router has no plugins
        return []

    def _wrap_handler(
        self, entry: RouteEntry, call_next: Callable
    ) -> Callable:  # pragma: no cover - overridden by plugin routers
        return call_next

    def _after_entry_registered(
        self, entry: RouteEntry
    ) -> None:  # pragma: no cover - hook for subclasses
        return None

    def _describe_entry_extra(
        self, entry: RouteEntry, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:  # pragma: no cover - overridden when plugins present
        return {}
