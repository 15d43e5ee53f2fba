"""Router with middleware plugins (source of truth).

``Router`` is a ``BaseRouter`` whose route entries can be wrapped by plugins.
Plugins change how a matched entry runs, never which entries match.

Registry
--------
``Router.register_plugin(plugin_class, name=None)`` stores a ``BasePlugin``
subclass in a process-wide table under ``name`` or its ``plugin_code``.
Anything else raises ``TypeError``; an empty code raises ``ValueError``, and
so does a different class under a taken code unless ``name`` is given, which
replaces. ``available_plugins()`` returns a copy of the table; its keys are the
prefixes recognised in registration options (``logging_before=False``).

Attaching
---------
``plug(code, **config)`` instantiates the plugin for this router, validates its
settings for every existing entry, calls ``on_entry`` on them, rebuilds their
call chains and returns the router. Unknown codes raise ``ValueError``.
Entries registered later go through the same steps. ``router.<code>`` returns
the attached plugin, or raises ``AttributeError``.

Call chain
----------
For each entry the chain is built once: the first plugged plugin is the
outermost layer, the handler the innermost. Each layer consults the plugin's
settings for the entry at call time and steps aside when ``enabled`` is off.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Type

from patternroute.core.base_router import BaseRouter
from patternroute.plugins._base_plugin import BasePlugin, RouteEntry

__all__ = ["Router"]

_PLUGIN_REGISTRY: Dict[str, Type[BasePlugin]] = {}


class Router(BaseRouter):
    """Router whose entries run through attached plugins."""

    __slots__ = BaseRouter.__slots__ + ("_plugins",)

    def __init__(self, *args: Any, **kwargs: Any):
        self._plugins: Dict[str, BasePlugin] = {}
        super().__init__(*args, **kwargs)

    @classmethod
    def register_plugin(cls, plugin_class: Type[BasePlugin], name: Optional[str] = None) -> None:
        if not (isinstance(plugin_class, type) and issubclass(plugin_class, BasePlugin)):
            raise TypeError(f"{plugin_class!r} is not a BasePlugin subclass")
        code = name or plugin_class.plugin_code
        if not code:
            raise ValueError(f"Plugin {plugin_class.__name__} defines no plugin_code")
        current = _PLUGIN_REGISTRY.get(code)
        if name is None and current is not None and current is not plugin_class:
            raise ValueError(f"Plugin code '{code}' already registered by {current.__name__}")
        _PLUGIN_REGISTRY[code] = plugin_class

    @staticmethod
    def available_plugins() -> Dict[str, Type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, code: str, **config: Any) -> "Router":
        """Attach the plugin registered as ``code`` to this router."""
        if not isinstance(code, str):
            raise TypeError(f"Plugins are attached by code, got {type(code).__name__}")
        plugin_class = _PLUGIN_REGISTRY.get(code)
        if plugin_class is None:
            known = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(f"Unknown plugin '{code}'. Available plugins: {known}")
        plugin = plugin_class(self, name=code, **config)
        entries = self._all_entries()
        for entry in entries:
            plugin.settings(entry)
        self._plugins[code] = plugin
        for entry in entries:
            self._attach(plugin, entry)
        self._handlers = {entry: self._wrap_handler(entry, entry.handler.invoke) for entry in entries}
        return self

    def iter_plugins(self) -> List[BasePlugin]:  # type: ignore[override]
        return list(self._plugins.values())

    def __getattr__(self, name: str) -> Any:
        try:
            return self._plugins[name]
        except KeyError:
            raise AttributeError(
                f"No plugin named '{name}' attached to router '{self.name}'"
            ) from None

    def _all_entries(self) -> List[RouteEntry]:
        return [*self.entries("before"), *self.entries("main")]

    def _attach(self, plugin: BasePlugin, entry: RouteEntry) -> None:
        plugin.settings(entry)
        entry.plugins.append(plugin.name)
        plugin.on_entry(entry)

    def _after_entry_registered(self, entry: RouteEntry) -> None:  # type: ignore[override]
        for plugin in self._plugins.values():
            self._attach(plugin, entry)

    def _wrap_handler(self, entry: RouteEntry, call_next: Callable) -> Callable:  # type: ignore[override]
        chain = call_next
        for plugin in reversed(list(self._plugins.values())):
            chain = _layer(plugin, entry, chain)
        return chain

    def _describe_entry_extra(  # type: ignore[override]
        self, entry: RouteEntry, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:
        described: Dict[str, Dict[str, Any]] = {}
        for code, plugin in self._plugins.items():
            info: Dict[str, Any] = {"settings": plugin.settings(entry).model_dump()}
            extra = plugin.describe(entry)
            if extra:
                info["metadata"] = extra
            described[code] = info
        return {"plugins": described} if described else {}


def _layer(plugin: BasePlugin, entry: RouteEntry, inner: Callable) -> Callable:
    wrapped = plugin.wrap(entry, inner)

    def layer(params):
        if plugin.settings(entry).enabled:
            return wrapped(params)
        return inner(params)

    return layer
