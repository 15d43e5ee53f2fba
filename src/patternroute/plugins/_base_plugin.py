"""Route entries and the plugin contract (source of truth).

If this module were wiped except for this docstring, the implementation must be
reconstructed exactly as described below.

``RouteEntry``
    Frozen dataclass created once per (method, pattern) registration. Fields:
    ``name`` (default ``"<METHOD> <pattern>"``), ``method`` (matched verbatim),
    ``kind`` (``"before"`` or ``"main"``), ``raw_pattern`` (as written),
    ``pattern`` (compiled, unanchored), ``handler`` (``HandlerRef``), ``router``,
    ``plugins`` (codes of the plugins wrapping it, in plug order) and
    ``metadata`` (registration options; plugin options sit under
    ``metadata["plugin_config"][code]``). ``regex`` compiles ``^pattern$``
    lazily and caches it; an invalid expression raises
    ``PatternCompilationFailure``. Entries compare by identity.

``BasePlugin``
    Middleware attached to one router and applied to each of its entries.
    Subclasses set ``plugin_code``/``plugin_description`` and may declare a
    ``config_model``: a ``PluginConfig`` subclass (pydantic, unknown keys
    rejected) listing the accepted settings with their defaults.

    Settings for an entry are merged from, lowest first:

    1. the model defaults;
    2. router-level values given to ``plug()`` or ``configure()``;
    3. the entry's registration options (``<code>_<key>=...``);
    4. values set with ``configure(_target="<entry name>[,<entry name>...]")``.

    Every layer accepts ``flags="before:off,after"`` as a shorthand for
    booleans. ``configure`` validates its values immediately (pydantic
    ``ValidationError``); ``settings(entry)`` validates the merged result and
    returns a model instance.

    Hooks: ``on_entry(entry)`` once per entry, ``wrap(entry, call_next)``
    returning a ``callable(params)``, ``describe(entry)`` for ``members()``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict

from patternroute.core.errors import PatternCompilationFailure
from patternroute.core.handlers import HandlerRef
from patternroute.core.patterns import anchor

__all__ = ["BasePlugin", "PluginConfig", "RouteEntry", "parse_flags"]


@dataclass(frozen=True, eq=False)
class RouteEntry:
    """A registered (method, pattern, handler) triple."""

    name: str
    method: str
    kind: str
    raw_pattern: str
    pattern: str
    handler: HandlerRef
    router: Any
    plugins: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @cached_property
    def regex(self) -> "re.Pattern[str]":
        try:
            return anchor(self.pattern)
        except re.error as exc:
            raise PatternCompilationFailure(self.pattern, exc) from exc

    def plugin_options(self, code: str) -> Dict[str, Any]:
        return dict(self.metadata.get("plugin_config", {}).get(code, {}))


class PluginConfig(BaseModel):
    """Settings shared by every plugin."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True


def parse_flags(flags: str) -> Dict[str, bool]:
    """``"enabled,before:off"`` → ``{"enabled": True, "before": False}``."""
    parsed: Dict[str, bool] = {}
    for chunk in filter(None, (part.strip() for part in flags.split(","))):
        key, _, value = chunk.partition(":")
        parsed[key.strip()] = value.strip().lower() != "off"
    return parsed


class BasePlugin:
    """Per-router middleware around route entry invocations."""

    plugin_code: ClassVar[str] = ""
    plugin_description: ClassVar[str] = ""
    config_model: ClassVar[Type[PluginConfig]] = PluginConfig

    __slots__ = ("name", "router", "_router_config", "_entry_config")

    def __init__(self, router: Any, *, name: Optional[str] = None, **config: Any):
        self.name = name or self.plugin_code
        self.router = router
        self._router_config: Dict[str, Any] = {}
        self._entry_config: Dict[str, Dict[str, Any]] = {}
        self.configure(**config)

    def configure(
        self, *, _target: Optional[str] = None, flags: Optional[str] = None, **options: Any
    ) -> None:
        """Store validated settings router-wide, or for the comma-separated entry names."""
        values = self._validated(options, flags)
        if _target is None:
            self._router_config.update(values)
            return
        for target in filter(None, (part.strip() for part in _target.split(","))):
            self._entry_config.setdefault(target, {}).update(values)

    def settings(self, entry: Optional[RouteEntry] = None) -> PluginConfig:
        merged = dict(self._router_config)
        if entry is not None:
            registered = entry.plugin_options(self.name)
            flags = registered.pop("flags", None)
            merged.update(self._validated(registered, flags))
            merged.update(self._entry_config.get(entry.name, {}))
        return self.config_model.model_validate(merged)

    def _validated(self, options: Dict[str, Any], flags: Optional[str]) -> Dict[str, Any]:
        layer = {**parse_flags(flags), **options} if flags else dict(options)
        if not layer:
            return {}
        return self.config_model.model_validate(layer).model_dump(include=set(layer))

    def on_entry(self, entry: RouteEntry) -> None:
        """Called once for every entry the plugin is applied to."""

    def wrap(self, entry: RouteEntry, call_next: Callable) -> Callable:
        return call_next

    def describe(self, entry: RouteEntry) -> Dict[str, Any]:
        return {}
