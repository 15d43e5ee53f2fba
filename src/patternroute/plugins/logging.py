"""Timing log around route handlers (source of truth).

``router.plug("logging")`` wraps every entry. Before the handler runs the
plugin emits ``"<entry name> start <params>"`` (e.g.
``"GET /product/([^/]+) start ['0001']"``), after it returns
``"<entry name> end (<ms> ms)"`` with ``{elapsed:.2f}`` milliseconds. A handler
that raises gets no end message; the exception propagates.

Settings (``LoggingConfig``), given to ``plug()``, as ``logging_<key>=...`` at
registration, or through ``router.logging.configure(...)``:

- ``enabled``: wrap the entry at all (default on)
- ``before`` / ``after``: emit the start / end message (default on)
- ``log``: send messages to the logger at INFO level (default on)
- ``print``: write messages to stdout instead of the logger (default off)

The logger defaults to ``logging.getLogger("patternroute")``; with no handler
configured, INFO records go nowhere. Importing the module registers the plugin
as ``"logging"``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from patternroute.core.router import Router
from patternroute.plugins._base_plugin import BasePlugin, PluginConfig, RouteEntry


class LoggingConfig(PluginConfig):
    before: bool = True
    after: bool = True
    log: bool = True
    print: bool = False


class LoggingPlugin(BasePlugin):
    """Logs route entry calls with timing."""

    plugin_code = "logging"
    plugin_description = "Logs route handler calls with timing"
    config_model = LoggingConfig

    __slots__ = ("logger",)

    def __init__(self, router, *, logger: Optional[logging.Logger] = None, **config):
        self.logger = logger or logging.getLogger("patternroute")
        super().__init__(router, **config)

    def wrap(self, entry: RouteEntry, call_next: Callable) -> Callable:
        def timed(params):
            settings = self.settings(entry)
            if settings.before:
                self._emit(settings, f"{entry.name} start {list(params)}")
            started = time.perf_counter()
            result = call_next(params)
            if settings.after:
                elapsed = (time.perf_counter() - started) * 1000
                self._emit(settings, f"{entry.name} end ({elapsed:.2f} ms)")
            return result

        return timed

    def _emit(self, settings: LoggingConfig, message: str) -> None:
        if settings.print:
            print(message)
        elif settings.log:
            self.logger.info(message)


Router.register_plugin(LoggingPlugin)
