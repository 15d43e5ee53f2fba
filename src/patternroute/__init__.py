"""PatternRoute public API surface (source of truth).

Recreate the module with these rules:
- Public exports: ``Router``, ``RequestContext``, the outcome types
  ``Dispatched``/``NotFound``, the ``route``/``controller`` decorators and the
  error classes.
- Plugin registration: import built-in plugins (``logging``) for their side
  effect of calling ``Router.register_plugin(<class>)``. Imports are done lazily
  via ``import_module`` to avoid cycles.

Constraints
-----------
- Import must stay lightweight: no router instantiation or heavy work beyond
  plugin registration.
- Version string lives here as ``__version__`` and must remain available for
  packaging tools.
"""

from importlib import import_module

__version__ = "0.3.0"

from .core import (
    ControllerRegistry,
    Dispatched,
    HandlerResolutionError,
    NotFound,
    PatternCompilationFailure,
    RequestContext,
    Router,
    RouterError,
    controller,
    route,
)

# Import plugins to trigger auto-registration (lazy to avoid cycles)
for _plugin in ("logging",):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "Router",
    "RequestContext",
    "Dispatched",
    "NotFound",
    "ControllerRegistry",
    "controller",
    "route",
    "RouterError",
    "PatternCompilationFailure",
    "HandlerResolutionError",
]
