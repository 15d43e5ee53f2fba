"""Core runtime aggregator (source of truth).

Purpose: expose the runtime building blocks from a single module. No extra
logic beyond imports/exports.

Guarantees
----------
- Importing this module performs only imports; it does not register plugins or
  instantiate routers.
- Public API mirrors underlying modules 1:1:
  * ``base_router`` → ``BaseRouter`` (plugin-free engine)
  * ``router`` → ``Router`` (plugin-enabled)
  * ``decorators`` → ``route`` / ``controller`` helpers
  * ``controllers`` → ``ControllerRegistry`` + ``default_registry``
  * ``outcome`` → ``Dispatched`` / ``NotFound``
  * ``request`` → ``RequestContext``
"""

from .base_router import BaseRouter
from .controllers import ControllerRegistry, default_registry
from .decorators import controller, route
from .errors import HandlerResolutionError, PatternCompilationFailure, RouterError
from .handlers import ControllerHandler, FunctionHandler, HandlerRef
from .outcome import Dispatched, MatchOutcome, NotFound
from .patterns import DEFAULT_SUBPATTERNS, compile_pattern
from .request import RequestContext
from .router import Router

__all__ = [
    "BaseRouter",
    "Router",
    "route",
    "controller",
    "ControllerRegistry",
    "default_registry",
    "RouterError",
    "PatternCompilationFailure",
    "HandlerResolutionError",
    "HandlerRef",
    "FunctionHandler",
    "ControllerHandler",
    "Dispatched",
    "NotFound",
    "MatchOutcome",
    "DEFAULT_SUBPATTERNS",
    "compile_pattern",
    "RequestContext",
]
