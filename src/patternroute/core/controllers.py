"""Controller registry (source of truth).

``"Controller@method"`` handler references are resolved through a
``ControllerRegistry`` instead of a global class lookup.

Registration
------------
``register(controller_class, name=None, *, replace=False)`` stores a class
under ``name`` (default ``controller_class.__name__``). Non-class values raise
``TypeError``; an empty name raises ``ValueError``. Registering a *different*
class under an existing name raises ``ValueError`` unless ``replace`` is true;
registering the same class again is idempotent.

Resolution
----------
``resolve(name)`` returns the registered class. Unknown names containing a dot
are imported as ``"package.module.Class"`` with ``importlib``; the imported
class is cached in the registry. Anything else raises
``HandlerResolutionError``.

``default_registry`` is the process-wide instance used by routers that are not
given their own registry and by the ``@controller`` decorator.
"""

from __future__ import annotations

import importlib
from typing import Any, Dict, Optional

from .errors import HandlerResolutionError

__all__ = ["ControllerRegistry", "default_registry"]


class ControllerRegistry:
    """Name → controller class lookup table."""

    __slots__ = ("_controllers",)

    def __init__(self) -> None:
        self._controllers: Dict[str, type] = {}

    def register(
        self, controller_class: Any, name: Optional[str] = None, *, replace: bool = False
    ) -> type:
        if not isinstance(controller_class, type):
            raise TypeError("controller_class must be a class")
        key = name or controller_class.__name__
        if not key:
            raise ValueError("Controller name cannot be empty")  # pragma: no cover
        existing = self._controllers.get(key)
        if existing is not None and existing is not controller_class and not replace:
            raise ValueError(f"Controller '{key}' already registered")
        self._controllers[key] = controller_class
        return controller_class

    def unregister(self, name: str) -> None:
        self._controllers.pop(name, None)

    def resolve(self, name: str) -> type:
        controller_class = self._controllers.get(name)
        if controller_class is not None:
            return controller_class
        if "." in name:
            controller_class = self._import(name)
            self._controllers[name] = controller_class
            return controller_class
        available = ", ".join(sorted(self._controllers)) or "none"
        raise HandlerResolutionError(
            f"Unknown controller '{name}'. Available controllers: {available}",
            reference=name,
        )

    def _import(self, dotted: str) -> type:
        module_name, _, attr = dotted.rpartition(".")
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise HandlerResolutionError(
                f"Cannot import controller module '{module_name}'", reference=dotted
            ) from exc
        controller_class = getattr(module, attr, None)
        if not isinstance(controller_class, type):
            raise HandlerResolutionError(
                f"Module '{module_name}' has no controller class '{attr}'", reference=dotted
            )
        return controller_class

    def available(self) -> Dict[str, type]:
        return dict(self._controllers)

    def __contains__(self, name: object) -> bool:
        return name in self._controllers


default_registry = ControllerRegistry()
