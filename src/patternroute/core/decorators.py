"""Decorator helpers for controllers (source of truth).

Marker helpers only; no router mutation happens at decoration time.

``route(methods, pattern, *, before=False, name=None, **kwargs)``

- Returns a decorator storing metadata on the function under
  ``TARGET_ATTR_NAME`` as a list of dicts. Each payload holds ``methods``,
  ``pattern`` and ``before``; ``name`` is stored as ``entry_name``.
- Extra ``**kwargs`` are copied verbatim (plugin options such as
  ``logging_before=False``). Existing markers are preserved; the new one is
  appended so one action can serve several routes.
- ``Router.add_controller`` consumes the markers.

``controller(name=None, *, registry=None)``

- Class decorator registering the class in ``registry`` (default: the
  process-wide ``default_registry``) under ``name`` or the class name, so that
  ``"Name@method"`` handlers resolve at dispatch time.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from .base_router import TARGET_ATTR_NAME
from .controllers import ControllerRegistry, default_registry

__all__ = ["route", "controller"]


def route(
    methods: str, pattern: str, *, before: bool = False, name: Optional[str] = None, **kwargs: Any
) -> Callable:
    """Mark a controller method as the handler of ``methods`` + ``pattern``."""

    def decorator(func: Callable) -> Callable:
        markers = list(getattr(func, TARGET_ATTR_NAME, []))
        payload = {"methods": methods, "pattern": pattern, "before": before}
        if name is not None:
            payload["entry_name"] = name
        payload.update(kwargs)
        markers.append(payload)
        setattr(func, TARGET_ATTR_NAME, markers)
        return func

    return decorator


def controller(
    name: Optional[str] = None, *, registry: Optional[ControllerRegistry] = None
) -> Callable[[type], type]:
    """Register the decorated class as a controller."""

    def decorator(cls: type) -> type:
        return (registry or default_registry).register(cls, name)

    return decorator
