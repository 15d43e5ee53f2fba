"""Handler references bound to route entries.

A route handler is either a plain callable (``FunctionHandler``) or a
``"Controller@method"`` string (``ControllerHandler``). Both expose
``resolve()``, which returns the callable target or raises
``HandlerResolutionError``, and ``invoke(params)``, which runs it with the
captured path parameters as positional arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .controllers import ControllerRegistry
from .errors import HandlerResolutionError

__all__ = ["HandlerRef", "FunctionHandler", "ControllerHandler", "parse_reference"]


class HandlerRef:
    """Common interface of the handler variants."""

    __slots__ = ()

    def resolve(self) -> Any:  # pragma: no cover - interface
        raise NotImplementedError

    def invoke(self, params: Sequence[Any]) -> Any:  # pragma: no cover - interface
        raise NotImplementedError

    def describe(self) -> str:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass(frozen=True)
class FunctionHandler(HandlerRef):
    func: Callable

    def resolve(self) -> Callable:
        return self.func

    def invoke(self, params: Sequence[Any]) -> Any:
        return self.func(*params)

    def describe(self) -> str:
        return getattr(self.func, "__qualname__", None) or repr(self.func)


@dataclass(frozen=True)
class ControllerHandler(HandlerRef):
    """Instantiate ``controller`` afresh on every call and run ``action`` on it."""

    controller: str
    action: str
    registry: ControllerRegistry

    def resolve(self) -> type:
        """Controller class, checked to expose ``action``."""
        controller_class = self.registry.resolve(self.controller)
        if not callable(getattr(controller_class, self.action, None)):
            raise HandlerResolutionError(
                f"Controller '{self.controller}' has no action '{self.action}'",
                reference=self.describe(),
            )
        return controller_class

    def invoke(self, params: Sequence[Any]) -> Any:
        instance = self.resolve()()
        return getattr(instance, self.action)(*params)

    def describe(self) -> str:
        return f"{self.controller}@{self.action}"


def parse_reference(reference: str) -> tuple[str, str]:
    """Split ``"Controller@method"``; raises ``ValueError`` on malformed input."""
    controller, sep, action = reference.strip().partition("@")
    controller = controller.strip()
    action = action.strip()
    if not sep or not controller or not action or "@" in action:
        raise ValueError(f"Handler reference must look like 'Controller@method', got {reference!r}")
    return controller, action
