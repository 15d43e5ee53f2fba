"""Exception hierarchy for PatternRoute.

``RouterError`` is the common base. Only ``HandlerResolutionError`` ever leaves
``dispatch()``; ``PatternCompilationFailure`` is caught per entry and logged.
An unmatched request is an outcome (``NotFound``), not an exception.
"""

from __future__ import annotations

from typing import Any, List, Optional

__all__ = ["RouterError", "PatternCompilationFailure", "HandlerResolutionError"]


class RouterError(Exception):
    pass


class PatternCompilationFailure(RouterError):
    """A compiled route pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: Any = None):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid route pattern {pattern!r}: {reason}")


class HandlerResolutionError(RouterError, LookupError):
    """A ``"Controller@method"`` reference cannot be turned into a callable.

    When raised by the dispatcher, ``errors`` holds every failure collected while
    walking the route tables and ``matched`` the number of main routes that did
    run for the request.
    """

    def __init__(
        self,
        message: str,
        *,
        reference: Optional[str] = None,
        errors: Optional[List["HandlerResolutionError"]] = None,
        matched: int = 0,
    ):
        super().__init__(message)
        self.reference = reference
        self.errors: List[HandlerResolutionError] = list(errors or [])
        self.matched = matched
