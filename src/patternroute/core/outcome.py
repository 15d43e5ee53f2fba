"""Dispatch outcomes: ``Dispatched(count)`` or ``NotFound``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

__all__ = ["Dispatched", "NotFound", "MatchOutcome"]


@dataclass(frozen=True)
class Dispatched:
    """At least one main route matched; ``count`` is how many ran."""

    count: int

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError("Dispatched requires a positive count")

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    """No main route matched the request."""

    count: int = 0

    def __bool__(self) -> bool:
        return False


MatchOutcome = Union[Dispatched, NotFound]
