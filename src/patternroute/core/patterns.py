"""Route pattern compiler (source of truth).

Rebuild this module from the description below; nothing else lives here.

Shorthand tokens
----------------
``DEFAULT_SUBPATTERNS`` maps bracketed tokens to regex fragments:

- ``[i]``  → ``(\\d+)``     one or more digits
- ``[a]``  → ``(\\w+)``     one or more word characters
- ``[*]``  → ``([^/]+)``   one or more characters except ``/``
- ``[**]`` → ``(.*)``      anything, including ``/``, zero or more

Routers may replace the table wholesale; tokens are never merged one by one.

``compile_pattern(raw, prefix="", subpatterns=None)``
-----------------------------------------------------
1. Replace every token with its fragment (plain ``str.replace``, table order).
2. Look up ``SUPER_WILDCARD`` (the literal ``"(.*)"``) in the expanded pattern.
   Unless it sits at index 0, the pattern is mounted on ``prefix``:
   ``prefix + "/" + pattern.strip("/")``; with a non-empty prefix the trailing
   slash is also removed. A pattern that *starts* with the wildcard is returned
   as is, whatever the prefix.
3. The result is not anchored and not validated; ``anchor()`` adds ``^...$`` and
   invalid expressions only surface when a request is matched.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional

__all__ = [
    "DEFAULT_SUBPATTERNS",
    "SUPER_WILDCARD",
    "anchor",
    "compile_pattern",
    "expand_shorthand",
    "extract_params",
]

DEFAULT_SUBPATTERNS: Dict[str, str] = {
    "[i]": r"(\d+)",
    "[a]": r"(\w+)",
    "[*]": r"([^/]+)",
    "[**]": r"(.*)",
}

SUPER_WILDCARD = "(.*)"


def expand_shorthand(pattern: str, subpatterns: Optional[Mapping[str, str]] = None) -> str:
    """Replace shorthand tokens with their regex fragments."""
    table = DEFAULT_SUBPATTERNS if subpatterns is None else subpatterns
    for token, fragment in table.items():
        pattern = pattern.replace(token, fragment)
    return pattern


def compile_pattern(
    raw: str, prefix: str = "", subpatterns: Optional[Mapping[str, str]] = None
) -> str:
    """Expand ``raw`` and mount it on the group ``prefix``."""
    pattern = expand_shorthand(raw, subpatterns)
    # Only a leading catch-all escapes the prefix.
    if pattern.find(SUPER_WILDCARD) != 0:
        pattern = f"{prefix}/{pattern.strip('/')}"
        if prefix:
            pattern = pattern.rstrip("/")
    return pattern


def anchor(pattern: str) -> "re.Pattern[str]":
    """Compile ``pattern`` for a full-string match.

    Raises ``re.error`` for invalid expressions.
    """
    return re.compile(f"^{pattern}$")


def extract_params(match: "re.Match[str]") -> List[Optional[str]]:
    """Positional parameters from a match: slash-trimmed, ``None`` when unmatched."""
    return [None if value is None else value.strip("/") for value in match.groups()]
