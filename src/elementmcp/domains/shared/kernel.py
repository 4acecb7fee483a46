"""Shared Kernel - Common types used across bounded contexts.

Contains the clock helper every context timestamps with and the
pydantic-annotated parameter types the MCP tools accept.
"""

from __future__ import annotations

import time
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# ============================================================
# Type-Constrained Tool Parameters
# ============================================================
#
# Literal type aliases with BeforeValidator for case-insensitive
# normalization.  Produces flat {"enum": [...]} in JSON Schema
# while accepting wrong-case input at runtime.
# ============================================================


def _normalize_str(v: Any) -> Any:
    """Normalize string input: strip whitespace, lowercase."""
    return v.strip().lower() if isinstance(v, str) else v


def _strip_reference(v: Any) -> Any:
    """Accept '@name' as well as 'name' for element references."""
    if isinstance(v, str):
        v = v.strip()
        if v.startswith("@"):
            v = v[1:]
    return v


_KEY_ALIASES = {
    "escape": "Escape",
    "esc": "Escape",
    "enter": "Enter",
    "return": "Enter",
}


def _normalize_key(v: Any) -> Any:
    """Map common spellings onto DOM KeyboardEvent.key names."""
    if isinstance(v, str):
        stripped = v.strip()
        return _KEY_ALIASES.get(stripped.lower(), stripped)
    return v


ElementReference = Annotated[str, BeforeValidator(_strip_reference)]

PointerEventType = Annotated[
    Literal["mousemove", "click", "contextmenu"],
    BeforeValidator(_normalize_str),
]

KeyName = Annotated[str, BeforeValidator(_normalize_key)]

TieBreakMode = Annotated[
    Literal["strict", "first"],
    BeforeValidator(_normalize_str),
]
