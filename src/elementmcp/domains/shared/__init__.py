"""Shared Kernel for all bounded contexts."""

from .kernel import (
    ElementReference,
    KeyName,
    PointerEventType,
    TieBreakMode,
    now_ms,
)

__all__ = [
    "ElementReference",
    "KeyName",
    "PointerEventType",
    "TieBreakMode",
    "now_ms",
]
