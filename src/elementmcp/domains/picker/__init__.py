"""Picker Context - interactive element selection.

Usage:
    from elementmcp.domains.picker import PickerSession, PickerOptions

    session = PickerSession(document, extractor, on_select=handle_message)
    session.start()
"""

from .aggregates import (
    HIGHLIGHT_STYLE,
    INFO_BOX_STYLE,
    OVERLAY_STYLE,
    PickerSession,
    SelectionCallback,
)
from .events import ElementHighlighted, ElementPicked, PickerStarted, PickerStopped
from .value_objects import PickerOptions, PickerState

__all__ = [
    # Aggregates
    "PickerSession",
    "SelectionCallback",
    "HIGHLIGHT_STYLE",
    "INFO_BOX_STYLE",
    "OVERLAY_STYLE",
    # Value Objects
    "PickerOptions",
    "PickerState",
    # Events
    "ElementHighlighted",
    "ElementPicked",
    "PickerStarted",
    "PickerStopped",
]
