"""Domain Events for the Picker Context.

Collected on the PickerSession for audit logging and debugging; the
host-facing pick notification is the separate elementSelected message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PickerStarted:
    """Emitted when the session moves from Idle to Active."""

    shadow_roots_tracked: int
    show_info_box: bool
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"PickerStarted(shadow_roots={self.shadow_roots_tracked})"


@dataclass(frozen=True)
class ElementHighlighted:
    """Emitted when the highlight box moves to a new target.

    via is "pointer" for hover and "parent" for the right-click
    broadening gesture.
    """

    tag_name: str
    via: str = "pointer"
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"ElementHighlighted(<{self.tag_name}>, via={self.via})"


@dataclass(frozen=True)
class ElementPicked:
    """Emitted when a target is turned into a snapshot and handed to the host."""

    tag_name: str
    selector: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"ElementPicked(<{self.tag_name}>, selector={self.selector!r})"


@dataclass(frozen=True)
class PickerStopped:
    """Emitted when the session returns to Idle.

    reason is one of "stopped", "cancelled" (Escape) or "picked".
    """

    reason: str
    picked_tag: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"PickerStopped(reason={self.reason})"
