"""Value Objects for the Picker Context."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class PickerState(Enum):
    """The picker is either waiting to be started or capturing input."""

    IDLE = "idle"
    ACTIVE = "active"


@dataclass(frozen=True)
class PickerOptions:
    """Optional picker capabilities, all enabled by default.

    Attributes:
        show_info_box: Render the floating element-info box
        enable_right_click: Right click widens the target to its parent
        enable_keyboard_nav: Enter picks the current target
    """

    show_info_box: bool = True
    enable_right_click: bool = True
    enable_keyboard_nav: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PickerOptions":
        data = data or {}
        return cls(
            show_info_box=data.get("show_info_box", True) is not False,
            enable_right_click=data.get("enable_right_click", True) is not False,
            enable_keyboard_nav=data.get("enable_keyboard_nav", True) is not False,
        )

    def to_dict(self) -> Dict[str, bool]:
        return {
            "show_info_box": self.show_info_box,
            "enable_right_click": self.enable_right_click,
            "enable_keyboard_nav": self.enable_keyboard_nav,
        }
