"""DOM Capability Protocols - Anti-Corruption Layer.

This module defines the capabilities the element core consumes from its
host environment. The selector synthesizer, the picker session and the
element registry never touch a concrete DOM implementation; callers
inject objects that satisfy these protocols.

Capabilities:
    DomElement: A single element (attributes, geometry, styles, tree links)
    ElementLocator: The document (selector queries, hit testing, events)
    MutationWatcher: Attribute/text/subtree change observation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Bounding rectangle in CSS pixels."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        """Check whether a point lies inside the rectangle."""
        return self.left <= x < self.right and self.top <= y < self.bottom

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.width, self.height)


@dataclass
class DomEvent:
    """A pointer or keyboard event delivered to document listeners.

    Mirrors the small part of the DOM event interface the picker needs:
    coordinates, the key pressed, and the ability to suppress the
    default action and further propagation.
    """

    type: str
    client_x: float = 0.0
    client_y: float = 0.0
    key: Optional[str] = None
    button: int = 0
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True

    @classmethod
    def pointer(cls, event_type: str, x: float, y: float) -> "DomEvent":
        """Create a pointer event (mousemove, click, contextmenu)."""
        button = 2 if event_type == "contextmenu" else 0
        return cls(type=event_type, client_x=x, client_y=y, button=button)

    @classmethod
    def keyboard(cls, key: str) -> "DomEvent":
        """Create a keydown event for the given key name."""
        return cls(type="keydown", key=key)


@dataclass(frozen=True)
class MutationNotice:
    """A single observed change, in the shape of a DOM MutationRecord.

    type is one of "attributes", "characterData" or "childList".
    """

    type: str
    target: Any
    attribute_name: Optional[str] = None
    old_value: Optional[str] = None


EventHandler = Callable[[DomEvent], None]
MutationCallback = Callable[[List[MutationNotice]], None]


@runtime_checkable
class ShadowRoot(Protocol):
    """An attached shadow root that supports its own hit testing."""

    @property
    def host(self) -> "DomElement": ...

    def element_from_point(self, x: float, y: float) -> Optional["DomElement"]: ...


@runtime_checkable
class DomElement(Protocol):
    """Protocol for a live DOM element.

    Implementations must be hashable and compare equal when they wrap
    the same underlying node, so elements can be used as dict keys and
    compared against query results.
    """

    @property
    def tag_name(self) -> str:
        """Lower-case tag name."""
        ...

    @property
    def attributes(self) -> Dict[str, str]:
        """All attributes in document order."""
        ...

    @property
    def class_list(self) -> List[str]: ...

    @property
    def text_content(self) -> str: ...

    @property
    def outer_html(self) -> str: ...

    @property
    def parent(self) -> Optional["DomElement"]:
        """Parent element, or None at the root of a tree."""
        ...

    @property
    def children(self) -> List["DomElement"]: ...

    @property
    def shadow_root(self) -> Optional[ShadowRoot]: ...

    @property
    def tab_index(self) -> int: ...

    @property
    def is_content_editable(self) -> bool: ...

    def get_attribute(self, name: str) -> Optional[str]: ...

    def has_attribute(self, name: str) -> bool: ...

    def is_in_shadow_tree(self) -> bool:
        """True when the element's root node is not the document."""
        ...

    def computed_style(self) -> Dict[str, str]:
        """Resolved CSS property values keyed by CSS property name."""
        ...

    def inline_style(self) -> Dict[str, str]: ...

    def bounding_rect(self) -> Rect:
        """Viewport-relative bounding rectangle."""
        ...

    def has_offset_parent(self) -> bool: ...

    def set_attribute(self, name: str, value: str) -> None: ...

    def remove_attribute(self, name: str) -> None: ...

    def set_style(self, style: Dict[str, str]) -> None:
        """Replace the inline style declaration."""
        ...

    def set_style_property(self, name: str, value: Optional[str]) -> None: ...

    def set_text(self, text: str) -> None: ...

    def append_child(self, child: "DomElement") -> None: ...

    def remove(self) -> None: ...


@runtime_checkable
class ElementLocator(Protocol):
    """Protocol for the document the core operates on.

    The only hard requirement of the element core is "resolve selector to
    elements"; the remaining members serve the picker session (hit
    testing, listener installation, UI chrome) and snapshot extraction
    (viewport, scroll and frame information).
    """

    @property
    def document_element(self) -> DomElement: ...

    @property
    def body(self) -> DomElement: ...

    def query_selector_all(self, selector: str) -> List[DomElement]:
        """Return every matching element; an invalid selector matches nothing."""
        ...

    def query_selector(self, selector: str) -> Optional[DomElement]: ...

    def element_from_point(self, x: float, y: float) -> Optional[DomElement]: ...

    def viewport_size(self) -> Tuple[float, float]: ...

    def scroll_offset(self) -> Tuple[float, float]: ...

    def frame_depth(self) -> int: ...

    @property
    def origin(self) -> str: ...

    def create_element(self, tag_name: str) -> DomElement: ...

    def add_event_listener(
        self, event_type: str, handler: EventHandler, capture: bool = True
    ) -> None: ...

    def remove_event_listener(
        self, event_type: str, handler: EventHandler, capture: bool = True
    ) -> None: ...


@runtime_checkable
class WatchHandle(Protocol):
    """Handle returned by MutationWatcher.observe()."""

    def disconnect(self) -> None: ...


@runtime_checkable
class MutationWatcher(Protocol):
    """Protocol for observing changes to a live element."""

    def observe(
        self,
        element: DomElement,
        callback: MutationCallback,
        *,
        attributes: bool = True,
        character_data: bool = True,
        child_list: bool = True,
        subtree: bool = True,
    ) -> WatchHandle: ...


@dataclass
class ListenerRegistry:
    """Bookkeeping for capture/bubble listeners keyed by event type.

    Concrete documents share this helper so listener installation and
    removal behave like addEventListener/removeEventListener: the same
    (handler, capture) pair is registered at most once.
    """

    _listeners: Dict[str, List[Tuple[EventHandler, bool]]] = field(default_factory=dict)

    def add(self, event_type: str, handler: EventHandler, capture: bool) -> None:
        entries = self._listeners.setdefault(event_type, [])
        if (handler, capture) not in entries:
            entries.append((handler, capture))

    def remove(self, event_type: str, handler: EventHandler, capture: bool) -> None:
        entries = self._listeners.get(event_type, [])
        if (handler, capture) in entries:
            entries.remove((handler, capture))
        if not entries:
            self._listeners.pop(event_type, None)

    def handlers_for(self, event_type: str) -> List[EventHandler]:
        """Capture handlers first, then bubble handlers."""
        entries = list(self._listeners.get(event_type, []))
        capture = [h for h, is_capture in entries if is_capture]
        bubble = [h for h, is_capture in entries if not is_capture]
        return capture + bubble

    def count(self, event_type: Optional[str] = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return sum(len(v) for v in self._listeners.values())
