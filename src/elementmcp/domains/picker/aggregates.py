"""Aggregates for the Picker Context.

PickerSession is a two-state machine (Idle, Active) that turns pointer
and keyboard input into a chosen element. While Active it owns three
pieces of page chrome: a transparent full-viewport capture overlay, a
highlight box drawn around the hovered element, and an optional info
box. All of them are removed again when the session returns to Idle.

Transitions:
    start()       Idle -> Active   (no-op when Active)
    click/Enter   Active -> Idle   (emits elementSelected)
    Escape        Active -> Idle   (no emission)
    stop()        Active -> Idle   (no-op when Idle)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from elementmcp.adapters.dom_adapter import DomElement, DomEvent, ElementLocator, ShadowRoot
from elementmcp.domains.picker.events import (
    ElementHighlighted,
    ElementPicked,
    PickerStarted,
    PickerStopped,
)
from elementmcp.domains.picker.value_objects import PickerOptions, PickerState
from elementmcp.domains.selector.extraction import ElementDataExtractor
from elementmcp.domains.selector.value_objects import ElementSnapshot

logger = logging.getLogger(__name__)

SelectionCallback = Callable[[Dict[str, Any]], None]

OVERLAY_STYLE: Dict[str, str] = {
    "position": "fixed",
    "top": "0",
    "left": "0",
    "width": "100vw",
    "height": "100vh",
    "background": "rgba(0, 0, 0, 0.01)",
    "z-index": "999999",
    "cursor": "crosshair",
    "pointer-events": "all",
}

HIGHLIGHT_STYLE: Dict[str, str] = {
    "position": "absolute",
    "border": "2px solid #ff6b35",
    "background": "rgba(255, 107, 53, 0.1)",
    "z-index": "1000000",
    "pointer-events": "none",
    "display": "none",
    "box-shadow": "0 0 10px rgba(255, 107, 53, 0.5)",
    "transition": "all 0.1s ease",
}

INFO_BOX_STYLE: Dict[str, str] = {
    "position": "fixed",
    "bottom": "20px",
    "right": "20px",
    "background": "rgba(0, 0, 0, 0.9)",
    "color": "white",
    "padding": "12px 16px",
    "border-radius": "8px",
    "font-size": "12px",
    "font-family": "monospace",
    "z-index": "1000001",
    "pointer-events": "none",
    "display": "none",
    "max-width": "400px",
    "box-shadow": "0 4px 12px rgba(0, 0, 0, 0.3)",
}

INFO_HINT = "Click to select | Right-click for parent | ESC to cancel"


class PickerSession:
    """Interactive element picker bound to one document.

    Args:
        locator: The document to pick from
        extractor: Builds the snapshot for the picked element
        on_select: Receives {"action": "elementSelected", "data": snapshot}
        options: Optional capabilities (info box, right click, Enter)

    Example:
        session = PickerSession(document, ElementDataExtractor(document), on_select=outbox.append)
        session.start()
        document.dispatch_event(DomEvent.pointer("mousemove", 40, 12))
        document.dispatch_event(DomEvent.pointer("click", 40, 12))
        outbox[-1]["data"]["selector"]
    """

    def __init__(
        self,
        locator: ElementLocator,
        extractor: ElementDataExtractor,
        on_select: Optional[SelectionCallback] = None,
        options: Optional[PickerOptions] = None,
    ) -> None:
        self.locator = locator
        self.extractor = extractor
        self.on_select = on_select
        self.options = options or PickerOptions()
        self.state = PickerState.IDLE
        self.current_element: Optional[DomElement] = None
        self.overlay: Optional[DomElement] = None
        self.highlight_box: Optional[DomElement] = None
        self.info_box: Optional[DomElement] = None
        self._shadow_roots: Dict[DomElement, ShadowRoot] = {}
        self._saved_cursor: Optional[str] = None
        self._last_pick: Optional[ElementSnapshot] = None
        self._events: List[object] = []

    @property
    def is_active(self) -> bool:
        return self.state is PickerState.ACTIVE

    # -- lifecycle -----------------------------------------------------

    def start(self) -> bool:
        """Activate the picker.

        Returns:
            True if the session was started, False if it was already Active
        """
        if self.is_active:
            return False

        logger.info("Starting element picker")
        self.state = PickerState.ACTIVE
        self._scan_for_shadow_roots()
        self._create_ui()
        self._attach_events()
        body = self.locator.body
        self._saved_cursor = body.inline_style().get("cursor")
        body.set_style_property("cursor", "crosshair")

        self._events.append(
            PickerStarted(
                shadow_roots_tracked=len(self._shadow_roots),
                show_info_box=self.options.show_info_box,
            )
        )
        return True

    def stop(self, reason: str = "stopped") -> bool:
        """Tear down the picker chrome and listeners.

        Returns:
            True if the session was Active, False if it was already Idle
        """
        if not self.is_active:
            return False

        logger.info(f"Stopping element picker ({reason})")
        picked_tag = self.current_element.tag_name if reason == "picked" and self.current_element else None
        self.state = PickerState.IDLE
        self._remove_ui()
        self._detach_events()
        self.locator.body.set_style_property("cursor", self._saved_cursor)
        self._saved_cursor = None
        self.current_element = None
        self._shadow_roots.clear()

        self._events.append(PickerStopped(reason=reason, picked_tag=picked_tag))
        return True

    # -- event handlers ------------------------------------------------

    def on_mouse_move(self, event: DomEvent) -> None:
        if not self.is_active:
            return

        element = self.element_at_point(event.client_x, event.client_y)
        if element is None or element in (self.highlight_box, self.info_box, self.overlay):
            return
        if element != self.current_element:
            self._events.append(ElementHighlighted(tag_name=element.tag_name))
        self.current_element = element
        self._highlight(element)
        if self.options.show_info_box:
            self._show_info(element)

    def on_click(self, event: DomEvent) -> None:
        if not self.is_active:
            return

        event.prevent_default()
        event.stop_propagation()
        if self.current_element is not None:
            self.select(self.current_element)

    def on_context_menu(self, event: DomEvent) -> None:
        if not self.is_active:
            return

        event.prevent_default()
        event.stop_propagation()
        if self.current_element is None:
            return
        parent = self.current_element.parent
        if parent is None:
            return
        self.current_element = parent
        self._events.append(ElementHighlighted(tag_name=parent.tag_name, via="parent"))
        self._highlight(parent)
        if self.options.show_info_box:
            self._show_info(parent)

    def on_key_down(self, event: DomEvent) -> None:
        if not self.is_active:
            return

        if event.key == "Escape":
            self.stop(reason="cancelled")
        elif (
            event.key == "Enter"
            and self.options.enable_keyboard_nav
            and self.current_element is not None
        ):
            event.prevent_default()
            self.select(self.current_element)

    # -- selection -----------------------------------------------------

    def select(self, element: DomElement) -> Optional[ElementSnapshot]:
        """Finish the session on element and emit its snapshot.

        The picker chrome is removed before extraction so the overlay
        elements never take part in selector uniqueness checks.
        """
        self.current_element = element
        self.stop(reason="picked")

        try:
            snapshot = self.extractor.extract(element)
        except Exception as e:
            logger.error(f"Failed to extract data for <{element.tag_name}>: {e}", exc_info=True)
            return None

        self._last_pick = snapshot
        self._events.append(ElementPicked(tag_name=snapshot.tag_name, selector=snapshot.selector))
        logger.info(f"Element selected: {snapshot.selector}")
        if self.on_select is not None:
            self.on_select({"action": "elementSelected", "data": snapshot.to_dict()})
        return snapshot

    def take_pick(self) -> Optional[ElementSnapshot]:
        """Return the most recent pick once, clearing it."""
        snapshot, self._last_pick = self._last_pick, None
        return snapshot

    def element_at_point(self, x: float, y: float) -> Optional[DomElement]:
        """Topmost page element at a viewport point, descending into shadow roots."""
        if self.overlay is not None:
            self.overlay.set_style_property("display", "none")
        try:
            element = self.locator.element_from_point(x, y)
            if element is not None:
                shadow_root = self._shadow_roots.get(element)
                if shadow_root is not None:
                    inner = shadow_root.element_from_point(x, y)
                    if inner is not None:
                        element = inner
        finally:
            if self.overlay is not None:
                self.overlay.set_style_property("display", "block")
        return element

    # -- events --------------------------------------------------------

    def get_events(self) -> List[object]:
        return list(self._events)

    def pull_events(self) -> List[object]:
        events, self._events = self._events, []
        return events

    # -- internals -----------------------------------------------------

    def _scan_for_shadow_roots(self) -> None:
        self._shadow_roots.clear()
        for element in self.locator.query_selector_all("*"):
            shadow_root = element.shadow_root
            if shadow_root is not None:
                self._shadow_roots[element] = shadow_root

    def _create_ui(self) -> None:
        self.overlay = self.locator.create_element("div")
        self.overlay.set_style(dict(OVERLAY_STYLE))

        self.highlight_box = self.locator.create_element("div")
        self.highlight_box.set_style(dict(HIGHLIGHT_STYLE))

        if self.options.show_info_box:
            self.info_box = self.locator.create_element("div")
            self.info_box.set_style(dict(INFO_BOX_STYLE))

        body = self.locator.body
        body.append_child(self.overlay)
        body.append_child(self.highlight_box)
        if self.info_box is not None:
            body.append_child(self.info_box)

    def _remove_ui(self) -> None:
        for element in (self.overlay, self.highlight_box, self.info_box):
            if element is not None:
                element.remove()
        self.overlay = None
        self.highlight_box = None
        self.info_box = None

    def _handlers(self) -> Dict[str, Callable[[DomEvent], None]]:
        handlers = {
            "mousemove": self.on_mouse_move,
            "click": self.on_click,
            # Escape must always be able to cancel; Enter is gated in the handler
            "keydown": self.on_key_down,
        }
        if self.options.enable_right_click:
            handlers["contextmenu"] = self.on_context_menu
        return handlers

    def _attach_events(self) -> None:
        for event_type, handler in self._handlers().items():
            self.locator.add_event_listener(event_type, handler, True)

    def _detach_events(self) -> None:
        for event_type, handler in self._handlers().items():
            self.locator.remove_event_listener(event_type, handler, True)

    def _highlight(self, element: DomElement) -> None:
        if self.highlight_box is None:
            return
        rect = element.bounding_rect()
        scroll_x, scroll_y = self.locator.scroll_offset()
        style = dict(HIGHLIGHT_STYLE)
        style.pop("transition")
        style.update(
            {
                "left": f"{rect.left + scroll_x}px",
                "top": f"{rect.top + scroll_y}px",
                "width": f"{rect.width}px",
                "height": f"{rect.height}px",
                "display": "block",
            }
        )
        self.highlight_box.set_style(style)

    def _show_info(self, element: DomElement) -> None:
        if self.info_box is None:
            return
        selector = self.extractor.synthesizer.optimal_selector(element)
        text = element.text_content.strip()[:30]
        lines = ["Element Info", f"Tag: <{element.tag_name}>", f"Selector: {selector}"]
        if text:
            lines.append(f'Text: "{text}..."')
        lines.append(INFO_HINT)
        self.info_box.set_text("\n".join(lines))
        self.info_box.set_style_property("display", "block")
