"""BeautifulSoup HTML Document Adapter.

Implements the DOM capability protocols over a static HTML document
parsed with BeautifulSoup. CSS queries go through soupsieve, the
selector engine bundled with BeautifulSoup.

The adapter models just enough of a rendering engine for the element
core to run outside a browser:

- Computed styles: user-agent defaults per tag, inheritance of the
  inherited properties, and the inline ``style`` declaration on top.
- Layout: a static layout taken from inline ``left/top/width/height``
  (px, vw, vh) or set explicitly per element with ``set_layout()``.
- Hit testing that skips ``display: none``, ``visibility: hidden`` and
  ``pointer-events: none`` elements, ordered by z-index then document order.
- Declarative shadow roots (``<template shadowrootmode="open">``): the
  template content is excluded from document queries and exposed through
  the host's ``shadow_root``.
- Mutation methods that notify observers registered via
  ``SoupMutationWatcher``.
- Capture-phase event listeners driven by ``dispatch_event()``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlparse

import soupsieve
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from .dom_adapter import (
    DomEvent,
    EventHandler,
    ListenerRegistry,
    MutationCallback,
    MutationNotice,
    Rect,
)

logger = logging.getLogger(__name__)

BLOCK_TAGS = frozenset(
    {
        "html", "body", "div", "p", "section", "article", "header", "footer",
        "nav", "main", "aside", "form", "ul", "ol", "h1", "h2", "h3", "h4",
        "h5", "h6", "fieldset", "figure", "blockquote", "pre", "hr",
        "address", "dl", "dt", "dd", "details", "summary", "dialog",
    }
)
HIDDEN_TAGS = frozenset(
    {"head", "script", "style", "template", "title", "meta", "link", "base", "noscript"}
)
INLINE_BLOCK_TAGS = frozenset({"button", "input", "select", "textarea", "meter", "progress"})
FOCUSABLE_TAGS = frozenset({"button", "input", "select", "textarea", "iframe"})

DEFAULT_STYLE: Dict[str, str] = {
    "display": "inline",
    "position": "static",
    "width": "auto",
    "height": "auto",
    "background-color": "rgba(0, 0, 0, 0)",
    "color": "rgb(0, 0, 0)",
    "font-size": "16px",
    "font-family": "serif",
    "opacity": "1",
    "visibility": "visible",
    "z-index": "auto",
    "cursor": "auto",
    "overflow": "visible",
    "border": "0px none rgb(0, 0, 0)",
    "padding": "0px",
    "margin": "0px",
    "transform": "none",
    "transition": "all 0s ease 0s",
    "box-shadow": "none",
    "border-radius": "0px",
    "pointer-events": "auto",
}
INHERITED_PROPERTIES = frozenset(
    {"color", "font-size", "font-family", "visibility", "cursor", "pointer-events"}
)

_LENGTH_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(px|vw|vh)?\s*$", re.IGNORECASE)


def parse_style(declaration: Optional[str]) -> Dict[str, str]:
    """Parse an inline style declaration into a property map."""
    result: Dict[str, str] = {}
    if not declaration:
        return result
    for part in declaration.split(";"):
        if ":" not in part:
            continue
        name, value = part.split(":", 1)
        name = name.strip().lower()
        value = value.replace("!important", "").strip()
        if name:
            result[name] = value
    return result


def serialize_style(style: Dict[str, str]) -> str:
    return "; ".join(f"{name}: {value}" for name, value in style.items())


def _is_shadow_template(tag: Any) -> bool:
    return (
        isinstance(tag, Tag)
        and tag.name == "template"
        and (tag.has_attr("shadowrootmode") or tag.has_attr("shadowroot"))
    )


def _is_text(node: Any) -> bool:
    # Comments, doctypes and CDATA are PreformattedString subclasses.
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def _inside_shadow_template(tag: Tag) -> bool:
    return any(_is_shadow_template(parent) for parent in tag.parents)


def _composed_parent(tag: Tag) -> Optional[Tag]:
    """Parent in the flattened tree: shadow templates are transparent."""
    parent = tag.parent
    if _is_shadow_template(parent):
        parent = parent.parent
    if parent is None or isinstance(parent, BeautifulSoup) or not isinstance(parent, Tag):
        return None
    return parent


class SoupElement:
    """DomElement implementation wrapping a BeautifulSoup Tag."""

    __slots__ = ("_doc", "_tag")

    def __init__(self, document: "HtmlDocument", tag: Tag) -> None:
        self._doc = document
        self._tag = tag

    # -- identity ------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SoupElement):
            return NotImplemented
        return other._tag is self._tag

    def __hash__(self) -> int:
        return id(self._tag)

    def __repr__(self) -> str:
        ident = f"#{self._tag.get('id')}" if self._tag.get("id") else ""
        return f"<SoupElement {self.tag_name}{ident}>"

    @property
    def tag(self) -> Tag:
        """The wrapped BeautifulSoup tag."""
        return self._tag

    # -- tree ----------------------------------------------------------

    @property
    def tag_name(self) -> str:
        return (self._tag.name or "").lower()

    @property
    def attributes(self) -> Dict[str, str]:
        return {name: self._attr_text(value) for name, value in self._tag.attrs.items()}

    @property
    def class_list(self) -> List[str]:
        value = self.get_attribute("class") or ""
        return [c for c in value.split() if c]

    @property
    def text_content(self) -> str:
        parts = []
        for node in self._tag.descendants:
            if not _is_text(node) or self._behind_shadow_boundary(node):
                continue
            parts.append(str(node))
        return "".join(parts)

    def _behind_shadow_boundary(self, node: Any) -> bool:
        # Shadow content never contributes to the host's textContent.
        current = node.parent
        while current is not None and current is not self._tag:
            if _is_shadow_template(current):
                return True
            current = current.parent
        return False

    @property
    def outer_html(self) -> str:
        return str(self._tag)

    @property
    def parent(self) -> Optional["SoupElement"]:
        parent = self._tag.parent
        if parent is None or isinstance(parent, BeautifulSoup) or _is_shadow_template(parent):
            return None
        return self._doc.wrap(parent)

    @property
    def children(self) -> List["SoupElement"]:
        return [
            self._doc.wrap(child)
            for child in self._tag.children
            if isinstance(child, Tag) and not _is_shadow_template(child)
        ]

    @property
    def shadow_root(self) -> Optional["SoupShadowRoot"]:
        for child in self._tag.children:
            if _is_shadow_template(child):
                return SoupShadowRoot(self._doc, self, child)
        return None

    def is_in_shadow_tree(self) -> bool:
        return _inside_shadow_template(self._tag)

    # -- attributes ----------------------------------------------------

    @staticmethod
    def _attr_text(value: Any) -> str:
        if isinstance(value, (list, tuple)):
            return " ".join(value)
        return "" if value is None else str(value)

    def get_attribute(self, name: str) -> Optional[str]:
        value = self._tag.attrs.get(name.lower())
        if value is None:
            return None
        return self._attr_text(value)

    def has_attribute(self, name: str) -> bool:
        return name.lower() in self._tag.attrs

    @property
    def tab_index(self) -> int:
        raw = self.get_attribute("tabindex")
        if raw is not None:
            try:
                return int(raw.strip())
            except ValueError:
                pass
        if self.tag_name in FOCUSABLE_TAGS:
            return 0
        if self.tag_name in ("a", "area") and self.has_attribute("href"):
            return 0
        if self.is_content_editable:
            return 0
        return -1

    @property
    def is_content_editable(self) -> bool:
        current: Optional[Tag] = self._tag
        while current is not None:
            value = current.attrs.get("contenteditable")
            if value is not None:
                return str(value).strip().lower() in ("", "true", "plaintext-only")
            current = _composed_parent(current)
        return False

    # -- style and geometry --------------------------------------------

    def inline_style(self) -> Dict[str, str]:
        return parse_style(self.get_attribute("style"))

    def computed_style(self) -> Dict[str, str]:
        return self._doc.computed_style_for(self._tag)

    def bounding_rect(self) -> Rect:
        return self._doc.viewport_rect_for(self._tag)

    def has_offset_parent(self) -> bool:
        if self.tag_name in ("html", "body"):
            return False
        if not self._doc.is_rendered(self._tag):
            return False
        return self.computed_style().get("position") != "fixed"

    # -- mutation ------------------------------------------------------

    def set_attribute(self, name: str, value: str) -> None:
        name = name.lower()
        old_value = self.get_attribute(name)
        self._tag[name] = value
        self._doc.notify(self._tag, MutationNotice("attributes", self, name, old_value))

    def remove_attribute(self, name: str) -> None:
        name = name.lower()
        if name not in self._tag.attrs:
            return
        old_value = self.get_attribute(name)
        del self._tag[name]
        self._doc.notify(self._tag, MutationNotice("attributes", self, name, old_value))

    def set_style(self, style: Dict[str, str]) -> None:
        if style:
            self.set_attribute("style", serialize_style(style))
        else:
            self.remove_attribute("style")

    def set_style_property(self, name: str, value: Optional[str]) -> None:
        style = self.inline_style()
        if value:
            style[name.lower()] = value
        else:
            style.pop(name.lower(), None)
        self.set_style(style)

    def set_text(self, text: str) -> None:
        contents = list(self._tag.contents)
        if len(contents) == 1 and _is_text(contents[0]):
            old_value = str(contents[0])
            contents[0].replace_with(NavigableString(text))
            self._doc.notify(self._tag, MutationNotice("characterData", self, None, old_value))
            return
        self._tag.string = text
        self._doc.notify(self._tag, MutationNotice("childList", self))

    def append_child(self, child: "SoupElement") -> None:
        self._tag.append(child.tag)
        self._doc.notify(self._tag, MutationNotice("childList", self))

    def remove(self) -> None:
        parent = self._tag.parent
        self._tag.extract()
        self._doc.forget(self._tag)
        if isinstance(parent, Tag) and not isinstance(parent, BeautifulSoup):
            self._doc.notify(parent, MutationNotice("childList", self._doc.wrap(parent)))


class SoupShadowRoot:
    """Shadow root backed by a declarative shadow DOM template."""

    def __init__(self, document: "HtmlDocument", host: SoupElement, template: Tag) -> None:
        self._doc = document
        self._host = host
        self._template = template

    @property
    def host(self) -> SoupElement:
        return self._host

    def query_selector_all(self, selector: str) -> List[SoupElement]:
        return self._doc.select_within(self._template, selector)

    def element_from_point(self, x: float, y: float) -> Optional[SoupElement]:
        return self._doc.hit_test(self._template.find_all(True), x, y)


@dataclass(eq=False)
class _Observation:
    document: "HtmlDocument"
    tag: Tag
    callback: MutationCallback
    attributes: bool = True
    character_data: bool = True
    child_list: bool = True
    subtree: bool = True

    def accepts(self, notice: MutationNotice, target: Tag) -> bool:
        enabled = {
            "attributes": self.attributes,
            "characterData": self.character_data,
            "childList": self.child_list,
        }.get(notice.type, False)
        if not enabled:
            return False
        if target is self.tag:
            return True
        return self.subtree and any(parent is self.tag for parent in target.parents)

    def disconnect(self) -> None:
        self.document.remove_observation(self)


class SoupMutationWatcher:
    """MutationWatcher implementation for HtmlDocument.

    Notifications are delivered synchronously from the mutating call,
    one notice per callback invocation.
    """

    def __init__(self, document: "HtmlDocument") -> None:
        self._document = document

    def observe(
        self,
        element: SoupElement,
        callback: MutationCallback,
        *,
        attributes: bool = True,
        character_data: bool = True,
        child_list: bool = True,
        subtree: bool = True,
    ) -> _Observation:
        observation = _Observation(
            document=self._document,
            tag=element.tag,
            callback=callback,
            attributes=attributes,
            character_data=character_data,
            child_list=child_list,
            subtree=subtree,
        )
        self._document.add_observation(observation)
        return observation


class HtmlDocument:
    """ElementLocator implementation over a parsed HTML string.

    Args:
        html: Markup to parse (fragments are wrapped in html/body)
        url: Page URL, used for the reported frame origin
        viewport: Viewport width and height in CSS pixels
        frame_depth: Number of frames between this document and the top
    """

    def __init__(
        self,
        html: str,
        url: str = "about:blank",
        viewport: Tuple[float, float] = (1280.0, 720.0),
        frame_depth: int = 0,
    ) -> None:
        self.url = url
        self._viewport = viewport
        self._frame_depth = frame_depth
        self._scroll: Tuple[float, float] = (0.0, 0.0)
        self._soup = self._normalize(BeautifulSoup(html or "", "html.parser"))
        self._wrappers: Dict[int, SoupElement] = {}
        self._layout: Dict[int, Rect] = {}
        self._listeners = ListenerRegistry()
        self._observations: List[_Observation] = []

    @staticmethod
    def _normalize(soup: BeautifulSoup) -> BeautifulSoup:
        html_tag = soup.find("html")
        if html_tag is not None and soup.find("body") is not None:
            return soup
        shell = BeautifulSoup("<html><head></head><body></body></html>", "html.parser")
        source = html_tag if html_tag is not None else soup
        for node in list(source.contents):
            if isinstance(node, Tag) and node.name == "head":
                shell.head.replace_with(node.extract())
                continue
            if isinstance(node, Tag) and node.name == "body":
                shell.body.attrs.update(node.attrs)
                for child in list(node.contents):
                    shell.body.append(child.extract())
                continue
            shell.body.append(node.extract())
        return shell

    # -- wrapping ------------------------------------------------------

    def wrap(self, tag: Tag) -> SoupElement:
        key = id(tag)
        wrapper = self._wrappers.get(key)
        if wrapper is None or wrapper.tag is not tag:
            wrapper = SoupElement(self, tag)
            self._wrappers[key] = wrapper
        return wrapper

    def forget(self, tag: Tag) -> None:
        """Drop cached wrappers and layout pins for a detached subtree."""
        for node in [tag, *tag.find_all(True)]:
            self._wrappers.pop(id(node), None)
            self._layout.pop(id(node), None)

    @property
    def wrapper_count(self) -> int:
        return len(self._wrappers)

    @property
    def soup(self) -> BeautifulSoup:
        return self._soup

    def to_html(self) -> str:
        return str(self._soup)

    # -- queries -------------------------------------------------------

    @property
    def document_element(self) -> SoupElement:
        return self.wrap(self._soup.find("html"))

    @property
    def body(self) -> SoupElement:
        return self.wrap(self._soup.find("body"))

    def _light_tags(self, tags: List[Tag]) -> List[Tag]:
        return [
            tag for tag in tags
            if not _is_shadow_template(tag) and not _inside_shadow_template(tag)
        ]

    def select_within(self, root: Tag, selector: str) -> List[SoupElement]:
        try:
            matches = root.select(selector)
        except (soupsieve.SelectorSyntaxError, ValueError, NotImplementedError) as e:
            logger.debug(f"Invalid selector {selector!r}: {e}")
            return []
        return [self.wrap(tag) for tag in matches]

    def query_selector_all(self, selector: str) -> List[SoupElement]:
        try:
            matches = self._soup.select(selector)
        except (soupsieve.SelectorSyntaxError, ValueError, NotImplementedError) as e:
            logger.debug(f"Invalid selector {selector!r}: {e}")
            return []
        return [self.wrap(tag) for tag in self._light_tags(matches)]

    def query_selector(self, selector: str) -> Optional[SoupElement]:
        matches = self.query_selector_all(selector)
        return matches[0] if matches else None

    def all_elements(self) -> Iterator[SoupElement]:
        for tag in self._light_tags(self._soup.find_all(True)):
            yield self.wrap(tag)

    # -- styles --------------------------------------------------------

    def computed_style_for(self, tag: Tag) -> Dict[str, str]:
        parent = _composed_parent(tag)
        inherited = self.computed_style_for(parent) if parent is not None else {}
        style = dict(DEFAULT_STYLE)
        for name in INHERITED_PROPERTIES:
            if name in inherited:
                style[name] = inherited[name]

        name = (tag.name or "").lower()
        if name in HIDDEN_TAGS or tag.has_attr("hidden"):
            style["display"] = "none"
        elif name in BLOCK_TAGS:
            style["display"] = "block"
        elif name == "li":
            style["display"] = "list-item"
        elif name == "table":
            style["display"] = "table"
        elif name in INLINE_BLOCK_TAGS:
            style["display"] = "inline-block"
        if name == "input" and str(tag.attrs.get("type", "")).lower() == "hidden":
            style["display"] = "none"
        if name == "a" and tag.has_attr("href") and "cursor" not in parse_style(tag.attrs.get("style")):
            style["cursor"] = "pointer"

        style.update(parse_style(SoupElement._attr_text(tag.attrs.get("style"))))
        return style

    def is_rendered(self, tag: Tag) -> bool:
        current: Optional[Tag] = tag
        while current is not None:
            if self.computed_style_for(current).get("display") == "none":
                return False
            current = _composed_parent(current)
        return True

    # -- layout --------------------------------------------------------

    def set_layout(self, element: SoupElement, rect: Rect) -> None:
        """Pin an element's document-relative geometry."""
        self._layout[id(element.tag)] = rect

    def set_scroll(self, x: float, y: float) -> None:
        self._scroll = (x, y)

    def _length(self, value: Optional[str]) -> float:
        if not value:
            return 0.0
        match = _LENGTH_RE.match(value)
        if not match:
            return 0.0
        number = float(match.group(1))
        unit = (match.group(2) or "px").lower()
        if unit == "vw":
            return number * self._viewport[0] / 100.0
        if unit == "vh":
            return number * self._viewport[1] / 100.0
        return number

    def _layout_rect(self, tag: Tag) -> Rect:
        pinned = self._layout.get(id(tag))
        if pinned is not None:
            return pinned
        style = parse_style(SoupElement._attr_text(tag.attrs.get("style")))
        return Rect(
            x=self._length(style.get("left")),
            y=self._length(style.get("top")),
            width=self._length(style.get("width")),
            height=self._length(style.get("height")),
        )

    def viewport_rect_for(self, tag: Tag) -> Rect:
        if not self.is_rendered(tag):
            return Rect()
        rect = self._layout_rect(tag)
        if self.computed_style_for(tag).get("position") == "fixed":
            return rect
        return rect.translated(-self._scroll[0], -self._scroll[1])

    def viewport_size(self) -> Tuple[float, float]:
        return self._viewport

    def scroll_offset(self) -> Tuple[float, float]:
        return self._scroll

    def frame_depth(self) -> int:
        return self._frame_depth

    @property
    def origin(self) -> str:
        parsed = urlparse(self.url)
        if parsed.scheme in ("http", "https") and parsed.netloc:
            return f"{parsed.scheme}://{parsed.netloc}"
        return "null"

    # -- hit testing ---------------------------------------------------

    def hit_test(self, tags: List[Tag], x: float, y: float) -> Optional[SoupElement]:
        best: Optional[Tuple[int, int, Tag]] = None
        for order, tag in enumerate(tags):
            if _is_shadow_template(tag):
                continue
            style = self.computed_style_for(tag)
            if style.get("pointer-events") == "none" or style.get("visibility") == "hidden":
                continue
            rect = self.viewport_rect_for(tag)
            if rect.width <= 0 or rect.height <= 0 or not rect.contains(x, y):
                continue
            try:
                z_index = int(style.get("z-index", "auto"))
            except ValueError:
                z_index = 0
            if best is None or (z_index, order) >= (best[0], best[1]):
                best = (z_index, order, tag)
        return self.wrap(best[2]) if best else None

    def element_from_point(self, x: float, y: float) -> Optional[SoupElement]:
        return self.hit_test(self._light_tags(self._soup.find_all(True)), x, y)

    # -- construction --------------------------------------------------

    def create_element(self, tag_name: str) -> SoupElement:
        return self.wrap(self._soup.new_tag(tag_name.lower()))

    # -- events --------------------------------------------------------

    def add_event_listener(self, event_type: str, handler: EventHandler, capture: bool = True) -> None:
        self._listeners.add(event_type, handler, capture)

    def remove_event_listener(self, event_type: str, handler: EventHandler, capture: bool = True) -> None:
        self._listeners.remove(event_type, handler, capture)

    def listener_count(self, event_type: Optional[str] = None) -> int:
        return self._listeners.count(event_type)

    def dispatch_event(self, event: DomEvent) -> bool:
        """Deliver an event to document listeners.

        Returns:
            False if a listener called prevent_default(), True otherwise
        """
        for handler in self._listeners.handlers_for(event.type):
            handler(event)
        return not event.default_prevented

    # -- mutation observation ------------------------------------------

    def add_observation(self, observation: _Observation) -> None:
        self._observations.append(observation)

    def remove_observation(self, observation: _Observation) -> None:
        if observation in self._observations:
            self._observations.remove(observation)

    @property
    def observation_count(self) -> int:
        return len(self._observations)

    def notify(self, target: Tag, notice: MutationNotice) -> None:
        for observation in list(self._observations):
            if observation.accepts(notice, target):
                observation.callback([notice])


