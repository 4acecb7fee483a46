"""Value Objects for the Selector Context.

Immutable results of selector synthesis and snapshot extraction.
ElementSnapshot is the payload the picker emits to its host and the
registry stores per captured element, so it round-trips through plain
JSON via to_dict()/from_dict().
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SelectorStrategy(Enum):
    """Strategy that produced a selector, in priority order."""

    ID = "id"
    ATTRIBUTE = "attribute"
    CLASS = "class"
    CONTENT = "content"
    POSITION = "position"
    TAG = "tag"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "SelectorStrategy":
        normalized = (value or "").lower().strip()
        for strategy in cls:
            if strategy.value == normalized:
                return strategy
        return cls.TAG


@dataclass(frozen=True)
class SelectorCandidate:
    """A selector that resolved uniquely to the target element."""

    selector: str
    strategy: SelectorStrategy


@dataclass(frozen=True)
class SelectorSet:
    """Primary selector plus ordered fallbacks, most specific first."""

    primary: str
    fallbacks: Tuple[str, ...] = ()
    strategy: SelectorStrategy = SelectorStrategy.TAG

    @property
    def all_selectors(self) -> List[str]:
        return [self.primary, *self.fallbacks]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary,
            "fallbacks": list(self.fallbacks),
            "strategy": self.strategy.value,
        }


@dataclass(frozen=True)
class ContentFingerprint:
    """Similarity key used to relocate an element when all selectors fail.

    Not a selector: several elements may share a fingerprint.
    """

    tag_name: str
    text_snippet: str = ""
    attribute_signature: str = ""
    class_count: int = 0
    child_count: int = 0

    TEXT_SNIPPET_LENGTH = 50
    SIGNATURE_LENGTH = 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag_name": self.tag_name,
            "text_snippet": self.text_snippet,
            "attribute_signature": self.attribute_signature,
            "class_count": self.class_count,
            "child_count": self.child_count,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ContentFingerprint"]:
        if not data or not data.get("tag_name"):
            return None
        return cls(
            tag_name=str(data["tag_name"]),
            text_snippet=str(data.get("text_snippet") or ""),
            attribute_signature=str(data.get("attribute_signature") or ""),
            class_count=int(data.get("class_count") or 0),
            child_count=int(data.get("child_count") or 0),
        )


@dataclass
class ElementSnapshot:
    """Everything captured about an element at pick time.

    Geometry is reported both viewport-relative and document-relative;
    xpath and css_path are auxiliary paths, not matching strategies.
    """

    tag_name: str
    selector: str
    id: Optional[str] = None
    class_name: Optional[str] = None
    fallback_selectors: List[str] = field(default_factory=list)
    selector_strategy: str = SelectorStrategy.TAG.value
    xpath: Optional[str] = None
    css_path: Optional[str] = None
    text: Optional[str] = None
    html: str = ""
    position: Dict[str, Any] = field(default_factory=dict)
    styles: Dict[str, str] = field(default_factory=dict)
    is_visible: bool = False
    is_clickable: bool = False
    is_interactive: bool = False
    is_in_viewport: bool = False
    is_focusable: bool = False
    event_listeners: List[str] = field(default_factory=list)
    has_click_handler: bool = False
    attributes: Dict[str, str] = field(default_factory=dict)
    data_attributes: Dict[str, str] = field(default_factory=dict)
    form_properties: Optional[Dict[str, Any]] = None
    parent_context: Optional[Dict[str, Any]] = None
    sibling_context: Optional[Dict[str, Any]] = None
    accessibility: Dict[str, Any] = field(default_factory=dict)
    content_fingerprint: Optional[ContentFingerprint] = None
    is_in_shadow_dom: bool = False
    has_shadow_root: bool = False
    frame_info: Dict[str, Any] = field(default_factory=dict)
    manipulation_examples: Dict[str, str] = field(default_factory=dict)
    track_changes: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, ContentFingerprint):
                value = value.to_dict()
            elif isinstance(value, dict):
                value = dict(value)
            elif isinstance(value, list):
                value = list(value)
            result[f.name] = value
        return result

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementSnapshot":
        """Build a snapshot from a dict, ignoring keys it does not know."""
        known = set(cls.field_names())
        kwargs = {k: v for k, v in data.items() if k in known}
        if "tag_name" not in kwargs:
            raise ValueError("Snapshot data requires 'tag_name'")
        kwargs.setdefault("selector", kwargs["tag_name"])
        kwargs["content_fingerprint"] = ContentFingerprint.from_dict(
            data.get("content_fingerprint")
        )
        kwargs["fallback_selectors"] = list(kwargs.get("fallback_selectors") or [])
        return cls(**kwargs)
