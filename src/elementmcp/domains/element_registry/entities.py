"""Entities for the Element Registry Context.

CapturedElement is the durable record kept per registered element. Its
identity is the immutable ElementId; its name changes with renames.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from elementmcp.domains.element_registry.value_objects import (
    ElementId,
    MutationSummary,
)
from elementmcp.domains.selector.value_objects import ContentFingerprint, ElementSnapshot


@dataclass
class CapturedElement:
    """One registered element.

    selector, fallback_selectors and content_fingerprint start out as
    the values synthesized at capture time; verification may replace
    the selectors. The rest of the snapshot is kept as captured.

    Attributes:
        element_id: Immutable identity, never reused
        snapshot: Data extracted when the element was picked
        custom_name: User-assigned name; None while the default is used
        captured_at: Capture time (epoch ms)
        last_verified: Last verification time (epoch ms)
        is_valid: Result of the last verification; None until verified
        track_changes: Whether a live mutation watch is requested
        mutations: Append-only audit trail of observed changes
        last_modified: Time of the last recorded mutation (epoch ms)
    """

    element_id: ElementId
    snapshot: ElementSnapshot
    selector: str
    fallback_selectors: List[str] = field(default_factory=list)
    content_fingerprint: Optional[ContentFingerprint] = None
    custom_name: Optional[str] = None
    captured_at: int = 0
    last_verified: int = 0
    is_valid: Optional[bool] = None
    track_changes: bool = False
    mutations: List[MutationSummary] = field(default_factory=list)
    last_modified: Optional[int] = None

    @classmethod
    def capture(
        cls,
        element_id: ElementId,
        snapshot: ElementSnapshot,
        now: int,
        track_changes: bool = False,
    ) -> "CapturedElement":
        return cls(
            element_id=element_id,
            snapshot=snapshot,
            selector=snapshot.selector,
            fallback_selectors=list(snapshot.fallback_selectors),
            content_fingerprint=snapshot.content_fingerprint,
            captured_at=now,
            last_verified=now,
            track_changes=track_changes,
        )

    @property
    def default_id(self) -> str:
        return self.element_id.default_name

    @property
    def name(self) -> str:
        """Current key: the custom name if assigned, else the default id."""
        return self.custom_name or self.default_id

    @property
    def summary_name(self) -> str:
        """Short human label: #id, .firstClass or <tag>."""
        if self.snapshot.id:
            return f"#{self.snapshot.id}"
        if self.snapshot.class_name:
            return f".{self.snapshot.class_name.split()[0]}"
        return f"<{self.snapshot.tag_name}>"

    def record_mutations(self, summaries: List[MutationSummary], now: int) -> None:
        self.mutations.extend(summaries)
        self.last_modified = now

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON form: snapshot fields plus record fields."""
        data = self.snapshot.to_dict()
        data.update(
            {
                "selector": self.selector,
                "fallback_selectors": list(self.fallback_selectors),
                "content_fingerprint": (
                    self.content_fingerprint.to_dict() if self.content_fingerprint else None
                ),
                "track_changes": self.track_changes,
                "element_id": self.element_id.value,
                "default_id": self.default_id,
                "custom_name": self.custom_name,
                "captured_at": self.captured_at,
                "last_verified": self.last_verified,
                "is_valid": self.is_valid,
                "mutations": [m.to_dict() for m in self.mutations],
                "last_modified": self.last_modified,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CapturedElement":
        """Rebuild a record from to_dict() output.

        Raises:
            ValueError: If neither element_id nor a default_id of the
                form element<N> is present
        """
        raw_id = data.get("element_id")
        if raw_id is not None:
            element_id = ElementId(int(raw_id))
        else:
            element_id = ElementId.from_default_name(str(data.get("default_id") or ""))
            if element_id is None:
                raise ValueError(f"Record has no usable identity: {data.get('default_id')!r}")

        snapshot = ElementSnapshot.from_dict(data)
        return cls(
            element_id=element_id,
            snapshot=snapshot,
            selector=str(data.get("selector") or snapshot.selector),
            fallback_selectors=list(data.get("fallback_selectors") or []),
            content_fingerprint=snapshot.content_fingerprint,
            custom_name=data.get("custom_name") or None,
            captured_at=int(data.get("captured_at") or 0),
            last_verified=int(data.get("last_verified") or 0),
            is_valid=data.get("is_valid"),
            track_changes=bool(data.get("track_changes", False)),
            mutations=[MutationSummary.from_dict(m) for m in data.get("mutations") or []],
            last_modified=data.get("last_modified"),
        )


@dataclass(frozen=True)
class ReferencedElement:
    """An `@name` token found in free text and the record it resolves to."""

    reference: str
    name: str
    element: CapturedElement

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reference": self.reference,
            "name": self.name,
            "data": self.element.to_dict(),
        }
