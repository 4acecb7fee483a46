"""Aggregates for the Element Registry Context.

The ElementRegistry is the aggregate root for this context. It is an
explicit identity table: records are stored by their immutable
ElementId, and a separate name -> ElementId index is rebuilt whenever a
name changes, so renames never move record data.

Invariants:
- Every current name maps to exactly one record
- A record's ElementId (and so its default id) never changes
- The counter only grows; ids are never reused, even after delete/clear
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from elementmcp.domains.element_registry.entities import CapturedElement
from elementmcp.domains.element_registry.events import (
    ElementAdded,
    ElementDeleted,
    ElementMutated,
    ElementRenamed,
    ElementVerified,
    RegistryCleared,
)
from elementmcp.domains.element_registry.value_objects import (
    ElementId,
    ElementNotFoundError,
    InvalidNameError,
    MutationSummary,
    NameInUseError,
    VerificationResult,
    is_valid_name,
)
from elementmcp.domains.selector.value_objects import ElementSnapshot


@dataclass
class ElementRegistry:
    """Aggregate root for captured elements.

    Attributes:
        records: Records keyed by identity, in insertion order
        counter: Next value to allocate an ElementId from
    """

    records: Dict[ElementId, CapturedElement] = field(default_factory=dict)
    counter: int = 1

    _name_index: Dict[str, ElementId] = field(default_factory=dict, init=False, repr=False)
    _events: List[object] = field(default_factory=list, init=False, repr=False)
    skipped: List[str] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.records:
            highest = max(element_id.value for element_id in self.records)
            self.counter = max(self.counter, highest + 1)
        self._rebuild_index()

    # -- lookup --------------------------------------------------------

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[CapturedElement]:
        return iter(list(self.records.values()))

    def find(self, name: str) -> Optional[str]:
        """Resolve a name to the current key of its record.

        The index holds every current key, which is the custom name
        when one is assigned and the default id otherwise.
        """
        element_id = self._name_index.get(name)
        if element_id is None:
            return None
        return self.records[element_id].name

    def get(self, name: str) -> Optional[CapturedElement]:
        key = self.find(name)
        return self.records[self._name_index[key]] if key is not None else None

    def require(self, name: str) -> CapturedElement:
        record = self.get(name)
        if record is None:
            raise ElementNotFoundError(name)
        return record

    def by_id(self, element_id: ElementId) -> Optional[CapturedElement]:
        return self.records.get(element_id)

    # -- commands ------------------------------------------------------

    def add(self, snapshot: ElementSnapshot, now: int, track_changes: bool = False) -> CapturedElement:
        """Allocate the next default name and store the record."""
        element_id = self._allocate_id()
        record = CapturedElement.capture(element_id, snapshot, now, track_changes=track_changes)
        self.records[element_id] = record
        self._name_index[record.name] = element_id
        self._events.append(
            ElementAdded(
                element_id=element_id,
                name=record.name,
                selector=record.selector,
                track_changes=track_changes,
            )
        )
        return record

    def rename(self, old_name: str, new_name: str) -> CapturedElement:
        """Re-key a record under new_name.

        Renaming to the record's default id clears its custom name.

        Raises:
            InvalidNameError: new_name does not match the identifier pattern
            NameInUseError: new_name already keys a different record
            ElementNotFoundError: old_name has no record
        """
        if not is_valid_name(new_name):
            raise InvalidNameError(new_name)

        owner_key = self.find(new_name)
        target = self.get(old_name)
        if owner_key is not None and (target is None or owner_key != target.name):
            raise NameInUseError(new_name, current_owner=owner_key)
        if target is None:
            raise ElementNotFoundError(old_name)

        previous = target.name
        target.custom_name = None if new_name == target.default_id else new_name
        self._rebuild_index()
        if previous != target.name:
            self._events.append(
                ElementRenamed(
                    element_id=target.element_id,
                    old_name=previous,
                    new_name=target.name,
                )
            )
        return target

    def remove(self, name: str) -> CapturedElement:
        record = self.require(name)
        del self.records[record.element_id]
        self._name_index.pop(record.name, None)
        self._events.append(ElementDeleted(element_id=record.element_id, name=record.name))
        return record

    def clear(self) -> int:
        """Remove every record; the counter is kept."""
        count = len(self.records)
        self.records.clear()
        self._name_index.clear()
        self._events.append(RegistryCleared(elements_removed=count))
        return count

    def record_verification(
        self, record: CapturedElement, result: VerificationResult, now: int
    ) -> None:
        record.is_valid = result.is_valid
        record.last_verified = now
        self._events.append(
            ElementVerified(
                element_id=record.element_id,
                name=record.name,
                outcome=result.outcome,
                selector=result.selector,
                previous_selector=result.previous_selector,
            )
        )

    def apply_mutations(
        self, element_id: ElementId, summaries: List[MutationSummary], now: int
    ) -> Optional[CapturedElement]:
        """Append summaries to a record's audit trail.

        Returns:
            The updated record, or None if it no longer exists
        """
        record = self.records.get(element_id)
        if record is None or not summaries:
            return None
        record.record_mutations(summaries, now)
        self._events.append(
            ElementMutated(
                element_id=element_id,
                name=record.name,
                mutation_count=len(summaries),
            )
        )
        return record

    # -- persistence ---------------------------------------------------

    def to_payload(self, timestamp: int) -> Dict[str, Any]:
        """Whole-registry storage record."""
        return {
            "elements": [[record.name, record.to_dict()] for record in self.records.values()],
            "counter": self.counter,
            "timestamp": timestamp,
        }

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "ElementRegistry":
        """Rebuild a registry from to_payload() output.

        A missing payload is an empty registry with counter 1. Records
        that cannot be rebuilt, or that repeat an identity or a name,
        are left out and described in `skipped`. Their ids still count
        toward the counter so they are never handed out again.

        Raises:
            TypeError: If the payload itself does not have the stored shape
        """
        if not payload:
            return cls()
        entries = payload.get("elements") if isinstance(payload, dict) else None
        if not isinstance(payload, dict) or not isinstance(entries or [], list):
            raise TypeError(f"Registry payload has an unexpected shape: {type(payload).__name__}")

        records: Dict[ElementId, CapturedElement] = {}
        names = set()
        skipped: List[str] = []
        highest = 0
        for position, entry in enumerate(entries or []):
            try:
                key, data = entry[0], entry[1]
                highest = max(highest, _stored_identity(data))
                record = CapturedElement.from_dict(data)
            except (KeyError, IndexError, TypeError, ValueError) as e:
                skipped.append(f"entry {position}: {e}")
                continue
            if record.element_id in records or record.name in names:
                skipped.append(f"entry {position} ('{key}'): duplicate of {record.name}")
                continue
            records[record.element_id] = record
            names.add(record.name)

        try:
            counter = int(payload.get("counter") or 1)
        except (TypeError, ValueError):
            skipped.append(f"counter: {payload.get('counter')!r}")
            counter = 1
        registry = cls(records=records, counter=max(counter, highest + 1))
        registry.skipped = skipped
        return registry

    # -- events --------------------------------------------------------

    def get_events(self) -> List[object]:
        return list(self._events)

    def pull_events(self) -> List[object]:
        events, self._events = self._events, []
        return events

    # -- internals -----------------------------------------------------

    def _allocate_id(self) -> ElementId:
        # A custom name may already occupy element<N>; skip past it.
        while True:
            element_id = ElementId(self.counter)
            self.counter += 1
            if element_id.default_name not in self._name_index:
                return element_id

    def _rebuild_index(self) -> None:
        self._name_index = {record.name: element_id for element_id, record in self.records.items()}


def _stored_identity(data: Any) -> int:
    """Best-effort numeric id of a stored record, 0 when it has none."""
    if not isinstance(data, dict):
        return 0
    raw = data.get("element_id")
    if isinstance(raw, int) and raw > 0:
        return raw
    element_id = ElementId.from_default_name(str(data.get("default_id") or ""))
    return element_id.value if element_id else 0
