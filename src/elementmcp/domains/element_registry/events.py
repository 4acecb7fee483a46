"""Domain Events for the Element Registry Context.

Domain events capture significant occurrences within the bounded context.
They are used for:
- Audit logging
- Debugging name and selector changes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from elementmcp.domains.element_registry.value_objects import (
    ElementId,
    VerificationOutcome,
)


@dataclass(frozen=True)
class ElementAdded:
    """Emitted when a captured element is assigned a name and stored."""

    element_id: ElementId
    name: str
    selector: str
    track_changes: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"ElementAdded(name={self.name}, selector={self.selector!r})"


@dataclass(frozen=True)
class ElementRenamed:
    """Emitted when a record is re-keyed.

    new_name equal to the default id means the custom name was cleared.
    """

    element_id: ElementId
    old_name: str
    new_name: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"ElementRenamed({self.old_name} -> {self.new_name})"


@dataclass(frozen=True)
class ElementDeleted:
    """Emitted when a record is removed by an explicit delete."""

    element_id: ElementId
    name: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"ElementDeleted(name={self.name})"


@dataclass(frozen=True)
class ElementVerified:
    """Emitted after every verification, successful or not."""

    element_id: ElementId
    name: str
    outcome: VerificationOutcome
    selector: str
    previous_selector: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"ElementVerified(name={self.name}, outcome={self.outcome.value})"


@dataclass(frozen=True)
class ElementMutated:
    """Emitted when queued mutation summaries are applied to a record."""

    element_id: ElementId
    name: str
    mutation_count: int
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"ElementMutated(name={self.name}, count={self.mutation_count})"


@dataclass(frozen=True)
class RegistryCleared:
    """Emitted when every record is removed at once."""

    elements_removed: int
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"RegistryCleared(elements_removed={self.elements_removed})"
