"""Value Objects for the Element Registry Context.

Identity, naming rules, verification outcomes and the registry's error
taxonomy. Naming and lookup errors are raised to the direct caller;
storage failures never reach this layer (see repository.py).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
REFERENCE_PATTERN = re.compile(r"@([A-Za-z][A-Za-z0-9_]*)")
DEFAULT_NAME_PREFIX = "element"
_DEFAULT_NAME_RE = re.compile(rf"^{DEFAULT_NAME_PREFIX}(\d+)$")


@dataclass(frozen=True, order=True)
class ElementId:
    """Immutable internal identity of a captured element.

    The value is the registry counter at allocation time, so it also
    determines the default name `element<N>`.
    """

    value: int

    def __post_init__(self) -> None:
        if self.value < 1:
            raise ValueError(f"ElementId must be positive, got {self.value}")

    @property
    def default_name(self) -> str:
        return f"{DEFAULT_NAME_PREFIX}{self.value}"

    @classmethod
    def from_default_name(cls, name: str) -> Optional["ElementId"]:
        match = _DEFAULT_NAME_RE.match(name or "")
        if not match or int(match.group(1)) < 1:
            return None
        return cls(int(match.group(1)))

    def __str__(self) -> str:
        return str(self.value)


def is_valid_name(name: str) -> bool:
    return bool(name) and NAME_PATTERN.match(name) is not None


class FingerprintTieBreak(Enum):
    """How content-fingerprint re-anchoring treats several candidates.

    STRICT: exactly one candidate is required; several is ambiguous.
    FIRST: the first candidate in document order wins.
    """

    STRICT = "strict"
    FIRST = "first"

    @classmethod
    def from_string(cls, value: str) -> "FingerprintTieBreak":
        normalized = (value or "").lower().strip()
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise ValueError(
            f"Unknown fingerprint tie-break: '{value}'. "
            f"Valid modes: {[m.value for m in cls]}"
        )


class VerificationOutcome(Enum):
    """How verify_element located (or failed to locate) an element."""

    PRIMARY_MATCH = "primary_match"
    FALLBACK_MATCH = "fallback_match"
    REANCHORED = "reanchored"
    SELECTOR_MISS = "selector_miss"
    AMBIGUOUS_FINGERPRINT = "ambiguous_fingerprint"

    @property
    def is_valid(self) -> bool:
        return self in (
            VerificationOutcome.PRIMARY_MATCH,
            VerificationOutcome.FALLBACK_MATCH,
            VerificationOutcome.REANCHORED,
        )


@dataclass(frozen=True)
class VerificationResult:
    """Result of verifying one registered element against the page."""

    name: str
    outcome: VerificationOutcome
    selector: str
    previous_selector: str
    fingerprint_candidates: int = 0

    @property
    def is_valid(self) -> bool:
        return self.outcome.is_valid

    @property
    def selector_changed(self) -> bool:
        return self.selector != self.previous_selector

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "is_valid": self.is_valid,
            "selector": self.selector,
            "previous_selector": self.previous_selector,
            "selector_changed": self.selector_changed,
            "fingerprint_candidates": self.fingerprint_candidates,
        }


@dataclass(frozen=True)
class MutationSummary:
    """Compact record of one observed change to a tracked element."""

    type: str
    attribute_name: Optional[str] = None
    old_value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "attribute_name": self.attribute_name,
            "old_value": self.old_value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MutationSummary":
        return cls(
            type=str(data.get("type", "")),
            attribute_name=data.get("attribute_name"),
            old_value=data.get("old_value"),
        )


# =============================================================================
# Errors
# =============================================================================


class RegistryError(Exception):
    """Base class for errors reported to registry callers."""


class InvalidNameError(RegistryError):
    """A rename target does not match the identifier pattern.

    Attributes:
        name: The rejected name
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Invalid name '{name}'. Use only letters, numbers, and underscores. "
            "Must start with a letter."
        )


class NameInUseError(RegistryError):
    """A rename target already keys a different record.

    Attributes:
        name: The requested name
        current_owner: Current key of the record holding the name
    """

    def __init__(self, name: str, current_owner: Optional[str] = None) -> None:
        self.name = name
        self.current_owner = current_owner
        super().__init__(f'Name "@{name}" is already in use.')


class ElementNotFoundError(RegistryError):
    """No record is registered under the given name.

    Attributes:
        name: The name that was looked up
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Element "@{name}" not found.')


class PageNotAttachedError(RegistryError):
    """An operation needs a live page but none is attached."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation}: no page is attached. Call load_page first.")
