"""Element Registry Context - named, persisted captured elements.

Records are keyed by an immutable ElementId; names (the generated
element<N> default or a custom identifier) are an index over them.

Usage:
    from elementmcp.domains.element_registry import (
        ElementRegistryService,
        KeyValueRegistryRepository,
    )

    service = await ElementRegistryService.create(KeyValueRegistryRepository(store))
    added = await service.add_element(snapshot)
"""

from .aggregates import ElementRegistry
from .entities import CapturedElement, ReferencedElement
from .events import (
    ElementAdded,
    ElementDeleted,
    ElementMutated,
    ElementRenamed,
    ElementVerified,
    RegistryCleared,
)
from .repository import DEFAULT_STORAGE_KEY, ElementRegistryRepository, KeyValueRegistryRepository
from .services import ElementRegistryService
from .tracking import MutationQueue
from .value_objects import (
    NAME_PATTERN,
    REFERENCE_PATTERN,
    ElementId,
    ElementNotFoundError,
    FingerprintTieBreak,
    InvalidNameError,
    MutationSummary,
    NameInUseError,
    PageNotAttachedError,
    RegistryError,
    VerificationOutcome,
    VerificationResult,
    is_valid_name,
)

__all__ = [
    # Aggregates
    "ElementRegistry",
    # Entities
    "CapturedElement",
    "ReferencedElement",
    # Services
    "ElementRegistryService",
    "MutationQueue",
    # Repository
    "DEFAULT_STORAGE_KEY",
    "ElementRegistryRepository",
    "KeyValueRegistryRepository",
    # Value Objects
    "NAME_PATTERN",
    "REFERENCE_PATTERN",
    "ElementId",
    "FingerprintTieBreak",
    "MutationSummary",
    "VerificationOutcome",
    "VerificationResult",
    "is_valid_name",
    # Errors
    "RegistryError",
    "InvalidNameError",
    "NameInUseError",
    "ElementNotFoundError",
    "PageNotAttachedError",
    # Events
    "ElementAdded",
    "ElementDeleted",
    "ElementMutated",
    "ElementRenamed",
    "ElementVerified",
    "RegistryCleared",
]
