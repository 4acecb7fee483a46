"""Domain-Driven Design bounded contexts for element-mcp.

This package contains:
- Selector Context: selector synthesis, element data extraction, fingerprints
- Picker Context: the interactive hover/click selection state machine
- Element Registry Context: named captured elements, verification and
  mutation tracking
"""

from elementmcp.domains.element_registry import (
    CapturedElement,
    ElementRegistry,
    ElementRegistryService,
    FingerprintTieBreak,
    VerificationOutcome,
)
from elementmcp.domains.picker import PickerOptions, PickerSession, PickerState
from elementmcp.domains.selector import (
    ElementDataExtractor,
    ElementSnapshot,
    SelectorPolicy,
    SelectorSet,
    SelectorSynthesizer,
)

__all__ = [
    # Selector
    "ElementDataExtractor",
    "ElementSnapshot",
    "SelectorPolicy",
    "SelectorSet",
    "SelectorSynthesizer",
    # Picker
    "PickerOptions",
    "PickerSession",
    "PickerState",
    # Element Registry
    "CapturedElement",
    "ElementRegistry",
    "ElementRegistryService",
    "FingerprintTieBreak",
    "VerificationOutcome",
]
