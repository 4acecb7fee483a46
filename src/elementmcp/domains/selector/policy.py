"""Selector Policy - versioned heuristics for selector synthesis.

The heuristics that decide whether an id "looks auto-generated" or a
class "looks like a utility class" are pattern lists with no formal
guarantee. They live here as a swappable, versioned policy object so
they can be tuned without touching the selection algorithm:

    policy = replace(DEFAULT_POLICY, version="2", generic_classes=frozenset())
    synthesizer = SelectorSynthesizer(document, policy=policy)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import FrozenSet, Pattern, Tuple

DYNAMIC_ID_PATTERNS: Tuple[str, ...] = (
    r"\d{4,}",  # long numbers (timestamps, counters)
    r"[a-f0-9]{8,}",  # hex runs (hashes, uuids)
    r"^(ember|react|vue|angular)\d+",  # framework generated
    r"^auto_",
    r"(?i)temp|tmp|generated|random",
    r"_\d+$",
    r"^[a-f0-9-]{36}$",  # uuid
)

UTILITY_CLASS_PATTERNS: Tuple[str, ...] = (
    r"^(m|p)[trblxy]?-\d+$",  # spacing: m-4, pt-2
    r"^(w|h)-\d+$",  # sizing
    r"^text-(xs|sm|base|lg|xl|\d+xl)$",  # text size
    r"^(flex|grid|block|inline)",  # display
    r"^(bg|text|border)-(primary|secondary|success|danger|warning|info|light|dark)$",
    r"^(rounded|shadow|opacity)",
    r"^(hover|focus|active):",  # state prefixes
    r"^(sm|md|lg|xl):",  # responsive prefixes
    r"^d-",  # bootstrap display
    r"^col-",  # bootstrap grid
    r"^btn-",  # bootstrap button variants
    r"^alert-",
    r"^badge-",
)

GENERIC_CLASSES: FrozenSet[str] = frozenset({"btn", "row", "container", "clearfix"})

SEMANTIC_ATTRIBUTES: Tuple[str, ...] = (
    "name",
    "type",
    "placeholder",
    "value",
    "title",
    "alt",
    "aria-label",
    "role",
)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Pattern[str]:
    return re.compile(pattern)


@dataclass(frozen=True)
class SelectorPolicy:
    """Tunable heuristics consumed by the selector synthesizer.

    Attributes:
        version: Identifier recorded alongside generated selectors
        dynamic_id_patterns: An id matching any pattern is never used as `#id`
        utility_class_patterns: A class matching any pattern is never used as `.cls`
        generic_classes: Bare framework component classes, skipped like utilities
        semantic_attributes: Attributes tried for `tag[attr="value"]`, in order
        bare_attribute_tags: Tags for which the tagless `[attr="value"]` is also tried
        bare_attributes: Attributes for which the tagless form is tried
        max_attribute_length: Attribute values must be shorter than this
        max_text_length: Button/link text must be shorter than this
        max_value_length: Input button values must be shorter than this
        min_class_length: Classes shorter than this are treated as utilities
        few_siblings: Same-tag sibling count up to which nth-of-type is tried early
        max_positional_siblings: Same-tag sibling count up to which the
            unqualified `tag:nth-of-type(k)` is tried
        max_fallbacks: Maximum number of fallback selectors kept per element
    """

    version: str = "1"
    dynamic_id_patterns: Tuple[str, ...] = DYNAMIC_ID_PATTERNS
    utility_class_patterns: Tuple[str, ...] = UTILITY_CLASS_PATTERNS
    generic_classes: FrozenSet[str] = field(default=GENERIC_CLASSES)
    semantic_attributes: Tuple[str, ...] = SEMANTIC_ATTRIBUTES
    bare_attribute_tags: Tuple[str, ...] = ("button", "input")
    bare_attributes: Tuple[str, ...] = ("type", "value", "aria-label")
    max_attribute_length: int = 50
    max_text_length: int = 50
    max_value_length: int = 30
    min_class_length: int = 3
    few_siblings: int = 3
    max_positional_siblings: int = 5
    max_fallbacks: int = 5

    def is_dynamic_id(self, element_id: str) -> bool:
        """Check if an id appears to be generated at runtime."""
        return any(_compile(p).search(element_id) for p in self.dynamic_id_patterns)

    def is_utility_class(self, class_name: str) -> bool:
        """Check if a class name is a styling utility rather than a stable hook."""
        if len(class_name) < self.min_class_length or class_name[:1].isdigit():
            return True
        if class_name in self.generic_classes:
            return True
        return any(_compile(p).search(class_name) for p in self.utility_class_patterns)

    def stable_classes(self, classes) -> list:
        return [c for c in classes if c and not self.is_utility_class(c)]


DEFAULT_POLICY = SelectorPolicy()
