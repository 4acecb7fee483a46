"""Selector Context - selector synthesis and element snapshots.

Pure functions over one element and its document: the synthesizer
produces a primary selector plus fallbacks, the extractor builds the
full ElementSnapshot emitted on a pick.
"""

from .extraction import ElementDataExtractor, js_lookup
from .policy import DEFAULT_POLICY, SelectorPolicy
from .services import (
    SelectorSynthesizer,
    attribute_signature,
    count_matches,
    create_content_fingerprint,
    find_fingerprint_candidates,
    parse_text_selector,
    query_all,
    resolve_selector,
    text_selector,
)
from .value_objects import (
    ContentFingerprint,
    ElementSnapshot,
    SelectorCandidate,
    SelectorSet,
    SelectorStrategy,
)

__all__ = [
    # Policy
    "DEFAULT_POLICY",
    "SelectorPolicy",
    # Services
    "ElementDataExtractor",
    "SelectorSynthesizer",
    "attribute_signature",
    "count_matches",
    "create_content_fingerprint",
    "find_fingerprint_candidates",
    "js_lookup",
    "parse_text_selector",
    "query_all",
    "resolve_selector",
    "text_selector",
    # Value Objects
    "ContentFingerprint",
    "ElementSnapshot",
    "SelectorCandidate",
    "SelectorSet",
    "SelectorStrategy",
]
