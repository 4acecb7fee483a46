"""Selector Synthesis Services.

Given one element and the document it lives in, derive a short locator
that matches exactly that element, plus runner-up locators kept for
re-anchoring. Every candidate is checked against the live document and
accepted only if it resolves to exactly the input element.

Strategy order (first unique candidate of the first productive strategy
becomes the primary selector):

1. Stable id:           #main-nav
2. Semantic attribute:  input[name="email"], [aria-label="Close"]
3. Non-utility class:   .search-box, button.primary-action
4. Content:             input[value="Go"], button /* text: "Submit" */
5. Position:            #list > li:nth-of-type(2), .menu > a

The content form `tag /* text: "T" */` is not understood by CSS engines
(the comment is ignored), so selectors are always resolved through
resolve_selector()/query_all() which match that form by exact text.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, List, Optional, Tuple

import soupsieve

from elementmcp.adapters.dom_adapter import DomElement, ElementLocator
from elementmcp.domains.selector.policy import DEFAULT_POLICY, SelectorPolicy
from elementmcp.domains.selector.value_objects import (
    ContentFingerprint,
    SelectorCandidate,
    SelectorSet,
    SelectorStrategy,
)

logger = logging.getLogger(__name__)

_TEXT_SELECTOR_RE = re.compile(
    r'^\s*([a-zA-Z][a-zA-Z0-9-]*)\s*/\*\s*text:\s*"((?:[^"\\]|\\.)*)"\s*\*/\s*$',
    re.DOTALL,
)
_UNESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


# =============================================================================
# Selector helpers
# =============================================================================


def escape_identifier(ident: str) -> str:
    """Escape an id or class for use after `#` or `.`."""
    return soupsieve.escape(ident)


def quote_attribute_value(value: str) -> str:
    """Quote an attribute value for `[attr="value"]`."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\a ")
    return f'"{escaped}"'


def text_selector(tag: str, text: str) -> Optional[str]:
    """Build the text-annotated content selector, or None if text cannot be embedded."""
    if "*/" in text:
        return None
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'{tag} /* text: "{escaped}" */'


def parse_text_selector(selector: str) -> Optional[Tuple[str, str]]:
    """Split a text-annotated selector into (tag, text)."""
    match = _TEXT_SELECTOR_RE.match(selector or "")
    if not match:
        return None
    return match.group(1).lower(), _UNESCAPE_RE.sub(r"\1", match.group(2))


def query_all(locator: ElementLocator, selector: str) -> List[DomElement]:
    """Every element the selector matches, honouring the text-annotated form."""
    if not selector:
        return []
    parsed = parse_text_selector(selector)
    if parsed:
        tag, text = parsed
        return [
            element
            for element in locator.query_selector_all(tag)
            if element.text_content.strip() == text
        ]
    return locator.query_selector_all(selector)


def resolve_selector(locator: ElementLocator, selector: str) -> Optional[DomElement]:
    """First element matching the selector, or None."""
    matches = query_all(locator, selector)
    return matches[0] if matches else None


def count_matches(locator: ElementLocator, selector: str) -> int:
    return len(query_all(locator, selector))


# =============================================================================
# Content fingerprint
# =============================================================================


def attribute_signature(element: DomElement) -> str:
    """Sorted `name=value` pairs joined by `|`."""
    pairs = sorted(f"{name}={value}" for name, value in element.attributes.items())
    return "|".join(pairs)


def create_content_fingerprint(element: DomElement) -> ContentFingerprint:
    text = element.text_content.strip()
    return ContentFingerprint(
        tag_name=element.tag_name,
        text_snippet=text[: ContentFingerprint.TEXT_SNIPPET_LENGTH],
        attribute_signature=attribute_signature(element)[: ContentFingerprint.SIGNATURE_LENGTH],
        class_count=len(element.class_list),
        child_count=len(element.children),
    )


def fingerprint_matches(element: DomElement, fingerprint: ContentFingerprint) -> bool:
    """Approximate match: text contains the snippet or attributes contain the signature.

    An empty snippet or signature is not evidence and never matches.
    """
    text = element.text_content.strip()
    if fingerprint.text_snippet and fingerprint.text_snippet in text:
        return True
    signature = fingerprint.attribute_signature
    return bool(signature) and signature in attribute_signature(element)


def find_fingerprint_candidates(
    locator: ElementLocator, fingerprint: ContentFingerprint
) -> List[DomElement]:
    """All same-tag elements matching the fingerprint, in document order."""
    return [
        element
        for element in locator.query_selector_all(fingerprint.tag_name)
        if fingerprint_matches(element, fingerprint)
    ]


# =============================================================================
# Synthesizer
# =============================================================================


class SelectorSynthesizer:
    """Derives selectors for elements of one document.

    Pure with respect to the document: it only reads through the
    injected ElementLocator.

    Example:
        synthesizer = SelectorSynthesizer(document)
        selectors = synthesizer.generate_selectors(element)
        selectors.primary   # '#checkout'
    """

    def __init__(self, locator: ElementLocator, policy: SelectorPolicy = DEFAULT_POLICY) -> None:
        self.locator = locator
        self.policy = policy

    # -- public API ----------------------------------------------------

    def generate_selectors(self, element: DomElement) -> SelectorSet:
        """Primary selector plus runner-up selectors from the other strategies."""
        chosen: List[SelectorCandidate] = []
        for strategy in (
            self._id_candidates,
            self._attribute_candidates,
            self._class_candidates,
            self._content_candidates,
            self._position_candidates,
        ):
            candidate = self._first_unique(strategy(element), element)
            if candidate is not None:
                chosen.append(candidate)

        if not chosen:
            logger.debug(f"No unique selector for <{element.tag_name}>; using bare tag")
            return SelectorSet(primary=element.tag_name, strategy=SelectorStrategy.TAG)

        primary = chosen[0]
        fallbacks: List[str] = []
        for candidate in chosen[1:]:
            if candidate.selector != primary.selector and candidate.selector not in fallbacks:
                fallbacks.append(candidate.selector)
        return SelectorSet(
            primary=primary.selector,
            fallbacks=tuple(fallbacks[: self.policy.max_fallbacks]),
            strategy=primary.strategy,
        )

    def optimal_selector(self, element: DomElement) -> str:
        return self.generate_selectors(element).primary

    def is_unique_match(self, selector: str, element: DomElement) -> bool:
        matches = query_all(self.locator, selector)
        return len(matches) == 1 and matches[0] == element

    def css_path(self, element: DomElement) -> str:
        """Absolute `tag.cls:nth-of-type(k) > ...` path, stopping at the first id."""
        root = self.locator.document_element
        path: List[str] = []
        current: Optional[DomElement] = element
        while current is not None and current != root:
            step = current.tag_name
            element_id = current.get_attribute("id")
            if element_id:
                path.insert(0, f"{step}#{escape_identifier(element_id)}")
                break
            classes = current.class_list
            if classes:
                step += "".join(f".{escape_identifier(c)}" for c in classes)
            parent = current.parent
            if parent is not None:
                index, total = self._same_tag_position(current, parent)
                if total > 1:
                    step += f":nth-of-type({index})"
            path.insert(0, step)
            current = parent
        return " > ".join(path)

    def xpath(self, element: DomElement) -> str:
        """Positional XPath from the root: //html[1]/body[1]/div[2]."""
        steps: List[str] = []
        current: Optional[DomElement] = element
        while current is not None:
            parent = current.parent
            index = self._same_tag_position(current, parent)[0] if parent is not None else 1
            steps.insert(0, f"{current.tag_name}[{index}]")
            current = parent
        return "//" + "/".join(steps)

    # -- strategies ----------------------------------------------------

    def _first_unique(
        self, candidates: Iterator[SelectorCandidate], element: DomElement
    ) -> Optional[SelectorCandidate]:
        for candidate in candidates:
            if self.is_unique_match(candidate.selector, element):
                return candidate
        return None

    def _id_candidates(self, element: DomElement) -> Iterator[SelectorCandidate]:
        element_id = element.get_attribute("id")
        if element_id and element_id.strip() and not self.policy.is_dynamic_id(element_id):
            yield SelectorCandidate(f"#{escape_identifier(element_id)}", SelectorStrategy.ID)

    def _attribute_candidates(self, element: DomElement) -> Iterator[SelectorCandidate]:
        tag = element.tag_name
        for attr in self.policy.semantic_attributes:
            value = element.get_attribute(attr)
            if not value or len(value) >= self.policy.max_attribute_length:
                continue
            quoted = quote_attribute_value(value)
            yield SelectorCandidate(f"{tag}[{attr}={quoted}]", SelectorStrategy.ATTRIBUTE)
            if tag in self.policy.bare_attribute_tags and attr in self.policy.bare_attributes:
                yield SelectorCandidate(f"[{attr}={quoted}]", SelectorStrategy.ATTRIBUTE)
        if tag == "input" and self._input_type(element) == "submit":
            yield SelectorCandidate('input[type="submit"]', SelectorStrategy.ATTRIBUTE)

    def _class_candidates(self, element: DomElement) -> Iterator[SelectorCandidate]:
        tag = element.tag_name
        for cls in self.policy.stable_classes(element.class_list):
            escaped = escape_identifier(cls)
            yield SelectorCandidate(f".{escaped}", SelectorStrategy.CLASS)
            yield SelectorCandidate(f"{tag}.{escaped}", SelectorStrategy.CLASS)

    def _content_candidates(self, element: DomElement) -> Iterator[SelectorCandidate]:
        tag = element.tag_name
        input_type = self._input_type(element)

        if tag == "input" and input_type in ("submit", "button"):
            value = (element.get_attribute("value") or "").strip()
            if value and len(value) < self.policy.max_value_length:
                yield SelectorCandidate(
                    f"input[value={quote_attribute_value(value)}]", SelectorStrategy.CONTENT
                )

        if tag in ("button", "a"):
            text = element.text_content.strip()
            if text and len(text) < self.policy.max_text_length:
                selector = text_selector(tag, text)
                if selector:
                    yield SelectorCandidate(selector, SelectorStrategy.CONTENT)

        if tag == "input" and input_type == "submit":
            form = self._closest(element, "form")
            if form is not None:
                form_id = form.get_attribute("id")
                form_name = form.get_attribute("name")
                if form_id:
                    yield SelectorCandidate(
                        f'#{escape_identifier(form_id)} input[type="submit"]',
                        SelectorStrategy.CONTENT,
                    )
                if form_name:
                    yield SelectorCandidate(
                        f'form[name={quote_attribute_value(form_name)}] input[type="submit"]',
                        SelectorStrategy.CONTENT,
                    )

    def _position_candidates(self, element: DomElement) -> Iterator[SelectorCandidate]:
        tag = element.tag_name
        yield SelectorCandidate(tag, SelectorStrategy.POSITION)

        parent = element.parent
        if parent is None:
            return
        index, total = self._same_tag_position(element, parent)
        nth = f"{tag}:nth-of-type({index})"
        if total <= self.policy.few_siblings:
            yield SelectorCandidate(nth, SelectorStrategy.POSITION)

        parent_id = parent.get_attribute("id")
        if parent_id and not self.policy.is_dynamic_id(parent_id):
            scope = f"#{escape_identifier(parent_id)}"
            yield SelectorCandidate(f"{scope} > {tag}", SelectorStrategy.POSITION)
            yield SelectorCandidate(f"{scope} > {nth}", SelectorStrategy.POSITION)

        for cls in self.policy.stable_classes(parent.class_list):
            scope = f".{escape_identifier(cls)}"
            yield SelectorCandidate(f"{scope} > {tag}", SelectorStrategy.POSITION)
            if total <= self.policy.few_siblings:
                yield SelectorCandidate(f"{scope} > {nth}", SelectorStrategy.POSITION)

        if total <= self.policy.max_positional_siblings:
            yield SelectorCandidate(nth, SelectorStrategy.POSITION)

    # -- helpers -------------------------------------------------------

    @staticmethod
    def _input_type(element: DomElement) -> str:
        return (element.get_attribute("type") or "").strip().lower()

    @staticmethod
    def _same_tag_position(element: DomElement, parent: DomElement) -> Tuple[int, int]:
        """1-based index among same-tag siblings and the number of such siblings."""
        siblings = [child for child in parent.children if child.tag_name == element.tag_name]
        index = siblings.index(element) + 1 if element in siblings else 1
        return index, len(siblings)

    @staticmethod
    def _closest(element: DomElement, tag: str) -> Optional[DomElement]:
        current = element.parent
        while current is not None:
            if current.tag_name == tag:
                return current
            current = current.parent
        return None
