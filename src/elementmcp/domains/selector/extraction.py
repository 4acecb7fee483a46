"""Element Data Extraction.

Builds the full ElementSnapshot for a picked element: selectors, style
subset, geometry, affordance tests, attribute maps, form state,
surrounding context, accessibility attributes, content fingerprint,
shadow-DOM and frame information, and example manipulation statements
addressed through the synthesized selector.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from elementmcp.adapters.dom_adapter import DomElement, ElementLocator
from elementmcp.domains.selector.policy import DEFAULT_POLICY, SelectorPolicy
from elementmcp.domains.selector.services import (
    SelectorSynthesizer,
    create_content_fingerprint,
    parse_text_selector,
)
from elementmcp.domains.selector.value_objects import ElementSnapshot

logger = logging.getLogger(__name__)

TEXT_LIMIT = 200
HTML_LIMIT = 1000

# CSS property name -> snapshot key
STYLE_PROPERTIES = {
    "display": "display",
    "position": "position",
    "width": "width",
    "height": "height",
    "background-color": "backgroundColor",
    "color": "color",
    "font-size": "fontSize",
    "font-family": "fontFamily",
    "opacity": "opacity",
    "visibility": "visibility",
    "z-index": "zIndex",
    "cursor": "cursor",
    "overflow": "overflow",
    "border": "border",
    "padding": "padding",
    "margin": "margin",
    "transform": "transform",
    "transition": "transition",
    "box-shadow": "boxShadow",
    "border-radius": "borderRadius",
    "pointer-events": "pointerEvents",
}

CLICKABLE_TAGS = frozenset({"a", "button", "input", "select", "textarea", "label"})
CLICKABLE_ROLES = frozenset({"button", "link", "checkbox", "radio", "menuitem", "tab"})
FORM_TAGS = frozenset({"input", "textarea", "select"})
FOCUSABLE_TAGS = frozenset({"input", "textarea", "select", "button", "a"})
HANDLER_ATTRIBUTES = (
    "onclick",
    "onmouseover",
    "onmouseout",
    "onchange",
    "onsubmit",
    "onfocus",
    "onblur",
)
ACCESSIBILITY_ATTRIBUTES = {
    "role": "role",
    "aria-label": "aria_label",
    "aria-describedby": "aria_described_by",
    "aria-expanded": "aria_expanded",
    "aria-hidden": "aria_hidden",
    "alt": "alt",
    "title": "title",
}


def _js_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def js_lookup(selector: str) -> str:
    """JavaScript expression that resolves a selector to one element."""
    parsed = parse_text_selector(selector)
    if parsed:
        tag, text = parsed
        return (
            f"Array.from(document.querySelectorAll({_js_string(tag)}))"
            f".find(el => el.textContent.trim() === {_js_string(text)})"
        )
    return f"document.querySelector({_js_string(selector)})"


class ElementDataExtractor:
    """Extracts ElementSnapshot records from a document.

    Args:
        locator: The document the element belongs to
        synthesizer: Selector synthesizer for the same document
            (built from the policy when omitted)
        policy: Heuristics used when building the synthesizer
    """

    def __init__(
        self,
        locator: ElementLocator,
        synthesizer: Optional[SelectorSynthesizer] = None,
        policy: SelectorPolicy = DEFAULT_POLICY,
    ) -> None:
        self.locator = locator
        self.synthesizer = synthesizer or SelectorSynthesizer(locator, policy)

    def extract(self, element: DomElement) -> ElementSnapshot:
        selectors = self.synthesizer.generate_selectors(element)
        style = element.computed_style()
        listeners = self.detect_event_listeners(element)
        text = element.text_content.strip()[:TEXT_LIMIT]
        html = element.outer_html
        if len(html) > HTML_LIMIT:
            html = html[:HTML_LIMIT] + "..."

        return ElementSnapshot(
            tag_name=element.tag_name,
            id=element.get_attribute("id") or None,
            class_name=element.get_attribute("class") or None,
            selector=selectors.primary,
            fallback_selectors=list(selectors.fallbacks),
            selector_strategy=selectors.strategy.value,
            xpath=self.synthesizer.xpath(element),
            css_path=self.synthesizer.css_path(element),
            text=text or None,
            html=html,
            position=self.position(element),
            styles={key: style.get(prop, "") for prop, key in STYLE_PROPERTIES.items()},
            is_visible=self.is_visible(element),
            is_clickable=self.is_clickable(element),
            is_interactive=self.is_interactive(element),
            is_in_viewport=self.is_in_viewport(element),
            is_focusable=self.is_focusable(element),
            event_listeners=listeners,
            has_click_handler="click" in listeners,
            attributes=dict(element.attributes),
            data_attributes={
                name: value
                for name, value in element.attributes.items()
                if name.startswith("data-")
            },
            form_properties=self.form_properties(element),
            parent_context=self.parent_context(element),
            sibling_context=self.sibling_context(element),
            accessibility=self.accessibility_info(element),
            content_fingerprint=create_content_fingerprint(element),
            is_in_shadow_dom=self.is_in_shadow_dom(element),
            has_shadow_root=element.shadow_root is not None,
            frame_info=self.frame_info(),
            manipulation_examples=self.manipulation_examples(element, selectors.primary),
            track_changes=False,
        )

    # -- geometry ------------------------------------------------------

    def position(self, element: DomElement) -> Dict[str, Any]:
        rect = element.bounding_rect()
        scroll_x, scroll_y = self.locator.scroll_offset()
        return {
            "x": rect.left,
            "y": rect.top,
            "width": rect.width,
            "height": rect.height,
            "viewport": {
                "top": rect.top,
                "right": rect.right,
                "bottom": rect.bottom,
                "left": rect.left,
            },
            "document": {"x": rect.left + scroll_x, "y": rect.top + scroll_y},
        }

    def is_in_viewport(self, element: DomElement) -> bool:
        rect = element.bounding_rect()
        width, height = self.locator.viewport_size()
        return rect.top >= 0 and rect.left >= 0 and rect.bottom <= height and rect.right <= width

    # -- affordances ---------------------------------------------------

    def is_visible(self, element: DomElement) -> bool:
        rect = element.bounding_rect()
        style = element.computed_style()
        return (
            rect.width > 0
            and rect.height > 0
            and style.get("opacity") != "0"
            and style.get("visibility") != "hidden"
            and style.get("display") != "none"
            and element.has_offset_parent()
        )

    def is_clickable(self, element: DomElement) -> bool:
        classes = element.class_list
        return (
            element.tag_name in CLICKABLE_TAGS
            or element.has_attribute("onclick")
            or element.get_attribute("role") in CLICKABLE_ROLES
            or element.computed_style().get("cursor") == "pointer"
            or element.has_attribute("data-clickable")
            or "clickable" in classes
            or "btn" in classes
        )

    def is_interactive(self, element: DomElement) -> bool:
        return (
            element.is_content_editable
            or element.tag_name in FORM_TAGS
            or element.tab_index >= 0
            or element.has_attribute("draggable")
            or element.has_attribute("droppable")
        )

    def is_focusable(self, element: DomElement) -> bool:
        return (
            element.tag_name in FOCUSABLE_TAGS
            or element.tab_index >= 0
            or element.is_content_editable
        )

    def detect_event_listeners(self, element: DomElement) -> List[str]:
        """Event types the element likely handles, inferred from markup."""
        listeners: List[str] = []
        for attr in HANDLER_ATTRIBUTES:
            if element.has_attribute(attr):
                listeners.append(attr[2:])
        tag = element.tag_name
        if element.inline_style().get("cursor") == "pointer" or tag in ("a", "button"):
            listeners.append("click")
        if (element.get_attribute("type") or "").lower() == "submit":
            listeners.append("submit")
        if tag in FORM_TAGS:
            listeners.extend(["change", "input"])
        return list(dict.fromkeys(listeners))

    # -- attributes and context ----------------------------------------

    def form_properties(self, element: DomElement) -> Optional[Dict[str, Any]]:
        tag = element.tag_name
        if tag not in FORM_TAGS:
            return None
        max_length = element.get_attribute("maxlength")
        form = self._closest_form(element)
        return {
            "type": self._form_type(element),
            "name": element.get_attribute("name") or None,
            "value": self._form_value(element),
            "placeholder": element.get_attribute("placeholder") or None,
            "required": element.has_attribute("required"),
            "disabled": element.has_attribute("disabled"),
            "readonly": element.has_attribute("readonly"),
            "checked": element.has_attribute("checked"),
            "max_length": int(max_length) if max_length and max_length.strip().isdigit() else None,
            "min": element.get_attribute("min") or None,
            "max": element.get_attribute("max") or None,
            "pattern": element.get_attribute("pattern") or None,
            "autocomplete": element.get_attribute("autocomplete") or None,
            "form": (form.get_attribute("id") or form.get_attribute("name")) if form else None,
        }

    @staticmethod
    def _form_type(element: DomElement) -> str:
        tag = element.tag_name
        if tag == "textarea":
            return "textarea"
        if tag == "select":
            return "select-multiple" if element.has_attribute("multiple") else "select-one"
        return (element.get_attribute("type") or "text").lower()

    @staticmethod
    def _form_value(element: DomElement) -> Optional[str]:
        tag = element.tag_name
        if tag == "textarea":
            return element.text_content or None
        if tag == "select":
            options = [c for c in element.children if c.tag_name == "option"]
            for child in element.children:
                if child.tag_name == "optgroup":
                    options.extend(o for o in child.children if o.tag_name == "option")
            chosen = next((o for o in options if o.has_attribute("selected")), None)
            if chosen is None and options:
                chosen = options[0]
            if chosen is None:
                return None
            value = chosen.get_attribute("value")
            return value if value is not None else chosen.text_content.strip() or None
        return element.get_attribute("value") or None

    @staticmethod
    def _closest_form(element: DomElement) -> Optional[DomElement]:
        current = element.parent
        while current is not None:
            if current.tag_name == "form":
                return current
            current = current.parent
        return None

    def parent_context(self, element: DomElement) -> Optional[Dict[str, Any]]:
        parent = element.parent
        if parent is None or parent == self.locator.body:
            return None
        return {
            "tag_name": parent.tag_name,
            "id": parent.get_attribute("id") or None,
            "class_name": parent.get_attribute("class") or None,
            "selector": self.synthesizer.optimal_selector(parent),
        }

    def sibling_context(self, element: DomElement) -> Optional[Dict[str, Any]]:
        parent = element.parent
        if parent is None:
            return None
        siblings = parent.children
        index = siblings.index(element) if element in siblings else 0
        return {
            "total_siblings": len(siblings),
            "index": index,
            "is_first": index == 0,
            "is_last": index == len(siblings) - 1,
            "previous_sibling": siblings[index - 1].tag_name if index > 0 else None,
            "next_sibling": siblings[index + 1].tag_name if index + 1 < len(siblings) else None,
        }

    def accessibility_info(self, element: DomElement) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            key: element.get_attribute(attr) for attr, key in ACCESSIBILITY_ATTRIBUTES.items()
        }
        info["tab_index"] = element.tab_index
        return info

    def is_in_shadow_dom(self, element: DomElement) -> bool:
        current: Optional[DomElement] = element
        while current is not None:
            if current.is_in_shadow_tree():
                return True
            current = current.parent
        return False

    def frame_info(self) -> Dict[str, Any]:
        depth = self.locator.frame_depth()
        return {
            "is_in_frame": depth > 0,
            "frame_depth": depth,
            "frame_origin": self.locator.origin,
        }

    # -- manipulation examples -----------------------------------------

    def manipulation_examples(self, element: DomElement, selector: str) -> Dict[str, str]:
        """Console statements for the element's affordances."""
        target = js_lookup(selector)
        tag = element.tag_name
        input_type = (element.get_attribute("type") or "").lower()

        examples = {
            "Click": f"{target}.click()",
            "Focus": f"{target}.focus()",
        }
        if tag in ("input", "textarea"):
            examples["Set Value"] = f"{target}.value = 'new value'"
            examples["Clear"] = f"{target}.value = ''"
        if tag == "input" and input_type in ("checkbox", "radio"):
            examples["Check"] = f"{target}.checked = true"
            examples["Uncheck"] = f"{target}.checked = false"
        if tag == "select":
            examples["Select Option"] = f"{target}.value = 'option-value'"
        examples["Hide"] = f"{target}.style.display = 'none'"
        examples["Show"] = f"{target}.style.display = 'block'"
        examples["Change Text"] = f"{target}.textContent = 'New text'"
        examples["Trigger Change"] = f"{target}.dispatchEvent(new Event('change'))"
        return examples
