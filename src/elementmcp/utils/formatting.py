"""Plain-text rendering of captured element records.

These helpers sit outside the registry core. They turn the flat record
dicts produced by CapturedElement.to_dict() into text an LLM prompt or
a chat transcript can carry.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from elementmcp.domains.element_registry.entities import ReferencedElement

REFERENCES_HEADER = "\n\n--- Referenced Elements ---\n"
SUMMARY_TEXT_LENGTH = 50

_SKIPPED_STYLE_VALUES = {"", "none", "auto"}


def _flag_line(label: str, data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    return [f"{label}: {str(value).lower()}"]


def format_element_info(data: Dict[str, Any]) -> str:
    """Render a record as a multi-line description.

    Empty sections are left out. Styles whose value is empty, "none"
    or "auto" are skipped.
    """
    lines = [f"Element: {data.get('selector', '')}"]
    if data.get("fallback_selectors"):
        lines.append(f"Fallback Selectors: {', '.join(data['fallback_selectors'])}")
    lines.append(f"Tag: <{data.get('tag_name', '')}>")
    if data.get("id"):
        lines.append(f"ID: {data['id']}")
    if data.get("class_name"):
        lines.append(f"Classes: {data['class_name']}")
    if data.get("xpath"):
        lines.append(f"XPath: {data['xpath']}")

    position = data.get("position") or {}
    if position:
        lines.append(
            f"Position: {position.get('x', 0)}px, {position.get('y', 0)}px "
            f"({position.get('width', 0)}x{position.get('height', 0)})"
        )
    lines += _flag_line("Valid", data, "is_valid")
    lines += _flag_line("Visible", data, "is_visible")
    lines += _flag_line("Clickable", data, "is_clickable")
    lines += _flag_line("Interactive", data, "is_interactive")
    if data.get("event_listeners"):
        lines.append(f"Event Listeners: {', '.join(data['event_listeners'])}")

    lines += ["", "HTML:", "```html", data.get("html") or "", "```"]

    if data.get("text"):
        lines += ["", f'Text Content: "{data["text"]}"']

    attributes = data.get("attributes") or {}
    if attributes:
        lines += ["", "Attributes:"]
        lines += [f"  {key}: {value}" for key, value in attributes.items()]

    styles = [
        f"  {key}: {value}"
        for key, value in (data.get("styles") or {}).items()
        if value not in _SKIPPED_STYLE_VALUES
    ]
    lines += ["", "Key Styles:", "```css", *styles, "```"]

    examples = data.get("manipulation_examples") or {}
    if examples:
        lines += ["", "Console Manipulation Examples:"]
        for action, code in examples.items():
            lines += [f"{action}:", code, ""]
        lines.pop()

    return "\n".join(lines)


def format_element_summary(data: Dict[str, Any], name: str) -> str:
    """One-line confirmation shown after an element is saved."""
    if data.get("id"):
        label = f"#{data['id']}"
    elif data.get("class_name"):
        label = f".{data['class_name'].split()[0]}"
    else:
        label = f"<{data.get('tag_name', '')}>"

    text = data.get("text") or ""
    if text:
        suffix = "..." if len(text) > SUMMARY_TEXT_LENGTH else ""
        text = f' - "{text[:SUMMARY_TEXT_LENGTH]}{suffix}"'

    display_name = data.get("custom_name") or name
    validity = ""
    if data.get("is_valid") is not None:
        validity = " ✓" if data["is_valid"] else " ✗"

    return (
        f"@{display_name}{validity} saved: {label}{text} "
        f'(Type "rename @{display_name} newname" to rename)'
    )


def render_references(text: str, matches: Iterable[ReferencedElement]) -> str:
    """Append a block describing each referenced element to text.

    The original text is returned unchanged when nothing matched.
    """
    matches = list(matches)
    if not matches:
        return text
    rendered = text + REFERENCES_HEADER
    for match in matches:
        rendered += f"\n@{match.reference}:\n{format_element_info(match.element.to_dict())}\n"
    return rendered
