"""Tests for the plain-text element renderers."""

from elementmcp.domains.element_registry import CapturedElement, ElementId, ReferencedElement
from elementmcp.domains.selector import ElementSnapshot
from elementmcp.utils import format_element_info, format_element_summary, render_references
from elementmcp.utils.formatting import REFERENCES_HEADER


def _record(**overrides):
    data = {
        "tag_name": "button",
        "selector": "#ember482",
        "fallback_selectors": ["button.btn", "//button[1]"],
        "id": "ember482",
        "class_name": "btn btn-primary",
        "xpath": '//*[@id="ember482"]',
        "text": "Submit",
        "html": '<button id="ember482" class="btn btn-primary">Submit</button>',
        "position": {"x": 10, "y": 20, "width": 80, "height": 30},
        "styles": {"display": "inline-block", "color": "red", "z-index": "auto", "float": "none"},
        "attributes": {"id": "ember482", "class": "btn btn-primary"},
        "is_visible": True,
        "is_clickable": True,
        "is_interactive": True,
        "event_listeners": ["click"],
        "manipulation_examples": {"click": "el.click()", "focus": "el.focus()"},
    }
    data.update(overrides)
    return data


class TestFormatElementInfo:
    def test_full_record(self):
        text = format_element_info(_record(is_valid=True))
        lines = text.splitlines()

        assert lines[0] == "Element: #ember482"
        assert "Fallback Selectors: button.btn, //button[1]" in lines
        assert "Tag: <button>" in lines
        assert "ID: ember482" in lines
        assert "Classes: btn btn-primary" in lines
        assert "Position: 10px, 20px (80x30)" in lines
        assert "Valid: true" in lines
        assert "Clickable: true" in lines
        assert "Event Listeners: click" in lines
        assert 'Text Content: "Submit"' in lines
        assert "  class: btn btn-primary" in lines
        assert text.endswith("focus:\nel.focus()")

    def test_skipped_styles(self):
        text = format_element_info(_record())
        css = text.split("```css\n", 1)[1].split("```", 1)[0]
        assert css == "  display: inline-block\n  color: red\n"

    def test_minimal_record(self):
        text = format_element_info({"tag_name": "div", "selector": "div"})
        assert "ID:" not in text
        assert "Valid:" not in text
        assert "Text Content" not in text
        assert "Console Manipulation Examples" not in text
        assert "```html\n\n```" in text


class TestFormatElementSummary:
    def test_with_id_and_text(self):
        summary = format_element_summary(_record(), "element1")
        assert summary == (
            '@element1 saved: #ember482 - "Submit" (Type "rename @element1 newname" to rename)'
        )

    def test_custom_name_and_validity(self):
        summary = format_element_summary(
            _record(custom_name="submitBtn", is_valid=False), "element1"
        )
        assert summary.startswith("@submitBtn ✗ saved:")

    def test_label_falls_back_to_class_then_tag(self):
        assert "saved: .btn " in format_element_summary(_record(id=None, text=None), "e")
        assert "saved: <button> " in format_element_summary(
            _record(id=None, class_name=None, text=None), "e"
        )

    def test_long_text_is_truncated(self):
        summary = format_element_summary(_record(text="x" * 80), "element1")
        assert f'"{"x" * 50}..."' in summary


class TestRenderReferences:
    def test_no_matches(self):
        assert render_references("click @nothing", []) == "click @nothing"

    def test_appends_block_per_match(self):
        snapshot = ElementSnapshot(tag_name="a", selector="#home", id="home")
        element = CapturedElement.capture(ElementId(1), snapshot, now=0)
        match = ReferencedElement(reference="element1", name="element1", element=element)

        rendered = render_references("click @element1", [match])

        assert rendered.startswith("click @element1" + REFERENCES_HEADER)
        assert "\n@element1:\nElement: #home\n" in rendered
