"""Tests for the annotated tool parameter types."""

import pytest
from pydantic import TypeAdapter, ValidationError

from elementmcp.domains.shared.kernel import (
    ElementReference,
    KeyName,
    PointerEventType,
    TieBreakMode,
    now_ms,
)


class TestParameterTypes:
    @pytest.mark.parametrize("raw, expected", [("@element1", "element1"), (" submitBtn ", "submitBtn")])
    def test_element_reference(self, raw, expected):
        assert TypeAdapter(ElementReference).validate_python(raw) == expected

    @pytest.mark.parametrize("raw", ["Click", " MOUSEMOVE ", "contextMenu"])
    def test_pointer_event_type_is_case_insensitive(self, raw):
        assert TypeAdapter(PointerEventType).validate_python(raw) == raw.strip().lower()

    def test_pointer_event_type_rejects_unknown(self):
        with pytest.raises(ValidationError):
            TypeAdapter(PointerEventType).validate_python("dblclick")

    @pytest.mark.parametrize(
        "raw, expected",
        [("esc", "Escape"), ("ESCAPE", "Escape"), ("return", "Enter"), ("Tab", "Tab")],
    )
    def test_key_name(self, raw, expected):
        assert TypeAdapter(KeyName).validate_python(raw) == expected

    def test_tie_break_mode(self):
        adapter = TypeAdapter(TieBreakMode)
        assert adapter.validate_python("FIRST") == "first"
        with pytest.raises(ValidationError):
            adapter.validate_python("closest")

    def test_schema_is_flat_enum(self):
        schema = TypeAdapter(PointerEventType).json_schema()
        assert schema["enum"] == ["mousemove", "click", "contextmenu"]


def test_now_ms_is_epoch_milliseconds():
    assert now_ms() > 1_600_000_000_000
