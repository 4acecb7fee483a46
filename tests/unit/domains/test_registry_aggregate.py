"""Tests for the ElementRegistry aggregate and CapturedElement entity."""

import pytest

from elementmcp.domains.element_registry import (
    CapturedElement,
    ElementAdded,
    ElementDeleted,
    ElementId,
    ElementMutated,
    ElementNotFoundError,
    ElementRegistry,
    ElementRenamed,
    ElementVerified,
    InvalidNameError,
    MutationSummary,
    NameInUseError,
    RegistryCleared,
    VerificationOutcome,
    VerificationResult,
)
from elementmcp.domains.selector import ContentFingerprint, ElementSnapshot


# ── Helpers ──────────────────────────────────────────────────────────


def _snapshot(selector="#save", tag_name="button", **kwargs):
    return ElementSnapshot(tag_name=tag_name, selector=selector, **kwargs)


def _registry_with(count):
    registry = ElementRegistry()
    for i in range(count):
        registry.add(_snapshot(selector=f"#b{i}"), now=1000 + i)
    return registry


# ── Adding ───────────────────────────────────────────────────────────


class TestAdd:
    def test_default_names_are_sequential(self):
        registry = _registry_with(3)
        assert [r.name for r in registry] == ["element1", "element2", "element3"]
        assert registry.counter == 4

    def test_record_copies_selectors_from_snapshot(self):
        registry = ElementRegistry()
        fingerprint = ContentFingerprint(tag_name="button", text_snippet="Save")
        snapshot = _snapshot(fallback_selectors=[".save"], content_fingerprint=fingerprint)
        record = registry.add(snapshot, now=5, track_changes=True)

        assert record.selector == "#save"
        assert record.fallback_selectors == [".save"]
        assert record.content_fingerprint == fingerprint
        assert record.captured_at == 5
        assert record.last_verified == 5
        assert record.is_valid is None
        assert record.track_changes is True

    def test_ids_are_never_reused_after_delete(self):
        registry = _registry_with(3)
        registry.remove("element2")
        record = registry.add(_snapshot(), now=1)
        assert record.name == "element4"
        assert registry.find("element2") is None

    def test_ids_are_never_reused_after_clear(self):
        registry = _registry_with(2)
        assert registry.clear() == 2
        assert len(registry) == 0
        assert registry.add(_snapshot(), now=1).name == "element3"

    def test_allocation_skips_default_name_taken_by_custom_name(self):
        registry = _registry_with(1)
        registry.rename("element1", "element3")
        names = [registry.add(_snapshot(), now=1).name for _ in range(2)]
        assert names == ["element2", "element4"]


# ── Lookup ───────────────────────────────────────────────────────────


class TestLookup:
    def test_find_returns_current_key(self):
        registry = _registry_with(2)
        registry.rename("element2", "checkout")
        assert registry.find("checkout") == "checkout"
        assert registry.find("element1") == "element1"
        assert registry.find("element2") is None
        assert registry.find("missing") is None

    def test_require_raises_not_found(self):
        with pytest.raises(ElementNotFoundError) as exc:
            ElementRegistry().require("ghost")
        assert exc.value.name == "ghost"

    def test_by_id(self):
        registry = _registry_with(1)
        assert registry.by_id(ElementId(1)).name == "element1"
        assert registry.by_id(ElementId(2)) is None


# ── Renaming ─────────────────────────────────────────────────────────


class TestRename:
    def test_rename_keeps_identity(self):
        registry = _registry_with(1)
        record = registry.rename("element1", "checkout")
        assert record.name == "checkout"
        assert record.default_id == "element1"
        assert record.element_id == ElementId(1)
        assert registry.get("checkout") is record

    def test_rename_to_own_default_clears_custom_name(self):
        registry = _registry_with(1)
        registry.rename("element1", "checkout")
        record = registry.rename("checkout", "element1")
        assert record.custom_name is None
        assert registry.find("element1") == "element1"
        assert registry.find("checkout") is None

    def test_rename_to_current_name_is_allowed(self):
        registry = _registry_with(1)
        registry.rename("element1", "checkout")
        registry.pull_events()
        assert registry.rename("checkout", "checkout").name == "checkout"
        assert registry.pull_events() == []

    def test_rename_to_name_of_other_record(self):
        registry = _registry_with(2)
        registry.rename("element1", "checkout")
        with pytest.raises(NameInUseError) as exc:
            registry.rename("element2", "checkout")
        assert exc.value.current_owner == "checkout"
        assert registry.find("element2") == "element2"

    def test_rename_to_default_id_of_other_record(self):
        registry = _registry_with(2)
        with pytest.raises(NameInUseError):
            registry.rename("element2", "element1")

    @pytest.mark.parametrize("name", ["", "1st", "with space", "dash-ed", "_x"])
    def test_invalid_names(self, name):
        registry = _registry_with(1)
        with pytest.raises(InvalidNameError):
            registry.rename("element1", name)
        assert registry.find("element1") == "element1"

    def test_rename_missing(self):
        with pytest.raises(ElementNotFoundError):
            _registry_with(1).rename("ghost", "checkout")

    def test_invalid_name_is_checked_first(self):
        with pytest.raises(InvalidNameError):
            ElementRegistry().rename("ghost", "1bad")


# ── Verification and mutations ───────────────────────────────────────


class TestRecordUpdates:
    def test_record_verification(self):
        registry = _registry_with(1)
        record = registry.get("element1")
        result = VerificationResult(
            name="element1",
            outcome=VerificationOutcome.SELECTOR_MISS,
            selector="#b0",
            previous_selector="#b0",
        )
        registry.record_verification(record, result, now=99)
        assert record.is_valid is False
        assert record.last_verified == 99

    def test_apply_mutations_appends(self):
        registry = _registry_with(1)
        first = [MutationSummary("attributes", "class", "old")]
        second = [MutationSummary("childList"), MutationSummary("characterData", None, "x")]
        registry.apply_mutations(ElementId(1), first, now=10)
        record = registry.apply_mutations(ElementId(1), second, now=20)
        assert record.mutations == first + second
        assert record.last_modified == 20

    def test_apply_mutations_to_removed_record(self):
        registry = _registry_with(1)
        registry.remove("element1")
        assert registry.apply_mutations(ElementId(1), [MutationSummary("childList")], 1) is None


# ── Persistence ──────────────────────────────────────────────────────


class TestPayload:
    def test_round_trip_preserves_names_and_counter(self):
        registry = _registry_with(3)
        registry.rename("element2", "checkout")
        registry.remove("element3")
        registry.apply_mutations(ElementId(1), [MutationSummary("childList")], now=50)

        restored = ElementRegistry.from_payload(registry.to_payload(timestamp=123))

        assert [r.name for r in restored] == ["element1", "checkout"]
        assert restored.counter == 4
        assert [r.to_dict() for r in restored] == [r.to_dict() for r in registry]
        assert restored.add(_snapshot(), now=1).name == "element4"

    def test_payload_shape(self):
        registry = _registry_with(1)
        payload = registry.to_payload(timestamp=7)
        assert payload["counter"] == 2
        assert payload["timestamp"] == 7
        key, data = payload["elements"][0]
        assert key == "element1"
        assert data["default_id"] == "element1"
        assert data["element_id"] == 1

    def test_missing_payload_is_empty(self):
        registry = ElementRegistry.from_payload(None)
        assert len(registry) == 0
        assert registry.counter == 1

    def test_counter_is_at_least_past_highest_id(self):
        registry = _registry_with(3)
        payload = registry.to_payload(timestamp=0)
        payload["counter"] = 1
        assert ElementRegistry.from_payload(payload).counter == 4

    def test_duplicate_identity_is_skipped(self):
        registry = _registry_with(1)
        payload = registry.to_payload(timestamp=0)
        payload["elements"].append(list(payload["elements"][0]))
        restored = ElementRegistry.from_payload(payload)
        assert len(restored) == 1
        assert "duplicate of element1" in restored.skipped[0]

    def test_bad_record_is_skipped(self):
        registry = _registry_with(2)
        payload = registry.to_payload(timestamp=0)
        del payload["elements"][0][1]["tag_name"]
        restored = ElementRegistry.from_payload(payload)
        assert [r.name for r in restored] == ["element2"]
        assert restored.counter == 3
        assert len(restored.skipped) == 1

    def test_unexpected_shape(self):
        with pytest.raises(TypeError):
            ElementRegistry.from_payload({"elements": "broken"})

    def test_identity_from_default_id_only(self):
        data = {"tag_name": "a", "selector": "a", "default_id": "element5"}
        record = CapturedElement.from_dict(data)
        assert record.element_id == ElementId(5)

    def test_record_without_identity(self):
        with pytest.raises(ValueError, match="no usable identity"):
            CapturedElement.from_dict({"tag_name": "a", "default_id": "checkout"})


# ── Entity ───────────────────────────────────────────────────────────


class TestCapturedElement:
    @pytest.mark.parametrize(
        "kwargs, expected",
        [
            ({"id": "save", "class_name": "primary big"}, "#save"),
            ({"class_name": "primary big"}, ".primary"),
            ({}, "<button>"),
        ],
    )
    def test_summary_name(self, kwargs, expected):
        record = CapturedElement.capture(ElementId(1), _snapshot(**kwargs), now=0)
        assert record.summary_name == expected

    def test_flat_dict_uses_record_selectors(self):
        record = CapturedElement.capture(ElementId(1), _snapshot(), now=0, track_changes=True)
        record.selector = ".promoted"
        data = record.to_dict()
        assert data["selector"] == ".promoted"
        assert data["track_changes"] is True
        assert data["custom_name"] is None
        assert data["tag_name"] == "button"


# ── Events ───────────────────────────────────────────────────────────


class TestEvents:
    def test_event_sequence(self):
        registry = ElementRegistry()
        registry.add(_snapshot(), now=0)
        registry.rename("element1", "save")
        registry.apply_mutations(ElementId(1), [MutationSummary("childList")], now=1)
        registry.record_verification(
            registry.get("save"),
            VerificationResult("save", VerificationOutcome.PRIMARY_MATCH, "#save", "#save"),
            now=2,
        )
        registry.remove("save")
        registry.clear()

        events = registry.pull_events()
        assert [type(e) for e in events] == [
            ElementAdded,
            ElementRenamed,
            ElementMutated,
            ElementVerified,
            ElementDeleted,
            RegistryCleared,
        ]
        assert str(events[1]) == "ElementRenamed(element1 -> save)"
        assert events[-1].elements_removed == 0
        assert registry.pull_events() == []
