"""Tests for selector value objects."""

from elementmcp.domains.selector import ContentFingerprint, SelectorSet, SelectorStrategy


class TestSelectorStrategy:
    def test_from_string_is_case_insensitive(self):
        assert SelectorStrategy.from_string(" ID ") is SelectorStrategy.ID
        assert SelectorStrategy.from_string("content") is SelectorStrategy.CONTENT

    def test_unknown_strategy_is_tag(self):
        assert SelectorStrategy.from_string("xpath") is SelectorStrategy.TAG
        assert SelectorStrategy.from_string(None) is SelectorStrategy.TAG


class TestSelectorSet:
    def test_all_selectors_keeps_order(self):
        selectors = SelectorSet("#a", (".b", "div > p"), SelectorStrategy.ID)
        assert selectors.all_selectors == ["#a", ".b", "div > p"]

    def test_to_dict(self):
        selectors = SelectorSet("li:nth-of-type(2)", strategy=SelectorStrategy.POSITION)
        assert selectors.to_dict() == {
            "primary": "li:nth-of-type(2)",
            "fallbacks": [],
            "strategy": "position",
        }


class TestContentFingerprint:
    def test_from_dict_without_tag_is_none(self):
        assert ContentFingerprint.from_dict(None) is None
        assert ContentFingerprint.from_dict({"tag_name": "", "text_snippet": "x"}) is None

    def test_from_dict_fills_defaults(self):
        fingerprint = ContentFingerprint.from_dict({"tag_name": "div", "class_count": "2"})
        assert fingerprint == ContentFingerprint(tag_name="div", class_count=2)

    def test_to_dict_keys(self):
        fingerprint = ContentFingerprint(tag_name="a", text_snippet="Home")
        assert set(fingerprint.to_dict()) == {
            "tag_name",
            "text_snippet",
            "attribute_signature",
            "class_count",
            "child_count",
        }
