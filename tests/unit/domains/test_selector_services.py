"""Tests for selector synthesis, text selectors and content fingerprints."""


from elementmcp.adapters import HtmlDocument
from elementmcp.domains.selector import (
    ContentFingerprint,
    SelectorStrategy,
    SelectorSynthesizer,
    count_matches,
    create_content_fingerprint,
    find_fingerprint_candidates,
    parse_text_selector,
    query_all,
    resolve_selector,
    text_selector,
)
from elementmcp.domains.selector.services import attribute_signature, fingerprint_matches


# ── Helpers ──────────────────────────────────────────────────────────


def _one(document, selector):
    matches = document.query_selector_all(selector)
    assert len(matches) == 1, f"{selector} matched {len(matches)} elements"
    return matches[0]


# ── Strategy order ───────────────────────────────────────────────────


class TestStrategies:
    def test_stable_id_wins(self, shop_document, synthesizer):
        nav = _one(shop_document, "nav")
        selectors = synthesizer.generate_selectors(nav)
        assert selectors.primary == "#main-nav"
        assert selectors.strategy is SelectorStrategy.ID

    def test_semantic_attribute(self, shop_document, synthesizer):
        email = _one(shop_document, "input[type=email]")
        selectors = synthesizer.generate_selectors(email)
        assert selectors.primary == 'input[name="email"]'
        assert selectors.strategy is SelectorStrategy.ATTRIBUTE

    def test_submit_input_keeps_value_fallback(self, shop_document, synthesizer):
        submit = _one(shop_document, "input[type=submit]")
        selectors = synthesizer.generate_selectors(submit)
        assert selectors.primary == 'input[type="submit"]'
        assert 'input[value="Sign in"]' in selectors.fallbacks

    def test_generated_id_and_generic_class_fall_through_to_text(self, shop_document, synthesizer):
        button = _one(shop_document, "#ember482")
        selectors = synthesizer.generate_selectors(button)
        assert selectors.primary == 'button /* text: "Submit" */'
        assert selectors.strategy is SelectorStrategy.CONTENT
        assert "#ember482" not in selectors.all_selectors
        assert synthesizer.css_path(button) == "button#ember482"
        assert "button#ember482" not in selectors.fallbacks

    def test_link_text_when_class_is_shared(self, shop_document, synthesizer):
        home = shop_document.query_selector_all("a.nav-link")[0]
        selectors = synthesizer.generate_selectors(home)
        assert selectors.primary == 'a /* text: "Home" */'
        assert "a:nth-of-type(1)" in selectors.fallbacks

    def test_position_for_bare_list_item(self, shop_document, synthesizer):
        second = shop_document.query_selector_all("li")[1]
        selectors = synthesizer.generate_selectors(second)
        assert selectors.primary == "li:nth-of-type(2)"
        assert selectors.strategy is SelectorStrategy.POSITION

    def test_stable_class(self):
        document = HtmlDocument(
            '<div><span class="search-box">A</span><span class="mt-2">B</span></div>'
        )
        synthesizer = SelectorSynthesizer(document)
        span = document.query_selector_all("span")[0]
        selectors = synthesizer.generate_selectors(span)
        assert selectors.primary == ".search-box"
        assert selectors.strategy is SelectorStrategy.CLASS

    def test_shadow_content_falls_back_to_bare_tag(self):
        document = HtmlDocument(
            '<div id="host"><template shadowrootmode="open"><span>Inner</span></template></div>'
        )
        host = _one(document, "#host")
        span = host.shadow_root.query_selector_all("span")[0]
        selectors = SelectorSynthesizer(document).generate_selectors(span)
        assert selectors.primary == "span"
        assert selectors.strategy is SelectorStrategy.TAG
        assert selectors.fallbacks == ()


class TestUniqueness:
    def test_every_primary_resolves_to_its_element(self, shop_document, synthesizer):
        for element in shop_document.all_elements():
            primary = synthesizer.optimal_selector(element)
            matches = query_all(shop_document, primary)
            assert matches == [element], f"{primary} does not resolve uniquely"

    def test_every_fallback_resolves_to_its_element(self, shop_document, synthesizer):
        for element in shop_document.all_elements():
            selectors = synthesizer.generate_selectors(element)
            assert len(selectors.fallbacks) <= synthesizer.policy.max_fallbacks
            assert selectors.primary not in selectors.fallbacks
            for fallback in selectors.fallbacks:
                assert synthesizer.is_unique_match(fallback, element), fallback

    def test_ambiguous_class_is_rejected(self, shop_document, synthesizer):
        first = shop_document.query_selector_all("a.nav-link")[0]
        assert synthesizer.is_unique_match(".nav-link", first) is False


class TestPaths:
    def test_css_path_stops_at_first_id(self, shop_document, synthesizer):
        cart = shop_document.query_selector_all("a.nav-link")[1]
        assert synthesizer.css_path(cart) == "nav#main-nav > a.nav-link:nth-of-type(2)"

    def test_css_path_of_element_with_id(self, shop_document, synthesizer):
        card = _one(shop_document, "#promo-card")
        assert synthesizer.css_path(card) == "div#promo-card"

    def test_xpath_is_positional(self, shop_document, synthesizer):
        second = shop_document.query_selector_all("li")[1]
        assert synthesizer.xpath(second) == "//html[1]/body[1]/ul[1]/li[2]"


# ── Text-annotated selectors ─────────────────────────────────────────


class TestTextSelectors:
    def test_build_and_parse(self):
        selector = text_selector("button", 'Say "hi"')
        assert selector == 'button /* text: "Say \\"hi\\"" */'
        assert parse_text_selector(selector) == ("button", 'Say "hi"')

    def test_comment_terminator_cannot_be_embedded(self):
        assert text_selector("a", "end */ here") is None

    def test_plain_css_is_not_a_text_selector(self):
        assert parse_text_selector("button.primary") is None

    def test_query_all_matches_exact_trimmed_text(self, shop_document):
        matches = query_all(shop_document, 'button /* text: "Submit" */')
        assert [m.get_attribute("id") for m in matches] == ["ember482"]
        assert query_all(shop_document, 'button /* text: "Sub" */') == []

    def test_invalid_selector_matches_nothing(self, shop_document):
        assert resolve_selector(shop_document, "div[") is None
        assert count_matches(shop_document, "") == 0

    def test_count_matches(self, shop_document):
        assert count_matches(shop_document, "li") == 3
        assert count_matches(shop_document, ".nav-link") == 2


# ── Content fingerprint ──────────────────────────────────────────────


class TestContentFingerprint:
    def test_fingerprint_fields(self, shop_document):
        card = _one(shop_document, "#promo-card")
        fingerprint = create_content_fingerprint(card)
        assert fingerprint == ContentFingerprint(
            tag_name="div",
            text_snippet="Limited offer today",
            attribute_signature="class=card|data-campaign=spring|id=promo-card",
            class_count=1,
            child_count=0,
        )

    def test_attribute_signature_is_sorted(self):
        document = HtmlDocument('<a title="t" href="/x" class="k">x</a>')
        link = _one(document, "a")
        assert attribute_signature(link) == "class=k|href=/x|title=t"

    def test_text_snippet_is_truncated(self):
        document = HtmlDocument(f"<p>{'word ' * 40}</p>")
        fingerprint = create_content_fingerprint(_one(document, "p"))
        assert len(fingerprint.text_snippet) == ContentFingerprint.TEXT_SNIPPET_LENGTH

    def test_match_by_text(self):
        document = HtmlDocument('<div class="card-v2">Limited offer today only</div>')
        fingerprint = ContentFingerprint(
            tag_name="div", text_snippet="Limited offer today", attribute_signature="id=gone"
        )
        assert fingerprint_matches(_one(document, "div"), fingerprint) is True

    def test_match_by_attribute_signature(self):
        document = HtmlDocument('<div class="card" data-x="1">Changed</div>')
        fingerprint = ContentFingerprint(
            tag_name="div", text_snippet="Original", attribute_signature="class=card"
        )
        assert fingerprint_matches(_one(document, "div"), fingerprint) is True

    def test_candidates_are_same_tag_in_document_order(self):
        document = HtmlDocument(
            "<section>Limited offer today</section>"
            '<div id="a">Limited offer today</div>'
            '<div id="b">Other</div>'
            '<div id="c">Limited offer today!</div>'
        )
        fingerprint = ContentFingerprint(
            tag_name="div", text_snippet="Limited offer today", attribute_signature="id=x"
        )
        candidates = find_fingerprint_candidates(document, fingerprint)
        assert [c.get_attribute("id") for c in candidates] == ["a", "c"]

    def test_empty_snippet_only_matches_by_attributes(self):
        document = HtmlDocument('<p>   </p><p>x</p><p class="lede">Intro</p>')
        fingerprint = ContentFingerprint(
            tag_name="p", text_snippet="", attribute_signature="class=lede"
        )
        candidates = find_fingerprint_candidates(document, fingerprint)
        assert [c.text_content for c in candidates] == ["Intro"]

    def test_empty_fingerprint_matches_nothing(self):
        document = HtmlDocument("<p></p><p>x</p>")
        fingerprint = ContentFingerprint(tag_name="p")
        assert find_fingerprint_candidates(document, fingerprint) == []
