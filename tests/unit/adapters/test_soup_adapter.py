"""Tests for the BeautifulSoup document adapter."""

import pytest

from elementmcp.adapters import (
    DomEvent,
    ElementLocator,
    HtmlDocument,
    MutationWatcher,
    Rect,
    SoupMutationWatcher,
)


class TestParsing:
    def test_fragment_is_wrapped(self):
        document = HtmlDocument('<p id="x">Hi</p>')
        assert document.document_element.tag_name == "html"
        assert document.query_selector("#x").parent == document.body

    def test_body_without_html_is_wrapped(self):
        document = HtmlDocument('<body class="page"><p>Hi</p></body>')
        assert document.document_element.tag_name == "html"
        assert document.body.get_attribute("class") == "page"
        assert len(document.query_selector_all("body")) == 1

    def test_head_is_kept(self):
        document = HtmlDocument("<head><title>T</title></head><p>x</p>")
        assert document.query_selector("head > title").text_content == "T"

    def test_satisfies_protocols(self):
        document = HtmlDocument("<p>x</p>")
        assert isinstance(document, ElementLocator)
        assert isinstance(SoupMutationWatcher(document), MutationWatcher)

    @pytest.mark.parametrize(
        "url, origin",
        [
            ("https://shop.example.com/cart?x=1", "https://shop.example.com"),
            ("http://localhost:8000/", "http://localhost:8000"),
            ("about:blank", "null"),
            ("file:///tmp/x.html", "null"),
        ],
    )
    def test_origin(self, url, origin):
        assert HtmlDocument("", url=url).origin == origin


class TestElements:
    def test_wrappers_compare_by_node(self):
        document = HtmlDocument('<ul><li>a</li><li>b</li></ul>')
        first = document.query_selector("li")
        assert first == document.query_selector_all("li")[0]
        assert first != document.query_selector_all("li")[1]
        assert len({first, document.query_selector("li")}) == 1

    def test_attributes_and_classes(self):
        document = HtmlDocument('<a href="/x" class="nav  link">x</a>')
        link = document.query_selector("a")
        assert link.class_list == ["nav", "link"]
        assert link.get_attribute("HREF") == "/x"
        assert link.has_attribute("title") is False

    def test_tab_index(self):
        document = HtmlDocument(
            '<a id="l" href="/x">x</a><a id="n">y</a><div id="t" tabindex="2"></div>'
            '<div id="e" contenteditable>e</div>'
        )
        assert document.query_selector("#l").tab_index == 0
        assert document.query_selector("#n").tab_index == -1
        assert document.query_selector("#t").tab_index == 2
        assert document.query_selector("#e").tab_index == 0

    def test_invalid_selector_matches_nothing(self):
        assert HtmlDocument("<p>x</p>").query_selector_all("p[") == []


class TestShadowRoots:
    HTML = (
        '<div id="host">Light<template shadowrootmode="open">'
        '<span class="inner">Shadow</span></template></div>'
    )

    def test_shadow_content_is_not_queryable(self):
        document = HtmlDocument(self.HTML)
        assert document.query_selector_all(".inner") == []
        assert [e.tag_name for e in document.all_elements()] == ["html", "head", "body", "div"]

    def test_shadow_root_queries(self):
        document = HtmlDocument(self.HTML)
        host = document.query_selector("#host")
        inner = host.shadow_root.query_selector_all(".inner")
        assert len(inner) == 1
        assert inner[0].is_in_shadow_tree() is True
        assert inner[0].parent is None
        assert host.shadow_root.host == host

    def test_shadow_text_is_excluded_from_host(self):
        host = HtmlDocument(self.HTML).query_selector("#host")
        assert host.text_content == "Light"
        assert host.children == []


class TestStyles:
    def test_defaults_by_tag(self):
        document = HtmlDocument("<div>a</div><span>b</span><button>c</button><li>d</li>")
        assert document.query_selector("div").computed_style()["display"] == "block"
        assert document.query_selector("span").computed_style()["display"] == "inline"
        assert document.query_selector("button").computed_style()["display"] == "inline-block"
        assert document.query_selector("li").computed_style()["display"] == "list-item"

    def test_inline_style_wins(self):
        document = HtmlDocument('<div style="display: flex; color: red !important">a</div>')
        style = document.query_selector("div").computed_style()
        assert style["display"] == "flex"
        assert style["color"] == "red"

    def test_inherited_properties(self):
        document = HtmlDocument(
            '<div style="color: blue; cursor: move; width: 10px"><span>a</span></div>'
        )
        style = document.query_selector("span").computed_style()
        assert style["color"] == "blue"
        assert style["cursor"] == "move"
        assert style["width"] == "auto"

    def test_link_cursor(self):
        document = HtmlDocument('<a href="/x">x</a>')
        assert document.query_selector("a").computed_style()["cursor"] == "pointer"

    def test_hidden_input(self):
        document = HtmlDocument('<input type="hidden" name="csrf">')
        assert document.query_selector("input").computed_style()["display"] == "none"


class TestLayout:
    def test_inline_geometry(self):
        document = HtmlDocument(
            '<div style="left: 10px; top: 5px; width: 50vw; height: 10vh">a</div>',
            viewport=(1000.0, 500.0),
        )
        rect = document.query_selector("div").bounding_rect()
        assert rect == Rect(10.0, 5.0, 500.0, 50.0)

    def test_pinned_layout_and_scroll(self):
        document = HtmlDocument("<p>x</p>")
        paragraph = document.query_selector("p")
        document.set_layout(paragraph, Rect(0, 100, 20, 20))
        document.set_scroll(0, 40)
        assert paragraph.bounding_rect() == Rect(0, 60, 20, 20)

    def test_fixed_elements_ignore_scroll(self):
        document = HtmlDocument(
            '<p style="position: fixed; left: 0px; top: 10px; width: 5px; height: 5px">x</p>'
        )
        document.set_scroll(0, 100)
        assert document.query_selector("p").bounding_rect().top == 10

    def test_hidden_element_has_empty_rect(self):
        document = HtmlDocument(
            '<div style="display: none"><p style="width: 10px; height: 10px">x</p></div>'
        )
        paragraph = document.query_selector("p")
        assert paragraph.bounding_rect() == Rect()
        assert paragraph.has_offset_parent() is False


class TestHitTesting:
    def test_topmost_by_z_index_then_order(self):
        document = HtmlDocument(
            '<div id="low" style="left: 0px; top: 0px; width: 100px; height: 100px; z-index: 5"></div>'
            '<div id="high" style="left: 0px; top: 0px; width: 100px; height: 100px"></div>'
        )
        assert document.element_from_point(50, 50).get_attribute("id") == "low"

    def test_later_element_wins_at_equal_z_index(self):
        document = HtmlDocument(
            '<div id="a" style="left: 0px; top: 0px; width: 100px; height: 100px"></div>'
            '<div id="b" style="left: 0px; top: 0px; width: 100px; height: 100px"></div>'
        )
        assert document.element_from_point(50, 50).get_attribute("id") == "b"

    @pytest.mark.parametrize(
        "style",
        ["pointer-events: none", "visibility: hidden", "display: none", "width: 0px"],
    )
    def test_skipped_elements(self, style):
        document = HtmlDocument(
            '<div id="base" style="left: 0px; top: 0px; width: 100px; height: 100px"></div>'
            f'<div id="top" style="left: 0px; top: 0px; width: 100px; height: 100px; {style}"></div>'
        )
        assert document.element_from_point(50, 50).get_attribute("id") == "base"

    def test_nothing_at_point(self):
        assert HtmlDocument("<p>x</p>").element_from_point(5, 5) is None


class TestMutations:
    def test_attribute_notice_carries_old_value(self):
        document = HtmlDocument('<p class="a">x</p>')
        notices = []
        paragraph = document.query_selector("p")
        SoupMutationWatcher(document).observe(paragraph, notices.extend)

        paragraph.set_attribute("class", "b")
        paragraph.remove_attribute("class")
        paragraph.remove_attribute("class")

        assert [(n.type, n.attribute_name, n.old_value) for n in notices] == [
            ("attributes", "class", "a"),
            ("attributes", "class", "b"),
        ]

    def test_text_changes(self):
        document = HtmlDocument("<p>old</p><div><b>x</b></div>")
        notices = []
        watcher = SoupMutationWatcher(document)
        watcher.observe(document.body, notices.extend)

        document.query_selector("p").set_text("new")
        document.query_selector("div").set_text("flat")

        assert [(n.type, n.old_value) for n in notices] == [
            ("characterData", "old"),
            ("childList", None),
        ]
        assert document.query_selector("div").text_content == "flat"

    def test_subtree_and_filters(self):
        document = HtmlDocument('<div id="outer"><p>x</p></div>')
        outer = document.query_selector("#outer")
        subtree, shallow, text_only = [], [], []
        watcher = SoupMutationWatcher(document)
        watcher.observe(outer, subtree.extend)
        watcher.observe(outer, shallow.extend, subtree=False)
        watcher.observe(outer, text_only.extend, attributes=False, child_list=False)

        document.query_selector("p").set_attribute("title", "t")

        assert len(subtree) == 1
        assert shallow == []
        assert text_only == []

    def test_disconnect(self):
        document = HtmlDocument("<p>x</p>")
        notices = []
        handle = SoupMutationWatcher(document).observe(document.body, notices.extend)
        assert document.observation_count == 1
        handle.disconnect()
        document.query_selector("p").set_attribute("title", "t")
        assert notices == []
        assert document.observation_count == 0

    def test_append_and_remove(self):
        document = HtmlDocument("<p>x</p>")
        notices = []
        SoupMutationWatcher(document).observe(document.body, notices.extend)
        child = document.create_element("DIV")
        document.body.append_child(child)
        child.remove()
        assert child.tag_name == "div"
        assert [n.type for n in notices] == ["childList", "childList"]
        assert document.query_selector_all("div") == []

    def test_removed_subtree_leaves_no_cached_wrappers(self):
        document = HtmlDocument("<p>x</p>")
        body = document.body
        before = document.wrapper_count
        for _ in range(5):
            box = document.create_element("div")
            label = document.create_element("span")
            box.append_child(label)
            body.append_child(box)
            document.set_layout(label, Rect(0, 0, 10, 10))
            box.remove()
        assert document.wrapper_count == before

    def test_style_helpers(self):
        document = HtmlDocument("<p>x</p>")
        paragraph = document.query_selector("p")
        paragraph.set_style_property("color", "red")
        paragraph.set_style_property("display", "block")
        assert paragraph.get_attribute("style") == "color: red; display: block"
        paragraph.set_style_property("color", None)
        paragraph.set_style_property("display", "")
        assert paragraph.has_attribute("style") is False


class TestEvents:
    def test_listeners_run_capture_first(self):
        document = HtmlDocument("<p>x</p>")
        calls = []
        document.add_event_listener("click", lambda e: calls.append("bubble"), capture=False)
        document.add_event_listener("click", lambda e: calls.append("capture"), capture=True)
        document.dispatch_event(DomEvent.pointer("click", 0, 0))
        assert calls == ["capture", "bubble"]

    def test_same_listener_is_registered_once(self):
        document = HtmlDocument("<p>x</p>")
        calls = []

        def handler(event):
            calls.append(event.type)

        document.add_event_listener("keydown", handler)
        document.add_event_listener("keydown", handler)
        assert document.listener_count("keydown") == 1
        document.remove_event_listener("keydown", handler)
        assert document.listener_count() == 0
        assert document.dispatch_event(DomEvent.keyboard("Escape")) is True
        assert calls == []

    def test_prevent_default_is_reported(self):
        document = HtmlDocument("<p>x</p>")
        document.add_event_listener("contextmenu", lambda e: e.prevent_default())
        event = DomEvent.pointer("contextmenu", 1, 2)
        assert document.dispatch_event(event) is False
        assert event.button == 2
