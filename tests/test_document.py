# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for schemascope.document: HTML loading and query helpers."""

from __future__ import annotations

import pytest
from _html_helpers import make_doc

from schemascope.document import (
    all_text,
    attr_contains,
    attr_startswith,
    body_text,
    count_matching,
    exists,
    first_attr,
    first_text,
    has_attr,
    has_class,
    iter_content_elements,
    meta_content,
    next_element,
    normalize_ws,
    parse_html,
    raw_body_text,
)
from schemascope.errors import DocumentError, ResourceExhaustionError


class TestParseHtml:
    @pytest.mark.parametrize("raw", ["", "   ", "\n\t"])
    def test_empty_rejected(self, raw: str):
        with pytest.raises(DocumentError):
            parse_html(raw)

    def test_size_limit(self):
        with pytest.raises(ResourceExhaustionError, match="limit is 10"):
            parse_html("<p>" + "x" * 100 + "</p>", max_bytes=10)

    def test_limit_counts_utf8_bytes(self):
        # 4 characters, 12 bytes
        with pytest.raises(ResourceExhaustionError):
            parse_html("日本語だ", max_bytes=11)

    def test_fragment_gets_document_root(self):
        doc = parse_html("<p>hello</p>")
        assert doc.tag == "html"
        assert body_text(doc) == "hello"

    def test_broken_markup_recovered(self):
        doc = parse_html("<div><p>unclosed<span>text</div>")
        assert "unclosed" in body_text(doc)


class TestText:
    def test_scripts_and_styles_excluded(self):
        doc = make_doc("t", "<p>見える</p><script>hidden()</script><style>.x{}</style><noscript>nope</noscript>")
        assert body_text(doc) == "見える"

    def test_whitespace_collapsed(self):
        doc = make_doc("t", "<p>a\n\n   b</p>\n<p>c</p>")
        assert body_text(doc) == "a b c"
        assert "\n" in raw_body_text(doc)

    def test_normalize_ws(self):
        assert normalize_ws("  a \t b\n") == "a b"

    def test_all_text_skips_empty(self):
        doc = make_doc("t", "<h2>one</h2><h2>  </h2><h2>two</h2>")
        assert all_text(doc, "//h2") == ["one", "two"]


class TestLookups:
    def test_first_text_and_attr(self):
        doc = make_doc("t", '<a href="">empty</a><a href=" /x ">link</a>')
        assert first_text(doc, "//a") == "empty"
        assert first_attr(doc, "//a", "href") == "/x"

    def test_misses_return_empty(self):
        doc = make_doc("t", "<p>x</p>")
        assert first_text(doc, "//article") == ""
        assert first_attr(doc, "//img", "src") == ""
        assert not exists(doc, "//img")

    def test_meta_content(self):
        doc = make_doc(
            "t",
            "",
            meta_description="説明",
            head='<meta property="og:site_name" content="サイト">',
        )
        assert meta_content(doc, name="description") == "説明"
        assert meta_content(doc, prop="og:site_name") == "サイト"
        assert meta_content(doc, name="keywords") == ""
        assert meta_content(doc) == ""

    def test_next_element_skips_comments(self):
        doc = make_doc("t", "<dt>Q</dt><!-- c --><dd>A</dd>")
        dt = doc.xpath("//dt")[0]
        assert next_element(dt).tag == "dd"

    def test_content_elements_skip_script_subtrees(self):
        doc = make_doc("t", "<p>a</p><script>x</script>")
        tags = [el.tag for el in iter_content_elements(doc)]
        assert "p" in tags
        assert "script" not in tags


class TestSelectors:
    def test_attr_contains(self):
        doc = make_doc("t", '<div class="product-price">x</div>')
        assert exists(doc, attr_contains("class", "price"))

    def test_has_class_token(self):
        doc = make_doc("t", '<div class="big  cost item">x</div><div class="costly">y</div>')
        assert len(doc.xpath(has_class("cost"))) == 1

    def test_has_attr(self):
        doc = make_doc("t", '<span data-price="10">x</span>')
        assert exists(doc, has_attr("data-price"))
        assert not exists(doc, has_attr("data-sku"))

    def test_attr_startswith(self):
        doc = make_doc("t", '<a href="mailto:a@example.com">m</a><a href="/mailto:">x</a>')
        assert len(doc.xpath(attr_startswith("href", "mailto:"))) == 1

    def test_count_matching_distinct(self):
        doc = make_doc("t", '<div class="faq question">q</div><div class="answer">a</div>')
        assert count_matching(doc, has_class("faq"), has_class("question"), has_class("answer")) == 2

    def test_count_matching_none(self):
        assert count_matching(make_doc("t", "<p>x</p>"), "//dl") == 0
