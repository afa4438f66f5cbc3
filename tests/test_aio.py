# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for schemascope.aio: AI-search optimization checks."""

from __future__ import annotations

import json

import pytest
from _html_helpers import FAQ_HTML, jsonld_script, make_doc

from schemascope import aio
from schemascope.aio import (
    CATEGORY_WEIGHTS,
    AioCategory,
    AioCheck,
    AioReport,
    check_ai_search_optimization,
    check_aio,
    check_content_comprehensiveness,
    check_context_relevance,
    check_credibility_signals,
    check_natural_language_quality,
    check_structured_information,
    is_high_authority_domain,
    overall_score,
)
from schemascope.document import parse_html
from schemascope.inventory import extract_inventory


def _structured(doc):
    return check_structured_information(doc, extract_inventory(doc))


# ---------------------------------------------------------------------------
# Content comprehensiveness
# ---------------------------------------------------------------------------


class TestContentComprehensiveness:
    def test_thin_page(self):
        check = check_content_comprehensiveness(make_doc("t", "<p>a b c</p>"))
        assert check.score == 0
        assert check.issues[0] == "コンテンツが短すぎます（3語）"
        assert check.recommendations[0] == "コンテンツを300語以上にしてください"
        assert len(check.issues) == 4
        assert check.metrics["wordCount"] == 3
        assert check.metrics["paragraphCount"] == 1

    def test_well_shaped_page(self):
        body = (
            "<h1>Title</h1>\n"
            + "\n".join(f"<p>{'word ' * 100}</p>" for _ in range(3))
            + "\n<ul><li>item</li></ul>"
        )
        check = check_content_comprehensiveness(make_doc("t", body))
        assert check.score == 100
        assert check.issues == ()
        assert check.metrics["wordCount"] == 302
        assert check.metrics["headingCount"] == 1
        assert check.metrics["contentToHeadingRatio"] == 302

    def test_too_long(self):
        check = check_content_comprehensiveness(make_doc("t", f"<p>{'word ' * 3001}</p>"))
        assert "コンテンツが長すぎる可能性があります（3001語）" in check.issues

    def test_unspaced_japanese_counts_as_one_word(self):
        check = check_content_comprehensiveness(make_doc("t", "<p>日本語の文章は空白で区切られません。</p>"))
        assert check.metrics["wordCount"] == 1


# ---------------------------------------------------------------------------
# Structured information
# ---------------------------------------------------------------------------


class TestStructuredInformation:
    def test_nothing_structured(self):
        check = _structured(make_doc("t", "<p>x</p>"))
        assert check.score == 0
        assert check.issues == (
            "JSON-LD構造化データがありません",
            "FAQ形式のコンテンツがありません",
            "定義リストがありません",
        )

    def test_full_marks_lists_missing_schemas(self):
        doc = make_doc(
            "t",
            '<div class="faq">q</div><dl><dt>a</dt><dd>b</dd></dl>',
            head=jsonld_script({"@context": "https://schema.org", "@type": "Article"}),
        )
        check = _structured(doc)
        assert check.score == 100
        assert check.issues == ("AI検索に重要なスキーマが不足しています: FAQPage, HowTo, Product, Review",)
        assert check.metrics["schemaTypes"] == ["Article"]

    def test_faq_itemtype_counts(self):
        doc = make_doc("t", '<div itemscope itemtype="https://schema.org/FAQPage">q</div>')
        assert _structured(doc).metrics["faqElements"] == 1

    def test_faq_page_definition_list(self):
        check = _structured(parse_html(FAQ_HTML))
        assert check.metrics["definitionLists"] == 1


# ---------------------------------------------------------------------------
# Credibility signals
# ---------------------------------------------------------------------------


class TestCredibilitySignals:
    def test_all_signals(self):
        body = (
            '<span class="author">山田</span>'
            '<time datetime="2024-01-01">2024年1月1日</time>'
            "<blockquote>引用</blockquote>"
            '<a href="https://ja.wikipedia.org/wiki/X">出典</a>'
            '<a href="mailto:info@example.com">連絡</a>'
        )
        check = check_credibility_signals(make_doc("t", body), "https://example.com/a")
        assert check.score == 100
        assert check.issues == ()
        assert check.metrics["highAuthorityLinks"] == 1

    def test_no_signals_without_external_links(self):
        check = check_credibility_signals(make_doc("t", "<p>x</p>"), "https://example.com/")
        assert check.score == 0
        assert len(check.issues) == 4
        assert "権威のある外部サイトへのリンクがありません" not in check.issues

    def test_low_authority_external_links(self):
        doc = make_doc("t", '<a href="https://blog.example.org/x">blog</a>')
        check = check_credibility_signals(doc, "https://shop.test/")
        assert check.metrics["externalLinks"] == 1
        assert "権威のある外部サイトへのリンクがありません" in check.issues

    def test_own_host_links_not_external(self):
        doc = make_doc("t", '<a href="https://example.com/about">about</a>')
        assert check_credibility_signals(doc, "https://example.com/").metrics["externalLinks"] == 0

    @pytest.mark.parametrize(
        ("host", "expected"),
        [
            ("en.wikipedia.org", True),
            ("wikipedia.org", True),
            ("WWW.BBC.COM", True),
            ("notwikipedia.org", False),
            ("wikipedia.org.evil.test", False),
            ("", False),
        ],
    )
    def test_authority_domain_suffix(self, host, expected):
        assert is_high_authority_domain(host) is expected


# ---------------------------------------------------------------------------
# AI search patterns
# ---------------------------------------------------------------------------


class TestAiSearchOptimization:
    def test_all_patterns(self):
        body = "<h2>なぜ比較が必要か</h2>\n<p>ステップ1: 準備する</p>\n<p>価格は100円、割引は20%、保証は3年です。</p>"
        check = check_ai_search_optimization(make_doc("", body))
        assert check.score == 100
        assert check.issues == ()
        assert check.metrics["questionPatterns"] > 0
        assert check.metrics["stepPatterns"] > 0
        assert check.metrics["numericDataCount"] == 3

    def test_plain_text(self):
        check = check_ai_search_optimization(make_doc("", "<p>こんにちは</p>"))
        assert check.score == 0
        assert len(check.issues) == 4
        assert check.metrics["hasComparison"] is False

    def test_two_numbers_not_enough(self):
        check = check_ai_search_optimization(make_doc("", "<p>違いは100円と2個です</p>"))
        assert check.score == 25
        assert "具体的な数値データが少なすぎます" in check.issues


# ---------------------------------------------------------------------------
# Natural language quality
# ---------------------------------------------------------------------------


class TestNaturalLanguageQuality:
    def test_clean_prose(self):
        doc = make_doc("", "<p>しかし今日は晴れです。また明日も晴れです。さらに週末も晴れです。</p>")
        check = check_natural_language_quality(doc)
        assert check.score == 100
        assert check.issues == ()
        assert check.metrics["conjunctionsCount"] == 3

    def test_long_sentence(self):
        check = check_natural_language_quality(make_doc("", f"<p>これは{'あ' * 60}。</p>"))
        assert check.score == 60
        assert check.issues == ("文章が長すぎます", "接続詞が少なすぎます")

    def test_passive_flagged_below_penalty(self):
        check = check_natural_language_quality(make_doc("", "<p>報告された。確認された。</p>"))
        assert "受動態が多すぎます" in check.issues
        assert check.score == 80
        assert check.metrics["passiveVoiceCount"] == 2

    def test_technical_terms(self):
        doc = make_doc("", "<p>API SDK CPU GPU URL HTML CSS XML JSON HTTP TCP</p>")
        check = check_natural_language_quality(doc)
        assert check.metrics["technicalTermsCount"] == 11
        assert "専門用語が多すぎます" in check.issues

    def test_empty_body(self):
        check = check_natural_language_quality(make_doc("", ""))
        assert check.metrics["avgSentenceLength"] == 0
        assert check.score == 80


# ---------------------------------------------------------------------------
# Context relevance
# ---------------------------------------------------------------------------


class TestContextRelevance:
    @pytest.mark.parametrize("url", ["", "not a url", "/relative/path"])
    def test_unusable_url_scores_full(self, url):
        check = check_context_relevance(make_doc("", "<p>x</p>"), url)
        assert check.score == 100
        assert check.issues == ()
        assert check.metrics == {}

    def test_relevant_page(self):
        body = (
            "<p>curry recipes here</p>"
            '<a href="/recipes/curry-2">Curry ideas</a>'
            '<nav class="breadcrumb">home</nav>'
        )
        check = check_context_relevance(make_doc("", body), "https://example.com/recipes/curry")
        assert check.score == 100
        assert check.metrics["urlRelevance"] == 100
        assert check.metrics["relevantInternalLinks"] == 1

    def test_irrelevant_page(self):
        body = '<p>天気</p><a href="https://example.com/about">会社</a>'
        check = check_context_relevance(make_doc("", body), "https://example.com/products/shoes")
        assert check.score == 0
        assert check.issues == (
            "URLとコンテンツの関連性が低いです",
            "内部リンクの関連性が低いです",
            "カテゴリやタグがありません",
        )
        assert check.metrics["internalLinksCount"] == 1

    def test_percent_encoded_path(self):
        doc = make_doc("", "<p>簡単レシピ</p>")
        check = check_context_relevance(doc, "https://example.com/%E3%83%AC%E3%82%B7%E3%83%94")
        assert check.metrics["urlRelevance"] == 100

    def test_short_segments_ignored(self):
        check = check_context_relevance(make_doc("", "<p>x</p>"), "https://example.com/a/bb")
        assert "URLとコンテンツの関連性が低いです" not in check.issues
        assert check.metrics["urlRelevance"] == 0


# ---------------------------------------------------------------------------
# Overall report
# ---------------------------------------------------------------------------


class TestReport:
    def test_weights_sum_to_one(self):
        assert sum(CATEGORY_WEIGHTS.values()) == pytest.approx(1.0)
        assert set(CATEGORY_WEIGHTS) == set(AioCategory)

    def test_weighted_overall(self):
        scores = dict(zip(AioCategory, [100, 50, 0, 100, 80, 100], strict=True))
        checks = {c: AioCheck(c, s) for c, s in scores.items()}
        assert overall_score(checks) == 68

    def test_recommendations_grouped(self):
        checks = {
            AioCategory.CREDIBILITY_SIGNALS: AioCheck(AioCategory.CREDIBILITY_SIGNALS, 80, ("i",), ("r1", "r2")),
            AioCategory.CONTEXT_RELEVANCE: AioCheck(AioCategory.CONTEXT_RELEVANCE, 100),
        }
        report = AioReport(checks=checks, overall_score=0)
        assert report.grouped_recommendations() == [
            {"category": "credibilitySignals", "recommendations": ["r1", "r2"]}
        ]

    def test_full_run_serializable(self):
        report = check_aio(parse_html(FAQ_HTML), "https://example.com/faq")
        assert report.error is None
        assert list(report.checks) == list(AioCategory)
        assert 0 <= report.overall_score <= 100
        d = json.loads(json.dumps(report.to_dict(), ensure_ascii=False))
        assert d["overallScore"] == report.overall_score
        assert d["checks"]["contextRelevance"]["score"] == report.checks[AioCategory.CONTEXT_RELEVANCE].score

    def test_failure_returns_empty_report(self, monkeypatch, caplog):
        def boom(doc):
            raise RuntimeError("boom")

        monkeypatch.setattr(aio, "check_content_comprehensiveness", boom)
        report = check_aio(make_doc("t", "<p>x</p>"))
        assert report.error == "RuntimeError: boom"
        assert report.overall_score == 0
        assert report.checks == {}
        assert report.to_dict()["error"] == "RuntimeError: boom"
        assert any("AIO check failed" in r.getMessage() for r in caplog.records)
