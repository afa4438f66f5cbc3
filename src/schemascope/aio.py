# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""AI-search optimization (AIO) checks.

Six scored categories describe how easily an AI answer engine can quote a
page: comprehensiveness, structured information, credibility, AI-search
patterns (questions, comparisons, steps, numbers), natural-language
quality and URL/context relevance.  The overall score is a weighted sum
(20/20/20/20/10/10).  ``check_aio`` never raises.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any
from urllib.parse import unquote, urlparse

import lxml.html

from schemascope.document import (
    HEADING_XPATH,
    attr_contains,
    attr_startswith,
    body_text,
    count_matching,
    has_class,
    is_element,
    iter_content_elements,
    normalize_ws,
    raw_body_text,
    visible_text,
)
from schemascope.inventory import SchemaInventory, extract_inventory

logger = logging.getLogger(__name__)


class AioCategory(StrEnum):
    CONTENT_COMPREHENSIVENESS = "contentComprehensiveness"
    STRUCTURED_INFORMATION = "structuredInformation"
    CREDIBILITY_SIGNALS = "credibilitySignals"
    AI_SEARCH_OPTIMIZATION = "aiSearchOptimization"
    NATURAL_LANGUAGE_QUALITY = "naturalLanguageQuality"
    CONTEXT_RELEVANCE = "contextRelevance"


CATEGORY_WEIGHTS: Mapping[AioCategory, float] = MappingProxyType(
    {
        AioCategory.CONTENT_COMPREHENSIVENESS: 0.20,
        AioCategory.STRUCTURED_INFORMATION: 0.20,
        AioCategory.CREDIBILITY_SIGNALS: 0.20,
        AioCategory.AI_SEARCH_OPTIMIZATION: 0.20,
        AioCategory.NATURAL_LANGUAGE_QUALITY: 0.10,
        AioCategory.CONTEXT_RELEVANCE: 0.10,
    }
)

# Schemas answer engines quote most often
AI_IMPORTANT_SCHEMAS = ("Article", "FAQPage", "HowTo", "Product", "Review")

HIGH_AUTHORITY_DOMAINS = (
    "wikipedia.org",
    "google.com",
    "microsoft.com",
    "apple.com",
    "amazon.com",
    "facebook.com",
    "twitter.com",
    "linkedin.com",
    "youtube.com",
    "github.com",
    "stackoverflow.com",
    "reddit.com",
    "medium.com",
    "techcrunch.com",
    "wired.com",
    "nytimes.com",
    "bbc.com",
    "cnn.com",
    "reuters.com",
    "bloomberg.com",
)

COMPARISON_WORDS = ("比較", "対比", "違い", "vs", "versus", "どちら", "どれが")

QUESTION_START_RE = re.compile(r"^(?:何|なぜ|どのように|いつ|どこで|誰が|どれ|どの|どうして)")
STEP_START_RE = re.compile(r"^(?:ステップ|手順|方法|やり方|Step \d+)")
NUMERIC_DATA_RE = re.compile(r"\d+[%％]|\d+円|\d+個|\d+回|\d+年|\d+月|\d+日")
SENTENCE_SPLIT_RE = re.compile(r"[。！？]")
TECHNICAL_TERM_RE = re.compile(r"[A-Z]{2,}|[a-z]+[A-Z][a-z]+")
PASSIVE_RE = re.compile(r"される|られる|された|られた")
CONJUNCTION_RE = re.compile(r"しかし|また|さらに|そのため|なぜなら")

MIN_WORDS = 300
MAX_WORDS = 3000


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AioCheck:
    """Score and findings for one category; ``metrics`` keeps the raw counts."""

    category: AioCategory
    score: int
    issues: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    metrics: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.metrics,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "score": self.score,
        }


@dataclass(frozen=True, slots=True)
class AioReport:
    checks: Mapping[AioCategory, AioCheck] = field(default_factory=dict)
    overall_score: int = 0
    error: str | None = None

    def grouped_recommendations(self) -> list[dict[str, Any]]:
        """Recommendations per category, skipping categories with none."""
        return [
            {"category": str(category), "recommendations": list(check.recommendations)}
            for category, check in self.checks.items()
            if check.recommendations
        ]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "checks": {str(c): check.to_dict() for c, check in self.checks.items()},
            "overallScore": self.overall_score,
            "recommendations": self.grouped_recommendations(),
        }
        if self.error:
            d["error"] = self.error
        return d


class _Findings:
    def __init__(self) -> None:
        self.issues: list[str] = []
        self.recommendations: list[str] = []

    def add(self, issue: str, recommendation: str) -> None:
        self.issues.append(issue)
        self.recommendations.append(recommendation)

    def check(self, category: AioCategory, score: int, **metrics: Any) -> AioCheck:
        return AioCheck(category, score, tuple(self.issues), tuple(self.recommendations), metrics)


# ---------------------------------------------------------------------------
# Score formulas
# ---------------------------------------------------------------------------


def comprehensiveness_score(word_count: int, paragraphs: int, lists: int, ratio: float) -> int:
    score = 0
    if MIN_WORDS <= word_count <= MAX_WORDS:
        score += 30
    if paragraphs >= 3:
        score += 20
    if lists > 0:
        score += 20
    if 100 <= ratio <= 500:
        score += 30
    return min(score, 100)


def structured_info_score(json_ld_blocks: int, faq_elements: int, definition_lists: int) -> int:
    score = 0
    if json_ld_blocks > 0:
        score += 40
    if faq_elements > 0:
        score += 30
    if definition_lists > 0:
        score += 30
    return min(score, 100)


def credibility_score(author: int, dates: int, citations: int, authority_links: int, contact: int) -> int:
    return min(20 * sum(1 for n in (author, dates, citations, authority_links, contact) if n > 0), 100)


def ai_search_score(questions: int, has_comparison: bool, steps: int, numeric: int) -> int:
    return min(25 * sum((questions > 0, has_comparison, steps > 0, numeric >= 3)), 100)


def natural_language_score(avg_sentence_length: float, technical_terms: int, passive: int, conjunctions: int) -> int:
    score = 100
    if avg_sentence_length > 50:
        score -= 20
    if technical_terms > 10:
        score -= 20
    if passive > 5:
        score -= 20
    if conjunctions < 3:
        score -= 20
    return max(score, 0)


def context_relevance_score(url_relevance: float, relevant_internal_links: int, categories: int) -> int:
    score = 0
    if url_relevance >= 0.5:
        score += 40
    if relevant_internal_links > 0:
        score += 30
    if categories > 0:
        score += 30
    return min(score, 100)


def overall_score(checks: Mapping[AioCategory, AioCheck]) -> int:
    return round(sum(checks[c].score * w for c, w in CATEGORY_WEIGHTS.items() if c in checks))


# ---------------------------------------------------------------------------
# Category checks
# ---------------------------------------------------------------------------


def check_content_comprehensiveness(doc: lxml.html.HtmlElement) -> AioCheck:
    found = _Findings()
    # Whitespace-delimited, so unspaced Japanese prose counts as few words
    word_count = len(raw_body_text(doc).split())
    paragraphs = count_matching(doc, "//p")
    lists = count_matching(doc, "//ul", "//ol")
    headings = count_matching(doc, HEADING_XPATH)
    ratio = word_count / max(headings, 1)

    if word_count < MIN_WORDS:
        found.add(f"コンテンツが短すぎます（{word_count}語）", f"コンテンツを{MIN_WORDS}語以上にしてください")
    elif word_count > MAX_WORDS:
        found.add(
            f"コンテンツが長すぎる可能性があります（{word_count}語）",
            f"コンテンツを{MAX_WORDS}語以下に最適化してください",
        )
    if paragraphs < 3:
        found.add("段落が少なすぎます", "コンテンツを3つ以上の段落に分割してください")
    if lists == 0:
        found.add("リスト形式のコンテンツがありません", "箇条書きや番号付きリストを追加してください")
    if ratio < 100:
        found.add("見出しに対してコンテンツが少なすぎます", "各見出しにより多くのコンテンツを追加してください")

    return found.check(
        AioCategory.CONTENT_COMPREHENSIVENESS,
        comprehensiveness_score(word_count, paragraphs, lists, ratio),
        wordCount=word_count,
        paragraphCount=paragraphs,
        listCount=lists,
        headingCount=headings,
        contentToHeadingRatio=round(ratio),
    )


def check_structured_information(doc: lxml.html.HtmlElement, inventory: SchemaInventory) -> AioCheck:
    found = _Findings()
    schema_types = sorted(inventory.type_names())
    if not inventory.json_ld:
        found.add("JSON-LD構造化データがありません", "JSON-LD構造化データを実装してください")
    else:
        missing = [s for s in AI_IMPORTANT_SCHEMAS if s not in schema_types]
        if missing:
            names = ", ".join(missing)
            found.add(
                f"AI検索に重要なスキーマが不足しています: {names}",
                f"不足しているスキーマを実装してください: {names}",
            )

    faq_elements = count_matching(
        doc, attr_contains("itemtype", "FAQ"), has_class("faq"), has_class("question"), has_class("answer")
    )
    if faq_elements == 0:
        found.add("FAQ形式のコンテンツがありません", "よくある質問を追加してください")

    definition_lists = count_matching(doc, "//dl")
    if definition_lists == 0:
        found.add("定義リストがありません", "用語の定義を追加してください")

    return found.check(
        AioCategory.STRUCTURED_INFORMATION,
        structured_info_score(len(inventory.json_ld), faq_elements, definition_lists),
        schemaTypes=schema_types,
        faqElements=faq_elements,
        definitionLists=definition_lists,
    )


def is_high_authority_domain(host: str) -> bool:
    host = host.lower()
    return any(host == d or host.endswith("." + d) for d in HIGH_AUTHORITY_DOMAINS)


def _external_links(doc: lxml.html.HtmlElement, url: str) -> list[str]:
    """http(s) hrefs that do not mention the page's own host (all of them without a URL)."""
    own_host = (urlparse(url).hostname or "") if url else ""
    out = []
    for href in doc.xpath('//a[starts-with(@href, "http")]/@href'):
        href = str(href).strip()
        if href and (not own_host or own_host not in href):
            out.append(href)
    return out


def check_credibility_signals(doc: lxml.html.HtmlElement, url: str) -> AioCheck:
    found = _Findings()
    author = count_matching(doc, '//*[@rel="author"]', has_class("author"), '//*[@itemprop="author"]')
    if author == 0:
        found.add("著者情報がありません", "著者情報を追加してください")

    dates = count_matching(
        doc, "//time", "//*[@datetime]", has_class("date"), has_class("published"), has_class("updated")
    )
    if dates == 0:
        found.add("日付情報がありません", "公開日や更新日を追加してください")

    citations = count_matching(doc, "//blockquote", "//cite", has_class("citation"), has_class("reference"))
    if citations == 0:
        found.add("引用や参考文献がありません", "信頼できるソースからの引用を追加してください")

    external = _external_links(doc, url)
    authority = sum(1 for href in external if is_high_authority_domain(urlparse(href).hostname or ""))
    if external and authority == 0:
        found.add("権威のある外部サイトへのリンクがありません", "信頼できる外部サイトへのリンクを追加してください")

    contact = count_matching(doc, attr_startswith("href", "mailto:"), attr_startswith("href", "tel:"), has_class("contact"))
    if contact == 0:
        found.add("連絡先情報がありません", "連絡先情報を追加してください")

    return found.check(
        AioCategory.CREDIBILITY_SIGNALS,
        credibility_score(author, dates, citations, authority, contact),
        authorInfo=author,
        dateInfo=dates,
        citations=citations,
        externalLinks=len(external),
        highAuthorityLinks=authority,
        contactInfo=contact,
    )


def _count_elements_starting_with(doc: lxml.html.HtmlElement, pattern: re.Pattern[str]) -> int:
    """Elements whose trimmed text starts with ``pattern`` (ancestors sharing the prefix count too)."""
    return sum(1 for el in iter_content_elements(doc) if pattern.match(visible_text(el).strip()))


def check_ai_search_optimization(doc: lxml.html.HtmlElement) -> AioCheck:
    found = _Findings()
    text = raw_body_text(doc)

    questions = _count_elements_starting_with(doc, QUESTION_START_RE)
    if questions == 0:
        found.add("質問形式のコンテンツがありません", "ユーザーの疑問に答える質問形式のコンテンツを追加してください")

    has_comparison = any(word in text for word in COMPARISON_WORDS)
    if not has_comparison:
        found.add("比較・対比のコンテンツがありません", "選択肢の比較や対比を追加してください")

    steps = _count_elements_starting_with(doc, STEP_START_RE)
    if steps == 0:
        found.add("手順・ステップ形式のコンテンツがありません", "How-to形式のコンテンツを追加してください")

    numeric = len(NUMERIC_DATA_RE.findall(text))
    if numeric < 3:
        found.add("具体的な数値データが少なすぎます", "統計データや具体的な数値を追加してください")

    return found.check(
        AioCategory.AI_SEARCH_OPTIMIZATION,
        ai_search_score(questions, has_comparison, steps, numeric),
        questionPatterns=questions,
        hasComparison=has_comparison,
        stepPatterns=steps,
        numericDataCount=numeric,
    )


def check_natural_language_quality(doc: lxml.html.HtmlElement) -> AioCheck:
    found = _Findings()
    text = body_text(doc)
    sentences = [s for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]
    avg_length = sum(len(s) for s in sentences) / len(sentences) if sentences else 0.0
    if avg_length > 50:
        found.add("文章が長すぎます", "文章を短く、読みやすくしてください")

    technical = len(TECHNICAL_TERM_RE.findall(text))
    if technical > 10:
        found.add("専門用語が多すぎます", "専門用語を減らし、一般的な言葉で説明してください")

    passive = len(PASSIVE_RE.findall(text))
    if passive > len(sentences) * 0.3:
        found.add("受動態が多すぎます", "能動態を多用して、より自然な文章にしてください")

    conjunctions = len(CONJUNCTION_RE.findall(text))
    if conjunctions < 3:
        found.add("接続詞が少なすぎます", "文章の流れを良くするため接続詞を追加してください")

    return found.check(
        AioCategory.NATURAL_LANGUAGE_QUALITY,
        natural_language_score(avg_length, technical, passive, conjunctions),
        avgSentenceLength=round(avg_length),
        technicalTermsCount=technical,
        passiveVoiceCount=passive,
        conjunctionsCount=conjunctions,
    )


def check_context_relevance(doc: lxml.html.HtmlElement, url: str) -> AioCheck:
    """URL/content agreement. Pages without a usable absolute URL score 100."""
    found = _Findings()
    parsed = urlparse(url.strip()) if url else None
    if parsed is None or not parsed.scheme or not parsed.hostname:
        return found.check(AioCategory.CONTEXT_RELEVANCE, 100)

    keywords = [s.lower() for s in unquote(parsed.path).split("/") if len(s) > 2]
    content = body_text(doc).lower()
    url_relevance = sum(1 for k in keywords if k in content) / len(keywords) if keywords else 0.0
    if keywords and url_relevance < 0.5:
        found.add("URLとコンテンツの関連性が低いです", "URLとコンテンツの関連性を高めてください")

    internal = [
        el
        for el in doc.xpath(f'//a[starts-with(@href, "/") or contains(@href, "{parsed.hostname}")]')
        if is_element(el)
    ]
    relevant = sum(1 for el in internal if any(k in normalize_ws(visible_text(el)).lower() for k in keywords))
    if internal and relevant / len(internal) < 0.3:
        found.add("内部リンクの関連性が低いです", "より関連性の高い内部リンクを追加してください")

    categories = count_matching(doc, has_class("category"), has_class("tag"), '//*[@rel="tag"]', has_class("breadcrumb"))
    if categories == 0:
        found.add("カテゴリやタグがありません", "コンテンツの分類を追加してください")

    return found.check(
        AioCategory.CONTEXT_RELEVANCE,
        context_relevance_score(url_relevance, relevant, categories),
        urlRelevance=round(url_relevance * 100),
        internalLinksCount=len(internal),
        relevantInternalLinks=relevant,
        categoriesCount=categories,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def check_aio(doc: lxml.html.HtmlElement, url: str = "", inventory: SchemaInventory | None = None) -> AioReport:
    """Run all six category checks. Never raises; a failure yields an empty report with ``error``."""
    try:
        inventory = inventory if inventory is not None else extract_inventory(doc)
        checks = {
            AioCategory.CONTENT_COMPREHENSIVENESS: check_content_comprehensiveness(doc),
            AioCategory.STRUCTURED_INFORMATION: check_structured_information(doc, inventory),
            AioCategory.CREDIBILITY_SIGNALS: check_credibility_signals(doc, url),
            AioCategory.AI_SEARCH_OPTIMIZATION: check_ai_search_optimization(doc),
            AioCategory.NATURAL_LANGUAGE_QUALITY: check_natural_language_quality(doc),
            AioCategory.CONTEXT_RELEVANCE: check_context_relevance(doc, url),
        }
    except Exception as e:
        logger.warning("AIO check failed for %s: %s", url or "<html>", e, exc_info=True)
        return AioReport(error=f"{type(e).__name__}: {e}")

    report = AioReport(checks=MappingProxyType(checks), overall_score=overall_score(checks))
    logger.debug("AIO score %d for %s", report.overall_score, url or "<html>")
    return report
