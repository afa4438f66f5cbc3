# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Weighted-signal page-type classifier.

Each PageType owns a signature of keywords and URL/title/content patterns.
A page is scored against every signature at once:

  score = 3.0·(keyword hits + title-pattern hits in <title>)
        + 2.5·(keyword hits in meta description)
        + 2.0·(keyword hits in headings)
        + 2.0·(URL-pattern hits)
        + 1.0·(keyword hits + content-pattern hits in body text)

Keyword hits count every occurrence; pattern hits are 0/1 per pattern.
Structural "special elements" (price tags, star ratings, Q:/A: blocks, ...)
then add fixed bonuses.  The top three types by score become the primary
and secondary types.  Ties keep PageType declaration order.

The returned ``confidence`` is the primary type's raw score, not a
probability; ``normalized_confidence`` gives the share of the total.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import lxml.html

from schemascope import PageData, PageType, SpecialElements
from schemascope.document import (
    HEADING_XPATH,
    all_text,
    attr_contains,
    body_text,
    exists,
    has_attr,
    has_class,
    meta_content,
    normalize_ws,
    raw_body_text,
)
from schemascope.errors import Outcome

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PageSignature:
    """Static keyword/pattern signature of one page type."""

    keywords: tuple[str, ...]
    url_patterns: tuple[str, ...]
    title_patterns: tuple[str, ...]
    content_patterns: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class MatchedPatterns:
    """Signature entries of the primary type that appear on the page."""

    keywords: tuple[str, ...] = ()
    title_patterns: tuple[str, ...] = ()
    url_patterns: tuple[str, ...] = ()
    content_patterns: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "keywords": list(self.keywords),
            "titlePatterns": list(self.title_patterns),
            "urlPatterns": list(self.url_patterns),
            "contentPatterns": list(self.content_patterns),
        }


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Result of page-type classification."""

    primary_type: PageType
    secondary_types: tuple[PageType, ...]  # ranks 2-3
    confidence: float  # raw score of primary_type (unbounded)
    all_scores: Mapping[PageType, float]
    matched_patterns: MatchedPatterns = field(default_factory=MatchedPatterns)
    page_data: PageData = field(default_factory=PageData)
    error: str | None = None  # set when this is the fallback result

    @property
    def normalized_confidence(self) -> float:
        """Primary score as a share of all positive scores (0.0–1.0)."""
        total = sum(s for s in self.all_scores.values() if s > 0)
        if total <= 0:
            return 0.0
        return self.all_scores.get(self.primary_type, 0.0) / total

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "primaryType": str(self.primary_type),
            "secondaryTypes": [str(t) for t in self.secondary_types],
            "confidence": self.confidence,
            "normalizedConfidence": round(self.normalized_confidence, 4),
            "allScores": {str(t): s for t, s in self.all_scores.items()},
            "matchedPatterns": self.matched_patterns.to_dict(),
            "pageData": self.page_data.to_dict(),
        }
        if self.error:
            out["error"] = self.error
        return out


# ---------------------------------------------------------------------------
# Signature registry
# ---------------------------------------------------------------------------

PAGE_SIGNATURES: Mapping[PageType, PageSignature] = MappingProxyType(
    {
        PageType.ARTICLE: PageSignature(
            keywords=("記事", "ブログ", "ニュース", "投稿", "コラム", "レポート", "解説"),
            url_patterns=("/blog/", "/news/", "/article/", "/post/", "/column/"),
            title_patterns=("～について", "～とは", "～を解説", "～のまとめ"),
            content_patterns=("公開日", "更新日", "執筆者", "著者", "シェア", "いいね"),
        ),
        PageType.PRODUCT: PageSignature(
            keywords=("商品", "製品", "価格", "購入", "在庫", "レビュー", "評価", "カート", "送料"),
            url_patterns=("/product/", "/item/", "/goods/", "/shop/", "/store/"),
            title_patterns=("～を購入", "～の価格", "～のレビュー", "価格：", "￥"),
            content_patterns=("価格", "在庫", "カートに入れる", "購入する", "送料", "配送", "保証"),
        ),
        PageType.LOCAL_BUSINESS: PageSignature(
            keywords=("店舗", "営業時間", "住所", "電話番号", "アクセス", "地図", "駐車場", "予約"),
            url_patterns=("/company/", "/about/", "/contact/", "/access/", "/shop/"),
            title_patterns=("会社概要", "店舗情報", "アクセス", "営業時間", "～店"),
            content_patterns=("営業時間", "定休日", "住所", "電話", "TEL", "地図", "アクセス"),
        ),
        PageType.RECIPE: PageSignature(
            keywords=("レシピ", "料理", "材料", "作り方", "調理", "手順", "分量", "調理時間"),
            url_patterns=("/recipe/", "/cooking/", "/food/"),
            title_patterns=("～のレシピ", "～の作り方", "簡単", "手作り"),
            content_patterns=("材料", "分量", "手順", "調理時間", "人前", "カロリー", "栄養"),
        ),
        PageType.EVENT: PageSignature(
            keywords=("イベント", "開催", "日時", "場所", "参加", "チケット", "予約", "会場"),
            url_patterns=("/event/", "/seminar/", "/conference/", "/workshop/"),
            title_patterns=("開催のお知らせ", "イベント情報", "セミナー", "講座"),
            content_patterns=("開催日", "開催時間", "会場", "参加費", "定員", "お申込み"),
        ),
        PageType.FAQ: PageSignature(
            keywords=("よくある質問", "FAQ", "Q&A", "質問", "回答", "ヘルプ", "サポート"),
            url_patterns=("/faq/", "/help/", "/support/", "/qa/"),
            title_patterns=("よくある質問", "FAQ", "Q&A", "ヘルプ"),
            content_patterns=("Q:", "A:", "質問：", "回答：", "よくある質問"),
        ),
        PageType.HOW_TO: PageSignature(
            keywords=("方法", "やり方", "手順", "ステップ", "ガイド", "チュートリアル", "使い方"),
            url_patterns=("/howto/", "/guide/", "/tutorial/", "/manual/"),
            title_patterns=("～の方法", "～のやり方", "～ガイド", "ステップ", "手順"),
            content_patterns=("ステップ", "手順", "方法", "STEP", "まず", "次に", "最後に"),
        ),
        PageType.REVIEW: PageSignature(
            keywords=("レビュー", "評価", "口コミ", "感想", "体験談", "評判", "星"),
            url_patterns=("/review/", "/rating/", "/evaluation/"),
            title_patterns=("レビュー", "評価", "口コミ", "体験談", "～を試してみた"),
            content_patterns=("評価", "★", "☆", "星", "点数", "おすすめ", "メリット", "デメリット"),
        ),
        PageType.JOB_POSTING: PageSignature(
            keywords=("求人", "採用", "募集", "仕事", "転職", "就職", "給与", "勤務地"),
            url_patterns=("/job/", "/career/", "/recruit/", "/hiring/"),
            title_patterns=("求人情報", "採用情報", "募集要項", "正社員", "アルバイト"),
            content_patterns=("募集要項", "給与", "勤務地", "勤務時間", "応募資格", "福利厚生"),
        ),
        PageType.COURSE: PageSignature(
            keywords=("講座", "コース", "授業", "学習", "教育", "スクール", "研修", "カリキュラム"),
            url_patterns=("/course/", "/class/", "/training/", "/education/"),
            title_patterns=("講座", "コース", "研修", "スクール", "～を学ぶ"),
            content_patterns=("カリキュラム", "学習内容", "期間", "受講料", "講師", "資格"),
        ),
    }
)

# Field weights
WEIGHT_TITLE = 3.0
WEIGHT_META = 2.5
WEIGHT_HEADINGS = 2.0
WEIGHT_URL = 2.0
WEIGHT_CONTENT = 1.0

# Special element → {page_type: bonus}
SPECIAL_ELEMENT_BONUSES: Mapping[str, Mapping[PageType, float]] = MappingProxyType(
    {
        "price": {PageType.PRODUCT: 10},
        "review": {PageType.REVIEW: 8, PageType.PRODUCT: 5},
        "event": {PageType.EVENT: 12},
        "recipe": {PageType.RECIPE: 15},
        "faq": {PageType.FAQ: 15},
        "job": {PageType.JOB_POSTING: 12},
        "course": {PageType.COURSE: 10},
    }
)

# Keywords compiled once: case-insensitive literal occurrence counting
_KEYWORD_RES: Mapping[PageType, tuple[re.Pattern[str], ...]] = MappingProxyType(
    {
        ptype: tuple(re.compile(re.escape(kw.lower())) for kw in sig.keywords)
        for ptype, sig in PAGE_SIGNATURES.items()
    }
)

_DISPLAY_NAMES: Mapping[PageType, str] = MappingProxyType(
    {
        PageType.ARTICLE: "記事・ブログ",
        PageType.PRODUCT: "商品ページ",
        PageType.LOCAL_BUSINESS: "店舗・企業",
        PageType.RECIPE: "レシピ",
        PageType.EVENT: "イベント",
        PageType.FAQ: "よくある質問",
        PageType.HOW_TO: "手順・ガイド",
        PageType.REVIEW: "レビュー",
        PageType.JOB_POSTING: "求人情報",
        PageType.COURSE: "コース・講座",
    }
)

_DESCRIPTIONS: Mapping[PageType, str] = MappingProxyType(
    {
        PageType.ARTICLE: "ニュース記事、ブログ投稿、解説記事など",
        PageType.PRODUCT: "ECサイトの商品ページ、製品紹介ページ",
        PageType.LOCAL_BUSINESS: "店舗情報、会社概要、事業所案内",
        PageType.RECIPE: "料理レシピ、作り方の説明",
        PageType.EVENT: "イベント情報、セミナー案内、開催告知",
        PageType.FAQ: "よくある質問、Q&A、ヘルプページ",
        PageType.HOW_TO: "ハウツー記事、チュートリアル、手順説明",
        PageType.REVIEW: "商品レビュー、評価・感想記事",
        PageType.JOB_POSTING: "求人情報、採用案内",
        PageType.COURSE: "講座案内、研修情報、教育コンテンツ",
    }
)


def display_name(page_type: PageType | str) -> str:
    """Japanese label for a page type (falls back to the type name)."""
    try:
        return _DISPLAY_NAMES[PageType(page_type)]
    except ValueError:
        return str(page_type)


def type_description(page_type: PageType | str) -> str:
    try:
        return _DESCRIPTIONS[PageType(page_type)]
    except ValueError:
        return ""


# ---------------------------------------------------------------------------
# Special element detectors
# ---------------------------------------------------------------------------

_PRICE_TEXT_RE = re.compile(r"[￥$€£]\s*[\d,]+|[\d,]+\s*円|価格\s*[:：]\s*[\d,]+")
_REVIEW_TEXT_RE = re.compile(r"★|☆|評価|レビュー|口コミ")
_EVENT_TEXT_RE = re.compile(r"開催日|開催時間|会場|イベント")
_RECIPE_TEXT_RE = re.compile(r"材料|分量|手順|調理時間")
_FAQ_TEXT_RE = re.compile(r"Q\s*[:：]|A\s*[:：]|質問|回答")
_JOB_TEXT_RE = re.compile(r"募集要項|給与|勤務地|応募資格")
_COURSE_TEXT_RE = re.compile(r"カリキュラム|講座|受講|学習内容")


def _any_selector(doc: lxml.html.HtmlElement, xpaths: tuple[str, ...]) -> bool:
    return any(exists(doc, xp) for xp in xpaths)


_PRICE_SELECTORS = (
    attr_contains("class", "price"),
    attr_contains("id", "price"),
    has_class("cost"),
    has_class("amount"),
    has_attr("data-price"),
)
_REVIEW_SELECTORS = (
    attr_contains("class", "review"),
    attr_contains("class", "rating"),
    attr_contains("class", "star"),
    has_class("evaluation"),
)
_EVENT_SELECTORS = (
    attr_contains("class", "event"),
    attr_contains("class", "schedule"),
    has_attr("datetime"),
    "//time",
)
_RECIPE_SELECTORS = (
    attr_contains("class", "recipe"),
    attr_contains("class", "ingredient"),
    attr_contains("class", "instruction"),
)
_FAQ_SELECTORS = (
    attr_contains("class", "faq"),
    attr_contains("id", "faq"),
    has_class("qa"),
    has_class("question"),
    has_class("answer"),
)
_JOB_SELECTORS = (
    attr_contains("class", "job"),
    attr_contains("class", "career"),
    attr_contains("class", "recruit"),
)
_COURSE_SELECTORS = (
    attr_contains("class", "course"),
    attr_contains("class", "curriculum"),
    attr_contains("class", "lesson"),
)


def detect_special_elements(doc: lxml.html.HtmlElement, text: str | None = None) -> SpecialElements:
    """Evaluate the seven structural detectors over ``doc``.

    ``text`` is the body text; it is computed when not supplied.
    """
    if text is None:
        text = raw_body_text(doc)
    return SpecialElements(
        price=_any_selector(doc, _PRICE_SELECTORS) or bool(_PRICE_TEXT_RE.search(text)),
        review=_any_selector(doc, _REVIEW_SELECTORS) or bool(_REVIEW_TEXT_RE.search(text)),
        event=_any_selector(doc, _EVENT_SELECTORS) or bool(_EVENT_TEXT_RE.search(text)),
        recipe=_any_selector(doc, _RECIPE_SELECTORS) or bool(_RECIPE_TEXT_RE.search(text)),
        faq=_any_selector(doc, _FAQ_SELECTORS) or bool(_FAQ_TEXT_RE.search(text)),
        job=_any_selector(doc, _JOB_SELECTORS) or bool(_JOB_TEXT_RE.search(text)),
        course=_any_selector(doc, _COURSE_SELECTORS) or bool(_COURSE_TEXT_RE.search(text)),
    )


# ---------------------------------------------------------------------------
# Page data extraction
# ---------------------------------------------------------------------------


def extract_page_data(doc: lxml.html.HtmlElement, url: str = "") -> PageData:
    """Collect title, meta description, headings, body text and special elements."""
    title = normalize_ws(" ".join(all_text(doc, "//title")))
    text = body_text(doc)
    return PageData(
        title=title,
        meta_description=meta_content(doc, name="description"),
        headings=tuple(all_text(doc, HEADING_XPATH)),
        url=url or "",
        body_text=text,
        content_length=len(text),
        special_elements=detect_special_elements(doc, text),
    )


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _keyword_hits(text: str, patterns: tuple[re.Pattern[str], ...]) -> int:
    if not text:
        return 0
    lowered = text.lower()
    return sum(len(p.findall(lowered)) for p in patterns)


def _pattern_hits(text: str, patterns: tuple[str, ...]) -> int:
    if not text:
        return 0
    return sum(1 for p in patterns if p in text)


def score_type(page_type: PageType, page_data: PageData) -> float:
    """Base weighted score of one type, before special-element bonuses."""
    sig = PAGE_SIGNATURES[page_type]
    kw = _KEYWORD_RES[page_type]

    score = 0.0
    score += _keyword_hits(page_data.title, kw) * WEIGHT_TITLE
    score += _pattern_hits(page_data.title, sig.title_patterns) * WEIGHT_TITLE
    score += _keyword_hits(page_data.meta_description, kw) * WEIGHT_META
    score += _keyword_hits(" ".join(page_data.headings), kw) * WEIGHT_HEADINGS
    score += _pattern_hits(page_data.url, sig.url_patterns) * WEIGHT_URL
    score += _keyword_hits(page_data.body_text, kw) * WEIGHT_CONTENT
    score += _pattern_hits(page_data.body_text, sig.content_patterns) * WEIGHT_CONTENT
    return score


def apply_special_element_bonus(scores: dict[PageType, float], special: SpecialElements) -> None:
    """Add fixed bonuses in place for every detector that fired."""
    for name in special.fired():
        for ptype, bonus in SPECIAL_ELEMENT_BONUSES[name].items():
            scores[ptype] = scores.get(ptype, 0.0) + bonus


def calculate_type_scores(page_data: PageData) -> dict[PageType, float]:
    scores = {ptype: score_type(ptype, page_data) for ptype in PageType}
    apply_special_element_bonus(scores, page_data.special_elements)
    return scores


def rank_types(scores: Mapping[PageType, float]) -> list[PageType]:
    """Types by descending score; ties keep declaration order."""
    order = {ptype: i for i, ptype in enumerate(PageType)}
    return sorted(scores, key=lambda t: (-scores[t], order[t]))


def matched_patterns(page_data: PageData, page_type: PageType) -> MatchedPatterns:
    sig = PAGE_SIGNATURES[page_type]
    title_l = page_data.title.lower()
    body_l = page_data.body_text.lower()
    return MatchedPatterns(
        keywords=tuple(k for k in sig.keywords if k.lower() in title_l or k.lower() in body_l),
        title_patterns=tuple(p for p in sig.title_patterns if p in page_data.title),
        url_patterns=tuple(p for p in sig.url_patterns if p in page_data.url),
        content_patterns=tuple(p for p in sig.content_patterns if p in page_data.body_text),
    )


# ---------------------------------------------------------------------------
# Core classifier
# ---------------------------------------------------------------------------


def default_result(error: str | None = None) -> ClassificationResult:
    """Fallback used when classification cannot run."""
    return ClassificationResult(
        primary_type=PageType.ARTICLE,
        secondary_types=(),
        confidence=0.0,
        all_scores=MappingProxyType({}),
        error=error,
    )


def classify_page_data(page_data: PageData) -> ClassificationResult:
    """Classify already-extracted page data."""
    scores = calculate_type_scores(page_data)
    ranked = rank_types(scores)
    primary = ranked[0]
    return ClassificationResult(
        primary_type=primary,
        secondary_types=tuple(ranked[1:3]),
        confidence=scores[primary],
        all_scores=MappingProxyType(scores),
        matched_patterns=matched_patterns(page_data, primary),
        page_data=page_data,
    )


def classify_page_outcome(doc: lxml.html.HtmlElement, url: str = "") -> Outcome[ClassificationResult]:
    """Classify ``doc``; on any failure the value is the Article/0 default."""
    try:
        page_data = extract_page_data(doc, url)
        result = classify_page_data(page_data)
    except Exception as e:
        logger.warning("page classification failed, using default: %s", e, exc_info=True)
        error = f"{type(e).__name__}: {e}"
        return Outcome.fallback(default_result(error), error)

    logger.debug(
        "classified %s as %s (score=%.1f, runner-up=%s)",
        url or "<no url>",
        result.primary_type,
        result.confidence,
        result.secondary_types[0] if result.secondary_types else None,
    )
    return Outcome.success(result)


def classify_page(doc: lxml.html.HtmlElement, url: str = "") -> ClassificationResult:
    """Classify ``doc``. Never raises; see ``classify_page_outcome``."""
    return classify_page_outcome(doc, url).value


class PageTypeClassifier:
    """Object facade over the module-level classifier functions."""

    def analyze_page(self, doc: lxml.html.HtmlElement, url: str = "") -> ClassificationResult:
        return classify_page(doc, url)

    def extract_page_data(self, doc: lxml.html.HtmlElement, url: str = "") -> PageData:
        return extract_page_data(doc, url)

    display_name = staticmethod(display_name)
    type_description = staticmethod(type_description)
