# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Schema recommendations for a classified page.

Given a ``ClassificationResult`` and the page's existing structured data,
computes which schema.org types are missing, ranks them into three
priority tiers, and turns them into a phased implementation plan with
filled JSON-LD templates and benefit estimates.

All tables are module-level immutable constants shared across requests.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from schemascope import PageData, PageType
from schemascope.errors import Outcome
from schemascope.field_extractor import FieldExtractor, generate_schema
from schemascope.inventory import SchemaInventory
from schemascope.schema_catalog import (
    basic_template,
    get_implementation_guide,
    get_required_fields,
    get_template,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    import lxml.html

    from schemascope.page_classifier import ClassificationResult

logger = logging.getLogger(__name__)


class Priority(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    LOW = "low"


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# ---------------------------------------------------------------------------
# Schema tiers per page type
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SchemaTiers:
    primary: tuple[str, ...]
    secondary: tuple[str, ...]
    optional: tuple[str, ...]

    def all(self) -> tuple[str, ...]:
        return self.primary + self.secondary + self.optional


SCHEMA_TIERS: Mapping[PageType, SchemaTiers] = MappingProxyType(
    {
        PageType.ARTICLE: SchemaTiers(
            ("Article", "NewsArticle", "BlogPosting"),
            ("Organization", "Person", "BreadcrumbList"),
            ("Comment", "Rating", "Review"),
        ),
        PageType.PRODUCT: SchemaTiers(
            ("Product",),
            ("Organization", "Offer", "Review"),
            ("AggregateRating", "Brand", "BreadcrumbList"),
        ),
        PageType.LOCAL_BUSINESS: SchemaTiers(
            ("LocalBusiness",),
            ("Organization", "PostalAddress", "ContactPoint"),
            ("OpeningHoursSpecification", "GeoCoordinates", "Review"),
        ),
        PageType.RECIPE: SchemaTiers(
            ("Recipe",),
            ("Person", "Organization", "NutritionInformation"),
            ("AggregateRating", "Review", "Video"),
        ),
        PageType.EVENT: SchemaTiers(
            ("Event",),
            ("Place", "Organization", "Offer"),
            ("Person", "PostalAddress", "VirtualLocation"),
        ),
        PageType.FAQ: SchemaTiers(
            ("FAQPage",),
            ("Question", "Answer"),
            ("Organization", "BreadcrumbList"),
        ),
        PageType.HOW_TO: SchemaTiers(
            ("HowTo",),
            ("HowToStep", "HowToSupply", "HowToTool"),
            ("Person", "Organization", "Video"),
        ),
        PageType.REVIEW: SchemaTiers(
            ("Review",),
            ("Product", "Organization", "Rating"),
            ("Person", "AggregateRating", "CreativeWork"),
        ),
        PageType.JOB_POSTING: SchemaTiers(
            ("JobPosting",),
            ("Organization", "Place"),
            ("PostalAddress", "MonetaryAmount", "EducationalOccupationalCredential"),
        ),
        PageType.COURSE: SchemaTiers(
            ("Course", "EducationEvent"),
            ("Organization", "Person", "Place"),
            ("AggregateRating", "Review", "Offer"),
        ),
    }
)

# ---------------------------------------------------------------------------
# Per-schema metadata
# ---------------------------------------------------------------------------

_DIFFICULTY: Mapping[str, Difficulty] = MappingProxyType(
    {
        "Article": Difficulty.EASY,
        "Product": Difficulty.MEDIUM,
        "LocalBusiness": Difficulty.MEDIUM,
        "Recipe": Difficulty.HARD,
        "Event": Difficulty.MEDIUM,
        "FAQPage": Difficulty.EASY,
        "HowTo": Difficulty.HARD,
        "Review": Difficulty.EASY,
        "JobPosting": Difficulty.MEDIUM,
        "Course": Difficulty.MEDIUM,
    }
)

_SEO_VALUE: Mapping[str, int] = MappingProxyType(
    {
        "Article": 85,
        "Product": 90,
        "LocalBusiness": 88,
        "Recipe": 92,
        "Event": 85,
        "FAQPage": 80,
        "HowTo": 87,
        "Review": 83,
        "JobPosting": 85,
        "Course": 82,
    }
)

_IMPLEMENTATION_TIME: Mapping[str, str] = MappingProxyType(
    {
        "Article": "30分",
        "Product": "1-2時間",
        "LocalBusiness": "1時間",
        "Recipe": "2-3時間",
        "Event": "1時間",
        "FAQPage": "30分",
        "HowTo": "2-3時間",
        "Review": "30分",
        "JobPosting": "1時間",
        "Course": "1-2時間",
    }
)

_MISSING_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "Article": "ニュース記事やブログ投稿",
        "Product": "商品情報",
        "LocalBusiness": "店舗・事業所情報",
        "Recipe": "レシピ情報",
        "Event": "イベント情報",
        "FAQPage": "よくある質問ページ",
        "HowTo": "ハウツー・手順説明",
        "Review": "レビュー・評価情報",
        "JobPosting": "求人情報",
        "Course": "講座・コース情報",
    }
)

_IMPROVEMENT_VALUES: Mapping[str, str] = MappingProxyType(
    {
        "Organization": "サイトの信頼性が向上します",
        "Person": "著者情報が明確になります",
        "BreadcrumbList": "ナビゲーション情報が改善されます",
        "Rating": "評価情報が表示されます",
        "AggregateRating": "平均評価が表示されます",
        "Offer": "価格・購入情報が表示されます",
    }
)

_OPTIONAL_VALUES: Mapping[str, str] = MappingProxyType(
    {
        "Comment": "コメント情報を構造化できます",
        "Video": "動画コンテンツが認識されます",
        "Brand": "ブランド情報が明確になります",
        "ContactPoint": "連絡先情報が整理されます",
    }
)

DEFAULT_DIFFICULTY = Difficulty.MEDIUM
DEFAULT_SEO_VALUE = 75
DEFAULT_IMPLEMENTATION_TIME = "1時間"


def schema_difficulty(schema: str) -> Difficulty:
    return _DIFFICULTY.get(schema, DEFAULT_DIFFICULTY)


def schema_seo_value(schema: str) -> int:
    return _SEO_VALUE.get(schema, DEFAULT_SEO_VALUE)


def implementation_time(schema: str) -> str:
    return _IMPLEMENTATION_TIME.get(schema, DEFAULT_IMPLEMENTATION_TIME)


def missing_reason(schema: str) -> str:
    return f"{schema}は{_MISSING_DESCRIPTIONS.get(schema, 'コンテンツ')}として必須です"


def improvement_reason(schema: str) -> str:
    return f"{schema}を追加することで{_IMPROVEMENT_VALUES.get(schema, 'SEO効果が期待できます')}"


def optional_reason(schema: str) -> str:
    return f"{schema}は{_OPTIONAL_VALUES.get(schema, '付加価値を提供します')}"


# ---------------------------------------------------------------------------
# Local business detection
# ---------------------------------------------------------------------------

BUSINESS_TYPE_KEYWORDS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "Restaurant": ("レストラン", "カフェ", "カレー", "食べ物", "飲食店"),
        "Store": ("ストア", "ショップ", "店舗", "販売", "小売"),
        "Hotel": ("ホテル", "宿泊", "旅館", "リゾート"),
        "Hospital": ("病院", "クリニック", "診療所", "医療"),
        "School": ("学校", "大学", "塾", "教育", "スクール"),
        "Gym": ("ジム", "フィットネス", "スポーツクラブ"),
        "BeautySalon": ("美容室", "サロン", "エステ", "美容"),
    }
)

OPENING_HOURS_RE = re.compile(r"営業時間|開店|閉店|定休日")
LOCATION_RE = re.compile(r"住所|所在地|アクセス|地図")

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RecommendationItem:
    schema: str
    priority: Priority
    reason: str
    impact: str
    difficulty: Difficulty
    seo_value: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": self.schema,
            "priority": str(self.priority),
            "reason": self.reason,
            "impact": self.impact,
            "difficulty": str(self.difficulty),
            "seoValue": self.seo_value,
        }


@dataclass(frozen=True, slots=True)
class SchemaRecommendationSet:
    missing: tuple[RecommendationItem, ...] = ()
    improvements: tuple[RecommendationItem, ...] = ()
    optional: tuple[RecommendationItem, ...] = ()

    def schemas(self) -> list[str]:
        return [item.schema for item in (*self.missing, *self.improvements, *self.optional)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "missing": [i.to_dict() for i in self.missing],
            "improvements": [i.to_dict() for i in self.improvements],
            "optional": [i.to_dict() for i in self.optional],
        }


@dataclass(frozen=True, slots=True)
class ImplementationTask:
    schema: str
    title: str
    description: str
    estimated_time: str
    required_fields: tuple[str, ...]
    template: dict[str, Any]
    implementation_guide: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": self.schema,
            "title": self.title,
            "description": self.description,
            "estimatedTime": self.estimated_time,
            "requiredFields": list(self.required_fields),
            "template": self.template,
            "implementationGuide": list(self.implementation_guide),
        }


@dataclass(frozen=True, slots=True)
class ImplementationPlan:
    immediate: tuple[ImplementationTask, ...] = ()
    short_term: tuple[ImplementationTask, ...] = ()
    long_term: tuple[ImplementationTask, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "immediate": [t.to_dict() for t in self.immediate],
            "shortTerm": [t.to_dict() for t in self.short_term],
            "longTerm": [t.to_dict() for t in self.long_term],
        }


@dataclass(frozen=True, slots=True)
class BusinessSuggestion:
    kind: str  # BusinessType | OpeningHours | GeoCoordinates
    suggestion: str
    description: str
    implementation: str

    def to_dict(self) -> dict[str, str]:
        return {
            "type": self.kind,
            "suggestion": self.suggestion,
            "description": self.description,
            "implementation": self.implementation,
        }


@dataclass(frozen=True, slots=True)
class ExpectedBenefits:
    """Presentation heuristics, not measured outcomes (percentages)."""

    rich_snippet_probability: int
    ranking_improvement: int
    ctr_improvement: int
    local_search_visibility: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "richSnippets": {"probability": self.rich_snippet_probability, "description": "リッチスニペット表示の可能性"},
            "searchRanking": {"improvement": self.ranking_improvement, "description": "検索順位の改善見込み"},
            "clickThroughRate": {"improvement": self.ctr_improvement, "description": "クリック率の改善見込み"},
            "localSearch": {"visibility": self.local_search_visibility, "description": "ローカル検索での可視性"},
        }


@dataclass(frozen=True, slots=True)
class ValidationStep:
    step: int
    title: str
    description: str
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"step": self.step, "title": self.title, "description": self.description}
        if self.url:
            d["url"] = self.url
        return d


VALIDATION_STEPS: tuple[ValidationStep, ...] = (
    ValidationStep(
        1,
        "Google構造化データテストツールで検証",
        "構造化データが正しく認識されるかテストします",
        "https://search.google.com/test/rich-results",
    ),
    ValidationStep(
        2,
        "Schema.org検証ツールで確認",
        "Schema.orgの仕様に準拠しているか確認します",
        "https://validator.schema.org/",
    ),
    ValidationStep(
        3,
        "Google Search Consoleで監視",
        "実装後のリッチスニペット表示状況を監視します",
        "https://search.google.com/search-console",
    ),
    ValidationStep(4, "JSONLDの構文チェック", "JSON構文エラーがないか確認します"),
)


@dataclass(frozen=True, slots=True)
class RecommendationReport:
    page_type: str
    confidence: float
    recommendations: SchemaRecommendationSet
    implementation: ImplementationPlan
    business_specific: tuple[BusinessSuggestion, ...]
    expected_benefits: ExpectedBenefits
    validation_steps: tuple[ValidationStep, ...] = VALIDATION_STEPS
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "pageType": self.page_type,
            "confidence": self.confidence,
            "recommendations": self.recommendations.to_dict(),
            "implementation": self.implementation.to_dict(),
            "businessSpecific": [b.to_dict() for b in self.business_specific],
            "expectedBenefits": self.expected_benefits.to_dict(),
            "validationSteps": [s.to_dict() for s in self.validation_steps],
        }
        if self.error:
            d["error"] = self.error
        return d


# ---------------------------------------------------------------------------
# Algorithm
# ---------------------------------------------------------------------------


def tiers_for(page_type: PageType | str) -> SchemaTiers:
    """Tier table entry for ``page_type``; unknown types use the Article tiers."""
    try:
        return SCHEMA_TIERS[PageType(page_type)]
    except ValueError:
        return SCHEMA_TIERS[PageType.ARTICLE]


def _absent(schemas: Iterable[str], existing: frozenset[str]) -> list[str]:
    return [s for s in schemas if s not in existing]


def build_recommendation_set(tiers: SchemaTiers, existing: frozenset[str]) -> SchemaRecommendationSet:
    def _item(schema: str, priority: Priority, reason: str, impact: str) -> RecommendationItem:
        return RecommendationItem(schema, priority, reason, impact, schema_difficulty(schema), schema_seo_value(schema))

    return SchemaRecommendationSet(
        missing=tuple(
            _item(s, Priority.CRITICAL, missing_reason(s), "high") for s in _absent(tiers.primary, existing)
        ),
        improvements=tuple(
            _item(s, Priority.HIGH, improvement_reason(s), "medium") for s in _absent(tiers.secondary, existing)
        ),
        optional=tuple(
            _item(s, Priority.LOW, optional_reason(s), "low") for s in _absent(tiers.optional, existing)
        ),
    )


def _task_template(
    schema: str,
    doc: lxml.html.HtmlElement | None,
    page_data: PageData,
    extractor: FieldExtractor,
) -> dict[str, Any]:
    if doc is not None:
        return generate_schema(schema, doc, page_data, extractor).value.json_ld
    template = get_template(schema)
    return template.skeleton() if template is not None else basic_template(schema)


def build_implementation_plan(
    recommendations: SchemaRecommendationSet,
    page_data: PageData,
    doc: lxml.html.HtmlElement | None = None,
    extractor: FieldExtractor | None = None,
) -> ImplementationPlan:
    """Bucket items: missing → immediate, improvements → short term, optional → long term.

    With ``doc`` the templates are filled from the page; without it they
    are skeletons showing the ``{{placeholder}}`` names.
    """
    extractor = extractor or FieldExtractor()

    def _tasks(items: tuple[RecommendationItem, ...], verb: str) -> tuple[ImplementationTask, ...]:
        return tuple(
            ImplementationTask(
                schema=item.schema,
                title=f"{item.schema}スキーマの{verb}",
                description=item.reason,
                estimated_time=implementation_time(item.schema),
                required_fields=tuple(get_required_fields(item.schema)),
                template=_task_template(item.schema, doc, page_data, extractor),
                implementation_guide=tuple(get_implementation_guide(item.schema)),
            )
            for item in items
        )

    return ImplementationPlan(
        immediate=_tasks(recommendations.missing, "実装"),
        short_term=_tasks(recommendations.improvements, "追加"),
        long_term=_tasks(recommendations.optional, "検討"),
    )


def detect_business_type(text: str) -> str | None:
    """First business subtype whose keywords occur in ``text`` (lowercased)."""
    lowered = text.lower()
    for business_type, keywords in BUSINESS_TYPE_KEYWORDS.items():
        if any(kw in lowered for kw in keywords):
            return business_type
    return None


def business_suggestions(page_data: PageData) -> tuple[BusinessSuggestion, ...]:
    text = f"{page_data.title} {page_data.body_text}".lower()
    out: list[BusinessSuggestion] = []

    business_type = detect_business_type(text)
    if business_type:
        out.append(
            BusinessSuggestion(
                kind="BusinessType",
                suggestion=f"LocalBusinessを{business_type}に特化",
                description=f"より具体的な{business_type}スキーマを使用することで、検索結果での表示が向上します",
                implementation=f'"@type": "{business_type}"',
            )
        )

    if OPENING_HOURS_RE.search(text):
        out.append(
            BusinessSuggestion(
                kind="OpeningHours",
                suggestion="OpeningHoursSpecificationの追加",
                description="営業時間情報を構造化することで、Googleマップでの表示が改善されます",
                implementation="openingHoursSpecificationプロパティを追加",
            )
        )

    if LOCATION_RE.search(text):
        out.append(
            BusinessSuggestion(
                kind="GeoCoordinates",
                suggestion="GeoCoordinatesの追加",
                description="緯度経度情報により、ローカル検索での精度が向上します",
                implementation="geoプロパティにGeoCoordinatesを追加",
            )
        )

    return tuple(out)


def expected_benefits(recommendations: SchemaRecommendationSet) -> ExpectedBenefits:
    critical = len(recommendations.missing)
    high = len(recommendations.improvements)
    local = any(item.schema in ("LocalBusiness", "Organization") for item in recommendations.missing)
    return ExpectedBenefits(
        rich_snippet_probability=min(90, critical * 30 + high * 15),
        ranking_improvement=min(20, critical * 5 + high * 3),
        ctr_improvement=min(25, critical * 8 + high * 5),
        local_search_visibility=40 if local else 10,
    )


def default_report(error: str | None = None) -> RecommendationReport:
    """Safe fallback: recommend a single critical Article schema."""
    item = RecommendationItem(
        schema="Article",
        priority=Priority.CRITICAL,
        reason="デフォルト推奨事項",
        impact="high",
        difficulty=schema_difficulty("Article"),
        seo_value=schema_seo_value("Article"),
    )
    recommendations = SchemaRecommendationSet(missing=(item,))
    return RecommendationReport(
        page_type=str(PageType.ARTICLE),
        confidence=0.0,
        recommendations=recommendations,
        implementation=ImplementationPlan(),
        business_specific=(),
        expected_benefits=expected_benefits(recommendations),
        error=error,
    )


def _existing_names(inventory: SchemaInventory | None) -> frozenset[str]:
    if inventory is None:
        return frozenset()
    return inventory.type_names()


def recommend_outcome(
    classification: ClassificationResult,
    inventory: SchemaInventory | None,
    page_data: PageData | None = None,
    doc: lxml.html.HtmlElement | None = None,
    extractor: FieldExtractor | None = None,
) -> Outcome[RecommendationReport]:
    """Recommendations for a classified page. Never raises."""
    try:
        page_data = page_data or classification.page_data
        existing = _existing_names(inventory)
        recommendations = build_recommendation_set(tiers_for(classification.primary_type), existing)
        plan = build_implementation_plan(recommendations, page_data, doc, extractor)
        business = (
            business_suggestions(page_data) if classification.primary_type == PageType.LOCAL_BUSINESS else ()
        )
        report = RecommendationReport(
            page_type=str(classification.primary_type),
            confidence=classification.confidence,
            recommendations=recommendations,
            implementation=plan,
            business_specific=business,
            expected_benefits=expected_benefits(recommendations),
        )
    except Exception as e:
        logger.warning("recommendation failed, using default: %s", e, exc_info=True)
        outcome = Outcome.fallback(default_report(), e)
        return replace(outcome, value=default_report(outcome.error))

    logger.debug(
        "recommendations for %s: %d missing, %d improvements, %d optional (existing=%s)",
        report.page_type,
        len(recommendations.missing),
        len(recommendations.improvements),
        len(recommendations.optional),
        sorted(existing),
    )
    return Outcome.success(report)


def generate_recommendations(
    classification: ClassificationResult,
    inventory: SchemaInventory | None,
    page_data: PageData | None = None,
    doc: lxml.html.HtmlElement | None = None,
    extractor: FieldExtractor | None = None,
) -> RecommendationReport:
    """Like ``recommend_outcome`` but returns the report directly (``report.error`` set on fallback)."""
    return recommend_outcome(classification, inventory, page_data, doc, extractor).value


class RecommendationEngine:
    """Object facade over ``generate_recommendations``."""

    def __init__(self, extractor: FieldExtractor | None = None) -> None:
        self._extractor = extractor or FieldExtractor()

    def generate_recommendations(
        self,
        classification: ClassificationResult,
        inventory: SchemaInventory | None,
        page_data: PageData | None = None,
        doc: lxml.html.HtmlElement | None = None,
    ) -> RecommendationReport:
        return generate_recommendations(classification, inventory, page_data, doc, self._extractor)
