# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Static catalog of JSON-LD templates, field lists and implementation guides.

Pure lookup tables; nothing here touches a document.  Every placeholder a
template uses must be produced by ``FieldExtractor`` for the same type
(enforced by tests).
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from schemascope.template import Placeholder as P
from schemascope.template import SchemaTemplate

SCHEMA_CONTEXT = "https://schema.org"

# ---------------------------------------------------------------------------
# Shared fragments
# ---------------------------------------------------------------------------


def _person(name: str) -> dict[str, Any]:
    return {"@type": "Person", "name": P(name)}


def _postal_address(*, street: bool = True, postal_code: bool = True) -> dict[str, Any]:
    addr: dict[str, Any] = {"@type": "PostalAddress"}
    if street:
        addr["streetAddress"] = P("streetAddress")
    addr["addressLocality"] = P("city")
    addr["addressRegion"] = P("state")
    if postal_code:
        addr["postalCode"] = P("postalCode")
    addr["addressCountry"] = "JP"
    return addr


def _article_body(schema_type: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "@context": SCHEMA_CONTEXT,
        "@type": schema_type,
        "headline": P("title"),
        "description": P("description"),
        "image": P("mainImage"),
        "author": _person("authorName"),
        "publisher": {
            "@type": "Organization",
            "name": P("publisherName"),
            "logo": {"@type": "ImageObject", "url": P("publisherLogo")},
        },
        "datePublished": P("publishDate"),
        "dateModified": P("modifiedDate"),
        "mainEntityOfPage": {"@type": "WebPage", "@id": P("url")},
    }
    body.update(extra)
    return body


def _aggregate_rating() -> dict[str, Any]:
    return {"@type": "AggregateRating", "ratingValue": P("ratingValue"), "reviewCount": P("reviewCount")}


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_TEMPLATE_BODIES: dict[str, dict[str, Any]] = {
    "Article": _article_body("Article"),
    "NewsArticle": _article_body("NewsArticle", articleSection=P("category")),
    "BlogPosting": _article_body("BlogPosting", keywords=P("keywords")),
    "Product": {
        "@context": SCHEMA_CONTEXT,
        "@type": "Product",
        "name": P("productName"),
        "description": P("description"),
        "image": P("productImage"),
        "brand": {"@type": "Brand", "name": P("brandName")},
        "offers": {
            "@type": "Offer",
            "price": P("price"),
            "priceCurrency": "JPY",
            "availability": P("availability"),
            "seller": {"@type": "Organization", "name": P("sellerName")},
        },
        "aggregateRating": _aggregate_rating(),
        "sku": P("sku"),
        "gtin": P("gtin"),
    },
    "LocalBusiness": {
        "@context": SCHEMA_CONTEXT,
        "@type": "LocalBusiness",
        "name": P("businessName"),
        "description": P("description"),
        "image": P("businessImage"),
        "address": _postal_address(),
        "telephone": P("phone"),
        "url": P("website"),
        "geo": {"@type": "GeoCoordinates", "latitude": P("latitude"), "longitude": P("longitude")},
        "openingHoursSpecification": [
            {
                "@type": "OpeningHoursSpecification",
                "dayOfWeek": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
                "opens": P("weekdayOpen"),
                "closes": P("weekdayClose"),
            }
        ],
        "priceRange": P("priceRange"),
    },
    "Recipe": {
        "@context": SCHEMA_CONTEXT,
        "@type": "Recipe",
        "name": P("recipeName"),
        "description": P("description"),
        "image": P("recipeImage"),
        "author": _person("authorName"),
        "prepTime": P("prepTime"),
        "cookTime": P("cookTime"),
        "totalTime": P("totalTime"),
        "recipeYield": P("servings"),
        "recipeCategory": P("category"),
        "recipeCuisine": P("cuisine"),
        "recipeIngredient": P("ingredients"),
        "recipeInstructions": P("instructions"),
        "nutrition": {"@type": "NutritionInformation", "calories": P("calories")},
        "aggregateRating": _aggregate_rating(),
    },
    "Event": {
        "@context": SCHEMA_CONTEXT,
        "@type": "Event",
        "name": P("eventName"),
        "description": P("description"),
        "image": P("eventImage"),
        "startDate": P("startDate"),
        "endDate": P("endDate"),
        "location": {"@type": "Place", "name": P("venueName"), "address": _postal_address()},
        "organizer": {"@type": "Organization", "name": P("organizerName"), "url": P("organizerUrl")},
        "offers": {
            "@type": "Offer",
            "price": P("ticketPrice"),
            "priceCurrency": "JPY",
            "availability": P("availability"),
            "url": P("ticketUrl"),
        },
    },
    "FAQPage": {
        "@context": SCHEMA_CONTEXT,
        "@type": "FAQPage",
        "mainEntity": P("faqItems"),
    },
    "HowTo": {
        "@context": SCHEMA_CONTEXT,
        "@type": "HowTo",
        "name": P("title"),
        "description": P("description"),
        "image": P("image"),
        "totalTime": P("totalTime"),
        "supply": P("supplies"),
        "tool": P("tools"),
        "step": P("steps"),
    },
    "Review": {
        "@context": SCHEMA_CONTEXT,
        "@type": "Review",
        "itemReviewed": {"@type": P("reviewedItemType"), "name": P("reviewedItemName")},
        "reviewRating": {"@type": "Rating", "ratingValue": P("ratingValue"), "bestRating": "5"},
        "author": _person("authorName"),
        "reviewBody": P("reviewText"),
        "datePublished": P("publishDate"),
    },
    "JobPosting": {
        "@context": SCHEMA_CONTEXT,
        "@type": "JobPosting",
        "title": P("jobTitle"),
        "description": P("jobDescription"),
        "hiringOrganization": {"@type": "Organization", "name": P("companyName"), "sameAs": P("companyUrl")},
        "jobLocation": {"@type": "Place", "address": _postal_address(street=False, postal_code=False)},
        "baseSalary": {
            "@type": "MonetaryAmount",
            "currency": "JPY",
            "value": {
                "@type": "QuantitativeValue",
                "minValue": P("minSalary"),
                "maxValue": P("maxSalary"),
                "unitText": "MONTH",
            },
        },
        "employmentType": P("employmentType"),
        "datePosted": P("postDate"),
        "validThrough": P("validThrough"),
    },
    "Course": {
        "@context": SCHEMA_CONTEXT,
        "@type": "Course",
        "name": P("courseName"),
        "description": P("description"),
        "provider": {"@type": "Organization", "name": P("providerName")},
        "hasCourseInstance": {
            "@type": "CourseInstance",
            "courseMode": P("courseMode"),
            "courseSchedule": {"@type": "Schedule", "duration": P("duration"), "repeatFrequency": P("frequency")},
            "instructor": _person("instructorName"),
        },
        "offers": {"@type": "Offer", "price": P("price"), "priceCurrency": "JPY"},
    },
    "Organization": {
        "@context": SCHEMA_CONTEXT,
        "@type": "Organization",
        "name": P("organizationName"),
        "url": P("website"),
        "logo": P("logo"),
        "description": P("description"),
        "address": _postal_address(),
        "contactPoint": {"@type": "ContactPoint", "telephone": P("phone"), "contactType": "customer service"},
        "sameAs": P("socialProfiles"),
    },
    "Person": {
        "@context": SCHEMA_CONTEXT,
        "@type": "Person",
        "name": P("name"),
        "jobTitle": P("jobTitle"),
        "affiliation": {"@type": "Organization", "name": P("organization")},
        "url": P("website"),
        "sameAs": P("socialProfiles"),
    },
    "BreadcrumbList": {
        "@context": SCHEMA_CONTEXT,
        "@type": "BreadcrumbList",
        "itemListElement": P("breadcrumbItems"),
    },
}

TEMPLATES: Mapping[str, SchemaTemplate] = MappingProxyType(
    {name: SchemaTemplate(schema_type=name, body=body) for name, body in _TEMPLATE_BODIES.items()}
)

# ---------------------------------------------------------------------------
# Field lists
# ---------------------------------------------------------------------------

_ARTICLE_REQUIRED = ("headline", "author", "publisher", "datePublished")
_ARTICLE_OPTIONAL = ("image", "dateModified", "mainEntityOfPage", "keywords")

REQUIRED_FIELDS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "Article": _ARTICLE_REQUIRED,
        "NewsArticle": _ARTICLE_REQUIRED,
        "BlogPosting": _ARTICLE_REQUIRED,
        "Product": ("name", "offers", "image"),
        "LocalBusiness": ("name", "address"),
        "Recipe": ("name", "recipeIngredient", "recipeInstructions"),
        "Event": ("name", "startDate", "location"),
        "FAQPage": ("mainEntity",),
        "HowTo": ("name", "step"),
        "Review": ("itemReviewed", "reviewRating", "author"),
        "JobPosting": ("title", "description", "hiringOrganization"),
        "Course": ("name", "provider"),
        "Organization": ("name", "url"),
        "Person": ("name",),
        "BreadcrumbList": ("itemListElement",),
    }
)

OPTIONAL_FIELDS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "Article": _ARTICLE_OPTIONAL,
        "NewsArticle": (*_ARTICLE_OPTIONAL, "articleSection"),
        "BlogPosting": _ARTICLE_OPTIONAL,
        "Product": ("brand", "aggregateRating", "review", "sku"),
        "LocalBusiness": ("telephone", "openingHours", "priceRange", "geo"),
        "Recipe": ("author", "nutrition", "aggregateRating", "prepTime"),
        "Event": ("offers", "organizer", "image", "endDate"),
        "FAQPage": ("breadcrumb", "lastReviewed"),
        "HowTo": ("image", "video", "totalTime", "supply"),
        "Review": ("reviewBody", "datePublished"),
        "JobPosting": ("baseSalary", "benefits", "qualifications"),
        "Course": ("offers", "coursePrerequisites", "educationalCredentialAwarded"),
        "Organization": ("logo", "address", "contactPoint", "sameAs"),
        "Person": ("jobTitle", "affiliation", "url", "sameAs"),
        "BreadcrumbList": (),
    }
)

# ---------------------------------------------------------------------------
# Implementation guides
# ---------------------------------------------------------------------------

_ARTICLE_GUIDE = (
    "headタグ内にJSON-LDスクリプトを追加",
    "headline、author、publisherは必須項目",
    "datePublished、dateModifiedを含めることを推奨",
    "mainEntityOfPageでページURLを指定",
)

IMPLEMENTATION_GUIDES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "Article": _ARTICLE_GUIDE,
        "NewsArticle": _ARTICLE_GUIDE,
        "BlogPosting": _ARTICLE_GUIDE,
        "Product": (
            "name、offers、imageは必須項目",
            "aggregateRatingがあるとリッチスニペット表示の可能性が向上",
            "priceValidUntilで価格の有効期限を指定",
            "availabilityで在庫状況を明示",
        ),
        "LocalBusiness": (
            "name、addressは必須項目",
            "openingHoursSpecificationで営業時間を詳細に記載",
            "geoCoordinatesでより正確な位置情報を提供",
            "telephoneでの連絡先情報は必ず含める",
        ),
        "Recipe": (
            "name、recipeIngredient、recipeInstructionsは必須項目",
            "recipeInstructionsはHowToStepの配列で手順ごとに記載",
            "prepTime、cookTimeはISO 8601形式（例: PT30M）で指定",
            "nutritionでカロリー情報を追加",
        ),
        "Event": (
            "name、startDate、locationは必須項目",
            "startDate、endDateはISO 8601形式で指定",
            "offersでチケット価格と販売URLを記載",
            "オンライン開催の場合はVirtualLocationを使用",
        ),
        "FAQPage": (
            "mainEntityにQuestionの配列を記載",
            "各QuestionにacceptedAnswerを必ず含める",
            "ページに表示されている質問と回答のみをマークアップ",
        ),
        "HowTo": (
            "name、stepは必須項目",
            "stepはHowToStepの配列で順番通りに記載",
            "supply、toolで必要な材料と道具を列挙",
            "totalTimeはISO 8601形式で指定",
        ),
        "Review": (
            "itemReviewed、reviewRating、authorは必須項目",
            "reviewRatingのbestRatingとworstRatingを明示",
            "自社商品への自己レビューはリッチリザルトの対象外",
        ),
        "JobPosting": (
            "title、description、hiringOrganizationは必須項目",
            "datePosted、validThroughで掲載期間を指定",
            "baseSalaryで給与レンジを明示",
            "募集終了後は構造化データを削除",
        ),
        "Course": (
            "name、providerは必須項目",
            "descriptionは60文字以上を推奨",
            "hasCourseInstanceで開講形式とスケジュールを記載",
        ),
        "Organization": (
            "name、urlは必須項目",
            "logoは112x112px以上の画像URLを指定",
            "sameAsで公式SNSアカウントを列挙",
            "トップページまたは会社概要ページに1つだけ設置",
        ),
        "Person": (
            "nameは必須項目",
            "affiliationで所属組織を明示",
            "sameAsで著者のプロフィールページを列挙",
        ),
        "BreadcrumbList": (
            "itemListElementにListItemの配列を記載",
            "positionは1から順番に指定",
            "最後の要素は現在のページを表す",
        ),
    }
)

_GENERIC_GUIDE = (
    "Schema.orgの仕様に従って実装",
    "必須プロパティを確認して設定",
    "Google構造化データテストツールで検証",
)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def supported_types() -> tuple[str, ...]:
    return tuple(TEMPLATES)


def get_template(schema_type: str) -> SchemaTemplate | None:
    return TEMPLATES.get(schema_type)


def get_required_fields(schema_type: str) -> list[str]:
    return list(REQUIRED_FIELDS.get(schema_type, ()))


def get_optional_fields(schema_type: str) -> list[str]:
    return list(OPTIONAL_FIELDS.get(schema_type, ()))


def get_implementation_guide(schema_type: str) -> list[str]:
    return list(IMPLEMENTATION_GUIDES.get(schema_type, _GENERIC_GUIDE))


def basic_template(schema_type: str, name: str = "", description: str = "") -> dict[str, Any]:
    """Generic two-field fallback for types without a template."""
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": schema_type,
        "name": name or "ページタイトルを入力してください",
        "description": description or "ページの説明を入力してください",
    }
