# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""schemascope: page-type classification and structured-data recommendations.

Analyzes a parsed HTML page and produces:
- a page-type classification (Article, Product, Recipe, ...) from weighted signals
- a prioritized set of missing schema.org types with filled JSON-LD snippets
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import Any

__version__ = "0.4.0"


class PageType(StrEnum):
    """Semantic page category. Declaration order is the tie-break order."""

    ARTICLE = "Article"
    PRODUCT = "Product"
    LOCAL_BUSINESS = "LocalBusiness"
    RECIPE = "Recipe"
    EVENT = "Event"
    FAQ = "FAQ"
    HOW_TO = "HowTo"
    REVIEW = "Review"
    JOB_POSTING = "JobPosting"
    COURSE = "Course"


@dataclass(frozen=True, slots=True)
class SpecialElements:
    """Structural hints detected in the document, used as score bonuses."""

    price: bool = False
    review: bool = False
    event: bool = False
    recipe: bool = False
    faq: bool = False
    job: bool = False
    course: bool = False

    def fired(self) -> tuple[str, ...]:
        return tuple(f.name for f in fields(self) if getattr(self, f.name))


@dataclass(frozen=True, slots=True)
class PageData:
    """Text signals extracted once per analysis pass."""

    title: str = ""
    meta_description: str = ""
    headings: tuple[str, ...] = ()
    url: str = ""
    body_text: str = ""
    content_length: int = 0
    special_elements: SpecialElements = field(default_factory=SpecialElements)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "metaDescription": self.meta_description,
            "headings": list(self.headings),
            "url": self.url,
            "contentLength": self.content_length,
            "specialElements": {f.name: getattr(self.special_elements, f.name) for f in fields(SpecialElements)},
        }


__all__ = ["PageData", "PageType", "SpecialElements", "__version__"]
