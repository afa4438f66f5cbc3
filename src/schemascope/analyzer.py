# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Structured-data report assembly.

Pipeline: parse → inventory → classify → recommend → implementation
examples + step guide → scores → AIO checks.  ``analyze_structured_data``
never raises; ``analyze_html`` raises only when the HTML cannot be loaded.
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import lxml.html

from schemascope.aio import AioReport, check_aio
from schemascope.config import Settings
from schemascope.document import parse_html
from schemascope.field_extractor import FieldExtractor
from schemascope.inventory import (
    JsonLdDetails,
    SchemaInventory,
    check_json_ld,
    extract_inventory,
    structured_data_score,
)
from schemascope.logging_config import page_context
from schemascope.page_classifier import (
    ClassificationResult,
    classify_page_outcome,
    default_result,
    display_name,
    type_description,
)
from schemascope.recommender import (
    BusinessSuggestion,
    RecommendationReport,
    ValidationStep,
    default_report,
    recommend_outcome,
    tiers_for,
)
from schemascope.schema_catalog import basic_template, get_required_fields, get_template
from schemascope.template import fill_template

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationTool:
    tool: str
    url: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"tool": self.tool, "url": self.url, "description": self.description}


VALIDATION_TOOLS: tuple[ValidationTool, ...] = (
    ValidationTool(
        "Google構造化データテストツール",
        "https://search.google.com/test/rich-results",
        "Googleのリッチリザルトテストでスキーマが正しく認識されるか確認",
    ),
    ValidationTool("Schema.org Validator", "https://validator.schema.org/", "Schema.org仕様への準拠を確認"),
    ValidationTool("JSON-LD Playground", "https://json-ld.org/playground/", "JSON-LD構文の確認"),
)


def script_tag(json_ld: dict[str, Any]) -> str:
    """``<script type="application/ld+json">`` block ready to paste into <head>."""
    body = json.dumps(json_ld, ensure_ascii=False, indent=2)
    return f'<script type="application/ld+json">\n{body}\n</script>'


@dataclass(frozen=True, slots=True)
class ImplementationExample:
    schema: str
    title: str
    json_ld: dict[str, Any]
    implementation_guide: tuple[str, ...]
    validation_tools: tuple[ValidationTool, ...] = VALIDATION_TOOLS

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": self.schema,
            "title": self.title,
            "jsonLd": self.json_ld,
            "scriptTag": script_tag(self.json_ld),
            "implementation": list(self.implementation_guide),
            "validation": [t.to_dict() for t in self.validation_tools],
        }


@dataclass(frozen=True, slots=True)
class GuideStep:
    step: int
    title: str
    description: str
    details: str = ""
    confidence: float | None = None
    code_example: dict[str, Any] | None = None
    required_fields: tuple[str, ...] = ()
    specifics: tuple[BusinessSuggestion, ...] = ()
    validation_steps: tuple[ValidationStep, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"step": self.step, "title": self.title, "description": self.description}
        if self.details:
            d["details"] = self.details
        if self.confidence is not None:
            d["confidence"] = self.confidence
        if self.code_example is not None:
            d["codeExample"] = json.dumps(self.code_example, ensure_ascii=False, indent=2)
        if self.required_fields:
            d["requiredFields"] = list(self.required_fields)
        if self.specifics:
            d["specifics"] = [s.to_dict() for s in self.specifics]
        if self.validation_steps:
            d["validationSteps"] = [v.to_dict() for v in self.validation_steps]
        return d


@dataclass(frozen=True, slots=True)
class StructuredDataReport:
    url: str
    inventory: SchemaInventory
    json_ld_details: JsonLdDetails
    issues: tuple[str, ...]
    recommendations: tuple[str, ...]
    score: int
    classification: ClassificationResult
    recommendation_report: RecommendationReport
    implementation_examples: tuple[ImplementationExample, ...]
    detailed_guide: tuple[GuideStep, ...]
    enhanced_score: int
    aio: AioReport = field(default_factory=AioReport)
    error: str | None = None

    @property
    def aio_score(self) -> int:
        return self.aio.overall_score

    def to_dict(self) -> dict[str, Any]:
        d = {
            "url": self.url,
            **self.inventory.to_dict(),
            "jsonLdDetails": self.json_ld_details.to_dict(),
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "score": self.score,
            "pageTypeAnalysis": self.classification.to_dict(),
            "structuredDataRecommendations": self.recommendation_report.to_dict(),
            "implementationExamples": {
                "immediate": [e.to_dict() for e in self.implementation_examples],
                "detailed": [s.to_dict() for s in self.detailed_guide],
            },
            "enhancedScore": self.enhanced_score,
            "aio": self.aio.to_dict(),
            "aioScore": self.aio_score,
        }
        if self.error:
            d["error"] = self.error
        return d


# ---------------------------------------------------------------------------
# Guide + examples
# ---------------------------------------------------------------------------


def basic_schema_example(schema_type: str, classification: ClassificationResult, today: _dt.date) -> dict[str, Any]:
    """Template for ``schema_type`` with page basics and sample values filled in.

    Placeholders without a sample value stay visible as ``{{name}}`` so the
    reader can see what is still to be supplied.
    """
    template = get_template(schema_type)
    if template is None:
        return basic_template(schema_type, "ページタイトル", "ページの説明")
    page = classification.page_data
    samples = {
        "title": page.title or "ページのタイトル",
        "description": page.meta_description or "ページの説明文",
        "url": page.url or "https://example.com",
        "authorName": "著者名",
        "publisherName": "サイト名",
        "publishDate": today.isoformat(),
    }
    return fill_template(template, samples, prune=False)


def implementation_examples(report: RecommendationReport) -> tuple[ImplementationExample, ...]:
    return tuple(
        ImplementationExample(
            schema=task.schema,
            title=task.title,
            json_ld=task.template,
            implementation_guide=task.implementation_guide,
        )
        for task in report.implementation.immediate
    )


def detailed_guide(
    classification: ClassificationResult,
    report: RecommendationReport,
    today: _dt.date,
) -> tuple[GuideStep, ...]:
    page_type = classification.primary_type
    schema_type = tiers_for(page_type).primary[0]
    steps = [
        GuideStep(
            step=1,
            title="ページタイプの確認",
            description=f"このページは「{display_name(page_type)}」として分析されました。",
            details=type_description(page_type),
            confidence=report.confidence,
        ),
        GuideStep(
            step=2,
            title="基本スキーマの実装",
            description=f"{schema_type}スキーマを実装してください。",
            code_example=basic_schema_example(schema_type, classification, today),
            required_fields=tuple(get_required_fields(schema_type)),
        ),
    ]
    if report.business_specific:
        steps.append(
            GuideStep(
                step=3,
                title="ビジネス特化型の最適化",
                description="ビジネスタイプに特化した構造化データを追加してください。",
                specifics=report.business_specific,
            )
        )
    steps.append(
        GuideStep(
            step=4,
            title="検証と確認",
            description="実装後は必ず検証ツールで確認してください。",
            validation_steps=report.validation_steps,
        )
    )
    return tuple(steps)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def enhanced_score(
    inventory: SchemaInventory,
    classification: ClassificationResult,
    report: RecommendationReport,
) -> int:
    """Presence (30/20/20) + page-type fit (10-20) + implementation rate (0-30), capped at 100."""
    score = 0
    if inventory.json_ld:
        score += 30
    if inventory.microdata:
        score += 20
    if inventory.rdfa:
        score += 20

    fit = classification.normalized_confidence
    if fit > 0.8:
        score += 20
    elif fit > 0.5:
        score += 15
    else:
        score += 10

    recs = report.recommendations
    total_recommended = len(recs.missing) + len(recs.improvements)
    implemented = max(0, len(inventory.json_ld) - len(recs.missing))
    if total_recommended > 0:
        score += round(implemented / (implemented + total_recommended) * 30)

    return min(score, 100)


def _collect_messages(
    inventory: SchemaInventory,
    details: JsonLdDetails,
    classification: ClassificationResult,
    report: RecommendationReport,
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    issues: list[str] = []
    recommendations: list[str] = []

    def _add(issue: str, recommendation: str) -> None:
        if issue not in issues:
            issues.append(issue)
        if recommendation not in recommendations:
            recommendations.append(recommendation)

    if not (inventory.json_ld or inventory.microdata or inventory.rdfa):
        page_type = classification.primary_type
        _add(
            "構造化データが存在しません",
            f"このページは「{page_type}」タイプと判定されました。"
            f"{display_name(page_type)}に適したスキーマを実装してください。",
        )
    for issue in details.issues:
        _add(issue.message, issue.recommendation)
    for item in report.recommendations.missing:
        _add(f"{item.schema}スキーマが不足しています", item.reason)
    return tuple(issues), tuple(recommendations)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _default_report(url: str, error: str) -> StructuredDataReport:
    classification = default_result(error)
    recommendation_report = default_report(error)
    return StructuredDataReport(
        url=url,
        inventory=SchemaInventory(),
        json_ld_details=JsonLdDetails(),
        issues=(),
        recommendations=(),
        score=0,
        classification=classification,
        recommendation_report=recommendation_report,
        implementation_examples=(),
        detailed_guide=(),
        enhanced_score=0,
        aio=AioReport(error=error),
        error=error,
    )


def analyze_structured_data(
    doc: lxml.html.HtmlElement,
    url: str = "",
    *,
    extractor: FieldExtractor | None = None,
    today: _dt.date | None = None,
) -> StructuredDataReport:
    """Full structured-data analysis of a parsed page. Never raises."""
    today = today or _dt.date.today()
    with page_context(url):
        return _analyze(doc, url, extractor or FieldExtractor(today=today), today)


def _analyze(doc: lxml.html.HtmlElement, url: str, extractor: FieldExtractor, today: _dt.date) -> StructuredDataReport:
    try:
        inventory = extract_inventory(doc)
        details = check_json_ld(inventory)
        classification = classify_page_outcome(doc, url).value
        report = recommend_outcome(classification, inventory, classification.page_data, doc, extractor).value
        issues, recommendations = _collect_messages(inventory, details, classification, report)
        result = StructuredDataReport(
            url=url,
            inventory=inventory,
            json_ld_details=details,
            issues=issues,
            recommendations=recommendations,
            score=structured_data_score(inventory, details),
            classification=classification,
            recommendation_report=report,
            implementation_examples=implementation_examples(report),
            detailed_guide=detailed_guide(classification, report, today),
            enhanced_score=enhanced_score(inventory, classification, report),
            aio=check_aio(doc, url, inventory),
            error=classification.error or report.error,
        )
    except Exception as e:
        logger.warning("structured data analysis failed for %s: %s", url or "<html>", e, exc_info=True)
        return _default_report(url, f"{type(e).__name__}: {e}")

    logger.debug(
        "analyzed %s: type=%s score=%d enhanced=%d aio=%d",
        url or "<html>",
        classification.primary_type,
        result.score,
        result.enhanced_score,
        result.aio_score,
    )
    return result


def analyze_html(
    raw_html: str,
    url: str = "",
    *,
    settings: Settings | None = None,
    today: _dt.date | None = None,
) -> StructuredDataReport:
    """Parse ``raw_html`` and analyze it.

    Raises:
        DocumentError: the HTML is empty or unparseable.
        ResourceExhaustionError: the HTML exceeds ``settings.max_html_bytes``.
    """
    settings = settings or Settings()
    doc = parse_html(raw_html, max_bytes=settings.max_html_bytes)
    return analyze_structured_data(doc, url, today=today)
