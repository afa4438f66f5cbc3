# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for schemascope.recommender: tiers, plan, business hints, benefits."""

from __future__ import annotations

import pytest
from _html_helpers import LOCAL_BUSINESS_HTML, RECIPE_HTML, jsonld_script

from schemascope import PageData, PageType
from schemascope.document import parse_html
from schemascope.inventory import JsonLdEntry, SchemaInventory, extract_inventory
from schemascope.page_classifier import classify_page, classify_page_data
from schemascope.recommender import (
    SCHEMA_TIERS,
    VALIDATION_STEPS,
    Difficulty,
    Priority,
    RecommendationEngine,
    RecommendationItem,
    SchemaRecommendationSet,
    build_implementation_plan,
    build_recommendation_set,
    default_report,
    detect_business_type,
    expected_benefits,
    generate_recommendations,
    implementation_time,
    improvement_reason,
    missing_reason,
    optional_reason,
    recommend_outcome,
    schema_difficulty,
    schema_seo_value,
    tiers_for,
)
from schemascope.schema_catalog import basic_template


def _inventory(*payloads) -> SchemaInventory:
    return SchemaInventory(json_ld=tuple(JsonLdEntry(p, True, i) for i, p in enumerate(payloads)))


def _item(schema: str, priority: Priority = Priority.CRITICAL) -> RecommendationItem:
    return RecommendationItem(schema, priority, "r", "high", Difficulty.EASY, 80)


# ---------------------------------------------------------------------------
# Tier table
# ---------------------------------------------------------------------------


class TestTiers:
    def test_every_page_type_has_tiers(self):
        assert set(SCHEMA_TIERS) == set(PageType)

    @pytest.mark.parametrize("page_type", list(PageType))
    def test_tiers_disjoint(self, page_type):
        tiers = SCHEMA_TIERS[page_type]
        assert len(set(tiers.all())) == len(tiers.all())
        assert tiers.primary

    def test_faq_maps_to_faqpage(self):
        assert SCHEMA_TIERS[PageType.FAQ].primary == ("FAQPage",)

    def test_unknown_page_type_uses_article_tiers(self):
        assert tiers_for("Spaceship") == SCHEMA_TIERS[PageType.ARTICLE]
        assert tiers_for("Recipe") == SCHEMA_TIERS[PageType.RECIPE]


# ---------------------------------------------------------------------------
# Recommendation set
# ---------------------------------------------------------------------------


class TestRecommendationSet:
    @pytest.mark.parametrize("page_type", list(PageType))
    def test_missing_subset_of_primary_and_disjoint_from_existing(self, page_type):
        tiers = SCHEMA_TIERS[page_type]
        existing = frozenset({tiers.primary[0], tiers.secondary[0]})
        recs = build_recommendation_set(tiers, existing)
        missing = {i.schema for i in recs.missing}
        assert missing <= set(tiers.primary)
        assert not set(recs.schemas()) & existing

    def test_nothing_existing_recommends_all_tiers(self):
        tiers = SCHEMA_TIERS[PageType.PRODUCT]
        recs = build_recommendation_set(tiers, frozenset())
        assert recs.schemas() == list(tiers.all())

    def test_priorities_and_impacts(self):
        recs = build_recommendation_set(SCHEMA_TIERS[PageType.RECIPE], frozenset())
        assert {(i.priority, i.impact) for i in recs.missing} == {(Priority.CRITICAL, "high")}
        assert {(i.priority, i.impact) for i in recs.improvements} == {(Priority.HIGH, "medium")}
        assert {(i.priority, i.impact) for i in recs.optional} == {(Priority.LOW, "low")}

    def test_item_metadata(self):
        recs = build_recommendation_set(SCHEMA_TIERS[PageType.RECIPE], frozenset())
        recipe = recs.missing[0]
        assert recipe.schema == "Recipe"
        assert recipe.difficulty == Difficulty.HARD
        assert recipe.seo_value == 92
        assert recipe.reason == "Recipeはレシピ情報として必須です"

    def test_item_to_dict(self):
        d = build_recommendation_set(SCHEMA_TIERS[PageType.RECIPE], frozenset()).missing[0].to_dict()
        assert d == {
            "schema": "Recipe",
            "priority": "critical",
            "reason": "Recipeはレシピ情報として必須です",
            "impact": "high",
            "difficulty": "hard",
            "seoValue": 92,
        }


class TestMetadataTables:
    def test_defaults_for_unknown_schema(self):
        assert schema_difficulty("PostalAddress") == Difficulty.MEDIUM
        assert schema_seo_value("PostalAddress") == 75
        assert implementation_time("PostalAddress") == "1時間"

    def test_known_values(self):
        assert schema_difficulty("FAQPage") == Difficulty.EASY
        assert implementation_time("Recipe") == "2-3時間"

    def test_reason_strings(self):
        assert improvement_reason("Organization") == "Organizationを追加することでサイトの信頼性が向上します"
        assert improvement_reason("Place") == "Placeを追加することでSEO効果が期待できます"
        assert optional_reason("Video") == "Videoは動画コンテンツが認識されます"
        assert optional_reason("Place") == "Placeは付加価値を提供します"
        assert missing_reason("EducationEvent") == "EducationEventはコンテンツとして必須です"


# ---------------------------------------------------------------------------
# Implementation plan
# ---------------------------------------------------------------------------


class TestImplementationPlan:
    def _plan(self, doc=None):
        recs = build_recommendation_set(SCHEMA_TIERS[PageType.LOCAL_BUSINESS], frozenset())
        page_data = classify_page(doc).page_data if doc is not None else PageData()
        return build_implementation_plan(recs, page_data, doc)

    def test_buckets_and_titles(self):
        plan = self._plan()
        assert [t.title for t in plan.immediate] == ["LocalBusinessスキーマの実装"]
        assert plan.short_term[0].title == "Organizationスキーマの追加"
        assert plan.long_term[0].title == "OpeningHoursSpecificationスキーマの検討"

    def test_task_metadata(self):
        task = self._plan().immediate[0]
        assert task.estimated_time == "1時間"
        assert "name" in task.required_fields
        assert task.implementation_guide
        assert task.description == "LocalBusinessは店舗・事業所情報として必須です"

    def test_skeleton_without_document(self):
        template = self._plan().immediate[0].template
        assert template["name"] == "{{businessName}}"

    def test_untemplated_schema_gets_basic_template(self):
        postal = next(t for t in self._plan().short_term if t.schema == "PostalAddress")
        assert postal.template == basic_template("PostalAddress")

    def test_filled_with_document(self, extractor):
        doc = parse_html(LOCAL_BUSINESS_HTML)
        recs = build_recommendation_set(SCHEMA_TIERS[PageType.LOCAL_BUSINESS], frozenset())
        plan = build_implementation_plan(recs, classify_page(doc).page_data, doc, extractor)
        template = plan.immediate[0].template
        assert template["telephone"] == "03-1234-5678"
        assert "{{" not in repr(template)

    def test_to_dict_keys(self):
        d = self._plan().to_dict()
        assert set(d) == {"immediate", "shortTerm", "longTerm"}
        assert set(d["immediate"][0]) == {
            "schema",
            "title",
            "description",
            "estimatedTime",
            "requiredFields",
            "template",
            "implementationGuide",
        }


# ---------------------------------------------------------------------------
# Business-specific suggestions
# ---------------------------------------------------------------------------


class TestBusinessType:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("駅前のカフェです", "Restaurant"),
            ("温泉旅館", "Hotel"),
            ("内科クリニック", "Hospital"),
            ("フィットネスジム", "Gym"),
            ("ショップとカフェ", "Restaurant"),
            ("普通のページ", None),
            ("", None),
        ],
    )
    def test_detect(self, text: str, expected):
        assert detect_business_type(text) == expected


# ---------------------------------------------------------------------------
# Benefits
# ---------------------------------------------------------------------------


class TestExpectedBenefits:
    def test_formulas(self):
        recs = SchemaRecommendationSet(
            missing=(_item("Recipe"),),
            improvements=(_item("Person", Priority.HIGH), _item("Organization", Priority.HIGH)),
        )
        benefits = expected_benefits(recs)
        assert benefits.rich_snippet_probability == 60
        assert benefits.ranking_improvement == 11
        assert benefits.ctr_improvement == 18
        assert benefits.local_search_visibility == 10

    def test_caps(self):
        recs = SchemaRecommendationSet(
            missing=tuple(_item(s) for s in ("A", "B", "C", "D")),
            improvements=tuple(_item(s, Priority.HIGH) for s in ("E", "F", "G")),
        )
        benefits = expected_benefits(recs)
        assert benefits.rich_snippet_probability == 90
        assert benefits.ranking_improvement == 20
        assert benefits.ctr_improvement == 25

    @pytest.mark.parametrize("schema", ["LocalBusiness", "Organization"])
    def test_local_visibility(self, schema):
        recs = SchemaRecommendationSet(missing=(_item(schema),))
        assert expected_benefits(recs).local_search_visibility == 40

    def test_empty(self):
        benefits = expected_benefits(SchemaRecommendationSet())
        assert (benefits.rich_snippet_probability, benefits.ranking_improvement, benefits.ctr_improvement) == (0, 0, 0)

    def test_to_dict_shape(self):
        d = expected_benefits(SchemaRecommendationSet()).to_dict()
        assert d["richSnippets"]["probability"] == 0
        assert d["localSearch"]["visibility"] == 10


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------


class TestLocalBusinessWithOrganization:
    """A café page that already publishes an Organization node."""

    @pytest.fixture
    def report(self, extractor):
        html = LOCAL_BUSINESS_HTML.replace(
            "</head>",
            jsonld_script({"@context": "https://schema.org", "@type": "Organization", "name": "サクラ"}) + "</head>",
        )
        doc = parse_html(html)
        classification = classify_page(doc)
        assert classification.primary_type == PageType.LOCAL_BUSINESS
        return generate_recommendations(classification, extract_inventory(doc), doc=doc, extractor=extractor)

    def test_tiers(self, report):
        recs = report.recommendations
        assert [i.schema for i in recs.missing] == ["LocalBusiness"]
        assert [i.schema for i in recs.improvements] == ["PostalAddress", "ContactPoint"]
        assert [i.schema for i in recs.optional] == ["OpeningHoursSpecification", "GeoCoordinates", "Review"]

    def test_benefits(self, report):
        b = report.expected_benefits
        assert (b.rich_snippet_probability, b.ranking_improvement, b.ctr_improvement) == (60, 11, 18)
        assert b.local_search_visibility == 40

    def test_business_suggestions(self, report):
        kinds = [s.kind for s in report.business_specific]
        assert kinds == ["BusinessType", "OpeningHours", "GeoCoordinates"]
        assert report.business_specific[0].implementation == '"@type": "Restaurant"'

    def test_report_fields(self, report):
        assert report.page_type == "LocalBusiness"
        assert report.confidence > 0
        assert report.validation_steps == VALIDATION_STEPS
        assert report.error is None

    def test_to_dict(self, report):
        d = report.to_dict()
        assert d["pageType"] == "LocalBusiness"
        assert d["businessSpecific"][0]["type"] == "BusinessType"
        assert len(d["validationSteps"]) == 4
        assert "error" not in d


class TestExistingTypes:
    def test_graph_and_list_types_count(self):
        classification = classify_page_data(PageData(title="記事"))
        inventory = _inventory({"@graph": [{"@type": ["Organization", "Corporation"]}, {"@type": "Person"}]})
        report = generate_recommendations(classification, inventory)
        assert "Organization" not in report.recommendations.schemas()
        assert "Person" not in report.recommendations.schemas()
        assert "BreadcrumbList" in report.recommendations.schemas()

    def test_invalid_json_ld_ignored(self):
        classification = classify_page_data(PageData(title="記事"))
        inventory = SchemaInventory(json_ld=(JsonLdEntry('{"@type": "Article"', False, 0, "bad"),))
        report = generate_recommendations(classification, inventory)
        assert "Article" in [i.schema for i in report.recommendations.missing]

    def test_no_inventory(self):
        classification = classify_page_data(PageData(title="商品 価格"))
        report = generate_recommendations(classification, None)
        assert [i.schema for i in report.recommendations.missing] == ["Product"]

    def test_fully_covered_primary(self):
        classification = classify_page_data(PageData(title="商品 価格"))
        report = generate_recommendations(classification, _inventory({"@type": "Product"}, {"@type": "Organization"}))
        assert report.recommendations.missing == ()
        assert [i.schema for i in report.recommendations.improvements] == ["Offer", "Review"]
        assert report.implementation.immediate == ()


class TestBusinessOnlyForLocalBusiness:
    def test_recipe_has_no_business_suggestions(self):
        doc = parse_html(RECIPE_HTML)
        report = generate_recommendations(classify_page(doc), extract_inventory(doc))
        assert report.page_type == "Recipe"
        assert report.business_specific == ()


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------


class TestDefaultReport:
    def test_shape(self):
        report = default_report()
        assert [(i.schema, i.priority) for i in report.recommendations.missing] == [("Article", Priority.CRITICAL)]
        assert report.recommendations.missing[0].reason == "デフォルト推奨事項"
        assert report.page_type == "Article"
        assert report.confidence == 0.0
        b = report.expected_benefits
        assert (b.rich_snippet_probability, b.ranking_improvement, b.ctr_improvement, b.local_search_visibility) == (
            30,
            5,
            8,
            10,
        )

    def test_error_never_raises(self, caplog):
        outcome = recommend_outcome(None, None)  # type: ignore[arg-type]
        assert not outcome.ok
        assert outcome.value.error == outcome.error
        assert outcome.value.recommendations.missing[0].schema == "Article"
        assert len(outcome.value.validation_steps) == 4
        assert any("recommendation failed" in r.getMessage() for r in caplog.records)


class TestEngineFacade:
    def test_matches_function(self, extractor):
        doc = parse_html(RECIPE_HTML)
        classification = classify_page(doc)
        inventory = extract_inventory(doc)
        engine = RecommendationEngine(extractor)
        via_engine = engine.generate_recommendations(classification, inventory, doc=doc)
        via_function = generate_recommendations(classification, inventory, doc=doc, extractor=extractor)
        assert via_engine.to_dict() == via_function.to_dict()
