# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Property-based fuzz tests using Hypothesis.

Verifies invariants hold for arbitrary inputs across the page classifier,
the recommendation tiers, template filling and the full analyzer.
"""

from __future__ import annotations

try:
    from hypothesis import HealthCheck, assume, example, given, settings
    from hypothesis import strategies as st
except ImportError:
    import pytest

    pytest.skip("hypothesis not installed", allow_module_level=True)

import datetime as _dt
import json
import re

import pytest

from schemascope import PageData, PageType
from schemascope.analyzer import analyze_structured_data
from schemascope.document import parse_html
from schemascope.errors import DocumentError
from schemascope.field_extractor import FieldExtractor, generate_schema, normalize_date
from schemascope.page_classifier import PAGE_SIGNATURES, ClassificationResult, classify_page, classify_page_data
from schemascope.recommender import SCHEMA_TIERS, build_recommendation_set
from schemascope.schema_catalog import supported_types
from schemascope.template import contains_placeholder

# ---------------------------------------------------------------------------
# Module-level strategies
# ---------------------------------------------------------------------------

# Every signature string, so generated pages actually hit the scoring paths
_SIGNAL_WORDS = sorted(
    {
        w
        for sig in PAGE_SIGNATURES.values()
        for w in (*sig.keywords, *sig.title_patterns, *sig.content_patterns)
    }
)
_SIGNAL_URLS = sorted({p for sig in PAGE_SIGNATURES.values() for p in sig.url_patterns})

SIGNAL_TEXT = st.lists(
    st.one_of(st.sampled_from(_SIGNAL_WORDS), st.text(max_size=10), st.sampled_from(["Q: ", "A: ", "1,000円", "★★★"])),
    max_size=30,
).map(" ".join)

HTML_LIKE = st.text(
    alphabet=st.characters(
        whitelist_categories=("L", "N", "P", "Z"),
        whitelist_characters="<>/=\"'&;#!.- \n\t",
    ),
    min_size=1,
    max_size=3000,
)

URL = st.builds(lambda path: f"https://example.com{path}x", st.sampled_from(["/", *_SIGNAL_URLS]))

TAGS = st.sampled_from(["p", "div", "h1", "h2", "li", "dt", "dd", "span", "time"])

PAGE_HTML = st.builds(
    lambda title, parts: f"<html><head><title>{title}</title></head><body>{''.join(parts)}</body></html>",
    SIGNAL_TEXT,
    st.lists(st.builds(lambda tag, text: f"<{tag}>{text}</{tag}>", TAGS, SIGNAL_TEXT), max_size=8),
)

KNOWN_SCHEMAS = sorted({s for tiers in SCHEMA_TIERS.values() for s in tiers.all()})

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# ---------------------------------------------------------------------------
# Shared settings
# ---------------------------------------------------------------------------

_fuzz_settings = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

_slow_settings = settings(
    max_examples=50,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)


def _parse_or_skip(raw_html: str):
    try:
        return parse_html(raw_html)
    except DocumentError:
        assume(False)


# ---------------------------------------------------------------------------
# TestFuzzPageClassifier
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzPageClassifier:
    """Property-based tests for the page classifier module."""

    @_fuzz_settings
    @given(raw_html=st.one_of(HTML_LIKE, PAGE_HTML), url=URL)
    def test_classify_never_crashes(self, raw_html: str, url: str) -> None:
        result = classify_page(_parse_or_skip(raw_html), url)
        assert isinstance(result, ClassificationResult)
        assert result.error is None

    @_fuzz_settings
    @given(raw_html=PAGE_HTML, url=URL)
    def test_result_is_consistent(self, raw_html: str, url: str) -> None:
        result = classify_page(_parse_or_skip(raw_html), url)
        assert result.primary_type in PageType
        assert result.confidence == max(result.all_scores.values())
        assert result.primary_type not in result.secondary_types
        assert len(set(result.secondary_types)) == len(result.secondary_types) == 2
        assert all(result.all_scores[t] <= result.confidence for t in result.secondary_types)
        assert 0.0 <= result.normalized_confidence <= 1.0

    @_fuzz_settings
    @given(title=SIGNAL_TEXT, meta=SIGNAL_TEXT, body=SIGNAL_TEXT)
    def test_scores_non_negative(self, title: str, meta: str, body: str) -> None:
        result = classify_page_data(PageData(title=title, meta_description=meta, body_text=body))
        assert all(score >= 0 for score in result.all_scores.values())


# ---------------------------------------------------------------------------
# TestFuzzRecommendations
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzRecommendations:
    @_fuzz_settings
    @given(
        page_type=st.sampled_from(list(PageType)),
        existing=st.frozensets(st.sampled_from(KNOWN_SCHEMAS), max_size=10),
    )
    def test_missing_within_primary_tier_and_not_existing(self, page_type, existing) -> None:
        tiers = SCHEMA_TIERS[page_type]
        recs = build_recommendation_set(tiers, existing)
        assert {i.schema for i in recs.missing} <= set(tiers.primary)
        assert not set(recs.schemas()) & existing
        assert set(recs.schemas()) | (set(tiers.all()) & existing) == set(tiers.all())


# ---------------------------------------------------------------------------
# TestFuzzTemplates
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzTemplates:
    @_slow_settings
    @given(raw_html=PAGE_HTML, url=URL, schema_type=st.sampled_from(supported_types()))
    def test_generated_schema_has_no_placeholders(self, raw_html: str, url: str, schema_type: str) -> None:
        doc = _parse_or_skip(raw_html)
        page_data = classify_page(doc, url).page_data
        outcome = generate_schema(schema_type, doc, page_data, FieldExtractor(today=_dt.date(2026, 3, 14)))
        assert outcome.ok
        assert outcome.value.json_ld["@type"] == schema_type
        assert not contains_placeholder(outcome.value.json_ld)

    @_fuzz_settings
    @given(text=st.text(max_size=200))
    @example("令和元年5月1日")
    @example("2024/13/45")
    @example("令和5年2月30日 2024-02-29")
    def test_normalize_date_shape(self, text: str) -> None:
        result = normalize_date(text)
        assert result == "" or _ISO_DATE_RE.match(result)
        if result:
            assert _dt.date.fromisoformat(result).isoformat() == result


# ---------------------------------------------------------------------------
# TestFuzzAnalyzer
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzAnalyzer:
    @_slow_settings
    @given(raw_html=st.one_of(HTML_LIKE, PAGE_HTML), url=URL)
    def test_report_always_serializable(self, raw_html: str, url: str) -> None:
        report = analyze_structured_data(_parse_or_skip(raw_html), url, today=_dt.date(2026, 3, 14))
        assert report.error is None
        assert 0 <= report.score <= 100
        assert 0 <= report.enhanced_score <= 100
        assert 0 <= report.aio_score <= 100
        assert report.aio.error is None
        json.dumps(report.to_dict(), ensure_ascii=False)
