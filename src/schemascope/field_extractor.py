# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-schema field extraction for filling JSON-LD templates.

Cascade per field: structured hints (itemprop / meta / rel) > regex over
body text > fixed default.  Every routine returns "" (or [] for list
fields) when nothing is found, so template filling always succeeds.

``FIELD_REGISTRY`` maps each schema type to the placeholder names it can
populate; the catalog templates use exactly those names.
"""

from __future__ import annotations

import datetime as _dt
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from urllib.parse import unquote, urljoin, urlparse

import lxml.etree
import lxml.html

from schemascope import PageData
from schemascope.document import (
    all_text,
    first,
    first_attr,
    first_text,
    has_class,
    is_element,
    iter_content_elements,
    meta_content,
    next_element,
    normalize_ws,
    visible_text,
)
from schemascope.errors import Outcome, TemplateError
from schemascope.schema_catalog import (
    basic_template,
    get_implementation_guide,
    get_optional_fields,
    get_required_fields,
    get_template,
)
from schemascope.template import fill_template

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Extraction patterns
# ---------------------------------------------------------------------------

PRICE_RE = re.compile(r"[￥¥$€£]\s*[\d,]+(?:\.\d{2})?|[\d,]+(?:\.\d{2})?\s*円")
RATING_RE = re.compile(r"★+|☆+|(\d+(?:\.\d+)?)\s*(?:点|stars?|/\d+)", re.IGNORECASE)
DATE_RE = re.compile(r"(\d{4})[-/年](\d{1,2})[-/月](\d{1,2})日?")
ERA_DATE_RE = re.compile(r"(令和|平成|昭和)(元|\d{1,2})年(\d{1,2})月(\d{1,2})日")
TIME_RE = re.compile(r"\d{1,2}:\d{2}(?::\d{2})?")
PHONE_RE = re.compile(r"\d{2,4}[-‐]\d{2,4}[-‐]\d{3,4}|\d{10,11}")
POSTAL_CODE_RE = re.compile(r"〒\s*(\d{3}[-‐－]\d{4})|\b(\d{3}-\d{4})\b")
ADDRESS_RE = re.compile(
    r"(?P<state>東京都|北海道|(?:京都|大阪)府|[^\s\d、。,:：]{2,3}県)"
    r"(?P<city>[^\s\d、。,:：]{1,8}?[市区町村郡])"
    r"(?P<street>[^\s、。,]*?\d+(?:[-‐－]\d+){1,2})"
)
GEO_RE = re.compile(r"(-?\d{1,3}\.\d{3,})\s*,\s*(-?\d{1,3}\.\d{3,})")
HOURS_RE = re.compile(r"営業時間\s*[:：]?\s*(\d{1,2}:\d{2})\s*[~〜～\-－ー]\s*(\d{1,2}:\d{2})")
REVIEW_COUNT_RE = re.compile(r"(\d[\d,]*)\s*件の(?:レビュー|口コミ|評価)|(?:レビュー|口コミ)\s*[（(]\s*(\d[\d,]*)\s*件?\s*[）)]")
SKU_RE = re.compile(r"(?:SKU|品番|型番|商品番号)\s*[:：]\s*([A-Za-z0-9][A-Za-z0-9\-_]*)")
GTIN_RE = re.compile(r"(?:JAN|GTIN|EAN)\s*(?:コード)?\s*[:：]?\s*(\d{13}|\d{8})")
PREP_TIME_RE = re.compile(r"(?:準備時間|下ごしらえ)\s*[:：]?\s*約?\s*(\d+)\s*(分|時間)")
COOK_TIME_RE = re.compile(r"調理時間\s*[:：]?\s*約?\s*(\d+)\s*(分|時間)")
TOTAL_TIME_RE = re.compile(r"(?:所要時間|合計時間|総時間)\s*[:：]?\s*約?\s*(\d+)\s*(分|時間)")
SERVINGS_RE = re.compile(r"(\d+)\s*人(?:前|分)")
CALORIES_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:kcal|キロカロリー)", re.IGNORECASE)
INGREDIENTS_TEXT_RE = re.compile(r"材料\s*(?:[（(][^）)]*[）)])?\s*[:：]\s*(.+?)(?=\s*(?:手順|作り方|調理時間|STEP|ステップ)|$)")
STEP_TEXT_RE = re.compile(
    r"(?:手順|STEP|ステップ)\s*(\d+)\s*[:：.．]?\s*(.+?)(?=\s*(?:手順|STEP|ステップ)\s*\d+|\s*調理時間|\s*所要時間|$)",
    re.IGNORECASE,
)
SUPPLY_TEXT_RE = re.compile(r"(?:用意するもの|必要なもの|材料)\s*[:：]\s*(.+?)(?=\s*(?:道具|ツール|手順|STEP|ステップ)|$)")
TOOL_TEXT_RE = re.compile(r"(?:必要な道具|道具|ツール)\s*[:：]\s*(.+?)(?=\s*(?:手順|STEP|ステップ|材料)|$)")
VENUE_RE = re.compile(r"会場\s*[:：]\s*([^\s、。]+)")
ORGANIZER_RE = re.compile(r"主催\s*[:：]\s*([^\s、。]+)")
EVENT_DATE_RE = re.compile(r"開催日(?:時)?\s*[:：]?\s*")
TICKET_PRICE_RE = re.compile(r"(?:参加費|入場料|チケット料金)\s*[:：]?\s*(無料|[￥¥]?\s*[\d,]+\s*円?)")
COMPANY_RE = re.compile(r"(?:会社名|企業名|社名)\s*[:：]\s*([^\s、。]+)")
WORK_LOCATION_RE = re.compile(r"勤務地\s*[:：]?\s*(東京都|北海道|(?:京都|大阪)府|[^\s\d、。,:：]{2,3}県)([^\s\d、。,:：]{1,8}?[市区町村郡])?")
SALARY_RE = re.compile(
    r"(?:月給|給与|月収)\s*[:：]?\s*([\d,.]+)\s*(万)?\s*円?"
    r"(?:\s*[~〜～\-－]\s*([\d,.]+)\s*(万)?\s*円?)?"
)
POST_DATE_RE = re.compile(r"(?:掲載日|公開日|更新日|投稿日)\s*[:：]?\s*")
VALID_THROUGH_RE = re.compile(r"(?:掲載期限|応募締切|締切|募集期限)\s*[:：]?\s*")
COURSE_DURATION_RE = re.compile(r"(?:受講期間|期間)\s*[:：]?\s*(\d+)\s*(ヶ月|か月|カ月|ヵ月|週間|日間|時間)")
INSTRUCTOR_RE = re.compile(r"講師\s*[:：]\s*([^\s、。]+)")
PROVIDER_RE = re.compile(r"(?:主催|運営|提供)\s*[:：]\s*([^\s、。]+)")
TUITION_RE = re.compile(r"受講料\s*[:：]?\s*([￥¥]?\s*[\d,]+\s*円?)")

_Q_PREFIX_RE = re.compile(r"^Q\s*[:：]\s*")
_A_PREFIX_RE = re.compile(r"^A\s*[:：]\s*")
_QA_INLINE_RE = re.compile(r"Q\s*[:：]\s*(.+?)\s*A\s*[:：]\s*(.+?)(?=\s*Q\s*[:：]|$)")

_ERA_BASE = {"令和": 2018, "平成": 1988, "昭和": 1925}

_EMPLOYMENT_TYPES = (
    ("正社員", "FULL_TIME"),
    ("契約社員", "CONTRACTOR"),
    ("派遣", "TEMPORARY"),
    ("アルバイト", "PART_TIME"),
    ("パート", "PART_TIME"),
    ("インターン", "INTERN"),
)

_CUISINES = ("和食", "洋食", "中華", "イタリアン", "フレンチ", "韓国料理", "エスニック")

_SOCIAL_HOSTS = (
    "twitter.com",
    "x.com",
    "facebook.com",
    "instagram.com",
    "linkedin.com",
    "youtube.com",
    "tiktok.com",
)

# ---------------------------------------------------------------------------
# Extraction context
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ExtractionContext:
    """Per-request inputs shared by every field routine."""

    doc: lxml.html.HtmlElement
    page: PageData
    today: str
    _cache: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.page.body_text

    def absolute(self, href: str) -> str:
        if not href:
            return ""
        return urljoin(self.page.url, href) if self.page.url else href

    def origin(self) -> str:
        parsed = urlparse(self.page.url)
        if parsed.scheme and parsed.netloc:
            return f"{parsed.scheme}://{parsed.netloc}"
        return ""

    def cached(self, key: str, routine: Callable[[ExtractionContext], Any]) -> Any:
        """Run ``routine`` once per request; tuple-valued routines feed several fields."""
        if key not in self._cache:
            self._cache[key] = routine(self)
        return self._cache[key]

    def address(self) -> dict[str, str]:
        return self.cached("address", _parse_address)


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------


def normalize_date(text: str) -> str:
    """First valid YYYY-MM-DD / YYYY年M月D日 / era date in ``text`` as ISO 8601.

    Impossible calendar dates (2024/13/45, 令和5年2月30日) are skipped.
    """
    if not text:
        return ""
    candidates = [*DATE_RE.finditer(text), *ERA_DATE_RE.finditer(text)]
    for m in sorted(candidates, key=lambda c: c.start()):
        if m.re is ERA_DATE_RE:
            era_year = 1 if m.group(2) == "元" else int(m.group(2))
            year, month, day = _ERA_BASE[m.group(1)] + era_year, m.group(3), m.group(4)
        else:
            year, month, day = int(m.group(1)), m.group(2), m.group(3)
        try:
            return _dt.date(year, int(month), int(day)).isoformat()
        except ValueError:
            continue
    return ""


def _iso_duration(amount: str, unit: str) -> str:
    n = int(amount)
    if unit in ("分",):
        return f"PT{n}M"
    if unit == "時間":
        return f"PT{n}H"
    if unit in ("ヶ月", "か月", "カ月", "ヵ月"):
        return f"P{n}M"
    if unit == "週間":
        return f"P{n}W"
    if unit in ("日間", "日"):
        return f"P{n}D"
    return ""


def _minutes(amount: str, unit: str) -> int:
    return int(amount) * (60 if unit == "時間" else 1)


def _clean_number(text: str) -> str:
    return re.sub(r"[^\d.]", "", text)


def _split_list(text: str) -> list[str]:
    return [part.strip() for part in re.split(r"[、,，/／・]|\s{2,}", text) if part.strip()]


def _itemprop(ctx: ExtractionContext, name: str) -> str:
    """Value of the first [itemprop=name]: content/datetime/href attr, else text."""
    el = first(ctx.doc, f'//*[@itemprop="{name}"]')
    if el is None:
        return ""
    for attr in ("content", "datetime"):
        value = el.get(attr)
        if value and value.strip():
            return value.strip()
    if el.tag in ("a", "link") and el.get("href"):
        return el.get("href", "").strip()
    return normalize_ws(visible_text(el))


def _date_after(pattern: re.Pattern[str], text: str) -> str:
    """Date that directly follows a label such as 開催日: or 締切:."""
    for m in pattern.finditer(text):
        date = normalize_date(text[m.end() : m.end() + 20])
        if date:
            return date
    return ""


# ---------------------------------------------------------------------------
# Generic field routines
# ---------------------------------------------------------------------------


def generate_description(body_text: str) -> str:
    """First two sentences longer than 10 characters."""
    if not body_text:
        return ""
    sentences = [s for s in re.split(r"[。！？]", body_text) if len(s.strip()) > 10]
    if not sentences:
        return ""
    return "。".join(sentences[:2]) + "。"


def extract_author(ctx: ExtractionContext) -> str:
    return first_text(ctx.doc, f'//*[@rel="author"]|{has_class("author")}|//*[@itemprop="author"]') or meta_content(
        ctx.doc, name="author"
    )


def extract_publisher(ctx: ExtractionContext) -> str:
    site_name = first_text(ctx.doc, '//*[@itemprop="publisher"]') or meta_content(ctx.doc, prop="og:site_name")
    if site_name:
        return site_name
    return ctx.page.title.split("|")[-1].strip()


def extract_main_image(ctx: ExtractionContext) -> str:
    return ctx.absolute(meta_content(ctx.doc, prop="og:image") or first_attr(ctx.doc, "//img", "src"))


def extract_logo(ctx: ExtractionContext) -> str:
    return ctx.absolute(
        meta_content(ctx.doc, prop="og:image")
        or first_attr(ctx.doc, f'{has_class("logo")}//img|//*[@id="logo"]//img', "src")
    )


def extract_publish_date(ctx: ExtractionContext) -> str:
    raw = (
        first_attr(ctx.doc, "//time[@datetime]|//*[@datetime]", "datetime")
        or meta_content(ctx.doc, prop="article:published_time")
        or _itemprop(ctx, "datePublished")
    )
    return raw or normalize_date(ctx.text)


def extract_modified_date(ctx: ExtractionContext) -> str:
    return (
        first_attr(ctx.doc, '//time[@datetime][@itemprop="dateModified"]', "datetime")
        or meta_content(ctx.doc, prop="article:modified_time")
        or _itemprop(ctx, "dateModified")
    )


def extract_keywords(ctx: ExtractionContext) -> str:
    return meta_content(ctx.doc, name="keywords") or ", ".join(ctx.page.headings[:5])


def extract_category(ctx: ExtractionContext) -> str:
    return meta_content(ctx.doc, prop="article:section") or first_text(
        ctx.doc, f'{has_class("category")}|{has_class("tag")}'
    )


def extract_price(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "price") or first_attr(ctx.doc, "//*[@data-price]", "data-price")
    if hinted:
        return _clean_number(hinted)
    m = PRICE_RE.search(ctx.text)
    return _clean_number(m.group(0)) if m else ""


def extract_rating(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "ratingValue")
    if hinted:
        return hinted
    m = RATING_RE.search(ctx.text)
    if not m:
        return ""
    if m.group(1):
        return m.group(1)
    stars = m.group(0).count("★")
    return str(stars) if stars else ""


def extract_review_count(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "reviewCount") or _itemprop(ctx, "ratingCount")
    if hinted:
        return _clean_number(hinted)
    m = REVIEW_COUNT_RE.search(ctx.text)
    if not m:
        return ""
    return (m.group(1) or m.group(2)).replace(",", "")


def extract_phone(ctx: ExtractionContext) -> str:
    tel = first_attr(ctx.doc, '//a[starts-with(@href, "tel:")]', "href")
    if tel:
        return tel[len("tel:") :].strip()
    hinted = _itemprop(ctx, "telephone")
    if hinted:
        return hinted
    m = PHONE_RE.search(ctx.text)
    return m.group(0) if m else ""


def _parse_address(ctx: ExtractionContext) -> dict[str, str]:
    out = {
        "streetAddress": _itemprop(ctx, "streetAddress"),
        "city": _itemprop(ctx, "addressLocality"),
        "state": _itemprop(ctx, "addressRegion"),
        "postalCode": _itemprop(ctx, "postalCode"),
    }
    m = ADDRESS_RE.search(ctx.text)
    if m:
        out["streetAddress"] = out["streetAddress"] or m.group("street")
        out["city"] = out["city"] or m.group("city")
        out["state"] = out["state"] or m.group("state")
    if not out["postalCode"]:
        pm = POSTAL_CODE_RE.search(ctx.text)
        if pm:
            out["postalCode"] = (pm.group(1) or pm.group(2)).replace("‐", "-").replace("－", "-")
    return out


def extract_geo(ctx: ExtractionContext) -> tuple[str, str]:
    lat = _itemprop(ctx, "latitude") or meta_content(ctx.doc, prop="place:location:latitude")
    lng = _itemprop(ctx, "longitude") or meta_content(ctx.doc, prop="place:location:longitude")
    if lat and lng:
        return lat, lng
    for src in ctx.doc.xpath('//iframe[contains(@src, "map")]/@src|//a[contains(@href, "map")]/@href'):
        m = GEO_RE.search(unquote(str(src)))
        if m:
            return m.group(1), m.group(2)
    return "", ""


def extract_opening_hours(ctx: ExtractionContext) -> tuple[str, str]:
    m = HOURS_RE.search(ctx.text)
    if m:
        return m.group(1).zfill(5), m.group(2).zfill(5)
    return "09:00", "18:00"


def extract_social_profiles(ctx: ExtractionContext) -> list[str]:
    out: list[str] = []
    for href in ctx.doc.xpath("//a/@href"):
        href = str(href).strip()
        host = urlparse(href).netloc.lower().removeprefix("www.")
        if host in _SOCIAL_HOSTS and href not in out:
            out.append(href)
    return out


def extract_availability(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "availability")
    if hinted:
        return hinted.rstrip("/").rsplit("/", 1)[-1]
    if re.search(r"在庫切れ|売り切れ|完売|品切れ", ctx.text):
        return "OutOfStock"
    if re.search(r"予約受付中|予約販売", ctx.text):
        return "PreOrder"
    return "InStock"


# ---------------------------------------------------------------------------
# Type-specific routines
# ---------------------------------------------------------------------------


def extract_brand(ctx: ExtractionContext) -> str:
    el = first(ctx.doc, '//*[@itemprop="brand"]')
    if el is not None:
        name = first_text(el, './/*[@itemprop="name"]') if len(el) else ""
        return name or el.get("content", "").strip() or normalize_ws(visible_text(el))
    return meta_content(ctx.doc, prop="product:brand") or meta_content(ctx.doc, prop="og:brand")


def extract_sku(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "sku")
    if hinted:
        return hinted
    m = SKU_RE.search(ctx.text)
    return m.group(1) if m else ""


def extract_gtin(ctx: ExtractionContext) -> str:
    for prop in ("gtin13", "gtin", "gtin8", "gtin12", "gtin14"):
        hinted = _itemprop(ctx, prop)
        if hinted:
            return hinted
    m = GTIN_RE.search(ctx.text)
    return m.group(1) if m else ""


def _duration_from(pattern: re.Pattern[str], text: str) -> str:
    m = pattern.search(text)
    return _iso_duration(m.group(1), m.group(2)) if m else ""


def extract_total_time(ctx: ExtractionContext) -> str:
    direct = _duration_from(TOTAL_TIME_RE, ctx.text)
    if direct:
        return direct
    prep = PREP_TIME_RE.search(ctx.text)
    cook = COOK_TIME_RE.search(ctx.text)
    if prep and cook:
        return f"PT{_minutes(*prep.groups()) + _minutes(*cook.groups())}M"
    return ""


def extract_servings(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "recipeYield")
    if hinted:
        return hinted
    m = SERVINGS_RE.search(ctx.text)
    return m.group(0) if m else ""


def extract_cuisine(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "recipeCuisine")
    if hinted:
        return hinted
    return next((c for c in _CUISINES if c in ctx.text), "")


def extract_ingredients(ctx: ExtractionContext) -> list[str]:
    items = all_text(ctx.doc, '//*[@itemprop="recipeIngredient"]')
    if items:
        return items
    items = all_text(ctx.doc, '//*[contains(@class, "ingredient")]//li')
    if items:
        return items
    m = INGREDIENTS_TEXT_RE.search(ctx.text)
    return _split_list(m.group(1)) if m else []


def _steps_from_dom(ctx: ExtractionContext, xpaths: tuple[str, ...]) -> list[str]:
    for xp in xpaths:
        items = all_text(ctx.doc, xp)
        if items:
            return items
    return []


def _how_to_steps(texts: list[str]) -> list[dict[str, Any]]:
    return [{"@type": "HowToStep", "position": i, "text": t} for i, t in enumerate(texts, start=1)]


def extract_instructions(ctx: ExtractionContext) -> list[dict[str, Any]]:
    texts = _steps_from_dom(
        ctx,
        (
            '//*[@itemprop="recipeInstructions"]',
            '//*[contains(@class, "instruction")]//li',
            '//*[contains(@class, "step")]//li',
        ),
    )
    if not texts:
        texts = [normalize_ws(body) for _, body in STEP_TEXT_RE.findall(ctx.text) if body.strip()]
    return _how_to_steps(texts)


def extract_calories(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "calories")
    if hinted:
        return hinted
    m = CALORIES_RE.search(ctx.text)
    return f"{m.group(1)} kcal" if m else ""


def extract_steps(ctx: ExtractionContext) -> list[dict[str, Any]]:
    texts = _steps_from_dom(
        ctx,
        (
            '//*[@itemprop="step"]',
            '//*[contains(@class, "step")]//li',
            '//*[contains(@class, "howto")]//ol/li',
        ),
    )
    if not texts:
        texts = [normalize_ws(body) for _, body in STEP_TEXT_RE.findall(ctx.text) if body.strip()]
    return _how_to_steps(texts)


def _typed_list(ctx: ExtractionContext, type_name: str, xpath: str, pattern: re.Pattern[str]) -> list[dict[str, str]]:
    names = all_text(ctx.doc, xpath)
    if not names:
        m = pattern.search(ctx.text)
        names = _split_list(m.group(1)) if m else []
    return [{"@type": type_name, "name": n} for n in names]


def extract_supplies(ctx: ExtractionContext) -> list[dict[str, str]]:
    return _typed_list(ctx, "HowToSupply", '//*[contains(@class, "supply")]//li', SUPPLY_TEXT_RE)


def extract_tools(ctx: ExtractionContext) -> list[dict[str, str]]:
    return _typed_list(ctx, "HowToTool", '//*[contains(@class, "tool")]//li', TOOL_TEXT_RE)


def extract_start_date(ctx: ExtractionContext) -> str:
    return (
        _itemprop(ctx, "startDate")
        or first_attr(ctx.doc, "//time[@datetime]", "datetime")
        or _date_after(EVENT_DATE_RE, ctx.text)
        or normalize_date(ctx.text)
    )


def extract_end_date(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "endDate")
    if hinted:
        return hinted
    times = [str(v) for v in ctx.doc.xpath("//time/@datetime")]
    if len(times) >= 2:
        return times[1]
    dates = [m.group(0) for m in DATE_RE.finditer(ctx.text)]
    return normalize_date(dates[1]) if len(dates) >= 2 else ""


def extract_venue(ctx: ExtractionContext) -> str:
    hinted = first_text(ctx.doc, '//*[@itemprop="location"]//*[@itemprop="name"]')
    if hinted:
        return hinted
    m = VENUE_RE.search(ctx.text)
    return m.group(1) if m else ""


def extract_organizer(ctx: ExtractionContext) -> str:
    hinted = first_text(ctx.doc, '//*[@itemprop="organizer"]')
    if hinted:
        return hinted
    m = ORGANIZER_RE.search(ctx.text)
    return m.group(1) if m else meta_content(ctx.doc, prop="og:site_name")


def extract_organizer_url(ctx: ExtractionContext) -> str:
    href = first_attr(ctx.doc, '//*[@itemprop="organizer"]//a|//*[@itemprop="organizer"][@href]', "href")
    return ctx.absolute(href) if href else ctx.origin()


def extract_ticket_price(ctx: ExtractionContext) -> str:
    m = TICKET_PRICE_RE.search(ctx.text)
    if m:
        return "0" if m.group(1) == "無料" else _clean_number(m.group(1))
    return extract_price(ctx)


def extract_ticket_url(ctx: ExtractionContext) -> str:
    for a in ctx.doc.xpath("//a[@href]"):
        label = normalize_ws(visible_text(a))
        if re.search(r"申込|申し込|チケット|予約|参加登録", label):
            return ctx.absolute(a.get("href", "").strip())
    return ""


def extract_faq_items(ctx: ExtractionContext) -> list[dict[str, Any]]:
    """One Question node per Q:/A: pair found on the page."""
    items: list[dict[str, Any]] = []
    seen: set[tuple[str, str]] = set()

    def _add(question: str, answer: str) -> None:
        question, answer = question.strip(), answer.strip()
        if not question or not answer or (question, answer) in seen:
            return
        seen.add((question, answer))
        items.append(
            {
                "@type": "Question",
                "name": question,
                "acceptedAnswer": {"@type": "Answer", "text": answer},
            }
        )

    for el in iter_content_elements(ctx.doc):
        text = normalize_ws(visible_text(el))
        if not _Q_PREFIX_RE.match(text):
            continue
        sibling = next_element(el)
        if sibling is not None:
            sibling_text = normalize_ws(visible_text(sibling))
            if _A_PREFIX_RE.match(sibling_text):
                _add(_Q_PREFIX_RE.sub("", text, count=1), _A_PREFIX_RE.sub("", sibling_text, count=1))
                continue
        innermost = not any(
            _Q_PREFIX_RE.match(normalize_ws(visible_text(d))) for d in el.iterdescendants() if is_element(d)
        )
        if innermost:
            for question, answer in _QA_INLINE_RE.findall(text):
                _add(question, answer)
    return items


def extract_reviewed_item_type(ctx: ExtractionContext) -> str:
    itemtype = first_attr(ctx.doc, '//*[@itemprop="itemReviewed"]', "itemtype")
    if itemtype:
        return itemtype.rstrip("/").rsplit("/", 1)[-1]
    text = f"{ctx.page.title} {ctx.text[:500]}"
    if re.search(r"レストラン|カフェ|店舗|ホテル|旅館", text):
        return "LocalBusiness"
    if re.search(r"書籍|本の|小説|漫画", text):
        return "Book"
    if re.search(r"映画", text):
        return "Movie"
    return "Product"


def extract_reviewed_item_name(ctx: ExtractionContext) -> str:
    hinted = first_text(ctx.doc, '//*[@itemprop="itemReviewed"]//*[@itemprop="name"]')
    if hinted:
        return hinted
    heading = ctx.page.headings[0] if ctx.page.headings else ctx.page.title
    return re.sub(r"\s*(?:の)?(?:レビュー|口コミ|評価|感想)\s*$", "", heading).strip()


def extract_review_text(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "reviewBody")
    if hinted:
        return hinted
    paragraphs = all_text(ctx.doc, "//article//p") or all_text(ctx.doc, "//p")
    body = " ".join(paragraphs) if paragraphs else ctx.text
    return body[:500]


def extract_company_name(ctx: ExtractionContext) -> str:
    hinted = first_text(ctx.doc, '//*[@itemprop="hiringOrganization"]')
    if hinted:
        return hinted
    m = COMPANY_RE.search(ctx.text)
    return m.group(1) if m else meta_content(ctx.doc, prop="og:site_name")


def _job_location(ctx: ExtractionContext) -> tuple[str, str]:
    m = WORK_LOCATION_RE.search(ctx.text)
    if m:
        return m.group(2) or "", m.group(1)
    addr = ctx.address()
    return addr["city"], addr["state"]


def _salary(ctx: ExtractionContext) -> tuple[str, str]:
    m = SALARY_RE.search(ctx.text)
    if not m:
        return "", ""

    def _yen(amount: str | None, man: str | None) -> str:
        if not amount:
            return ""
        value = float(amount.replace(",", ""))
        if man:
            value *= 10000
        return str(int(value))

    low = _yen(m.group(1), m.group(2))
    high = _yen(m.group(3), m.group(4) or (m.group(2) if m.group(3) else None))
    return low, high


def extract_employment_type(ctx: ExtractionContext) -> str:
    hinted = _itemprop(ctx, "employmentType")
    if hinted:
        return hinted
    text = f"{ctx.page.title} {ctx.text}"
    return next((code for label, code in _EMPLOYMENT_TYPES if label in text), "")


def extract_post_date(ctx: ExtractionContext) -> str:
    return _itemprop(ctx, "datePosted") or _date_after(POST_DATE_RE, ctx.text) or normalize_date(ctx.text)


def extract_valid_through(ctx: ExtractionContext) -> str:
    return _itemprop(ctx, "validThrough") or _date_after(VALID_THROUGH_RE, ctx.text)


def extract_provider(ctx: ExtractionContext) -> str:
    hinted = first_text(ctx.doc, '//*[@itemprop="provider"]')
    if hinted:
        return hinted
    m = PROVIDER_RE.search(ctx.text)
    return m.group(1) if m else meta_content(ctx.doc, prop="og:site_name")


def extract_course_mode(ctx: ExtractionContext) -> str:
    online = bool(re.search(r"オンライン|Zoom|ウェビナー|e-?ラーニング", ctx.text, re.IGNORECASE))
    onsite = bool(re.search(r"対面|教室|通学|会場", ctx.text))
    if online and onsite:
        return "blended"
    if online:
        return "online"
    if onsite:
        return "onsite"
    return ""


def extract_course_duration(ctx: ExtractionContext) -> str:
    return _duration_from(COURSE_DURATION_RE, ctx.text)


def extract_frequency(ctx: ExtractionContext) -> str:
    for label, code in (("毎日", "Daily"), ("毎週", "Weekly"), ("隔週", "Biweekly"), ("毎月", "Monthly")):
        if label in ctx.text:
            return code
    return ""


def extract_instructor(ctx: ExtractionContext) -> str:
    hinted = first_text(ctx.doc, '//*[@itemprop="instructor"]')
    if hinted:
        return hinted
    m = INSTRUCTOR_RE.search(ctx.text)
    return m.group(1) if m else ""


def extract_course_price(ctx: ExtractionContext) -> str:
    m = TUITION_RE.search(ctx.text)
    return _clean_number(m.group(1)) if m else extract_price(ctx)


def extract_job_title(ctx: ExtractionContext) -> str:
    return _itemprop(ctx, "jobTitle")


def extract_breadcrumbs(ctx: ExtractionContext) -> list[dict[str, Any]]:
    """ListItem nodes from breadcrumb markup, else from the URL path."""
    crumbs: list[tuple[str, str]] = []
    for xp in (
        '//nav[contains(@aria-label, "readcrumb") or contains(@aria-label, "パンくず")]//a[@href]',
        '//*[contains(@class, "breadcrumb")]//a[@href]',
        '//*[contains(@itemtype, "BreadcrumbList")]//a[@href]',
    ):
        for a in ctx.doc.xpath(xp):
            name = normalize_ws(visible_text(a))
            if name:
                crumbs.append((name, ctx.absolute(a.get("href", "").strip())))
        if crumbs:
            break

    if not crumbs:
        origin = ctx.origin()
        segments = [s for s in urlparse(ctx.page.url).path.split("/") if s]
        if origin and segments:
            crumbs.append(("ホーム", origin + "/"))
            path = ""
            for seg in segments:
                path += "/" + seg
                crumbs.append((unquote(seg), origin + path))

    return [
        {"@type": "ListItem", "position": i, "name": name, "item": href}
        for i, (name, href) in enumerate(crumbs, start=1)
    ]


# ---------------------------------------------------------------------------
# Field registry: schema type → {placeholder: routine}
# ---------------------------------------------------------------------------

FieldRoutine = Callable[[ExtractionContext], Any]

COMMON_FIELDS = ("title", "description", "url")

_ARTICLE_FIELDS: dict[str, FieldRoutine] = {
    "authorName": lambda c: extract_author(c) or "サイト運営者",
    "publisherName": lambda c: extract_publisher(c) or "サイト名",
    "publishDate": lambda c: extract_publish_date(c) or c.today,
    "modifiedDate": lambda c: extract_modified_date(c) or c.today,
    "mainImage": extract_main_image,
    "publisherLogo": extract_logo,
}

FIELD_REGISTRY: Mapping[str, Mapping[str, FieldRoutine]] = MappingProxyType(
    {
        "Article": _ARTICLE_FIELDS,
        "NewsArticle": {**_ARTICLE_FIELDS, "category": extract_category},
        "BlogPosting": {**_ARTICLE_FIELDS, "keywords": extract_keywords},
        "Product": {
            "productName": lambda c: c.page.title,
            "productImage": extract_main_image,
            "brandName": extract_brand,
            "price": extract_price,
            "availability": extract_availability,
            "sellerName": lambda c: meta_content(c.doc, prop="og:site_name"),
            "ratingValue": extract_rating,
            "reviewCount": extract_review_count,
            "sku": extract_sku,
            "gtin": extract_gtin,
        },
        "LocalBusiness": {
            "businessName": lambda c: c.page.title,
            "businessImage": extract_main_image,
            "streetAddress": lambda c: c.address()["streetAddress"],
            "city": lambda c: c.address()["city"],
            "state": lambda c: c.address()["state"],
            "postalCode": lambda c: c.address()["postalCode"],
            "phone": extract_phone,
            "website": lambda c: c.page.url,
            "latitude": lambda c: c.cached("geo", extract_geo)[0],
            "longitude": lambda c: c.cached("geo", extract_geo)[1],
            "weekdayOpen": lambda c: c.cached("hours", extract_opening_hours)[0],
            "weekdayClose": lambda c: c.cached("hours", extract_opening_hours)[1],
            "priceRange": lambda c: _itemprop(c, "priceRange") or "$$",
        },
        "Recipe": {
            "recipeName": lambda c: c.page.title,
            "recipeImage": extract_main_image,
            "authorName": extract_author,
            "prepTime": lambda c: _itemprop(c, "prepTime") or _duration_from(PREP_TIME_RE, c.text),
            "cookTime": lambda c: _itemprop(c, "cookTime") or _duration_from(COOK_TIME_RE, c.text),
            "totalTime": lambda c: _itemprop(c, "totalTime") or extract_total_time(c),
            "servings": extract_servings,
            "category": lambda c: _itemprop(c, "recipeCategory") or meta_content(c.doc, prop="article:section"),
            "cuisine": extract_cuisine,
            "ingredients": extract_ingredients,
            "instructions": extract_instructions,
            "calories": extract_calories,
            "ratingValue": extract_rating,
            "reviewCount": extract_review_count,
        },
        "Event": {
            "eventName": lambda c: c.page.title,
            "eventImage": extract_main_image,
            "startDate": extract_start_date,
            "endDate": extract_end_date,
            "venueName": extract_venue,
            "streetAddress": lambda c: c.address()["streetAddress"],
            "city": lambda c: c.address()["city"],
            "state": lambda c: c.address()["state"],
            "postalCode": lambda c: c.address()["postalCode"],
            "organizerName": extract_organizer,
            "organizerUrl": extract_organizer_url,
            "ticketPrice": extract_ticket_price,
            "availability": extract_availability,
            "ticketUrl": extract_ticket_url,
        },
        "FAQPage": {
            "faqItems": extract_faq_items,
        },
        "HowTo": {
            "totalTime": extract_total_time,
            "supplies": extract_supplies,
            "tools": extract_tools,
            "steps": extract_steps,
            "image": extract_main_image,
        },
        "Review": {
            "reviewedItemType": extract_reviewed_item_type,
            "reviewedItemName": extract_reviewed_item_name,
            "ratingValue": extract_rating,
            "authorName": extract_author,
            "reviewText": extract_review_text,
            "publishDate": lambda c: extract_publish_date(c) or c.today,
        },
        "JobPosting": {
            "jobTitle": lambda c: extract_job_title(c) or c.page.title,
            "jobDescription": lambda c: c.page.meta_description or generate_description(c.text),
            "companyName": extract_company_name,
            "companyUrl": lambda c: c.origin(),
            "city": lambda c: c.cached("job_location", _job_location)[0],
            "state": lambda c: c.cached("job_location", _job_location)[1],
            "minSalary": lambda c: c.cached("salary", _salary)[0],
            "maxSalary": lambda c: c.cached("salary", _salary)[1],
            "employmentType": extract_employment_type,
            "postDate": extract_post_date,
            "validThrough": extract_valid_through,
        },
        "Course": {
            "courseName": lambda c: c.page.title,
            "providerName": extract_provider,
            "courseMode": extract_course_mode,
            "duration": extract_course_duration,
            "frequency": extract_frequency,
            "instructorName": extract_instructor,
            "price": extract_course_price,
        },
        "Organization": {
            "organizationName": extract_publisher,
            "website": lambda c: c.origin() or c.page.url,
            "logo": extract_logo,
            "streetAddress": lambda c: c.address()["streetAddress"],
            "city": lambda c: c.address()["city"],
            "state": lambda c: c.address()["state"],
            "postalCode": lambda c: c.address()["postalCode"],
            "phone": extract_phone,
            "socialProfiles": extract_social_profiles,
        },
        "Person": {
            "name": extract_author,
            "jobTitle": extract_job_title,
            "organization": extract_publisher,
            "website": lambda c: c.absolute(first_attr(c.doc, '//a[@rel="author"]', "href")),
            "socialProfiles": extract_social_profiles,
        },
        "BreadcrumbList": {
            "breadcrumbItems": extract_breadcrumbs,
        },
    }
)

# lxml raises these on odd markup; anything else is a bug and propagates
_EXTRACTION_ERRORS = (AttributeError, IndexError, KeyError, TypeError, ValueError, lxml.etree.LxmlError)


def fields_for(schema_type: str) -> frozenset[str]:
    """Every placeholder name ``FieldExtractor.extract`` can fill for ``schema_type``."""
    return frozenset(COMMON_FIELDS) | frozenset(FIELD_REGISTRY.get(schema_type, {}))


class FieldExtractor:
    """Extracts placeholder values for one schema type from a document."""

    def __init__(self, today: _dt.date | None = None) -> None:
        self._today = today

    def _context(self, doc: lxml.html.HtmlElement, page_data: PageData) -> ExtractionContext:
        today = (self._today or _dt.date.today()).isoformat()
        return ExtractionContext(doc=doc, page=page_data, today=today)

    def extract(self, schema_type: str, doc: lxml.html.HtmlElement, page_data: PageData) -> dict[str, Any]:
        """Map placeholder name → value for ``schema_type``. Never raises on a missing target."""
        ctx = self._context(doc, page_data)
        values: dict[str, Any] = {
            "title": page_data.title or first_text(doc, "//title"),
            "description": page_data.meta_description or generate_description(page_data.body_text),
            "url": page_data.url,
        }
        for name, routine in FIELD_REGISTRY.get(schema_type, {}).items():
            try:
                values[name] = routine(ctx)
            except _EXTRACTION_ERRORS as e:
                logger.debug("field %s.%s extraction failed: %s", schema_type, name, e)
                values[name] = ""
        return values


# ---------------------------------------------------------------------------
# Catalog + extractor
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GeneratedSchema:
    """A filled JSON-LD object plus the guidance needed to deploy it."""

    schema_type: str
    json_ld: dict[str, Any]
    implementation_guide: tuple[str, ...]
    required_fields: tuple[str, ...]
    optional_fields: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": self.json_ld,
            "implementationGuide": list(self.implementation_guide),
            "requiredData": list(self.required_fields),
            "optionalData": list(self.optional_fields),
        }


def generate_schema(
    schema_type: str,
    doc: lxml.html.HtmlElement,
    page_data: PageData,
    extractor: FieldExtractor | None = None,
) -> Outcome[GeneratedSchema]:
    """Fill the catalog template for ``schema_type`` with values from ``doc``.

    Unknown types and extraction failures fall back to the generic
    name/description template.
    """
    guide = tuple(get_implementation_guide(schema_type))
    required = tuple(get_required_fields(schema_type))
    optional = tuple(get_optional_fields(schema_type))

    def _fallback(error: BaseException) -> Outcome[GeneratedSchema]:
        basic = basic_template(schema_type, page_data.title, page_data.meta_description)
        return Outcome.fallback(GeneratedSchema(schema_type, basic, guide, required, optional), error)

    template = get_template(schema_type)
    if template is None:
        return _fallback(TemplateError(schema_type))

    try:
        values = (extractor or FieldExtractor()).extract(schema_type, doc, page_data)
        filled = fill_template(template, values)
    except Exception as e:
        logger.warning("schema generation failed for %s: %s", schema_type, e, exc_info=True)
        return _fallback(e)

    return Outcome.success(GeneratedSchema(schema_type, filled, guide, required, optional))
