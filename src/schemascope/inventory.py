# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Inventory of the structured data a page already carries.

Collects JSON-LD blocks (parse failures are kept with ``is_valid=False``),
microdata ``itemtype`` items and RDFa ``typeof`` items, checks JSON-LD
blocks for the properties rich results need, and scores the result.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import lxml.html

from schemascope.document import is_element, normalize_ws, visible_text

logger = logging.getLogger(__name__)

_SCHEMA_PREFIXES = ("https://schema.org/", "http://schema.org/", "schema:")

# Site-wide schemas every page is checked against
EXPECTED_SCHEMAS = ("Organization", "WebSite", "Product", "BreadcrumbList")

_REQUIRED_PROPERTIES: dict[str, tuple[str, ...]] = {
    "Organization": ("name", "url"),
    "WebSite": ("name", "url", "potentialAction"),
    "Product": ("name", "description", "offers"),
}


@dataclass(frozen=True, slots=True)
class JsonLdEntry:
    data: Any
    is_valid: bool
    position: int
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"data": self.data, "isValid": self.is_valid, "position": self.position}
        if self.error:
            d["error"] = self.error
        return d


@dataclass(frozen=True, slots=True)
class MarkupItem:
    """One microdata or RDFa item: its type and its flat property map."""

    item_type: str
    properties: dict[str, str]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.item_type, "properties": dict(self.properties)}


@dataclass(frozen=True, slots=True)
class SchemaInventory:
    json_ld: tuple[JsonLdEntry, ...] = ()
    microdata: tuple[MarkupItem, ...] = ()
    rdfa: tuple[MarkupItem, ...] = ()

    def valid_json_ld(self) -> list[Any]:
        return [entry.data for entry in self.json_ld if entry.is_valid]

    def type_names(self) -> frozenset[str]:
        """Every ``@type`` declared by valid JSON-LD blocks (scalar or list, ``@graph`` aware)."""
        names: set[str] = set()
        for data in self.valid_json_ld():
            for node in iter_jsonld_nodes(data):
                names.update(node_types(node))
        return frozenset(names)

    def to_dict(self) -> dict[str, Any]:
        return {
            "jsonLd": [e.to_dict() for e in self.json_ld],
            "microdata": [m.to_dict() for m in self.microdata],
            "rdfa": [r.to_dict() for r in self.rdfa],
        }


# ---------------------------------------------------------------------------
# JSON-LD node helpers
# ---------------------------------------------------------------------------


def _strip_vocab(type_name: str) -> str:
    for prefix in _SCHEMA_PREFIXES:
        if type_name.startswith(prefix):
            return type_name[len(prefix) :]
    return type_name


def node_types(node: dict[str, Any]) -> list[str]:
    raw = node.get("@type")
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [_strip_vocab(t) for t in raw if isinstance(t, str) and t]


def iter_jsonld_nodes(data: Any, max_depth: int = 5) -> list[dict[str, Any]]:
    """Top-level entity nodes of a JSON-LD payload (arrays and ``@graph`` flattened)."""
    if max_depth <= 0:
        return []
    if isinstance(data, list):
        out: list[dict[str, Any]] = []
        for item in data:
            out.extend(iter_jsonld_nodes(item, max_depth - 1))
        return out
    if not isinstance(data, dict):
        return []
    if "@graph" in data:
        return iter_jsonld_nodes(data["@graph"], max_depth - 1)
    return [data]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_json_ld(doc: lxml.html.HtmlElement) -> tuple[JsonLdEntry, ...]:
    entries = []
    for position, script in enumerate(doc.xpath('//script[@type="application/ld+json"]')):
        raw = script.text or ""
        try:
            entries.append(JsonLdEntry(data=json.loads(raw), is_valid=True, position=position))
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug("invalid JSON-LD block at %d: %s", position, e)
            entries.append(JsonLdEntry(data=raw, is_valid=False, position=position, error=str(e)))
    return tuple(entries)


def _prop_value(el: lxml.html.HtmlElement) -> str:
    for attr in ("content", "datetime", "href", "src"):
        value = el.get(attr)
        if value:
            return value.strip()
    return normalize_ws(visible_text(el))


def _markup_items(doc: lxml.html.HtmlElement, type_attr: str, prop_attr: str) -> tuple[MarkupItem, ...]:
    items = []
    for scope in doc.xpath(f"//*[@{type_attr}]"):
        if not is_element(scope):
            continue
        properties: dict[str, str] = {}
        for el in scope.xpath(f".//*[@{prop_attr}]"):
            # nested scopes own their own properties
            owner = next((a for a in el.iterancestors() if a.get(type_attr) is not None), None)
            if owner is not scope:
                continue
            properties.setdefault(el.get(prop_attr, ""), _prop_value(el))
        items.append(MarkupItem(item_type=_markup_type(scope.get(type_attr, "")), properties=properties))
    return tuple(items)


def _markup_type(raw: str) -> str:
    """``https://schema.org/Product`` / ``schema:Product`` → ``Product`` (first token only)."""
    tokens = raw.split()
    if not tokens:
        return ""
    return _strip_vocab(tokens[0]).rstrip("/").rsplit("/", 1)[-1]


def extract_microdata(doc: lxml.html.HtmlElement) -> tuple[MarkupItem, ...]:
    return _markup_items(doc, "itemtype", "itemprop")


def extract_rdfa(doc: lxml.html.HtmlElement) -> tuple[MarkupItem, ...]:
    return _markup_items(doc, "typeof", "property")


def extract_inventory(doc: lxml.html.HtmlElement) -> SchemaInventory:
    inventory = SchemaInventory(
        json_ld=extract_json_ld(doc),
        microdata=extract_microdata(doc),
        rdfa=extract_rdfa(doc),
    )
    logger.debug(
        "inventory: %d json-ld, %d microdata, %d rdfa",
        len(inventory.json_ld),
        len(inventory.microdata),
        len(inventory.rdfa),
    )
    return inventory


# ---------------------------------------------------------------------------
# JSON-LD validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    position: int
    schema_type: str
    message: str
    recommendation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "type": self.schema_type,
            "message": self.message,
            "recommendation": self.recommendation,
        }


def _missing_property(position: int, schema_type: str, prop: str) -> ValidationIssue:
    fix = "SearchAction" if prop == "potentialAction" else prop
    return ValidationIssue(
        position,
        schema_type,
        f"{schema_type}スキーマに{prop}がありません",
        f"{schema_type}スキーマに{fix}を追加してください",
    )


def validate_node(node: dict[str, Any], position: int = 0) -> list[ValidationIssue]:
    """Property checks for one JSON-LD entity."""
    types = node_types(node)
    if not types:
        return [ValidationIssue(position, "", f"JSON-LD[{position}]に@typeがありません", "JSON-LDに@typeを追加してください")]

    issues = []
    for schema_type in types:
        for prop in _REQUIRED_PROPERTIES.get(schema_type, ()):
            if not node.get(prop):
                issues.append(_missing_property(position, schema_type, prop))
        if schema_type == "BreadcrumbList" and not isinstance(node.get("itemListElement"), list):
            issues.append(_missing_property(position, schema_type, "itemListElement"))
    return issues


@dataclass(frozen=True, slots=True)
class JsonLdDetails:
    found_types: tuple[str, ...] = ()
    missing_expected: tuple[str, ...] = ()
    issues: tuple[ValidationIssue, ...] = ()

    def messages(self) -> list[str]:
        return [i.message for i in self.issues]

    def recommendations(self) -> list[str]:
        return [i.recommendation for i in self.issues]

    def to_dict(self) -> dict[str, Any]:
        return {
            "foundTypes": list(self.found_types),
            "missingExpected": list(self.missing_expected),
            "issues": [i.to_dict() for i in self.issues],
        }


def check_json_ld(inventory: SchemaInventory) -> JsonLdDetails:
    """Expected site-wide schemas plus per-entity property checks.

    Pages without any JSON-LD are not checked; their absence is reported
    by the analyzer instead.
    """
    if not inventory.json_ld:
        return JsonLdDetails()

    issues: list[ValidationIssue] = []
    found: list[str] = []
    for entry in inventory.json_ld:
        if not entry.is_valid:
            issues.append(
                ValidationIssue(
                    entry.position,
                    "",
                    f"JSON-LD[{entry.position}]の構文エラー: {entry.error}",
                    "JSON-LDの構文を修正してください",
                )
            )
            continue
        for node in iter_jsonld_nodes(entry.data):
            found.extend(t for t in node_types(node) if t not in found)
            issues.extend(validate_node(node, entry.position))

    missing = tuple(s for s in EXPECTED_SCHEMAS if s not in found)
    missing_issues = [
        ValidationIssue(-1, s, f"{s}スキーマが不足しています", f"{s}スキーマを実装してください") for s in missing
    ]
    return JsonLdDetails(found_types=tuple(found), missing_expected=missing, issues=tuple(missing_issues + issues))


def structured_data_score(inventory: SchemaInventory, details: JsonLdDetails) -> int:
    """40 JSON-LD + 30 microdata + 30 RDFa presence, +20 when no issues, capped at 100."""
    score = 0
    if inventory.json_ld:
        score += 40
    if inventory.microdata:
        score += 30
    if inventory.rdfa:
        score += 30
    if not details.issues:
        score += 20
    return min(score, 100)
