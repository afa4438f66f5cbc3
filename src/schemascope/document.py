# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""lxml DOM parsing and the small query vocabulary the analyzers share.

The analyzers never touch raw HTML strings: they receive an lxml
``HtmlElement`` root and query it through the helpers below, which
return ``""`` / ``None`` / ``False`` instead of raising on misses.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator

import lxml.etree
import lxml.html

from schemascope.config import DEFAULT_MAX_HTML_BYTES
from schemascope.errors import DocumentError, ResourceExhaustionError

logger = logging.getLogger(__name__)

# Elements whose text never counts as visible page content
_NON_CONTENT_TAGS = frozenset({"script", "style", "noscript", "template"})

_WS_RE = re.compile(r"\s+")

HEADING_XPATH = "//h1|//h2|//h3|//h4|//h5|//h6"


def parse_html(raw_html: str, *, max_bytes: int = DEFAULT_MAX_HTML_BYTES) -> lxml.html.HtmlElement:
    """Parse HTML into an lxml document root.

    Raises:
        DocumentError: input is empty or lxml cannot build a tree.
        ResourceExhaustionError: input is larger than ``max_bytes``.
    """
    if not raw_html or not raw_html.strip():
        raise DocumentError("Empty HTML input")

    encoded = raw_html.encode("utf-8", errors="replace")
    if len(encoded) > max_bytes:
        raise ResourceExhaustionError(f"HTML is {len(encoded)} bytes, limit is {max_bytes}")

    try:
        parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
        doc = lxml.html.document_fromstring(encoded, parser=parser)
    except (lxml.etree.ParserError, ValueError) as e:
        raise DocumentError(f"lxml parsing failed: {e}") from e

    logger.debug("parsed document: %d bytes", len(encoded))
    return doc


def normalize_ws(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def is_element(node: object) -> bool:
    """True for real elements (lxml also yields comments and PIs from iter())."""
    return isinstance(getattr(node, "tag", None), str)


def visible_text(el: lxml.html.HtmlElement) -> str:
    """Text content of ``el`` without script/style payloads."""
    parts: list[str] = []

    def _walk(node: lxml.html.HtmlElement) -> None:
        if not is_element(node) or node.tag.lower() in _NON_CONTENT_TAGS:
            return
        if node.text:
            parts.append(node.text)
        for child in node:
            _walk(child)
            if child.tail:
                parts.append(child.tail)

    _walk(el)
    return "".join(parts)


def body_text(doc: lxml.html.HtmlElement) -> str:
    """Whitespace-collapsed visible text of <body> ("" when there is no body)."""
    bodies = doc.xpath("//body")
    if not bodies:
        return ""
    return normalize_ws(visible_text(bodies[0]))


def raw_body_text(doc: lxml.html.HtmlElement) -> str:
    """Visible <body> text with original line breaks kept."""
    bodies = doc.xpath("//body")
    return visible_text(bodies[0]) if bodies else ""


def first(doc: lxml.html.HtmlElement, xpath: str) -> lxml.html.HtmlElement | None:
    found = doc.xpath(xpath)
    for node in found:
        if is_element(node):
            return node
    return None


def exists(doc: lxml.html.HtmlElement, xpath: str) -> bool:
    return first(doc, xpath) is not None


def first_text(doc: lxml.html.HtmlElement, xpath: str) -> str:
    """Collapsed text of the first element matching ``xpath``."""
    el = first(doc, xpath)
    return normalize_ws(visible_text(el)) if el is not None else ""


def first_attr(doc: lxml.html.HtmlElement, xpath: str, attr: str) -> str:
    """Attribute of the first matching element that carries it."""
    for node in doc.xpath(xpath):
        if not is_element(node):
            continue
        value = node.get(attr)
        if value is not None and value.strip():
            return value.strip()
    return ""


def meta_content(doc: lxml.html.HtmlElement, *, name: str | None = None, prop: str | None = None) -> str:
    """content= of <meta name=...> or <meta property=...>."""
    if name is not None:
        return first_attr(doc, f'//meta[@name="{name}"]', "content")
    if prop is not None:
        return first_attr(doc, f'//meta[@property="{prop}"]', "content")
    return ""


def all_text(doc: lxml.html.HtmlElement, xpath: str) -> list[str]:
    """Collapsed, non-empty text of every element matching ``xpath``."""
    out = []
    for node in doc.xpath(xpath):
        if is_element(node):
            text = normalize_ws(visible_text(node))
            if text:
                out.append(text)
    return out


def iter_content_elements(doc: lxml.html.HtmlElement) -> Iterator[lxml.html.HtmlElement]:
    """All elements in document order, skipping script/style subtrees."""
    for el in doc.iter():
        if not is_element(el):
            continue
        if any(is_element(a) and a.tag.lower() in _NON_CONTENT_TAGS for a in el.iterancestors()):
            continue
        if el.tag.lower() in _NON_CONTENT_TAGS:
            continue
        yield el


def next_element(el: lxml.html.HtmlElement) -> lxml.html.HtmlElement | None:
    """Next sibling element, skipping comments."""
    sib = el.getnext()
    while sib is not None and not is_element(sib):
        sib = sib.getnext()
    return sib


# --- CSS-style attribute selectors expressed as XPath ---


def attr_contains(attr: str, fragment: str) -> str:
    """``[attr*="fragment"]``."""
    return f'//*[contains(@{attr}, "{fragment}")]'


def has_class(name: str) -> str:
    """``.name`` (whitespace-separated class token)."""
    return f'//*[contains(concat(" ", normalize-space(@class), " "), " {name} ")]'


def has_attr(attr: str) -> str:
    """``[attr]``."""
    return f"//*[@{attr}]"


def attr_startswith(attr: str, prefix: str) -> str:
    """``[attr^="prefix"]``."""
    return f'//*[starts-with(@{attr}, "{prefix}")]'


def count_matching(doc: lxml.html.HtmlElement, *xpaths: str) -> int:
    """Distinct elements matched by any of ``xpaths`` (a CSS selector group)."""
    return sum(1 for node in doc.xpath(" | ".join(xpaths)) if is_element(node))
