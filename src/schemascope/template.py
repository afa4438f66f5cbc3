# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Typed JSON-LD templates and the fill-and-prune pass.

A template body is a JSON-shaped tree whose parameterized leaves are
``Placeholder`` nodes.  Filling replaces each placeholder node with the
value extracted for its name (string, list or object) and then prunes
anything left empty or unresolved, so no ``{{name}}`` text survives.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

PLACEHOLDER_RE = re.compile(r"\{\{[^{}]*\}\}")


@dataclass(frozen=True, slots=True)
class Placeholder:
    """A named hole in a template."""

    name: str

    def __str__(self) -> str:
        return "{{" + self.name + "}}"


@dataclass(frozen=True, slots=True)
class SchemaTemplate:
    """JSON-LD template for one schema.org type."""

    schema_type: str
    body: Mapping[str, Any]

    def placeholders(self) -> frozenset[str]:
        return frozenset(p.name for p in iter_placeholders(self.body))

    def skeleton(self) -> dict[str, Any]:
        """The template with every placeholder shown as ``{{name}}``."""
        return fill_template(self, {}, prune=False)


def iter_placeholders(node: Any) -> Iterator[Placeholder]:
    if isinstance(node, Placeholder):
        yield node
    elif isinstance(node, Mapping):
        for value in node.values():
            yield from iter_placeholders(value)
    elif isinstance(node, (list, tuple)):
        for item in node:
            yield from iter_placeholders(item)


def _substitute(node: Any, fields: Mapping[str, Any], keep_unresolved: bool) -> Any:
    if isinstance(node, Placeholder):
        value = fields.get(node.name)
        if value is None and keep_unresolved:
            return str(node)
        return copy.deepcopy(value)
    if isinstance(node, Mapping):
        return {key: _substitute(value, fields, keep_unresolved) for key, value in node.items()}
    if isinstance(node, (list, tuple)):
        return [_substitute(item, fields, keep_unresolved) for item in node]
    return node


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or bool(PLACEHOLDER_RE.search(value))
    return False


def _has_content(node: dict[str, Any]) -> bool:
    """False for nodes left with only JSON-LD keywords such as ``@type``."""
    return any(not key.startswith("@") for key in node)


def prune_schema(node: dict[str, Any]) -> dict[str, Any]:
    """Drop null, empty and unresolved values; drop nested nodes left empty."""
    cleaned: dict[str, Any] = {}
    for key, value in node.items():
        if _is_blank(value):
            continue
        if isinstance(value, dict):
            sub = prune_schema(value)
            if _has_content(sub):
                cleaned[key] = sub
        elif isinstance(value, list):
            items = _prune_list(value)
            if items:
                cleaned[key] = items
        else:
            cleaned[key] = value
    return cleaned


def _prune_list(values: list[Any]) -> list[Any]:
    out = []
    for item in values:
        if _is_blank(item):
            continue
        if isinstance(item, dict):
            item = prune_schema(item)
            if not _has_content(item):
                continue
        elif isinstance(item, list):
            item = _prune_list(item)
            if not item:
                continue
        out.append(item)
    return out


def fill_template(template: SchemaTemplate, fields: Mapping[str, Any], *, prune: bool = True) -> dict[str, Any]:
    """Substitute ``fields`` into ``template``.

    With ``prune=True`` (default) the result contains no empty values and no
    ``{{...}}`` text.  With ``prune=False`` missing fields stay visible as
    ``{{name}}`` strings, which is how skeletons are shown to users.
    """
    filled = _substitute(template.body, fields, keep_unresolved=not prune)
    if not prune:
        return filled
    return prune_schema(filled)


def contains_placeholder(node: Any) -> bool:
    """True if any string anywhere in ``node`` still holds ``{{...}}``."""
    if isinstance(node, str):
        return bool(PLACEHOLDER_RE.search(node))
    if isinstance(node, Mapping):
        return any(contains_placeholder(k) or contains_placeholder(v) for k, v in node.items())
    if isinstance(node, (list, tuple)):
        return any(contains_placeholder(item) for item in node)
    return False
