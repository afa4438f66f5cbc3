# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""schemascope exception hierarchy and the Outcome result wrapper.

All schemascope-specific errors inherit from SchemaScopeError.  Public
analysis entry points never raise them: they return an ``Outcome`` whose
``value`` is always usable and whose ``error`` explains a degraded result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class SchemaScopeError(Exception):
    """Base exception for all schemascope errors."""


class DocumentError(SchemaScopeError):
    """HTML input is empty or could not be parsed."""


class ResourceExhaustionError(SchemaScopeError):
    """HTML input exceeds the configured size limit."""


class TemplateError(SchemaScopeError):
    """Requested schema template does not exist."""

    def __init__(self, schema_type: str) -> None:
        super().__init__(f"Unknown schema type: {schema_type}")
        self.schema_type = schema_type


class ConfigError(SchemaScopeError):
    """Environment configuration is invalid."""


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """A guaranteed-usable value plus an optional diagnostic.

    ``error`` is None when the value was computed normally, otherwise it
    holds the reason the value is a fallback.
    """

    value: T
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, exc: BaseException | str) -> Outcome[T]:
        message = exc if isinstance(exc, str) else f"{type(exc).__name__}: {exc}"
        return cls(value=value, error=message)
