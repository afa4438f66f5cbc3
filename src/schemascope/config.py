# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Runtime settings read from ``SCHEMASCOPE_*`` environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from schemascope.errors import ConfigError

DEFAULT_MAX_HTML_BYTES = 5 * 1024 * 1024

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_TRUTHY = frozenset({"1", "true", "yes", "on"})


class Settings(BaseModel):
    """Process-wide settings. Immutable once loaded."""

    model_config = {"frozen": True}

    log_level: str = Field("INFO", description="Root logger level")
    log_json: bool = Field(False, description="Emit JSON log lines instead of console output")
    max_html_bytes: int = Field(DEFAULT_MAX_HTML_BYTES, gt=0, description="Largest HTML document accepted")

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level {v!r}")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Raises:
            ConfigError: a variable is present but invalid.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        env_level = env.get("SCHEMASCOPE_LOG_LEVEL", "").strip()
        if env_level:
            values["log_level"] = env_level

        env_json = env.get("SCHEMASCOPE_LOG_JSON", "").strip().lower()
        if env_json:
            values["log_json"] = env_json in _TRUTHY

        env_max = env.get("SCHEMASCOPE_MAX_HTML_BYTES", "").strip()
        if env_max:
            try:
                values["max_html_bytes"] = int(env_max)
            except ValueError:
                raise ConfigError(f"SCHEMASCOPE_MAX_HTML_BYTES must be an integer, got {env_max!r}") from None

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(str(e)) from e
