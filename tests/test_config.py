# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for schemascope.config: environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from schemascope.config import DEFAULT_MAX_HTML_BYTES, Settings
from schemascope.errors import ConfigError, SchemaScopeError


class TestDefaults:
    def test_empty_environment(self):
        settings = Settings.from_env({})
        assert settings.log_level == "INFO"
        assert settings.log_json is False
        assert settings.max_html_bytes == DEFAULT_MAX_HTML_BYTES

    def test_blank_values_ignored(self):
        settings = Settings.from_env({"SCHEMASCOPE_LOG_LEVEL": "  ", "SCHEMASCOPE_MAX_HTML_BYTES": ""})
        assert settings == Settings()

    def test_frozen(self):
        with pytest.raises(ValidationError):
            Settings().log_level = "DEBUG"  # type: ignore[misc]


class TestFromEnv:
    def test_log_level_normalized(self):
        assert Settings.from_env({"SCHEMASCOPE_LOG_LEVEL": "debug"}).log_level == "DEBUG"

    @pytest.mark.parametrize("raw,expected", [("1", True), ("true", True), ("YES", True), ("on", True), ("0", False)])
    def test_log_json(self, raw: str, expected: bool):
        assert Settings.from_env({"SCHEMASCOPE_LOG_JSON": raw}).log_json is expected

    def test_max_html_bytes(self):
        assert Settings.from_env({"SCHEMASCOPE_MAX_HTML_BYTES": "1024"}).max_html_bytes == 1024


class TestInvalid:
    @pytest.mark.parametrize(
        "env",
        [
            {"SCHEMASCOPE_LOG_LEVEL": "LOUD"},
            {"SCHEMASCOPE_MAX_HTML_BYTES": "many"},
            {"SCHEMASCOPE_MAX_HTML_BYTES": "0"},
            {"SCHEMASCOPE_MAX_HTML_BYTES": "-5"},
        ],
    )
    def test_raises_config_error(self, env):
        with pytest.raises(ConfigError):
            Settings.from_env(env)

    def test_config_error_is_schemascope_error(self):
        assert issubclass(ConfigError, SchemaScopeError)

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("SCHEMASCOPE_LOG_LEVEL", "warning")
        assert Settings.from_env().log_level == "WARNING"
