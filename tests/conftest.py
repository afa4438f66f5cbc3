# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import schemascope  # noqa: F401
except ImportError:
    raise ImportError("schemascope is not installed. Run: pip install -e '.[test]'") from None

import datetime as _dt
import logging

import pytest
import structlog

from schemascope.field_extractor import FieldExtractor

FIXED_TODAY = _dt.date(2026, 3, 14)


@pytest.fixture
def today() -> _dt.date:
    return FIXED_TODAY


@pytest.fixture
def extractor(today) -> FieldExtractor:
    """FieldExtractor with a pinned date so default dates are deterministic."""
    return FieldExtractor(today=today)


@pytest.fixture
def reset_logging():
    """Restore root logger and structlog defaults after tests that call configure()."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()
