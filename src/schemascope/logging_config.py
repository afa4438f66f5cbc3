# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Logging setup for the CLI and library callers.

Every module logs through ``logging.getLogger(__name__)``; :func:`configure`
routes those records through structlog so they render as colored console
lines on a terminal or as one JSON object per line for pipelines.
:func:`page_context` binds the page being analyzed to every record emitted
inside it.

No schemascope imports here, so the CLI can configure logging first.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog


def resolve_level(level: str | None, default: str = "INFO") -> int:
    """Numeric level for a level name; unknown names use ``default``."""
    name = (level or default).strip().upper()
    value = logging.getLevelName(name)
    if isinstance(value, int):
        return value
    return logging.getLevelName(default.upper())


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        # Japanese messages stay readable in log aggregators
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure(*, json_output: bool = False, level: str = "INFO") -> None:
    """Install the structlog formatter on the root logger.

    Replaces any handler installed by an earlier call.

    Args:
        json_output: JSON lines when True, human-readable console lines otherwise.
        level: Root logger level name; unknown names fall back to INFO.
    """
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
        foreign_pre_chain=shared_processors,
    )

    # Reports go to stdout; logs never do
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolve_level(level))


@contextmanager
def page_context(url: str) -> Iterator[None]:
    """Bind ``url`` to every structlog record emitted inside the block."""
    with structlog.contextvars.bound_contextvars(url=url or "<html>"):
        yield
