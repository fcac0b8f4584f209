# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Typed logging utilities for actionkit.

A thin typed wrapper around structlog. The `Logger` protocol lists the
subset of structlog's bound logger interface the registry relies on, and
`get_logger()` returns a logger typed against it.

Usage:
    from actionkit.core.logging import get_logger

    logger = get_logger(__name__)
    logger.debug('registering action', key='/model/openai/gpt-4')
"""

from typing import Protocol

import structlog


class Logger(Protocol):
    """Protocol matching the parts of structlog's BoundLogger we use."""

    def debug(self, event: str | None = None, **kw: object) -> None: ...

    def info(self, event: str | None = None, **kw: object) -> None: ...

    def warning(self, event: str | None = None, **kw: object) -> None: ...

    def error(self, event: str | None = None, **kw: object) -> None: ...

    def exception(self, event: str | None = None, **kw: object) -> None: ...

    async def adebug(self, event: str | None = None, **kw: object) -> None: ...

    async def ainfo(self, event: str | None = None, **kw: object) -> None: ...

    def bind(self, **new_values: object) -> 'Logger': ...


def get_logger(name: str | None = None) -> Logger:
    """Get a typed logger instance.

    Args:
        name: Optional logger name (typically __name__).

    Returns:
        A typed logger instance.
    """
    return structlog.get_logger(name)
