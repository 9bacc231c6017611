"""Minimal helpers for opt-in debug/instrumentation hooks."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    """Return True when ``GYROLOG_DEBUG`` asks for lightweight instrumentation."""
    return os.getenv("GYROLOG_DEBUG", "").lower() in _TRUTHY


@contextmanager
def time_block(label: str) -> Iterator[None]:
    """
    Context manager that logs elapsed time at INFO when debugging is enabled.

    The overhead is a single environment lookup when disabled.
    """
    if not debug_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.info("%s took %.3f ms", label, elapsed_ms)
