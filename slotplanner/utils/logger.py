"""Structured logging utilities."""

from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, Optional

from slotplanner.utils.config import get_settings


_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure process-wide logging once.

    Every module logs through the same pipe-delimited format so that a schedule
    run can be followed phase by phase in a single stream.
    """

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    resolved_level = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=resolved_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger for the requested module."""
    configure_logging()
    return logging.getLogger(name)


class RunLoggerAdapter(logging.LoggerAdapter):
    """Appends the run seed to every record emitted during one schedule run."""

    def process(
        self,
        msg: Any,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[Any, MutableMapping[str, Any]]:
        return f"{msg} | seed={self.extra['seed']}", kwargs


def get_run_logger(name: str, seed: int) -> RunLoggerAdapter:
    return RunLoggerAdapter(get_logger(name), {"seed": seed})
