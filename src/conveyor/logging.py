"""Structured logging for Conveyor.

This module provides structured logging using structlog, enabling:
- JSON-formatted logs for production (machine-readable)
- Pretty console logs for development (human-readable)
- Automatic context binding (run_id, stage)
- Integration with standard library logging

Usage:
    from conveyor.logging import configure_logging, get_logger

    # Configure once at application startup
    configure_logging(json_format=True)  # For production

    # Get a logger
    logger = get_logger("my.module")
    logger.info("stage_started", run_id="01H...", stage="ViteBuild")

Context binding:
    logger = get_logger("engine").bind(run_id="01H...")
    logger.info("starting")  # run_id automatically included
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

_configured = False


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger so redirected streams are honored
    return structlog.PrintLogger(sys.stderr)


def configure_logging(
    json_format: bool = False,
    level: int = logging.INFO,
    logger_factory: Any = None,
) -> None:
    """Configure structured logging for Conveyor.

    Call this once at application startup before any logging occurs.

    Args:
        json_format: If True, output JSON logs (for production).
                    If False, output pretty console logs (for development).
        level: Minimum log level (default: INFO)
        logger_factory: Custom logger factory (for testing)
    """
    global _configured

    # stdlib logging carries the modules that log through logging.getLogger
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory or _stderr_logger,
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str) -> Any:
    """Get a structured logger for the given name.

    Args:
        name: Logger name (typically __name__ or module path)

    Returns:
        A bound logger that supports structured logging.
    """
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent logs.

    Args:
        **kwargs: Context key-value pairs to bind
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables.

    Call this at the end of a run to prevent context leakage.
    """
    structlog.contextvars.clear_contextvars()


def run_logger(run_id: str, pipeline: str | None = None) -> Any:
    """Get a logger pre-bound with run context."""
    logger = get_logger("conveyor.run")
    if pipeline:
        return logger.bind(run_id=run_id, pipeline=pipeline)
    return logger.bind(run_id=run_id)


def stage_logger(run_id: str, stage: str) -> Any:
    """Get a logger pre-bound with stage context."""
    return get_logger("conveyor.stage").bind(run_id=run_id, stage=stage)
