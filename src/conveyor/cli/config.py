"""Configuration loading utilities for the Conveyor CLI."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from conveyor import __version__
from conveyor.logging import configure_logging
from conveyor.metrics import configure_metrics
from conveyor.settings import Settings
from conveyor.tracing import configure_tracing

# Invalidation request used when a distribution is configured
INVALIDATION_COMMAND = (
    "aws cloudfront create-invalidation --distribution-id {distribution_id} "
    '--paths "/*" --query Invalidation.Id --output text'
)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Load settings from the environment and configure logging, metrics and tracing from them."""
    env = os.environ if environ is None else environ
    settings = Settings.from_env(env)
    configure_logging(json_format=settings.log_json, level=settings.log_level_number)
    configure_metrics()
    if env.get("CONVEYOR_TRACING"):
        configure_tracing(service_version=__version__, environment=settings.environment.value)
    return settings


def definition_variables(settings: Settings | None = None, environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Variables for ``${NAME}`` placeholders: the environment, overlaid with settings."""
    variables = dict(os.environ if environ is None else environ)
    if settings is not None:
        variables.update(settings.as_mapping())
    return variables


def configure_default_logging() -> None:
    """Logging for commands that run without settings."""
    configure_logging(level=logging.INFO)
