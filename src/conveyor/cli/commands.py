"""CLI command implementations for Conveyor.

Each command returns the process exit code: 0 on success, 1 when a run
fails, 2 on configuration errors.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any

from conveyor.artifacts.store import InMemoryArtifactStore
from conveyor.changes.detector import ChangeDetector
from conveyor.changes.history import GitRevisionHistory
from conveyor.cli.config import (
    INVALIDATION_COMMAND,
    configure_default_logging,
    definition_variables,
    load_settings,
)
from conveyor.definition.defaults import web_app_pipeline
from conveyor.definition.loader import load_definition
from conveyor.deploy.notifier import CommandInvalidationNotifier, DeployNotifier, RecordingNotifier
from conveyor.engine.engine import PipelineEngine
from conveyor.errors import ConfigurationError, TriggerRejectedError
from conveyor.executor.stage import StageExecutor
from conveyor.executor.timeouts import TimeoutManager
from conveyor.logging import bind_context, clear_context
from conveyor.models.status import RunStatus
from conveyor.models.trigger import TriggerEvent
from conveyor.triggers.secrets import EnvironmentSecretBackend, resolve_access_secret
from conveyor.triggers.selector import EnvironmentMode, resolve_trigger_config

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _config_error(error: Exception) -> int:
    print(f"Error: {error}", file=sys.stderr)
    return EXIT_CONFIG


def run(
    revision: str,
    ref: str,
    prior_revision: str | None = None,
    definition_path: str | None = None,
    repo: str = ".",
    dry_run_notify: bool = False,
    keep_artifacts: bool = False,
) -> int:
    """Run the pipeline once for ``revision`` and print the run summary."""
    try:
        settings = load_settings()
        if definition_path:
            definition = load_definition(definition_path, definition_variables(settings))
        else:
            token = resolve_access_secret(
                settings.trigger_config,
                settings.access_secret_ref,
                EnvironmentSecretBackend(),
            )
            definition = web_app_pipeline(settings, access_token=token)
    except ConfigurationError as e:
        return _config_error(e)

    notifier: DeployNotifier | None = None
    if dry_run_notify:
        notifier = RecordingNotifier()
    elif definition.distribution_id:
        notifier = CommandInvalidationNotifier(INVALIDATION_COMMAND)

    engine = PipelineEngine(
        definition,
        executor=StageExecutor(
            InMemoryArtifactStore(),
            timeouts=TimeoutManager(settings.stage_timeout_seconds),
        ),
        detector=ChangeDetector(GitRevisionHistory(repo)),
        notifier=notifier,
        retain_artifacts=keep_artifacts,
    )
    trigger = TriggerEvent(
        revision=revision,
        ref=ref,
        delivery=settings.trigger_config.mode,
        prior_revision=prior_revision,
    )

    bind_context(pipeline=definition.name, revision=revision)
    try:
        pipeline_run = engine.run(trigger)
    except TriggerRejectedError as e:
        return _config_error(e)
    finally:
        clear_context()

    _print_json(pipeline_run.to_dict())
    return EXIT_OK if pipeline_run.status == RunStatus.SUCCEEDED else EXIT_FAILED


def validate(path: str) -> int:
    """Load a definition file and report whether it is valid."""
    configure_default_logging()
    try:
        definition = load_definition(path, definition_variables())
    except ConfigurationError as e:
        return _config_error(e)

    print(f"Pipeline '{definition.name}' is valid ({len(definition.stages)} stages)")
    return EXIT_OK


def trigger_config(environment: str | None = None) -> int:
    """Print the trigger configuration for an environment."""
    try:
        if environment is None:
            environment = os.environ.get("CONVEYOR_ENVIRONMENT")
        if environment is None:
            mode = EnvironmentMode.parse(os.environ.get("IS_LOCALSTACK", "").strip().lower() == "true")
        else:
            mode = EnvironmentMode.parse(environment)
    except ConfigurationError as e:
        return _config_error(e)

    _print_json({"environment": mode.value, **resolve_trigger_config(mode).to_dict()})
    return EXIT_OK


def decide(revision: str, watch: list[str], prior_revision: str | None = None, repo: str = ".") -> int:
    """Print the change decision for ``revision`` against the watched paths."""
    configure_default_logging()
    try:
        decision = ChangeDetector(GitRevisionHistory(repo)).decide(revision, watch, prior_revision=prior_revision)
    except ConfigurationError as e:
        return _config_error(e)

    _print_json(decision.to_dict())
    return EXIT_OK
