"""
Runtime settings.

Settings are read from the environment once, at startup. The repository
owner, repository name and access-secret reference are required; the
image, deploy-target and distribution identifiers feed the default
pipeline definition and ``${NAME}`` substitution in YAML definitions.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from conveyor.errors import ConfigurationError
from conveyor.executor.timeouts import DEFAULT_STAGE_TIMEOUT_SECONDS
from conveyor.models.trigger import TriggerConfig
from conveyor.triggers.selector import EnvironmentMode, resolve_trigger_config

_REQUIRED = ("GITHUB_USER", "GITHUB_REPO", "GITHUB_TOKEN_SECRET")

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _parse_bool(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    """
    Environment-derived configuration.

    Attributes:
        repository_owner: Source repository owner (GITHUB_USER)
        repository_name: Source repository name (GITHUB_REPO)
        access_secret_ref: Access-secret reference (GITHUB_TOKEN_SECRET);
            the secret value itself in the local emulator
        environment: Where the pipeline runs
        image_repository: Container registry repository for the build image
        image_tag: Build image tag
        deploy_bucket: Deploy target bucket
        distribution_id: Content-delivery distribution to invalidate
        stage_timeout_seconds: Default per-stage timeout
        log_json: Emit JSON logs
        log_level: Minimum log level name
    """

    repository_owner: str
    repository_name: str
    access_secret_ref: str
    environment: EnvironmentMode = EnvironmentMode.PRODUCTION
    image_repository: str = "vite-node-build"
    image_tag: str = "latest"
    deploy_bucket: str | None = None
    distribution_id: str | None = None
    stage_timeout_seconds: float = DEFAULT_STAGE_TIMEOUT_SECONDS
    log_json: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If required variables are missing or a value
                cannot be parsed
        """
        env = os.environ if environ is None else environ

        missing = [name for name in _REQUIRED if not env.get(name, "").strip()]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        if "CONVEYOR_ENVIRONMENT" in env:
            environment = EnvironmentMode.parse(env["CONVEYOR_ENVIRONMENT"])
        else:
            environment = EnvironmentMode.parse(_parse_bool(env.get("IS_LOCALSTACK")))

        timeout_raw = env.get("CONVEYOR_STAGE_TIMEOUT_SECONDS")
        try:
            stage_timeout = float(timeout_raw) if timeout_raw else DEFAULT_STAGE_TIMEOUT_SECONDS
        except ValueError as e:
            raise ConfigurationError(f"CONVEYOR_STAGE_TIMEOUT_SECONDS is not a number: {timeout_raw!r}", cause=e) from e
        if stage_timeout <= 0:
            raise ConfigurationError(f"CONVEYOR_STAGE_TIMEOUT_SECONDS must be positive, got {stage_timeout}")

        log_level = env.get("CONVEYOR_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"Unknown log level: {log_level}")

        return cls(
            repository_owner=env["GITHUB_USER"].strip(),
            repository_name=env["GITHUB_REPO"].strip(),
            access_secret_ref=env["GITHUB_TOKEN_SECRET"].strip(),
            environment=environment,
            image_repository=env.get("CONVEYOR_IMAGE_REPOSITORY") or "vite-node-build",
            image_tag=env.get("CONVEYOR_IMAGE_TAG") or "latest",
            deploy_bucket=env.get("CONVEYOR_DEPLOY_BUCKET") or None,
            distribution_id=env.get("CONVEYOR_DISTRIBUTION_ID") or None,
            stage_timeout_seconds=stage_timeout,
            log_json=_parse_bool(env.get("CONVEYOR_LOG_JSON")),
            log_level=log_level,
        )

    @property
    def trigger_config(self) -> TriggerConfig:
        return resolve_trigger_config(self.environment)

    @property
    def image(self) -> str:
        return f"{self.image_repository}:{self.image_tag}"

    @property
    def repository_url(self) -> str:
        return f"https://github.com/{self.repository_owner}/{self.repository_name}.git"

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    def as_mapping(self) -> dict[str, str]:
        """Values available to ``${NAME}`` placeholders in pipeline files."""
        mapping = {
            "GITHUB_USER": self.repository_owner,
            "GITHUB_REPO": self.repository_name,
            "GITHUB_TOKEN_SECRET": self.access_secret_ref,
            "CONVEYOR_ENVIRONMENT": self.environment.value,
            "CONVEYOR_IMAGE_REPOSITORY": self.image_repository,
            "CONVEYOR_IMAGE_TAG": self.image_tag,
            "CONVEYOR_IMAGE": self.image,
            "CONVEYOR_REPOSITORY_URL": self.repository_url,
        }
        if self.deploy_bucket:
            mapping["CONVEYOR_DEPLOY_BUCKET"] = self.deploy_bucket
        if self.distribution_id:
            mapping["CONVEYOR_DISTRIBUTION_ID"] = self.distribution_id
        return mapping
