"""
Repository access secret resolution.

PLAINTEXT resolution treats the configured reference as the secret value
itself (local emulation). MANAGED resolution looks the reference up in a
secret backend.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping

from conveyor.errors import ConfigurationError
from conveyor.models.trigger import SecretResolution, TriggerConfig

logger = logging.getLogger(__name__)


class SecretBackend(ABC):
    """Source of managed secrets."""

    @abstractmethod
    def get_secret(self, reference: str) -> str | None:
        """Return the secret stored under ``reference``, or None if absent."""
        pass


class EnvironmentSecretBackend(SecretBackend):
    """
    Secrets injected as environment variables by the hosting platform.

    The reference is turned into a variable name: ``github/token`` reads
    ``GITHUB_TOKEN`` unless a ``prefix`` is given.
    """

    def __init__(self, environ: Mapping[str, str] | None = None, prefix: str = "") -> None:
        self.environ = environ if environ is not None else os.environ
        self.prefix = prefix

    def variable_name(self, reference: str) -> str:
        name = "".join(c if c.isalnum() else "_" for c in reference).upper()
        return f"{self.prefix}{name}"

    def get_secret(self, reference: str) -> str | None:
        return self.environ.get(self.variable_name(reference))


def resolve_access_secret(
    config: TriggerConfig,
    reference: str,
    backend: SecretBackend | None = None,
) -> str:
    """
    Resolve the repository access secret.

    Raises:
        ConfigurationError: If the reference is empty, or MANAGED resolution
            has no backend or the backend has no such secret
    """
    if not reference:
        raise ConfigurationError("Repository access secret reference is empty")

    if config.secret_resolution == SecretResolution.PLAINTEXT:
        logger.warning("Using plaintext repository access secret; only suitable for local emulation")
        return reference

    if backend is None:
        raise ConfigurationError("Managed secret resolution requires a secret backend")

    value = backend.get_secret(reference)
    if not value:
        raise ConfigurationError(f"Secret '{reference}' not found in {type(backend).__name__}")
    return value
