"""
Trigger selector.

Maps the environment a pipeline runs in to how source-change events are
delivered and how the repository access secret is resolved. A local cloud
emulator cannot receive webhooks from the source host and has no managed
secret store, so it polls and takes the secret reference as plaintext.
Stage logic is identical in both environments.
"""

from __future__ import annotations

from enum import Enum

from conveyor.errors import ConfigurationError
from conveyor.models.trigger import SecretResolution, TriggerConfig, TriggerMode


class EnvironmentMode(Enum):
    """Where the pipeline runs."""

    LOCAL_EMULATOR = "local"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value: str | bool | None) -> EnvironmentMode:
        """
        Parse an environment flag.

        Accepts the mode names, their common aliases, and boolean-style
        "is local emulator" flags. Unset means production.

        Raises:
            ConfigurationError: For unrecognised values
        """
        if value is None:
            return cls.PRODUCTION
        if isinstance(value, bool):
            return cls.LOCAL_EMULATOR if value else cls.PRODUCTION

        normalized = value.strip().lower()
        if normalized in _LOCAL_ALIASES:
            return cls.LOCAL_EMULATOR
        if normalized in _PRODUCTION_ALIASES:
            return cls.PRODUCTION
        raise ConfigurationError(f"Unknown environment mode: {value!r}")


_LOCAL_ALIASES = frozenset({"local", "localstack", "emulator", "local_emulator", "true", "1", "yes"})
_PRODUCTION_ALIASES = frozenset({"production", "prod", "aws", "cloud", "false", "0", "no", ""})

_MODES: dict[EnvironmentMode, TriggerConfig] = {
    EnvironmentMode.LOCAL_EMULATOR: TriggerConfig(TriggerMode.POLL, SecretResolution.PLAINTEXT),
    EnvironmentMode.PRODUCTION: TriggerConfig(TriggerMode.WEBHOOK, SecretResolution.MANAGED),
}


class TriggerSelector:
    """Deterministic environment -> TriggerConfig mapping. No side effects."""

    def resolve(self, environment_mode: EnvironmentMode) -> TriggerConfig:
        return _MODES[environment_mode]


def resolve_trigger_config(environment_mode: EnvironmentMode | str | bool | None) -> TriggerConfig:
    """Resolve a TriggerConfig from a mode or a raw environment flag."""
    if not isinstance(environment_mode, EnvironmentMode):
        environment_mode = EnvironmentMode.parse(environment_mode)
    return TriggerSelector().resolve(environment_mode)
