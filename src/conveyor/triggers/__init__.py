"""Trigger selection and delivery."""

from conveyor.triggers.poller import RevisionPoller, ls_remote, parse_ls_remote
from conveyor.triggers.secrets import EnvironmentSecretBackend, SecretBackend, resolve_access_secret
from conveyor.triggers.selector import EnvironmentMode, TriggerSelector, resolve_trigger_config
from conveyor.triggers.webhook import parse_push_event

__all__ = [
    "EnvironmentMode",
    "EnvironmentSecretBackend",
    "RevisionPoller",
    "SecretBackend",
    "TriggerSelector",
    "ls_remote",
    "parse_ls_remote",
    "parse_push_event",
    "resolve_access_secret",
    "resolve_trigger_config",
]
