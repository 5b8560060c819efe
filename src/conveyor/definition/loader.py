"""
Pipeline definition files.

A definition file is a YAML document:

    name: web-app
    ref_pattern: refs/tags/*
    deploy_artifact: ViteBuildOutput
    distribution_id: ${CONVEYOR_DISTRIBUTION_ID}
    stages:
      - name: Source
        program: git fetch --depth 2 origin "$CONVEYOR_REVISION" && git checkout FETCH_HEAD
        output: SourceOutput
      - name: DockerBuild
        input: SourceOutput
        watch: [package.json, package-lock.json]
        program: docker build -t ${CONVEYOR_IMAGE} .
      - name: ViteBuild
        input: SourceOutput
        program: npm ci && npm run build
        output: {name: ViteBuildOutput, base_directory: dist, pattern: "**/*"}

``${NAME}`` placeholders in string values are substituted from the
settings mapping before the document is validated. Shell variables
written as ``$NAME`` are left for the stage program.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from conveyor.config_validation import OUTPUT_SCHEMA, PIPELINE_SCHEMA, SchemaValidator, ValidationError
from conveyor.definition.pipeline import DEFAULT_REF_PATTERN, PipelineDefinition
from conveyor.errors import ConfigurationError, PipelineDefinitionError
from conveyor.models.stage import OutputSpec, SkipWhenUnchanged, Stage

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def substitute(
    value: Any,
    variables: Mapping[str, str],
    path: str = "",
    errors: list[ValidationError] | None = None,
) -> Any:
    """Replace ``${NAME}`` placeholders in every string of ``value``."""
    if errors is None:
        errors = []

    if isinstance(value, str):

        def _replace(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in variables:
                errors.append(ValidationError(path, f"undefined variable ${{{name}}}", name, "substitution"))
                return match.group(0)
            return variables[name]

        return _PLACEHOLDER.sub(_replace, value)
    if isinstance(value, list):
        return [substitute(item, variables, f"{path}[{i}]", errors) for i, item in enumerate(value)]
    if isinstance(value, dict):
        return {
            key: substitute(item, variables, f"{path}.{key}" if path else str(key), errors)
            for key, item in value.items()
        }
    return value


def _output_from(raw: Any) -> OutputSpec | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return OutputSpec(name=raw)
    return OutputSpec(
        name=raw["name"],
        base_directory=raw.get("base_directory", "."),
        pattern=raw.get("pattern", "**/*"),
    )


def _stage_from(raw: dict[str, Any]) -> Stage:
    watch = raw.get("watch")
    timeout = raw.get("timeout_seconds")
    return Stage(
        name=raw["name"],
        program=raw["program"],
        input=raw.get("input"),
        output=_output_from(raw.get("output")),
        skip_predicate=SkipWhenUnchanged(tuple(watch)) if watch else None,
        timeout_seconds=float(timeout) if timeout is not None else None,
        env={key: _env_value(value) for key, value in (raw.get("env") or {}).items()},
        exclusive_resource=raw.get("exclusive_resource"),
    )


def _env_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def definition_from_dict(document: Any, variables: Mapping[str, str] | None = None) -> PipelineDefinition:
    """
    Build a PipelineDefinition from a parsed document.

    Raises:
        PipelineDefinitionError: With every shape, substitution and
            semantic problem found
    """
    errors: list[ValidationError] = []
    document = substitute(document, variables or {}, errors=errors)

    errors.extend(SchemaValidator(PIPELINE_SCHEMA).validate(document))
    if isinstance(document, dict) and isinstance(document.get("stages"), list):
        output_validator = SchemaValidator(OUTPUT_SCHEMA)
        for i, stage in enumerate(document["stages"]):
            if isinstance(stage, dict) and isinstance(stage.get("output"), dict):
                errors.extend(output_validator.validate(stage["output"], f"stages[{i}].output"))

    name = document.get("name") if isinstance(document, dict) else None
    if errors:
        raise PipelineDefinitionError("Invalid pipeline document", errors=errors, pipeline=name)

    return PipelineDefinition(
        name=document["name"],
        stages=[_stage_from(stage) for stage in document["stages"]],
        ref_pattern=document.get("ref_pattern", DEFAULT_REF_PATTERN),
        deploy_artifact=document.get("deploy_artifact") or None,
        distribution_id=document.get("distribution_id") or None,
    )


def load_definition(path: str | Path, variables: Mapping[str, str] | None = None) -> PipelineDefinition:
    """
    Load and validate a pipeline definition file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
        PipelineDefinitionError: If the definition is invalid
    """
    path = Path(path)
    try:
        with open(path) as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read pipeline definition {path}: {e}", cause=e) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse pipeline definition {path}: {e}", cause=e) from e

    definition = definition_from_dict(document, variables)
    logger.info("Loaded pipeline %s from %s", definition.name, path)
    return definition
