"""Pipeline definitions: the in-code model, YAML files and the built-in pipeline."""

from conveyor.definition.defaults import web_app_pipeline
from conveyor.definition.loader import definition_from_dict, load_definition
from conveyor.definition.pipeline import DEFAULT_REF_PATTERN, PipelineDefinition

__all__ = [
    "DEFAULT_REF_PATTERN",
    "PipelineDefinition",
    "definition_from_dict",
    "load_definition",
    "web_app_pipeline",
]
