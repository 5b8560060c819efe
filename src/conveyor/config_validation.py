"""
Configuration validation for pipeline definition documents.

This module provides JSON Schema-style validation for the YAML documents
that declare pipelines, before they are turned into Stage objects. Shape
problems (wrong types, unknown keys, missing fields) are reported here;
semantic problems (duplicate outputs, dangling inputs) are reported by
``PipelineDefinition.validate``.

Example:
    from conveyor.config_validation import PIPELINE_SCHEMA, SchemaValidator

    errors = SchemaValidator(PIPELINE_SCHEMA).validate(document)
    if errors:
        raise PipelineDefinitionError("Invalid pipeline document", errors=errors)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


@dataclass
class ValidationError:
    """
    A validation error with path and message.

    Attributes:
        path: Path to the invalid field (e.g., "stages[1].output.name")
        message: Description of the validation error
        value: The invalid value (if available)
        constraint: The constraint that was violated (if available)
    """

    path: str
    message: str
    value: Any = None
    constraint: str | None = None

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class SchemaValidator:
    """
    JSON Schema-like validator for configuration dictionaries.

    Supports the subset of JSON Schema the pipeline documents need:
    - type checking (string, integer, number, boolean, array, object, null)
    - required fields, properties, additionalProperties
    - enum values
    - minimum / exclusiveMinimum for numbers
    - minLength / pattern for strings
    - minItems / uniqueItems / items for arrays
    """

    TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
        "null": type(None),
    }

    def __init__(self, schema: dict[str, Any]) -> None:
        self.schema = schema

    def validate(self, data: Any, path: str = "") -> list[ValidationError]:
        """
        Validate data against the schema.

        Returns:
            List of validation errors (empty if valid)
        """
        return self._validate_value(data, self.schema, path)

    def _validate_value(self, value: Any, schema: dict[str, Any], path: str) -> list[ValidationError]:
        errors: list[ValidationError] = []

        if "type" in schema:
            expected = schema["type"]
            types = expected if isinstance(expected, list) else [expected]
            if not any(self._check_type(value, t) for t in types):
                errors.append(
                    ValidationError(
                        path,
                        f"must be {' or '.join(types)}, got {type(value).__name__}",
                        value,
                        "type",
                    )
                )
                return errors

        if value is None:
            return errors

        if "enum" in schema and value not in schema["enum"]:
            errors.append(ValidationError(path, f"must be one of: {schema['enum']}", value, "enum"))

        if isinstance(value, str):
            errors.extend(self._validate_string(value, schema, path))
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            errors.extend(self._validate_number(value, schema, path))
        elif isinstance(value, list):
            errors.extend(self._validate_array(value, schema, path))
        elif isinstance(value, dict):
            errors.extend(self._validate_object(value, schema, path))

        return errors

    def _check_type(self, value: Any, type_name: str) -> bool:
        # integer and number must not accept booleans
        if type_name in ("integer", "number") and isinstance(value, bool):
            return False
        expected = self.TYPE_MAP.get(type_name)
        if expected is None:
            return True
        return isinstance(value, expected)  # type: ignore[arg-type]

    def _validate_string(self, value: str, schema: dict[str, Any], path: str) -> list[ValidationError]:
        errors: list[ValidationError] = []
        if "minLength" in schema and len(value) < schema["minLength"]:
            errors.append(
                ValidationError(path, f"must have minimum length {schema['minLength']}", value, "minLength")
            )
        if "pattern" in schema and not re.match(schema["pattern"], value):
            errors.append(ValidationError(path, f"must match pattern {schema['pattern']}", value, "pattern"))
        return errors

    def _validate_number(self, value: int | float, schema: dict[str, Any], path: str) -> list[ValidationError]:
        errors: list[ValidationError] = []
        if "minimum" in schema and value < schema["minimum"]:
            errors.append(ValidationError(path, f"must be >= {schema['minimum']}", value, "minimum"))
        if "exclusiveMinimum" in schema and value <= schema["exclusiveMinimum"]:
            errors.append(
                ValidationError(path, f"must be > {schema['exclusiveMinimum']}", value, "exclusiveMinimum")
            )
        return errors

    def _validate_array(self, value: list[Any], schema: dict[str, Any], path: str) -> list[ValidationError]:
        errors: list[ValidationError] = []

        if "minItems" in schema and len(value) < schema["minItems"]:
            errors.append(
                ValidationError(path, f"must have at least {schema['minItems']} items", value, "minItems")
            )

        if schema.get("uniqueItems"):
            try:
                if len(value) != len(set(value)):
                    errors.append(ValidationError(path, "must have unique items", value, "uniqueItems"))
            except TypeError:
                pass  # unhashable items

        if "items" in schema:
            for i, item in enumerate(value):
                item_path = f"{path}[{i}]" if path else f"[{i}]"
                errors.extend(self._validate_value(item, schema["items"], item_path))

        return errors

    def _validate_object(self, value: dict[str, Any], schema: dict[str, Any], path: str) -> list[ValidationError]:
        errors: list[ValidationError] = []

        for field in schema.get("required", []):
            if field not in value:
                field_path = f"{path}.{field}" if path else field
                errors.append(ValidationError(field_path, "is required", constraint="required"))

        properties = schema.get("properties", {})
        for field, field_schema in properties.items():
            if field in value:
                field_path = f"{path}.{field}" if path else field
                errors.extend(self._validate_value(value[field], field_schema, field_path))

        additional = schema.get("additionalProperties", True)
        if additional is False:
            for field in sorted(set(value) - set(properties)):
                field_path = f"{path}.{field}" if path else field
                errors.append(
                    ValidationError(field_path, "is not an allowed property", constraint="additionalProperties")
                )
        elif isinstance(additional, dict):
            for field in value:
                if field not in properties:
                    field_path = f"{path}.{field}" if path else field
                    errors.extend(self._validate_value(value[field], additional, field_path))

        return errors


# ============================================================================
# Pipeline document schemas
# ============================================================================

NAME_PATTERN = r"^[A-Za-z][A-Za-z0-9_.-]*$"

OUTPUT_SCHEMA = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "pattern": NAME_PATTERN},
        "base_directory": {"type": "string", "minLength": 1},
        "pattern": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

STAGE_SCHEMA = {
    "type": "object",
    "required": ["name", "program"],
    "properties": {
        "name": {"type": "string", "pattern": NAME_PATTERN},
        "program": {"type": "string", "minLength": 1},
        "input": {"type": ["string", "null"]},
        "output": {"type": ["object", "string", "null"]},
        "watch": {"type": "array", "minItems": 1, "items": {"type": "string", "minLength": 1}},
        "timeout_seconds": {"type": "number", "exclusiveMinimum": 0},
        "env": {"type": "object", "additionalProperties": {"type": ["string", "number", "boolean"]}},
        "exclusive_resource": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

PIPELINE_SCHEMA = {
    "type": "object",
    "required": ["name", "stages"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "ref_pattern": {"type": "string", "minLength": 1},
        "deploy_artifact": {"type": "string"},
        "distribution_id": {"type": "string"},
        "stages": {"type": "array", "minItems": 1, "items": STAGE_SCHEMA},
    },
    "additionalProperties": False,
}
