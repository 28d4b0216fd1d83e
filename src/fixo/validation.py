"""
Validation utilities for fixo.

Uses jsonschema for validation of tool definitions and tool-call arguments.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from .errors import ToolValidationError

if TYPE_CHECKING:
    from .tools.base import Tool

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def error(cls, error: str) -> ValidationResult:
        return cls(valid=False, errors=[error])

    @classmethod
    def merge(cls, *results: ValidationResult) -> ValidationResult:
        errors: list[str] = []
        for r in results:
            errors.extend(r.errors)
        return cls(valid=all(r.valid for r in results), errors=errors)

    def __bool__(self) -> bool:
        return self.valid

    @property
    def message(self) -> str:
        return "; ".join(self.errors)


def validate_or_raise(result: ValidationResult) -> None:
    """Raise ToolValidationError if result is invalid."""
    if not result.valid:
        raise ToolValidationError(f"Validation failed: {result.message}")


_TOOL_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "pattern": "^[a-zA-Z0-9_-]+$"},
        "description": {"type": "string"},
        "parameters": {"type": "object"},
    },
    "required": ["name", "description", "parameters"],
}


def validate_json_schema(schema: dict[str, Any]) -> ValidationResult:
    """Validate that a dict is a valid JSON schema."""
    try:
        Draft202012Validator.check_schema(schema)
        return ValidationResult.ok()
    except SchemaError as e:
        return ValidationResult.error(f"Invalid JSON schema: {e.message}")


def validate_against_schema(data: Any, schema: dict[str, Any]) -> ValidationResult:
    """Validate data against a JSON schema, reporting every violation."""
    validator = Draft202012Validator(schema)
    errors = []
    for err in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        path = ".".join(str(p) for p in err.path)
        if path:
            errors.append(f"Validation failed at '{path}': {err.message}")
        else:
            errors.append(f"Validation error: {err.message}")
    if errors:
        return ValidationResult(valid=False, errors=errors)
    return ValidationResult.ok()


def validate_tool_definition(tool: Tool) -> ValidationResult:
    """Validate a tool's exported definition and its parameter schema."""
    tool_data = {
        "name": tool.name,
        "description": tool.description,
        "parameters": tool.parameters,
    }
    structure = validate_against_schema(tool_data, _TOOL_SCHEMA)
    if not structure.valid:
        return structure
    return validate_json_schema(tool.parameters)


def parse_tool_arguments(name: str, arguments: str | dict[str, Any] | None) -> dict[str, Any]:
    """
    Decode tool-call arguments into a dict.

    Raises:
        ToolValidationError: If the payload is not a JSON object
    """
    if arguments is None or arguments == "":
        return {}
    if isinstance(arguments, dict):
        return dict(arguments)
    try:
        args = json.loads(arguments)
    except json.JSONDecodeError as e:
        raise ToolValidationError(f"Invalid JSON in arguments for {name} tool: {e}") from e
    if not isinstance(args, dict):
        raise ToolValidationError(f"Arguments must be a JSON object in {name} tool.")
    return args


__all__ = [
    "ValidationResult",
    "validate_or_raise",
    "validate_json_schema",
    "validate_against_schema",
    "validate_tool_definition",
    "parse_tool_arguments",
]
