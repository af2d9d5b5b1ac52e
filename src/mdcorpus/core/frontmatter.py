"""Frontmatter schemas: JSON Schema and pydantic adapters, loading, and per-resource checks"""

import copy
import importlib
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml
from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel, ValidationError

from mdcorpus.core.models import SchemaReference, Severity, ValidationIssue, ValidationMode


logger = logging.getLogger(__name__)

MODEL_REF_PREFIX = "py:"
COMBINATORS = ("allOf", "anyOf", "oneOf")


class SchemaLoadError(ValueError):
    """A referenced schema could not be read or is not a valid schema."""


class FrontmatterSchema(Protocol):
    """Anything that can check a frontmatter mapping."""

    def required_fields(self) -> list[str]: ...

    def validate(self, frontmatter: dict[str, Any], mode: ValidationMode) -> list[str]: ...


def _error_path(path) -> str:
    return "/".join(str(p) for p in path) or "(root)"


def make_permissive(schema: dict) -> dict:
    """Deep copy of schema with additionalProperties set to true at every object level."""
    schema = copy.deepcopy(schema)

    def _relax(node):
        if not isinstance(node, dict):
            return
        if node.get("type") == "object" or "properties" in node or "additionalProperties" in node:
            node["additionalProperties"] = True
        for child in (node.get("properties") or {}).values():
            _relax(child)
        for key in COMBINATORS:
            for child in node.get(key) or []:
                _relax(child)
        items = node.get("items")
        if isinstance(items, list):
            for child in items:
                _relax(child)
        else:
            _relax(items)

    _relax(schema)
    return schema


class JsonSchema:
    """A JSON Schema (draft 7) document used as a frontmatter schema."""

    def __init__(self, schema: dict, source: str = "<inline>"):
        try:
            Draft7Validator.check_schema(schema)
        except SchemaError as e:
            raise SchemaLoadError(f"Invalid schema {source}: {e.message}") from e
        self.schema = schema
        self.source = source
        self._validators = {
            ValidationMode.strict: Draft7Validator(schema),
            ValidationMode.permissive: Draft7Validator(make_permissive(schema)),
        }

    def required_fields(self) -> list[str]:
        return list(self.schema.get("required") or [])

    def validate(self, frontmatter: dict[str, Any], mode: ValidationMode) -> list[str]:
        validator = self._validators[ValidationMode(mode)]
        errors = sorted(validator.iter_errors(frontmatter), key=lambda e: _error_path(e.path))
        return [f"{_error_path(e.path)} {e.message}" for e in errors]


class ModelSchema:
    """A pydantic model class used as a frontmatter schema.

    Strict mode honours the model's own extra-field policy; permissive mode
    ignores extra-field errors.
    """

    def __init__(self, model: type[BaseModel]):
        self.model = model
        self.source = f"{model.__module__}:{model.__qualname__}"

    def required_fields(self) -> list[str]:
        return [f.alias or name for name, f in self.model.model_fields.items() if f.is_required()]

    def validate(self, frontmatter: dict[str, Any], mode: ValidationMode) -> list[str]:
        try:
            self.model.model_validate(frontmatter)
        except ValidationError as e:
            return [
                f"{_error_path(err['loc'])} {err['msg']}"
                for err in e.errors()
                if not (mode == ValidationMode.permissive and err['type'] == 'extra_forbidden')
            ]
        return []


def load_schema_file(path: Path) -> dict:
    """Read a JSON or YAML schema document."""
    try:
        text = path.read_text(encoding="utf-8")
        data = yaml.safe_load(text) if path.suffix in (".yaml", ".yml") else json.loads(text)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise SchemaLoadError(f"Cannot load schema {path}: {e}") from e
    if not isinstance(data, dict):
        raise SchemaLoadError(f"Cannot load schema {path}: expected an object, got {type(data).__name__}")
    return data


def import_model(ref: str) -> type[BaseModel]:
    """Import a pydantic model from 'py:package.module:ClassName'."""
    target = ref[len(MODEL_REF_PREFIX):]
    module_name, _, attr = target.partition(":")
    try:
        model = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError, ValueError) as e:
        raise SchemaLoadError(f"Cannot import schema model {target}: {e}") from e
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise SchemaLoadError(f"Schema model {target} is not a pydantic model")
    return model


class SchemaLoader:
    """Resolves schema references to FrontmatterSchema objects, caching each reference.

    File references are relative to root (the working directory by default);
    'py:module:Class' references import a pydantic model.
    """

    def __init__(self, root: Path = None, models: dict[str, type[BaseModel]] = None):
        self.root = root or Path.cwd()
        self._cache: dict[str, FrontmatterSchema] = {
            ref: ModelSchema(model) for ref, model in (models or {}).items()
        }

    def __call__(self, ref: str) -> FrontmatterSchema:
        if ref not in self._cache:
            if ref.startswith(MODEL_REF_PREFIX):
                schema = ModelSchema(import_model(ref))
            else:
                path = Path(ref)
                schema = JsonSchema(load_schema_file(path if path.is_absolute() else self.root / path), source=ref)
            logger.debug("Loaded frontmatter schema %s", ref)
            self._cache[ref] = schema
        return self._cache[ref]


def validate_frontmatter(
    frontmatter: Optional[dict[str, Any]],
    schema: FrontmatterSchema,
    resource_path: str,
    mode: ValidationMode = ValidationMode.strict,
    ) -> list[ValidationIssue]:
    """Check one resource's frontmatter against one schema. Missing frontmatter fails only if fields are required."""
    if frontmatter is None:
        required = schema.required_fields()
        if not required:
            return []
        return [ValidationIssue(
            severity=Severity.error,
            resource_path=resource_path,
            line=1,
            type="frontmatter_missing",
            message=f"Missing required frontmatter (schema requires: {', '.join(required)})",
            suggestion="Add a frontmatter block with the required fields",
        )]
    return [
        ValidationIssue(
            severity=Severity.error,
            resource_path=resource_path,
            line=1,
            type="frontmatter_schema_error",
            message=f"Frontmatter validation: {message}",
        )
        for message in schema.validate(frontmatter, mode)
    ]


def apply_schema(
    ref: SchemaReference,
    schema: FrontmatterSchema,
    frontmatter: Optional[dict[str, Any]],
    resource_path: str,
    mode: ValidationMode = ValidationMode.strict,
    ) -> SchemaReference:
    """Copy of ref marked applied, with its outcome and issues."""
    issues = validate_frontmatter(frontmatter, schema, resource_path, mode)
    return ref.model_copy(update={"applied": True, "valid": not issues, "errors": issues})
