"""Schema assignment: which frontmatter schemas apply to a resource, and from where"""

from typing import Any, Optional

from mdcorpus.config import CollectionConfig
from mdcorpus.core.models import SchemaReference


SELF_SCHEMA_KEY = "$schema"
SELF_SOURCE = "self"
CLI_SOURCE = "cli"


def _append(refs: list[SchemaReference], schema: str, source: str) -> list[SchemaReference]:
    """New list with (schema, source) added unless the schema path is already present."""
    if any(r.schema_path == schema for r in refs):
        return list(refs)
    return [*refs, SchemaReference(schema_path=schema, source=source)]


def self_asserted_schemas(frontmatter: Optional[dict[str, Any]]) -> list[SchemaReference]:
    """Schemas a document names for itself through a '$schema' frontmatter key."""
    value = (frontmatter or {}).get(SELF_SCHEMA_KEY)
    values = value if isinstance(value, list) else [value]
    refs: list[SchemaReference] = []
    for v in values:
        if isinstance(v, str) and v:
            refs = _append(refs, v, SELF_SOURCE)
    return refs


def add_collection_schema(
    refs: list[SchemaReference],
    collection_name: str,
    collection: Optional[CollectionConfig],
    ) -> list[SchemaReference]:
    """Add the collection's frontmatter schema, if it has one."""
    validation = collection.validation if collection else None
    if not validation or not validation.frontmatter_schema:
        return list(refs)
    return _append(refs, validation.frontmatter_schema, collection_name)


def add_cli_schema(refs: list[SchemaReference], schema: Optional[str]) -> list[SchemaReference]:
    if not schema:
        return list(refs)
    return _append(refs, schema, CLI_SOURCE)


def assign_schemas(
    existing: list[SchemaReference],
    collection_names: Optional[list[str]],
    collections: dict[str, CollectionConfig],
    cli_schema: Optional[str] = None,
    ) -> list[SchemaReference]:
    """Existing refs, then one per collection in order, then the CLI schema; first source per path wins."""
    refs = list(existing)
    for name in collection_names or []:
        refs = add_collection_schema(refs, name, collections.get(name))
    return add_cli_schema(refs, cli_schema)
