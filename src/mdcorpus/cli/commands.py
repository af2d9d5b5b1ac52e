"""CLI command implementations"""

import json
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml

from mdcorpus.config import Settings, load_config, load_project_config
from mdcorpus.core.frontmatter import SchemaLoadError
from mdcorpus.core.models import ValidationMode, ValidationResult
from mdcorpus.core.pipeline import load_corpus, run_transform, run_validate
from mdcorpus.core.transform import load_rules
from mdcorpus.core.utils.configure_logging import configure_logging


class OutputFormat(str, Enum):
    text = "text"
    yaml = "yaml"
    json = "json"


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None, config: Optional[str] = None) -> Settings:
    """Load config (plus an optional project config file) with standard CLI error handling."""
    overrides = dict(overrides or {})
    try:
        if config:
            overrides["resources"] = load_project_config(Path(config)).resources
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    configure_logging(settings.log_level)
    return settings


def _echo_text(result: ValidationResult) -> None:
    """Print one line per issue and a summary line."""
    for issue in result.issues:
        where = f"{issue.resource_path}:{issue.line}" if issue.line else issue.resource_path
        typer.echo(f"  {where} [{issue.severity.value}] {issue.type}: {issue.message}")
        if issue.suggestion:
            typer.echo(f"      {issue.suggestion}")
    status = "passed" if result.passed else "failed"
    typer.echo(
        f"Validation {status} - "
        f"{result.total_resources} resource(s), "
        f"{result.total_links} link(s), "
        f"{result.error_count} error(s), "
        f"{result.warning_count} warning(s), "
        f"{result.info_count} info"
    )


def scan_cmd(
    path: Annotated[str, typer.Argument(help="File or directory to scan")],
    config: Annotated[Optional[str], typer.Option("--config", help="Project config file with collections")] = None,
    parser: Annotated[Optional[str], typer.Option("--parser-config", help="MarkdownIt preset name")] = None,
    id_field: Annotated[Optional[str], typer.Option("--id-field", help="Frontmatter key used as resource ID")] = None,
    ):
    """Extract resources and print a link summary."""
    settings = _settings(overrides={"parser_config": parser, "id_field": id_field}, config=config)
    try:
        registry = load_corpus(Path(path), settings)
    except RuntimeError as e:
        _fail(str(e))

    for resource in registry:
        member_of = f" [{', '.join(resource.collections)}]" if resource.collections else ""
        typer.echo(f"  {resource.id}: {resource.file_path} ({len(resource.links)} link(s)){member_of}")
    for group in registry.duplicates():
        typer.echo(f"  duplicate content: {', '.join(r.file_path for r in group)}")
    stats = registry.stats()
    by_type = ", ".join(f"{k}={v}" for k, v in sorted(stats.links_by_type.items()))
    typer.echo(
        f"Scanned {stats.total_resources} resource(s), {stats.total_links} link(s)"
        + (f" ({by_type})" if by_type else "")
    )


def validate_cmd(
    path: Annotated[str, typer.Argument(help="File or directory to validate")],
    config: Annotated[Optional[str], typer.Option("--config", help="Project config file with collections")] = None,
    schema: Annotated[Optional[str], typer.Option("--frontmatter-schema", help="Schema applied to every resource")] = None,
    mode: Annotated[Optional[ValidationMode], typer.Option("--mode", help="strict or permissive")] = None,
    fmt: Annotated[OutputFormat, typer.Option("--format", help="Report format")] = OutputFormat.text,
    ):
    """Check links and frontmatter; exit 1 when any error is found."""
    if schema and not schema.startswith("py:"):
        schema = str(Path(schema).resolve())
    settings = _settings(overrides={"frontmatter_schema": schema, "validation_mode": mode}, config=config)
    schema_root = Path(config).resolve().parent if config else None
    try:
        _, result = run_validate(Path(path), settings, schema_root=schema_root)
    except SchemaLoadError as e:
        _fail("Schema could not be loaded", e)
    except RuntimeError as e:
        _fail(str(e))

    if fmt == OutputFormat.json:
        typer.echo(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
    elif fmt == OutputFormat.yaml:
        typer.echo(yaml.safe_dump(result.model_dump(mode="json", by_alias=True), sort_keys=False))
    else:
        _echo_text(result)
    if not result.passed:
        raise typer.Exit(1)


def transform_cmd(
    file: Annotated[str, typer.Argument(help="Markdown file to rewrite")],
    rules: Annotated[str, typer.Option("--rules", help="YAML/JSON file of link rewrite rules")],
    root: Annotated[Optional[str], typer.Option("--root", help="Corpus root used to resolve links")] = None,
    default_template: Annotated[Optional[str], typer.Option("--default-template", help="Template for links no rule matches")] = None,
    out: Annotated[Optional[str], typer.Option("--out", help="Write output here instead of stdout")] = None,
    ):
    """Rewrite a file's links through templates; prints the output fingerprint to stderr."""
    settings = _settings()
    try:
        rule_list = load_rules(Path(rules))
        content, digest = run_transform(
            Path(file), rule_list, settings,
            root=Path(root) if root else None,
            default_template=default_template,
        )
    except (ValueError, RuntimeError) as e:
        _fail(str(e))

    if out:
        Path(out).write_text(content, encoding="utf-8")
        typer.echo(f"  {file} -> {out}")
    else:
        typer.echo(content, nl=False)
    typer.echo(f"fingerprint: {digest}", err=True)
