"""Application configuration: settings schema, collection config, and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mdcorpus.core.models import ValidationMode


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "MDCORPUS_"
ENV_EXCLUDED = {"resources"}


class CollectionValidation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    frontmatter_schema: Optional[str]  = Field(default=None, alias="frontmatterSchema", description="Schema applied to every member")
    mode:               Optional[ValidationMode] = Field(default=None, description="strict or permissive; run mode when unset")
    check_url_links:    Optional[bool] = Field(default=None, alias="checkUrlLinks", description="Live-check external URLs")
    check_git_ignored:  Optional[bool] = Field(default=None, alias="checkGitIgnored", description="Flag links to ignored files")


class CollectionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    include:    list[str] = Field(..., min_length=1, description="Glob patterns or directory paths")
    exclude:    list[str] = Field(default_factory=list, description="Patterns that win over include")
    validation: Optional[CollectionValidation] = None


class ResourcesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    include:     list[str] = Field(default_factory=list)
    exclude:     list[str] = Field(default_factory=list)
    collections: dict[str, CollectionConfig] = Field(default_factory=dict)


class ProjectConfig(BaseModel):
    """Project config file: format version plus resource collections."""
    version:   Literal[1]
    resources: Optional[ResourcesConfig] = None


class Settings(BaseModel):
    app_name:           str = "mdcorpus"
    id_field:           Optional[str] = Field(default=None, description="Frontmatter key used as resource ID")
    validation_mode:    ValidationMode = Field(default=ValidationMode.strict, description="strict or permissive")
    frontmatter_schema: Optional[str] = Field(default=None, description="Schema applied to every resource")
    check_external_urls: bool = Field(default=False, description="Live-check external URLs when a checker is available")
    log_level:          str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    parser_config:      str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    resources:          Optional[ResourcesConfig] = None

    @property
    def collections(self) -> dict[str, CollectionConfig]:
        return self.resources.collections if self.resources else {}


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDCORPUS_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if name in ENV_EXCLUDED:
            continue
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)


def load_project_config(path: Path) -> ProjectConfig:
    """Load and validate a project config file (YAML or JSON)."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid {path}: {e}") from e
    try:
        return ProjectConfig.model_validate(data or {})
    except ValidationError as e:
        raise ValueError(f"Invalid {path}: {e}") from e
