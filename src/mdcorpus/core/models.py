"""Data models for extracted resources, resolved links, and validation results"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LinkType(str, Enum):
    """Classification of a link target."""
    local_file = "local_file"
    anchor = "anchor"
    external = "external"
    email = "email"
    unknown = "unknown"


class LinkNodeType(str, Enum):
    """Syntactic form a link was written in."""
    link = "link"               # [text](href), <autolink>, or a [text][ref] usage
    definition = "definition"   # [ref]: href


class Severity(str, Enum):
    error = "error"
    warning = "warning"
    info = "info"


class ValidationMode(str, Enum):
    strict = "strict"
    permissive = "permissive"


class HeadingNode(BaseModel):
    """One heading in a document outline; deeper headings nest under shallower ones."""
    level: int = Field(..., ge=1, le=6)
    text: str
    slug: str
    line: Optional[int] = None
    children: Optional[list["HeadingNode"]] = None     # None, never empty


class ResourceLink(BaseModel):
    """A single link occurrence, before or after resolution."""
    text: str
    href: str                                   # as written, fragment included
    type: LinkType
    node_type: LinkNodeType = LinkNodeType.link
    line: Optional[int] = None                  # 1-based, counted from the top of the file
    resolved_path: Optional[str] = None         # project path a local_file href points to
    resolved_id: Optional[str] = None
    anchor_target: Optional[str] = None         # slug of the matched heading


class ResourceMetadata(BaseModel):
    """Everything known about one document in the corpus."""
    id: str
    file_path: str                              # project-relative, forward slashes
    links: list[ResourceLink] = []
    headings: list[HeadingNode] = []
    frontmatter: Optional[dict[str, Any]] = None
    frontmatter_error: Optional[str] = None
    size_bytes: int = Field(..., ge=0)
    estimated_token_count: int = Field(..., ge=0)
    checksum: str = Field(..., pattern=r'^[0-9a-f]{64}$')
    collections: Optional[list[str]] = None

    @model_validator(mode="after")
    def _frontmatter_xor_error(self):
        if self.frontmatter is not None and self.frontmatter_error is not None:
            raise ValueError("frontmatter and frontmatter_error are mutually exclusive")
        return self

    @property
    def name(self) -> str:
        return self.file_path.rsplit('/', 1)[-1]


class ValidationIssue(BaseModel):
    """One finding reported by validation."""
    severity: Severity = Severity.error
    resource_path: str
    line: Optional[int] = None
    type: str
    link: str = ""
    message: str
    suggestion: Optional[str] = None


class SchemaReference(BaseModel):
    """A schema assigned to a resource, plus the outcome once it has been applied."""
    model_config = ConfigDict(populate_by_name=True)

    schema_path: str = Field(..., alias="schema")
    source: str                                 # "self", a collection name, or "cli"
    applied: bool = False
    valid: Optional[bool] = None
    errors: list[ValidationIssue] = []


class RegistryStats(BaseModel):
    total_resources: int
    total_links: int
    links_by_type: dict[str, int]


class CollectionStats(BaseModel):
    resource_count: int
    has_schema: bool
    validation_mode: Optional[ValidationMode] = None


class ValidationResult(BaseModel):
    """Aggregate outcome of validating a registry. Counts always agree with issues."""
    model_config = ConfigDict(frozen=True)

    total_resources: int
    total_links: int
    links_by_type: dict[str, int]
    issues: list[ValidationIssue]
    error_count: int
    warning_count: int
    info_count: int
    passed: bool
    duration_ms: float
    timestamp: datetime
    schemas: dict[str, list[SchemaReference]] = {}     # resource path -> applied schemas

    @classmethod
    def from_issues(
        cls,
        issues: list[ValidationIssue],
        total_resources: int,
        total_links: int,
        links_by_type: dict[str, int],
        duration_ms: float,
        schemas: dict[str, list[SchemaReference]] = None,
        ) -> "ValidationResult":
        """Build a result with severity counts and pass/fail derived from issues."""
        counts = Counter(i.severity for i in issues)
        return cls(
            total_resources=total_resources,
            total_links=total_links,
            links_by_type=links_by_type,
            issues=issues,
            error_count=counts[Severity.error],
            warning_count=counts[Severity.warning],
            info_count=counts[Severity.info],
            passed=counts[Severity.error] == 0,
            duration_ms=duration_ms,
            timestamp=datetime.now(),
            schemas=schemas or {},
        )


@dataclass
class ParsedResource:
    """Extractor output for one document; id and collection membership are assigned later."""
    file_path:             str
    raw_markdown:          str          # full file content (includes frontmatter)
    markdown:              str          # body only (frontmatter stripped)
    line_offset:           int          # lines taken by the frontmatter block
    frontmatter:           Optional[dict[str, Any]]
    frontmatter_error:     Optional[str]
    links:                 list[ResourceLink]
    headings:              list[HeadingNode]
    size_bytes:            int
    estimated_token_count: int
    checksum:              str
