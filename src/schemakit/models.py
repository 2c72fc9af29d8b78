"""Data models for schema mapping and validation."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from schemakit.constants import AUTHOR_TYPES, DEFAULT_AUTHOR_TYPE


# ============================================================================
# Content Context Models
# ============================================================================

@dataclass
class ImageRef:
    """A resolved image attachment."""
    url: str
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_value(cls, value: Any) -> Optional["ImageRef"]:
        """Build from a URL string or a {url, width, height} mapping."""
        if not value:
            return None
        if isinstance(value, ImageRef):
            return value
        if isinstance(value, str):
            return cls(url=value)
        return cls(
            url=value.get('url', ''),
            width=value.get('width'),
            height=value.get('height'),
        )


@dataclass
class AuthorContext:
    """The author of a post."""
    id: int = 0
    display_name: str = ""
    url: str = ""  # Author archive URL
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthorContext":
        return cls(
            id=int(data.get('id', 0)),
            display_name=data.get('display_name', ''),
            url=data.get('url', ''),
            meta=dict(data.get('meta', {})),
        )


@dataclass
class PostContext:
    """A single post and everything a field specifier can read from it."""

    id: int
    post_type: str = "post"
    title: str = ""
    excerpt: str = ""
    content: str = ""  # Raw HTML
    date: Optional[datetime] = None
    modified: Optional[datetime] = None
    permalink: str = ""
    author: Optional[AuthorContext] = None
    featured_image: Optional[ImageRef] = None
    meta: Dict[str, Any] = field(default_factory=dict)
    terms: Dict[str, List[str]] = field(default_factory=dict)  # taxonomy -> term names

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PostContext":
        """Build a post context from a decoded JSON/YAML mapping."""
        author = data.get('author')
        return cls(
            id=int(data['id']),
            post_type=data.get('post_type', 'post'),
            title=data.get('title', ''),
            excerpt=data.get('excerpt', ''),
            content=data.get('content', ''),
            date=_parse_datetime(data.get('date')),
            modified=_parse_datetime(data.get('modified')),
            permalink=data.get('permalink', ''),
            author=AuthorContext.from_dict(author) if author else None,
            featured_image=ImageRef.from_value(data.get('featured_image')),
            meta=dict(data.get('meta', {})),
            terms={k: list(v) for k, v in data.get('terms', {}).items()},
        )


@dataclass
class SiteContext:
    """Site-wide settings and assets."""

    name: str = ""
    description: str = ""
    url: str = ""
    admin_email: str = ""
    custom_logo: Optional[ImageRef] = None
    site_icon: Optional[ImageRef] = None
    theme_mods: Dict[str, Any] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    attachments: Dict[int, ImageRef] = field(default_factory=dict)
    recent_featured_images: List[ImageRef] = field(default_factory=list)  # Newest first
    taxonomies: List[str] = field(default_factory=lambda: ['category', 'post_tag'])

    def get_option(self, name: str, default: Any = "") -> Any:
        return self.options.get(name, default)

    def get_attachment(self, attachment_id: Any) -> Optional[ImageRef]:
        """Look up an attachment by numeric id."""
        try:
            return self.attachments.get(int(attachment_id))
        except (TypeError, ValueError):
            return None

    def find_attachment_by_url(self, url: str) -> Optional[ImageRef]:
        for image in self.attachments.values():
            if image.url == url:
                return image
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteContext":
        """Build a site context from a decoded JSON/YAML mapping."""
        return cls(
            name=data.get('name', ''),
            description=data.get('description', ''),
            url=data.get('url', ''),
            admin_email=data.get('admin_email', ''),
            custom_logo=ImageRef.from_value(data.get('custom_logo')),
            site_icon=ImageRef.from_value(data.get('site_icon')),
            theme_mods=dict(data.get('theme_mods', {})),
            options=dict(data.get('options', {})),
            attachments={
                int(k): ImageRef.from_value(v)
                for k, v in data.get('attachments', {}).items()
            },
            recent_featured_images=[
                ImageRef.from_value(v) for v in data.get('recent_featured_images', [])
            ],
            taxonomies=list(data.get('taxonomies', ['category', 'post_tag'])),
        )


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


# ============================================================================
# Assignment Configuration
# ============================================================================

class SchemaAssignment(BaseModel):
    """
    A saved schema assignment: which post type a schema key applies to and
    how each of its fields is sourced.
    """

    schema_type: str = Field(
        description="Schema key, e.g. 'article' or 'local_business'"
    )

    post_type: str = Field(
        default="",
        description="Post type the schema applies to, or 'global' for every page"
    )

    meta_map: Dict[str, str] = Field(
        default_factory=dict,
        description="Schema field name -> source specifier"
    )

    enabled_fields: List[str] = Field(
        default_factory=list,
        description="Fields to process; empty means all mapped fields are enabled"
    )

    author_type: Literal["Person", "Organization"] = Field(
        default=DEFAULT_AUTHOR_TYPE,
        description="Emitted @type for the author schema key"
    )

    selected_post: Optional[int] = Field(
        default=None,
        description="Restrict output to a single post id"
    )

    @field_validator('author_type', mode='before')
    @classmethod
    def _normalize_author_type(cls, value: Any) -> str:
        return value if value in AUTHOR_TYPES else DEFAULT_AUTHOR_TYPE

    def is_field_enabled(self, field_name: str) -> bool:
        return not self.enabled_fields or field_name in self.enabled_fields


# ============================================================================
# Validation & Conflict Results
# ============================================================================

@dataclass
class ValidationIssue:
    """A single validation error or warning."""
    field: str
    message: str
    type: str = ""
    field_label: Optional[str] = None
    explanation: Optional[str] = None
    suggestion: Optional[str] = None
    example: Optional[str] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v not in (None, "")}


@dataclass
class RegisteredSchema:
    """A schema that has been cleared for output on the current page."""
    type: str
    source: str


@dataclass
class SchemaConflict:
    """A schema that collided with one already registered on the page."""
    schema_type: str
    source: str
    kind: str  # 'duplicate', 'group_conflict', 'product_review'
    conflicting_source: str
    message: str
    conflicting_type: Optional[str] = None
    group: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaConflict":
        return cls(**data)


@dataclass
class SchemaAudit:
    """Validation outcome for one JSON-LD object found on a page."""
    schema_type: str
    schema: dict
    valid: bool = True
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)


@dataclass
class PageAudit:
    """Structured data audit for a rendered page."""

    url: str
    schemas: List[SchemaAudit] = field(default_factory=list)
    conflicts: List[SchemaConflict] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)

    @property
    def schema_types(self) -> List[str]:
        return [s.schema_type for s in self.schemas]

    @property
    def error_count(self) -> int:
        return sum(len(s.errors) for s in self.schemas) + len(self.parse_errors)

    @property
    def is_clean(self) -> bool:
        return self.error_count == 0 and not self.conflicts
