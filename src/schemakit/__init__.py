"""Map site content to schema.org JSON-LD."""

__version__ = "0.1.0"

from schemakit.mapper import SchemaMapper
from schemakit.validator import SchemaValidator
from schemakit.conflicts import SchemaConflictDetector
from schemakit.sources import FieldResolver
from schemakit.integration import SchemaIntegration, rich_results_test_url
from schemakit.extractor import JsonLdExtractor, audit_page
from schemakit.storage import get_store, LocalSqliteStore
from schemakit.models import (
    AuthorContext,
    ImageRef,
    PostContext,
    SiteContext,
    SchemaAssignment,
    ValidationIssue,
    SchemaConflict,
    RegisteredSchema,
    PageAudit,
    SchemaAudit,
)
from schemakit.config import settings, MapperConfig

__all__ = [
    # Core
    "SchemaMapper",
    "SchemaValidator",
    "SchemaConflictDetector",
    "FieldResolver",
    "SchemaIntegration",
    "rich_results_test_url",
    "JsonLdExtractor",
    "audit_page",
    "get_store",
    "LocalSqliteStore",
    # Models
    "AuthorContext",
    "ImageRef",
    "PostContext",
    "SiteContext",
    "SchemaAssignment",
    "ValidationIssue",
    "SchemaConflict",
    "RegisteredSchema",
    "PageAudit",
    "SchemaAudit",
    "settings",
    "MapperConfig",
]
