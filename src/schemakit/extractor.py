"""Structured data audit for rendered pages."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from schemakit.conflicts import SchemaConflictDetector
from schemakit.constants import SCHEMA_CONTEXT, SCHEMA_KEY_TYPES
from schemakit.models import PageAudit, SchemaAudit, ValidationIssue
from schemakit.validator import SchemaValidator

logger = logging.getLogger(__name__)

ACCEPTED_CONTEXTS = (SCHEMA_CONTEXT, SCHEMA_CONTEXT + '/', 'http://schema.org', 'http://schema.org/')

# schema.org @type -> schema key used by the validation tables
TYPE_SCHEMA_KEYS = {schema_type: key for key, schema_type in SCHEMA_KEY_TYPES.items()}


@dataclass
class ExtractionResult:
    """JSON-LD objects found in a document."""
    schemas: List[Dict[str, Any]] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)


class JsonLdExtractor:
    """Pulls JSON-LD objects out of HTML."""

    def extract(self, html: str) -> ExtractionResult:
        """Extract JSON-LD objects, flattening @graph containers.

        Invalid blocks are recorded in parse_errors rather than raised.
        """
        result = ExtractionResult()
        soup = BeautifulSoup(html or '', 'lxml')

        for script in soup.find_all('script', type='application/ld+json'):
            if not script.string or not script.string.strip():
                continue

            try:
                data = json.loads(script.string)
            except json.JSONDecodeError as e:
                error_msg = f"Invalid JSON-LD syntax: {str(e)[:100]}"
                logger.debug(f"{error_msg} in block: {script.string[:200]}")
                result.parse_errors.append(error_msg)
                continue

            self._collect(data, result.schemas, None)

        return result

    def _collect(self, data: Any, schemas: List[Dict[str, Any]], context: Optional[str]):
        if isinstance(data, list):
            for item in data:
                self._collect(item, schemas, context)
            return

        if not isinstance(data, dict):
            return

        context = data.get('@context', context)
        graph = data.get('@graph')
        if isinstance(graph, list):
            for item in graph:
                if isinstance(item, dict) and '@context' not in item and context:
                    item = {'@context': context, **item}
                self._collect(item, schemas, context)
            return

        schemas.append(data)


def schema_key_for(schema: Dict[str, Any]) -> str:
    """Schema key for a JSON-LD object's @type (first type when it is a list)."""
    schema_type = schema.get('@type', '')
    if isinstance(schema_type, list):
        schema_type = schema_type[0] if schema_type else ''
    if not isinstance(schema_type, str):
        return ''
    return TYPE_SCHEMA_KEYS.get(schema_type, schema_type.lower())


def audit_page(html: str, url: str, detector: Optional[SchemaConflictDetector] = None) -> PageAudit:
    """Validate every JSON-LD object on a page and check them for conflicts.

    Args:
        html: Page markup
        url: Page URL
        detector: Conflict detector to use (a fresh one that only records by default)

    Returns:
        PageAudit with per-schema results, conflicts and parse errors
    """
    extraction = JsonLdExtractor().extract(html)
    detector = detector or SchemaConflictDetector(prevent_output=False)
    audit = PageAudit(url=url, parse_errors=list(extraction.parse_errors))

    for index, schema in enumerate(extraction.schemas):
        schema_key = schema_key_for(schema)
        validator = SchemaValidator()
        valid = validator.validate_schema_output(schema, schema_key)
        errors = validator.errors

        if schema.get('@context') not in ACCEPTED_CONTEXTS:
            valid = False
            errors.append(ValidationIssue(
                field='@context',
                message=f'Schema must include @context set to "{SCHEMA_CONTEXT}".',
                type='invalid_structure',
            ))

        audit.schemas.append(SchemaAudit(
            schema_type=schema_key,
            schema=schema,
            valid=valid,
            errors=errors,
            warnings=validator.warnings,
        ))

        conflict_type = schema.get('@type')
        if isinstance(conflict_type, list):
            conflict_type = conflict_type[0] if conflict_type else ''
        detector.can_output_schema(schema, str(conflict_type or ''), f"page-block-{index}")

    audit.conflicts = detector.conflicts
    logger.info(
        f"Audited {url}: {len(audit.schemas)} schemas, "
        f"{audit.error_count} errors, {len(audit.conflicts)} conflicts"
    )
    return audit
