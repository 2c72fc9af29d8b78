"""
Schema Conflict Detector

Tracks the schemas emitted on a single page and stops duplicates and
conflicting types (e.g. Article beside BlogPosting, Organization beside
LocalBusiness) from being output together. Create one detector per page
render.
"""

import hashlib
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from schemakit.config import MapperConfig, default_config
from schemakit.constants import (
    AUTHOR_SOURCE_MARKER,
    CONFLICT_GROUPS,
    CONFLICT_TRANSIENT_PREFIX,
)
from schemakit.models import RegisteredSchema, SchemaConflict

logger = logging.getLogger(__name__)

PreventOutput = Union[bool, Callable[[str, SchemaConflict], bool]]


class SchemaConflictDetector:
    """Per-page registry of emitted schemas."""

    CONFLICT_GROUPS = CONFLICT_GROUPS

    def __init__(
        self,
        store=None,
        prevent_output: Optional[PreventOutput] = None,
        config: Optional[MapperConfig] = None,
    ):
        """
        Args:
            store: Settings store used to persist conflicts (optional)
            prevent_output: Drop conflicting schemas. A callable receives
                (schema_type, conflict) and decides per conflict.
            config: Mapper configuration (TTL and prevent-output default)
        """
        self.config = config or default_config
        self.store = store
        self.prevent_output = (
            self.config.prevent_conflicting_output if prevent_output is None else prevent_output
        )
        self._registry: List[RegisteredSchema] = []
        self._conflicts: List[SchemaConflict] = []

    @property
    def registered_schemas(self) -> List[RegisteredSchema]:
        return list(self._registry)

    @property
    def conflicts(self) -> List[SchemaConflict]:
        return list(self._conflicts)

    def clear(self) -> None:
        self._registry = []
        self._conflicts = []

    def can_output_schema(self, schema: Any, schema_type: str = '', source: str = '') -> bool:
        """
        Check whether a schema may be output, registering it when it may.

        Args:
            schema: Built JSON-LD dict
            schema_type: Schema type; falls back to the schema's @type
            source: Identifier of the code emitting the schema

        Returns:
            False if the schema is empty, untyped, or conflicts and output is prevented
        """
        if not schema or not isinstance(schema, dict):
            return False

        schema_type = (schema_type or '').lower()
        if not schema_type and isinstance(schema.get('@type'), str):
            schema_type = schema['@type'].lower()

        if not schema_type:
            return False

        conflict = self._detect_conflict(schema_type, source)

        if conflict:
            self._conflicts.append(conflict)
            logger.debug(f"Schema conflict ({conflict.kind}): {conflict.message}")

            if self._should_prevent(schema_type, conflict):
                return False

        self._registry.append(RegisteredSchema(type=schema_type, source=source))
        return True

    def _should_prevent(self, schema_type: str, conflict: SchemaConflict) -> bool:
        if callable(self.prevent_output):
            return bool(self.prevent_output(schema_type, conflict))
        return bool(self.prevent_output)

    @staticmethod
    def _is_author_source(source: str) -> bool:
        return AUTHOR_SOURCE_MARKER in (source or '')

    def _exempt(self, source: str, registered: RegisteredSchema) -> bool:
        """Author schemas coexist with regular schemas of any type."""
        return self._is_author_source(source) != self._is_author_source(registered.source)

    def _detect_conflict(self, schema_type: str, source: str) -> Optional[SchemaConflict]:
        # Duplicate types from different sources
        for registered in self._registry:
            if registered.type == schema_type and registered.source != source:
                if self._exempt(source, registered):
                    continue
                return SchemaConflict(
                    schema_type=schema_type,
                    source=source,
                    kind='duplicate',
                    conflicting_source=registered.source,
                    message=(
                        f"Duplicate {schema_type.capitalize()} schema detected. "
                        f"Already output by {registered.source}."
                    ),
                )

        # Different types from the same group
        for group_name, group_types in self.CONFLICT_GROUPS.items():
            if schema_type not in group_types:
                continue
            for registered in self._registry:
                if registered.type in group_types and registered.type != schema_type:
                    if self._exempt(source, registered):
                        continue
                    return SchemaConflict(
                        schema_type=schema_type,
                        source=source,
                        kind='group_conflict',
                        conflicting_source=registered.source,
                        conflicting_type=registered.type,
                        group=group_name,
                        message=(
                            f"{schema_type.capitalize()} schema conflicts with "
                            f"{registered.type.capitalize()} schema already output by "
                            f"{registered.source}. Only one should be output per page."
                        ),
                    )

        # Product and Review
        pairs = {'product': 'review', 'review': 'product'}
        other = pairs.get(schema_type)
        if other:
            for registered in self._registry:
                if registered.type == other:
                    return SchemaConflict(
                        schema_type=schema_type,
                        source=source,
                        kind='product_review',
                        conflicting_source=registered.source,
                        conflicting_type=other,
                        message=(
                            f"{schema_type.capitalize()} schema conflicts with "
                            f"{other.capitalize()} schema already output by {registered.source}. "
                            "Review should reference Product, not be separate."
                        ),
                    )

        return None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @staticmethod
    def transient_key(url: str) -> str:
        return CONFLICT_TRANSIENT_PREFIX + hashlib.md5(url.encode('utf-8')).hexdigest()

    def log_conflicts(self, url: str) -> None:
        """Log this page's conflicts and keep them in the store for review."""
        if not self._conflicts:
            return

        logger.warning(f"Schema conflicts on page: {url}")
        for conflict in self._conflicts:
            logger.warning(conflict.message)

        if self.store is not None:
            self.store.set_transient(
                self.transient_key(url),
                [c.to_dict() for c in self._conflicts],
                self.config.conflict_ttl_seconds,
            )

    def get_stored_conflicts(self, url: str) -> List[SchemaConflict]:
        if self.store is None:
            return []
        stored: Optional[List[Dict[str, Any]]] = self.store.get_transient(self.transient_key(url))
        return [SchemaConflict.from_dict(c) for c in stored or []]

    def clear_stored_conflicts(self, url: str) -> None:
        if self.store is not None:
            self.store.delete_transient(self.transient_key(url))
