# src/schemakit/storage.py
"""Settings store for schema assignments and short-lived transients."""

import json
import sqlite3
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from schemakit.config import settings
from schemakit.constants import ARTICLE_KEYS, GLOBAL_POST_TYPE
from schemakit.models import SchemaAssignment
from schemakit.sanitize import sanitize_text_field

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_assignments (
    schema_type TEXT PRIMARY KEY,
    post_type TEXT NOT NULL DEFAULT '',
    meta_map TEXT NOT NULL DEFAULT '{}',
    enabled_fields TEXT NOT NULL DEFAULT '[]',
    author_type TEXT NOT NULL DEFAULT 'Person',
    selected_post INTEGER,
    updated_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS transients (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at REAL
);
"""

# Keys that borrow another key's assignment when they have none of their own
ASSIGNMENT_FALLBACKS = {
    'blog_posting': 'article',
    'news_article': 'article',
}


class AbstractStore(ABC):
    """Abstract base class defining the settings store interface."""

    @abstractmethod
    def connect(self) -> None:
        """Establish store connection."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close store connection."""
        pass

    @abstractmethod
    def create_schema(self) -> None:
        """Create the necessary tables."""
        pass

    @abstractmethod
    def load_assignment(self, schema_type: str) -> Optional[SchemaAssignment]:
        """Load the assignment saved under exactly this key."""
        pass

    @abstractmethod
    def write_assignment(self, assignment: SchemaAssignment) -> None:
        """Insert or replace an assignment as-is."""
        pass

    @abstractmethod
    def delete_assignment(self, schema_type: str) -> None:
        pass

    @abstractmethod
    def list_assignments(self) -> List[SchemaAssignment]:
        pass

    @abstractmethod
    def set_transient(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a JSON-serializable value that expires after ttl seconds."""
        pass

    @abstractmethod
    def get_transient(self, key: str) -> Any:
        """Return the stored value, or None when missing or expired."""
        pass

    @abstractmethod
    def delete_transient(self, key: str) -> None:
        pass

    def get_assignment(self, schema_type: str, fallback: bool = True) -> Optional[SchemaAssignment]:
        """Return the assignment for a key.

        Args:
            schema_type: Schema key
            fallback: Let blog_posting and news_article use the article assignment

        Returns:
            The assignment, or None
        """
        assignment = self.load_assignment(schema_type)
        if assignment is None and fallback and schema_type in ASSIGNMENT_FALLBACKS:
            assignment = self.load_assignment(ASSIGNMENT_FALLBACKS[schema_type])
        return assignment

    def save_assignment(self, assignment: SchemaAssignment) -> SchemaAssignment:
        """Sanitize and save an assignment.

        Only one article-type schema may claim a post type; saving one clears
        the post type of the others (their field mappings are kept).

        Raises:
            ValueError: If schema_type or post_type is missing.
        """
        schema_type = sanitize_text_field(assignment.schema_type).lower()
        post_type = sanitize_text_field(assignment.post_type)
        if not schema_type or not post_type:
            raise ValueError("The 'schema_type' and 'post_type' fields are required.")

        clean = SchemaAssignment(
            schema_type=schema_type,
            post_type=post_type,
            meta_map={
                sanitize_text_field(k): sanitize_text_field(v)
                for k, v in assignment.meta_map.items()
                if sanitize_text_field(k)
            },
            enabled_fields=[sanitize_text_field(f) for f in assignment.enabled_fields if f],
            author_type=assignment.author_type,
            selected_post=assignment.selected_post,
        )

        if schema_type in ARTICLE_KEYS and post_type != GLOBAL_POST_TYPE:
            for other_key in ARTICLE_KEYS:
                if other_key == schema_type:
                    continue
                other = self.load_assignment(other_key)
                if other is not None and other.post_type == post_type:
                    logger.info(
                        f"Clearing post type '{post_type}' from {other_key}: "
                        f"{schema_type} now claims it"
                    )
                    self.write_assignment(other.model_copy(update={'post_type': ''}))

        self.write_assignment(clean)
        logger.debug(f"Saved assignment for schema: {schema_type}")
        return clean


class LocalSqliteStore(AbstractStore):
    """SQLite store implementation for local storage."""

    def __init__(self, db_url: Optional[str] = None):
        """Initialize local SQLite store.

        Args:
            db_url: Database URL (sqlite:///path/to/db.db). Defaults to settings.DATABASE_URL.
        """
        self.db_url = db_url or settings.DATABASE_URL
        self.db_path = self.db_url.replace("sqlite:///", "")
        self.conn: Optional[sqlite3.Connection] = None
        self.connect()
        self.create_schema()

    def connect(self) -> None:
        """Establish SQLite connection."""
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to local SQLite store: {self.db_path}")

    def close(self) -> None:
        """Close SQLite connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed local SQLite connection")

    def create_schema(self) -> None:
        """Create the tables if they don't exist."""
        with self.conn:
            self.conn.executescript(CREATE_TABLES_SQL)
        logger.debug("Schema verified/created for local SQLite")

    def load_assignment(self, schema_type: str) -> Optional[SchemaAssignment]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM schema_assignments WHERE schema_type = ?", (schema_type,))
        row = cursor.fetchone()
        return self._row_to_assignment(row) if row else None

    def write_assignment(self, assignment: SchemaAssignment) -> None:
        insert_sql = """
            INSERT OR REPLACE INTO schema_assignments
                (schema_type, post_type, meta_map, enabled_fields, author_type, selected_post, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """
        with self.conn:
            self.conn.execute(insert_sql, (
                assignment.schema_type,
                assignment.post_type,
                json.dumps(assignment.meta_map),
                json.dumps(assignment.enabled_fields),
                assignment.author_type,
                assignment.selected_post,
                time.time(),
            ))

    def delete_assignment(self, schema_type: str) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM schema_assignments WHERE schema_type = ?", (schema_type,))

    def list_assignments(self) -> List[SchemaAssignment]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM schema_assignments ORDER BY schema_type ASC")
        return [self._row_to_assignment(row) for row in cursor.fetchall()]

    @staticmethod
    def _row_to_assignment(row: sqlite3.Row) -> SchemaAssignment:
        return SchemaAssignment(
            schema_type=row['schema_type'],
            post_type=row['post_type'],
            meta_map=json.loads(row['meta_map']),
            enabled_fields=json.loads(row['enabled_fields']),
            author_type=row['author_type'],
            selected_post=row['selected_post'],
        )

    def set_transient(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.time() + ttl if ttl else None
        with self.conn:
            self.conn.execute(
                "INSERT OR REPLACE INTO transients (key, value, expires_at) VALUES (?, ?, ?)",
                (key, json.dumps(value), expires_at),
            )

    def get_transient(self, key: str) -> Any:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value, expires_at FROM transients WHERE key = ?", (key,))
        row = cursor.fetchone()
        if row is None:
            return None
        if row['expires_at'] is not None and row['expires_at'] <= time.time():
            self.delete_transient(key)
            return None
        return json.loads(row['value'])

    def delete_transient(self, key: str) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM transients WHERE key = ?", (key,))


def get_store(backend: Optional[str] = None, **kwargs) -> AbstractStore:
    """Factory function to get the appropriate store backend.

    Args:
        backend: Store backend ('local'). Defaults to settings.DB_BACKEND.
        **kwargs: Additional arguments passed to the store constructor.

    Returns:
        An instance of AbstractStore.

    Raises:
        ValueError: If an unknown backend is specified.
    """
    backend = backend or settings.DB_BACKEND

    if backend == "local":
        logger.info("Using local SQLite store backend")
        return LocalSqliteStore(**kwargs)
    else:
        raise ValueError(
            f"Unknown store backend: '{backend}'. "
            "Supported backends: 'local'"
        )


def lookup_assignment(assignments: Dict[str, SchemaAssignment], schema_type: str) -> Optional[SchemaAssignment]:
    """get_assignment() for a plain key -> assignment mapping."""
    assignment = assignments.get(schema_type)
    if assignment is None and schema_type in ASSIGNMENT_FALLBACKS:
        assignment = assignments.get(ASSIGNMENT_FALLBACKS[schema_type])
    return assignment
