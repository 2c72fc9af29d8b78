"""Page integration: build, filter and render the JSON-LD for a page <head>."""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from schemakit.conflicts import SchemaConflictDetector
from schemakit.constants import (
    ARTICLE_KEYS,
    ARTICLE_TYPE_META_KEY,
    AUTHOR_KEY,
    DEFAULT_ARTICLE_KEY,
    FAQ_ITEMS_META_KEY,
    GLOBAL_SCHEMA_KEYS,
    POST_SCHEMA_KEYS,
    RICH_RESULTS_TEST_URL,
    SCHEMA_KEY_TYPES,
)
from schemakit.mapper import SchemaMapper
from schemakit.models import PostContext

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


@dataclass
class RenderedSchema:
    """A schema cleared for output, with the source that emitted it."""
    schema_key: str
    source: str
    schema: Dict[str, Any]

    @property
    def json(self) -> str:
        return to_json(self.schema)


def to_json(schema: Dict[str, Any]) -> str:
    """Serialize without escaping unicode or slashes.

    <, > and & are written as \\u escapes so no value can close the
    surrounding <script> element.
    """
    return (
        json.dumps(schema, ensure_ascii=False)
        .replace('<', '\\u003c')
        .replace('>', '\\u003e')
        .replace('&', '\\u0026')
    )


_ARTICLE_TYPE_KEYS = {SCHEMA_KEY_TYPES[key].lower(): key for key in ARTICLE_KEYS}


def selected_article_key(post: PostContext) -> str:
    """Article key chosen by the post's selected_schema_type meta.

    Accepts keys ("blog_posting"), labels ("Blog Posting", "news-article")
    and type names ("NewsArticle"). Anything else selects the plain article.
    """
    selected = post.meta.get(ARTICLE_TYPE_META_KEY) or SCHEMA_KEY_TYPES[DEFAULT_ARTICLE_KEY]
    key = re.sub(r'[ \-]', '_', str(selected).strip()).lower()
    if key in ARTICLE_KEYS:
        return key
    return _ARTICLE_TYPE_KEYS.get(key, DEFAULT_ARTICLE_KEY)


def rich_results_test_url(page_url: str) -> str:
    """Link to Google's Rich Results Test for a page."""
    return RICH_RESULTS_TEST_URL + quote(page_url, safe='')


class SchemaIntegration:
    """Renders the structured data for a page."""

    def __init__(
        self,
        mapper: SchemaMapper,
        detector: Optional[SchemaConflictDetector] = None,
        template_dir: Optional[str] = None,
    ):
        """Initialize the integration.

        Args:
            mapper: Schema mapper bound to the site's assignments
            detector: Conflict detector for this page (a fresh one by default)
            template_dir: Directory containing the head template
        """
        self.mapper = mapper
        self.detector = detector or SchemaConflictDetector(config=mapper.config)

        template_path = Path(template_dir) if template_dir else TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(['html']),
        )

    @staticmethod
    def _identify(schema_key: str, schema: Dict[str, Any], prefix: str):
        """Conflict type and source identifier for a built schema."""
        schema_type = schema.get('@type')
        if schema_key == AUTHOR_KEY and isinstance(schema_type, str):
            return schema_type.lower(), f"{prefix}-author-{schema_type.lower()}"
        conflict_type = schema_type.lower() if isinstance(schema_type, str) else schema_key
        return conflict_type, f"{prefix}-{schema_key.lower()}"

    def _admit(self, schema_key: str, schema: Optional[Dict[str, Any]], prefix: str) -> Optional[RenderedSchema]:
        if not schema:
            return None
        schema_type, source = self._identify(schema_key, schema, prefix)
        if not self.detector.can_output_schema(schema, schema_type, source):
            logger.debug(f"Skipping {schema_key} schema from {source}: conflicts on this page")
            return None
        return RenderedSchema(schema_key=schema_key, source=source, schema=schema)

    def render_post_schemas(self, post: PostContext) -> List[RenderedSchema]:
        """Schemas bound to a single post, in output order."""
        rendered = []
        for schema_key in POST_SCHEMA_KEYS + (selected_article_key(post),):
            if schema_key == 'faq' and post.meta.get(FAQ_ITEMS_META_KEY):
                schema = self.mapper.build_faq_schema(post.meta[FAQ_ITEMS_META_KEY])
            else:
                schema = self.mapper.build_schema(schema_key, post)

            result = self._admit(schema_key, schema, 'schema-integration')
            if result:
                rendered.append(result)
        return rendered

    def render_global_schemas(self) -> List[RenderedSchema]:
        """Site-wide schemas, in output order."""
        rendered = []
        for schema_key in GLOBAL_SCHEMA_KEYS:
            schema = self.mapper.build_global_schema(schema_key)
            result = self._admit(schema_key, schema, 'schema-integration-global')
            if result:
                rendered.append(result)
        return rendered

    def render_head(self, post: Optional[PostContext] = None, url: Optional[str] = None) -> str:
        """Render every schema cleared for the page as <script> blocks.

        Conflicts found while rendering are logged and stored against the
        page URL (the post permalink, falling back to the site URL).
        """
        blocks = []
        if post is not None:
            blocks.extend(self.render_post_schemas(post))
        blocks.extend(self.render_global_schemas())

        template = self.env.get_template('head.html')
        html = template.render(
            blocks=[{'source': b.source, 'json': Markup(b.json)} for b in blocks],
        )

        page_url = url or (post.permalink if post is not None else '') or self.mapper.site.url
        self.detector.log_conflicts(page_url)
        return html
