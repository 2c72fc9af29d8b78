"""
Schema Mapper

Builds schema.org JSON-LD objects from saved schema assignments. Each field in
an assignment's meta map is resolved against the current post and site, then
assembled into the nested structures schema.org expects (PostalAddress,
GeoCoordinates, AggregateRating, ImageObject, ...). Built schemas pass through
the validator before they are returned.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from schemakit.config import MapperConfig, default_config
from schemakit.constants import (
    ADDRESS_SUB_FIELDS,
    ARTICLE_KEYS,
    AUTHOR_KEY,
    DEFAULT_AUTHOR_TYPE,
    FALLBACK_SCHEMA_TYPE,
    FEATURED_IMAGE_TOKEN,
    GLOBAL_POST_TYPE,
    LATITUDE_RANGE,
    LONGITUDE_RANGE,
    ORGANIZATION_ONLY_FIELDS,
    PERSON_ONLY_FIELDS,
    SCHEMA_CONTEXT,
    SCHEMA_KEY_TYPES,
    SEPARATELY_HANDLED_FIELDS,
    SITE_LOGO_TOKEN,
    SOCIAL_FIELDS,
)
from schemakit.models import ImageRef, PostContext, SchemaAssignment, SiteContext
from schemakit.sanitize import (
    absolutize_url,
    autop,
    clean_html,
    esc_url_raw,
    is_blank,
    is_url_like,
    is_valid_url,
    sanitize_text_field,
    strip_tags,
)
from schemakit.sources import FieldResolver, FieldValue
from schemakit.storage import AbstractStore, lookup_assignment
from schemakit.validator import SchemaValidator

logger = logging.getLogger(__name__)

_GEO_CLEAN_RE = re.compile(r'[^0-9.\-]')
_LEADING_NUMBER_RE = re.compile(r'^\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?')

Assignments = Union[AbstractStore, Mapping[str, Any]]


class SchemaMapper:
    """Build JSON-LD for saved schema assignments."""

    def __init__(
        self,
        assignments: Assignments,
        site: SiteContext,
        validator: Optional[type] = None,
        config: Optional[MapperConfig] = None,
    ):
        """
        Args:
            assignments: A settings store, or a mapping of schema key to
                SchemaAssignment (or its dict form)
            site: Site context
            validator: Validator class providing should_output_schema()
            config: Mapper configuration
        """
        self.assignments = assignments
        self.site = site
        self.validator = validator or SchemaValidator
        self.config = config or default_config

    def get_assignment(self, schema_key: str) -> Optional[SchemaAssignment]:
        if isinstance(self.assignments, AbstractStore):
            return self.assignments.get_assignment(schema_key)

        assignment = lookup_assignment(self.assignments, schema_key)
        if isinstance(assignment, Mapping):
            assignment = SchemaAssignment(**{'schema_type': schema_key, **assignment})
        return assignment

    def resolve_schema_type(self, schema_key: str, assignment: Optional[SchemaAssignment] = None) -> str:
        """Map a schema key to its schema.org @type."""
        if schema_key == AUTHOR_KEY:
            if assignment is None:
                assignment = self.get_assignment(AUTHOR_KEY)
            return assignment.author_type if assignment else DEFAULT_AUTHOR_TYPE
        return SCHEMA_KEY_TYPES.get(schema_key, FALLBACK_SCHEMA_TYPE)

    # ------------------------------------------------------------------
    # Public builders
    # ------------------------------------------------------------------

    def build_schema(self, schema_key: str, post: PostContext) -> Optional[Dict[str, Any]]:
        """Build the schema for a single post, or None if it does not apply or is invalid."""
        assignment = self.get_assignment(schema_key)
        if assignment is None:
            return None

        if assignment.post_type != GLOBAL_POST_TYPE and assignment.post_type != post.post_type:
            return None

        if assignment.selected_post is not None and assignment.selected_post != post.id:
            return None

        schema = self._assemble(schema_key, assignment, post)
        return self._finalize(schema_key, schema)

    def build_global_schema(self, schema_key: str) -> Optional[Dict[str, Any]]:
        """Build a site-wide schema with no post context."""
        assignment = self.get_assignment(schema_key)
        if assignment is None:
            return None

        schema = self._assemble(schema_key, assignment, None)
        return self._finalize(schema_key, schema)

    def build_faq_schema(self, items: Iterable[Any]) -> Optional[Dict[str, Any]]:
        """
        Build an FAQPage from question/answer items.

        Items may be (question, answer) pairs or {'question', 'answer'} mappings.
        Items missing either part are skipped.
        """
        main_entity = []
        for item in items or []:
            if isinstance(item, Mapping):
                question, answer = item.get('question'), item.get('answer')
            else:
                question, answer = item

            question = sanitize_text_field(question)
            answer = clean_html(answer).strip()
            if not question or not strip_tags(answer).strip():
                continue

            main_entity.append({
                '@type': 'Question',
                'name': question,
                'acceptedAnswer': {
                    '@type': 'Answer',
                    'text': autop(answer),
                },
            })

        schema = {
            '@context': SCHEMA_CONTEXT,
            '@type': SCHEMA_KEY_TYPES['faq'],
            'mainEntity': main_entity,
        }

        if not self.validator.should_output_schema(schema, 'faq'):
            return None
        return schema

    def preview(
        self,
        schema_key: str,
        meta_map: Dict[str, str],
        enabled_fields: Optional[List[str]] = None,
        post: Optional[PostContext] = None,
        author_type: str = DEFAULT_AUTHOR_TYPE,
    ) -> Optional[Dict[str, Any]]:
        """Build an unvalidated schema for admin preview.

        Returns None when none of the mapped fields produced data.
        """
        assignment = SchemaAssignment(
            schema_type=schema_key,
            post_type=post.post_type if post else GLOBAL_POST_TYPE,
            meta_map=meta_map,
            enabled_fields=enabled_fields or [],
            author_type=author_type,
        )
        schema = self._cleanup(self._assemble(schema_key, assignment, post))
        if not any(key not in ('@context', '@type') for key in schema):
            return None
        return schema

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def _assemble(
        self,
        schema_key: str,
        assignment: SchemaAssignment,
        post: Optional[PostContext],
    ) -> Dict[str, Any]:
        resolver = FieldResolver(self.site, post)
        meta_map = assignment.meta_map
        is_author = schema_key == AUTHOR_KEY
        author_type = assignment.author_type if is_author else None

        schema: Dict[str, Any] = {
            '@context': SCHEMA_CONTEXT,
            '@type': self.resolve_schema_type(schema_key, assignment),
        }

        if post is not None:
            self._add_common_properties(schema, schema_key, post, resolver)

        address = self._build_address(assignment, resolver)
        if address:
            schema['address'] = address

        same_as: List[str] = []

        for field_name, mapping in meta_map.items():
            if field_name in ADDRESS_SUB_FIELDS:
                continue
            if not assignment.is_field_enabled(field_name):
                continue
            if is_blank(mapping) or field_name in SEPARATELY_HANDLED_FIELDS:
                continue

            if field_name in SOCIAL_FIELDS:
                url = self._social_url(mapping, resolver)
                if url:
                    same_as.append(url)
                continue

            if field_name in PERSON_ONLY_FIELDS and author_type != 'Person':
                continue
            if field_name in ORGANIZATION_ONLY_FIELDS and author_type == 'Person':
                continue

            value = resolver.resolve(mapping)
            if is_blank(value):
                continue

            self._apply_field(schema, field_name, value, resolver)

        if same_as:
            schema['sameAs'] = list(dict.fromkeys(same_as))

        if assignment.is_field_enabled('image') and not is_blank(meta_map.get('image')):
            image = self._build_image(meta_map['image'], resolver, post, author_type)
            if image:
                schema['image'] = image

        if assignment.is_field_enabled('logo') and not is_blank(meta_map.get('logo')):
            logo = self._build_logo(meta_map['logo'], resolver)
            if logo:
                schema['logo'] = logo

        geo = schema.get('geo')
        if isinstance(geo, dict) and ('latitude' not in geo or 'longitude' not in geo):
            del schema['geo']

        rating = schema.get('aggregateRating')
        if isinstance(rating, dict) and ('ratingValue' not in rating or 'reviewCount' not in rating):
            del schema['aggregateRating']

        if is_author:
            schema['@type'] = assignment.author_type

        return schema

    def _add_common_properties(
        self,
        schema: Dict[str, Any],
        schema_key: str,
        post: PostContext,
        resolver: FieldResolver,
    ) -> None:
        schema['url'] = post.permalink

        if schema_key in ARTICLE_KEYS:
            schema['datePublished'] = post.date.isoformat() if post.date else ''
            schema['dateModified'] = post.modified.isoformat() if post.modified else ''
            schema['mainEntityOfPage'] = {
                '@type': 'WebPage',
                '@id': post.permalink,
            }
        elif schema_key == 'event':
            schema['startDate'] = post.date.isoformat() if post.date else ''
        elif schema_key == 'organization':
            schema['logo'] = resolver.site_logo()

    def _build_address(
        self,
        assignment: SchemaAssignment,
        resolver: FieldResolver,
    ) -> Optional[Dict[str, Any]]:
        """PostalAddress from the address sub-fields, or None if all are empty."""
        if not assignment.is_field_enabled('address'):
            return None

        meta_map = assignment.meta_map

        parts = {}
        for sub_field in ADDRESS_SUB_FIELDS:
            if sub_field in meta_map:
                parts[sub_field] = _as_text(resolver.resolve(meta_map[sub_field])).strip()

        if not any(parts.values()):
            return None

        address: Dict[str, Any] = {'@type': 'PostalAddress'}
        for sub_field in ADDRESS_SUB_FIELDS:
            value = parts.get(sub_field)
            if not value:
                continue
            if sub_field == 'addressCountry':
                address['addressCountry'] = {
                    '@type': 'Country',
                    'name': sanitize_text_field(value),
                }
            else:
                address[sub_field] = sanitize_text_field(value)
        return address

    @staticmethod
    def _social_url(mapping: str, resolver: FieldResolver) -> str:
        url = mapping if is_valid_url(mapping) else resolver.resolve(mapping)
        if isinstance(url, list):
            url = url[0] if url else ''
        return esc_url_raw(url) if is_valid_url(url) else ''

    def _apply_field(
        self,
        schema: Dict[str, Any],
        field_name: str,
        value: FieldValue,
        resolver: FieldResolver,
    ) -> None:
        """Place a resolved value into the schema under its field's shape."""
        if field_name == 'author':
            author_value = _as_text(value)
            author: Dict[str, Any] = {'@type': 'Person'}
            if is_valid_url(author_value):
                author['@id'] = esc_url_raw(author_value)
            else:
                author['name'] = author_value
            schema['author'] = author

        elif field_name == 'publisher':
            schema['publisher'] = self._publisher(_as_text(value), resolver)

        elif field_name == 'url':
            url = _as_text(value).strip()
            if is_valid_url(url):
                schema['url'] = esc_url_raw(url)

        elif field_name == 'contactPoint':
            schema['contactPoint'] = {
                '@type': 'ContactPoint',
                'telephone': sanitize_text_field(_as_text(value)),
                'contactType': 'customer service',
            }

        elif field_name == 'worksFor':
            schema['worksFor'] = {
                '@type': 'Organization',
                'name': sanitize_text_field(_as_text(value)),
            }

        elif field_name == 'ratingValue':
            rating = _leading_number(_as_text(value))
            if rating is not None and self.config.rating_min < rating <= self.config.rating_max:
                schema.setdefault('aggregateRating', {'@type': 'AggregateRating'})
                schema['aggregateRating']['ratingValue'] = f"{rating:g}"

        elif field_name == 'reviewCount':
            count = _leading_number(_as_text(value))
            if count is not None and int(count) > 0:
                schema.setdefault('aggregateRating', {'@type': 'AggregateRating'})
                schema['aggregateRating']['reviewCount'] = str(int(count))

        elif field_name in ('openingHours', 'keywords'):
            items = _split_list(value)
            if not items:
                return
            if field_name == 'openingHours' and isinstance(value, str) and ',' not in value:
                schema[field_name] = items[0]
            else:
                schema[field_name] = items

        elif field_name in ('latitude', 'longitude'):
            bounds = LATITUDE_RANGE if field_name == 'latitude' else LONGITUDE_RANGE
            coordinate = _coordinate(_as_text(value), bounds)
            if coordinate is not None:
                schema.setdefault('geo', {'@type': 'GeoCoordinates'})
                schema['geo'][field_name] = coordinate

        else:
            schema[field_name] = sanitize_text_field(_as_text(value))

    def _publisher(self, name: str, resolver: FieldResolver) -> Dict[str, Any]:
        publisher = {'@type': 'Organization', 'name': name}
        logo = resolver.site_logo()
        if logo:
            publisher['logo'] = logo
        return publisher

    def _build_image(
        self,
        mapping: str,
        resolver: FieldResolver,
        post: Optional[PostContext],
        author_type: Optional[str],
    ) -> Union[str, Dict[str, Any], None]:
        url, ref = self._image_source(mapping, resolver, post)
        if not is_url_like(url):
            return None

        url = esc_url_raw(absolutize_url(url.strip(), self.site.url))

        # Author Person images are a plain URL
        if author_type == 'Person':
            return url

        image: Dict[str, Any] = {'@type': 'ImageObject', 'url': url}
        if ref is None:
            ref = self.site.find_attachment_by_url(url)

        if ref is not None and ref.width and ref.height:
            image['width'] = int(ref.width)
            image['height'] = int(ref.height)
        elif post is not None:
            image['width'] = self.config.default_image_width
            image['height'] = self.config.default_image_height
        return image

    def _image_source(
        self,
        mapping: str,
        resolver: FieldResolver,
        post: Optional[PostContext],
    ) -> Tuple[str, Optional[ImageRef]]:
        """Resolve an image mapping to a URL and, when known, its attachment."""
        if mapping == FEATURED_IMAGE_TOKEN:
            if post is not None:
                ref = post.featured_image
                return (ref.url if ref else ''), ref
            for ref in self.site.recent_featured_images:
                if ref and ref.url:
                    return ref.url, ref
            return resolver.site_logo(), resolver.site_logo_image()

        if mapping == SITE_LOGO_TOKEN:
            return resolver.site_logo(), resolver.site_logo_image()

        return _as_text(resolver.resolve(mapping)), None

    def _build_logo(self, mapping: str, resolver: FieldResolver) -> str:
        if mapping == SITE_LOGO_TOKEN:
            url = resolver.site_logo()
        else:
            url = _as_text(resolver.resolve(mapping))

        if not is_url_like(url):
            return ''
        return esc_url_raw(absolutize_url(url.strip(), self.site.url))

    # ------------------------------------------------------------------
    # Cleanup, defaults and validation
    # ------------------------------------------------------------------

    def _finalize(self, schema_key: str, schema: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        schema = self._cleanup(schema)
        self._apply_defaults(schema_key, schema)

        validation_type = schema_key
        if schema_key == AUTHOR_KEY and isinstance(schema.get('@type'), str):
            validation_type = schema['@type'].lower()

        if not self.validator.should_output_schema(schema, validation_type):
            logger.info(f"Schema '{schema_key}' is missing required fields; not output")
            return None

        if '@context' not in schema or '@type' not in schema:
            return None

        return schema

    @staticmethod
    def _cleanup(schema: Dict[str, Any]) -> Dict[str, Any]:
        """Drop empty values, stray address sub-fields and type-only objects."""
        cleaned: Dict[str, Any] = {}
        for key, value in schema.items():
            if key in ('@context', '@type'):
                cleaned[key] = value
                continue
            if key in ADDRESS_SUB_FIELDS:
                continue
            if isinstance(value, dict):
                if any(k != '@type' for k in value):
                    cleaned[key] = value
            elif not is_blank(value):
                cleaned[key] = value
        return cleaned

    def _apply_defaults(self, schema_key: str, schema: Dict[str, Any]) -> None:
        resolver = FieldResolver(self.site)

        if schema_key in ARTICLE_KEYS:
            if 'publisher' not in schema:
                schema['publisher'] = self._publisher(self.site.name, resolver)

        elif schema_key == 'event':
            if 'location' not in schema:
                schema['location'] = {'@type': 'Place', 'name': 'Online'}

        elif schema_key == 'organization':
            if 'logo' not in schema:
                logo = resolver.site_logo()
                if logo:
                    schema['logo'] = logo
            if 'sameAs' not in schema:
                profiles = resolver.social_profiles()
                if profiles:
                    schema['sameAs'] = profiles


def _as_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ', '.join(str(v) for v in value if not is_blank(v))
    return '' if value is None else str(value)


def _split_list(value: FieldValue) -> List[str]:
    raw = value if isinstance(value, list) else str(value).split(',')
    items = [sanitize_text_field(v) for v in raw]
    return [v for v in items if v]


def _leading_number(text: str) -> Optional[float]:
    match = _LEADING_NUMBER_RE.match(text)
    if not match:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def _coordinate(text: str, bounds: Tuple[float, float]) -> Optional[float]:
    cleaned = _GEO_CLEAN_RE.sub('', text.strip())
    if not cleaned or cleaned.count('.') > 1:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    low, high = bounds
    return number if low <= number <= high else None
