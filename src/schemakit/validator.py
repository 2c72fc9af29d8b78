"""
Schema Validator

Validates schema.org structured data before it is saved or output:
- Required field validation
- Data type validation (URLs, dates, numbers, emails)
- JSON-LD structure compliance
- Recommended field coverage
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from schemakit.constants import (
    ADDRESS_SUB_FIELDS,
    DEFAULT_FIELD_SUGGESTION,
    FIELD_EXAMPLES,
    FIELD_LABELS,
    FIELD_SUGGESTIONS,
    FIELD_TYPES,
    RATING_FIELDS,
    RECOMMENDED_FIELDS,
    REQUIRED_FIELDS,
    SCHEMA_CONTEXT,
)
from schemakit.models import ValidationIssue
from schemakit.sanitize import is_blank, is_valid_url

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r'^[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)+$')

# Non-ISO date formats accepted for literal date values
_DATE_FORMATS = (
    '%B %d, %Y',
    '%b %d, %Y',
    '%d %B %Y',
    '%d %b %Y',
    '%m/%d/%Y',
    '%Y/%m/%d',
)


class SchemaValidator:
    """Validate schema configurations and built JSON-LD objects."""

    REQUIRED_FIELDS = REQUIRED_FIELDS
    RECOMMENDED_FIELDS = RECOMMENDED_FIELDS
    FIELD_TYPES = FIELD_TYPES

    def __init__(self):
        """Initialize the validator with empty error and warning lists."""
        self._errors: List[ValidationIssue] = []
        self._warnings: List[ValidationIssue] = []

    @property
    def errors(self) -> List[ValidationIssue]:
        return list(self._errors)

    @property
    def warnings(self) -> List[ValidationIssue]:
        return list(self._warnings)

    def validate(
        self,
        schema_type: str,
        meta_map: Optional[Dict[str, str]] = None,
        enabled_fields: Optional[List[str]] = None,
        schema_data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Validate a schema configuration.

        Args:
            schema_type: Schema key (e.g. 'article', 'product')
            meta_map: Field mappings
            enabled_fields: Enabled fields; empty means all are enabled
            schema_data: Optional pre-built schema for structure checks

        Returns:
            True if there are no errors
        """
        self._errors = []
        self._warnings = []
        meta_map = meta_map or {}
        enabled_fields = enabled_fields or []

        if not schema_type:
            self._errors.append(ValidationIssue(
                field='schema_type',
                message='Schema type is required.',
                type='required_missing',
            ))
            return False

        schema_type = schema_type.lower()

        self._validate_required_fields(schema_type, meta_map, enabled_fields, schema_data)
        self._validate_field_types(schema_type, meta_map, enabled_fields)

        if schema_data and isinstance(schema_data, dict):
            self._validate_schema_structure(schema_type, schema_data)

        self._check_recommended_fields(schema_type, meta_map, enabled_fields)

        logger.debug(
            f"Validated {schema_type} configuration: "
            f"{len(self._errors)} errors, {len(self._warnings)} warnings"
        )
        return not self._errors

    def _validate_required_fields(
        self,
        schema_type: str,
        meta_map: Dict[str, str],
        enabled_fields: List[str],
        schema_data: Optional[Dict[str, Any]],
    ):
        """Check that every required field is enabled and mapped."""
        # FAQ items are validated when the FAQ schema is built
        if schema_type == 'faq':
            return

        for field in self.REQUIRED_FIELDS.get(schema_type, []):
            if field == 'address':
                if self._has_address(meta_map, enabled_fields, schema_data):
                    continue
                self._errors.append(self._required_missing(field, schema_type))
                continue

            is_enabled = not enabled_fields or field in enabled_fields
            has_value = not is_blank(meta_map.get(field))

            if not is_enabled or not has_value:
                self._errors.append(self._required_missing(field, schema_type))

    def _has_address(
        self,
        meta_map: Dict[str, str],
        enabled_fields: List[str],
        schema_data: Optional[Dict[str, Any]],
    ) -> bool:
        """Address is composite: the built object, any sub-field or the field itself counts."""
        if schema_data and isinstance(schema_data.get('address'), dict):
            if _has_properties(schema_data['address']):
                return True

        for sub_field in ADDRESS_SUB_FIELDS:
            mapping = meta_map.get(sub_field)
            if not is_blank(mapping) and str(mapping).replace('custom:', '').strip():
                return True

        is_address_enabled = not enabled_fields or 'address' in enabled_fields
        return is_address_enabled and not is_blank(meta_map.get('address'))

    def _required_missing(self, field: str, schema_type: str) -> ValidationIssue:
        label = self.get_field_label(field)
        return ValidationIssue(
            field=field,
            field_label=label,
            message=f'Required field "{label}" is missing or not enabled.',
            explanation=(
                f'The "{label}" field is required by Schema.org for this schema type. '
                'Without it, Google may not display your content as a rich result.'
            ),
            suggestion=self.get_field_suggestion(field, schema_type),
            example=self.get_field_example(field, schema_type),
            type='required_missing',
        )

    def _validate_field_types(
        self,
        schema_type: str,
        meta_map: Dict[str, str],
        enabled_fields: List[str],
    ):
        """Check literal values in URL, date, number and email fields."""
        for field, value in meta_map.items():
            if is_blank(value):
                continue
            if enabled_fields and field not in enabled_fields:
                continue

            value = str(value)
            label = self.get_field_label(field)
            # A ':' marks a source mapping; only literal values can be checked
            is_mapping = ':' in value

            if self.is_url_field(field) and value.startswith(('http://', 'https://')):
                if not is_valid_url(value):
                    self._errors.append(ValidationIssue(
                        field=field,
                        field_label=label,
                        message=f'Field "{label}" must be a valid URL.',
                        explanation=(
                            f'The value "{value}" is not a valid URL format. URLs must start '
                            'with http:// or https:// and be properly formatted.'
                        ),
                        suggestion=(
                            'Please enter a valid URL starting with http:// or https://. '
                            'For example: https://example.com/image.jpg'
                        ),
                        example='https://example.com/image.jpg',
                        type='invalid_url',
                    ))

            if self.is_date_field(field) and not is_mapping:
                if not _is_date(value):
                    self._errors.append(ValidationIssue(
                        field=field,
                        field_label=label,
                        message=f'Field "{label}" must be a valid date.',
                        explanation=(
                            f'The value "{value}" for "{label}" is not recognized as a valid date '
                            'format. Dates should be in ISO 8601 format (YYYY-MM-DD) or a '
                            'standard date format.'
                        ),
                        suggestion=(
                            'Please use ISO 8601 format (YYYY-MM-DD) or a standard date format like '
                            '"January 1, 2024". For dates with time, use ISO 8601: '
                            '2024-01-01T10:00:00+00:00'
                        ),
                        example='2024-01-01',
                        type='invalid_date',
                    ))

            if self.is_number_field(field) and not is_mapping:
                number = _to_number(value)
                if number is None:
                    self._errors.append(ValidationIssue(
                        field=field,
                        field_label=label,
                        message=f'Field "{label}" must be a valid number.',
                        explanation=(
                            f'The value "{value}" for "{label}" is not a valid number. '
                            'This field requires a numeric value.'
                        ),
                        suggestion=(
                            'Please enter a numeric value. For ratings, use numbers between 0 and 5. '
                            'For counts, use whole numbers (integers).'
                        ),
                        example=self.get_field_example(field, schema_type),
                        type='invalid_number',
                    ))
                elif field in RATING_FIELDS and not 0 <= number <= 5:
                    self._warnings.append(ValidationIssue(
                        field=field,
                        message=f'Field "{label}" is typically between 0 and 5 for ratings.',
                        type='out_of_range',
                    ))

            if self.is_email_field(field) and not is_mapping:
                if not _EMAIL_RE.match(value.strip()):
                    self._errors.append(ValidationIssue(
                        field=field,
                        message=f'Field "{label}" must be a valid email address.',
                        type='invalid_email',
                    ))

    def _validate_schema_structure(self, schema_type: str, schema_data: Dict[str, Any]):
        """Check the JSON-LD envelope and nested structures."""
        if schema_data.get('@context') != SCHEMA_CONTEXT:
            self._errors.append(ValidationIssue(
                field='@context',
                message=f'Schema must include @context set to "{SCHEMA_CONTEXT}".',
                type='invalid_structure',
            ))

        if is_blank(schema_data.get('@type')):
            self._errors.append(ValidationIssue(
                field='@type',
                message='Schema must include @type.',
                type='invalid_structure',
            ))

        if schema_type == 'product' and 'offers' in schema_data:
            offers = schema_data['offers']
            if not isinstance(offers, dict):
                self._errors.append(ValidationIssue(
                    field='offers',
                    message='Product offers must be an object with @type "Offer".',
                    type='invalid_structure',
                ))
            elif offers.get('@type') != 'Offer':
                self._errors.append(ValidationIssue(
                    field='offers',
                    message='Product offers must include @type "Offer".',
                    type='invalid_structure',
                ))

        if schema_type == 'faq' and 'mainEntity' in schema_data:
            main_entity = schema_data['mainEntity']
            if not isinstance(main_entity, list) or not main_entity:
                self._errors.append(ValidationIssue(
                    field='mainEntity',
                    message='FAQ schema must include at least one item in mainEntity.',
                    type='invalid_structure',
                ))

    def _check_recommended_fields(
        self,
        schema_type: str,
        meta_map: Dict[str, str],
        enabled_fields: List[str],
    ):
        for field in self.RECOMMENDED_FIELDS.get(schema_type, []):
            is_enabled = not enabled_fields or field in enabled_fields
            has_value = not is_blank(meta_map.get(field))

            if not is_enabled or not has_value:
                self._warnings.append(self._recommended_missing(field))

    def _recommended_missing(self, field: str) -> ValidationIssue:
        label = self.get_field_label(field)
        return ValidationIssue(
            field=field,
            message=f'Recommended field "{label}" is missing. This may affect rich results appearance.',
            type='recommended_missing',
        )

    def validate_schema_output(self, schema: Dict[str, Any], schema_type: str = '') -> bool:
        """
        Validate a complete JSON-LD object before it is output.

        Args:
            schema: Built schema dict
            schema_type: Schema key; inferred from @type when empty

        Returns:
            True if every required field has a value
        """
        self._errors = []
        self._warnings = []

        if not schema or not isinstance(schema, dict):
            return False

        if not schema_type:
            type_val = schema.get('@type')
            if isinstance(type_val, list):
                type_val = type_val[0] if type_val else ''
            if not type_val:
                return False
            schema_type = str(type_val)

        schema_type = schema_type.lower()

        # Author schemas validate as whatever @type they were emitted as
        if schema_type == 'author' and isinstance(schema.get('@type'), str):
            schema_type = schema['@type'].lower()

        if schema_type in ('faq', 'faqpage'):
            main_entity = schema.get('mainEntity')
            if not isinstance(main_entity, list) or not main_entity:
                self._errors.append(self._required_missing('mainEntity', 'faq'))
                return False
            return True

        for field in self.REQUIRED_FIELDS.get(schema_type, []):
            if not self._output_has_value(schema, field):
                self._errors.append(self._required_missing(field, schema_type))

        for field in self.RECOMMENDED_FIELDS.get(schema_type, []):
            if is_blank(schema.get(field)):
                self._warnings.append(self._recommended_missing(field))

        return not self._errors

    @staticmethod
    def _output_has_value(schema: Dict[str, Any], field: str) -> bool:
        if field not in schema:
            return False
        value = schema[field]
        if field == 'address' and isinstance(value, dict):
            return _has_properties(value)
        return not is_blank(value)

    @classmethod
    def should_output_schema(cls, schema: Dict[str, Any], schema_type: str = '') -> bool:
        """Convenience wrapper: True if the built schema may be output."""
        validator = cls()
        allowed = validator.validate_schema_output(schema, schema_type)
        if not allowed:
            logger.debug(
                f"Suppressing {schema_type or 'untyped'} schema: {validator.formatted_errors()}"
            )
        return allowed

    @classmethod
    def get_required_fields(cls, schema_type: str) -> List[str]:
        """Required fields for a schema key."""
        schema_type = (schema_type or '').lower()
        if schema_type == 'faq':
            return ['mainEntity']
        return list(cls.REQUIRED_FIELDS.get(schema_type, []))

    def is_url_field(self, field: str) -> bool:
        return field in self.FIELD_TYPES['url']

    def is_date_field(self, field: str) -> bool:
        return field in self.FIELD_TYPES['date']

    def is_number_field(self, field: str) -> bool:
        return field in self.FIELD_TYPES['number']

    def is_email_field(self, field: str) -> bool:
        return field in self.FIELD_TYPES['email']

    @staticmethod
    def get_field_label(field: str) -> str:
        return FIELD_LABELS.get(field, field.replace('_', ' ').title())

    @staticmethod
    def get_field_suggestion(field: str, schema_type: str = '') -> str:
        return FIELD_SUGGESTIONS.get(field, DEFAULT_FIELD_SUGGESTION)

    @staticmethod
    def get_field_example(field: str, schema_type: str = '') -> str:
        return FIELD_EXAMPLES.get(field, '')

    def has_errors(self) -> bool:
        return bool(self._errors)

    def has_warnings(self) -> bool:
        return bool(self._warnings)

    def formatted_errors(self) -> str:
        return "\n".join(e.message for e in self._errors)

    def formatted_warnings(self) -> str:
        return "\n".join(w.message for w in self._warnings)


def _has_properties(obj: Dict[str, Any]) -> bool:
    """True when a nested object carries anything besides @type."""
    return any(key != '@type' for key in obj)


def _to_number(value: str) -> Optional[float]:
    try:
        number = float(value.strip())
    except ValueError:
        return None
    if number != number or number in (float('inf'), float('-inf')):
        return None
    return number


def _is_date(value: str) -> bool:
    text = value.strip()
    if not text:
        return False
    try:
        datetime.fromisoformat(text.replace('Z', '+00:00'))
        return True
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            datetime.strptime(text, fmt)
            return True
        except ValueError:
            continue
    return False
