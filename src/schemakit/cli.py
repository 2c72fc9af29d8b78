"""Command-line interface for schemakit."""

import sys
import json
from typing import Dict, List, Optional

from pydantic import ValidationError

from schemakit.config import MapperConfig, load_data_file, settings
from schemakit.conflicts import SchemaConflictDetector
from schemakit.extractor import audit_page
from schemakit.integration import SchemaIntegration, rich_results_test_url
from schemakit.logging_config import get_logger, setup_logging
from schemakit.mapper import SchemaMapper
from schemakit.models import PostContext, SchemaAssignment, SiteContext
from schemakit.storage import get_store
from schemakit.validator import SchemaValidator

logger = get_logger(__name__)


def load_assignments(path: str) -> List[SchemaAssignment]:
    """Read assignments from a JSON or YAML file.

    Accepts a single assignment, a list of assignments, or a mapping with an
    'assignments' key holding either a list or a key -> assignment mapping.

    Raises:
        pydantic.ValidationError: If an entry is malformed.
    """
    data = load_data_file(path)
    entries = data.get('assignments', data) if isinstance(data, dict) else data

    if isinstance(entries, dict) and 'schema_type' not in entries:
        entries = [{'schema_type': key, **value} for key, value in entries.items()]
    elif isinstance(entries, dict):
        entries = [entries]

    return [SchemaAssignment(**entry) for entry in entries or []]


def _mapper_from_args(args):
    """Build a mapper (and the store it reads, if any) from CLI arguments."""
    config = MapperConfig.from_file(args.config) if args.config else MapperConfig.from_env()
    site = SiteContext.from_dict(load_data_file(args.site))

    if args.assignments:
        assignments: Dict[str, SchemaAssignment] = {
            a.schema_type: a for a in load_assignments(args.assignments)
        }
        return SchemaMapper(assignments, site, config=config), None

    store = get_store(db_url=args.db)
    return SchemaMapper(store, site, config=config), store


def _load_post(path: Optional[str]) -> Optional[PostContext]:
    return PostContext.from_dict(load_data_file(path)) if path else None


def assign_command(args):
    """Save schema assignments from a file into the settings store."""
    try:
        assignments = load_assignments(args.file)
    except ValidationError as e:
        print(f"Error: invalid assignment file {args.file}:\n{e}")
        sys.exit(1)

    store = get_store(db_url=args.db)
    try:
        for assignment in assignments:
            saved = store.save_assignment(assignment)
            print(f"Saved assignment: {saved.schema_type} ({saved.post_type})")
        logger.info(f"Saved {len(assignments)} assignments to {store.db_url}")
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        store.close()


def build_command(args):
    """Build the JSON-LD for one schema key."""
    mapper, store = _mapper_from_args(args)
    post = _load_post(args.post)

    try:
        if post is not None:
            schema = mapper.build_schema(args.key, post)
        else:
            schema = mapper.build_global_schema(args.key)
    finally:
        if store is not None:
            store.close()

    if schema is None:
        print(f"No schema output for '{args.key}' (not assigned, not applicable, or missing required fields)")
        sys.exit(1)

    print(json.dumps(schema, indent=2, ensure_ascii=False))


def validate_command(args):
    """Validate assignment configurations."""
    try:
        assignments = load_assignments(args.file)
    except ValidationError as e:
        print(f"Error: invalid assignment file {args.file}:\n{e}")
        sys.exit(1)

    results = []
    for assignment in assignments:
        validator = SchemaValidator()
        valid = validator.validate(
            assignment.schema_type,
            assignment.meta_map,
            assignment.enabled_fields,
        )
        results.append({
            'schema_type': assignment.schema_type,
            'valid': valid,
            'errors': [e.to_dict() for e in validator.errors],
            'warnings': [w.to_dict() for w in validator.warnings],
        })

    if args.output == "json":
        print(json.dumps(results, indent=2))
    else:
        for result in results:
            status = "✅ valid" if result['valid'] else "❌ invalid"
            print(f"\n{result['schema_type']}: {status}")
            for error in result['errors']:
                print(f"  • Error: {error['message']}")
                if error.get('suggestion'):
                    print(f"    Fix: {error['suggestion']}")
            for warning in result['warnings']:
                print(f"  • Warning: {warning['message']}")

    if not all(r['valid'] for r in results):
        sys.exit(1)


def audit_command(args):
    """Audit the JSON-LD in an HTML file."""
    with open(args.file, 'r', encoding='utf-8') as f:
        html = f.read()

    audit = audit_page(html, args.url)

    if args.output == "json":
        output = {
            'url': audit.url,
            'schemas': [
                {
                    'schema_type': s.schema_type,
                    'valid': s.valid,
                    'errors': [e.to_dict() for e in s.errors],
                    'warnings': [w.to_dict() for w in s.warnings],
                }
                for s in audit.schemas
            ],
            'conflicts': [c.to_dict() for c in audit.conflicts],
            'parse_errors': audit.parse_errors,
            'rich_results_test': rich_results_test_url(audit.url),
        }
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        print(f"\n{'=' * 60}")
        print(f"Structured Data Audit for: {audit.url}")
        print(f"{'=' * 60}")
        print(f"\nSchemas found: {', '.join(audit.schema_types) or 'none'}")
        for s in audit.schemas:
            status = "✅" if s.valid else "❌"
            print(f"\n{status} {s.schema_type}")
            for error in s.errors:
                print(f"  • Error: {error.message}")
            for warning in s.warnings:
                print(f"  • Warning: {warning.message}")
        if audit.conflicts:
            print(f"\n⚠️  Conflicts:")
            for conflict in audit.conflicts:
                print(f"  • {conflict.message}")
        if audit.parse_errors:
            print(f"\n⚠️  Parse errors:")
            for error in audit.parse_errors:
                print(f"  • {error}")
        print(f"\nRich Results Test: {rich_results_test_url(audit.url)}")
        print(f"\n{'=' * 60}\n")

    if not audit.is_clean:
        sys.exit(1)


def head_command(args):
    """Render the <head> script blocks for a page."""
    mapper, store = _mapper_from_args(args)
    post = _load_post(args.post)

    try:
        detector = SchemaConflictDetector(store=store, config=mapper.config)
        integration = SchemaIntegration(mapper, detector)
        print(integration.render_head(post, url=args.url), end='')
    finally:
        if store is not None:
            store.close()


def _add_source_arguments(subparser):
    subparser.add_argument("--site", required=True, help="Site context file (JSON or YAML)")
    subparser.add_argument("--post", help="Post context file (JSON or YAML)")
    subparser.add_argument(
        "--assignments",
        help="Read assignments from this file instead of the settings store",
    )
    subparser.add_argument("--config", help="Mapper configuration file (JSON or YAML)")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="schemakit - Map site content to schema.org JSON-LD"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL,
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help="Write logs to file in addition to console",
    )
    parser.add_argument(
        "--db",
        default=settings.DATABASE_URL,
        help="Settings store URL (default: SCHEMAKIT_DATABASE_URL)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Assign command parser
    assign_parser = subparsers.add_parser(
        "assign", help="Save schema assignments to the settings store."
    )
    assign_parser.add_argument("file", help="Assignment file (JSON or YAML)")
    assign_parser.set_defaults(func=assign_command)

    # Build command parser
    build_parser = subparsers.add_parser(
        "build", help="Build the JSON-LD for a schema key."
    )
    build_parser.add_argument("key", help="Schema key (e.g. article, local_business)")
    _add_source_arguments(build_parser)
    build_parser.set_defaults(func=build_command)

    # Validate command parser
    validate_parser = subparsers.add_parser(
        "validate", help="Validate assignment configurations."
    )
    validate_parser.add_argument("file", help="Assignment file (JSON or YAML)")
    validate_parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    validate_parser.set_defaults(func=validate_command)

    # Audit command parser
    audit_parser = subparsers.add_parser(
        "audit", help="Audit the structured data in an HTML file."
    )
    audit_parser.add_argument("file", help="HTML file to audit")
    audit_parser.add_argument("--url", default="", help="URL the page was served from")
    audit_parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    audit_parser.set_defaults(func=audit_command)

    # Head command parser
    head_parser = subparsers.add_parser(
        "head", help="Render the JSON-LD <script> blocks for a page."
    )
    _add_source_arguments(head_parser)
    head_parser.add_argument("--url", help="Page URL used when storing conflicts")
    head_parser.set_defaults(func=head_command)

    args = parser.parse_args(argv)

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
