# ==============================================
# docmigrate command line
# ==============================================
#
# PURPOSE:
#   Command-line interface for running and planning migrations.
#   Connection settings come from the environment / .env file;
#   flags override the run settings.
#
# COMMANDS:
# ---------
# 1. Run a migration:
#    docmigrate migrate --mode existing-tables --schema-script schema.sql
#    docmigrate migrate --collections users,posts --batch-size 500
#
# 2. Show the inferred schema of one collection:
#    docmigrate analyze users --sample-size 200
#
# 3. Show relationships and insertion order from a schema script
#    (no database needed):
#    docmigrate plan schema.sql
#    docmigrate plan schema.sql comments posts users
#
# EXIT CODES:
# -----------
#   0 → success
#   1 → migration finished with per-collection errors
#   2 → fatal error (connection, schema script, configuration)
#
# ==============================================

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from docmigrate import __version__
from docmigrate.analysis import SchemaAnalyzer
from docmigrate.config import AppConfig, MigrationMode, get_config
from docmigrate.exceptions import MigrationError
from docmigrate.logger import configure_logging
from docmigrate.relationships import DDLParser, DependencyResolver
from docmigrate.storage import MongoClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_FATAL = 2


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _split_collections(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    names = [name.strip() for name in raw.split(",") if name.strip()]
    return names or None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmigrate",
        description="Migrate MongoDB collections into MySQL tables",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="debug, info, warning or error")

    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate_parser = subparsers.add_parser("migrate", help="Run a migration")
    migrate_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in MigrationMode] + ["auto-tables", "pre-existing"],
        help="Create tables or copy into existing ones",
    )
    migrate_parser.add_argument("--schema-script", help="Path to a CREATE TABLE script")
    migrate_parser.add_argument("--batch-size", type=int, help="Documents per insert batch")
    migrate_parser.add_argument("--sample-size", type=int, help="Documents sampled per collection")
    migrate_parser.add_argument("--collections", help="Comma-separated collection names")

    analyze_parser = subparsers.add_parser("analyze", help="Print the inferred schema of a collection")
    analyze_parser.add_argument("collection")
    analyze_parser.add_argument("--sample-size", type=int, help="Documents to sample")

    plan_parser = subparsers.add_parser("plan", help="Print relationships and insertion order")
    plan_parser.add_argument("schema_script")
    plan_parser.add_argument("tables", nargs="*", help="Tables to order (default: every created table)")

    return parser


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of config with the run settings given on the command line."""
    changes = {}
    if getattr(args, "mode", None):
        changes["mode"] = MigrationMode.parse(args.mode)
    if getattr(args, "schema_script", None) and args.command == "migrate":
        changes["schema_script"] = args.schema_script
    if getattr(args, "batch_size", None) is not None:
        changes["batch_size"] = args.batch_size
    if getattr(args, "sample_size", None) is not None:
        changes["sample_size"] = args.sample_size
    if getattr(args, "collections", None):
        changes["collections"] = _split_collections(args.collections)
    if args.log_level:
        changes["log_level"] = args.log_level

    if not changes:
        return config
    migration = dataclasses.replace(config.migration, **changes)
    return dataclasses.replace(config, migration=migration)


def run_migrate(config: AppConfig) -> int:
    from docmigrate.migration_engine import MigrationEngine

    result = MigrationEngine(config).migrate()
    _print_json(result.to_dict())
    return EXIT_OK if result.success else EXIT_ERRORS


def run_analyze(config: AppConfig, collection: str) -> int:
    with MongoClient.from_config(config.mongo) as mongo:
        schema = SchemaAnalyzer(mongo).analyze(collection, config.migration.sample_size)
    _print_json(schema.to_dict())
    return EXIT_OK


def run_plan(schema_script: str, tables: List[str]) -> int:
    ddl_text = Path(schema_script).read_text(encoding="utf-8")
    parser = DDLParser()
    relationships = parser.parse_relationships(ddl_text)
    table_names = tables or parser.table_names(ddl_text)
    order = DependencyResolver().insertion_order(table_names, relationships)
    _print_json({
        "relationships": [rel.to_dict() for rel in relationships],
        "insertion_order": order,
    })
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(get_config(), args)
        configure_logging(config.migration.log_level)

        if args.command == "migrate":
            return run_migrate(config)
        if args.command == "analyze":
            return run_analyze(config, args.collection)
        return run_plan(args.schema_script, args.tables)
    except MigrationError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
