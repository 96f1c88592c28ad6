# ==============================================
# MigrationEngine
# ==============================================
#
# PURPOSE:
#   Run one complete migration: connect both stores, decide the
#   collection order, obtain destination tables, copy documents in
#   batches and report a MigrationResult.
#
# CLASS: MigrationEngine
# ----------------------
#   Constructor:
#   ------------
#   - __init__(config=None, mongo_client=None, mysql_client=None, advisor=None)
#       Collaborators default to the real clients built from config.
#
#   Methods:
#   --------
#   - migrate() -> MigrationResult
#       Raises only StoreConnectionError, SchemaScriptError (generate
#       mode) or NotConnectedError. Both stores are disconnected on
#       every exit path.
#
#   - cancel() -> None
#       Ask a running migration to stop at the next batch or
#       collection boundary. "Migration cancelled" is recorded.
#
# MODES:
# ------
#   generate-tables:
#     1. Execute the schema script (if any) and parse its relationships.
#     2. Analyze every collection (failures recorded, others continue).
#     3. Ask the advisor about cross-collection relationships.
#     4. Per collection in dependency order: create the table (an empty
#        collection gets only id and mongo_id; otherwise the advisor
#        layout or one column per leaf field), re-read its live
#        columns, map, copy.
#
#   existing-tables:
#     1. Parse relationships from the schema script (if readable).
#     2. Per collection in dependency order: require the table and one
#        sample document, map (advisor hint or fallback), drop mappings
#        to unknown columns, copy.
#
# ERRORS:
# -------
#   Per-collection failures are appended to result.errors as
#   "Failed to analyze collection <name>: <reason>" or
#   "Failed to migrate collection <name>: <reason>".
#
# ==============================================

import dataclasses
import logging
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from docmigrate.advisor import SchemaAdvisor
from docmigrate.analysis import (
    CollectionSchema,
    ColumnDescriptor,
    ColumnMapping,
    MigrationResult,
    RelationalType,
    SchemaAnalyzer,
    TableRelationship,
    leaf_fields,
)
from docmigrate.config import AppConfig, MigrationMode, get_config
from docmigrate.exceptions import (
    CollectionAnalysisError,
    CollectionMigrationError,
    NotConnectedError,
    SchemaScriptError,
)
from docmigrate.mapping import IDENTIFIER_FIELD, MappingResolver, TypeMapper
from docmigrate.normalization import canonicalize, with_suffix
from docmigrate.relationships import DDLParser, DependencyResolver
from docmigrate.storage import MongoClient, MySQLClient

logger = logging.getLogger(__name__)

ROW_ID_COLUMN = "id"
SOURCE_ID_COLUMN = "mongo_id"
CANCELLED_MESSAGE = "Migration cancelled"

_TEXT_TYPES = (RelationalType.TEXT, RelationalType.VARCHAR)
_INTEGER_TYPES = (RelationalType.INTEGER, RelationalType.BIGINT)


def row_id_column() -> ColumnDescriptor:
    return ColumnDescriptor(
        name=ROW_ID_COLUMN,
        type=RelationalType.BIGINT,
        nullable=False,
        primary_key=True,
        auto_increment=True,
    )


def source_id_column() -> ColumnDescriptor:
    return ColumnDescriptor(
        name=SOURCE_ID_COLUMN,
        type=RelationalType.VARCHAR,
        nullable=False,
        unique=True,
    )


class MigrationEngine:
    """
    Orchestrates a document store → relational store migration.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        mongo_client=None,
        mysql_client=None,
        advisor=None,
    ):
        self.config = config or get_config()
        self.mongo = mongo_client or MongoClient.from_config(self.config.mongo)
        self.mysql = mysql_client or MySQLClient.from_config(self.config.mysql)
        self.advisor = advisor or SchemaAdvisor.from_config(self.config.advisor)

        self.analyzer = SchemaAnalyzer(self.mongo)
        self.ddl_parser = DDLParser()
        self.dependency_resolver = DependencyResolver()
        self.mapping_resolver = MappingResolver()

        self._cancel_event = threading.Event()

    # ------------------------------------------
    # Public API
    # ------------------------------------------

    def migrate(self) -> MigrationResult:
        """
        Run the migration in the configured mode.

        Returns:
            MigrationResult; success is True only when no errors were recorded
        """
        result = MigrationResult()
        mode = self.config.migration.mode
        started = time.time()

        logger.info(f"Starting migration in {mode.value} mode")
        try:
            self.mongo.connect()
            self.mysql.connect()

            if mode == MigrationMode.GENERATE_TABLES:
                self._migrate_generating_tables(result)
            else:
                self._migrate_into_existing_tables(result)
        finally:
            self._disconnect()
            result.migration_time = time.time() - started

        result.success = not result.errors
        logger.info(
            f"Migration finished in {result.migration_time:.2f}s: "
            f"{len(result.migrated_collections)} collections, "
            f"{result.total_documents} documents, {len(result.errors)} errors"
        )
        return result

    def cancel(self) -> None:
        logger.warning("Cancellation requested")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    # ------------------------------------------
    # Generate-tables mode
    # ------------------------------------------

    def _migrate_generating_tables(self, result: MigrationResult) -> None:
        relationships: List[TableRelationship] = []
        script = self._read_schema_script()
        if script is not None:
            self.mysql.execute_statements(self.ddl_parser.split_statements(script))
            relationships = self.ddl_parser.parse_relationships(script)

        schemas: Dict[str, CollectionSchema] = {}
        for name in self._collection_names():
            if self._stop_if_cancelled(result):
                return
            try:
                schemas[name] = self._analyze_collection(name)
            except CollectionAnalysisError as e:
                logger.error(str(e))
                result.errors.append(str(e))

        if len(schemas) > 1:
            analysis = self.advisor.analyze_relationships(list(schemas.values()))
            if analysis:
                logger.info(f"Advisor relationship analysis:\n{analysis}")

        for name in self._dependency_order(list(schemas), relationships):
            if self._stop_if_cancelled(result):
                return
            try:
                completed = self._guarded(name, self._migrate_generated_table, schemas[name], result)
            except CollectionMigrationError as e:
                logger.error(str(e))
                result.errors.append(str(e))
                continue
            if completed is None:
                continue
            if not completed:
                self._stop_if_cancelled(result)
                return
            result.migrated_collections.append(name)

    def _migrate_generated_table(self, schema: CollectionSchema, result: MigrationResult) -> Optional[bool]:
        """
        Create the table for one collection and copy it.

        Returns:
            None when skipped, False when cancelled part way, True when copied
        """
        table_name = canonicalize(schema.name)
        if not schema.fields:
            self.mysql.create_table(table_name, [row_id_column(), source_id_column()])
            logger.info(f"Collection {schema.name} is empty, created {table_name} with no rows")
            return True

        source_fields = self._source_fields(schema)

        proposed = self.advisor.propose_table_schema(schema)
        if proposed:
            columns = self._with_identifier_column(proposed)
            planned: Optional[List[ColumnMapping]] = None
        else:
            columns, planned = self._columns_from_fields(schema)

        self.mysql.create_table(table_name, columns)
        live_columns = self.mysql.get_table_columns(table_name)

        if planned is None:
            planned = self.mapping_resolver.fallback(source_fields, live_columns)
        mappings = self._validate_mappings(planned, live_columns, table_name)
        if not mappings:
            logger.warning(f"No usable column mappings for {table_name}, skipping {schema.name}")
            return None

        return self._copy_documents(schema.name, table_name, mappings, live_columns, result)

    def _columns_from_fields(self, schema: CollectionSchema):
        """
        One nullable column per leaf field, after the row id and source id.

        Returns:
            (columns, mappings) with mappings in column order
        """
        columns = [row_id_column(), source_id_column()]
        mappings = [ColumnMapping(
            source_field=IDENTIFIER_FIELD,
            destination_column=SOURCE_ID_COLUMN,
            transformation="stringify identifier",
        )]
        used = {ROW_ID_COLUMN, SOURCE_ID_COLUMN}

        for descriptor in leaf_fields(schema):
            if descriptor.name == IDENTIFIER_FIELD:
                continue
            base = canonicalize(descriptor.name)
            if not base:
                continue
            column_name = base
            suffix = 2
            while column_name in used:
                column_name = with_suffix(base, suffix)
                suffix += 1
            used.add(column_name)

            columns.append(ColumnDescriptor(
                name=column_name,
                type=TypeMapper.relational_type(descriptor.type, descriptor.is_array),
            ))
            mappings.append(ColumnMapping(source_field=descriptor.name, destination_column=column_name))

        return columns, mappings

    def _with_identifier_column(self, proposed: Sequence[ColumnDescriptor]) -> List[ColumnDescriptor]:
        columns = []
        for column in proposed:
            # Integer primary keys are never written to, so the store must fill them
            if column.primary_key and column.type in _INTEGER_TYPES:
                column = dataclasses.replace(column, auto_increment=True)
            columns.append(column)

        identifier = self.mapping_resolver.identifier_column(columns)
        if identifier is not None and identifier.type in _TEXT_TYPES:
            return columns

        columns = [column for column in columns if column.name != SOURCE_ID_COLUMN]
        return [source_id_column()] + columns

    # ------------------------------------------
    # Existing-tables mode
    # ------------------------------------------

    def _migrate_into_existing_tables(self, result: MigrationResult) -> None:
        relationships: List[TableRelationship] = []
        try:
            script = self._read_schema_script()
        except SchemaScriptError as e:
            logger.warning(f"{e}; continuing without relationships")
            script = None
        if script is not None:
            relationships = self.ddl_parser.parse_relationships(script)

        for name in self._dependency_order(self._collection_names(), relationships):
            if self._stop_if_cancelled(result):
                return
            try:
                completed = self._guarded(name, self._migrate_existing_table, name, result)
            except CollectionMigrationError as e:
                logger.error(str(e))
                result.errors.append(str(e))
                continue
            if completed is None:
                continue
            if not completed:
                self._stop_if_cancelled(result)
                return
            result.migrated_collections.append(name)

    def _migrate_existing_table(self, collection_name: str, result: MigrationResult) -> Optional[bool]:
        """
        Copy one collection into its pre-existing table.

        Returns:
            None when skipped, False when cancelled part way, True when copied
        """
        table_name = canonicalize(collection_name)

        if not self.mysql.table_exists(table_name):
            logger.warning(f"Table {table_name} does not exist, skipping collection {collection_name}")
            return None

        sample = self.mongo.find_one(collection_name)
        if sample is None:
            logger.warning(f"Collection {collection_name} is empty, skipping")
            return None

        live_columns = self.mysql.get_table_columns(table_name)
        sample_schema = self.analyzer.analyze_documents(collection_name, [sample])
        source_fields = self._source_fields(sample_schema)

        hint = self.advisor.propose_column_mapping(sample, table_name, live_columns)
        mappings = self.mapping_resolver.resolve(source_fields, live_columns, hint)
        mappings = self._validate_mappings(mappings, live_columns, table_name)

        if not mappings:
            logger.warning(
                f"No valid column mappings for {collection_name} → {table_name}, skipping"
            )
            return None

        return self._copy_documents(collection_name, table_name, mappings, live_columns, result)

    # ------------------------------------------
    # Shared steps
    # ------------------------------------------

    def _analyze_collection(self, name: str) -> CollectionSchema:
        try:
            return self.analyzer.analyze(name, self.config.migration.sample_size)
        except NotConnectedError:
            raise
        except Exception as e:
            raise CollectionAnalysisError(f"Failed to analyze collection {name}: {e}") from e

    @staticmethod
    def _guarded(name: str, step, *args) -> Optional[bool]:
        """Run one per-collection step; lost connections stay fatal."""
        try:
            return step(*args)
        except NotConnectedError:
            raise
        except Exception as e:
            raise CollectionMigrationError(f"Failed to migrate collection {name}: {e}") from e

    def _copy_documents(
        self,
        collection_name: str,
        table_name: str,
        mappings: List[ColumnMapping],
        live_columns: Sequence[ColumnDescriptor],
        result: MigrationResult,
    ) -> bool:
        """
        Page through a collection and insert every batch.

        Returns:
            False if cancelled before the collection was exhausted
        """
        batch_size = self.config.migration.batch_size
        conflict_column = self._conflict_column(mappings, live_columns)
        total = self.mongo.count_documents(collection_name)

        logger.info(
            f"Migrating {total} documents from {collection_name} into {table_name} "
            f"({len(mappings)} mapped columns)"
        )

        skip = 0
        processed = 0
        inserted = 0
        while True:
            if self.cancelled:
                logger.warning(f"Stopped {collection_name} after {processed}/{total} documents")
                return False

            batch = self.mongo.fetch_page(collection_name, skip, batch_size)
            if not batch:
                break

            inserted += self.mysql.insert_documents(table_name, batch, mappings, conflict_column)
            processed += len(batch)
            result.total_documents += len(batch)
            logger.debug(f"Migrated {processed}/{total} documents for {collection_name}")

            if len(batch) < batch_size:
                break
            skip += batch_size

        logger.info(
            f"Finished {collection_name}: {processed} documents read, {inserted} rows inserted"
        )
        return True

    def _validate_mappings(
        self,
        mappings: Sequence[ColumnMapping],
        live_columns: Sequence[ColumnDescriptor],
        table_name: str,
    ) -> List[ColumnMapping]:
        """
        Keep mappings whose column exists and can be written, one per column.
        Column names are matched case-insensitively and replaced by the live name.
        """
        by_name = {column.name.lower(): column for column in live_columns}
        valid: List[ColumnMapping] = []
        taken = set()

        for mapping in mappings:
            column = by_name.get(mapping.destination_column.lower())
            if column is None:
                logger.warning(
                    f"Dropping mapping {mapping.source_field} → {mapping.destination_column}: "
                    f"no such column in {table_name}"
                )
                continue
            if column.auto_increment:
                logger.warning(
                    f"Dropping mapping {mapping.source_field} → {column.name}: "
                    f"column is generated by {table_name}"
                )
                continue
            if column.name in taken:
                continue
            taken.add(column.name)
            valid.append(ColumnMapping(
                source_field=mapping.source_field,
                destination_column=column.name,
                transformation=mapping.transformation,
            ))
        return valid

    @staticmethod
    def _conflict_column(
        mappings: Sequence[ColumnMapping],
        live_columns: Sequence[ColumnDescriptor],
    ) -> Optional[str]:
        keys = {column.name for column in live_columns if column.is_key}
        for mapping in mappings:
            if mapping.source_field == IDENTIFIER_FIELD and mapping.destination_column in keys:
                return mapping.destination_column
        for mapping in mappings:
            if mapping.destination_column in keys:
                return mapping.destination_column
        return None

    @staticmethod
    def _source_fields(schema: CollectionSchema) -> List[str]:
        names = [f.name for f in leaf_fields(schema) if f.name != IDENTIFIER_FIELD]
        return [IDENTIFIER_FIELD] + names

    def _collection_names(self) -> List[str]:
        names = self.mongo.list_collection_names()
        allowed = self.config.migration.collections
        if not allowed:
            return names

        missing = [name for name in allowed if name not in names]
        if missing:
            logger.warning(f"Requested collections not found: {', '.join(missing)}")
        return [name for name in names if name in allowed]

    def _dependency_order(
        self,
        collection_names: Sequence[str],
        relationships: Sequence[TableRelationship],
    ) -> List[str]:
        """Collections ordered so referenced tables are filled first."""
        by_table: Dict[str, List[str]] = {}
        for name in collection_names:
            by_table.setdefault(canonicalize(name), []).append(name)

        canonical_relationships = [
            TableRelationship(
                table_name=canonicalize(rel.table_name),
                referenced_table=canonicalize(rel.referenced_table),
                column_name=rel.column_name,
                referenced_column=rel.referenced_column,
            )
            for rel in relationships
        ]
        order = self.dependency_resolver.insertion_order(list(by_table), canonical_relationships)
        return [name for table in order for name in by_table[table]]

    def _read_schema_script(self) -> Optional[str]:
        path = self.config.migration.schema_script
        if not path:
            return None
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaScriptError(f"Could not read schema script {path}: {e}") from e
        logger.info(f"Loaded schema script {path}")
        return text

    def _stop_if_cancelled(self, result: MigrationResult) -> bool:
        if not self.cancelled:
            return False
        if CANCELLED_MESSAGE not in result.errors:
            result.errors.append(CANCELLED_MESSAGE)
        return True

    def _disconnect(self) -> None:
        try:
            self.mongo.disconnect()
        finally:
            self.mysql.disconnect()
