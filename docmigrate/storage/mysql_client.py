# ==============================================
# MySQLClient
# ==============================================
#
# PURPOSE:
#   Manages the MySQL (destination) connection and all SQL
#   operations a migration needs: inspect tables, run a schema
#   script, create tables, insert mapped rows.
#
# CLASS: MySQLClient
# ------------------
#   Holds one PyMySQL connection per run.
#
#   Constructor:
#   ------------
#   - __init__(host, port, user, password, database)
#       Store connection params. Don't connect yet.
#
#   Methods:
#   --------
#   - connect() -> None
#       Establish connection. Create database if it doesn't exist.
#       StoreConnectionError on failure.
#
#   - disconnect() -> None
#
#   - table_exists(table_name: str) -> bool
#
#   - get_table_columns(table_name: str) -> list[ColumnDescriptor]
#       INFORMATION_SCHEMA.COLUMNS (+ KEY_COLUMN_USAGE for references),
#       in ordinal order.
#
#   - execute_statements(statements: list[str]) -> None
#       Run a schema script, statement by statement.
#       SchemaScriptError on failure.
#
#   - create_table(table_name: str, columns: list[ColumnDescriptor]) -> None
#       CREATE TABLE IF NOT EXISTS.
#
#   - insert_documents(table_name, documents, mappings, conflict_column=None) -> int
#       Insert one row per document using the field → column mappings.
#       Rows violating a unique/primary key are skipped
#       (ON DUPLICATE KEY UPDATE c = c). Returns rows actually inserted.
#       DestinationWriteError on any other failure (batch rolled back).
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MySQLClient(...) as db:` usage.
#
# HELPERS:
# --------
#   - to_sql_value(value) → value PyMySQL can bind
#   - build_rows(documents, mappings) → list[tuple] in mapping order
#
# ==============================================

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

import pymysql
import pymysql.cursors
from bson import Binary, Decimal128, ObjectId, Timestamp

from docmigrate.analysis.schema import ColumnDescriptor, ColumnMapping, ColumnReference, RelationalType
from docmigrate.analysis.schema_analyzer import get_nested_value
from docmigrate.exceptions import (
    DestinationWriteError,
    NotConnectedError,
    SchemaScriptError,
    StoreConnectionError,
)
from docmigrate.mapping import IDENTIFIER_FIELD, TypeMapper

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def _json_default(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal128):
        return str(value.to_decimal())
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return str(value)


def to_sql_value(value: Any) -> Any:
    """Convert a document value into something PyMySQL can bind."""
    if value is None:
        return None
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, Timestamp):
        return value.as_datetime()
    if isinstance(value, Binary):
        return bytes(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=_json_default)
    if isinstance(value, (str, bool, int, float, Decimal, datetime, date, bytes)):
        return value
    return str(value)


def build_rows(documents: Sequence[dict], mappings: Sequence[ColumnMapping]) -> List[Tuple[Any, ...]]:
    """
    One tuple per document, values in mapping order.
    The identifier field is always stringified; missing paths become NULL.
    """
    rows = []
    for document in documents:
        values = []
        for mapping in mappings:
            if mapping.source_field == IDENTIFIER_FIELD:
                raw = document.get(IDENTIFIER_FIELD)
                values.append(str(raw) if raw is not None else None)
            else:
                values.append(to_sql_value(get_nested_value(document, mapping.source_field)))
        rows.append(tuple(values))
    return rows


class MySQLClient:
    def __init__(self, host, port, user, password, database):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connection = None

    @classmethod
    def from_config(cls, mysql_config) -> "MySQLClient":
        return cls(
            host=mysql_config.host,
            port=mysql_config.port,
            user=mysql_config.user,
            password=mysql_config.password,
            database=mysql_config.database,
        )

    def connect(self) -> None:
        # Establish connection to MySQL, create database if it doesn't exist
        try:
            self.connection = pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                charset="utf8mb4",
                autocommit=False,
            )
            with self.connection.cursor() as cursor:
                cursor.execute(f"CREATE DATABASE IF NOT EXISTS {quote_identifier(self.database)}")
                cursor.execute(f"USE {quote_identifier(self.database)}")
            logger.info(f"Connected to MySQL database '{self.database}'")
        except pymysql.err.MySQLError as e:
            logger.error(f"Could not connect to MySQL: {e}")
            self._close()
            raise StoreConnectionError("MySQL", str(e)) from e

    def disconnect(self) -> None:
        # Close connection cleanly
        if self.connection:
            self._close()
            logger.info("Disconnected from MySQL")

    def _close(self) -> None:
        if self.connection is not None:
            try:
                self.connection.close()
            except pymysql.err.Error:
                pass  # already closed by the server
        self.connection = None

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    def _require_connection(self):
        if self.connection is None:
            raise NotConnectedError("MySQL")
        return self.connection

    def table_exists(self, table_name: str) -> bool:
        connection = self._require_connection()
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) FROM INFORMATION_SCHEMA.TABLES "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s",
                (self.database, table_name)
            )
            row = cursor.fetchone()
        return bool(row and row[0])

    def get_table_columns(self, table_name: str) -> List[ColumnDescriptor]:
        connection = self._require_connection()
        with connection.cursor(pymysql.cursors.DictCursor) as cursor:
            cursor.execute(
                "SELECT COLUMN_NAME, DATA_TYPE, COLUMN_TYPE, IS_NULLABLE, COLUMN_KEY, EXTRA "
                "FROM INFORMATION_SCHEMA.COLUMNS "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s "
                "ORDER BY ORDINAL_POSITION",
                (self.database, table_name)
            )
            column_rows = cursor.fetchall()

            cursor.execute(
                "SELECT COLUMN_NAME, REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME "
                "FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s "
                "AND REFERENCED_TABLE_NAME IS NOT NULL",
                (self.database, table_name)
            )
            references = {
                row["COLUMN_NAME"]: ColumnReference(
                    table=row["REFERENCED_TABLE_NAME"],
                    column=row["REFERENCED_COLUMN_NAME"],
                )
                for row in cursor.fetchall()
            }

        columns = []
        for row in column_rows:
            name = str(row["COLUMN_NAME"])
            column_key = (row.get("COLUMN_KEY") or "").upper()
            columns.append(ColumnDescriptor(
                name=name,
                type=TypeMapper.from_mysql(row["DATA_TYPE"], row.get("COLUMN_TYPE") or ""),
                nullable=row.get("IS_NULLABLE") == "YES",
                primary_key=column_key == "PRI",
                unique=column_key == "UNI",
                references=references.get(name),
                auto_increment="auto_increment" in (row.get("EXTRA") or "").lower(),
            ))
        return columns

    def execute_statements(self, statements: Sequence[str]) -> None:
        connection = self._require_connection()
        try:
            with connection.cursor() as cursor:
                for statement in statements:
                    logger.debug(f"Executing: {statement[:120]}")
                    cursor.execute(statement)
            connection.commit()
        except pymysql.err.MySQLError as e:
            connection.rollback()
            raise SchemaScriptError(f"Schema script statement failed: {e}") from e
        logger.info(f"Executed {len(statements)} schema statements")

    def create_table(self, table_name: str, columns: Sequence[ColumnDescriptor]) -> None:
        connection = self._require_connection()
        definitions = [self._column_definition(column) for column in columns]
        create_query = (
            f"CREATE TABLE IF NOT EXISTS {quote_identifier(table_name)} "
            f"({', '.join(definitions)})"
        )
        logger.debug(create_query)
        with connection.cursor() as cursor:
            cursor.execute(create_query)
        connection.commit()
        logger.info(f"Table {table_name} ready ({len(columns)} columns)")

    def _column_definition(self, column: ColumnDescriptor) -> str:
        column_type = column.type
        # MySQL cannot index TEXT without a key length
        if column.is_key and column_type == RelationalType.TEXT:
            column_type = RelationalType.VARCHAR
        parts = [quote_identifier(column.name), TypeMapper.sql_type(column_type)]
        if not column.nullable or column.primary_key:
            parts.append("NOT NULL")
        if column.auto_increment:
            parts.append("AUTO_INCREMENT")
        if column.primary_key:
            parts.append("PRIMARY KEY")
        elif column.unique:
            parts.append("UNIQUE")
        return " ".join(parts)

    def insert_documents(
        self,
        table_name: str,
        documents: Sequence[dict],
        mappings: Sequence[ColumnMapping],
        conflict_column: Optional[str] = None,
    ) -> int:
        if not documents or not mappings:
            return 0
        connection = self._require_connection()

        column_names = [mapping.destination_column for mapping in mappings]
        conflict = quote_identifier(conflict_column or column_names[0])
        placeholders = ", ".join(["%s"] * len(column_names))
        query = (
            f"INSERT INTO {quote_identifier(table_name)} "
            f"({', '.join(quote_identifier(name) for name in column_names)}) "
            f"VALUES ({placeholders}) "
            f"ON DUPLICATE KEY UPDATE {conflict} = {conflict}"
        )
        rows = build_rows(documents, mappings)

        try:
            with connection.cursor() as cursor:
                inserted = cursor.executemany(query, rows) or 0
            connection.commit()
        except pymysql.err.MySQLError as e:
            connection.rollback()
            raise DestinationWriteError(table_name, str(e)) from e

        skipped = len(rows) - inserted
        if skipped > 0:
            logger.debug(f"Skipped {skipped} duplicate rows in {table_name}")
        return inserted

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
