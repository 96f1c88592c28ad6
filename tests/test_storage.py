# ==============================================
# Tests for Storage Module
# ==============================================
#
# The clients are exercised without a server: row building is
# pure, and MySQLClient is handed a recording connection.
# ==============================================

import json
from datetime import datetime
from decimal import Decimal

import pymysql
import pytest
from bson import Binary, Decimal128, ObjectId

from docmigrate.analysis import ColumnDescriptor, ColumnMapping, RelationalType
from docmigrate.exceptions import DestinationWriteError, NotConnectedError, SchemaScriptError
from docmigrate.storage import MongoClient, MySQLClient, build_rows, to_sql_value


# ==============================================
# Recording connection
# ==============================================

class RecordingCursor:
    def __init__(self, connection):
        self.connection = connection

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def execute(self, query, args=None):
        if self.connection.fail_with is not None:
            raise self.connection.fail_with
        self.connection.queries.append((query, args))
        return 0

    def executemany(self, query, rows):
        if self.connection.fail_with is not None:
            raise self.connection.fail_with
        self.connection.queries.append((query, list(rows)))
        return self.connection.affected


class RecordingConnection:
    def __init__(self, affected=0, fail_with=None):
        self.affected = affected
        self.fail_with = fail_with
        self.queries = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self, cursor_class=None):
        return RecordingCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        pass


@pytest.fixture
def mysql_client():
    return MySQLClient(host="localhost", port=3306, user="root", password="root", database="target_db")


# ==============================================
# Value conversion
# ==============================================

class TestValueConversion:
    def test_scalars_pass_through(self):
        moment = datetime(2024, 5, 1, 12, 0)
        assert to_sql_value("x") == "x"
        assert to_sql_value(3) == 3
        assert to_sql_value(True) is True
        assert to_sql_value(moment) == moment
        assert to_sql_value(None) is None

    def test_bson_types(self):
        assert to_sql_value(ObjectId("507f1f77bcf86cd799439011")) == "507f1f77bcf86cd799439011"
        assert to_sql_value(Decimal128("9.99")) == Decimal("9.99")
        assert to_sql_value(Binary(b"\x01\x02")) == b"\x01\x02"

    def test_containers_become_json(self):
        value = {"tags": ["a", "b"], "owner": ObjectId("507f1f77bcf86cd799439011")}
        assert json.loads(to_sql_value(value)) == {
            "tags": ["a", "b"],
            "owner": "507f1f77bcf86cd799439011",
        }
        assert json.loads(to_sql_value([1, 2])) == [1, 2]

    def test_build_rows(self, sample_documents):
        mappings = [
            ColumnMapping(source_field="_id", destination_column="mongo_id"),
            ColumnMapping(source_field="profile.age", destination_column="profile_age"),
            ColumnMapping(source_field="missing.path", destination_column="other"),
        ]
        rows = build_rows(sample_documents[:2], mappings)
        assert rows == [
            ("507f1f77bcf86cd799439011", 30, None),
            ("507f1f77bcf86cd799439012", 41, None),
        ]

    def test_string_identifier_stays_string(self):
        rows = build_rows([{"_id": 17}], [ColumnMapping(source_field="_id", destination_column="ref_id")])
        assert rows == [("17",)]


# ==============================================
# MySQLClient
# ==============================================

class TestMySQLClient:
    def test_requires_connection(self, mysql_client):
        assert not mysql_client.is_connected
        with pytest.raises(NotConnectedError):
            mysql_client.table_exists("users")

    def test_create_table_ddl(self, mysql_client):
        mysql_client.connection = RecordingConnection()
        mysql_client.create_table("users", [
            ColumnDescriptor(name="id", type=RelationalType.BIGINT, nullable=False,
                             primary_key=True, auto_increment=True),
            ColumnDescriptor(name="mongo_id", type=RelationalType.VARCHAR, nullable=False, unique=True),
            ColumnDescriptor(name="profile_age", type=RelationalType.DOUBLE),
        ])
        query, _ = mysql_client.connection.queries[0]
        assert query == (
            "CREATE TABLE IF NOT EXISTS `users` ("
            "`id` BIGINT NOT NULL AUTO_INCREMENT PRIMARY KEY, "
            "`mongo_id` VARCHAR(255) NOT NULL UNIQUE, "
            "`profile_age` DOUBLE)"
        )
        assert mysql_client.connection.commits == 1

    def test_text_key_columns_become_varchar(self, mysql_client):
        mysql_client.connection = RecordingConnection()
        mysql_client.create_table("users", [
            ColumnDescriptor(name="id", type=RelationalType.INTEGER, nullable=False,
                             primary_key=True, auto_increment=True),
            ColumnDescriptor(name="mongo_id", type=RelationalType.TEXT, nullable=False, unique=True),
            ColumnDescriptor(name="code", type=RelationalType.TEXT, unique=True),
            ColumnDescriptor(name="name", type=RelationalType.TEXT),
        ])
        query, _ = mysql_client.connection.queries[0]
        assert query == (
            "CREATE TABLE IF NOT EXISTS `users` ("
            "`id` INT NOT NULL AUTO_INCREMENT PRIMARY KEY, "
            "`mongo_id` VARCHAR(255) NOT NULL UNIQUE, "
            "`code` VARCHAR(255) UNIQUE, "
            "`name` TEXT)"
        )

    def test_insert_skips_duplicates_on_conflict_column(self, mysql_client, sample_documents):
        mysql_client.connection = RecordingConnection(affected=2)
        mappings = [
            ColumnMapping(source_field="_id", destination_column="mongo_id"),
            ColumnMapping(source_field="name", destination_column="name"),
        ]
        inserted = mysql_client.insert_documents("users", sample_documents, mappings, "mongo_id")

        query, rows = mysql_client.connection.queries[0]
        assert query == (
            "INSERT INTO `users` (`mongo_id`, `name`) VALUES (%s, %s) "
            "ON DUPLICATE KEY UPDATE `mongo_id` = `mongo_id`"
        )
        assert len(rows) == 3
        assert inserted == 2

    def test_insert_nothing(self, mysql_client):
        assert mysql_client.insert_documents("users", [], [ColumnMapping("_id", "mongo_id")]) == 0

    def test_insert_failure_rolls_back(self, mysql_client, sample_documents):
        mysql_client.connection = RecordingConnection(
            fail_with=pymysql.err.OperationalError(1054, "Unknown column")
        )
        with pytest.raises(DestinationWriteError) as error:
            mysql_client.insert_documents(
                "users", sample_documents, [ColumnMapping("_id", "mongo_id")], "mongo_id"
            )
        assert error.value.table_name == "users"
        assert mysql_client.connection.rollbacks == 1

    def test_script_failure(self, mysql_client):
        mysql_client.connection = RecordingConnection(
            fail_with=pymysql.err.ProgrammingError(1064, "syntax error")
        )
        with pytest.raises(SchemaScriptError):
            mysql_client.execute_statements(["CREATE TABLEX nope"])

    def test_disconnect(self, mysql_client):
        mysql_client.connection = RecordingConnection()
        mysql_client.disconnect()
        assert not mysql_client.is_connected


# ==============================================
# MongoClient
# ==============================================

class TestMongoClient:
    def test_requires_connection(self):
        client = MongoClient("mongodb://localhost:27017/source_db")
        assert not client.is_connected
        with pytest.raises(NotConnectedError):
            client.list_collection_names()
        with pytest.raises(NotConnectedError):
            client.fetch_page("users", 0, 10)
