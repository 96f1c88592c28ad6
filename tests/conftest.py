# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests. No test needs a running
# MongoDB or MySQL: the engine runs against the in-memory
# stores defined here.
#
# FAKES:
# ------
# - FakeDocumentStore   → same surface as storage.MongoClient
# - FakeRelationalStore → same surface as storage.MySQLClient,
#                         enforces unique/primary keys on insert
# - StubAdvisor         → returns canned suggestions, records calls
#
# FIXTURES:
# ---------
# - sample_documents, schema_script, make_config
#
# ==============================================

import copy
from typing import Dict, List, Optional

import pytest
from bson import ObjectId

from docmigrate.analysis import ColumnDescriptor
from docmigrate.config import AppConfig, MigrationSettings
from docmigrate.exceptions import (
    DestinationWriteError,
    NotConnectedError,
    SchemaScriptError,
    StoreConnectionError,
)
from docmigrate.storage import build_rows


class FakeDocumentStore:
    def __init__(self, collections: Optional[Dict[str, List[dict]]] = None, fail_connect=False):
        self.collections = collections or {}
        self.fail_connect = fail_connect
        self.failing_samples = set()
        self.indexes: Dict[str, List[dict]] = {}
        self.on_fetch = None  # called after every fetch_page
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.fetches = []

    def connect(self):
        self.connect_calls += 1
        if self.fail_connect:
            raise StoreConnectionError("MongoDB", "connection refused")
        self.connected = True

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False

    @property
    def is_connected(self):
        return self.connected

    def _documents(self, name):
        if not self.connected:
            raise NotConnectedError("MongoDB")
        return self.collections.get(name, [])

    def list_collection_names(self):
        if not self.connected:
            raise NotConnectedError("MongoDB")
        return sorted(name for name in self.collections if not name.startswith("system."))

    def sample_documents(self, name, size):
        if name in self.failing_samples:
            raise RuntimeError("cursor killed")
        return self._documents(name)[:size]

    def find_one(self, name):
        documents = self._documents(name)
        return documents[0] if documents else None

    def count_documents(self, name):
        return len(self._documents(name))

    def fetch_page(self, name, skip, limit):
        page = self._documents(name)[skip:skip + limit]
        self.fetches.append((name, skip, limit))
        if self.on_fetch is not None:
            self.on_fetch(name, skip, limit)
        return page

    def list_indexes(self, name):
        return [{"name": "_id_", "key": {"_id": 1}}] + self.indexes.get(name, [])


class FakeRelationalStore:
    def __init__(self, fail_connect=False):
        self.fail_connect = fail_connect
        self.fail_scripts = False
        self.failing_tables = set()
        self.tables: Dict[str, List[ColumnDescriptor]] = {}
        self.rows: Dict[str, List[dict]] = {}
        self.created = []
        self.executed = []
        self.connected = False
        self.disconnect_calls = 0

    def connect(self):
        if self.fail_connect:
            raise StoreConnectionError("MySQL", "access denied")
        self.connected = True

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False

    @property
    def is_connected(self):
        return self.connected

    def _require(self):
        if not self.connected:
            raise NotConnectedError("MySQL")

    def add_table(self, name, columns):
        self.tables[name] = list(columns)
        self.rows.setdefault(name, [])

    def table_exists(self, name):
        self._require()
        return name in self.tables

    def get_table_columns(self, name):
        self._require()
        return [copy.copy(column) for column in self.tables.get(name, [])]

    def execute_statements(self, statements):
        self._require()
        if self.fail_scripts:
            raise SchemaScriptError("Schema script statement failed: syntax error")
        self.executed.extend(statements)

    def create_table(self, name, columns):
        self._require()
        if name not in self.tables:
            self.add_table(name, columns)
            self.created.append(name)

    def insert_documents(self, table_name, documents, mappings, conflict_column=None):
        self._require()
        if table_name in self.failing_tables:
            raise DestinationWriteError(table_name, "disk full")

        columns = {column.name: column for column in self.tables[table_name]}
        names = [mapping.destination_column for mapping in mappings]
        for name in names:
            if name not in columns:
                raise DestinationWriteError(table_name, f"Unknown column '{name}'")

        keys = [name for name, column in columns.items() if column.is_key and not column.auto_increment]
        generated = [name for name, column in columns.items() if column.auto_increment]
        existing = self.rows[table_name]

        inserted = 0
        for values in build_rows(documents, mappings):
            row = dict(zip(names, values))
            duplicate = any(
                row.get(key) is not None and any(other.get(key) == row[key] for other in existing)
                for key in keys
            )
            if duplicate:
                continue
            for name in generated:
                row[name] = len(existing) + 1
            existing.append(row)
            inserted += 1
        return inserted


class StubAdvisor:
    def __init__(self, table_columns=None, column_mapping=None, relationship_text=None):
        self.table_columns = table_columns
        self.column_mapping = column_mapping
        self.relationship_text = relationship_text
        self.calls = []

    @property
    def is_enabled(self):
        return True

    def propose_table_schema(self, schema):
        self.calls.append(("propose_table_schema", schema.name))
        return copy.deepcopy(self.table_columns)

    def propose_column_mapping(self, sample_document, table_name, columns):
        self.calls.append(("propose_column_mapping", table_name))
        return self.column_mapping

    def analyze_relationships(self, schemas):
        self.calls.append(("analyze_relationships", [schema.name for schema in schemas]))
        return self.relationship_text


@pytest.fixture
def sample_documents():
    """Users with a nested profile, as the document store returns them."""
    return [
        {"_id": ObjectId("507f1f77bcf86cd799439011"), "name": "alice", "profile": {"age": 30}},
        {"_id": ObjectId("507f1f77bcf86cd799439012"), "name": "bob", "profile": {"age": 41}},
        {"_id": ObjectId("507f1f77bcf86cd799439013"), "name": "carol", "profile": {"age": None}},
    ]


@pytest.fixture
def schema_script():
    return """
    -- blog schema
    CREATE TABLE users (
        id BIGINT AUTO_INCREMENT PRIMARY KEY,
        mongo_id VARCHAR(255) UNIQUE NOT NULL
    );

    CREATE TABLE posts (
        id BIGINT AUTO_INCREMENT PRIMARY KEY,
        mongo_id VARCHAR(255) UNIQUE NOT NULL,
        author_id BIGINT,
        FOREIGN KEY (author_id) REFERENCES users(id)
    );

    /* comments reference both */
    CREATE TABLE comments (
        id BIGINT AUTO_INCREMENT PRIMARY KEY,
        mongo_id VARCHAR(255) UNIQUE NOT NULL,
        post_id BIGINT REFERENCES posts(id),
        user_id BIGINT REFERENCES users(id)
    );
    """


@pytest.fixture
def make_config():
    def _make(**settings):
        return AppConfig(migration=MigrationSettings(**settings))
    return _make
