# ==============================================
# Tests for the CLI
# ==============================================

import json
import logging

import pytest

from docmigrate import cli
from docmigrate.analysis import MigrationResult
from docmigrate.config import MigrationMode, reset_config
from docmigrate.exceptions import StoreConnectionError
from docmigrate.logger import ROOT_LOGGER_NAME

from conftest import FakeDocumentStore


@pytest.fixture(autouse=True)
def isolated(monkeypatch):
    for key in ["MIGRATION_MODE", "BATCH_SIZE", "SAMPLE_SIZE", "COLLECTIONS", "SCHEMA_SCRIPT", "LOG_LEVEL"]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_engine(monkeypatch):
    """Replace MigrationEngine; returns the list of configs it was built with."""
    built = []

    def install(result=None, error=None):
        class FakeEngine:
            def __init__(self, config):
                built.append(config)

            def migrate(self):
                if error is not None:
                    raise error
                return result

        monkeypatch.setattr("docmigrate.migration_engine.MigrationEngine", FakeEngine)
        return built

    return install


class TestPlan:
    def test_prints_relationships_and_order(self, tmp_path, schema_script, capsys):
        script = tmp_path / "schema.sql"
        script.write_text(schema_script)

        exit_code = cli.main(["--log-level", "error", "plan", str(script)])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == cli.EXIT_OK
        assert output["insertion_order"] == ["users", "posts", "comments"]
        assert len(output["relationships"]) == 3
        assert output["relationships"][0] == {
            "table_name": "posts",
            "referenced_table": "users",
            "column_name": "author_id",
            "referenced_column": "id",
        }

    def test_explicit_tables(self, tmp_path, schema_script, capsys):
        script = tmp_path / "schema.sql"
        script.write_text(schema_script)

        cli.main(["--log-level", "error", "plan", str(script), "comments", "users"])

        assert json.loads(capsys.readouterr().out)["insertion_order"] == ["users", "comments"]

    def test_missing_script(self, tmp_path):
        assert cli.main(["--log-level", "error", "plan", str(tmp_path / "nope.sql")]) == cli.EXIT_FATAL

    def test_bad_environment_is_fatal(self, tmp_path, schema_script, monkeypatch):
        script = tmp_path / "schema.sql"
        script.write_text(schema_script)
        monkeypatch.setenv("ADVISOR_TIMEOUT_SECONDS", "soon")

        assert cli.main(["--log-level", "error", "plan", str(script)]) == cli.EXIT_FATAL


class TestMigrate:
    def test_success(self, fake_engine, capsys):
        fake_engine(result=MigrationResult(success=True, migrated_collections=["users"], total_documents=2))

        exit_code = cli.main(["--log-level", "error", "migrate"])

        assert exit_code == cli.EXIT_OK
        assert json.loads(capsys.readouterr().out)["migrated_collections"] == ["users"]

    def test_errors_exit_one(self, fake_engine):
        fake_engine(result=MigrationResult(success=False, errors=["Failed to migrate collection x: boom"]))
        assert cli.main(["--log-level", "error", "migrate"]) == cli.EXIT_ERRORS

    def test_fatal_exit_two(self, fake_engine):
        fake_engine(error=StoreConnectionError("MySQL", "refused"))
        assert cli.main(["--log-level", "error", "migrate"]) == cli.EXIT_FATAL

    def test_flags_override_settings(self, fake_engine):
        built = fake_engine(result=MigrationResult(success=True))

        cli.main([
            "--log-level", "error", "migrate",
            "--mode", "pre-existing",
            "--batch-size", "10",
            "--collections", "users,posts",
            "--schema-script", "schema.sql",
        ])

        settings = built[0].migration
        assert settings.mode == MigrationMode.EXISTING_TABLES
        assert settings.batch_size == 10
        assert settings.collections == ["users", "posts"]
        assert settings.schema_script == "schema.sql"

    def test_invalid_batch_size_is_fatal(self, fake_engine):
        fake_engine(result=MigrationResult(success=True))
        assert cli.main(["--log-level", "error", "migrate", "--batch-size", "0"]) == cli.EXIT_FATAL


class TestAnalyze:
    def test_prints_schema(self, monkeypatch, capsys):
        store = FakeDocumentStore({"users": [
            {"_id": 1, "email": "a@example.com", "profile": {"age": 30}},
            {"_id": 2, "email": "b@example.com"},
        ]})

        class ManagedStore:
            @classmethod
            def from_config(cls, mongo_config):
                return cls()

            def __enter__(self):
                store.connect()
                return store

            def __exit__(self, exc_type, exc_val, exc_tb):
                store.disconnect()
                return False

        monkeypatch.setattr(cli, "MongoClient", ManagedStore)

        exit_code = cli.main(["--log-level", "error", "analyze", "users", "--sample-size", "5"])

        output = json.loads(capsys.readouterr().out)
        fields = {f["name"]: f for f in output["fields"]}
        assert exit_code == cli.EXIT_OK
        assert output["name"] == "users"
        assert list(fields) == ["_id", "email", "profile", "profile.age"]
        assert fields["email"]["is_required"]
        assert not fields["profile.age"]["is_required"]
        assert store.disconnect_calls == 1
