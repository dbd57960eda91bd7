"""Tests for snapshot replay.

The adapter is an ``AsyncMock`` patched into ``keyvault_db.backup.restore``;
failures are raised as SQLAlchemy ``DBAPIError`` the way the real adapter
surfaces driver errors.
"""

from unittest.mock import AsyncMock, call, patch

import pytest
from sqlalchemy.exc import DBAPIError, OperationalError

from keyvault_db.backup.restore import (
    is_benign_conflict,
    parse_statements,
    recreate_database,
    restore_database,
)
from keyvault_db.config.models import ConnectionConfig
from keyvault_db.errors import ArtifactNotFoundError, RestoreError

CONNECTION = ConnectionConfig(database="vckit", user="postgres", password="postgres")

ARTIFACT = """-- keyvault-db database snapshot
-- Generated: 2024-05-01T12:30:00+00:00
-- Tool: keyvault-db 0.1.0

SET client_encoding = 'UTF8';

-- Table: key
DROP TABLE IF EXISTS "key" CASCADE;
CREATE TABLE IF NOT EXISTS "key" (
  "kid" VARCHAR NOT NULL,
  "kms" VARCHAR NOT NULL
);

ALTER TABLE "key" ADD PRIMARY KEY ("kid");

INSERT INTO "key" ("kid","kms") VALUES ('k1', 'local');
INSERT INTO "key" ("kid","kms") VALUES ('k2', 'local');
"""


def _db_error(message: str) -> DBAPIError:
    return DBAPIError("statement", None, Exception(message))


def _make_mock_adapter(failures: dict[str, str] | None = None) -> AsyncMock:
    """AsyncMock adapter whose execute_statement fails for matching prefixes.

    Args:
        failures: statement prefix -> driver error message.
    """
    failures = failures or {}
    adapter = AsyncMock()

    async def _execute_statement(statement):
        for prefix, message in failures.items():
            if statement.startswith(prefix):
                raise _db_error(message)

    adapter.execute_statement = AsyncMock(side_effect=_execute_statement)
    adapter.test_connection = AsyncMock(return_value=True)
    adapter.close = AsyncMock()
    return adapter


def _write_artifact(tmp_path, content: str = ARTIFACT):
    path = tmp_path / "backup.sql"
    path.write_text(content)
    return path


# ============================================================================
# Statement parsing
# ============================================================================


class TestParseStatements:
    def test_skips_comments_and_blanks(self):
        statements = parse_statements(ARTIFACT)
        assert len(statements) == 6
        assert statements[0] == "SET client_encoding = 'UTF8';"

    def test_multi_line_statement(self):
        statements = parse_statements(ARTIFACT)
        assert statements[2] == (
            'CREATE TABLE IF NOT EXISTS "key" (\n'
            '  "kid" VARCHAR NOT NULL,\n'
            '  "kms" VARCHAR NOT NULL\n'
            ");"
        )

    def test_trailing_text_without_terminator_dropped(self):
        assert parse_statements("SELECT 1;\nSELECT 2") == ["SELECT 1;"]

    def test_empty(self):
        assert parse_statements("") == []
        assert parse_statements("-- only a comment\n\n") == []

    def test_indented_comment_skipped(self):
        assert parse_statements("   -- note\nSELECT 1;") == ["SELECT 1;"]

    def test_terminator_with_trailing_whitespace(self):
        assert parse_statements("SELECT 1;   \n") == ["SELECT 1;"]


class TestIsBenignConflict:
    @pytest.mark.parametrize(
        "message",
        [
            'relation "key" already exists',
            'relation "migrations_id_seq" already exists',
            'duplicate key value violates unique constraint "PK_key"',
        ],
    )
    def test_benign(self, message):
        assert is_benign_conflict(message)

    def test_other_error(self):
        assert not is_benign_conflict('column "foo" does not exist')


# ============================================================================
# restore_database
# ============================================================================


class TestRestoreDatabase:
    async def test_clean_replay(self, tmp_path):
        adapter = _make_mock_adapter()
        path = _write_artifact(tmp_path)

        with patch("keyvault_db.backup.restore.get_adapter", return_value=adapter):
            result = await restore_database(CONNECTION, path)

        assert result.success_statements == 6
        assert result.failed_statements == 0
        assert result.skipped_conflicts == 0
        assert result.total_statements == 6
        assert result.ok
        assert adapter.execute_statement.await_count == 6
        adapter.close.assert_awaited_once()

    async def test_conflicts_counted_separately(self, tmp_path):
        """Second replay: duplicate rows are conflicts, not errors."""
        adapter = _make_mock_adapter(
            {"INSERT": 'duplicate key value violates unique constraint "PK_key"'}
        )
        path = _write_artifact(tmp_path)

        with patch("keyvault_db.backup.restore.get_adapter", return_value=adapter):
            result = await restore_database(CONNECTION, path)

        assert result.success_statements == 4
        assert result.skipped_conflicts == 2
        assert result.failed_statements == 0
        assert result.ok

    async def test_failures_do_not_abort(self, tmp_path):
        adapter = _make_mock_adapter({"ALTER TABLE": 'relation "key" does not exist'})
        path = _write_artifact(tmp_path)

        with patch("keyvault_db.backup.restore.get_adapter", return_value=adapter):
            result = await restore_database(CONNECTION, path)

        assert result.failed_statements == 1
        assert result.success_statements == 5
        assert not result.ok
        assert result.failures[0].statement == 'ALTER TABLE "key" ADD PRIMARY KEY ("kid");'
        assert "does not exist" in result.failures[0].message
        assert adapter.execute_statement.await_count == 6

    async def test_statements_replayed_in_order(self, tmp_path):
        adapter = _make_mock_adapter()
        path = _write_artifact(tmp_path)

        with patch("keyvault_db.backup.restore.get_adapter", return_value=adapter):
            await restore_database(CONNECTION, path)

        executed = [c.args[0] for c in adapter.execute_statement.await_args_list]
        assert executed == parse_statements(ARTIFACT)

    async def test_missing_artifact_before_any_connection(self, tmp_path):
        with patch("keyvault_db.backup.restore.get_adapter") as mock_get:
            with patch("keyvault_db.backup.restore.get_maintenance_adapter") as mock_maint:
                with pytest.raises(ArtifactNotFoundError, match="Backup file not found"):
                    await restore_database(CONNECTION, tmp_path / "nope.sql", drop_first=True)
        mock_get.assert_not_called()
        mock_maint.assert_not_called()

    async def test_unreachable_database(self, tmp_path):
        adapter = _make_mock_adapter()
        adapter.test_connection.side_effect = OperationalError("SELECT 1", None, Exception("refused"))
        path = _write_artifact(tmp_path)

        with patch("keyvault_db.backup.restore.get_adapter", return_value=adapter):
            with pytest.raises(RestoreError, match="^Restore failed"):
                await restore_database(CONNECTION, path)

        adapter.execute_statement.assert_not_awaited()
        adapter.close.assert_awaited_once()

    async def test_empty_artifact(self, tmp_path):
        adapter = _make_mock_adapter()
        path = _write_artifact(tmp_path, "-- nothing here\n")

        with patch("keyvault_db.backup.restore.get_adapter", return_value=adapter):
            result = await restore_database(CONNECTION, path)

        assert result.total_statements == 0
        assert result.ok

    async def test_progress_per_statement(self, tmp_path):
        adapter = _make_mock_adapter()
        path = _write_artifact(tmp_path)
        events = []

        with patch("keyvault_db.backup.restore.get_adapter", return_value=adapter):
            await restore_database(CONNECTION, path, on_progress=events.append)

        assert [e.position for e in events] == [1, 2, 3, 4, 5, 6]
        assert {e.total for e in events} == {6}
        assert events[2].item == 'CREATE TABLE IF NOT EXISTS "key" ('

    async def test_drop_first_recreates_database(self, tmp_path):
        adapter = _make_mock_adapter()
        maintenance = _make_mock_adapter()
        maintenance.execute = AsyncMock()
        path = _write_artifact(tmp_path)

        with patch("keyvault_db.backup.restore.get_adapter", return_value=adapter):
            with patch(
                "keyvault_db.backup.restore.get_maintenance_adapter", return_value=maintenance
            ):
                result = await restore_database(CONNECTION, path, drop_first=True)

        assert result.success_statements == 6
        assert maintenance.execute_statement.await_args_list == [
            call('DROP DATABASE IF EXISTS "vckit"'),
            call('CREATE DATABASE "vckit"'),
        ]
        maintenance.close.assert_awaited_once()


class TestRecreateDatabase:
    async def test_terminates_other_sessions_first(self):
        maintenance = _make_mock_adapter()
        maintenance.execute = AsyncMock()

        with patch(
            "keyvault_db.backup.restore.get_maintenance_adapter", return_value=maintenance
        ):
            await recreate_database(CONNECTION)

        sql, params = maintenance.execute.await_args.args
        assert "pg_terminate_backend" in sql
        assert params == {"name": "vckit"}

    async def test_drop_failure_wrapped(self):
        maintenance = _make_mock_adapter({"DROP DATABASE": "permission denied"})
        maintenance.execute = AsyncMock()

        with patch(
            "keyvault_db.backup.restore.get_maintenance_adapter", return_value=maintenance
        ):
            with pytest.raises(RestoreError, match="could not recreate database"):
                await recreate_database(CONNECTION)

        maintenance.close.assert_awaited_once()
