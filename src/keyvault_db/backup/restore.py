"""Replay a snapshot artifact against a database.

Replay is best-effort, not transactional: each statement commits on its
own, failures are counted and replay moves on.  "already exists" and
"duplicate key" failures mean the intended end state is already there, so
they are not counted as errors.  This makes re-running a restore safe.

Statement splitting is line based: lines are accumulated until one ends
with ``;``.  A quoted text value that has ``;`` at the end of one of its
lines would be split in the middle.  Snapshots written by
``snapshot_database`` only contain such values if the source data does,
and the splitting rule is kept as-is for compatibility with existing
artifacts.

Usage:
    from keyvault_db.backup.restore import restore_database

    result = await restore_database(connection, "backups/vckit.sql", drop_first=True)
    if not result.ok:
        print(f"{result.failed_statements} statements failed")
"""

import logging
from pathlib import Path

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from keyvault_db.backup.models import RestoreResult, StatementFailure
from keyvault_db.config.models import ConnectionConfig
from keyvault_db.errors import ArtifactNotFoundError, RestoreError
from keyvault_db.factory import get_adapter, get_maintenance_adapter
from keyvault_db.progress import ProgressCallback, report
from keyvault_db.schema.ddl import quote_ident

logger = logging.getLogger(__name__)

STATEMENT_TERMINATOR = ";"
COMMENT_PREFIX = "--"

# Failure messages that mean "already done"
BENIGN_CONFLICT_MARKERS: tuple[str, ...] = ("already exists", "duplicate key")


def parse_statements(content: str) -> list[str]:
    """Split artifact text into statements.

    Blank lines and ``--`` comment lines are skipped.  Other lines are
    accumulated until one ends with ``;``; the accumulated text, stripped,
    is one statement.  Text after the last terminator is dropped.

    Examples:
        >>> parse_statements("-- c\\nSELECT 1;\\n\\nCREATE TABLE t (\\n  a INT\\n);\\n")
        ['SELECT 1;', 'CREATE TABLE t (\\n  a INT\\n);']
    """
    statements: list[str] = []
    current: list[str] = []

    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIX):
            continue

        current.append(line)

        if stripped.endswith(STATEMENT_TERMINATOR):
            statements.append("\n".join(current).strip())
            current = []

    return statements


def is_benign_conflict(message: str) -> bool:
    """True if a failure message signals an idempotent conflict."""
    return any(marker in message for marker in BENIGN_CONFLICT_MARKERS)


def _first_line(statement: str) -> str:
    return statement.split("\n", 1)[0]


async def recreate_database(connection: ConnectionConfig) -> None:
    """Drop and recreate the target database.

    Connects to the maintenance database, terminates other sessions on the
    target (DROP DATABASE fails while they exist), then drops and creates
    it.

    Raises:
        RestoreError: If any step fails.
    """
    adapter = get_maintenance_adapter(connection)
    database = quote_ident(connection.database)
    try:
        await adapter.execute(
            """
            SELECT pg_terminate_backend(pg_stat_activity.pid)
            FROM pg_stat_activity
            WHERE pg_stat_activity.datname = :name
              AND pid <> pg_backend_pid()
            """,
            {"name": connection.database},
        )
        await adapter.execute_statement(f"DROP DATABASE IF EXISTS {database}")
        await adapter.execute_statement(f"CREATE DATABASE {database}")
    except SQLAlchemyError as e:
        raise RestoreError(f"Restore failed: could not recreate database: {e}") from e
    finally:
        await adapter.close()

    logger.info("Recreated database %s", connection.describe())


async def restore_database(
    connection: ConnectionConfig,
    artifact_path: str | Path,
    *,
    drop_first: bool = False,
    on_progress: ProgressCallback | None = None,
) -> RestoreResult:
    """Replay a snapshot artifact statement by statement.

    Args:
        connection: Target database.
        artifact_path: Snapshot artifact to replay.
        drop_first: Drop and recreate the target database before replay.
        on_progress: Called once per statement.

    Returns:
        ``RestoreResult`` with success, failure and conflict counts.

    Raises:
        ArtifactNotFoundError: If ``artifact_path`` does not exist (raised
            before any database work).
        RestoreError: If the database cannot be recreated or reached.
    """
    path = Path(artifact_path).resolve()
    if not path.is_file():
        raise ArtifactNotFoundError(f"Backup file not found: {path}")

    statements = parse_statements(path.read_text(encoding="utf-8"))
    logger.info("Parsed %d statements from %s", len(statements), path)

    if drop_first:
        await recreate_database(connection)

    adapter = get_adapter(connection)
    result = RestoreResult(total_statements=len(statements))
    try:
        try:
            await adapter.test_connection()
        except (SQLAlchemyError, OSError) as e:
            raise RestoreError(f"Restore failed: {e}") from e

        for position, statement in enumerate(statements, start=1):
            try:
                await adapter.execute_statement(statement)
                result.success_statements += 1
            except DBAPIError as e:
                message = str(e.orig) if e.orig is not None else str(e)
                if is_benign_conflict(message):
                    result.skipped_conflicts += 1
                    logger.debug("Skipped (conflict): %s", _first_line(statement))
                else:
                    result.failed_statements += 1
                    result.failures.append(
                        StatementFailure(statement=_first_line(statement), message=message)
                    )
                    logger.warning("Statement failed: %s: %s", _first_line(statement), message)

            report(on_progress, "restore", _first_line(statement), position, len(statements))
    finally:
        await adapter.close()

    logger.info(
        "Restore complete: %d succeeded, %d failed, %d conflicts skipped",
        result.success_statements,
        result.failed_statements,
        result.skipped_conflicts,
    )
    return result
