"""Logical snapshots as replayable SQL text.

Writes every table of the working schema as a block of statements::

    -- Table: key
    DROP TABLE IF EXISTS "key" CASCADE;
    CREATE TABLE IF NOT EXISTS "key" (
      "kid" VARCHAR NOT NULL,
      "kms" VARCHAR NOT NULL
    );

    ALTER TABLE "key" ADD PRIMARY KEY ("kid");

    INSERT INTO "key" ("kid","kms") VALUES ('k1', 'local');

The artifact is flat and line-oriented so ``restore_database`` can replay
it by accumulating lines up to a trailing ``;``.  One database session is
used for the whole run and rows are streamed, so memory stays bounded by
one row.

Usage:
    from keyvault_db.backup.snapshot import snapshot_database

    result = await snapshot_database(connection, "backups/vckit.sql")
    print(result.artifact_path, result.byte_size, result.line_count)
"""

import json
import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, TextIO

import psycopg

from keyvault_db import __version__
from keyvault_db.backup.models import SnapshotResult
from keyvault_db.config.models import ConnectionConfig
from keyvault_db.errors import DatabaseConnectionError, SnapshotError
from keyvault_db.progress import ProgressCallback, report
from keyvault_db.schema.ddl import (
    create_table_statement,
    drop_table_statement,
    primary_key_statement,
    quote_ident,
    quote_literal,
)
from keyvault_db.schema.introspector import SchemaIntrospector
from keyvault_db.schema.models import TableSnapshot

logger = logging.getLogger(__name__)

TOOL_NAME = "keyvault-db"


# ============================================================================
# Value and statement rendering
# ============================================================================


def render_value(value: Any) -> str:
    """Render one column value as a SQL literal.

    - ``None`` -> ``NULL``
    - booleans -> ``true`` / ``false``
    - ints, floats, decimals -> native literal (non-finite values quoted)
    - dates, times, timestamps -> quoted ISO-8601
    - dicts and lists -> quoted JSON
    - bytes -> quoted ``\\x`` hex (bytea input form)
    - anything else -> quoted text with ``'`` doubled

    Examples:
        >>> render_value(None)
        'NULL'
        >>> render_value("O'Brien")
        "'O''Brien'"
        >>> render_value(True)
        'true'
    """
    if value is None:
        return "NULL"
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "'NaN'"
        if math.isinf(value):
            return "'Infinity'" if value > 0 else "'-Infinity'"
        return repr(value)
    if isinstance(value, Decimal):
        if value.is_finite():
            return str(value)
        if value.is_nan():
            return "'NaN'"
        return "'Infinity'" if value > 0 else "'-Infinity'"
    if isinstance(value, (datetime, date, time)):
        return quote_literal(value.isoformat())
    if isinstance(value, timedelta):
        return quote_literal(f"{value.total_seconds()} seconds")
    if isinstance(value, (dict, list)):
        return quote_literal(json.dumps(value, default=str))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return quote_literal("\\x" + bytes(value).hex())
    return quote_literal(str(value))


def insert_statement(table_name: str, column_names: list[str], row: tuple) -> str:
    """Build a single-row INSERT with columns and values in the same order.

    Example:
        >>> print(insert_statement("t", ["id", "name"], (1, "O'Brien")))
        INSERT INTO "t" ("id","name") VALUES (1, 'O''Brien');
    """
    columns = ",".join(quote_ident(c) for c in column_names)
    values = ", ".join(render_value(v) for v in row)
    return f"INSERT INTO {quote_ident(table_name)} ({columns}) VALUES ({values});"


def artifact_header(generated_at: datetime) -> list[str]:
    """Provenance comments and session settings that open every artifact."""
    return [
        f"-- {TOOL_NAME} database snapshot",
        f"-- Generated: {generated_at.isoformat()}",
        f"-- Tool: {TOOL_NAME} {__version__}",
        "",
        "SET client_encoding = 'UTF8';",
        "",
    ]


def table_schema_lines(table: TableSnapshot) -> list[str]:
    """DROP / CREATE / PRIMARY KEY lines for one table block."""
    lines = [
        f"-- Table: {table.name}",
        drop_table_statement(table.name),
        create_table_statement(table.name, table.columns),
        "",
    ]
    if table.primary_key:
        lines.append(primary_key_statement(table.name, table.primary_key))
        lines.append("")
    return lines


# ============================================================================
# Artifact writer
# ============================================================================


class _ArtifactWriter:
    """Writes newline-joined entries and counts physical lines."""

    def __init__(self, handle: TextIO) -> None:
        self._handle = handle
        self._first = True
        self.line_count = 0

    def write(self, entry: str) -> None:
        if not self._first:
            self._handle.write("\n")
        self._first = False
        self._handle.write(entry)
        self.line_count += entry.count("\n") + 1


async def snapshot_database(
    connection: ConnectionConfig,
    destination: str | Path,
    *,
    on_progress: ProgressCallback | None = None,
    generated_at: datetime | None = None,
    schema_name: str = "public",
) -> SnapshotResult:
    """Write a replayable SQL snapshot of the working schema.

    Tables are emitted in name order; each gets a drop, a create, an
    optional primary key and one INSERT per row.  The file is written to a
    ``.partial`` sibling first and moved into place only when complete, so
    a failed run never leaves a truncated artifact at ``destination``.

    Args:
        connection: Source database.
        destination: Artifact path; parent directories are created.
        on_progress: Called once per table after its block is written.
        generated_at: Timestamp for the provenance header (default: now, UTC).
        schema_name: Working schema (default: public).

    Returns:
        ``SnapshotResult`` with absolute path, byte size, line count and
        table count.

    Raises:
        SnapshotError: On connection, introspection or file-system failure.
    """
    output_path = Path(destination).resolve()
    partial_path = output_path.with_name(output_path.name + ".partial")
    generated_at = generated_at or datetime.now(timezone.utc)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)

        async with SchemaIntrospector(connection.url()) as introspector:
            tables = await introspector.introspect(schema_name)
            logger.info("Snapshotting %d tables from %s", len(tables), connection.describe())

            with open(partial_path, "w", encoding="utf-8") as handle:
                writer = _ArtifactWriter(handle)
                for line in artifact_header(generated_at):
                    writer.write(line)

                for position, table in enumerate(tables, start=1):
                    for line in table_schema_lines(table):
                        writer.write(line)

                    row_count = 0
                    async for row in introspector.stream_rows(table):
                        writer.write(insert_statement(table.name, table.column_names, row))
                        row_count += 1
                    if row_count:
                        writer.write("")

                    logger.debug("Table %s: %d rows", table.name, row_count)
                    report(on_progress, "snapshot", table.name, position, len(tables))

        partial_path.replace(output_path)
    except (DatabaseConnectionError, psycopg.Error, OSError) as e:
        partial_path.unlink(missing_ok=True)
        raise SnapshotError(f"Backup failed: {e}") from e

    result = SnapshotResult(
        artifact_path=str(output_path),
        byte_size=output_path.stat().st_size,
        line_count=writer.line_count,
        table_count=len(tables),
    )
    logger.info(
        "Snapshot written to %s (%d bytes, %d lines)",
        result.artifact_path,
        result.byte_size,
        result.line_count,
    )
    return result
