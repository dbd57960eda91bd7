"""PostgreSQL schema introspection via information_schema.

This module queries the live database to extract what a snapshot needs:
- Tables of the working schema, in name order
- Columns (native type tag, catalog type, length bound, nullability,
  default) in ordinal order
- Primary-key columns in key order
- Table rows, streamed one at a time

Uses psycopg (v3) ``AsyncConnection`` for PostgreSQL connections.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

import psycopg
from psycopg import AsyncConnection
from psycopg.types.string import TextLoader

from keyvault_db.errors import DatabaseConnectionError
from keyvault_db.schema.ddl import quote_ident
from keyvault_db.schema.models import ColumnDescriptor, TableSnapshot

logger = logging.getLogger(__name__)

JSON_TYPES = ("json", "jsonb")


class SchemaIntrospector:
    """Introspects PostgreSQL database schema.

    Owns exactly one connection for its lifetime.  Works with any
    PostgreSQL database (RDS, Supabase, local).

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            tables = await introspector.introspect()
            async for row in introspector.stream_rows(tables[0]):
                ...
    """

    # Extension-owned tables that are never part of a snapshot
    EXCLUDED_TABLES_DEFAULT: frozenset[str] = frozenset(
        {
            "pg_stat_statements",
            "spatial_ref_sys",
        }
    )

    def __init__(
        self,
        database_url: str,
        excluded_tables: set[str] | frozenset[str] | None = None,
        connect_timeout: int = 10,
    ):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL
            excluded_tables: Table names to skip (default:
                ``EXCLUDED_TABLES_DEFAULT``)
            connect_timeout: Seconds to wait for the connection
        """
        self._database_url = database_url
        self._excluded_tables = (
            set(excluded_tables)
            if excluded_tables is not None
            else set(self.EXCLUDED_TABLES_DEFAULT)
        )
        self._connect_timeout = connect_timeout
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Async context manager entry - opens connection."""
        # Append connect_timeout if not already in URL
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout={self._connect_timeout}"

        try:
            self._conn = await AsyncConnection.connect(url, autocommit=True)
        except psycopg.OperationalError as e:
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e

        # Keep json/jsonb as catalog text so scalars replay as valid JSON
        for json_type in JSON_TYPES:
            self._conn.adapters.register_loader(json_type, TextLoader)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - closes connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_connection(self) -> AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def introspect(self, schema_name: str = "public") -> list[TableSnapshot]:
        """Introspect every table of the schema.

        Args:
            schema_name: PostgreSQL schema to introspect (default: public)

        Returns:
            TableSnapshot per table in lexicographic name order, columns in
            ordinal order, primary keys in key order.
        """
        self._require_connection()

        tables = await self.get_table_names(schema_name)
        primary_keys = await self.get_primary_keys(schema_name)

        snapshots: list[TableSnapshot] = []
        for table_name in tables:
            snapshots.append(
                TableSnapshot(
                    name=table_name,
                    columns=await self.get_columns(table_name, schema_name),
                    primary_key=primary_keys.get(table_name, []),
                )
            )

        logger.debug("Introspected %d tables in schema %s", len(snapshots), schema_name)
        return snapshots

    async def get_table_names(self, schema_name: str = "public") -> list[str]:
        """Get all base table names in schema, sorted, minus excluded ones."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        conn = self._require_connection()
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name,))
            rows = await cur.fetchall()
        return [row[0] for row in rows if row[0] not in self._excluded_tables]

    async def get_columns(
        self, table_name: str, schema_name: str = "public"
    ) -> list[ColumnDescriptor]:
        """Get column descriptors for a table in ordinal order."""
        query = """
            SELECT
                column_name,
                udt_name,
                data_type,
                character_maximum_length,
                is_nullable,
                column_default
            FROM information_schema.columns
            WHERE table_schema = %s
              AND table_name = %s
            ORDER BY ordinal_position
        """
        conn = self._require_connection()
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name, table_name))
            rows = await cur.fetchall()

        columns = []
        for row in rows:
            col_name, udt_name, data_type, max_length, is_nullable, default = row
            columns.append(
                ColumnDescriptor(
                    name=col_name,
                    udt_name=udt_name,
                    data_type=data_type,
                    max_length=max_length,
                    is_nullable=(is_nullable == "YES"),
                    default=default,
                )
            )
        return columns

    async def get_primary_keys(self, schema_name: str = "public") -> dict[str, list[str]]:
        """Get primary-key columns per table, in key order."""
        query = """
            SELECT
                tc.table_name,
                kcu.column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
                AND tc.table_name = kcu.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY'
              AND tc.table_schema = %s
            ORDER BY tc.table_name, kcu.ordinal_position
        """
        conn = self._require_connection()
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name,))
            rows = await cur.fetchall()

        primary_keys: dict[str, list[str]] = {}
        for table_name, column_name in rows:
            primary_keys.setdefault(table_name, []).append(column_name)
        return primary_keys

    async def stream_rows(self, table: TableSnapshot) -> AsyncIterator[tuple[Any, ...]]:
        """Yield the table's rows one at a time as tuples.

        Values come back in ``table.columns`` order.  Rows are ordered by
        the primary key when the table has one.
        """
        conn = self._require_connection()
        if not table.columns:
            return

        columns = ", ".join(quote_ident(c) for c in table.column_names)
        query = f"SELECT {columns} FROM {quote_ident(table.name)}"
        if table.primary_key:
            query += " ORDER BY " + ", ".join(quote_ident(c) for c in table.primary_key)

        async with conn.cursor() as cur:
            async for row in cur.stream(query):
                yield row
