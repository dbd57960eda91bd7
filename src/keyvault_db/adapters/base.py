"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the restore, rotation and
role-administration operations talk to.  All methods are ``async def``.

Usage:
    from keyvault_db.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.select("private-key", '"alias", "privateKeyHex"')
        await client.update("private-key", {"privateKeyHex": "ab.."}, {"alias": "k1"})
        await client.execute_statement('DROP TABLE IF EXISTS "old" CASCADE;')
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    All methods are async -- callers must ``await`` every operation.
    Table and column names passed as ``table``, ``filters`` or ``data``
    keys are raw identifiers; the adapter quotes them.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Raw table name (quoted by the adapter).
            columns: Column list SQL, e.g. ``'"alias", "type"'`` or ``"*"``.
            filters: Optional dict of column=value filters (AND).

        Returns:
            List of dicts, one per row.  Empty list if no matches.
        """
        ...

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        """Update rows in table and return the first updated row.

        Raises:
            ValueError: If no rows match filters.
        """
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a SQL statement with named (``:name``) parameters."""
        ...

    async def execute_statement(self, statement: str) -> None:
        """Execute one raw SQL statement verbatim, in its own transaction.

        No bind-parameter parsing is applied, so text literals containing
        ``:name`` sequences are sent as-is.
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...

    async def test_connection(self) -> bool:
        """Run ``SELECT 1``; raise if the database cannot be reached."""
        ...
