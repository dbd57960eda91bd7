"""Core-table verification.

Compares the tables present in the working schema against the expected
core table set of the credential service.  Read-only.

Usage:
    from keyvault_db.schema.verifier import compare_tables, verify_database

    result = compare_tables(["identifier", "key"], ["identifier", "credential"])
    result.missing        # ["credential"]

    result = await verify_database(connection)
    if not result.valid:
        print(result.format_report())
"""

import logging
from collections.abc import Iterable

from keyvault_db.config.models import CORE_TABLES, ConnectionConfig
from keyvault_db.schema.introspector import SchemaIntrospector
from keyvault_db.schema.models import VerificationResult

logger = logging.getLogger(__name__)


def compare_tables(
    actual_tables: Iterable[str],
    expected_tables: Iterable[str],
) -> VerificationResult:
    """Compare present tables against the expected set, case-insensitively.

    Pure logic -- no I/O.

    Args:
        actual_tables: Table names found in the database.
        expected_tables: Table names that must exist.

    Returns:
        ``VerificationResult`` with:

        - ``valid``: ``True`` if every expected table is present
        - ``missing``: expected tables not found, in expected order
        - ``present``: actual tables that are expected, sorted
        - ``extra``: actual tables outside the expected set, sorted

    Examples:
        >>> compare_tables(["Key", "identifier"], ["identifier", "key"]).valid
        True
        >>> compare_tables(["identifier"], ["identifier", "credential"]).missing
        ['credential']
    """
    actual = list(actual_tables)
    expected = list(expected_tables)

    actual_lower = {name.lower() for name in actual}
    expected_lower = {name.lower() for name in expected}

    missing = [name for name in expected if name.lower() not in actual_lower]
    present = sorted(name for name in actual if name.lower() in expected_lower)
    extra = sorted(name for name in actual if name.lower() not in expected_lower)

    return VerificationResult(
        valid=not missing,
        missing=missing,
        present=present,
        extra=extra,
    )


async def verify_database(
    connection: ConnectionConfig,
    expected_tables: Iterable[str] = CORE_TABLES,
    schema_name: str = "public",
) -> VerificationResult:
    """Check that the expected core tables exist in the database.

    Args:
        connection: Target database.
        expected_tables: Tables that must exist (default: ``CORE_TABLES``).
        schema_name: Working schema (default: public).

    Returns:
        ``VerificationResult``.

    Raises:
        DatabaseConnectionError: If the database cannot be reached.
    """
    async with SchemaIntrospector(connection.url(), excluded_tables=set()) as introspector:
        tables = await introspector.get_table_names(schema_name)

    result = compare_tables(tables, expected_tables)
    if result.valid:
        logger.info("All %d core tables present in %s", len(result.present), connection.describe())
    else:
        logger.warning("Missing core tables in %s: %s", connection.describe(), ", ".join(result.missing))
    return result
