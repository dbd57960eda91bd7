"""Portable DDL text for snapshot artifacts.

Translates introspected ``ColumnDescriptor`` metadata into column
definitions and builds the DROP / CREATE / PRIMARY KEY statements that
open every table block of a snapshot.

The type mapping must stay stable: artifacts written by earlier versions
are replayed verbatim, so changing a mapping changes what a restore
creates.

Usage:
    from keyvault_db.schema.ddl import create_table_statement

    sql = create_table_statement("key", columns)
"""

from keyvault_db.schema.models import ColumnDescriptor

# Marker of a sequence-backed (auto-increment) default
SERIAL_DEFAULT_MARKER = "nextval"

SERIAL_TYPE = "SERIAL"

# udt_name -> portable type
UDT_TYPE_MAP: dict[str, str] = {
    "int4": "INTEGER",
    "int8": "BIGINT",
    "text": "TEXT",
    "bool": "BOOLEAN",
    "timestamp": "TIMESTAMP",
    "timestamptz": "TIMESTAMPTZ",
}


def quote_ident(name: str) -> str:
    """Double-quote an identifier, doubling embedded double quotes.

    Example:
        >>> quote_ident("private-key")
        '"private-key"'
    """
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Single-quote a text literal, doubling embedded single quotes.

    No other escaping is performed.

    Example:
        >>> quote_literal("O'Brien")
        "'O''Brien'"
    """
    return "'" + value.replace("'", "''") + "'"


def is_serial(column: ColumnDescriptor) -> bool:
    """True if the column default draws from a sequence."""
    return bool(column.default) and SERIAL_DEFAULT_MARKER in column.default


def map_column_type(column: ColumnDescriptor) -> str:
    """Map a column to its portable type name.

    Rules, in order:

    - sequence-backed default -> ``SERIAL``
    - known ``udt_name`` -> fixed mapping (``varchar`` keeps its bound)
    - anything else -> upper-cased ``data_type`` plus ``(n)`` when a
      length bound exists

    Examples:
        >>> map_column_type(ColumnDescriptor(name="n", udt_name="varchar", max_length=64))
        'VARCHAR(64)'
        >>> map_column_type(ColumnDescriptor(name="d", udt_name="jsonb", data_type="jsonb"))
        'JSONB'
    """
    if is_serial(column):
        return SERIAL_TYPE

    if column.udt_name == "varchar":
        return f"VARCHAR({column.max_length})" if column.max_length else "VARCHAR"

    if column.udt_name in UDT_TYPE_MAP:
        return UDT_TYPE_MAP[column.udt_name]

    data_type = (column.data_type or column.udt_name).upper()
    if column.max_length:
        data_type += f"({column.max_length})"
    return data_type


def column_definition(column: ColumnDescriptor) -> str:
    """Build the definition line for one column.

    Serial columns never carry DEFAULT or NOT NULL; other columns emit the
    catalog default verbatim and NOT NULL when non-nullable.

    Example:
        >>> column_definition(ColumnDescriptor(
        ...     name="id", udt_name="int4", is_nullable=False,
        ...     default="nextval('key_id_seq'::regclass)",
        ... ))
        '"id" SERIAL'
    """
    data_type = map_column_type(column)
    definition = f"{quote_ident(column.name)} {data_type}"

    if column.default and not is_serial(column):
        definition += f" DEFAULT {column.default}"

    if not column.is_nullable and data_type != SERIAL_TYPE:
        definition += " NOT NULL"

    return definition


def drop_table_statement(table_name: str) -> str:
    return f"DROP TABLE IF EXISTS {quote_ident(table_name)} CASCADE;"


def create_table_statement(table_name: str, columns: list[ColumnDescriptor]) -> str:
    """Build a multi-line ``CREATE TABLE IF NOT EXISTS`` statement."""
    body = ",\n  ".join(column_definition(col) for col in columns)
    return f"CREATE TABLE IF NOT EXISTS {quote_ident(table_name)} (\n  {body}\n);"


def primary_key_statement(table_name: str, pk_columns: list[str]) -> str:
    cols = ", ".join(quote_ident(c) for c in pk_columns)
    return f"ALTER TABLE {quote_ident(table_name)} ADD PRIMARY KEY ({cols});"
