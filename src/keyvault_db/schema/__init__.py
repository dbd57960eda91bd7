"""Schema introspection, DDL generation and core-table verification.

Usage:
    >>> from keyvault_db.schema import SchemaIntrospector, compare_tables
    >>> from keyvault_db.schema import column_definition, create_table_statement
"""

from keyvault_db.schema.ddl import (
    column_definition,
    create_table_statement,
    drop_table_statement,
    map_column_type,
    primary_key_statement,
    quote_ident,
    quote_literal,
)
from keyvault_db.schema.introspector import SchemaIntrospector
from keyvault_db.schema.models import ColumnDescriptor, TableSnapshot, VerificationResult
from keyvault_db.schema.verifier import compare_tables, verify_database

__all__ = [
    # DDL
    "column_definition",
    "create_table_statement",
    "drop_table_statement",
    "map_column_type",
    "primary_key_statement",
    "quote_ident",
    "quote_literal",
    # Introspection
    "SchemaIntrospector",
    # Models
    "ColumnDescriptor",
    "TableSnapshot",
    "VerificationResult",
    # Verification
    "compare_tables",
    "verify_database",
]
