"""Snapshot and restore of the whole working schema as SQL text.

Usage:
    from keyvault_db.backup import snapshot_database, restore_database

    snap = await snapshot_database(connection, "backups/vckit.sql")
    result = await restore_database(connection, snap.artifact_path, drop_first=True)
"""

from keyvault_db.backup.models import RestoreResult, SnapshotResult, StatementFailure
from keyvault_db.backup.restore import (
    is_benign_conflict,
    parse_statements,
    recreate_database,
    restore_database,
)
from keyvault_db.backup.snapshot import insert_statement, render_value, snapshot_database

__all__ = [
    "RestoreResult",
    "SnapshotResult",
    "StatementFailure",
    "is_benign_conflict",
    "parse_statements",
    "recreate_database",
    "restore_database",
    "insert_statement",
    "render_value",
    "snapshot_database",
]
