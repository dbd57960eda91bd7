"""Result models for snapshot and restore.

Usage:
    from keyvault_db.backup.models import SnapshotResult, RestoreResult

    result = RestoreResult(success_statements=12, failed_statements=0)
    result.ok   # True
"""

from pydantic import BaseModel, Field


class SnapshotResult(BaseModel):
    """Where a snapshot was written and how large it is."""

    artifact_path: str
    byte_size: int
    line_count: int
    table_count: int = 0


class StatementFailure(BaseModel):
    """A statement that failed during replay (not an idempotent conflict)."""

    statement: str  # first line only
    message: str


class RestoreResult(BaseModel):
    """Counts from replaying a snapshot artifact.

    ``skipped_conflicts`` counts "already exists" / "duplicate key"
    failures, which are neither successes nor errors.
    """

    success_statements: int = 0
    failed_statements: int = 0
    skipped_conflicts: int = 0
    total_statements: int = 0
    failures: list[StatementFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True if no statement failed."""
        return self.failed_statements == 0
