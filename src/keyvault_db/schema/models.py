"""Pydantic models for schema introspection and verification.

This module contains schema-domain models:
- Introspection models: ColumnDescriptor, TableSnapshot
- Verification model: VerificationResult
"""

from pydantic import BaseModel, Field


# ============================================================================
# Schema Introspection Models
# ============================================================================


class ColumnDescriptor(BaseModel):
    """Introspected metadata for one column.

    ``udt_name`` is the native type tag (``int4``, ``varchar``, ...);
    ``data_type`` is the catalog's verbose name (``character varying``).

    Example:
        >>> col = ColumnDescriptor(name="alias", udt_name="varchar", max_length=255)
        >>> col.is_nullable
        True
    """

    name: str
    udt_name: str
    data_type: str = ""
    max_length: int | None = None
    is_nullable: bool = True
    default: str | None = None


class TableSnapshot(BaseModel):
    """Schema of one table as captured for a snapshot.

    Column order is the table's ordinal order; data rows are always read
    with this exact column list.
    """

    name: str
    columns: list[ColumnDescriptor] = Field(default_factory=list)
    primary_key: list[str] = Field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]


# ============================================================================
# Verification Result
# ============================================================================


class VerificationResult(BaseModel):
    """Result of comparing present tables against the expected core set.

    Example:
        >>> result = VerificationResult(valid=True)
        >>> result.format_report()
        'All expected tables present'
    """

    valid: bool
    missing: list[str] = Field(default_factory=list)
    present: list[str] = Field(default_factory=list)
    extra: list[str] = Field(default_factory=list)  # Informational only

    def format_report(self) -> str:
        """Format verification result as human-readable report."""
        if self.valid:
            return "All expected tables present"

        lines = [f"Missing expected tables ({len(self.missing)}):"]
        for table in self.missing:
            lines.append(f"  - {table}")

        if self.extra:
            lines.append(f"\nOther tables: {', '.join(self.extra)}")

        return "\n".join(lines)
