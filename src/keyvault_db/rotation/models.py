"""Result models for encryption-key rotation."""

from pydantic import BaseModel, Field

from keyvault_db.errors import RotationIncompleteError


class RotationFailure(BaseModel):
    """A record that was not rotated and is still under the old key."""

    alias: str
    reason: str


class RotationResult(BaseModel):
    """Outcome of one rotation run.

    Example:
        >>> result = RotationResult(success_count=3, error_count=0, total=3)
        >>> result.ok
        True
    """

    success_count: int = 0
    error_count: int = 0
    total: int = 0
    failures: list[RotationFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every record now uses the new key."""
        return self.error_count == 0

    def raise_for_errors(self) -> None:
        """Raise ``RotationIncompleteError`` if any record failed."""
        if self.error_count:
            raise RotationIncompleteError(self.error_count, self.success_count)
