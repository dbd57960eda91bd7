"""Exception hierarchy for keyvault-db.

Configuration errors are raised before any database or cryptographic
work starts.  Operation errors (snapshot, restore, password change) wrap
the underlying driver exception via ``raise ... from exc``.  Per-item
errors (``DecryptionError``, ``RotationVerificationError``) are recorded
by the batch operations rather than propagated.
"""


class KeyvaultDbError(Exception):
    """Base class for all keyvault-db errors."""

    pass


# ============================================================================
# Configuration errors
# ============================================================================


class ConfigurationError(KeyvaultDbError):
    """Raised when caller-provided input is invalid."""

    pass


class KeyFormatError(ConfigurationError):
    """Raised when an encryption key is not exactly 64 hex characters."""

    pass


class ArtifactNotFoundError(ConfigurationError):
    """Raised when a snapshot artifact path does not exist."""

    pass


class ProfileNotFoundError(ConfigurationError):
    """Raised when no database profile is configured or the name is unknown."""

    pass


# ============================================================================
# Operation errors
# ============================================================================


class DatabaseConnectionError(KeyvaultDbError):
    """Raised when a database session cannot be established."""

    pass


class SnapshotError(KeyvaultDbError):
    """Raised when a snapshot cannot be produced."""

    pass


class RestoreError(KeyvaultDbError):
    """Raised when a restore cannot start or the database cannot be recreated."""

    pass


class PasswordChangeError(KeyvaultDbError):
    """Raised when a role password cannot be changed."""

    pass


# ============================================================================
# Cryptographic / rotation errors
# ============================================================================


class DecryptionError(KeyvaultDbError):
    """Raised when a ciphertext fails authentication (wrong key or tampered)."""

    pass


class MalformedCiphertextError(DecryptionError):
    """Raised when a ciphertext blob is not valid hex or is too short."""

    pass


class RotationVerificationError(KeyvaultDbError):
    """Raised when a re-encrypted secret does not round-trip to the original."""

    pass


class RotationIncompleteError(KeyvaultDbError):
    """Raised when a rotation finished with one or more failed records."""

    def __init__(self, error_count: int, success_count: int) -> None:
        self.error_count = error_count
        self.success_count = success_count
        super().__init__(
            f"{error_count} key(s) failed to rotate "
            f"({success_count} rotated). Do not switch the active key."
        )
