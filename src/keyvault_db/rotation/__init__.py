"""Encryption-key rotation for stored private keys.

Usage:
    from keyvault_db.rotation import rotate_encryption_key

    result = await rotate_encryption_key(connection, old_key, new_key)
"""

from keyvault_db.rotation.models import RotationFailure, RotationResult
from keyvault_db.rotation.rotate import reencrypt, rotate_encryption_key, rotate_records

__all__ = [
    "RotationFailure",
    "RotationResult",
    "reencrypt",
    "rotate_encryption_key",
    "rotate_records",
]
