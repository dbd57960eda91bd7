"""Secret-box encryption, key validation and key/password generation.

Usage:
    >>> from keyvault_db.crypto import SecretBox, generate_key, validate_key
"""

from keyvault_db.crypto.secret_box import (
    NONCE_BYTES,
    SecretBox,
    decrypt,
    encrypt,
    generate_key,
    generate_password,
    validate_key,
)

__all__ = [
    "NONCE_BYTES",
    "SecretBox",
    "decrypt",
    "encrypt",
    "generate_key",
    "generate_password",
    "validate_key",
]
