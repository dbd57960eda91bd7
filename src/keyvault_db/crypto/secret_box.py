"""Secret-box encryption of stored private keys.

XSalsa20-Poly1305 (NaCl ``crypto_secretbox``) via PyNaCl.  The wire format
is the one the credential service writes to the database::

    hex( nonce[24] || ciphertext+tag )

A fresh random nonce is drawn for every encryption, so encrypting the same
plaintext twice never yields the same blob.  Decryption authenticates
before returning anything; a wrong key or a tampered blob raises
``DecryptionError``.

Usage:
    from keyvault_db.crypto.secret_box import SecretBox, generate_key

    box = SecretBox(generate_key())
    blob = box.encrypt("deadbeef")
    assert box.decrypt(blob) == "deadbeef"
"""

import re
import secrets
import string

import nacl.exceptions
import nacl.secret
import nacl.utils

from keyvault_db.errors import DecryptionError, KeyFormatError, MalformedCiphertextError

NONCE_BYTES = nacl.secret.SecretBox.NONCE_SIZE  # 24
KEY_BYTES = nacl.secret.SecretBox.KEY_SIZE  # 32

# Shortest valid blob: the nonce alone, hex-encoded
MIN_BLOB_HEX_LENGTH = NONCE_BYTES * 2

_KEY_PATTERN = re.compile(r"[0-9a-fA-F]{64}")

PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


def validate_key(key: str, label: str = "key") -> bytes:
    """Check the key format and return the raw 32 key bytes.

    Args:
        key: Candidate key, exactly 64 hex characters.
        label: Name used in the error message (e.g. ``"OLD_KEY"``).

    Raises:
        KeyFormatError: If the key is not exactly 64 hex characters.

    Example:
        >>> len(validate_key("00" * 32))
        32
    """
    if not isinstance(key, str) or not _KEY_PATTERN.fullmatch(key):
        raise KeyFormatError(f"{label} must be 64 hex characters")
    return bytes.fromhex(key)


def generate_key() -> str:
    """Generate a new 256-bit key as 64 lowercase hex characters."""
    return secrets.token_hex(KEY_BYTES)


def generate_password(length: int = 24) -> str:
    """Generate a random password from letters, digits and ``!@#$%^&*``.

    Raises:
        ValueError: If ``length`` is not positive.
    """
    if length < 1:
        raise ValueError("Password length must be positive")
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


class SecretBox:
    """Authenticated symmetric encryption under one 256-bit key.

    Args:
        key_hex: 64 hex characters.

    Raises:
        KeyFormatError: If ``key_hex`` is malformed.
    """

    def __init__(self, key_hex: str) -> None:
        self._box = nacl.secret.SecretBox(validate_key(key_hex))

    def encrypt(self, plaintext: str) -> str:
        """Encrypt UTF-8 text under a fresh random nonce; return hex."""
        nonce = nacl.utils.random(NONCE_BYTES)
        # EncryptedMessage is nonce || ciphertext
        combined = self._box.encrypt(plaintext.encode("utf-8"), nonce)
        return bytes(combined).hex()

    def decrypt(self, blob_hex: str) -> str:
        """Authenticate and decrypt a hex blob.

        Raises:
            MalformedCiphertextError: If the blob is not hex or shorter than
                the nonce.
            DecryptionError: If authentication fails (wrong key or
                corrupted data).
        """
        if len(blob_hex) < MIN_BLOB_HEX_LENGTH:
            raise MalformedCiphertextError(
                f"Ciphertext too short: {len(blob_hex)} hex characters "
                f"(minimum {MIN_BLOB_HEX_LENGTH})"
            )
        try:
            combined = bytes.fromhex(blob_hex)
        except ValueError as e:
            raise MalformedCiphertextError("Ciphertext is not valid hex") from e

        nonce = combined[:NONCE_BYTES]
        ciphertext = combined[NONCE_BYTES:]
        try:
            plaintext = self._box.decrypt(ciphertext, nonce)
        except nacl.exceptions.CryptoError as e:
            raise DecryptionError("Decryption failed - wrong key or corrupted data") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted secret is not valid UTF-8") from e


def encrypt(plaintext: str, key_hex: str) -> str:
    """Encrypt ``plaintext`` under ``key_hex``; see ``SecretBox.encrypt``."""
    return SecretBox(key_hex).encrypt(plaintext)


def decrypt(blob_hex: str, key_hex: str) -> str:
    """Decrypt ``blob_hex`` under ``key_hex``; see ``SecretBox.decrypt``."""
    return SecretBox(key_hex).decrypt(blob_hex)
