"""Tests for the secret-box cipher and key/password generation."""

import pytest

from keyvault_db.crypto.secret_box import (
    MIN_BLOB_HEX_LENGTH,
    NONCE_BYTES,
    PASSWORD_ALPHABET,
    SecretBox,
    decrypt,
    encrypt,
    generate_key,
    generate_password,
    validate_key,
)
from keyvault_db.errors import DecryptionError, KeyFormatError, MalformedCiphertextError

KEY_A = "11" * 32
KEY_B = "22" * 32
SECRET = "e0f1a2b3c4d5e6f708192a3b4c5d6e7f8091a2b3c4d5e6f708192a3b4c5d6e7f"


# ============================================================================
# Key validation and generation
# ============================================================================


class TestKeys:
    def test_generate_key_format(self):
        key = generate_key()
        assert len(key) == 64
        assert key == key.lower()
        validate_key(key)

    def test_generated_keys_differ(self):
        assert generate_key() != generate_key()

    def test_validate_key_returns_bytes(self):
        assert validate_key(KEY_A) == bytes([0x11]) * 32

    def test_uppercase_hex_accepted(self):
        validate_key("AB" * 32)

    @pytest.mark.parametrize("bad", ["", "11" * 31, "11" * 33, "zz" * 32, "11" * 31 + "1 "])
    def test_malformed_key_rejected(self, bad):
        with pytest.raises(KeyFormatError, match="64 hex characters"):
            validate_key(bad)

    def test_label_in_message(self):
        with pytest.raises(KeyFormatError, match="^OLD_KEY must be 64 hex characters$"):
            validate_key("abc", "OLD_KEY")

    def test_secret_box_rejects_bad_key(self):
        with pytest.raises(KeyFormatError):
            SecretBox("not-a-key")


class TestGeneratePassword:
    def test_default_length(self):
        assert len(generate_password()) == 24

    def test_custom_length_and_alphabet(self):
        password = generate_password(64)
        assert len(password) == 64
        assert set(password) <= set(PASSWORD_ALPHABET)

    def test_non_positive_length_rejected(self):
        with pytest.raises(ValueError):
            generate_password(0)


# ============================================================================
# Encryption / decryption
# ============================================================================


class TestSecretBox:
    def test_round_trip(self):
        box = SecretBox(KEY_A)
        assert box.decrypt(box.encrypt(SECRET)) == SECRET

    def test_round_trip_unicode_and_empty(self):
        box = SecretBox(KEY_A)
        assert box.decrypt(box.encrypt("")) == ""
        assert box.decrypt(box.encrypt("clé 🔑")) == "clé 🔑"

    def test_fresh_nonce_per_encryption(self):
        """Encrypting the same plaintext twice yields different blobs."""
        box = SecretBox(KEY_A)
        first, second = box.encrypt(SECRET), box.encrypt(SECRET)
        assert first != second
        assert first[: NONCE_BYTES * 2] != second[: NONCE_BYTES * 2]

    def test_blob_layout(self):
        """Blob is hex(nonce || ciphertext+16-byte tag)."""
        blob = SecretBox(KEY_A).encrypt("abc")
        assert len(blob) == (NONCE_BYTES + 16 + 3) * 2
        bytes.fromhex(blob)

    def test_wrong_key_fails(self):
        blob = SecretBox(KEY_A).encrypt(SECRET)
        with pytest.raises(DecryptionError, match="wrong key or corrupted data"):
            SecretBox(KEY_B).decrypt(blob)

    def test_tampered_blob_fails(self):
        blob = SecretBox(KEY_A).encrypt(SECRET)
        last = "0" if blob[-1] != "0" else "1"
        with pytest.raises(DecryptionError):
            SecretBox(KEY_A).decrypt(blob[:-1] + last)

    def test_short_blob_is_malformed(self):
        with pytest.raises(MalformedCiphertextError):
            SecretBox(KEY_A).decrypt("ab" * 10)

    def test_non_hex_blob_is_malformed(self):
        with pytest.raises(MalformedCiphertextError):
            SecretBox(KEY_A).decrypt("zz" * MIN_BLOB_HEX_LENGTH)

    def test_malformed_is_a_decryption_error(self):
        assert issubclass(MalformedCiphertextError, DecryptionError)

    def test_module_level_helpers(self):
        assert decrypt(encrypt(SECRET, KEY_A), KEY_A) == SECRET
