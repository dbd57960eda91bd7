"""Encryption-key rotation for stored private keys.

Every record of the secret table is decrypted under the old key,
re-encrypted under the new key, decrypted again to prove the new blob
round-trips, and only then written back (one UPDATE per record, keyed by
alias).  A record that fails any step is recorded and left untouched; the
batch always runs to the end.

Rotated records stay committed even when others fail.  A result with a
non-zero ``error_count`` therefore means the table holds a mix of old-key
and new-key blobs: the active key must not be switched until a re-run
reports zero errors.  Re-running is safe because rows already under the
new key simply fail to decrypt under the old one and are reported.

Usage:
    from keyvault_db.rotation import rotate_encryption_key

    result = await rotate_encryption_key(connection, old_key, new_key)
    result.raise_for_errors()
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from keyvault_db.adapters.base import DatabaseClient
from keyvault_db.config.models import ConnectionConfig, SecretTable
from keyvault_db.crypto.secret_box import SecretBox, validate_key
from keyvault_db.errors import (
    DatabaseConnectionError,
    DecryptionError,
    MalformedCiphertextError,
    RotationVerificationError,
)
from keyvault_db.factory import get_adapter
from keyvault_db.progress import ProgressCallback, report
from keyvault_db.rotation.models import RotationFailure, RotationResult
from keyvault_db.schema.ddl import quote_ident

logger = logging.getLogger(__name__)

ALIAS_DISPLAY_LENGTH = 20


def short_alias(alias: str) -> str:
    """Truncate an alias for log output."""
    if len(alias) <= ALIAS_DISPLAY_LENGTH:
        return alias
    return alias[:ALIAS_DISPLAY_LENGTH] + "..."


def reencrypt(blob_hex: str | None, old_box: SecretBox, new_box: SecretBox) -> str:
    """Move one blob from the old key to the new key.

    Returns:
        The new blob, already verified to decrypt to the original plaintext.

    Raises:
        DecryptionError: If the blob does not decrypt under the old key.
        RotationVerificationError: If the new blob does not round-trip.
    """
    if not isinstance(blob_hex, str):
        raise MalformedCiphertextError("No ciphertext stored")

    plaintext = old_box.decrypt(blob_hex)
    new_blob = new_box.encrypt(plaintext)

    if new_box.decrypt(new_blob) != plaintext:
        raise RotationVerificationError(
            "Verification failed - encryption round-trip mismatch"
        )
    return new_blob


async def rotate_records(
    adapter: DatabaseClient,
    old_box: SecretBox,
    new_box: SecretBox,
    table: SecretTable,
    on_progress: ProgressCallback | None = None,
) -> RotationResult:
    """Rotate every record of ``table`` over an open adapter.

    Records are processed in the order the catalog returns them.
    Decryption, verification and per-row update failures are recorded in
    the result; they never abort the loop.

    Raises:
        DatabaseConnectionError: If the records cannot be fetched.
    """
    columns = ", ".join(
        quote_ident(c) for c in (table.id_column, table.type_column, table.secret_column)
    )
    try:
        rows = await adapter.select(table.table, columns)
    except (SQLAlchemyError, OSError) as e:
        raise DatabaseConnectionError(f"Failed to read {table.table}: {e}") from e

    result = RotationResult(total=len(rows))
    if not rows:
        logger.warning("No private keys found. Nothing to rotate.")
        return result

    logger.info("Rotating %d private key(s)", len(rows))

    for position, row in enumerate(rows, start=1):
        alias = str(row[table.id_column])
        try:
            new_blob = reencrypt(row[table.secret_column], old_box, new_box)
            await adapter.update(
                table.table,
                data={table.secret_column: new_blob},
                filters={table.id_column: row[table.id_column]},
            )
            result.success_count += 1
            logger.debug("Rotated %s", short_alias(alias))
        except (DecryptionError, RotationVerificationError, SQLAlchemyError, ValueError) as e:
            result.error_count += 1
            result.failures.append(RotationFailure(alias=alias, reason=str(e)))
            logger.warning("Failed to rotate %s: %s", short_alias(alias), e)

        report(on_progress, "rotate", short_alias(alias), position, len(rows))

    return result


async def rotate_encryption_key(
    connection: ConnectionConfig,
    old_key: str,
    new_key: str,
    *,
    table: SecretTable | None = None,
    on_progress: ProgressCallback | None = None,
) -> RotationResult:
    """Re-encrypt every stored private key from ``old_key`` to ``new_key``.

    Both keys are validated before the database is contacted.

    Args:
        connection: Database holding the secret table.
        old_key: Current key, 64 hex characters.
        new_key: Replacement key, 64 hex characters.
        table: Secret table layout (default: ``"private-key"`` with
            ``alias``, ``type`` and ``privateKeyHex``).
        on_progress: Called once per record.

    Returns:
        ``RotationResult``.  Check ``ok`` (or call ``raise_for_errors()``)
        before switching the active key.

    Raises:
        KeyFormatError: If either key is malformed.
        DatabaseConnectionError: If the records cannot be fetched.
    """
    validate_key(old_key, "OLD_KEY")
    validate_key(new_key, "NEW_KEY")
    old_box = SecretBox(old_key)
    new_box = SecretBox(new_key)

    adapter = get_adapter(connection)
    try:
        result = await rotate_records(
            adapter,
            old_box,
            new_box,
            table or SecretTable(),
            on_progress=on_progress,
        )
    finally:
        await adapter.close()

    if result.ok:
        logger.info("Rotation complete: %d key(s) rotated", result.success_count)
    else:
        logger.warning(
            "%d of %d key(s) failed to rotate. DO NOT switch the active "
            "encryption key until a re-run reports zero errors.",
            result.error_count,
            result.total,
        )
    return result
