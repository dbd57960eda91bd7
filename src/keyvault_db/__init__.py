"""keyvault-db: Database administration for a credential-service PostgreSQL store.

Provides SQL snapshots and restore, core-table verification, a
XSalsa20-Poly1305 secret box for stored private keys, and encryption-key
rotation over the ``private-key`` table.

Usage:
    from keyvault_db import snapshot_database, restore_database
    from keyvault_db import verify_database, rotate_encryption_key
    from keyvault_db import SecretBox, generate_key
    from keyvault_db import ConnectionConfig, load_db_config
"""

__version__ = "0.1.0"

# Adapters
from keyvault_db.adapters.base import DatabaseClient
from keyvault_db.adapters.postgres import AsyncPostgresAdapter

# Config
from keyvault_db.config.loader import load_db_config
from keyvault_db.config.models import (
    CORE_TABLES,
    ConnectionConfig,
    DatabaseConfig,
    DatabaseProfile,
    SecretTable,
)

# Factory
from keyvault_db.factory import get_adapter, resolve_connection

# Crypto
from keyvault_db.crypto.secret_box import (
    SecretBox,
    decrypt,
    encrypt,
    generate_key,
    generate_password,
)

# Schema
from keyvault_db.schema.verifier import verify_database

# Backup / restore
from keyvault_db.backup.restore import restore_database
from keyvault_db.backup.snapshot import snapshot_database

# Rotation
from keyvault_db.rotation.rotate import rotate_encryption_key

# Admin
from keyvault_db.admin import change_password

# Errors
from keyvault_db.errors import KeyvaultDbError

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "CORE_TABLES",
    "ConnectionConfig",
    "DatabaseConfig",
    "DatabaseProfile",
    "SecretTable",
    # Factory
    "get_adapter",
    "resolve_connection",
    # Crypto
    "SecretBox",
    "encrypt",
    "decrypt",
    "generate_key",
    "generate_password",
    # Schema
    "verify_database",
    # Backup / restore
    "snapshot_database",
    "restore_database",
    # Rotation
    "rotate_encryption_key",
    # Admin
    "change_password",
    # Errors
    "KeyvaultDbError",
]
