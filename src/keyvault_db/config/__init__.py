"""Configuration management: connection models, profiles and TOML loading.

Usage:
    >>> from keyvault_db.config import ConnectionConfig, load_db_config
"""

from keyvault_db.config.loader import load_db_config
from keyvault_db.config.models import (
    CORE_TABLES,
    MAINTENANCE_DATABASE,
    ConnectionConfig,
    DatabaseConfig,
    DatabaseProfile,
    SecretTable,
)

__all__ = [
    "load_db_config",
    "CORE_TABLES",
    "MAINTENANCE_DATABASE",
    "ConnectionConfig",
    "DatabaseConfig",
    "DatabaseProfile",
    "SecretTable",
]
