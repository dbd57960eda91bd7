"""Database adapters: Protocol definition and PostgreSQL implementation.

Usage:
    >>> from keyvault_db.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from keyvault_db.adapters.base import DatabaseClient
from keyvault_db.adapters.postgres import AsyncPostgresAdapter, create_async_engine_pooled

__all__ = ["DatabaseClient", "AsyncPostgresAdapter", "create_async_engine_pooled"]
