"""Adapter factory and connection resolution.

Builds ``AsyncPostgresAdapter`` instances from an explicit
``ConnectionConfig`` and resolves which connection to use from a db.toml
profile or an environment mapping.  Nothing here reads process state on
its own: callers pass the environment mapping in.

Usage:
    from keyvault_db.factory import get_adapter, resolve_connection

    connection = resolve_connection(config, profile_name="local", environ=os.environ)
    adapter = get_adapter(connection)
"""

from collections.abc import Mapping
from typing import Any

from keyvault_db.adapters.postgres import AsyncPostgresAdapter
from keyvault_db.config.models import (
    MAINTENANCE_DATABASE,
    ConnectionConfig,
    DatabaseConfig,
)
from keyvault_db.errors import ConfigurationError, ProfileNotFoundError

# Environment variable names understood by connection_from_env()
ENV_HOST = "DATABASE_HOST"
ENV_PORT = "DATABASE_PORT"
ENV_NAME = "DATABASE_NAME"
ENV_USER = "DATABASE_USERNAME"
ENV_PASSWORD = "DATABASE_PASSWORD"
ENV_PROFILE = "DB_PROFILE"


# ============================================================================
# Adapter Construction
# ============================================================================


def get_adapter(connection: ConnectionConfig, **engine_kwargs: Any) -> AsyncPostgresAdapter:
    """Create an adapter for the connection's database.

    Args:
        connection: Target database.
        **engine_kwargs: Forwarded to ``create_async_engine_pooled``.

    Returns:
        ``AsyncPostgresAdapter``; the caller owns it and must ``close()`` it.
    """
    return AsyncPostgresAdapter(connection.url(), **engine_kwargs)


def get_maintenance_adapter(connection: ConnectionConfig) -> AsyncPostgresAdapter:
    """Create an autocommit adapter on the server's maintenance database.

    DROP DATABASE, CREATE DATABASE and ALTER USER run here; the first two
    cannot run inside a transaction block.
    """
    return get_adapter(
        connection.for_database(MAINTENANCE_DATABASE),
        isolation_level="AUTOCOMMIT",
    )


# ============================================================================
# Connection Resolution
# ============================================================================


def resolve_profile(config: DatabaseConfig, profile_name: str) -> ConnectionConfig:
    """Look up a named profile.

    Raises:
        ProfileNotFoundError: If the profile is not defined.
    """
    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml. Available: {available}"
        )
    profile = config.profiles[profile_name]
    return ConnectionConfig(
        host=profile.host,
        port=profile.port,
        database=profile.database,
        user=profile.user,
        password=profile.password,
    )


def connection_from_env(environ: Mapping[str, str]) -> ConnectionConfig:
    """Build a connection from ``DATABASE_*`` variables in ``environ``.

    Defaults match a local development server: localhost:5432, database
    ``vckit``, user ``postgres``.

    Raises:
        ConfigurationError: If ``DATABASE_PORT`` is not an integer.
    """
    port_text = environ.get(ENV_PORT, "5432")
    try:
        port = int(port_text)
    except ValueError as e:
        raise ConfigurationError(
            f"{ENV_PORT} must be an integer, got '{port_text}'"
        ) from e

    return ConnectionConfig(
        host=environ.get(ENV_HOST, "localhost"),
        port=port,
        database=environ.get(ENV_NAME, "vckit"),
        user=environ.get(ENV_USER, "postgres"),
        password=environ.get(ENV_PASSWORD) or None,
    )


def resolve_connection(
    config: DatabaseConfig | None,
    profile_name: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConnectionConfig:
    """Pick the connection for a command.

    Priority:
    1. Explicit ``profile_name``
    2. ``DB_PROFILE`` in ``environ``
    3. ``DATABASE_*`` variables in ``environ``

    Raises:
        ProfileNotFoundError: If a profile is requested but no config was
            loaded, or the profile is unknown.
    """
    environ = environ or {}
    name = profile_name or environ.get(ENV_PROFILE)

    if name:
        if config is None:
            raise ProfileNotFoundError(
                f"Profile '{name}' requested but no db.toml was loaded"
            )
        return resolve_profile(config, name)

    return connection_from_env(environ)
