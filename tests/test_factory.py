"""Tests for connection resolution and adapter construction."""

from unittest.mock import patch

import pytest

from keyvault_db.config.models import ConnectionConfig, DatabaseConfig, DatabaseProfile
from keyvault_db.errors import ConfigurationError, ProfileNotFoundError
from keyvault_db.factory import (
    connection_from_env,
    get_adapter,
    get_maintenance_adapter,
    resolve_connection,
    resolve_profile,
)


def _config() -> DatabaseConfig:
    return DatabaseConfig(
        profiles={
            "local": DatabaseProfile(database="vckit", user="postgres", password="pw"),
            "staging": DatabaseProfile(
                host="db.staging", database="vckit", user="admin", description="Staging"
            ),
        }
    )


# ============================================================================
# Environment
# ============================================================================


class TestConnectionFromEnv:
    def test_defaults(self):
        conn = connection_from_env({})
        assert conn == ConnectionConfig(
            host="localhost", port=5432, database="vckit", user="postgres"
        )

    def test_all_variables(self):
        conn = connection_from_env(
            {
                "DATABASE_HOST": "db",
                "DATABASE_PORT": "6543",
                "DATABASE_NAME": "wallet",
                "DATABASE_USERNAME": "admin",
                "DATABASE_PASSWORD": "s3cret",
            }
        )
        assert conn.url() == "postgresql://admin:s3cret@db:6543/wallet"

    def test_empty_password_is_none(self):
        assert connection_from_env({"DATABASE_PASSWORD": ""}).password is None

    def test_bad_port(self):
        with pytest.raises(ConfigurationError, match="DATABASE_PORT"):
            connection_from_env({"DATABASE_PORT": "abc"})


# ============================================================================
# Profiles
# ============================================================================


class TestResolveConnection:
    def test_explicit_profile(self):
        conn = resolve_connection(_config(), "staging", {})
        assert conn.host == "db.staging"
        assert type(conn) is ConnectionConfig

    def test_profile_from_env(self):
        conn = resolve_connection(_config(), None, {"DB_PROFILE": "local"})
        assert conn.password == "pw"

    def test_explicit_profile_beats_env(self):
        conn = resolve_connection(_config(), "staging", {"DB_PROFILE": "local"})
        assert conn.user == "admin"

    def test_falls_back_to_env(self):
        conn = resolve_connection(None, None, {"DATABASE_NAME": "wallet"})
        assert conn.database == "wallet"

    def test_unknown_profile(self):
        with pytest.raises(ProfileNotFoundError, match="Available: local, staging"):
            resolve_profile(_config(), "prod")

    def test_profile_without_config(self):
        with pytest.raises(ProfileNotFoundError):
            resolve_connection(None, "local", {})


# ============================================================================
# Adapter construction
# ============================================================================


class TestGetAdapter:
    def test_adapter_uses_connection_url(self):
        conn = ConnectionConfig(database="vckit", user="postgres", password="pw")
        with patch("keyvault_db.factory.AsyncPostgresAdapter") as mock_cls:
            get_adapter(conn)
        mock_cls.assert_called_once_with("postgresql://postgres:pw@localhost:5432/vckit")

    def test_maintenance_adapter_targets_postgres_in_autocommit(self):
        conn = ConnectionConfig(database="vckit", user="postgres")
        with patch("keyvault_db.factory.AsyncPostgresAdapter") as mock_cls:
            get_maintenance_adapter(conn)
        mock_cls.assert_called_once_with(
            "postgresql://postgres@localhost:5432/postgres",
            isolation_level="AUTOCOMMIT",
        )
