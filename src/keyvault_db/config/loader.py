"""TOML loader for db.toml."""

import tomllib
from pathlib import Path

from keyvault_db.config.models import DatabaseConfig, DatabaseProfile, SecretTable


def load_db_config(config_path: Path | str | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ./db.toml)

    Returns:
        DatabaseConfig with all profiles, the expected table set and the
        secret table layout.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Copy db.toml.example to db.toml and configure your profiles."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    settings: dict = {
        "profiles": profiles,
        "secret_table": SecretTable(**data.get("rotation", {})),
    }

    # Parse verify settings (falls back to CORE_TABLES)
    verify_settings = data.get("verify", {})
    if "expected_tables" in verify_settings:
        settings["expected_tables"] = verify_settings["expected_tables"]

    return DatabaseConfig(**settings)
