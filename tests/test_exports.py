"""Tests for the public package surface."""

import keyvault_db


class TestPackageExports:
    def test_version(self):
        assert keyvault_db.__version__ == "0.1.0"

    def test_all_names_resolve(self):
        for name in keyvault_db.__all__:
            assert hasattr(keyvault_db, name), name

    def test_operations_exported(self):
        for name in (
            "snapshot_database",
            "restore_database",
            "verify_database",
            "rotate_encryption_key",
            "change_password",
            "SecretBox",
            "generate_key",
        ):
            assert name in keyvault_db.__all__
