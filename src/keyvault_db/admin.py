"""Database role administration."""

import logging

from sqlalchemy.exc import SQLAlchemyError

from keyvault_db.config.models import ConnectionConfig
from keyvault_db.errors import ConfigurationError, PasswordChangeError
from keyvault_db.factory import get_maintenance_adapter
from keyvault_db.schema.ddl import quote_ident, quote_literal

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


async def change_password(
    connection: ConnectionConfig,
    new_password: str,
    *,
    target_user: str | None = None,
) -> str:
    """Set a new password for a database role.

    Runs ``ALTER USER`` on the maintenance database as ``connection.user``.

    Args:
        connection: Server to connect to (credentials of an admin role).
        new_password: At least 8 characters.
        target_user: Role to change (default: ``connection.user``).

    Returns:
        The role whose password was changed.

    Raises:
        ConfigurationError: If the password is too short.
        PasswordChangeError: If the statement fails.
    """
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise ConfigurationError(
            f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    user = target_user or connection.user
    statement = f"ALTER USER {quote_ident(user)} WITH PASSWORD {quote_literal(new_password)}"

    adapter = get_maintenance_adapter(connection)
    try:
        await adapter.execute_statement(statement)
    except (SQLAlchemyError, OSError) as e:
        raise PasswordChangeError(f"Password change failed: {e}") from e
    finally:
        await adapter.close()

    logger.info("Password changed for role %s on %s:%s", user, connection.host, connection.port)
    return user
