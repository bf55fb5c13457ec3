"""Programmatic Alembic runner used at service startup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from alembic import command
from alembic.config import Config

if TYPE_CHECKING:
    from reqrelay.core.config import Settings

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """Raised when migrations cannot be located or applied."""


def build_alembic_config(settings: Settings) -> Config:
    """Build an Alembic config pointing at the configured migration scripts.

    Args:
        settings: Application settings (migration_path and database URL).

    Returns:
        Alembic Config usable with alembic.command functions.
    """
    config = Config()
    config.set_main_option("script_location", settings.migration_path)
    # ConfigParser interpolation treats % specially (percent-encoded passwords)
    config.set_main_option("sqlalchemy.url", settings.database.driver_url.replace("%", "%%"))
    return config


def run_migrations(settings: Settings, revision: str = "head") -> None:
    """Upgrade the database schema to the given revision.

    Blocking; call it through asyncio.to_thread from async code.

    Raises:
        MigrationError: If the migration directory is missing or Alembic fails.
    """
    path = Path(settings.migration_path)
    if not path.is_dir():
        msg = f"Migration path not found: {settings.migration_path}"
        raise MigrationError(msg)

    logger.info("Running migrations from %s (target=%s)", path, revision)
    try:
        command.upgrade(build_alembic_config(settings), revision)
    except Exception as e:
        logger.error("Migration failed: %s", e)
        raise MigrationError(f"Migration failed: {e}") from e
    logger.info("Migrations applied")
