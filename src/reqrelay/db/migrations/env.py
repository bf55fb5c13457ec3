"""Alembic migration environment configuration.

- Loads SQLAlchemy models for autogenerate support
- Takes the database URL from the Alembic config, falling back to the
  REQRELAY_DATABASE__URL environment variable
- Supports both online and offline migration modes
"""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from reqrelay.db.models import Base

config = context.config

# Set up Python logging from alembic.ini when run through the alembic CLI
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def get_url() -> str:
    """Get database URL from config or environment.

    Priority:
    1. sqlalchemy.url set on the config (programmatic runs)
    2. REQRELAY_DATABASE__URL environment variable
    """
    url = config.get_main_option("sqlalchemy.url") or os.environ.get(
        "REQRELAY_DATABASE__URL", ""
    )
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL without connecting)."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode within a transaction."""
    # NullPool ensures connections are closed immediately after use
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
