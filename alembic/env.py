# alembic/env.py
"""
Migration environment for the booking and inventory schema.

The target database is ``sqlalchemy.url`` when the caller sets one on the
Alembic config (tests, one-off scripts), otherwise ``DATABASE_URL`` from
the application settings.
"""
from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from alembic import context

from hms_core.core.config import get_settings
from hms_core.models.base import Base
import hms_core.models  # noqa: F401  registers every table on Base.metadata

config = context.config

# Programmatic callers keep their own logging setup
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or str(get_settings().database_url)


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout instead of executing it."""
    context.configure(
        url=database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(database_url(), future=True, poolclass=pool.NullPool)

    with engine.connect() as connection:
        # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
