"""Migrations for the metadata store (users, sessions, accounts, verifications)."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from app.core.config import get_settings
from app.models import Base

alembic_config = context.config

# alembic.ini carries no logging sections; only configure logging when it does.
if alembic_config.config_file_name is not None and alembic_config.file_config.has_section("loggers"):
    fileConfig(alembic_config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    return alembic_config.get_main_option("sqlalchemy.url") or get_settings().DATABASE_URL


def migrate_offline() -> None:
    """Emit SQL to stdout without connecting."""
    context.configure(
        url=database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_online() -> None:
    engine = create_engine(database_url(), poolclass=NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
