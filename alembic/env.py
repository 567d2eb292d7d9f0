"""Alembic environment bound to the ledger models and DATABASE_URL."""

from alembic import context
from sqlalchemy import create_engine, pool

from tonwallet.config import get_settings
from tonwallet.ledger.models import Base

target_metadata = Base.metadata


def _sync_url() -> str:
    url = context.config.get_main_option("sqlalchemy.url") or get_settings().database_url
    return url.replace("+aiosqlite", "")


def run_migrations_offline() -> None:
    context.configure(url=_sync_url(), target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(_sync_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
