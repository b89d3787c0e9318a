"""Alembic environment for the configurator schema.

The database URL comes from the same Settings the app factory uses, so
``DATABASE_URL`` (or .env) drives both. Run from ``backend/``::

    alembic -c migrations/alembic.ini upgrade head
"""
from __future__ import annotations
from logging.config import fileConfig
import os, sys

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.config.settings import Settings  # noqa: E402
from app.models.authz import Base  # noqa: E402
import app.models.catalog  # noqa: E402,F401
import app.models.audit  # noqa: E402,F401

load_dotenv()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)
config.set_main_option('sqlalchemy.url', Settings.from_env().database_url)

target_metadata = Base.metadata

# money columns are Numeric(10, 2); keep type changes visible to autogenerate
CONFIGURE_OPTS = dict(target_metadata=target_metadata, render_as_batch=True, compare_type=True)


def run_migrations_offline():
    context.configure(url=config.get_main_option('sqlalchemy.url'), literal_binds=True, **CONFIGURE_OPTS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **CONFIGURE_OPTS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
