from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

import settings
from database import Base
import models  # noqa: F401  (registers every table on Base.metadata)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# sqlalchemy.url in alembic.ini is left empty; DATABASE_URL (env / .env) is used instead
DB_URL = config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL
IS_SQLITE = DB_URL.startswith("sqlite")


def _configure(**kw) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=IS_SQLITE,  # sqlite cannot ALTER most columns in place
        **kw,
    )


def run_migrations_offline() -> None:
    _configure(url=DB_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = dict(config.get_section(config.config_ini_section) or {})
    section["sqlalchemy.url"] = DB_URL
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
