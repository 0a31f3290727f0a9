from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from book_catalog.config import Settings
from book_catalog.db import Base
from book_catalog import entities  # noqa: F401  registers the books table

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def database_url() -> str:
    # "env" in alembic.ini defers to the catalog's own settings (APP_DATABASE_URL, POSTGRES_*).
    url = config.get_main_option("sqlalchemy.url")
    if url and url != "env":
        return url
    return Settings().database_url


if context.is_offline_mode():
    context.configure(url=database_url(), target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()
else:
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()
