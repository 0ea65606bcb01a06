from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from questionbank.db.connection import get_sqlalchemy_database_url

config = context.config
config.set_main_option("sqlalchemy.url", get_sqlalchemy_database_url())

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Migrations are raw SQL; there is no metadata to autogenerate from.
target_metadata = None


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
