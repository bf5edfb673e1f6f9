import importlib
import logging
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# import settings and Base
try:
    from beatmarket.app.config import settings
    from beatmarket.db.base import Base
except Exception:
    logging.exception("Failed to import beatmarket.app.config or beatmarket.db.base. Is the package installed?")
    raise

# import model modules explicitly so Base.metadata is fully populated
model_modules = [
    "beatmarket.models.user",
    "beatmarket.models.beat",
    "beatmarket.models.order",
    "beatmarket.models.download",
    "beatmarket.models.webhook_event",
]

for mod in model_modules:
    try:
        importlib.import_module(mod)
    except Exception:
        logging.exception("Failed to import model module '%s'.", mod)
        raise

# Alembic config
config = context.config

# override DB URL from settings
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
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
