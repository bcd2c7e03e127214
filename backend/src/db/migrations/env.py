"""
Alembic environment for the roster schema.

Run from the backend directory:
    alembic upgrade head

The target URL is the application's ROSTER_DB_URL (backend/.env is honoured),
falling back to sqlalchemy.url from alembic.ini when it is not set.
"""

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

from alembic import context

_backend_dir = Path(__file__).resolve().parents[3]
load_dotenv(dotenv_path=_backend_dir / ".env")

# Repository root, so that backend.src is importable
sys.path.insert(0, str(_backend_dir.parent))

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from backend.src.models import Base  # noqa: E402

target_metadata = Base.metadata

if os.environ.get("ROSTER_DB_URL"):
    config.set_main_option("sqlalchemy.url", os.environ["ROSTER_DB_URL"])

# Autogenerate should notice type and server default changes too
COMPARE_OPTIONS = {"compare_type": True, "compare_server_default": True}


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
            **COMPARE_OPTIONS,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
