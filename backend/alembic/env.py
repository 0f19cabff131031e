# backend/alembic/env.py
from __future__ import annotations
import sys
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

# --- Make sure "mathmentor" is importable (points to backend/) ---
BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BASE_DIR))

# --- Single source of truth for Base and the DB URL (.env is loaded by mathmentor.config) ---
from mathmentor.services.db import Base, url as APP_URL
import mathmentor.models.document  # noqa: F401  (register tables)
import mathmentor.models.question  # noqa: F401
import mathmentor.models.answer  # noqa: F401

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    # IMPORTANT: pass URL directly here; do NOT set_main_option (avoids % interpolation)
    context.configure(
        url=APP_URL.render_as_string(hide_password=False),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        compare_server_default=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(
        APP_URL.render_as_string(hide_password=False),
        poolclass=pool.NullPool,
        future=True,
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
