from __future__ import annotations

import sys
from pathlib import Path
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gateway.infra.config import settings  # noqa: E402
from gateway.infra.db import Base, owns_table  # noqa: E402
from gateway.domain import models  # noqa: F401,E402


config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


target_metadata = Base.metadata

# 注册表库：alembic upgrade head
# 审计库单独部署时：alembic -x db=audit upgrade head
DB_ROLE = context.get_x_argument(as_dictionary=True).get("db", "registry")
config.attributes["db_role"] = DB_ROLE


def get_url() -> str:
    return settings.audit_database_url if DB_ROLE == "audit" else settings.DATABASE_URL


def include_object(obj, name, type_, reflected, compare_to) -> bool:  # noqa: ARG001
    # autogenerate 只比较当前库负责的表
    table = obj if type_ == "table" else getattr(obj, "table", None)
    if table is None:
        return True
    return owns_table(DB_ROLE, table.name)


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=get_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()

    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        _configure(connection=connection)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
