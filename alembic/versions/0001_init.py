"""init schema

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-19
"""

from __future__ import annotations

# 执行方式：在项目根目录运行 `alembic upgrade head`。
from alembic import context, op
import sqlalchemy as sa

from gateway.infra.db import owns_table


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


if __name__ == "__main__":
    raise SystemExit(
        "This file is an Alembic migration script. "
        "Do NOT run it with `python`. "
        "Run `alembic upgrade head` from the project root instead."
    )


def _owns(table_name: str) -> bool:
    return owns_table(context.config.attributes.get("db_role", "registry"), table_name)


def upgrade() -> None:
    # 审计库单独部署时，两个库分别执行一次（-x db=audit）
    if _owns("game"):
        _create_game()
    if _owns("api_internal_log"):
        _create_api_internal_log()
    if _owns("listen_sql"):
        _create_listen_sql()


def _create_game() -> None:
    # auth 注册表
    op.create_table(
        "game",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False),
        sa.Column("app_key", sa.String(length=128), nullable=True),
        sa.Column("remark", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def _create_api_internal_log() -> None:
    # 审计日志，只追加
    op.create_table(
        "api_internal_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("auth_id", sa.String(length=64), nullable=False),
        sa.Column("module", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("code", sa.Integer(), nullable=False),
        sa.Column("debug", sa.JSON(), nullable=True),
        sa.Column("request", sa.JSON(), nullable=True),
        sa.Column("response", sa.JSON(), nullable=True),
        sa.Column("server", sa.JSON(), nullable=True),
        sa.Column("ip", sa.String(length=45), nullable=False),
        sa.Column("trace_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.String(length=19), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_api_internal_log_auth_id", "api_internal_log", ["auth_id"], unique=False)
    op.create_index("ix_api_internal_log_user_id", "api_internal_log", ["user_id"], unique=False)
    op.create_index("ix_api_internal_log_created_at", "api_internal_log", ["created_at"], unique=False)


def _create_listen_sql() -> None:
    op.create_table(
        "listen_sql",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("date", sa.String(length=19), nullable=False),
        sa.Column("sql", sa.Text(), nullable=False),
        sa.Column("exec_time", sa.String(length=32), nullable=False),
        sa.Column("ms", sa.String(length=10), nullable=False),
        sa.Column("params", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    if _owns("listen_sql"):
        op.drop_table("listen_sql")

    if _owns("api_internal_log"):
        op.drop_index("ix_api_internal_log_created_at", table_name="api_internal_log")
        op.drop_index("ix_api_internal_log_user_id", table_name="api_internal_log")
        op.drop_index("ix_api_internal_log_auth_id", table_name="api_internal_log")
        op.drop_table("api_internal_log")

    if _owns("game"):
        op.drop_table("game")
