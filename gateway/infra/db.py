# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from gateway.infra.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy ORM 基类"""


def make_engine(url: str) -> Engine:
    connect_args: Dict[str, Any] = {}
    if url.startswith("sqlite"):
        # 注册表查询/审计写入会在超时线程池中执行
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        pool_pre_ping=True,
        future=True,
        echo=False,
        connect_args=connect_args,
    )


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )


# auth 注册表库
engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)

# 审计日志库（只追加）
if settings.audit_database_url == settings.DATABASE_URL:
    audit_engine = engine
else:
    audit_engine = make_engine(settings.audit_database_url)
AuditSessionLocal = make_session_factory(audit_engine)
separate_audit_db = audit_engine is not engine

# 审计库单独部署时只存放这些表，其余表留在注册表库
AUDIT_TABLES = frozenset({"api_internal_log", "listen_sql"})
DB_ROLES = ("registry", "audit")


def owns_table(role: str, table_name: str, separate: bool = separate_audit_db) -> bool:
    """判断某张表是否属于指定库（registry / audit）"""
    if role not in DB_ROLES:
        raise ValueError(f"unknown database role: {role!r}")
    if not separate:
        return True
    return (table_name in AUDIT_TABLES) == (role == "audit")


def get_db() -> Generator[Session, None, None]:
    """FastAPI 依赖：yield 一个 Session，请求结束自动关闭"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session() -> Session:
    """脚本/工具使用：手动获取一个 Session"""
    return SessionLocal()
