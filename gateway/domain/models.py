# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import time
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gateway.infra.db import Base


def _ts() -> int:
    return int(time.time())


class Game(Base):
    """auth 注册表：调用方以 auth_id（即 game.id）标识自己"""

    __tablename__ = "game"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="1=active 0=disabled，其它值视为 unknown",
    )
    app_key: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    remark: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=_ts)
    updated_at: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
        default=None,
        onupdate=_ts,
    )


class ApiInternalLog(Base):
    """内部接口审计日志，只追加"""

    __tablename__ = "api_internal_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    auth_id: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)
    module: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    action: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)
    code: Mapped[int] = mapped_column(Integer, nullable=False)

    debug: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    request: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    response: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    server: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    ip: Mapped[str] = mapped_column(String(45), nullable=False, default="")
    trace_id: Mapped[str] = mapped_column(String(64), nullable=False, default="-")
    date: Mapped[str] = mapped_column(String(19), nullable=False, doc="Y-m-d H:M:S")
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=_ts, index=True)


class ListenSql(Base):
    """注册表库 SQL 执行记录（SQL_LISTEN_ENABLED 时写入）"""

    __tablename__ = "listen_sql"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(String(19), nullable=False)
    sql: Mapped[str] = mapped_column(Text, nullable=False)
    exec_time: Mapped[str] = mapped_column(String(32), nullable=False)
    ms: Mapped[str] = mapped_column(String(10), nullable=False, doc="master / slave")
    params: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True, doc="绑定参数")
