# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""SQL 监听：记录注册表库执行的语句与耗时到 listen_sql 表"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Callable

from fastapi.encoders import jsonable_encoder
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from gateway.domain import models
from gateway.infra.ylogger import ops_logger

_START_KEY = "gw_query_start"
# 写日志本身的语句不再记录
_SKIP_TABLES = ("listen_sql", "api_internal_log")


def _should_skip(statement: str) -> bool:
    lowered = statement.lower()
    return any(t in lowered for t in _SKIP_TABLES)


def enable_sql_listener(engine: Engine, session_factory: sessionmaker, role: str = "master") -> Callable[[], None]:
    """挂载监听，返回用于卸载的函数"""

    def _before(conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: bool) -> None:
        conn.info.setdefault(_START_KEY, []).append(time.perf_counter())

    def _after(conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: bool) -> None:
        starts = conn.info.get(_START_KEY)
        if not starts:
            return
        elapsed = time.perf_counter() - starts.pop()
        if _should_skip(statement):
            return

        db = session_factory()
        try:
            db.add(models.ListenSql(
                date=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                sql=statement,
                exec_time=f"{elapsed:.6f}s",
                ms=role,
                params=jsonable_encoder(parameters, custom_encoder={bytes: lambda b: b.hex()}),
            ))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            ops_logger.exception("listen_sql write failed")
        finally:
            db.close()

    event.listen(engine, "before_cursor_execute", _before)
    event.listen(engine, "after_cursor_execute", _after)

    def _disable() -> None:
        event.remove(engine, "before_cursor_execute", _before)
        event.remove(engine, "after_cursor_execute", _after)

    return _disable
