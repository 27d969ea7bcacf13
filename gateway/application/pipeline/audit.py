# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""审计日志

每个请求在响应发出前写入一条记录（包括所有提前终止的错误分支）。
写入失败不影响响应，但会记录到运维日志并计数告警。
"""

from __future__ import annotations

import queue
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import sessionmaker

from gateway.application.pipeline.context import RequestContext
from gateway.common.errors import LogWriteError
from gateway.domain import models
from gateway.domain.schemas import AuditRecord, ResponseEnvelope
from gateway.infra.metrics import AUDIT_WRITE_FAILURES
from gateway.infra.timeouts import CallTimeout, call_with_timeout
from gateway.infra.ylogger import ops_logger


DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _encode(value: Any) -> Any:
    """审计记录的 JSON 化不能失败：无法编码的值降级为 repr"""
    try:
        return jsonable_encoder(value)
    except (TypeError, ValueError):
        pass
    if isinstance(value, Mapping):
        return {str(k): _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_encode(v) for v in value]
    return repr(value)


def _clip(column: str, value: str) -> str:
    # 按审计表字段长度截断
    limit = models.ApiInternalLog.__table__.c[column].type.length
    return value[:limit] if limit else value


def build_audit_record(
    ctx: RequestContext,
    envelope: ResponseEnvelope,
    now: Optional[datetime] = None,
) -> AuditRecord:
    req = ctx.request
    auth_id = req.auth_id if req is not None and req.auth_id else ""
    module = req.module if req is not None and req.module else ctx.controller_name
    action = req.action if req is not None and req.action else ctx.action_name
    user_id = req.user_id if req is not None else ""

    return AuditRecord(
        auth_id=_clip("auth_id", auth_id),
        module=_clip("module", module or ""),
        action=_clip("action", action or ""),
        user_id=_clip("user_id", user_id),
        code=envelope.code,
        debug=_encode(envelope.debug),
        request=_encode(ctx.decoded_input),
        response=_encode(envelope.internal_payload()),
        server=_encode(ctx.transport.server),
        ip=_clip("ip", ctx.transport.remote_addr),
        trace_id=_clip("trace_id", ctx.trace_id),
        date=(now or datetime.now()).strftime(DATE_FORMAT),
    )


class AuditSink(ABC):
    """只追加的审计存储"""

    @abstractmethod
    def write(self, record: AuditRecord) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        return None

    def close(self) -> None:
        self.flush()


class SqlAuditSink(AuditSink):
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def write(self, record: AuditRecord) -> None:
        db = self._session_factory()
        try:
            db.add(models.ApiInternalLog(**record.model_dump()))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class MemoryAuditSink(AuditSink):
    def __init__(self) -> None:
        self._records: List[AuditRecord] = []
        self._lock = threading.Lock()

    def write(self, record: AuditRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> List[AuditRecord]:
        with self._lock:
            return list(self._records)


class BackgroundAuditSink(AuditSink):
    """异步写入：请求线程只入队，后台线程落库；flush()/close() 保证关闭前写完"""

    _STOP = object()

    def __init__(self, inner: AuditSink, maxsize: int = 10000) -> None:
        self._inner = inner
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._worker = threading.Thread(target=self._run, name="audit-writer", daemon=True)
        self._worker.start()

    def write(self, record: AuditRecord) -> None:
        if self._closed:
            raise RuntimeError("audit sink is closed")
        self._queue.put_nowait(record)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                self._inner.write(item)  # type: ignore[arg-type]
            except Exception:  # noqa: BLE001
                AUDIT_WRITE_FAILURES.labels(reason="async_write").inc()
                ops_logger.exception("Async audit write failed")
            finally:
                self._queue.task_done()

    def flush(self) -> None:
        self._queue.join()
        self._inner.flush()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(self._STOP)
        self._worker.join()
        self._inner.close()


class AuditLogger:
    def __init__(
        self,
        sink: AuditSink,
        timeout: Optional[float] = None,
        on_error: Optional[Callable[[LogWriteError], None]] = None,
    ) -> None:
        self.sink = sink
        self._timeout = timeout
        self._on_error = on_error

    def record(self, ctx: RequestContext, envelope: ResponseEnvelope) -> Optional[LogWriteError]:
        """同步写入一条审计记录；失败时返回 LogWriteError（不抛出）"""
        try:
            rec = build_audit_record(ctx, envelope)
            call_with_timeout(lambda: self.sink.write(rec), self._timeout)
        except CallTimeout as e:
            return self._surface(LogWriteError("timeout", debug=str(e)), exc_info=False)
        except Exception as e:  # noqa: BLE001
            return self._surface(LogWriteError(type(e).__name__, debug=str(e)), exc_info=True)
        return None

    def _surface(self, err: LogWriteError, exc_info: bool) -> LogWriteError:
        AUDIT_WRITE_FAILURES.labels(reason=err.reason).inc()
        ops_logger.error("Audit log write failed: reason=%s detail=%s", err.reason, err.debug, exc_info=exc_info)
        if self._on_error is not None:
            self._on_error(err)
        return err
