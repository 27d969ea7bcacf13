# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response

from gateway.api import internal as internal_api
from gateway.api.deps import get_audit_sink
from gateway.common.errors import PipelineError
from gateway.common.exception_handlers import (
    pipeline_error_handler,
    unhandled_error_handler,
    validation_error_handler,
)
from gateway.common.logging import setup_logging
from gateway.common.middlewares import TraceIdMiddleware
from gateway.infra import metrics
from gateway.infra.config import settings
from gateway.infra.db import AuditSessionLocal, engine
from gateway.infra.sql_listener import enable_sql_listener
from gateway.infra.ylogger import ylogger

setup_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    disable_listener = None
    if settings.SQL_LISTEN_ENABLED:
        disable_listener = enable_sql_listener(engine, AuditSessionLocal)
    ylogger.info("Gateway started: env=%s online=%s", settings.ENV, settings.is_online)
    yield
    # 异步审计模式下，关闭前把队列写完
    get_audit_sink().close()
    if disable_listener is not None:
        disable_listener()


app = FastAPI(
    title="internal-gateway",
    version="1.0.0",
    lifespan=lifespan,
)


# ---------- middlewares / handlers ----------

app.add_middleware(TraceIdMiddleware)

app.add_exception_handler(PipelineError, pipeline_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
def metrics_endpoint() -> Response:
    body, content_type = metrics.render_latest()
    return Response(content=body, media_type=content_type)


# 内部接口
app.include_router(internal_api.router)
