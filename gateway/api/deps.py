# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from typing import Dict

from gateway.application import system
from gateway.application.pipeline import (
    AuditLogger,
    AuditSink,
    AuthGate,
    BackgroundAuditSink,
    RequestPipeline,
    SqlAuditSink,
    SqlAuthRegistry,
)
from gateway.application.rulesets import build_validation_engine
from gateway.infra.config import settings
from gateway.infra.db import AuditSessionLocal, SessionLocal

_validation_singleton = build_validation_engine(batch=settings.BATCH_VALIDATE)
_auth_gate_singleton = AuthGate(SqlAuthRegistry(SessionLocal), timeout=settings.REGISTRY_TIMEOUT_SECONDS)

_audit_sink_singleton: AuditSink = SqlAuditSink(AuditSessionLocal)
if settings.AUDIT_ASYNC:
    _audit_sink_singleton = BackgroundAuditSink(_audit_sink_singleton)
_audit_logger_singleton = AuditLogger(_audit_sink_singleton, timeout=settings.AUDIT_TIMEOUT_SECONDS)


def _make_pipeline(actions, filters) -> RequestPipeline:
    return RequestPipeline(
        validation=_validation_singleton,
        auth_gate=_auth_gate_singleton,
        actions=actions,
        filters=filters,
        audit=_audit_logger_singleton,
        online=settings.is_online,
        jsonp_handler=settings.JSONP_HANDLER,
    )


# controller 名 -> 流水线
_pipelines_singleton: Dict[str, RequestPipeline] = {
    system.CONTROLLER: _make_pipeline(system.actions, system.filters),
}


def get_pipelines() -> Dict[str, RequestPipeline]:
    return _pipelines_singleton


def get_audit_sink() -> AuditSink:
    return _audit_sink_singleton
