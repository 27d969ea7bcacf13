# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""Prometheus 指标（运维告警通道）

/metrics 暴露默认 REGISTRY，告警规则基于以下计数器配置。
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

from gateway.common.errors import CODE_FAILURE, CODE_INVALID_REQUEST, CODE_SUCCESS, CODE_UNKNOWN_ACTION

REQUESTS_TOTAL = Counter(
    "gateway_internal_requests_total",
    "Internal API requests by final envelope code family",
    ["code_family"],
)

AUDIT_WRITE_FAILURES = Counter(
    "gateway_audit_write_failures_total",
    "Audit log writes that failed or timed out",
    ["reason"],
)

REGISTRY_ERRORS = Counter(
    "gateway_registry_errors_total",
    "Auth registry lookups that failed or timed out",
    ["reason"],
)

PIPELINE_DEFECTS = Counter(
    "gateway_pipeline_defects_total",
    "Unexpected exceptions caught by the request pipeline",
    ["stage"],
)

_BUILTIN_FAMILIES = {
    CODE_SUCCESS: "success",
    CODE_FAILURE: "failure",
    CODE_INVALID_REQUEST: "invalid_request",
    CODE_UNKNOWN_ACTION: "unknown_action",
}


def code_family(code: int) -> str:
    """业务自定义 code 不直接作为 label，按区间归类"""
    if code in _BUILTIN_FAMILIES:
        return _BUILTIN_FAMILIES[code]
    if code < 0:
        return "negative"
    if 200 <= code < 1000:
        return "http"
    return "caller"


def render_latest() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
