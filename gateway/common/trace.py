# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Mapping


_trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="-")

# 上游透传的 trace id 需要落审计表（String(64)）
_TRACE_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")
_TRACE_HEADERS = ("X-Request-Id", "X-Trace-Id")


def new_trace_id() -> str:
    return uuid.uuid4().hex


def trace_id_from_headers(headers: Mapping[str, str]) -> str:
    """优先沿用上游 trace id，格式不合法时重新生成"""
    for name in _TRACE_HEADERS:
        value = (headers.get(name) or "").strip()
        if value and _TRACE_ID_RE.match(value):
            return value
    return new_trace_id()


def set_trace_id(trace_id: str) -> None:
    _trace_id_ctx.set(trace_id or "-")


def get_trace_id() -> str:
    return _trace_id_ctx.get() or "-"
