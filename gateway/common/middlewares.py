# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from gateway.common.trace import set_trace_id, trace_id_from_headers


class TraceIdMiddleware(BaseHTTPMiddleware):
    """注入 trace id：写入日志与审计记录，并回写到响应头"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = trace_id_from_headers(request.headers)
        set_trace_id(trace_id)
        request.state.trace_id = trace_id
        response: Response = await call_next(request)
        response.headers["X-Trace-Id"] = trace_id
        return response
