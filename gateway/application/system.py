# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""system 控制器：网关自检类接口（ping / echo）"""

from __future__ import annotations

from typing import Optional

from gateway.application.pipeline.context import RequestContext
from gateway.application.pipeline.dispatch import DispatchTable, Reply, success
from gateway.application.pipeline.filters import BeforeAction, FilterChain
from gateway.common.errors import CODE_INVALID_REQUEST, FilterAbort, PipelineError

CONTROLLER = "system"

actions = DispatchTable()


@actions.register("ping")
def ping(ctx: RequestContext) -> Reply:
    return success(data={"pong": True, "auth_id": ctx.auth.id, "time": ctx.request_time})


@actions.register("echo")
def echo(ctx: RequestContext) -> Reply:
    return success(data=dict(ctx.request.data))


def require_user_id(ctx: RequestContext) -> Optional[PipelineError]:
    if not ctx.request.user_id:
        return FilterAbort("missing user_id", code=CODE_INVALID_REQUEST, debug={"data.user_id": "required"})
    return None


filters = FilterChain([
    BeforeAction("require_user_id", require_user_id, only="echo"),
])
