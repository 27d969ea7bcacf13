# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from typing import Any, Dict, List, Tuple
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from gateway.api.deps import get_pipelines
from gateway.application.pipeline import InboundRequest, RequestPipeline, TransportInfo, nest_params
from gateway.common.errors import DispatchError
from gateway.common.trace import get_trace_id


router = APIRouter(prefix="/internal", tags=["internal"])

_FORM_TYPE = "application/x-www-form-urlencoded"


def _server_info(request: Request) -> Dict[str, Any]:
    server = request.scope.get("server") or ("", None)
    client = request.client
    return {
        "method": request.method,
        "path": request.url.path,
        "query_string": request.url.query,
        "scheme": request.url.scheme,
        "http_version": request.scope.get("http_version", ""),
        "server_name": server[0],
        "server_port": server[1],
        "remote_port": client.port if client else None,
        "headers": dict(request.headers),
    }


async def _inbound(request: Request, controller: str, action: str, legacy: bool) -> InboundRequest:
    body = await request.body()
    pairs: List[Tuple[str, str]] = list(request.query_params.multi_items())

    # 表单提交走参数通道，只有 JSON 文本才作为原始 body 解析
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_TYPE):
        pairs.extend(parse_qsl(body.decode("utf-8", "replace"), keep_blank_values=True))
        body = b""
    params = nest_params(pairs)

    client = request.client
    return InboundRequest(
        raw_body=body,
        params=params,
        controller=controller,
        action=action,
        transport=TransportInfo(remote_addr=client.host if client else "", server=_server_info(request)),
        legacy=legacy,
        trace_id=getattr(request.state, "trace_id", None) or get_trace_id(),
    )


def _pick(pipelines: Dict[str, RequestPipeline], controller: str) -> RequestPipeline:
    pipeline = pipelines.get(controller)
    if pipeline is None:
        raise DispatchError(controller, message="unknown controller")
    return pipeline


async def _handle(pipeline: RequestPipeline, inbound: InboundRequest) -> Response:
    result = await run_in_threadpool(pipeline.handle, inbound)
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=result.headers,
    )


@router.api_route("/{controller}/{action}", methods=["GET", "POST"])
async def call_action(
    controller: str,
    action: str,
    request: Request,
    pipelines: Dict[str, RequestPipeline] = Depends(get_pipelines),
) -> Response:
    pipeline = _pick(pipelines, controller)
    return await _handle(pipeline, await _inbound(request, controller, action, legacy=False))


@router.api_route("/{controller}", methods=["GET", "POST"])
async def call_legacy(
    controller: str,
    request: Request,
    pipelines: Dict[str, RequestPipeline] = Depends(get_pipelines),
) -> Response:
    """旧版调用：action 由请求体中的 module/action 指定"""
    pipeline = _pick(pipelines, controller)
    return await _handle(pipeline, await _inbound(request, controller, "", legacy=True))
