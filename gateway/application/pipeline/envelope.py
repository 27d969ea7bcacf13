# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from fastapi.encoders import jsonable_encoder

from gateway.application.pipeline.context import TransportHints
from gateway.common.errors import CODE_FAILURE, PipelineError
from gateway.domain.schemas import ResponseEnvelope

JSON_MEDIA_TYPE = "application/json"
JSONP_MEDIA_TYPE = "application/javascript"

_JSONP_NAME_RE = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$")


def derive_status(code: int, hints: Optional[TransportHints] = None) -> int:
    """HTTP 状态码：显式指定优先；code 在 [200, 1000) 时直接使用，其它一律 200"""
    if hints is not None and hints.status_code is not None:
        return hints.status_code
    if 200 <= code < 1000:
        return code
    return 200


def build_envelope(
    message: str,
    data: Any = None,
    code: int = CODE_FAILURE,
    hints: Optional[TransportHints] = None,
    timestamp: Optional[int] = None,
) -> Tuple[ResponseEnvelope, int]:
    payload = data if data else {}
    debug = None
    if isinstance(payload, dict) and "debug" in payload:
        payload = dict(payload)
        debug = payload.pop("debug")

    envelope = ResponseEnvelope(
        code=code,
        msg=message,
        time=int(time.time()) if timestamp is None else timestamp,
        data=payload,
        debug=debug,
    )
    return envelope, derive_status(code, hints)


def envelope_from_error(err: PipelineError, timestamp: Optional[int] = None) -> Tuple[ResponseEnvelope, int]:
    data = {"debug": err.debug} if err.debug is not None else None
    hints = TransportHints(status_code=err.status_code) if err.status_code is not None else None
    return build_envelope(err.message, data, err.code, hints, timestamp)


@dataclass
class RenderedResponse:
    body: bytes
    status_code: int
    media_type: str = JSON_MEDIA_TYPE
    headers: Dict[str, str] = field(default_factory=dict)


def dumps(payload: Any) -> bytes:
    return json.dumps(jsonable_encoder(payload), ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def render(
    envelope: ResponseEnvelope,
    status_code: int,
    online: bool,
    hints: Optional[TransportHints] = None,
    jsonp_callback: Optional[str] = None,
) -> RenderedResponse:
    """序列化对外响应；jsonp_callback 合法时输出 JSONP"""
    body = dumps(envelope.public_payload(online))
    headers = dict(hints.headers) if hints is not None else {}

    if jsonp_callback and _JSONP_NAME_RE.match(jsonp_callback):
        body = jsonp_callback.encode("utf-8") + b"(" + body + b");"
        return RenderedResponse(body=body, status_code=status_code, media_type=JSONP_MEDIA_TYPE, headers=headers)
    return RenderedResponse(body=body, status_code=status_code, headers=headers)
