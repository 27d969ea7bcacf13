# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from gateway.common.errors import PipelineError
from gateway.domain.schemas import InternalRequest

if TYPE_CHECKING:
    from gateway.application.pipeline.auth import AuthRecord


DEFAULT_SCENE = "default"
LEGACY_SCENE = "old"


@dataclass(frozen=True)
class TransportInfo:
    """传输层元数据（远端地址 / server 信息），只用于审计"""

    remote_addr: str = ""
    server: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransportHints:
    """显式指定 HTTP 状态码 / 附加响应头"""

    status_code: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class InboundRequest:
    """HTTP 层交给流水线的原始请求"""

    raw_body: bytes
    params: Dict[str, Any]
    controller: str
    action: str = ""
    transport: TransportInfo = field(default_factory=TransportInfo)
    legacy: bool = False
    trace_id: str = "-"


@dataclass
class RequestContext:
    raw_body: bytes
    params: Dict[str, Any]
    controller_name: str
    action_name: str
    transport: TransportInfo
    scene: str = DEFAULT_SCENE
    trace_id: str = "-"
    request_time: int = field(default_factory=lambda: int(time.time()))
    request: Optional[InternalRequest] = None
    auth: Optional["AuthRecord"] = None
    stage: str = "init"
    _decoded: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @classmethod
    def from_inbound(cls, inbound: InboundRequest, request_time: int) -> "RequestContext":
        return cls(
            raw_body=inbound.raw_body,
            params=dict(inbound.params),
            controller_name=inbound.controller,
            action_name=inbound.action,
            transport=inbound.transport,
            scene=LEGACY_SCENE if inbound.legacy else DEFAULT_SCENE,
            trace_id=inbound.trace_id,
            request_time=request_time,
        )

    @property
    def decoded_input(self) -> Dict[str, Any]:
        return self._decoded if self._decoded is not None else {}

    @property
    def is_decoded(self) -> bool:
        return self._decoded is not None

    def bind_input(self, decoded: Dict[str, Any]) -> None:
        """Decode 阶段写入一次，之后不再替换"""
        if self._decoded is not None:
            raise RuntimeError("decoded input already bound")
        self._decoded = decoded
        self.request = InternalRequest.from_input(decoded)


@dataclass(frozen=True)
class StageResult:
    """阶段结果：继续，或带错误终止"""

    error: Optional[PipelineError] = None

    @property
    def halted(self) -> bool:
        return self.error is not None

    @staticmethod
    def proceed() -> "StageResult":
        return _PROCEED

    @staticmethod
    def halt(error: PipelineError) -> "StageResult":
        return StageResult(error=error)


_PROCEED = StageResult()
