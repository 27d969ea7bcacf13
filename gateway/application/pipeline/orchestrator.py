# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""内部接口请求流水线

Decode -> Validate -> Authenticate -> Before-actions -> Dispatch -> Envelope -> Audit

每个阶段返回 StageResult，编排器显式判断是否继续；
任何分支（包括未预期异常）最终都会构建信封并写审计日志。
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

from gateway.application.pipeline.audit import AuditLogger
from gateway.application.pipeline.auth import AuthGate, AuthRecord
from gateway.application.pipeline.context import (
    DEFAULT_SCENE,
    LEGACY_SCENE,
    InboundRequest,
    RequestContext,
    StageResult,
    TransportHints,
)
from gateway.application.pipeline.decoder import decode_input
from gateway.application.pipeline.dispatch import DispatchTable, Reply
from gateway.application.pipeline.envelope import (
    build_envelope,
    envelope_from_error,
    render,
)
from gateway.application.pipeline.filters import FilterChain
from gateway.application.pipeline.validation import SceneRef, ValidationEngine
from gateway.common.errors import (
    MSG_INVALID_PARAMS,
    DecodeError,
    InternalError,
    LogWriteError,
    PipelineError,
    ValidationFailed,
)
from gateway.domain.schemas import ResponseEnvelope
from gateway.infra.metrics import PIPELINE_DEFECTS, REQUESTS_TOTAL, code_family

logger = logging.getLogger(__name__)


@dataclass
class PipelineResponse:
    envelope: ResponseEnvelope
    status_code: int
    body: bytes
    media_type: str
    headers: Dict[str, str]
    audit_error: Optional[LogWriteError] = None


class RequestPipeline:
    def __init__(
        self,
        *,
        validation: ValidationEngine,
        auth_gate: AuthGate,
        actions: DispatchTable,
        audit: AuditLogger,
        filters: Optional[FilterChain] = None,
        rule_set: str = "internal",
        online: bool = False,
        jsonp_handler: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._validation = validation
        self._auth_gate = auth_gate
        self._actions = actions
        self._audit = audit
        self._filters = filters or FilterChain()
        self._online = online
        self._jsonp_handler = jsonp_handler
        self._clock = clock
        # 场景在构造时解析并校验，请求期间只按名称取用
        self._scenes: Dict[str, SceneRef] = {
            DEFAULT_SCENE: validation.resolve(SceneRef(rule_set, DEFAULT_SCENE)),
            LEGACY_SCENE: validation.resolve(SceneRef(rule_set, LEGACY_SCENE)),
        }

    @property
    def online(self) -> bool:
        return self._online

    def handle(self, inbound: InboundRequest) -> PipelineResponse:
        ctx = RequestContext.from_inbound(inbound, request_time=int(self._clock()))

        try:
            outcome = self._run(ctx)
        except PipelineError as e:
            # fail_exception 模式的校验失败 / hook 直接抛出的错误
            outcome = e
        except Exception as e:  # noqa: BLE001
            outcome = self._defect(ctx, e)

        callback = self._jsonp_callback(ctx)
        try:
            envelope, status, hints = self._finish(outcome, ctx)
            rendered = render(envelope, status, self._online, hints, callback)
        except Exception as e:  # noqa: BLE001
            # handler 返回的结果无法构建/序列化时，改为输出 internal error 信封
            ctx.stage = "envelope"
            envelope, status = envelope_from_error(self._defect(ctx, e), timestamp=ctx.request_time)
            rendered = render(envelope, status, self._online, None, callback)

        # 审计写入完成后才返回响应
        audit_error = self._audit.record(ctx, envelope)
        REQUESTS_TOTAL.labels(code_family=code_family(envelope.code)).inc()

        return PipelineResponse(
            envelope=envelope,
            status_code=rendered.status_code,
            body=rendered.body,
            media_type=rendered.media_type,
            headers=rendered.headers,
            audit_error=audit_error,
        )

    def _defect(self, ctx: RequestContext, exc: Exception) -> InternalError:
        PIPELINE_DEFECTS.labels(stage=ctx.stage).inc()
        logger.exception("Pipeline defect: stage=%s controller=%s action=%s",
                         ctx.stage, ctx.controller_name, ctx.action_name)
        return InternalError(debug=f"{type(exc).__name__}: {exc}")

    def _run(self, ctx: RequestContext) -> Union[Reply, PipelineError]:
        stages = (
            ("decode", self._decode),
            ("validate", self._validate),
            ("authenticate", self._authenticate),
            ("before_action", self._filters.run),
        )
        for name, stage in stages:
            ctx.stage = name
            result = stage(ctx)
            if result.halted:
                return result.error

        ctx.stage = "dispatch"
        handler = self._actions.resolve(ctx.action_name)
        if isinstance(handler, PipelineError):
            return handler
        return handler(ctx)

    def _decode(self, ctx: RequestContext) -> StageResult:
        decoded = decode_input(ctx.raw_body, ctx.params)
        if isinstance(decoded, DecodeError):
            return StageResult.halt(decoded)
        ctx.bind_input(decoded)
        return StageResult.proceed()

    def _validate(self, ctx: RequestContext) -> StageResult:
        outcome = self._validation.validate(ctx.decoded_input, self._scenes[ctx.scene])
        if not outcome.valid:
            return StageResult.halt(ValidationFailed(outcome.errors, message=MSG_INVALID_PARAMS))

        if ctx.scene == LEGACY_SCENE:
            # 旧版调用方式：module/action 由请求体指定
            ctx.controller_name = ctx.request.module or ctx.controller_name
            ctx.action_name = ctx.request.action or ctx.action_name
        return StageResult.proceed()

    def _authenticate(self, ctx: RequestContext) -> StageResult:
        result = self._auth_gate.authenticate(ctx.request.auth_id)
        if isinstance(result, AuthRecord):
            ctx.auth = result
            return StageResult.proceed()
        logger.info("Auth rejected: auth_id=%s %s", ctx.request.auth_id, result.debug)
        return StageResult.halt(result)

    def _finish(
        self,
        outcome: Union[Reply, PipelineError],
        ctx: RequestContext,
    ) -> Tuple[ResponseEnvelope, int, Optional[TransportHints]]:
        if isinstance(outcome, PipelineError):
            envelope, status = envelope_from_error(outcome, timestamp=ctx.request_time)
            return envelope, status, None
        if not isinstance(outcome, Reply):
            logger.error("Handler returned %s instead of Reply: action=%s",
                         type(outcome).__name__, ctx.action_name)
            envelope, status = envelope_from_error(InternalError(), timestamp=ctx.request_time)
            return envelope, status, None
        envelope, status = build_envelope(
            outcome.message, outcome.data, outcome.code, outcome.hints, timestamp=ctx.request_time,
        )
        return envelope, status, outcome.hints

    def _jsonp_callback(self, ctx: RequestContext) -> Optional[str]:
        if not self._jsonp_handler:
            return None
        value = ctx.params.get(self._jsonp_handler)
        return value if isinstance(value, str) and value else None
