# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""内部接口请求流水线

约定：
- 每个阶段返回结果对象（StageResult / 错误对象），不用异常做流程跳转
- 所有错误在流水线内转为统一响应信封，传输层只会看到信封
- 每个请求恰好写一条审计日志，且在响应发出前完成
"""

from gateway.application.pipeline.audit import (
    AuditLogger,
    AuditSink,
    BackgroundAuditSink,
    MemoryAuditSink,
    SqlAuditSink,
)
from gateway.application.pipeline.auth import (
    AuthGate,
    AuthRecord,
    AuthRegistry,
    AuthStatus,
    MemoryAuthRegistry,
    SqlAuthRegistry,
)
from gateway.application.pipeline.context import (
    InboundRequest,
    RequestContext,
    StageResult,
    TransportHints,
    TransportInfo,
)
from gateway.application.pipeline.decoder import decode_input, nest_params
from gateway.application.pipeline.dispatch import DispatchTable, Reply, error, success
from gateway.application.pipeline.envelope import build_envelope, derive_status
from gateway.application.pipeline.filters import BeforeAction, FilterChain
from gateway.application.pipeline.orchestrator import PipelineResponse, RequestPipeline
from gateway.application.pipeline.validation import (
    RuleSet,
    SceneRef,
    Valid,
    ValidationEngine,
    ValidationOutcome,
)

__all__ = [
    "AuditLogger",
    "AuditSink",
    "AuthGate",
    "AuthRecord",
    "AuthRegistry",
    "AuthStatus",
    "BackgroundAuditSink",
    "BeforeAction",
    "DispatchTable",
    "FilterChain",
    "InboundRequest",
    "MemoryAuditSink",
    "MemoryAuthRegistry",
    "PipelineResponse",
    "Reply",
    "RequestContext",
    "RequestPipeline",
    "RuleSet",
    "SceneRef",
    "SqlAuditSink",
    "SqlAuthRegistry",
    "StageResult",
    "TransportHints",
    "TransportInfo",
    "Valid",
    "ValidationEngine",
    "ValidationOutcome",
    "build_envelope",
    "decode_input",
    "derive_status",
    "error",
    "nest_params",
    "success",
]
