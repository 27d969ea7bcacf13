# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""流水线之外抛出的错误（未知 controller、路由参数错误等）也转成统一信封"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response

from gateway.application.pipeline.envelope import JSON_MEDIA_TYPE, dumps, envelope_from_error
from gateway.common.errors import InternalError, PipelineError, ValidationFailed
from gateway.infra.config import settings

logger = logging.getLogger(__name__)


def _envelope_response(err: PipelineError, status_code: int | None = None) -> Response:
    envelope, status = envelope_from_error(err)
    return Response(
        content=dumps(envelope.public_payload(settings.is_online)),
        status_code=status_code or status,
        media_type=JSON_MEDIA_TYPE,
    )


async def pipeline_error_handler(request: Request, exc: PipelineError) -> Response:  # noqa: ARG001
    return _envelope_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:  # noqa: ARG001
    errors = {".".join(str(p) for p in e.get("loc", ())): e.get("msg", "invalid") for e in exc.errors()}
    return _envelope_response(ValidationFailed(errors))


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:  # noqa: ARG001
    logger.exception("Unhandled error")
    return _envelope_response(InternalError(), status_code=500)
