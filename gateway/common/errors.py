# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

CODE_SUCCESS = 1
CODE_FAILURE = 0
CODE_INVALID_REQUEST = -7
CODE_UNKNOWN_ACTION = 404

MSG_MALFORMED_BODY = "malformed request body"
MSG_INVALID_PARAMS = "missing/invalid request parameters"
MSG_INVALID_CREDENTIAL = "invalid or unauthorized credential"
MSG_UNKNOWN_ACTION = "unknown action"
MSG_INTERNAL_ERROR = "internal server error"


@dataclass(eq=False)
class PipelineError(Exception):
    """流水线错误统一

    各阶段以返回值形式交给编排器，由编排器转成响应信封；
    只有 ValidationFailed 在 fail_exception 模式下会被真正 raise。
    """
    code: int
    message: str
    debug: Optional[Any] = None
    status_code: Optional[int] = None


class DecodeError(PipelineError):
    def __init__(self, debug: Any = None, message: str = MSG_MALFORMED_BODY) -> None:
        super().__init__(code=CODE_FAILURE, message=message, debug=debug)


class ValidationFailed(PipelineError):
    def __init__(self, errors: Dict[str, str], message: str = MSG_INVALID_PARAMS) -> None:
        super().__init__(code=CODE_INVALID_REQUEST, message=message, debug=dict(errors))

    @property
    def errors(self) -> Dict[str, str]:
        return self.debug


class AuthError(PipelineError):
    def __init__(self, status: str, message: str = MSG_INVALID_CREDENTIAL) -> None:
        super().__init__(code=CODE_INVALID_REQUEST, message=message, debug=f"status: {status}")
        self.status = status


class FilterAbort(PipelineError):
    def __init__(
        self,
        message: str,
        code: int = CODE_FAILURE,
        debug: Any = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(code=code, message=message, debug=debug, status_code=status_code)


class DispatchError(PipelineError):
    def __init__(self, action: str, message: str = MSG_UNKNOWN_ACTION) -> None:
        super().__init__(code=CODE_UNKNOWN_ACTION, message=message, debug=f"action: {action}")
        self.action = action


class InternalError(PipelineError):
    def __init__(self, debug: Any = None, message: str = MSG_INTERNAL_ERROR) -> None:
        super().__init__(code=CODE_FAILURE, message=message, debug=debug)


class LogWriteError(PipelineError):
    """审计写入失败：不影响已构建的响应，只走运维告警通道"""

    def __init__(self, reason: str, debug: Any = None) -> None:
        super().__init__(code=CODE_FAILURE, message=f"audit log write failed: {reason}", debug=debug)
        self.reason = reason
