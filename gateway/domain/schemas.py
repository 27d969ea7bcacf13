# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field

_KNOWN_KEYS = ("auth_id", "module", "action", "data")


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class InternalRequest(BaseModel):
    """已解码请求的类型化视图

    只暴露约定字段；其余顶层字段原样放入 extra，仅用于审计。
    """

    auth_id: Optional[str] = None
    module: Optional[str] = None
    action: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_input(cls, decoded: Mapping[str, Any]) -> "InternalRequest":
        data = decoded.get("data")
        return cls(
            auth_id=_opt_str(decoded.get("auth_id")),
            module=_opt_str(decoded.get("module")),
            action=_opt_str(decoded.get("action")),
            data=dict(data) if isinstance(data, Mapping) else {},
            extra={k: v for k, v in decoded.items() if k not in _KNOWN_KEYS},
        )

    @property
    def user_id(self) -> str:
        uid = self.data.get("user_id")
        return "" if uid in (None, "") else str(uid)


class ResponseEnvelope(BaseModel):
    """统一响应结构"""

    code: int
    msg: str = ""
    time: int
    data: Any = Field(default_factory=dict)
    debug: Any = None

    def public_payload(self, online: bool) -> Dict[str, Any]:
        """对外输出；线上环境始终去掉 debug"""
        payload: Dict[str, Any] = {
            "code": self.code,
            "msg": self.msg,
            "time": self.time,
            "data": self.data,
        }
        if not online and self.debug is not None:
            payload["debug"] = self.debug
        return payload

    def internal_payload(self) -> Dict[str, Any]:
        """审计日志使用，保留 debug"""
        return {
            "code": self.code,
            "msg": self.msg,
            "time": self.time,
            "data": self.data,
            "debug": self.debug,
        }


class AuditRecord(BaseModel):
    auth_id: str = ""
    module: str = ""
    action: str = ""
    user_id: str = ""
    code: int
    debug: Any = None
    request: Dict[str, Any] = Field(default_factory=dict)
    response: Dict[str, Any] = Field(default_factory=dict)
    server: Dict[str, Any] = Field(default_factory=dict)
    ip: str = ""
    trace_id: str = "-"
    date: str
