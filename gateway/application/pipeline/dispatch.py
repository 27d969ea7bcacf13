# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from gateway.application.pipeline.context import RequestContext, TransportHints
from gateway.common.errors import CODE_FAILURE, CODE_SUCCESS, DispatchError, PipelineError


@dataclass(frozen=True)
class Reply:
    """action 处理结果，由编排器转换为响应信封"""

    message: str = ""
    data: Any = None
    code: int = CODE_SUCCESS
    hints: Optional[TransportHints] = None


def success(msg: str = "", data: Any = None, code: int = CODE_SUCCESS, hints: Optional[TransportHints] = None) -> Reply:
    return Reply(message=msg, data=data, code=code, hints=hints)


def error(msg: str = "", data: Any = None, code: int = CODE_FAILURE, hints: Optional[TransportHints] = None) -> Reply:
    return Reply(message=msg, data=data, code=code, hints=hints)


Handler = Callable[[RequestContext], Union[Reply, PipelineError]]


class DispatchTable:
    """action 名 -> 处理函数"""

    def __init__(self, handlers: Optional[Mapping[str, Handler]] = None) -> None:
        self._handlers: Dict[str, Handler] = {}
        for action, handler in (handlers or {}).items():
            self.register(action, handler)

    def register(self, action: str, handler: Optional[Handler] = None):
        """``table.register("ping", fn)`` 或作为装饰器 ``@table.register("ping")``"""
        action = action.strip()
        if not action:
            raise ValueError("action name must not be empty")

        def _add(fn: Handler) -> Handler:
            if action in self._handlers:
                raise ValueError(f"action {action!r} already registered")
            self._handlers[action] = fn
            return fn

        if handler is not None:
            return _add(handler)
        return _add

    def resolve(self, action: str) -> Union[Handler, DispatchError]:
        handler = self._handlers.get(action)
        if handler is None:
            return DispatchError(action)
        return handler

    def actions(self) -> Tuple[str, ...]:
        return tuple(self._handlers)

    def __contains__(self, action: object) -> bool:
        return action in self._handlers
