# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from gateway.application.pipeline.context import RequestContext, StageResult
from gateway.common.errors import PipelineError

logger = logging.getLogger(__name__)

Hook = Callable[[RequestContext], Optional[PipelineError]]
ActionNames = Union[str, Iterable[str], None]


def normalize_actions(value: ActionNames) -> Optional[FrozenSet[str]]:
    """``"a,b"`` 与 ``["a", "b"]`` 归一为同一集合"""
    if value is None:
        return None
    items = value.split(",") if isinstance(value, str) else value
    return frozenset(s for s in (str(i).strip() for i in items) if s)


@dataclass(frozen=True)
class BeforeAction:
    """前置操作：only / except_ 至多设置一个"""

    name: str
    hook: Hook
    only: Optional[FrozenSet[str]] = None
    except_: Optional[FrozenSet[str]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "only", normalize_actions(self.only))
        object.__setattr__(self, "except_", normalize_actions(self.except_))
        if self.only is not None and self.except_ is not None:
            raise ValueError(f"before-action {self.name!r}: only and except are mutually exclusive")

    @classmethod
    def from_options(cls, name: str, hook: Hook, options: Optional[Mapping[str, Any]] = None) -> "BeforeAction":
        options = options or {}
        return cls(name=name, hook=hook, only=options.get("only"), except_=options.get("except"))

    def applies_to(self, action: str) -> bool:
        if self.only is not None:
            return action in self.only
        if self.except_ is not None:
            return action not in self.except_
        return True


class FilterChain:
    def __init__(self, entries: Iterable[BeforeAction] = ()) -> None:
        self._entries: Tuple[BeforeAction, ...] = tuple(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def run(self, ctx: RequestContext) -> StageResult:
        for entry in self._entries:
            if not entry.applies_to(ctx.action_name):
                continue
            error = entry.hook(ctx)
            if error is not None:
                logger.info(
                    "Before-action aborted: hook=%s action=%s code=%s",
                    entry.name, ctx.action_name, error.code,
                )
                return StageResult.halt(error)
        return StageResult.proceed()
