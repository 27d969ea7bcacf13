# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from gateway.application.pipeline.validation import RuleSet, ValidationEngine

# 内部接口公共参数
INTERNAL_RULES = RuleSet(
    "internal",
    rules={
        "auth_id": "require|alpha_dash|length:1,64",
        "module": "require|string|max:64",
        "action": "require|string|max:64",
        "data": "array",
    },
    scenes={
        "default": ["auth_id", "data"],
        # 旧版调用：module/action 放在请求体里
        "old": ["auth_id", "module", "action", "data"],
    },
)


def build_validation_engine(batch: bool = False) -> ValidationEngine:
    return ValidationEngine([INTERNAL_RULES], batch=batch)
