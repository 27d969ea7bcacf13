# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""
领域层：

- models: ORM 实体（Game 注册表 / ApiInternalLog 审计日志 / ListenSql）
- schemas: Pydantic 请求/响应/审计模型
"""
from . import models, schemas  # noqa: F401

__all__ = ["models", "schemas"]
