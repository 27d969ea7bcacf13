# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

"""通用基础设施（错误/日志/trace 等）

约定：
- 流水线各阶段以返回值传递 PipelineError，由编排器转为统一响应信封
- 流水线之外的异常由全局异常处理转为同样的信封
- trace_id 通过 middleware 注入，写入日志和审计记录，便于线上排障
"""

from __future__ import annotations
