# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

import logging


"""统一日志出口

日志初始化由 gateway.common.logging.setup_logging() 负责。
这里仅返回命名 logger，避免重复添加 handler。
- ylogger: 网关通用日志
- ops_logger: 运维告警通道（审计写入失败、注册表不可用等）
"""


ylogger = logging.getLogger("gateway")
ops_logger = logging.getLogger("gateway.ops")
