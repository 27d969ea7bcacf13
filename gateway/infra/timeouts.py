# -*- coding: utf-8 -*-
# @Author: yaccii
# @Description:

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

_executor = ThreadPoolExecutor(max_workers=16, thread_name_prefix="gw-io")


class CallTimeout(TimeoutError):
    """外部调用（注册表查询 / 审计写入）超时"""


def call_with_timeout(fn: Callable[[], T], timeout: Optional[float]) -> T:
    """在限定时间内执行阻塞调用

    timeout 为 None 或 <= 0 时直接在当前线程执行。
    超时后调用线程立即返回，后台任务仍会跑完（DB 驱动无法中断）。
    """
    if not timeout or timeout <= 0:
        return fn()

    future = _executor.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as e:
        future.cancel()
        raise CallTimeout(f"call exceeded {timeout:g}s") from e
