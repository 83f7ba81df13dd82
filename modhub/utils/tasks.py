"""应用线程 - 所有网络续延回到同一个线程执行

注册表与目录缓存都是进程级可变状态，不加锁；
其安全性来自"只在应用线程上修改"这一约束。

两种实现满足同一 Dispatcher 协议:
  - AppThread: 单 worker 线程池，长驻进程使用
  - ImmediateDispatcher: 在调用线程内立即执行，CLI 单次命令与测试使用
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Dispatcher(Protocol):
    """续延调度协议"""

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        """把 fn(*args) 排入应用线程"""
        ...


def _run_logged(fn: Callable[..., Any], *args: Any) -> None:
    try:
        fn(*args)
    except Exception:
        # 续延内的异常不能终止应用线程
        logger.exception("应用线程任务执行失败: %s", getattr(fn, "__qualname__", fn))


class AppThread:
    """单线程任务队列"""

    def __init__(self, name: str = "modhub-app") -> None:
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        self._pool.submit(_run_logged, fn, *args)

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        """排入任务并返回 Future（供外部线程等待结果）"""
        return self._pool.submit(fn, *args)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)


class ImmediateDispatcher:
    """同步执行：post 即调用"""

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        _run_logged(fn, *args)
