"""Time budget enforcement for remote calls."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Callable, Optional, TypeVar

from ..errors import OperationTimeout

T = TypeVar("T")


class TimeoutRunner:
    """Long-lived helper pool that runs calls under a time budget.

    Helper threads are reused across calls, so per-thread state such as an
    HTTP session survives from one call to the next. A call that times out is
    abandoned, not interrupted, and keeps its helper thread until it returns.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="vectorproxy-call"
        )

    def call(self, func: Callable[[], T], timeout: Optional[float], operation: str) -> T:
        if timeout is None:
            return func()
        future = self._executor.submit(func)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            future.cancel()
            raise OperationTimeout(operation, timeout) from None

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


_default_runner: Optional[TimeoutRunner] = None
_default_lock = threading.Lock()


def default_runner() -> TimeoutRunner:
    """Return the process-wide runner used when no runner is passed in."""

    global _default_runner
    with _default_lock:
        if _default_runner is None:
            _default_runner = TimeoutRunner()
        return _default_runner


def call_with_timeout(
    func: Callable[[], T],
    timeout: Optional[float],
    operation: str,
    runner: Optional[TimeoutRunner] = None,
) -> T:
    """Run ``func`` and raise :class:`OperationTimeout` if it exceeds ``timeout`` seconds.

    ``timeout=None`` calls ``func`` inline; otherwise it runs on ``runner``
    (or :func:`default_runner`).
    """

    if timeout is None:
        return func()
    return (runner or default_runner()).call(func, timeout, operation)
