# src/mdtrans/rate_limit.py
"""
Rate-limited caller factory.

limit_call_rate(func, interval) returns a wrapper that starts at most one call
of `func` per `interval` seconds. Calls are queued FIFO; a call is started
without waiting for the previous one to finish, so settlement order is
whatever `func` produces.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from functools import wraps
from typing import Any, Awaitable, Callable, Deque, Set, Tuple, TypeVar

logger = logging.getLogger("mdtrans.rate_limit")

T = TypeVar("T")

AsyncFunc = Callable[..., Awaitable[T]]


def limit_call_rate(func: AsyncFunc, interval: float) -> AsyncFunc:
    if interval <= 0:
        return func

    queue: Deque[Tuple[tuple, dict, "asyncio.Future[Any]"]] = deque()
    running: Set["asyncio.Task[Any]"] = set()
    processing = False

    def _settle(future: "asyncio.Future[Any]", task: "asyncio.Task[Any]") -> None:
        running.discard(task)
        if future.done():
            # The caller stopped waiting; nothing to deliver.
            return
        if task.cancelled():
            future.cancel()
        elif task.exception() is not None:
            future.set_exception(task.exception())
        else:
            future.set_result(task.result())

    def _process_queue() -> None:
        nonlocal processing
        # Skip entries whose caller was cancelled while queued.
        while queue and queue[0][2].done():
            queue.popleft()
        if not queue:
            processing = False
            return
        processing = True
        args, kwargs, future = queue.popleft()
        logger.debug("starting queued call (%d still waiting)", len(queue))
        task = asyncio.ensure_future(func(*args, **kwargs))
        running.add(task)
        task.add_done_callback(lambda t: _settle(future, t))
        asyncio.get_running_loop().call_later(interval, _process_queue)

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        future = asyncio.get_running_loop().create_future()
        queue.append((args, kwargs, future))
        if not processing:
            _process_queue()
        return await future

    return wrapper
