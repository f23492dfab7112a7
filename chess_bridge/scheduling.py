"""Cooperative scheduling of deferred continuations."""

import asyncio
import inspect
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Set, Tuple

logger = logging.getLogger(__name__)


class CooperativeScheduler:
    """
    Defers work to the next turn of the event loop.

    Inside a running asyncio loop, callbacks go through ``loop.call_soon`` and
    awaitables become tasks. Without a loop they are queued until ``flush()``
    is called, which a synchronous host does once it has finished handling
    the current event.
    """

    def __init__(self) -> None:
        self._pending: Deque[Tuple[Callable[..., Any], Tuple[Any, ...]]] = deque()
        self._tasks: Set[asyncio.Future] = set()
        self._scheduled = 0

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """
        Run ``callback(*args)`` after the current event has been handled.

        :param callback: Callable to defer
        :type callback: Callable[..., Any]
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._pending.append((callback, args))
            return
        self._scheduled += 1
        loop.call_soon(self._run_scheduled, callback, args)

    def spawn(self, awaitable: Awaitable[Any]) -> None:
        """
        Run an awaitable to completion without blocking the caller.

        :param awaitable: Coroutine or future returned by a hook
        :type awaitable: Awaitable[Any]
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._pending.append((self._run_to_completion, (awaitable,)))
            return
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending(self) -> int:
        return len(self._pending) + len(self._tasks) + self._scheduled

    def flush(self) -> int:
        """
        Run queued work, including anything queued while flushing.

        :return: Number of callbacks run
        :rtype: int
        """
        count = 0
        while self._pending:
            callback, args = self._pending.popleft()
            self._run(callback, args)
            count += 1
        if count:
            logger.debug(f"[Scheduler] Ran {count} deferred callback(s)")
        return count

    async def drain(self) -> None:
        """Wait until every deferred callback and spawned task has finished."""
        while self.pending:
            self.flush()
            tasks: List[asyncio.Future] = list(self._tasks)
            if tasks:
                await asyncio.gather(*tasks)
            else:
                await asyncio.sleep(0)

    def _run_scheduled(self, callback: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        try:
            self._run(callback, args)
        finally:
            self._scheduled -= 1

    def _run(self, callback: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        result = callback(*args)
        if inspect.isawaitable(result):
            self.spawn(result)

    def _run_to_completion(self, awaitable: Awaitable[Any]) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self.spawn(awaitable)
            return
        if inspect.iscoroutine(awaitable):
            asyncio.run(awaitable)
            return

        async def _await() -> None:
            await awaitable

        asyncio.run(_await())
