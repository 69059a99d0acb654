"""Compute-once async cell.

Concurrent first callers share a single in-flight computation. A success is
cached until :meth:`OnceCell.reset`; a failure is raised to every caller that
was waiting on it and is *not* cached, so the next :meth:`OnceCell.get`
starts over.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class OnceCell(Generic[T]):
    def __init__(self) -> None:
        self._task: asyncio.Task[T] | None = None
        self._waiters: dict[asyncio.Task[T], int] = {}

    @property
    def done(self) -> bool:
        """True once a value has been computed successfully."""
        task = self._task
        return task is not None and task.done() and not _failed(task)

    async def get(self, factory: Callable[[], Coroutine[Any, Any, T]]) -> T:
        task = self._task
        if task is None or task.cancelling() or _failed(task):
            task = asyncio.create_task(factory())
            task.add_done_callback(self._forget_failure)
            self._task = task

        if task.done():
            return task.result()

        self._waiters[task] = self._waiters.get(task, 0) + 1
        try:
            # shield: one caller's deadline must not abort the fetch for the others
            return await asyncio.shield(task)
        finally:
            self._leave(task)

    def reset(self) -> None:
        """Drop the cached value; the next ``get`` recomputes it.

        A computation still awaited by callers is detached, not cancelled:
        those callers get its outcome while new callers start over.
        """
        task, self._task = self._task, None
        if task is not None and not task.done() and task not in self._waiters:
            task.cancel()

    def _leave(self, task: asyncio.Task[T]) -> None:
        remaining = self._waiters.pop(task) - 1
        if remaining:
            self._waiters[task] = remaining
        elif not task.done():
            task.cancel()

    def _forget_failure(self, task: asyncio.Task[T]) -> None:
        if task is not self._task:
            return
        if _failed(task):
            self._task = None


def _failed(task: asyncio.Task[T]) -> bool:
    return task.done() and (task.cancelled() or task.exception() is not None)


__all__ = ["OnceCell"]
