"""Offset between the local clock and the VKE API clock."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from vke.observability.logger import logger

from .once import OnceCell

ServerTimeFetcher = Callable[[], Awaitable[int]]


class ClockSynchronizer:
    """Measures and memoizes ``local_now - server_time`` in seconds.

    The first :meth:`offset` call fetches the server time; concurrent first
    callers share that single fetch. The offset is kept for the lifetime of
    the instance unless :meth:`invalidate` is called.
    """

    def __init__(
        self,
        fetch_server_time: ServerTimeFetcher,
        *,
        local_clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch_server_time = fetch_server_time
        self._local_clock = local_clock
        self._offset: OnceCell[float] = OnceCell()
        self._log = logger.bind(component="clock")

    async def _measure(self) -> float:
        server = await self._fetch_server_time()
        offset = self._local_clock() - server
        self._log.debug("Clock offset against API: {offset:.3f}s", offset=offset)
        return offset

    async def offset(self) -> float:
        return await self._offset.get(self._measure)

    async def server_time(self) -> datetime:
        """Fresh, uncached server time."""
        return datetime.fromtimestamp(await self._fetch_server_time(), tz=UTC)

    async def now(self) -> int:
        """Local time corrected by the offset, in whole seconds since the epoch."""
        return int(self._local_clock() - await self.offset())

    def invalidate(self) -> None:
        self._log.debug("Clock offset invalidated")
        self._offset.reset()


__all__ = ["ClockSynchronizer"]
