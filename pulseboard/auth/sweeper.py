"""
Pulseboard - Expired Session Sweeper

Background task deleting expired session rows on a fixed interval.
Errors are logged per tick; the loop keeps running until stopped.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from pulseboard.auth.sessions import cleanup_expired_sessions


logger = logging.getLogger(__name__)


class SessionSweeper:
    """Periodically purges expired sessions. Cancellable via stop()."""

    def __init__(self, session_factory: async_sessionmaker, interval_seconds: float = 3600.0):
        self._session_factory = session_factory
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._interval <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def sweep(self) -> int:
        async with self._session_factory() as db:
            removed = await cleanup_expired_sessions(db)
        if removed:
            logger.info("Session sweep removed %d expired sessions", removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Session sweep failed; retrying next interval")
