"""
Background sweep of expired edit locks.

Runs inside the FastAPI process. ``acquire`` already overwrites expired
rows it trips over; this job removes the ones nobody comes back for, so the
table stays the size of the set of records actually being edited.
"""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.database import async_session
from backend.locks import LockManager, get_lock_manager

logger = logging.getLogger(__name__)


class LockSweepScheduler:
    """Periodically purges expired locks across all organizations."""

    def __init__(
        self,
        manager: Optional[LockManager] = None,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
    ):
        self._manager = manager
        self._session_factory = session_factory
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @property
    def manager(self) -> LockManager:
        if self._manager is None:
            self._manager = get_lock_manager()
        return self._manager

    def start(self, interval_minutes: int = 15):
        """Start the APScheduler background job. Needs a running event loop."""
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.sweep,
            IntervalTrigger(minutes=interval_minutes),
            id="sweep_edit_locks",
            name="Expired edit lock sweep",
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info("Lock sweep scheduler started (interval=%dm)", interval_minutes)

    def stop(self):
        """Stop the scheduler."""
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Lock sweep scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def sweep(self) -> int:
        """One sweep pass. Storage errors are logged; the next run retries."""
        async with self._session_factory() as session:
            try:
                return await self.manager.purge_expired(session)
            except SQLAlchemyError:
                logger.exception("Expired lock sweep failed")
                await session.rollback()
                return 0


_sweeper: Optional[LockSweepScheduler] = None


def get_lock_sweeper() -> LockSweepScheduler:
    """Get or create the global sweeper singleton."""
    global _sweeper
    if _sweeper is None:
        _sweeper = LockSweepScheduler()
    return _sweeper
