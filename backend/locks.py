"""
Entity edit locks -- short-lived, heartbeat-renewed advisory leases.

A lock is active while ``now - locked_at < timeout``. Expired rows are not
removed eagerly: ``acquire`` overwrites an expired row in the same statement
that claims it, and the sweep job purges the rest.

Acquisition is a single ``INSERT ... ON CONFLICT DO UPDATE ... WHERE``
against the unique (entity_type, entity_id, org_id) key, so two editors
racing for an unlocked record cannot both win.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from backend.models import ENTITY_ID_MAX_LENGTH, ENTITY_TYPES, EntityEditLock, User
from backend.schemas import AcquireResult, EditLock, LockStats, LockStatus, RenewResult

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class InvalidArgument(ValueError):
    """Lock request rejected before storage is touched."""


class InvalidEntityType(InvalidArgument):
    """Entity type outside the lockable collections."""


class InvalidEntityId(InvalidArgument):
    """Entity id empty or longer than the stored column."""


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def validate_entity_type(entity_type: str) -> str:
    if entity_type not in ENTITY_TYPES:
        raise InvalidEntityType(
            f"Invalid entity type {entity_type!r}; expected one of {', '.join(ENTITY_TYPES)}"
        )
    return entity_type


def validate_entity_id(entity_id: str) -> str:
    if not entity_id or len(entity_id) > ENTITY_ID_MAX_LENGTH:
        raise InvalidEntityId(
            f"Invalid entity id; expected 1 to {ENTITY_ID_MAX_LENGTH} characters"
        )
    return entity_id


def _validate_target(entity_type: str, entity_id: str) -> None:
    validate_entity_type(entity_type)
    validate_entity_id(entity_id)


def _entity_clause(entity_type: str, entity_id: str, org_id: str) -> list:
    return [
        EntityEditLock.entity_type == entity_type,
        EntityEditLock.entity_id == entity_id,
        EntityEditLock.org_id == org_id,
    ]


class LockManager:
    """Tenant-scoped edit lock operations.

    Every method takes the caller's ``AsyncSession`` and commits its own
    writes. ``clock`` must return timezone-aware UTC datetimes.
    """

    def __init__(
        self,
        timeout_minutes: int = 30,
        clock: Callable[[], dt.datetime] = utcnow,
    ):
        self.timeout = dt.timedelta(minutes=timeout_minutes)
        self._clock = clock

    @property
    def timeout_minutes(self) -> int:
        return int(self.timeout.total_seconds() // 60)

    def _cutoff(self, now: dt.datetime) -> dt.datetime:
        return now - self.timeout

    def _to_schema(self, row: Optional[EntityEditLock]) -> Optional[EditLock]:
        if row is None:
            return None
        return EditLock.from_row(row, self.timeout)

    async def _active_row(
        self,
        session: AsyncSession,
        entity_type: str,
        entity_id: str,
        org_id: str,
        now: dt.datetime,
    ) -> Optional[EntityEditLock]:
        stmt = (
            select(EntityEditLock)
            .where(
                *_entity_clause(entity_type, entity_id, org_id),
                EntityEditLock.locked_at > self._cutoff(now),
            )
            .execution_options(populate_existing=True)
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def _resolve_display_name(self, session: AsyncSession, user_id: str) -> str:
        user = await session.get(User, user_id)
        if user is None:
            return user_id
        return user.display_name or user.username or user_id

    @staticmethod
    def _insert_for(session: AsyncSession):
        dialect = session.get_bind().dialect.name
        try:
            return _UPSERT_INSERTS[dialect]
        except KeyError:
            raise RuntimeError(f"Edit locks need PostgreSQL or SQLite, got {dialect!r}") from None

    # ------------------------------------------------------------------
    # Lock lifecycle
    # ------------------------------------------------------------------

    async def check(
        self,
        session: AsyncSession,
        entity_type: str,
        entity_id: str,
        org_id: str,
    ) -> LockStatus:
        _validate_target(entity_type, entity_id)
        row = await self._active_row(session, entity_type, entity_id, org_id, self._clock())
        return LockStatus(is_locked=row is not None, lock=self._to_schema(row))

    async def acquire(
        self,
        session: AsyncSession,
        entity_type: str,
        entity_id: str,
        org_id: str,
        user_id: str,
        display_name: Optional[str] = None,
    ) -> AcquireResult:
        """Claim the lock, renew it for its holder, or take over an expired one.

        Returns ``acquired=False`` with the current holder's lock when another
        user holds an active lock.
        """
        _validate_target(entity_type, entity_id)
        now = self._clock()
        if display_name is None:
            display_name = await self._resolve_display_name(session, user_id)

        previous = (
            await session.execute(
                select(EntityEditLock.locked_by).where(
                    *_entity_clause(entity_type, entity_id, org_id)
                )
            )
        ).scalar_one_or_none()

        table = EntityEditLock.__table__
        stmt = self._insert_for(session)(table).values(
            entity_type=entity_type,
            entity_id=entity_id,
            org_id=org_id,
            locked_by=user_id,
            locked_by_name=display_name,
            locked_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.entity_type, table.c.entity_id, table.c.org_id],
            set_={
                "locked_by": stmt.excluded.locked_by,
                "locked_by_name": stmt.excluded.locked_by_name,
                "locked_at": stmt.excluded.locked_at,
            },
            # only the holder may refresh; anyone may take over an expired row
            where=or_(
                table.c.locked_by == stmt.excluded.locked_by,
                table.c.locked_at <= self._cutoff(now),
            ),
        ).returning(table.c.id)

        claimed_id = (await session.execute(stmt)).scalar_one_or_none()
        await session.commit()

        row = await self._active_row(session, entity_type, entity_id, org_id, now)
        if claimed_id is None:
            logger.info(
                "Lock on %s/%s (org=%s) refused for %s: held by %s",
                entity_type, entity_id, org_id, user_id,
                row.locked_by if row is not None else "nobody",
            )
            return AcquireResult(acquired=False, lock=self._to_schema(row))

        if previous is not None and previous != user_id:
            logger.info(
                "Expired lock on %s/%s (org=%s) taken over by %s from %s",
                entity_type, entity_id, org_id, user_id, previous,
            )
        elif previous is None:
            logger.info(
                "Lock on %s/%s (org=%s) acquired by %s",
                entity_type, entity_id, org_id, user_id,
            )
        return AcquireResult(acquired=True, lock=self._to_schema(row))

    async def renew(
        self,
        session: AsyncSession,
        entity_type: str,
        entity_id: str,
        org_id: str,
        user_id: str,
    ) -> RenewResult:
        """Heartbeat. Only extends an active lock held by ``user_id``."""
        _validate_target(entity_type, entity_id)
        now = self._clock()
        stmt = (
            update(EntityEditLock)
            .where(
                *_entity_clause(entity_type, entity_id, org_id),
                EntityEditLock.locked_by == user_id,
                EntityEditLock.locked_at > self._cutoff(now),
            )
            .values(locked_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        renewed = result.rowcount > 0
        await session.commit()

        row = await self._active_row(session, entity_type, entity_id, org_id, now)
        if renewed:
            return RenewResult(renewed=True, lock=self._to_schema(row))

        if row is not None:
            logger.info(
                "Heartbeat from %s on %s/%s (org=%s) rejected: lock taken over by %s",
                user_id, entity_type, entity_id, org_id, row.locked_by,
            )
            return RenewResult(renewed=False, lock=self._to_schema(row), reason="taken_over")

        logger.info(
            "Heartbeat from %s on %s/%s (org=%s) rejected: lock no longer held",
            user_id, entity_type, entity_id, org_id,
        )
        return RenewResult(renewed=False, reason="not_held")

    async def release(
        self,
        session: AsyncSession,
        entity_type: str,
        entity_id: str,
        org_id: str,
        user_id: str,
    ) -> bool:
        """Drop the lock if ``user_id`` holds it. Returns whether a row was removed."""
        _validate_target(entity_type, entity_id)
        stmt = (
            delete(EntityEditLock)
            .where(
                *_entity_clause(entity_type, entity_id, org_id),
                EntityEditLock.locked_by == user_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        released = result.rowcount > 0
        await session.commit()

        if released:
            logger.info(
                "Lock on %s/%s (org=%s) released by %s",
                entity_type, entity_id, org_id, user_id,
            )
        return released

    # ------------------------------------------------------------------
    # Listing & maintenance
    # ------------------------------------------------------------------

    async def list_active(
        self,
        session: AsyncSession,
        org_id: str,
        entity_type: Optional[str] = None,
    ) -> list[EditLock]:
        now = self._clock()
        stmt = select(EntityEditLock).where(
            EntityEditLock.org_id == org_id,
            EntityEditLock.locked_at > self._cutoff(now),
        )
        if entity_type is not None:
            stmt = stmt.where(EntityEditLock.entity_type == validate_entity_type(entity_type))
        stmt = stmt.order_by(EntityEditLock.locked_at.desc()).execution_options(
            populate_existing=True
        )
        rows = (await session.execute(stmt)).scalars().all()
        return [self._to_schema(row) for row in rows]

    async def stats(self, session: AsyncSession, org_id: str) -> LockStats:
        cutoff = self._cutoff(self._clock())
        by_type_rows = (
            await session.execute(
                select(EntityEditLock.entity_type, func.count(EntityEditLock.id))
                .where(
                    EntityEditLock.org_id == org_id,
                    EntityEditLock.locked_at > cutoff,
                )
                .group_by(EntityEditLock.entity_type)
            )
        ).all()
        expired = (
            await session.execute(
                select(func.count(EntityEditLock.id)).where(
                    EntityEditLock.org_id == org_id,
                    EntityEditLock.locked_at <= cutoff,
                )
            )
        ).scalar() or 0

        by_type = {entity_type: count for entity_type, count in by_type_rows}
        return LockStats(
            organization_id=org_id,
            active=sum(by_type.values()),
            expired=expired,
            by_entity_type=by_type,
            lock_timeout_minutes=self.timeout_minutes,
        )

    async def purge_expired(self, session: AsyncSession, org_id: Optional[str] = None) -> int:
        """Delete expired rows for one organization, or all of them."""
        stmt = delete(EntityEditLock).where(
            EntityEditLock.locked_at <= self._cutoff(self._clock())
        )
        if org_id is not None:
            stmt = stmt.where(EntityEditLock.org_id == org_id)
        result = await session.execute(stmt.execution_options(synchronize_session=False))
        purged = result.rowcount or 0
        await session.commit()

        if purged:
            logger.info("Purged %d expired edit lock(s) (org=%s)", purged, org_id or "*")
        return purged


_manager: Optional[LockManager] = None


def get_lock_manager() -> LockManager:
    """Get or create the global lock manager singleton."""
    global _manager
    if _manager is None:
        from config_env import LOCK_TIMEOUT_MINUTES

        _manager = LockManager(timeout_minutes=LOCK_TIMEOUT_MINUTES)
    return _manager
