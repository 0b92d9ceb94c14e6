"""Admin endpoints -- edit lock statistics and maintenance."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import require_manager
from backend.database import get_session
from backend.locks import LockManager, get_lock_manager
from backend.models import User
from backend.schemas import LockStats, SweepResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/locks/stats", response_model=LockStats)
async def lock_stats(
    user: User = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
    manager: LockManager = Depends(get_lock_manager),
):
    return await manager.stats(session, user.org_id)


@router.post("/locks/sweep", response_model=SweepResult)
async def sweep_locks(
    user: User = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
    manager: LockManager = Depends(get_lock_manager),
):
    """Purge expired locks of the caller's organization on demand."""
    purged = await manager.purge_expired(session, org_id=user.org_id)
    logger.info("Manual lock sweep by %s purged %d row(s)", user.id, purged)
    return SweepResult(purged=purged)
