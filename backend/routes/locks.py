"""Edit lock endpoints -- check, acquire, heartbeat, release, beacon release."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import get_current_user
from backend.database import get_session
from backend.locks import LockManager, get_lock_manager
from backend.models import User
from backend.schemas import (
    AcquireResult,
    ActiveLocks,
    BeaconReleaseRequest,
    LockStatus,
    ReleaseResult,
    RenewResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locks", tags=["locks"])


@router.get("", response_model=ActiveLocks)
async def list_locks(
    entity_type: Optional[str] = Query(default=None, alias="entityType"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    manager: LockManager = Depends(get_lock_manager),
):
    """Active locks in the caller's organization."""
    locks = await manager.list_active(session, user.org_id, entity_type)
    return ActiveLocks(locks=locks)


@router.post("/release-beacon", response_model=ReleaseResult)
async def release_beacon(
    request: Request,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    manager: LockManager = Depends(get_lock_manager),
):
    """Release fired by ``navigator.sendBeacon`` on page unload.

    Beacons arrive as ``text/plain`` or ``application/json``; the body is
    parsed as JSON either way.
    """
    raw = await request.body()
    try:
        payload = BeaconReleaseRequest.model_validate_json(raw)
    except ValidationError as e:
        logger.info("Malformed release beacon from %s: %s", user.id, e)
        raise HTTPException(status_code=400, detail="Malformed beacon payload")

    await manager.release(session, payload.entity_type, payload.entity_id, user.org_id, user.id)
    return ReleaseResult(released=True)


@router.get("/{entity_type}/{entity_id}", response_model=LockStatus)
async def check_lock(
    entity_type: str,
    entity_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    manager: LockManager = Depends(get_lock_manager),
):
    return await manager.check(session, entity_type, entity_id, user.org_id)


@router.post("/{entity_type}/{entity_id}/acquire", response_model=AcquireResult)
async def acquire_lock(
    entity_type: str,
    entity_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    manager: LockManager = Depends(get_lock_manager),
):
    return await manager.acquire(
        session,
        entity_type,
        entity_id,
        user.org_id,
        user.id,
        display_name=user.display_name or user.username,
    )


@router.post("/{entity_type}/{entity_id}/heartbeat", response_model=RenewResult)
async def heartbeat(
    entity_type: str,
    entity_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    manager: LockManager = Depends(get_lock_manager),
):
    return await manager.renew(session, entity_type, entity_id, user.org_id, user.id)


@router.delete("/{entity_type}/{entity_id}", response_model=ReleaseResult)
async def release_lock(
    entity_type: str,
    entity_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    manager: LockManager = Depends(get_lock_manager),
):
    await manager.release(session, entity_type, entity_id, user.org_id, user.id)
    return ReleaseResult(released=True)
