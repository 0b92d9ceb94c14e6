"""Caller identity for lock endpoints.

Identity comes from the ``X-User-Id`` header set by the frontend session
layer. Page-unload beacons cannot carry custom headers, so a ``user_id``
cookie is accepted as a fallback.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database import get_session
from backend.models import User

logger = logging.getLogger(__name__)

MANAGER_ROLES = ("admin", "manager")


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    user_id: Optional[str] = Cookie(default=None),
    session: AsyncSession = Depends(get_session),
) -> User:
    caller_id = (x_user_id or user_id or "").strip()
    if not caller_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = await session.get(User, caller_id)
    if user is None or not user.is_active:
        logger.info("Rejected unknown or inactive user %s", caller_id)
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def require_manager(user: User = Depends(get_current_user)) -> User:
    if user.role not in MANAGER_ROLES:
        raise HTTPException(
            status_code=403, detail="Only admins and managers can manage edit locks"
        )
    return user
