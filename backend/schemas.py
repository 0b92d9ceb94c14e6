"""Pydantic schemas for FastAPI request / response models."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from backend.models import ENTITY_ID_MAX_LENGTH


def as_utc(value: dt.datetime) -> dt.datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Locks
# ---------------------------------------------------------------------------

class EditLock(CamelModel):
    entity_type: str
    entity_id: str
    organization_id: str
    holder_user_id: str
    holder_display_name: Optional[str] = None
    acquired_or_renewed_at: dt.datetime
    expires_at: dt.datetime

    @field_validator("acquired_or_renewed_at", "expires_at")
    @classmethod
    def _utc(cls, value: dt.datetime) -> dt.datetime:
        return as_utc(value)

    @classmethod
    def from_row(cls, row, timeout: dt.timedelta) -> "EditLock":
        locked_at = as_utc(row.locked_at)
        return cls(
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            organization_id=row.org_id,
            holder_user_id=row.locked_by,
            holder_display_name=row.locked_by_name,
            acquired_or_renewed_at=locked_at,
            expires_at=locked_at + timeout,
        )


class LockStatus(CamelModel):
    is_locked: bool
    lock: Optional[EditLock] = None


class AcquireResult(CamelModel):
    acquired: bool
    lock: Optional[EditLock] = None


class RenewResult(CamelModel):
    renewed: bool
    lock: Optional[EditLock] = None
    # "taken_over" or "not_held" when renewed is False
    reason: Optional[str] = None


class ReleaseResult(CamelModel):
    released: bool = True


class BeaconReleaseRequest(CamelModel):
    entity_type: str = Field(min_length=1)
    entity_id: str = Field(min_length=1, max_length=ENTITY_ID_MAX_LENGTH)


class ActiveLocks(CamelModel):
    locks: list[EditLock] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

class LockStats(CamelModel):
    organization_id: str
    active: int = 0
    expired: int = 0
    by_entity_type: dict[str, int] = Field(default_factory=dict)
    lock_timeout_minutes: int


class SweepResult(CamelModel):
    purged: int = 0
