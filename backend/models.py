"""
SQLAlchemy ORM models -- schema for the entity edit lock service.

Tables
------
organizations      -- tenants
users              -- members of an organization (lock holders)
entity_edit_locks  -- advisory edit leases, one per (entity_type, entity_id, org_id)
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base

# Lockable CRM collections
ENTITY_TYPES = (
    "gp",
    "lp",
    "fund",
    "service_provider",
    "portfolio_company",
    "deal",
    "contact",
)

ENTITY_ID_MAX_LENGTH = 255

USER_ROLES = ("admin", "manager", "annotator", "guest")


# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------

class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    org_type = Column(String(32), default="client")
    status = Column(String(32), default="active")
    created_at = Column(DateTime(timezone=True), default=func.now())

    users = relationship("User", back_populates="organization")


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    org_id = Column(String(64), ForeignKey("organizations.id"), nullable=False, index=True)
    username = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), default="")
    role = Column(String(20), nullable=False, default="annotator")
    display_name = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=func.now())

    organization = relationship("Organization", back_populates="users")


# ---------------------------------------------------------------------------
# Edit locks
# ---------------------------------------------------------------------------

class EntityEditLock(Base):
    __tablename__ = "entity_edit_locks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(32), nullable=False)
    entity_id = Column(String(ENTITY_ID_MAX_LENGTH), nullable=False)
    org_id = Column(String(64), ForeignKey("organizations.id"), nullable=False)
    locked_by = Column(String(64), nullable=False)
    locked_by_name = Column(Text, nullable=True)
    locked_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "org_id", name="uq_entity_edit_locks_entity"),
        Index("ix_entity_edit_locks_org", "org_id"),
    )

    def __repr__(self):
        return (
            f"<EntityEditLock({self.entity_type}/{self.entity_id}, "
            f"org={self.org_id}, locked_by={self.locked_by})>"
        )
