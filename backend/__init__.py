# backend -- FastAPI server for CRM entity edit locks
#
# Modules:
#   app        -- FastAPI application with lifespan management
#   database   -- PostgreSQL / SQLite async engine
#   models     -- SQLAlchemy ORM models (organizations, users, entity_edit_locks)
#   schemas    -- Pydantic request/response schemas
#   auth       -- caller identity from X-User-Id header / user_id cookie
#   locks      -- LockManager: check, acquire, heartbeat, release, sweep
#   sweeper    -- APScheduler job purging expired locks
#   seed_users -- users CSV -> organizations + users
#   routes/    -- API endpoints (locks, admin)
