# Configuration from environment variables (.env or Railway Variables).

import os
from dotenv import load_dotenv

load_dotenv()


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_bool(key: str, default: bool) -> bool:
    s = _env(key)
    if not s:
        return default
    return s.lower() in ("1", "true", "yes")


def _env_positive_int(key: str, default: int) -> int:
    s = _env(key)
    if not s:
        return default
    try:
        value = int(s)
    except ValueError:
        return default
    return value if value > 0 else default


# ============================================================================
# Edit locks
# ============================================================================
# Lease length: too short produces false contention for slow editors,
# too long leaves abandoned sessions blocking others.
LOCK_TIMEOUT_MINUTES = _env_positive_int("LOCK_TIMEOUT_MINUTES", 30)

ENABLE_LOCK_SWEEP = _env_bool("ENABLE_LOCK_SWEEP", True)
LOCK_SWEEP_INTERVAL_MINUTES = _env_positive_int("LOCK_SWEEP_INTERVAL_MINUTES", 15)

# ============================================================================
# Logging
# ============================================================================
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LOG_LEVEL = _env("LOG_LEVEL", "INFO").upper()
if LOG_LEVEL not in _LOG_LEVELS:
    LOG_LEVEL = "INFO"
