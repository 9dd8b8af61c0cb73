"""Transaction Retry Policy - which storage failures are worth retrying, and when.

Invariants:
    - Only serialization failures, deadlocks, lock timeouts and SQLite busy
      locks are retryable; every other storage error fails the request at once
    - Backoff grows exponentially from base_delay_ms, capped at max_delay_ms,
      with ±25% jitter

Design Decisions:
    - Duck-typed inspection of the driver exception (`.orig`, `sqlstate`,
      `pgcode`): keeps core/ free of SQLAlchemy and driver imports
    - RNG passed in by the caller: tests get deterministic delays
"""

import random

# PostgreSQL SQLSTATEs: serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03"})

# SQLite reports lock contention only through the message text
_SQLITE_BUSY_MESSAGES = ("database is locked", "database table is locked")


def _sqlstate_of(error: BaseException | None) -> str | None:
    """Dig a SQLSTATE out of a (possibly wrapped) driver exception."""
    seen = 0
    while error is not None and seen < 4:
        for attr in ("sqlstate", "pgcode"):
            code = getattr(error, attr, None)
            if isinstance(code, str) and code:
                return code
        error = getattr(error, "orig", None) or error.__cause__
        seen += 1
    return None


def is_retryable_conflict(error: BaseException) -> bool:
    """True if the failed transaction can be safely re-run from the start."""
    if _sqlstate_of(error) in RETRYABLE_SQLSTATES:
        return True
    text = str(getattr(error, "orig", None) or error).lower()
    return any(msg in text for msg in _SQLITE_BUSY_MESSAGES)


def backoff_ms(
    attempt: int,
    base_delay_ms: int,
    max_delay_ms: int,
    rng: random.Random | None = None,
) -> int:
    """Exponential backoff with ±25% jitter for the given zero-based attempt."""
    delay = min(max_delay_ms, (2 ** attempt) * base_delay_ms)
    jitter = (rng or random).uniform(0.75, 1.25)  # nosec B311
    return int(delay * jitter)
