"""Per-key serialization of read-modify-write units of work."""

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Fallback for databases without advisory locks, one lock table per event loop
_local_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def slot_lock_key(booking_date: date, time_slot_id: int) -> str:
    """Lock key guarding the occupancy of one slot on one day."""
    return f"slot:{time_slot_id}:{booking_date.isoformat()}"


def voucher_lock_key(code: str) -> str:
    """Lock key guarding the usage counter of one voucher."""
    return f"voucher:{code.strip().upper()}"


def _local_lock(key: str) -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    locks = _local_locks.setdefault(loop, {})
    lock = locks.get(key)
    if lock is None:
        lock = locks[key] = asyncio.Lock()
    return lock


@asynccontextmanager
async def serialized(db: AsyncSession, key: str) -> AsyncIterator[None]:
    """
    Serialize the enclosed unit of work against others using the same key.

    On PostgreSQL this takes a transaction-scoped advisory lock, released by
    the commit or rollback that ends the unit of work, so the caller must
    finish its transaction inside the block. Other databases fall back to an
    in-process lock held for the duration of the block.

    Args:
        db: Session whose transaction the lock belongs to
        key: Resource key, see slot_lock_key and voucher_lock_key
    """
    if db.bind is not None and db.bind.dialect.name == "postgresql":
        await db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
            {"lock_key": key}
        )
        logger.debug("Acquired advisory lock", extra={"lock_key": key})
        yield
        return

    async with _local_lock(key):
        logger.debug("Acquired local lock", extra={"lock_key": key})
        yield
