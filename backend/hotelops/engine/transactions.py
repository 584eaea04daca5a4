"""Transaction boundary for the engine's critical sections."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from hotelops.errors import BookingEngineError


@asynccontextmanager
async def committing(db: AsyncSession) -> AsyncIterator[None]:
    """Commit the work done in the block, releasing any row locks it took.

    Engine errors are raised before anything is added or flushed, so a
    rejected operation ends its transaction with an empty commit. Unlike a
    rollback, that leaves the objects the caller already holds loaded (the
    session does not expire on commit), and the session stays usable for
    the next operation. Any other exception rolls back.
    """
    try:
        yield
    except BookingEngineError:
        await db.commit()
        raise
    except Exception:
        await db.rollback()
        raise
    else:
        await db.commit()
