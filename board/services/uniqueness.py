from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from board.core.errors import DuplicateSubmissionError
from board.services.store import owner_has_active_listing


async def ensure_owner_can_submit(db: AsyncSession, owner_id: str) -> None:
    """
    At most one pending/approved listing per owner.

    Check-then-insert is not atomic in the database; submissions serialize per
    owner in-process (see SubmissionService), which covers a single server.
    Existing duplicates are never cleaned up retroactively.
    """
    if await owner_has_active_listing(db, owner_id):
        raise DuplicateSubmissionError()
