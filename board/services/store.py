"""
Listing Store: keyed persistence for listings and the permanent set.

Every function takes an open session; callers own the transaction through
`transaction()`, so a failure anywhere in a pipeline rolls back all of it.
Missing ids on `update_status` / `delete_listing` raise NotFoundError.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from board.core.clock import utcnow
from board.core.errors import BoardError, ConflictError, NotFoundError, StorageError
from board.core.ids import gen_id
from board.models.listing import ACTIVE_STATUSES, STATUS_APPROVED, Listing
from board.models.permanent_listing import PermanentListing

log = logging.getLogger(__name__)


@asynccontextmanager
async def transaction(sessions: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with sessions() as db:
        try:
            async with db.begin():
                yield db
        except BoardError:
            raise
        except SQLAlchemyError as e:
            log.exception("storage failure, transaction rolled back")
            raise StorageError() from e


async def insert_listing(db: AsyncSession, listing: Listing) -> Listing:
    if not listing.id:
        listing.id = gen_id("ad")
    elif await db.get(Listing, listing.id) is not None:
        raise ConflictError()
    if listing.created_at is None:
        listing.created_at = utcnow()

    db.add(listing)
    try:
        await db.flush()
    except IntegrityError as e:
        # lost a race on a client-supplied id
        raise ConflictError() from e
    return listing


async def get_listing(db: AsyncSession, listing_id: str) -> Listing | None:
    return await db.get(Listing, listing_id)


async def list_by_status(db: AsyncSession, status: str, *, limit: int | None = None) -> list[Listing]:
    stmt = (
        select(Listing)
        .where(Listing.status == status)
        .order_by(Listing.is_premium.desc(), Listing.created_at.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list((await db.execute(stmt)).scalars().all())


async def update_status(db: AsyncSession, listing_id: str, status: str) -> Listing:
    listing = await db.get(Listing, listing_id)
    if listing is None:
        raise NotFoundError()
    listing.status = status
    await db.flush()
    return listing


async def delete_listing(db: AsyncSession, listing_id: str) -> None:
    result = await db.execute(delete(Listing).where(Listing.id == listing_id))
    if not result.rowcount:
        raise NotFoundError()


async def owner_has_active_listing(db: AsyncSession, owner_id: str) -> bool:
    stmt = select(
        exists().where(Listing.owner_id == owner_id, Listing.status.in_(ACTIVE_STATUSES))
    )
    return bool((await db.execute(stmt)).scalar())


# Permanent set


async def get_permanent(db: AsyncSession, listing_id: str) -> PermanentListing | None:
    return await db.get(PermanentListing, listing_id)


async def list_permanent(db: AsyncSession) -> list[PermanentListing]:
    stmt = select(PermanentListing).order_by(
        PermanentListing.is_premium.desc(), PermanentListing.listing_created_at.desc()
    )
    return list((await db.execute(stmt)).scalars().all())


async def permanent_ids(db: AsyncSession) -> set[str]:
    return set((await db.execute(select(PermanentListing.listing_id))).scalars().all())


async def add_permanent(db: AsyncSession, listing: Listing) -> PermanentListing:
    snapshot = PermanentListing(
        listing_id=listing.id,
        title=listing.title,
        description=listing.description,
        photo=listing.photo,
        category=listing.category,
        owner_id=listing.owner_id,
        is_premium=listing.is_premium,
        listing_created_at=listing.created_at,
        promoted_at=utcnow(),
    )
    db.add(snapshot)
    await db.flush()
    return snapshot


async def remove_permanent(db: AsyncSession, listing_id: str) -> bool:
    result = await db.execute(delete(PermanentListing).where(PermanentListing.listing_id == listing_id))
    return bool(result.rowcount)


async def purge_expired(db: AsyncSession) -> list[str]:
    """Delete every approved listing outside the permanent set; returns the purged ids."""
    not_permanent = ~exists().where(PermanentListing.listing_id == Listing.id)
    ids = list(
        (await db.execute(
            select(Listing.id).where(Listing.status == STATUS_APPROVED, not_permanent)
        )).scalars().all()
    )
    if ids:
        await db.execute(delete(Listing).where(Listing.id.in_(ids)))
    return ids
