"""
Viewer-visible projection.

The store yields raw listings; membership in the permanent set is joined in
here. A permanent snapshot overrides the live row with the same id.
"""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from board.core.clock import epoch_ms
from board.models.listing import STATUS_APPROVED, STATUS_PENDING, Listing
from board.models.permanent_listing import PermanentListing
from board.schemas.listing import ListingOut
from board.services.store import list_by_status, list_permanent


def project_listing(listing: Listing, *, permanent: bool) -> ListingOut:
    return ListingOut(
        id=listing.id,
        title=listing.title,
        description=listing.description,
        photo=listing.photo,
        category=listing.category,
        owner_id=listing.owner_id,
        status=listing.status,
        is_premium=listing.is_premium,
        permanent=permanent,
        created_at=epoch_ms(listing.created_at),
    )


def project_snapshot(snapshot: PermanentListing) -> ListingOut:
    return ListingOut(
        id=snapshot.listing_id,
        title=snapshot.title,
        description=snapshot.description,
        photo=snapshot.photo,
        category=snapshot.category,
        owner_id=snapshot.owner_id,
        status=STATUS_APPROVED,
        is_premium=snapshot.is_premium,
        permanent=True,
        created_at=epoch_ms(snapshot.listing_created_at),
    )


def sort_visible(items: list[ListingOut]) -> list[ListingOut]:
    # premium first, then newest
    return sorted(items, key=lambda x: (x.is_premium, x.created_at), reverse=True)


def merge_visible(
    approved: list[Listing],
    permanent: list[PermanentListing],
    *,
    limit: int | None = None,
) -> list[ListingOut]:
    member_ids = {p.listing_id for p in permanent}
    by_id: dict[str, ListingOut] = {
        row.id: project_listing(row, permanent=row.id in member_ids) for row in approved
    }
    for snap in permanent:
        by_id[snap.listing_id] = project_snapshot(snap)

    merged = sort_visible(list(by_id.values()))
    return merged if limit is None else merged[:limit]


async def load_visible(db: AsyncSession, *, limit: int | None = None) -> list[ListingOut]:
    approved = await list_by_status(db, STATUS_APPROVED)
    permanent = await list_permanent(db)
    return merge_visible(approved, permanent, limit=limit)


async def load_pending(db: AsyncSession, *, limit: int | None = None) -> list[ListingOut]:
    rows = await list_by_status(db, STATUS_PENDING, limit=limit)
    return [project_listing(r, permanent=False) for r in rows]
