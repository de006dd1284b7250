from __future__ import annotations

import logging

from board.core.clock import utcnow
from board.core.context import AppContext
from board.core.errors import AuthorizationError, NotFoundError, ValidationError
from board.core.ids import gen_id
from board.models.listing import STATUS_APPROVED, STATUS_PENDING, Listing
from board.schemas import events
from board.schemas.events import PendingNotice
from board.schemas.listing import ListingSubmit
from board.services.promo import PremiumGrant, redeem_promo_code
from board.services.store import delete_listing, get_listing, get_permanent, insert_listing, transaction
from board.services.uniqueness import ensure_owner_can_submit

log = logging.getLogger(__name__)


def validate_submission(ctx: AppContext, payload: ListingSubmit) -> None:
    s = ctx.settings
    title = payload.title.strip()
    if not title:
        raise ValidationError("Title is required")
    if len(title) > s.max_title_length:
        raise ValidationError(f"Title is longer than {s.max_title_length} characters")
    if len(payload.description) > s.max_description_length:
        raise ValidationError(f"Description is longer than {s.max_description_length} characters")
    # size of the encoded payload only, the image itself is not inspected
    if payload.photo and len(payload.photo.encode("utf-8")) > s.max_photo_bytes:
        raise ValidationError("Photo is too large")


class SubmissionService:
    """Viewer-side operations: submitting a listing and deleting one's own."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    def _is_operator(self, conn) -> bool:
        return self.ctx.operators.is_valid(conn.operator_token)

    async def submit(self, payload: ListingSubmit) -> Listing:
        """
        Uniqueness check -> optional promo redemption -> insert as pending,
        in one transaction; the first failure aborts the rest.
        """
        validate_submission(self.ctx, payload)
        listing_id = payload.id or gen_id("ad")

        async with self.ctx.owner_locks.hold(payload.owner_id):
            async with transaction(self.ctx.sessions) as db:
                await ensure_owner_can_submit(db, payload.owner_id)

                grant: PremiumGrant | None = None
                if payload.promo_code:
                    grant = await redeem_promo_code(db, payload.promo_code, listing_id=listing_id)

                listing = await insert_listing(
                    db,
                    Listing(
                        id=listing_id,
                        title=payload.title.strip(),
                        description=payload.description,
                        photo=payload.photo,
                        category=payload.category,
                        owner_id=payload.owner_id,
                        status=STATUS_PENDING,
                        is_premium=grant is not None,
                        created_at=utcnow(),
                    ),
                )

        log.info("listing %s submitted (premium=%s)", listing.id, listing.is_premium)
        self.ctx.broadcaster.publish_operators(
            events.PENDING_AD,
            PendingNotice(id=listing.id, title=listing.title),
            is_operator=self._is_operator,
        )
        return listing

    async def delete_own(self, listing_id: str, owner_id: str) -> None:
        """Owners may remove their own approved, non-permanent listing."""
        async with self.ctx.write_lock:
            async with transaction(self.ctx.sessions) as db:
                listing = await get_listing(db, listing_id)
                if listing is None or listing.status != STATUS_APPROVED:
                    raise NotFoundError()
                if listing.owner_id != owner_id:
                    raise AuthorizationError("You can only delete your own listing")
                if await get_permanent(db, listing_id) is not None:
                    raise AuthorizationError("Permanent listings can only be removed by the operator")
                await delete_listing(db, listing_id)

            log.info("listing %s deleted by its owner", listing_id)
            self.ctx.broadcaster.publish(events.DELETE_AD, listing_id)
