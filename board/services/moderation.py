from __future__ import annotations

import logging
from dataclasses import dataclass

from board.core.context import AppContext
from board.core.errors import AlreadyPermanentError, AuthorizationError, NotFoundError
from board.core.security import secret_matches
from board.models.listing import STATUS_APPROVED, STATUS_PENDING
from board.schemas import events
from board.schemas.listing import ListingOut
from board.schemas.moderation import ModerationView
from board.services.promo import create_promo_code
from board.services.store import (
    add_permanent,
    delete_listing,
    get_listing,
    get_permanent,
    remove_permanent,
    transaction,
    update_status,
)
from board.services.visibility import load_pending, load_visible, project_listing, sort_visible

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operator:
    # "secret" (shared secret on the request) | "session" (token issued to a websocket)
    via: str


def authorize_operator(ctx: AppContext, *, secret: str | None = None, token: str | None = None) -> Operator:
    if token and ctx.operators.is_valid(token):
        return Operator(via="session")
    if secret_matches(secret, ctx.settings.admin_secret):
        return Operator(via="secret")
    raise AuthorizationError()


class ModerationWorkflow:
    """
    Operator transitions over {pending, approved} x permanent-set membership.

    Each transition commits, then publishes exactly one event, both under the
    application write lock so viewers see events in commit order. No-op
    transitions publish nothing.
    """

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    async def approve(self, operator: Operator, listing_id: str) -> ListingOut:
        async with self.ctx.write_lock:
            async with transaction(self.ctx.sessions) as db:
                listing = await get_listing(db, listing_id)
                if listing is None:
                    raise NotFoundError()
                permanent = await get_permanent(db, listing_id) is not None
                if listing.status == STATUS_APPROVED:
                    return project_listing(listing, permanent=permanent)
                listing = await update_status(db, listing_id, STATUS_APPROVED)
                out = project_listing(listing, permanent=permanent)

            log.info("listing %s approved", listing_id)
            self.ctx.broadcaster.publish(events.NEW_AD, out)
        return out

    async def reject(self, operator: Operator, listing_id: str) -> bool:
        """Pending -> removed. Approved listings are left alone (returns False)."""
        async with self.ctx.write_lock:
            async with transaction(self.ctx.sessions) as db:
                listing = await get_listing(db, listing_id)
                if listing is None:
                    raise NotFoundError()
                if listing.status != STATUS_PENDING:
                    return False
                await delete_listing(db, listing_id)

            log.info("listing %s rejected", listing_id)
            self.ctx.broadcaster.publish(events.DELETE_AD, listing_id)
        return True

    async def promote(self, operator: Operator, listing_id: str) -> ListingOut:
        async with self.ctx.write_lock:
            async with transaction(self.ctx.sessions) as db:
                listing = await get_listing(db, listing_id)
                if listing is None:
                    raise NotFoundError()
                if await get_permanent(db, listing_id) is not None:
                    raise AlreadyPermanentError()
                if listing.status == STATUS_PENDING:
                    listing = await update_status(db, listing_id, STATUS_APPROVED)
                await add_permanent(db, listing)
                out = project_listing(listing, permanent=True)

            log.info("listing %s promoted to permanent", listing_id)
            self.ctx.broadcaster.publish(events.NEW_AD, out)
        return out

    async def revoke_permanent(self, operator: Operator, listing_id: str) -> bool:
        """Drop permanent-set membership; the listing stays approved until the next expiry."""
        async with self.ctx.write_lock:
            async with transaction(self.ctx.sessions) as db:
                if not await remove_permanent(db, listing_id):
                    return False
                listing = await get_listing(db, listing_id)

            log.info("listing %s is no longer permanent", listing_id)
            if listing is None:
                self.ctx.broadcaster.publish(events.DELETE_AD, listing_id)
            else:
                self.ctx.broadcaster.publish(events.NEW_AD, project_listing(listing, permanent=False))
        return True

    async def delete_any(self, operator: Operator, listing_id: str) -> None:
        async with self.ctx.write_lock:
            async with transaction(self.ctx.sessions) as db:
                removed_row = await get_listing(db, listing_id) is not None
                if removed_row:
                    await delete_listing(db, listing_id)
                removed_snapshot = await remove_permanent(db, listing_id)
                if not (removed_row or removed_snapshot):
                    raise NotFoundError()

            log.info("listing %s deleted by operator", listing_id)
            self.ctx.broadcaster.publish(events.DELETE_AD, listing_id)

    async def list_pending(self, operator: Operator) -> list[ListingOut]:
        async with transaction(self.ctx.sessions) as db:
            return await load_pending(db, limit=self.ctx.settings.pending_limit)

    async def list_all(self, operator: Operator) -> list[ListingOut]:
        async with transaction(self.ctx.sessions) as db:
            pending = await load_pending(db)
            visible = await load_visible(db)
        return sort_visible(pending + visible)[: self.ctx.settings.pending_limit]

    async def view(self, operator: Operator) -> ModerationView:
        async with transaction(self.ctx.sessions) as db:
            pending = await load_pending(db, limit=self.ctx.settings.pending_limit)
            visible = await load_visible(db, limit=self.ctx.settings.visible_limit)
        return ModerationView(pending=pending, visible=visible, next_reset=self.ctx.scheduler.next_reset_ms)

    async def create_promo(self, operator: Operator) -> str:
        async with transaction(self.ctx.sessions) as db:
            row = await create_promo_code(db, prefix=self.ctx.settings.promo_code_prefix)
            code = row.code
        log.info("promo code issued")
        return code
