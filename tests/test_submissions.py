import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from board.core.errors import (
    AuthorizationError,
    DuplicateSubmissionError,
    NotFoundError,
    RedemptionError,
    StorageError,
    ValidationError,
)
from board.models.listing import Listing
from board.models.promo_code import PromoCode
from board.services import submissions
from board.services.broadcaster import Connection
from board.services.moderation import ModerationWorkflow
from board.services.store import transaction
from board.services.submissions import SubmissionService

from fixtures_seed import make_submission


async def _count_listings(ctx, owner_id=None) -> int:
    stmt = select(func.count()).select_from(Listing)
    if owner_id is not None:
        stmt = stmt.where(Listing.owner_id == owner_id)
    async with transaction(ctx.sessions) as db:
        return (await db.execute(stmt)).scalar_one()


@pytest.mark.asyncio
async def test_submit_creates_pending_listing(ctx):
    listing = await SubmissionService(ctx).submit(make_submission("u1"))

    assert listing.status == "pending"
    assert listing.is_premium is False
    assert await _count_listings(ctx) == 1


@pytest.mark.asyncio
async def test_second_submission_from_same_owner_is_refused(ctx, operator):
    service = SubmissionService(ctx)
    first = await service.submit(make_submission("u1"))

    with pytest.raises(DuplicateSubmissionError):
        await service.submit(make_submission("u1", title="Another bike"))

    # still refused once the first one is approved
    await ModerationWorkflow(ctx).approve(operator, first.id)
    with pytest.raises(DuplicateSubmissionError):
        await service.submit(make_submission("u1", title="Third bike"))

    assert await _count_listings(ctx, "u1") == 1


@pytest.mark.asyncio
async def test_concurrent_submissions_from_one_owner_accept_only_one(ctx):
    service = SubmissionService(ctx)
    results = await asyncio.gather(
        *(service.submit(make_submission("u1", title=f"Item {i}")) for i in range(5)),
        return_exceptions=True,
    )

    accepted = [r for r in results if not isinstance(r, Exception)]
    refused = [r for r in results if isinstance(r, DuplicateSubmissionError)]
    assert len(accepted) == 1
    assert len(refused) == 4
    assert len(ctx.owner_locks) == 0


@pytest.mark.asyncio
async def test_owner_can_submit_again_after_rejection(ctx, operator):
    service = SubmissionService(ctx)
    first = await service.submit(make_submission("u1"))
    await ModerationWorkflow(ctx).reject(operator, first.id)

    second = await service.submit(make_submission("u1", title="Second try"))
    assert second.id != first.id


@pytest.mark.asyncio
async def test_oversized_photo_is_rejected_without_store_mutation(ctx):
    big = "data:image/jpeg;base64," + "A" * 2048

    with pytest.raises(ValidationError):
        await SubmissionService(ctx).submit(make_submission("u1", photo=big))
    assert await _count_listings(ctx) == 0


@pytest.mark.asyncio
async def test_blank_title_is_rejected(ctx):
    with pytest.raises(ValidationError):
        await SubmissionService(ctx).submit(make_submission("u1", title="   "))


@pytest.mark.asyncio
async def test_valid_promo_code_makes_listing_premium(ctx, promo_code):
    listing = await SubmissionService(ctx).submit(make_submission("u1", promoCode=promo_code))
    assert listing.is_premium is True

    async with transaction(ctx.sessions) as db:
        row = await db.get(PromoCode, promo_code)
    assert row.used is True
    assert row.used_by_listing_id == listing.id


@pytest.mark.asyncio
async def test_unknown_promo_code_aborts_submission(ctx):
    with pytest.raises(RedemptionError):
        await SubmissionService(ctx).submit(make_submission("u1", promoCode="PREMIUM_NOPE0000"))
    assert await _count_listings(ctx) == 0


@pytest.mark.asyncio
async def test_promo_code_is_not_burned_when_insert_fails(ctx, promo_code):
    service = SubmissionService(ctx)
    await service.submit(make_submission("u1", id="ad-fixed"))

    # id clash after redemption: the whole submission rolls back, code included
    with pytest.raises(ValidationError):
        await service.submit(make_submission("u2", id="ad-fixed", promoCode=promo_code))

    async with transaction(ctx.sessions) as db:
        row = await db.get(PromoCode, promo_code)
    assert row.used is False


@pytest.mark.asyncio
async def test_storage_failure_rolls_back_and_keeps_promo_code(ctx, promo_code, monkeypatch):
    async def failing_insert(db, listing):
        raise OperationalError("INSERT INTO listings", {}, Exception("disk I/O error"))

    monkeypatch.setattr(submissions, "insert_listing", failing_insert)
    service = SubmissionService(ctx)

    with pytest.raises(StorageError) as exc:
        await service.submit(make_submission("u1", promoCode=promo_code))
    assert exc.value.message == StorageError.default_message

    assert await _count_listings(ctx) == 0
    async with transaction(ctx.sessions) as db:
        row = await db.get(PromoCode, promo_code)
    assert row.used is False

    monkeypatch.undo()
    listing = await service.submit(make_submission("u1", promoCode=promo_code))
    assert listing.is_premium is True


@pytest.mark.asyncio
async def test_promo_code_redeemed_once_under_concurrency(ctx, promo_code):
    service = SubmissionService(ctx)
    results = await asyncio.gather(
        service.submit(make_submission("u1", promoCode=promo_code)),
        service.submit(make_submission("u2", promoCode=promo_code)),
        return_exceptions=True,
    )

    winners = [r for r in results if isinstance(r, Listing)]
    losers = [r for r in results if isinstance(r, RedemptionError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert winners[0].is_premium is True
    assert await _count_listings(ctx) == 1


@pytest.mark.asyncio
async def test_pending_notice_goes_to_operators_only(ctx, viewer):
    async def _noop(frame):
        return None

    op_conn = Connection(_noop)
    op_conn.operator_token = ctx.operators.issue("test-secret")
    ctx.broadcaster.attach(op_conn)

    listing = await SubmissionService(ctx).submit(make_submission("u1"))

    assert viewer.drain() == []
    assert op_conn.drain() == [{"event": "pending-ad", "data": {"id": listing.id, "title": listing.title}}]


@pytest.mark.asyncio
async def test_owner_deletes_own_approved_listing(ctx, approved_listing, viewer):
    viewer.drain()

    await SubmissionService(ctx).delete_own(approved_listing.id, "owner-approved")

    assert viewer.drain() == [{"event": "delete-ad", "data": approved_listing.id}]
    assert await _count_listings(ctx) == 0


@pytest.mark.asyncio
async def test_owner_delete_rules(ctx, operator, approved_listing, pending_listing, viewer):
    service = SubmissionService(ctx)
    viewer.drain()

    with pytest.raises(AuthorizationError):
        await service.delete_own(approved_listing.id, "someone-else")

    with pytest.raises(NotFoundError):
        await service.delete_own(pending_listing.id, "owner-pending")

    await ModerationWorkflow(ctx).promote(operator, approved_listing.id)
    viewer.drain()
    with pytest.raises(AuthorizationError):
        await service.delete_own(approved_listing.id, "owner-approved")

    assert viewer.drain() == []
    assert await _count_listings(ctx) == 2


@pytest.mark.asyncio
async def test_owner_delete_twice_is_not_found(ctx, approved_listing, viewer):
    service = SubmissionService(ctx)
    await service.delete_own(approved_listing.id, "owner-approved")
    viewer.drain()

    with pytest.raises(NotFoundError):
        await service.delete_own(approved_listing.id, "owner-approved")
    assert viewer.drain() == []
