import pytest_asyncio

from board.schemas.listing import ListingSubmit
from board.services.moderation import ModerationWorkflow
from board.services.promo import create_promo_code
from board.services.store import transaction
from board.services.submissions import SubmissionService


def make_submission(owner_id: str = "u1", **overrides) -> ListingSubmit:
    data = {
        "title": "Bike for sale",
        "description": "Barely used, pick up downtown",
        "photo": "data:image/png;base64,iVBORw0KGgo=",
        "category": "sport",
        "ownerId": owner_id,
    }
    data.update(overrides)
    return ListingSubmit.model_validate(data)


@pytest_asyncio.fixture
async def pending_listing(ctx):
    return await SubmissionService(ctx).submit(make_submission("owner-pending"))


@pytest_asyncio.fixture
async def approved_listing(ctx, operator):
    listing = await SubmissionService(ctx).submit(make_submission("owner-approved"))
    await ModerationWorkflow(ctx).approve(operator, listing.id)
    return listing


@pytest_asyncio.fixture
async def promo_code(ctx) -> str:
    async with transaction(ctx.sessions) as db:
        row = await create_promo_code(db, prefix=ctx.settings.promo_code_prefix)
        return row.code
