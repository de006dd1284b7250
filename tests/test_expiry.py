import asyncio
from datetime import timedelta

import pytest

from board.services.moderation import ModerationWorkflow
from board.services.store import get_listing, transaction
from board.services.submissions import SubmissionService
from board.services.visibility import load_visible

from fixtures_seed import make_submission


async def _approve(ctx, operator, owner_id: str, **kw):
    listing = await SubmissionService(ctx).submit(make_submission(owner_id, **kw))
    await ModerationWorkflow(ctx).approve(operator, listing.id)
    return listing


@pytest.mark.asyncio
async def test_tick_before_next_reset_does_nothing(ctx, operator, viewer):
    await _approve(ctx, operator, "u1")
    viewer.drain()

    before = ctx.scheduler.next_reset
    assert await ctx.scheduler.tick(now=before - timedelta(seconds=1)) is False
    assert ctx.scheduler.next_reset == before
    assert viewer.drain() == []


@pytest.mark.asyncio
async def test_expiry_leaves_exactly_the_permanent_set(ctx, operator, viewer):
    workflow = ModerationWorkflow(ctx)
    keep = await _approve(ctx, operator, "u1", title="Keep")
    drop = await _approve(ctx, operator, "u2", title="Drop")
    queued = await SubmissionService(ctx).submit(make_submission("u3", title="Queued"))
    await workflow.promote(operator, keep.id)
    viewer.drain()

    due = ctx.scheduler.next_reset
    assert await ctx.scheduler.tick(now=due) is True

    frames = viewer.drain()
    assert len(frames) == 1
    assert frames[0]["event"] == "reset"
    assert [ad["id"] for ad in frames[0]["data"]["ads"]] == [keep.id]
    assert frames[0]["data"]["nextReset"] == ctx.scheduler.next_reset_ms
    assert ctx.scheduler.next_reset == due + timedelta(seconds=3600)

    async with transaction(ctx.sessions) as db:
        visible = await load_visible(db)
        assert [v.id for v in visible] == [keep.id]
        assert await get_listing(db, drop.id) is None
        # pending listings are not part of the expiry cycle
        assert await get_listing(db, queued.id) is not None


@pytest.mark.asyncio
async def test_second_tick_at_same_instant_is_a_no_op(ctx, operator, viewer):
    await _approve(ctx, operator, "u1")
    due = ctx.scheduler.next_reset

    assert await ctx.scheduler.tick(now=due) is True
    viewer.drain()
    assert await ctx.scheduler.tick(now=due) is False
    assert viewer.drain() == []


@pytest.mark.asyncio
async def test_late_tick_skips_missed_cycles(ctx):
    due = ctx.scheduler.next_reset
    assert await ctx.scheduler.tick(now=due + timedelta(hours=5, minutes=30)) is True
    assert ctx.scheduler.next_reset == due + timedelta(hours=6)


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped(ctx, viewer):
    due = ctx.scheduler.next_reset

    async with ctx.write_lock:
        first = asyncio.create_task(ctx.scheduler.tick(now=due))
        await asyncio.sleep(0)
        # first tick is parked on the write lock
        assert await ctx.scheduler.tick(now=due) is False

    assert await first is True
    assert [f["event"] for f in viewer.drain()] == ["reset"]


@pytest.mark.asyncio
async def test_run_loop_survives_tick_failures(ctx, monkeypatch):
    calls = []

    async def broken_tick(now=None):
        calls.append(now)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return False

    monkeypatch.setattr(ctx.scheduler, "tick", broken_tick)
    ctx.settings.expiry_poll_seconds = 0

    ctx.scheduler.start()
    for _ in range(20):
        await asyncio.sleep(0)
        if len(calls) >= 2:
            break
    await ctx.scheduler.stop()

    assert len(calls) >= 2
