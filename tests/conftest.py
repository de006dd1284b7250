import os

import httpx
import pytest

from board.core.config import Settings
from board.core.context import build_context
from board.main import create_app
from board.models import Base
from board.services.broadcaster import Connection
from board.services.moderation import authorize_operator

from fixtures_seed import approved_listing, pending_listing, promo_code  # noqa: F401

ADMIN_SECRET = "test-secret"


def _test_db_url(tmp_path) -> str:
    return os.getenv("DATABASE_URL_TEST") or f"sqlite+aiosqlite:///{tmp_path / 'board.db'}"


async def _discard(frame: dict) -> None:
    return None


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=_test_db_url(tmp_path),
        admin_secret=ADMIN_SECRET,
        expiry_interval_seconds=3600,
        expiry_poll_seconds=3600,
        visible_limit=100,
        max_photo_bytes=1024,
    )


@pytest.fixture
async def ctx(settings):
    c = build_context(settings)
    try:
        # Fresh schema per test
        async with c.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield c
    finally:
        await c.engine.dispose()


@pytest.fixture
def operator(ctx):
    return authorize_operator(ctx, secret=ADMIN_SECRET)


@pytest.fixture
def viewer(ctx) -> Connection:
    """A connected session whose frames stay queued so tests can drain them."""
    conn = Connection(_discard)
    ctx.broadcaster.attach(conn)
    return conn


@pytest.fixture
async def client(ctx, settings):
    """
    HTTP client against an app that shares the test context.
    ASGITransport skips the lifespan, so the context is installed directly.
    """
    app = create_app(settings)
    app.state.ctx = ctx

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
