import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from board.api.v1.router import router as v1_router
from board.core.config import Settings, settings as default_settings
from board.core.context import build_context
from board.core.telemetry import instrument_engine, setup_telemetry
from board.models import Base

log = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=settings.log_level)
        # the engine lives only as long as the running app
        ctx = build_context(settings)
        instrument_engine(ctx.engine, settings)
        if settings.auto_create_schema:
            async with ctx.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        app.state.ctx = ctx
        ctx.scheduler.start()
        log.info("board: ready (env=%s)", settings.env)
        try:
            yield
        finally:
            await ctx.scheduler.stop()
            await ctx.engine.dispose()

    app = FastAPI(title="Board API", version="0.1.0", lifespan=lifespan)
    setup_telemetry(app, settings)
    app.include_router(v1_router)
    return app


app = create_app()
