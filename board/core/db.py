from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from board.core.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    kwargs: dict = {"future": True}
    if settings.database_url.startswith("sqlite"):
        # aiosqlite runs each connection on its own thread; writers wait on the busy timeout
        kwargs["connect_args"] = {"timeout": 30}
    else:
        kwargs["pool_pre_ping"] = True
    return create_async_engine(settings.database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
