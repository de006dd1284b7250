from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from board.core.config import Settings
from board.core.db import build_engine, build_session_factory
from board.core.locks import KeyedLock
from board.core.security import OperatorTokens
from board.services.broadcaster import Broadcaster
from board.services.expiry import ExpiryScheduler


@dataclass
class AppContext:
    """Process-wide state shared by every component."""

    settings: Settings
    engine: AsyncEngine
    sessions: async_sessionmaker[AsyncSession]
    broadcaster: Broadcaster
    operators: OperatorTokens
    # single writer: visible-state mutations commit and publish under this lock
    write_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    owner_locks: KeyedLock = field(default_factory=KeyedLock)
    scheduler: ExpiryScheduler | None = None


def build_context(settings: Settings, engine: AsyncEngine | None = None) -> AppContext:
    engine = engine or build_engine(settings)
    ctx = AppContext(
        settings=settings,
        engine=engine,
        sessions=build_session_factory(engine),
        broadcaster=Broadcaster(),
        operators=OperatorTokens(settings.admin_secret),
    )
    ctx.scheduler = ExpiryScheduler(ctx)
    return ctx
