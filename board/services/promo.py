from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from board.core.clock import utcnow
from board.core.errors import RedemptionError
from board.core.ids import gen_promo_code
from board.models.promo_code import PromoCode

log = logging.getLogger(__name__)

MAX_GENERATE_ATTEMPTS = 5


@dataclass(frozen=True)
class PremiumGrant:
    code: str
    listing_id: str
    granted_at: datetime


async def redeem_promo_code(db: AsyncSession, code: str, *, listing_id: str) -> PremiumGrant:
    # Single conditional UPDATE: of any number of concurrent redeemers exactly one sees rowcount == 1.
    now = utcnow()
    result = await db.execute(
        update(PromoCode)
        .where(PromoCode.code == code.strip(), PromoCode.used.is_(False))
        .values(used=True, used_at=now, used_by_listing_id=listing_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise RedemptionError()
    return PremiumGrant(code=code.strip(), listing_id=listing_id, granted_at=now)


async def create_promo_code(db: AsyncSession, *, prefix: str = "PREMIUM_") -> PromoCode:
    for _ in range(MAX_GENERATE_ATTEMPTS):
        code = gen_promo_code(prefix)
        if await db.get(PromoCode, code) is not None:
            log.warning("promo code collision, regenerating")
            continue
        row = PromoCode(code=code, used=False)
        db.add(row)
        await db.flush()
        return row
    raise RuntimeError("could not generate a unique promo code")
