from datetime import datetime

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from board.models.base import Base


class PermanentListing(Base):
    """Snapshot of a listing taken when it was promoted; membership exempts it from expiry."""

    __tablename__ = "permanent_listings"

    listing_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    photo: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(60), nullable=True)
    owner_id: Mapped[str] = mapped_column(String(120), nullable=False)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    listing_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    promoted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
