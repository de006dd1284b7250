from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from board.core.ids import gen_id
from board.models.base import AuditMixin, Base

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
ACTIVE_STATUSES = (STATUS_PENDING, STATUS_APPROVED)


class Listing(AuditMixin, Base):
    __tablename__ = "listings"
    __table_args__ = (
        Index("ix_listings_owner_status", "owner_id", "status"),
        Index("ix_listings_status_premium_created", "status", "is_premium", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: gen_id("ad"))

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # encoded image (data URL or base64), size-checked on submission
    photo: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(60), nullable=True)

    # opaque, client-supplied
    owner_id: Mapped[str] = mapped_column(String(120), nullable=False)

    # "pending" | "approved"; rejected/deleted rows are removed
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_PENDING)

    # fixed at submission, only via a promo code
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
