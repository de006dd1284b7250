from board.models.base import Base  # noqa: F401

from board.models.listing import Listing  # noqa: F401
from board.models.permanent_listing import PermanentListing  # noqa: F401
from board.models.promo_code import PromoCode  # noqa: F401
