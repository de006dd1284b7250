from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from board.schemas.listing import ListingOut


class OperatorCommand(BaseModel):
    secret: str | None = None
    listing_id: str | None = Field(default=None, validation_alias=AliasChoices("listingId", "adId", "listing_id"))
    # accepted for older clients; premium is fixed at submission
    premium: bool = False


class PromoCodeOut(BaseModel):
    code: str


class ModerationView(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    pending: list[ListingOut]
    visible: list[ListingOut]
    next_reset: int
