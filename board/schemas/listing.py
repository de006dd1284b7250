from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ListingSubmit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # client-generated id; the store assigns one when missing
    id: str | None = Field(default=None, max_length=64)
    title: str
    description: str = ""
    photo: str | None = None
    category: str | None = Field(default=None, max_length=60)
    owner_id: str = Field(min_length=1, max_length=120, validation_alias=AliasChoices("ownerId", "userId", "owner_id"))
    promo_code: str | None = Field(default=None, max_length=64, validation_alias=AliasChoices("promoCode", "promo_code"))


class OwnerDelete(BaseModel):
    listing_id: str = Field(validation_alias=AliasChoices("listingId", "adId", "listing_id"))
    owner_id: str = Field(validation_alias=AliasChoices("ownerId", "userId", "owner_id"))


class ListingOut(BaseModel):
    """Viewer-visible shape of a listing; `permanent` is derived from the permanent set."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    description: str
    photo: str | None
    category: str | None
    owner_id: str
    status: str
    is_premium: bool
    permanent: bool
    # epoch milliseconds
    created_at: int


class SubmitResult(BaseModel):
    success: bool
    message: str | None = None
    id: str | None = None
