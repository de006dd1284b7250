from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from board.schemas.listing import ListingOut

# server -> client
INITIAL_ADS = "initial-ads"
NEW_AD = "new-ad"
DELETE_AD = "delete-ad"
RESET = "reset"
PENDING_AD = "pending-ad"
ACK = "ack"
ERROR = "error"

# client -> server
SUBMIT = "new-ad"
DELETE_OWN = "delete-ad"
OPERATOR_LOGIN = "operator-login"
GET_PENDING = "get-pending"
GET_ALL = "get-all"
APPROVE = "approve-ad"
REJECT = "reject-ad"
DELETE_ANY = "delete-any"
PROMOTE = "promote-ad"
REVOKE_PERMANENT = "revoke-permanent"
CREATE_PROMO = "create-promo"


class Frame(BaseModel):
    event: str
    data: Any = None
    ref: str | None = None


class VisibleState(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ads: list[ListingOut]
    # epoch milliseconds
    next_reset: int


class PendingNotice(BaseModel):
    id: str
    title: str
