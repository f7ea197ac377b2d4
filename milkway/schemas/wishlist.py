import uuid
from datetime import datetime

from pydantic import Field

from milkway.schemas.common import ApiModel
from milkway.schemas.farm import FarmOut


class WishlistAdd(ApiModel):
    farm_id: uuid.UUID
    notes: str = Field(default="", max_length=200)


class NotesUpdate(ApiModel):
    notes: str = Field(default="", max_length=200)


class WishlistItemOut(ApiModel):
    farm: FarmOut
    added_at: datetime
    notes: str


class WishlistOut(ApiModel):
    id: uuid.UUID
    buyer_id: uuid.UUID
    farms: list[WishlistItemOut]
    total_farms: int
    created_at: datetime
    updated_at: datetime | None


class WishlistResponse(ApiModel):
    wishlist: WishlistOut


class WishlistMutationResponse(ApiModel):
    message: str
    wishlist: WishlistOut


class WishlistCheck(ApiModel):
    is_in_wishlist: bool
    farm_id: uuid.UUID


class WishlistStats(ApiModel):
    total_farms: int
    recently_added: int
    average_rating: float
