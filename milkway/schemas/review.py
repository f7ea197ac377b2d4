import uuid
from datetime import datetime

from pydantic import Field, field_validator

from milkway.schemas.common import ApiModel, PageInfo
from milkway.schemas.user import UserSummary


class Aspects(ApiModel):
    quality: int | None = Field(default=None, ge=1, le=5)
    service: int | None = Field(default=None, ge=1, le=5)
    value: int | None = Field(default=None, ge=1, le=5)
    cleanliness: int | None = Field(default=None, ge=1, le=5)


class ReviewCreate(ApiModel):
    farm: uuid.UUID
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=500)
    aspects: Aspects | None = None

    @field_validator("comment", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class ReviewUpdate(ApiModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = Field(default=None, max_length=500)
    aspects: Aspects | None = None

    @field_validator("comment", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class HelpfulRequest(ApiModel):
    is_helpful: bool = True


class OwnerResponseRequest(ApiModel):
    text: str = Field(default="", max_length=1000)

    @field_validator("text", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class ReviewFarm(ApiModel):
    id: uuid.UUID
    name: str


class OwnerResponseOut(ApiModel):
    text: str
    responder: UserSummary | None
    responded_at: datetime | None


class ReviewOut(ApiModel):
    id: uuid.UUID
    buyer: UserSummary
    farm: ReviewFarm
    rating: int
    comment: str | None
    aspects: Aspects
    overall_rating: float
    helpful_count: int
    is_verified: bool
    response: OwnerResponseOut | None
    created_at: datetime
    updated_at: datetime | None


class ReviewStatistics(ApiModel):
    average_rating: float
    total_reviews: int
    rating_distribution: dict[int, int]


class ReviewPagination(PageInfo):
    total_reviews: int


class ReviewListResponse(ApiModel):
    reviews: list[ReviewOut]
    pagination: ReviewPagination
    statistics: ReviewStatistics | None = None


class ReviewMutationResponse(ApiModel):
    message: str
    review: ReviewOut


class HelpfulResponse(ApiModel):
    message: str
    helpful_count: int
