import uuid
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from milkway.models.farm import Availability, FarmFeature
from milkway.schemas.common import ApiModel, GeoPoint, PageInfo


class FarmLocationIn(ApiModel):
    address: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    country: str = Field(default="India", max_length=100)
    pincode: str | None = Field(default=None, max_length=20)
    coordinates: GeoPoint = GeoPoint()

    @field_validator("address", "city", "state", "country", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class ContactIn(ApiModel):
    phone: str = Field(min_length=1, max_length=30)
    whatsapp: str | None = Field(default=None, max_length=30)
    email: EmailStr | None = None

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, value):
        # The web form sends "" for an untouched email input
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value


class CapacityIn(ApiModel):
    daily_production: float | None = Field(default=None, ge=1)
    available_quantity: float | None = Field(default=None, ge=0)


class FarmCreate(ApiModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    price: float = Field(ge=1, le=1000)
    location: FarmLocationIn
    contact: ContactIn
    availability: list[Availability] = Field(min_length=1)
    features: list[FarmFeature] = []
    capacity: CapacityIn | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class FarmUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    price: float | None = Field(default=None, ge=1, le=1000)
    location: FarmLocationIn | None = None
    contact: ContactIn | None = None
    availability: list[Availability] | None = Field(default=None, min_length=1)
    features: list[FarmFeature] | None = None
    capacity: CapacityIn | None = None
    is_active: bool | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class FarmLocationOut(ApiModel):
    address: str
    city: str
    state: str
    country: str
    pincode: str | None
    coordinates: GeoPoint


class ContactOut(ApiModel):
    phone: str
    whatsapp: str | None
    email: str | None


class CapacityOut(ApiModel):
    daily_production: float | None
    available_quantity: float | None


class RatingSummary(ApiModel):
    average: float
    count: int


class FarmImageOut(ApiModel):
    id: uuid.UUID
    url: str
    alt: str
    is_primary: bool


class FarmOwner(ApiModel):
    id: uuid.UUID
    name: str
    email: str
    phone: str | None = None


class FarmOut(ApiModel):
    id: uuid.UUID
    name: str
    description: str | None
    owner: FarmOwner
    location: FarmLocationOut
    images: list[FarmImageOut]
    primary_image: str | None
    availability: list[Availability]
    price: float
    contact: ContactOut
    features: list[FarmFeature]
    capacity: CapacityOut
    ratings: RatingSummary
    is_verified: bool
    is_active: bool
    featured: bool
    views: int
    created_at: datetime
    updated_at: datetime | None
    can_edit: bool = False
    distance_km: float | None = None


class FarmPagination(PageInfo):
    total_farms: int


class FarmListResponse(ApiModel):
    farms: list[FarmOut]
    pagination: FarmPagination


class FarmCollectionResponse(ApiModel):
    farms: list[FarmOut]
    total: int


class FarmMutationResponse(ApiModel):
    message: str
    farm: FarmOut
