import uuid
from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from milkway.models.user import UserRole
from milkway.schemas.common import ApiModel


class UserRegister(ApiModel):
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)
    role: UserRole

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return value.strip().lower()


class UserLogin(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return value.strip().lower()


class Coordinates(ApiModel):
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)


class UserLocation(ApiModel):
    address: str | None = Field(default=None, min_length=5, max_length=200)
    city: str | None = Field(default=None, min_length=2, max_length=50)
    state: str | None = Field(default=None, min_length=2, max_length=50)
    country: str | None = Field(default=None, max_length=50)
    coordinates: Coordinates | None = None


class UserLocationOut(ApiModel):
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    coordinates: Coordinates | None = None


class NotificationPreferences(ApiModel):
    email: bool = True
    push: bool = True


class PrivacyPreferences(ApiModel):
    show_phone: bool = True
    show_location: bool = True


class Preferences(ApiModel):
    notifications: NotificationPreferences = NotificationPreferences()
    privacy: PrivacyPreferences = PrivacyPreferences()


class PreferencesUpdate(ApiModel):
    notifications: NotificationPreferences | None = None
    privacy: PrivacyPreferences | None = None


class ProfileUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=2, max_length=50)
    phone: str | None = Field(default=None, pattern=r"^\+?[0-9][0-9\s-]{6,19}$")
    location: UserLocation | None = None
    preferences: Preferences | None = None

    @field_validator("name", "phone", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class UserSummary(ApiModel):
    id: uuid.UUID
    name: str


class UserPrivate(ApiModel):
    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    avatar: str | None
    phone: str | None
    location: UserLocationOut
    preferences: Preferences
    is_verified: bool
    is_active: bool
    last_login: datetime | None
    created_at: datetime
    updated_at: datetime | None


class AuthResponse(ApiModel):
    message: str
    token: str
    user: UserPrivate


class TokenRefreshResponse(ApiModel):
    message: str
    token: str


class ProfileUpdateResponse(ApiModel):
    message: str
    user: UserPrivate


class PreferencesResponse(ApiModel):
    message: str
    preferences: Preferences


class DeactivateRequest(ApiModel):
    reason: str | None = Field(default=None, max_length=500)


class UserStats(ApiModel):
    account_age: int
    last_login: datetime | None
    is_verified: bool

    # farmer
    total_farms: int | None = None
    active_farms: int | None = None
    total_views: int | None = None
    average_rating: float | None = None

    # buyer
    total_reviews: int | None = None
    average_rating_given: float | None = None
    wishlist_items: int | None = None
