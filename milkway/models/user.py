import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum as SQLEnum, Float, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from milkway.database import Base
from milkway.models.common import RecordStatus, utcnow


class UserRole(str, enum.Enum):
    FARMER = "farmer"
    BUYER = "buyer"


def default_preferences() -> dict:
    return {
        "notifications": {"email": True, "push": True},
        "privacy": {"showPhone": True, "showLocation": True},
    }


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Fixed at registration; no endpoint updates it.
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role_enum"), nullable=False, index=True
    )

    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    address: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str | None] = mapped_column(String(50), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    country: Mapped[str | None] = mapped_column(String(50), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    preferences: Mapped[dict] = mapped_column(JSON, default=default_preferences, nullable=False)

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[RecordStatus] = mapped_column(
        SQLEnum(RecordStatus, name="record_status_enum"),
        default=RecordStatus.ACTIVE,
        nullable=False,
    )
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deactivation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow, nullable=True
    )

    farms: Mapped[list["Farm"]] = relationship("Farm", back_populates="owner")
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="buyer", foreign_keys="Review.buyer_id"
    )
    wishlist: Mapped["Wishlist"] = relationship(
        "Wishlist", back_populates="buyer", uselist=False
    )

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    @property
    def location(self) -> dict:
        return {
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "coordinates": {"lat": self.latitude, "lng": self.longitude},
        }
