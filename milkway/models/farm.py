import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from milkway.database import Base
from milkway.models.common import RecordStatus, utcnow


class Availability(str, enum.Enum):
    MORNING = "morning"
    EVENING = "evening"
    BOTH = "both"


class FarmFeature(str, enum.Enum):
    ORGANIC = "organic"
    GRASS_FED = "grass-fed"
    A2_MILK = "a2-milk"
    HOME_DELIVERY = "home-delivery"
    BULK_ORDERS = "bulk-orders"
    PASTEURIZED = "pasteurized"
    RAW_MILK = "raw-milk"
    ECO_FRIENDLY = "eco-friendly"


class Farm(Base):
    __tablename__ = "farms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Set once at creation; updates never touch it.
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    address: Mapped[str] = mapped_column(String(200), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), default="India", nullable=False)
    pincode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    latitude: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    price: Mapped[float] = mapped_column(Float, nullable=False, index=True)

    contact_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    contact_whatsapp: Mapped[str | None] = mapped_column(String(30), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    daily_production: Mapped[float | None] = mapped_column(Float, nullable=True)
    available_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Denormalised from active reviews by rating_service.recompute_farm_rating
    rating_average: Mapped[float] = mapped_column(Float, default=0.0, nullable=False, index=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[RecordStatus] = mapped_column(
        SQLEnum(RecordStatus, name="record_status_enum"),
        default=RecordStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow, nullable=True
    )

    owner: Mapped["User"] = relationship("User", back_populates="farms", lazy="selectin")
    images: Mapped[list["FarmImage"]] = relationship(
        "FarmImage",
        back_populates="farm",
        cascade="all, delete-orphan",
        order_by="FarmImage.position",
        lazy="selectin",
    )
    availability_slots: Mapped[list["FarmAvailabilitySlot"]] = relationship(
        "FarmAvailabilitySlot",
        back_populates="farm",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    feature_tags: Mapped[list["FarmFeatureTag"]] = relationship(
        "FarmFeatureTag",
        back_populates="farm",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    reviews: Mapped[list["Review"]] = relationship("Review", back_populates="farm")

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    @property
    def availability(self) -> list[Availability]:
        return [row.slot for row in self.availability_slots]

    @availability.setter
    def availability(self, slots: list[Availability]) -> None:
        existing = {row.slot: row for row in self.availability_slots}
        self.availability_slots = [
            existing.get(slot) or FarmAvailabilitySlot(slot=slot) for slot in dict.fromkeys(slots)
        ]

    @property
    def features(self) -> list[FarmFeature]:
        return [row.tag for row in self.feature_tags]

    @features.setter
    def features(self, tags: list[FarmFeature]) -> None:
        existing = {row.tag: row for row in self.feature_tags}
        self.feature_tags = [
            existing.get(tag) or FarmFeatureTag(tag=tag) for tag in dict.fromkeys(tags)
        ]

    @property
    def primary_image(self) -> "FarmImage | None":
        for image in self.images:
            if image.is_primary:
                return image
        return self.images[0] if self.images else None


class FarmImage(Base):
    __tablename__ = "farm_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    farm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("farms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    alt: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    farm: Mapped["Farm"] = relationship("Farm", back_populates="images")


class FarmAvailabilitySlot(Base):
    __tablename__ = "farm_availability"

    farm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("farms.id", ondelete="CASCADE"), primary_key=True
    )
    slot: Mapped[Availability] = mapped_column(
        SQLEnum(Availability, name="availability_enum"), primary_key=True
    )

    farm: Mapped["Farm"] = relationship("Farm", back_populates="availability_slots")


class FarmFeatureTag(Base):
    __tablename__ = "farm_features"

    farm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("farms.id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[FarmFeature] = mapped_column(
        SQLEnum(FarmFeature, name="farm_feature_enum"), primary_key=True
    )

    farm: Mapped["Farm"] = relationship("Farm", back_populates="feature_tags")
