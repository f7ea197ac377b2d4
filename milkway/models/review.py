import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from milkway.database import Base
from milkway.models.common import RecordStatus, round_rating, utcnow

ASPECTS = ("quality", "service", "value", "cleanliness")


class Review(Base):
    __tablename__ = "reviews"
    # One review per buyer per farm
    __table_args__ = (UniqueConstraint("buyer_id", "farm_id", name="uq_reviews_buyer_farm"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    buyer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    farm_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("farms.id"), nullable=False, index=True)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(String(500), nullable=True)

    aspect_quality: Mapped[int | None] = mapped_column(Integer, nullable=True)
    aspect_service: Mapped[int | None] = mapped_column(Integer, nullable=True)
    aspect_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    aspect_cleanliness: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Farm owner's reply; the only field the owner may write
    response_text: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    responder_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[RecordStatus] = mapped_column(
        SQLEnum(RecordStatus, name="record_status_enum"),
        default=RecordStatus.ACTIVE,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow, nullable=True
    )

    buyer: Mapped["User"] = relationship(
        "User", back_populates="reviews", foreign_keys=[buyer_id], lazy="selectin"
    )
    responder: Mapped["User"] = relationship("User", foreign_keys=[responder_id], lazy="selectin")
    farm: Mapped["Farm"] = relationship("Farm", back_populates="reviews", lazy="selectin")
    votes: Mapped[list["ReviewVote"]] = relationship(
        "ReviewVote", back_populates="review", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    @property
    def aspects(self) -> dict[str, int | None]:
        return {name: getattr(self, f"aspect_{name}") for name in ASPECTS}

    @aspects.setter
    def aspects(self, values: dict[str, int | None] | None) -> None:
        values = values or {}
        for name in ASPECTS:
            setattr(self, f"aspect_{name}", values.get(name))

    @property
    def overall_rating(self) -> float:
        """Mean of the aspect ratings that were given, else the headline rating."""
        given = [value for value in self.aspects.values() if value]
        if not given:
            return float(self.rating)
        return round_rating(sum(given), len(given))

    @property
    def response(self) -> dict | None:
        if not self.response_text:
            return None
        return {
            "text": self.response_text,
            "responder": self.responder,
            "responded_at": self.responded_at,
        }

    @property
    def helpful_count(self) -> int:
        return sum(1 for vote in self.votes if vote.is_helpful)


class ReviewVote(Base):
    __tablename__ = "review_votes"
    __table_args__ = (UniqueConstraint("review_id", "user_id", name="uq_review_votes_review_user"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    review_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_helpful: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    review: Mapped["Review"] = relationship("Review", back_populates="votes")
