# Import all models so Alembic autogenerate and SQLAlchemy can see them
from milkway.models.common import RecordStatus  # noqa: F401
from milkway.models.user import User, UserRole  # noqa: F401
from milkway.models.farm import (  # noqa: F401
    Availability,
    Farm,
    FarmAvailabilitySlot,
    FarmFeature,
    FarmFeatureTag,
    FarmImage,
)
from milkway.models.review import Review, ReviewVote  # noqa: F401
from milkway.models.wishlist import Wishlist, WishlistItem  # noqa: F401

__all__ = [
    "RecordStatus",
    "User",
    "UserRole",
    "Availability",
    "Farm",
    "FarmAvailabilitySlot",
    "FarmFeature",
    "FarmFeatureTag",
    "FarmImage",
    "Review",
    "ReviewVote",
    "Wishlist",
    "WishlistItem",
]
