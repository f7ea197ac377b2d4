"""Profile updates, preferences, avatars, per-role account statistics and deactivation."""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from milkway.models.common import RecordStatus, round_rating, utcnow
from milkway.models.farm import Farm
from milkway.models.review import Review
from milkway.models.user import User, UserRole, default_preferences
from milkway.models.wishlist import Wishlist, WishlistItem
from milkway.schemas.user import PreferencesUpdate, ProfileUpdate, UserPrivate
from milkway.services import storage_service

logger = logging.getLogger(__name__)


class NoAvatarError(Exception):
    pass


def present_user(user: User, *, base_url: str) -> UserPrivate:
    view = UserPrivate.model_validate(user)
    view.avatar = storage_service.absolute_url(user.avatar, base_url, storage_service.AVATARS)
    return view


def _merged_preferences(current: dict | None, update: dict) -> dict:
    merged = default_preferences()
    for source in (current or {}, update):
        for section, values in source.items():
            merged.setdefault(section, {}).update(values or {})
    return merged


def apply_profile_update(user: User, body: ProfileUpdate) -> None:
    if body.name is not None:
        user.name = body.name
    if "phone" in body.model_fields_set:
        user.phone = body.phone or None
    if body.location is not None:
        location = body.location
        for field in ("address", "city", "state", "country"):
            if field in location.model_fields_set:
                setattr(user, field, getattr(location, field))
        if location.coordinates is not None:
            user.latitude = location.coordinates.lat
            user.longitude = location.coordinates.lng
    if body.preferences is not None:
        user.preferences = _merged_preferences(
            user.preferences, body.preferences.model_dump(by_alias=True)
        )


def update_preferences(user: User, body: PreferencesUpdate) -> dict:
    # a fresh dict so the JSON column registers the change
    user.preferences = _merged_preferences(
        user.preferences, body.model_dump(by_alias=True, exclude_none=True)
    )
    return user.preferences


def replace_avatar(user: User, reference: str) -> str | None:
    """Point the user at a new avatar and return the reference it replaced."""
    previous = user.avatar
    user.avatar = reference
    return previous


def remove_avatar(user: User) -> None:
    if not user.avatar:
        raise NoAvatarError("No avatar to delete")
    storage_service.delete_reference(user.avatar, storage_service.AVATARS)
    user.avatar = None


def _account_age_days(user: User) -> int:
    created = user.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (datetime.now(tz=timezone.utc) - created).days


async def _farmer_stats(db: AsyncSession, owner_id: uuid.UUID) -> dict:
    farms = (
        await db.execute(
            select(Farm.status, Farm.views, Farm.rating_average).where(
                Farm.owner_id == owner_id, Farm.status != RecordStatus.DELETED
            )
        )
    ).all()
    return {
        "total_farms": len(farms),
        "active_farms": sum(1 for farm in farms if farm.status == RecordStatus.ACTIVE),
        "total_views": sum(farm.views for farm in farms),
        "average_rating": round_rating(sum(farm.rating_average for farm in farms), len(farms)),
    }


async def _buyer_stats(db: AsyncSession, buyer_id: uuid.UUID) -> dict:
    count, total = (
        await db.execute(
            select(func.count(Review.id), func.sum(Review.rating)).where(
                Review.buyer_id == buyer_id, Review.status == RecordStatus.ACTIVE
            )
        )
    ).one()
    wishlist_items = await db.scalar(
        select(func.count(WishlistItem.id))
        .join(Wishlist, WishlistItem.wishlist_id == Wishlist.id)
        .where(Wishlist.buyer_id == buyer_id)
    )
    return {
        "total_reviews": count,
        "average_rating_given": round_rating(total or 0, count),
        "wishlist_items": wishlist_items or 0,
    }


async def user_stats(db: AsyncSession, user: User) -> dict:
    stats = {
        "account_age": _account_age_days(user),
        "last_login": user.last_login,
        "is_verified": user.is_verified,
    }
    if user.role == UserRole.FARMER:
        stats.update(await _farmer_stats(db, user.id))
    else:
        stats.update(await _buyer_stats(db, user.id))
    return stats


def deactivate(user: User, reason: str | None) -> None:
    user.status = RecordStatus.INACTIVE
    user.deactivated_at = utcnow()
    user.deactivation_reason = reason
    logger.info("User %s deactivated", user.id)
