"""
Buyer wishlists: one per buyer, created lazily on first access, holding at
most one entry per farm. Entries whose farm is no longer active are pruned
whenever the full wishlist is read.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from milkway.models.common import round_rating
from milkway.models.farm import Farm
from milkway.models.wishlist import Wishlist, WishlistItem
from milkway.schemas.wishlist import WishlistOut
from milkway.services import discovery_service

logger = logging.getLogger(__name__)

RECENT_DAYS = 7


class FarmUnavailableError(Exception):
    pass


class AlreadyInWishlistError(Exception):
    pass


class NotInWishlistError(Exception):
    pass


async def _load(db: AsyncSession, buyer_id: uuid.UUID) -> Wishlist | None:
    return (
        await db.execute(select(Wishlist).where(Wishlist.buyer_id == buyer_id))
    ).scalar_one_or_none()


async def find_or_create(db: AsyncSession, buyer_id: uuid.UUID) -> Wishlist:
    wishlist = await _load(db, buyer_id)
    if wishlist is not None:
        return wishlist

    wishlist = Wishlist(buyer_id=buyer_id, items=[])
    db.add(wishlist)
    await db.flush()
    logger.info("Created wishlist for buyer %s", buyer_id)
    return wishlist


def _farm_is_listed(farm: Farm | None) -> bool:
    return farm is not None and farm.is_active


async def active_items(db: AsyncSession, wishlist: Wishlist) -> list[WishlistItem]:
    """Drop entries whose farm was deactivated or deleted and return the rest."""
    stale = [item for item in wishlist.items if not _farm_is_listed(item.farm)]
    for item in stale:
        wishlist.items.remove(item)
    if stale:
        await db.flush()
        logger.info("Pruned %d unavailable farm(s) from wishlist %s", len(stale), wishlist.id)
    return list(wishlist.items)


async def add_farm(
    db: AsyncSession, buyer_id: uuid.UUID, farm_id: uuid.UUID, notes: str = ""
) -> Wishlist:
    farm = await discovery_service.get_farm(db, farm_id)
    if not _farm_is_listed(farm):
        raise FarmUnavailableError("Farm not found or not available")

    wishlist = await find_or_create(db, buyer_id)
    if wishlist.has_farm(farm_id):
        raise AlreadyInWishlistError("Farm is already in your wishlist")

    wishlist.items.append(WishlistItem(farm_id=farm.id, farm=farm, notes=notes))
    await db.flush()
    return wishlist


async def remove_farm(db: AsyncSession, buyer_id: uuid.UUID, farm_id: uuid.UUID) -> None:
    wishlist = await find_or_create(db, buyer_id)
    item = wishlist.find_item(farm_id)
    if item is None:
        raise NotInWishlistError("Farm not found in wishlist")
    wishlist.items.remove(item)
    await db.flush()


async def update_notes(
    db: AsyncSession, buyer_id: uuid.UUID, farm_id: uuid.UUID, notes: str
) -> None:
    wishlist = await find_or_create(db, buyer_id)
    item = wishlist.find_item(farm_id)
    if item is None:
        raise NotInWishlistError("Farm not found in wishlist")
    item.notes = notes
    await db.flush()


async def contains(db: AsyncSession, buyer_id: uuid.UUID, farm_id: uuid.UUID) -> bool:
    stmt = select(
        exists()
        .where(WishlistItem.wishlist_id == Wishlist.id)
        .where(Wishlist.buyer_id == buyer_id, WishlistItem.farm_id == farm_id)
    )
    return bool(await db.scalar(stmt))


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


async def stats(db: AsyncSession, buyer_id: uuid.UUID) -> dict:
    wishlist = await _load(db, buyer_id)
    if wishlist is None:
        return {"total_farms": 0, "recently_added": 0, "average_rating": 0.0}

    items = [item for item in wishlist.items if _farm_is_listed(item.farm)]
    cutoff = datetime.now(tz=timezone.utc) - timedelta(days=RECENT_DAYS)
    recently_added = sum(1 for item in items if _as_utc(item.added_at) >= cutoff)

    total = sum(item.farm.rating_average for item in items)
    average = round_rating(total, len(items))

    return {
        "total_farms": len(items),
        "recently_added": recently_added,
        "average_rating": average,
    }


def present_wishlist(
    wishlist: Wishlist,
    items: list[WishlistItem],
    *,
    base_url: str,
    viewer_id: uuid.UUID | None,
) -> WishlistOut:
    return WishlistOut.model_validate(
        {
            "id": wishlist.id,
            "buyer_id": wishlist.buyer_id,
            "farms": [
                {
                    "farm": discovery_service.present_farm(
                        item.farm, base_url=base_url, viewer_id=viewer_id
                    ),
                    "added_at": item.added_at,
                    "notes": item.notes,
                }
                for item in items
            ],
            "total_farms": len(items),
            "created_at": wishlist.created_at,
            "updated_at": wishlist.updated_at,
        }
    )
