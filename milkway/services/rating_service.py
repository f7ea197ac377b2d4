"""
Rating aggregation: keeps ``Farm.rating_average`` / ``Farm.rating_count`` equal
to the aggregate over the farm's active reviews.

Every review create, rating update and delete calls ``recompute_farm_rating``
in the same transaction as the review write. The recompute always starts from
the full set of active reviews, never from the previous aggregate, so no
rounding drift accumulates.

There is no lock around read-all-then-write-one: two concurrent review writes
for the same farm may both recompute and the last commit wins.
"""
import logging
import uuid

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from milkway.models.common import RecordStatus, round_rating
from milkway.models.farm import Farm
from milkway.models.review import Review

logger = logging.getLogger(__name__)


def active_reviews() -> Select:
    """The one place the review visibility predicate lives."""
    return select(Review).where(Review.status == RecordStatus.ACTIVE)


async def recompute_farm_rating(db: AsyncSession, farm_id: uuid.UUID) -> Farm | None:
    """
    Recompute and store a farm's rating summary from its active reviews.
    Returns the farm, or None when it no longer exists (nothing to update).
    Flushes but does not commit; the caller owns the transaction.
    """
    farm = await db.get(Farm, farm_id)
    if farm is None:
        logger.debug("Skipping rating recompute: farm %s no longer exists", farm_id)
        return None

    ratings = (
        await db.execute(
            active_reviews().with_only_columns(Review.rating).where(Review.farm_id == farm_id)
        )
    ).scalars().all()

    farm.rating_count = len(ratings)
    farm.rating_average = round_rating(sum(ratings), len(ratings))
    await db.flush()

    logger.info(
        "Farm %s rating recomputed: average=%s count=%s",
        farm_id,
        farm.rating_average,
        farm.rating_count,
    )
    return farm


async def farm_review_statistics(db: AsyncSession, farm_id: uuid.UUID) -> dict:
    """Average, total and 5..1 star distribution over the farm's active reviews."""
    rows = (
        await db.execute(
            active_reviews()
            .with_only_columns(Review.rating, func.count())
            .where(Review.farm_id == farm_id)
            .group_by(Review.rating)
        )
    ).all()

    distribution = {star: 0 for star in (5, 4, 3, 2, 1)}
    for rating, count in rows:
        distribution[rating] = count

    total_reviews = sum(distribution.values())
    total_stars = sum(star * count for star, count in distribution.items())
    return {
        "average_rating": round_rating(total_stars, total_reviews),
        "total_reviews": total_reviews,
        "rating_distribution": distribution,
    }
