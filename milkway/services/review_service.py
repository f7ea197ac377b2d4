"""
Review lifecycle. Every write that can change which active ratings exist
for a farm ends with ``rating_service.recompute_farm_rating`` inside the same
transaction, so the farm summary is never stale once the request commits.
"""
import enum
import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from milkway.models.common import RecordStatus, utcnow
from milkway.models.review import Review, ReviewVote
from milkway.schemas.review import ReviewCreate, ReviewUpdate
from milkway.services import discovery_service, rating_service

logger = logging.getLogger(__name__)


class ReviewSort(str, enum.Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    RATING_HIGH = "rating_high"
    RATING_LOW = "rating_low"
    HELPFUL = "helpful"


class ReviewNotFoundError(Exception):
    pass


class FarmNotFoundError(Exception):
    pass


class DuplicateReviewError(Exception):
    pass


class NotReviewAuthorError(Exception):
    pass


class NotFarmOwnerError(Exception):
    pass


def _helpful_votes():
    return (
        select(func.count(ReviewVote.id))
        .where(ReviewVote.review_id == Review.id, ReviewVote.is_helpful.is_(True))
        .correlate(Review)
        .scalar_subquery()
    )


def _review_order(sort_by: ReviewSort) -> tuple:
    if sort_by == ReviewSort.RATING_HIGH:
        return (Review.rating.desc(), Review.created_at.desc())
    if sort_by == ReviewSort.RATING_LOW:
        return (Review.rating.asc(), Review.created_at.desc())
    if sort_by == ReviewSort.HELPFUL:
        return (_helpful_votes().desc(), Review.created_at.desc())
    if sort_by == ReviewSort.OLDEST:
        return (Review.created_at.asc(),)
    return (Review.created_at.desc(),)


async def get_review(db: AsyncSession, review_id: uuid.UUID) -> Review:
    review = await db.get(Review, review_id)
    if review is None or review.status == RecordStatus.DELETED:
        raise ReviewNotFoundError("Review not found")
    return review


async def _page(db: AsyncSession, base, order: tuple, page: int, limit: int) -> tuple[list[Review], int]:
    total = await db.scalar(select(func.count()).select_from(base.subquery()))
    stmt = base.order_by(*order, Review.id).offset((page - 1) * limit).limit(limit)
    reviews = (await db.execute(stmt)).scalars().all()
    return list(reviews), total or 0


async def list_farm_reviews(
    db: AsyncSession,
    farm_id: uuid.UUID,
    page: int = 1,
    limit: int = 10,
    sort_by: ReviewSort = ReviewSort.NEWEST,
) -> tuple[list[Review], int]:
    if await discovery_service.get_farm(db, farm_id) is None:
        raise FarmNotFoundError("Farm not found")
    base = rating_service.active_reviews().where(Review.farm_id == farm_id)
    return await _page(db, base, _review_order(sort_by), page, limit)


async def list_buyer_reviews(
    db: AsyncSession, buyer_id: uuid.UUID, page: int = 1, limit: int = 10
) -> tuple[list[Review], int]:
    base = rating_service.active_reviews().where(Review.buyer_id == buyer_id)
    return await _page(db, base, (Review.created_at.desc(),), page, limit)


async def create_review(db: AsyncSession, buyer_id: uuid.UUID, body: ReviewCreate) -> Review:
    farm = await discovery_service.get_farm(db, body.farm)
    if farm is None or not farm.is_active:
        raise FarmNotFoundError("Farm not found")

    existing = await db.scalar(
        select(Review.id).where(Review.buyer_id == buyer_id, Review.farm_id == farm.id)
    )
    if existing is not None:
        raise DuplicateReviewError("You have already reviewed this farm")

    review = Review(
        buyer_id=buyer_id,
        farm_id=farm.id,
        rating=body.rating,
        comment=body.comment,
        votes=[],
    )
    review.aspects = body.aspects.model_dump() if body.aspects else None
    db.add(review)
    try:
        await db.flush()
    except IntegrityError as exc:
        # lost a race against the same buyer's concurrent submission
        raise DuplicateReviewError("You have already reviewed this farm") from exc

    await rating_service.recompute_farm_rating(db, farm.id)
    logger.info("Review %s created for farm %s by buyer %s", review.id, farm.id, buyer_id)
    return review


async def update_review(
    db: AsyncSession, review_id: uuid.UUID, buyer_id: uuid.UUID, body: ReviewUpdate
) -> Review:
    review = await get_review(db, review_id)
    if review.buyer_id != buyer_id:
        raise NotReviewAuthorError("Access denied. You can only update your own reviews.")

    if body.rating is not None:
        review.rating = body.rating
    if "comment" in body.model_fields_set:
        review.comment = body.comment
    if "aspects" in body.model_fields_set:
        review.aspects = body.aspects.model_dump() if body.aspects else None
    await db.flush()

    await rating_service.recompute_farm_rating(db, review.farm_id)
    return review


async def delete_review(db: AsyncSession, review_id: uuid.UUID, buyer_id: uuid.UUID) -> None:
    review = await get_review(db, review_id)
    if review.buyer_id != buyer_id:
        raise NotReviewAuthorError("Access denied. You can only delete your own reviews.")

    farm_id = review.farm_id
    await db.delete(review)
    await db.flush()

    await rating_service.recompute_farm_rating(db, farm_id)
    logger.info("Review %s deleted from farm %s", review_id, farm_id)


async def mark_helpful(
    db: AsyncSession, review_id: uuid.UUID, user_id: uuid.UUID, is_helpful: bool
) -> Review:
    review = await get_review(db, review_id)
    for vote in review.votes:
        if vote.user_id == user_id:
            vote.is_helpful = is_helpful
            break
    else:
        review.votes.append(ReviewVote(user_id=user_id, is_helpful=is_helpful))
    await db.flush()
    return review


async def add_owner_response(
    db: AsyncSession, review_id: uuid.UUID, owner_id: uuid.UUID, text: str
) -> Review:
    review = await get_review(db, review_id)
    if review.farm.owner_id != owner_id:
        raise NotFarmOwnerError(
            "Access denied. You can only respond to reviews of your farms."
        )

    review.response_text = text
    review.responder_id = owner_id
    review.responded_at = utcnow()
    await db.flush()
    await db.refresh(review, attribute_names=["responder"])
    return review
