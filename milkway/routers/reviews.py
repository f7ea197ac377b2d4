"""Reviews router: farm review listings, buyer reviews, helpful votes and owner responses."""
import uuid
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query

from milkway.dependencies import CurrentBuyer, CurrentFarmer, CurrentUser, DbSession
from milkway.schemas.common import MessageResponse, PageInfo
from milkway.schemas.review import (
    HelpfulRequest,
    HelpfulResponse,
    OwnerResponseRequest,
    ReviewCreate,
    ReviewListResponse,
    ReviewMutationResponse,
    ReviewOut,
    ReviewUpdate,
)
from milkway.services import rating_service, review_service
from milkway.services.review_service import (
    DuplicateReviewError,
    FarmNotFoundError,
    NotFarmOwnerError,
    NotReviewAuthorError,
    ReviewNotFoundError,
    ReviewSort,
)

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _pagination(page: int, limit: int, total: int) -> dict:
    return {**PageInfo.compute(page, limit, total), "total_reviews": total}


@router.get("/farm/{farm_id}", response_model=ReviewListResponse)
async def list_farm_reviews(
    farm_id: uuid.UUID,
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    sort_by: Annotated[ReviewSort, Query(alias="sortBy")] = ReviewSort.NEWEST,
):
    try:
        reviews, total = await review_service.list_farm_reviews(db, farm_id, page, limit, sort_by)
    except FarmNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    statistics = await rating_service.farm_review_statistics(db, farm_id)
    return ReviewListResponse(
        reviews=[ReviewOut.model_validate(review) for review in reviews],
        pagination=_pagination(page, limit, total),
        statistics=statistics,
    )


@router.get("/my-reviews", response_model=ReviewListResponse)
async def my_reviews(
    ctx: CurrentBuyer,
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    reviews, total = await review_service.list_buyer_reviews(db, ctx.user_id, page, limit)
    return ReviewListResponse(
        reviews=[ReviewOut.model_validate(review) for review in reviews],
        pagination=_pagination(page, limit, total),
    )


@router.post("", response_model=ReviewMutationResponse, status_code=201)
async def create_review(body: ReviewCreate, ctx: CurrentBuyer, db: DbSession):
    try:
        review = await review_service.create_review(db, ctx.user_id, body)
        await db.commit()
    except FarmNotFoundError as exc:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    except DuplicateReviewError as exc:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(exc))

    await db.refresh(review)
    return ReviewMutationResponse(
        message="Review created successfully", review=ReviewOut.model_validate(review)
    )


@router.put("/{review_id}", response_model=ReviewMutationResponse)
async def update_review(
    review_id: uuid.UUID, body: ReviewUpdate, ctx: CurrentBuyer, db: DbSession
):
    try:
        review = await review_service.update_review(db, review_id, ctx.user_id, body)
        await db.commit()
    except ReviewNotFoundError as exc:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    except NotReviewAuthorError as exc:
        await db.rollback()
        raise HTTPException(status_code=403, detail=str(exc))

    await db.refresh(review)
    return ReviewMutationResponse(
        message="Review updated successfully", review=ReviewOut.model_validate(review)
    )


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(review_id: uuid.UUID, ctx: CurrentBuyer, db: DbSession):
    try:
        await review_service.delete_review(db, review_id, ctx.user_id)
        await db.commit()
    except ReviewNotFoundError as exc:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    except NotReviewAuthorError as exc:
        await db.rollback()
        raise HTTPException(status_code=403, detail=str(exc))
    return MessageResponse(message="Review deleted successfully")


@router.post("/{review_id}/helpful", response_model=HelpfulResponse)
async def mark_helpful(
    review_id: uuid.UUID, ctx: CurrentUser, db: DbSession, body: HelpfulRequest | None = None
):
    is_helpful = body.is_helpful if body is not None else True
    try:
        review = await review_service.mark_helpful(db, review_id, ctx.user_id, is_helpful)
        await db.commit()
    except ReviewNotFoundError as exc:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))

    label = "helpful" if is_helpful else "not helpful"
    return HelpfulResponse(
        message=f"Review marked as {label}", helpful_count=review.helpful_count
    )


@router.post("/{review_id}/response", response_model=ReviewMutationResponse)
async def respond_to_review(
    review_id: uuid.UUID, body: OwnerResponseRequest, ctx: CurrentFarmer, db: DbSession
):
    if not body.text:
        raise HTTPException(status_code=400, detail="Response text is required")
    try:
        review = await review_service.add_owner_response(db, review_id, ctx.user_id, body.text)
        await db.commit()
    except ReviewNotFoundError as exc:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    except NotFarmOwnerError as exc:
        await db.rollback()
        raise HTTPException(status_code=403, detail=str(exc))

    return ReviewMutationResponse(
        message="Response added successfully", review=ReviewOut.model_validate(review)
    )
