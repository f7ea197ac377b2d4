"""Wishlist router: a buyer's saved farms with per-entry notes."""
import uuid

from fastapi import APIRouter, HTTPException, Request

from milkway.dependencies import CurrentBuyer, DbSession
from milkway.schemas.common import MessageResponse
from milkway.schemas.wishlist import (
    NotesUpdate,
    WishlistAdd,
    WishlistCheck,
    WishlistMutationResponse,
    WishlistResponse,
    WishlistStats,
)
from milkway.services import wishlist_service
from milkway.services.wishlist_service import (
    AlreadyInWishlistError,
    FarmUnavailableError,
    NotInWishlistError,
)

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


@router.get("", response_model=WishlistResponse)
async def get_wishlist(request: Request, ctx: CurrentBuyer, db: DbSession):
    wishlist = await wishlist_service.find_or_create(db, ctx.user_id)
    items = await wishlist_service.active_items(db, wishlist)
    await db.commit()
    return WishlistResponse(
        wishlist=wishlist_service.present_wishlist(
            wishlist, items, base_url=str(request.base_url), viewer_id=ctx.user_id
        )
    )


@router.post("", response_model=WishlistMutationResponse, status_code=201)
async def add_to_wishlist(body: WishlistAdd, request: Request, ctx: CurrentBuyer, db: DbSession):
    try:
        wishlist = await wishlist_service.add_farm(db, ctx.user_id, body.farm_id, body.notes)
        items = await wishlist_service.active_items(db, wishlist)
        await db.commit()
    except FarmUnavailableError as exc:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    except AlreadyInWishlistError as exc:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(exc))

    return WishlistMutationResponse(
        message="Farm added to wishlist successfully",
        wishlist=wishlist_service.present_wishlist(
            wishlist, items, base_url=str(request.base_url), viewer_id=ctx.user_id
        ),
    )


@router.get("/check/{farm_id}", response_model=WishlistCheck)
async def check_wishlist(farm_id: uuid.UUID, ctx: CurrentBuyer, db: DbSession):
    return WishlistCheck(
        is_in_wishlist=await wishlist_service.contains(db, ctx.user_id, farm_id),
        farm_id=farm_id,
    )


@router.get("/stats", response_model=WishlistStats)
async def wishlist_stats(ctx: CurrentBuyer, db: DbSession):
    return WishlistStats(**await wishlist_service.stats(db, ctx.user_id))


@router.delete("/{farm_id}", response_model=MessageResponse)
async def remove_from_wishlist(farm_id: uuid.UUID, ctx: CurrentBuyer, db: DbSession):
    try:
        await wishlist_service.remove_farm(db, ctx.user_id, farm_id)
        await db.commit()
    except NotInWishlistError as exc:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    return MessageResponse(message="Farm removed from wishlist successfully")


@router.put("/{farm_id}/notes", response_model=MessageResponse)
async def update_notes(farm_id: uuid.UUID, body: NotesUpdate, ctx: CurrentBuyer, db: DbSession):
    try:
        await wishlist_service.update_notes(db, ctx.user_id, farm_id, body.notes)
        await db.commit()
    except NotInWishlistError as exc:
        await db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    return MessageResponse(message="Notes updated successfully")
