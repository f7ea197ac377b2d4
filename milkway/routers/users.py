"""
Users router: the caller's own profile, preferences, avatar, account
statistics and self-service deactivation.
"""
import json
import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from milkway.dependencies import CurrentUser, DbSession
from milkway.schemas.common import MessageResponse
from milkway.schemas.user import (
    DeactivateRequest,
    Preferences,
    PreferencesResponse,
    PreferencesUpdate,
    ProfileUpdate,
    ProfileUpdateResponse,
    UserPrivate,
    UserStats,
)
from milkway.services import storage_service, user_service
from milkway.services.user_service import NoAvatarError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _decode_json_field(value: str | None, label: str):
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} data")


@router.get("/profile", response_model=UserPrivate)
async def get_profile(request: Request, ctx: CurrentUser):
    return user_service.present_user(ctx.user, base_url=str(request.base_url))


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    request: Request,
    ctx: CurrentUser,
    db: DbSession,
    name: Annotated[str | None, Form()] = None,
    phone: Annotated[str | None, Form()] = None,
    location: Annotated[str | None, Form()] = None,
    preferences: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
):
    data = {
        "name": name,
        "phone": phone,
        "location": _decode_json_field(location, "location"),
        "preferences": _decode_json_field(preferences, "preferences"),
    }
    try:
        body = ProfileUpdate.model_validate({k: v for k, v in data.items() if v is not None})
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())

    stored = None
    if avatar is not None and avatar.filename:
        try:
            stored = await storage_service.save_upload(avatar, storage_service.AVATARS, "avatar")
        except storage_service.UploadRejectedError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

    user = ctx.user
    previous_avatar = None
    try:
        user_service.apply_profile_update(user, body)
        if stored is not None:
            previous_avatar = user_service.replace_avatar(user, stored.reference)
        await db.commit()
    except Exception:
        await db.rollback()
        if stored is not None:
            storage_service.discard([stored])
        raise

    if previous_avatar:
        storage_service.delete_reference(previous_avatar, storage_service.AVATARS)
    await db.refresh(user)

    return ProfileUpdateResponse(
        message="Profile updated successfully",
        user=user_service.present_user(user, base_url=str(request.base_url)),
    )


@router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(body: PreferencesUpdate, ctx: CurrentUser, db: DbSession):
    preferences = user_service.update_preferences(ctx.user, body)
    await db.commit()
    return PreferencesResponse(
        message="Preferences updated successfully",
        preferences=Preferences.model_validate(preferences),
    )


@router.delete("/avatar", response_model=MessageResponse)
async def delete_avatar(ctx: CurrentUser, db: DbSession):
    try:
        user_service.remove_avatar(ctx.user)
    except NoAvatarError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    await db.commit()
    return MessageResponse(message="Avatar deleted successfully")


@router.get("/stats", response_model=UserStats, response_model_exclude_unset=True)
async def get_stats(ctx: CurrentUser, db: DbSession):
    return UserStats(**await user_service.user_stats(db, ctx.user))


@router.post("/deactivate", response_model=MessageResponse)
async def deactivate_account(ctx: CurrentUser, db: DbSession, body: DeactivateRequest | None = None):
    user_service.deactivate(ctx.user, body.reason if body else None)
    await db.commit()
    return MessageResponse(message="Account deactivated successfully")
