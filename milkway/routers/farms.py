"""
Farms router: public discovery and detail views, and farmer-owned listing
management with multipart image upload.

Create and update arrive as multipart forms where ``location``, ``contact``,
``availability``, ``features`` and ``capacity`` are JSON-encoded strings.
"""
import json
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from milkway.config import settings
from milkway.dependencies import CurrentFarmer, DbSession, OptionalUser
from milkway.models.common import RecordStatus
from milkway.models.farm import Availability, Farm, FarmFeature, FarmImage
from milkway.schemas.common import MessageResponse, PageInfo
from milkway.schemas.farm import (
    FarmCollectionResponse,
    FarmCreate,
    FarmListResponse,
    FarmMutationResponse,
    FarmOut,
    FarmUpdate,
)
from milkway.services import discovery_service, storage_service
from milkway.services.discovery_service import FarmQuery, GeoRadius, SortKey

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/farms", tags=["farms"])

_FARM_NOT_FOUND = "Farm not found"

_JSON_FIELDS = {
    "location": "Invalid location data",
    "contact": "Invalid contact data",
    "availability": "Invalid availability data",
    "capacity": "Invalid capacity data",
}


# --------------------------------------------------------------------------- #
#  Form helpers                                                                #
# --------------------------------------------------------------------------- #


def _parse_form(raw: dict[str, str | None]) -> dict:
    """Drop absent fields and decode the JSON-encoded ones."""
    data: dict = {}
    for key, value in raw.items():
        if value is None:
            continue
        if key in _JSON_FIELDS:
            try:
                value = json.loads(value)
            except ValueError:
                raise HTTPException(status_code=400, detail=_JSON_FIELDS[key])
        elif key == "features":
            try:
                value = json.loads(value)
            except ValueError:
                # a malformed feature list is not worth rejecting the listing over
                value = []
        data[key] = value
    return data


def _validate(model, data: dict):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())


def _check_image_count(uploads: list[UploadFile]) -> None:
    if len(uploads) > settings.MAX_FARM_IMAGES:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files. Max {settings.MAX_FARM_IMAGES} allowed.",
        )


async def _store_images(uploads: list[UploadFile]) -> list[storage_service.StoredFile]:
    try:
        return await storage_service.save_uploads(
            uploads, storage_service.FARM_IMAGES, "farmImages"
        )
    except storage_service.UploadRejectedError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _append_images(farm: Farm, stored: list[storage_service.StoredFile]) -> None:
    had_images = bool(farm.images)
    offset = len(farm.images)
    for index, item in enumerate(stored):
        farm.images.append(
            FarmImage(
                url=item.reference,
                alt=f"{farm.name} - Image {offset + index + 1}",
                is_primary=index == 0 and not had_images,
                position=offset + index,
            )
        )


def _apply_fields(farm: Farm, body: FarmCreate | FarmUpdate) -> None:
    fields = body.model_fields_set
    for name in ("name", "description", "price"):
        if name in fields:
            setattr(farm, name, getattr(body, name))

    if body.location is not None:
        location = body.location
        farm.address = location.address
        farm.city = location.city
        farm.state = location.state
        farm.country = location.country
        farm.pincode = location.pincode
        farm.latitude = location.coordinates.lat
        farm.longitude = location.coordinates.lng

    if body.contact is not None:
        farm.contact_phone = body.contact.phone
        farm.contact_whatsapp = body.contact.whatsapp
        farm.contact_email = body.contact.email

    if body.capacity is not None:
        farm.daily_production = body.capacity.daily_production
        farm.available_quantity = body.capacity.available_quantity

    if body.availability is not None:
        farm.availability = body.availability
    if body.features is not None:
        farm.features = body.features


def _base_url(request: Request) -> str:
    return str(request.base_url)


# --------------------------------------------------------------------------- #
#  Public reads                                                                #
# --------------------------------------------------------------------------- #


@router.get("", response_model=FarmListResponse)
async def list_farms(
    request: Request,
    db: DbSession,
    viewer: OptionalUser,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 12,
    search: str | None = None,
    availability: Availability | None = None,
    min_rating: Annotated[float | None, Query(alias="minRating", ge=0, le=5)] = None,
    max_distance: Annotated[float | None, Query(alias="maxDistance", ge=0)] = None,
    sort_by: Annotated[SortKey, Query(alias="sortBy")] = SortKey.NEWEST,
    lat: Annotated[float | None, Query(ge=-90, le=90)] = None,
    lng: Annotated[float | None, Query(ge=-180, le=180)] = None,
    features: Annotated[list[FarmFeature] | None, Query()] = None,
):
    geo = None
    if lat is not None and lng is not None and max_distance is not None:
        geo = GeoRadius(lat=lat, lng=lng, max_distance_km=max_distance)

    query = FarmQuery(
        search=search or None,
        availability=availability,
        min_rating=min_rating,
        geo=geo,
        features=features or [],
        sort_by=sort_by,
        page=page,
        limit=limit,
    )
    result = await discovery_service.discover_farms(db, query)

    viewer_id = viewer.user_id if viewer else None
    farms = [
        discovery_service.present_farm(
            farm,
            base_url=_base_url(request),
            viewer_id=viewer_id,
            distance_km=result.distances_km.get(farm.id),
        )
        for farm in result.farms
    ]
    return FarmListResponse(
        farms=farms,
        pagination={**PageInfo.compute(page, limit, result.total), "total_farms": result.total},
    )


@router.get("/search", response_model=FarmCollectionResponse)
async def search_farms(request: Request, db: DbSession, q: str | None = None):
    if not q or len(q.strip()) < 2:
        raise HTTPException(
            status_code=400, detail="Search query must be at least 2 characters long"
        )
    farms = await discovery_service.quick_search(db, q)
    return FarmCollectionResponse(
        farms=[discovery_service.present_farm(farm, base_url=_base_url(request)) for farm in farms],
        total=len(farms),
    )


@router.get("/my-farms", response_model=FarmCollectionResponse)
async def my_farms(request: Request, ctx: CurrentFarmer, db: DbSession):
    farms = await discovery_service.owner_farms(db, ctx.user_id)
    return FarmCollectionResponse(
        farms=[
            discovery_service.present_farm(farm, base_url=_base_url(request), viewer_id=ctx.user_id)
            for farm in farms
        ],
        total=len(farms),
    )


@router.get("/{farm_id}", response_model=FarmOut)
async def get_farm(farm_id: uuid.UUID, request: Request, db: DbSession, viewer: OptionalUser):
    farm = await discovery_service.get_farm(db, farm_id)
    if farm is None:
        raise HTTPException(status_code=404, detail=_FARM_NOT_FOUND)
    if not farm.is_active:
        raise HTTPException(status_code=404, detail="Farm is not available")

    view = discovery_service.present_farm(
        farm, base_url=_base_url(request), viewer_id=viewer.user_id if viewer else None
    )
    await discovery_service.increment_views(db, farm.id)
    await db.commit()
    return view


# --------------------------------------------------------------------------- #
#  Farmer writes                                                               #
# --------------------------------------------------------------------------- #


@router.post("", response_model=FarmMutationResponse, status_code=201)
async def create_farm(
    request: Request,
    ctx: CurrentFarmer,
    db: DbSession,
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    price: Annotated[str | None, Form()] = None,
    location: Annotated[str | None, Form()] = None,
    contact: Annotated[str | None, Form()] = None,
    availability: Annotated[str | None, Form()] = None,
    features: Annotated[str | None, Form()] = None,
    capacity: Annotated[str | None, Form()] = None,
    farm_images: Annotated[list[UploadFile] | None, File(alias="farmImages")] = None,
):
    uploads = farm_images or []
    _check_image_count(uploads)
    data = _parse_form(
        {
            "name": name,
            "description": description,
            "price": price,
            "location": location,
            "contact": contact,
            "availability": availability,
            "features": features,
            "capacity": capacity,
        }
    )
    body = _validate(FarmCreate, data)

    stored = await _store_images(uploads)
    try:
        farm = Farm(owner_id=ctx.user_id, owner=ctx.user, images=[])
        _apply_fields(farm, body)
        _append_images(farm, stored)
        db.add(farm)
        await db.commit()
    except Exception:
        await db.rollback()
        storage_service.discard(stored)
        raise

    await db.refresh(farm)
    logger.info("Farm %s created by farmer %s", farm.id, ctx.user_id)
    return FarmMutationResponse(
        message="Farm created successfully",
        farm=discovery_service.present_farm(
            farm, base_url=_base_url(request), viewer_id=ctx.user_id
        ),
    )


@router.put("/{farm_id}", response_model=FarmMutationResponse)
async def update_farm(
    farm_id: uuid.UUID,
    request: Request,
    ctx: CurrentFarmer,
    db: DbSession,
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    price: Annotated[str | None, Form()] = None,
    location: Annotated[str | None, Form()] = None,
    contact: Annotated[str | None, Form()] = None,
    availability: Annotated[str | None, Form()] = None,
    features: Annotated[str | None, Form()] = None,
    capacity: Annotated[str | None, Form()] = None,
    is_active: Annotated[str | None, Form(alias="isActive")] = None,
    farm_images: Annotated[list[UploadFile] | None, File(alias="farmImages")] = None,
):
    farm = await discovery_service.get_farm(db, farm_id)
    if farm is None:
        raise HTTPException(status_code=404, detail=_FARM_NOT_FOUND)
    if farm.owner_id != ctx.user_id:
        raise HTTPException(
            status_code=403, detail="Access denied. You can only update your own farms."
        )

    uploads = farm_images or []
    _check_image_count(uploads)
    data = _parse_form(
        {
            "name": name,
            "description": description,
            "price": price,
            "location": location,
            "contact": contact,
            "availability": availability,
            "features": features,
            "capacity": capacity,
            "is_active": is_active,
        }
    )
    body = _validate(FarmUpdate, data)

    stored = await _store_images(uploads)
    try:
        _apply_fields(farm, body)
        if body.is_active is not None:
            farm.status = RecordStatus.ACTIVE if body.is_active else RecordStatus.INACTIVE
        _append_images(farm, stored)
        await db.commit()
    except Exception:
        await db.rollback()
        storage_service.discard(stored)
        raise

    await db.refresh(farm)
    logger.info("Farm %s updated", farm.id)
    return FarmMutationResponse(
        message="Farm updated successfully",
        farm=discovery_service.present_farm(
            farm, base_url=_base_url(request), viewer_id=ctx.user_id
        ),
    )


@router.delete("/{farm_id}", response_model=MessageResponse)
async def delete_farm(farm_id: uuid.UUID, ctx: CurrentFarmer, db: DbSession):
    farm = await discovery_service.get_farm(db, farm_id)
    if farm is None:
        raise HTTPException(status_code=404, detail=_FARM_NOT_FOUND)
    if farm.owner_id != ctx.user_id:
        raise HTTPException(
            status_code=403, detail="Access denied. You can only delete your own farms."
        )

    references = [image.url for image in farm.images]
    farm.images = []
    farm.status = RecordStatus.DELETED
    await db.commit()

    for reference in references:
        storage_service.delete_reference(reference, storage_service.FARM_IMAGES)
    logger.info("Farm %s deleted by farmer %s", farm.id, ctx.user_id)
    return MessageResponse(message="Farm deleted successfully")
