"""
Farm discovery: turns browse parameters into one filter predicate, then
runs the page query and the count query over that same predicate.

Geo radius search uses PostGIS when enabled. Otherwise the rows matching the
remaining filters are fetched as (id, lat, lng) in sort order and the radius
test and distance ordering happen in Python; the count is then the length of
that filtered list, so it still agrees with the pages.
"""
import enum
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from milkway.config import settings
from milkway.models.common import RecordStatus
from milkway.models.farm import (
    Availability,
    Farm,
    FarmAvailabilitySlot,
    FarmFeature,
    FarmFeatureTag,
)
from milkway.schemas.farm import FarmOut
from milkway.services import spatial_service, storage_service

logger = logging.getLogger(__name__)

QUICK_SEARCH_LIMIT = 20


class SortKey(str, enum.Enum):
    NEAREST = "nearest"
    RATING = "rating"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    NEWEST = "newest"


# "nearest" only means something with a geo filter, where distance ordering
# is applied ahead of these keys; on its own it behaves like "newest".
_SORT_ORDERS = {
    SortKey.RATING: (Farm.rating_average.desc(), Farm.rating_count.desc()),
    SortKey.PRICE_LOW: (Farm.price.asc(),),
    SortKey.PRICE_HIGH: (Farm.price.desc(),),
    SortKey.NEWEST: (Farm.created_at.desc(),),
    SortKey.NEAREST: (Farm.created_at.desc(),),
}


@dataclass
class GeoRadius:
    lat: float
    lng: float
    max_distance_km: float


@dataclass
class FarmQuery:
    search: str | None = None
    availability: Availability | None = None
    min_rating: float | None = None
    geo: GeoRadius | None = None
    features: list[FarmFeature] = field(default_factory=list)
    sort_by: SortKey = SortKey.NEWEST
    page: int = 1
    limit: int = 12

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class DiscoveryResult:
    farms: list[Farm]
    total: int
    distances_km: dict[uuid.UUID, float] = field(default_factory=dict)


# --------------------------------------------------------------------------- #
#  Predicates                                                                  #
# --------------------------------------------------------------------------- #


def active_farms() -> Select:
    """The one place the public farm visibility predicate lives."""
    return select(Farm).where(Farm.status == RecordStatus.ACTIVE)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_filters(query: FarmQuery) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []

    if query.search:
        pattern = _like_pattern(query.search.strip())
        clauses.append(
            or_(
                *(
                    column.ilike(pattern, escape="\\")
                    for column in (
                        Farm.name,
                        Farm.description,
                        Farm.address,
                        Farm.city,
                        Farm.state,
                    )
                )
            )
        )

    if query.availability is not None:
        clauses.append(
            Farm.availability_slots.any(FarmAvailabilitySlot.slot == query.availability)
        )

    if query.min_rating is not None:
        clauses.append(Farm.rating_average >= query.min_rating)

    if query.features:
        clauses.append(Farm.feature_tags.any(FarmFeatureTag.tag.in_(query.features)))

    return clauses


def sort_order(sort_by: SortKey) -> tuple:
    # id as last key keeps pages stable when the sort columns tie
    return (*_SORT_ORDERS[sort_by], Farm.id)


# --------------------------------------------------------------------------- #
#  Discovery                                                                   #
# --------------------------------------------------------------------------- #


async def discover_farms(db: AsyncSession, query: FarmQuery) -> DiscoveryResult:
    clauses = build_filters(query)

    if query.geo is not None:
        if settings.POSTGIS_ENABLED:
            return await _discover_with_postgis(db, query, clauses)
        return await _discover_with_haversine(db, query, clauses)

    base = active_farms().where(*clauses)
    total = await db.scalar(select(func.count()).select_from(base.subquery()))
    stmt = base.order_by(*sort_order(query.sort_by)).offset(query.offset).limit(query.limit)
    farms = (await db.execute(stmt)).scalars().all()
    return DiscoveryResult(farms=list(farms), total=total or 0)


async def _discover_with_postgis(
    db: AsyncSession, query: FarmQuery, clauses: list[ColumnElement[bool]]
) -> DiscoveryResult:
    geo = query.geo
    within = spatial_service.farm_within(geo.lat, geo.lng, geo.max_distance_km)
    distance_m = spatial_service.farm_distance_m(geo.lat, geo.lng)

    base = active_farms().where(*clauses, within)
    total = await db.scalar(select(func.count()).select_from(base.subquery()))

    stmt = (
        base.add_columns(distance_m.label("distance_m"))
        .order_by(distance_m, *sort_order(query.sort_by))
        .offset(query.offset)
        .limit(query.limit)
    )
    rows = (await db.execute(stmt)).all()
    return DiscoveryResult(
        farms=[row[0] for row in rows],
        total=total or 0,
        distances_km={row[0].id: round(row.distance_m / 1000, 2) for row in rows},
    )


async def _discover_with_haversine(
    db: AsyncSession, query: FarmQuery, clauses: list[ColumnElement[bool]]
) -> DiscoveryResult:
    geo = query.geo
    candidates = (
        await db.execute(
            active_farms()
            .with_only_columns(Farm.id, Farm.latitude, Farm.longitude)
            .where(*clauses)
            .order_by(*sort_order(query.sort_by))
        )
    ).all()

    in_range: list[tuple[uuid.UUID, float]] = []
    for farm_id, lat, lng in candidates:
        distance = spatial_service.haversine_km(geo.lat, geo.lng, lat, lng)
        if distance <= geo.max_distance_km:
            in_range.append((farm_id, distance))
    # stable sort: equal distances keep the requested sort order
    in_range.sort(key=lambda pair: pair[1])

    page = in_range[query.offset : query.offset + query.limit]
    page_ids = [farm_id for farm_id, _ in page]
    loaded = {
        farm.id: farm
        for farm in (await db.execute(select(Farm).where(Farm.id.in_(page_ids)))).scalars()
    }

    return DiscoveryResult(
        farms=[loaded[farm_id] for farm_id in page_ids if farm_id in loaded],
        total=len(in_range),
        distances_km={farm_id: round(distance, 2) for farm_id, distance in page},
    )


async def quick_search(db: AsyncSession, term: str) -> list[Farm]:
    stmt = (
        active_farms()
        .where(*build_filters(FarmQuery(search=term)))
        .order_by(Farm.rating_average.desc(), Farm.created_at.desc(), Farm.id)
        .limit(QUICK_SEARCH_LIMIT)
    )
    return list((await db.execute(stmt)).scalars().all())


async def owner_farms(db: AsyncSession, owner_id: uuid.UUID) -> list[Farm]:
    """Everything the owner has listed, inactive included, deleted excluded."""
    stmt = (
        select(Farm)
        .where(Farm.owner_id == owner_id, Farm.status != RecordStatus.DELETED)
        .order_by(Farm.created_at.desc(), Farm.id)
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_farm(db: AsyncSession, farm_id: uuid.UUID) -> Farm | None:
    """Load a farm in any status except deleted."""
    stmt = select(Farm).where(Farm.id == farm_id, Farm.status != RecordStatus.DELETED)
    return (await db.execute(stmt)).scalar_one_or_none()


async def increment_views(db: AsyncSession, farm_id: uuid.UUID) -> None:
    await db.execute(update(Farm).where(Farm.id == farm_id).values(views=Farm.views + 1))


# --------------------------------------------------------------------------- #
#  Presentation                                                                #
# --------------------------------------------------------------------------- #


def present_farm(
    farm: Farm,
    *,
    base_url: str,
    viewer_id: uuid.UUID | None = None,
    distance_km: float | None = None,
) -> FarmOut:
    """Build the public view of a farm: absolute image URLs and the computed canEdit flag."""
    images = [
        {
            "id": image.id,
            "url": storage_service.absolute_url(image.url, base_url, storage_service.FARM_IMAGES),
            "alt": image.alt,
            "is_primary": image.is_primary,
        }
        for image in farm.images
    ]
    primary = farm.primary_image
    return FarmOut.model_validate(
        {
            "id": farm.id,
            "name": farm.name,
            "description": farm.description,
            "owner": farm.owner,
            "location": {
                "address": farm.address,
                "city": farm.city,
                "state": farm.state,
                "country": farm.country,
                "pincode": farm.pincode,
                "coordinates": {"lat": farm.latitude, "lng": farm.longitude},
            },
            "images": images,
            "primary_image": storage_service.absolute_url(
                primary.url if primary else None, base_url, storage_service.FARM_IMAGES
            ),
            "availability": farm.availability,
            "price": farm.price,
            "contact": {
                "phone": farm.contact_phone,
                "whatsapp": farm.contact_whatsapp,
                "email": farm.contact_email,
            },
            "features": farm.features,
            "capacity": {
                "daily_production": farm.daily_production,
                "available_quantity": farm.available_quantity,
            },
            "ratings": {"average": farm.rating_average, "count": farm.rating_count},
            "is_verified": farm.is_verified,
            "is_active": farm.is_active,
            "featured": farm.featured,
            "views": farm.views,
            "created_at": farm.created_at,
            "updated_at": farm.updated_at,
            "can_edit": viewer_id is not None and viewer_id == farm.owner_id,
            "distance_km": distance_km,
        }
    )
