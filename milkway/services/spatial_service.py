"""
Distance helpers for the "farms near me" filter.

With PostGIS the radius test and ordering run in the database over
``geography`` points built from each farm's latitude/longitude. Without it
(SQLite, POSTGIS_ENABLED=false) callers fall back to the haversine distance
computed here.
"""
import math

from geoalchemy2 import Geography
from sqlalchemy import cast, func
from sqlalchemy.sql.elements import ColumnElement

from milkway.models.farm import Farm

EARTH_RADIUS_KM = 6371.0088


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _geography_point(lon, lat) -> ColumnElement:
    return cast(
        func.ST_SetSRID(func.ST_MakePoint(lon, lat), 4326),
        Geography(geometry_type="POINT", srid=4326),
    )


def farm_within(lat: float, lng: float, radius_km: float) -> ColumnElement[bool]:
    """PostGIS predicate: farm location within radius_km of (lat, lng)."""
    return func.ST_DWithin(
        _geography_point(Farm.longitude, Farm.latitude),
        _geography_point(lng, lat),
        radius_km * 1000,
    )


def farm_distance_m(lat: float, lng: float) -> ColumnElement[float]:
    """PostGIS expression: metres from (lat, lng) to the farm location."""
    return func.ST_Distance(
        _geography_point(Farm.longitude, Farm.latitude),
        _geography_point(lng, lat),
    )
