import math

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every request/response body: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class GeoPoint(ApiModel):
    lat: float = Field(default=0.0, ge=-90, le=90)
    lng: float = Field(default=0.0, ge=-180, le=180)


class PageInfo(ApiModel):
    current_page: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @staticmethod
    def compute(page: int, limit: int, total: int) -> dict:
        total_pages = math.ceil(total / limit) if limit else 0
        return {
            "current_page": page,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        }


class MessageResponse(ApiModel):
    message: str


class HealthResponse(ApiModel):
    status: str
    message: str
    timestamp: str
