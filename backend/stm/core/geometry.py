"""Task Geometry — structural validation of a GeoJSON Polygon Feature.

Invariants:
    - A valid task geometry is exactly one GeoJSON object of type "Feature"
    - Its geometry member is non-null and of type "Polygon"
    - Every linear ring has >= 4 positions and is closed (first == last)
    - Positions have 2 or 3 numeric coordinates
    - The geometry text is stored unchanged; nothing here transforms it

Design Decisions:
    - Pydantic models over hand-written dict walking: the same validation
      machinery as the API schemas, with field-level error messages
    - No coordinate range or self-intersection checks: structural only
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

Position = Annotated[list[float], Field(min_length=2, max_length=3)]
LinearRing = Annotated[list[Position], Field(min_length=4)]


class PolygonGeometry(BaseModel):
    """GeoJSON Polygon geometry object."""
    model_config = ConfigDict(extra="allow")

    type: Literal["Polygon"]
    coordinates: list[LinearRing] = Field(min_length=1)

    @field_validator("coordinates")
    @classmethod
    def rings_are_closed(cls, v: list[list[list[float]]]) -> list[list[list[float]]]:
        for i, ring in enumerate(v):
            if ring[0] != ring[-1]:
                raise ValueError(f"linear ring {i} is not closed")
        return v


class PolygonFeature(BaseModel):
    """GeoJSON Feature whose geometry is a Polygon."""
    model_config = ConfigDict(extra="allow")

    type: Literal["Feature"]
    geometry: PolygonGeometry
    properties: dict | None = None


def parse_polygon_feature(geometry: str) -> PolygonFeature:
    """Parse geometry text. Raises pydantic ValidationError if malformed."""
    return PolygonFeature.model_validate_json(geometry)


def check_polygon_feature(geometry: str) -> str | None:
    """Return an error message if geometry is not one Polygon Feature."""
    if not isinstance(geometry, str) or not geometry.strip():
        return "task geometry is empty"
    try:
        parse_polygon_feature(geometry)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(loc) for loc in first["loc"]) or "geometry"
        return f"task geometry is not a polygon feature ({location}: {first['msg']})"
    return None
