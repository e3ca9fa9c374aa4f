"""
Domain models (Pydantic).

These types are the contract between layers:
- value objects (`GeoPoint`)
- stored entities (`DoctorRecord`) and their create payload (`DoctorCreate`)
- proximity search input/output (`SearchQuery`, `SearchResult`, `SearchResponse`)

API, CLI and the JSON store all serialize through these models, so a record looks the
same on disk, over HTTP and in the terminal.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Literal, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from doctorfinder.domain.errors import InvalidCoordinates

SearchMode = Literal["near", "within"]

KNOWN_SPECIALTIES: tuple[str, ...] = (
    "General Medicine",
    "Cardiology",
    "Dermatology",
    "Orthopedics",
    "Pediatrics",
    "Gynecology",
    "Neurology",
    "Psychiatry",
)

_RECORD_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def new_record_id() -> str:
    return uuid.uuid4().hex


def is_valid_record_id(value: object) -> bool:
    return isinstance(value, str) and bool(_RECORD_ID_RE.match(value))


class GeoPoint(BaseModel):
    """A validated, immutable latitude/longitude pair in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    # Strict floats: numeric strings and booleans are not coordinates.
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False, strict=True)
    lng: float = Field(..., ge=-180, le=180, allow_inf_nan=False, strict=True)

    @classmethod
    def of(cls, lat: Any, lng: Any) -> "GeoPoint":
        """Build a point or raise `InvalidCoordinates` (never a raw ValidationError)."""
        try:
            return cls(lat=lat, lng=lng)
        except ValidationError as exc:
            raise InvalidCoordinates(lat, lng) from exc

    @classmethod
    def from_mapping(cls, value: Mapping[str, Any] | None) -> "GeoPoint":
        """Parse a `{lat, lng}` mapping (the wire shape of `coordinates`)."""
        if not isinstance(value, Mapping):
            raise InvalidCoordinates(detail="coordinates must be an object with lat/lng")
        return cls.of(value.get("lat"), value.get("lng"))


class DoctorCreate(BaseModel):
    """Create payload; `coordinates` is checked by the directory so errors map to InvalidLocation."""

    name: str = Field(..., min_length=1)
    specialty: str = Field(..., min_length=1)
    phone: str = ""
    address: str = ""
    # Not typed as a dict: a non-object must reach `GeoPoint.from_mapping` to fail as InvalidLocation.
    coordinates: Any | None = None

    @field_validator("name", "specialty", "phone", "address", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class DoctorRecord(BaseModel):
    """A stored doctor. Read-only once created; destroyed only by delete."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(..., min_length=1)
    specialty: str = Field(..., min_length=1)
    phone: str = ""
    address: str = ""
    location: GeoPoint
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SearchQuery(BaseModel):
    """Ephemeral proximity query. `radius_km=None` means "use the configured default"."""

    origin: GeoPoint
    radius_km: float | None = None
    location_label: str | None = None
    specialty: str | None = None
    limit: int | None = Field(default=None, ge=1, le=500)


class SearchRequest(BaseModel):
    """Wire shape of a search call; also accepts the legacy `location`/`radius` keys."""

    location_label: str | None = Field(
        default=None, validation_alias=AliasChoices("location_label", "location")
    )
    coordinates: Any | None = None
    radius_km: float | None = Field(default=None, validation_alias=AliasChoices("radius_km", "radius"))
    specialty: str | None = None
    limit: int | None = Field(default=None, ge=1, le=500)


class SearchResult(DoctorRecord):
    """A matched record annotated with its Haversine distance from the query origin."""

    distance_km: float = Field(..., ge=0)


class SearchResponse(BaseModel):
    location_label: str | None = None
    origin: GeoPoint
    radius_km: float
    mode: SearchMode
    count: int
    results: list[SearchResult]
