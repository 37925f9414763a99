# ABOUTME: Pydantic BaseModels for annotations, forecast snapshots, and geocoding hits.
# ABOUTME: Defines the shared types passed between the store, services, map view, and explorer.

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

Latitude = Annotated[float, Field(strict=True, ge=-90, le=90, allow_inf_nan=False)]
Longitude = Annotated[float, Field(strict=True, ge=-180, le=180, allow_inf_nan=False)]


class Kind(str, Enum):
    """Discriminator between the two annotation collections."""

    ANIMAL = "animal"
    TREE = "tree"


class Coordinate(BaseModel):
    """A point on the map selected by click, geolocation, or geocoding."""

    latitude: float
    longitude: float


class Annotation(BaseModel):
    """A persisted point record. The kind is implied by the collection it lives in."""

    model_config = ConfigDict(populate_by_name=True)

    species: str
    note: str | None = None
    latitude: float = Field(alias="lat")
    longitude: float = Field(alias="lon")


class AnnotationSubmission(BaseModel):
    """Validated body of a POST /add request."""

    type: Kind
    species: str
    note: str | None = None
    lat: Latitude
    lon: Longitude

    @field_validator("species")
    @classmethod
    def species_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("species must not be empty")
        return value

    def to_annotation(self) -> Annotation:
        return Annotation(species=self.species, note=self.note, latitude=self.lat, longitude=self.lon)


class ForecastSnapshot(BaseModel):
    """Current weather and air quality for a coordinate. Every reading may be missing."""

    timezone: str | None = None
    temperature: float | None = None
    windspeed: float | None = None
    winddirection: float | None = None
    humidity: float | None = None
    precipitation: float | None = None
    uv_index: float | None = None
    sunrise: str = "N/A"
    sunset: str = "N/A"
    pm2_5: float | None = None
    pm10: float | None = None


class Place(BaseModel):
    """First geocoding hit for a free-text query."""

    latitude: float
    longitude: float
    label: str


class SubmitResult(BaseModel):
    """Outcome of an annotation submission, shaped like the POST /add response."""

    status: int
    message: str
    kind: Kind | None = None
    annotation: Annotation | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
