import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, field_serializer, field_validator

# Normalized label -> value, e.g. "miete_/_monat", "adresse", "ort", "kreis_quartier",
# "description". Open-ended: any label found on the page becomes a key.
ExtractedListing = dict[str, str | None]


class JobStatus(StrEnum):
    pending = "pending"
    complete = "complete"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.pending


class TravelMode(StrEnum):
    walking = "walking"
    transit = "transit"
    cycling = "cycling"

    @property
    def provider_mode(self) -> str:
        """Mode name understood by the Distance Matrix API."""
        return "bicycling" if self is TravelMode.cycling else self.value


class Coordinates(BaseModel):
    lat: float
    lng: float


class TravelEstimate(BaseModel):
    duration: str | None = None
    distance: str | None = None


class Destination(BaseModel):
    address: str
    lat: float
    lng: float


class TransportMetrics(BaseModel):
    walking_time: str | None = None
    transit_time: str | None = None
    cycling_time: str | None = None
    walking_distance: str | None = None
    transit_distance: str | None = None
    cycling_distance: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @classmethod
    def empty(cls) -> "TransportMetrics":
        return cls()

    @property
    def coordinates(self) -> Coordinates | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(lat=self.latitude, lng=self.longitude)

    @property
    def is_complete(self) -> bool:
        return None not in (self.walking_time, self.transit_time, self.cycling_time)

    def set_travel(self, mode: TravelMode, estimate: TravelEstimate) -> None:
        setattr(self, f"{mode.value}_time", estimate.duration)
        setattr(self, f"{mode.value}_distance", estimate.distance)

    @property
    def row(self) -> tuple[str | None, str | None, str | None, float | None, float | None]:
        return (self.walking_time, self.transit_time, self.cycling_time, self.latitude, self.longitude)


def dump_listing(listing: ExtractedListing) -> str:
    return json.dumps(listing, ensure_ascii=False)


def load_listing(raw: str | None) -> ExtractedListing:
    if not raw:
        return {}
    return json.loads(raw)


class Job(BaseModel):
    id: int
    url: str
    content: dict[str, str | None]
    scraped_at: str | None = None
    liked: bool = False
    done: bool = False
    status: JobStatus = JobStatus.pending
    walking_time: str | None = None
    transit_time: str | None = None
    cycling_time: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("content", mode="before")
    @classmethod
    def _parse_json(cls, v: Any) -> Any:
        if isinstance(v, str) or v is None:
            return load_listing(v)
        return v

    @field_serializer("content")
    def _dump_json(self, content: ExtractedListing) -> str:
        return dump_listing(content)

    @property
    def address(self) -> str | None:
        return self.content.get("adresse") or None

    @property
    def locality(self) -> str | None:
        return self.content.get("ort") or None


class SubmitResult(BaseModel):
    status: JobStatus
    content: dict[str, str | None] | None = None

    @property
    def body(self) -> dict[str, Any]:
        """Response body: the listing itself once complete, the status otherwise."""
        if self.status is JobStatus.complete and self.content is not None:
            return dict(self.content)
        return {"status": self.status.value}


class TransportUpdate(BaseModel):
    id: int
    address: str
    complete_address: str
    transport: TransportMetrics

    @property
    def coordinates(self) -> Coordinates | None:
        return self.transport.coordinates


class TransportUpdateError(BaseModel):
    id: int
    error: str
