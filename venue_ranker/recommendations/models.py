from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def to_date_key(value: date | datetime | str) -> date:
    """Reduce a date, datetime or ISO string to its calendar date.

    Time of day and any UTC offset are dropped without conversion, so
    ``2025-06-01T23:30:00-05:00`` and ``2025-06-01`` share the same key.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise ValueError(f"Not a calendar date: {value!r}")


# ── Domain entities ─────────────────────────────────────────────────────


class GeoPoint(BaseModel):
    """A coordinate with explicit axes.

    Stored records use the ``[longitude, latitude]`` pair order; that form
    is accepted on input and produced by ``as_lon_lat``.
    """

    model_config = ConfigDict(frozen=True)

    longitude: float = Field(..., ge=-180.0, le=180.0)
    latitude: float = Field(..., ge=-90.0, le=90.0)

    @model_validator(mode="before")
    @classmethod
    def _accept_lon_lat_pair(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError("coordinates must be a [longitude, latitude] pair")
            return {"longitude": value[0], "latitude": value[1]}
        return value

    def as_lon_lat(self) -> list[float]:
        return [self.longitude, self.latitude]


class Preference(BaseModel):
    category: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0.0, le=1.0)


class TimeSlot(BaseModel):
    time: str = Field(..., min_length=1, description='Slot label, e.g. "18:00"')
    is_booked: bool = False


class DailyAvailability(BaseModel):
    date: date
    slots: list[TimeSlot] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def _normalise_date(cls, value: Any) -> date:
        return to_date_key(value)

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def free_slots(self) -> int:
        return sum(1 for slot in self.slots if not slot.is_booked)


class User(BaseModel):
    id: str = Field(..., min_length=1)
    name: str | None = None
    preferences: list[Preference] = Field(default_factory=list)
    location: GeoPoint | None = None
    booking_history: list[str] = Field(
        default_factory=list,
        description="Past booking ids; carried as context, not scored",
    )


class Item(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    category: str = Field(..., min_length=1)
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    total_bookings: int = Field(default=0, ge=0)
    location: GeoPoint | None = None
    availability: list[DailyAvailability] = Field(default_factory=list)

    def availability_on(self, day: date | datetime | str) -> DailyAvailability | None:
        """Return the first availability entry for *day*, or ``None``."""
        key = to_date_key(day)
        for entry in self.availability:
            if to_date_key(entry.date) == key:
                return entry
        return None


class SearchParams(BaseModel):
    date: date
    limit: int = Field(default=10, ge=1)

    @field_validator("date", mode="before")
    @classmethod
    def _normalise_date(cls, value: Any) -> date:
        return to_date_key(value)


@dataclass(frozen=True)
class ScoredItem:
    """An item paired with its score for the duration of one ranking call."""

    item: Item
    score: float
    breakdown: dict[str, float] = field(default_factory=dict)


# ── API output ──────────────────────────────────────────────────────────


class ItemOut(BaseModel):
    id: str
    name: str
    category: str
    rating: float
    total_bookings: int
    location: list[float] | None = None
    free_slots: int = 0
    total_slots: int = 0


class ScoreBreakdown(BaseModel):
    preference: float
    popularity: float
    rating: float
    location: float
    availability: float


class RecommendationItem(BaseModel):
    item: ItemOut
    score: float
    breakdown: ScoreBreakdown


class RecommendationResponse(BaseModel):
    user_id: str
    date: date
    limit: int
    total_candidates: int
    recommendations: list[RecommendationItem]
