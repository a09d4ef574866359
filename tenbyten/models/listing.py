"""Listing models (sales opportunities: markets and consignment shops)."""

import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator, model_validator

from tenbyten.models.recurrence import Recurrence, parse_recurring_pattern

SEASON_FIELDS = ("season_start_date", "season_end_date")


class ListingType(str, Enum):
    """Listing type values."""
    MARKET = "MARKET"
    CONSIGNMENT = "CONSIGNMENT"


def coerce_date(value: Any) -> Optional[date]:
    """Best-effort calendar date; anything unparseable becomes None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def coerce_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in ("true", "yes", "y", "1"):
            return True
        if normalized in ("false", "no", "n", "0"):
            return False
    return None


def coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class ScheduleSegment(BaseModel):
    """Seasonal exception schedule shown next to the main schedule."""
    label: str = Field("Schedule", description="Segment label, e.g. 'Holiday hours'")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = Field(None, description="HH:MM, 24h")
    end_time: Optional[str] = Field(None, description="HH:MM, 24h")
    days: list[str] = Field(default_factory=list, description="Full weekday names")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _dates(cls, value: Any) -> Optional[date]:
        return coerce_date(value)


class AdmissionFee(BaseModel):
    """Admission price tier."""
    label: str = "General"
    price: Optional[float] = None


class SalesOpportunity(BaseModel):
    """A market or consignment shop listing.

    Only the scheduling fields drive date matching. Other columns from the
    base row and its detail row are kept as extra attributes.
    """
    model_config = ConfigDict(extra="allow", validate_assignment=True)

    id: Optional[str] = Field(None, description="Opportunity ID")
    type: Optional[ListingType] = Field(None, description="MARKET or CONSIGNMENT")
    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    season_start_date: Optional[date] = Field(None, description="First day of the season (inclusive)")
    season_end_date: Optional[date] = Field(None, description="Last day of the season (inclusive)")
    start_date: Optional[date] = Field(None, description="Legacy season start")
    end_date: Optional[date] = Field(None, description="Legacy season end")
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[str] = Field(None, description="e.g. 'Weekly on Sunday'")
    is_schedule_tba: bool = Field(False, description="Schedule not announced yet")
    additional_schedules: list[ScheduleSegment] = Field(default_factory=list)
    open_days: Optional[list[Any]] = Field(None, description="Consignment open days, 0 = Sunday")

    _recurrence: Recurrence = PrivateAttr()
    _stated_season_fields: frozenset = PrivateAttr(default_factory=frozenset)

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> Optional[str]:
        if isinstance(value, ListingType):
            return value
        if isinstance(value, str) and value.strip().upper() in ListingType.__members__:
            return value.strip().upper()
        return None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coordinates(cls, value: Any) -> Optional[float]:
        return coerce_float(value)

    @field_validator("season_start_date", "season_end_date", "start_date", "end_date", mode="before")
    @classmethod
    def _dates(cls, value: Any) -> Optional[date]:
        return coerce_date(value)

    @field_validator("is_recurring", mode="before")
    @classmethod
    def _is_recurring(cls, value: Any) -> Optional[bool]:
        return coerce_bool(value)

    @field_validator("is_schedule_tba", mode="before")
    @classmethod
    def _is_schedule_tba(cls, value: Any) -> bool:
        return coerce_bool(value) is True

    @field_validator("recurring_pattern", mode="before")
    @classmethod
    def _recurring_pattern(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("additional_schedules", mode="before")
    @classmethod
    def _additional_schedules(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        segments = []
        for item in value:
            try:
                segments.append(ScheduleSegment.model_validate(item))
            except ValidationError:
                continue
        return segments

    @field_validator("open_days", mode="before")
    @classmethod
    def _open_days(cls, value: Any) -> Optional[list]:
        return value if isinstance(value, list) else None

    @model_validator(mode="wrap")
    @classmethod
    def _record_stated_season_fields(cls, data: Any, handler: Any) -> Any:
        """Remember which season fields the row filled in, parseable or not."""
        listing = handler(data)
        if isinstance(listing, cls) and isinstance(data, Mapping):
            listing._stated_season_fields = frozenset(
                name for name in SEASON_FIELDS if data.get(name) is not None
            )
        return listing

    def model_post_init(self, __context: Any) -> None:
        """Parse the recurrence pattern once per row."""
        self._recurrence = parse_recurring_pattern(self.recurring_pattern)

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        if name == "recurring_pattern":
            self._recurrence = parse_recurring_pattern(self.recurring_pattern)
        elif name in SEASON_FIELDS:
            stated = self._stated_season_fields - {name}
            self._stated_season_fields = stated | {name} if value is not None else stated

    @property
    def recurrence(self) -> Recurrence:
        return self._recurrence

    @property
    def season_start(self) -> Optional[date]:
        """Season start; the legacy start date applies only when no season start was given.

        An unparseable season start still counts as given and leaves the
        season open at that end.
        """
        if "season_start_date" in self._stated_season_fields or self.season_start_date is not None:
            return self.season_start_date
        return self.start_date

    @property
    def season_end(self) -> Optional[date]:
        """Season end; the legacy end date applies only when no season end was given."""
        if "season_end_date" in self._stated_season_fields or self.season_end_date is not None:
            return self.season_end_date
        return self.end_date

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
