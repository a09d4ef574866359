"""Recurrence models for market schedules.

Admin forms store a listing's schedule as a short English pattern string
("Weekly on Sunday, Wednesday", "Monthly on the 3rd Saturday",
"Monthly on the Last Friday", "Daily"). The string is parsed once into one of
the models below and all date matching works on the structured form.
"""

import calendar
import re
from datetime import date, timedelta
from enum import IntEnum
from typing import Annotated, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Weekday(IntEnum):
    """Weekday numbered like ``date.weekday()`` (Monday is 0)."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def js_index(self) -> int:
        """Sunday-first index used by the web client (Sunday is 0)."""
        return (self.value + 1) % 7

    @classmethod
    def from_name(cls, name: str) -> "Weekday":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown weekday: {name!r}") from None

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())


# Admin UI lists weekdays Sunday first; patterns are written in that order.
DISPLAY_ORDER = (
    Weekday.SUNDAY,
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
)

ORDINAL_PATTERN = re.compile(r"\b(\d)(st|nd|rd|th)\b")

ORDINAL_LABELS = {"1st": 1, "2nd": 2, "3rd": 3, "4th": 4}


def ordinal_label(n: int) -> str:
    """1 -> '1st', 2 -> '2nd', 3 -> '3rd', anything else -> 'Nth'."""
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n, "th")
    return f"{n}{suffix}"


def week_of_month(day: date) -> int:
    """1-based week of month: days 1-7 are week 1, 8-14 week 2, and so on."""
    return (day.day - 1) // 7 + 1


def is_last_weekday_of_month(day: date) -> bool:
    """True when the same weekday a week later falls in another month."""
    return (day + timedelta(days=7)).month != day.month


def _sorted_for_display(weekdays: Iterable[Weekday]) -> list[Weekday]:
    chosen = set(weekdays)
    return [d for d in DISPLAY_ORDER if d in chosen]


def _days_label(weekdays: Iterable[Weekday]) -> str:
    return ", ".join(d.label for d in _sorted_for_display(weekdays))


class NoRecurrence(BaseModel):
    """No pattern stored; the listing's season bounds decide on their own."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"

    def matches(self, day: date) -> bool:
        return True

    def to_pattern(self) -> Optional[str]:
        return None


class DailyRecurrence(BaseModel):
    """Every day within the season."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["daily"] = "daily"

    def matches(self, day: date) -> bool:
        return True

    def to_pattern(self) -> Optional[str]:
        return "Daily"


class WeeklyRecurrence(BaseModel):
    """Recurs on a set of weekdays.

    An empty set means a pattern was stored but names no weekday; that matches
    every day rather than hiding the listing.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["weekly"] = "weekly"
    weekdays: frozenset[Weekday] = Field(default_factory=frozenset)

    def matches(self, day: date) -> bool:
        if not self.weekdays:
            return True
        return Weekday.of(day) in self.weekdays

    def to_pattern(self) -> Optional[str]:
        if not self.weekdays:
            return "Weekly"
        return f"Weekly on {_days_label(self.weekdays)}"


class MonthlyRecurrence(BaseModel):
    """Recurs on an ordinal weekday of each month ("3rd Saturday", "Last Friday").

    With neither an ordinal nor ``last`` it matches every occurrence of the
    weekdays. With no weekdays it never matches.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["monthly"] = "monthly"
    weekdays: frozenset[Weekday] = Field(default_factory=frozenset)
    ordinal: Optional[int] = Field(None, ge=0, le=9, description="Nth occurrence within the month")
    last: bool = Field(False, description="Final occurrence of the weekday in the month")

    def matches(self, day: date) -> bool:
        if not self.weekdays or Weekday.of(day) not in self.weekdays:
            return False
        if self.ordinal is not None:
            return week_of_month(day) == self.ordinal
        if self.last:
            return is_last_weekday_of_month(day)
        return True

    def occurrences_in_month(self, year: int, month: int) -> list[date]:
        """All dates in the month that satisfy this recurrence, ascending."""
        days_in_month = calendar.monthrange(year, month)[1]
        found = []
        for weekday in self.weekdays:
            first = date(year, month, 1)
            first += timedelta(days=(weekday - first.weekday()) % 7)
            if self.ordinal is not None:
                candidate = first + timedelta(weeks=self.ordinal - 1)
                if self.ordinal >= 1 and candidate.month == month:
                    found.append(candidate)
            elif self.last:
                end = date(year, month, days_in_month)
                found.append(end - timedelta(days=(end.weekday() - weekday) % 7))
            else:
                current = first
                while current.month == month:
                    found.append(current)
                    current += timedelta(weeks=1)
        return sorted(found)

    def to_pattern(self) -> Optional[str]:
        days = _days_label(self.weekdays)
        if self.ordinal is not None:
            return f"Monthly on the {ordinal_label(self.ordinal)} {days}".rstrip()
        if self.last:
            return f"Monthly on the Last {days}".rstrip()
        if days:
            return f"Monthly on {days}"
        return "Monthly"


Recurrence = Annotated[
    Union[NoRecurrence, DailyRecurrence, WeeklyRecurrence, MonthlyRecurrence],
    Field(discriminator="kind"),
]


def normalize_pattern(value: object) -> str:
    """Lowercase and trim a stored pattern; blank or the text 'null' become ''."""
    if not isinstance(value, str):
        return ""
    normalized = value.strip().lower()
    if not normalized or normalized == "null":
        return ""
    return normalized


def weekdays_in_pattern(pattern: str) -> frozenset[Weekday]:
    """Every full English weekday name mentioned anywhere in the pattern."""
    lowered = pattern.lower()
    return frozenset(d for d in Weekday if d.name.lower() in lowered)


def parse_recurring_pattern(value: object) -> Recurrence:
    """Parse the legacy pattern string.

    Never raises: anything unrecognised becomes a weekly recurrence over
    whatever weekday names it mentions (possibly none, which matches every day).
    """
    pattern = normalize_pattern(value)
    if not pattern:
        return NoRecurrence()

    if "daily" in pattern or "every day" in pattern:
        return DailyRecurrence()

    weekdays = weekdays_in_pattern(pattern)

    if "monthly" in pattern:
        ordinal_match = ORDINAL_PATTERN.search(pattern)
        if ordinal_match:
            return MonthlyRecurrence(weekdays=weekdays, ordinal=int(ordinal_match.group(1)))
        return MonthlyRecurrence(weekdays=weekdays, last="last" in pattern)

    return WeeklyRecurrence(weekdays=weekdays)


def build_recurring_pattern(
    frequency: Optional[str],
    days: Iterable[Union[str, Weekday]] = (),
    ordinal: Optional[str] = None,
) -> Optional[str]:
    """Build the stored pattern string from admin form toggles.

    ``frequency`` is one of ``daily``, ``weekly`` or ``monthly`` (blank means
    not recurring). ``ordinal`` is one of ``1st``..``4th`` or ``Last`` and is
    required for monthly schedules. Raises ``ValueError`` for unknown values.
    """
    if frequency is None or not frequency.strip():
        return None

    kind = frequency.strip().lower()
    weekdays = frozenset(d if isinstance(d, Weekday) else Weekday.from_name(d) for d in days)

    if kind == "daily":
        return DailyRecurrence().to_pattern()

    if kind == "weekly":
        if not weekdays:
            raise ValueError("Weekly schedules need at least one weekday")
        return WeeklyRecurrence(weekdays=weekdays).to_pattern()

    if kind == "monthly":
        if len(weekdays) != 1:
            raise ValueError("Monthly schedules need exactly one weekday")
        if ordinal is None:
            raise ValueError("Monthly schedules need an ordinal")
        label = ordinal.strip()
        if label.lower() == "last":
            return MonthlyRecurrence(weekdays=weekdays, last=True).to_pattern()
        if label.lower() not in ORDINAL_LABELS:
            raise ValueError(f"Unknown ordinal: {ordinal!r}")
        return MonthlyRecurrence(weekdays=weekdays, ordinal=ORDINAL_LABELS[label.lower()]).to_pattern()

    raise ValueError(f"Unknown frequency: {frequency!r}")
