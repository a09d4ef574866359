"""Market schedule evaluation.

Answers "does this listing run on a given day?" and "when is it on next?" for
market and consignment listings. Every function here is pure and never raises
on malformed listing data: unparseable dates impose no bound and unparseable
patterns match every day, so a data-entry slip never hides a listing.
"""

import math
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from tenbyten.models.listing import ListingType, SalesOpportunity
from tenbyten.models.recurrence import (
    MonthlyRecurrence,
    NoRecurrence,
    Weekday,
    WeeklyRecurrence,
)
from tenbyten.utils.settings import settings

ListingLike = Union[SalesOpportunity, Mapping[str, Any]]
DayLike = Union[date, datetime]

SCHEDULE_FIELDS = (
    "id",
    "type",
    "season_start_date",
    "season_end_date",
    "start_date",
    "end_date",
    "is_recurring",
    "recurring_pattern",
    "is_schedule_tba",
    "open_days",
)

WEEKLY_SCAN_DAYS = 7


def as_listing(listing: ListingLike) -> SalesOpportunity:
    """Accept a model or a raw row; rows that fail full validation keep only schedule fields."""
    if isinstance(listing, SalesOpportunity):
        return listing
    row = dict(listing)
    try:
        return SalesOpportunity.model_validate(row)
    except ValidationError:
        return SalesOpportunity.model_validate({key: row.get(key) for key in SCHEDULE_FIELDS})


def as_calendar_date(day: DayLike) -> date:
    """Drop the time of day."""
    if isinstance(day, datetime):
        return day.date()
    return day


def is_active_on(listing: ListingLike, day: DayLike) -> bool:
    """True when the market runs on ``day``.

    TBA listings never run. Outside the season window nothing runs. Inside it,
    the recurrence decides; with no pattern, an explicit ``is_recurring=False``
    and only a start date make a single-day event, and everything else runs
    every day of the window.
    """
    listing = as_listing(listing)
    day = as_calendar_date(day)

    if listing.is_schedule_tba:
        return False

    start = listing.season_start
    end = listing.season_end
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False

    recurrence = listing.recurrence
    if isinstance(recurrence, NoRecurrence):
        if listing.is_recurring is False and start is not None and end is None:
            return day == start
        return True

    return recurrence.matches(day)


# Name used by the map and calendar call sites.
is_market_on_date = is_active_on


def _scan_week(listing: SalesOpportunity, search_start: date, end: Optional[date]) -> Optional[date]:
    for offset in range(WEEKLY_SCAN_DAYS):
        candidate = search_start + timedelta(days=offset)
        if end is not None and candidate > end:
            return None
        if listing.recurrence.matches(candidate):
            return candidate
    return None


def _scan_months(
    recurrence: MonthlyRecurrence,
    search_start: date,
    end: Optional[date],
    months: int,
) -> Optional[date]:
    year, month = search_start.year, search_start.month
    for _ in range(months):
        for candidate in recurrence.occurrences_in_month(year, month):
            if candidate < search_start:
                continue
            if end is not None and candidate > end:
                return None
            return candidate
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return None


def next_occurrence_on_or_after(
    listing: ListingLike,
    anchor: Optional[DayLike] = None,
    month_lookahead: Optional[int] = None,
) -> Optional[date]:
    """First day on or after ``anchor`` (default today) when the listing runs.

    Weekly schedules look at most one week ahead and monthly schedules at
    most ``month_lookahead`` months (``MONTHLY_LOOKAHEAD_MONTHS``, default 12).
    Listings without a season start have no next date.
    """
    listing = as_listing(listing)
    anchor = as_calendar_date(anchor) if anchor is not None else date.today()

    if listing.is_schedule_tba:
        return None

    start = listing.season_start
    end = listing.season_end
    if start is None:
        return None

    search_start = max(anchor, start)
    if end is not None and search_start > end:
        return None

    recurrence = listing.recurrence
    if isinstance(recurrence, WeeklyRecurrence):
        found = _scan_week(listing, search_start, end)
    elif isinstance(recurrence, MonthlyRecurrence):
        months = settings.monthly_lookahead_months if month_lookahead is None else month_lookahead
        found = _scan_months(recurrence, search_start, end, months)
    else:
        found = search_start if is_active_on(listing, search_start) else None

    if found is not None:
        return found

    if start >= anchor and is_active_on(listing, start):
        return start
    return None


def _open_day_numbers(open_days: list) -> set[float]:
    numbers = set()
    for value in open_days:
        if isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            numbers.add(number)
    return numbers


def is_consignment_open_on(listing: ListingLike, day: DayLike) -> bool:
    """Consignment shops list open weekdays Sunday=0; no list means always open."""
    listing = as_listing(listing)
    if not listing.open_days:
        return True
    return Weekday.of(as_calendar_date(day)).js_index in _open_day_numbers(listing.open_days)


def is_listing_on_date(listing: ListingLike, day: DayLike) -> bool:
    """Dispatch on listing type; other types are always shown."""
    listing = as_listing(listing)
    if listing.type == ListingType.MARKET:
        return is_active_on(listing, day)
    if listing.type == ListingType.CONSIGNMENT:
        return is_consignment_open_on(listing, day)
    return True
